"""
Chorus Mystery - NPC claim tracking, lie detection and daily deduction puzzles, served over FastMCP.
"""

from .config import MysteryConfig, load_config
from .consistency import FactStore, LieDetector
from .puzzles import DigestGenerator, PuzzleEngine, StoryGenerator
from .session import MysterySession, SessionState
from .storage import SessionStorage

try:
    from importlib.metadata import PackageNotFoundError, version as _get_version
    __version__ = _get_version("chorus-mystery")
except PackageNotFoundError:
    __version__ = "0.1.0"  # Fallback if metadata unavailable
__all__ = [
    "FactStore",
    "LieDetector",
    "DigestGenerator",
    "PuzzleEngine",
    "StoryGenerator",
    "MysterySession",
    "SessionState",
    "SessionStorage",
    "MysteryConfig",
    "load_config",
]
