"""
Daily puzzles built from what NPCs did while the player was away.

Key components:
- DigestGenerator: Buffers NPC events and folds them into a DailyDigest
- PuzzleEngine: Builds spot-the-lie puzzles, scores answers, tracks the case
- StoryGenerator: Random events for demos and tests
- Puzzle / CaseProgress / PuzzleResult: The state the engine moves forward
"""

from .digest import DigestGenerator
from .engine import PuzzleEngine, correct_answer_for
from .models import (
    CaseProgress,
    CaseStatus,
    ConversationMessage,
    DailyDigest,
    DigestEvent,
    DigestEventType,
    FillBlankContent,
    NPCActivity,
    NPCConversation,
    NPCKnowledge,
    Puzzle,
    PuzzleContent,
    PuzzleResult,
    PuzzleStatus,
    PuzzleType,
    ScoringRules,
    SequenceContent,
    SequenceEvent,
    SolveOutcome,
    SourceContext,
    SpotTheLieContent,
    Statement,
    WhoSaidItContent,
)
from .story import StoryGenerator

__all__ = [
    "DigestGenerator",
    "PuzzleEngine",
    "StoryGenerator",
    "correct_answer_for",
    "CaseProgress",
    "CaseStatus",
    "ConversationMessage",
    "DailyDigest",
    "DigestEvent",
    "DigestEventType",
    "FillBlankContent",
    "NPCActivity",
    "NPCConversation",
    "NPCKnowledge",
    "Puzzle",
    "PuzzleContent",
    "PuzzleResult",
    "PuzzleStatus",
    "PuzzleType",
    "ScoringRules",
    "SequenceContent",
    "SequenceEvent",
    "SolveOutcome",
    "SourceContext",
    "SpotTheLieContent",
    "Statement",
    "WhoSaidItContent",
]
