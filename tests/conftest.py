"""
Pytest configuration and fixtures for chorus-mystery tests.
"""

import sys
from datetime import datetime
from pathlib import Path
import pytest

# Add src directory to Python path to allow importing chorus_mystery
src_path = Path(__file__).parent.parent / "src"
if str(src_path) not in sys.path:
    sys.path.insert(0, str(src_path))


# Configure anyio to only use asyncio (not trio)
@pytest.fixture
def anyio_backend():
    return "asyncio"


class FixedClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def clock() -> FixedClock:
    """A clock stopped at 2026-03-14 14:00 local time."""
    return FixedClock(datetime(2026, 3, 14, 14, 0, 0))
