"""
One investigation, end to end.

MysterySession owns the fact ledger, the lie detector, the digest buffers,
the puzzle engine and the case progress for a single case. It is the seam
the MCP server talks to, and it snapshots itself as a JSON-ready
SessionState for storage.
"""

import logging
import random
from datetime import datetime, timedelta
from typing import Any, Callable, Optional

from pydantic import BaseModel, Field

from .config import MysteryConfig
from .consistency import (
    Contradiction,
    Fact,
    FactSource,
    FactStore,
    LieAlert,
    LieDetector,
    SourceType,
    format_suspicions,
)
from .exceptions import InvalidAnswerError, NoActivePuzzleError
from .llm_client import LLMClient
from .puzzles import (
    CaseProgress,
    DailyDigest,
    DigestGenerator,
    Puzzle,
    PuzzleEngine,
    PuzzleStatus,
    PuzzleType,
    SolveOutcome,
)
from .puzzles.models import to_local_naive

logger = logging.getLogger("chorus-mystery")

SPOT_THE_LIE_ANSWERS = ("1", "2", "3")


class ClaimOutcome(BaseModel):
    """What recording a claim produced."""
    fact: Fact
    contradictions: list[Contradiction] = Field(default_factory=list)
    alert: Optional[LieAlert] = None
    tokens_used: int = 0


class SessionState(BaseModel):
    """
    Everything needed to resume a session.

    Attributes:
        progress: Case progress, including today's puzzle
        facts: ``FactStore.serialize()`` output
        current_puzzle: The last puzzle offered, in whatever state it is in
        last_seen: When the player was last around
        day: Latest game day a claim was made on
    """
    progress: CaseProgress
    facts: dict[str, Any] = Field(default_factory=lambda: {"facts": []})
    current_puzzle: Optional[Puzzle] = None
    last_seen: Optional[datetime] = None
    day: int = Field(default=0, ge=0)


class MysterySession:
    """
    Runs one case.

    Without an LLM client the session still records claims and flags
    contradictions, but never raises lie alerts.

    Args:
        case_id: Unique case identifier
        case_name: Display name of the case
        llm: Client used by the lie detector
        config: Settings; defaults to ``MysteryConfig()``
        rng: Random source for puzzle generation
        clock: Returns the current local time
    """

    def __init__(
        self,
        case_id: str,
        case_name: str,
        llm: Optional[LLMClient] = None,
        config: Optional[MysteryConfig] = None,
        rng: Optional[random.Random] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.config = config or MysteryConfig()
        self._clock = clock or datetime.now

        self.fact_store = FactStore()
        self.lie_detector = LieDetector(llm, self.fact_store) if llm is not None else None
        self.digest = DigestGenerator(clock=self._clock)
        self.engine = PuzzleEngine(scoring=self.config.scoring, rng=rng, clock=self._clock)

        self.progress = self.engine.create_case_progress(case_id, case_name)
        self.current_puzzle: Optional[Puzzle] = None
        self.last_seen: Optional[datetime] = None
        self.day = 0

    # ------------------------------------------------------------------
    # Claims
    # ------------------------------------------------------------------

    async def record_claim(
        self,
        speaker: str,
        subject: str,
        claim: str,
        day: int,
        source_type: SourceType = SourceType.NPC,
        context: Optional[str] = None,
    ) -> ClaimOutcome:
        """
        Record a claim and, for NPC claims that conflict with the ledger,
        ask the lie detector for an alert.

        Args:
            speaker: Who made the claim
            subject: Who or what it is about
            claim: What was said
            day: Game day
            source_type: Kind of source
            context: Optional note on where it was said

        Returns:
            The new fact, the contradictions found, and any alert
        """
        source = FactSource(type=source_type, name=speaker, day=day, context=context)
        fact, contradictions = self.fact_store.add_fact(subject, claim, source)
        self.day = max(self.day, day)

        alert = None
        tokens_used = 0
        if source.type == SourceType.NPC and contradictions and self.lie_detector is not None:
            alert, tokens_used = await self.lie_detector.check_claim(speaker, claim, subject)

        return ClaimOutcome(
            fact=fact,
            contradictions=contradictions,
            alert=alert,
            tokens_used=tokens_used,
        )

    def format_suspicions(self) -> str:
        return format_suspicions(self.fact_store)

    # ------------------------------------------------------------------
    # Digest and puzzles
    # ------------------------------------------------------------------

    def check_for_reunion(self, now: Optional[datetime] = None) -> Optional[DailyDigest]:
        """
        Offer a digest if the player has been away long enough.

        The first call only starts the clock. Every call that completes
        marks the player as present.

        Args:
            now: Current time; defaults to the session clock

        Returns:
            The digest with today's puzzle, or None if nothing is due
        """
        now = to_local_naive(now or self._clock())
        self._expire_stale_puzzle()

        last_seen = self.last_seen
        if last_seen is None or now - last_seen < timedelta(minutes=self.config.min_away_minutes):
            self.last_seen = now
            return None
        if not self.engine.is_puzzle_available(self.progress):
            logger.debug(f"No puzzle available for case {self.progress.case_id} today")
            self.last_seen = now
            return None

        # last_seen only moves once the digest exists
        digest = self.digest.generate_digest(
            since=last_seen,
            puzzle_engine=self.engine,
            difficulty=self.config.default_difficulty,
        )
        self.current_puzzle = digest.puzzle
        self.progress.todays_puzzle = digest.puzzle
        self.last_seen = now
        self.digest.clear_processed_events(before=now)

        logger.info(
            f"Player back after {now - last_seen}, offering puzzle {digest.puzzle.id}"
        )
        return digest

    def answer_puzzle(self, answer: str) -> SolveOutcome:
        """
        Answer the pending puzzle.

        Raises:
            NoActivePuzzleError: If no puzzle is pending
            InvalidAnswerError: If a spot-the-lie answer is not 1, 2 or 3
        """
        puzzle = self.current_puzzle
        if puzzle is None or puzzle.status != PuzzleStatus.PENDING:
            raise NoActivePuzzleError("There is no puzzle waiting for an answer")

        if puzzle.type == PuzzleType.SPOT_THE_LIE and answer.strip() not in SPOT_THE_LIE_ANSWERS:
            raise InvalidAnswerError(
                f"Answer with 1, 2 or 3, not '{answer}'",
                details={"puzzle_id": puzzle.id},
            )

        outcome = self.engine.solve_puzzle(puzzle, answer, self.progress)
        self.progress = outcome.progress
        if outcome.puzzle.status == PuzzleStatus.EXPIRED:
            self.progress.todays_puzzle = None

        self.last_seen = self._clock()
        return outcome

    def _expire_stale_puzzle(self) -> None:
        if self.current_puzzle is not None and self.engine.expire_if_stale(self.current_puzzle):
            logger.info(f"Puzzle {self.current_puzzle.id} expired unanswered")
            self.progress.todays_puzzle = None

    # ------------------------------------------------------------------
    # Snapshots
    # ------------------------------------------------------------------

    def to_state(self) -> SessionState:
        return SessionState(
            progress=self.progress,
            facts=self.fact_store.serialize(),
            current_puzzle=self.current_puzzle,
            last_seen=self.last_seen,
            day=self.day,
        )

    @classmethod
    def from_state(
        cls,
        state: SessionState,
        llm: Optional[LLMClient] = None,
        config: Optional[MysteryConfig] = None,
        rng: Optional[random.Random] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> "MysterySession":
        """Rebuild a session from a snapshot."""
        session = cls(
            state.progress.case_id,
            state.progress.case_name,
            llm=llm,
            config=config,
            rng=rng,
            clock=clock,
        )
        session.progress = state.progress.model_copy(deep=True)
        session.current_puzzle = (
            state.current_puzzle.model_copy(deep=True) if state.current_puzzle else None
        )
        # Today's puzzle and the current puzzle are one object while pending
        todays = session.progress.todays_puzzle
        if todays is not None and session.current_puzzle is not None:
            if todays.id == session.current_puzzle.id:
                session.progress.todays_puzzle = session.current_puzzle

        session.fact_store = FactStore.deserialize(state.facts)
        if session.lie_detector is not None:
            session.lie_detector = LieDetector(llm, session.fact_store)

        session.last_seen = state.last_seen
        session.day = state.day
        return session


__all__ = [
    "MysterySession",
    "SessionState",
    "ClaimOutcome",
]
