"""
Puzzle engine for daily deduction puzzles.

Builds a "spot the lie" puzzle from a digest, checks the player's answer,
scores it and moves the case forward. Random choices go through an
injectable ``random.Random`` and the current time through an injectable
clock, so generation and expiry can be made deterministic.
"""

import logging
import random
from datetime import datetime, time, timedelta
from typing import Callable, Optional, Sequence, TypeVar

from shortuuid import random as shortuuid_random

from ..exceptions import PuzzleStateError
from .models import (
    CaseProgress,
    CaseStatus,
    DailyDigest,
    DigestEvent,
    FillBlankContent,
    Puzzle,
    PuzzleResult,
    PuzzleStatus,
    PuzzleType,
    ScoringRules,
    SequenceContent,
    SolveOutcome,
    SourceContext,
    SpotTheLieContent,
    Statement,
    WhoSaidItContent,
)

logger = logging.getLogger("chorus-mystery")

T = TypeVar("T")

# Used when the digest is too thin to build a real puzzle
FALLBACK_STATEMENTS = [
    Statement(speaker="Mysterious Stranger", statement="I was at the tavern all evening.", is_lie=False),
    Statement(speaker="Innkeeper", statement="The stranger arrived just after sunset.", is_lie=False),
    Statement(speaker="Mysterious Stranger", statement="I never left my room that night.", is_lie=True),
]

NEXT_PUZZLE_HOUR = 9


def correct_answer_for(content) -> str:
    """
    Encode the answer for any puzzle content.

    Raises:
        TypeError: For content types the engine does not know
    """
    if isinstance(content, SpotTheLieContent):
        lie_index = next(i for i, s in enumerate(content.statements) if s.is_lie)
        return str(lie_index + 1)
    if isinstance(content, WhoSaidItContent):
        return content.options[0]
    if isinstance(content, SequenceContent):
        return ",".join(content.correct_order)
    if isinstance(content, FillBlankContent):
        return content.blank
    raise TypeError(f"Unknown puzzle content: {type(content).__name__}")


class PuzzleEngine:
    """
    Generates, scores and tracks daily puzzles.

    Args:
        scoring: Point rules; defaults to ``ScoringRules()``
        rng: Random source for statement selection and ordering
        clock: Returns the current local time
    """

    def __init__(
        self,
        scoring: Optional[ScoringRules] = None,
        rng: Optional[random.Random] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.scoring = scoring or ScoringRules()
        self._rng = rng or random.Random()
        self._clock = clock or datetime.now

    # ------------------------------------------------------------------
    # Generation
    # ------------------------------------------------------------------

    def generate_puzzle(self, digest: DailyDigest, difficulty: int = 2) -> Puzzle:
        """
        Build today's puzzle from a digest.

        Args:
            digest: Digest whose events supply statements
            difficulty: 1 (easy) to 3 (hard)

        Returns:
            A pending spot-the-lie puzzle expiring at the next local midnight

        Raises:
            ValueError: If difficulty is not 1, 2 or 3
        """
        if difficulty not in (1, 2, 3):
            raise ValueError(f"difficulty must be 1, 2 or 3, got {difficulty}")

        content = self._generate_spot_the_lie(digest.events)
        now = self._clock()
        tomorrow = datetime.combine(now.date() + timedelta(days=1), time.min)

        puzzle = Puzzle(
            id=shortuuid_random(length=12),
            type=PuzzleType.SPOT_THE_LIE,
            generated_at=now,
            expires_at=tomorrow,
            difficulty=difficulty,
            content=content,
            correct_answer=correct_answer_for(content),
            source_context=SourceContext(
                events=[event.id for event in digest.events],
                involved_agents=self._extract_agents(digest.events),
            ),
        )
        logger.info(f"Generated {puzzle.type.value} puzzle {puzzle.id} (difficulty {difficulty})")
        return puzzle

    def _generate_spot_the_lie(self, events: Sequence[DigestEvent]) -> SpotTheLieContent:
        """Two truths and one lie, attributed to the agents of their events."""
        truths: list[tuple[str, str]] = []
        lies: list[tuple[str, str]] = []
        for event in events:
            for agent in event.involved_agents:
                truths.extend((agent, fact) for fact in event.facts)
                lies.extend((agent, lie) for lie in event.possible_lies)

        if len(truths) < 2 or not lies:
            logger.warning(
                f"Digest too thin for a puzzle ({len(truths)} facts, {len(lies)} lies), "
                "using placeholder statements"
            )
            return SpotTheLieContent(statements=[s.model_copy() for s in FALLBACK_STATEMENTS])

        picked_truths = self._pick_random(truths, 2)
        liar, lie = self._pick_random(lies, 1)[0]

        statements = [
            Statement(speaker=speaker, statement=statement, is_lie=False)
            for speaker, statement in picked_truths
        ]
        statements.append(Statement(speaker=liar, statement=lie, is_lie=True))
        return SpotTheLieContent(statements=self._shuffle(statements))

    # ------------------------------------------------------------------
    # Solving
    # ------------------------------------------------------------------

    def solve_puzzle(
        self,
        puzzle: Puzzle,
        user_answer: str,
        progress: CaseProgress,
    ) -> SolveOutcome:
        """
        Submit an answer.

        The puzzle is updated in place; progress is returned as an updated
        copy. An answer arriving after expiry expires the puzzle and scores
        nothing.

        Args:
            puzzle: A pending puzzle
            user_answer: The player's answer, e.g. "2"
            progress: Case progress before answering

        Returns:
            The puzzle, the new progress and the scored result

        Raises:
            PuzzleStateError: If the puzzle is not pending
        """
        if puzzle.status != PuzzleStatus.PENDING:
            raise PuzzleStateError(
                f"Puzzle already {puzzle.status.value}",
                puzzle_id=puzzle.id,
                status=puzzle.status.value,
            )

        now = self._clock()
        if now > puzzle.expires_at:
            puzzle.status = PuzzleStatus.EXPIRED
            logger.info(f"Puzzle {puzzle.id} expired before it was answered")
            return SolveOutcome(
                puzzle=puzzle,
                progress=progress,
                result=self._create_expired_result(progress),
            )

        puzzle.attempts += 1
        puzzle.user_answer = user_answer

        correct = self._check_answer(puzzle, user_answer)
        if correct:
            puzzle.status = PuzzleStatus.SOLVED
            puzzle.solved_at = now
        else:
            puzzle.status = PuzzleStatus.FAILED

        result = self.calculate_result(puzzle, progress, correct)
        updated = self.update_progress(progress, result)

        logger.info(
            f"Puzzle {puzzle.id} {puzzle.status.value}: {result.points_earned:+d} points, "
            f"{result.new_total}/{progress.points_to_solve}"
        )
        return SolveOutcome(puzzle=puzzle, progress=updated, result=result)

    def expire_if_stale(self, puzzle: Puzzle) -> bool:
        """Expire a pending puzzle past its deadline. Returns whether it flipped."""
        if puzzle.status == PuzzleStatus.PENDING and self._clock() > puzzle.expires_at:
            puzzle.status = PuzzleStatus.EXPIRED
            return True
        return False

    @staticmethod
    def _check_answer(puzzle: Puzzle, user_answer: str) -> bool:
        return user_answer.strip().lower() == puzzle.correct_answer.strip().lower()

    def calculate_result(
        self,
        puzzle: Puzzle,
        progress: CaseProgress,
        correct: bool,
    ) -> PuzzleResult:
        """
        Score an answer against the case's current standing.

        The difficulty multiplier applies to the base before the streak
        bonus is added, so the bonus stays flat.
        """
        streak_broken = False
        revelation = None
        consequence = None

        if correct:
            points = self.scoring.correct_base
            if self.scoring.difficulty_multiplier:
                points *= puzzle.difficulty
            if progress.current_streak >= 2:
                points += self.scoring.streak_bonus
            new_streak = progress.current_streak + 1
        else:
            points = -self.scoring.wrong_penalty
            streak_broken = progress.current_streak > 0
            new_streak = 0

        lie = self._lie_statement(puzzle)
        if lie is not None:
            if correct:
                revelation = f'{lie.speaker} was lying: "{lie.statement}"'
            else:
                consequence = f'The lie was: "{lie.statement}"'

        new_total = max(0, progress.progress_points + points)
        return PuzzleResult(
            correct=correct,
            points_earned=points,
            new_total=new_total,
            progress_percent=min(100.0, new_total / progress.points_to_solve * 100),
            streak_broken=streak_broken,
            new_streak=new_streak,
            case_solved=new_total >= progress.points_to_solve,
            next_puzzle_available=self._next_puzzle_time(),
            revelation=revelation,
            consequence=consequence,
        )

    def _create_expired_result(self, progress: CaseProgress) -> PuzzleResult:
        return PuzzleResult(
            correct=False,
            points_earned=0,
            new_total=progress.progress_points,
            progress_percent=min(100.0, progress.progress_points / progress.points_to_solve * 100),
            streak_broken=progress.current_streak > 0,
            new_streak=0,
            case_solved=False,
            next_puzzle_available=self._next_puzzle_time(),
        )

    def update_progress(self, progress: CaseProgress, result: PuzzleResult) -> CaseProgress:
        """Apply a result to a copy of the case progress."""
        updated = progress.model_copy(deep=True)

        updated.progress_points = result.new_total
        updated.current_streak = result.new_streak
        updated.longest_streak = max(updated.longest_streak, result.new_streak)

        if result.correct:
            updated.puzzles_solved += 1
        else:
            updated.puzzles_failed += 1

        if result.case_solved and updated.status != CaseStatus.SOLVED:
            updated.status = CaseStatus.SOLVED
            updated.solved_at = self._clock()
            logger.info(f"Case '{updated.case_name}' solved with {updated.progress_points} points")

        updated.todays_puzzle = None
        updated.last_puzzle_date = self._today()
        return updated

    # ------------------------------------------------------------------
    # Progress
    # ------------------------------------------------------------------

    def create_case_progress(self, case_id: str, case_name: str) -> CaseProgress:
        """Fresh progress for a new case."""
        return CaseProgress(
            case_id=case_id,
            case_name=case_name,
            points_to_solve=self.scoring.points_to_solve,
            started_at=self._clock(),
        )

    def is_puzzle_available(self, progress: CaseProgress) -> bool:
        """At most one puzzle per case per calendar day, and only while the case is open."""
        if progress.status != CaseStatus.ACTIVE:
            return False
        if progress.todays_puzzle is not None:
            return False
        return progress.last_puzzle_date != self._today()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _lie_statement(puzzle: Puzzle) -> Optional[Statement]:
        if not isinstance(puzzle.content, SpotTheLieContent):
            return None
        return next((s for s in puzzle.content.statements if s.is_lie), None)

    @staticmethod
    def _extract_agents(events: Sequence[DigestEvent]) -> list[str]:
        agents: list[str] = []
        for event in events:
            for agent in event.involved_agents:
                if agent not in agents:
                    agents.append(agent)
        return agents

    def _shuffle(self, items: Sequence[T]) -> list[T]:
        shuffled = list(items)
        self._rng.shuffle(shuffled)
        return shuffled

    def _pick_random(self, items: Sequence[T], count: int) -> list[T]:
        return self._shuffle(items)[:count]

    def _today(self) -> str:
        return self._clock().date().isoformat()

    def _next_puzzle_time(self) -> datetime:
        tomorrow = self._clock().date() + timedelta(days=1)
        return datetime.combine(tomorrow, time(hour=NEXT_PUZZLE_HOUR))


__all__ = [
    "PuzzleEngine",
    "correct_answer_for",
    "FALLBACK_STATEMENTS",
]
