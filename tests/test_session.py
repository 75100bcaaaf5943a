"""
Tests for MysterySession.

Tests cover:
- Recording claims with and without a lie detector
- The reunion flow: first visit, minimum time away, one puzzle per day
- Answering puzzles and the errors around it
- Expiry of unanswered puzzles
- Snapshot and restore
"""

import json
import random
import pytest
from datetime import datetime, timedelta, timezone
from unittest.mock import patch

from chorus_mystery.config import MysteryConfig
from chorus_mystery.consistency import AlertSeverity, SourceType
from chorus_mystery.exceptions import InvalidAnswerError, NoActivePuzzleError
from chorus_mystery.llm_client import MockLLMClient
from chorus_mystery.puzzles import (
    CaseStatus,
    NPCActivity,
    NPCConversation,
    NPCKnowledge,
    PuzzleStatus,
    ScoringRules,
)
from chorus_mystery.session import MysterySession, SessionState


def direct_verdict() -> str:
    return json.dumps({"contradict": True, "severity": "direct", "explanation": "Home and docks"})


def wrong_answer(correct: str) -> str:
    return next(option for option in ("1", "2", "3") if option != correct)


@pytest.fixture
def session(clock) -> MysterySession:
    session = MysterySession("case-1", "The Tavern Mystery", rng=random.Random(3), clock=clock)
    session.digest.register_npc(NPCKnowledge(
        agent="Mara",
        facts=["Mara keeps the cellar key", "Mara saw a lantern in the garden"],
        lies=["Mara never goes to the cellar"],
    ))
    session.digest.register_npc(NPCKnowledge(
        agent="Thom",
        facts=["Thom owes money to the innkeeper"],
        lies=["Thom paid his debts last week"],
    ))
    return session


def away(session: MysterySession, clock, hours: float) -> None:
    """Advance the clock, leaving a conversation behind in the meantime."""
    clock.now += timedelta(hours=hours / 2)
    session.digest.record_conversation(NPCConversation(
        id=f"conv-{clock.now:%d%H%M}",
        timestamp=clock.now,
        participants=["Mara", "Thom"],
        topic="money troubles",
    ))
    clock.now += timedelta(hours=hours / 2)


class TestRecordClaim:
    """Tests for MysterySession.record_claim."""

    pytestmark = pytest.mark.anyio

    async def test_without_llm_flags_contradictions_only(self, session):
        await session.record_claim("Mara", "Kira", "was home all night", day=1)
        outcome = await session.record_claim("Thom", "Kira", "was seen at the docks", day=2)

        assert len(outcome.contradictions) == 1
        assert outcome.alert is None
        assert outcome.tokens_used == 0
        assert session.lie_detector is None
        assert session.day == 2

    async def test_contradicting_npc_raises_alert(self, clock):
        llm = MockLLMClient(responses=[direct_verdict(), "Thom will not meet your eye."], tokens_per_call=20)
        session = MysterySession("case-1", "Case", llm=llm, clock=clock)

        await session.record_claim("Mara", "Kira", "was home all night", day=1)
        outcome = await session.record_claim("Thom", "Kira", "was seen at the docks", day=1)

        assert outcome.alert is not None
        assert outcome.alert.severity == AlertSeverity.LIE
        assert outcome.alert.gut_feeling == "Thom will not meet your eye."
        assert outcome.tokens_used == 40

    async def test_consistent_claims_skip_the_model(self, clock):
        llm = MockLLMClient(responses=[direct_verdict()])
        session = MysterySession("case-1", "Case", llm=llm, clock=clock)

        await session.record_claim("Mara", "Kira", "was home all night", day=1)
        outcome = await session.record_claim("Thom", "Kira", "owns a small boat", day=1)

        assert outcome.contradictions == []
        assert outcome.alert is None
        assert llm.call_count == 0

    async def test_player_claims_are_not_checked(self, clock):
        llm = MockLLMClient(responses=[direct_verdict()])
        session = MysterySession("case-1", "Case", llm=llm, clock=clock)

        await session.record_claim("Mara", "Kira", "was home all night", day=1)
        outcome = await session.record_claim(
            "player", "Kira", "was seen at the docks", day=1, source_type=SourceType.PLAYER
        )

        assert outcome.contradictions
        assert outcome.alert is None
        assert llm.call_count == 0

    async def test_day_never_goes_back(self, session):
        await session.record_claim("Mara", "Kira", "likes apples", day=5)
        await session.record_claim("Thom", "Jory", "sings badly", day=2)
        assert session.day == 5

    async def test_format_suspicions(self, session):
        await session.record_claim("Mara", "Kira", "was home all night", day=1)
        await session.record_claim("Thom", "Kira", "was seen at the docks", day=1)

        text = session.format_suspicions()

        assert text.startswith("Your Suspicions")
        assert "About kira:" in text


class TestReunion:
    """Tests for check_for_reunion."""

    def test_first_call_only_starts_the_clock(self, session, clock):
        assert session.check_for_reunion() is None
        assert session.last_seen == clock.now

    def test_short_absence_gives_nothing(self, session, clock):
        session.check_for_reunion()
        clock.now += timedelta(minutes=59)

        assert session.check_for_reunion() is None
        assert session.last_seen == clock.now

    def test_long_absence_gives_digest(self, session, clock):
        session.check_for_reunion()
        away(session, clock, hours=2)

        digest = session.check_for_reunion()

        assert digest is not None
        assert digest.date == "2026-03-14"
        assert len(digest.events) == 1
        assert digest.puzzle.difficulty == 2
        assert session.current_puzzle is digest.puzzle
        assert session.progress.todays_puzzle is digest.puzzle
        # Consumed events are gone from the buffers
        assert session.digest.conversations == []

    def test_difficulty_comes_from_config(self, clock):
        session = MysterySession(
            "case-1", "Case", config=MysteryConfig(default_difficulty=3, min_away_minutes=0), clock=clock
        )
        session.check_for_reunion()

        digest = session.check_for_reunion()

        assert digest.puzzle.difficulty == 3

    def test_no_second_puzzle_while_one_is_pending(self, session, clock):
        session.check_for_reunion()
        away(session, clock, hours=2)
        first = session.check_for_reunion()
        away(session, clock, hours=2)

        assert session.check_for_reunion() is None
        assert session.current_puzzle is first.puzzle

    def test_one_puzzle_per_day(self, session, clock):
        session.check_for_reunion()
        away(session, clock, hours=2)
        digest = session.check_for_reunion()
        session.answer_puzzle(digest.puzzle.correct_answer)

        away(session, clock, hours=3)
        assert session.check_for_reunion() is None

        clock.now = datetime(2026, 3, 15, 10, 0, 0)
        next_digest = session.check_for_reunion()
        assert next_digest is not None
        assert next_digest.puzzle.id != digest.puzzle.id

    def test_unanswered_puzzle_expires_at_midnight(self, session, clock):
        session.check_for_reunion()
        away(session, clock, hours=2)
        stale = session.check_for_reunion().puzzle

        clock.now = datetime(2026, 3, 15, 0, 30, 0)
        fresh = session.check_for_reunion()

        assert stale.status == PuzzleStatus.EXPIRED
        assert fresh is not None
        assert session.current_puzzle is fresh.puzzle
        assert session.progress.puzzles_failed == 0

    def test_aware_event_timestamps_reach_the_digest(self, session, clock):
        session.check_for_reunion()
        session.digest.record_conversation(NPCConversation(
            id="conv-utc",
            timestamp=(clock.now + timedelta(hours=1)).astimezone(timezone.utc).isoformat(),
            participants=["Mara", "Thom"],
        ))
        clock.now += timedelta(hours=2)

        digest = session.check_for_reunion()

        assert [event.id for event in digest.events] == ["conv-utc"]

    def test_failed_digest_keeps_the_absence(self, session, clock):
        session.check_for_reunion()
        started = clock.now
        clock.now += timedelta(hours=2)

        with patch.object(session.digest, "generate_digest", side_effect=RuntimeError("boom")):
            with pytest.raises(RuntimeError):
                session.check_for_reunion()

        assert session.last_seen == started
        assert session.check_for_reunion() is not None

    def test_closed_case_gets_no_puzzles(self, session, clock):
        session.progress.status = CaseStatus.SOLVED
        session.check_for_reunion()
        away(session, clock, hours=2)

        assert session.check_for_reunion() is None


class TestAnswerPuzzle:
    """Tests for MysterySession.answer_puzzle."""

    @pytest.fixture
    def pending(self, session, clock):
        session.check_for_reunion()
        away(session, clock, hours=2)
        return session.check_for_reunion().puzzle

    def test_no_puzzle(self, session):
        with pytest.raises(NoActivePuzzleError):
            session.answer_puzzle("1")

    @pytest.mark.parametrize("answer", ["4", "0", "two", ""])
    def test_invalid_answer(self, session, pending, answer):
        with pytest.raises(InvalidAnswerError) as exc_info:
            session.answer_puzzle(answer)

        assert exc_info.value.details == {"puzzle_id": pending.id}
        assert pending.status == PuzzleStatus.PENDING
        assert pending.attempts == 0

    def test_correct_answer(self, session, pending):
        outcome = session.answer_puzzle(f" {pending.correct_answer} ")

        assert outcome.result.correct
        assert outcome.result.points_earned == 2
        assert outcome.result.revelation is not None
        assert pending.status == PuzzleStatus.SOLVED
        assert session.progress.progress_points == 2
        assert session.progress.current_streak == 1
        assert session.progress.todays_puzzle is None
        assert session.progress.last_puzzle_date == "2026-03-14"

    def test_wrong_answer(self, session, pending):
        outcome = session.answer_puzzle(wrong_answer(pending.correct_answer))

        assert not outcome.result.correct
        assert outcome.result.consequence is not None
        assert pending.status == PuzzleStatus.FAILED
        assert session.progress.puzzles_failed == 1

    def test_answer_only_once(self, session, pending):
        session.answer_puzzle(pending.correct_answer)
        with pytest.raises(NoActivePuzzleError):
            session.answer_puzzle(pending.correct_answer)

    def test_late_answer_expires(self, session, pending, clock):
        clock.now = datetime(2026, 3, 15, 0, 1, 0)

        outcome = session.answer_puzzle(pending.correct_answer)

        assert outcome.puzzle.status == PuzzleStatus.EXPIRED
        assert outcome.result.points_earned == 0
        assert session.progress.progress_points == 0
        assert session.progress.todays_puzzle is None

    def test_answering_marks_player_present(self, session, pending, clock):
        clock.now += timedelta(minutes=5)
        session.answer_puzzle(pending.correct_answer)
        assert session.last_seen == clock.now

    def test_case_closes_at_target(self, clock):
        session = MysterySession(
            "case-1",
            "Case",
            config=MysteryConfig(scoring=ScoringRules(points_to_solve=2), min_away_minutes=0),
            clock=clock,
        )
        session.digest.record_activity(NPCActivity(
            id="a1", timestamp=clock.now, agent="Mara", action="left"
        ))
        session.check_for_reunion()
        puzzle = session.check_for_reunion().puzzle

        outcome = session.answer_puzzle(puzzle.correct_answer)

        assert outcome.result.case_solved
        assert session.progress.status == CaseStatus.SOLVED
        assert session.progress.solved_at == clock.now


class TestSnapshots:
    """Tests for to_state and from_state."""

    pytestmark = pytest.mark.anyio

    async def test_round_trip_through_json(self, session, clock):
        await session.record_claim("Mara", "Kira", "was home all night", day=1)
        await session.record_claim("Thom", "Kira", "was seen at the docks", day=2)
        session.check_for_reunion()
        away(session, clock, hours=2)
        pending = session.check_for_reunion().puzzle

        raw = session.to_state().model_dump_json()
        restored = MysterySession.from_state(SessionState.model_validate_json(raw), clock=clock)

        assert restored.progress.case_id == "case-1"
        assert restored.day == 2
        assert restored.last_seen == session.last_seen
        assert restored.current_puzzle.id == pending.id
        assert restored.progress.todays_puzzle is restored.current_puzzle
        assert len(restored.fact_store.get_contradictions()) == 2
        assert restored.format_suspicions() == session.format_suspicions()

        outcome = restored.answer_puzzle(pending.correct_answer)
        assert outcome.result.correct

    async def test_restore_with_llm_uses_restored_facts(self, clock):
        state = SessionState(
            progress=MysterySession("case-1", "Case", clock=clock).progress,
        )
        session = MysterySession("x", "y", clock=clock)
        await session.record_claim("Mara", "Kira", "was home all night", day=1)
        state.facts = session.fact_store.serialize()

        llm = MockLLMClient(responses=[direct_verdict(), "Odd."])
        restored = MysterySession.from_state(state, llm=llm, clock=clock)
        outcome = await restored.record_claim("Thom", "Kira", "was seen at the docks", day=1)

        assert outcome.alert is not None
        assert outcome.alert.contradicted_by.source == "Mara"

    def test_snapshot_does_not_share_state(self, session):
        state = session.to_state()
        restored = MysterySession.from_state(state)
        restored.progress.progress_points = 7

        assert session.progress.progress_points == 0
