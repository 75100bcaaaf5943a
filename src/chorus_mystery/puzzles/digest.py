"""
Digest of NPC activity while the player is away.

The DigestGenerator buffers conversations and activities reported by the
narrative driver, then folds everything since a given moment into a dated
DailyDigest. Facts and lies attached to each event come from the NPCs'
registered knowledge, and the digest always carries the day's puzzle.
"""

import logging
from datetime import datetime
from typing import Callable, Optional

from .engine import PuzzleEngine
from .models import (
    DailyDigest,
    DigestEvent,
    DigestEventType,
    NPCActivity,
    NPCConversation,
    NPCKnowledge,
)

logger = logging.getLogger("chorus-mystery")

QUIET_SUMMARY = "All was quiet while you were away."
CALM_SUMMARY = "Things were relatively calm while you were away."


class DigestGenerator:
    """
    Collects NPC events and turns them into daily digests.

    Buffers only grow; call ``clear_processed_events`` after consuming a
    digest.

    Args:
        clock: Returns the current local time, used to date digests
    """

    def __init__(self, clock: Optional[Callable[[], datetime]] = None) -> None:
        self.conversations: list[NPCConversation] = []
        self.activities: list[NPCActivity] = []
        self.npc_knowledge: dict[str, NPCKnowledge] = {}
        self._clock = clock or datetime.now

    def register_npc(self, knowledge: NPCKnowledge) -> None:
        """Register (or replace) what an NPC knows and would lie about."""
        self.npc_knowledge[knowledge.agent] = knowledge
        logger.debug(
            f"Registered knowledge for {knowledge.agent}: "
            f"{len(knowledge.facts)} facts, {len(knowledge.lies)} lies"
        )

    def record_conversation(self, conversation: NPCConversation) -> None:
        self.conversations.append(conversation)

    def record_activity(self, activity: NPCActivity) -> None:
        self.activities.append(activity)

    def generate_digest(
        self,
        since: datetime,
        puzzle_engine: PuzzleEngine,
        difficulty: int = 2,
    ) -> DailyDigest:
        """
        Build a digest of everything at or after ``since``.

        Args:
            since: Start of the window, inclusive
            puzzle_engine: Builds the digest's puzzle
            difficulty: Difficulty of that puzzle

        Returns:
            The digest, events in timestamp order, with its puzzle attached
        """
        events = [
            *(self._conversation_to_event(c) for c in self.conversations if c.timestamp >= since),
            *(self._activity_to_event(a) for a in self.activities if a.timestamp >= since),
        ]
        events.sort(key=lambda event: event.timestamp)

        date = self._clock().date().isoformat()
        summary = self._generate_summary(events)

        # The engine only reads events, so the puzzle can be built before the digest exists
        draft = DailyDigest.model_construct(date=date, events=events, summary=summary)
        puzzle = puzzle_engine.generate_puzzle(draft, difficulty)

        logger.info(f"Generated digest for {date} with {len(events)} event(s)")
        return DailyDigest(date=date, events=events, summary=summary, puzzle=puzzle)

    def clear_processed_events(self, before: datetime) -> None:
        """Drop buffered events older than ``before``."""
        kept_conversations = [c for c in self.conversations if c.timestamp >= before]
        kept_activities = [a for a in self.activities if a.timestamp >= before]
        dropped = (
            len(self.conversations) - len(kept_conversations)
            + len(self.activities) - len(kept_activities)
        )
        self.conversations = kept_conversations
        self.activities = kept_activities
        if dropped:
            logger.debug(f"Cleared {dropped} processed event(s)")

    # ------------------------------------------------------------------
    # Event conversion
    # ------------------------------------------------------------------

    def _conversation_to_event(self, conversation: NPCConversation) -> DigestEvent:
        facts: list[str] = []
        lies: list[str] = []
        for participant in conversation.participants:
            knowledge = self.npc_knowledge.get(participant)
            if knowledge:
                facts.extend(knowledge.facts[:1])
                lies.extend(knowledge.lies[:1])

        if conversation.topic:
            facts.append(f"They discussed {conversation.topic}")

        return DigestEvent(
            id=conversation.id,
            timestamp=conversation.timestamp,
            type=DigestEventType.CONVERSATION,
            description=self._describe_conversation(conversation),
            involved_agents=list(conversation.participants),
            facts=facts,
            possible_lies=lies,
        )

    def _activity_to_event(self, activity: NPCActivity) -> DigestEvent:
        knowledge = self.npc_knowledge.get(activity.agent)
        return DigestEvent(
            id=activity.id,
            timestamp=activity.timestamp,
            type=DigestEventType.TENSION if activity.is_secret else DigestEventType.MOVEMENT,
            description=self._describe_activity(activity),
            involved_agents=[activity.agent, *activity.witnesses],
            facts=knowledge.facts[:2] if knowledge else [],
            possible_lies=knowledge.lies[:2] if knowledge else [],
        )

    @staticmethod
    def _describe_conversation(conversation: NPCConversation) -> str:
        participants = " and ".join(conversation.participants)
        location = f" at {conversation.location}" if conversation.location else ""
        topic = f" about {conversation.topic}" if conversation.topic else ""
        return f"{participants} had a conversation{location}{topic}."

    @staticmethod
    def _describe_activity(activity: NPCActivity) -> str:
        location = f" at {activity.location}" if activity.location else ""
        return f"{activity.agent} {activity.action}{location}."

    @staticmethod
    def _generate_summary(events: list[DigestEvent]) -> str:
        if not events:
            return QUIET_SUMMARY

        parts = []
        conversations = [e for e in events if e.type == DigestEventType.CONVERSATION]
        if conversations:
            talkers = {agent for event in conversations for agent in event.involved_agents}
            parts.append(f"{len(talkers)} people were talking amongst themselves")
        if any(event.type == DigestEventType.TENSION for event in events):
            parts.append("there were some tense moments")
        if any(event.type == DigestEventType.MOVEMENT for event in events):
            parts.append("various people came and went")

        if not parts:
            return CALM_SUMMARY
        return f"While you were away, {', '.join(parts)}."


__all__ = [
    "DigestGenerator",
]
