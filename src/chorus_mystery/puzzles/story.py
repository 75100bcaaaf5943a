"""Random NPC events for demos and tests."""

import logging
import random
from datetime import datetime, timedelta
from typing import Callable, Optional

from shortuuid import uuid

from .models import NPCActivity, NPCConversation, NPCKnowledge

logger = logging.getLogger("chorus-mystery")

LOCATIONS = [
    "the tavern",
    "the garden",
    "the library",
    "the courtyard",
    "the kitchen",
    "the cellar",
]

TOPICS = [
    "the missing jewels",
    "last night's strange noises",
    "the new arrival",
    "the upcoming festival",
    "old secrets",
    "money troubles",
]

ACTIONS = [
    "was seen pacing nervously",
    "slipped away quietly",
    "was overheard arguing",
    "received a mysterious letter",
    "was counting coins",
    "looked troubled",
]

SECRET_CHANCE = 0.2


class StoryGenerator:
    """
    Invents conversations and activities for a cast of NPCs.

    Args:
        rng: Random source; pass a seeded ``random.Random`` for repeatable stories
        clock: Returns the current local time
    """

    def __init__(
        self,
        rng: Optional[random.Random] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.cast: list[NPCKnowledge] = []
        self._rng = rng or random.Random()
        self._clock = clock or datetime.now

    def setup_cast(self, cast: list[NPCKnowledge]) -> None:
        self.cast = list(cast)

    def generate_fake_events(
        self, count: int = 5
    ) -> tuple[list[NPCConversation], list[NPCActivity]]:
        """
        Make up to ``count`` events stamped within the last 24 hours.

        Each event is a conversation between two cast members about half the
        time, otherwise one cast member's activity. Nothing is produced for
        an empty cast.

        Returns:
            The conversations and the activities
        """
        conversations: list[NPCConversation] = []
        activities: list[NPCActivity] = []

        for _ in range(count):
            timestamp = self._clock() - timedelta(hours=self._rng.randrange(24))

            if self._rng.random() > 0.5 and len(self.cast) >= 2:
                first, second = self._rng.sample(self.cast, 2)
                conversations.append(NPCConversation(
                    id=uuid(),
                    timestamp=timestamp,
                    participants=[first.agent, second.agent],
                    location=self._rng.choice(LOCATIONS),
                    topic=self._rng.choice(TOPICS),
                ))
            elif self.cast:
                activities.append(NPCActivity(
                    id=uuid(),
                    timestamp=timestamp,
                    agent=self._rng.choice(self.cast).agent,
                    action=self._rng.choice(ACTIONS),
                    location=self._rng.choice(LOCATIONS),
                    is_secret=self._rng.random() < SECRET_CHANCE,
                ))

        logger.debug(
            f"Generated {len(conversations)} conversation(s) and {len(activities)} activity(ies)"
        )
        return conversations, activities


__all__ = [
    "StoryGenerator",
    "LOCATIONS",
    "TOPICS",
    "ACTIONS",
]
