"""
Claim ledger with cross-referencing.

This module provides the FactStore class, which records claims made by NPCs,
the player and the world, indexes them by subject and by source, and links
each new claim to earlier claims from other sources that contradict or
corroborate it.
"""

import logging
from typing import Any, Optional

from pydantic import ValidationError
from shortuuid import random as shortuuid_random

from .heuristics import claims_contradict, claims_corroborate
from .models import Contradiction, Fact, FactSource, SourceType, VerificationStatus

logger = logging.getLogger("chorus-mystery")

STATUS_MARKERS = {
    VerificationStatus.UNVERIFIED: "❓",
    VerificationStatus.VERIFIED: "✓",
    VerificationStatus.CONTRADICTED: "⚠️",
    VerificationStatus.LIE: "✗",
    VerificationStatus.TRUTH: "✓✓",
}


class FactStore:
    """
    Stores claims and tracks how they agree or conflict.

    Adding a fact updates the facts it matches as well as the new one:
    contradiction and corroboration links are always written on both sides,
    and the matched facts' status and confidence change with them.

    One store serves one case/session. Methods are not synchronized; callers
    sharing an instance must serialize mutations.

    Attributes:
        facts: Mapping of fact ID to Fact
    """

    CONTRADICTION_PENALTY = 0.2
    CONFIDENCE_FLOOR = 0.2
    CORROBORATION_BONUS = 0.2
    CORROBORATED_BONUS = 0.1

    def __init__(self) -> None:
        self.facts: dict[str, Fact] = {}
        self._by_subject: dict[str, list[str]] = {}
        self._by_source: dict[str, list[str]] = {}

    def add_fact(
        self,
        subject: str,
        claim: str,
        source: FactSource,
    ) -> tuple[Fact, list[Contradiction]]:
        """
        Record a claim and cross-reference it against the ledger.

        Contradictions are applied before corroborations. When the new fact
        matches some facts one way and others the other way, it keeps both
        relation lists and ends up ``verified``, because the corroboration
        step runs last.

        Args:
            subject: Who or what the claim is about (case-insensitive)
            claim: The claim text
            source: Who made the claim

        Returns:
            The new fact and the contradictions found for it
        """
        fact = Fact(
            id=f"fact_{shortuuid_random(length=10)}",
            subject=subject.lower(),
            claim=claim,
            source=source,
        )

        contradictions = self._find_contradictions(fact)
        corroborations = self._find_corroborations(fact)

        if contradictions:
            fact.status = VerificationStatus.CONTRADICTED
            fact.confidence = max(
                self.CONFIDENCE_FLOOR,
                fact.confidence - self.CONTRADICTION_PENALTY * len(contradictions),
            )
            fact.contradictions = [c.fact_a.id for c in contradictions]

            for contradiction in contradictions:
                other = contradiction.fact_a
                other.status = VerificationStatus.CONTRADICTED
                other.contradictions.append(fact.id)

            logger.info(
                f"Claim {fact.id} about '{fact.subject}' contradicts "
                f"{len(contradictions)} earlier claim(s)"
            )

        if corroborations:
            fact.status = VerificationStatus.VERIFIED
            fact.confidence = min(
                1.0, fact.confidence + self.CORROBORATION_BONUS * len(corroborations)
            )
            fact.corroborations = [other.id for other in corroborations]

            for other in corroborations:
                other.status = VerificationStatus.VERIFIED
                other.corroborations.append(fact.id)
                other.confidence = min(1.0, other.confidence + self.CORROBORATED_BONUS)

        self._index(fact)

        logger.debug(
            f"Added fact {fact.id} from {source.key} about '{fact.subject}' "
            f"({fact.status.value}, confidence {fact.confidence:.2f})"
        )
        return fact, contradictions

    def _index(self, fact: Fact) -> None:
        self.facts[fact.id] = fact
        self._by_subject.setdefault(fact.subject, []).append(fact.id)
        self._by_source.setdefault(fact.source.key, []).append(fact.id)

    def _find_contradictions(self, new_fact: Fact) -> list[Contradiction]:
        """Facts about the same subject, from other sources, that conflict."""
        contradictions = []
        for existing in self.get_facts_about(new_fact.subject):
            # A source is not cross-checked against itself
            if existing.source.same_speaker(new_fact.source):
                continue

            if claims_contradict(existing.claim, new_fact.claim):
                contradictions.append(Contradiction(
                    fact_a=existing,
                    fact_b=new_fact,
                    description=f'"{existing.claim}" vs "{new_fact.claim}"',
                ))
        return contradictions

    def _find_corroborations(self, new_fact: Fact) -> list[Fact]:
        """Facts about the same subject, from other sources, that agree."""
        return [
            existing for existing in self.get_facts_about(new_fact.subject)
            if not existing.source.same_speaker(new_fact.source)
            and claims_corroborate(existing.claim, new_fact.claim)
        ]

    def get_fact(self, fact_id: str) -> Optional[Fact]:
        """Retrieve a fact by ID, or None."""
        return self.facts.get(fact_id)

    def get_facts_about(self, subject: str) -> list[Fact]:
        """All facts about a subject, in insertion order."""
        return [self.facts[fact_id] for fact_id in self._by_subject.get(subject.lower(), [])]

    def get_facts_from(self, source_type: SourceType | str, name: str) -> list[Fact]:
        """All facts asserted by one source."""
        key = f"{SourceType(source_type).value}:{name}"
        return [self.facts[fact_id] for fact_id in self._by_source.get(key, [])]

    def get_all_facts(self) -> list[Fact]:
        return list(self.facts.values())

    def get_contradictions(self) -> list[Fact]:
        """All facts currently marked contradicted."""
        return [
            fact for fact in self.facts.values()
            if fact.status == VerificationStatus.CONTRADICTED
        ]

    def resolve(self, fact_id: str, status: VerificationStatus | str) -> None:
        """
        Pin a fact as proven truth or proven lie.

        A fact proven true drags every fact that contradicts it down to a
        proven lie. Proving a fact false does not promote its contradictions.

        Args:
            fact_id: ID of the fact to resolve
            status: ``truth`` or ``lie``

        Raises:
            ValueError: If status is not truth or lie
        """
        status = VerificationStatus(status)
        if status not in (VerificationStatus.TRUTH, VerificationStatus.LIE):
            raise ValueError(f"Facts can only be resolved as truth or lie, got {status.value}")

        fact = self.facts.get(fact_id)
        if fact is None:
            logger.warning(f"Cannot resolve unknown fact {fact_id}")
            return

        fact.status = status
        fact.confidence = 1.0 if status == VerificationStatus.TRUTH else 0.0

        if status == VerificationStatus.TRUTH:
            for other_id in fact.contradictions:
                other = self.facts.get(other_id)
                if other is not None:
                    other.status = VerificationStatus.LIE
                    other.confidence = 0.0

        logger.info(f"Resolved fact {fact_id} as {status.value}")

    def get_suspicious_facts(self) -> list[Fact]:
        """Contradicted facts, plus unverified facts with low confidence."""
        return [
            fact for fact in self.facts.values()
            if fact.status == VerificationStatus.CONTRADICTED
            or (fact.status == VerificationStatus.UNVERIFIED and fact.confidence < 0.4)
        ]

    def format_facts_about(self, subject: str) -> str:
        """Human-readable list of what is known about a subject."""
        facts = self.get_facts_about(subject)
        if not facts:
            return f"No known facts about {subject}."

        lines = [f"Facts about {subject}:"]
        for fact in facts:
            speaker = (
                fact.source.name if fact.source.type == SourceType.NPC
                else fact.source.type.value
            )
            lines.append(
                f'{STATUS_MARKERS[fact.status]} "{fact.claim}" '
                f"({speaker}, day {fact.source.day})"
            )
        return "\n".join(lines)

    def clear(self) -> None:
        """Drop every fact and both indices."""
        self.facts.clear()
        self._by_subject.clear()
        self._by_source.clear()

    def serialize(self) -> dict[str, Any]:
        """
        JSON-ready snapshot of the ledger.

        Returns:
            ``{"facts": [[id, fact], ...]}`` with ISO-8601 timestamps
        """
        return {
            "facts": [
                [fact_id, fact.model_dump(mode="json")]
                for fact_id, fact in self.facts.items()
            ]
        }

    @classmethod
    def deserialize(cls, data: Any) -> "FactStore":
        """
        Rebuild a store, and both of its indices, from ``serialize()`` output.

        Malformed input yields an empty store rather than an error.
        """
        store = cls()
        if not isinstance(data, dict) or "facts" not in data:
            logger.debug("No serialized facts found, starting with an empty store")
            return store

        try:
            for fact_id, fact_data in data["facts"]:
                fact = Fact.model_validate(fact_data)
                fact.id = fact_id
                store._index(fact)
        except (ValidationError, TypeError, ValueError) as e:
            logger.error(f"Failed to load serialized facts: {e}")
            logger.warning("Starting with an empty fact store")
            store.clear()
            return store

        logger.info(f"Loaded {len(store.facts)} facts")
        return store


__all__ = [
    "FactStore",
]
