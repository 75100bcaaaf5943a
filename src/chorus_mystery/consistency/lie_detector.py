"""
LLM-assisted lie detection.

The LieDetector cross-references a fresh NPC claim against what other
sources said about the same subject. A language model judges each pair;
on the first conflict it also narrates a short "gut feeling" for the
player. Model failures never propagate: a pair the model cannot judge is
treated as consistent, and narration falls back to a fixed line.
"""

import json
import logging
import re
from typing import Optional

from pydantic import ValidationError

from ..llm_client import LLMClient
from .fact_store import FactStore
from .models import (
    AlertSeverity,
    ContradictingClaim,
    ContradictionVerdict,
    Fact,
    LieAlert,
    SourceType,
    VerificationStatus,
)

logger = logging.getLogger("chorus-mystery")

CONTRADICTION_CHECK_PROMPT = """You are checking statements for contradictions in a detective game.

Decide whether these two claims about the same subject contradict each other.

CLAIM A (from {source_a}): "{claim_a}"
CLAIM B (from {source_b}): "{claim_b}"

Respond with a single JSON object and nothing else:
{{
  "contradict": true or false,
  "severity": "none" | "minor" | "significant" | "direct",
  "explanation": "one sentence on why they do or don't conflict"
}}"""

GUT_FEELING_PROMPT = """You are the player's instinct in a detective game set in a quiet tavern.

{npc_name} just said: "{claim}"
Earlier, {contradicting_source} said: "{contradicting_claim}"

Write one or two sentences, in the second person, hinting that something
does not add up. Be atmospheric and suggestive rather than explicit.

Gut feeling:"""

FALLBACK_GUT_FEELING = "Something about what {npc_name} just said doesn't quite add up..."

NO_SUSPICIONS = "Your gut tells you nothing seems off... yet."

SEVERITY_MAP = {
    "direct": AlertSeverity.LIE,
    "significant": AlertSeverity.INCONSISTENCY,
}

# Narrower than the store's table; used when no tokens should be spent
QUICK_NEGATION_PAIRS = [
    ("never", "always"),
    ("no one", "everyone"),
    ("didn't", "did"),
    ("wasn't", "was"),
    ("isn't", "is"),
    ("dead", "alive"),
    ("innocent", "guilty"),
    ("friend", "enemy"),
    ("trust", "betray"),
    ("accident", "murder"),
    ("truth", "lie"),
]


def _contains(text: str, term: str) -> bool:
    return re.search(r"(?<![\w'])" + re.escape(term) + r"(?![\w'])", text) is not None


def quick_contradiction_check(claim_a: str, claim_b: str) -> bool:
    """
    Cheap contradiction test with no model call.

    Args:
        claim_a: First claim
        claim_b: Second claim

    Returns:
        True if one claim holds one side of a negation pair and the other holds the other side
    """
    a = claim_a.lower()
    b = claim_b.lower()

    for first, second in QUICK_NEGATION_PAIRS:
        if (_contains(a, first) and _contains(b, second)) or (
            _contains(a, second) and _contains(b, first)
        ):
            return True

    return False


def format_suspicions(fact_store: FactStore) -> str:
    """Suspicious facts grouped by subject, for display."""
    suspicious = fact_store.get_suspicious_facts()
    if not suspicious:
        return NO_SUSPICIONS

    by_subject: dict[str, list[Fact]] = {}
    for fact in suspicious:
        by_subject.setdefault(fact.subject, []).append(fact)

    lines = ["Your Suspicions"]
    for subject, facts in by_subject.items():
        lines.append("")
        lines.append(f"About {subject}:")
        for fact in facts:
            marker = "⚠️" if fact.status == VerificationStatus.CONTRADICTED else "❓"
            lines.append(f'{marker} {fact.source.name} said: "{fact.claim}"')

    return "\n".join(lines)


def extract_json_object(text: str) -> Optional[str]:
    """
    Return the first balanced ``{...}`` block in text, or None.

    Braces inside JSON strings are ignored when balancing.
    """
    start = text.find("{")
    while start != -1:
        depth = 0
        in_string = False
        escaped = False
        for index in range(start, len(text)):
            char = text[index]
            if in_string:
                if escaped:
                    escaped = False
                elif char == "\\":
                    escaped = True
                elif char == '"':
                    in_string = False
            elif char == '"':
                in_string = True
            elif char == "{":
                depth += 1
            elif char == "}":
                depth -= 1
                if depth == 0:
                    return text[start:index + 1]
        start = text.find("{", start + 1)
    return None


class LieDetector:
    """
    Flags NPC claims that conflict with what other sources said.

    Args:
        llm: Text-completion client used to judge pairs and narrate
        fact_store: Ledger of earlier claims to check against
    """

    def __init__(self, llm: LLMClient, fact_store: FactStore) -> None:
        self._llm = llm
        self._fact_store = fact_store

    async def check_claim(
        self,
        npc_name: str,
        claim: str,
        subject: str,
    ) -> tuple[Optional[LieAlert], int]:
        """
        Check a new NPC claim against earlier claims about the same subject.

        Candidates are judged one by one and the scan stops at the first
        conflict. Each candidate costs one model call; a conflict costs one
        more for the narration.

        Args:
            npc_name: Who just made the claim
            claim: What they said
            subject: Who or what the claim is about

        Returns:
            The alert (or None) and the total tokens spent
        """
        candidates = [
            fact for fact in self._fact_store.get_facts_about(subject)
            if not (
                fact.source.type == SourceType.NPC
                and fact.source.name.lower() == npc_name.lower()
            )
        ]

        if not candidates:
            return None, 0

        tokens_used = 0
        for existing in candidates:
            source = self.format_source(existing)
            verdict, tokens = await self._compare_claims(claim, npc_name, existing.claim, source)
            tokens_used += tokens

            if not verdict.contradict:
                continue

            gut_feeling, tokens = await self._generate_gut_feeling(
                npc_name, claim, existing.claim, source
            )
            tokens_used += tokens

            severity = SEVERITY_MAP.get(verdict.severity, AlertSeverity.SUSPICION)
            logger.info(
                f"{npc_name}'s claim about '{subject}' conflicts with {source} "
                f"({verdict.severity}): {verdict.explanation}"
            )
            alert = LieAlert(
                severity=severity,
                npc_name=npc_name,
                claim=claim,
                contradicted_by=ContradictingClaim(source=source, claim=existing.claim),
                gut_feeling=gut_feeling,
            )
            return alert, tokens_used

        return None, tokens_used

    async def _compare_claims(
        self,
        claim_a: str,
        source_a: str,
        claim_b: str,
        source_b: str,
    ) -> tuple[ContradictionVerdict, int]:
        """Ask the model for a verdict; anything unusable counts as no conflict."""
        prompt = CONTRADICTION_CHECK_PROMPT.format(
            claim_a=claim_a, source_a=source_a, claim_b=claim_b, source_b=source_b,
        )

        try:
            response = await self._llm.generate(prompt)
        except Exception as e:
            logger.warning(f"Contradiction check failed, assuming no conflict: {e}")
            return ContradictionVerdict(), 0

        tokens = getattr(self._llm, "last_token_count", 0) or 0

        payload = extract_json_object(response)
        if payload is None:
            logger.warning("Contradiction check returned no JSON, assuming no conflict")
            return ContradictionVerdict(), 0

        try:
            return ContradictionVerdict.model_validate(json.loads(payload)), tokens
        except (json.JSONDecodeError, ValidationError) as e:
            logger.warning(f"Unreadable contradiction verdict, assuming no conflict: {e}")
            return ContradictionVerdict(), 0

    async def _generate_gut_feeling(
        self,
        npc_name: str,
        claim: str,
        contradicting_claim: str,
        contradicting_source: str,
    ) -> tuple[str, int]:
        prompt = GUT_FEELING_PROMPT.format(
            npc_name=npc_name,
            claim=claim,
            contradicting_source=contradicting_source,
            contradicting_claim=contradicting_claim,
        )

        try:
            response = await self._llm.generate(prompt)
        except Exception as e:
            logger.warning(f"Gut feeling narration failed, using fallback: {e}")
            return FALLBACK_GUT_FEELING.format(npc_name=npc_name), 0

        feeling = response.strip()
        if not feeling:
            return FALLBACK_GUT_FEELING.format(npc_name=npc_name), 0
        return feeling, getattr(self._llm, "last_token_count", 0) or 0

    @staticmethod
    def format_source(fact: Fact) -> str:
        """Display name for whoever made a claim."""
        if fact.source.type == SourceType.NPC:
            return fact.source.name
        if fact.source.type == SourceType.PLAYER:
            return "you"
        return fact.source.type.value

    def format_suspicions(self) -> str:
        return format_suspicions(self._fact_store)


__all__ = [
    "LieDetector",
    "quick_contradiction_check",
    "extract_json_object",
    "format_suspicions",
]
