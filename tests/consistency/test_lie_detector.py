"""
Tests for the LieDetector and its helpers.

Tests cover:
- Candidate filtering and the first-conflict short-circuit
- Severity mapping and gut-feeling narration
- Fail-open behaviour on model errors and unreadable verdicts
- Token accounting
- quick_contradiction_check and extract_json_object
- format_suspicions
"""

import json
import pytest

from chorus_mystery.consistency import (
    AlertSeverity,
    FactSource,
    FactStore,
    LieDetector,
    SourceType,
    extract_json_object,
    quick_contradiction_check,
)
from chorus_mystery.consistency.lie_detector import FALLBACK_GUT_FEELING, NO_SUSPICIONS
from chorus_mystery.llm_client import LLMAPIError, MockLLMClient

pytestmark = pytest.mark.anyio


def verdict(contradict: bool, severity: str = "none", explanation: str = "") -> str:
    return json.dumps({"contradict": contradict, "severity": severity, "explanation": explanation})


def npc(name: str, day: int = 3) -> FactSource:
    return FactSource(type=SourceType.NPC, name=name, day=day)


@pytest.fixture
def store() -> FactStore:
    store = FactStore()
    store.add_fact("kira", "was home all night", npc("mara"))
    return store


# ============================================================================
# check_claim
# ============================================================================

class TestCheckClaim:
    """Tests for LieDetector.check_claim."""

    async def test_no_candidates_costs_nothing(self):
        llm = MockLLMClient()
        detector = LieDetector(llm, FactStore())

        alert, tokens = await detector.check_claim("Thom", "Kira was at the docks", "kira")

        assert alert is None
        assert tokens == 0
        assert llm.call_count == 0

    async def test_speaker_own_claims_are_skipped(self, store: FactStore):
        llm = MockLLMClient(responses=[verdict(True, "direct")])
        detector = LieDetector(llm, store)

        alert, _ = await detector.check_claim("MARA", "Kira was at the docks", "kira")

        assert alert is None
        assert llm.call_count == 0

    async def test_direct_contradiction_raises_lie_alert(self, store: FactStore):
        llm = MockLLMClient(
            responses=[verdict(True, "direct", "Home and docks"), "  Thom's words sit badly.  "],
            tokens_per_call=40,
        )
        detector = LieDetector(llm, store)

        alert, tokens = await detector.check_claim("Thom", "Kira was at the docks", "kira")

        assert alert is not None
        assert alert.severity == AlertSeverity.LIE
        assert alert.npc_name == "Thom"
        assert alert.claim == "Kira was at the docks"
        assert alert.contradicted_by.source == "mara"
        assert alert.contradicted_by.claim == "was home all night"
        assert alert.gut_feeling == "Thom's words sit badly."
        assert tokens == 80
        assert llm.call_count == 2
        assert "Kira was at the docks" in llm.calls[0]["prompt"]
        assert "was home all night" in llm.calls[0]["prompt"]

    @pytest.mark.parametrize("severity, expected", [
        ("direct", AlertSeverity.LIE),
        ("significant", AlertSeverity.INCONSISTENCY),
        ("minor", AlertSeverity.SUSPICION),
        ("none", AlertSeverity.SUSPICION),
    ])
    async def test_severity_mapping(self, store: FactStore, severity, expected):
        llm = MockLLMClient(responses=[verdict(True, severity), "A chill runs down your spine."])
        detector = LieDetector(llm, store)

        alert, _ = await detector.check_claim("Thom", "Kira was at the docks", "kira")

        assert alert.severity == expected

    async def test_null_severity_is_a_suspicion(self, store: FactStore):
        response = json.dumps({"contradict": True, "severity": None, "explanation": None})
        llm = MockLLMClient(responses=[response, "Hmm."])
        detector = LieDetector(llm, store)

        alert, _ = await detector.check_claim("Thom", "Kira was at the docks", "kira")

        assert alert is not None
        assert alert.severity == AlertSeverity.SUSPICION

    async def test_stops_at_first_conflict(self, store: FactStore):
        store.add_fact("kira", "never leaves the house after dark", npc("jory"))
        llm = MockLLMClient(responses=[verdict(True, "direct"), "Something is off."])
        detector = LieDetector(llm, store)

        alert, _ = await detector.check_claim("Thom", "Kira was at the docks", "kira")

        assert alert.contradicted_by.source == "mara"
        # One comparison plus one narration; Jory's claim is never compared
        assert llm.call_count == 2

    async def test_scans_on_when_no_conflict(self, store: FactStore):
        store.add_fact("kira", "never leaves the house after dark", npc("jory"))
        llm = MockLLMClient(
            responses=[verdict(False), verdict(True, "significant"), "Something is off."]
        )
        detector = LieDetector(llm, store)

        alert, _ = await detector.check_claim("Thom", "Kira was at the docks", "kira")

        assert alert.contradicted_by.source == "jory"
        assert alert.severity == AlertSeverity.INCONSISTENCY
        assert llm.call_count == 3

    async def test_consistent_claims_give_no_alert(self, store: FactStore):
        llm = MockLLMClient(responses=[verdict(False)], tokens_per_call=25)
        detector = LieDetector(llm, store)

        alert, tokens = await detector.check_claim("Thom", "Kira likes boats", "kira")

        assert alert is None
        assert tokens == 25

    async def test_player_source_is_called_you(self):
        store = FactStore()
        store.add_fact("kira", "was home all night", FactSource(type=SourceType.PLAYER, name="player", day=1))
        llm = MockLLMClient(responses=[verdict(True, "direct"), "Hmm."])
        detector = LieDetector(llm, store)

        alert, _ = await detector.check_claim("Thom", "Kira was at the docks", "kira")

        assert alert.contradicted_by.source == "you"


class TestFailOpen:
    """Model failures never raise out of check_claim."""

    async def test_model_error_means_no_conflict(self, store: FactStore):
        llm = MockLLMClient(error=LLMAPIError("boom"), tokens_per_call=30)
        detector = LieDetector(llm, store)

        alert, tokens = await detector.check_claim("Thom", "Kira was at the docks", "kira")

        assert alert is None
        assert tokens == 0

    @pytest.mark.parametrize("response", [
        "I think they contradict.",
        '{"contradict": "yes", "severity": "direct"}',
        "{not json at all}",
        "",
    ])
    async def test_unreadable_verdict_means_no_conflict(self, store: FactStore, response):
        llm = MockLLMClient(responses=[response], tokens_per_call=30)
        detector = LieDetector(llm, store)

        alert, tokens = await detector.check_claim("Thom", "Kira was at the docks", "kira")

        assert alert is None
        assert tokens == 0

    async def test_verdict_wrapped_in_prose_is_read(self, store: FactStore):
        response = f"Sure! Here is my answer:\n{verdict(True, 'direct', 'a {tricky} one')}\nHope it helps."
        llm = MockLLMClient(responses=[response, "Hmm."])
        detector = LieDetector(llm, store)

        alert, _ = await detector.check_claim("Thom", "Kira was at the docks", "kira")

        assert alert.severity == AlertSeverity.LIE

    async def test_empty_narration_uses_fallback(self, store: FactStore):
        llm = MockLLMClient(responses=[verdict(True, "direct"), "   "], tokens_per_call=10)
        detector = LieDetector(llm, store)

        alert, tokens = await detector.check_claim("Thom", "Kira was at the docks", "kira")

        assert alert.gut_feeling == FALLBACK_GUT_FEELING.format(npc_name="Thom")
        assert tokens == 10

    async def test_narration_error_uses_fallback(self, store: FactStore):
        class NarrationFails(MockLLMClient):
            async def generate(self, prompt, max_tokens=None):
                if "Gut feeling" in prompt:
                    raise LLMAPIError("narration down")
                return await super().generate(prompt, max_tokens)

        llm = NarrationFails(responses=[verdict(True, "direct")], tokens_per_call=10)
        detector = LieDetector(llm, store)

        alert, tokens = await detector.check_claim("Thom", "Kira was at the docks", "kira")

        assert alert.gut_feeling == "Something about what Thom just said doesn't quite add up..."
        assert tokens == 10


# ============================================================================
# Helpers
# ============================================================================

class TestQuickContradictionCheck:
    """Tests for the model-free check."""

    @pytest.mark.parametrize("claim_a, claim_b", [
        ("She never drinks", "She always drinks"),
        ("No one saw him", "Everyone saw him"),
        ("He didn't do it", "He did it"),
        ("It was an accident", "It was murder"),
        ("The baker is dead", "The baker is alive"),
    ])
    def test_pairs_fire_in_either_order(self, claim_a, claim_b):
        assert quick_contradiction_check(claim_a, claim_b)
        assert quick_contradiction_check(claim_b, claim_a)

    def test_needs_no_shared_word(self):
        assert quick_contradiction_check("He is innocent", "Totally guilty")

    def test_contraction_does_not_match_plain_word(self):
        assert not quick_contradiction_check("It wasn't me", "It wasn't him")

    def test_unrelated_claims(self):
        assert not quick_contradiction_check("Kira owns a boat", "Thom keeps bees")


class TestExtractJsonObject:
    """Tests for extract_json_object."""

    def test_first_balanced_object(self):
        text = 'prefix {"a": {"b": 1}} middle {"c": 2}'
        assert extract_json_object(text) == '{"a": {"b": 1}}'

    def test_braces_inside_strings(self):
        text = 'x {"explanation": "a } brace", "n": 1} y'
        assert extract_json_object(text) == '{"explanation": "a } brace", "n": 1}'

    def test_escaped_quotes(self):
        text = '{"explanation": "she said \\"}\\" loudly"}'
        assert json.loads(extract_json_object(text))["explanation"] == 'she said "}" loudly'

    def test_no_object(self):
        assert extract_json_object("nothing here") is None
        assert extract_json_object("unbalanced { here") is None


class TestFormatSuspicions:
    """Tests for LieDetector.format_suspicions."""

    def test_nothing_suspicious(self):
        detector = LieDetector(MockLLMClient(), FactStore())
        assert detector.format_suspicions() == NO_SUSPICIONS
        assert NO_SUSPICIONS == "Your gut tells you nothing seems off... yet."

    def test_groups_by_subject(self, store: FactStore):
        store.add_fact("kira", "was seen at the docks", npc("thom"))
        low, _ = store.add_fact("thom", "owns a boat", npc("jory"))
        low.confidence = 0.3
        detector = LieDetector(MockLLMClient(), store)

        text = detector.format_suspicions()

        assert text.split("\n") == [
            "Your Suspicions",
            "",
            "About kira:",
            '⚠️ mara said: "was home all night"',
            '⚠️ thom said: "was seen at the docks"',
            "",
            "About thom:",
            '❓ jory said: "owns a boat"',
        ]
