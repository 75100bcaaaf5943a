"""
Claim tracking and lie detection for the living mystery.

Key components:
- Fact: A claim attributed to a source, with status and confidence
- FactSource: Who made a claim and on which day
- FactStore: Ledger that links contradicting and corroborating claims
- Contradiction: A conflicting pair surfaced when a fact is added
- LieDetector: LLM-judged contradiction checks with gut-feeling narration
- LieAlert: A flagged claim and its narration
- quick_contradiction_check: Model-free negation check
"""

from .fact_store import FactStore
from .heuristics import claims_contradict, claims_corroborate
from .lie_detector import (
    LieDetector,
    extract_json_object,
    format_suspicions,
    quick_contradiction_check,
)
from .models import (
    AlertSeverity,
    ContradictingClaim,
    Contradiction,
    ContradictionVerdict,
    Fact,
    FactSource,
    LieAlert,
    SourceType,
    VerificationStatus,
)

__all__ = [
    "Fact",
    "FactSource",
    "FactStore",
    "SourceType",
    "VerificationStatus",
    "Contradiction",
    "ContradictionVerdict",
    "ContradictingClaim",
    "AlertSeverity",
    "LieAlert",
    "LieDetector",
    "claims_contradict",
    "claims_corroborate",
    "extract_json_object",
    "format_suspicions",
    "quick_contradiction_check",
]
