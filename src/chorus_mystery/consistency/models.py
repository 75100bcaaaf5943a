"""
Data models for the claim ledger.

A Fact is one claim about a subject, attributed to whoever made it. Facts
are cross-referenced as they arrive: claims from independent sources that
conflict are linked as contradictions, claims that agree are linked as
corroborations. Both links are always recorded on both facts.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, StrictBool, field_validator


class SourceType(str, Enum):
    """Kinds of entities that can assert a claim."""
    NPC = "npc"
    PLAYER = "player"
    OBSERVATION = "observation"
    WORLD = "world"


class VerificationStatus(str, Enum):
    """Where a claim stands after cross-referencing."""
    UNVERIFIED = "unverified"      # Just claimed, no corroboration
    VERIFIED = "verified"          # Confirmed by another source
    CONTRADICTED = "contradicted"  # Another source says different
    LIE = "lie"                    # Proven false
    TRUTH = "truth"                # Proven true


class FactSource(BaseModel):
    """
    Provenance of a claim.

    Attributes:
        type: What kind of entity made the claim
        name: NPC name, "player", or a place/world label
        day: In-game day the claim was made
        context: Brief note on the circumstances
    """
    type: SourceType = Field(description="Kind of entity that made the claim")
    name: str = Field(description="Who made the claim")
    day: int = Field(ge=0, description="In-game day the claim was made")
    context: Optional[str] = Field(default=None, description="Circumstances of the claim")

    @property
    def key(self) -> str:
        """Index key identifying this source, e.g. ``npc:kira``."""
        return f"{self.type.value}:{self.name}"

    def same_speaker(self, other: "FactSource") -> bool:
        """True if both sources are the same entity (type and name)."""
        return self.type == other.type and self.name == other.name


class Fact(BaseModel):
    """
    A single claim attributed to a source.

    Attributes:
        id: Unique identifier
        subject: Lower-cased key for who/what the claim is about
        claim: The claim itself
        source: Who made the claim, and when
        status: Verification status
        confidence: Belief in the claim, 0.0-1.0; starts at 0.5
        contradictions: IDs of facts that conflict with this one
        corroborations: IDs of facts that agree with this one
        created_at: When the claim was recorded
    """
    id: str = Field(description="Unique identifier")
    subject: str = Field(description="Lower-cased subject key")
    claim: str = Field(description="The claim text")
    source: FactSource = Field(description="Provenance of the claim")
    status: VerificationStatus = Field(
        default=VerificationStatus.UNVERIFIED, description="Verification status"
    )
    confidence: float = Field(default=0.5, ge=0.0, le=1.0, description="Confidence 0.0-1.0")
    contradictions: list[str] = Field(default_factory=list, description="IDs of conflicting facts")
    corroborations: list[str] = Field(default_factory=list, description="IDs of agreeing facts")
    created_at: datetime = Field(default_factory=datetime.now, description="When the fact was recorded")


class Contradiction(BaseModel):
    """
    A conflicting pair found while adding a fact. Not stored.

    Attributes:
        fact_a: The fact already in the store
        fact_b: The fact being added
        description: Both claims side by side
    """
    fact_a: Fact
    fact_b: Fact
    description: str


class AlertSeverity(str, Enum):
    """How strongly the gut feeling should point at a lie."""
    SUSPICION = "suspicion"
    INCONSISTENCY = "inconsistency"
    LIE = "lie"


class ContradictingClaim(BaseModel):
    """The earlier claim a new statement runs into."""
    source: str = Field(description="Display name of whoever said it")
    claim: str = Field(description="What they said")


class LieAlert(BaseModel):
    """
    A flagged claim with player-facing narration.

    Attributes:
        severity: Mapped from the model's verdict
        npc_name: Who made the new claim
        claim: The new claim
        contradicted_by: The earlier claim it conflicts with
        gut_feeling: Second-person hint text for the player
    """
    severity: AlertSeverity
    npc_name: str
    claim: str
    contradicted_by: Optional[ContradictingClaim] = None
    gut_feeling: str


class ContradictionVerdict(BaseModel):
    """JSON verdict requested from the language model for one claim pair."""
    contradict: StrictBool = False
    severity: Optional[str] = "none"
    explanation: Optional[str] = ""

    @field_validator("severity", mode="before")
    @classmethod
    def validate_severity(cls, v):
        """A missing severity is read as "none"."""
        return "none" if v is None else v

    @field_validator("explanation", mode="before")
    @classmethod
    def validate_explanation(cls, v):
        return "" if v is None else v


__all__ = [
    "SourceType",
    "VerificationStatus",
    "FactSource",
    "Fact",
    "Contradiction",
    "AlertSeverity",
    "ContradictingClaim",
    "LieAlert",
    "ContradictionVerdict",
]
