"""
Data models for daily puzzles and case progress.

The engine turns NPC activity into one "spot the lie" puzzle a day.
Solving puzzles earns points toward closing the case. Puzzle content is a
tagged union keyed on ``type`` so every puzzle kind carries exactly the
fields it needs.
"""

from datetime import datetime
from enum import Enum
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


class PuzzleType(str, Enum):
    """Kinds of daily puzzle."""
    SPOT_THE_LIE = "spot_the_lie"
    WHO_SAID_IT = "who_said_it"
    SEQUENCE = "sequence"
    FILL_BLANK = "fill_blank"


class PuzzleStatus(str, Enum):
    """Puzzle lifecycle. Everything but PENDING is terminal."""
    PENDING = "pending"
    SOLVED = "solved"
    FAILED = "failed"
    EXPIRED = "expired"


class CaseStatus(str, Enum):
    """Lifecycle of an investigation."""
    ACTIVE = "active"
    SOLVED = "solved"
    ABANDONED = "abandoned"


class DigestEventType(str, Enum):
    """What kind of thing happened while the player was away."""
    CONVERSATION = "conversation"
    DISCOVERY = "discovery"
    MOVEMENT = "movement"
    TENSION = "tension"


# ---------------------------------------------------------------------------
# Puzzle content
# ---------------------------------------------------------------------------


class Statement(BaseModel):
    """One line of a spot-the-lie puzzle."""
    speaker: str = Field(description="NPC name")
    speaker_emoji: Optional[str] = Field(default=None, description="Optional speaker icon")
    statement: str = Field(description="What the NPC claims")
    is_lie: bool = Field(description="Whether this is the false statement")


class SpotTheLieContent(BaseModel):
    """Three statements, exactly one of them false."""
    type: Literal["spot_the_lie"] = "spot_the_lie"
    statements: list[Statement]


class WhoSaidItContent(BaseModel):
    """A quote and candidate speakers. The first option is the answer."""
    type: Literal["who_said_it"] = "who_said_it"
    quote: str
    options: list[str]


class SequenceEvent(BaseModel):
    id: str
    description: str


class SequenceContent(BaseModel):
    """Events to put back in order."""
    type: Literal["sequence"] = "sequence"
    events: list[SequenceEvent]
    correct_order: list[str] = Field(description="Event IDs in correct order")


class FillBlankContent(BaseModel):
    """A statement with one word missing, e.g. 'Roderick was with ___ that night'."""
    type: Literal["fill_blank"] = "fill_blank"
    statement: str
    blank: str = Field(description="The word that goes in the blank")
    hint: Optional[str] = None


PuzzleContent = Annotated[
    Union[SpotTheLieContent, WhoSaidItContent, SequenceContent, FillBlankContent],
    Field(discriminator="type"),
]


class SourceContext(BaseModel):
    """The digest events and agents a puzzle was built from."""
    events: list[str] = Field(default_factory=list, description="Digest event IDs")
    involved_agents: list[str] = Field(default_factory=list, description="NPC names")


class Puzzle(BaseModel):
    """
    A daily puzzle and its state.

    State machine: pending -> solved | failed | expired. Terminal states
    never return to pending.

    Attributes:
        id: Unique identifier
        type: Puzzle kind, mirrors ``content.type``
        generated_at: When the puzzle was built
        expires_at: Next local midnight after generation
        difficulty: 1 (easy) to 3 (hard)
        content: Type-specific puzzle body
        correct_answer: String encoding of the answer, e.g. "2"
        source_context: What the puzzle was built from
        status: Lifecycle state
        attempts: Number of answers submitted
        solved_at: When it was solved
        user_answer: The last answer submitted
    """
    id: str
    type: PuzzleType
    generated_at: datetime
    expires_at: datetime
    difficulty: int = Field(ge=1, le=3)
    content: PuzzleContent
    correct_answer: str
    source_context: SourceContext = Field(default_factory=SourceContext)
    status: PuzzleStatus = PuzzleStatus.PENDING
    attempts: int = Field(default=0, ge=0)
    solved_at: Optional[datetime] = None
    user_answer: Optional[str] = None


# ---------------------------------------------------------------------------
# Scoring and progress
# ---------------------------------------------------------------------------


class ScoringRules(BaseModel):
    """
    Point rules for a case. Immutable once built.

    Attributes:
        correct_base: Points for a correct answer
        streak_bonus: Flat bonus once the streak before answering is 2 or more
        wrong_penalty: Points removed for a wrong answer (total never drops below 0)
        difficulty_multiplier: Multiply the base by puzzle difficulty
        points_to_solve: Points needed to close the case
    """
    model_config = ConfigDict(frozen=True)

    correct_base: int = Field(default=1, ge=0)
    streak_bonus: int = Field(default=1, ge=0)
    wrong_penalty: int = Field(default=0, ge=0)
    difficulty_multiplier: bool = True
    points_to_solve: int = Field(default=10, ge=1)


class CaseProgress(BaseModel):
    """
    Where the player stands on a case.

    ``status`` becomes ``solved`` once ``progress_points`` reaches
    ``points_to_solve`` and never goes back.
    """
    case_id: str
    case_name: str

    progress_points: int = Field(default=0, ge=0)
    points_to_solve: int = Field(ge=1)

    puzzles_solved: int = 0
    puzzles_failed: int = 0
    current_streak: int = 0
    longest_streak: int = 0

    clues_discovered: list[str] = Field(default_factory=list)
    suspects_cleared: list[str] = Field(default_factory=list)

    status: CaseStatus = CaseStatus.ACTIVE
    started_at: datetime
    solved_at: Optional[datetime] = None

    todays_puzzle: Optional[Puzzle] = None
    last_puzzle_date: Optional[str] = Field(default=None, description="YYYY-MM-DD")


class PuzzleResult(BaseModel):
    """
    Outcome of one answer.

    Attributes:
        correct: Whether the answer was right
        points_earned: Points from this answer (negative for a penalty)
        new_total: Progress points afterwards, never below 0
        progress_percent: 0-100
        streak_broken: True if a running streak ended
        new_streak: Streak afterwards
        case_solved: Whether the case is now closed
        next_puzzle_available: When to come back
        revelation: What the player learns on a correct answer
        consequence: What the player is told on a wrong answer
    """
    correct: bool
    points_earned: int
    new_total: int
    progress_percent: float
    streak_broken: bool
    new_streak: int
    case_solved: bool
    next_puzzle_available: datetime
    revelation: Optional[str] = None
    consequence: Optional[str] = None


class SolveOutcome(BaseModel):
    """Everything ``solve_puzzle`` hands back."""
    puzzle: Puzzle
    progress: CaseProgress
    result: PuzzleResult


# ---------------------------------------------------------------------------
# Digest
# ---------------------------------------------------------------------------


class DigestEvent(BaseModel):
    """
    One thing that happened while the player was away.

    Attributes:
        facts: True statements attributable to the event
        possible_lies: False statements attributable to the event
    """
    model_config = ConfigDict(frozen=True)

    id: str
    timestamp: datetime
    type: DigestEventType
    description: str
    involved_agents: list[str] = Field(default_factory=list)
    facts: list[str] = Field(default_factory=list)
    possible_lies: list[str] = Field(default_factory=list)


class DailyDigest(BaseModel):
    """What happened since the player's last visit, and the day's puzzle."""
    date: str = Field(description="YYYY-MM-DD")
    events: list[DigestEvent] = Field(default_factory=list)
    summary: str
    puzzle: Puzzle


def to_local_naive(value: datetime) -> datetime:
    """Convert an aware datetime to naive local time; naive values pass through."""
    if value.tzinfo is None:
        return value
    return value.astimezone().replace(tzinfo=None)


class ConversationMessage(BaseModel):
    speaker: str
    content: str
    is_public: bool = Field(default=False, description="Could the player have overheard this?")


class NPCConversation(BaseModel):
    """A conversation between NPCs, as reported by the narrative driver."""
    id: str
    timestamp: datetime
    participants: list[str]
    messages: list[ConversationMessage] = Field(default_factory=list)
    location: Optional[str] = None
    topic: Optional[str] = None

    @field_validator("timestamp")
    @classmethod
    def validate_timestamp(cls, v: datetime) -> datetime:
        return to_local_naive(v)


class NPCActivity(BaseModel):
    """Something one NPC did, as reported by the narrative driver."""
    id: str
    timestamp: datetime
    agent: str
    action: str
    location: Optional[str] = None
    witnesses: list[str] = Field(default_factory=list)
    is_secret: bool = False

    @field_validator("timestamp")
    @classmethod
    def validate_timestamp(cls, v: datetime) -> datetime:
        return to_local_naive(v)


class NPCKnowledge(BaseModel):
    """
    What an NPC knows and what they would lie about.

    Attributes:
        agent: NPC name
        facts: Things this NPC knows to be true
        secrets: Things they're hiding
        suspicions: Things they suspect but can't prove
        lies: Things they might lie about
    """
    agent: str
    facts: list[str] = Field(default_factory=list)
    secrets: list[str] = Field(default_factory=list)
    suspicions: list[str] = Field(default_factory=list)
    lies: list[str] = Field(default_factory=list)


__all__ = [
    "PuzzleType",
    "PuzzleStatus",
    "CaseStatus",
    "DigestEventType",
    "Statement",
    "SpotTheLieContent",
    "WhoSaidItContent",
    "SequenceEvent",
    "SequenceContent",
    "FillBlankContent",
    "PuzzleContent",
    "SourceContext",
    "Puzzle",
    "ScoringRules",
    "CaseProgress",
    "PuzzleResult",
    "SolveOutcome",
    "DigestEvent",
    "DailyDigest",
    "ConversationMessage",
    "to_local_naive",
    "NPCConversation",
    "NPCActivity",
    "NPCKnowledge",
]
