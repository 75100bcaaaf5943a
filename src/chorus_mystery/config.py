"""
Configuration model for the mystery engine.
"""

import logging
import os
from pathlib import Path
from typing import Any

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

from .puzzles.models import ScoringRules

logger = logging.getLogger("chorus-mystery")


class MysteryConfig(BaseModel):
    """Settings for one mystery deployment.

    Controls the model used for lie detection, the scoring rules of new
    cases, and how long the player must be away before a digest is offered.
    """

    # LLM Configuration
    llm_model: str = Field(
        default="claude-sonnet-4-5-20250929",
        description="Model identifier for the LLM"
    )
    temperature: float = Field(
        default=0.7,
        ge=0.0,
        le=2.0,
        description="LLM temperature parameter (0.0-2.0)"
    )
    max_tokens: int = Field(
        default=1024,
        ge=64,
        le=200000,
        description="Maximum tokens in LLM response"
    )

    # Puzzles
    scoring: ScoringRules = Field(
        default_factory=ScoringRules,
        description="Point rules for new cases"
    )
    default_difficulty: int = Field(
        default=2,
        ge=1,
        le=3,
        description="Difficulty of generated puzzles: 1 (easy) to 3 (hard)"
    )
    min_away_minutes: int = Field(
        default=60,
        ge=0,
        description="Minutes the player must be away before a digest is offered"
    )

    # Storage
    data_dir: Path = Field(
        default=Path("data"),
        description="Directory holding saved sessions"
    )

    @field_validator("data_dir", mode="before")
    @classmethod
    def validate_data_dir(cls, v: Any) -> Any:
        """Treat an empty value as the default directory."""
        if v is None or v == "":
            return Path("data")
        return v


ENV_FIELDS = {
    "MYSTERY_LLM_MODEL": "llm_model",
    "MYSTERY_TEMPERATURE": "temperature",
    "MYSTERY_MIN_AWAY_MINUTES": "min_away_minutes",
    "MYSTERY_DATA_DIR": "data_dir",
}


def load_config() -> MysteryConfig:
    """
    Build the configuration from a ``.env`` file and ``MYSTERY_*`` variables.

    Raises:
        pydantic.ValidationError: If a variable holds an invalid value
    """
    if not load_dotenv():
        logger.debug("No .env file found, using environment and defaults")

    values: dict[str, Any] = {
        field: os.environ[name] for name, field in ENV_FIELDS.items() if name in os.environ
    }

    points = os.getenv("MYSTERY_POINTS_TO_SOLVE")
    if points is not None:
        values["scoring"] = {"points_to_solve": points}

    config = MysteryConfig.model_validate(values)
    logger.debug(f"Loaded config: model={config.llm_model}, data_dir={config.data_dir}")
    return config


__all__ = [
    "MysteryConfig",
    "load_config",
]
