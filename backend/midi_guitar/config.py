"""
Runtime configuration for the note tracker.

All tuning values (YIN threshold, note confidence threshold, velocity) live
here rather than in the algorithms, because they are tuned per instrument and
room. Values can come from keyword arguments or from ``MIDI_GUITAR_*``
environment variables (a ``.env`` file is honoured).
"""

import logging
import os
from enum import Enum
from typing import Any, Dict, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from midi_guitar.errors import InvalidConfiguration

logger = logging.getLogger(__name__)

ENV_PREFIX = "MIDI_GUITAR_"


class BackpressurePolicy(str, Enum):
    LATEST = "latest"  # analyse only the newest completed frame
    ALL = "all"        # analyse every completed frame in order


class TrackerConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    sample_rate: int = Field(44100, gt=0)
    frame_length: int = Field(2048, gt=0)
    hop_length: Optional[int] = Field(None, gt=0)
    yin_threshold: float = Field(0.15, gt=0.0, lt=1.0)
    note_threshold: float = Field(0.8, gt=0.0, lt=1.0)
    velocity: int = Field(100, ge=0, le=127)
    midi_channel: int = Field(0, ge=0, le=15)
    onset_threshold: float = Field(0.0, ge=0.0)
    policy: BackpressurePolicy = BackpressurePolicy.LATEST

    def __init__(self, **data: Any):
        try:
            super().__init__(**data)
        except ValidationError as exc:
            raise InvalidConfiguration(str(exc)) from exc

    @field_validator("frame_length")
    @classmethod
    def _frame_length_even(cls, value: int) -> int:
        if value % 2:
            raise ValueError(f"frame_length must be even, got {value}")
        if value < 4:
            raise ValueError(f"frame_length must be at least 4, got {value}")
        return value

    @model_validator(mode="after")
    def _hop_within_frame(self) -> "TrackerConfig":
        if self.hop_length is not None and self.hop_length > self.frame_length:
            raise ValueError(
                f"hop_length ({self.hop_length}) cannot exceed frame_length ({self.frame_length})"
            )
        return self

    @property
    def hop(self) -> int:
        return self.hop_length if self.hop_length is not None else self.frame_length

    @property
    def frame_duration_s(self) -> float:
        return self.frame_length / self.sample_rate


def _from_environment() -> Dict[str, str]:
    values = {}
    for name in TrackerConfig.model_fields:
        raw = os.environ.get(ENV_PREFIX + name.upper())
        if raw is not None and raw != "":
            values[name] = raw
    return values


def load_config(env_file: Optional[str] = None, **overrides: Any) -> TrackerConfig:
    """
    Build a TrackerConfig from the environment.

    Args:
        env_file: Optional path to a .env file; the default lookup is used otherwise
        **overrides: Explicit values, taking precedence over the environment.
            ``None`` values are ignored so CLI defaults do not mask the environment.

    Raises:
        InvalidConfiguration: if any value is out of range.
    """
    if env_file:
        load_dotenv(env_file)
    else:
        load_dotenv()

    values: Dict[str, Any] = _from_environment()
    values.update({k: v for k, v in overrides.items() if v is not None})

    config = TrackerConfig(**values)
    logger.debug("Loaded config: %s", config)
    return config
