from dataclasses import dataclass
from enum import Enum
from typing import Optional

from midi_guitar.errors import InvalidInput

MIDI_MIN = 0
MIDI_MAX = 127


class NoteKind(Enum):
    ON = "on"
    OFF = "off"


@dataclass(frozen=True)
class PitchEstimate:
    """Result of analysing one frame. frequency_hz is None when the frame has no pitch."""
    frequency_hz: Optional[float]
    confidence: float  # 0.0-1.0

    @property
    def has_pitch(self) -> bool:
        return self.frequency_hz is not None

    @classmethod
    def none(cls) -> "PitchEstimate":
        return cls(frequency_hz=None, confidence=0.0)


@dataclass(frozen=True)
class NoteEvent:
    """A note transition handed to the output sink."""
    note: int  # MIDI note number (0-127)
    kind: NoteKind
    velocity: int = 0  # 0-127, always 0 for OFF

    def __post_init__(self):
        if not MIDI_MIN <= self.note <= MIDI_MAX:
            raise InvalidInput(f"Note number out of range: {self.note}")
        if not MIDI_MIN <= self.velocity <= MIDI_MAX:
            raise InvalidInput(f"Velocity out of range: {self.velocity}")

    @classmethod
    def on(cls, note: int, velocity: int = 100) -> "NoteEvent":
        return cls(note=note, kind=NoteKind.ON, velocity=velocity)

    @classmethod
    def off(cls, note: int) -> "NoteEvent":
        return cls(note=note, kind=NoteKind.OFF, velocity=0)

    @property
    def is_on(self) -> bool:
        return self.kind is NoteKind.ON
