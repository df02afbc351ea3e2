"""
Frequency <-> MIDI note number conversion on the 12-tone equal-tempered scale.

MIDI note numbers: A4 = 69 = 440 Hz, C4 (middle C) = 60.
"""

import math

from midi_guitar.errors import InvalidInput

A4_FREQUENCY = 440.0
A4_MIDI = 69

NOTE_NAMES = ['C', 'C#', 'D', 'D#', 'E', 'F', 'F#', 'G', 'G#', 'A', 'A#', 'B']


def _semitones_from_a4(frequency: float) -> float:
    if not math.isfinite(frequency) or frequency <= 0:
        raise InvalidInput(f"Frequency must be positive and finite, got {frequency}")
    return 12 * math.log2(frequency / A4_FREQUENCY)


def frequency_to_note(frequency: float) -> int:
    """
    Convert a frequency (Hz) to the nearest MIDI note number.

    Silence must be filtered out before calling this; a non-positive
    frequency raises InvalidInput rather than mapping to a note.
    """
    return int(round(A4_MIDI + _semitones_from_a4(frequency)))


def note_to_frequency(note: int) -> float:
    """Convert a MIDI note number to its equal-tempered frequency in Hz."""
    return A4_FREQUENCY * (2.0 ** ((note - A4_MIDI) / 12.0))


def note_to_name(note: int) -> str:
    """Note name with octave, e.g. 60 -> 'C4', 69 -> 'A4'."""
    octave = note // 12 - 1
    return f"{NOTE_NAMES[note % 12]}{octave}"


def cents_offset(frequency: float) -> float:
    """Deviation in cents of ``frequency`` from its nearest note (-50..50)."""
    semitones = _semitones_from_a4(frequency)
    return 100.0 * (semitones - round(semitones))
