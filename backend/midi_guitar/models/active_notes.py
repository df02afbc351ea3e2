"""
Explicit container for the notes that are currently sounding.

The set is owned by a NoteStateTracker; callers only ever see read-only
snapshots through ``notes``.
"""

import numbers
from typing import FrozenSet, Iterable, Iterator

from midi_guitar.errors import InvalidInput
from midi_guitar.models.note_event import MIDI_MAX, MIDI_MIN


def validate_notes(notes: Iterable[int]) -> FrozenSet[int]:
    """Return ``notes`` as a frozenset, rejecting non-integers and anything outside 0-127."""
    values = list(notes)
    not_int = [n for n in values if isinstance(n, bool) or not isinstance(n, numbers.Integral)]
    if not_int:
        raise InvalidInput(f"Note numbers must be integers, got {not_int!r}")
    snapshot = frozenset(int(n) for n in values)
    bad = sorted(n for n in snapshot if not MIDI_MIN <= n <= MIDI_MAX)
    if bad:
        raise InvalidInput(f"Note numbers out of range: {bad}")
    return snapshot


class ActiveNoteSet:
    """Set of sounding MIDI note numbers with no duplicates."""

    def __init__(self, notes: Iterable[int] = ()):
        self._notes: FrozenSet[int] = validate_notes(notes)

    @property
    def notes(self) -> FrozenSet[int]:
        return self._notes

    def replace(self, notes: FrozenSet[int]) -> None:
        self._notes = notes

    def clear(self) -> None:
        self._notes = frozenset()

    def __contains__(self, note: object) -> bool:
        return note in self._notes

    def __iter__(self) -> Iterator[int]:
        return iter(sorted(self._notes))

    def __len__(self) -> int:
        return len(self._notes)

    def __repr__(self) -> str:
        return f"ActiveNoteSet({sorted(self._notes)})"
