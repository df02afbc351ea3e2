"""
Note on/off tracking across frames.

Each frame yields a set of candidate notes (those whose confidence passed the
note threshold). The tracker diffs that set against the notes it believes are
sounding and emits the minimal list of events that brings a downstream synth
in line: OFF for notes that disappeared, ON for notes that appeared. A note
that stays present emits nothing, so calling update() twice with the same set
is a no-op the second time.
"""

import logging
from typing import FrozenSet, Iterable, List, Optional

from midi_guitar.errors import InvalidConfiguration, InvalidInput
from midi_guitar.models.active_notes import ActiveNoteSet, validate_notes
from midi_guitar.models.note_event import MIDI_MAX, MIDI_MIN, NoteEvent

logger = logging.getLogger(__name__)


class NoteStateTracker:
    """
    Owns the ActiveNoteSet and turns candidate sets into NoteEvents.

    Args:
        velocity: Velocity for ON events (0-127)
        active: Optional pre-populated ActiveNoteSet, e.g. to replay a session
    """

    def __init__(self, velocity: int = 100, active: Optional[ActiveNoteSet] = None):
        if not MIDI_MIN <= velocity <= MIDI_MAX:
            raise InvalidConfiguration(f"velocity must be in 0..127, got {velocity}")
        self.velocity = velocity
        self._active = ActiveNoteSet(active.notes) if active is not None else ActiveNoteSet()

    @property
    def active(self) -> FrozenSet[int]:
        """Read-only snapshot of the sounding notes."""
        return self._active.notes

    def update(self, candidate_notes: Iterable[int], velocity: Optional[int] = None) -> List[NoteEvent]:
        """
        Diff ``candidate_notes`` against the active set.

        OFF events come first, then ON events, each in ascending note order.
        Invalid input raises InvalidInput before any state changes.
        """
        candidates = validate_notes(candidate_notes)
        if velocity is None:
            velocity = self.velocity
        elif not MIDI_MIN <= velocity <= MIDI_MAX:
            raise InvalidInput(f"velocity must be in 0..127, got {velocity}")

        current = self._active.notes
        released = sorted(current - candidates)
        started = sorted(candidates - current)

        events = [NoteEvent.off(note) for note in released]
        events.extend(NoteEvent.on(note, velocity) for note in started)

        self._active.replace(candidates)

        if events:
            logger.debug("Note diff: off=%s on=%s", released, started)
        return events

    def release_all(self) -> List[NoteEvent]:
        """Emit OFF for every sounding note and clear the active set."""
        return self.update(())

    def reset(self) -> None:
        """Forget all sounding notes without emitting events."""
        self._active.clear()
