"""
Output sinks for note events.

The pipeline only ever calls ``sink.send(event)``; anything with that method
can receive events.
"""

import logging
from typing import List, Optional, Protocol

import mido

from midi_guitar.errors import InvalidConfiguration
from midi_guitar.models.note_event import NoteEvent, NoteKind

logger = logging.getLogger(__name__)


class NoteSink(Protocol):
    def send(self, event: NoteEvent) -> None:
        ...


class CollectingSink:
    """Keeps every event in memory. Handy for tests and offline analysis."""

    def __init__(self):
        self.events: List[NoteEvent] = []

    def send(self, event: NoteEvent) -> None:
        self.events.append(event)

    def clear(self) -> None:
        self.events.clear()


class LoggingSink:
    """Logs each event at INFO level."""

    def __init__(self, name: str = __name__):
        self._logger = logging.getLogger(name)

    def send(self, event: NoteEvent) -> None:
        if event.is_on:
            self._logger.info("Note On: %d, Velocity: %d", event.note, event.velocity)
        else:
            self._logger.info("Note Off: %d", event.note)


def to_midi_message(event: NoteEvent, channel: int = 0) -> mido.Message:
    """Translate a NoteEvent into a mido note_on / note_off message."""
    msg_type = "note_on" if event.kind is NoteKind.ON else "note_off"
    return mido.Message(msg_type, note=event.note, velocity=event.velocity, channel=channel)


class MidiPortSink:
    """
    Sends events to a MIDI output port.

    ``port`` is any object with a ``send(mido.Message)`` method, typically
    from ``mido.open_output``. Use ``MidiPortSink.open`` to open one by name.
    """

    def __init__(self, port, channel: int = 0):
        if not 0 <= channel <= 15:
            raise InvalidConfiguration(f"MIDI channel must be in 0..15, got {channel}")
        self.port = port
        self.channel = channel

    @classmethod
    def open(cls, name: Optional[str] = None, channel: int = 0) -> "MidiPortSink":
        """Open ``name`` (or the default output when None)."""
        port = mido.open_output(name)
        logger.info("MIDI Output Device Selected: %s", getattr(port, "name", name))
        return cls(port, channel=channel)

    def send(self, event: NoteEvent) -> None:
        self.port.send(to_midi_message(event, self.channel))

    def close(self) -> None:
        close = getattr(self.port, "close", None)
        if close is not None:
            close()

    def __enter__(self) -> "MidiPortSink":
        return self

    def __exit__(self, *exc) -> None:
        self.close()
