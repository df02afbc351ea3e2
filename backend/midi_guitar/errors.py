"""
Error taxonomy for the note tracker.

InvalidConfiguration is raised at construction time, before any audio is
processed. InvalidInput is raised per call and never leaves tracker state
half-updated. "No pitch" is not an error; it is a PitchEstimate without a
frequency.
"""


class TrackerError(Exception):
    """Base class for every error raised by midi_guitar."""


class InvalidConfiguration(TrackerError, ValueError):
    """Sample rate, frame length, thresholds or velocity out of range."""


class InvalidInput(TrackerError, ValueError):
    """A frame, frequency or note number the core cannot accept."""
