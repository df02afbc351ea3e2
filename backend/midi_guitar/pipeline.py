"""
Real-time note tracking pipeline.

samples -> Windower -> frame -> YinEstimator -> candidate pitches
        -> note numbers -> NoteStateTracker -> NoteEvents -> sink

Usage:
    pipeline = NoteTrackingPipeline(TrackerConfig(), sink=LoggingSink())
    for chunk in chunks:
        pipeline.process(chunk)
    pipeline.finish()

Processing is synchronous: every call analyses its frames completely before
returning. When one ``process`` call completes several frames, the
``latest`` policy analyses only the newest and drops the rest, so a slow
consumer always reacts to the freshest audio instead of a growing backlog.
"""

import logging
import time
from dataclasses import dataclass
from typing import List, Optional, Set

import numpy as np

from midi_guitar.config import BackpressurePolicy, TrackerConfig
from midi_guitar.errors import InvalidInput
from midi_guitar.models.note_event import MIDI_MAX, MIDI_MIN, NoteEvent, PitchEstimate
from midi_guitar.tools.note_mapper import frequency_to_note, note_to_name
from midi_guitar.tools.note_tracker import NoteStateTracker
from midi_guitar.tools.windower import Windower
from midi_guitar.tools.yin import YinEstimator

logger = logging.getLogger(__name__)


@dataclass
class PipelineStats:
    frames_analyzed: int = 0
    frames_dropped: int = 0
    events_emitted: int = 0
    last_latency_ms: float = 0.0


class NoteTrackingPipeline:
    """
    Wires windowing, pitch estimation, note mapping and note tracking.

    Args:
        config: TrackerConfig; defaults are used when omitted
        sink: Optional object with ``send(NoteEvent)``; receives every event
        estimator: Override the YinEstimator built from ``config``
        tracker: Override the NoteStateTracker built from ``config``
    """

    def __init__(
        self,
        config: Optional[TrackerConfig] = None,
        sink=None,
        estimator: Optional[YinEstimator] = None,
        tracker: Optional[NoteStateTracker] = None,
    ):
        self.config = config if config is not None else TrackerConfig()
        self.sink = sink
        self.windower = Windower.from_config(self.config)
        self.estimator = estimator if estimator is not None else YinEstimator.from_config(self.config)
        self.tracker = tracker if tracker is not None else NoteStateTracker(velocity=self.config.velocity)
        self.stats = PipelineStats()
        self.last_estimate: Optional[PitchEstimate] = None
        self.last_frame_time_s: float = 0.0

    @property
    def active_notes(self):
        return self.tracker.active

    def process(self, samples) -> List[NoteEvent]:
        """Feed a chunk of samples; returns the events produced by it.

        Raises:
            InvalidInput: if the chunk holds non-finite samples. The whole chunk
                is rejected before any frame is analysed, so buffered audio,
                note state and the sink are untouched.
        """
        chunk = np.asarray(samples, dtype=np.float32).ravel()
        if not np.all(np.isfinite(chunk)):
            raise InvalidInput("Chunk contains non-finite samples")

        frames = self.windower.push(chunk)
        if not frames:
            return []

        hop_s = self.windower.hop_length / self.windower.sample_rate
        next_start_s = self.windower.position_s

        if self.config.policy is BackpressurePolicy.LATEST and len(frames) > 1:
            dropped = len(frames) - 1
            self.stats.frames_dropped += dropped
            logger.debug("Dropping %d stale frame(s), analysing the newest", dropped)
            frames = frames[-1:]

        events: List[NoteEvent] = []
        for i, frame in enumerate(frames):
            self.last_frame_time_s = next_start_s - (len(frames) - i) * hop_s
            events.extend(self.process_frame(frame))
        return events

    def process_frame(self, frame: np.ndarray) -> List[NoteEvent]:
        """
        Analyse one complete frame and update note state.

        Raises:
            InvalidInput: for a frame of the wrong length; note state is untouched.
        """
        start = time.perf_counter()
        estimate = self.estimator.estimate(frame)
        self.last_estimate = estimate

        candidates = self._candidate_notes(estimate)
        events = self.tracker.update(candidates)

        self.stats.frames_analyzed += 1
        self.stats.last_latency_ms = (time.perf_counter() - start) * 1000
        self._emit(events)
        return events

    def finish(self) -> List[NoteEvent]:
        """
        Analyse the padded tail of the stream, then release every sounding note.
        """
        events: List[NoteEvent] = []
        tail = self.windower.flush()
        if tail is not None:
            events.extend(self.process_frame(tail))

        released = self.tracker.release_all()
        self._emit(released)
        events.extend(released)
        logger.info(
            "Pipeline finished: %d frames analysed, %d dropped, %d events",
            self.stats.frames_analyzed, self.stats.frames_dropped, self.stats.events_emitted,
        )
        return events

    def reset(self) -> None:
        """Clear buffered audio, note state and counters between sessions."""
        self.windower.reset()
        self.tracker.reset()
        self.stats = PipelineStats()
        self.last_estimate = None
        self.last_frame_time_s = 0.0

    def _candidate_notes(self, estimate: PitchEstimate) -> Set[int]:
        if not estimate.has_pitch or estimate.confidence < self.config.note_threshold:
            return set()

        note = frequency_to_note(estimate.frequency_hz)
        if not MIDI_MIN <= note <= MIDI_MAX:
            logger.debug("Ignoring %.1fHz: outside MIDI range (note %d)", estimate.frequency_hz, note)
            return set()

        logger.debug(
            "Detected pitch: %.2f Hz -> %s (%d), confidence %.2f",
            estimate.frequency_hz, note_to_name(note), note, estimate.confidence,
        )
        return {note}

    def _emit(self, events: List[NoteEvent]) -> None:
        self.stats.events_emitted += len(events)
        if self.sink is None:
            return
        for event in events:
            self.sink.send(event)
