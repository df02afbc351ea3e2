"""
End-to-end tests: synthetic audio in, note events out.

Segments are whole multiples of the frame length so each frame holds exactly
one tone (or silence).
"""

import numpy as np
import pytest

from midi_guitar.config import TrackerConfig
from midi_guitar.errors import InvalidInput
from midi_guitar.models.note_event import NoteEvent
from midi_guitar.pipeline import NoteTrackingPipeline
from midi_guitar.sinks import CollectingSink
from midi_guitar.tools.note_mapper import note_to_frequency

SAMPLE_RATE = 44100
FRAME = 2048


def tone(midi_note: int, frames: int, amplitude: float = 0.5) -> np.ndarray:
    t = np.arange(frames * FRAME) / SAMPLE_RATE
    return (amplitude * np.sin(2 * np.pi * note_to_frequency(midi_note) * t)).astype(np.float32)


def silence(frames: int) -> np.ndarray:
    return np.zeros(frames * FRAME, dtype=np.float32)


def feed(pipeline: NoteTrackingPipeline, audio: np.ndarray, chunk: int = 1000):
    events = []
    for start in range(0, len(audio), chunk):
        events.extend(pipeline.process(audio[start:start + chunk]))
    return events


@pytest.fixture
def sink():
    return CollectingSink()


@pytest.fixture
def pipeline(sink):
    return NoteTrackingPipeline(TrackerConfig(policy="all"), sink=sink)


class TestNoteStream:

    def test_single_note(self, pipeline, sink):
        events = feed(pipeline, tone(69, 6))
        events += pipeline.finish()

        assert events == [NoteEvent.on(69), NoteEvent.off(69)]
        assert sink.events == events
        assert pipeline.active_notes == frozenset()

    def test_note_silence_note(self, pipeline):
        audio = np.concatenate([tone(69, 4), silence(4), tone(72, 4)])
        events = feed(pipeline, audio) + pipeline.finish()

        assert events == [
            NoteEvent.on(69),
            NoteEvent.off(69),
            NoteEvent.on(72),
            NoteEvent.off(72),
        ]

    def test_legato_change(self, pipeline):
        audio = np.concatenate([tone(64, 4), tone(67, 4)])
        events = feed(pipeline, audio)

        assert events == [NoteEvent.on(64), NoteEvent.off(64), NoteEvent.on(67)]
        assert pipeline.active_notes == {67}

    def test_sustained_note_emits_once(self, pipeline):
        events = feed(pipeline, tone(57, 20))

        assert events == [NoteEvent.on(57)]
        assert pipeline.stats.frames_analyzed == 20

    def test_noise_emits_nothing(self, pipeline):
        rng = np.random.default_rng(7)
        noise = (rng.standard_normal(8 * FRAME) * 0.2).astype(np.float32)

        assert feed(pipeline, noise) == []

    def test_velocity_from_config(self, sink):
        pipeline = NoteTrackingPipeline(TrackerConfig(policy="all", velocity=42), sink=sink)
        feed(pipeline, tone(69, 2))

        assert sink.events == [NoteEvent.on(69, 42)]

    def test_no_sink(self):
        pipeline = NoteTrackingPipeline(TrackerConfig(policy="all"))
        assert feed(pipeline, tone(69, 2)) == [NoteEvent.on(69)]


class TestBackpressure:

    def test_latest_drops_stale_frames(self):
        pipeline = NoteTrackingPipeline(TrackerConfig(policy="latest"))
        pipeline.process(tone(69, 4))

        assert pipeline.stats.frames_analyzed == 1
        assert pipeline.stats.frames_dropped == 3

    def test_latest_reacts_to_newest_audio(self):
        pipeline = NoteTrackingPipeline(TrackerConfig(policy="latest"))
        events = pipeline.process(np.concatenate([tone(60, 3), tone(67, 1)]))

        assert events == [NoteEvent.on(67)]

    def test_all_analyses_everything(self, pipeline):
        pipeline.process(tone(69, 4))

        assert pipeline.stats.frames_analyzed == 4
        assert pipeline.stats.frames_dropped == 0

    def test_overlapping_frames(self):
        pipeline = NoteTrackingPipeline(TrackerConfig(policy="all", hop_length=FRAME // 2))
        pipeline.process(tone(69, 2))

        assert pipeline.stats.frames_analyzed == 3

    def test_frame_times(self, pipeline):
        pipeline.process(tone(69, 1))
        assert pipeline.last_frame_time_s == 0.0

        pipeline.process(tone(69, 1))
        assert pipeline.last_frame_time_s == pytest.approx(FRAME / SAMPLE_RATE)


class TestErrorsAndLifecycle:

    def test_bad_frame_leaves_state_untouched(self, pipeline):
        feed(pipeline, tone(69, 2))

        with pytest.raises(InvalidInput):
            pipeline.process_frame(np.zeros(FRAME // 2, dtype=np.float32))

        assert pipeline.active_notes == {69}
        assert feed(pipeline, tone(69, 1)) == []

    def test_non_finite_chunk_is_rejected_whole(self, pipeline, sink):
        audio = tone(69, 3)
        audio[FRAME + 5] = np.nan

        with pytest.raises(InvalidInput):
            pipeline.process(audio)

        assert sink.events == []
        assert pipeline.active_notes == frozenset()
        assert pipeline.windower.pending == 0
        assert pipeline.stats.frames_analyzed == 0

        assert pipeline.process(tone(69, 3)) == [NoteEvent.on(69)]

    def test_non_finite_chunk_keeps_sounding_notes(self, pipeline, sink):
        feed(pipeline, tone(69, 2))
        bad = tone(69, 1)
        bad[0] = np.inf

        with pytest.raises(InvalidInput):
            pipeline.process(bad)

        assert pipeline.active_notes == {69}
        assert sink.events == [NoteEvent.on(69)]

    def test_finish_analyses_tail(self, pipeline):
        events = pipeline.process(tone(69, 1)[:FRAME // 2])
        assert events == []

        events = pipeline.finish()
        assert events == [NoteEvent.on(69), NoteEvent.off(69)]

    def test_reset(self, pipeline):
        feed(pipeline, tone(69, 2))
        pipeline.reset()

        assert pipeline.active_notes == frozenset()
        assert pipeline.stats.frames_analyzed == 0
        assert pipeline.last_estimate is None
        assert feed(pipeline, tone(69, 1)) == [NoteEvent.on(69)]

    def test_last_estimate(self, pipeline):
        feed(pipeline, tone(69, 1))

        assert pipeline.last_estimate.has_pitch
        assert abs(pipeline.last_estimate.frequency_hz - 440.0) < 4.4
