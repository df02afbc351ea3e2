"""
Stream an audio file through the note tracker and print the note events.

Usage:
    midi-guitar recording.wav
    midi-guitar recording.wav --frame-length 4096 --note-threshold 0.7
    midi-guitar recording.wav --midi-port "IAC Driver Bus 1"
"""

import argparse
import logging
import sys
from typing import List, Optional

from midi_guitar.config import BackpressurePolicy, load_config
from midi_guitar.errors import TrackerError
from midi_guitar.models.note_event import NoteEvent
from midi_guitar.pipeline import NoteTrackingPipeline
from midi_guitar.sinks import MidiPortSink
from midi_guitar.sources import iter_chunks, load_audio
from midi_guitar.tools.note_mapper import note_to_name


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="midi-guitar",
        description="Track note on/off events in an audio file with YIN pitch detection",
    )
    parser.add_argument("audio", help="Audio file to analyse (any format soundfile reads)")
    parser.add_argument("--frame-length", type=int, help="Samples per analysis frame (even)")
    parser.add_argument("--hop", type=int, dest="hop_length", help="Samples between frames (default: frame length)")
    parser.add_argument("--threshold", type=float, dest="yin_threshold", help="YIN CMND threshold (0-1)")
    parser.add_argument("--note-threshold", type=float, help="Minimum confidence to accept a note (0-1)")
    parser.add_argument("--velocity", type=int, help="Note-on velocity (0-127)")
    parser.add_argument("--onset-threshold", type=float, help="RMS gate below which frames count as silence")
    parser.add_argument(
        "--policy",
        choices=[p.value for p in BackpressurePolicy],
        help="Frames analysed per chunk: newest only, or all",
    )
    parser.add_argument("--chunk-size", type=int, default=1024, help="Samples fed per process() call")
    parser.add_argument("--midi-port", help="Also send events to this MIDI output port")
    parser.add_argument("--env-file", help="Load MIDI_GUITAR_* settings from this .env file")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log per-frame detail")
    return parser


def format_event(event: NoteEvent, time_s: float) -> str:
    kind = "ON " if event.is_on else "OFF"
    return f"{time_s:8.3f}s  {kind} {event.note:3d} {note_to_name(event.note):<4} vel={event.velocity}"


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    try:
        audio, sample_rate = load_audio(args.audio)
        config = load_config(
            env_file=args.env_file,
            sample_rate=sample_rate,
            frame_length=args.frame_length,
            hop_length=args.hop_length,
            yin_threshold=args.yin_threshold,
            note_threshold=args.note_threshold,
            velocity=args.velocity,
            onset_threshold=args.onset_threshold,
            policy=args.policy,
        )
        sink = MidiPortSink.open(args.midi_port, channel=config.midi_channel) if args.midi_port else None
    except (TrackerError, OSError, RuntimeError, ImportError) as e:
        print(f"error: {e}", file=sys.stderr)
        return 2

    pipeline = NoteTrackingPipeline(config, sink=sink)
    try:
        for chunk in iter_chunks(audio, args.chunk_size):
            for event in pipeline.process(chunk):
                print(format_event(event, pipeline.last_frame_time_s))
        end_s = len(audio) / sample_rate
        for event in pipeline.finish():
            print(format_event(event, end_s))
    except TrackerError as e:
        print(f"error: {e}", file=sys.stderr)
        return 2
    finally:
        if sink is not None:
            sink.close()

    stats = pipeline.stats
    print(
        f"# {stats.frames_analyzed} frames analysed, {stats.frames_dropped} dropped, "
        f"{stats.events_emitted} events"
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
