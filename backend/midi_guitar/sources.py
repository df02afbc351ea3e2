"""
Sample sources feeding the pipeline.

Device capture is left to the caller; these helpers cover audio files and
synthetic tones for testing and offline runs.
"""

import logging
from typing import Iterator, Tuple

import numpy as np
import soundfile as sf

logger = logging.getLogger(__name__)


def load_audio(path: str) -> Tuple[np.ndarray, int]:
    """Read an audio file as mono float32. Returns (samples, sample_rate)."""
    audio, sr = sf.read(path, dtype="float32")
    if audio.ndim > 1:
        audio = audio.mean(axis=1)
    logger.info("Loaded %s: %.2fs @ %dHz", path, len(audio) / sr, sr)
    return audio.astype(np.float32), int(sr)


def iter_chunks(audio: np.ndarray, chunk_size: int) -> Iterator[np.ndarray]:
    """Split ``audio`` into consecutive chunks, the last one possibly shorter."""
    if chunk_size <= 0:
        raise ValueError(f"chunk_size must be positive, got {chunk_size}")
    for start in range(0, len(audio), chunk_size):
        yield audio[start:start + chunk_size]


def synth_tone(
    frequency: float,
    duration_s: float,
    sample_rate: int = 44100,
    amplitude: float = 0.5,
    harmonics: Tuple[float, ...] = (1.0,),
) -> np.ndarray:
    """
    Generate a steady tone. ``harmonics`` are amplitude ratios of partials
    1, 2, 3, ...; partials above Nyquist are skipped.
    """
    num_samples = int(sample_rate * duration_s)
    t = np.arange(num_samples) / sample_rate
    signal = np.zeros(num_samples, dtype=np.float64)
    for i, ratio in enumerate(harmonics):
        partial = frequency * (i + 1)
        if partial < sample_rate / 2:
            signal += ratio * np.sin(2 * np.pi * partial * t)
    peak = np.max(np.abs(signal)) if num_samples else 0.0
    if peak > 0:
        signal *= amplitude / peak
    return signal.astype(np.float32)
