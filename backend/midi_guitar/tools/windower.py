"""
Fixed-length framing of a continuous sample stream.

Accumulates incoming audio chunks of any size and yields analysis frames of
exactly ``frame_length`` samples, advancing by ``hop_length`` between frames
(hop == frame_length gives non-overlapping frames).
"""

import logging
from typing import List, Optional

import numpy as np

from midi_guitar.errors import InvalidConfiguration

logger = logging.getLogger(__name__)


class Windower:
    """
    Parameters
    ----------
    frame_length : int
        Samples per frame (N). Must be positive and even.
    sample_rate : int
        Sample rate of the incoming stream in Hz. Must be positive.
    hop_length : int, optional
        Samples to advance between consecutive frames, 1..frame_length.
        Defaults to frame_length.
    """

    def __init__(self, frame_length: int, sample_rate: int, hop_length: Optional[int] = None) -> None:
        if frame_length <= 0 or frame_length % 2:
            raise InvalidConfiguration(f"frame_length must be positive and even, got {frame_length}")
        if sample_rate <= 0:
            raise InvalidConfiguration(f"sample_rate must be positive, got {sample_rate}")
        if hop_length is None:
            hop_length = frame_length
        if not 0 < hop_length <= frame_length:
            raise InvalidConfiguration(
                f"hop_length must be in 1..{frame_length}, got {hop_length}"
            )

        self.frame_length = frame_length
        self.sample_rate = sample_rate
        self.hop_length = hop_length

        self._buffer: np.ndarray = np.array([], dtype=np.float32)

        # Sample index where the next frame starts.
        self._read_pos: int = 0

        # Samples discarded by compaction, so absolute positions stay correct.
        self._compacted_offset: int = 0

    @classmethod
    def from_config(cls, config) -> "Windower":
        return cls(config.frame_length, config.sample_rate, config.hop)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def push(self, samples) -> List[np.ndarray]:
        """
        Append *samples* and return every frame completed by them, oldest first.

        Frames are read-only float32 arrays of exactly ``frame_length`` samples.
        """
        chunk = np.asarray(samples, dtype=np.float32).ravel()
        if chunk.size:
            self._buffer = np.concatenate([self._buffer, chunk])

        frames: List[np.ndarray] = []
        while len(self._buffer) - self._read_pos >= self.frame_length:
            frame = self._buffer[self._read_pos : self._read_pos + self.frame_length].copy()
            frame.flags.writeable = False
            frames.append(frame)
            self._read_pos += self.hop_length

        # Keep the buffer from growing without bound.
        if self._read_pos > self.frame_length * 4:
            self._compact()

        return frames

    def flush(self) -> Optional[np.ndarray]:
        """
        Return the unconsumed tail zero-padded to a full frame.

        Returns None when less than a quarter of a frame is left. Useful at
        the end of a recording so the last note is still analysed.
        """
        remaining = len(self._buffer) - self._read_pos
        if remaining <= 0 or remaining < self.frame_length * 0.25:
            return None

        segment = self._buffer[self._read_pos : self._read_pos + self.frame_length]
        frame = np.pad(segment, (0, self.frame_length - len(segment)), mode="constant").astype(np.float32)
        frame.flags.writeable = False
        self._read_pos = len(self._buffer)
        return frame

    def reset(self) -> None:
        """Clear all buffered audio between sessions."""
        self._buffer = np.array([], dtype=np.float32)
        self._read_pos = 0
        self._compacted_offset = 0

    @property
    def pending(self) -> int:
        """Samples buffered but not yet part of an emitted frame."""
        return max(0, len(self._buffer) - self._read_pos)

    @property
    def position_s(self) -> float:
        """Stream time (seconds) at which the next frame starts."""
        return (self._compacted_offset + self._read_pos) / self.sample_rate

    def _compact(self) -> None:
        consumed = min(self._read_pos, len(self._buffer))
        self._compacted_offset += consumed
        self._buffer = self._buffer[consumed:]
        self._read_pos -= consumed
        logger.debug("Compacted windower buffer, offset now %d samples", self._compacted_offset)
