"""
YIN fundamental frequency estimation for one analysis frame.

Steps (de Cheveigné & Kawahara, 2002):
1. Difference function over lags 1..N/2-1 with an integration window of N/2
2. Cumulative mean normalized difference (CMND)
3. First lag under the absolute threshold, then descend to the bottom of its dip
4. Parabolic interpolation around that lag
5. frequency = sample_rate / refined lag

Every call allocates its own difference/CMND arrays, so one estimator can be
shared by several threads as long as each call gets its own frame.
"""

import logging
from typing import List, Optional, Tuple

import numpy as np

from midi_guitar.errors import InvalidConfiguration, InvalidInput
from midi_guitar.models.note_event import PitchEstimate

logger = logging.getLogger(__name__)


def difference_function(frame: np.ndarray) -> np.ndarray:
    """d(tau) = sum_{i<W} (x[i] - x[i+tau])^2 for tau in [0, W), W = len(frame) // 2."""
    window = len(frame) // 2
    difference = np.zeros(window, dtype=np.float64)
    head = frame[:window]
    for tau in range(1, window):
        delta = head - frame[tau:tau + window]
        difference[tau] = np.dot(delta, delta)
    return difference


def cumulative_mean_normalized_difference(difference: np.ndarray) -> Tuple[np.ndarray, float]:
    """
    Normalize ``difference`` by its running mean.

    Returns the CMND array (cmnd[0] == 1) and the total running sum. Lags
    where the running sum is still zero get 1.0 instead of dividing by zero.
    """
    cmnd = np.ones(len(difference), dtype=np.float64)
    if len(difference) < 2:
        return cmnd, 0.0

    running = np.cumsum(difference[1:])
    taus = np.arange(1, len(difference), dtype=np.float64)
    positive = running > 0
    cmnd[1:][positive] = difference[1:][positive] * taus[positive] / running[positive]
    return cmnd, float(running[-1])


def absolute_threshold(cmnd: np.ndarray, threshold: float) -> Optional[int]:
    """First lag whose CMND is under ``threshold``, moved down to the local minimum."""
    tau_max = len(cmnd)
    tau = 1
    while tau < tau_max:
        if cmnd[tau] < threshold:
            while tau + 1 < tau_max and cmnd[tau + 1] < cmnd[tau]:
                tau += 1
            return tau
        tau += 1
    return None


def parabolic_interpolation(cmnd: np.ndarray, tau: int) -> float:
    """
    Refine ``tau`` to the vertex of the parabola through its neighbours.

    Lags at either edge of [1, len(cmnd)) have no neighbour on one side and
    are returned unchanged, as is a flat (zero-curvature) neighbourhood.
    """
    if not 1 < tau < len(cmnd) - 1:
        return float(tau)

    y1 = cmnd[tau - 1]
    y2 = cmnd[tau]
    y3 = cmnd[tau + 1]
    denominator = 2 * (2 * y2 - y1 - y3)
    if abs(denominator) < 1e-12:
        return float(tau)
    return tau + (y3 - y1) / denominator


class YinEstimator:
    """
    Monophonic YIN pitch estimator.

    Args:
        sample_rate: Sample rate in Hz
        frame_length: Expected frame length N; other lengths are rejected
        threshold: CMND threshold for the absolute threshold step (0-1)
        onset_threshold: Frames with RMS below this are reported as no pitch.
            0 disables the gate.
    """

    def __init__(
        self,
        sample_rate: int = 44100,
        frame_length: int = 2048,
        threshold: float = 0.15,
        onset_threshold: float = 0.0,
    ):
        if sample_rate <= 0:
            raise InvalidConfiguration(f"sample_rate must be positive, got {sample_rate}")
        if frame_length <= 0 or frame_length % 2:
            raise InvalidConfiguration(f"frame_length must be positive and even, got {frame_length}")
        if not 0.0 < threshold < 1.0:
            raise InvalidConfiguration(f"threshold must be in (0, 1), got {threshold}")
        if onset_threshold < 0.0:
            raise InvalidConfiguration(f"onset_threshold cannot be negative, got {onset_threshold}")

        self.sample_rate = sample_rate
        self.frame_length = frame_length
        self.threshold = threshold
        self.onset_threshold = onset_threshold

    @classmethod
    def from_config(cls, config) -> "YinEstimator":
        return cls(
            sample_rate=config.sample_rate,
            frame_length=config.frame_length,
            threshold=config.yin_threshold,
            onset_threshold=config.onset_threshold,
        )

    @property
    def min_frequency(self) -> float:
        """Lowest frequency the frame length can resolve."""
        return self.sample_rate / (self.frame_length // 2 - 1)

    def estimate(self, frame) -> PitchEstimate:
        """
        Estimate the fundamental frequency of ``frame``.

        Returns:
            PitchEstimate; frequency_hz is None for silent or aperiodic frames.

        Raises:
            InvalidInput: if the frame length differs from ``frame_length``
                or the frame holds non-finite samples.
        """
        audio = self._validate(frame)

        if self.onset_threshold > 0:
            rms = float(np.sqrt(np.mean(audio ** 2)))
            if rms < self.onset_threshold:
                logger.debug("Frame below onset threshold (rms=%.5f)", rms)
                return PitchEstimate.none()

        difference = difference_function(audio)
        cmnd, running_sum = cumulative_mean_normalized_difference(difference)
        if running_sum <= 0:
            return PitchEstimate.none()

        best_tau = absolute_threshold(cmnd, self.threshold)
        if best_tau is None:
            return PitchEstimate.none()

        refined_tau = parabolic_interpolation(cmnd, best_tau)
        if refined_tau <= 0:
            refined_tau = float(best_tau)

        frequency = self.sample_rate / refined_tau
        confidence = min(1.0, max(0.0, 1.0 - float(cmnd[best_tau])))

        logger.debug("tau=%d refined=%.3f f=%.2fHz conf=%.3f", best_tau, refined_tau, frequency, confidence)
        return PitchEstimate(frequency_hz=float(frequency), confidence=confidence)

    def estimate_candidates(self, frame, confidence_threshold: float) -> List[Tuple[float, float]]:
        """
        Accepted (frequency, confidence) candidates for ``frame``.

        YIN tracks a single dominant pitch, so the list holds at most one entry.
        """
        estimate = self.estimate(frame)
        if estimate.has_pitch and estimate.confidence >= confidence_threshold:
            return [(estimate.frequency_hz, estimate.confidence)]
        return []

    def _validate(self, frame) -> np.ndarray:
        audio = np.asarray(frame, dtype=np.float64)
        if audio.ndim != 1:
            raise InvalidInput(f"Frame must be one-dimensional, got shape {audio.shape}")
        if len(audio) != self.frame_length:
            raise InvalidInput(f"Frame length {len(audio)} does not match configured {self.frame_length}")
        if not np.all(np.isfinite(audio)):
            raise InvalidInput("Frame contains non-finite samples")
        return audio
