"""
polyscribe/audio/analyzer.py
=============================
Audio Signal Analyzer — PolyScribe

Responsibility:
    - Convert one tick of raw capture buffers into AudioMetrics:
        volume          RMS of the centred time-domain samples
        pitch           magnitude-correlation period estimate (Hz)
        quality         mid-band energy vs. high-band noise, [0, 1]
        background_noise  low-band average magnitude, [0, 1]
        visualization   frequency buffer block-averaged into N buckets
    - Build magnitude spectra for capture sources (analyser-style dB scale)

Buffers:
    time-domain   uint8 samples centred on 128 (bytes or any integer
                  sequence), or float samples already in [-1, 1]
    frequency     uint8 magnitudes 0..255, or float magnitudes in [0, 1]

The analyzer is a pure function of the buffers. It never raises: empty or
invalid input yields all-zero metrics.

This module does NOT:
    - Open capture devices (see polyscribe.audio.sources)
    - Perform speech recognition or language detection
"""

import logging
from dataclasses import asdict, dataclass, field

import numpy as np

from polyscribe.config import AudioOptions

logger = logging.getLogger("polyscribe.audio.analyzer")


# ---------------------------------------------------------------------------
# Band layout (fractions of the frequency buffer length)
# ---------------------------------------------------------------------------

_LOW_BAND_END: float = 0.1
_MID_BAND_START: float = 0.2
_HIGH_BAND_START: float = 0.7

# Analyser-style dB window used when building magnitude spectra
_MIN_DECIBELS: float = -100.0
_MAX_DECIBELS: float = -30.0


@dataclass(frozen=True)
class AudioMetrics:
    """Metrics for one capture tick."""

    volume: float = 0.0
    pitch: float = 0.0
    quality: float = 0.0
    background_noise: float = 0.0
    visualization: tuple[float, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict:
        data = asdict(self)
        data["visualization"] = list(self.visualization)
        return data


class AudioSignalAnalyzer:
    """
    Stateless estimator of volume / pitch / quality / noise.

    The pitch estimate is an approximation, not a pitch tracker: for each
    candidate lag it sums |x[i] * x[i + lag]| (magnitude correlation, not a
    normalized autocorrelation) and reports sample_rate / best_lag. With
    no positive correlation (silence, empty buffer) the pitch is 0.
    """

    def __init__(self, options: AudioOptions | None = None):
        self.options = options or AudioOptions()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def analyze(self, time_domain, frequency) -> AudioMetrics:
        """Compute AudioMetrics for one tick. Never raises."""
        buckets = self.options.visualization_buckets
        try:
            samples = _centred_samples(time_domain)
            magnitudes = _normalized_magnitudes(frequency)

            return AudioMetrics(
                volume=self.volume(samples),
                pitch=self.pitch(samples),
                quality=self.quality(magnitudes),
                background_noise=self.background_noise(magnitudes),
                visualization=tuple(self.visualization(magnitudes, buckets)),
            )
        except Exception as exc:
            logger.warning("Audio analysis failed: %s — returning zero metrics.", exc)
            return zero_metrics(buckets)

    @staticmethod
    def volume(samples: np.ndarray) -> float:
        if samples.size == 0:
            return 0.0
        return float(np.sqrt(np.mean(samples ** 2)))

    def pitch(self, samples: np.ndarray) -> float:
        n = samples.size
        min_period = max(1, self.options.min_period)
        max_period = min(self.options.max_period, n)
        if n == 0 or max_period <= min_period:
            return 0.0

        magnitude = np.abs(samples)
        # full[n - 1 + lag] == sum_i |x[i]| * |x[i + lag]|
        full = np.correlate(magnitude, magnitude, mode="full")
        correlations = full[n - 1 + min_period : n - 1 + max_period]
        if correlations.size == 0:
            return 0.0

        best = int(np.argmax(correlations))
        if correlations[best] <= 0:
            return 0.0
        best_lag = min_period + best
        return float(self.options.sample_rate / best_lag)

    @staticmethod
    def quality(magnitudes: np.ndarray) -> float:
        """Strong mid-band energy with a quiet high band ⇒ higher quality."""
        n = magnitudes.size
        mid_start = int(n * _MID_BAND_START)
        high_start = int(n * _HIGH_BAND_START)
        if high_start <= mid_start or high_start >= n:
            return 0.0

        mid_avg = float(np.mean(magnitudes[mid_start:high_start]))
        high_avg = float(np.mean(magnitudes[high_start:]))
        return float(np.clip(mid_avg * (1.0 - high_avg), 0.0, 1.0))

    @staticmethod
    def background_noise(magnitudes: np.ndarray) -> float:
        low_end = int(magnitudes.size * _LOW_BAND_END)
        if low_end == 0:
            return 0.0
        return float(np.clip(np.mean(magnitudes[:low_end]), 0.0, 1.0))

    @staticmethod
    def visualization(magnitudes: np.ndarray, buckets: int = 20) -> list[float]:
        """Block-average the spectrum into ``buckets`` values in [0, 1]."""
        if buckets <= 0:
            return []
        n = magnitudes.size
        if n == 0:
            return [0.0] * buckets

        step = n // buckets
        if step > 0:
            blocks = magnitudes[: step * buckets].reshape(buckets, step)
            values = blocks.mean(axis=1)
        else:
            # Fewer bins than buckets: one bin per bucket, rest empty
            values = np.zeros(buckets)
            values[:n] = magnitudes
        return [float(v) for v in np.clip(values, 0.0, 1.0)]


# ---------------------------------------------------------------------------
# Spectrum helper shared by the capture sources
# ---------------------------------------------------------------------------


def magnitude_spectrum(samples: np.ndarray, fft_size: int) -> np.ndarray:
    """
    Windowed FFT magnitudes mapped onto [0, 1] with an analyser dB scale.

    Returns ``fft_size // 2`` bins.
    """
    bins = fft_size // 2
    if samples.size == 0 or bins == 0:
        return np.zeros(bins, dtype=np.float32)

    frame = np.zeros(fft_size, dtype=np.float64)
    usable = samples[-fft_size:]
    frame[: usable.size] = usable
    frame *= np.hanning(fft_size)

    spectrum = np.abs(np.fft.rfft(frame))[:bins] / fft_size
    with np.errstate(divide="ignore"):
        decibels = 20.0 * np.log10(spectrum)
    scaled = (decibels - _MIN_DECIBELS) / (_MAX_DECIBELS - _MIN_DECIBELS)
    return np.clip(np.nan_to_num(scaled, neginf=0.0), 0.0, 1.0).astype(np.float32)


def zero_metrics(buckets: int = 20) -> AudioMetrics:
    return AudioMetrics(visualization=tuple([0.0] * buckets))


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _as_array(buffer) -> np.ndarray:
    if buffer is None:
        return np.zeros(0)
    if isinstance(buffer, (bytes, bytearray, memoryview)):
        return np.frombuffer(bytes(buffer), dtype=np.uint8)
    arr = np.asarray(buffer)
    # Integer sequences (e.g. JSON lists) carry byte values
    if np.issubdtype(arr.dtype, np.integer):
        return np.clip(arr, 0, 255).astype(np.uint8).ravel()
    return arr


def _centred_samples(buffer) -> np.ndarray:
    """Byte samples → (x - 128) / 128; float samples pass through."""
    arr = _as_array(buffer)
    if arr.size == 0:
        return np.zeros(0)
    if arr.dtype == np.uint8:
        return (arr.astype(np.float64) - 128.0) / 128.0
    return np.nan_to_num(arr.astype(np.float64).ravel())


def _normalized_magnitudes(buffer) -> np.ndarray:
    """Byte magnitudes → x / 255; float magnitudes clipped to [0, 1]."""
    arr = _as_array(buffer)
    if arr.size == 0:
        return np.zeros(0)
    if arr.dtype == np.uint8:
        return arr.astype(np.float64) / 255.0
    return np.clip(np.nan_to_num(arr.astype(np.float64).ravel()), 0.0, 1.0)
