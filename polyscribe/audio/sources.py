"""
polyscribe/audio/sources.py
============================
Audio Capture Sources — PolyScribe

Responsibility:
    - Define the AudioSource capability interface: a source hands the
      analyzer one fixed-length time-domain buffer and one frequency
      magnitude buffer per tick
    - LiveAudioSource: microphone input via sounddevice
    - SyntheticAudioSource: deterministic (seedable) plausible buffers for
      running without hardware
    - open_audio_source(): pick the implementation from AudioOptions.mode,
      falling back to synthetic when live capture cannot be initialized

This module does NOT:
    - Compute metrics (see polyscribe.audio.analyzer)
    - Record or persist audio
"""

import logging
import threading
from abc import ABC, abstractmethod

import numpy as np

from polyscribe.audio.analyzer import magnitude_spectrum
from polyscribe.config import AudioOptions
from polyscribe.errors import InitializationFailure

logger = logging.getLogger("polyscribe.audio.sources")


class AudioSource(ABC):
    """Capability interface for a per-tick capture buffer provider."""

    is_live: bool = False

    def __init__(self, options: AudioOptions):
        self.options = options

    @abstractmethod
    def start(self) -> None:
        """Begin producing buffers."""

    @abstractmethod
    def stop(self) -> None:
        """Release any capture resources."""

    @abstractmethod
    def read_buffers(self) -> tuple[np.ndarray, np.ndarray]:
        """Return (time_domain float samples, frequency magnitudes 0..1)."""


# ---------------------------------------------------------------------------
# Synthetic (offline / degraded) source
# ---------------------------------------------------------------------------

# Bounds of the synthesized voice-like signal
_SYNTH_PITCH_RANGE_HZ: tuple[float, float] = (90.0, 320.0)
_SYNTH_AMPLITUDE_RANGE: tuple[float, float] = (0.05, 0.3)
_SYNTH_NOISE_RANGE: tuple[float, float] = (0.002, 0.02)


class SyntheticAudioSource(AudioSource):
    """
    Produces a noisy harmonic tone with random (bounded) pitch, amplitude
    and noise floor on every read. Deterministic for a given seed.
    """

    is_live = False

    def __init__(self, options: AudioOptions):
        super().__init__(options)
        self._rng = np.random.default_rng(options.synthetic_seed)
        self.running = False

    def start(self) -> None:
        self.running = True
        logger.info("Synthetic audio source started (seed=%s).", self.options.synthetic_seed)

    def stop(self) -> None:
        self.running = False

    def read_buffers(self) -> tuple[np.ndarray, np.ndarray]:
        length = self.options.buffer_length
        rate = self.options.sample_rate

        pitch_hz = self._rng.uniform(*_SYNTH_PITCH_RANGE_HZ)
        amplitude = self._rng.uniform(*_SYNTH_AMPLITUDE_RANGE)
        noise = self._rng.uniform(*_SYNTH_NOISE_RANGE)

        t = np.arange(length) / rate
        tone = (
            np.sin(2 * np.pi * pitch_hz * t)
            + 0.5 * np.sin(2 * np.pi * 2 * pitch_hz * t)
            + 0.25 * np.sin(2 * np.pi * 3 * pitch_hz * t)
        )
        samples = amplitude * tone / 1.75 + self._rng.normal(0.0, noise, length)
        samples = np.clip(samples, -1.0, 1.0).astype(np.float32)

        return samples, magnitude_spectrum(samples, self.options.fft_size)


# ---------------------------------------------------------------------------
# Live microphone source
# ---------------------------------------------------------------------------


class LiveAudioSource(AudioSource):
    """Microphone capture through a sounddevice InputStream."""

    is_live = True

    def __init__(self, options: AudioOptions, device: int | str | None = None):
        super().__init__(options)
        self.device = device
        self.stream = None
        self._buffer = np.zeros(options.fft_size, dtype=np.float32)
        self._lock = threading.Lock()

    def _callback(self, indata, frames, time_info, status):
        if status:
            logger.debug("Capture status: %s", status)
        mono = indata.mean(axis=1) if indata.ndim > 1 else indata
        mono = mono.astype(np.float32)
        with self._lock:
            if mono.size >= self._buffer.size:
                self._buffer[:] = mono[-self._buffer.size:]
            else:
                self._buffer = np.roll(self._buffer, -mono.size)
                self._buffer[-mono.size:] = mono

    def start(self) -> None:
        try:
            import sounddevice as sd

            self.stream = sd.InputStream(
                samplerate=self.options.sample_rate,
                channels=self.options.channels,
                dtype="float32",
                blocksize=self.options.buffer_length,
                device=self.device,
                callback=self._callback,
            )
            self.stream.start()
        except Exception as exc:
            self.stream = None
            raise InitializationFailure("live audio capture", str(exc)) from exc

        logger.info(
            "Live audio capture started: %d Hz, %d channel(s).",
            self.options.sample_rate,
            self.options.channels,
        )

    def stop(self) -> None:
        if self.stream is not None:
            self.stream.stop()
            self.stream.close()
            self.stream = None

    def read_buffers(self) -> tuple[np.ndarray, np.ndarray]:
        with self._lock:
            window = self._buffer.copy()
        samples = window[-self.options.buffer_length:]
        return samples, magnitude_spectrum(window, self.options.fft_size)


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------


def open_audio_source(options: AudioOptions) -> AudioSource:
    """
    Start and return the configured source.

    ``mode == "live"`` tries the microphone; if it cannot be initialized
    the synthetic source is used instead.
    """
    if options.mode == "live":
        source = LiveAudioSource(options)
        try:
            source.start()
            return source
        except InitializationFailure as exc:
            logger.warning("%s — falling back to synthetic audio.", exc)
    elif options.mode != "synthetic":
        logger.warning("Unknown AUDIO_MODE %r — using synthetic audio.", options.mode)

    synthetic = SyntheticAudioSource(options)
    synthetic.start()
    return synthetic
