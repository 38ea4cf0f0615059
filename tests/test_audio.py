"""
tests/test_audio.py
====================
Audio Signal Analyzer, capture sources and monitor

Test categories:
    1. Metric contracts: volume, pitch, quality, background noise,
       visualization (byte and float buffers)
    2. Failure handling: invalid buffers → zero metrics, never raises
    3. Synthetic source determinism; live-mode fallback to synthetic
    4. AudioMonitor snapshot behaviour
"""

import os
import sys
import unittest
from unittest.mock import MagicMock, patch

import numpy as np

# Ensure project root is on sys.path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from polyscribe.audio.analyzer import (
    AudioMetrics,
    AudioSignalAnalyzer,
    magnitude_spectrum,
    zero_metrics,
)
from polyscribe.audio.monitor import AudioMonitor
from polyscribe.audio.sources import (
    LiveAudioSource,
    SyntheticAudioSource,
    open_audio_source,
)
from polyscribe.config import AudioOptions
from polyscribe.errors import InitializationFailure


def _pulse_train(length: int, period: int) -> np.ndarray:
    samples = np.zeros(length)
    samples[::period] = 1.0
    return samples


def _banded_spectrum(n: int = 100, low: float = 0.0, mid: float = 0.0, high: float = 0.0) -> np.ndarray:
    spectrum = np.zeros(n)
    spectrum[: int(n * 0.1)] = low
    spectrum[int(n * 0.2): int(n * 0.7)] = mid
    spectrum[int(n * 0.7):] = high
    return spectrum


class TestAnalyzerMetrics(unittest.TestCase):

    def setUp(self):
        self.analyzer = AudioSignalAnalyzer(AudioOptions(sample_rate=16000))

    def test_silence_is_all_zero(self):
        metrics = self.analyzer.analyze(bytes([128] * 1024), bytes(512))
        self.assertEqual(metrics.volume, 0.0)
        self.assertEqual(metrics.pitch, 0.0)
        self.assertEqual(metrics.quality, 0.0)
        self.assertEqual(metrics.background_noise, 0.0)
        self.assertEqual(metrics.visualization, tuple([0.0] * 20))

    def test_volume_of_byte_samples_is_rms_of_centred_values(self):
        # 192 → (192 - 128) / 128 = 0.5
        metrics = self.analyzer.analyze(bytes([192] * 256), bytes(128))
        self.assertAlmostEqual(metrics.volume, 0.5)

    def test_volume_of_float_samples(self):
        samples = np.array([0.6, -0.6] * 100)
        self.assertAlmostEqual(self.analyzer.analyze(samples, []).volume, 0.6)

    def test_pitch_from_periodic_pulses(self):
        # Period 100 samples at 16 kHz → 160 Hz
        metrics = self.analyzer.analyze(_pulse_train(1024, 100), np.zeros(512))
        self.assertAlmostEqual(metrics.pitch, 160.0)

    def test_pitch_respects_search_range(self):
        analyzer = AudioSignalAnalyzer(AudioOptions(min_period=8, max_period=50))
        # Only lags 8..49 searched; a period-100 train has no correlation there
        self.assertEqual(analyzer.pitch(_pulse_train(1024, 100)), 0.0)

    def test_quality_rewards_mid_band_and_penalizes_high_band(self):
        clean = self.analyzer.analyze([], _banded_spectrum(mid=1.0, high=0.0))
        noisy = self.analyzer.analyze([], _banded_spectrum(mid=1.0, high=0.5))
        self.assertAlmostEqual(clean.quality, 1.0)
        self.assertAlmostEqual(noisy.quality, 0.5)

    def test_background_noise_is_low_band_mean(self):
        metrics = self.analyzer.analyze([], _banded_spectrum(low=0.4))
        self.assertAlmostEqual(metrics.background_noise, 0.4)

    def test_byte_magnitudes_are_scaled(self):
        metrics = self.analyzer.analyze([], bytes([255] * 100))
        self.assertAlmostEqual(metrics.background_noise, 1.0)

    def test_integer_lists_are_byte_values(self):
        silence = self.analyzer.analyze([128] * 1024, [0] * 512)
        self.assertEqual(silence.volume, 0.0)
        self.assertEqual(silence.pitch, 0.0)

        metrics = self.analyzer.analyze([192] * 256, [255] * 100)
        self.assertAlmostEqual(metrics.volume, 0.5)
        self.assertAlmostEqual(metrics.background_noise, 1.0)

    def test_visualization_block_average(self):
        spectrum = np.repeat(np.linspace(0.0, 1.0, 20), 2)
        values = AudioSignalAnalyzer.visualization(spectrum, 20)
        self.assertEqual(len(values), 20)
        self.assertAlmostEqual(values[0], 0.0)
        self.assertAlmostEqual(values[-1], 1.0)

    def test_visualization_with_fewer_bins_than_buckets(self):
        values = AudioSignalAnalyzer.visualization(np.array([0.5, 0.25]), 5)
        self.assertEqual(values, [0.5, 0.25, 0.0, 0.0, 0.0])

    def test_metrics_stay_in_unit_range(self):
        rng = np.random.default_rng(3)
        metrics = self.analyzer.analyze(rng.uniform(-1, 1, 2048), rng.uniform(0, 1, 1024))
        for value in (metrics.quality, metrics.background_noise, *metrics.visualization):
            self.assertGreaterEqual(value, 0.0)
            self.assertLessEqual(value, 1.0)


class TestAnalyzerFailures(unittest.TestCase):

    def test_invalid_buffers_return_zero_metrics(self):
        analyzer = AudioSignalAnalyzer()
        with self.assertLogs("polyscribe.audio.analyzer", level="WARNING"):
            metrics = analyzer.analyze("not audio", "nope")
        self.assertEqual(metrics, zero_metrics(20))

    def test_empty_buffers(self):
        metrics = AudioSignalAnalyzer().analyze(None, None)
        self.assertEqual(metrics.volume, 0.0)
        self.assertEqual(metrics.pitch, 0.0)

    def test_to_dict(self):
        data = AudioMetrics(volume=0.1, visualization=(0.2, 0.3)).to_dict()
        self.assertEqual(data["visualization"], [0.2, 0.3])
        self.assertEqual(data["volume"], 0.1)


class TestMagnitudeSpectrum(unittest.TestCase):

    def test_shape_and_range(self):
        t = np.arange(1024) / 16000
        spectrum = magnitude_spectrum(0.5 * np.sin(2 * np.pi * 440 * t), 2048)
        self.assertEqual(spectrum.shape, (1024,))
        self.assertGreaterEqual(float(spectrum.min()), 0.0)
        self.assertLessEqual(float(spectrum.max()), 1.0)
        self.assertGreater(float(spectrum.max()), 0.0)

    def test_silence(self):
        self.assertEqual(float(magnitude_spectrum(np.zeros(1024), 2048).max()), 0.0)


class TestAudioSources(unittest.TestCase):

    def test_synthetic_source_is_deterministic_for_seed(self):
        options = AudioOptions(fft_size=1024, synthetic_seed=42)
        first = SyntheticAudioSource(options).read_buffers()
        second = SyntheticAudioSource(options).read_buffers()
        np.testing.assert_array_equal(first[0], second[0])
        np.testing.assert_array_equal(first[1], second[1])
        self.assertEqual(first[0].shape, (512,))
        self.assertEqual(first[1].shape, (512,))

    def test_synthetic_signal_produces_voice_range_metrics(self):
        options = AudioOptions(synthetic_seed=7)
        samples, magnitudes = SyntheticAudioSource(options).read_buffers()
        metrics = AudioSignalAnalyzer(options).analyze(samples, magnitudes)
        self.assertGreater(metrics.volume, 0.0)
        self.assertGreater(metrics.pitch, 0.0)

    @patch.object(
        LiveAudioSource,
        "start",
        side_effect=InitializationFailure("live audio capture", "no input device"),
    )
    def test_live_mode_falls_back_to_synthetic(self, _mock_start):
        with self.assertLogs("polyscribe.audio.sources", level="WARNING"):
            source = open_audio_source(AudioOptions(mode="live"))
        self.assertIsInstance(source, SyntheticAudioSource)
        self.assertFalse(source.is_live)

    def test_unknown_mode_uses_synthetic(self):
        with self.assertLogs("polyscribe.audio.sources", level="WARNING"):
            source = open_audio_source(AudioOptions(mode="tape"))
        self.assertIsInstance(source, SyntheticAudioSource)

    def test_live_callback_fills_rolling_buffer(self):
        source = LiveAudioSource(AudioOptions(fft_size=8))
        source._callback(np.ones((4, 1), dtype=np.float32), 4, None, None)
        samples, magnitudes = source.read_buffers()
        np.testing.assert_array_equal(samples, np.ones(4, dtype=np.float32))
        self.assertEqual(magnitudes.shape, (4,))


class TestAudioMonitor(unittest.TestCase):

    def test_sample_updates_latest(self):
        options = AudioOptions(synthetic_seed=1)
        monitor = AudioMonitor(SyntheticAudioSource(options), AudioSignalAnalyzer(options))
        self.assertEqual(monitor.latest().volume, 0.0)
        metrics = monitor.sample()
        self.assertEqual(monitor.latest(), metrics)
        self.assertGreater(metrics.volume, 0.0)

    def test_read_failure_keeps_last_snapshot(self):
        options = AudioOptions(synthetic_seed=1)
        source = SyntheticAudioSource(options)
        monitor = AudioMonitor(source, AudioSignalAnalyzer(options))
        first = monitor.sample()

        source.read_buffers = MagicMock(side_effect=RuntimeError("device unplugged"))
        with self.assertLogs("polyscribe.audio.monitor", level="WARNING"):
            again = monitor.sample()
        self.assertEqual(again, first)


if __name__ == "__main__":
    unittest.main(verbosity=2)
