import unittest

import numpy as np
import pytest

from guitar_tuner.audio.pitch_estimator import PitchEstimator, estimate_pitch, noise_floor
from guitar_tuner.audio.tones import generate_tone, sine_frame
from guitar_tuner.tuner_types import AudioFrame

SAMPLE_RATE = 44100


class TestPitchEstimator(unittest.TestCase):
    def setUp(self):
        self.estimator = PitchEstimator()

    def assertPitch(self, estimate, expected, tolerance=0.005):
        self.assertIsNotNone(estimate)
        self.assertAlmostEqual(estimate, expected, delta=expected * tolerance)

    def test_a2_sine(self):
        frame = AudioFrame(sine_frame(110.0, 4096, SAMPLE_RATE), SAMPLE_RATE)
        self.assertPitch(self.estimator.estimate(frame, 0.01), 110.0)

    def test_open_strings(self):
        for freq in (82.41, 110.0, 146.83, 196.0, 246.94, 329.63):
            for size in (4096, 8192):
                with self.subTest(freq=freq, size=size):
                    frame = AudioFrame(sine_frame(freq, size, SAMPLE_RATE), SAMPLE_RATE)
                    self.assertPitch(self.estimator.estimate(frame, 0.01), freq)

    def test_other_sample_rate(self):
        frame = AudioFrame(sine_frame(196.0, 4096, 48000), 48000)
        self.assertPitch(self.estimator.estimate(frame, 0.01), 196.0)

    def test_harmonics_report_fundamental(self):
        t = np.arange(8192) / SAMPLE_RATE
        signal = (
            0.4 * np.sin(2 * np.pi * 110.0 * t)
            + 0.25 * np.sin(2 * np.pi * 220.0 * t)
            + 0.15 * np.sin(2 * np.pi * 330.0 * t)
        )
        frame = AudioFrame(signal, SAMPLE_RATE)
        self.assertPitch(self.estimator.estimate(frame, 0.01), 110.0)

    def test_dc_offset_removed(self):
        samples = sine_frame(146.83, 4096, SAMPLE_RATE) + 0.3
        self.assertPitch(self.estimator.estimate(AudioFrame(samples, SAMPLE_RATE), 0.01), 146.83)

    def test_silence(self):
        silence = np.zeros(4096)
        for sensitivity in (0.001, 0.01, 0.05, 0.1):
            with self.subTest(sensitivity=sensitivity):
                self.assertIsNone(self.estimator.estimate(AudioFrame(silence, SAMPLE_RATE), sensitivity))

    def test_quiet_signal_is_gated(self):
        # RMS of about 0.0035: below the floor at the lowest sensitivity only
        frame = AudioFrame(sine_frame(110.0, 4096, SAMPLE_RATE, amplitude=0.005), SAMPLE_RATE)
        self.assertIsNone(self.estimator.estimate(frame, 0.001))
        self.assertPitch(self.estimator.estimate(frame, 0.1), 110.0)

    def test_malformed_frames(self):
        self.assertIsNone(self.estimator.estimate(AudioFrame(sine_frame(110.0, 1024), SAMPLE_RATE), 0.01))
        self.assertIsNone(self.estimator.estimate(AudioFrame(sine_frame(110.0, 3000), SAMPLE_RATE), 0.01))
        self.assertIsNone(self.estimator.estimate(AudioFrame(sine_frame(110.0, 32768), SAMPLE_RATE), 0.01))
        self.assertIsNone(self.estimator.estimate(AudioFrame(sine_frame(110.0, 4096), 0), 0.01))

        samples = sine_frame(110.0, 4096).astype(np.float64)
        samples[100] = np.nan
        self.assertIsNone(self.estimator.estimate(AudioFrame(samples, SAMPLE_RATE), 0.01))

    def test_out_of_range_frequencies(self):
        low = AudioFrame(sine_frame(25.0, 16384, SAMPLE_RATE), SAMPLE_RATE)
        self.assertIsNone(self.estimator.estimate(low, 0.01))
        high = AudioFrame(sine_frame(4000.0, 4096, SAMPLE_RATE), SAMPLE_RATE)
        self.assertIsNone(self.estimator.estimate(high, 0.01))

    def test_custom_range(self):
        narrow = PitchEstimator(min_frequency=150.0, max_frequency=400.0)
        frame = AudioFrame(sine_frame(110.0, 4096, SAMPLE_RATE), SAMPLE_RATE)
        self.assertIsNone(narrow.estimate(frame, 0.01))

    def test_invalid_construction(self):
        with self.assertRaises(ValueError):
            PitchEstimator(min_frequency=500.0, max_frequency=100.0)
        with self.assertRaises(ValueError):
            PitchEstimator(min_correlation=0.0)


def test_estimate_pitch_accepts_lists():
    samples = sine_frame(220.0, 4096, SAMPLE_RATE).tolist()
    assert estimate_pitch(samples, SAMPLE_RATE) == pytest.approx(220.0, rel=0.005)


def test_estimate_pitch_rejects_garbage():
    assert estimate_pitch(["a"] * 4096, SAMPLE_RATE) is None


def test_plucked_tone():
    # Decaying tone as produced for the reference notes
    tone = generate_tone(196.0, duration=0.5, amplitude=0.3)
    assert estimate_pitch(tone[2048 : 2048 + 4096], SAMPLE_RATE) == pytest.approx(196.0, rel=0.005)


def test_noise_floor_decreases_with_sensitivity():
    floors = [noise_floor(s) for s in np.linspace(0.001, 0.1, 12)]
    assert all(a > b for a, b in zip(floors, floors[1:]))
    assert noise_floor(0.001) == pytest.approx(PitchEstimator.FLOOR_AT_MIN_SENSITIVITY)
    assert noise_floor(0.1) == pytest.approx(PitchEstimator.FLOOR_AT_MAX_SENSITIVITY)


def test_noise_floor_clamps():
    assert noise_floor(5.0) == noise_floor(0.1)
    assert noise_floor(0.0) == noise_floor(0.001)


def _misses(frequencies, size):
    estimator = PitchEstimator()
    misses = []
    for freq in frequencies:
        estimate = estimator.estimate(AudioFrame(sine_frame(freq, size, SAMPLE_RATE), SAMPLE_RATE), 0.01)
        if estimate is None or abs(estimate - freq) > 0.005 * freq:
            misses.append((round(float(freq), 2), estimate))
    return misses


@pytest.mark.parametrize("size", [4096, 8192])
def test_upper_range_sweep(size):
    # Periods here are not whole samples; multiples of the period must not win
    assert _misses(np.arange(300.0, 2000.0, 7.3), size) == []


@pytest.mark.parametrize(
    "size,lowest",
    [(2048, 120.0), (4096, 60.0), (8192, 40.0), (16384, 40.0)],
)
def test_lower_range_sweep(size, lowest):
    assert _misses(np.geomspace(lowest, 300.0, 24), size) == []


def test_long_frames_high_notes():
    assert _misses([1174.66, 1318.51, 1500.0, 1900.0, 2000.0], 16384) == []


def test_high_e_top_frets():
    # Frets 22 to 24 of the high E string
    frets = [329.63 * 2 ** (n / 12) for n in (22, 23, 24)]
    assert _misses(frets, 4096) == []


def test_range_bounds_are_reachable():
    estimator = PitchEstimator()
    top = estimator.estimate(AudioFrame(sine_frame(2000.0, 4096, SAMPLE_RATE), SAMPLE_RATE), 0.01)
    assert top is not None and top <= PitchEstimator.MAX_FREQUENCY
    assert top == pytest.approx(2000.0, rel=0.001)

    bottom = estimator.estimate(AudioFrame(sine_frame(40.0, 8192, SAMPLE_RATE), SAMPLE_RATE), 0.01)
    assert bottom is not None and bottom >= PitchEstimator.MIN_FREQUENCY
    assert bottom == pytest.approx(40.0, rel=0.005)


def test_short_frame_cannot_hold_lowest_period():
    # 2048 samples only cover lags up to 1024, about 43 Hz at 44.1 kHz
    frame = AudioFrame(sine_frame(40.0, 2048, SAMPLE_RATE), SAMPLE_RATE)
    assert PitchEstimator().estimate(frame, 0.01) is None


def test_noisy_tone():
    rng = np.random.default_rng(7)
    samples = sine_frame(196.0, 4096, SAMPLE_RATE) + rng.normal(0.0, 0.02, 4096)
    assert estimate_pitch(samples, SAMPLE_RATE) == pytest.approx(196.0, rel=0.005)


def test_white_noise_has_no_pitch():
    rng = np.random.default_rng(11)
    for size in (2048, 4096, 8192):
        assert estimate_pitch(rng.normal(0.0, 0.1, size), SAMPLE_RATE) is None
