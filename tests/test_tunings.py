import math
import unittest

import pytest

from guitar_tuner.note_utils import note_from_frequency
from guitar_tuner.tuner_types import (
    ConfigurationError,
    SessionConfig,
    StringTarget,
    TuningDefinition,
)
from guitar_tuner.tunings import TUNINGS, get_tuning, parse_tuning, tuning_names


class TestPresetTunings(unittest.TestCase):
    def test_catalog(self):
        self.assertEqual(
            tuning_names(),
            ["Standard", "Eb Tuning", "Open G", "Open E", "Open D", "DADGAD"],
        )
        for tuning in TUNINGS:
            self.assertEqual(len(tuning), 6)

    def test_standard(self):
        standard = get_tuning("Standard")
        self.assertEqual(standard.notes, ("E", "A", "D", "G", "B", "E"))
        self.assertEqual(standard.frequencies, (82.41, 110.0, 146.83, 196.0, 246.94, 329.63))

    def test_lookup_ignores_case(self):
        self.assertIs(get_tuning("dadgad"), get_tuning("DADGAD"))
        self.assertIs(get_tuning("  open g "), get_tuning("Open G"))

    def test_unknown_tuning(self):
        with self.assertRaises(ConfigurationError):
            get_tuning("Drop Q")

    def test_sharp_names_match_frequencies(self):
        # Presets written with sharps name the note their frequency maps to
        for tuning in TUNINGS:
            for target in tuning:
                if "b" not in target.note:
                    self.assertEqual(note_from_frequency(target.frequency), target.note)


class TestParseTuning(unittest.TestCase):
    def test_parse(self):
        tuning = parse_tuning("D:73.42, a=110, D3:146.83")
        self.assertEqual(tuning.name, "Custom")
        self.assertEqual(tuning.notes, ("D", "A", "D3"))
        self.assertEqual(tuning.frequencies, (73.42, 110.0, 146.83))

    def test_duplicates_kept(self):
        tuning = parse_tuning("E:82.41,E:82.41", name="Twins")
        self.assertEqual(len(tuning), 2)
        self.assertEqual(tuning.name, "Twins")

    def test_errors(self):
        for text in ("", " , ", "E", "E:abc", "H:100", "E:82.41,,A"):
            with self.subTest(text=text):
                with self.assertRaises(ConfigurationError):
                    parse_tuning(text)

    def test_zero_frequency_rejected(self):
        with self.assertRaises(ConfigurationError):
            parse_tuning("E:0")


class TestTuningDefinition(unittest.TestCase):
    def test_empty_rejected(self):
        with self.assertRaises(ConfigurationError):
            TuningDefinition(name="Empty", strings=())

    def test_bad_frequency_rejected(self):
        for freq in (0.0, -82.41, math.nan, math.inf):
            with self.subTest(freq=freq):
                with self.assertRaises(ConfigurationError):
                    TuningDefinition(name="Bad", strings=(StringTarget("E", freq),))

    def test_non_target_rejected(self):
        with self.assertRaises(ConfigurationError):
            TuningDefinition(name="Bad", strings=(82.41,))

    def test_from_pairs_length_mismatch(self):
        with self.assertRaises(ConfigurationError):
            TuningDefinition.from_pairs("Bad", ["E", "A"], [82.41])

    def test_configuration_error_is_value_error(self):
        self.assertTrue(issubclass(ConfigurationError, ValueError))

    def test_str(self):
        self.assertEqual(str(get_tuning("DADGAD")), "DADGAD: D - A - D - G - A - D")


@pytest.mark.parametrize("tolerance", [-1, 9, 2.5, True, "5"])
def test_session_config_rejects_tolerance(tolerance):
    with pytest.raises(ConfigurationError):
        SessionConfig(tolerance_cents=tolerance)


@pytest.mark.parametrize("sensitivity", [0.0, 0.0009, 0.2, math.nan])
def test_session_config_rejects_sensitivity(sensitivity):
    with pytest.raises(ConfigurationError):
        SessionConfig(sensitivity=sensitivity)


def test_session_config_bounds_accepted():
    assert SessionConfig(0, 0.001).tolerance_cents == 0
    assert SessionConfig(8, 0.1).sensitivity == 0.1


def test_session_config_clamped():
    config = SessionConfig.clamped(12, 0.5)
    assert config == SessionConfig(8, 0.1)
    config = SessionConfig.clamped(-3, 0.0)
    assert config == SessionConfig(0, 0.001)
