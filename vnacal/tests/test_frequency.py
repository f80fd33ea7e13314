import unittest

import numpy as npy
import pytest
from numpy.testing import assert_allclose, assert_almost_equal

import vnacal
from vnacal import Frequency, UsageError
from vnacal.frequency import (InvalidFrequencyWarning, check_frequency_range,
                              frequency_vector)


class FrequencyTestCase(unittest.TestCase):
    """
    Frequency class and the frequency vector checks.
    """
    def test_create_linear_sweep(self):
        freq = Frequency(1, 10, 10, 'ghz')
        self.assertEqual(freq.npoints, 10)
        self.assertEqual(len(freq), 10)
        assert_almost_equal(freq.f, npy.linspace(1e9, 10e9, 10))
        assert_almost_equal(freq.f_scaled, npy.linspace(1, 10, 10))
        self.assertEqual(freq.unit, 'GHz')
        self.assertEqual(str(freq), '1.0-10.0 GHz, 10 pts')

    def test_create_log_sweep(self):
        freq = Frequency(1, 100, 3, 'mhz', sweep_type='log')
        assert_allclose(freq.f, [1e6, 1e7, 1e8])
        with pytest.raises(ValueError):
            Frequency(0, 100, 3, 'mhz', sweep_type='log')

    def test_bad_unit(self):
        with pytest.raises(ValueError):
            Frequency(1, 2, 3, 'furlongs')

    def test_from_f(self):
        freq = Frequency.from_f([1, 2, 4], unit='khz')
        assert_allclose(freq.f, [1e3, 2e3, 4e3])
        self.assertEqual(Frequency.from_f(5, unit='hz').npoints, 1)
        with pytest.warns(InvalidFrequencyWarning):
            Frequency.from_f([2, 1], unit='hz')

    def test_equality(self):
        freq = Frequency(1, 2, 3, 'ghz')
        self.assertEqual(freq, Frequency.from_f([1e9, 1.5e9, 2e9], unit='hz'))
        self.assertNotEqual(freq, Frequency(1, 2, 4, 'ghz'))
        self.assertNotEqual(freq, freq.f)
        self.assertEqual(freq, freq.copy())
        self.assertEqual(freq.copy().unit, 'GHz')

    def test_frange(self):
        fmin, fmax = Frequency(1, 2, 3, 'ghz').frange
        assert_allclose([fmin, fmax], [0.99e9, 2.02e9])

    def test_shorthand(self):
        self.assertIs(vnacal.F, Frequency)


class FrequencyVectorTestCase(unittest.TestCase):
    def test_valid(self):
        assert_allclose(frequency_vector([1, 2, 3]), [1, 2, 3])
        assert_allclose(frequency_vector(Frequency(1, 2, 2, 'hz')), [1, 2])
        assert_allclose(frequency_vector(0), [0])

    def test_invalid(self):
        for f in ([], [1, 1], [2, 1], [-1, 1], [1, npy.inf], [npy.nan]):
            with pytest.raises(UsageError):
                frequency_vector(f)

    def test_range(self):
        f = npy.array([1e9, 2e9])
        check_frequency_range(f, (1e9, 2e9))
        with pytest.raises(UsageError, match='calibration range'):
            check_frequency_range(f, (1.1e9, 3e9), 'calibration')
        with pytest.raises(UsageError):
            check_frequency_range(f, (0, 1.9e9))
