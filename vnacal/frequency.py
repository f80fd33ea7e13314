"""
.. currentmodule:: vnacal.frequency

========================================
frequency (:mod:`vnacal.frequency`)
========================================

Provides a frequency object and related functions.

Most of the functionality is provided as methods and properties of the
:class:`Frequency` Class.


Frequency Class
===============
.. autosummary::
   :toctree: generated/

   Frequency

Functions
=========

.. autosummary::
    :toctree: generated/

    frequency_vector
    check_frequency_range

Misc
====

.. autosummary::
    :toctree: generated/

    InvalidFrequencyWarning

"""
import warnings
from typing import Union

import numpy as npy
from numpy import linspace, geomspace

from .constants import NumberLike, F_EXTRAPOLATION
from .errors import UsageError


class InvalidFrequencyWarning(UserWarning):
    """Thrown if frequency values aren't monotonously increasing
    """
    pass


class Frequency:
    """
    A frequency band.

    The frequency object holds a frequency vector in Hz (:attr:`f`)
    together with a display unit, so that the same vector is also
    available scaled to that unit (:attr:`f_scaled`).

    A Frequency object can be created from (start, stop, npoints) using
    the default constructor, or from an arbitrary frequency vector by
    using the class method :func:`from_f`.
    """
    unit_dict = {
            'hz': 'Hz',
            'khz': 'kHz',
            'mhz': 'MHz',
            'ghz': 'GHz',
            'thz': 'THz'
            }
    """
    Dictionnary to convert unit string with correct capitalization for display.
    """

    multiplier_dict = {
            'hz': 1,
            'khz': 1e3,
            'mhz': 1e6,
            'ghz': 1e9,
            'thz': 1e12
            }
    """
    Frequency unit multipliers.
    """

    def __init__(self, start: float = 0, stop: float = 0, npoints: int = 0,
        unit: str = 'ghz', sweep_type: str = 'lin') -> None:
        """
        Frequency initializer.

        Parameters
        ----------
        start : number, optional
            start frequency in  units of `unit`. Default is 0.
        stop : number, optional
            stop frequency in  units of `unit`. Default is 0.
        npoints : int, optional
            number of points in the band. Default is 0.
        unit : string, optional
            Frequency unit of the band: 'hz', 'khz', 'mhz', 'ghz', 'thz'.
            Not case sensitive. Default is 'ghz'.
        sweep_type : string, optional
            'lin' for linear and 'log' for logarithmic. Default is 'lin'.

        Examples
        --------
        >>> band = Frequency(1, 10, 91, 'ghz')

        """
        if unit.lower() not in self.multiplier_dict:
            raise ValueError('Frequency unit %r not recognized' % unit)
        self._unit = unit.lower()

        start = self.multiplier * start
        stop = self.multiplier * stop

        if sweep_type.lower() == 'lin':
            self._f = linspace(start, stop, npoints)
        elif sweep_type.lower() == 'log' and start > 0:
            self._f = geomspace(start, stop, npoints)
        else:
            raise ValueError('Sweep Type not recognized')

    def __str__(self) -> str:
        try:
            output = '%s-%s %s, %i pts' % \
                (self.f_scaled[0], self.f_scaled[-1], self.unit, self.npoints)
        except IndexError:
            output = "[no freqs]"

        return output

    def __repr__(self) -> str:
        return self.__str__()

    @classmethod
    def from_f(cls, f: NumberLike, *args, **kwargs) -> 'Frequency':
        """
        Construct Frequency object from a frequency vector.

        The unit is set by kwarg 'unit'

        Parameters
        ----------
        f : scalar or array-like
            frequency vector

        *args, **kwargs : arguments, keyword arguments
            passed on to  :func:`__init__`.

        Returns
        -------
        myfrequency : :class:`Frequency` object
            the Frequency object

        Raises
        ------
        InvalidFrequencyWarning:
            If frequency points are not monotonously increasing

        Examples
        --------
        >>> f = npy.linspace(75,100,101)
        >>> vnacal.Frequency.from_f(f, unit='ghz')
        """
        if npy.isscalar(f):
            f = [f]
        temp_freq = cls(0, 0, 0, *args, **kwargs)
        temp_freq._f = npy.array(f, dtype=float).reshape(-1) \
            * temp_freq.multiplier
        temp_freq.check_monotonic_increasing()

        return temp_freq

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, self.__class__):
            return False
        if len(self.f) != len(other.f):
            return False
        elif len(self.f) == len(other.f) == 0:
            return True
        else:
            return bool(npy.allclose(self.f, other.f, rtol=1e-12, atol=0))

    def __ne__(self, other: object) -> bool:
        return (not self.__eq__(other))

    def __len__(self) -> int:
        """
        The number of frequency points
        """
        return self.npoints

    def check_monotonic_increasing(self) -> None:
        """Validate the frequency values

        Raises
        ------
        InvalidFrequencyWarning:
            If frequency points are not monotonously increasing
        """
        increase = npy.diff(self.f) > 0
        if not increase.all():
            warnings.warn("Frequency values are not monotonously increasing!",
                InvalidFrequencyWarning, stacklevel=3)

    @property
    def start(self) -> float:
        """
        Starting frequency in Hz.
        """
        return self.f[0]

    @property
    def stop(self) -> float:
        """
        Stopping frequency in Hz.
        """
        return self.f[-1]

    @property
    def npoints(self) -> int:
        """
        Number of points in the frequency.
        """
        return len(self.f)

    @property
    def f(self) -> npy.ndarray:
        """
        Frequency vector in Hz.
        """
        return self._f

    @property
    def f_scaled(self) -> npy.ndarray:
        """
        Frequency vector in units of :attr:`unit`.
        """
        return self.f/self.multiplier

    @property
    def unit(self) -> str:
        """
        Unit of this frequency band.

        Possible strings for this attribute are:
        'hz', 'khz', 'mhz', 'ghz', 'thz'

        Setting this attribute is not case sensitive.
        """
        return self.unit_dict[self._unit]

    @unit.setter
    def unit(self, unit: str) -> None:
        self._unit = unit.lower()

    @property
    def multiplier(self) -> float:
        """
        Multiplier of this Frequency's unit.
        """
        return self.multiplier_dict[self._unit]

    @property
    def frange(self):
        """
        Range accepted for data measured against this band: the band
        widened by :data:`~vnacal.constants.F_EXTRAPOLATION` at each end.
        """
        return ((1.0 - F_EXTRAPOLATION) * self.start,
                (1.0 + F_EXTRAPOLATION) * self.stop)

    def copy(self) -> 'Frequency':
        """
        Returns a new copy of this frequency.
        """
        freq = Frequency.from_f(self.f, unit='hz')
        freq.unit = self.unit
        return freq


def frequency_vector(frequency: Union[Frequency, NumberLike]) -> npy.ndarray:
    """
    Return a validated frequency vector in Hz.

    Parameters
    ----------
    frequency : :class:`Frequency` or array_like
        a Frequency, or frequencies in Hz

    Raises
    ------
    UsageError
        if the vector is empty, or has negative, non-finite or
        non-increasing values
    """
    if isinstance(frequency, Frequency):
        f = frequency.f
    else:
        f = npy.array(frequency, dtype=float).reshape(-1)
    if len(f) == 0:
        raise UsageError('frequency vector is empty')
    if not npy.all(npy.isfinite(f)) or npy.any(f < 0):
        raise UsageError('frequencies must be finite and non-negative')
    if npy.any(npy.diff(f) <= 0):
        raise UsageError('frequencies must be strictly increasing')
    return npy.array(f, dtype=float)


def check_frequency_range(f: npy.ndarray, frange, what='value') -> None:
    """
    Raise :class:`~vnacal.errors.UsageError` if `f` leaves `frange`.

    Parameters
    ----------
    f : npy.ndarray
        increasing frequencies in Hz
    frange : tuple of float
        (fmin, fmax) of the accepted range
    what : str
        name of the checked object, used in the message
    """
    fmin, fmax = frange
    if f[0] < fmin or f[-1] > fmax:
        raise UsageError('frequency range %.6e..%.6e Hz is outside of the '
                         '%s range %.6e..%.6e Hz'
                         % (f[0], f[-1], what, fmin, fmax))
