"""
.. currentmodule:: vnacal.parameter

========================================
parameter (:mod:`vnacal.parameter`)
========================================

Frequency dependent values of calibration standards.

A parameter resolves, at a vector of frequencies, to a vector of complex
reflection or transmission coefficients. Parameters are plain objects
owned by the caller; a calibration only holds references to them.

Parameter Classes
=================
.. autosummary::
   :toctree: generated/

   Parameter
   ScalarParameter
   VectorParameter
   UnknownParameter
   CorrelatedParameter

Predefined Parameters
=====================

.. data:: ZERO

    The structural zero: marks S-parameters through which no signal
    passes. Off-diagonal cells that can only be reached through ZERO
    cells are used to measure leakage.

.. data:: MATCH

    Same object as :data:`ZERO`: a perfect load.

.. data:: ONE

    Perfect through, 1.

.. data:: OPEN

    Ideal open, 1.

.. data:: SHORT

    Ideal short, -1.

Functions
=========
.. autosummary::
   :toctree: generated/

   as_parameter

"""
from numbers import Number

import numpy as npy

from .constants import F_EXTRAPOLATION
from .errors import UsageError
from .frequency import Frequency, frequency_vector
from .mathFunctions import rational_interp_clamped


class Parameter(object):
    """
    Base class for all parameters.

    Sub-classes implement :func:`resolve` and may narrow
    :attr:`frange`.
    """
    is_unknown = False

    def __init__(self, name=None):
        self.name = name

    def __repr__(self):
        name = '' if self.name is None else ' \'%s\'' % self.name
        return '%s%s' % (self.__class__.__name__, name)

    @property
    def frange(self):
        """
        (fmin, fmax) in Hz over which the parameter can be resolved.
        """
        return (0.0, npy.inf)

    def resolve(self, frequency) -> npy.ndarray:
        """
        Values of the parameter at the given frequencies.

        Parameters
        ----------
        frequency : number or array_like
            frequencies in Hz

        Returns
        -------
        values : complex :class:`numpy.ndarray`
            one value per frequency
        """
        raise NotImplementedError('The Subclass must implement this')


class ScalarParameter(Parameter):
    """
    A frequency independent value.

    Examples
    --------
    >>> gamma = vnacal.ScalarParameter(0.5 + 0.1j)
    """
    def __init__(self, value, name=None):
        super().__init__(name=name)
        if not isinstance(value, Number):
            raise UsageError('scalar parameter needs a number, got %r'
                             % (value,))
        self.value = complex(value)

    def __repr__(self):
        return '%s(%s)' % (super().__repr__(), self.value)

    def resolve(self, frequency) -> npy.ndarray:
        f = npy.atleast_1d(npy.asarray(frequency, dtype=float))
        return npy.full(f.shape, self.value, dtype=complex)


class VectorParameter(Parameter):
    """
    A value tabulated against frequency.

    Values between the tabulated frequencies are found by barycentric
    rational interpolation (:func:`~vnacal.mathFunctions.rational_interp`).
    The parameter may be resolved up to
    :data:`~vnacal.constants.F_EXTRAPOLATION` beyond either end of the
    table, where the end value is held.

    Parameters
    ----------
    frequency : :class:`~vnacal.frequency.Frequency` or array_like
        table frequencies in Hz, strictly increasing
    values : array_like
        complex value at each table frequency
    name : str, optional
    """
    def __init__(self, frequency, values, name=None):
        super().__init__(name=name)
        self.f = frequency_vector(frequency)
        values = npy.array(values, dtype=complex).reshape(-1)
        if len(values) != len(self.f):
            raise UsageError('vector parameter has %d frequencies but %d '
                             'values' % (len(self.f), len(values)))
        self.values = values

    @property
    def frange(self):
        return ((1.0 - F_EXTRAPOLATION) * self.f[0],
                (1.0 + F_EXTRAPOLATION) * self.f[-1])

    def resolve(self, frequency) -> npy.ndarray:
        f = npy.atleast_1d(npy.asarray(frequency, dtype=float))
        fmin, fmax = self.frange
        if npy.any(f < fmin) or npy.any(f > fmax):
            raise UsageError('frequency outside of the range of %r' % self)
        if len(f) == len(self.f) and npy.array_equal(f, self.f):
            return self.values.copy()
        return rational_interp_clamped(self.f, self.values, f)


class UnknownParameter(Parameter):
    """
    A parameter whose value is not known in advance.

    It resolves through its initial guess.

    Parameters
    ----------
    initial : :class:`Parameter` or number
        the initial guess
    name : str, optional
    """
    is_unknown = True

    def __init__(self, initial, name=None):
        super().__init__(name=name)
        self.initial = as_parameter(initial)

    @property
    def frange(self):
        return self.initial.frange

    def resolve(self, frequency) -> npy.ndarray:
        return self.initial.resolve(frequency)


class CorrelatedParameter(UnknownParameter):
    """
    An unknown parameter known to lie close to another parameter.

    It resolves to the other parameter plus `offset`.

    Parameters
    ----------
    other : :class:`Parameter` or number
        the parameter this one is correlated with
    sigma : number or :class:`Parameter`
        standard deviation of the difference between the two
    offset : number, optional
        additive perturbation applied on resolution, default 0
    name : str, optional
    """
    def __init__(self, other, sigma, offset=0, name=None):
        super().__init__(other, name=name)
        if isinstance(sigma, Number) and (sigma.imag != 0 or sigma.real < 0):
            raise UsageError('sigma must be a non-negative real number')
        self.sigma = sigma
        self.offset = complex(offset)

    @property
    def other(self):
        return self.initial

    def resolve(self, frequency) -> npy.ndarray:
        return self.initial.resolve(frequency) + self.offset


ZERO = ScalarParameter(0, name='match')
MATCH = ZERO
ONE = ScalarParameter(1, name='one')
OPEN = ScalarParameter(1, name='open')
SHORT = ScalarParameter(-1, name='short')


def as_parameter(value, frequency=None) -> Parameter:
    """
    Return `value` as a :class:`Parameter`.

    Parameters
    ----------
    value : :class:`Parameter`, number or array_like
        A number becomes a :class:`ScalarParameter` (exactly 0 becomes
        :data:`ZERO`). A vector becomes a :class:`VectorParameter` tabulated
        at `frequency`; a vector that is 0 everywhere becomes :data:`ZERO`.
    frequency : :class:`~vnacal.frequency.Frequency` or array_like, optional
        frequencies of a vector value

    Raises
    ------
    UsageError
        if `value` cannot be interpreted
    """
    if isinstance(value, Parameter):
        return value
    if isinstance(value, Number):
        if value == 0:
            return ZERO
        return ScalarParameter(value)
    values = npy.asarray(value)
    if values.ndim == 0:
        return as_parameter(complex(values))
    if frequency is None:
        raise UsageError('a vector value needs a frequency vector')
    if isinstance(frequency, Frequency):
        frequency = frequency.f
    if values.ndim != 1 or len(values) != len(frequency):
        raise UsageError('vector value must have one entry per frequency '
                         '(%d), got shape %s' % (len(frequency), values.shape))
    if not npy.any(values):
        return ZERO
    return VectorParameter(frequency, values)
