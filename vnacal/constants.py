"""
.. currentmodule:: vnacal.constants

========================================
constants (:mod:`vnacal.constants`)
========================================

This module contains the numerical tolerances and defaults shared by the
calibration engine.

.. data:: EPS

    Relative tolerance used for every comparison against zero:
    the square root of the double precision machine epsilon.

.. data:: F_EXTRAPOLATION

    Fraction by which a frequency range may be exceeded at either end
    before a value is refused (0.01, i.e. 1%).

.. data:: Z0_DEFAULT

    Default reference impedance in ohms (50).

.. data:: INTERP_ORDER

    Order of the barycentric rational interpolation used for vector
    parameters and error terms (4).

.. data:: RESIDUAL_WARN_THRESHOLD

    Relative residual of an over-determined calibration system above
    which a :class:`~vnacal.errors.ResidualWarning` is issued.

"""
from numbers import Number
from typing import Sequence, Union

import numpy as npy

NumberLike = Union[Number, Sequence[Number], npy.ndarray]

EPS = float(npy.sqrt(npy.finfo(float).eps))

F_EXTRAPOLATION = 0.01

Z0_DEFAULT = 50

INTERP_ORDER = 4

RESIDUAL_WARN_THRESHOLD = 1e-3
