"""
.. currentmodule:: vnacal.errors

========================================
errors (:mod:`vnacal.errors`)
========================================

Exceptions and warnings raised by the calibration engine.

Every error carries a :attr:`~VnacalError.category`:

* ``'usage'``: invalid arguments, dimensions or port maps
* ``'math'``: singular or rank-deficient systems, too few standards
* ``'system'``: resources could not be allocated

.. autosummary::
   :toctree: generated/

   VnacalError
   UsageError
   MathError
   VnacalSystemError
   ResidualWarning

"""


class VnacalError(Exception):
    """
    Base class of all calibration errors.
    """
    category = None


class UsageError(VnacalError, ValueError):
    """
    Raised when a function is called with invalid arguments.
    """
    category = 'usage'


class MathError(VnacalError, ArithmeticError):
    """
    Raised when a system of equations is singular or rank deficient.

    Parameters
    ----------
    message : str
        description of the failure
    frequency_indices : list of int, optional
        indices of every frequency at which the failure occurred
    """
    category = 'math'

    def __init__(self, message, frequency_indices=None):
        super().__init__(message)
        if frequency_indices is None:
            frequency_indices = []
        self.frequency_indices = [int(k) for k in frequency_indices]


class VnacalSystemError(VnacalError, MemoryError):
    """
    Raised when working storage cannot be allocated.
    """
    category = 'system'


class ResidualWarning(UserWarning):
    """Thrown if an over-determined calibration leaves a large residual
    """
    pass
