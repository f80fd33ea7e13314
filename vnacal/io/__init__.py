'''
.. module:: vnacal.io
========================================
io (:mod:`vnacal.io`)
========================================


This Package provides functions for input/output.

The general functions :func:`~general.read` and :func:`~general.write`
can be used to read and write [almost] any vnacal object to disk, using
the :mod:`pickle` module. Calibrations can also be written to JSON
strings and exported to a :class:`pandas.DataFrame`.


.. automodule:: vnacal.io.general


'''

from .general import *
