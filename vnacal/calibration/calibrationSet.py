'''
.. module:: vnacal.calibration.calibrationSet
================================================================
calibrationSet (:mod:`vnacal.calibration.calibrationSet`)
================================================================


Contains the CalibrationSet class, a container of named calibrations.

CalibrationSet Class
=====================

.. autosummary::
   :toctree: generated/

   CalibrationSet

'''
from numbers import Integral

from ..errors import UsageError
from .calibration import SolvedCalibration


class CalibrationSet(object):
    '''
    A set of named calibrations.

    Calibrations are addressed by index or by name. Deleting a
    calibration leaves its slot free, so the indices of the others do
    not change; the next calibration added takes the first free slot.

    Examples
    ----------
    >>> cals = CalibrationSet()
    >>> cals.add('bench', solved)
    0
    >>> cals['bench'] is cals[0]
    True
    >>> s = cals.apply('bench', m=m_dut)
    '''
    def __init__(self, calibrations=None):
        '''
        Parameters
        ----------
        calibrations : dict or iterable of (name, calibration), optional
            initial contents
        '''
        self._slots = []
        if calibrations is not None:
            if hasattr(calibrations, 'items'):
                calibrations = calibrations.items()
            for name, calibration in calibrations:
                self.add(name, calibration)

    def __repr__(self):
        return 'CalibrationSet(%s)' % ', '.join(
            '%r' % name for name in self.names)

    def __len__(self):
        return sum(1 for slot in self._slots if slot is not None)

    def __iter__(self):
        return (calibration for _, calibration in
                (slot for slot in self._slots if slot is not None))

    def __contains__(self, name):
        return self.find(name) != -1

    @property
    def names(self):
        '''
        names of the calibrations, in index order
        '''
        return [slot[0] for slot in self._slots if slot is not None]

    def add(self, name, calibration):
        '''
        Add a calibration under `name`.

        A calibration already stored under the same name is replaced and
        keeps its index.

        Parameters
        ----------
        name : str
        calibration : :class:`~vnacal.calibration.calibration.SolvedCalibration`

        Returns
        -------
        index : int
        '''
        if not isinstance(name, str) or not name:
            raise UsageError('calibration name must be a non-empty string')
        if not isinstance(calibration, SolvedCalibration):
            raise UsageError('expected a SolvedCalibration, got %s'
                             % type(calibration).__name__)
        index = self.find(name)
        if index == -1:
            try:
                index = self._slots.index(None)
            except ValueError:
                index = len(self._slots)
                self._slots.append(None)
        self._slots[index] = (name, calibration)
        return index

    def find(self, name):
        '''
        Index of the calibration named `name`, -1 if there is none.
        '''
        for index, slot in enumerate(self._slots):
            if slot is not None and slot[0] == name:
                return index
        return -1

    def _index(self, key):
        if isinstance(key, str):
            index = self.find(key)
            if index == -1:
                raise UsageError('no calibration named %r' % key)
            return index
        if isinstance(key, bool) or not isinstance(key, Integral):
            raise UsageError('calibrations are addressed by index or name, '
                             'got %r' % (key,))
        if not 0 <= key < len(self._slots) or self._slots[key] is None:
            raise UsageError('no calibration at index %d' % key)
        return int(key)

    def __getitem__(self, key):
        return self._slots[self._index(key)][1]

    def delete(self, key):
        '''
        Remove the calibration at index or name `key`.
        '''
        index = self._index(key)
        self._slots[index] = None
        while self._slots and self._slots[-1] is None:
            self._slots.pop()

    def __delitem__(self, key):
        self.delete(key)

    def apply(self, key, *args, **kwargs):
        '''
        Correct a measurement with the calibration at index or name `key`.

        \\*args, \\*\\*kwargs are passed to
        :func:`~vnacal.calibration.calibration.SolvedCalibration.apply`.
        '''
        return self[key].apply(*args, **kwargs)
