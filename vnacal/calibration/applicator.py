'''
.. module:: vnacal.calibration.applicator
================================================================
applicator (:mod:`vnacal.calibration.applicator`)
================================================================

Correction of devices under test with more ports than the VNA.

The DUT is measured in several sweeps, each connecting some of its
ports to the VNA through a port map. Every sweep gives linear equations
in the DUT S-parameters; :class:`CalibrationApplicator` collects them
and solves them together.

.. autosummary::
   :toctree: generated/

   CalibrationApplicator

'''
import logging

import numpy as npy

from ..errors import MathError, UsageError
from ..mathFunctions import qrsolve_q
from ..util import check_dut_map
from .calibrationFunctions import (_index_list, correction_system,
                                   measured_matrix)

logger = logging.getLogger(__name__)


class CalibrationApplicator(object):
    '''
    Accumulates port-mapped measurements of a device under test.

    VNA ports mapped to -1 are terminated in a match; DUT ports that do
    not appear in a sweep's map are taken as matched too.

    Parameters
    ----------
    calibration : :class:`~vnacal.calibration.calibration.SolvedCalibration`
    frequency : :class:`~vnacal.frequency.Frequency` or array_like, optional
        frequencies of the measurements. Default is the calibration
        frequencies.
    ports : int, optional
        number of DUT ports, by default the calibration's

    Examples
    ----------
    Correct a 3-port DUT with a 2-port calibration:

    >>> app = CalibrationApplicator(solved, ports=3)
    >>> app.add_matrix(m=m01, port_map=[0, 1])
    >>> app.add_matrix(m=m02, port_map=[0, 2])
    >>> app.add_matrix(m=m12, port_map=[1, 2])
    >>> s = app.get_data()
    '''
    def __init__(self, calibration, frequency=None, ports=None):
        self.calibration = calibration
        self.layout = calibration.layout
        self.terms = calibration.interpolate_terms(frequency)
        if ports is None:
            ports = self.layout.ports
        if isinstance(ports, bool) or \
                not isinstance(ports, (int, npy.integer)) or ports < 1:
            raise UsageError('ports must be a positive integer, got %r'
                             % (ports,))
        self.ports = int(ports)
        self.covered = npy.zeros((self.ports, self.ports), dtype=bool)
        self._lhs = []
        self._rhs = []

    def __repr__(self):
        return 'CalibrationApplicator(%s, %d ports, %d sweeps)' % (
            self.layout.type, self.ports, self.nsweeps)

    @property
    def npoints(self):
        return len(self.terms)

    @property
    def nsweeps(self):
        '''
        number of measurements added
        '''
        return len(self._lhs)

    def add_matrix(self, m=None, a=None, b=None, port_map=None):
        '''
        Add one sweep of the DUT.

        Parameters
        ----------
        m : array_like, optional
            measurement, shape (F, m_rows, m_columns)
        a, b : array_like, optional
            incident and reflected waves, in place of `m`
        port_map : sequence of int, optional
            for each VNA port, the DUT port connected to it, or -1 if
            the VNA port is terminated. None is the identity map.

        Raises
        ------
        UsageError
            on invalid shapes or port maps
        MathError
            if `a` is singular at some frequency
        '''
        layout = self.layout
        vna_ports = layout.ports
        dut_map = check_dut_map(port_map, vna_ports, self.ports)
        measured = measured_matrix(layout, self.npoints, m=m, a=a, b=b)
        if measured.shape[1:] != (layout.m_rows, layout.m_columns):
            raise UsageError('measurement must be %d x %d, got %d x %d'
                             % (layout.m_rows, layout.m_columns,
                                measured.shape[1], measured.shape[2]))
        side, lhs, rhs = correction_system(layout, self.terms, measured)

        n = self.ports
        mapped = [k for k in range(vna_ports) if dut_map[k] != -1]
        equations = []
        if side == 'left':
            # P S = Q, one equation per (row of P, mapped column of S)
            for c in mapped:
                for r in range(lhs.shape[1]):
                    coef = npy.zeros((self.npoints, n * n), dtype=complex)
                    for k in mapped:
                        cell = dut_map[k] * n + dut_map[c]
                        coef[:, cell] = lhs[:, r, k]
                    equations.append((coef, rhs[:, r, c]))
        else:
            # S X = Y, one equation per (mapped row of S, column of X)
            for r in mapped:
                for c in range(lhs.shape[2]):
                    coef = npy.zeros((self.npoints, n * n), dtype=complex)
                    for k in mapped:
                        cell = dut_map[r] * n + dut_map[k]
                        coef[:, cell] = lhs[:, k, c]
                    equations.append((coef, rhs[:, r, c]))

        for k in mapped:
            for j in mapped:
                self.covered[dut_map[k], dut_map[j]] = True
        self._lhs.append(npy.stack([coef for coef, _ in equations], axis=1))
        self._rhs.append(npy.stack([value for _, value in equations], axis=1))
        logger.debug('sweep %d: %d equations for DUT ports %s',
                     self.nsweeps - 1, len(equations),
                     [dut_map[k] for k in mapped])

    def get_data(self):
        '''
        Solve the accumulated sweeps for the DUT S-parameters.

        Returns
        -------
        s : npy.ndarray
            shape (F, ports, ports). Cells that no sweep reaches are NaN.

        Raises
        ------
        MathError
            if the sweeps do not determine the reached cells at some
            frequency
        '''
        n = self.ports
        s = npy.full((self.npoints, n * n), npy.nan, dtype=complex)
        if not self.nsweeps:
            return s.reshape(self.npoints, n, n)
        cells = npy.flatnonzero(self.covered.ravel())
        lhs = npy.concatenate(self._lhs, axis=1)[:, :, cells]
        rhs = npy.concatenate(self._rhs, axis=1)
        if lhs.shape[1] < len(cells):
            raise MathError('insufficient number of measurements: %d '
                            'equations for %d DUT cells'
                            % (lhs.shape[1], len(cells)),
                            range(self.npoints))
        failed = []
        for findex in range(self.npoints):
            x, rank, _ = qrsolve_q(lhs[findex], rhs[findex])
            if rank < len(cells):
                failed.append(findex)
            else:
                s[findex, cells] = x
        if failed:
            raise MathError('singular linear system at frequency index %s'
                            % _index_list(failed), failed)
        return s.reshape(self.npoints, n, n)
