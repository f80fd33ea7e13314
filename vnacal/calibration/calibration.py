'''
.. module:: vnacal.calibration.calibration
================================================================
calibration (:mod:`vnacal.calibration.calibration`)
================================================================


This module provides objects for VNA calibration. A
:class:`CalibrationSolver` collects measurements of calibration
standards and solves them for the error terms of one of the
calibration types of :class:`~vnacal.calibration.layout.CalibrationType`.
The result is a :class:`SolvedCalibration`, which corrects raw
measurements of a device under test.

Solver
--------------

.. autosummary::
   :toctree: generated/

   CalibrationSolver

Solved Calibration
----------------------

.. autosummary::
   :toctree: generated/

   SolvedCalibration

'''
import logging
import warnings
from collections import OrderedDict, namedtuple
from numbers import Number

import numpy as npy
from scipy.interpolate import interp1d

from ..constants import RESIDUAL_WARN_THRESHOLD, Z0_DEFAULT
from ..errors import MathError, ResidualWarning, UsageError, VnacalSystemError
from ..frequency import (Frequency, check_frequency_range,
                         frequency_vector)
from ..mathFunctions import qrsolve_q, rational_interp_clamped
from ..parameter import ZERO, MATCH, ONE, Parameter, as_parameter
from ..util import _check_port_index, check_standard_map, transitive_closure
from .calibrationFunctions import (_index_list, correct_terms, embed_terms,
                                   measured_matrix, term_coefficients,
                                   ue14_to_e12)
from .layout import CalibrationType, get_layout

logger = logging.getLogger(__name__)


# a standard in VNA port order
_Standard = namedtuple('_Standard',
                       's m row_given column_given connected reach')


def _as_frequency(frequency):
    if isinstance(frequency, Frequency):
        frequency_vector(frequency)
        return frequency.copy()
    return Frequency.from_f(frequency_vector(frequency), unit='hz')


def _check_z0(z0, ports, npoints):
    z0 = npy.array(z0, dtype=complex)
    if z0.ndim == 0 or z0.shape in ((ports,), (npoints, ports)):
        return z0
    raise UsageError('z0 must be a number, a vector of %d impedances or a '
                     '%d x %d matrix, got shape %s'
                     % (ports, npoints, ports, z0.shape))


class CalibrationSolver(object):
    '''
    Collects measured calibration standards and solves for error terms.

    Standards are added with :func:`add_standard` or one of the
    convenience adders, then :func:`solve` returns a
    :class:`SolvedCalibration`. Once solved, no more standards can be
    added.

    Notes
    -------
    Each standard gives linear equations in the error terms:

    ========  ==================================================
    family    equations
    ========  ==================================================
    T         :math:`T_s S + T_i - M T_x S - M T_m = 0`
    U         :math:`U_m M + U_i - S U_x M - S U_s = 0`
    ========  ==================================================

    One term per system is fixed to 1. UE14 is solved one measurement
    column at a time and E12 is solved as UE14, then converted.

    Except for T16 and U16, off-diagonal cells through which the
    standard passes no signal give no equations. Instead they measure
    the leakage terms, each of which is the mean over the standards
    isolating its cell.

    Unknown parameters of the standards are taken at their initial
    values.

    Examples
    ----------
    >>> cal = CalibrationSolver(f, 'TE10', 2, 2)
    >>> cal.add_double_reflect(SHORT, SHORT, 0, 1, m=m_short)
    >>> cal.add_double_reflect(OPEN, OPEN, 0, 1, m=m_open)
    >>> cal.add_double_reflect(MATCH, MATCH, 0, 1, m=m_match)
    >>> cal.add_through(0, 1, m=m_thru)
    >>> solved = cal.solve()
    >>> s = solved.apply(m=m_dut)
    '''
    family = 'Solver'

    def __init__(self, frequency, cal_type, m_rows, m_columns,
                 z0=Z0_DEFAULT, name=None):
        '''
        CalibrationSolver initializer.

        Parameters
        ----------
        frequency : :class:`~vnacal.frequency.Frequency` or array_like
            calibration frequencies; a vector is taken in Hz
        cal_type : :class:`~vnacal.calibration.layout.CalibrationType` or str
            calibration type, e.g. ``'TE10'``
        m_rows : int
            number of VNA detectors
        m_columns : int
            number of driven VNA ports
        z0 : number or array_like
            reference impedance: one value, one per port, or one per
            frequency and port. Default is 50.
        name : str, optional
            the name of this calibration, for convenience

        Raises
        ------
        UsageError
            if the frequencies or dimensions are invalid
        '''
        self.frequency = _as_frequency(frequency)
        self.layout = get_layout(cal_type, m_rows, m_columns)
        self.z0 = _check_z0(z0, self.layout.ports, self.npoints)
        self.name = name
        self.unknowns = []
        self._standards = []
        self._calibration = None

    def __str__(self):
        name = '' if self.name is None else self.name
        return '%s %s: \'%s\', %s, %i-standards' % (
            self.type, self.family, name, str(self.frequency),
            self.nstandards)

    def __repr__(self):
        return self.__str__()

    @property
    def type(self):
        '''
        :class:`~vnacal.calibration.layout.CalibrationType` being solved
        '''
        return self.layout.type

    @property
    def npoints(self):
        return len(self.frequency.f)

    @property
    def nstandards(self):
        '''
        number of standards added
        '''
        return len(self._standards)

    @property
    def is_solved(self):
        return self._calibration is not None

    # standards
    def add_standard(self, s, m=None, a=None, b=None, port_map=None):
        '''
        Add the measurement of a calibration standard.

        Parameters
        ----------
        s : matrix of :class:`~vnacal.parameter.Parameter`, numbers or arrays
            S-parameters of the standard, square, at most as many ports
            as the calibration. A per-frequency cell is a vector with one
            value per calibration frequency; an array of shape
            (F, p, p) gives every cell per frequency.
        m : array_like, optional
            measurement, shape (F, rows, columns)
        a, b : array_like, optional
            incident and reflected waves, in place of `m`:
            :math:`M = B A^{-1}`. For UE14 and E12, `a` holds one wave
            per column, shape (F, 1, columns).
        port_map : sequence of int, optional
            for each VNA port, the standard port connected to it, or -1.
            Required when the standard has fewer ports than the
            calibration.

        Returns
        -------
        index : int
            position of the standard in the solver

        Notes
        -------
        Rows and columns of the measurement are either all of the
        calibration's, or, where the type allows, one per port of the
        standard, in increasing order of VNA port. T16 needs every
        column, U16 every row.

        Raises
        ------
        UsageError
            on invalid shapes, port maps, or parameters that do not
            cover the calibration frequencies, or if the solver has
            already been solved
        MathError
            if `a` is singular at some frequency
        '''
        if self.is_solved:
            raise UsageError('cannot add standards to a solved calibration')
        cells = self._parameter_matrix(s)
        p = len(cells)
        vna_of_standard = check_standard_map(port_map, p, self.layout.ports)
        measured = measured_matrix(self.layout, self.npoints, m=m, a=a, b=b)
        m_full, row_given, column_given = self._place_measurement(
            measured, vna_of_standard)

        ports = self.layout.ports
        s_full = npy.zeros((self.npoints, ports, ports), dtype=complex)
        connected = npy.zeros(ports, dtype=bool)
        connected[vna_of_standard] = True
        mask = npy.outer(~connected, ~connected)
        resolved = {}
        for i in range(p):
            for j in range(p):
                param = cells[i][j]
                if id(param) not in resolved:
                    resolved[id(param)] = self._resolve(param)
                vi, vj = vna_of_standard[i], vna_of_standard[j]
                s_full[:, vi, vj] = resolved[id(param)]
                mask[vi, vj] = param is not ZERO
        self._standards.append(_Standard(
            s_full, m_full, row_given, column_given, connected,
            transitive_closure(mask)))
        logger.debug('added %d-port standard %d', p, self.nstandards - 1)
        return self.nstandards - 1

    def add_single_reflect(self, s11, port, m=None, a=None, b=None):
        '''
        Add a one-port standard connected to VNA `port`.

        See Also
        --------
        add_standard
        '''
        return self.add_standard([[s11]], m=m, a=a, b=b,
                                 port_map=self._port_map(port))

    def add_double_reflect(self, s11, s22, port1, port2, m=None, a=None,
                           b=None):
        '''
        Add two independent one-port standards measured together, `s11`
        on VNA `port1` and `s22` on VNA `port2`.

        See Also
        --------
        add_standard
        '''
        return self.add_standard([[s11, ZERO], [ZERO, s22]], m=m, a=a, b=b,
                                 port_map=self._port_map(port1, port2))

    def add_through(self, port1, port2, m=None, a=None, b=None):
        '''
        Add a perfect through between VNA `port1` and `port2`.

        See Also
        --------
        add_standard
        '''
        return self.add_line([[MATCH, ONE], [ONE, MATCH]], port1, port2,
                             m=m, a=a, b=b)

    def add_line(self, s, port1, port2, m=None, a=None, b=None):
        '''
        Add a two-port standard `s` between VNA `port1` and `port2`.

        See Also
        --------
        add_standard
        '''
        if len(s) != 2:
            raise UsageError('a line standard must be 2 x 2')
        return self.add_standard(s, m=m, a=a, b=b,
                                 port_map=self._port_map(port1, port2))

    def _port_map(self, *ports):
        port_map = [-1] * self.layout.ports
        for k, port in enumerate(ports):
            port = _check_port_index(port, self.layout.ports, 'VNA')
            if port == -1 or port_map[port] != -1:
                raise UsageError('invalid VNA port %d' % port)
            port_map[port] = k
        return port_map

    def _parameter_matrix(self, s):
        if isinstance(s, npy.ndarray) and s.ndim == 3:
            if s.shape[0] != self.npoints:
                raise UsageError('S-parameter array must have %d '
                                 'frequencies, got %d'
                                 % (self.npoints, s.shape[0]))
            rows = [[s[:, i, j] for j in range(s.shape[2])]
                    for i in range(s.shape[1])]
        elif isinstance(s, (Parameter, Number)) or \
                (isinstance(s, npy.ndarray) and s.ndim <= 1):
            rows = [[s]]
        else:
            rows = []
            for row in s:
                if isinstance(row, (Parameter, Number)):
                    raise UsageError('S-parameters must be a square matrix')
                rows.append(list(row))
        p = len(rows)
        if p == 0 or any(len(row) != p for row in rows):
            raise UsageError('S-parameters must be a square matrix')
        if p > self.layout.ports:
            raise UsageError('standard has %d ports; calibration has %d'
                             % (p, self.layout.ports))
        return [[as_parameter(value, self.frequency.f) for value in row]
                for row in rows]

    def _resolve(self, param):
        check_frequency_range(self.frequency.f, param.frange, repr(param))
        if param.is_unknown and param not in self.unknowns:
            self.unknowns.append(param)
        return param.resolve(self.frequency.f)

    def _place_measurement(self, m, vna_of_standard):
        layout = self.layout
        rows, columns = m.shape[1:]
        ports = sorted(vna_of_standard)
        p = len(ports)

        def place(n, full, reduce_ok, what):
            if n == full:
                return list(range(full))
            if n == p and reduce_ok:
                for port in ports:
                    if port >= full:
                        raise UsageError('VNA port %d has no measurement '
                                         '%s' % (port, what))
                return ports
            raise UsageError('measurement must have %d %ss%s, got %d'
                             % (full, what,
                                ' or %d' % p if reduce_ok else '', n))

        row_ports = place(rows, layout.m_rows,
                          layout.type is not CalibrationType.U16, 'row')
        column_ports = place(columns, layout.m_columns,
                             layout.type is not CalibrationType.T16, 'column')
        m_full = npy.zeros((self.npoints, layout.m_rows, layout.m_columns),
                           dtype=complex)
        m_full[:, npy.array(row_ports)[:, None],
               npy.array(column_ports)[None, :]] = m
        row_given = npy.zeros(layout.m_rows, dtype=bool)
        row_given[row_ports] = True
        column_given = npy.zeros(layout.m_columns, dtype=bool)
        column_given[column_ports] = True
        return m_full, row_given, column_given

    # solving
    def _solve_leakage(self, layout):
        block = layout['el']
        values = npy.zeros((self.npoints, block.size), dtype=complex)
        for k, (i, j) in enumerate(block.cells):
            samples = [std.m[:, i, j] for std in self._standards
                       if std.row_given[i] and std.column_given[j]
                       and not std.reach[i, j]]
            if not samples:
                raise MathError('leakage term system is singular: no '
                                'standard isolates el%d%d' % (i + 1, j + 1),
                                range(self.npoints))
            values[:, k] = npy.mean(samples, axis=0)
        return values

    def _equation_cells(self, layout, std, column=None):
        if layout.type.family == 'T':
            rows = npy.flatnonzero(std.row_given)
            columns = npy.flatnonzero(std.connected)
        else:
            rows = npy.flatnonzero(std.connected)
            columns = npy.flatnonzero(std.column_given)
        if column is not None:
            columns = [c for c in columns if c == column]
        return [(r, c) for r in rows for c in columns
                if layout.type.is_full or r == c or std.reach[r, c]]

    def _equations(self, layout, system, el, column=None):
        '''
        Coefficient matrix and right hand side of a system, stacked over
        the standards: shapes (F, equations, unknowns) and
        (F, equations).
        '''
        unknowns = system.unknowns
        lhs = [npy.zeros((self.npoints, 0, len(unknowns)), dtype=complex)]
        rhs = [npy.zeros((self.npoints, 0), dtype=complex)]
        for std in self._standards:
            cells = self._equation_cells(layout, std, column)
            if not cells:
                continue
            rows, columns = zip(*cells)
            coef = term_coefficients(layout, system, std.s, std.m - el,
                                     rows, columns)
            lhs.append(coef[:, :, unknowns])
            rhs.append(-coef[:, :, system.unity])
        return npy.concatenate(lhs, axis=1), npy.concatenate(rhs, axis=1)

    def _solve_system(self, lhs, rhs):
        n = lhs.shape[2]
        x = npy.zeros((self.npoints, n), dtype=complex)
        failed = []
        worst = 0.0
        for findex in range(self.npoints):
            x[findex], rank, _ = qrsolve_q(lhs[findex], rhs[findex])
            if rank < n:
                failed.append(findex)
            elif lhs.shape[1] > n:
                residual = npy.linalg.norm(lhs[findex] @ x[findex]
                                           - rhs[findex])
                scale = npy.linalg.norm(rhs[findex]) or 1.0
                worst = max(worst, residual / scale)
        return x, failed, worst

    def _solve_terms(self):
        layout = self.layout.solve_layout
        terms = npy.zeros((self.npoints, layout.total_terms), dtype=complex)
        el = 0.0
        if layout.type.has_leakage:
            terms[:, layout['el'].indices] = self._solve_leakage(layout)
            el = layout['el'].unpack(terms)

        failed = set()
        worst = 0.0
        for k, system in enumerate(layout.systems):
            column = k if layout.type.is_column else None
            lhs, rhs = self._equations(layout, system, el, column)
            logger.debug('system %d: %d equations, %d unknowns',
                         k, lhs.shape[1], lhs.shape[2])
            if lhs.shape[1] < lhs.shape[2]:
                raise MathError('insufficient number of standards: %d '
                                'equations for %d unknowns'
                                % (lhs.shape[1], lhs.shape[2]),
                                range(self.npoints))
            x, system_failed, system_worst = self._solve_system(lhs, rhs)
            failed.update(system_failed)
            worst = max(worst, system_worst)
            terms[:, system.unknown_indices] = x
            if system.unity_index is not None:
                terms[:, system.unity_index] = 1.0
        if failed:
            failed = sorted(failed)
            raise MathError('singular linear system at frequency index %s'
                            % _index_list(failed), failed)
        if worst > RESIDUAL_WARN_THRESHOLD:
            warnings.warn('calibration standards are inconsistent: relative '
                          'residual %.3g' % worst, ResidualWarning,
                          stacklevel=3)

        if self.type is CalibrationType.E12:
            terms = ue14_to_e12(terms, self.layout.m_rows,
                                self.layout.m_columns)
        return terms

    def solve(self):
        '''
        Solve for the error terms.

        Calling solve again returns the same calibration.

        Returns
        -------
        calibration : :class:`SolvedCalibration`

        Raises
        ------
        MathError
            if there are too few standards, the leakage terms cannot be
            measured, or the system is singular at some frequencies
            (all of which are listed in
            :attr:`~vnacal.errors.MathError.frequency_indices`)
        VnacalSystemError
            if working storage cannot be allocated
        '''
        if self._calibration is not None:
            return self._calibration
        logger.info('solving %s calibration (%d x %d) with %d standards at '
                    '%d frequencies', self.type, self.layout.m_rows,
                    self.layout.m_columns, self.nstandards, self.npoints)
        if self.unknowns:
            logger.info('%d unknown parameters are taken at their initial '
                        'values', len(self.unknowns))
        try:
            terms = self._solve_terms()
        except MemoryError as error:
            raise VnacalSystemError('cannot allocate storage for %d '
                                    'frequencies' % self.npoints) from error
        self._calibration = SolvedCalibration(
            self.frequency, self.type, self.layout.m_rows,
            self.layout.m_columns, terms, z0=self.z0, name=self.name)
        return self._calibration


class SolvedCalibration(object):
    '''
    Error terms of a calibration, per frequency.

    A solved calibration is immutable. It is usually obtained from
    :func:`CalibrationSolver.solve`, :func:`from_coefs` or
    :func:`from_dict`.

    Parameters
    ----------
    frequency : :class:`~vnacal.frequency.Frequency` or array_like
        calibration frequencies; a vector is taken in Hz
    cal_type : :class:`~vnacal.calibration.layout.CalibrationType` or str
    m_rows, m_columns : int
        dimensions of the measurement matrix
    terms : array_like
        error terms, shape (F, total_terms)
    z0 : number or array_like
        reference impedance: one value, one per port, or one per
        frequency and port
    name : str, optional
    '''
    family = 'Solved'

    def __init__(self, frequency, cal_type, m_rows, m_columns, terms,
                 z0=Z0_DEFAULT, name=None):
        self.frequency = _as_frequency(frequency)
        self.layout = get_layout(cal_type, m_rows, m_columns)
        terms = npy.array(terms, dtype=complex)
        shape = (self.npoints, self.layout.total_terms)
        if terms.shape != shape:
            raise UsageError('error terms must have shape %s, got %s'
                             % (shape, terms.shape))
        terms.flags.writeable = False
        self._terms = terms
        self.z0 = _check_z0(z0, self.layout.ports, self.npoints)
        self.z0.flags.writeable = False
        self.name = name

    def __str__(self):
        name = '' if self.name is None else self.name
        return '%s %s Calibration: \'%s\', %s' % (
            self.type, self.family, name, str(self.frequency))

    def __repr__(self):
        return self.__str__()

    def __reduce__(self):
        # rebuild through __init__ so the arrays stay read-only
        return (self.__class__, (self.frequency, self.type, self.m_rows,
                                 self.m_columns, self._terms, self.z0,
                                 self.name))

    @property
    def type(self):
        '''
        :class:`~vnacal.calibration.layout.CalibrationType`
        '''
        return self.layout.type

    @property
    def m_rows(self):
        return self.layout.m_rows

    @property
    def m_columns(self):
        return self.layout.m_columns

    @property
    def ports(self):
        return self.layout.ports

    @property
    def npoints(self):
        return len(self.frequency.f)

    @property
    def terms(self):
        '''
        Read-only array of error terms, shape (F, total_terms).
        '''
        return self._terms

    @property
    def coefs(self):
        '''
        Dictionary of error terms as matrices.

        The keys are the block names of the calibration type (``'ts'``,
        ``'um'``, ``'el'``...), each holding an array of shape
        (F, rows, columns).
        '''
        return self.layout.unpack(self._terms)

    @classmethod
    def from_coefs(cls, frequency, coefs, cal_type, **kwargs):
        '''
        Creates a calibration from its error terms.

        The measurement dimensions are found from the block shapes.

        Parameters
        -------------
        frequency : :class:`~vnacal.frequency.Frequency` or array_like
        coefs : dict of numpy arrays
            error terms of each block, shape (F, rows, columns)
        cal_type : :class:`~vnacal.calibration.layout.CalibrationType` or str
        \\*\\*kwargs :
            passed to :class:`SolvedCalibration`, e.g. z0 and name

        See Also
        ----------
        SolvedCalibration.coefs
        '''
        cal_type = CalibrationType.from_name(cal_type)
        try:
            if cal_type.family == 'T':
                m_rows = npy.shape(coefs['ts'])[-2]
                m_columns = npy.shape(coefs['tx'])[-2]
            elif cal_type.family == 'U' and not cal_type.is_column:
                m_rows = npy.shape(coefs['um'])[-1]
                m_columns = npy.shape(coefs['ui'])[-1]
            else:
                m_rows, m_columns = npy.shape(coefs['el'])[-2:]
        except KeyError as error:
            raise UsageError('%s error terms need block %s'
                             % (cal_type, error.args[0])) from None
        layout = get_layout(cal_type, m_rows, m_columns)
        coefs = dict((name, npy.asarray(value, dtype=complex))
                     for name, value in coefs.items())
        return cls(frequency, cal_type, m_rows, m_columns,
                   layout.pack(coefs), **kwargs)

    def to_dict(self):
        '''
        Plain dictionary holding the whole calibration.

        See Also
        ----------
        from_dict
        '''
        return OrderedDict([
            ('type', str(self.type)),
            ('m_rows', self.m_rows),
            ('m_columns', self.m_columns),
            ('frequency', self.frequency.f.copy()),
            ('z0', npy.array(self.z0)),
            ('name', self.name),
            ('terms', self.coefs),
            ])

    @classmethod
    def from_dict(cls, d):
        '''
        Rebuild a calibration written by :func:`to_dict`.
        '''
        layout = get_layout(d['type'], d['m_rows'], d['m_columns'])
        terms = layout.pack(dict(
            (name, npy.asarray(value, dtype=complex))
            for name, value in d['terms'].items()))
        return cls(d['frequency'], layout.type, layout.m_rows,
                   layout.m_columns, terms, z0=d.get('z0', Z0_DEFAULT),
                   name=d.get('name'))

    def __eq__(self, other):
        if not isinstance(other, SolvedCalibration):
            return NotImplemented
        return (self.layout is other.layout
                and self.frequency == other.frequency
                and npy.array_equal(self._terms, other._terms)
                and npy.array_equal(self.z0, other.z0))

    __hash__ = None

    def z0_vector(self, findex):
        '''
        Reference impedance of each port at frequency index `findex`.
        '''
        if isinstance(findex, bool) or \
                not isinstance(findex, (int, npy.integer)) or \
                not 0 <= findex < self.npoints:
            raise UsageError('frequency index %r out of range' % (findex,))
        if self.z0.ndim == 0:
            return npy.full(self.ports, self.z0, dtype=complex)
        if self.z0.ndim == 1:
            return self.z0.copy()
        return self.z0[findex].copy()

    def interpolate_terms(self, frequency=None, kind='rational'):
        '''
        Error terms at other frequencies.

        Terms are interpolated with
        :func:`~vnacal.mathFunctions.rational_interp` and held constant
        beyond the ends of the calibration band.

        Parameters
        ----------
        frequency : :class:`~vnacal.frequency.Frequency` or array_like, optional
            frequencies in Hz. Default is the calibration frequencies.
        kind : str, optional
            'rational' (default) for rational polynomials of degree
            :data:`~vnacal.constants.INTERP_ORDER`, or any kind accepted
            by :func:`scipy.interpolate.interp1d`, e.g. 'linear' or
            'cubic'.

        Returns
        -------
        terms : npy.ndarray
            shape (len(frequency), total_terms)

        Raises
        ------
        UsageError
            if a frequency lies more than 1% outside of the calibration
            band
        '''
        if frequency is None:
            return npy.array(self._terms)
        f = frequency_vector(frequency)
        check_frequency_range(f, self.frequency.frange, 'calibration')
        if len(f) == self.npoints and npy.array_equal(f, self.frequency.f):
            return npy.array(self._terms)
        if kind == 'rational' or self.npoints == 1:
            return rational_interp_clamped(self.frequency.f, self._terms, f)
        return interp1d(self.frequency.f, self._terms, axis=0, kind=kind,
                        bounds_error=False, assume_sorted=True,
                        fill_value=(self._terms[0], self._terms[-1]))(f)

    def embed(self, s, frequency=None):
        '''
        Forward error model: the measurement the VNA would give for
        actual S-parameters `s`.

        Parameters
        ----------
        s : array_like
            S-parameters in VNA port order, shape (F, ports, ports)
        frequency : :class:`~vnacal.frequency.Frequency` or array_like, optional
            frequencies of `s`. Default is the calibration frequencies.

        Returns
        -------
        m : npy.ndarray
            shape (F, m_rows, m_columns)

        See Also
        ----------
        ~vnacal.calibration.calibrationFunctions.embed_terms
        '''
        terms = self.interpolate_terms(frequency)
        s = npy.array(s, dtype=complex)
        if s.ndim == 2 and len(terms) == 1:
            s = s[None]
        if s.ndim == 1 and self.ports == 1:
            s = s.reshape(-1, 1, 1)
        if s.ndim != 3 or len(s) != len(terms):
            raise UsageError('S-parameters must have shape (%d, %d, %d)'
                             % (len(terms), self.ports, self.ports))
        return embed_terms(self.layout, terms, s)

    def apply(self, frequency=None, m=None, a=None, b=None, port_map=None,
              ports=None):
        '''
        Correct a measurement of a device under test.

        Parameters
        ----------
        frequency : :class:`~vnacal.frequency.Frequency` or array_like, optional
            frequencies of the measurement. Default is the calibration
            frequencies.
        m : array_like, optional
            measurement, shape (F, m_rows, m_columns)
        a, b : array_like, optional
            incident and reflected waves, in place of `m`
        port_map : sequence of int, optional
            for each VNA port, the DUT port connected to it, or -1
        ports : int, optional
            number of DUT ports, by default the calibration's

        Returns
        -------
        s : npy.ndarray
            corrected S-parameters, shape (F, ports, ports). DUT cells
            that the measurement cannot determine are NaN.

        Raises
        ------
        UsageError
            on invalid shapes or port maps, or frequencies outside the
            calibration band
        MathError
            if the correction is singular at some frequency

        See Also
        ----------
        ~vnacal.calibration.applicator.CalibrationApplicator
        '''
        square = self.m_rows == self.m_columns
        if port_map is None and square and ports in (None, self.ports):
            terms = self.interpolate_terms(frequency)
            measured = measured_matrix(self.layout, len(terms), m=m, a=a,
                                       b=b)
            if measured.shape[1:] != (self.m_rows, self.m_columns):
                raise UsageError('measurement must be %d x %d, got %d x %d'
                                 % (self.m_rows, self.m_columns,
                                    measured.shape[1], measured.shape[2]))
            return correct_terms(self.layout, terms, measured)

        from .applicator import CalibrationApplicator
        applicator = CalibrationApplicator(self, frequency, ports)
        applicator.add_matrix(m=m, a=a, b=b, port_map=port_map)
        return applicator.get_data()

    def apply_m(self, frequency, m):
        '''
        Correct a measurement matrix.

        See Also
        ----------
        apply
        '''
        return self.apply(frequency, m=m)

    def write(self, file=None, *args, **kwargs):
        '''
        Write the calibration to disk using :func:`~vnacal.io.general.write`

        Parameters
        -----------
        file : str or file-object
            filename or a file-object. If left as None then the
            filename will be set to the calibration name, if its not None.
            If both are None, UsageError is raised.
        \\*args, \\*\\*kwargs : arguments and keyword arguments
            passed through to :func:`~vnacal.io.general.write`

        See Also
        ---------
        vnacal.io.general.write
        vnacal.io.general.read
        '''
        # this import is delayed until here because of a circular dependency
        from ..io.general import write

        if file is None:
            if self.name is None:
                raise UsageError('No filename given. You must provide a '
                                 'filename, or set the name attribute')
            file = self.name

        write(file, self, *args, **kwargs)
