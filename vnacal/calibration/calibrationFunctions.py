'''
.. module:: vnacal.calibration.calibrationFunctions
===================================================================
calibrationFunctions (:mod:`vnacal.calibration.calibrationFunctions`)
===================================================================

Functions on error terms, shared by the solver and the applicator.

All functions work on stacks: the first axis of every array is
frequency.

Error Models
--------------
.. autosummary::
   :toctree: generated/

   embed_terms
   correction_system
   correct_terms
   ue14_to_e12

Measurements and Equations
----------------------------
.. autosummary::
   :toctree: generated/

   measurement_stack
   measurement_from_waves
   measured_matrix
   term_coefficients

Stacked Division
-----------------
.. autosummary::
   :toctree: generated/

   left_divide_stack
   right_divide_stack

'''
import numpy as npy

from ..errors import MathError, UsageError
from ..mathFunctions import is_singular, mldivide, mrdivide
from .layout import CalibrationType, get_layout


def _index_list(indices):
    return ', '.join('%d' % k for k in indices)


def left_divide_stack(a, b, what='system'):
    '''
    Solve :math:`A X = B` at every frequency.

    Parameters
    ----------
    a : npy.ndarray
        shape (F, n, n)
    b : npy.ndarray
        shape (F, n, o) or (F, n)
    what : str
        name of the system, used in the error message

    Raises
    ------
    MathError
        listing every frequency index at which `a` is singular
    '''
    x = npy.zeros(b.shape, dtype=complex)
    failed = []
    for findex in range(a.shape[0]):
        x[findex], det = mldivide(a[findex], b[findex])
        if is_singular(a[findex], det):
            failed.append(findex)
    if failed:
        raise MathError('%s is singular at frequency index %s'
                        % (what, _index_list(failed)), failed)
    return x


def right_divide_stack(b, a, what='system'):
    '''
    Solve :math:`X A = B` at every frequency.

    See Also
    --------
    left_divide_stack
    '''
    x = npy.zeros(b.shape, dtype=complex)
    failed = []
    for findex in range(a.shape[0]):
        x[findex], det = mrdivide(b[findex], a[findex])
        if is_singular(a[findex], det):
            failed.append(findex)
    if failed:
        raise MathError('%s is singular at frequency index %s'
                        % (what, _index_list(failed)), failed)
    return x


def _diag_product(s, d):
    # s @ diag(d) for stacks
    return s * d[:, None, :]


def embed_terms(layout, terms, s):
    r'''
    Forward error model: what the VNA measures for actual S-parameters.

    ==========  ==============================================================
    family      model
    ==========  ==============================================================
    T           :math:`M = (T_s S + T_i)(T_x S + T_m)^{-1}`
    U           :math:`M = (U_m - S U_x)^{-1}(S U_s - U_i)`
    UE14        column c: :math:`(diag(u_m) - S\,diag(u_x))^{-1}(u_s S e_c - u_i e_c)`
    E12         column c: :math:`e_l + e_r \circ (I - S\,diag(e_m))^{-1} S e_c`
    ==========  ==============================================================

    Leakage terms are added to the off-diagonal elements afterwards.

    Parameters
    ----------
    layout : :class:`~vnacal.calibration.layout.Layout`
    terms : npy.ndarray
        error terms, shape (F, total_terms)
    s : npy.ndarray
        actual S-parameters in VNA port order, shape (F, ports, ports)

    Returns
    -------
    m : npy.ndarray
        measurement, shape (F, m_rows, m_columns)
    '''
    s = npy.asarray(s, dtype=complex)
    if s.shape[1:] != (layout.ports, layout.ports):
        raise UsageError('S-parameters must be %d x %d'
                         % (layout.ports, layout.ports))
    e = layout.unpack(terms)
    cal_type = layout.type
    m_rows, m_columns = layout.m_rows, layout.m_columns
    idx = npy.arange(layout.ports)

    if cal_type.family == 'T':
        m = right_divide_stack(e['ts'] @ s + e['ti'], e['tx'] @ s + e['tm'],
                               'error model')
    elif cal_type.family == 'U' and not cal_type.is_column:
        m = left_divide_stack(e['um'] - s @ e['ux'], s @ e['us'] - e['ui'],
                              'error model')
    elif cal_type.family == 'U':
        m = npy.zeros((len(s), m_rows, m_columns), dtype=complex)
        for c in range(m_columns):
            lhs = -_diag_product(s, e['ux'][:, :, c])
            lhs[:, idx, idx] += e['um'][:, :, c]
            rhs = e['us'][:, 0, c][:, None] * s[:, :, c]
            rhs[:, c] -= e['ui'][:, 0, c]
            m[:, :, c] = left_divide_stack(lhs, rhs, 'error model')
    else:
        m = npy.zeros((len(s), m_rows, m_columns), dtype=complex)
        for c in range(m_columns):
            lhs = -_diag_product(s, e['em'][:, :, c])
            lhs[:, idx, idx] += 1.0
            b = left_divide_stack(lhs, s[:, :, c], 'error model')
            m[:, :, c] = e['el'][:, :, c] + e['er'][:, :, c] * b
        return m

    if 'el' in e:
        m = m + e['el']
    return m


def correction_system(layout, terms, m):
    r'''
    Linear equations relating the actual S-parameters to a measurement.

    For the T family the equations are :math:`P S = Q` with

    .. math::
        P = T_s - M' T_x, \qquad Q = M' T_m - T_i

    and for the other families :math:`S X = Y` with

    ==========  ==========================================  ==============================
    family      X                                           Y
    ==========  ==========================================  ==============================
    U           :math:`U_x M' + U_s`                        :math:`U_m M' + U_i`
    UE14        :math:`u_x \circ M'_c + u_s e_c`            :math:`u_m \circ M'_c + u_i e_c`
    E12         :math:`e_c + e_m \circ B_c`                 :math:`B = (M - E_l) / E_r`
    ==========  ==========================================  ==============================

    where :math:`M'` is the measurement with the leakage removed.

    Parameters
    ----------
    layout : :class:`~vnacal.calibration.layout.Layout`
    terms : npy.ndarray
        error terms, shape (F, total_terms)
    m : npy.ndarray
        measurement, shape (F, m_rows, m_columns)

    Returns
    -------
    side : str
        ``'left'`` for :math:`P S = Q`, ``'right'`` for :math:`S X = Y`
    lhs : npy.ndarray
        P (F, m_rows, ports) or X (F, ports, m_columns)
    rhs : npy.ndarray
        Q (F, m_rows, ports) or Y (F, ports, m_columns)
    '''
    e = layout.unpack(terms)
    cal_type = layout.type
    m = npy.asarray(m, dtype=complex)
    if cal_type.family != 'E' and 'el' in e:
        m = m - e['el']

    if cal_type.family == 'T':
        return 'left', e['ts'] - m @ e['tx'], m @ e['tm'] - e['ti']
    if cal_type.family == 'U' and not cal_type.is_column:
        return 'right', e['ux'] @ m + e['us'], e['um'] @ m + e['ui']
    if cal_type.family == 'U':
        x = e['ux'] * m
        y = e['um'] * m
        for c in range(layout.m_columns):
            x[:, c, c] += e['us'][:, 0, c]
            y[:, c, c] += e['ui'][:, 0, c]
        return 'right', x, y
    with npy.errstate(divide='ignore', invalid='ignore'):
        b = (m - e['el']) / e['er']
    x = e['em'] * b
    for c in range(layout.m_columns):
        x[:, c, c] += 1.0
    return 'right', x, b


def correct_terms(layout, terms, m):
    '''
    Corrected S-parameters from a full, square measurement.

    Raises
    ------
    UsageError
        if the calibration is not square
    MathError
        if the correction system is singular at some frequency
    '''
    if layout.m_rows != layout.m_columns:
        raise UsageError('a %d x %d calibration needs a port map and '
                         'several measurements to find S-parameters'
                         % (layout.m_rows, layout.m_columns))
    side, lhs, rhs = correction_system(layout, terms, m)
    if side == 'left':
        return left_divide_stack(lhs, rhs, 'correction system')
    return right_divide_stack(rhs, lhs, 'correction system')


def term_coefficients(layout, system, s, m, rows, columns):
    '''
    Coefficients of the terms of a system in the equations of one
    standard.

    Each equation is a cell of :math:`T_s S + T_i - M T_x S - M T_m = 0`
    (T family) or :math:`U_m M + U_i - S U_x M - S U_s = 0` (U family,
    UE14 column by column).

    Parameters
    ----------
    layout : :class:`~vnacal.calibration.layout.Layout`
        layout being solved (never E12)
    system : :class:`~vnacal.calibration.layout.System`
    s : npy.ndarray
        S-parameters of the standard in VNA port order, (F, ports, ports)
    m : npy.ndarray
        measurement with leakage removed, (F, m_rows, m_columns)
    rows, columns : array_like of int
        cell of each equation

    Returns
    -------
    coefficients : npy.ndarray
        shape (F, equations, len(system.terms))
    '''
    rows = npy.asarray(rows, dtype=int)
    columns = npy.asarray(columns, dtype=int)
    cal_type = layout.type
    coef = npy.zeros((len(s), len(rows), len(system.terms)), dtype=complex)
    for k, term in enumerate(system.terms):
        i, j = term.row, term.column
        if cal_type.is_column:
            # j is the column of the system
            if term.block == 'um':
                coef[:, :, k] = (rows == i) * m[:, i, j][:, None]
            elif term.block == 'ui':
                coef[:, :, k] = (rows == j)
            elif term.block == 'ux':
                coef[:, :, k] = -s[:, rows, i] * m[:, i, j][:, None]
            else:
                coef[:, :, k] = -s[:, rows, j]
        elif cal_type.family == 'T':
            if term.block == 'ts':
                coef[:, :, k] = (rows == i) * s[:, j, columns]
            elif term.block == 'ti':
                coef[:, :, k] = (rows == i) & (columns == j)
            elif term.block == 'tx':
                coef[:, :, k] = -m[:, rows, i] * s[:, j, columns]
            else:
                coef[:, :, k] = -m[:, rows, i] * (columns == j)
        else:
            if term.block == 'um':
                coef[:, :, k] = (rows == i) * m[:, j, columns]
            elif term.block == 'ui':
                coef[:, :, k] = (rows == i) & (columns == j)
            elif term.block == 'ux':
                coef[:, :, k] = -s[:, rows, i] * m[:, j, columns]
            else:
                coef[:, :, k] = -s[:, rows, i] * (columns == j)
    return coef


def ue14_to_e12(terms, m_rows, m_columns):
    r'''
    Convert solved UE14 error terms to E12 error terms.

    For column c, with :math:`n = u_s - u_i u_{x,c} / u_{m,c}`:

    .. math::
        e_{l,c} = -u_i / u_{m,c}, \qquad
        e_{r,r} = n / u_{m,r}, \qquad
        e_{m,r} = u_{x,r} / u_{m,r}

    The off-diagonal leakage terms carry over unchanged.

    Parameters
    ----------
    terms : npy.ndarray
        UE14 error terms, shape (F, total_terms)
    m_rows, m_columns : int

    Returns
    -------
    terms : npy.ndarray
        E12 error terms

    Raises
    ------
    MathError
        if a diagonal term um is zero
    '''
    ue14 = get_layout(CalibrationType.UE14, m_rows, m_columns)
    e12 = get_layout(CalibrationType.E12, m_rows, m_columns)
    u = ue14.unpack(terms)
    um, ui, ux, us = u['um'], u['ui'][:, 0, :], u['ux'], u['us'][:, 0, :]

    failed = npy.flatnonzero(npy.any(um == 0, axis=(1, 2)))
    if len(failed):
        raise MathError('um error term is zero at frequency index %s'
                        % _index_list(failed), failed)

    el = u['el'].copy()
    er = npy.zeros_like(um)
    em = npy.zeros_like(um)
    for c in range(m_columns):
        n = us[:, c] - ui[:, c] * ux[:, c, c] / um[:, c, c]
        el[:, c, c] = -ui[:, c] / um[:, c, c]
        er[:, :, c] = n[:, None] / um[:, :, c]
        em[:, :, c] = ux[:, :, c] / um[:, :, c]
    return e12.pack({'el': el, 'er': er, 'em': em})


def measurement_stack(x, npoints, what='m'):
    '''
    Return a measurement as a complex array of shape (F, rows, columns).

    A vector of length F stands for a 1 x 1 measurement; a matrix is
    accepted when there is a single frequency.

    Raises
    ------
    UsageError
        if the shape cannot be interpreted
    '''
    x = npy.array(x, dtype=complex)
    if x.ndim == 1 and len(x) == npoints:
        x = x.reshape(npoints, 1, 1)
    elif x.ndim == 2 and npoints == 1:
        x = x[None]
    if x.ndim != 3 or x.shape[0] != npoints:
        raise UsageError('%s must have shape (%d, rows, columns), got %s'
                         % (what, npoints, x.shape))
    return x


def measurement_from_waves(layout, a, b):
    r'''
    Measurement :math:`M = B A^{-1}` from incident (a) and reflected (b)
    waves.

    For UE14 and E12, `a` is a row of one incident wave per driven
    column, shape (F, 1, columns), and each column of `b` is divided by
    its own wave.

    Raises
    ------
    UsageError
        if the shape of `a` does not match `b`
    MathError
        if `a` is singular at some frequency
    '''
    columns = b.shape[2]
    a_rows = 1 if layout.type.is_column else columns
    if a.shape[1:] != (a_rows, columns):
        raise UsageError("'a' matrix must be %d x %d, got %d x %d"
                         % (a_rows, columns, a.shape[1], a.shape[2]))
    if layout.type.is_column:
        failed = npy.flatnonzero(npy.any(a[:, 0, :] == 0, axis=1))
        if len(failed):
            raise MathError("'a' matrix is singular at frequency index %s"
                            % _index_list(failed), failed)
        return b / a[:, 0, :][:, None, :]
    return right_divide_stack(b, a, "'a' matrix")


def measured_matrix(layout, npoints, m=None, a=None, b=None):
    '''
    The measurement given either as `m` or as the wave pair `a`, `b`.

    See Also
    --------
    measurement_stack
    measurement_from_waves
    '''
    if m is not None:
        if a is not None or b is not None:
            raise UsageError('give either m, or a and b')
        return measurement_stack(m, npoints, 'm')
    if a is None or b is None:
        raise UsageError('a measurement is needed: m, or a and b')
    return measurement_from_waves(layout, measurement_stack(a, npoints, 'a'),
                                  measurement_stack(b, npoints, 'b'))
