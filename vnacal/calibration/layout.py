'''
.. module:: vnacal.calibration.layout
================================================================
layout (:mod:`vnacal.calibration.layout`)
================================================================

Arrangement of the error terms of each calibration type.

The error terms of a calibration are kept, per frequency, in one flat
complex vector. A :class:`Layout` splits that vector into named
:class:`Block` views, each standing for a matrix of error terms:

=========  ========================  ==================================
type       blocks                    form
=========  ========================  ==================================
T8, TE10   ts, ti, tx, tm (+ el)     diagonal T matrices
U8, UE10   um, ui, ux, us (+ el)     diagonal U matrices
T16        ts, ti, tx, tm            full T matrices
U16        um, ui, ux, us            full U matrices
UE14       um, ui, ux, us, el        one diagonal U system per column
E12        el, er, em                classic per column 12-term model
=========  ========================  ==================================

``el`` holds the off-diagonal leakage terms. In E12, ``el`` also holds
the directivity terms on its diagonal.

One term of each T, U and UE14 system is fixed to 1 to remove the scale
ambiguity of the model: ``tm11`` for T types, ``um11`` for U types and
``um`` of the driven row in each UE14 column. For a single port the
fixed term is not stored at all, so every one-port layout has exactly
three terms.

Classes
--------------

.. autosummary::
   :toctree: generated/

   CalibrationType
   Block
   System
   Layout

Functions
----------------
.. autosummary::
   :toctree: generated/

   get_layout
   needed_standards

'''
from collections import OrderedDict, namedtuple
from enum import Enum
from functools import lru_cache
from math import ceil

import numpy as npy

from ..errors import UsageError


class CalibrationType(Enum):
    '''
    The calibration types.

    Each member carries its error model family (``'T'``, ``'U'`` or
    ``'E'``), the form of its blocks (``'diagonal'``, ``'full'`` or
    ``'column'``) and whether it has leakage terms.
    '''
    T8 = ('T', 'diagonal', False)
    U8 = ('U', 'diagonal', False)
    TE10 = ('T', 'diagonal', True)
    UE10 = ('U', 'diagonal', True)
    T16 = ('T', 'full', False)
    U16 = ('U', 'full', False)
    UE14 = ('U', 'column', True)
    E12 = ('E', 'column', True)

    def __init__(self, family, form, has_leakage):
        self.family = family
        self.form = form
        self.has_leakage = has_leakage

    def __str__(self):
        return self.name

    @classmethod
    def from_name(cls, name):
        '''
        Look up a type by name, ignoring case.

        Raises
        ------
        UsageError
            if `name` is not a calibration type
        '''
        if isinstance(name, cls):
            return name
        try:
            return cls[str(name).upper()]
        except KeyError:
            raise UsageError('unknown calibration type %r' % (name,)) \
                from None

    @property
    def is_full(self):
        return self.form == 'full'

    @property
    def is_column(self):
        return self.form == 'column'


class Block(object):
    '''
    A named matrix of error terms within the flat term vector.

    Parameters
    ----------
    name : str
        block name, e.g. ``'ts'``
    rows, columns : int
        dimensions of the matrix
    cells : list of (int, int)
        matrix cells that are stored, in storage order
    indices : array_like of int
        position of each stored cell in the flat vector
    fill : complex
        value of the cells that are not stored
    '''
    def __init__(self, name, rows, columns, cells, indices, fill=0.0):
        self.name = name
        self.rows = rows
        self.columns = columns
        self.cells = tuple((int(r), int(c)) for r, c in cells)
        self.indices = npy.asarray(indices, dtype=int).reshape(-1)
        self.fill = fill
        if len(self.cells) != len(self.indices):
            raise ValueError('block %s has %d cells but %d indices'
                             % (name, len(self.cells), len(self.indices)))

    def __repr__(self):
        return 'Block(%s, %dx%d, %d terms)' % (
            self.name, self.rows, self.columns, self.size)

    @property
    def size(self):
        '''
        Number of stored terms.
        '''
        return len(self.cells)

    @property
    def offset(self):
        '''
        Smallest flat index of the block, None if the block is empty.
        '''
        if self.size == 0:
            return None
        return int(self.indices.min())

    def _rc(self):
        rows = [r for r, c in self.cells]
        columns = [c for r, c in self.cells]
        return rows, columns

    def unpack(self, terms):
        '''
        Matrix view of the block.

        Parameters
        ----------
        terms : array_like
            flat term vector(s), shape (..., total_terms)

        Returns
        -------
        matrix : complex :class:`numpy.ndarray`
            shape (..., rows, columns)
        '''
        terms = npy.asarray(terms)
        out = npy.full(terms.shape[:-1] + (self.rows, self.columns),
                       self.fill, dtype=complex)
        if self.size:
            rows, columns = self._rc()
            out[..., rows, columns] = terms[..., self.indices]
        return out

    def pack(self, matrix):
        '''
        Stored terms of a block matrix of shape (..., rows, columns).
        '''
        matrix = npy.asarray(matrix, dtype=complex)
        if matrix.shape[-2:] != (self.rows, self.columns):
            raise UsageError('%s must be %d x %d, got %s' % (
                self.name, self.rows, self.columns, matrix.shape[-2:]))
        if not self.size:
            return npy.zeros(matrix.shape[:-2] + (0,), dtype=complex)
        rows, columns = self._rc()
        return matrix[..., rows, columns]


Term = namedtuple('Term', 'block row column index')


class System(object):
    '''
    Error terms that are solved together.

    Parameters
    ----------
    terms : list of :class:`Term`
        block name, cell and flat index of every term of the system;
        the index is None for a term that is not stored
    unity : int
        position in `terms` of the term fixed to 1
    '''
    def __init__(self, terms, unity):
        self.terms = list(terms)
        self.unity = unity

    def __repr__(self):
        return 'System(%d terms)' % len(self.terms)

    @property
    def unknowns(self):
        '''
        Positions in :attr:`terms` of the unknown terms.
        '''
        return [k for k in range(len(self.terms)) if k != self.unity]

    @property
    def unknown_indices(self):
        '''
        Flat indices of the unknown terms.
        '''
        return npy.array([self.terms[k].index for k in self.unknowns],
                         dtype=int)

    @property
    def unity_index(self):
        '''
        Flat index of the unity term, None if it is not stored.
        '''
        return self.terms[self.unity].index


_T_NAMES = ('ts', 'ti', 'tx', 'tm')
_U_NAMES = ('um', 'ui', 'ux', 'us')


def _diagonal_cells(rows, columns):
    return [(k, k) for k in range(min(rows, columns))]


def _full_cells(rows, columns):
    return [(r, c) for r in range(rows) for c in range(columns)]


def _off_diagonal_cells(rows, columns):
    return [(r, c) for r in range(rows) for c in range(columns) if r != c]


def _check_dimension(value, what):
    # called before the layout cache: True and 2.0 hash like 1 and 2
    if isinstance(value, bool) or \
            not isinstance(value, (int, npy.integer)) or value < 1:
        raise UsageError('%s must be a positive integer, got %r'
                         % (what, value))
    return int(value)


class Layout(object):
    '''
    Error term layout of a calibration type and measurement size.

    Use :func:`get_layout` to obtain instances.

    Parameters
    ----------
    cal_type : :class:`CalibrationType` or str
    m_rows : int
        number of VNA detectors (rows of the measurement matrix)
    m_columns : int
        number of driven VNA ports (columns of the measurement matrix)

    Raises
    ------
    UsageError
        if the dimensions are invalid for the type: T types need
        ``m_rows <= m_columns``, the other types ``m_rows >= m_columns``
    '''
    def __init__(self, cal_type, m_rows, m_columns):
        cal_type = CalibrationType.from_name(cal_type)
        m_rows = _check_dimension(m_rows, 'm_rows')
        m_columns = _check_dimension(m_columns, 'm_columns')
        if cal_type.family == 'T' and m_rows > m_columns:
            raise UsageError('%s requires m_rows <= m_columns' % cal_type)
        if cal_type.family != 'T' and m_rows < m_columns:
            raise UsageError('%s requires m_rows >= m_columns' % cal_type)

        self.type = cal_type
        self.m_rows = m_rows
        self.m_columns = m_columns
        self.ports = max(m_rows, m_columns)
        self.blocks = OrderedDict()
        self.systems = []
        self._offset = 0

        if cal_type.family == 'E':
            self._build_e12()
        elif cal_type.is_column:
            self._build_ue14()
        else:
            self._build_tu()
        if cal_type.has_leakage and cal_type.family != 'E':
            cells = _off_diagonal_cells(m_rows, m_columns)
            self._add_block('el', m_rows, m_columns, cells,
                            self._take(len(cells)))
        self.total_terms = self._offset
        del self._offset

    def __repr__(self):
        return 'Layout(%s, %d x %d, %d terms)' % (
            self.type, self.m_rows, self.m_columns, self.total_terms)

    def __reduce__(self):
        return (get_layout, (self.type, self.m_rows, self.m_columns))

    def __getitem__(self, name):
        return self.blocks[name]

    def __contains__(self, name):
        return name in self.blocks

    @property
    def s_rows(self):
        return self.ports

    @property
    def s_columns(self):
        return self.ports

    @property
    def block_names(self):
        return list(self.blocks)

    @property
    def unity_indices(self):
        '''
        Flat indices of the stored terms that are fixed to 1.
        '''
        return [s.unity_index for s in self.systems
                if s.unity_index is not None]

    @property
    def solve_layout(self):
        '''
        The layout whose systems are solved for this type: E12 is solved
        as UE14 and converted.
        '''
        if self.type is CalibrationType.E12:
            return get_layout(CalibrationType.UE14, self.m_rows,
                              self.m_columns)
        return self

    def needed_standards(self):
        '''
        See :func:`needed_standards`.
        '''
        return needed_standards(self.type, self.m_rows, self.m_columns)

    def unpack(self, terms):
        '''
        Split term vector(s) of shape (..., total_terms) into a dict of
        block matrices.
        '''
        terms = npy.asarray(terms)
        if terms.shape[-1] != self.total_terms:
            raise UsageError('expected %d error terms, got %d'
                             % (self.total_terms, terms.shape[-1]))
        return OrderedDict((name, block.unpack(terms))
                           for name, block in self.blocks.items())

    def pack(self, matrices):
        '''
        Inverse of :func:`unpack`.

        Parameters
        ----------
        matrices : dict
            one matrix stack of shape (..., rows, columns) per block name

        Returns
        -------
        terms : complex :class:`numpy.ndarray`
            shape (..., total_terms)
        '''
        missing = [name for name in self.blocks if name not in matrices]
        if missing:
            raise UsageError('%s error terms need block %s'
                             % (self.type, missing[0]))
        lead = npy.asarray(matrices[self.block_names[0]]).shape[:-2]
        terms = npy.zeros(lead + (self.total_terms,), dtype=complex)
        for name, block in self.blocks.items():
            terms[..., block.indices] = block.pack(matrices[name])
        return terms

    # construction
    def _take(self, count):
        indices = list(range(self._offset, self._offset + count))
        self._offset += count
        return indices

    def _add_block(self, name, rows, columns, cells, indices, fill=0.0):
        self.blocks[name] = Block(name, rows, columns, cells, indices, fill)
        return self.blocks[name]

    def _build_tu(self):
        m_rows, m_columns, ports = self.m_rows, self.m_columns, self.ports
        if self.type.family == 'T':
            names = _T_NAMES
            shapes = [(m_rows, ports), (m_rows, ports),
                      (m_columns, ports), (m_columns, ports)]
            unity_name = 'tm'
        else:
            names = _U_NAMES
            shapes = [(ports, m_rows), (ports, m_columns),
                      (ports, m_rows), (ports, m_columns)]
            unity_name = 'um'
        make_cells = _full_cells if self.type.is_full else _diagonal_cells

        terms = []
        unity = None
        for name, (rows, columns) in zip(names, shapes):
            cells = make_cells(rows, columns)
            if name == unity_name and ports == 1:
                self._add_block(name, rows, columns, [], [], fill=1.0)
                unity = len(terms)
                terms.append(Term(name, 0, 0, None))
                continue
            block = self._add_block(name, rows, columns, cells,
                                    self._take(len(cells)))
            for (r, c), index in zip(block.cells, block.indices):
                if name == unity_name and (r, c) == (0, 0):
                    unity = len(terms)
                terms.append(Term(name, r, c, int(index)))
        self.systems.append(System(terms, unity))

    def _build_ue14(self):
        m_rows, m_columns = self.m_rows, self.m_columns
        implicit = self.ports == 1
        cells = dict((name, []) for name in _U_NAMES)
        indices = dict((name, []) for name in _U_NAMES)

        def add(name, r, c):
            index = self._take(1)[0]
            cells[name].append((r, c))
            indices[name].append(index)
            return Term(name, r, c, index)

        for c in range(m_columns):
            terms = []
            unity = None
            for i in range(m_rows):
                if i == c:
                    unity = len(terms)
                if implicit:
                    terms.append(Term('um', i, c, None))
                else:
                    terms.append(add('um', i, c))
            terms.append(add('ui', 0, c))
            for i in range(m_rows):
                terms.append(add('ux', i, c))
            terms.append(add('us', 0, c))
            self.systems.append(System(terms, unity))

        self._add_block('um', m_rows, m_columns, cells['um'], indices['um'],
                        fill=1.0 if implicit else 0.0)
        self._add_block('ui', 1, m_columns, cells['ui'], indices['ui'])
        self._add_block('ux', m_rows, m_columns, cells['ux'], indices['ux'])
        self._add_block('us', 1, m_columns, cells['us'], indices['us'])

    def _build_e12(self):
        m_rows, m_columns = self.m_rows, self.m_columns
        names = ('el', 'er', 'em')
        cells = dict((name, []) for name in names)
        indices = dict((name, []) for name in names)
        for c in range(m_columns):
            for name in names:
                for r in range(m_rows):
                    cells[name].append((r, c))
                    indices[name].append(self._take(1)[0])
        for name in names:
            self._add_block(name, m_rows, m_columns, cells[name],
                            indices[name])


@lru_cache(maxsize=None)
def _cached_layout(cal_type, m_rows, m_columns):
    return Layout(cal_type, m_rows, m_columns)


def get_layout(cal_type, m_rows, m_columns):
    '''
    Return the (shared, immutable) :class:`Layout` of a calibration type
    and measurement size.

    Raises
    ------
    UsageError
        if a dimension is not a positive integer, or the dimensions are
        invalid for the type

    Examples
    --------
    >>> get_layout('TE10', 2, 2).total_terms
    10
    '''
    cal_type = CalibrationType.from_name(cal_type)
    m_rows = _check_dimension(m_rows, 'm_rows')
    m_columns = _check_dimension(m_columns, 'm_columns')
    return _cached_layout(cal_type, m_rows, m_columns)


def needed_standards(cal_type, m_rows, m_columns):
    '''
    Number of standards needed to solve a calibration.

    The count assumes standards whose S-parameters are all non-zero, so
    that each gives a full set of independent equations. Standards with
    fewer equations (reflects, for example) are needed in greater
    number. With one standard fewer than the count, the solve fails.

    Square diagonal error boxes (T8, U8, TE10, UE10) need fewer
    standards than the full forms but not simply unknowns over
    equations: a single full standard leaves 3, 2 and 1 free directions
    in the error terms besides their scale at 2, 3 and 4 ports, and
    none from 5 ports up, while two standards still leave one at 2
    ports. The all-match standard of the leakage types fixes the
    reflection terms, which removes the free directions from 3 ports
    up. Full error boxes leave a free direction per port until a fifth
    standard is added.

    Parameters
    ----------
    cal_type : :class:`CalibrationType` or str
    m_rows, m_columns : int

    Returns
    -------
    count : int
        number of standards, not counting the all-match standard
    needs_match : bool
        True if a standard with every port terminated in a match is
        needed in addition, to measure the leakage terms

    Examples
    --------
    >>> needed_standards('T8', 2, 2)
    (3, False)
    >>> needed_standards('TE10', 3, 3)
    (1, True)
    '''
    cal_type = CalibrationType.from_name(cal_type)
    m_rows = _check_dimension(m_rows, 'm_rows')
    m_columns = _check_dimension(m_columns, 'm_columns')
    ports = max(m_rows, m_columns)
    product = m_rows * m_columns
    if ports == 1:
        return 3, False
    if cal_type.is_column:
        # per column: 2 * m_rows + 1 unknowns, one equation from the
        # all-match standard and m_rows from each other standard
        return 2, True
    if cal_type.is_full:
        return int(ceil(((m_rows + m_columns) * 2 * ports - 1) / product)) \
            + 1, False
    if m_rows == m_columns:
        if cal_type.has_leakage:
            return (2 if ports == 2 else 1), True
        return {2: 3, 3: 2, 4: 2}.get(ports, 1), False
    count = int(ceil((2 * (m_rows + m_columns) - 1) / product))
    if cal_type.has_leakage:
        return count, True
    return count + 1, False
