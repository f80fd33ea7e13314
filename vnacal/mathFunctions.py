"""
mathFunctions (:mod:`vnacal.mathFunctions`)
=============================================


Provides the dense complex matrix kernel used by the calibration solver
and applicator, plus commonly used mathematical functions.

Mathematical Constants
----------------------
The tolerances used here are defined in the :mod:`vnacal.constants`
module.

QR Decomposition and Division
---------------------------------
.. autosummary::
        :toctree: generated/

        QRDecomposition
        qrd
        mldivide
        mrdivide
        qrsolve_q
        is_singular

Complex Component Conversion
---------------------------------
.. autosummary::
        :toctree: generated/

        complex_2_magnitude
        complex_2_db
        complex_2_degree

Various Utility Functions
--------------------------
.. autosummary::
        :toctree: generated/

        rational_interp
        rational_interp_clamped

"""
from typing import Callable, Tuple

import numpy as npy

from .constants import EPS, INTERP_ORDER, NumberLike


# simple conversions
def complex_2_magnitude(z: NumberLike):
    """
    Return the magnitude of the complex argument.

    Parameters
    ----------
    z : number or array_like
        A complex number or sequence of complex numbers

    Returns
    -------
    mag : ndarray or scalar

    """
    return npy.abs(z)


def complex_2_db(z: NumberLike):
    r"""
    Return the magnitude in dB of a complex number (as :math:`20\log_{10}(|z|)`).

    Parameters
    ----------
    z : number or array_like
        A complex number or sequence of complex numbers

    Returns
    -------
    mag20dB : ndarray or scalar
    """
    with npy.errstate(divide='ignore'):
        return 20 * npy.log10(npy.abs(z))


def complex_2_degree(z: NumberLike):
    """
    Return the angle complex argument in degree.

    Parameters
    ----------
    z : number or array_like
        A complex number or sequence of complex numbers

    Returns
    -------
    ang : ndarray or scalar
        The counterclockwise angle from the positive real axis on the complex
        plane in the range ``(-180, 180]``, with dtype as numpy.float64.
    """
    return npy.angle(z, deg=True)


# QR kernel
def _as_matrix(a, name='a') -> npy.ndarray:
    a = npy.array(a, dtype=complex)
    if a.ndim != 2 or a.shape[0] < 1 or a.shape[1] < 1:
        raise ValueError('%s must be a non-empty two dimensional matrix'
                         % name)
    return a


def _as_rhs(b, rows) -> Tuple[npy.ndarray, bool]:
    b = npy.array(b, dtype=complex)
    vector = b.ndim == 1
    if vector:
        b = b[:, None]
    if b.ndim != 2 or b.shape[0] != rows:
        raise ValueError('right hand side must have %d rows' % rows)
    return b, vector


def _solve_upper(r, y):
    n = r.shape[0]
    x = npy.zeros((n, y.shape[1]), dtype=complex)
    for i in reversed(range(n)):
        x[i] = (y[i] - r[i, i + 1:] @ x[i + 1:]) / r[i, i]
    return x


def _solve_lower(l, y):
    n = l.shape[0]
    x = npy.zeros((n, y.shape[1]), dtype=complex)
    for i in range(n):
        x[i] = (y[i] - l[i, :i] @ x[:i]) / l[i, i]
    return x


class QRDecomposition(object):
    """
    Householder QR decomposition of a complex matrix.

    The input is copied into a packed matrix: column k holds, from the
    diagonal down, the unit Householder vector of the k-th reflection,
    and the strictly upper triangle holds R. The diagonal of R is kept
    separately in :attr:`d`.

    For each column the pivot is chosen with the phase opposite to the
    diagonal element so that forming the reflection vector never
    cancels. A column that is already zero below (and on) the diagonal
    gets a zero pivot and an identity reflection.

    Parameters
    ----------
    a : array_like
        m x n complex matrix, left unmodified

    Examples
    --------
    >>> rng = npy.random.default_rng()
    >>> qr = vnacal.QRDecomposition(rng.standard_normal((4, 3)) + 1j)
    >>> q, r = qr.reconstruct_q(), qr.reconstruct_r()
    """
    def __init__(self, a):
        a = _as_matrix(a)
        m, n = a.shape
        d = npy.zeros(min(m, n), dtype=complex)
        for k in range(len(d)):
            x = a[k:, k]
            norm = npy.linalg.norm(x)
            if norm == 0.0:
                continue
            alpha = -npy.exp(1j * npy.angle(x[0])) * norm
            v = x.copy()
            v[0] -= alpha
            v /= npy.linalg.norm(v)
            a[k:, k] = v
            a[k:, k + 1:] -= 2.0 * npy.outer(v, v.conj() @ a[k:, k + 1:])
            d[k] = alpha
        self.packed = a
        self.d = d

    def __repr__(self):
        return 'QRDecomposition(%d x %d, rank %d)' % (
            self.shape[0], self.shape[1], self.rank)

    @property
    def shape(self) -> Tuple[int, int]:
        """
        Shape of the decomposed matrix.
        """
        return self.packed.shape

    @property
    def rank(self) -> int:
        """
        Number of pivots larger than :data:`~vnacal.constants.EPS` times
        the largest pivot.
        """
        mags = npy.abs(self.d)
        top = mags.max()
        if top == 0.0:
            return 0
        return int(npy.count_nonzero(mags > EPS * top))

    @property
    def determinant(self) -> complex:
        """
        Determinant of the decomposed matrix, which must be square.
        """
        m, n = self.shape
        if m != n:
            raise ValueError('determinant of a %d x %d matrix' % (m, n))
        # each non-identity reflection contributes -1
        sign = (-1) ** int(npy.count_nonzero(self.d))
        return complex(sign * npy.prod(self.d))

    def apply_qh(self, b) -> npy.ndarray:
        """
        Return :math:`Q^H b` without forming Q.
        """
        b, vector = _as_rhs(b, self.shape[0])
        for k in range(len(self.d)):
            v = self.packed[k:, k]
            b[k:] -= 2.0 * npy.outer(v, v.conj() @ b[k:])
        return b[:, 0] if vector else b

    def reconstruct_q(self) -> npy.ndarray:
        """
        The m x m unitary factor Q.
        """
        m = self.shape[0]
        q = npy.eye(m, dtype=complex)
        for k in reversed(range(len(self.d))):
            v = self.packed[k:, k]
            q[k:, :] -= 2.0 * npy.outer(v, v.conj() @ q[k:, :])
        return q

    def reconstruct_r(self) -> npy.ndarray:
        """
        The m x n upper triangular factor R.
        """
        r = npy.triu(self.packed, 1)
        idx = npy.arange(len(self.d))
        r[idx, idx] = self.d
        return r


def qrd(a) -> QRDecomposition:
    """
    Compute the Householder QR decomposition of `a`.

    See Also
    --------
    QRDecomposition
    """
    return QRDecomposition(a)


def mldivide(a, b) -> Tuple[npy.ndarray, complex]:
    r"""
    Solve :math:`A X = B` for square A.

    Parameters
    ----------
    a : array_like
        n x n matrix
    b : array_like
        n x o matrix or length n vector

    Returns
    -------
    x : :class:`numpy.ndarray`
        solution, same shape as `b`
    det : complex
        determinant of `a`. If `a` is singular, `det` is zero and `x`
        is undefined; test it with :func:`is_singular`.
    """
    a = _as_matrix(a)
    if a.shape[0] != a.shape[1]:
        raise ValueError('a must be square, got %d x %d' % a.shape)
    b, vector = _as_rhs(b, a.shape[0])
    qr = QRDecomposition(a)
    y = qr.apply_qh(b)
    with npy.errstate(divide='ignore', invalid='ignore'):
        x = _solve_upper(qr.reconstruct_r(), y)
    return (x[:, 0] if vector else x), qr.determinant


def mrdivide(b, a) -> Tuple[npy.ndarray, complex]:
    r"""
    Solve :math:`X A = B` for square A, i.e. :math:`X = B A^{-1}`.

    The system is solved by decomposing :math:`A^H` and
    back-substituting for :math:`X^H`.

    Parameters
    ----------
    b : array_like
        m x n matrix or length n row vector
    a : array_like
        n x n matrix

    Returns
    -------
    x : :class:`numpy.ndarray`
        solution, same shape as `b`
    det : complex
        determinant of `a`

    Examples
    --------
    >>> rng = npy.random.default_rng()
    >>> a, t = rng.standard_normal((3, 3)), rng.standard_normal((2, 3))
    >>> x, det = vnacal.mrdivide(t @ a, a)
    """
    a = _as_matrix(a)
    b = npy.array(b, dtype=complex)
    row = b.ndim == 1
    if row:
        b = b[None, :]
    if b.ndim != 2 or b.shape[1] != a.shape[0]:
        raise ValueError('b must have %d columns' % a.shape[0])
    xh, det = mldivide(a.conj().T, b.conj().T)
    x = xh.conj().T
    return (x[0] if row else x), npy.conj(det)


def qrsolve_q(a, b) -> Tuple[npy.ndarray, int, npy.ndarray]:
    r"""
    Solve :math:`A x = b` by QR decomposition, returning Q as well.

    Over-determined systems (m > n) are solved in the least squares
    sense; under-determined systems (m < n) give the minimum norm
    solution.

    Parameters
    ----------
    a : array_like
        m x n matrix
    b : array_like
        m x o matrix or length m vector

    Returns
    -------
    x : :class:`numpy.ndarray`
        n x o solution (length n if `b` is a vector)
    rank : int
        number of significant pivots of `a`. When `rank` is less than
        ``min(m, n)`` the system is ill-posed and `x` must not be used.
    q : :class:`numpy.ndarray`
        the m x m unitary factor of `a`
    """
    a = _as_matrix(a)
    m, n = a.shape
    b, vector = _as_rhs(b, m)
    qr = QRDecomposition(a)
    with npy.errstate(divide='ignore', invalid='ignore'):
        if m >= n:
            y = qr.apply_qh(b)
            x = _solve_upper(qr.reconstruct_r()[:n, :n], y[:n])
        else:
            qr_h = QRDecomposition(a.conj().T)
            r_h = qr_h.reconstruct_r()[:m, :m]
            z = _solve_lower(r_h.conj().T, b)
            x = qr_h.reconstruct_q()[:, :m] @ z
    return (x[:, 0] if vector else x), qr.rank, qr.reconstruct_q()


def is_singular(a, det) -> bool:
    """
    Test a determinant returned by :func:`mldivide` or :func:`mrdivide`.

    The determinant is compared against :data:`~vnacal.constants.EPS`
    times the Hadamard bound of `a` (the product of its column norms), so
    the test does not depend on the scale of the matrix.

    Parameters
    ----------
    a : array_like
        the square matrix that was divided by
    det : complex
        its determinant

    Returns
    -------
    singular : bool
    """
    bound = npy.prod(npy.linalg.norm(npy.asarray(a), axis=0))
    if not npy.isfinite(det):
        return True
    return bool(abs(det) <= EPS * bound)


def rational_interp(x: npy.ndarray, y: npy.ndarray, d: int = INTERP_ORDER,
                    epsilon: float = 1e-9, axis: int = 0,
                    assume_sorted: bool = False) -> Callable:
    """
    Interpolates function using rational polynomials of degree `d`.

    Interpolating function is singular when xi is exactly one of the
    original x points. If xi is closer than epsilon to one of the original points,
    then the value at that points is returned instead.

    Implementation is based on [#]_.

    Parameters
    ----------
    x : npy.ndarray
    y : npy.ndarray
        values, first axis aligned with `x`
    d : int, optional
        order of the polynomial, by default 4
    epsilon : float, optional
        numerical tolerance, by default 1e-9
    axis : int, optional
        axis to operate on, by default 0
    assume_sorted : bool, optional
        If False, values of x can be in any order and they are sorted first.
        If True, x has to be an array of monotonically increasing values.

    Returns
    -------
    fx : Callable
        Interpolate function

    Raises
    ------
    NotImplementedError
        if axis != 0.

    References
    ------------
    .. [#] M. S. Floater and K. Hormann, "Barycentric rational interpolation with no poles and high rates of approximation," Numer. Math., vol. 107, no. 2, pp. 315-331, Aug. 2007
    """
    if axis != 0:
        raise NotImplementedError("Axis other than 0 is not implemented")

    x = npy.asarray(x, dtype=float)
    y = npy.asarray(y)
    if not assume_sorted:
        sort_indices = npy.argsort(x, axis=axis)
        x = x[sort_indices]
        y = y[sort_indices]

    n = len(x)
    if n <= d:
        raise ValueError('Not enough x-axis points')

    w = npy.zeros(n)
    # Scaling to give close to 1 weights
    hd = (x[n//2] - x[n//2-1])**d
    for k in range(n):
        for i in range(max(0, k-d), min(k+1, n-d)):
            p = hd
            for j in range(i, min(n, i+d+1)):
                if j == k:
                    continue
                p *= 1/(x[k] - x[j])
            if i % 2 == 1:
                w[k] -= p
            else:
                w[k] += p

    # Add dimensions to match y shape
    w_shape = [1]*len(y.shape)
    w_shape[0] = -1
    w = w.reshape(w_shape)

    def fx(xi):
        xi = npy.atleast_1d(npy.asarray(xi, dtype=float))
        # replace points that land on a sample by the sample itself
        idx = npy.searchsorted(x, xi)
        idx[idx == len(x)] = len(x) - 1
        nearest_idx = npy.where(npy.abs(x[idx] - xi) < epsilon)[0]
        nearest_value = y[idx[nearest_idx]]

        xi = xi.reshape(*w_shape)
        with npy.errstate(divide='ignore', invalid='ignore'):
            v = sum(y[i]*w[i]/(xi - x[i]) for i in range(n))\
                / sum(w[i]/(xi - x[i]) for i in range(n))

        for e, i in enumerate(nearest_idx):
            v[i] = nearest_value[e]

        return v

    return fx


def rational_interp_clamped(x: npy.ndarray, y: npy.ndarray, xi: NumberLike,
                            d: int = INTERP_ORDER) -> npy.ndarray:
    """
    Evaluate :func:`rational_interp` at `xi`, holding the end values
    outside of ``[x[0], x[-1]]``.

    The order is lowered when there are too few points for `d`; a
    single point gives a constant.

    Parameters
    ----------
    x : npy.ndarray
        strictly increasing sample positions
    y : npy.ndarray
        samples, first axis aligned with `x`
    xi : number or array_like
        positions to evaluate at
    d : int, optional
        order of the interpolation, by default 4

    Returns
    -------
    yi : npy.ndarray
        values with first axis aligned with `xi`
    """
    x = npy.asarray(x, dtype=float)
    y = npy.asarray(y)
    xi = npy.atleast_1d(npy.asarray(xi, dtype=float))
    if len(x) == 1:
        return npy.repeat(y[:1], len(xi), axis=0)
    d = min(d, len(x) - 1)
    return rational_interp(x, y, d=d, assume_sorted=True)(
        npy.clip(xi, x[0], x[-1]))
