import unittest

import numpy as npy
import pytest
import scipy.linalg
from numpy.testing import assert_allclose, assert_almost_equal

from vnacal import mathFunctions as mf


class ConversionTestCase(unittest.TestCase):
    """
    Test cases for the complex component conversions.
    """
    def test_complex_2_db(self):
        assert_almost_equal(mf.complex_2_db(10 + 0j), 20)
        assert_almost_equal(mf.complex_2_db(-0.1j), -20)

    def test_complex_2_degree(self):
        assert_almost_equal(mf.complex_2_degree(1j), 90)
        assert_almost_equal(mf.complex_2_degree(-1 + 0j), 180)

    def test_complex_2_magnitude(self):
        assert_almost_equal(mf.complex_2_magnitude(3 + 4j), 5)


class QRDecompositionTestCase(unittest.TestCase):
    """
    The Householder QR kernel against its defining properties.
    """
    def setUp(self):
        self.rng = npy.random.default_rng(42)

    def crand(self, *shape):
        return self.rng.standard_normal(shape) \
            + 1j * self.rng.standard_normal(shape)

    def test_reconstruct(self):
        shapes = [(m, n) for m in range(1, 6) for n in range(1, 6)]
        for shape in shapes + [(7, 3), (3, 7)]:
            a = self.crand(*shape)
            qr = mf.qrd(a)
            q, r = qr.reconstruct_q(), qr.reconstruct_r()
            assert_allclose(q @ r, a, atol=1e-12)
            assert_allclose(q @ q.conj().T, npy.eye(shape[0]), atol=1e-12)
            assert_allclose(npy.tril(r, -1), 0, atol=0)
            self.assertEqual(qr.rank, min(shape))

    def test_input_not_modified(self):
        a = self.crand(3, 3)
        b = a.copy()
        mf.qrd(a)
        assert_allclose(a, b, atol=0)

    def test_apply_qh(self):
        a = self.crand(5, 3)
        b = self.crand(5, 2)
        qr = mf.qrd(a)
        assert_allclose(qr.apply_qh(b), qr.reconstruct_q().conj().T @ b,
                        atol=1e-12)

    def test_zero_column(self):
        a = self.crand(4, 3)
        a[:, 1] = 0
        qr = mf.qrd(a)
        self.assertEqual(qr.rank, 2)
        assert_allclose(qr.reconstruct_q() @ qr.reconstruct_r(), a,
                        atol=1e-12)
        self.assertEqual(mf.qrd(npy.zeros((2, 2))).rank, 0)

    def test_determinant(self):
        for n in (1, 2, 5):
            a = self.crand(n, n)
            assert_allclose(mf.qrd(a).determinant, scipy.linalg.det(a),
                            rtol=1e-10)
        with pytest.raises(ValueError):
            mf.qrd(self.crand(3, 2)).determinant

    def test_bad_input(self):
        for a in (npy.zeros(3), npy.zeros((0, 2)), npy.zeros((2, 2, 2))):
            with pytest.raises(ValueError):
                mf.qrd(a)


class DivisionTestCase(unittest.TestCase):
    def setUp(self):
        self.rng = npy.random.default_rng(7)

    def crand(self, *shape):
        return self.rng.standard_normal(shape) \
            + 1j * self.rng.standard_normal(shape)

    def test_mldivide(self):
        a = self.crand(4, 4)
        x = self.crand(4, 2)
        result, det = mf.mldivide(a, a @ x)
        assert_allclose(result, x, atol=1e-10)
        assert_allclose(det, scipy.linalg.det(a), rtol=1e-10)
        self.assertFalse(mf.is_singular(a, det))

        v, _ = mf.mldivide(a, a @ x[:, 0])
        self.assertEqual(v.shape, (4,))
        assert_allclose(v, x[:, 0], atol=1e-10)

    def test_mrdivide(self):
        a = self.crand(3, 3)
        x = self.crand(2, 3)
        result, det = mf.mrdivide(x @ a, a)
        assert_allclose(result, x, atol=1e-10)
        assert_allclose(det, scipy.linalg.det(a), rtol=1e-10)

        row, _ = mf.mrdivide(x[0] @ a, a)
        assert_allclose(row, x[0], atol=1e-10)
        with pytest.raises(ValueError):
            mf.mrdivide(self.crand(2, 2), a)

    def test_singular(self):
        a = self.crand(3, 3)
        a[2] = a[0] + 2 * a[1]
        _, det = mf.mldivide(a, npy.ones(3))
        self.assertTrue(mf.is_singular(a, det))
        self.assertTrue(mf.is_singular(npy.zeros((2, 2)), 0))
        self.assertTrue(mf.is_singular(npy.eye(2), npy.nan))

    def test_singularity_is_relative(self):
        a = 1e-12 * self.crand(3, 3)
        _, det = mf.mldivide(a, npy.ones(3))
        self.assertFalse(mf.is_singular(a, det))

    def test_mldivide_needs_square(self):
        with pytest.raises(ValueError):
            mf.mldivide(self.crand(3, 2), npy.ones(3))
        with pytest.raises(ValueError):
            mf.mldivide(self.crand(3, 3), npy.ones(2))


class QRSolveTestCase(unittest.TestCase):
    def setUp(self):
        self.rng = npy.random.default_rng(3)

    def crand(self, *shape):
        return self.rng.standard_normal(shape) \
            + 1j * self.rng.standard_normal(shape)

    def test_square(self):
        a = self.crand(4, 4)
        x = self.crand(4)
        result, rank, q = mf.qrsolve_q(a, a @ x)
        assert_allclose(result, x, atol=1e-10)
        self.assertEqual(rank, 4)
        self.assertEqual(q.shape, (4, 4))

    def test_least_squares(self):
        a = self.crand(7, 3)
        b = self.crand(7, 2)
        result, rank, q = mf.qrsolve_q(a, b)
        expected = scipy.linalg.lstsq(a, b)[0]
        assert_allclose(result, expected, atol=1e-10)
        self.assertEqual(rank, 3)
        assert_allclose(q @ q.conj().T, npy.eye(7), atol=1e-12)

    def test_minimum_norm(self):
        a = self.crand(2, 5)
        b = self.crand(2)
        result, rank, _ = mf.qrsolve_q(a, b)
        assert_allclose(a @ result, b, atol=1e-10)
        assert_allclose(result, scipy.linalg.pinv(a) @ b, atol=1e-10)
        self.assertEqual(rank, 2)

    def test_rank_deficient(self):
        a = self.crand(5, 3)
        a[:, 2] = a[:, 0] - 1j * a[:, 1]
        _, rank, _ = mf.qrsolve_q(a, self.crand(5))
        self.assertEqual(rank, 2)


class InterpolationTestCase(unittest.TestCase):
    def test_rational_interp_reproduces_polynomials(self):
        x = npy.linspace(0, 1, 11)
        y = 1 + 2j * x - 3 * x ** 2 + x ** 4
        xi = npy.linspace(0.05, 0.95, 7)
        f = mf.rational_interp(x, y, d=4)
        assert_allclose(f(xi), 1 + 2j * xi - 3 * xi ** 2 + xi ** 4,
                        atol=1e-10)
        assert_allclose(f(x[3]), y[3:4])

    def test_rational_interp_unsorted(self):
        x = npy.array([0.3, 0.0, 0.2, 0.1, 0.4])
        f = mf.rational_interp(x, 2 * x, d=2)
        assert_allclose(f([0.15, 0.25]), [0.3, 0.5], atol=1e-12)

    def test_rational_interp_errors(self):
        with pytest.raises(ValueError):
            mf.rational_interp([0, 1], [0, 1], d=4)
        with pytest.raises(NotImplementedError):
            mf.rational_interp(npy.arange(6), npy.zeros((6, 2)), axis=1)

    def test_clamped(self):
        x = npy.array([1.0, 2.0, 3.0])
        y = npy.array([[1, 10], [2, 20], [3, 30]], dtype=complex)
        yi = mf.rational_interp_clamped(x, y, [0.5, 1.5, 2.5, 3.5])
        assert_allclose(yi, [[1, 10], [1.5, 15], [2.5, 25], [3, 30]],
                        atol=1e-12)

    def test_clamped_single_point(self):
        yi = mf.rational_interp_clamped([5.0], npy.array([2 + 1j]),
                                        [1.0, 9.0])
        assert_allclose(yi, [2 + 1j, 2 + 1j])

