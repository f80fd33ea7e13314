import unittest

import numpy as npy
import pytest
from numpy.testing import assert_allclose

import vnacal
from vnacal import (MATCH, OPEN, SHORT, CalibrationApplicator,
                    CalibrationSolver, MathError, ResidualWarning,
                    SolvedCalibration, UnknownParameter, UsageError,
                    VectorParameter)
from vnacal.calibration.calibrationFunctions import embed_terms
from vnacal.calibration.layout import (CalibrationType, get_layout,
                                       needed_standards)

# number of frequency points to test calibrations at
NPTS = 3
FREQ = vnacal.Frequency(1, 2, NPTS, 'ghz')

# blocks whose driven terms are near 1 for a perfect VNA
BIG_BLOCKS = ('ts', 'tm', 'um', 'us', 'er')


def crand(rng, *shape):
    return rng.standard_normal(shape) + 1j * rng.standard_normal(shape)


def random_terms(layout, rng):
    '''
    Error terms of an imperfect VNA, with the unity terms set to 1.
    '''
    terms = 0.1 * crand(rng, NPTS, layout.total_terms)
    for name, block in layout.blocks.items():
        for (r, c), index in zip(block.cells, block.indices):
            if name in BIG_BLOCKS and (r == c or layout.type.is_column):
                terms[:, index] += 1.0
    terms[:, layout.unity_indices] = 1.0
    return terms


def random_s(rng, ports):
    return 0.3 * crand(rng, NPTS, ports, ports)


def random_a(rng, layout):
    '''
    Incident waves for a measurement of `layout`.
    '''
    columns = layout.m_columns
    if layout.type.is_column:
        return 1.0 + 0.2 * crand(rng, NPTS, 1, columns)
    return npy.eye(columns) + 0.2 * crand(rng, NPTS, columns, columns)


def waves(m, a):
    if a.shape[1] == 1:
        return m * a
    return m @ a


class CalibrationTest(object):
    '''
    Generic test case of a calibration type and size.

    Sub-classes set `cal_type`, `m_rows` and `m_columns`. The standards
    are the number of random full standards that the type needs, plus an
    all-match standard where leakage terms are to be measured.
    '''
    cal_type = None
    m_rows = None
    m_columns = None

    def setUp(self):
        self.rng = npy.random.default_rng(7)
        self.layout = get_layout(self.cal_type, self.m_rows, self.m_columns)
        self.ports = self.layout.ports
        self.terms = random_terms(self.layout, self.rng)

        count, needs_match = needed_standards(
            self.cal_type, self.m_rows, self.m_columns)
        self.standards = []
        for k in range(count):
            s = random_s(self.rng, self.ports)
            self.standards.append((s, s))
        if needs_match:
            self.standards.append(
                ([[MATCH] * self.ports for k in range(self.ports)],
                 npy.zeros((NPTS, self.ports, self.ports))))

        self.solver = CalibrationSolver(FREQ, self.cal_type, self.m_rows,
                                        self.m_columns, name='test')
        for s, actual in self.standards:
            self.solver.add_standard(s, m=self.measure(actual))
        self.cal = self.solver.solve()

    def measure(self, s):
        return embed_terms(self.layout, self.terms, s)

    def correct(self, cal, d):
        if self.m_rows == self.m_columns:
            return cal.apply(m=self.measure(d))
        # rectangular calibrations need the DUT measured both ways round
        app = CalibrationApplicator(cal)
        for port_map in ([0, 1], [1, 0]):
            s = d[:, port_map][:, :, port_map]
            app.add_matrix(m=self.measure(s), port_map=port_map)
        return app.get_data()

    def test_error_terms(self):
        assert_allclose(self.cal.terms, self.terms, atol=1e-8)

    def test_accuracy_of_dut_correction(self):
        d = random_s(self.rng, self.ports)
        assert_allclose(self.correct(self.cal, d), d, atol=1e-8)

    def test_embed_equal_measure(self):
        d = random_s(self.rng, self.ports)
        assert_allclose(self.cal.embed(d), self.measure(d), atol=1e-8)

    def test_terms_are_read_only(self):
        with pytest.raises(ValueError):
            self.cal.terms[0, 0] = 0

    def test_from_coefs(self):
        cal = SolvedCalibration.from_coefs(FREQ, self.cal.coefs,
                                           self.cal_type, name='test')
        self.assertEqual(cal, self.cal)

    def test_dict_round_trip(self):
        self.assertEqual(SolvedCalibration.from_dict(self.cal.to_dict()),
                         self.cal)

    def test_solve_twice(self):
        self.assertIs(self.solver.solve(), self.cal)

    def test_add_after_solve(self):
        s, actual = self.standards[0]
        with pytest.raises(UsageError):
            self.solver.add_standard(s, m=self.measure(actual))

    def test_wave_form(self):
        solver = CalibrationSolver(FREQ, self.cal_type, self.m_rows,
                                   self.m_columns)
        for s, actual in self.standards:
            a = random_a(self.rng, self.layout)
            solver.add_standard(s, a=a, b=waves(self.measure(actual), a))
        cal = solver.solve()
        assert_allclose(cal.terms, self.terms, atol=1e-8)

        if self.m_rows == self.m_columns:
            d = random_s(self.rng, self.ports)
            a = random_a(self.rng, self.layout)
            assert_allclose(cal.apply(a=a, b=waves(self.measure(d), a)), d,
                            atol=1e-8)


class T8Test(CalibrationTest, unittest.TestCase):
    cal_type, m_rows, m_columns = 'T8', 2, 2


class T8OnePortTest(T8Test):
    m_rows, m_columns = 1, 1


class T8FivePortTest(T8Test):
    m_rows, m_columns = 5, 5


class T8RectangularTest(T8Test):
    m_rows, m_columns = 1, 2


class U8Test(CalibrationTest, unittest.TestCase):
    cal_type, m_rows, m_columns = 'U8', 2, 2


class U8OnePortTest(U8Test):
    m_rows, m_columns = 1, 1


class U8FivePortTest(U8Test):
    m_rows, m_columns = 5, 5


class U8RectangularTest(U8Test):
    m_rows, m_columns = 2, 1


class TE10Test(CalibrationTest, unittest.TestCase):
    cal_type, m_rows, m_columns = 'TE10', 2, 2


class TE10OnePortTest(TE10Test):
    m_rows, m_columns = 1, 1


class TE10FivePortTest(TE10Test):
    m_rows, m_columns = 5, 5


class TE10RectangularTest(TE10Test):
    m_rows, m_columns = 1, 2


class UE10Test(CalibrationTest, unittest.TestCase):
    cal_type, m_rows, m_columns = 'UE10', 2, 2


class UE10OnePortTest(UE10Test):
    m_rows, m_columns = 1, 1


class UE10FivePortTest(UE10Test):
    m_rows, m_columns = 5, 5


class UE10RectangularTest(UE10Test):
    m_rows, m_columns = 2, 1


class T16Test(CalibrationTest, unittest.TestCase):
    cal_type, m_rows, m_columns = 'T16', 2, 2


class T16OnePortTest(T16Test):
    m_rows, m_columns = 1, 1


class T16FivePortTest(T16Test):
    m_rows, m_columns = 5, 5


class U16Test(CalibrationTest, unittest.TestCase):
    cal_type, m_rows, m_columns = 'U16', 2, 2


class U16OnePortTest(U16Test):
    m_rows, m_columns = 1, 1


class U16FivePortTest(U16Test):
    m_rows, m_columns = 5, 5


class UE14Test(CalibrationTest, unittest.TestCase):
    cal_type, m_rows, m_columns = 'UE14', 2, 2


class UE14OnePortTest(UE14Test):
    m_rows, m_columns = 1, 1


class UE14FivePortTest(UE14Test):
    m_rows, m_columns = 5, 5


class UE14RectangularTest(UE14Test):
    m_rows, m_columns = 2, 1


class E12Test(CalibrationTest, unittest.TestCase):
    cal_type, m_rows, m_columns = 'E12', 2, 2


class E12OnePortTest(E12Test):
    m_rows, m_columns = 1, 1


class E12FivePortTest(E12Test):
    m_rows, m_columns = 5, 5


class E12RectangularTest(E12Test):
    m_rows, m_columns = 2, 1


class PortMapTest(unittest.TestCase):
    '''
    Three port TE10 calibration from reflects, matches, a through and
    a line, each measured only on the VNA ports it is connected to.
    '''
    def setUp(self):
        self.rng = npy.random.default_rng(11)
        self.layout = get_layout('TE10', 3, 3)
        self.terms = random_terms(self.layout, self.rng)
        self.line = [[0, 0.8j], [0.8j, 0]]

        cal = CalibrationSolver(FREQ, 'TE10', 3, 3, name='solt')
        for p1, p2 in ((0, 1), (0, 2), (1, 2)):
            cal.add_double_reflect(MATCH, MATCH, p1, p2,
                                   m=self.measure(npy.zeros((2, 2)), [p1, p2]))
        for p in range(3):
            cal.add_single_reflect(SHORT, p, m=self.measure([[-1]], [p]))
            cal.add_single_reflect(OPEN, p, m=self.measure([[1]], [p]))
        cal.add_through(0, 1, m=self.measure([[0, 1], [1, 0]], [0, 1]))
        cal.add_line(self.line, 1, 2, m=self.measure(self.line, [1, 2]))
        self.solver = cal
        self.cal = cal.solve()

    def measure(self, s, ports):
        '''
        Measurement of standard `s` on VNA `ports`, reduced to those
        ports. The other ports see a mismatched termination.
        '''
        s_full = npy.zeros((NPTS, 3, 3), dtype=complex)
        s_full[:, [0, 1, 2], [0, 1, 2]] = 0.3
        ix = npy.array(ports)
        s_full[:, ix[:, None], ix[None, :]] = npy.asarray(s, dtype=complex)
        m = embed_terms(self.layout, self.terms, s_full)
        return m[:, ix[:, None], ix[None, :]]

    def test_error_terms(self):
        assert_allclose(self.cal.terms, self.terms, atol=1e-8)

    def test_accuracy_of_dut_correction(self):
        d = random_s(self.rng, 3)
        m = embed_terms(self.layout, self.terms, d)
        assert_allclose(self.cal.apply(m=m), d, atol=1e-8)

    def test_str(self):
        self.assertIn('solt', str(self.cal))
        self.assertIn('TE10', str(self.solver))
        self.assertEqual(self.solver.nstandards, 11)

    def test_full_size_measurement_of_small_standard(self):
        cal = CalibrationSolver(FREQ, 'TE10', 3, 3)
        s_full = npy.zeros((NPTS, 3, 3), dtype=complex)
        s_full[:, [0, 1, 2], [0, 1, 2]] = [-1, 0.3, 0.3]
        m = embed_terms(self.layout, self.terms, s_full)
        cal.add_single_reflect(SHORT, 0, m=m)
        std = cal._standards[0]
        assert_allclose(std.m, m)
        self.assertTrue(std.row_given.all())
        self.assertEqual(list(std.connected), [True, False, False])

    def test_missing_port_map(self):
        cal = CalibrationSolver(FREQ, 'TE10', 3, 3)
        with pytest.raises(UsageError):
            cal.add_standard([[SHORT]], m=self.measure([[-1]], [0]))

    def test_bad_port_maps(self):
        cal = CalibrationSolver(FREQ, 'TE10', 3, 3)
        m = self.measure([[0, 1], [1, 0]], [0, 1])
        for port_map in ([0, 1], [0, 0, -1], [0, 2, 1], [0, -1, -1]):
            with pytest.raises(UsageError):
                cal.add_standard([[MATCH, 1], [1, MATCH]], m=m,
                                 port_map=port_map)
        with pytest.raises(UsageError):
            cal.add_through(0, 0, m=m)
        with pytest.raises(UsageError):
            cal.add_single_reflect(SHORT, 3, m=m[:, :1, :1])

    def test_measurement_shape(self):
        cal = CalibrationSolver(FREQ, 'TE10', 3, 3)
        with pytest.raises(UsageError):
            cal.add_single_reflect(SHORT, 0, m=npy.zeros((NPTS, 2, 2)))
        with pytest.raises(UsageError):
            cal.add_single_reflect(SHORT, 0, m=npy.zeros((NPTS + 1, 1, 1)))
        with pytest.raises(UsageError):
            cal.add_single_reflect(SHORT, 0)


class ReducedMeasurementTest(unittest.TestCase):
    def test_t16_needs_every_column(self):
        cal = CalibrationSolver(FREQ, 'T16', 2, 2)
        with pytest.raises(UsageError):
            cal.add_single_reflect(SHORT, 0, m=npy.ones((NPTS, 1, 1)))
        cal.add_single_reflect(SHORT, 0, m=npy.ones((NPTS, 1, 2)))

    def test_u16_needs_every_row(self):
        cal = CalibrationSolver(FREQ, 'U16', 2, 2)
        with pytest.raises(UsageError):
            cal.add_single_reflect(SHORT, 1, m=npy.ones((NPTS, 1, 1)))
        cal.add_single_reflect(SHORT, 1, m=npy.ones((NPTS, 2, 1)))

    def test_reduced_column_without_driven_port(self):
        # only VNA port 0 of a 3 x 1 calibration is driven
        cal = CalibrationSolver(FREQ, 'UE10', 3, 1)
        line = [[0, 1], [1, 0]]
        with pytest.raises(UsageError, match='no measurement column'):
            cal.add_line(line, 1, 2, m=npy.ones((NPTS, 2, 2)))
        cal.add_line(line, 1, 2, m=npy.ones((NPTS, 2, 1)))


class CalibrationErrorTest(unittest.TestCase):
    def setUp(self):
        self.rng = npy.random.default_rng(3)
        self.layout = get_layout('T8', 2, 2)
        self.terms = random_terms(self.layout, self.rng)
        self.s = [random_s(self.rng, 2) for k in range(3)]

    def measure(self, s, layout=None):
        if layout is None:
            layout = self.layout
        return embed_terms(layout, self.terms, s)

    def test_insufficient_standards(self):
        cal = CalibrationSolver(FREQ, 'T8', 2, 2)
        cal.add_standard(self.s[0], m=self.measure(self.s[0]))
        with pytest.raises(MathError, match='insufficient'):
            cal.solve()
        self.assertFalse(cal.is_solved)

    def test_no_standards(self):
        cal = CalibrationSolver(FREQ, 'T8', 2, 2)
        with pytest.raises(MathError):
            cal.solve()

    def test_repeated_standard(self):
        cal = CalibrationSolver(FREQ, 'T8', 2, 2)
        for k in range(3):
            cal.add_standard(self.s[0], m=self.measure(self.s[0]))
        with pytest.raises(MathError, match='singular linear system') as e:
            cal.solve()
        self.assertEqual(e.value.frequency_indices, list(range(NPTS)))
        self.assertEqual(e.value.category, 'math')

    def test_missing_leakage_standard(self):
        layout = get_layout('TE10', 2, 2)
        terms = random_terms(layout, self.rng)
        cal = CalibrationSolver(FREQ, 'TE10', 2, 2)
        for s in self.s:
            cal.add_standard(s, m=embed_terms(layout, terms, s))
        with pytest.raises(MathError, match='leakage'):
            cal.solve()

    def test_residual_warning(self):
        cal = CalibrationSolver(FREQ, 'T8', 2, 2)
        for k, s in enumerate(self.s):
            m = self.measure(s)
            if k == 2:
                m = m + 0.1
            cal.add_standard(s, m=m)
        with pytest.warns(ResidualWarning):
            cal.solve()

    def test_singular_a_matrix(self):
        cal = CalibrationSolver(FREQ, 'T8', 2, 2)
        a = npy.zeros((NPTS, 2, 2))
        a[1] = npy.eye(2)
        with pytest.raises(MathError, match="'a' matrix") as e:
            cal.add_standard(self.s[0], a=a, b=self.measure(self.s[0]))
        self.assertEqual(e.value.frequency_indices, [0, 2])

    def test_m_and_waves(self):
        cal = CalibrationSolver(FREQ, 'T8', 2, 2)
        m = self.measure(self.s[0])
        with pytest.raises(UsageError):
            cal.add_standard(self.s[0], m=m, a=npy.ones((NPTS, 2, 2)), b=m)
        with pytest.raises(UsageError):
            cal.add_standard(self.s[0], b=m)

    def test_singular_apply_t8(self):
        one = npy.tile(npy.eye(2), (NPTS, 1, 1))
        cal = SolvedCalibration.from_coefs(
            FREQ, {'ts': one, 'ti': 0 * one, 'tx': 0.5 * one, 'tm': one},
            'T8')
        with pytest.raises(MathError, match='frequency index 0, 1, 2'):
            cal.apply(m=2 * one)

    def test_singular_apply_u8(self):
        one = npy.tile(npy.eye(2), (NPTS, 1, 1))
        cal = SolvedCalibration.from_coefs(
            FREQ, {'um': one, 'ui': 0 * one, 'ux': 0.5 * one, 'us': one},
            'U8')
        with pytest.raises(MathError):
            cal.apply(m=-2 * one)

    def test_parameter_out_of_range(self):
        narrow = VectorParameter([1.2e9, 1.5e9], [0.5, 0.6])
        cal = CalibrationSolver(FREQ, 'T8', 1, 1)
        with pytest.raises(UsageError):
            cal.add_single_reflect(narrow, 0, m=npy.ones(NPTS))

    def test_unknown_parameters_are_recorded(self):
        layout = get_layout('T8', 1, 1)
        terms = random_terms(layout, self.rng)
        unknown = UnknownParameter(0.9j)
        cal = CalibrationSolver(FREQ, 'T8', 1, 1)
        for gamma in (SHORT, OPEN, unknown):
            s = npy.full((NPTS, 1, 1), gamma.resolve(FREQ.f)[0])
            cal.add_single_reflect(gamma, 0,
                                   m=embed_terms(layout, terms, s)[:, 0, 0])
        self.assertEqual(cal.unknowns, [unknown])
        assert_allclose(cal.solve().terms, terms, atol=1e-8)

    def test_bad_frequency(self):
        with pytest.raises(UsageError):
            CalibrationSolver([2e9, 1e9], 'T8', 2, 2)
        with pytest.raises(UsageError):
            CalibrationSolver([], 'T8', 2, 2)

    def test_bad_type(self):
        with pytest.raises(UsageError):
            CalibrationSolver(FREQ, 'T9', 2, 2)
        with pytest.raises(UsageError):
            CalibrationSolver(FREQ, 'T8', 2, 1)
        with pytest.raises(UsageError):
            CalibrationSolver(FREQ, 'U8', 1, 2)

    def test_bad_z0(self):
        with pytest.raises(UsageError):
            CalibrationSolver(FREQ, 'T8', 2, 2, z0=[50, 50, 50])


class SolvedCalibrationTest(unittest.TestCase):
    '''
    A one-port calibration whose error terms are linear in frequency.
    '''
    def setUp(self):
        self.rng = npy.random.default_rng(5)
        self.layout = get_layout('E12', 1, 1)
        self.slope = 0.1 * crand(self.rng, 3)
        self.offset = npy.array([0.05, 0.9, 0.1]) + 0.05 * crand(self.rng, 3)
        self.cal = SolvedCalibration(FREQ, 'E12', 1, 1,
                                     self.linear_terms(FREQ.f),
                                     z0=[[50], [51], [52]])

    def linear_terms(self, f):
        return self.offset + self.slope * (f[:, None] / 1e9)

    def test_interpolate_terms(self):
        f = npy.linspace(1.1e9, 1.9e9, 7)
        assert_allclose(self.cal.interpolate_terms(f), self.linear_terms(f),
                        atol=1e-10)
        assert_allclose(self.cal.interpolate_terms(f, kind='linear'),
                        self.linear_terms(f), atol=1e-10)

    def test_same_grid(self):
        assert_allclose(self.cal.interpolate_terms(FREQ), self.cal.terms)

    def test_extrapolation_holds_end_values(self):
        f = npy.array([0.995e9, 2.01e9])
        terms = self.cal.interpolate_terms(f)
        assert_allclose(terms[0], self.cal.terms[0])
        assert_allclose(terms[1], self.cal.terms[-1])

    def test_out_of_band(self):
        with pytest.raises(UsageError):
            self.cal.interpolate_terms([1.5e9, 2.1e9])
        with pytest.raises(UsageError):
            self.cal.apply([0.9e9], m=npy.zeros(1))

    def test_apply_between_frequencies(self):
        f = npy.linspace(1.2e9, 1.8e9, 4)
        d = 0.5 * crand(self.rng, 4, 1, 1)
        m = embed_terms(self.layout, self.linear_terms(f), d)
        assert_allclose(self.cal.apply(f, m=m), d, atol=1e-10)
        assert_allclose(self.cal.apply_m(f, m), d, atol=1e-10)
        assert_allclose(self.cal.embed(d, f), m, atol=1e-10)

    def test_z0_vector(self):
        assert_allclose(self.cal.z0_vector(1), [51])
        with pytest.raises(UsageError):
            self.cal.z0_vector(NPTS)
        cal = SolvedCalibration(FREQ, 'E12', 1, 1, self.cal.terms)
        assert_allclose(cal.z0_vector(0), [50])

    def test_bad_terms(self):
        with pytest.raises(UsageError):
            SolvedCalibration(FREQ, 'E12', 1, 1, npy.zeros((NPTS, 4)))
        with pytest.raises(UsageError):
            SolvedCalibration.from_coefs(FREQ, {'er': 1}, 'E12')

    def test_coefs(self):
        coefs = self.cal.coefs
        self.assertEqual(list(coefs), ['el', 'er', 'em'])
        self.assertEqual(coefs['er'].shape, (NPTS, 1, 1))

    def test_write_needs_name(self):
        with pytest.raises(UsageError):
            self.cal.write()


TYPES = [t.name for t in CalibrationType]


def solver_for(frequency, layout, terms, standards, needs_match):
    solver = CalibrationSolver(frequency, layout.type, layout.m_rows,
                               layout.m_columns)
    for s in standards:
        solver.add_standard(s, m=embed_terms(layout, terms, s))
    if needs_match:
        ports = layout.ports
        solver.add_standard([[MATCH] * ports for k in range(ports)],
                            m=embed_terms(layout, terms,
                                          npy.zeros((NPTS, ports, ports))))
    return solver


@pytest.mark.parametrize('ports', [2, 3, 4, 5])
@pytest.mark.parametrize('cal_type', TYPES)
def test_needed_standards_is_least(cal_type, ports, rng, frequency):
    layout = get_layout(cal_type, ports, ports)
    terms = random_terms(layout, rng)
    count, needs_match = needed_standards(cal_type, ports, ports)
    standards = [random_s(rng, ports) for k in range(count)]

    solver = solver_for(frequency, layout, terms, standards[:-1],
                        needs_match)
    with pytest.raises(MathError):
        solver.solve()
    assert not solver.is_solved

    cal = solver_for(frequency, layout, terms, standards,
                     needs_match).solve()
    assert_allclose(cal.terms, terms, atol=1e-6)


@pytest.mark.parametrize('cal_type', TYPES)
def test_apply_undoes_embed(cal_type, make_calibration, rng):
    cal = make_calibration(cal_type, 3, 3, name='three')
    d = random_s(rng, 3)
    assert_allclose(cal.apply(m=cal.embed(d)), d, atol=1e-8)
    assert cal.name == 'three'
