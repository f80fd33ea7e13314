import numpy as npy
import pytest

import vnacal
from vnacal.calibration.layout import get_layout


@pytest.fixture
def rng():
    return npy.random.default_rng(1234)


@pytest.fixture
def frequency():
    return vnacal.Frequency(1, 2, 3, 'ghz')


@pytest.fixture
def make_calibration(rng, frequency):
    '''
    Factory of solved calibrations with random error terms of an
    imperfect VNA.
    '''
    def make(cal_type, m_rows=2, m_columns=2, name=None):
        layout = get_layout(cal_type, m_rows, m_columns)
        npoints = len(frequency)
        terms = 0.1 * (rng.standard_normal((npoints, layout.total_terms))
                       + 1j * rng.standard_normal((npoints,
                                                   layout.total_terms)))
        for block_name in ('ts', 'tm', 'um', 'us', 'er'):
            if block_name not in layout:
                continue
            block = layout[block_name]
            for (r, c), index in zip(block.cells, block.indices):
                if r == c or layout.type.is_column:
                    terms[:, index] += 1.0
        terms[:, layout.unity_indices] = 1.0
        return vnacal.SolvedCalibration(frequency, cal_type, m_rows,
                                        m_columns, terms, name=name)
    return make
