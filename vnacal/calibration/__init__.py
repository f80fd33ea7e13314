"""
.. module:: vnacal.calibration
========================================
calibration (:mod:`vnacal.calibration`)
========================================


This Package provides functionality for solving and applying VNA
calibrations. Most functionality is in the :mod:`calibration`
module.

.. automodule:: vnacal.calibration.layout
.. automodule:: vnacal.calibration.calibration
.. automodule:: vnacal.calibration.applicator
.. automodule:: vnacal.calibration.calibrationSet

"""

from . import (
    applicator,
    calibration,
    calibrationFunctions,
    calibrationSet,
    layout,
)
from .applicator import *
from .calibration import *
from .calibrationSet import *
from .layout import *
