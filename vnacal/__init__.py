"""
vnacal is a vector network analyzer calibration engine, implemented in
Python.
"""

__version__ = '0.1.0'
## Import all module names for coherent reference of name-space


from . import (
    calibration,
    constants,
    errors,
    frequency,
    io,
    mathFunctions,
    parameter,
    util,
)
from .calibration import *
from .constants import *
from .errors import *

# Import contents into current namespace for ease of calling
from .frequency import *
from .io import *
from .mathFunctions import *
from .parameter import *
from .util import *

## Shorthand Names
F = Frequency
Solver = CalibrationSolver
