"""
.. module:: vnacal.io.general

========================================
general (:mod:`vnacal.io.general`)
========================================

General input/output functions for reading and writing vnacal objects


Pickle functions
------------------

The read/write methods use the pickle module. These should only be used
for temporary storage.

.. autosummary::
   :toctree: generated/

   read
   write

Pandas dataframe
----------------------------------

.. autosummary::
   :toctree: generated/

   calibration_2_dataframe

JSON
-------

.. autosummary::
   :toctree: generated/

   CalibrationEncoder
   to_json_string
   from_json_string


"""
from __future__ import annotations

import json
import os
import pickle
import warnings
from pickle import UnpicklingError
from typing import Any

import numpy as npy
from pandas import DataFrame

from ..errors import UsageError
from ..frequency import Frequency
from ..mathFunctions import (complex_2_db, complex_2_degree,
                             complex_2_magnitude)
from ..util import get_extn, get_fid


def _get_extension(inst: Any) -> str:
    """File extension conventions for vnacal objects.
    """
    from ..calibration.calibration import SolvedCalibration
    from ..calibration.calibrationSet import CalibrationSet

    extensions = [
        (Frequency, "freq"),
        (SolvedCalibration, "cal"),
        (CalibrationSet, "cals"),
    ]

    for cls, ext in extensions:
        if isinstance(inst, cls):
            return ext
    return "p"


def read(file, *args, **kwargs):
    r"""
    Read vnacal object[s] from a pickle file.

    Reads a vnacal object that is written with :func:`write`, which uses
    the :mod:`pickle` module.

    Parameters
    ----------
    file : str, Path, or file-object
        name of file, or  a file-object
    \*args, \*\*kwargs : arguments and keyword arguments
        passed through to pickle.load


    .. note::
        If `file` is a:

        * a file-object, it is left open

        * a filename, then a file-object is opened and closed.

        * a file-object and reading fails, then the position is reset back to 0 using seek if possible.


    Examples
    --------
    >>> solved.write('my_cal.cal')
    >>> cal = vnacal.read('my_cal.cal')

    See Also
    --------
    read : read a vnacal object
    write : write vnacal object[s]
    """
    fid = get_fid(file, mode='rb')
    try:
        obj = pickle.load(fid, *args, **kwargs)
    except (UnpicklingError, UnicodeDecodeError):
        # if fid is seekable then reset to beginning of file
        fid.seek(0)

        if isinstance(file, (str, os.PathLike)):
            # we created the fid so close it
            fid.close()
        raise

    if isinstance(file, (str, os.PathLike)):
        # we created the fid so close it
        fid.close()

    return obj


def write(file, obj, overwrite=True):
    """
    Write vnacal object[s] to a file.

    This uses the :mod:`pickle` module to write vnacal objects to a file.
    Note that you can write any pickl-able python object, for example a
    dictionary of calibrations.

    Parameters
    ----------
    file : file, Path, or string
        File or filename to which the data is saved.  If file is a
        file-object, then the filename is unchanged.  If file is a
        string, an appropriate extension will be appended to the file
        name if it does not already have an extension.

    obj : an object, or list/dict of objects
        object or list/dict of objects to write to disk

    overwrite : Boolean
        if file exists, should it be overwritten?


    .. note::
        If `file` is a string, but doesnt contain a suffix, one is chosen
        automatically. Here are the extensions:


        ===================================================================  ===============
        vnacal object                                                        extension
        ===================================================================  ===============
        :class:`~vnacal.frequency.Frequency`                                 '.freq'
        :class:`~vnacal.calibration.calibration.SolvedCalibration`           '.cal'
        :class:`~vnacal.calibration.calibrationSet.CalibrationSet`           '.cals'
        other                                                                '.p'
        ===================================================================  ===============

    .. note::
        To make the file written by this method cross-platform, the pickling
        protocol 2 is used. See :mod:`pickle` for more info.

    See Also
    --------
    read : read a vnacal object
    vnacal.calibration.calibration.SolvedCalibration.write : write method of SolvedCalibration
    """
    if isinstance(file, (str, os.PathLike)):
        file = os.fspath(file)
        extn = get_extn(file)
        if extn is None:
            # if there is not extension add one
            file += f".{_get_extension(obj)}"

        if os.path.exists(file):
            if not overwrite:
                warnings.warn('file exists, and overwrite option is False. Not writing.', stacklevel=2)
                return

        with open(file, 'wb') as fid:
            pickle.dump(obj, fid, protocol=2)

    else:
        fid = file
        pickle.dump(obj, fid, protocol=2)
        fid.close()


_ATTRS = {
    'complex': lambda z: z,
    're': npy.real,
    'im': npy.imag,
    'mag': complex_2_magnitude,
    'db': complex_2_db,
    'deg': complex_2_degree,
    }


def calibration_2_dataframe(cal, attrs: list[str] = None,
        port_sep: str | None = None):
    """
    Convert the error terms of a calibration to a pandas DataFrame.

    There is one column per stored error term and attribute, indexed
    by frequency in Hz.

    Parameters
    ----------
    cal : :class:`~vnacal.calibration.calibration.SolvedCalibration`
        the calibration to write
    attrs : list of str
        any of 'complex', 're', 'im', 'mag', 'db' and 'deg'.
        Default is ['complex'].
    port_sep : string
        defaults to None, which means a empty string "" is used for
        calibrations with fewer than 10 ports (ts 11, ts 21).
        For more ports a "_" is used to avoid ambiguity
        (ts 1_1, ts 2_1).

    Returns
    -------
    df : pandas DataFrame Object
    """
    if attrs is None:
        attrs = ['complex']
    unknown = [attr for attr in attrs if attr not in _ATTRS]
    if unknown:
        raise UsageError(f'unknown attribute {unknown[0]!r}')
    if port_sep is None:
        port_sep = "_" if cal.ports >= 10 else ""

    coefs = cal.coefs
    d = {}
    for attr in attrs:
        for name, block in cal.layout.blocks.items():
            values = _ATTRS[attr](coefs[name])
            for m, n in block.cells:
                label = f'{name} {m+1}{port_sep}{n+1}'
                if attr != 'complex':
                    label = f'{label} {attr}'
                d[label] = values[:, m, n]
    return DataFrame(d, index=cal.frequency.f)


class CalibrationEncoder(json.JSONEncoder):
    """
    Serializes a calibration dictionary by converting arrays to lists
    and splitting complex numbers into real and imaginary.
    """
    def default(self, obj):
        if isinstance(obj, npy.ndarray):
            return obj.tolist()
        if isinstance(obj, complex):
            return npy.real(obj), npy.imag(obj)  # split into [real, im]
        if isinstance(obj, npy.integer):
            return int(obj)
        return json.JSONEncoder.default(self, obj)


def _complex_array(value):
    arr = npy.array(value, dtype=float)
    return arr[..., 0] + arr[..., 1] * 1j  # recreate complex numbers


def to_json_string(cal):
    """
    Dumps a calibration to a JSON string.

    Safer than pickling (no arbitrary code execution on load).

    Parameters
    ----------
    cal : :class:`~vnacal.calibration.calibration.SolvedCalibration`
        the calibration to serialize

    Returns
    -------
    s : str
        JSON string representation of the calibration
    """
    return json.dumps(cal.to_dict(), cls=CalibrationEncoder)


def from_json_string(obj_string):
    """
    Loads a calibration from its JSON string representation.

    Parameters
    ----------
    obj_string : str
        JSON string written by :func:`to_json_string`

    Returns
    -------
    cal : :class:`~vnacal.calibration.calibration.SolvedCalibration`
    """
    from ..calibration.calibration import SolvedCalibration

    obj = json.loads(obj_string)
    obj['z0'] = _complex_array(obj['z0'])
    obj['terms'] = dict((name, _complex_array(value))
                        for name, value in obj['terms'].items())
    return SolvedCalibration.from_dict(obj)
