"""

.. currentmodule:: vnacal.util
========================================
util (:mod:`vnacal.util`)
========================================

Holds utility functions that are general conveniences.


General
------------
.. autosummary::
   :toctree: generated/

   get_fid
   get_extn

Port Maps
------------
.. autosummary::
   :toctree: generated/

   check_standard_map
   check_dut_map
   transitive_closure

"""
import os

import numpy as npy

from .errors import UsageError


# file IO

def get_fid(file, *args, **kwargs):
    r'''
    Returns a file object, given a filename or file object

    Useful when you want to allow the arguments of a function to
    be either files or filenames

    Parameters
    -------------
    file : str, Path or file-object
        file to open
    \*args, \*\*kwargs : arguments and keyword arguments to `open()`

    '''
    if isinstance(file, (str, os.PathLike)):
        return open(file, *args, **kwargs)
    else:
        return file


def get_extn(filename):
    '''
    Get the extension from a filename.

    The extension is defined as everything passed the last '.'.
    Returns None if it ain't got one

    Parameters
    ------------
    filename : string
        the filename

    Returns
    --------
    ext : string, None
        either the extension (not including '.') or None if there
        isn't one

    '''
    ext = os.path.splitext(str(filename))[-1]
    if len(ext) == 0:
        return None
    else:
        return ext[1:]


# port maps

def _check_port_index(port, bound, what):
    if isinstance(port, bool) or not isinstance(port, (int, npy.integer)):
        raise UsageError('%s port index %r is not an integer' % (what, port))
    if port < -1 or port >= bound:
        raise UsageError('%s port index %d out of range [-1, %d]'
                         % (what, port, bound - 1))
    return int(port)


def check_standard_map(port_map, standard_ports, vna_ports):
    '''
    Validate the port map of a calibration standard.

    Parameters
    ----------
    port_map : sequence of int or None
        one entry per VNA port: the standard port connected to it, or
        -1 if the VNA port is left unconnected. None means that standard
        port k is connected to VNA port k.
    standard_ports : int
        number of ports of the standard
    vna_ports : int
        number of ports of the calibration

    Returns
    -------
    vna_of_standard : list of int
        the VNA port connected to each standard port

    Raises
    ------
    UsageError
        if the map has the wrong length, an entry is out of range, or a
        standard port is missing or connected twice
    '''
    if standard_ports < 1 or standard_ports > vna_ports:
        raise UsageError('standard has %d ports; calibration has %d'
                         % (standard_ports, vna_ports))
    if port_map is None:
        if standard_ports != vna_ports:
            raise UsageError('port map is required when the standard is '
                             'smaller than the calibration')
        return list(range(vna_ports))

    port_map = list(port_map)
    if len(port_map) != vna_ports:
        raise UsageError('port map must have %d entries, got %d'
                         % (vna_ports, len(port_map)))
    vna_of_standard = [None] * standard_ports
    for vna_port, entry in enumerate(port_map):
        entry = _check_port_index(entry, standard_ports, 'standard')
        if entry == -1:
            continue
        if vna_of_standard[entry] is not None:
            raise UsageError('standard port %d appears more than once in '
                             'port map' % entry)
        vna_of_standard[entry] = vna_port
    missing = [k for k, v in enumerate(vna_of_standard) if v is None]
    if missing:
        raise UsageError('standard port %d does not appear in port map'
                         % missing[0])
    return vna_of_standard


def check_dut_map(port_map, vna_ports, dut_ports):
    '''
    Validate the port map of one measurement of a device under test.

    Parameters
    ----------
    port_map : sequence of int or None
        one entry per VNA port: the DUT port connected to it, or -1 if
        the VNA port is terminated. None means the identity map and
        requires as many DUT ports as VNA ports.
    vna_ports : int
        number of ports of the calibration
    dut_ports : int
        number of ports of the device under test

    Returns
    -------
    port_map : list of int
    '''
    if port_map is None:
        if dut_ports != vna_ports:
            raise UsageError('port map is required when the DUT has %d '
                             'ports and the calibration %d'
                             % (dut_ports, vna_ports))
        return list(range(vna_ports))

    port_map = list(port_map)
    if len(port_map) != vna_ports:
        raise UsageError('port map must have %d entries, got %d'
                         % (vna_ports, len(port_map)))
    seen = set()
    result = []
    for entry in port_map:
        entry = _check_port_index(entry, dut_ports, 'DUT')
        if entry != -1:
            if entry in seen:
                raise UsageError('DUT port %d appears more than once in '
                                 'port map' % entry)
            seen.add(entry)
        result.append(entry)
    return result


def transitive_closure(mask):
    '''
    Floyd-Warshall closure of a square boolean adjacency matrix.

    Entry [i, j] of the result is True when a chain of True entries
    leads from i to j.
    '''
    reach = npy.array(mask, dtype=bool)
    for k in range(reach.shape[0]):
        reach |= npy.outer(reach[:, k], reach[k, :])
    return reach
