# Copyright (C) 2009 Canonical Ltd
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License version 3 as
# published by the Free Software Foundation.
#
# This program is distributed in the hope that it will be useful, but
# WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the GNU
# General Public License for more details.
#
# You should have received a copy of the GNU General Public License
# along with this program.  If not, see <http://www.gnu.org/licenses/>.

"""Named roots and the entry points for scanning them."""

import ctypes
import gc
import sys
import threading

from footprint import (
    _typeinfo,
    layout,
    perf_counter,
    scanner,
    sizes,
    warn,
    )


# GIL switch interval (seconds) held while a scan runs. Other threads only
# get the GIL back when the scanner blocks, and it doesn't.
PAUSE_INTERVAL = 1000.0

# The pause is process wide, so only one scan may hold it at a time.
_world_lock = threading.Lock()


def _gil_enabled():
    is_gil_enabled = getattr(sys, '_is_gil_enabled', None)
    if is_gil_enabled is None:
        return True
    return is_gil_enabled()


def _stop_the_world():
    """Keep the rest of the process from running Python code.

    :return: The state to hand to _start_the_world().
    """
    if not _gil_enabled():
        warn.warn('the interpreter has no GIL, other threads keep running'
                  ' while memory is scanned', stacklevel=4)
    _world_lock.acquire()
    gc_enabled = gc.isenabled()
    # A collection could run finalizers that change what we are looking at.
    gc.disable()
    interval = sys.getswitchinterval()
    sys.setswitchinterval(PAUSE_INTERVAL)
    return interval, gc_enabled


def _start_the_world(state):
    interval, gc_enabled = state
    try:
        sys.setswitchinterval(interval)
        if gc_enabled:
            gc.enable()
    finally:
        _world_lock.release()


class RootSet(object):
    """The roots to scan.

    Scanning reads memory by address, so nothing may change the scanned
    structures while a scan runs. Other Python threads are paused for the
    duration (see PAUSE_INTERVAL), but code that runs without holding the
    GIL, or any thread in an interpreter without a GIL, is not, and changing
    the structures from there gives undefined results.
    """

    def __init__(self, show_progress=False, type_info=None):
        self._roots = {}
        self._lock = threading.Lock()
        if type_info is None:
            type_info = _typeinfo.type_info
        self._type_info = type_info
        self.show_progress = show_progress

    def __len__(self):
        return len(self._roots)

    def add(self, name, obj):
        """Register obj as a root called name, replacing any previous one.

        :param obj: A ctypes pointer, e.g. ctypes.pointer(value). The memory
            it points to is what gets scanned.
        """
        if not isinstance(obj, ctypes._Pointer):
            raise TypeError('root must be a ctypes pointer, not %s'
                            % (layout.type_name(type(obj)),))
        self._roots[name] = obj

    def remove(self, name):
        del self._roots[name]

    def names(self):
        """Return all registered root names, sorted."""
        return sorted(self._roots)

    def scan(self):
        """Scan every root.

        :return: A sizes.Sizes with memory use per root and per type.
        """
        return self._scan(list(self._roots.items()))

    def scan_root(self, name):
        """Scan the root registered as name.

        :raises KeyError: if no root has that name.
        """
        try:
            root = self._roots[name]
        except KeyError:
            raise KeyError('no root named %r' % (name,))
        return self._scan([(name, root)])

    def _scan(self, roots):
        counter = perf_counter.perf_counter.get_counter('scan')
        with self._lock:
            ctx = scanner.ScanContext(self._type_info)
            state = _stop_the_world()
            try:
                counter.tick()
                for name, root in roots:
                    ctx.scan_root(name, root)
                duration = counter.tock()
            finally:
                _start_the_world(state)
        result = ctx.sizes
        result.duration = duration
        if self.show_progress:
            sys.stderr.write('scanned %d roots, %s in %.3fs'
                             ' (bitmap %s, %.1f%% used)\n'
                             % (len(roots), sizes.human_size(result.total()),
                                duration,
                                sizes.human_size(result.bitmap_size),
                                result.bitmap_utilization * 100))
        return result


def scan(root):
    """Scan a single unnamed root."""
    roots = RootSet()
    roots.add('', root)
    return roots.scan()
