#!/usr/bin/env python
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

"""Scan a couple of slices and print what they hold on to."""

import ctypes
import sys

from footprint import (
    dump,
    heap,
    roots,
    )


def build_roots(h, show_progress=False):
    root_set = roots.RootSet(show_progress=show_progress)
    byteslice = h.make_slice(ctypes.c_ubyte, 200)
    intslice = h.make_slice(ctypes.c_ssize_t, 100)
    root_set.add('byteslice', ctypes.pointer(byteslice))
    root_set.add('intslice', ctypes.pointer(intslice))
    return root_set


def main(args):
    import optparse
    p = optparse.OptionParser('%prog [--dump FILE]')
    p.add_option('--dump', type=str, default=None,
                 help='Also save the result to this file (.gz to compress)')
    p.add_option('--progress', action='store_true', default=False,
                 help='Report scan progress on stderr')
    opts, args = p.parse_args(args)
    if args:
        sys.stderr.write('unexpected arguments: %s\n' % (' '.join(args),))
        return 2

    h = heap.Heap()
    root_set = build_roots(h, show_progress=opts.progress)
    result = root_set.scan()
    for name in root_set.names():
        sys.stdout.write('%s: %d bytes\n' % (name, result.by_root[name]))
    sys.stdout.write(result.report())
    if opts.dump is not None:
        dump.dump_sizes(opts.dump, result)
    return 0


if __name__ == '__main__':
    sys.exit(main(sys.argv[1:]))
