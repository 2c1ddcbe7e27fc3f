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

"""The result of a scan: bytes by root and by type."""

from footprint import layout


def human_size(num_bytes):
    """Format a byte count using binary prefixes."""
    if num_bytes < 1024:
        return '%d B' % (num_bytes,)
    if num_bytes < 1024 * 1024:
        return '%.3f KB' % (num_bytes / 1024.,)
    return '%.3f MB' % (num_bytes / 1024. / 1024.,)


def _type_label(typ):
    if isinstance(typ, str):
        return typ
    return layout.type_name(typ)


class TypeSize(object):
    """Bytes attributed to a single type."""

    def __init__(self):
        self.total = 0
        self.by_root = {}

    def __repr__(self):
        return '%s(total=%d, by_root=%r)' % (self.__class__.__name__,
                                             self.total, self.by_root)


class Sizes(object):
    """Memory use found by a scan.

    :ivar by_root: {root name: bytes}
    :ivar by_type: {type: TypeSize}. Types are ctypes types for a fresh
        scan and type names for a result read back by dump.load_sizes().
    :ivar bitmap_size: Bytes used by the visited bitmap of the scan.
    :ivar bitmap_utilization: Mean fraction of set bits in that bitmap.
    :ivar duration: Seconds spent scanning.
    """

    def __init__(self):
        self.by_root = {}
        self.by_type = {}
        self.bitmap_size = 0
        self.bitmap_utilization = 0.0
        self.duration = 0.0

    def __repr__(self):
        return '%s(%d roots, %d types, total=%s)' % (
            self.__class__.__name__, len(self.by_root), len(self.by_type),
            human_size(self.total()))

    def _add_value(self, root, typ, size):
        self.by_root[root] = self.by_root.get(root, 0) + size
        try:
            type_size = self.by_type[typ]
        except KeyError:
            type_size = self.by_type[typ] = TypeSize()
        type_size.by_root[root] = type_size.by_root.get(root, 0) + size
        type_size.total += size

    def total(self):
        """The total amount of memory across all roots."""
        return sum(self.by_root.values())

    def by_size(self):
        """Return [(type, TypeSize)] with the largest types first."""
        return sorted(self.by_type.items(), key=lambda x: x[1].total,
                      reverse=True)

    def report(self):
        """Return a table of TOTAL and the size of every type."""
        table = [('TOTAL', self.total())]
        for typ, type_size in self.by_size():
            table.append((_type_label(typ), type_size.total))
        width = max(len(name) for name, _ in table)
        out = []
        for name, size in table:
            out.append('%-*s %s\n' % (width, name, human_size(size)))
        return ''.join(out)
