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

"""Per-type facts the scanner needs, computed once per type."""

import ctypes

from footprint import layout
from footprint.layout import Kind


class TypeInfo(object):
    """What the scanner knows about one ctypes type.

    :ivar kind: The layout.Kind of the type.
    :ivar size: Bytes occupied by a value in place.
    :ivar is_pointer: The in-place representation is a reference.
    :ivar need_scan: Values can reach memory beyond their own bytes.
    :ivar elem: Element type of arrays, slices and channels.
    :ivar length: Number of elements of an array.
    :ivar fields: (name, type, offset) of struct fields.
    :ivar scan_fields: (type, offset) of the struct fields that need a scan.
    :ivar plain_fields: (offset, size) of the other struct fields.
    """

    __slots__ = ('kind', 'size', 'is_pointer', 'need_scan', 'elem', 'length',
                 'fields', 'scan_fields', 'plain_fields')

    def __init__(self, kind, size):
        self.kind = kind
        self.size = size
        self.is_pointer = kind in layout.REFERENCE_KINDS
        self.need_scan = self.is_pointer
        self.elem = None
        self.length = 0
        self.fields = ()
        self.scan_fields = ()
        self.plain_fields = ()

    def __repr__(self):
        return '%s(%s, size=%d, is_pointer=%s, need_scan=%s)' % (
            self.__class__.__name__, self.kind.value, self.size,
            self.is_pointer, self.need_scan)


class TypeInfoCache(object):
    """Memoize TypeInfo by type.

    Type shapes never change, so one cache can be shared by any number of
    scans for the lifetime of the process. Entries are never modified after
    they are created.
    """

    def __init__(self):
        self._infos = {}

    def __len__(self):
        return len(self._infos)

    def info(self, ctype):
        try:
            return self._infos[ctype]
        except KeyError:
            pass
        info = self._make_info(ctype)
        self._infos[ctype] = info
        return info

    def need_scan(self, ctype):
        return self.info(ctype).need_scan

    def is_pointer(self, ctype):
        return self.info(ctype).is_pointer

    def _make_info(self, ctype):
        kind = layout.kind_of(ctype)
        info = TypeInfo(kind, ctypes.sizeof(ctype))
        if kind is Kind.ARRAY:
            info.elem = ctype._type_
            info.length = ctype._length_
            info.need_scan = self.need_scan(info.elem)
        elif kind is Kind.STRUCT:
            info.fields = tuple(layout.struct_fields(ctype))
            scan_fields = []
            plain_fields = []
            for _, ftype, offset in info.fields:
                if self.need_scan(ftype):
                    scan_fields.append((ftype, offset))
                else:
                    plain_fields.append((offset, ctypes.sizeof(ftype)))
            info.scan_fields = tuple(scan_fields)
            info.plain_fields = tuple(plain_fields)
            info.need_scan = bool(scan_fields)
        elif kind in (Kind.SLICE, Kind.CHAN):
            info.elem = ctype._elem_
        return info


# Shared by scans that are not given a cache of their own.
type_info = TypeInfoCache()
