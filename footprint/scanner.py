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

"""Walk ctypes object graphs and add up the memory they reference.

A scan visits every value reachable from a root once. For each value it
works out the 'extra' memory the value owns indirectly (slice buffers,
string data, map entries, ...) beyond its own in-place size. Values reached
through a pointer, and the roots themselves, are billed to the current root
and to their type as they are finished.

Memory that has been counted is marked in a bitmap, so aliased memory is
counted once no matter how many paths lead to it. Values that are still
being scanned are kept in the 'visiting' dict to cut reference cycles.
The address ranges of billed values and slice buffers whose contents are
being walked are kept too: a pointer into one of them leads to bytes that
are already being counted, wherever the pointer sits in the walk.

Nothing here recurses on the Python stack: each value is scanned by a
generator that yields (address, value, add) for every child it needs scanned
and is sent back the child's extra size. ScanContext.scan() drives the
generators with an explicit stack, so very deep graphs (long linked lists)
are fine.
"""

import bisect
import ctypes

from footprint import (
    _bitmap,
    _spans,
    _typeinfo,
    layout,
    sizes,
    )
from footprint.address import (
    INVALID_ADDR,
    add_offset,
    valid,
    )
from footprint.layout import Kind

# Sorts after every (start, end) with the same start
_NO_END = float('inf')


def _same_or_pointee(ctype, visiting_type):
    """Is a ctype value at an address redundant with visiting_type there?

    The first field of a struct shares the address of the struct, so seeing
    the same address again is only a cycle if the type is the same, or if we
    got there by following a pointer to ctype stored at that address.
    """
    if ctype is visiting_type:
        return True
    return (issubclass(visiting_type, ctypes._Pointer)
            and visiting_type._type_ is ctype)


class ScanContext(object):
    """The state of one scan.

    :ivar sizes: The sizes.Sizes being accumulated.
    :ivar cur_root: Name of the root currently being walked.
    """

    def __init__(self, type_info=None):
        if type_info is None:
            type_info = _typeinfo.type_info
        self.type_info = type_info
        self.seen = _bitmap.Bitmap()
        self.spans = _spans.SpanIndex()
        # address => type of the value being scanned there
        self.visiting = {}
        # Sorted (start, end) of the billed values and slice buffers whose
        # elements are being walked right now.
        self._active = []
        # Length of the largest range ever put in _active
        self._active_max = 0
        self.sizes = sizes.Sizes()
        self.cur_root = None

    def scan_root(self, name, root):
        """Walk everything reachable from root and bill it to name."""
        self.cur_root = name
        self.scan(INVALID_ADDR, root, False)
        self.sizes.bitmap_size = self.seen.size()
        self.sizes.bitmap_utilization = self.seen.utilization()

    def scan(self, addr, value, add):
        """Scan value, stored at addr, and return its extra size.

        :param addr: Where value lives, or INVALID_ADDR if it has no stable
            address.
        :param value: A ctypes instance.
        :param add: Bill the value (its size plus extra) to the current root.
        """
        stack = [self._scan(addr, value, add)]
        result = None
        while stack:
            try:
                request = stack[-1].send(result)
            except StopIteration as e:
                stack.pop()
                result = e.value
                continue
            stack.append(self._scan(*request))
            result = None
        return result

    def _enter(self, start, end):
        bisect.insort(self._active, (start, end))
        if end - start > self._active_max:
            self._active_max = end - start

    def _leave(self, start, end):
        active = self._active
        del active[bisect.bisect_left(active, (start, end))]

    def _inside_active(self, start, end):
        """Does an in-progress range cover all of [start, end)?

        Those bytes are counted by the value that is being walked, and that
        walk will reach them.
        """
        active = self._active
        i = bisect.bisect_right(active, (start, _NO_END))
        # Ranges starting below this are too short to reach end.
        lowest = end - self._active_max
        while i > 0:
            i -= 1
            range_start, range_end = active[i]
            if range_start < lowest:
                break
            if range_start <= start and range_end >= end:
                return True
        return False

    def _scan(self, addr, value, add):
        ctype = type(value)
        info = self.type_info.info(ctype)
        tracked = valid(addr)
        if tracked:
            # Already counted?
            if self.seen.is_marked(addr):
                return 0
            prev = self.visiting.get(addr)
            if prev is not None and _same_or_pointee(ctype, prev):
                return 0
            if add and self._inside_active(addr, addr + info.size):
                return 0
            self.visiting[addr] = ctype
        extra = 0
        if info.need_scan:
            billed = tracked and add
            if billed:
                self._enter(addr, addr + info.size)
            extra = yield from self._scan_content(addr, value, info)
            if billed:
                self._leave(addr, addr + info.size)
        if tracked:
            if prev is None:
                del self.visiting[addr]
            else:
                self.visiting[addr] = prev
            self.seen.mark_range(addr, info.size)
        if add:
            self.sizes._add_value(self.cur_root, ctype, info.size + extra)
        return extra

    def _scan_content(self, addr, value, info):
        kind = info.kind
        if kind is Kind.POINTER:
            if value:
                target = ctypes.cast(value, ctypes.c_void_p).value
                yield (target, value.contents, True)
            return 0
        elif kind is Kind.STRUCT:
            return (yield from self._scan_struct(addr, value, info))
        elif kind is Kind.ARRAY:
            _, extra = yield from self._scan_array_mem(
                addr, value, info.elem, info.length)
            return extra
        elif kind is Kind.SLICE:
            return (yield from self._scan_slice(value, info))
        elif kind is Kind.STRING:
            return _string_size(value)
        elif kind is Kind.MAP:
            return (yield from self._scan_map(value))
        elif kind is Kind.INTERFACE:
            return (yield from self._scan_interface(value))
        elif kind is Kind.CHAN:
            return (yield from self._scan_chan(value, info))
        elif kind is Kind.FUNC:
            # Nothing can be learned about what a function references.
            return 0
        raise RuntimeError('unhandled kind %s for %s'
                           % (kind, layout.type_name(type(value))))

    def _scan_struct(self, base, value, info):
        if valid(base):
            # Mark the plain fields first, so pointers and slices in earlier
            # fields see them as counted.
            for offset, size in info.plain_fields:
                self.seen.mark_range(base + offset, size)
        extra = 0
        for ftype, offset in info.scan_fields:
            extra += yield (add_offset(base, offset),
                            ftype.from_buffer(value, offset), False)
        return extra

    def _scan_slice(self, value, info):
        if value.len < 0 or value.cap < value.len:
            raise RuntimeError('corrupt slice header: len %d, cap %d'
                               % (value.len, value.cap))
        if not valid(value.data) or not value.cap:
            return 0
        elem = info.elem
        esize = ctypes.sizeof(elem)
        start = value.data
        end = start + value.cap * esize
        # Scan the whole backing buffer up to cap; other views may reach it.
        buf = (elem * value.cap).from_address(start)
        owned = self.spans.insert(start, end - start)
        # A view into a value that is being billed, e.g. into an array field
        # of the struct holding this slice, adds no bytes of its own.
        inside = self._inside_active(start, end)
        walked = self.type_info.need_scan(elem)
        if walked:
            self._enter(start, end)
        count, extra = yield from self._scan_array_mem(
            start, buf, elem, value.cap, owned)
        if walked:
            self._leave(start, end)
        if inside:
            return extra
        return extra + count * esize

    def _scan_array_mem(self, base, array, elem, length, owned=()):
        """Scan the elements of array that have not been counted yet.

        :param owned: Spans of earlier views over the same buffer. Elements
            in them belong to those views and are skipped.
        :return: (number of elements newly counted, their extra size)
        """
        esize = ctypes.sizeof(elem)
        escan = self.type_info.need_scan(elem)
        extra = 0
        if not valid(base):
            if escan:
                for i in range(length):
                    extra += yield (INVALID_ADDR,
                                    elem.from_buffer(array, i * esize), False)
            return length, extra
        nbytes = length * esize
        if not owned and not escan and not self.seen.any_marked(base, nbytes):
            self.seen.mark_range(base, nbytes)
            return length, 0
        count = 0
        k = 0
        i = 0
        while i < length:
            addr = base + i * esize
            while k < len(owned) and owned[k].end <= addr:
                k += 1
            if k < len(owned) and owned[k].start <= addr:
                # Jump to the first element past the owned span.
                i = -(-(owned[k].end - base) // esize)
                continue
            if not self.seen.is_marked(addr):
                if escan:
                    extra += yield (addr, elem.from_buffer(array, i * esize),
                                    False)
                self.seen.mark_range(addr, esize)
                count += 1
            i += 1
        return count, extra

    def _scan_map(self, value):
        if not value.table:
            return 0
        mtype = type(value)
        ktype, vtype = mtype._key_, mtype._value_
        ksize, vsize = ctypes.sizeof(ktype), ctypes.sizeof(vtype)
        table = layout.MapTable.from_address(value.table)
        count = table.count
        extra = count * ksize + count * vsize
        if count and (self.type_info.need_scan(ktype)
                      or self.type_info.need_scan(vtype)):
            # Entries move when the table grows, so they have no address.
            keys = (ktype * count).from_address(table.keys)
            values = (vtype * count).from_address(table.values)
            for i in range(count):
                extra += yield (INVALID_ADDR,
                                ktype.from_buffer(keys, i * ksize), False)
                extra += yield (INVALID_ADDR,
                                vtype.from_buffer(values, i * vsize), False)
        return extra

    def _scan_interface(self, value):
        """Return the extra size of an interface.

        That is whatever the boxed value references, plus the box itself
        when the value is stored inline. The boxed value's own extra is
        added as well: counting only the box would miss the data of a
        string or slice held in an interface.
        """
        if not value.type_id:
            return 0
        ctype = layout.type_from_id(value.type_id)
        elem = ctype.from_address(value.data)
        extra = yield (INVALID_ADDR, elem, False)
        if not self.type_info.is_pointer(ctype):
            # The value is held in the box, outside the interface itself.
            extra += ctypes.sizeof(ctype)
        return extra

    def _scan_chan(self, value, info):
        if not value.hchan:
            return 0
        elem = info.elem
        esize = ctypes.sizeof(elem)
        hchan = layout.HChan.from_address(value.hchan)
        extra = hchan.cap * esize
        if hchan.count and self.type_info.need_scan(elem):
            for j in range(hchan.count):
                addr = hchan.buf + ((hchan.recvx + j) % hchan.cap) * esize
                extra += yield (addr, elem.from_address(addr), False)
        return extra


def _string_size(value):
    if isinstance(value, layout.String):
        if value.len < 0:
            raise RuntimeError('corrupt string header: len %d' % (value.len,))
        return value.len
    raw = value.value
    if raw is None:
        return 0
    if isinstance(value, ctypes.c_wchar_p):
        return (len(raw) + 1) * ctypes.sizeof(ctypes.c_wchar)
    return len(raw) + 1
