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

"""An arena owning the out of line memory of strings, slices, maps, etc.

ctypes keeps pointer targets alive by itself, but the header types in
footprint.layout refer to their storage by raw address. A Heap allocates that
storage and keeps it alive for as long as the Heap exists, so headers built
by a Heap stay valid until Heap.clear() is called or the Heap goes away.
"""

import ctypes
import queue

from footprint import layout


class Heap(object):

    def __init__(self):
        # address => the ctypes object owning the memory at that address
        self._blocks = {}
        # address => value copied there whose own references must survive
        self._pins = {}
        # map table address => {key bytes: slot}
        self._map_index = {}

    def __len__(self):
        return len(self._blocks)

    def allocated(self):
        """The number of bytes held by this heap."""
        return sum(ctypes.sizeof(b) for b in self._blocks.values())

    def clear(self):
        """Release everything. Headers built by this heap become invalid."""
        self._blocks.clear()
        self._pins.clear()
        self._map_index.clear()

    def _alloc(self, ctype):
        obj = ctype()
        self._blocks[ctypes.addressof(obj)] = obj
        return obj

    def _free(self, address):
        self._blocks.pop(address, None)

    def _coerce(self, ctype, value):
        if isinstance(value, ctype):
            return value
        if value is None:
            return ctype()
        if ctype is layout.String and isinstance(value, (str, bytes)):
            return self.string(value)
        if isinstance(value, tuple):
            return ctype(*value)
        return ctype(value)

    def _store(self, address, ctype, value):
        value = self._coerce(ctype, value)
        ctypes.memmove(address, ctypes.addressof(value), ctypes.sizeof(ctype))
        # The copy doesn't keep pointer targets alive, value does.
        if value._objects:
            self._pins[address] = value
        else:
            self._pins.pop(address, None)

    def _copy_pins(self, src, dst, size, count=1, move=False):
        """Give count values of size bytes copied from src to dst their pins.

        :param move: The values at src are gone, release their pins too.
        """
        pins = self._pins
        if not pins:
            return
        for i in range(count):
            if move:
                pin = pins.pop(src + i * size, None)
            else:
                pin = pins.get(src + i * size)
            if pin is None:
                pins.pop(dst + i * size, None)
            else:
                pins[dst + i * size] = pin

    def _drop_pins(self, address, size, count=1):
        for i in range(count):
            self._pins.pop(address + i * size, None)

    def new(self, ctype, value=None):
        """Allocate a zeroed (or initialized) ctype and return a pointer."""
        obj = self._alloc(ctype)
        if value is not None:
            self._store(ctypes.addressof(obj), ctype, value)
        return ctypes.pointer(obj)

    # Strings

    def string(self, data):
        """Return a String header for data. str is encoded as utf-8."""
        if isinstance(data, str):
            data = data.encode('utf-8')
        s = layout.String()
        if data:
            buf = self._alloc(ctypes.c_char * len(data))
            ctypes.memmove(buf, data, len(data))
            s.data = ctypes.addressof(buf)
            s.len = len(data)
        return s

    def string_value(self, s):
        return layout.string_bytes(s)

    # Slices

    def make_slice(self, elem, length, cap=None):
        """Return a slice of length zeroed elements."""
        if cap is None:
            cap = length
        if length < 0 or cap < length:
            raise ValueError('invalid slice length %d, capacity %d'
                             % (length, cap))
        s = layout.Slice(elem)()
        if cap:
            buf = self._alloc(elem * cap)
            s.data = ctypes.addressof(buf)
        s.len = length
        s.cap = cap
        return s

    def slice_of(self, elem, values):
        """Return a new slice holding values."""
        values = list(values)
        s = self.make_slice(elem, len(values))
        for i, value in enumerate(values):
            self.set_index(s, i, value)
        return s

    def view(self, array, start=0, stop=None):
        """Return a slice over part of an existing ctypes array.

        The slice shares memory with array, which must outlive it.
        """
        length = len(array)
        if stop is None:
            stop = length
        if not 0 <= start <= stop <= length:
            raise IndexError('view [%d:%d] out of range for length %d'
                             % (start, stop, length))
        elem = type(array)._type_
        s = layout.Slice(elem)()
        if length:
            s.data = ctypes.addressof(array) + start * ctypes.sizeof(elem)
        s.len = stop - start
        s.cap = length - start
        return s

    def reslice(self, s, start, stop=None):
        """Return s[start:stop], sharing the backing buffer of s."""
        if stop is None:
            stop = s.len
        if not 0 <= start <= stop <= s.cap:
            raise IndexError('slice [%d:%d] out of range for capacity %d'
                             % (start, stop, s.cap))
        klass = type(s)
        out = klass()
        if s.data:
            out.data = s.data + start * ctypes.sizeof(klass._elem_)
        out.len = stop - start
        out.cap = s.cap - start
        return out

    def append(self, s, *values):
        """Return s with values appended.

        Like the builtin of the same name in Go: the backing buffer is shared
        while it has room, otherwise the result gets a new buffer of twice the
        capacity.
        """
        klass = type(s)
        elem = klass._elem_
        esize = ctypes.sizeof(elem)
        length = s.len + len(values)
        out = klass()
        if length <= s.cap:
            out.data = s.data
            out.cap = s.cap
        else:
            cap = max(2 * s.cap, length)
            buf = self._alloc(elem * cap)
            if s.len:
                ctypes.memmove(buf, s.data, s.len * esize)
                self._copy_pins(s.data, ctypes.addressof(buf), esize, s.len)
            out.data = ctypes.addressof(buf)
            out.cap = cap
        out.len = length
        for i, value in enumerate(values):
            self._store(out.data + (s.len + i) * esize, elem, value)
        return out

    def _element_address(self, s, i):
        if not 0 <= i < s.len:
            raise IndexError('index %d out of range for length %d'
                             % (i, s.len))
        return s.data + i * ctypes.sizeof(type(s)._elem_)

    def index(self, s, i):
        """Return element i of s. It shares memory with the slice."""
        return type(s)._elem_.from_address(self._element_address(s, i))

    def set_index(self, s, i, value):
        self._store(self._element_address(s, i), type(s)._elem_, value)

    def elements(self, s):
        return [self.index(s, i) for i in range(s.len)]

    # Maps

    def make_map(self, key, value, items=None):
        """Return a new map, optionally filled from a dict or pairs."""
        m = layout.Map(key, value)()
        table = self._alloc(layout.MapTable)
        m.table = ctypes.addressof(table)
        self._map_index[m.table] = {}
        if items is not None:
            if hasattr(items, 'items'):
                items = items.items()
            for k, v in items:
                self.map_set(m, k, v)
        return m

    def _key_bytes(self, ktype, key):
        """Return the bytes identifying key in a map with ktype keys.

        Strings are compared by content, so looking up a str or bytes key
        needs no String header.
        """
        if ktype is layout.String:
            if isinstance(key, str):
                return key.encode('utf-8')
            if isinstance(key, bytes):
                return key
        key = self._coerce(ktype, key)
        if isinstance(key, layout.String):
            return layout.string_bytes(key)
        return bytes(key)

    def _table(self, m):
        table = layout.MapTable.from_address(m.table)
        return table, self._map_index[m.table]

    def _grow_map(self, table, key, value):
        cap = max(8, table.cap * 2)
        ksize, vsize = ctypes.sizeof(key), ctypes.sizeof(value)
        keys = self._alloc(key * cap)
        values = self._alloc(value * cap)
        if table.count:
            ctypes.memmove(keys, table.keys, table.count * ksize)
            ctypes.memmove(values, table.values, table.count * vsize)
            self._copy_pins(table.keys, ctypes.addressof(keys), ksize,
                            table.count, move=True)
            self._copy_pins(table.values, ctypes.addressof(values), vsize,
                            table.count, move=True)
        if table.keys:
            self._free(table.keys)
            self._free(table.values)
        table.keys = ctypes.addressof(keys)
        table.values = ctypes.addressof(values)
        table.cap = cap

    def map_set(self, m, key, value):
        if not m.table:
            raise ValueError('assignment to entry in nil map')
        klass = type(m)
        ktype, vtype = klass._key_, klass._value_
        table, index = self._table(m)
        kbytes = self._key_bytes(ktype, key)
        slot = index.get(kbytes)
        if slot is None:
            if table.count == table.cap:
                self._grow_map(table, ktype, vtype)
            slot = table.count
            table.count += 1
            index[kbytes] = slot
            self._store(table.keys + slot * ctypes.sizeof(ktype), ktype, key)
        self._store(table.values + slot * ctypes.sizeof(vtype), vtype, value)

    def _lookup(self, m, key):
        if not m.table:
            return None, None, None
        table, index = self._table(m)
        kbytes = self._key_bytes(type(m)._key_, key)
        return table, kbytes, index.get(kbytes)

    def map_get(self, m, key, default=None):
        """Return the value stored under key. It shares memory with the map."""
        table, _, slot = self._lookup(m, key)
        if slot is None:
            return default
        vtype = type(m)._value_
        return vtype.from_address(table.values + slot * ctypes.sizeof(vtype))

    def map_delete(self, m, key):
        table, kbytes, slot = self._lookup(m, key)
        if slot is None:
            return
        klass = type(m)
        ksize = ctypes.sizeof(klass._key_)
        vsize = ctypes.sizeof(klass._value_)
        index = self._map_index[m.table]
        last = table.count - 1
        if slot != last:
            # Move the last entry into the hole to keep [0, count) dense.
            ctypes.memmove(table.keys + slot * ksize,
                           table.keys + last * ksize, ksize)
            ctypes.memmove(table.values + slot * vsize,
                           table.values + last * vsize, vsize)
            self._copy_pins(table.keys + last * ksize,
                            table.keys + slot * ksize, ksize, move=True)
            self._copy_pins(table.values + last * vsize,
                            table.values + slot * vsize, vsize, move=True)
            for other, i in index.items():
                if i == last:
                    index[other] = slot
                    break
        ctypes.memset(table.keys + last * ksize, 0, ksize)
        ctypes.memset(table.values + last * vsize, 0, vsize)
        self._drop_pins(table.keys + last * ksize, ksize)
        self._drop_pins(table.values + last * vsize, vsize)
        del index[kbytes]
        table.count = last

    def map_len(self, m):
        if not m.table:
            return 0
        return layout.MapTable.from_address(m.table).count

    def map_items(self, m):
        """Return [(key, value)], sharing memory with the map."""
        if not m.table:
            return []
        klass = type(m)
        ktype, vtype = klass._key_, klass._value_
        table = layout.MapTable.from_address(m.table)
        return [(ktype.from_address(table.keys + i * ctypes.sizeof(ktype)),
                 vtype.from_address(table.values + i * ctypes.sizeof(vtype)))
                for i in range(table.count)]

    # Interfaces

    def box(self, value):
        """Return an Interface holding a copy of value (None for nil)."""
        iface = layout.Interface()
        if value is None:
            return iface
        if not isinstance(value, layout.CDATA_TYPES):
            raise TypeError('can only box ctypes instances, not %s'
                            % (type(value).__name__,))
        ctype = type(value)
        tid = layout.type_id(ctype)
        box = self._alloc(ctype)
        self._store(ctypes.addressof(box), ctype, value)
        iface.type_id = tid
        iface.data = ctypes.addressof(box)
        return iface

    def unbox(self, iface):
        """Return the value held by iface, or None if it is nil."""
        if not iface.type_id:
            return None
        return layout.type_from_id(iface.type_id).from_address(iface.data)

    # Channels

    def make_chan(self, elem, cap=0):
        if cap < 0:
            raise ValueError('negative channel capacity %d' % (cap,))
        ch = layout.Chan(elem)()
        hchan = self._alloc(layout.HChan)
        hchan.cap = cap
        if cap:
            hchan.buf = ctypes.addressof(self._alloc(elem * cap))
        ch.hchan = ctypes.addressof(hchan)
        return ch

    def _hchan(self, ch):
        if not ch.hchan:
            raise ValueError('operation on nil channel')
        return layout.HChan.from_address(ch.hchan)

    def send(self, ch, value):
        """Queue value on ch.

        :raises queue.Full: if the buffer has no room. Nothing ever waits on
            a channel, so an unbuffered channel is always full.
        """
        hchan = self._hchan(ch)
        if hchan.closed:
            raise ValueError('send on closed channel')
        if hchan.count >= hchan.cap:
            raise queue.Full()
        elem = type(ch)._elem_
        self._store(hchan.buf + hchan.sendx * ctypes.sizeof(elem), elem,
                    value)
        hchan.sendx = (hchan.sendx + 1) % hchan.cap
        hchan.count += 1

    def recv(self, ch):
        """Take the oldest value from ch.

        :return: A copy of the value, or None if ch is closed and drained.
        :raises queue.Empty: if ch is open and has nothing buffered.
        """
        hchan = self._hchan(ch)
        if not hchan.count:
            if hchan.closed:
                return None
            raise queue.Empty()
        elem = type(ch)._elem_
        esize = ctypes.sizeof(elem)
        address = hchan.buf + hchan.recvx * esize
        value = elem.from_buffer_copy(ctypes.string_at(address, esize))
        ctypes.memset(address, 0, esize)
        hchan.recvx = (hchan.recvx + 1) % hchan.cap
        hchan.count -= 1
        return value

    def close(self, ch):
        hchan = self._hchan(ch)
        if hchan.closed:
            raise ValueError('close of closed channel')
        hchan.closed = 1

    def chan_len(self, ch):
        if not ch.hchan:
            return 0
        return layout.HChan.from_address(ch.hchan).count
