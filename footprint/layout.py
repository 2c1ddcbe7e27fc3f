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

"""Memory layouts of the values that can be scanned.

Scanned values are ctypes instances. ctypes already describes pointers,
fixed arrays, structures and scalars; this module adds header types for the
variable sized and polymorphic values (strings, slices, maps, interfaces and
channels) and classifies every ctypes type into a Kind.
"""

import ctypes
import enum
import threading


class Kind(enum.Enum):

    SCALAR = 'scalar'
    POINTER = 'pointer'
    INTERFACE = 'interface'
    STRING = 'string'
    SLICE = 'slice'
    ARRAY = 'array'
    MAP = 'map'
    STRUCT = 'struct'
    CHAN = 'chan'
    FUNC = 'func'


# Kinds whose in-place representation is itself a reference.
REFERENCE_KINDS = frozenset([
    Kind.POINTER, Kind.INTERFACE, Kind.STRING, Kind.SLICE, Kind.MAP,
    Kind.CHAN, Kind.FUNC,
    ])

CDATA_TYPES = (ctypes._SimpleCData, ctypes._Pointer, ctypes.Array,
               ctypes.Structure, ctypes.Union, ctypes._CFuncPtr)

_STRING_CODES = ('z', 'Z')


def kind_of(ctype):
    """Classify a ctypes type.

    :raises TypeError: for types that cannot be scanned, such as py_object.
    """
    kind = getattr(ctype, '_kind_', None)
    if kind is not None:
        return kind
    if not isinstance(ctype, type):
        raise TypeError('not a ctypes type: %r' % (ctype,))
    if issubclass(ctype, ctypes._Pointer):
        return Kind.POINTER
    if issubclass(ctype, ctypes.Array):
        return Kind.ARRAY
    if issubclass(ctype, ctypes.Structure):
        return Kind.STRUCT
    if issubclass(ctype, ctypes.Union):
        # Overlapping members can't be told apart, so a union is opaque.
        return Kind.SCALAR
    if issubclass(ctype, ctypes._CFuncPtr):
        return Kind.FUNC
    if issubclass(ctype, ctypes._SimpleCData):
        code = ctype._type_
        if code in _STRING_CODES:
            return Kind.STRING
        if code != 'O':
            return Kind.SCALAR
    raise TypeError('unhandled ctypes type %s' % (type_name(ctype),))


def type_name(ctype):
    return getattr(ctype, '__name__', str(ctype))


def struct_fields(ctype):
    """Return (name, type, offset) for every field of a Structure.

    Fields inherited from Structure base classes come first, matching the
    order ctypes lays them out in memory.
    """
    fields = []
    for klass in reversed(ctype.__mro__):
        for field in klass.__dict__.get('_fields_', ()):
            name, ftype = field[0], field[1]
            fields.append((name, ftype, getattr(ctype, name).offset))
    return fields


class String(ctypes.Structure):
    """An immutable byte string stored out of line."""

    _kind_ = Kind.STRING
    _fields_ = [('data', ctypes.c_void_p),
                ('len', ctypes.c_ssize_t)]


def string_bytes(s):
    """Return the content of a String header."""
    if not s.data or s.len <= 0:
        return b''
    return ctypes.string_at(s.data, s.len)


class Interface(ctypes.Structure):
    """A value of any registered type, boxed out of line.

    A type_id of 0 is the nil interface.
    """

    _kind_ = Kind.INTERFACE
    _fields_ = [('type_id', ctypes.c_size_t),
                ('data', ctypes.c_void_p)]


class MapTable(ctypes.Structure):
    """The storage behind a Map header: parallel arrays of keys and values.

    Live entries occupy slots [0, count).
    """

    _fields_ = [('count', ctypes.c_size_t),
                ('cap', ctypes.c_size_t),
                ('keys', ctypes.c_void_p),
                ('values', ctypes.c_void_p)]


class HChan(ctypes.Structure):
    """The storage behind a Chan header: a ring buffer of cap elements."""

    _fields_ = [('count', ctypes.c_size_t),
                ('cap', ctypes.c_size_t),
                ('buf', ctypes.c_void_p),
                ('sendx', ctypes.c_size_t),
                ('recvx', ctypes.c_size_t),
                ('closed', ctypes.c_int)]


_slice_types = {}
_map_types = {}
_chan_types = {}


def Slice(elem):
    """Return the slice header type for elements of type elem."""
    try:
        return _slice_types[elem]
    except KeyError:
        pass
    kind_of(elem)
    klass = type('Slice[%s]' % (type_name(elem),), (ctypes.Structure,), {
        '_kind_': Kind.SLICE,
        '_elem_': elem,
        '_fields_': [('data', ctypes.c_void_p),
                     ('len', ctypes.c_ssize_t),
                     ('cap', ctypes.c_ssize_t)],
        })
    return _slice_types.setdefault(elem, klass)


def Map(key, value):
    """Return the map header type for the given key and value types."""
    try:
        return _map_types[key, value]
    except KeyError:
        pass
    kind_of(key)
    kind_of(value)
    klass = type('Map[%s, %s]' % (type_name(key), type_name(value)),
                 (ctypes.Structure,), {
        '_kind_': Kind.MAP,
        '_key_': key,
        '_value_': value,
        '_fields_': [('table', ctypes.c_void_p)],
        })
    return _map_types.setdefault((key, value), klass)


def Chan(elem):
    """Return the channel header type for elements of type elem."""
    try:
        return _chan_types[elem]
    except KeyError:
        pass
    kind_of(elem)
    klass = type('Chan[%s]' % (type_name(elem),), (ctypes.Structure,), {
        '_kind_': Kind.CHAN,
        '_elem_': elem,
        '_fields_': [('hchan', ctypes.c_void_p)],
        })
    return _chan_types.setdefault(elem, klass)


# Types stored in interfaces, by id. Id 0 is reserved for nil.
_registered = [None]
_registered_ids = {}
_registry_lock = threading.Lock()


def type_id(ctype):
    """Return the interface type id of ctype, registering it if needed."""
    try:
        return _registered_ids[ctype]
    except KeyError:
        pass
    kind_of(ctype)
    with _registry_lock:
        tid = _registered_ids.get(ctype)
        if tid is None:
            tid = len(_registered)
            _registered.append(ctype)
            _registered_ids[ctype] = tid
    return tid


def type_from_id(tid):
    if tid <= 0 or tid >= len(_registered):
        raise RuntimeError('unknown interface type id %d' % (tid,))
    return _registered[tid]
