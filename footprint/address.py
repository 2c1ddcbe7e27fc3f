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

"""Helpers for raw memory addresses.

Code dealing with plain integers is oblivious to the zero address. These
helpers are not: the zero address means the value has no stable location
(map keys and values, values boxed in an interface), and offsetting it
yields the zero address again.
"""

INVALID_ADDR = 0


def valid(addr):
    return addr != INVALID_ADDR


def add_offset(addr, offset):
    """Return addr + offset, or INVALID_ADDR if addr is not valid."""
    if addr == INVALID_ADDR:
        return INVALID_ADDR
    return addr + offset


def format_addr(addr):
    return '%#x' % (addr,)
