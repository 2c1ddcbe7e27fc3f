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

"""A sparse bitmap with one bit per byte of address space.

Blocks covering BLOCK_RANGE bytes are allocated the first time an address in
their range is marked. Bits are never cleared; throw the bitmap away instead.
"""

# Bytes of address space covered by a single block.
BLOCK_RANGE = 1024 * 1024
_BLOCK_BYTES = BLOCK_RANGE // 8

# Number of one bits in every byte value, for bytearray.translate()
_POPCOUNT = bytes(bin(i).count('1') for i in range(256))


def _set_bits(block, start, stop):
    """Set bits [start, stop) of block."""
    first, last = start >> 3, stop >> 3
    lo, hi = start & 7, stop & 7
    if first == last:
        block[first] |= ((1 << hi) - 1) ^ ((1 << lo) - 1)
        return
    block[first] |= (0xff << lo) & 0xff
    if last > first + 1:
        block[first + 1:last] = b'\xff' * (last - first - 1)
    if hi:
        block[last] |= (1 << hi) - 1


def _any_bits(block, start, stop):
    """Is any bit in [start, stop) of block set?"""
    first, last = start >> 3, stop >> 3
    lo, hi = start & 7, stop & 7
    if first == last:
        return bool(block[first] & (((1 << hi) - 1) ^ ((1 << lo) - 1)))
    if block[first] & (0xff << lo) & 0xff:
        return True
    if last > first + 1:
        if block.count(0, first + 1, last) != last - first - 1:
            return True
    if hi and block[last] & ((1 << hi) - 1):
        return True
    return False


class Bitmap(object):
    """Track which bytes of memory have already been counted."""

    def __init__(self):
        self._blocks = {}

    def __len__(self):
        return len(self._blocks)

    def mark_range(self, addr, length):
        """Set length consecutive bits starting at addr."""
        end = addr + length
        blocks = self._blocks
        while addr < end:
            index, offset = divmod(addr, BLOCK_RANGE)
            block = blocks.get(index)
            if block is None:
                block = blocks[index] = bytearray(_BLOCK_BYTES)
            stop = min(BLOCK_RANGE, offset + (end - addr))
            _set_bits(block, offset, stop)
            addr += stop - offset

    def is_marked(self, addr):
        index, offset = divmod(addr, BLOCK_RANGE)
        block = self._blocks.get(index)
        if block is None:
            return False
        return bool(block[offset >> 3] & (1 << (offset & 7)))

    def any_marked(self, addr, length):
        """Is any byte in [addr, addr+length) marked?"""
        end = addr + length
        while addr < end:
            index, offset = divmod(addr, BLOCK_RANGE)
            stop = min(BLOCK_RANGE, offset + (end - addr))
            block = self._blocks.get(index)
            if block is not None and _any_bits(block, offset, stop):
                return True
            addr += stop - offset
        return False

    def size(self):
        """The number of bytes used by the allocated blocks."""
        return len(self._blocks) * _BLOCK_BYTES

    def utilization(self):
        """The mean fraction of one bits across all allocated blocks."""
        if not self._blocks:
            return 0.0
        total = 0.0
        for block in self._blocks.values():
            total += sum(block.translate(_POPCOUNT)) / float(BLOCK_RANGE)
        return total / len(self._blocks)
