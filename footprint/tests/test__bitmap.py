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

"""Tests for the sparse visited bitmap."""

import random

from footprint import (
    _bitmap,
    tests,
    )


class TestBitmap(tests.TestCase):

    def test_empty(self):
        bitmap = _bitmap.Bitmap()
        self.assertEqual(0, len(bitmap))
        self.assertEqual(0, bitmap.size())
        self.assertEqual(0.0, bitmap.utilization())
        self.assertFalse(bitmap.is_marked(0x1000))
        self.assertFalse(bitmap.any_marked(0x1000, 4096))

    def test_is_marked_does_not_allocate(self):
        bitmap = _bitmap.Bitmap()
        bitmap.is_marked(0x123456)
        bitmap.any_marked(0x1000000, 5 * _bitmap.BLOCK_RANGE)
        self.assertEqual(0, len(bitmap))

    def test_mark_range(self):
        bitmap = _bitmap.Bitmap()
        bitmap.mark_range(0x1003, 10)
        self.assertFalse(bitmap.is_marked(0x1002))
        for addr in range(0x1003, 0x100d):
            self.assertTrue(bitmap.is_marked(addr))
        self.assertFalse(bitmap.is_marked(0x100d))
        self.assertEqual(1, len(bitmap))

    def test_mark_single_byte(self):
        bitmap = _bitmap.Bitmap()
        bitmap.mark_range(0x7, 1)
        self.assertTrue(bitmap.is_marked(0x7))
        self.assertFalse(bitmap.is_marked(0x6))
        self.assertFalse(bitmap.is_marked(0x8))

    def test_mark_zero_length(self):
        bitmap = _bitmap.Bitmap()
        bitmap.mark_range(0x1000, 0)
        self.assertEqual(0, len(bitmap))
        self.assertFalse(bitmap.is_marked(0x1000))

    def test_mark_across_blocks(self):
        bitmap = _bitmap.Bitmap()
        start = 3 * _bitmap.BLOCK_RANGE - 4
        bitmap.mark_range(start, 8)
        self.assertEqual(2, len(bitmap))
        self.assertEqual(2 * _bitmap.BLOCK_RANGE // 8, bitmap.size())
        for addr in range(start, start + 8):
            self.assertTrue(bitmap.is_marked(addr))
        self.assertFalse(bitmap.is_marked(start - 1))
        self.assertFalse(bitmap.is_marked(start + 8))

    def test_mark_spanning_several_blocks(self):
        bitmap = _bitmap.Bitmap()
        bitmap.mark_range(_bitmap.BLOCK_RANGE // 2, 2 * _bitmap.BLOCK_RANGE)
        self.assertEqual(3, len(bitmap))
        self.assertTrue(bitmap.is_marked(_bitmap.BLOCK_RANGE // 2))
        self.assertTrue(bitmap.is_marked(2 * _bitmap.BLOCK_RANGE))
        self.assertFalse(bitmap.is_marked(_bitmap.BLOCK_RANGE // 2 - 1))
        self.assertFalse(bitmap.is_marked(5 * _bitmap.BLOCK_RANGE // 2))

    def test_any_marked(self):
        bitmap = _bitmap.Bitmap()
        bitmap.mark_range(0x2010, 1)
        self.assertTrue(bitmap.any_marked(0x2000, 0x20))
        self.assertTrue(bitmap.any_marked(0x2010, 1))
        self.assertFalse(bitmap.any_marked(0x2000, 0x10))
        self.assertFalse(bitmap.any_marked(0x2011, 0x100))
        self.assertFalse(bitmap.any_marked(0x2010, 0))

    def test_any_marked_across_blocks(self):
        bitmap = _bitmap.Bitmap()
        bitmap.mark_range(_bitmap.BLOCK_RANGE + 5, 1)
        self.assertTrue(bitmap.any_marked(_bitmap.BLOCK_RANGE - 10, 16))
        self.assertFalse(bitmap.any_marked(_bitmap.BLOCK_RANGE - 10, 15))

    def test_utilization(self):
        bitmap = _bitmap.Bitmap()
        bitmap.mark_range(0, _bitmap.BLOCK_RANGE // 4)
        self.assertEqual(0.25, bitmap.utilization())
        bitmap.mark_range(_bitmap.BLOCK_RANGE, _bitmap.BLOCK_RANGE)
        self.assertEqual(0.625, bitmap.utilization())

    def test_matches_set_of_addresses(self):
        rand = random.Random(42)
        bitmap = _bitmap.Bitmap()
        marked = set()
        for _ in range(200):
            start = rand.randrange(0, 4096)
            length = rand.randrange(0, 40)
            bitmap.mark_range(start, length)
            marked.update(range(start, start + length))
        for addr in range(4200):
            self.assertEqual(addr in marked, bitmap.is_marked(addr))
        for _ in range(200):
            start = rand.randrange(0, 4096)
            length = rand.randrange(0, 40)
            expected = bool(marked.intersection(range(start, start + length)))
            self.assertEqual(expected, bitmap.any_marked(start, length))
