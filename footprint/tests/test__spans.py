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

import random

from footprint import (
    _spans,
    tests,
    )


class TestSpan(tests.TestCase):

    def test_contains(self):
        span = _spans.Span(0x10, 0x20)
        self.assertTrue(span.contains(0x10))
        self.assertTrue(span.contains(0x1f))
        self.assertFalse(span.contains(0x20))
        self.assertFalse(span.contains(0xf))

    def test_overlaps_includes_touching(self):
        span = _spans.Span(0x10, 0x20)
        self.assertTrue(span.overlaps(_spans.Span(0x20, 0x30)))
        self.assertTrue(span.overlaps(_spans.Span(0x0, 0x10)))
        self.assertTrue(span.overlaps(_spans.Span(0x18, 0x19)))
        self.assertFalse(span.overlaps(_spans.Span(0x21, 0x30)))

    def test_repr(self):
        self.assertEqual('[0x10..0x20]', repr(_spans.Span(0x10, 0x20)))


class TestSpanIndex(tests.TestCase):

    def assertSpans(self, expected, index):
        self.assertEqual(expected, [tuple(s) for s in index])

    def test_empty(self):
        index = _spans.SpanIndex()
        self.assertEqual(0, len(index))
        self.assertFalse(index.contains(0x10))
        self.assertEqual('{}', repr(index))

    def test_insert_disjoint(self):
        index = _spans.SpanIndex()
        self.assertEqual([], index.insert(0x30, 0x10))
        self.assertEqual([], index.insert(0x10, 0x8))
        self.assertSpans([(0x10, 0x18), (0x30, 0x40)], index)
        self.assertEqual('{[0x10..0x18] [0x30..0x40]}', repr(index))

    def test_insert_merges_touching_and_overlapping(self):
        index = _spans.SpanIndex()
        index.insert(0x1, 2)
        index.insert(0x3, 5)
        index.insert(0x1, 3)
        index.insert(0x1, 4)
        self.assertSpans([(0x1, 0x8)], index)
        self.assertTrue(index.contains(0x5))
        self.assertFalse(index.contains(0x8))

    def test_insert_returns_absorbed(self):
        index = _spans.SpanIndex()
        index.insert(0x10, 16)
        index.insert(0x30, 16)
        index.insert(0x100, 16)
        absorbed = index.insert(0x5, 0x40)
        self.assertEqual([(0x10, 0x20), (0x30, 0x40)],
                         [tuple(s) for s in absorbed])
        self.assertSpans([(0x5, 0x45), (0x100, 0x110)], index)

    def test_insert_inside_existing(self):
        index = _spans.SpanIndex()
        index.insert(0x10, 0x100)
        absorbed = index.insert(0x20, 0x10)
        self.assertEqual([(0x10, 0x110)], [tuple(s) for s in absorbed])
        self.assertSpans([(0x10, 0x110)], index)

    def test_insert_zero_length(self):
        index = _spans.SpanIndex()
        self.assertEqual([], index.insert(0x10, 0))
        self.assertEqual(0, len(index))

    def test_insert_negative_length(self):
        index = _spans.SpanIndex()
        self.assertRaises(ValueError, index.insert, 0x10, -1)

    def test_matches_set_of_addresses(self):
        rand = random.Random(1234)
        index = _spans.SpanIndex()
        covered = set()
        for _ in range(300):
            start = rand.randrange(0, 2000)
            length = rand.randrange(1, 30)
            index.insert(start, length)
            covered.update(range(start, start + length))
        spans = list(index)
        for prev, cur in zip(spans, spans[1:]):
            # Sorted, and never touching
            self.assertTrue(prev.end < cur.start)
        for addr in range(2100):
            self.assertEqual(addr in covered, index.contains(addr))
