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

"""An ordered set of disjoint memory spans.

This records the extent of slice backing buffers seen during a scan. Inserting
a span merges it with every span it overlaps or touches, and hands back the
spans that were absorbed, so the caller can tell which part of a buffer was
already claimed by an earlier view.
"""

import bisect
import collections

from footprint.address import format_addr


class Span(collections.namedtuple('Span', 'start end')):
    """The half open address range [start, end)."""

    __slots__ = ()

    def contains(self, addr):
        return self.start <= addr < self.end

    def overlaps(self, other):
        # Touching spans count as overlapping, so they get merged.
        return self.start <= other.end and self.end >= other.start

    def __repr__(self):
        return '[%s..%s]' % (format_addr(self.start), format_addr(self.end))


class SpanIndex(object):

    def __init__(self):
        self._spans = []
        # end address of each span, kept in step with _spans for bisect
        self._ends = []

    def __len__(self):
        return len(self._spans)

    def __iter__(self):
        return iter(self._spans)

    def __repr__(self):
        return '{%s}' % (' '.join(map(repr, self._spans)),)

    def contains(self, addr):
        """Is addr inside any known span?"""
        i = bisect.bisect_right(self._ends, addr)
        return i < len(self._spans) and self._spans[i].start <= addr

    def insert(self, start, length):
        """Add the span [start, start+length).

        :return: A list of the previously known spans that the new span
            overlaps, in address order. They are replaced by a single span
            covering the union.
        """
        if length < 0:
            raise ValueError('negative span length %d at %s'
                             % (length, format_addr(start)))
        if length == 0:
            return []
        end = start + length
        spans = self._spans
        i = j = bisect.bisect_left(self._ends, start)
        while j < len(spans) and spans[j].start <= end:
            j += 1
        absorbed = spans[i:j]
        if absorbed:
            start = min(start, absorbed[0].start)
            end = max(end, absorbed[-1].end)
        spans[i:j] = [Span(start, end)]
        self._ends[i:j] = [end]
        return absorbed
