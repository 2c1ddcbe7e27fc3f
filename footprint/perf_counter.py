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

"""Track how long things take."""

import math
import time


class _Counter(object):
    """Track various aspects of performance for a given action."""

    def __init__(self, name, timer):
        self.name = name
        self.time_spent = 0.0
        self._time_spent_squared = 0.0
        self.count = 0
        self._time_start = None
        self._timer = timer

    def tick(self):
        """Indicate that we are starting a section related to this counter."""
        self._time_start = self._timer()

    def tock(self):
        """Indicate that we finished processing.

        :return: The time since the matching tick(), or 0.0 if there was none.
        """
        delta = 0.0
        if self._time_start is not None:
            delta = self._timer() - self._time_start
            self.time_spent += delta
            self._time_spent_squared += (delta * delta)
            self._time_start = None
        self.count += 1
        return delta

    def time_mean(self):
        if self.count == 0:
            return 0.0
        return self.time_spent / self.count

    def time_stddev(self):
        # Keeping the sum and the sum of squares lets us compute the sample
        # standard deviation without remembering every delta.
        if self.count < 2:
            return 0.0
        diff = (self._time_spent_squared
                - (self.time_spent * self.time_spent) / self.count)
        return math.sqrt(max(diff, 0.0) / (self.count - 1))


class PerformanceCounter(object):
    """A registry of named counters sharing one timer."""

    def __init__(self):
        self._counters = {}

    def reset(self):
        self._counters.clear()

    def get_timer(self):
        return time.perf_counter

    def get_counter(self, name):
        """Create a Counter object that will track some aspect of processing.

        :param name: An identifier associated with this action.
        :return: A Counter instance.
        """
        try:
            c = self._counters[name]
        except KeyError:
            c = _Counter(name, self.get_timer())
            self._counters[name] = c
        return c


perf_counter = PerformanceCounter()
