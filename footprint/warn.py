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

"""Warnings about scans whose results can't be trusted completely."""

import warnings


class ScanWarning(RuntimeWarning):
    """The scan ran, but its numbers may be off."""


_warn_func = warnings.warn


def warn(msg, klass=ScanWarning, stacklevel=1):
    _warn_func(msg, klass, stacklevel=stacklevel)


def trap_warnings(new_warning_func):
    """Send warnings to new_warning_func instead of warnings.warn.

    :param new_warning_func: Called as new_warning_func(msg, klass,
        stacklevel=n).
    :return: The function warnings went to before, to restore later.
    """
    global _warn_func
    old = _warn_func
    _warn_func = new_warning_func
    return old
