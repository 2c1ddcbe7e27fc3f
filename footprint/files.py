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

"""Work with files on disk."""

import gzip

_GZIP_MAGIC = b'\x1f\x8b'


def open_file(filename):
    """Open a file which might be a regular file or a gzip.

    :return: A binary file object, and a cleanup function (or None).
    """
    source = open(filename, 'rb')
    if source.read(2) != _GZIP_MAGIC:
        source.seek(0)
        return source, None
    source.seek(0)
    gzip_source = gzip.GzipFile(mode='rb', fileobj=source)

    def cleanup():
        gzip_source.close()
        source.close()
    return gzip_source, cleanup


def create_file(filename):
    """Create filename for writing bytes, compressed if it ends in .gz."""
    if filename.endswith('.gz'):
        return gzip.open(filename, 'wb')
    return open(filename, 'wb')
