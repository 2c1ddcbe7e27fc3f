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

import gzip
import os
import shutil
import tempfile

from footprint import (
    files,
    tests,
    )


class TestFiles(tests.TestCase):

    def setUp(self):
        super(TestFiles, self).setUp()
        self.tempdir = tempfile.mkdtemp(prefix='footprint-')

    def tearDown(self):
        shutil.rmtree(self.tempdir)
        super(TestFiles, self).tearDown()

    def read_back(self, filename):
        source, cleanup = files.open_file(filename)
        try:
            return source.read()
        finally:
            if cleanup is not None:
                cleanup()
            else:
                source.close()

    def test_open_plain(self):
        filename = os.path.join(self.tempdir, 'plain.txt')
        with open(filename, 'wb') as f:
            f.write(b'some content\n')
        source, cleanup = files.open_file(filename)
        self.assertIs(None, cleanup)
        self.assertEqual(b'some content\n', source.read())
        source.close()

    def test_open_gzip(self):
        filename = os.path.join(self.tempdir, 'packed')
        with gzip.open(filename, 'wb') as f:
            f.write(b'packed content\n')
        source, cleanup = files.open_file(filename)
        self.assertIsNot(None, cleanup)
        self.assertEqual([b'packed content\n'], list(source))
        cleanup()

    def test_create_plain(self):
        filename = os.path.join(self.tempdir, 'out.txt')
        f = files.create_file(filename)
        f.write(b'abc')
        f.close()
        with open(filename, 'rb') as f:
            self.assertEqual(b'abc', f.read())

    def test_create_gzip(self):
        filename = os.path.join(self.tempdir, 'out.txt.gz')
        f = files.create_file(filename)
        f.write(b'abc')
        f.close()
        with open(filename, 'rb') as f:
            self.assertEqual(b'\x1f\x8b', f.read(2))
        self.assertEqual(b'abc', self.read_back(filename))
