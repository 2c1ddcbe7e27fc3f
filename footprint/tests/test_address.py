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

from footprint import (
    address,
    tests,
    )


class TestAddress(tests.TestCase):

    def test_valid(self):
        self.assertFalse(address.valid(address.INVALID_ADDR))
        self.assertTrue(address.valid(0x1000))

    def test_add_offset(self):
        self.assertEqual(0x1010, address.add_offset(0x1000, 0x10))
        self.assertEqual(address.INVALID_ADDR,
                         address.add_offset(address.INVALID_ADDR, 0x10))

    def test_format_addr(self):
        self.assertEqual('0xdeadbeef', address.format_addr(0xdeadbeef))
