#!/usr/bin/env python
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


def config():
    import footprint
    kwargs = {
        "name": "footprint",
        "version": footprint.__version__,
        "description": "Retained memory of ctypes object graphs",
        "license": "GNU GPL v3",
        "packages": ["footprint", "footprint.tests"],
        "scripts": ["footprint_demo.py"],
        "install_requires": ["simplejson"],
        "python_requires": ">=3.8",
        "classifiers": [
            'Development Status :: 3 - Alpha',
            'Environment :: Console',
            'Intended Audience :: Developers',
            'License :: OSI Approved :: GNU General Public License (GPL)',
            'Operating System :: OS Independent',
            'Programming Language :: Python :: 3',
            'Topic :: Software Development :: Debuggers',
        ],
        "long_description": """\
footprint answers "how much memory does this hold on to?" for graphs of
ctypes values.

You register named roots (ctypes pointers) and scan them. Everything
reachable from a root is visited once: pointers are followed, slice buffers,
string data, map entries, boxed interface values and channel buffers are
counted, and memory shared by several paths is only counted the first time
it is seen. The result gives the bytes held by each root and by each type.

Strings, slices, maps, interfaces and channels are header types layered on
ctypes; footprint.heap.Heap builds and owns their out of line storage.
"""
    }

    from setuptools import setup

    setup(**kwargs)

if __name__ == "__main__":
    config()
