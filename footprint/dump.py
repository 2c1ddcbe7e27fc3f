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

"""Save scan results and read them back.

A dump holds one JSON object per line:

  {"scan": {"duration": 0.01, "bitmap_size": 131072, ...}}
  {"root": "cache", "size": 4096}
  {"type": "Slice[c_ubyte]", "size": 4096, "roots": {"cache": 4096}}

Types are written by name, so a loaded result is keyed by type name. Distinct
types that share a name are added together when loaded.
"""

import simplejson

from footprint import (
    files,
    layout,
    sizes,
    )


def _iter_records(result):
    yield {'scan': {'duration': result.duration,
                    'bitmap_size': result.bitmap_size,
                    'bitmap_utilization': result.bitmap_utilization}}
    for name in sorted(result.by_root):
        yield {'root': name, 'size': result.by_root[name]}
    for typ, type_size in result.by_size():
        if not isinstance(typ, str):
            typ = layout.type_name(typ)
        yield {'type': typ, 'size': type_size.total,
               'roots': type_size.by_root}


def dump_sizes(outf, result):
    """Write result to outf, a filename or a file opened for bytes."""
    if isinstance(outf, str):
        opened = True
        outf = files.create_file(outf)
    else:
        opened = False
    try:
        for record in _iter_records(result):
            outf.write(simplejson.dumps(record, sort_keys=True)
                       .encode('utf-8'))
            outf.write(b'\n')
    finally:
        if opened:
            outf.close()
        else:
            outf.flush()


def _load(lines):
    result = sizes.Sizes()
    for line_num, line in enumerate(lines):
        if isinstance(line, bytes):
            line = line.decode('utf-8')
        line = line.strip()
        if not line:
            continue
        try:
            record = simplejson.loads(line)
        except simplejson.JSONDecodeError as e:
            raise ValueError('Failed to parse line %d: %r (%s)'
                             % (line_num + 1, line, e))
        if 'scan' in record:
            info = record['scan']
            result.duration = info.get('duration', 0.0)
            result.bitmap_size = info.get('bitmap_size', 0)
            result.bitmap_utilization = info.get('bitmap_utilization', 0.0)
        elif 'root' in record:
            result.by_root[record['root']] = record['size']
        elif 'type' in record:
            type_size = result.by_type.get(record['type'])
            if type_size is None:
                type_size = result.by_type[record['type']] = sizes.TypeSize()
            type_size.total += record['size']
            by_root = type_size.by_root
            for name, size in record.get('roots', {}).items():
                by_root[name] = by_root.get(name, 0) + size
        else:
            raise ValueError('Unknown record on line %d: %r'
                             % (line_num + 1, line))
    return result


def load_sizes(source):
    """Load a result written by dump_sizes().

    :param source: A filename (plain or gzip compressed), or an iterable of
        lines.
    :return: A sizes.Sizes whose by_type is keyed by type name.
    """
    if not isinstance(source, str):
        return _load(source)
    source, cleanup = files.open_file(source)
    try:
        return _load(source)
    finally:
        if cleanup is not None:
            cleanup()
        else:
            source.close()
