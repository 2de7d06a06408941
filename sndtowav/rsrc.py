"""
Read resources out of a Mac resource fork.

Only the map is interpreted: type, ID, name and raw data of each resource.
"""

import os
import struct
from dataclasses import dataclass, field

from .errors import SndIOError

SND_TYPE = 'snd '


@dataclass
class Resource:
    type: str
    id: int
    name: str
    data: bytes = field(repr=False)


def read_resource_fork(filepath):
    """Read the resource fork of a Mac file, or the file itself (.rsrc)."""
    rsrc_path = os.path.join(filepath, '..namedfork', 'rsrc')
    if os.path.exists(rsrc_path):
        with open(rsrc_path, 'rb') as f:
            data = f.read()
        if data:
            return data
    with open(filepath, 'rb') as f:
        return f.read()


def _unpack(fmt, data, offset):
    size = struct.calcsize(fmt)
    if offset < 0 or offset + size > len(data):
        raise SndIOError(f"resource map truncated: {size} bytes needed at offset {offset}")
    return struct.unpack(fmt, data[offset:offset + size])


def parse_resource_map(data):
    """Parse a resource fork and return its resources in map order."""
    if len(data) < 16:
        raise SndIOError(f"resource fork too short ({len(data)} bytes)")

    data_offset, map_offset = _unpack('>II', data, 0)
    type_list_rel, name_list_rel = _unpack('>HH', data, map_offset + 24)
    type_list_offset = map_offset + type_list_rel
    name_list_offset = map_offset + name_list_rel

    resources = []
    num_types = _unpack('>H', data, type_list_offset)[0] + 1
    pos = type_list_offset + 2
    for _ in range(num_types):
        type_code, num_resources, ref_list_offset = _unpack('>4sHH', data, pos)
        res_type = type_code.decode('mac_roman', errors='replace')

        ref_pos = type_list_offset + ref_list_offset
        for _ in range(num_resources + 1):
            res_id, name_offset_rel, attrs_and_offset = _unpack('>hHI', data, ref_pos)
            actual_offset = data_offset + (attrs_and_offset & 0x00FFFFFF)
            res_length = _unpack('>I', data, actual_offset)[0]
            if actual_offset + 4 + res_length > len(data):
                raise SndIOError(f"resource '{res_type}' {res_id} data runs past the end of the fork")
            res_data = data[actual_offset + 4:actual_offset + 4 + res_length]

            name = ''
            if name_offset_rel != 0xFFFF:
                name_pos = name_list_offset + name_offset_rel
                name_len = _unpack('>B', data, name_pos)[0]
                name = data[name_pos + 1:name_pos + 1 + name_len].decode('mac_roman', errors='replace')

            resources.append(Resource(res_type, res_id, name, res_data))
            ref_pos += 12

        pos += 8

    return resources


class ResourceFork:
    """Lookup over the resources of one fork."""

    def __init__(self, resources):
        self.resources = list(resources)

    @classmethod
    def from_bytes(cls, data):
        return cls(parse_resource_map(data))

    @classmethod
    def open(cls, filepath):
        return cls.from_bytes(read_resource_fork(filepath))

    def of_type(self, res_type):
        return sorted((r for r in self.resources if r.type == res_type), key=lambda r: r.id)

    def sounds(self):
        return self.of_type(SND_TYPE)

    def by_id(self, res_type, res_id):
        for res in self.resources:
            if res.type == res_type and res.id == res_id:
                return res
        return None

    def by_name(self, res_type, name):
        for res in self.resources:
            if res.type == res_type and res.name == name:
                return res
        return None
