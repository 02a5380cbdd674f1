import struct
from collections import namedtuple

import constants
from errors import InvalidIhdr, HeaderMismatch, Interlaced

ImageHeader = namedtuple('ImageHeader', [
    'width', 'height', 'bit_depth', 'color_type',
    'compression_method', 'filter_method', 'interlace_method',
])

# Every IHDR field except height, which is summed across inputs
MergeKey = namedtuple('MergeKey', [
    'width', 'bit_depth', 'color_type',
    'compression_method', 'filter_method', 'interlace_method',
])

IHDR_FORMAT = '>IIBBBBB'


def parse_ihdr(payload):
    if len(payload) != constants.IHDR_LENGTH:
        raise InvalidIhdr(f"payload is {len(payload)} bytes, expected {constants.IHDR_LENGTH}")

    header = ImageHeader(*struct.unpack(IHDR_FORMAT, payload))
    validate_header(header)
    return header


def validate_header(header):
    for name in ('width', 'height'):
        value = getattr(header, name)
        if value == 0 or value > constants.MAX_DIMENSION:
            raise InvalidIhdr(f"{name} {value} out of range")

    if header.color_type not in constants.COLOUR_TYPES:
        raise InvalidIhdr(f"unknown colour type {header.color_type}")
    _, depths = constants.COLOUR_TYPES[header.color_type]
    if header.bit_depth not in depths:
        raise InvalidIhdr(f"bit depth {header.bit_depth} not allowed for colour type {header.color_type}")

    if header.compression_method != 0:
        raise InvalidIhdr(f"unknown compression method {header.compression_method}")
    if header.filter_method != 0:
        raise InvalidIhdr(f"unknown filter method {header.filter_method}")
    if header.interlace_method not in (0, 1):
        raise InvalidIhdr(f"unknown interlace method {header.interlace_method}")


def encode_ihdr(header):
    return struct.pack(IHDR_FORMAT, *header)


def merge_key(header):
    return MergeKey(
        header.width,
        header.bit_depth,
        header.color_type,
        header.compression_method,
        header.filter_method,
        header.interlace_method,
    )


def header_from_key(key, height):
    return ImageHeader(
        key.width,
        height,
        key.bit_depth,
        key.color_type,
        key.compression_method,
        key.filter_method,
        key.interlace_method,
    )


def check_compatible(key, header, index):
    """Check one input's header against the shared merge key"""
    if header.interlace_method != 0:
        raise Interlaced(index)
    if key is None:
        return merge_key(header)

    for field, expected in zip(MergeKey._fields, key):
        actual = getattr(header, field)
        if actual != expected:
            raise HeaderMismatch(index, field, expected, actual)
    return key


def check_mergeable(headers):
    if not headers:
        raise ValueError("at least one header is required")

    key = None
    for index, header in enumerate(headers):
        key = check_compatible(key, header, index)
    return key


def bytes_per_scanline(header):
    channels, _ = constants.COLOUR_TYPES[header.color_type]
    bits = header.width * channels * header.bit_depth
    return (bits + 7) // 8


def raw_size(header):
    # Each scanline is prefixed by its filter type byte
    return header.height * (1 + bytes_per_scanline(header))
