import zlib
from collections import namedtuple

import numpy as np

import constants
from errors import IdatCount, DecompressError, SizeMismatch, BadFilterType
from ihdr import bytes_per_scanline, raw_size
from png_chunks import make_chunk

MergedImage = namedtuple('MergedImage', ['merge_key', 'total_height', 'concatenated_raw', 'palette'])


def idat_payloads(chunks):
    return [chunk.payload for chunk in chunks if chunk.type == constants.IDAT]


def locate_single_idat(chunks):
    payloads = idat_payloads(chunks)
    if len(payloads) != 1:
        raise IdatCount(len(payloads))
    return payloads[0]


def join_idat(chunks):
    """Join an image's IDAT payloads back into one zlib stream"""
    payloads = idat_payloads(chunks)
    if not payloads:
        raise IdatCount(0)
    return b''.join(payloads)


def inflate(compressed, header):
    """
    Decompress one image's IDAT stream into its filtered scanlines.

    Returns a uint8 array of shape (height, 1 + bytes_per_scanline); column 0
    holds each scanline's filter type byte.
    """
    expected = raw_size(header)

    # Never inflate more than one byte past what the header allows
    decompressor = zlib.decompressobj()
    try:
        data = decompressor.decompress(compressed, expected + 1)
        if len(data) > expected or decompressor.unconsumed_tail:
            raise SizeMismatch(expected, len(data))
        data += decompressor.flush()
    except zlib.error as e:
        raise DecompressError(str(e)) from e

    if not decompressor.eof:
        raise DecompressError("zlib stream is incomplete")
    if decompressor.unused_data:
        raise DecompressError("trailing data after zlib stream")

    if len(data) != expected:
        raise SizeMismatch(expected, len(data))

    raw = np.frombuffer(data, dtype=np.uint8).reshape(header.height, 1 + bytes_per_scanline(header))

    bad_rows = np.nonzero(raw[:, 0] > constants.MAX_FILTER_TYPE)[0]
    if bad_rows.size:
        row = int(bad_rows[0])
        raise BadFilterType(row, int(raw[row, 0]))

    return raw


def concatenate(raws, merge_key=None, palette=None):
    if not raws:
        raise ValueError("nothing to concatenate")

    # Scanlines stay intact, each input's rows follow the previous input's
    concatenated = np.concatenate(raws, axis=0)
    total_height = sum(raw.shape[0] for raw in raws)
    return MergedImage(merge_key, total_height, concatenated, palette)


def split_rows(raw, heights):
    """Split concatenated scanlines back into per-image blocks"""
    if sum(heights) != raw.shape[0]:
        raise ValueError(f"heights sum to {sum(heights)}, data has {raw.shape[0]} rows")

    bounds = np.cumsum(heights)[:-1]
    return np.split(raw, bounds, axis=0)


def zlib_level(level):
    if not isinstance(level, int) or isinstance(level, bool):
        raise ValueError(f"compression level must be an integer, got {level!r}")
    if level < constants.MIN_LEVEL or level > constants.MAX_LEVEL:
        raise ValueError(f"compression level must be between {constants.MIN_LEVEL} and {constants.MAX_LEVEL}, got {level}")
    return min(level, constants.ZLIB_MAX_LEVEL)


def deflate(raw, level=constants.DEFAULT_LEVEL):
    if isinstance(raw, np.ndarray):
        raw = np.ascontiguousarray(raw, dtype=np.uint8).tobytes()
    return zlib.compress(bytes(raw), zlib_level(level))


def chunk_idat(compressed, max_payload=None):
    if max_payload is None:
        max_payload = constants.MAX_IDAT_PAYLOAD
    if max_payload <= 0 or max_payload > constants.MAX_CHUNK_LENGTH:
        raise ValueError(f"invalid IDAT payload limit {max_payload}")

    if len(compressed) <= max_payload:
        return [make_chunk(constants.IDAT, compressed)]

    return [make_chunk(constants.IDAT, compressed[i:i + max_payload])
            for i in range(0, len(compressed), max_payload)]
