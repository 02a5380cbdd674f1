import io
import zlib

import numpy as np

import constants
from catpng import write_png
from ihdr import ImageHeader, encode_ihdr
from png_chunks import make_chunk, write_chunk, write_signature, read_signature, read_chunks


def header(width, height, bit_depth=8, color_type=0, interlace=0):
    return ImageHeader(width, height, bit_depth, color_type, 0, 0, interlace)


def scanlines(rows, filter_type=0):
    """Filtered scanline bytes for rows of unfiltered pixel bytes"""
    return b''.join(bytes([filter_type]) + bytes(row) for row in rows)


def ramp_rows(width_bytes, height, start=0):
    return [[(start + y * width_bytes + x) % 256 for x in range(width_bytes)] for y in range(height)]


def build_png(hdr, raw, level=6, before_idat=(), after_idat=(), idat_parts=1, palette=None):
    compressed = zlib.compress(raw, level)

    buf = io.BytesIO()
    write_signature(buf)
    write_chunk(buf, make_chunk(constants.IHDR, encode_ihdr(hdr)))
    if palette is not None:
        write_chunk(buf, make_chunk(constants.PLTE, palette))
    for chunk in before_idat:
        write_chunk(buf, chunk)

    if idat_parts:
        size = -(-len(compressed) // idat_parts)
        for i in range(0, len(compressed), size):
            write_chunk(buf, make_chunk(constants.IDAT, compressed[i:i + size]))

    for chunk in after_idat:
        write_chunk(buf, chunk)
    write_chunk(buf, make_chunk(constants.IEND))
    return buf.getvalue()


def grey_png(width, height, start=0, level=6):
    raw = scanlines(ramp_rows(width, height, start))
    return build_png(header(width, height), raw, level), raw


def parse_png(data):
    source = io.BytesIO(data)
    read_signature(source)
    return read_chunks(source)


def png_bytes(image):
    buf = io.BytesIO()
    write_png(buf, image)
    return buf.getvalue()


def output_raw(data):
    chunks = parse_png(data)
    return zlib.decompress(b''.join(c.payload for c in chunks if c.type == constants.IDAT))


def pixels(width, height, channels=None, seed=0):
    rng = np.random.default_rng(seed)
    shape = (height, width) if channels is None else (height, width, channels)
    return rng.integers(0, 256, size=shape, dtype=np.uint8)
