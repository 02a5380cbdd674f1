import zlib

import numpy as np
import pytest

import constants
from errors import IdatCount, DecompressError, SizeMismatch, BadFilterType
from png_chunks import make_chunk
from scanlines import (locate_single_idat, join_idat, inflate, concatenate, split_rows,
                       deflate, chunk_idat)
from helpers import header, scanlines, ramp_rows


def chunks_with(idat_payloads):
    return ([make_chunk(b'IHDR', b'\x00' * 13)]
            + [make_chunk(b'IDAT', p) for p in idat_payloads]
            + [make_chunk(b'IEND')])


def test_locate_single_idat():
    assert locate_single_idat(chunks_with([b'data'])) == b'data'


@pytest.mark.parametrize('count', [0, 2, 3])
def test_locate_single_idat_count(count):
    with pytest.raises(IdatCount) as excinfo:
        locate_single_idat(chunks_with([b'x'] * count))
    assert excinfo.value.found == count


def test_join_idat():
    assert join_idat(chunks_with([b'ab', b'cd', b'e'])) == b'abcde'
    with pytest.raises(IdatCount):
        join_idat(chunks_with([]))


def test_inflate():
    hdr = header(4, 2)
    raw = scanlines(ramp_rows(4, 2))
    result = inflate(zlib.compress(raw), hdr)
    assert result.shape == (2, 5)
    assert result.dtype == np.uint8
    assert result.tobytes() == raw


def test_inflate_garbage():
    with pytest.raises(DecompressError):
        inflate(b'not a zlib stream', header(4, 2))


def test_inflate_incomplete_stream():
    compressed = zlib.compress(scanlines(ramp_rows(4, 2)))
    with pytest.raises(DecompressError):
        inflate(compressed[:-6], header(4, 2))


def test_inflate_bad_adler32():
    compressed = bytearray(zlib.compress(scanlines(ramp_rows(4, 2))))
    compressed[-1] ^= 0xFF
    with pytest.raises(DecompressError):
        inflate(bytes(compressed), header(4, 2))


def test_inflate_size_mismatch():
    raw = scanlines(ramp_rows(4, 3))
    with pytest.raises(SizeMismatch) as excinfo:
        inflate(zlib.compress(raw), header(4, 2))
    assert excinfo.value.expected == 10
    assert excinfo.value.actual > 10


def test_inflate_stops_past_expected_size():
    compressed = zlib.compress(b'\x00' * (1 << 20))
    with pytest.raises(SizeMismatch) as excinfo:
        inflate(compressed, header(4, 2))
    assert excinfo.value.expected == 10
    assert excinfo.value.actual == 11


def test_inflate_trailing_data():
    compressed = zlib.compress(scanlines(ramp_rows(4, 2)))
    with pytest.raises(DecompressError):
        inflate(compressed + b'junk', header(4, 2))


def test_inflate_bad_filter_type():
    rows = ramp_rows(4, 3)
    raw = scanlines(rows[:2]) + scanlines(rows[2:], filter_type=7)
    with pytest.raises(BadFilterType) as excinfo:
        inflate(zlib.compress(raw), header(4, 3))
    assert excinfo.value.row == 2
    assert excinfo.value.value == 7


def test_concatenate_keeps_input_order():
    first = inflate(zlib.compress(scanlines(ramp_rows(4, 2))), header(4, 2))
    second = inflate(zlib.compress(scanlines(ramp_rows(4, 3, start=100))), header(4, 3))

    merged = concatenate([first, second])
    assert merged.total_height == 5
    assert merged.concatenated_raw.tobytes() == first.tobytes() + second.tobytes()

    top, bottom = split_rows(merged.concatenated_raw, [2, 3])
    assert np.array_equal(top, first)
    assert np.array_equal(bottom, second)


def test_concatenate_empty():
    with pytest.raises(ValueError):
        concatenate([])


@pytest.mark.parametrize('level', [0, 1, 6, 9, 10])
def test_deflate_round_trip(level):
    raw = scanlines(ramp_rows(16, 8))
    assert zlib.decompress(deflate(raw, level)) == raw


def test_deflate_array():
    raw = np.arange(30, dtype=np.uint8).reshape(3, 10)
    assert zlib.decompress(deflate(raw)) == raw.tobytes()


@pytest.mark.parametrize('level', [-1, 11, 2.5, True])
def test_deflate_rejects_level(level):
    with pytest.raises(ValueError):
        deflate(b'\x00', level)


def test_chunk_idat_single():
    chunks = chunk_idat(b'x' * 100)
    assert len(chunks) == 1
    assert chunks[0].type == constants.IDAT


def test_chunk_idat_split():
    data = bytes(range(25))
    chunks = chunk_idat(data, max_payload=10)
    assert [c.length for c in chunks] == [10, 10, 5]
    assert b''.join(c.payload for c in chunks) == data
