import struct
import zlib
from collections import namedtuple

import constants
from errors import (BadSignature, Truncated, CrcMismatch, ChunkTooLarge,
                    InvalidChunkType)


class Chunk(namedtuple('Chunk', ['type', 'payload', 'crc'])):
    """One PNG chunk. length is derived from the payload."""
    __slots__ = ()

    @property
    def length(self):
        return len(self.payload)

    @property
    def is_critical(self):
        # Bit 5 of the first byte clear (uppercase letter)
        return not self.type[0] & 0x20


def chunk_crc(chunk_type, payload):
    return zlib.crc32(payload, zlib.crc32(chunk_type)) & 0xFFFFFFFF


def make_chunk(chunk_type, payload=b''):
    payload = bytes(payload)
    return Chunk(chunk_type, payload, chunk_crc(chunk_type, payload))


def read_exact(source, size, what):
    data = source.read(size)
    if data is None or len(data) < size:
        raise Truncated(what, size, 0 if data is None else len(data))
    return data


def read_signature(source):
    data = source.read(len(constants.PNG_SIGNATURE))
    if data != constants.PNG_SIGNATURE:
        raise BadSignature()


def is_valid_chunk_type(chunk_type):
    return all(0x41 <= b <= 0x5A or 0x61 <= b <= 0x7A for b in chunk_type)


def read_chunk(source):
    header = source.read(8)
    if not header:
        raise Truncated("chunk header")
    if len(header) < 8:
        raise Truncated("chunk header", 8, len(header))

    length, chunk_type = struct.unpack('>I4s', header)
    if not is_valid_chunk_type(chunk_type):
        raise InvalidChunkType(chunk_type)
    if length > constants.MAX_CHUNK_LENGTH:
        raise ChunkTooLarge(length)

    name = chunk_type.decode('ascii')
    payload = read_exact(source, length, f"{name} payload")
    stored = struct.unpack('>I', read_exact(source, 4, f"{name} CRC"))[0]

    computed = chunk_crc(chunk_type, payload)
    if stored != computed:
        raise CrcMismatch(chunk_type, stored, computed)

    return Chunk(chunk_type, payload, stored)


def read_chunks(source):
    """Read chunks up to and including IEND"""
    chunks = []
    while True:
        chunk = read_chunk(source)
        chunks.append(chunk)
        if chunk.type == constants.IEND:
            return chunks


def write_signature(sink):
    sink.write(constants.PNG_SIGNATURE)


def write_chunk(sink, chunk):
    # The CRC carried by the chunk is never trusted
    chunk_type, payload = chunk.type, bytes(chunk.payload)
    if len(payload) > constants.MAX_CHUNK_LENGTH:
        raise ChunkTooLarge(len(payload))
    sink.write(struct.pack('>I4s', len(payload), chunk_type))
    sink.write(payload)
    sink.write(struct.pack('>I', chunk_crc(chunk_type, payload)))
