"""
Exceptions raised while reading, merging and writing PNG files.

Every error is fatal to a run. The assembler tags errors with the index
and path of the input being processed so the CLI can name the culprit.
"""


class CatPngError(Exception):
    kind = "error"

    index = None
    path = None

    def at(self, index, path=None):
        """Attach the input position to this error and return it"""
        self.index = index
        if path is not None:
            self.path = path
        return self

    def describe(self):
        where = []
        if self.index is not None:
            where.append(f"input #{self.index + 1}")
        if self.path is not None:
            where.append(f"({self.path})" if where else str(self.path))
        if not where:
            return f"{self.kind}: {self}"
        return f"{' '.join(where)}: {self.kind}: {self}"


# Malformed or unsupported input

class FormatError(CatPngError, ValueError):
    kind = "format error"


class BadSignature(FormatError):
    def __str__(self):
        return "invalid PNG file signature"


class Truncated(FormatError):
    def __init__(self, what="data", expected=None, actual=None):
        super().__init__(what, expected, actual)
        self.what = what
        self.expected = expected
        self.actual = actual

    def __str__(self):
        if self.expected is None:
            return f"unexpected end of file while reading {self.what}"
        return f"unexpected end of file while reading {self.what} (wanted {self.expected} bytes, got {self.actual})"


class CrcMismatch(FormatError):
    def __init__(self, chunk_type, stored, computed):
        super().__init__(chunk_type, stored, computed)
        self.chunk_type = chunk_type
        self.stored = stored
        self.computed = computed

    def __str__(self):
        return f"CRC mismatch in {self.chunk_type!r} chunk (stored {self.stored:08x}, computed {self.computed:08x})"


class ChunkTooLarge(FormatError):
    def __init__(self, length):
        super().__init__(length)
        self.length = length

    def __str__(self):
        return f"chunk length {self.length} exceeds 2^31-1"


class InvalidChunkType(FormatError):
    def __init__(self, chunk_type):
        super().__init__(chunk_type)
        self.chunk_type = chunk_type

    def __str__(self):
        return f"invalid chunk type code {self.chunk_type!r}"


class UnsupportedChunk(FormatError):
    def __init__(self, chunk_type):
        super().__init__(chunk_type)
        self.chunk_type = chunk_type

    def __str__(self):
        return f"unsupported critical chunk {self.chunk_type!r}"


class MissingIhdr(FormatError):
    def __init__(self, chunk_type):
        super().__init__(chunk_type)
        self.chunk_type = chunk_type

    def __str__(self):
        return f"first chunk is {self.chunk_type!r}, not IHDR"


class MissingPalette(FormatError):
    def __str__(self):
        return "indexed-colour image has no PLTE chunk before its image data"


class InvalidIhdr(FormatError):
    def __init__(self, reason):
        super().__init__(reason)
        self.reason = reason

    def __str__(self):
        return f"invalid IHDR: {self.reason}"


class IdatCount(FormatError):
    def __init__(self, found):
        super().__init__(found)
        self.found = found

    def __str__(self):
        return f"expected exactly one IDAT chunk, found {self.found}"


class DecompressError(FormatError):
    def __init__(self, reason):
        super().__init__(reason)
        self.reason = reason

    def __str__(self):
        return f"cannot decompress image data: {self.reason}"


class SizeMismatch(FormatError):
    def __init__(self, expected, actual):
        super().__init__(expected, actual)
        self.expected = expected
        self.actual = actual

    def __str__(self):
        return f"decompressed image data is {self.actual} bytes, header implies {self.expected}"


class BadFilterType(FormatError):
    def __init__(self, row, value):
        super().__init__(row, value)
        self.row = row
        self.value = value

    def __str__(self):
        return f"scanline {self.row} has invalid filter type {self.value}"


# Well-formed inputs that cannot be stacked

class IncompatibilityError(CatPngError, ValueError):
    kind = "incompatible input"


class HeaderMismatch(IncompatibilityError):
    def __init__(self, index, field, expected=None, actual=None):
        super().__init__(index, field, expected, actual)
        self.index = index
        self.field = field
        self.expected = expected
        self.actual = actual

    def __str__(self):
        if self.expected is None and self.actual is None:
            return f"{self.field} differs from the first input"
        return f"{self.field} is {self.actual}, first input has {self.expected}"


class Interlaced(IncompatibilityError):
    def __init__(self, index):
        super().__init__(index)
        self.index = index

    def __str__(self):
        return "interlaced images cannot be concatenated"


# Filesystem

class IoError(CatPngError):
    kind = "I/O error"

    def __init__(self, path, reason):
        super().__init__(path, reason)
        self.path = path
        self.reason = reason

    def __str__(self):
        return str(self.reason)


class VerificationError(CatPngError):
    kind = "verification failed"

    def __init__(self, reason):
        super().__init__(reason)
        self.reason = reason

    def __str__(self):
        return self.reason
