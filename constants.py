# PNG framing
PNG_SIGNATURE = b'\x89PNG\r\n\x1a\n'

IHDR = b'IHDR'
PLTE = b'PLTE'
IDAT = b'IDAT'
IEND = b'IEND'
KNOWN_CRITICAL_CHUNKS = (IHDR, PLTE, IDAT, IEND)

IHDR_LENGTH = 13
MAX_CHUNK_LENGTH = 2**31 - 1
MAX_DIMENSION = 2**31 - 1

# Output IDAT chunks are split at this size (32 MiB)
MAX_IDAT_PAYLOAD = 32 * 1024 * 1024

# Colour type -> (channels, legal bit depths)
GREYSCALE = 0
TRUECOLOUR = 2
INDEXED = 3
GREYSCALE_ALPHA = 4
TRUECOLOUR_ALPHA = 6

COLOUR_TYPES = {
    GREYSCALE: (1, (1, 2, 4, 8, 16)),
    TRUECOLOUR: (3, (8, 16)),
    INDEXED: (1, (1, 2, 4, 8)),
    GREYSCALE_ALPHA: (2, (8, 16)),
    TRUECOLOUR_ALPHA: (4, (8, 16)),
}

COLOUR_TYPE_NAMES = {
    GREYSCALE: "greyscale",
    TRUECOLOUR: "truecolour",
    INDEXED: "indexed",
    GREYSCALE_ALPHA: "greyscale+alpha",
    TRUECOLOUR_ALPHA: "truecolour+alpha",
}

# Scanline filter types are 0 (None) to 4 (Paeth)
MAX_FILTER_TYPE = 4

# Compression level (CLI scale, mapped onto zlib's 0-9)
MIN_LEVEL = 0
MAX_LEVEL = 10
DEFAULT_LEVEL = 10
ZLIB_MAX_LEVEL = 9

# Decoding
DECODE_WORKERS = 1
JOIN_SPLIT_IDAT = False

USAGE = """Usage: catpng [-j N] [--verify] OUTPUT [LEVEL] INPUT...
    OUTPUT: The output file path
    LEVEL: The output file compression level (0-10, default: 10)
    INPUT: The input file(s), stacked top to bottom in the given order
    -j, --workers N: Decode inputs with N threads (default: 1)
    --verify: Decode the output with Pillow and compare it to the inputs"""
