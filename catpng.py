"""
Stack same-width PNG images vertically at the chunk level.

Inputs are read in order, their IHDR chunks are checked against the first
input's, and their scanlines are inflated and appended. The output is a new
PNG made of the signature, a corrected IHDR, the shared PLTE (indexed images
only), one or more IDAT chunks and IEND.
"""

import concurrent.futures
import os
from collections import namedtuple
from enum import Enum

import constants
from errors import (CatPngError, IoError, InvalidIhdr, MissingIhdr,
                    MissingPalette, UnsupportedChunk, HeaderMismatch)
from ihdr import parse_ihdr, check_compatible, header_from_key, encode_ihdr
from png_chunks import read_signature, read_chunks, write_signature, write_chunk, make_chunk
from scanlines import locate_single_idat, join_idat, inflate, concatenate, deflate, chunk_idat
import utils


class AssemblerState(Enum):
    AWAITING_FIRST_INPUT = "awaiting first input"
    ACCUMULATING_INPUTS = "accumulating inputs"
    FINALIZING = "finalizing"
    DONE = "done"
    FAILED = "failed"


PngStream = namedtuple('PngStream', ['header', 'palette', 'chunks'])
DecodedInput = namedtuple('DecodedInput', ['header', 'palette', 'raw'])
EncodedImage = namedtuple('EncodedImage', ['header', 'palette', 'idat_chunks'])


def parse_chunks(chunks):
    """Check the chunk layout of one image, returning its header and palette"""
    first = chunks[0]
    if first.type != constants.IHDR:
        raise MissingIhdr(first.type)
    header = parse_ihdr(first.payload)

    palette = None
    seen_idat = False
    for chunk in chunks[1:]:
        if chunk.type == constants.IHDR:
            raise UnsupportedChunk(chunk.type)
        if chunk.is_critical and chunk.type not in constants.KNOWN_CRITICAL_CHUNKS:
            raise UnsupportedChunk(chunk.type)
        if chunk.type == constants.IDAT:
            seen_idat = True
        elif chunk.type == constants.PLTE and palette is None and not seen_idat:
            palette = chunk.payload

    if header.color_type == constants.INDEXED and palette is None:
        raise MissingPalette()
    if header.color_type != constants.INDEXED:
        # Only a suggested palette, dropped like ancillary chunks
        palette = None

    return header, palette


def read_png(source):
    read_signature(source)
    chunks = read_chunks(source)
    header, palette = parse_chunks(chunks)
    return PngStream(header, palette, chunks)


def decode_image(png, join=None):
    if join is None:
        join = constants.JOIN_SPLIT_IDAT
    compressed = join_idat(png.chunks) if join else locate_single_idat(png.chunks)
    return inflate(compressed, png.header)


def decode_file(path, join=None):
    """Read and inflate one input file - run by the decode workers"""
    try:
        with open(path, 'rb') as f:
            png = read_png(f)
    except OSError as e:
        raise IoError(path, e.strerror or str(e)) from e
    return DecodedInput(png.header, png.palette, decode_image(png, join))


class ImageAssembler:
    def __init__(self, join_idat=None, verbose=False):
        self.join_idat = join_idat
        self.verbose = verbose
        self.state = AssemblerState.AWAITING_FIRST_INPUT
        self.key = None
        self.palette = None
        self.raws = []
        self.heights = []

    @property
    def count(self):
        return len(self.raws)

    def _expect(self, *states):
        if self.state not in states:
            raise RuntimeError(f"assembler is {self.state.value}")

    def _fail(self, error, index=None, path=None):
        self.state = AssemblerState.FAILED
        if index is not None:
            error.at(index, path)
        return error

    def _accept_header(self, header, palette, index):
        self.key = check_compatible(self.key, header, index)
        if header.color_type != constants.INDEXED:
            return
        if self.palette is None:
            self.palette = palette
        elif palette != self.palette:
            raise HeaderMismatch(index, "palette")

    def _accept_raw(self, raw, header, path):
        self.raws.append(raw)
        self.heights.append(header.height)
        self.state = AssemblerState.ACCUMULATING_INPUTS
        if self.verbose:
            print(f"Read {path or f'input #{self.count}'}: {header.width}x{header.height}")

    def add_input(self, source, path=None):
        """Read, check and inflate the next input from a binary stream"""
        self._expect(AssemblerState.AWAITING_FIRST_INPUT, AssemblerState.ACCUMULATING_INPUTS)
        index = self.count
        try:
            png = read_png(source)
            self._accept_header(png.header, png.palette, index)
            raw = decode_image(png, self.join_idat)
        except CatPngError as e:
            raise self._fail(e, index, path)
        self._accept_raw(raw, png.header, path)

    def add_file(self, path):
        index = self.count
        try:
            with open(path, 'rb') as f:
                self.add_input(f, path)
        except OSError as e:
            raise self._fail(IoError(path, e.strerror or str(e)), index) from e

    def add_decoded(self, decoded, index, path=None):
        """Accept an input that was already read and inflated elsewhere"""
        self._expect(AssemblerState.AWAITING_FIRST_INPUT, AssemblerState.ACCUMULATING_INPUTS)
        if index != self.count:
            raise ValueError(f"input #{index + 1} handed over out of order, expected #{self.count + 1}")
        try:
            self._accept_header(decoded.header, decoded.palette, index)
        except CatPngError as e:
            raise self._fail(e, index, path)
        self._accept_raw(decoded.raw, decoded.header, path)

    def fail(self, error, index=None, path=None):
        self._expect(AssemblerState.AWAITING_FIRST_INPUT, AssemblerState.ACCUMULATING_INPUTS)
        return self._fail(error, index, path)

    def finalize(self, level=constants.DEFAULT_LEVEL):
        """Build the output header and recompress the stacked scanlines"""
        if self.state == AssemblerState.AWAITING_FIRST_INPUT:
            self.state = AssemblerState.FAILED
            raise ValueError("no inputs were added")
        self._expect(AssemblerState.ACCUMULATING_INPUTS)
        self.state = AssemblerState.FINALIZING

        try:
            merged = concatenate(self.raws, self.key, self.palette)
            if merged.total_height > constants.MAX_DIMENSION:
                raise InvalidIhdr(f"total height {merged.total_height} exceeds 2^31-1")
            header = header_from_key(merged.merge_key, merged.total_height)

            if self.verbose:
                print(f"Compressing {merged.concatenated_raw.nbytes} bytes of scanlines at level {level}")
            compressed = deflate(merged.concatenated_raw, level)
        except (CatPngError, ValueError):
            self.state = AssemblerState.FAILED
            raise

        self.raws = []
        self.state = AssemblerState.DONE
        return EncodedImage(header, merged.palette, chunk_idat(compressed))


def write_png(sink, image):
    write_signature(sink)
    write_chunk(sink, make_chunk(constants.IHDR, encode_ihdr(image.header)))
    if image.palette is not None:
        write_chunk(sink, make_chunk(constants.PLTE, image.palette))
    for chunk in image.idat_chunks:
        write_chunk(sink, chunk)
    write_chunk(sink, make_chunk(constants.IEND))


def catpng(sources, level=constants.DEFAULT_LEVEL, paths=None, join_idat=None):
    """Stack already-open binary streams, returning the encoded image"""
    assembler = ImageAssembler(join_idat=join_idat)
    for i, source in enumerate(sources):
        assembler.add_input(source, paths[i] if paths else None)
    return assembler.finalize(level)


def decode_files_concurrent(assembler, input_paths, max_workers=None):
    """Decode inputs in parallel, handing them to the assembler in input order"""
    if max_workers is None:
        max_workers = min(os.cpu_count() or 1, len(input_paths))

    if assembler.verbose:
        print(f"Decoding {len(input_paths)} inputs using {max_workers} workers")

    results = [None] * len(input_paths)

    with concurrent.futures.ThreadPoolExecutor(max_workers=max_workers) as executor:
        future_to_index = {executor.submit(decode_file, path, assembler.join_idat): i
                           for i, path in enumerate(input_paths)}

        completed = 0
        for future in concurrent.futures.as_completed(future_to_index):
            index = future_to_index[future]
            try:
                results[index] = future.result()
            except CatPngError as exc:
                results[index] = exc

            completed += 1
            if assembler.verbose and (completed % 10 == 0 or completed == len(input_paths)):
                print(f"Decoded {completed}/{len(input_paths)} inputs")

    # Completion order is arbitrary, hand over strictly by index
    for index, (path, result) in enumerate(zip(input_paths, results)):
        if isinstance(result, CatPngError):
            raise assembler.fail(result, index, path)
        assembler.add_decoded(result, index, path)


def concatenate_files(output_path, level, input_paths, workers=1, join_idat=None, verify=False, verbose=False):
    """
    Stack the PNG files at input_paths into output_path.

    The output is only replaced once every input has been read and checked,
    and (with verify) once Pillow has decoded the result and matched it
    against the inputs.
    """
    if not input_paths:
        raise ValueError("at least one input file is required")

    assembler = ImageAssembler(join_idat=join_idat, verbose=verbose)
    if workers is None or workers > 1:
        decode_files_concurrent(assembler, input_paths, workers)
    else:
        for path in input_paths:
            assembler.add_file(path)

    image = assembler.finalize(level)

    with utils.atomic_output(output_path) as sink:
        write_png(sink, image)
        if verify:
            sink.flush()
            sink.seek(0)
            utils.verify_png(sink, input_paths)

    if verbose:
        print(f"Wrote {output_path}: {utils.format_header(image.header)}, "
              f"{len(image.idat_chunks)} IDAT chunk(s), {os.path.getsize(output_path)} bytes")
    return image
