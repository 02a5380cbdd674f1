import os
import tempfile
from contextlib import contextmanager

import numpy as np
from PIL import Image, UnidentifiedImageError

import constants
from appender import stack_images
from errors import IoError, VerificationError


def format_header(header):
    colour = constants.COLOUR_TYPE_NAMES.get(header.color_type, str(header.color_type))
    return f"{header.width}x{header.height}, {header.bit_depth}-bit {colour}"


def current_umask():
    umask = os.umask(0)
    os.umask(umask)
    return umask


@contextmanager
def atomic_output(path):
    """
    Yield a binary file that replaces path only if the block succeeds.

    The data goes to a temporary file beside path, which is renamed over path
    on success and removed on failure.
    """
    directory = os.path.dirname(os.path.abspath(path))
    try:
        fd, tmp_path = tempfile.mkstemp(prefix=".catpng-", suffix=".tmp", dir=directory)
    except OSError as e:
        raise IoError(path, e.strerror or str(e)) from e

    try:
        with os.fdopen(fd, 'w+b') as f:
            yield f
        # mkstemp creates the file as 0600
        os.chmod(tmp_path, 0o666 & ~current_umask())
        os.replace(tmp_path, path)
    except OSError as e:
        remove_quietly(tmp_path)
        raise IoError(path, e.strerror or str(e)) from e
    except BaseException:
        remove_quietly(tmp_path)
        raise


def remove_quietly(path):
    if os.path.exists(path):
        os.remove(path)


# Decodes the written PNG with Pillow and compares its pixels to the inputs
# stacked by Pillow
def verify_png(output, input_paths):
    try:
        with Image.open(output) as img:
            img.load()
            size = img.size
            pixels = np.array(img)
        expected_img = stack_images(input_paths)
    except (OSError, UnidentifiedImageError, SyntaxError, ValueError) as e:
        raise VerificationError(f"Pillow could not decode the images: {e}") from e

    if size != expected_img.size:
        raise VerificationError(f"output is {size[0]}x{size[1]}, inputs stack to {expected_img.width}x{expected_img.height}")

    expected = np.array(expected_img)
    if pixels.shape != expected.shape:
        raise VerificationError(f"output pixel array has shape {pixels.shape}, expected {expected.shape}")

    differs = np.any((pixels != expected).reshape(pixels.shape[0], -1), axis=1)
    if differs.any():
        row = int(np.nonzero(differs)[0][0])
        raise VerificationError(f"pixel data differs from the inputs starting at row {row}")

    return True
