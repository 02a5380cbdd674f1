import os
import re
import sys
from collections import namedtuple

import constants
from catpng import concatenate_files
from errors import CatPngError

'''
Usage: catpng [-j N] [--verify] OUTPUT [LEVEL] INPUT...

1. Validate the arguments (nothing is read or written before this succeeds)
2. Read, check and inflate every input in order
3. Recompress the stacked scanlines and write OUTPUT in one step
'''

INTEGER = re.compile(r'^[+-]?\d+$')

Options = namedtuple('Options', ['output', 'level', 'inputs', 'workers', 'verify'])


class UsageError(Exception):
    pass


def parse_level(text):
    level = int(text.strip())
    if level < constants.MIN_LEVEL or level > constants.MAX_LEVEL:
        raise UsageError(f"compression level must be between {constants.MIN_LEVEL} and {constants.MAX_LEVEL}, got {level}")
    return level


def parse_workers(text):
    try:
        workers = int(text)
    except ValueError:
        raise UsageError(f"invalid number of workers {text!r}")
    if workers < 1:
        raise UsageError("number of workers must be at least 1")
    return workers


def parse_args(argv):
    workers = constants.DECODE_WORKERS
    verify = False
    positional = []

    i = 0
    while i < len(argv):
        arg = argv[i]
        if arg in ('-j', '--workers'):
            if i + 1 >= len(argv):
                raise UsageError(f"{arg} needs a value")
            workers = parse_workers(argv[i + 1])
            i += 2
            continue
        if arg.startswith('--workers='):
            workers = parse_workers(arg.split('=', 1)[1])
        elif arg == '--verify':
            verify = True
        elif arg == '--':
            positional.extend(argv[i + 1:])
            break
        elif arg.startswith('-') and len(arg) > 1 and not INTEGER.match(arg):
            raise UsageError(f"unknown option {arg}")
        else:
            positional.append(arg)
        i += 1

    if len(positional) < 2:
        raise UsageError("missing arguments")

    output, rest = positional[0], positional[1:]

    # LEVEL is optional: a non-integer second argument naming an existing
    # file is the first input
    if INTEGER.match(rest[0].strip()):
        level = parse_level(rest[0])
        inputs = rest[1:]
    elif os.path.isfile(rest[0]):
        level = constants.DEFAULT_LEVEL
        inputs = rest
    else:
        raise UsageError(f"invalid compression level {rest[0]!r}")

    if not inputs:
        raise UsageError("no input files given")

    return Options(output, level, inputs, workers, verify)


def main(argv=None):
    if argv is None:
        argv = sys.argv[1:]

    try:
        options = parse_args(argv)
    except UsageError as e:
        print(f"Error: {e}", file=sys.stderr)
        print(constants.USAGE, file=sys.stderr)
        return 2

    try:
        concatenate_files(
            options.output,
            options.level,
            options.inputs,
            workers=options.workers,
            verify=options.verify,
            verbose=True,
        )
    except CatPngError as e:
        print(f"Error: {e.describe()}", file=sys.stderr)
        return 1

    if options.verify:
        print("Output verified against the inputs")
    return 0


if __name__ == "__main__":
    sys.exit(main())
