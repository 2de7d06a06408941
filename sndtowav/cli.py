"""
Extract 'snd ' resources from a Mac resource fork and convert them to WAV files.
"""

import argparse
import logging
import os
import sys

from . import __version__
from .convert import convert_file, extract_sounds
from .errors import SndError
from .rsrc import SND_TYPE, ResourceFork

DEFAULT_OUTPUT_DIR = 'sounds'

log = logging.getLogger('sndtowav')


def _parse_args(argv=None):
    p = argparse.ArgumentParser(
        prog='sndtowav',
        description="Convert Mac 'snd ' sound resources to WAV files.",
        epilog="If no ID or name is given, every 'snd ' resource in the fork is extracted.",
    )
    p.add_argument('input', help="resource fork (.rsrc file, or a file with a resource fork)")

    which = p.add_mutually_exclusive_group()
    which.add_argument('--id', type=int, default=None, help="ID of the sound resource to extract")
    which.add_argument('--name', default=None, help="name of the sound resource to extract")

    p.add_argument('--raw', action='store_true',
                   help="input is a single bare 'snd ' resource rather than a resource fork")
    p.add_argument('-o', '--output', default=None,
                   help=f"output directory (default: {DEFAULT_OUTPUT_DIR}); with --raw, the WAV file path")

    verbosity = p.add_mutually_exclusive_group()
    verbosity.add_argument('-v', '--verbose', action='store_true', help="dump parsed headers")
    verbosity.add_argument('-q', '--quiet', action='store_true', help="only report errors")
    p.add_argument('--version', action='version', version=f"%(prog)s {__version__}")
    return p.parse_args(argv)


def _configure_logging(args):
    if args.verbose:
        level = logging.DEBUG
    elif args.quiet:
        level = logging.ERROR
    else:
        level = logging.INFO
    logging.basicConfig(level=level, format='%(message)s')
    log.setLevel(level)


def convert_raw(input_path, output_path):
    output_path = output_path or os.path.splitext(input_path)[0] + '.wav'
    log.info("Converting '%s' -> %s", input_path, output_path)
    try:
        size = convert_file(input_path, output_path, logger=log)
    except (SndError, OSError) as e:
        log.error("Error: failed to convert '%s': %s", input_path, e)
        return False
    log.info("  OK (%d bytes)", size)
    return True


def extract_from_fork(input_path, output_dir, res_id=None, name=None):
    log.info("Parsing resource fork...")
    try:
        fork = ResourceFork.open(input_path)
    except (SndError, OSError) as e:
        log.error("Error: cannot read resource fork '%s': %s", input_path, e)
        return False

    if res_id is not None:
        res = fork.by_id(SND_TYPE, res_id)
        sounds = [res] if res else []
        if not res:
            log.error("Error: no 'snd ' resource with ID %d", res_id)
    elif name is not None:
        res = fork.by_name(SND_TYPE, name)
        sounds = [res] if res else []
        if not res:
            log.error("Error: no 'snd ' resource named '%s'", name)
    else:
        sounds = fork.sounds()
        if not sounds:
            log.error("Error: no sound resources found")

    if not sounds:
        return False

    log.info("Converting %d sound resource(s)...", len(sounds))
    ok = extract_sounds(sounds, output_dir, logger=log)
    log.info("Done!")
    return ok


def main(argv=None):
    args = _parse_args(argv)
    _configure_logging(args)

    if args.raw:
        ok = convert_raw(args.input, args.output)
    else:
        ok = extract_from_fork(args.input, args.output or DEFAULT_OUTPUT_DIR, res_id=args.id, name=args.name)
    return 0 if ok else 1


if __name__ == '__main__':
    sys.exit(main())
