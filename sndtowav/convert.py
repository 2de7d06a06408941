"""
'snd ' to WAV conversion: parse, decode once, write header + PCM.
"""

import io
import logging
import os

from .errors import SndError
from .snd import parse_snd
from .wav import make_wav_header, wav_bytes, write_wav

log = logging.getLogger(__name__)


def decode_resource(resource):
    """Run the resource's decoder over its sample area and build the WAV header."""
    header = resource.header
    decoded = resource.decoder.decode(header.sample_area, header.num_channels)
    return make_wav_header(header, decoded), decoded


def snd_to_wav(source, logger=None):
    """Convert one 'snd ' resource (bytes or seekable stream) to WAV bytes."""
    logger = logger or log
    resource = parse_snd(source, logger=logger)
    wav_header, decoded = decode_resource(resource)
    if logger.isEnabledFor(logging.DEBUG):
        logger.debug(wav_header.describe())
    return wav_bytes(wav_header, decoded.data)


def convert_file(snd_path, wav_path, logger=None):
    """Convert a standalone 'snd ' file. Nothing is written if conversion fails."""
    logger = logger or log
    with open(snd_path, 'rb') as f:
        resource = parse_snd(f, logger=logger)
    wav_header, decoded = decode_resource(resource)
    buf = io.BytesIO()
    size = write_wav(buf, wav_header, decoded.data, logger=logger)
    with open(wav_path, 'wb') as f:
        f.write(buf.getvalue())
    return size


def _safe_filename(name):
    """Sanitize a resource name for use in a filename."""
    return "".join(c if c.isalnum() or c in "._-" else "_" for c in name).strip("_")


def output_filename(resource, used=None):
    """WAV file name for a resource: its name, or snd_<id> when unnamed."""
    base = _safe_filename(resource.name) or f"snd_{resource.id}"
    if used is not None:
        if base in used:
            base = f"{base}_{resource.id}"
        used.add(base)
    return base + '.wav'


def extract_sounds(resources, output_dir, logger=None):
    """Convert each 'snd ' resource to a WAV file in output_dir.

    Resources are processed one after another; a failure is reported and the
    next resource is still converted. Returns True only if all succeeded.
    """
    logger = logger or log
    os.makedirs(output_dir, exist_ok=True)

    used = set()
    all_ok = True
    for res in resources:
        filename = output_filename(res, used)
        output_path = os.path.join(output_dir, filename)
        label = res.name or f"#{res.id}"

        logger.info("  Converting '%s' -> %s", label, filename)
        try:
            data = snd_to_wav(res.data, logger=logger)
            with open(output_path, 'wb') as f:
                f.write(data)
        except (SndError, OSError) as e:
            logger.error("Error: snd %d ('%s'): %s", res.id, res.name, e)
            logger.info("    FAILED")
            all_ok = False
            continue
        logger.info("    OK (%d bytes)", len(data))

    return all_ok
