"""
sndtowav: convert classic Mac OS 'snd ' sound resources to WAV.
"""

__version__ = "1.0.0"

from .convert import convert_file, extract_sounds, snd_to_wav
from .decoders import DecodedAudio, resolve_decoder
from .errors import (
    EmptyResourceError,
    InvalidChannelCountError,
    NoBufferCommandError,
    SampleNotInlineError,
    SndError,
    SndIOError,
    UnrecognizedEncodingError,
    UnsupportedBitDepthError,
    UnsupportedCodecError,
)
from .rsrc import ResourceFork
from .snd import CompressedHeader, ExtendedHeader, StandardHeader, parse_snd
from .wav import WavHeader
