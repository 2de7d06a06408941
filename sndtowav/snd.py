"""
Parse Mac 'snd ' resources.

Mac 'snd ' format documentation: https://developer.apple.com/library/archive/documentation/mac/Sound/Sound-60.html

Only the first bufferCmd is honored. The sound header it points to is one of
three layouts sharing a 22-byte prefix; the encode byte of that prefix selects
which one follows:

    0x00  standard header    (8-bit mono, lengthOrChannels = sample count)
    0xFF  extended header    (lengthOrChannels = channel count)
    0xFE  compressed header  (lengthOrChannels = channel count)

The sample data always follows the header inline.
"""

import io
import logging
from dataclasses import dataclass, field

from .decoders import IdentityDecoder, resolve_decoder
from .endian import to_native, to_native_partial
from .errors import (
    EmptyResourceError,
    InvalidChannelCountError,
    NoBufferCommandError,
    SampleNotInlineError,
    SndIOError,
    UnrecognizedEncodingError,
)

log = logging.getLogger(__name__)

BUFFER_CMD = 0x8051  # bufferCmd with the data offset bit set

STANDARD_ENCODING = 0x00
EXTENDED_ENCODING = 0xFF
COMPRESSED_ENCODING = 0xFE

MAX_CHANNELS = 0xFFFF  # WAV numChannels is 16 bits


def _hz(sample_rate):
    return sample_rate / 65536.0


@dataclass
class SoundHeader:
    """Fields shared by all three sound header layouts."""
    title = "Base sound sample header"

    sample_pointer: int = 0
    length_or_channels: int = 0
    sample_rate: int = 0  # unsigned 16.16 fixed point
    loop_start: int = 0
    loop_end: int = 0
    encoding: int = 0
    base_frequency: int = 0
    sample_area: bytes = field(default=b'', repr=False)

    @property
    def sample_rate_hz(self):
        """Integer part of the fixed-point rate; the fraction is dropped."""
        return self.sample_rate >> 16

    def describe(self):
        return '\n'.join([
            f"{self.title}:",
            f" -- Sample pointer: 0x{self.sample_pointer:08x}",
            f" -- Length or num. channels: {self.length_or_channels}",
            f" -- Total sample area size: {len(self.sample_area)}",
            f" -- Sample rate: 0x{self.sample_rate:08x} ({_hz(self.sample_rate):g} Hz)",
            f" -- Loop start: 0x{self.loop_start & 0xFFFFFFFF:08x}",
            f" -- Loop end: 0x{self.loop_end & 0xFFFFFFFF:08x}",
            f" -- Encoding: 0x{self.encoding:02x}",
            f" -- Base frequency: 0x{self.base_frequency:02x}",
        ] + self._describe_extra())

    def _describe_extra(self):
        return []


@dataclass
class StandardHeader(SoundHeader):
    title = "Standard sound header (0x00)"

    @property
    def num_samples(self):
        return self.length_or_channels

    @property
    def num_channels(self):
        return 1


@dataclass
class ExtendedHeader(SoundHeader):
    title = "Extended sound header (0xff)"

    frame_count: int = 0
    # 80-bit extended rate as (exponent, high mantissa, low mantissa); kept as read.
    aiff_sample_rate: tuple = (0, 0, 0)
    marker_chunk: int = 0
    instrument_chunks: int = 0
    aes_recording: int = 0
    sample_size: int = 0
    future_use1: int = 0
    future_use2: int = 0
    future_use3: int = 0
    future_use4: int = 0

    @property
    def num_channels(self):
        return self.length_or_channels

    def _describe_extra(self):
        return [
            f" -- Number of frames: {self.frame_count}",
            " -- AIFFSampleRate: 0x{:04x}{:08x}{:08x}".format(*self.aiff_sample_rate),
            f" -- Marker chunk pointer: 0x{self.marker_chunk:08x}",
            f" -- Instrument chunks pointer: 0x{self.instrument_chunks:08x}",
            f" -- AES Recording pointer: 0x{self.aes_recording:08x}",
            f" -- Sample size: {self.sample_size}",
            f" -- Future use (1): 0x{self.future_use1 & 0xFFFF:04x}",
            f" -- Future use (2): 0x{self.future_use2:08x}",
            f" -- Future use (3): 0x{self.future_use3:08x}",
            f" -- Future use (4): 0x{self.future_use4:08x}",
        ]


@dataclass
class CompressedHeader(SoundHeader):
    title = "Compressed sound header (0xfe)"

    frame_count: int = 0
    aiff_sample_rate: tuple = (0, 0, 0)
    marker_chunk: int = 0
    format_tag: bytes = b'\x00\x00\x00\x00'
    future_use2: int = 0
    state_vars: int = 0
    leftover_samples: int = 0
    compression_id: int = 0
    packet_size: int = 0
    synth_id: int = 0
    sample_size: int = 0

    @property
    def num_channels(self):
        return self.length_or_channels

    def _describe_extra(self):
        return [
            f" -- Number of frames: {self.frame_count}",
            " -- AIFFSampleRate: 0x{:04x}{:08x}{:08x}".format(*self.aiff_sample_rate),
            f" -- Marker chunk pointer: 0x{self.marker_chunk:08x}",
            f" -- Format: {self.format_tag.decode('mac_roman', errors='replace')}",
            f" -- Future use (2): 0x{self.future_use2 & 0xFFFFFFFF:08x}",
            f" -- State vars pointer: 0x{self.state_vars:08x}",
            f" -- Leftover samples pointer: 0x{self.leftover_samples:08x}",
            f" -- Compression ID: {self.compression_id}",
            f" -- Packet size: {self.packet_size}",
            f" -- Synth ID: 0x{self.synth_id & 0xFFFF:04x}",
            f" -- Sample size: {self.sample_size}",
        ]


@dataclass
class SoundResource:
    """A parsed 'snd ' resource: its command table, sound header and decoder."""
    format: int
    num_data_formats: int
    first_data_format_id: int
    init_option: int
    commands: list
    header: SoundHeader
    decoder: object

    @property
    def num_channels(self):
        return self.header.num_channels

    def describe(self):
        lines = [
            "Snd resource header:",
            f" -- File format: {self.format}",
            f" -- Number of data formats: {self.num_data_formats}",
            f" -- First data format ID: {self.first_data_format_id}",
            f" -- Init option for channel: 0x{self.init_option:08x}",
            f" -- Number of sound commands: {len(self.commands)}",
        ]
        if self.commands:
            lines.append(f" -- First sound command: 0x{self.commands[0]:016x}")
        return '\n'.join(lines)


class _Reader:
    """Big-endian reads from a seekable binary stream."""

    def __init__(self, stream):
        self.stream = stream

    def seek(self, offset):
        self.stream.seek(offset)

    def tell(self):
        return self.stream.tell()

    def remaining(self):
        pos = self.stream.tell()
        end = self.stream.seek(0, io.SEEK_END)
        self.stream.seek(pos)
        return end - pos

    def read(self, length):
        if length < 0:
            raise SndIOError(f"negative read length {length} at offset {self.tell()}")
        pos = self.tell()
        data = self.stream.read(length)
        if len(data) != length:
            raise SndIOError(f"expected {length} bytes at offset {pos}, got {len(data)}")
        return data

    def value(self, width, signed=False):
        return to_native(self.read(width), width, signed=signed)

    def u8(self):
        return self.value(1)

    def u16(self):
        return self.value(2)

    def i16(self):
        return self.value(2, signed=True)

    def u32(self):
        return self.value(4)

    def i32(self):
        return self.value(4, signed=True)

    def u64(self):
        return self.value(8)

    def extended80(self):
        # 2-byte exponent widened into a 32-bit cell, then two 32-bit mantissa halves.
        return (to_native_partial(self.read(2), 4), self.u32(), self.u32())


def find_command(commands, opcode):
    """First command whose top 16 bits equal `opcode`, or None."""
    for command in commands:
        if command >> 48 == opcode:
            return command
    return None


def parse_snd(source, logger=None):
    """Parse a complete 'snd ' resource from bytes or a seekable binary stream."""
    logger = logger or log
    if isinstance(source, (bytes, bytearray, memoryview)):
        source = io.BytesIO(bytes(source))
    reader = _Reader(source)
    reader.seek(0)

    fmt = reader.u16()
    num_data_formats = reader.u16()
    if num_data_formats == 0:
        raise EmptyResourceError("'snd ' resource contains 0 data formats")

    first_data_format_id = reader.u16()
    init_option = reader.u32()
    num_commands = reader.u16()
    commands = [reader.u64() for _ in range(num_commands)]

    if num_commands > 1:
        logger.warning(
            "%d sound commands found in 'snd ' resource; only the first bufferCmd is used "
            "(the resource may hold more than one sound)", num_commands)

    command = find_command(commands, BUFFER_CMD)
    if command is None:
        raise NoBufferCommandError("bufferCmd not found in 'snd ' resource")

    header, decoder = read_sound_header(reader, command & 0xFFFF, logger)

    resource = SoundResource(
        format=fmt,
        num_data_formats=num_data_formats,
        first_data_format_id=first_data_format_id,
        init_option=init_option,
        commands=commands,
        header=header,
        decoder=decoder,
    )
    if logger.isEnabledFor(logging.DEBUG):
        logger.debug(resource.describe())
        logger.debug(header.describe())
    return resource


def _check_frames(header):
    """Channel and frame counts of an extended or compressed header."""
    if not 1 <= header.num_channels <= MAX_CHANNELS:
        raise InvalidChannelCountError(header.num_channels, f"expected 1 to {MAX_CHANNELS}")
    if header.frame_count < 0:
        raise SndIOError(f"negative frame count {header.frame_count}")


def read_sound_header(reader, offset, logger=None):
    """Read the sound header at `offset` and its sample data.

    Returns (header, decoder); the decoder is chosen from the header fields.
    """
    logger = logger or log
    reader.seek(offset)

    common = dict(
        sample_pointer=reader.u32(),
        length_or_channels=reader.i32(),
        sample_rate=reader.u32(),
        loop_start=reader.i32(),
        loop_end=reader.i32(),
        encoding=reader.u8(),
        base_frequency=reader.u8(),
    )
    if common['sample_pointer'] != 0:
        raise SampleNotInlineError(
            f"sample pointer is 0x{common['sample_pointer']:08x}; only inline sample data is supported")

    encoding = common['encoding']
    if encoding == STANDARD_ENCODING:
        header = StandardHeader(**common)
        decoder = IdentityDecoder(8, logger=logger)
        length = header.num_samples
    elif encoding == EXTENDED_ENCODING:
        header = ExtendedHeader(
            **common,
            frame_count=reader.i32(),
            aiff_sample_rate=reader.extended80(),
            marker_chunk=reader.u32(),
            instrument_chunks=reader.u32(),
            aes_recording=reader.u32(),
            sample_size=reader.i16(),
            future_use1=reader.i16(),
            future_use2=reader.u32(),
            future_use3=reader.u32(),
            future_use4=reader.u32(),
        )
        _check_frames(header)
        decoder = IdentityDecoder(header.sample_size, logger=logger)
        length = decoder.encoded_size(header.frame_count * header.num_channels)
    elif encoding == COMPRESSED_ENCODING:
        header = CompressedHeader(
            **common,
            frame_count=reader.i32(),
            aiff_sample_rate=reader.extended80(),
            marker_chunk=reader.u32(),
            format_tag=reader.read(4),
            future_use2=reader.i32(),
            state_vars=reader.u32(),
            leftover_samples=reader.u32(),
            compression_id=reader.i16(),
            packet_size=reader.i16(),
            synth_id=reader.i16(),
            sample_size=reader.i16(),
        )
        _check_frames(header)
        decoder = resolve_decoder(header.format_tag, header.compression_id, header.sample_size, logger=logger)
        # frame_count counts packet frames, one packet per channel each.
        length = decoder.encoded_size(header.frame_count * header.num_channels)
    else:
        raise UnrecognizedEncodingError(encoding)

    # Codecs interpret the byte order of the sample area themselves.
    header.sample_area = reader.read(length)

    trailing = reader.remaining()
    if trailing:
        logger.warning("%d trailing bytes after the sample data", trailing)
    return header, decoder
