"""
Canonical 44-byte PCM WAV output.

The header is derived from the sound header (channels, sample rate) and from
the decoder output (bit depth, data size), never from the encoding kind.
"""

import logging
import struct
from dataclasses import dataclass

log = logging.getLogger(__name__)

WAV_HEADER = struct.Struct('<4sI4s4sIHHIIHH4sI')
WAV_HEADER_SIZE = WAV_HEADER.size  # 44
WAVE_FORMAT_PCM = 1


@dataclass(frozen=True)
class WavHeader:
    num_channels: int
    sample_rate: int
    bits_per_sample: int
    data_size: int

    @property
    def block_align(self):
        return self.num_channels * self.bits_per_sample // 8

    @property
    def byte_rate(self):
        return self.sample_rate * self.num_channels * self.bits_per_sample // 8

    @property
    def chunk_size(self):
        return 36 + self.data_size

    def pack(self):
        return WAV_HEADER.pack(
            b'RIFF', self.chunk_size, b'WAVE',
            b'fmt ', 16, WAVE_FORMAT_PCM,
            self.num_channels, self.sample_rate, self.byte_rate,
            self.block_align, self.bits_per_sample,
            b'data', self.data_size,
        )

    def describe(self):
        return '\n'.join([
            "Generated WAV file header:",
            " -- Chunk ID: RIFF",
            f" -- Chunk size: {self.chunk_size}",
            " -- Format: WAVE",
            " -- Subchunk 1 ID: fmt ",
            " -- Subchunk 1 size: 16",
            f" -- Audio format: 0x{WAVE_FORMAT_PCM:04x}",
            f" -- Number of channels: {self.num_channels}",
            f" -- Sample rate: {self.sample_rate}",
            f" -- Byte rate: {self.byte_rate}",
            f" -- Block align: {self.block_align}",
            f" -- Bits per sample: {self.bits_per_sample}",
            " -- Subchunk 2 ID: data",
            f" -- Subchunk 2 size: {self.data_size}",
        ])


def make_wav_header(sound_header, decoded):
    """Build the WAV header for decoded audio of a parsed sound header."""
    return WavHeader(
        num_channels=sound_header.num_channels,
        sample_rate=sound_header.sample_rate_hz,
        bits_per_sample=decoded.bits_per_sample,
        data_size=len(decoded.data),
    )


def wav_bytes(wav_header, pcm):
    return wav_header.pack() + bytes(pcm)


def write_wav(sink, wav_header, pcm, logger=None):
    """Write header and PCM to a binary sink; returns the number of bytes written."""
    logger = logger or log
    if logger.isEnabledFor(logging.DEBUG):
        logger.debug(wav_header.describe())
    data = wav_bytes(wav_header, pcm)
    sink.write(data)
    return len(data)
