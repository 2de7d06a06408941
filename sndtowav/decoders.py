"""
Sample decoders for 'snd ' payloads.

Every decoder turns the raw sample area into little-endian PCM. A decoder is
built once per resource (see resolve_decoder) and decode() is called once.
"""

import logging
from dataclasses import dataclass

import numpy as np

from .endian import to_native
from .errors import (
    InvalidChannelCountError,
    UnsupportedBitDepthError,
    UnsupportedCodecError,
)

log = logging.getLogger(__name__)

IMA4_PACKET_SIZE = 34  # 2-byte header + 32 bytes of nibbles
IMA4_SAMPLES_PER_PACKET = 64

# https://web.archive.org/web/20111117212301/http://wiki.multimedia.cx/index.php?title=IMA_ADPCM
IMA4_INDEX_TABLE = [
    -1, -1, -1, -1, 2, 4, 6, 8,
    -1, -1, -1, -1, 2, 4, 6, 8,
]

IMA4_STEP_TABLE = [
    7, 8, 9, 10, 11, 12, 13, 14, 16, 17,
    19, 21, 23, 25, 28, 31, 34, 37, 41, 45,
    50, 55, 60, 66, 73, 80, 88, 97, 107, 118,
    130, 143, 157, 173, 190, 209, 230, 253, 279, 307,
    337, 371, 408, 449, 494, 544, 598, 658, 724, 796,
    876, 963, 1060, 1166, 1282, 1411, 1552, 1707, 1878, 2066,
    2272, 2499, 2749, 3024, 3327, 3660, 4026, 4428, 4871, 5358,
    5894, 6484, 7132, 7845, 8630, 9493, 10442, 11487, 12635, 13899,
    15289, 16818, 18500, 20350, 22385, 24623, 27086, 29794, 32767,
]

# Codes 0..127; negative (signed) codes mirror the table and negate it.
ALAW_TABLE = [
    -5504, -5248, -6016, -5760, -4480, -4224, -4992, -4736,
    -7552, -7296, -8064, -7808, -6528, -6272, -7040, -6784,
    -2752, -2624, -3008, -2880, -2240, -2112, -2496, -2368,
    -3776, -3648, -4032, -3904, -3264, -3136, -3520, -3392,
    -22016, -20992, -24064, -23040, -17920, -16896, -19968, -18944,
    -30208, -29184, -32256, -31232, -26112, -25088, -28160, -27136,
    -11008, -10496, -12032, -11520, -8960, -8448, -9984, -9472,
    -15104, -14592, -16128, -15616, -13056, -12544, -14080, -13568,
    -344, -328, -376, -360, -280, -264, -312, -296,
    -472, -456, -504, -488, -408, -392, -440, -424,
    -88, -72, -120, -104, -24, -8, -56, -40,
    -216, -200, -248, -232, -152, -136, -184, -168,
    -1376, -1312, -1504, -1440, -1120, -1056, -1248, -1184,
    -1888, -1824, -2016, -1952, -1632, -1568, -1760, -1696,
    -688, -656, -752, -720, -560, -528, -624, -592,
    -944, -912, -1008, -976, -816, -784, -880, -848,
]

ULAW_TABLE = [
    -32124, -31100, -30076, -29052, -28028, -27004, -25980, -24956,
    -23932, -22908, -21884, -20860, -19836, -18812, -17788, -16764,
    -15996, -15484, -14972, -14460, -13948, -13436, -12924, -12412,
    -11900, -11388, -10876, -10364, -9852, -9340, -8828, -8316,
    -7932, -7676, -7420, -7164, -6908, -6652, -6396, -6140,
    -5884, -5628, -5372, -5116, -4860, -4604, -4348, -4092,
    -3900, -3772, -3644, -3516, -3388, -3260, -3132, -3004,
    -2876, -2748, -2620, -2492, -2364, -2236, -2108, -1980,
    -1884, -1820, -1756, -1692, -1628, -1564, -1500, -1436,
    -1372, -1308, -1244, -1180, -1116, -1052, -988, -924,
    -876, -844, -812, -780, -748, -716, -684, -652,
    -620, -588, -556, -524, -492, -460, -428, -396,
    -372, -356, -340, -324, -308, -292, -276, -260,
    -244, -228, -212, -196, -180, -164, -148, -132,
    -120, -112, -104, -96, -88, -80, -72, -64,
    -56, -48, -40, -32, -24, -16, -8, 0,
]


@dataclass(frozen=True)
class DecodedAudio:
    """Little-endian PCM produced by a decoder."""
    data: bytes
    bits_per_sample: int

    @property
    def num_samples(self):
        return len(self.data) // (self.bits_per_sample // 8)


class Decoder:
    """Base class for all decoders.

    Subclasses set `name` and `bits_per_sample` and implement encoded_size(),
    decoded_size() and _decode(). Sizes are in bytes for `num_packets` packets,
    where a packet is one sample for uncompressed and companded audio, and one
    34-byte block for IMA4.
    """
    name = None
    bits_per_sample = 16
    implemented = True

    def __init__(self, logger=None):
        self.log = logger or log
        self._called = False
        self._decoded = None

    def encoded_size(self, num_packets):
        raise NotImplementedError

    def decoded_size(self, num_packets):
        raise NotImplementedError

    def _decode(self, raw, num_channels):
        raise NotImplementedError

    def decode(self, raw, num_channels):
        """Decode the whole payload; the result is also kept in `decoded`."""
        if self._called:
            raise RuntimeError(f"{type(self).__name__}.decode() may only be called once")
        self._called = True
        data = self._decode(bytes(raw), num_channels)
        self._decoded = DecodedAudio(data, self.bits_per_sample)
        return self._decoded

    @property
    def decoded(self):
        if self._decoded is None:
            raise RuntimeError("no decoded audio; decode() was not called or failed")
        return self._decoded

    def __repr__(self):
        return f"<{type(self).__name__} {self.name} {self.bits_per_sample}-bit>"


class IdentityDecoder(Decoder):
    """Uncompressed 8-bit or big-endian 16-bit samples."""
    name = 'raw'

    def __init__(self, bits_per_sample, logger=None):
        super().__init__(logger)
        if bits_per_sample not in (8, 16):
            raise UnsupportedBitDepthError(bits_per_sample)
        self.bits_per_sample = bits_per_sample

    def encoded_size(self, num_packets):
        return num_packets * self.bits_per_sample // 8

    def decoded_size(self, num_packets):
        return num_packets * self.bits_per_sample // 8

    def _decode(self, raw, num_channels):
        if self.bits_per_sample == 8:
            # 8-bit snd and WAV samples are both unsigned.
            return raw

        if len(raw) % 2:
            self.log.warning("16-bit sample data has an odd length (%d bytes); dropping the last byte", len(raw))
            raw = raw[:-1]
        return np.frombuffer(raw, dtype='>i2').astype('<i2').tobytes()


def decode_ima4_packet(packet):
    """Decode one 34-byte IMA4 packet into 64 int16 samples.

    The predictor and step index are seeded from this packet's own header,
    so packets never share state.
    """
    header = to_native(packet[:2], 2)
    step_index = min(header & 0x7F, 88)
    predictor = header & 0xFF80
    if predictor & 0x8000:
        predictor -= 0x10000

    samples = []
    for byte in packet[2:IMA4_PACKET_SIZE]:
        # Low nibble first.
        for nibble in (byte & 0x0F, byte >> 4):
            step = IMA4_STEP_TABLE[step_index]
            # floor((magnitude + 0.5) * step / 4) in integers
            diff = ((nibble & 0x07) * 2 + 1) * step // 8
            if nibble & 0x08:
                diff = -diff
            predictor = max(-0x8000, min(0x7FFF, predictor + diff))
            step_index = max(0, min(88, step_index + IMA4_INDEX_TABLE[nibble]))
            samples.append(predictor)
    return samples


class Ima4Decoder(Decoder):
    """Apple IMA4 ADPCM, mono or stereo (one packet per channel, left first)."""
    name = 'ima4'

    def encoded_size(self, num_packets):
        return num_packets * IMA4_PACKET_SIZE

    def decoded_size(self, num_packets):
        return num_packets * IMA4_SAMPLES_PER_PACKET * 2

    def _decode(self, raw, num_channels):
        if num_channels not in (1, 2):
            raise InvalidChannelCountError(num_channels)

        frame_size = IMA4_PACKET_SIZE * num_channels
        if len(raw) % frame_size:
            self.log.warning(
                "IMA4 data (%d bytes, %d channel(s)) is not a multiple of %d bytes; "
                "dropping %d trailing bytes",
                len(raw), num_channels, frame_size, len(raw) % frame_size)
        num_frames = len(raw) // frame_size

        samples_per_frame = IMA4_SAMPLES_PER_PACKET * num_channels
        samples = np.empty(num_frames * samples_per_frame, dtype='<i2')
        for frame in range(num_frames):
            out = frame * samples_per_frame
            for channel in range(num_channels):
                start = frame * frame_size + channel * IMA4_PACKET_SIZE
                packet = raw[start:start + IMA4_PACKET_SIZE]
                # Interleave as L0, R0, L1, R1, ...
                samples[out + channel:out + samples_per_frame:num_channels] = decode_ima4_packet(packet)
        return samples.tobytes()


class XLawDecoder(Decoder):
    """Table-driven 8-bit to 16-bit logarithmic expansion.

    Each byte is a signed code: codes 0..127 index the table directly, a
    negative code c yields -table[128 + c].
    """
    table = None

    def __init__(self, logger=None):
        super().__init__(logger)
        half = np.array(self.table, dtype=np.int32)
        # Index by the unsigned byte value: 0x80..0xFF are the negative codes.
        self._lookup = np.concatenate([half, -half]).astype('<i2')

    def encoded_size(self, num_packets):
        return num_packets

    def decoded_size(self, num_packets):
        return num_packets * 2

    def _decode(self, raw, num_channels):
        return self._lookup[np.frombuffer(raw, dtype=np.uint8)].tobytes()


class ALawDecoder(XLawDecoder):
    name = 'alaw'
    table = ALAW_TABLE


class ULawDecoder(XLawDecoder):
    name = 'ulaw'
    table = ULAW_TABLE


class MaceDecoder(Decoder):
    """MACE 3:1. Declared so the format is recognised; decoding is not implemented."""
    name = 'mac3'
    implemented = False

    def encoded_size(self, num_packets):
        return num_packets * 2

    def decoded_size(self, num_packets):
        return num_packets * 6 * 2

    def _decode(self, raw, num_channels):
        raise UnsupportedCodecError(b'MAC3', 3, "MACE decoding is not implemented")


MACE_COMPRESSION_ID = 3

CODECS = {
    b'mac3': MaceDecoder,
    b'ima4': Ima4Decoder,
    b'alaw': ALawDecoder,
    b'ulaw': ULawDecoder,
}


def resolve_decoder(format_tag, compression_id, sample_size_bits, logger=None):
    """Pick the decoder for a compressed sound header.

    compressionID 0 means uncompressed samples of the declared size; otherwise
    the 4-character format tag (case-insensitive) selects the codec.
    """
    if compression_id == 0:
        return IdentityDecoder(sample_size_bits, logger=logger)

    if compression_id == MACE_COMPRESSION_ID:
        cls = MaceDecoder
    else:
        cls = CODECS.get(bytes(format_tag).lower())

    if cls is None:
        raise UnsupportedCodecError(format_tag, compression_id)
    if not cls.implemented:
        raise UnsupportedCodecError(format_tag, compression_id, f"{cls.name} decoding is not implemented")
    return cls(logger=logger)
