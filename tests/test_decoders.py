import logging

import numpy as np
import pytest

from snd_builders import ima4_packet
from sndtowav.decoders import (
    ALawDecoder,
    IdentityDecoder,
    Ima4Decoder,
    MaceDecoder,
    ULawDecoder,
    decode_ima4_packet,
    resolve_decoder,
)
from sndtowav.errors import (
    InvalidChannelCountError,
    UnsupportedBitDepthError,
    UnsupportedCodecError,
)


def _samples(decoded):
    return np.frombuffer(decoded.data, dtype='<i2').tolist()


# -- resolution table --

@pytest.mark.parametrize('tag, cls', [
    (b'ima4', Ima4Decoder),
    (b'IMA4', Ima4Decoder),
    (b'alaw', ALawDecoder),
    (b'ALAW', ALawDecoder),
    (b'ulaw', ULawDecoder),
    (b'ULAW', ULawDecoder),
    (b'uLaw', ULawDecoder),
])
def test_resolve_by_format_tag(tag, cls) -> None:
    assert type(resolve_decoder(tag, -1, 16)) is cls


def test_resolve_compression_id_zero_uses_declared_bit_depth() -> None:
    decoder = resolve_decoder(b'ima4', 0, 8)
    assert type(decoder) is IdentityDecoder
    assert decoder.bits_per_sample == 8


def test_resolve_mace_fails() -> None:
    with pytest.raises(UnsupportedCodecError):
        resolve_decoder(b'MAC3', -1, 8)
    with pytest.raises(UnsupportedCodecError):
        resolve_decoder(b'ima4', 3, 16)


def test_resolve_unknown_codec() -> None:
    with pytest.raises(UnsupportedCodecError) as exc_info:
        resolve_decoder(b'zzzz', 7, 16)
    assert exc_info.value.format_tag == b'zzzz'
    assert exc_info.value.compression_id == 7
    assert 'zzzz' in str(exc_info.value)


# -- shared contract --

def test_decode_only_once() -> None:
    decoder = IdentityDecoder(8)
    decoder.decode(b'\x80', 1)
    with pytest.raises(RuntimeError):
        decoder.decode(b'\x80', 1)


def test_decoded_before_decode() -> None:
    with pytest.raises(RuntimeError):
        IdentityDecoder(8).decoded


def test_failed_decode_keeps_no_output() -> None:
    decoder = Ima4Decoder()
    with pytest.raises(InvalidChannelCountError):
        decoder.decode(ima4_packet(0) * 3, 3)
    with pytest.raises(RuntimeError):
        decoder.decoded


def test_sizes() -> None:
    assert IdentityDecoder(8).encoded_size(10) == 10
    assert IdentityDecoder(16).encoded_size(10) == 20
    assert IdentityDecoder(16).decoded_size(10) == 20
    assert Ima4Decoder().encoded_size(2) == 68
    assert Ima4Decoder().decoded_size(2) == 256
    assert ALawDecoder().encoded_size(5) == 5
    assert ULawDecoder().decoded_size(5) == 10
    assert MaceDecoder().encoded_size(3) == 6
    assert Ima4Decoder().bits_per_sample == 16
    assert ALawDecoder().bits_per_sample == 16


# -- identity --

def test_identity_8bit_passthrough() -> None:
    decoder = IdentityDecoder(8)
    decoded = decoder.decode(b'\x00\x80\xff', 1)
    assert decoded.data == b'\x00\x80\xff'
    assert decoded.bits_per_sample == 8
    assert decoder.decoded is decoded


def test_identity_16bit_swaps_to_little_endian() -> None:
    decoded = IdentityDecoder(16).decode(b'\x12\x34\xff\xfe\x80\x00', 2)
    assert decoded.data == b'\x34\x12\xfe\xff\x00\x80'
    assert _samples(decoded) == [0x1234, -2, -32768]
    assert decoded.num_samples == 3


@pytest.mark.parametrize('bits', [0, 4, 12, 24, 32])
def test_identity_unsupported_bit_depth(bits) -> None:
    with pytest.raises(UnsupportedBitDepthError) as exc_info:
        IdentityDecoder(bits)
    assert exc_info.value.bits_per_sample == bits


# -- IMA4 --

def test_ima4_empty_input() -> None:
    decoded = Ima4Decoder().decode(b'', 1)
    assert decoded.data == b''


def test_ima4_zero_stream_stays_at_predictor() -> None:
    decoded = Ima4Decoder().decode(ima4_packet(0x0000, 0x00), 1)
    assert _samples(decoded) == [0] * 64


def test_ima4_trace_positive_nibbles() -> None:
    # nibble 7 from step index 0: steps 7, 16, 34, 73 (index +8 each time)
    samples = decode_ima4_packet(ima4_packet(0x0000, 0x77))
    assert samples[:4] == [13, 43, 106, 242]


def test_ima4_trace_negative_nibbles() -> None:
    samples = decode_ima4_packet(ima4_packet(0x0000, 0xFF))
    assert samples[:4] == [-13, -43, -106, -242]


def test_ima4_low_nibble_first() -> None:
    # low nibble 7 (+13), then high nibble 0 at step index 8 (16 // 8 = 2)
    samples = decode_ima4_packet(ima4_packet(0x0000, 0x07))
    assert samples[:2] == [13, 15]


def test_ima4_header_seeds_predictor_and_step_index() -> None:
    # predictor 0x0180 = 384, step index 5; zero nibbles add (step // 8) while the index falls
    samples = decode_ima4_packet(ima4_packet(0x0185, 0x00))
    assert samples[:6] == [385, 386, 387, 388, 389, 389]
    assert samples[-1] == 389


def test_ima4_header_predictor_is_signed() -> None:
    samples = decode_ima4_packet(ima4_packet(0x8000, 0x00))
    assert samples == [-32768] * 64


def test_ima4_step_index_is_clamped() -> None:
    # 0x7F -> 88; step 32767 gives 32767 // 8 for magnitude 0
    samples = decode_ima4_packet(ima4_packet(0x007F, 0x00))
    assert samples[0] == 4095


def test_ima4_predictor_is_clamped() -> None:
    samples = decode_ima4_packet(ima4_packet(0x7F80 | 88, 0x77))
    assert samples[0] == 32767
    assert max(samples) == 32767

    samples = decode_ima4_packet(ima4_packet(0x8000 | 88, 0xFF))
    assert samples[0] == -32768


def test_ima4_each_packet_resets_state() -> None:
    decoded = Ima4Decoder().decode(ima4_packet(0, 0x77) + ima4_packet(0, 0x77), 1)
    samples = _samples(decoded)
    assert len(samples) == 128
    assert samples[64:] == samples[:64]


def test_ima4_mono_truncates_partial_packet(caplog) -> None:
    with caplog.at_level(logging.WARNING, logger='sndtowav'):
        decoded = Ima4Decoder().decode(ima4_packet(0, 0x77) + b'\x12', 1)
    assert len(decoded.data) == 128
    assert _samples(decoded) == decode_ima4_packet(ima4_packet(0, 0x77))
    assert any('not a multiple of 34' in r.getMessage() for r in caplog.records)


def test_ima4_stereo_interleaves_channels() -> None:
    left = ima4_packet(0x0185, 0x00)
    right = ima4_packet(0x0000, 0x77)
    decoded = Ima4Decoder().decode(left + right, 2)

    expected_left = decode_ima4_packet(left)
    expected_right = decode_ima4_packet(right)
    interleaved = [s for pair in zip(expected_left, expected_right) for s in pair]
    assert _samples(decoded) == interleaved
    assert _samples(decoded)[:4] == [385, 13, 386, 43]


def test_ima4_stereo_channels_do_not_share_state() -> None:
    left = ima4_packet(0x0000, 0x77)
    right = ima4_packet(0x0000, 0x00)
    samples = _samples(Ima4Decoder().decode(left + right, 2))
    assert samples[1::2] == [0] * 64


def test_ima4_stereo_multiple_frames() -> None:
    frame1 = ima4_packet(0x0000, 0x77) + ima4_packet(0x8000, 0x00)
    frame2 = ima4_packet(0x0185, 0x00) + ima4_packet(0x0000, 0xFF)
    samples = _samples(Ima4Decoder().decode(frame1 + frame2, 2))
    assert len(samples) == 256
    assert samples[128:130] == [385, -13]
    assert samples[1] == -32768


def test_ima4_stereo_truncates_to_whole_frames(caplog) -> None:
    data = ima4_packet(0, 0x77) * 3
    with caplog.at_level(logging.WARNING, logger='sndtowav'):
        decoded = Ima4Decoder().decode(data, 2)
    assert len(decoded.data) == 2 * 128
    assert any('not a multiple of 68' in r.getMessage() for r in caplog.records)


@pytest.mark.parametrize('channels', [0, 3, 6])
def test_ima4_invalid_channel_count(channels) -> None:
    with pytest.raises(InvalidChannelCountError) as exc_info:
        Ima4Decoder().decode(ima4_packet(0), channels)
    assert exc_info.value.num_channels == channels


# -- A-law / mu-law --

def test_alaw_table_values() -> None:
    decoded = ALawDecoder().decode(b'\x00\x40\x7f\x80\xc0\xff', 1)
    assert decoded.bits_per_sample == 16
    assert _samples(decoded) == [-5504, -344, -848, 5504, 344, 848]


def test_ulaw_table_values() -> None:
    decoded = ULawDecoder().decode(b'\x00\x7f\x80\xff\x70', 1)
    assert _samples(decoded) == [-32124, 0, 32124, 0, -120]


def test_xlaw_one_sample_per_byte() -> None:
    decoded = ALawDecoder().decode(bytes(range(256)), 2)
    assert len(decoded.data) == 512


def test_mace_decode_is_unsupported() -> None:
    with pytest.raises(UnsupportedCodecError):
        MaceDecoder().decode(b'\x00\x00', 1)
