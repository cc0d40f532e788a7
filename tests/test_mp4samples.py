import io

import pytest

from gaintools.mp4samples import (
    DownmixResult,
    GainFixup,
    Mp4GainError,
    apply_gain_adjustments,
    check_gain_wrap,
    downmix,
    modify_sample_byte,
    splice_byte,
)


def test_splice_byte_aligned_replaces_first_byte_only():
    assert splice_byte(b"\x12\x34", 0xAB, 0) == b"\xab\x34"


def test_splice_byte_half_offset_example():
    assert splice_byte(b"\x00\x00", 0xFF, 4) == b"\x0f\xf0"


@pytest.mark.parametrize("bit_offset", range(1, 8))
def test_splice_byte_last_write_wins(bit_offset):
    pair = b"\x5a\xc3"
    once = splice_byte(pair, 0x11, bit_offset)
    twice = splice_byte(splice_byte(pair, 0xEE, bit_offset), 0x11, bit_offset)
    assert once == twice


@pytest.mark.parametrize("bit_offset", range(1, 8))
def test_splice_byte_keeps_surrounding_bits(bit_offset):
    zero_a = splice_byte(b"\x00\x00", 0x00, bit_offset)
    zero_b = splice_byte(b"\xff\xff", 0x00, bit_offset)
    keep_first = (0xFF << bit_offset) & 0xFF
    keep_second = 0xFF >> (8 - bit_offset)
    assert zero_a == b"\x00\x00"
    assert zero_b == bytes((keep_first, keep_second))


def test_splice_byte_rejects_bad_offset():
    with pytest.raises(ValueError):
        splice_byte(b"\x00\x00", 1, 8)


def test_modify_sample_byte_aligned_restores_position():
    fp = io.BytesIO(bytes(10))
    fp.seek(7)
    modify_sample_byte(fp, 2, 0x9C, 3, 0)
    assert fp.tell() == 7
    assert fp.getvalue()[5] == 0x9C
    assert fp.getvalue()[:5] == bytes(5)


def test_modify_sample_byte_unaligned_matches_splice():
    data = bytes(range(16))
    fp = io.BytesIO(data)
    modify_sample_byte(fp, 4, 0x77, 2, 3)
    result = fp.getvalue()
    assert result[6:8] == splice_byte(data[6:8], 0x77, 3)
    assert result[:6] == data[:6]
    assert result[8:] == data[8:]


def test_modify_sample_byte_short_data():
    fp = io.BytesIO(bytes(4))
    with pytest.raises(Mp4GainError):
        modify_sample_byte(fp, 3, 0x10, 0, 2)


def test_downmix_mono_scales_and_peaks():
    result = downmix([0.5, -0.25], 1)
    assert result.left == [16384.0, -8192.0]
    assert result.right is None
    assert result.peak == 0.5
    assert result.channel_count == 1


def test_downmix_stereo_splits():
    result = downmix([0.5, -0.5, 0.25, -1.0], 2)
    assert result.left == [16384.0, 8192.0]
    assert result.right == [-16384.0, -32768.0]
    assert result.peak == 1.0


def test_downmix_surround_folds_symmetric_input():
    frame = [0.1, 0.2, 0.2, 0.3, 0.3, 0.05]
    result = downmix(frame * 3, 6)
    assert len(result.left) == 3
    assert result.left == result.right
    assert result.channel_count == 2


def test_downmix_other_layout_averages():
    result = downmix([0.25, 0.25, 0.25], 3)
    assert result.left == [8192.0]
    assert result.right is None


def test_downmix_ignores_trailing_partial_frame():
    result = downmix([0.1, 0.2, 0.9], 2)
    assert len(result.left) == 1
    assert result.peak == 0.2


def test_downmix_rejects_zero_channels():
    with pytest.raises(ValueError):
        downmix([0.0], 0)


def test_downmix_result_empty():
    result = downmix([], 2)
    assert result == DownmixResult(left=[], right=[], peak=0.0)


def test_check_gain_wrap_accepts_in_range():
    fixups = [GainFixup(1, 0, 0, 0, 200), GainFixup(1, 1, 0, 1, 10)]
    check_gain_wrap(fixups, 55, -10)
    assert fixups[0].orig_gain == 200


@pytest.mark.parametrize(
    "left,right",
    [(56, 0), (0, -11)],
)
def test_check_gain_wrap_rejects_overflow(left, right):
    fixups = [GainFixup(1, 0, 0, 0, 200), GainFixup(1, 1, 0, 1, 10)]
    with pytest.raises(Mp4GainError):
        check_gain_wrap(fixups, left, right)


def test_apply_gain_adjustments_per_channel():
    fp = io.BytesIO(bytes(20))
    fixups = [
        GainFixup(sample_id=1, sample_offset=0, bit_offset=0, channel=0, orig_gain=100),
        GainFixup(sample_id=2, sample_offset=1, bit_offset=0, channel=1, orig_gain=100),
    ]
    count = apply_gain_adjustments(fp, fixups, {1: 4, 2: 10}, 5, -3)
    data = fp.getvalue()
    assert count == 2
    assert data[4] == 105
    assert data[11] == 97


def test_apply_gain_adjustments_unaligned_field():
    original = bytes([0xAA] * 8)
    fp = io.BytesIO(original)
    fixups = [GainFixup(sample_id=3, sample_offset=1, bit_offset=5, channel=0, orig_gain=40)]
    apply_gain_adjustments(fp, fixups, {3: 2}, 2, 0)
    assert fp.getvalue()[3:5] == splice_byte(original[3:5], 42, 5)


def test_apply_gain_adjustments_unknown_sample():
    fp = io.BytesIO(bytes(4))
    fixups = [GainFixup(sample_id=9, sample_offset=0, bit_offset=0, channel=0, orig_gain=1)]
    with pytest.raises(Mp4GainError):
        apply_gain_adjustments(fp, fixups, {}, 1, 1)