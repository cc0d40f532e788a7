import os
from unittest import mock

import pytest

from gaintools.mp4gain import (
    format_tag_float,
    format_tag_int_pair,
    is_mp4_file,
    parse_tag_float,
    parse_tag_int_pair,
    temp_file_name,
)
from gaintools.mp4samples import Mp4GainError


def test_is_mp4_file_accepts_ftyp_header(tmp_path):
    path = tmp_path / "song.m4a"
    path.write_bytes(b"\x00\x00\x00\x20ftypM4A \x00\x00\x00\x00")
    assert is_mp4_file(path) is True


def test_is_mp4_file_rejects_other_data(tmp_path):
    path = tmp_path / "song.mp3"
    path.write_bytes(b"ID3\x03\x00\x00\x00\x00\x00\x00")
    assert is_mp4_file(path) is False


def test_is_mp4_file_rejects_short_file(tmp_path):
    path = tmp_path / "short.m4a"
    path.write_bytes(b"\x00\x00")
    assert is_mp4_file(path) is False


def test_is_mp4_file_missing_file(tmp_path):
    assert is_mp4_file(tmp_path / "missing.m4a") is False


def test_is_mp4_file_refuses_drm(tmp_path):
    path = tmp_path / "song.m4p"
    path.write_bytes(b"\x00\x00\x00\x20ftypM4P ")
    with pytest.raises(Mp4GainError):
        is_mp4_file(path)


def test_temp_file_name_in_same_directory(tmp_path):
    name = temp_file_name(str(tmp_path / "song.m4a"))
    assert os.path.dirname(name) == str(tmp_path)
    assert os.path.basename(name).startswith("tmp")
    assert name.endswith(".mp4")
    assert not os.path.exists(name)


def test_temp_file_name_skips_existing(tmp_path):
    (tmp_path / "tmp5.mp4").write_bytes(b"")
    with mock.patch("os.getpid", return_value=5):
        name = temp_file_name(str(tmp_path / "song.m4a"))
    assert os.path.basename(name) == "tmp6.mp4"


def test_temp_file_name_without_directory():
    with mock.patch("os.getpid", return_value=123456789):
        with mock.patch("os.path.exists", return_value=False):
            name = temp_file_name("song.m4a")
    assert name == "tmp123456789.mp4"


def test_format_tag_float_two_decimals():
    assert format_tag_float(-3.0) == "-3.00"


@pytest.mark.parametrize("value", [-7.25, 0.0, 1.5, 89.75])
def test_float_round_trip(value):
    assert parse_tag_float(format_tag_float(value)) == pytest.approx(value)


def test_parse_tag_float_from_bytes_with_suffix():
    assert parse_tag_float(b"-6.50 dB") == pytest.approx(-6.5)


def test_parse_tag_float_rejects_text():
    with pytest.raises(ValueError):
        parse_tag_float("dB")


@pytest.mark.parametrize("pair", [(0, 255), (-3, 4), (120, 120)])
def test_int_pair_round_trip(pair):
    assert parse_tag_int_pair(format_tag_int_pair(*pair)) == pair


def test_format_tag_int_pair_text():
    assert format_tag_int_pair(-2, 2) == "-2,2"


def test_parse_tag_int_pair_bytes():
    assert parse_tag_int_pair(b"12,34\x00junk") == (12, 34)


def test_parse_tag_int_pair_rejects_single_value():
    with pytest.raises(ValueError):
        parse_tag_int_pair("12")