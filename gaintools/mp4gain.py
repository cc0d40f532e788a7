"""Helpers for ReplayGain metadata and file handling of MP4/M4A audio files.

Gain values are stored as iTunes-style free-form metadata items
("----" atoms in the com.apple.iTunes namespace) holding plain text.
"""

from __future__ import annotations

import enum
import os
import re

from gaintools.mp4samples import Mp4GainError

ITUNES_MEAN = "com.apple.iTunes"
FREEFORM_ATOM = "----"
MP4_SIGNATURE = b"ftyp"
DRM_EXTENSION = ".m4p"
_MAX_TAG_TEXT = 127
_LAST_TEMP_INDEX = 0xFFFFFFFF

_FLOAT_RE = re.compile(
    r"\s*([+-]?(?:(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?|inf(?:inity)?|nan))",
    re.IGNORECASE,
)
_INT_PAIR_RE = re.compile(r"\s*([+-]?\d+),\s*([+-]?\d+)")


class ReplayGainTag(enum.Enum):
    """The metadata item names used for gain information in MP4 files."""

    TRACK_GAIN = "replaygain_track_gain"
    ALBUM_GAIN = "replaygain_album_gain"
    TRACK_PEAK = "replaygain_track_peak"
    ALBUM_PEAK = "replaygain_album_peak"
    TRACK_MINMAX = "replaygain_track_minmax"
    ALBUM_MINMAX = "replaygain_album_minmax"
    UNDO = "replaygain_undo"


def is_mp4_file(path) -> bool:
    """Tell whether path holds an MP4 file that gain can be applied to.

    Files that cannot be opened, or whose header lacks the "ftyp" box, are
    not MP4 files. DRM-protected ".m4p" files raise Mp4GainError.
    """
    name = os.fspath(path)
    if isinstance(name, bytes):
        name = os.fsdecode(name)
    if len(name) >= 5 and name.endswith(DRM_EXTENSION):
        raise Mp4GainError(f"DRM protected file {name} is not supported.")
    try:
        with open(name, "rb") as fp:
            header = fp.read(8)
    except OSError:
        return False
    return len(header) == 8 and header[4:8] == MP4_SIGNATURE


def temp_file_name(path) -> str:
    """Return an unused temporary file name in the directory of path.

    Names take the form "tmp<number>.mp4", counting up from the process id.
    """
    name = os.fspath(path)
    if isinstance(name, bytes):
        name = os.fsdecode(name)
    head, sep, _tail = name.rpartition(os.sep)
    directory = head + sep if sep else ""
    for index in range(os.getpid(), _LAST_TEMP_INDEX):
        candidate = f"{directory}tmp{index}.mp4"
        if not os.path.exists(candidate):
            return candidate
    raise Mp4GainError("unable to create temporary file")


def _tag_text(text) -> str:
    if isinstance(text, (bytes, bytearray)):
        text = bytes(text).decode("utf-8", errors="replace")
    return text.split("\0", 1)[0][:_MAX_TAG_TEXT]


def format_tag_float(value: float) -> str:
    """Format a gain or peak value the way it is stored in a tag."""
    return f"{value:.2f}"


def parse_tag_float(text) -> float:
    """Read the number at the start of a tag value."""
    content = _tag_text(text)
    match = _FLOAT_RE.match(content)
    if match is None:
        raise ValueError(f"no number in tag value {content!r}")
    return float(match.group(1))


def format_tag_int_pair(first: int, second: int) -> str:
    """Format two integers as "first,second"."""
    return f"{first:d},{second:d}"


def parse_tag_int_pair(text) -> tuple[int, int]:
    """Read a "first,second" pair of integers from a tag value."""
    content = _tag_text(text)
    match = _INT_PAIR_RE.match(content)
    if match is None:
        raise ValueError(f"no integer pair in tag value {content!r}")
    return int(match.group(1)), int(match.group(2))