"""Reading of the tags found at the end of MP3 files.

Covers APE v1/v2 tags (extracting the gain fields written by gain tools),
Lyrics3 v2.00 tags and ID3v1 tags.
"""

from __future__ import annotations

import re
import struct
from dataclasses import dataclass, field
from typing import BinaryIO

APE_ID = b"APETAGEX"
FOOTER_SIZE = 32
HAS_HEADER = 1 << 31
IS_HEADER = 1 << 29
MAX_FIELD_SIZE = 1024 * 1024

ID3V1_SIZE = 128
LYRICS3_FOOTER_SIZE = 15
LYRICS3_ID = b"LYRICS200"
LYRICS3_BEGIN = b"LYRICSBEGIN"

_FOOTER = struct.Struct("<8sIIII8s")
_FIELD_HEAD = struct.Struct("<II")

_FLOAT_RE = re.compile(rb"\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)")
_INT_RE = re.compile(rb"\s*([+-]?\d+)")


class ApeTagError(Exception):
    """Raised when tag data cannot be interpreted."""


@dataclass
class GainTagInfo:
    """Gain information stored in an APE tag."""

    track_gain: float | None = None
    track_peak: float | None = None
    album_gain: float | None = None
    album_peak: float | None = None
    undo: tuple[int, int, bool] | None = None
    min_max_gain: tuple[int, int] | None = None
    album_min_max_gain: tuple[int, int] | None = None
    dirty: bool = False
    recalc: bool = False

    def has_gain_fields(self) -> bool:
        """Return True if any gain field is present."""
        return any(
            value is not None
            for value in (
                self.track_gain,
                self.track_peak,
                self.album_gain,
                self.album_peak,
                self.undo,
                self.min_max_gain,
                self.album_min_max_gain,
            )
        )

    def clear_gain_fields(self) -> None:
        """Drop every gain field."""
        self.track_gain = None
        self.track_peak = None
        self.album_gain = None
        self.album_peak = None
        self.undo = None
        self.min_max_gain = None
        self.album_min_max_gain = None


@dataclass
class ApeFooter:
    """The 32-byte APE tag header or footer."""

    version: int = 2000
    length: int = FOOTER_SIZE
    tag_count: int = 0
    flags: int = 0
    reserved: bytes = bytes(8)
    ident: bytes = APE_ID

    @classmethod
    def from_bytes(cls, data: bytes) -> ApeFooter:
        if len(data) != FOOTER_SIZE:
            raise ApeTagError(
                f"APE footer must be {FOOTER_SIZE} bytes, got {len(data)}"
            )
        ident, version, length, tag_count, flags, reserved = _FOOTER.unpack(data)
        return cls(
            version=version,
            length=length,
            tag_count=tag_count,
            flags=flags,
            reserved=reserved,
            ident=ident,
        )

    def to_bytes(self) -> bytes:
        return _FOOTER.pack(
            self.ident,
            self.version & 0xFFFFFFFF,
            self.length & 0xFFFFFFFF,
            self.tag_count & 0xFFFFFFFF,
            self.flags & 0xFFFFFFFF,
            self.reserved,
        )


@dataclass
class ApeTag:
    """An APE tag with the gain fields taken out of it."""

    footer: ApeFooter
    original_tag_size: int
    header: ApeFooter | None = None
    other_fields: bytes = b""
    other_field_count: int = 0

    @property
    def have_header(self) -> bool:
        return self.header is not None


@dataclass
class FileTags:
    """The tags found at the end of a file, and where they start."""

    tag_offset: int
    ape_tag: ApeTag | None = None
    lyrics3_tag: bytes | None = None
    id3v1_tag: bytes | None = None

    @property
    def lyrics3_tag_size(self) -> int:
        return len(self.lyrics3_tag) if self.lyrics3_tag else 0


def _read_at(fp: BinaryIO, position: int, size: int) -> bytes | None:
    if position < 0:
        return None
    fp.seek(position)
    data = fp.read(size)
    return data if len(data) == size else None


def _atof(data: bytes) -> float:
    match = _FLOAT_RE.match(data)
    return float(match.group(1)) if match else 0.0


def _atoi(data: bytes) -> int:
    match = _INT_RE.match(data)
    return int(match.group(1)) if match else 0


def _lyrics3_number(digits: bytes) -> int:
    return sum((byte - ord("0")) * 10 ** (5 - place) for place, byte in enumerate(digits))


def read_id3v1_tag(fp: BinaryIO, tag_offset: int) -> tuple[bytes, int] | None:
    """Read an ID3v1 tag ending at tag_offset.

    Returns the tag bytes and the offset where the tag starts, or None.
    """
    if tag_offset < ID3V1_SIZE:
        return None
    data = _read_at(fp, tag_offset - ID3V1_SIZE, ID3V1_SIZE)
    if data is None or not data.startswith(b"TAG"):
        return None
    return data, tag_offset - ID3V1_SIZE


def read_lyrics3v2_tag(
    fp: BinaryIO, tag_offset: int
) -> tuple[bytes, bytes, int] | None:
    """Read a Lyrics3 v2.00 tag followed by an ID3v1 tag ending at tag_offset.

    Returns the whole tag (including the ID3v1 tag), the ID3v1 tag alone and
    the offset where the Lyrics3 tag starts, or None.
    """
    if tag_offset < ID3V1_SIZE:
        return None
    id3 = _read_at(fp, tag_offset - ID3V1_SIZE, ID3V1_SIZE)
    if id3 is None or not id3.startswith(b"TAG"):
        return None
    footer = _read_at(
        fp, tag_offset - ID3V1_SIZE - LYRICS3_FOOTER_SIZE, LYRICS3_FOOTER_SIZE
    )
    if footer is None or footer[6:] != LYRICS3_ID:
        return None
    length = _lyrics3_number(footer[:6])
    begin = _read_at(
        fp,
        tag_offset - ID3V1_SIZE - LYRICS3_FOOTER_SIZE - length,
        len(LYRICS3_BEGIN),
    )
    if begin != LYRICS3_BEGIN:
        return None
    tag_length = ID3V1_SIZE + length + LYRICS3_FOOTER_SIZE
    start = tag_offset - tag_length
    fp.seek(start)
    return fp.read(tag_length), id3, start


def _apply_field(info: GainTagInfo, name: bytes, value: bytes) -> bool:
    """Store a known gain field in info; return False for any other field."""
    key = name.upper()
    if key == b"REPLAYGAIN_TRACK_GAIN":
        info.track_gain = _atof(value)
    elif key == b"REPLAYGAIN_TRACK_PEAK":
        info.track_peak = _atof(value)
    elif key == b"REPLAYGAIN_ALBUM_GAIN":
        info.album_gain = _atof(value)
    elif key == b"REPLAYGAIN_ALBUM_PEAK":
        info.album_peak = _atof(value)
    elif key == b"MP3GAIN_UNDO":
        # value looks like "+003,+003,W"
        info.undo = (
            _atoi(value[0:4]),
            _atoi(value[5:9]),
            value[10:11] in (b"w", b"W"),
        )
    elif key == b"MP3GAIN_MINMAX":
        info.min_max_gain = (_atoi(value[0:3]) & 0xFF, _atoi(value[4:7]) & 0xFF)
    elif key == b"MP3GAIN_ALBUM_MINMAX":
        info.album_min_max_gain = (
            _atoi(value[0:3]) & 0xFF,
            _atoi(value[4:7]) & 0xFF,
        )
    else:
        return False
    return True


def read_ape_tag(
    fp: BinaryIO, info: GainTagInfo, tag_offset: int
) -> tuple[ApeTag, int] | None:
    """Read an APE v1/v2 tag ending at tag_offset.

    Gain fields are stored in info; the remaining fields are kept in the
    returned tag. Returns the tag and the offset where it starts, or None.
    """
    if tag_offset < FOOTER_SIZE:
        return None
    raw = _read_at(fp, tag_offset - FOOTER_SIZE, FOOTER_SIZE)
    if raw is None:
        return None
    footer = ApeFooter.from_bytes(raw)
    if footer.ident != APE_ID:
        return None
    if footer.version not in (1000, 2000):
        return None
    tag_length = footer.length
    if tag_length < FOOTER_SIZE:
        return None
    body = _read_at(fp, tag_offset - tag_length, tag_length - FOOTER_SIZE)
    if body is None:
        return None

    original_count = footer.tag_count
    remaining_count = original_count
    other_fields = bytearray()
    other_count = 0
    end = len(body)
    pos = 0
    while pos < end and remaining_count:
        remaining_count -= 1
        if end - pos < _FIELD_HEAD.size:
            break
        value_size, _flags = _FIELD_HEAD.unpack_from(body, pos)
        pos += _FIELD_HEAD.size
        remaining = end - pos
        nul = body.find(b"\0", pos, end)
        name_size = nul - pos if nul >= 0 else remaining
        if (
            name_size >= remaining
            or value_size > MAX_FIELD_SIZE
            or name_size + 1 + value_size > remaining
        ):
            break
        name = body[pos : pos + name_size]
        value_start = pos + name_size + 1
        value = body[value_start : value_start + value_size]
        if not _apply_field(info, name, value):
            other_fields += body[pos - _FIELD_HEAD.size : value_start + value_size]
            other_count += 1
        pos = value_start + value_size

    start = tag_offset - tag_length
    tag = ApeTag(
        footer=footer,
        original_tag_size=tag_length,
        other_fields=bytes(other_fields),
        other_field_count=other_count,
    )

    if footer.flags & HAS_HEADER:
        start -= FOOTER_SIZE
        header_raw = _read_at(fp, start, FOOTER_SIZE)
        if header_raw is not None:
            tag.header = ApeFooter.from_bytes(header_raw)
        tag.original_tag_size += FOOTER_SIZE

    if other_count != original_count:
        for part in (tag.footer, tag.header):
            if part is not None:
                part.length = FOOTER_SIZE + len(tag.other_fields)
                part.tag_count = other_count

    return tag, start


def read_mp3gain_ape_tag(path) -> tuple[GainTagInfo, FileTags]:
    """Read gain information and trailing tags from the end of a file.

    APE, Lyrics3 v2 and ID3v1 tags are read repeatedly, from the end of the
    file backwards, until no more are found.
    """
    info = GainTagInfo()
    with open(path, "rb") as fp:
        fp.seek(0, 2)
        offset = fp.tell()
        tags = FileTags(tag_offset=offset)
        while True:
            previous = offset
            ape = read_ape_tag(fp, info, offset)
            if ape is not None:
                tags.ape_tag, offset = ape
            lyrics = read_lyrics3v2_tag(fp, offset)
            if lyrics is not None:
                tags.lyrics3_tag, tags.id3v1_tag, offset = lyrics
            id3 = read_id3v1_tag(fp, offset)
            if id3 is not None:
                tags.id3v1_tag, offset = id3
            if offset == previous:
                break
        tags.tag_offset = offset
    return info, tags