"""Writing and removal of gain fields in APE tags at the end of MP3 files."""

from __future__ import annotations

import os
import struct
from dataclasses import replace

from gaintools.apetag import (
    APE_ID,
    FOOTER_SIZE,
    HAS_HEADER,
    IS_HEADER,
    ApeFooter,
    ApeTagError,
    FileTags,
    GainTagInfo,
    read_mp3gain_ape_tag,
)

_FIELD_HEAD = struct.Struct("<II")


def truncate_file(path, length: int) -> None:
    """Cut the file at path down to length bytes."""
    try:
        with open(path, "r+b") as fp:
            fp.truncate(length)
    except OSError as exc:
        raise ApeTagError(f"Could not truncate {path}: {exc}") from exc


def _field(name: str, value: str) -> bytes:
    data = value.encode("ascii")
    return _FIELD_HEAD.pack(len(data), 0) + name.encode("ascii") + b"\0" + data


def _gain_text(value: float) -> str:
    return f"{value:<+9.6f}"[:9] + " dB"


def _peak_text(value: float) -> str:
    return f"{value:<8.6f}"[:8]


def _min_max_text(pair: tuple[int, int]) -> str:
    low, high = pair
    return f"{low & 0xFF:03d},{high & 0xFF:03d}"


def build_ape_fields(info: GainTagInfo) -> tuple[bytes, int]:
    """Encode the gain fields of info as APE tag items.

    Returns the encoded items and how many there are.
    """
    fields: list[bytes] = []
    if info.min_max_gain is not None:
        fields.append(_field("MP3GAIN_MINMAX", _min_max_text(info.min_max_gain)))
    if info.album_min_max_gain is not None:
        fields.append(
            _field("MP3GAIN_ALBUM_MINMAX", _min_max_text(info.album_min_max_gain))
        )
    if info.undo is not None:
        left, right, wrap = info.undo
        text = f"{left:+04d}"[:4] + "," + f"{right:+04d}"[:4] + "," + ("W" if wrap else "N")
        fields.append(_field("MP3GAIN_UNDO", text))
    if info.track_gain is not None:
        fields.append(_field("REPLAYGAIN_TRACK_GAIN", _gain_text(info.track_gain)))
    if info.track_peak is not None:
        fields.append(_field("REPLAYGAIN_TRACK_PEAK", _peak_text(info.track_peak)))
    if info.album_gain is not None:
        fields.append(_field("REPLAYGAIN_ALBUM_GAIN", _gain_text(info.album_gain)))
    if info.album_peak is not None:
        fields.append(_field("REPLAYGAIN_ALBUM_PEAK", _peak_text(info.album_peak)))
    return b"".join(fields), len(fields)


def _new_header(length: int, tag_count: int) -> ApeFooter:
    return ApeFooter(
        version=2000,
        length=length,
        tag_count=tag_count,
        flags=HAS_HEADER | IS_HEADER,
        reserved=bytes(8),
        ident=APE_ID,
    )


def write_mp3gain_ape_tag(
    path, info: GainTagInfo, file_tags: FileTags, save_timestamp: bool = False
) -> None:
    """(Re-)write the gain information into an APE v2 tag.

    file_tags must come from read_mp3gain_ape_tag on the same file. Any
    Lyrics3 v2 or ID3v1 tag found there is written back after the APE tag.
    """
    saved = os.stat(path) if save_timestamp else None

    gain_fields, tag_count = build_ape_fields(info)
    ape = file_tags.ape_tag
    other_fields = ape.other_fields if ape is not None else b""
    if ape is not None:
        tag_count += ape.footer.tag_count

    tag_length = 2 * FOOTER_SIZE + len(other_fields) + len(gain_fields)
    part_length = tag_length - FOOTER_SIZE

    if ape is not None:
        if ape.original_tag_size > tag_length:
            truncate_file(path, file_tags.tag_offset)
        footer = replace(ape.footer, length=part_length, tag_count=tag_count)
        if ape.header is not None:
            header = replace(ape.header, length=part_length, tag_count=tag_count)
        else:
            header = _new_header(part_length, tag_count)
            footer.flags |= HAS_HEADER
    else:
        header = _new_header(part_length, tag_count)
        footer = ApeFooter(
            version=2000,
            length=part_length,
            tag_count=tag_count,
            flags=HAS_HEADER,
            reserved=bytes(8),
            ident=APE_ID,
        )

    try:
        fp = open(path, "r+b")
    except OSError as exc:
        raise ApeTagError(f"Can't open {path} for modifying") from exc
    with fp:
        fp.seek(file_tags.tag_offset)
        if tag_count > 0:
            fp.write(header.to_bytes())
            fp.write(other_fields)
            fp.write(gain_fields)
            fp.write(footer.to_bytes())
        if file_tags.lyrics3_tag_size > 0:
            # a Lyrics3 tag already holds the ID3v1 tag that follows it
            fp.write(file_tags.lyrics3_tag)
        elif file_tags.id3v1_tag:
            fp.write(file_tags.id3v1_tag)

    if saved is not None:
        os.utime(path, ns=(saved.st_atime_ns, saved.st_mtime_ns))


def remove_mp3gain_ape_tag(path, save_timestamp: bool = False) -> bool:
    """Remove the gain fields from the file's APE tag.

    Returns True if the tag held gain fields and was rewritten.
    """
    info, file_tags = read_mp3gain_ape_tag(path)
    if not info.has_gain_fields():
        return False
    info.dirty = True
    info.clear_gain_fields()
    write_mp3gain_ape_tag(path, info, file_tags, save_timestamp)
    return True