"""Sample-level gain editing for AAC audio stored in MP4 files.

The global_gain field of an AAC channel element is eight bits that need not
be byte aligned. Changing it changes the playback volume in steps of 1.5 dB
without decoding and re-encoding the audio.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from typing import BinaryIO

SQRT_HALF = math.sqrt(0.5)
SAMPLE_SCALE = 32768.0


class Mp4GainError(Exception):
    """Raised when the gain of an MP4 file cannot be changed."""


@dataclass
class GainFixup:
    """Where one global_gain field sits, and what it held when read."""

    sample_id: int
    sample_offset: int
    bit_offset: int
    channel: int
    orig_gain: int

    @property
    def is_right(self) -> bool:
        """True for the right channel; False for left or mono."""
        return self.channel == 1


@dataclass
class DownmixResult:
    """Samples of one decoded frame reduced to one or two channels."""

    left: list[float]
    right: list[float] | None
    peak: float

    @property
    def channel_count(self) -> int:
        return 1 if self.right is None else 2


def _check_bit_offset(bit_offset: int) -> None:
    if not 0 <= bit_offset <= 7:
        raise ValueError(f"bit offset must be between 0 and 7, got {bit_offset}")


def splice_byte(pair: bytes, value: int, bit_offset: int) -> bytes:
    """Write the eight bits of value into pair, starting bit_offset bits in.

    With bit_offset 0 the first byte is replaced whole and the second is
    left as it is. Otherwise the value spans both bytes.
    """
    _check_bit_offset(bit_offset)
    if len(pair) != 2:
        raise ValueError(f"expected 2 bytes, got {len(pair)}")
    value &= 0xFF
    if bit_offset == 0:
        return bytes((value, pair[1]))
    first = (pair[0] & ((0xFF << bit_offset) & 0xFF)) | (value >> (8 - bit_offset))
    second = (pair[1] & (0xFF >> (8 - bit_offset))) | ((value << bit_offset) & 0xFF)
    return bytes((first, second))


def modify_sample_byte(
    fp: BinaryIO, sample_offset: int, value: int, byte_offset: int, bit_offset: int
) -> None:
    """Overwrite eight bits of a sample in an open file.

    The bits start byte_offset bytes and bit_offset bits into the sample that
    begins at sample_offset. The file position is restored afterwards.
    """
    _check_bit_offset(bit_offset)
    original = fp.tell()
    position = sample_offset + byte_offset
    try:
        fp.seek(position)
        if bit_offset:
            pair = fp.read(2)
            if len(pair) != 2:
                raise Mp4GainError(f"sample data ends before offset {position + 2}")
            fp.seek(position)
            fp.write(splice_byte(pair, value, bit_offset))
        else:
            fp.write(bytes((value & 0xFF,)))
    finally:
        fp.seek(original)


def downmix(samples: Sequence[float], channels: int) -> DownmixResult:
    """Reduce interleaved decoded samples to the channels used for analysis.

    Samples are in the range -1..1 and come out scaled to 16-bit range. Mono
    and stereo pass through; 5.1 (ordered centre, left, right, back left,
    back right, LFE) folds into stereo; any other layout is averaged to mono.
    The peak is the largest absolute input sample.
    """
    if channels < 1:
        raise ValueError(f"channel count must be positive, got {channels}")
    frames = len(samples) // channels
    used = samples[: frames * channels]
    peak = max((abs(s) for s in used), default=0.0)
    scaled = [s * SAMPLE_SCALE for s in used]

    if channels == 1:
        return DownmixResult(left=scaled, right=None, peak=peak)
    if channels == 2:
        return DownmixResult(left=scaled[0::2], right=scaled[1::2], peak=peak)
    if channels == 6:
        left: list[float] = []
        right: list[float] = []
        for start in range(0, len(scaled), 6):
            c, l, r, bl, br, lfe = scaled[start : start + 6]
            left.append(l + c * SQRT_HALF + bl * SQRT_HALF + lfe)
            right.append(r + c * SQRT_HALF + br * SQRT_HALF + lfe)
        return DownmixResult(left=left, right=right, peak=peak)
    mono = [
        sum(scaled[start : start + channels]) / channels
        for start in range(0, len(scaled), channels)
    ]
    return DownmixResult(left=mono, right=None, peak=peak)


def _adjustment(fixup: GainFixup, left: int, right: int) -> int:
    return right if fixup.is_right else left


def check_gain_wrap(fixups: Iterable[GainFixup], left: int, right: int) -> None:
    """Raise Mp4GainError if any adjusted gain would leave the range 0..255."""
    for fixup in fixups:
        if not 0 <= fixup.orig_gain + _adjustment(fixup, left, right) <= 255:
            raise Mp4GainError("Wrap while modifying gain.")


def apply_gain_adjustments(
    fp: BinaryIO,
    fixups: Iterable[GainFixup],
    sample_offsets: Mapping[int, int],
    left: int,
    right: int,
) -> int:
    """Add left or right to every global_gain field listed in fixups.

    sample_offsets maps each sample id to where the sample starts in the
    file. New gains wrap around at eight bits; call check_gain_wrap first to
    refuse that. Returns how many fields were changed.
    """
    count = 0
    for fixup in fixups:
        try:
            offset = sample_offsets[fixup.sample_id]
        except KeyError:
            raise Mp4GainError(
                f"no file offset known for sample {fixup.sample_id}"
            ) from None
        new_gain = (fixup.orig_gain + _adjustment(fixup, left, right)) & 0xFF
        modify_sample_byte(fp, offset, new_gain, fixup.sample_offset, fixup.bit_offset)
        count += 1
    return count