# gaintools

A library for ReplayGain metadata and lossless volume changes in MP3 and
MP4/AAC files. It uses only the standard library.

## Modules

- `gaintools.apetag` reads the tags at the end of an MP3 file: APE v1/v2
  tags, Lyrics3 v2.00 tags and ID3v1 tags. The gain fields of an APE tag
  (`REPLAYGAIN_TRACK_GAIN`, `REPLAYGAIN_TRACK_PEAK`, `REPLAYGAIN_ALBUM_GAIN`,
  `REPLAYGAIN_ALBUM_PEAK`, `MP3GAIN_UNDO`, `MP3GAIN_MINMAX`,
  `MP3GAIN_ALBUM_MINMAX`) go into a `GainTagInfo`. All other fields are
  kept, byte for byte, in an `ApeTag`.
- `gaintools.apewrite` writes the gain fields back as an APE v2 tag with a
  header and a footer, or removes them. Other APE fields and any Lyrics3 or
  ID3v1 tag stay in place.
- `gaintools.mp4samples` changes the 8-bit `global_gain` field inside AAC
  samples in place, even when the field does not start on a byte boundary.
  It also checks that no new gain would leave 0..255, and it mixes decoded
  sample frames down to one or two channels for analysis.
- `gaintools.mp4gain` detects MP4 files by their `ftyp` box, picks free
  temporary file names, and formats and parses the text values of the
  iTunes-style `replaygain_*` tags.

## Installation

```
pip install gaintools
```

## Reading gain information from an MP3

```python
from gaintools.apetag import read_mp3gain_ape_tag

info, file_tags = read_mp3gain_ape_tag("song.mp3")
if info.track_gain is not None:
    print(f"track gain: {info.track_gain:+.2f} dB")
if info.undo is not None:
    left, right, wrapped = info.undo
print(file_tags.tag_offset)  # where the trailing tags start
```

A field that is absent is `None`. `undo` is `(left, right, wrapped)` and
the min/max fields are `(min, max)` pairs. `info.has_gain_fields()` tells
whether any gain field is set.

The lower-level readers `read_ape_tag`, `read_lyrics3v2_tag` and
`read_id3v1_tag` take an open binary file and the offset where the tag
ends. They return `None` if no such tag ends there. `ApeFooter.from_bytes`
and `ApeFooter.to_bytes` convert the 32-byte APE header/footer.

## Writing or removing gain information

```python
from gaintools.apetag import read_mp3gain_ape_tag
from gaintools.apewrite import write_mp3gain_ape_tag, remove_mp3gain_ape_tag

info, file_tags = read_mp3gain_ape_tag("song.mp3")
info.track_gain = -3.5
info.track_peak = 0.98
write_mp3gain_ape_tag("song.mp3", info, file_tags, save_timestamp=True)

# Remove every gain field and keep all other tags.
changed = remove_mp3gain_ape_tag("song.mp3")  # False if there was nothing to remove
```

The `file_tags` you pass to `write_mp3gain_ape_tag` must come from
`read_mp3gain_ape_tag` on the same file. If the new tag is shorter than the
old one, the file is truncated first. With `save_timestamp=True` the file's
access and modification times are restored afterwards.
`build_ape_fields(info)` returns the encoded gain items and their count
without touching any file. A file that cannot be opened or truncated
raises `ApeTagError`.

## Adjusting AAC global gain

```python
from gaintools.mp4samples import GainFixup, check_gain_wrap, apply_gain_adjustments

fixups = [GainFixup(sample_id=1, sample_offset=2, bit_offset=3, channel=0, orig_gain=120)]
check_gain_wrap(fixups, left=2, right=2)  # raises Mp4GainError on wrap
with open("track.m4a", "r+b") as fp:
    apply_gain_adjustments(fp, fixups, {1: 4096}, left=2, right=2)
```

Channel 0 is left or mono; channel 1 is right. One gain step is 1.5 dB.
`apply_gain_adjustments` takes the second argument to be a map from sample
id to the sample's file offset. It returns how many fields it changed.
`splice_byte` and `modify_sample_byte` do the bit-level writes.

`downmix(samples, channels)` takes interleaved samples in -1..1 and returns
a `DownmixResult` with `left`, `right` (or `None`) and `peak`. The output is
scaled to 16-bit range. Mono and stereo pass through unchanged. 5.1 folds
into stereo. Any other layout is averaged to mono.

## MP4 tag values

```python
from gaintools.mp4gain import (
    ReplayGainTag, format_tag_float, parse_tag_float, parse_tag_int_pair, is_mp4_file,
)

format_tag_float(-3.456)        # "-3.46"
parse_tag_float("-3.46 dB")     # -3.46
parse_tag_int_pair("2,2")       # (2, 2)
ReplayGainTag.TRACK_GAIN.value  # "replaygain_track_gain"
is_mp4_file("song.m4a")         # True if the header holds "ftyp"
```

The parsers raise `ValueError` if the text holds no number. `is_mp4_file`
raises `Mp4GainError` for DRM-protected `.m4p` files.

## What it does not do

- It has no command-line program.
- It does not decode MP3 or AAC audio, and it does not compute ReplayGain
  loudness values. You supply the gains and peaks.
- It does not parse the MP4 container. It cannot find the global_gain
  positions or sample offsets, and it cannot read or write the
  `replaygain_*` metadata items inside an MP4 file. You supply those
  positions and offsets, and it only formats and parses the tag text.
- It does not change the global gain of MP3 frames.