"""ReplayGain APE tags for MP3 files, and in-place global-gain changes and tag values for MP4/AAC."""

__version__ = "1.0.0"
__all__ = ["apetag", "apewrite", "mp4samples", "mp4gain"]