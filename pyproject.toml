[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "gaintools"
version = "1.0.0"
description = "Read and write ReplayGain/MP3Gain APE tags and change the global gain of AAC samples in MP4 files without re-encoding"
requires-python = ">=3.10"
dependencies = []
keywords = ["replaygain", "mp3gain", "ape", "id3", "lyrics3", "mp4", "aac", "volume"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Multimedia :: Sound/Audio",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["gaintools"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
