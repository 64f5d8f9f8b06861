from __future__ import annotations

import enum
import os
from dataclasses import dataclass
from typing import Optional

import numpy as np

AUDIO_EXTENSIONS = frozenset({"wav", "mp3", "flac", "m4a", "aac", "ogg", "wma"})
VIDEO_EXTENSIONS = frozenset({"mp4", "avi", "mov", "mkv", "wmv", "flv", "webm", "m4v"})


class MediaKind(str, enum.Enum):
    AUDIO = "audio"
    VIDEO = "video"


def extension_of(filename: Optional[str]) -> str:
    if not filename:
        return ""
    return os.path.splitext(filename)[1].lstrip(".").lower()


def classify_extension(extension: str) -> Optional[MediaKind]:
    ext = extension.lstrip(".").lower()
    if ext in AUDIO_EXTENSIONS:
        return MediaKind.AUDIO
    if ext in VIDEO_EXTENSIONS:
        return MediaKind.VIDEO
    return None


@dataclass(slots=True)
class UploadedMedia:
    """Raw upload as received from the client."""

    data: bytes
    filename: str
    content_type: Optional[str] = None

    @property
    def size(self) -> int:
        return len(self.data)

    @property
    def extension(self) -> str:
        return extension_of(self.filename)


@dataclass(slots=True)
class NormalizedAudio:
    """Mono float32 samples at a fixed sample rate."""

    samples: np.ndarray
    sample_rate: int

    @property
    def duration_seconds(self) -> float:
        if self.sample_rate <= 0:
            return 0.0
        return float(len(self.samples)) / float(self.sample_rate)


@dataclass(slots=True)
class AudioChunk:
    """Contiguous slice of NormalizedAudio; ``offset`` is its first sample index."""

    index: int
    samples: np.ndarray
    sample_rate: int
    offset: int = 0

    @property
    def start_seconds(self) -> float:
        if self.sample_rate <= 0:
            return 0.0
        return float(self.offset) / float(self.sample_rate)

    @property
    def duration_seconds(self) -> float:
        if self.sample_rate <= 0:
            return 0.0
        return float(len(self.samples)) / float(self.sample_rate)
