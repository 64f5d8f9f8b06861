from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..errors import PerChunkTranscriptionError


@dataclass(slots=True)
class AsrOptions:
    lang: Optional[str] = None
    sample_rate: Optional[int] = None


@dataclass(slots=True)
class AsrResult:
    text: str
    duration_seconds: Optional[float] = None
    provider: Optional[str] = None


@dataclass(slots=True)
class ChunkResult:
    """Outcome for one chunk: recognized text, or the error in its place."""

    index: int
    text: str = ""
    error: Optional[PerChunkTranscriptionError] = None

    @property
    def failed(self) -> bool:
        return self.error is not None
