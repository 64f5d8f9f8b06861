"""Speech-to-text client for media-transcriber."""

from .service import AsrService
from .types import AsrOptions, AsrResult, ChunkResult

__all__ = ["AsrService", "AsrOptions", "AsrResult", "ChunkResult"]
