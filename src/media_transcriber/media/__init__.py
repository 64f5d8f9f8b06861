"""Media ingestion, extraction, normalization and chunking."""

from .chunker import chunk_count, iter_chunks
from .extract import AudioExtractor
from .ingest import IngestLimits, UploadIngestor
from .normalizer import MediaNormalizer, UndecodableAudio, merge_channels
from .types import (
    AUDIO_EXTENSIONS,
    VIDEO_EXTENSIONS,
    AudioChunk,
    MediaKind,
    NormalizedAudio,
    UploadedMedia,
    classify_extension,
)

__all__ = [
    "AudioExtractor",
    "IngestLimits",
    "UploadIngestor",
    "MediaNormalizer",
    "UndecodableAudio",
    "merge_channels",
    "chunk_count",
    "iter_chunks",
    "AUDIO_EXTENSIONS",
    "VIDEO_EXTENSIONS",
    "AudioChunk",
    "MediaKind",
    "NormalizedAudio",
    "UploadedMedia",
    "classify_extension",
]
