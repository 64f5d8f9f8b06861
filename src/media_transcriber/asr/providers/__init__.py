"""ASR provider implementations."""

from .base import AsrProvider
from .mock import MockAsrProvider
from .remote import RemoteAsrProvider
from .whisper import WhisperAsrProvider

__all__ = [
    "AsrProvider",
    "MockAsrProvider",
    "RemoteAsrProvider",
    "WhisperAsrProvider",
]
