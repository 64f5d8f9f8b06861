from __future__ import annotations

import abc

import numpy as np

from ..types import AsrOptions, AsrResult


class AsrProvider(abc.ABC):
    """Interface for ASR providers.

    Chunk providers transcribe one window of normalized samples at a time.
    Whole-file providers (``whole_file = True``) take the audio file as-is
    and skip the chunk loop entirely.
    """

    name: str
    whole_file: bool = False

    async def transcribe(self, *, audio: np.ndarray, options: AsrOptions) -> AsrResult:
        """Produce a transcription for one chunk of mono float32 samples."""
        raise NotImplementedError(f"{type(self).__name__} does not transcribe chunks")

    async def transcribe_file(self, *, path: str, filename: str, options: AsrOptions) -> AsrResult:
        """Produce a transcription for an entire audio file."""
        raise NotImplementedError(f"{type(self).__name__} does not transcribe whole files")

    async def warm_up(self) -> None:
        return None

    async def aclose(self) -> None:
        return None
