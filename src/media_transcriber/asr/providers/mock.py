from __future__ import annotations

import numpy as np

from ..types import AsrOptions, AsrResult
from .base import AsrProvider


class MockAsrProvider(AsrProvider):
    name = "mock"

    def __init__(self, text: str = "mock transcription") -> None:
        self._text = text

    async def transcribe(self, *, audio: np.ndarray, options: AsrOptions) -> AsrResult:
        sample_rate = options.sample_rate or 16000
        return AsrResult(text=self._text, duration_seconds=len(audio) / float(sample_rate), provider=self.name)
