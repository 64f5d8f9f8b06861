from __future__ import annotations

import asyncio
import logging
import math
from typing import Tuple

import numpy as np
import resampy
import soundfile as sf

from .types import NormalizedAudio

logger = logging.getLogger(__name__)

_SQRT2 = math.sqrt(2.0)


class UndecodableAudio(ValueError):
    """libsndfile could not read the container; caller may transcode first."""


def merge_channels(pcm: np.ndarray) -> np.ndarray:
    """Mix down to mono: ``sqrt(2) * (ch0 + ch1) / 2``.

    Only the first two channels take part; mono input is returned flat.
    """
    if pcm.ndim == 1:
        return pcm.astype(np.float32, copy=False)
    if pcm.shape[1] == 1:
        return pcm[:, 0].astype(np.float32, copy=False)
    left = pcm[:, 0].astype(np.float32, copy=False)
    right = pcm[:, 1].astype(np.float32, copy=False)
    return (_SQRT2 * (left + right) / 2.0).astype(np.float32)


class MediaNormalizer:
    """Turns decoded audio into mono float32 samples at the target rate."""

    def __init__(self, *, target_sample_rate: int = 16000) -> None:
        self._target_sample_rate = target_sample_rate

    @property
    def target_sample_rate(self) -> int:
        return self._target_sample_rate

    async def load(self, path: str) -> NormalizedAudio:
        pcm, sample_rate = await asyncio.to_thread(self._decode, path)
        return self.normalize(pcm, sample_rate)

    def normalize(self, pcm: np.ndarray, sample_rate: int) -> NormalizedAudio:
        mono = merge_channels(pcm)
        if sample_rate != self._target_sample_rate and mono.size > 0:
            mono = resampy.resample(mono, sample_rate, self._target_sample_rate).astype(np.float32)
        return NormalizedAudio(samples=np.ascontiguousarray(mono), sample_rate=self._target_sample_rate)

    def _decode(self, path: str) -> Tuple[np.ndarray, int]:
        try:
            audio_array, sample_rate = sf.read(path, dtype="float32", always_2d=True)
        except (sf.LibsndfileError, RuntimeError) as exc:
            logger.debug("transcribe.decode.unsupported", extra={"path": path}, exc_info=True)
            raise UndecodableAudio(f"cannot decode {path}") from exc
        return audio_array, int(sample_rate)


__all__ = ["MediaNormalizer", "UndecodableAudio", "merge_channels"]
