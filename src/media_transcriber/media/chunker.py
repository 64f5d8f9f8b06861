from __future__ import annotations

from typing import Iterator

from .types import AudioChunk, NormalizedAudio


def chunk_count(total_samples: int, window_samples: int) -> int:
    if window_samples <= 0:
        raise ValueError("window_samples must be positive")
    return -(-total_samples // window_samples)


def iter_chunks(audio: NormalizedAudio, window_samples: int) -> Iterator[AudioChunk]:
    """Yield non-overlapping windows in order; the last one may be shorter."""

    if window_samples <= 0:
        raise ValueError("window_samples must be positive")
    samples = audio.samples
    for index, offset in enumerate(range(0, len(samples), window_samples)):
        yield AudioChunk(
            index=index,
            samples=samples[offset : offset + window_samples],
            sample_rate=audio.sample_rate,
            offset=offset,
        )


__all__ = ["chunk_count", "iter_chunks"]
