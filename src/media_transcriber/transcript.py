from __future__ import annotations

"""Assembles per-chunk results into the final transcript."""

from typing import Iterable

from .asr.types import ChunkResult

ERROR_MARKER = "[Error in transcription]"
NO_TRANSCRIPTION = "No transcription generated"


def assemble_transcript(results: Iterable[ChunkResult]) -> str:
    """Join chunk texts in order with single spaces.

    A failed chunk contributes ``ERROR_MARKER`` in its place. Chunks that
    recognized nothing contribute nothing. If no chunk succeeded, or the
    joined text is blank, ``NO_TRANSCRIPTION`` is returned instead of an
    empty string.
    """
    parts: list[str] = []
    succeeded = 0
    for result in sorted(results, key=lambda r: r.index):
        if result.failed:
            parts.append(ERROR_MARKER)
            continue
        succeeded += 1
        text = result.text.strip()
        if text:
            parts.append(text)

    transcript = " ".join(parts).strip()
    if succeeded == 0 or not transcript:
        return NO_TRANSCRIPTION
    return transcript


__all__ = ["ERROR_MARKER", "NO_TRANSCRIPTION", "assemble_transcript"]
