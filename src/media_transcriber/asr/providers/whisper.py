from __future__ import annotations

import asyncio
import threading
from typing import Iterable, Optional

import numpy as np

from ..types import AsrOptions, AsrResult
from .base import AsrProvider

try:  # pragma: no cover - optional dependency
    from faster_whisper import WhisperModel
except Exception:  # pragma: no cover - guard for environments without faster-whisper
    WhisperModel = None  # type: ignore[assignment]


class WhisperAsrProvider(AsrProvider):
    """Local ASR provider backed by faster-whisper.

    The model is created once per provider instance on first use. Each
    chunk is decoded on its own; no text is carried across chunks.
    """

    name = "whisper"

    def __init__(
        self,
        *,
        model: str = "base",
        device: str = "auto",
        compute_type: str = "int8",
        beam_size: int = 1,
        temperature: float = 0.0,
        cache_dir: Optional[str] = None,
        default_sample_rate: int = 16000,
    ) -> None:
        if WhisperModel is None:
            raise RuntimeError("faster-whisper must be installed to use WhisperAsrProvider")

        self._model_name = model
        self._device = device
        self._compute_type = compute_type
        self._beam_size = max(1, beam_size)
        self._temperature = max(0.0, temperature)
        self._cache_dir = cache_dir
        self._default_sample_rate = default_sample_rate

        self._model: WhisperModel | None = None
        self._model_lock = threading.Lock()

    async def transcribe(self, *, audio: np.ndarray, options: AsrOptions) -> AsrResult:
        sample_rate = options.sample_rate or self._default_sample_rate
        if sample_rate != 16000:
            raise ValueError(f"whisper expects 16000 Hz audio, got {sample_rate}")

        segments, info = await asyncio.to_thread(self._run_transcribe, audio, options.lang)

        text_parts: list[str] = []
        for segment in segments:
            segment_text = (getattr(segment, "text", "") or "").strip()
            if segment_text:
                text_parts.append(segment_text)

        return AsrResult(
            text=" ".join(text_parts).strip(),
            duration_seconds=getattr(info, "duration", None),
            provider=self.name,
        )

    async def warm_up(self) -> None:
        await asyncio.to_thread(self._ensure_model)

    @property
    def model_loaded(self) -> bool:
        return self._model is not None

    def _run_transcribe(self, audio: np.ndarray, language: Optional[str]) -> tuple[Iterable[object], object]:
        model = self._ensure_model()
        audio_array = np.ascontiguousarray(audio, dtype=np.float32)

        segments, info = model.transcribe(
            audio_array,
            language=language,
            beam_size=self._beam_size,
            temperature=self._temperature,
            condition_on_previous_text=False,
            without_timestamps=True,
            task="transcribe",
        )
        # segments is a lazy generator; decoding happens while it is consumed
        return list(segments), info

    def _ensure_model(self) -> WhisperModel:
        if self._model is None:
            with self._model_lock:
                if self._model is None:
                    self._model = WhisperModel(
                        self._model_name,
                        device=self._device,
                        compute_type=self._compute_type,
                        download_root=self._cache_dir,
                    )
        return self._model
