from __future__ import annotations

import logging
from typing import Optional

from ..errors import PerChunkTranscriptionError, TranscriptionFailed
from ..media.types import AudioChunk
from ..settings import AsrSettings
from .providers.base import AsrProvider
from .providers.mock import MockAsrProvider
from .providers.remote import RemoteAsrProvider
from .providers.whisper import WhisperAsrProvider
from .types import AsrOptions, AsrResult, ChunkResult

logger = logging.getLogger(__name__)


class AsrService:
    """Coordinates ASR provider usage."""

    def __init__(self, *, provider: Optional[AsrProvider] = None, default_lang: Optional[str] = None) -> None:
        self._provider = provider or MockAsrProvider()
        self._default_lang = default_lang

    @classmethod
    def from_settings(cls, cfg: AsrSettings | None, *, sample_rate: int = 16000) -> "AsrService":
        provider: Optional[AsrProvider] = None
        default_lang = None
        if cfg is not None:
            default_lang = cfg.default_lang
            provider_name = (cfg.provider or "whisper").strip().lower()
            if provider_name in {"mock", "fake"}:
                provider = MockAsrProvider()
            elif provider_name in {"whisper", "faster-whisper", "local"}:
                provider = WhisperAsrProvider(
                    model=cfg.whisper_model,
                    device=cfg.whisper_device,
                    compute_type=cfg.whisper_compute_type,
                    beam_size=cfg.whisper_beam_size,
                    cache_dir=cfg.whisper_cache_dir,
                    default_sample_rate=sample_rate,
                )
            elif provider_name in {"remote", "http"}:
                provider = RemoteAsrProvider(
                    url=cfg.remote_url or "",
                    api_key=cfg.remote_api_key,
                    timeout=cfg.remote_timeout,
                )
            else:
                raise RuntimeError(f"unsupported ASR provider: {cfg.provider}")
        return cls(provider=provider, default_lang=default_lang)

    @property
    def provider(self) -> AsrProvider:
        return self._provider

    @property
    def whole_file(self) -> bool:
        return bool(getattr(self._provider, "whole_file", False))

    def _options(self, sample_rate: Optional[int] = None) -> AsrOptions:
        return AsrOptions(lang=self._default_lang, sample_rate=sample_rate)

    async def transcribe_chunk(self, chunk: AudioChunk) -> ChunkResult:
        """Transcribe one chunk; a failure becomes a ChunkResult error."""

        try:
            result = await self._provider.transcribe(
                audio=chunk.samples,
                options=self._options(chunk.sample_rate),
            )
        except Exception as exc:
            logger.exception(
                "transcribe.chunk_failed",
                extra={"chunk_index": chunk.index, "provider": self._provider.name},
            )
            return ChunkResult(index=chunk.index, error=PerChunkTranscriptionError(chunk.index, exc))
        return ChunkResult(index=chunk.index, text=(result.text or "").strip())

    async def transcribe_file(self, path: str, *, filename: str) -> AsrResult:
        """Whole-file transcription; any failure aborts with TranscriptionFailed."""

        try:
            return await self._provider.transcribe_file(path=path, filename=filename, options=self._options())
        except Exception as exc:
            logger.exception("transcribe.remote_failed", extra={"provider": self._provider.name})
            raise TranscriptionFailed(details=str(exc) or repr(exc)) from exc

    async def warm_up(self) -> None:
        await self._provider.warm_up()

    async def aclose(self) -> None:
        await self._provider.aclose()
