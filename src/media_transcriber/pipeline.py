from __future__ import annotations

"""Drives one upload from validation to the assembled transcript."""

import enum
import logging
import time
from dataclasses import dataclass, field
from typing import Awaitable, Callable, List, Optional

from .asr.service import AsrService
from .asr.types import ChunkResult
from .errors import ExtractionFailed, ServerError, TranscriptionCancelled, TranscriptionError
from .media.chunker import chunk_count, iter_chunks
from .media.extract import AudioExtractor
from .media.ingest import UploadIngestor, remove_quietly
from .media.normalizer import MediaNormalizer, UndecodableAudio
from .media.types import MediaKind, NormalizedAudio, UploadedMedia
from .progress import ProgressTracker
from .transcript import assemble_transcript

logger = logging.getLogger(__name__)

CancelProbe = Callable[[], Awaitable[bool]]

# progress milestones (percent)
STAGED_PROGRESS = 5
EXTRACTED_PROGRESS = 15
DECODED_PROGRESS = 20
CHUNKS_DONE_PROGRESS = 95
REMOTE_SENT_PROGRESS = 50

AUDIO_DECODE_FAILED = "Failed to decode audio file. Please try converting it to WAV or MP3 and upload again."


class JobState(str, enum.Enum):
    RECEIVED = "received"
    STAGED = "staged"
    EXTRACTING = "extracting"
    NORMALIZING = "normalizing"
    CHUNKING = "chunking"
    TRANSCRIBING = "transcribing"
    ASSEMBLING = "assembling"
    DONE = "done"
    FAILED = "failed"


@dataclass
class TranscriptionJob:
    media: UploadedMedia
    session_id: Optional[str] = None
    state: JobState = JobState.RECEIVED
    temp_paths: List[str] = field(default_factory=list)
    chunks_total: int = 0
    chunks_done: int = 0
    chunks_failed: int = 0
    transcript: Optional[str] = None
    error: Optional[TranscriptionError] = None


class TranscriptionPipeline:
    """Stage, extract, normalize, chunk, transcribe, assemble; always clean up.

    Chunks are transcribed strictly one after another. Temporary files
    created along the way are deleted on every exit path.
    """

    def __init__(
        self,
        *,
        ingestor: UploadIngestor,
        extractor: AudioExtractor,
        normalizer: MediaNormalizer,
        asr: AsrService,
        chunk_samples: int,
        progress: Optional[ProgressTracker] = None,
    ) -> None:
        if chunk_samples <= 0:
            raise ValueError("chunk_samples must be positive")
        self._ingestor = ingestor
        self._extractor = extractor
        self._normalizer = normalizer
        self._asr = asr
        self._chunk_samples = chunk_samples
        self._progress = progress

    @property
    def ingestor(self) -> UploadIngestor:
        return self._ingestor

    @property
    def chunk_samples(self) -> int:
        return self._chunk_samples

    async def run(
        self,
        media: UploadedMedia,
        *,
        session_id: Optional[str] = None,
        is_cancelled: Optional[CancelProbe] = None,
    ) -> TranscriptionJob:
        job = TranscriptionJob(media=media, session_id=session_id)
        started = time.perf_counter()
        try:
            kind = self._ingestor.validate(media)
            await self._check_cancelled(job, is_cancelled)

            staged_path = self._ingestor.stage(media)
            job.temp_paths.append(staged_path)
            self._enter(job, JobState.STAGED)
            await self._report(job.session_id, STAGED_PROGRESS)

            audio_path = staged_path
            upload_name = media.filename
            if kind is MediaKind.VIDEO:
                self._enter(job, JobState.EXTRACTING)
                audio_path = await self._extractor.extract(staged_path)
                job.temp_paths.append(audio_path)
                upload_name = "audio.wav"
                await self._report(job.session_id, EXTRACTED_PROGRESS)

            await self._check_cancelled(job, is_cancelled)
            if self._asr.whole_file:
                job.transcript = await self._transcribe_whole(job, audio_path, upload_name)
            else:
                job.transcript = await self._transcribe_chunked(job, audio_path, is_cancelled)

            self._enter(job, JobState.DONE)
            logger.info(
                "transcribe.done",
                extra={
                    "session_id": session_id,
                    "upload_name": media.filename,
                    "chunks": job.chunks_total,
                    "chunks_failed": job.chunks_failed,
                    "elapsed_ms": round((time.perf_counter() - started) * 1000.0, 1),
                },
            )
            return job
        except TranscriptionError as exc:
            job.error = exc
            self._enter(job, JobState.FAILED)
            raise
        except Exception as exc:
            logger.exception("transcribe.unexpected_error", extra={"session_id": session_id})
            job.error = ServerError(details=str(exc) or repr(exc))
            self._enter(job, JobState.FAILED)
            raise job.error from exc
        finally:
            remove_quietly(job.temp_paths)
            await self._report(job.session_id, 100)

    async def _transcribe_chunked(
        self,
        job: TranscriptionJob,
        audio_path: str,
        is_cancelled: Optional[CancelProbe],
    ) -> str:
        self._enter(job, JobState.NORMALIZING)
        audio = await self._load_audio(job, audio_path)
        await self._report(job.session_id, DECODED_PROGRESS)

        self._enter(job, JobState.CHUNKING)
        job.chunks_total = chunk_count(len(audio.samples), self._chunk_samples)
        logger.info(
            "transcribe.chunking",
            extra={
                "session_id": job.session_id,
                "duration_seconds": round(audio.duration_seconds, 2),
                "chunks": job.chunks_total,
            },
        )

        self._enter(job, JobState.TRANSCRIBING)
        results: List[ChunkResult] = []
        for chunk in iter_chunks(audio, self._chunk_samples):
            await self._check_cancelled(job, is_cancelled)
            result = await self._asr.transcribe_chunk(chunk)
            results.append(result)
            job.chunks_done += 1
            if result.failed:
                job.chunks_failed += 1
            span = CHUNKS_DONE_PROGRESS - DECODED_PROGRESS
            await self._report(job.session_id, DECODED_PROGRESS + span * job.chunks_done / job.chunks_total)

        self._enter(job, JobState.ASSEMBLING)
        return assemble_transcript(results)

    async def _transcribe_whole(self, job: TranscriptionJob, audio_path: str, upload_name: str) -> str:
        self._enter(job, JobState.TRANSCRIBING)
        job.chunks_total = 1
        await self._report(job.session_id, REMOTE_SENT_PROGRESS)
        result = await self._asr.transcribe_file(audio_path, filename=upload_name)
        job.chunks_done = 1

        self._enter(job, JobState.ASSEMBLING)
        return assemble_transcript([ChunkResult(index=0, text=result.text)])

    async def _load_audio(self, job: TranscriptionJob, audio_path: str) -> NormalizedAudio:
        try:
            return await self._normalizer.load(audio_path)
        except UndecodableAudio:
            logger.info("transcribe.decode.transcoding", extra={"upload_name": job.media.filename})

        # containers libsndfile cannot read (m4a, aac, wma, ...) go through ffmpeg first
        transcoded = await self._extractor.extract(audio_path)
        job.temp_paths.append(transcoded)
        try:
            return await self._normalizer.load(transcoded)
        except UndecodableAudio as exc:
            raise ExtractionFailed(AUDIO_DECODE_FAILED, details=str(exc)) from exc

    async def _check_cancelled(self, job: TranscriptionJob, is_cancelled: Optional[CancelProbe]) -> None:
        if is_cancelled is not None and await is_cancelled():
            logger.info("transcribe.cancelled", extra={"session_id": job.session_id, "state": job.state.value})
            raise TranscriptionCancelled()

    async def finish(self, session_id: Optional[str]) -> None:
        """Mark a session complete for uploads rejected before ``run``."""
        await self._report(session_id, 100)

    async def _report(self, session_id: Optional[str], percent: float) -> None:
        if self._progress is None or not session_id:
            return
        try:
            await self._progress.set(session_id, percent)
        except Exception:
            # progress is advisory; a broken store must not fail the upload
            logger.warning("transcribe.progress.update_failed", extra={"session_id": session_id}, exc_info=True)

    def _enter(self, job: TranscriptionJob, state: JobState) -> None:
        logger.debug(
            "transcribe.state",
            extra={"session_id": job.session_id, "from_state": job.state.value, "to_state": state.value},
        )
        job.state = state


__all__ = ["JobState", "TranscriptionJob", "TranscriptionPipeline"]
