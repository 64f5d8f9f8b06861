import asyncio
import logging
import os
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, File, Form, Request, UploadFile
from fastapi.responses import JSONResponse, StreamingResponse

from .asr import AsrService
from .errors import NoFile, ServerError, TranscriptionError
from .logging_setup import setup_logging
from .media import AudioExtractor, IngestLimits, MediaNormalizer, UploadIngestor
from .media.extract import check_ffmpeg_available
from .pipeline import TranscriptionPipeline
from .progress import ProgressTracker, build_progress_tracker
from .schemas import ErrorResponse, HealthResponse, ProgressEvent, TranscriptResponse
from .settings import Settings, load_settings

logger = logging.getLogger(__name__)

_ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
}


def _sse_format(event: ProgressEvent) -> bytes:
    return f"data: {event.model_dump_json()}\n\n".encode("utf-8")


def build_pipeline(cfg: Settings, *, asr_service: AsrService, progress: ProgressTracker) -> TranscriptionPipeline:
    return TranscriptionPipeline(
        ingestor=UploadIngestor(limits=IngestLimits(max_bytes=cfg.upload.max_bytes), tmp_dir=cfg.upload.tmp_dir),
        extractor=AudioExtractor(target_sample_rate=cfg.audio.target_sample_rate, tmp_dir=cfg.upload.tmp_dir),
        normalizer=MediaNormalizer(target_sample_rate=cfg.audio.target_sample_rate),
        asr=asr_service,
        chunk_samples=cfg.audio.chunk_samples,
        progress=progress,
    )


def create_app(
    cfg: Optional[Settings] = None,
    *,
    asr_service: Optional[AsrService] = None,
    progress: Optional[ProgressTracker] = None,
) -> FastAPI:
    cfg = cfg or load_settings()
    setup_logging(cfg.logging)

    asr_service = asr_service or AsrService.from_settings(cfg.asr, sample_rate=cfg.audio.target_sample_rate)
    progress = progress or build_progress_tracker(cfg.progress)
    pipeline = build_pipeline(cfg, asr_service=asr_service, progress=progress)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if cfg.asr.whisper_preload:
            logger.info("transcribe.model.preload", extra={"provider": asr_service.provider.name})
            await asr_service.warm_up()
        logger.info(
            "transcribe.startup",
            extra={"provider": asr_service.provider.name, "progress_backend": progress.name},
        )
        yield
        await asr_service.aclose()
        await progress.close()

    app = FastAPI(title="media-transcriber", lifespan=lifespan)
    app.state.settings = cfg
    app.state.asr_service = asr_service
    app.state.progress = progress
    app.state.pipeline = pipeline

    @app.exception_handler(TranscriptionError)
    async def _transcription_error_handler(_request: Request, exc: TranscriptionError) -> JSONResponse:
        if exc.is_client_error:
            logger.info("transcribe.rejected", extra={"error": exc.message, "status": exc.status_code})
        return JSONResponse(exc.to_payload(), status_code=exc.status_code)

    @app.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        return HealthResponse(
            asr_provider=asr_service.provider.name,
            progress_backend=progress.name,
            chunk_seconds=cfg.audio.chunk_seconds,
            ffmpeg_available=check_ffmpeg_available(),
        )

    @app.post("/transcribe", response_model=TranscriptResponse, responses=_ERROR_RESPONSES)
    async def transcribe(
        request: Request,
        file: Optional[UploadFile] = File(None),
        session_id: Optional[str] = Form(None, alias="sessionId"),
    ) -> TranscriptResponse:
        session_id = session_id or request.query_params.get("sessionId")
        if file is None:
            await pipeline.finish(session_id)
            raise NoFile()
        logger.info(
            "transcribe.received",
            extra={"upload_name": file.filename, "session_id": session_id, "content_type": file.content_type},
        )

        try:
            media = await pipeline.ingestor.from_upload(
                file_reader=file.read,
                filename=file.filename,
                content_type=file.content_type,
            )
        except TranscriptionError:
            await pipeline.finish(session_id)
            raise
        except Exception as exc:
            logger.exception("transcribe.read_failed", extra={"upload_name": file.filename})
            await pipeline.finish(session_id)
            raise ServerError(details=str(exc) or repr(exc)) from exc
        finally:
            await file.close()

        job = await pipeline.run(media, session_id=session_id, is_cancelled=request.is_disconnected)
        return TranscriptResponse(transcript=job.transcript or "")

    @app.get("/transcribe-progress")
    async def transcribe_progress(request: Request, sessionId: Optional[str] = None):  # noqa: N803
        if not sessionId:
            return JSONResponse({"error": "Session ID required"}, status_code=400)
        interval = max(0.0, cfg.progress.poll_interval_seconds)

        async def event_generator() -> AsyncGenerator[bytes, None]:
            while True:
                value = await progress.get(sessionId)
                yield _sse_format(ProgressEvent(progress=value))
                if value >= 100:
                    await progress.clear(sessionId)
                    return
                # Cooperative cancellation: stop if client disconnected
                if await request.is_disconnected():
                    return
                await asyncio.sleep(interval)

        headers = {"Cache-Control": "no-cache", "Connection": "keep-alive"}
        return StreamingResponse(event_generator(), media_type="text/event-stream", headers=headers)

    return app


def main() -> None:
    import uvicorn

    uvicorn.run(
        "media_transcriber.app:create_app",
        factory=True,
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8000")),
        reload=False,
    )


if __name__ == "__main__":
    main()
