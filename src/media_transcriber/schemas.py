from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field


class TranscriptResponse(BaseModel):
    transcript: str


class ErrorResponse(BaseModel):
    error: str
    details: Optional[str] = None


class ProgressEvent(BaseModel):
    progress: int = Field(ge=0, le=100)


class HealthResponse(BaseModel):
    status: str = "ok"
    service: str = "media-transcriber"
    asr_provider: str
    progress_backend: str
    chunk_seconds: float
    ffmpeg_available: bool
