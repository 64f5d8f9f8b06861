from __future__ import annotations

"""Error taxonomy for the transcription request lifecycle.

Every error that can abort a request derives from ``TranscriptionError``
and carries the HTTP status and the message shown to the end user. The
route layer renders them; nothing below it knows about HTTP.
"""

from typing import Optional


class TranscriptionError(Exception):
    status_code: int = 500
    message: str = "Server error"

    def __init__(self, message: Optional[str] = None, *, details: Optional[str] = None) -> None:
        self.message = message or self.message
        self.details = details
        super().__init__(self.message)

    @property
    def is_client_error(self) -> bool:
        return 400 <= self.status_code < 500

    def to_payload(self) -> dict[str, str]:
        payload = {"error": self.message}
        if not self.is_client_error:
            payload["details"] = self.details or self.message
        return payload


class NoFile(TranscriptionError):
    status_code = 400
    message = "No file uploaded"


class EmptyFile(TranscriptionError):
    status_code = 400
    message = "Uploaded file is empty"


class FileTooLarge(TranscriptionError):
    status_code = 400
    message = "File too large."

    @classmethod
    def for_limit(cls, max_bytes: int) -> "FileTooLarge":
        limit_mb = max_bytes / (1024 * 1024)
        limit_text = f"{limit_mb:g}MB" if limit_mb >= 1 else f"{max_bytes} bytes"
        return cls(f"File too large. Please upload a file smaller than {limit_text}.")


class UnsupportedFormat(TranscriptionError):
    status_code = 400
    message = "Unsupported file format. Please upload a video or audio file."


class ExtractionFailed(TranscriptionError):
    status_code = 400
    message = (
        "Failed to extract audio from video. Please try uploading an audio file instead "
        "or ensure the video format is supported."
    )


class TempFileIOError(TranscriptionError):
    status_code = 500
    message = "Failed to save uploaded file. Please try again."


class TranscriptionFailed(TranscriptionError):
    status_code = 500
    message = "Failed to transcribe audio. Please try again."


class TranscriptionCancelled(TranscriptionError):
    # nginx convention for "client closed request"; nobody is left to read it
    status_code = 499
    message = "Client disconnected"


class ServerError(TranscriptionError):
    status_code = 500
    message = "Server error"


class PerChunkTranscriptionError(Exception):
    """Raised by a provider for a single chunk; never aborts the job."""

    def __init__(self, index: int, cause: BaseException) -> None:
        self.index = index
        self.cause = cause
        super().__init__(f"chunk {index} failed: {cause!r}")


__all__ = [
    "TranscriptionError",
    "NoFile",
    "EmptyFile",
    "FileTooLarge",
    "UnsupportedFormat",
    "ExtractionFailed",
    "TempFileIOError",
    "TranscriptionFailed",
    "TranscriptionCancelled",
    "ServerError",
    "PerChunkTranscriptionError",
]
