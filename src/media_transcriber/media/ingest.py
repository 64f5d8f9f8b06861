from __future__ import annotations

import logging
import os
import tempfile
from dataclasses import dataclass
from typing import Awaitable, Callable, Iterable, Optional

from ..errors import EmptyFile, FileTooLarge, NoFile, TempFileIOError, UnsupportedFormat
from .types import MediaKind, UploadedMedia, classify_extension

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class IngestLimits:
    max_bytes: int


class UploadIngestor:
    """Validates uploads and stages them to temporary storage."""

    def __init__(self, *, limits: IngestLimits, tmp_dir: Optional[str] = None) -> None:
        self._limits = limits
        self._tmp_dir = tmp_dir

    @property
    def limits(self) -> IngestLimits:
        return self._limits

    async def from_upload(
        self,
        *,
        file_reader: Callable[[int], Awaitable[bytes]],
        filename: Optional[str],
        content_type: Optional[str] = None,
    ) -> UploadedMedia:
        # one byte past the limit is enough to tell "too large" apart
        data = await file_reader(self._limits.max_bytes + 1)
        return self.from_bytes(data=data, filename=filename, content_type=content_type)

    def from_bytes(self, *, data: bytes, filename: Optional[str], content_type: Optional[str] = None) -> UploadedMedia:
        if not filename:
            raise NoFile()
        media = UploadedMedia(data=data, filename=filename, content_type=content_type)
        self.validate(media)
        return media

    def validate(self, media: UploadedMedia) -> MediaKind:
        if media.size == 0:
            raise EmptyFile()
        if media.size > self._limits.max_bytes:
            logger.info("transcribe.upload.too_large", extra={"upload_bytes": media.size})
            raise FileTooLarge.for_limit(self._limits.max_bytes)
        kind = classify_extension(media.extension)
        if kind is None:
            raise UnsupportedFormat()
        return kind

    def stage(self, media: UploadedMedia) -> str:
        """Write the upload to a temp file and return its path."""

        suffix = f".{media.extension}" if media.extension else ""
        try:
            fd, path = tempfile.mkstemp(prefix="upload-", suffix=suffix, dir=self._tmp_dir)
        except OSError as exc:
            logger.error("transcribe.stage.failed", extra={"upload_name": media.filename}, exc_info=True)
            raise TempFileIOError(details=str(exc)) from exc
        try:
            with os.fdopen(fd, "wb") as fh:
                fh.write(media.data)
        except OSError as exc:
            logger.error("transcribe.stage.failed", extra={"upload_name": media.filename}, exc_info=True)
            remove_quietly([path])
            raise TempFileIOError(details=str(exc)) from exc
        return path


def remove_quietly(paths: Iterable[str]) -> None:
    """Best-effort delete; failures are logged and never raised."""

    for path in paths:
        try:
            os.unlink(path)
        except FileNotFoundError:
            continue
        except OSError:
            logger.warning("transcribe.cleanup_failed", extra={"path": path}, exc_info=True)


__all__ = ["IngestLimits", "UploadIngestor", "remove_quietly"]
