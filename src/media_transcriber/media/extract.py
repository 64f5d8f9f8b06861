"""
FFmpeg-based audio extraction.

Demuxes the audio stream of any container ffmpeg understands into a
16-bit PCM WAV file at the target sample rate, mono. The output is a
new temporary file owned by the caller.
"""

import asyncio
import logging
import os
import shutil
import tempfile
from typing import Optional

import ffmpeg

from ..errors import ExtractionFailed

logger = logging.getLogger(__name__)


def check_ffmpeg_available() -> bool:
    """Return True if the ffmpeg executable is on PATH."""
    return shutil.which("ffmpeg") is not None


class AudioExtractor:
    def __init__(self, *, target_sample_rate: int = 16000, tmp_dir: Optional[str] = None) -> None:
        self._target_sample_rate = target_sample_rate
        self._tmp_dir = tmp_dir

    async def extract(self, source_path: str) -> str:
        """Extract audio to a temp WAV; raises ExtractionFailed on any ffmpeg error."""
        fd, audio_path = tempfile.mkstemp(prefix="audio-", suffix=".wav", dir=self._tmp_dir)
        os.close(fd)
        try:
            await asyncio.to_thread(self._run_ffmpeg, source_path, audio_path)
        except ffmpeg.Error as exc:
            _unlink(audio_path)
            stderr = exc.stderr.decode("utf-8", "replace") if exc.stderr else str(exc)
            logger.error("transcribe.extract.failed", extra={"source": source_path, "stderr": stderr[-2000:]})
            raise ExtractionFailed(details=stderr) from exc
        except OSError as exc:
            # ffmpeg binary missing or not executable
            _unlink(audio_path)
            logger.error("transcribe.extract.failed", extra={"source": source_path}, exc_info=True)
            raise ExtractionFailed(details=str(exc)) from exc
        except BaseException:
            # caller has not recorded the path yet
            _unlink(audio_path)
            raise
        logger.info("transcribe.extract.done", extra={"source": source_path, "audio_path": audio_path})
        return audio_path

    def _run_ffmpeg(self, source_path: str, audio_path: str) -> None:
        stream = ffmpeg.input(source_path).output(
            audio_path,
            vn=None,
            acodec="pcm_s16le",
            ac=1,
            ar=self._target_sample_rate,
            format="wav",
        )
        stream.run(capture_stdout=True, capture_stderr=True, overwrite_output=True, quiet=True)


def _unlink(path: str) -> None:
    try:
        os.unlink(path)
    except OSError:
        logger.warning("transcribe.cleanup_failed", extra={"path": path}, exc_info=True)


__all__ = ["AudioExtractor", "check_ffmpeg_available"]
