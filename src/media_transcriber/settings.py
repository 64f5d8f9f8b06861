from __future__ import annotations

"""Runtime configuration helpers for media-transcriber."""

import os
import tempfile
from dataclasses import dataclass

_BOOL_TRUTHY = {"1", "true", "yes", "on"}

# every stage downstream of the normalizer, and the whisper models, assume 16 kHz mono
TARGET_SAMPLE_RATE = 16000


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in _BOOL_TRUTHY


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def _env_str(name: str) -> str | None:
    value = os.getenv(name)
    if value is None or not value.strip():
        return None
    return value.strip()


@dataclass(frozen=True)
class UploadSettings:
    max_bytes: int
    tmp_dir: str


@dataclass(frozen=True)
class AudioSettings:
    chunk_seconds: float

    @property
    def target_sample_rate(self) -> int:
        return TARGET_SAMPLE_RATE

    @property
    def chunk_samples(self) -> int:
        return max(1, int(self.target_sample_rate * self.chunk_seconds))


@dataclass(frozen=True)
class AsrSettings:
    provider: str
    default_lang: str | None
    whisper_model: str
    whisper_device: str
    whisper_compute_type: str
    whisper_beam_size: int
    whisper_cache_dir: str | None
    whisper_preload: bool
    remote_url: str | None
    remote_api_key: str | None
    remote_timeout: float


@dataclass(frozen=True)
class ProgressSettings:
    backend: str
    ttl_seconds: float
    poll_interval_seconds: float
    redis_host: str
    redis_port: int
    redis_db: int
    key_prefix: str


@dataclass(frozen=True)
class LoggingSettings:
    level: str
    format: str


@dataclass(frozen=True)
class Settings:
    upload: UploadSettings
    audio: AudioSettings
    asr: AsrSettings
    progress: ProgressSettings
    logging: LoggingSettings


def load_settings() -> Settings:
    """Load settings from environment variables with sensible defaults."""

    upload_settings = UploadSettings(
        max_bytes=_env_int("MAX_UPLOAD_BYTES", 50 * 1024 * 1024),
        tmp_dir=os.getenv("UPLOAD_TMP_DIR") or tempfile.gettempdir(),
    )

    audio_settings = AudioSettings(
        chunk_seconds=_env_float("CHUNK_SECONDS", 30.0),
    )

    asr_settings = AsrSettings(
        provider=os.getenv("ASR_PROVIDER", "whisper"),
        default_lang=_env_str("ASR_DEFAULT_LANG"),
        whisper_model=os.getenv("ASR_WHISPER_MODEL", "base"),
        whisper_device=os.getenv("ASR_WHISPER_DEVICE", "auto"),
        whisper_compute_type=os.getenv("ASR_WHISPER_COMPUTE_TYPE", "int8"),
        whisper_beam_size=_env_int("ASR_WHISPER_BEAM_SIZE", 1),
        whisper_cache_dir=_env_str("ASR_WHISPER_CACHE_DIR"),
        whisper_preload=_env_bool("ASR_WHISPER_PRELOAD", False),
        remote_url=_env_str("ASR_REMOTE_URL"),
        remote_api_key=_env_str("ASR_REMOTE_API_KEY"),
        remote_timeout=_env_float("ASR_REMOTE_TIMEOUT", 300.0),
    )

    progress_settings = ProgressSettings(
        backend=os.getenv("PROGRESS_BACKEND", "memory"),
        ttl_seconds=_env_float("PROGRESS_TTL_SECONDS", 3600.0),
        poll_interval_seconds=_env_float("PROGRESS_POLL_INTERVAL", 1.0),
        redis_host=os.getenv("REDIS_HOST", "localhost"),
        redis_port=_env_int("REDIS_PORT", 6379),
        redis_db=_env_int("REDIS_DB", 0),
        key_prefix=os.getenv("PROGRESS_KEY_PREFIX", "transcribe:progress:"),
    )

    logging_settings = LoggingSettings(
        level=os.getenv("LOG_LEVEL", "INFO").upper(),
        format=os.getenv("LOG_FORMAT", "%(asctime)s - %(name)s - %(levelname)s - %(message)s"),
    )

    return Settings(
        upload=upload_settings,
        audio=audio_settings,
        asr=asr_settings,
        progress=progress_settings,
        logging=logging_settings,
    )


settings = load_settings()

__all__ = [
    "Settings",
    "TARGET_SAMPLE_RATE",
    "UploadSettings",
    "AudioSettings",
    "AsrSettings",
    "ProgressSettings",
    "LoggingSettings",
    "settings",
    "load_settings",
]
