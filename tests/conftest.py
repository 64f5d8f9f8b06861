"""
pytest configuration: shared fixtures for media-transcriber tests.
"""

import dataclasses
import os
from pathlib import Path
from typing import Callable, List, Sequence, Union

# Settings are read at import time; keep tests off the real model and
# off the one-second progress poll.
os.environ.setdefault("ASR_PROVIDER", "mock")
os.environ.setdefault("PROGRESS_BACKEND", "memory")
os.environ.setdefault("PROGRESS_POLL_INTERVAL", "0")

import numpy as np
import pytest
import soundfile as sf

from media_transcriber.asr.providers.base import AsrProvider
from media_transcriber.asr.types import AsrOptions, AsrResult
from media_transcriber.settings import Settings, load_settings

Outcome = Union[str, Exception]


class ScriptedAsrProvider(AsrProvider):
    """Chunk provider that replays a fixed list of texts or exceptions."""

    name = "scripted"

    def __init__(self, outcomes: Sequence[Outcome]) -> None:
        self._outcomes = list(outcomes)
        self.calls: List[int] = []

    async def transcribe(self, *, audio: np.ndarray, options: AsrOptions) -> AsrResult:
        self.calls.append(len(audio))
        outcome = self._outcomes[len(self.calls) - 1] if len(self.calls) <= len(self._outcomes) else ""
        if isinstance(outcome, Exception):
            raise outcome
        return AsrResult(text=outcome, provider=self.name)


@pytest.fixture
def make_provider() -> Callable[[Sequence[Outcome]], ScriptedAsrProvider]:
    return ScriptedAsrProvider


@pytest.fixture
def work_dir(tmp_path: Path) -> Path:
    path = tmp_path / "work"
    path.mkdir()
    return path


@pytest.fixture
def write_wav(tmp_path: Path) -> Callable[..., Path]:
    """Write a sine-wave WAV and return its path."""

    def _write(name: str = "speech.wav", *, seconds: float = 1.0, sample_rate: int = 16000, channels: int = 1) -> Path:
        t = np.arange(int(seconds * sample_rate), dtype=np.float32) / sample_rate
        tone = (0.25 * np.sin(2 * np.pi * 440.0 * t)).astype(np.float32)
        data = tone if channels == 1 else np.stack([tone] * channels, axis=1)
        path = tmp_path / name
        sf.write(str(path), data, sample_rate, subtype="PCM_16")
        return path

    return _write


@pytest.fixture
def app_settings(work_dir: Path) -> Settings:
    base = load_settings()
    return dataclasses.replace(
        base,
        upload=dataclasses.replace(base.upload, tmp_dir=str(work_dir)),
        audio=dataclasses.replace(base.audio, chunk_seconds=30.0),
        asr=dataclasses.replace(base.asr, provider="mock", whisper_preload=False),
        progress=dataclasses.replace(base.progress, backend="memory", poll_interval_seconds=0.0),
    )


def pytest_configure(config):
    config.addinivalue_line("markers", "unit: unit tests")
    config.addinivalue_line("markers", "integration: integration tests")
