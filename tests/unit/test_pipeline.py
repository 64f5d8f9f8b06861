from pathlib import Path

import pytest

from media_transcriber.asr.providers.base import AsrProvider
from media_transcriber.asr.service import AsrService
from media_transcriber.asr.types import AsrOptions, AsrResult
from media_transcriber.errors import (
    ExtractionFailed,
    ServerError,
    TranscriptionCancelled,
    TranscriptionFailed,
    UnsupportedFormat,
)
from media_transcriber.media.extract import AudioExtractor
from media_transcriber.media.ingest import IngestLimits, UploadIngestor
from media_transcriber.media.normalizer import MediaNormalizer
from media_transcriber.media.types import UploadedMedia
from media_transcriber.pipeline import JobState, TranscriptionPipeline
from media_transcriber.progress import InMemoryProgressTracker
from media_transcriber.transcript import NO_TRANSCRIPTION


class RecordingTracker(InMemoryProgressTracker):
    def __init__(self) -> None:
        super().__init__()
        self.history: list[int] = []

    async def set(self, session_id: str, percent: float) -> int:
        value = await super().set(session_id, percent)
        self.history.append(value)
        return value


class WholeFileProvider(AsrProvider):
    name = "whole"
    whole_file = True

    def __init__(self, text: str = "", error: Exception | None = None) -> None:
        self.text = text
        self.error = error
        self.seen: list[tuple[str, str]] = []

    async def transcribe_file(self, *, path: str, filename: str, options: AsrOptions) -> AsrResult:
        self.seen.append((path, filename))
        assert Path(path).exists()
        if self.error is not None:
            raise self.error
        return AsrResult(text=self.text, provider=self.name)


def _pipeline(work_dir: Path, provider: AsrProvider, *, tracker=None, chunk_seconds: int = 30) -> TranscriptionPipeline:
    return TranscriptionPipeline(
        ingestor=UploadIngestor(limits=IngestLimits(max_bytes=50 * 1024 * 1024), tmp_dir=str(work_dir)),
        extractor=AudioExtractor(target_sample_rate=16000, tmp_dir=str(work_dir)),
        normalizer=MediaNormalizer(target_sample_rate=16000),
        asr=AsrService(provider=provider),
        chunk_samples=16000 * chunk_seconds,
        progress=tracker,
    )


def _media(path: Path, filename: str | None = None) -> UploadedMedia:
    return UploadedMedia(data=path.read_bytes(), filename=filename or path.name)


def _fake_extract(work_dir: Path, source_wav: Path):
    async def extract(source_path: str) -> str:
        target = work_dir / "audio-extracted.wav"
        target.write_bytes(source_wav.read_bytes())
        return str(target)

    return extract


@pytest.mark.asyncio
async def test_45_second_wav_is_transcribed_in_two_chunks(write_wav, work_dir, make_provider):
    wav = write_wav("talk.wav", seconds=45)
    provider = make_provider([" first part ", "second part"])
    tracker = RecordingTracker()

    job = await _pipeline(work_dir, provider, tracker=tracker).run(_media(wav), session_id="sess-1")

    assert provider.calls == [16000 * 30, 16000 * 15]
    assert job.transcript == "first part second part"
    assert job.state is JobState.DONE
    assert (job.chunks_total, job.chunks_done, job.chunks_failed) == (2, 2, 0)
    assert list(work_dir.iterdir()) == []
    assert tracker.history == sorted(tracker.history)
    assert tracker.history[-1] == 100
    assert await tracker.get("sess-1") == 100


@pytest.mark.asyncio
async def test_fifteen_second_window_profile(write_wav, work_dir, make_provider):
    wav = write_wav("talk.wav", seconds=45)
    provider = make_provider(["a", "b", "c"])

    job = await _pipeline(work_dir, provider, chunk_seconds=15).run(_media(wav))

    assert provider.calls == [16000 * 15] * 3
    assert job.transcript == "a b c"


@pytest.mark.asyncio
async def test_failed_chunk_does_not_abort_job(write_wav, work_dir, make_provider):
    wav = write_wav("talk.wav", seconds=65)
    provider = make_provider(["hello", RuntimeError("cuda oom"), "world"])

    job = await _pipeline(work_dir, provider).run(_media(wav))

    assert job.transcript == "hello [Error in transcription] world"
    assert job.chunks_failed == 1
    assert job.state is JobState.DONE


@pytest.mark.asyncio
async def test_every_chunk_failing_yields_sentinel(write_wav, work_dir, make_provider):
    wav = write_wav("talk.wav", seconds=5)
    provider = make_provider([RuntimeError("nope")])

    job = await _pipeline(work_dir, provider).run(_media(wav))

    assert job.transcript == NO_TRANSCRIPTION


@pytest.mark.asyncio
async def test_stereo_44k_upload_is_normalized_before_chunking(write_wav, work_dir, make_provider):
    wav = write_wav("music.wav", seconds=2, sample_rate=44100, channels=2)
    provider = make_provider(["la la"])

    job = await _pipeline(work_dir, provider).run(_media(wav))

    assert abs(provider.calls[0] - 32000) <= 1
    assert job.transcript == "la la"


@pytest.mark.asyncio
async def test_unsupported_extension_fails_without_temp_files(work_dir, make_provider):
    tracker = RecordingTracker()
    media = UploadedMedia(data=b"whatever", filename="notes.xyz")

    with pytest.raises(UnsupportedFormat):
        await _pipeline(work_dir, make_provider([]), tracker=tracker).run(media, session_id="s")

    assert list(work_dir.iterdir()) == []
    assert tracker.history == [100]


@pytest.mark.asyncio
async def test_video_upload_extracts_then_cleans_both_files(monkeypatch, write_wav, work_dir, make_provider):
    wav = write_wav("source.wav", seconds=3)
    pipeline = _pipeline(work_dir, make_provider(["from video"]))
    monkeypatch.setattr(pipeline._extractor, "extract", _fake_extract(work_dir, wav))

    job = await pipeline.run(UploadedMedia(data=b"\x00\x00\x00\x18ftypmp42", filename="clip.mp4"))

    assert job.transcript == "from video"
    assert len(job.temp_paths) == 2
    assert list(work_dir.iterdir()) == []


@pytest.mark.asyncio
async def test_extraction_failure_is_surfaced_and_cleaned(monkeypatch, work_dir, make_provider):
    pipeline = _pipeline(work_dir, make_provider([]))

    async def broken(source_path: str) -> str:
        raise ExtractionFailed(details="Invalid data found when processing input")

    monkeypatch.setattr(pipeline._extractor, "extract", broken)

    with pytest.raises(ExtractionFailed):
        await pipeline.run(UploadedMedia(data=b"garbage", filename="clip.mov"))

    assert list(work_dir.iterdir()) == []


@pytest.mark.asyncio
async def test_undecodable_audio_is_transcoded_first(monkeypatch, write_wav, work_dir, make_provider):
    wav = write_wav("source.wav", seconds=1)
    pipeline = _pipeline(work_dir, make_provider(["from m4a"]))
    monkeypatch.setattr(pipeline._extractor, "extract", _fake_extract(work_dir, wav))

    job = await pipeline.run(UploadedMedia(data=b"\x00\x00\x00\x20ftypM4A junk", filename="memo.m4a"))

    assert job.transcript == "from m4a"
    assert list(work_dir.iterdir()) == []


@pytest.mark.asyncio
async def test_cancellation_between_chunks_cleans_up(write_wav, work_dir, make_provider):
    wav = write_wav("talk.wav", seconds=70)
    provider = make_provider(["one", "two", "three"])
    tracker = RecordingTracker()

    async def disconnected_after_first_chunk() -> bool:
        return len(provider.calls) >= 1

    with pytest.raises(TranscriptionCancelled):
        await _pipeline(work_dir, provider, tracker=tracker).run(
            _media(wav), session_id="s", is_cancelled=disconnected_after_first_chunk
        )

    assert len(provider.calls) == 1
    assert list(work_dir.iterdir()) == []
    assert tracker.history[-1] == 100


@pytest.mark.asyncio
async def test_whole_file_backend_skips_chunking(write_wav, work_dir):
    wav = write_wav("lecture.wav", seconds=45)
    provider = WholeFileProvider(text="  entire lecture ")
    tracker = RecordingTracker()

    job = await _pipeline(work_dir, provider, tracker=tracker).run(_media(wav), session_id="s")

    assert job.transcript == "entire lecture"
    assert job.chunks_total == 1
    assert provider.seen[0][1] == "lecture.wav"
    assert 50 in tracker.history
    assert list(work_dir.iterdir()) == []


@pytest.mark.asyncio
async def test_whole_file_backend_sends_extracted_audio_for_video(monkeypatch, write_wav, work_dir):
    wav = write_wav("source.wav", seconds=1)
    provider = WholeFileProvider(text="hi")
    pipeline = _pipeline(work_dir, provider)
    monkeypatch.setattr(pipeline._extractor, "extract", _fake_extract(work_dir, wav))

    await pipeline.run(UploadedMedia(data=b"video", filename="clip.webm"))

    path, filename = provider.seen[0]
    assert filename == "audio.wav"
    assert path.endswith("audio-extracted.wav")
    assert list(work_dir.iterdir()) == []


@pytest.mark.asyncio
async def test_whole_file_failure_aborts_job(write_wav, work_dir):
    wav = write_wav("lecture.wav", seconds=1)
    pipeline = _pipeline(work_dir, WholeFileProvider(error=ConnectionError("refused")))

    with pytest.raises(TranscriptionFailed):
        await pipeline.run(_media(wav))

    assert list(work_dir.iterdir()) == []


@pytest.mark.asyncio
async def test_unexpected_error_becomes_server_error(monkeypatch, write_wav, work_dir, make_provider):
    wav = write_wav("talk.wav", seconds=1)
    pipeline = _pipeline(work_dir, make_provider(["x"]))

    async def explode(path: str):
        raise MemoryError("too big")

    monkeypatch.setattr(pipeline._normalizer, "load", explode)

    with pytest.raises(ServerError):
        await pipeline.run(_media(wav))

    assert list(work_dir.iterdir()) == []


@pytest.mark.asyncio
async def test_progress_failures_do_not_fail_the_job(mocker, write_wav, work_dir, make_provider):
    wav = write_wav("talk.wav", seconds=1)
    tracker = InMemoryProgressTracker()
    mocker.patch.object(tracker, "set", side_effect=ConnectionError("redis down"))

    job = await _pipeline(work_dir, make_provider(["ok"]), tracker=tracker).run(_media(wav), session_id="s")

    assert job.transcript == "ok"


@pytest.mark.asyncio
async def test_corrupt_audio_reports_decode_failure(monkeypatch, work_dir, make_provider):
    pipeline = _pipeline(work_dir, make_provider([]))

    async def transcode_to_garbage(source_path: str) -> str:
        target = work_dir / "audio-extracted.wav"
        target.write_bytes(b"not a wav either")
        return str(target)

    monkeypatch.setattr(pipeline._extractor, "extract", transcode_to_garbage)

    with pytest.raises(ExtractionFailed) as excinfo:
        await pipeline.run(UploadedMedia(data=b"\x00broken m4a", filename="memo.m4a"))

    assert excinfo.value.status_code == 400
    assert excinfo.value.message.startswith("Failed to decode audio file.")
    assert "video" not in excinfo.value.message
    assert list(work_dir.iterdir()) == []


@pytest.mark.asyncio
async def test_finish_marks_rejected_session_complete(work_dir, make_provider):
    tracker = RecordingTracker()
    pipeline = _pipeline(work_dir, make_provider([]), tracker=tracker)

    await pipeline.finish("rejected")
    await pipeline.finish(None)

    assert await tracker.get("rejected") == 100
    assert tracker.history == [100]
