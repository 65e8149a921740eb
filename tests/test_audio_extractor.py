from __future__ import annotations

import asyncio
from pathlib import Path

import pytest

from huddle.core.errors import TranscodingError, TransferError
from huddle.services.audio import AudioExtractor, probe_duration

from conftest import FakeExtractor


class FakeProcess:
    def __init__(self, returncode=0, stdout=b"", stderr=b""):
        self.returncode = returncode
        self._stdout = stdout
        self._stderr = stderr

    async def communicate(self):
        return self._stdout, self._stderr

    def kill(self):
        pass


@pytest.fixture
def work_root(tmp_path) -> Path:
    root = tmp_path / "work"
    root.mkdir()
    return root


def test_ffmpeg_command(storage):
    extractor = AudioExtractor(storage=storage, ffmpeg_path="ffmpeg")
    cmd = extractor.build_command(Path("in.mp4"), Path("out.wav"))

    assert cmd == [
        "ffmpeg", "-y", "-i", "in.mp4", "-vn", "-acodec", "pcm_s16le",
        "-ac", "1", "-ar", "16000", "-af", "volume=2.0", "-f", "wav", "out.wav",
    ]


async def test_extract_returns_audio_and_drops_video(storage, upload_video, work_root):
    upload_video("meetings/team-1/m-1.mp4")
    extractor = FakeExtractor(storage, work_root)

    audio_path = await extractor.extract("meetings/team-1/m-1.mp4")

    assert audio_path.exists()
    assert audio_path.suffix == ".wav"
    assert [p.name for p in audio_path.parent.iterdir()] == [audio_path.name]

    extractor.cleanup(audio_path)
    assert list(work_root.iterdir()) == []


async def test_extract_missing_video_is_transfer_error(storage, work_root):
    extractor = FakeExtractor(storage, work_root)

    with pytest.raises(TransferError):
        await extractor.extract("meetings/team-1/missing.mp4")

    assert list(work_root.iterdir()) == []


async def test_extract_empty_audio_is_transcoding_error(storage, upload_video, work_root):
    upload_video("meetings/team-1/m-1.mp4")
    extractor = FakeExtractor(storage, work_root, audio_bytes=b"")

    with pytest.raises(TranscodingError, match="empty"):
        await extractor.extract("meetings/team-1/m-1.mp4")

    assert list(work_root.iterdir()) == []


async def test_ffmpeg_failure_is_transcoding_error(storage, upload_video, work_root, monkeypatch):
    upload_video("meetings/team-1/m-1.mp4")

    async def fake_exec(*cmd, **kwargs):
        return FakeProcess(returncode=1, stderr=b"Invalid data found when processing input")

    monkeypatch.setattr(asyncio, "create_subprocess_exec", fake_exec)
    extractor = AudioExtractor(storage=storage, temp_dir=str(work_root))

    with pytest.raises(TranscodingError, match="exited with code 1"):
        await extractor.extract("meetings/team-1/m-1.mp4")

    assert list(work_root.iterdir()) == []


async def test_probe_duration(monkeypatch):
    async def fake_exec(*cmd, **kwargs):
        assert "format=duration" in cmd
        return FakeProcess(stdout=b"42.48\n")

    monkeypatch.setattr(asyncio, "create_subprocess_exec", fake_exec)
    assert await probe_duration(Path("audio.wav")) == pytest.approx(42.48)


async def test_probe_duration_failure(monkeypatch):
    async def fake_exec(*cmd, **kwargs):
        return FakeProcess(returncode=1, stderr=b"No such file")

    monkeypatch.setattr(asyncio, "create_subprocess_exec", fake_exec)
    with pytest.raises(TranscodingError, match="ffprobe failed"):
        await probe_duration(Path("audio.wav"))
