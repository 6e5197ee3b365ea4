import os

import pytest

from sshrelease.errors import TransferError
from sshrelease.models import Host, HostSession, RunContext
from sshrelease.services.memory_transport import RecordingSession
from sshrelease.services.uploader import ArtifactUploader


class RecordingLogger:
    def __init__(self):
        self.messages = []

    def _record(self, message, *args, **_kwargs):
        self.messages.append(message % args if args else message)

    debug = info = warning = error = _record

    def has(self, text):
        return any(text in message for message in self.messages)


class DummyConsole:
    def print(self, *_args, **_kwargs):
        return None


@pytest.fixture
def build_dir(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    build = tmp_path / "build"
    build.mkdir()
    (build / "index.html").write_text("<html></html>", encoding="utf-8")
    return build


def _context(*sessions):
    return RunContext(
        release_path="/srv/app/releases/r1",
        sessions=tuple(HostSession(Host(f"web{i}", "deploy"), s) for i, s in enumerate(sessions, 1)),
    )


def test_upload_copies_build_dir_to_release_path(build_dir):
    logger = RecordingLogger()
    session = RecordingSession()

    context = ArtifactUploader(logger=logger, console=DummyConsole()).upload(_context(session), "build")

    assert session.directories == [(os.path.join(os.getcwd(), "build"), "/srv/app/releases/r1")]
    assert context.uploaded_hosts == ("web1",)
    assert logger.has("Successfully uploaded to web1")
    assert logger.has("Finished uploading")


def test_upload_failure_does_not_stop_other_hosts(build_dir):
    logger = RecordingLogger()
    healthy = RecordingSession()
    broken = RecordingSession(copy_error=OSError("upload error"))

    with pytest.raises(TransferError, match="web2"):
        ArtifactUploader(logger=logger, console=DummyConsole()).upload(_context(healthy, broken), "build")

    assert len(healthy.directories) == 1
    assert logger.has("Failed to upload to web2: upload error")
    assert logger.has("Successfully uploaded to web1")
    assert not logger.has("Finished uploading")


def test_upload_requires_existing_build_dir(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    session = RecordingSession()

    with pytest.raises(TransferError, match="Build directory not found"):
        ArtifactUploader(logger=RecordingLogger(), console=DummyConsole()).upload(_context(session), "dist")

    assert session.directories == []
