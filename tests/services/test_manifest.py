import json

from sshrelease.services import manifest as manifest_module
from sshrelease.services.manifest import ManifestService


class DummyLogger:
    def warning(self, *_args, **_kwargs):
        return None


def test_manifest_service_writes_run_metadata(tmp_path):
    manifest_file = tmp_path / "output" / "run-manifest.json"
    service = ManifestService(str(manifest_file), logger=DummyLogger())

    service.start_run("run-123", {"hosts": ["web1"], "target_dir": "/srv/app"})
    service.set_release("r1", "/srv/app/releases/r1")
    service.step_started("prepare")
    service.step_finished("prepare", "success")
    service.set_host_value("web1", "deleted_releases", ["r0"])
    service.finalize("success")

    data = json.loads(manifest_file.read_text(encoding="utf-8"))

    assert data["run_id"] == "run-123"
    assert data["status"] == "success"
    assert data["release"]["path"] == "/srv/app/releases/r1"
    assert data["hosts"]["web1"]["deleted_releases"] == ["r0"]
    assert data["steps"][0]["name"] == "prepare"
    assert data["steps"][0]["status"] == "success"
    assert data["duration_seconds"] is not None


def test_manifest_without_file_stays_in_memory(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    service = ManifestService(None, logger=DummyLogger())

    service.start_run("run-123", {})
    service.step_started("setup")
    service.step_finished("setup", "failed", error="boom")

    assert service.manifest["steps"][0]["error"] == "boom"
    assert list(tmp_path.iterdir()) == []


class RecordingLogger:
    def __init__(self):
        self.warnings = []

    def warning(self, message, *args, **_kwargs):
        self.warnings.append(message % args)


def test_manifest_write_failure_is_logged_not_raised(tmp_path, monkeypatch):
    logger = RecordingLogger()
    service = ManifestService(str(tmp_path / "run-manifest.json"), logger=logger)

    def disk_full(*_args, **_kwargs):
        raise OSError(28, "No space left on device")

    monkeypatch.setattr(manifest_module.tempfile, "mkstemp", disk_full)

    service.start_run("run-123", {})
    service.step_started("teardown")

    assert len(logger.warnings) == 2
    assert "No space left on device" in logger.warnings[0]
    assert list(tmp_path.iterdir()) == []


def test_manifest_directory_that_cannot_be_created_is_logged(tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory", encoding="utf-8")
    logger = RecordingLogger()
    service = ManifestService(str(blocker / "run-manifest.json"), logger=logger)

    service.finalize("failed", error="boom")

    assert logger.warnings
    assert service.manifest["status"] == "failed"
