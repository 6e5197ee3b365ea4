"""Run manifest for sshrelease deployments."""

import json
import os
import tempfile
from datetime import datetime, timezone
from typing import Any, Dict, Optional


class ManifestService:
    """Records what a deployment did and writes it as JSON.

    Without a ``manifest_file`` the manifest is kept in memory only. Write
    failures are logged and never interrupt the deployment.
    """

    def __init__(self, manifest_file: Optional[str], logger):
        self.manifest_file = manifest_file
        self.logger = logger
        self.manifest: Dict[str, Any] = {
            "run_id": None,
            "status": "running",
            "started_at": None,
            "finished_at": None,
            "duration_seconds": None,
            "metadata": {},
            "release": {"name": None, "path": None},
            "steps": [],
            "hosts": {},
            "error": None,
        }

    def start_run(self, run_id: str, metadata: Dict[str, Any]):
        self.manifest.update(run_id=run_id, status="running", started_at=self._now(), metadata=metadata)
        self.write()

    def set_release(self, name: Optional[str], path: Optional[str]):
        self.manifest["release"] = {"name": name, "path": path}
        self.write()

    def step_started(self, step_name: str):
        self.manifest["steps"].append(
            {
                "name": step_name,
                "status": "running",
                "started_at": self._now(),
                "finished_at": None,
                "duration_seconds": None,
                "error": None,
            }
        )
        self.write()

    def step_finished(self, step_name: str, status: str, error: Optional[str] = None):
        running = [s for s in self.manifest["steps"] if s["name"] == step_name and s["status"] == "running"]
        if running:
            step = running[-1]
            step.update(status=status, finished_at=self._now(), error=error)
            step["duration_seconds"] = self._duration(step)
        self.write()

    def set_host_value(self, host: str, key: str, value: Any):
        self.manifest["hosts"].setdefault(host, {})[key] = value
        self.write()

    def finalize(self, status: str, error: Optional[str] = None):
        self.manifest.update(status=status, finished_at=self._now(), error=error)
        if self.manifest["started_at"]:
            self.manifest["duration_seconds"] = self._duration(self.manifest)
        self.write()

    def write(self):
        if not self.manifest_file:
            return

        directory = os.path.dirname(self.manifest_file) or "."
        temp_path = None
        try:
            os.makedirs(directory, exist_ok=True)
            fd, temp_path = tempfile.mkstemp(prefix="run-manifest-", suffix=".json", dir=directory)
            with os.fdopen(fd, "w", encoding="utf-8") as file_obj:
                json.dump(self.manifest, file_obj, indent=2, sort_keys=True)
                file_obj.write("\n")
            os.replace(temp_path, self.manifest_file)
        except OSError as exc:
            self.logger.warning("Could not write manifest file '%s': %s", self.manifest_file, exc)
            if temp_path and os.path.exists(temp_path):
                os.remove(temp_path)

    @staticmethod
    def _duration(record: Dict[str, Any]) -> float:
        started_at = datetime.fromisoformat(record["started_at"])
        finished_at = datetime.fromisoformat(record["finished_at"])
        return (finished_at - started_at).total_seconds()

    @staticmethod
    def _now() -> str:
        return datetime.now(timezone.utc).isoformat()
