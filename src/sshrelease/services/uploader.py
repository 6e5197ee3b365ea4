"""Artifact upload service for sshrelease."""

import os
from dataclasses import replace
from typing import Optional

from sshrelease.errors import TransferError
from sshrelease.errors_catalog import actionable_error
from sshrelease.models import HostSession, RunContext
from sshrelease.services.fanout import failed, fan_out


class ArtifactUploader:
    """Copies the local build output to the release path on every host."""

    def __init__(self, logger, console, max_workers: Optional[int] = None):
        self.logger = logger
        self.console = console
        self.max_workers = max_workers

    def upload_to(self, host_session: HostSession, local: str, remote: str):
        self.console.print(f"[green]Uploading build dir {local} to {host_session.name}:{remote}...[/green]")
        self.logger.info("Uploading build dir %s to %s:%s", local, host_session.name, remote)
        try:
            host_session.session.copy_directory(local, remote)
        except Exception as exc:
            message = f"Failed to upload to {host_session.name}: {exc}"
            self.console.print(f"[red]{message}[/red]")
            self.logger.error(message)
            raise

        self.console.print(f"[green]Successfully uploaded to {host_session.name}[/green]")
        self.logger.info("Successfully uploaded to %s", host_session.name)

    def upload(self, context: RunContext, source_dir: str) -> RunContext:
        local = os.path.join(os.getcwd(), source_dir)
        if not os.path.isdir(local):
            raise TransferError(actionable_error("source_not_found", path=local))

        remote = context.release_path
        results = fan_out(
            [(hs.name, lambda hs=hs: self.upload_to(hs, local, remote)) for hs in context.sessions],
            max_workers=self.max_workers,
        )

        failures = failed(results)
        if failures:
            hosts = ", ".join(f"{result.host} ({result.error})" for result in failures)
            raise TransferError(actionable_error("upload_failed", hosts=hosts))

        self.console.print("[green]Finished uploading[/green]")
        self.logger.info("Finished uploading")
        return replace(context, uploaded_hosts=tuple(result.host for result in results))
