"""Release naming and remote directory preparation."""

import posixpath
import shlex
from dataclasses import replace
from datetime import datetime, timezone
from typing import Optional, Tuple

from sshrelease.constants import RELEASE_NAME_FORMAT, RELEASES_DIR_MODE
from sshrelease.errors import ConfigurationError, ExecError
from sshrelease.errors_catalog import actionable_error
from sshrelease.models import RunContext
from sshrelease.services.command_runner import RemoteCommandRunner


def release_name(revision_key: Optional[str] = None, now: Optional[datetime] = None) -> str:
    """Use the revision key verbatim, else a UTC timestamp truncated to the hour."""
    if revision_key is not None:
        if revision_key in {"", ".", ".."} or "/" in revision_key:
            raise ConfigurationError(f"Invalid revision key for a release directory: {revision_key!r}")
        return revision_key

    moment = now or datetime.now(timezone.utc)
    if moment.tzinfo is not None:
        moment = moment.astimezone(timezone.utc)
    return moment.strftime(RELEASE_NAME_FORMAT)


def release_paths(target_dir: str, releases_dir: str, name: str) -> Tuple[str, str]:
    """Return ``(releases_path, release_path)`` as POSIX paths."""
    releases_path = posixpath.join(target_dir, releases_dir)
    return releases_path, posixpath.join(releases_path, name)


class ReleaseDirectoryService:
    """Creates the release directory on every host before upload."""

    def __init__(self, logger, console, command_runner: RemoteCommandRunner):
        self.logger = logger
        self.console = console
        self.command_runner = command_runner

    def prepare(
        self,
        context: RunContext,
        target_dir: str,
        releases_dir: str,
        now: Optional[datetime] = None,
    ) -> RunContext:
        name = release_name(context.revision_key, now=now)
        releases_path, release_path = release_paths(target_dir, releases_dir, name)

        self.console.print(f"[green]Creating directory {release_path}[/green]")
        self.logger.info("Creating directory %s", release_path)

        try:
            self.command_runner.broadcast(context.sessions, f"mkdir -p {shlex.quote(release_path)}")
            self.command_runner.broadcast(
                context.sessions,
                f"chmod {RELEASES_DIR_MODE} {shlex.quote(releases_path)}",
            )
        except ExecError as exc:
            raise ExecError(f"{actionable_error('prepare_failed', path=release_path)} {exc}") from exc

        return replace(
            context,
            release_name=name,
            release_path=release_path,
            releases_path=releases_path,
        )
