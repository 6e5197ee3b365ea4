"""Release activation: symlink switch and permission normalization."""

import posixpath
import shlex
from typing import List, Optional

from sshrelease.constants import RELEASE_DIR_MODE, RELEASE_FILE_MODE, RELEASE_MISSING_MESSAGE
from sshrelease.errors import ActivationError
from sshrelease.errors_catalog import actionable_error
from sshrelease.models import HostResult, HostSession, RunContext
from sshrelease.services.command_runner import RemoteCommandRunner
from sshrelease.services.fanout import failed, fan_out


def link_command(release_path: str, link_name: str) -> str:
    target = shlex.quote(release_path)
    link = shlex.quote(link_name)
    return f'test -e {target} && ln -sfn {target} {link} || >&2 echo "{RELEASE_MISSING_MESSAGE}"'


def permissions_command(release_path: str) -> str:
    target = shlex.quote(release_path)
    return (
        f"test -e {target}"
        f" && find {target} -type d -exec chmod {RELEASE_DIR_MODE} {{}} \\;"
        f" && find {target} -type f -exec chmod {RELEASE_FILE_MODE} {{}} \\;"
    )


class ReleaseActivator:
    """Points the stable link at the new release and locks down its files."""

    def __init__(
        self,
        logger,
        console,
        command_runner: RemoteCommandRunner,
        max_workers: Optional[int] = None,
    ):
        self.logger = logger
        self.console = console
        self.command_runner = command_runner
        self.max_workers = max_workers

    def link(self, host_session: HostSession, release_path: str, link_name: str):
        try:
            self.command_runner.run(host_session, link_command(release_path, link_name))
        except Exception as exc:
            # The runner raises with the bare stderr text when the shell reports it.
            if str(exc).strip() == RELEASE_MISSING_MESSAGE:
                message = actionable_error("release_missing", path=release_path, host=host_session.name)
            else:
                message = str(exc)
            self._report_failure(f"Failed to activate latest revision on {host_session.name}: {message}")
            raise ActivationError(message) from exc

        self.console.print(f"[green]Successfully activated latest revision on {host_session.name}[/green]")
        self.logger.info("Successfully activated latest revision on %s", host_session.name)

    def set_permissions(self, host_session: HostSession, release_path: str):
        try:
            self.command_runner.run(host_session, permissions_command(release_path))
        except Exception as exc:
            self._report_failure(
                f"Failed to set permissions of latest revision on {host_session.name}: {exc}"
            )
            raise ActivationError(str(exc)) from exc

        self.console.print(f"[green]Successfully set permissions of latest revision on {host_session.name}[/green]")
        self.logger.info("Successfully set permissions of latest revision on %s", host_session.name)

    def activate(self, context: RunContext, target_dir: str, target_link: str) -> RunContext:
        release_path = context.release_path
        link_name = posixpath.join(target_dir, target_link)

        tasks = [
            (hs.name, lambda hs=hs: self.link(hs, release_path, link_name))
            for hs in context.sessions
        ]
        tasks += [
            (hs.name, lambda hs=hs: self.set_permissions(hs, release_path))
            for hs in context.sessions
        ]
        results = fan_out(tasks, max_workers=self.max_workers)

        failures = failed(results)
        if failures:
            raise ActivationError(actionable_error("activation_failed", hosts=self._hosts(failures)))

        self.console.print("[green]Finished activation[/green]")
        self.logger.info("Finished activation")
        return context

    def _report_failure(self, message: str):
        self.console.print(f"[red]{message}[/red]")
        self.logger.error(message)

    @staticmethod
    def _hosts(failures: List[HostResult]) -> str:
        return ", ".join(sorted({result.host for result in failures}))
