"""Retention of old releases: list, select, delete."""

import shlex
from dataclasses import replace
from typing import Dict, List, Optional, Sequence, Tuple

from sshrelease.errors import ExecError
from sshrelease.errors_catalog import actionable_error
from sshrelease.models import HostSession, RunContext
from sshrelease.services.command_runner import RemoteCommandRunner
from sshrelease.services.fanout import describe_failures, failed, fan_out


def parse_listing(stdout: str) -> List[str]:
    return [line.strip() for line in (stdout or "").splitlines() if line.strip()]


def select_for_deletion(releases: Sequence[str], keep: int, current_release: Optional[str]) -> List[str]:
    """Return releases past the newest ``keep``, never the current one.

    ``releases`` must be ordered newest first.
    """
    return [name for name in releases[keep:] if name != current_release]


def delete_command(releases_path: str, names: Sequence[str]) -> str:
    targets = " ".join(shlex.quote(f"./{name}") for name in names)
    return f"cd {shlex.quote(releases_path)} && rm -rf {targets}"


class RetentionService:
    """Keeps the newest releases on each host and deletes the rest."""

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

    def list_releases(self, context: RunContext) -> Dict[HostSession, List[str]]:
        command = f"ls -t {shlex.quote(context.releases_path)}"
        results = self.command_runner.run_all(context.sessions, command)
        if failed(results):
            message = f"Error fetching releases: {describe_failures(results)}"
            self._report_failure(message)
            raise ExecError(message)
        return {hs: parse_listing(result.value) for hs, result in zip(context.sessions, results)}

    def plan(
        self,
        host_releases: Dict[HostSession, List[str]],
        keep: int,
        current_release: Optional[str],
    ) -> Dict[HostSession, List[str]]:
        return {
            hs: select_for_deletion(releases, keep, current_release)
            for hs, releases in host_releases.items()
        }

    def delete_releases(
        self,
        context: RunContext,
        deletions: Dict[HostSession, List[str]],
    ) -> Dict[str, Tuple[str, ...]]:
        tasks = []
        planned = []
        for hs in context.sessions:
            names = deletions.get(hs) or []
            if not names:
                self.console.print(f"[green]Nothing to delete on {hs.name}[/green]")
                self.logger.info("Nothing to delete on %s", hs.name)
                continue

            command = delete_command(context.releases_path, names)
            self.console.print(f"[yellow]Deleting {' '.join('./' + n for n in names)} on {hs.name}[/yellow]")
            self.logger.info("Deleting %s on %s", " ".join("./" + n for n in names), hs.name)
            tasks.append((hs.name, lambda hs=hs, command=command: self.command_runner.run(hs, command)))
            planned.append((hs, names))

        results = fan_out(tasks, max_workers=self.max_workers)
        if failed(results):
            message = f"Failed to delete old releases: {describe_failures(results)}"
            self._report_failure(message)
            hosts = ", ".join(result.host for result in failed(results))
            raise ExecError(f"{message}. {actionable_error('prune_failed', hosts=hosts)}")

        return {hs.name: tuple(names) for hs, names in planned}

    def prune(self, context: RunContext, keep: int) -> RunContext:
        host_releases = self.list_releases(context)
        deletions = self.plan(host_releases, keep, context.release_name)

        self.console.print(f"[green]Keeping {keep} release(s)[/green]")
        self.logger.info("Keeping %s release(s)", keep)

        pruned = self.delete_releases(context, deletions)

        self.console.print("[green]Finished deleting old releases[/green]")
        self.logger.info("Finished deleting old releases")
        return replace(context, pruned=pruned)

    def _report_failure(self, message: str):
        self.console.print(f"[red]{message}[/red]")
        self.logger.error(message)
