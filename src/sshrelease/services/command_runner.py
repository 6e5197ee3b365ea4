"""Remote command execution service for sshrelease."""

from typing import List, Optional, Sequence

from sshrelease.errors import DeployerError, ExecError
from sshrelease.models import HostResult, HostSession
from sshrelease.services.fanout import describe_failures, failed, fan_out


class RemoteCommandRunner:
    """Runs shell commands on host sessions with consistent error handling."""

    def __init__(self, logger, console, max_workers: Optional[int] = None):
        self.logger = logger
        self.console = console
        self.max_workers = max_workers

    def run(self, host_session: HostSession, command: str) -> str:
        """Run ``command`` on one host and return its stdout.

        Any stderr output counts as failure, whatever the exit status.
        """
        self.logger.debug("Executing on %s: %s", host_session.name, command)

        try:
            result = host_session.session.execute(command)
        except DeployerError as exc:
            self._log_failure(f"Command failed on {host_session.name}: {exc}")
            raise ExecError(str(exc)) from exc
        except Exception as exc:
            self._log_failure(f"Command failed on {host_session.name}: {exc}")
            raise ExecError(f"Failed to execute command: {command}. {exc}") from exc

        stderr = (result.stderr or "").strip()
        if stderr:
            self._log_failure(f"Error running {command} on {host_session.name}: {stderr}")
            raise ExecError(stderr)

        if result.exit_status:
            message = f"Command failed ({result.exit_status}): {command}"
            self._log_failure(f"{message} on {host_session.name}")
            raise ExecError(message)

        if result.stdout:
            self.logger.debug("Command output from %s: %s", host_session.name, result.stdout.strip())
        return result.stdout or ""

    def run_all(self, sessions: Sequence[HostSession], command: str) -> List[HostResult]:
        """Broadcast ``command`` to every session and collect per-host results."""
        return fan_out(
            [(hs.name, lambda hs=hs: self.run(hs, command)) for hs in sessions],
            max_workers=self.max_workers,
        )

    def broadcast(self, sessions: Sequence[HostSession], command: str) -> List[HostResult]:
        """Like run_all, but raises ExecError once all hosts settle if any failed."""
        results = self.run_all(sessions, command)
        if failed(results):
            raise ExecError(f"`{command}` failed on {describe_failures(results)}")
        return results

    def _log_failure(self, message: str):
        self.console.print(f"[red]{message}[/red]")
        self.logger.error(message)
