"""Host connection service for sshrelease."""

from typing import Callable, Optional, Sequence, Tuple

from sshrelease.errors import ConnectError
from sshrelease.errors_catalog import actionable_error
from sshrelease.models import Host, HostSession
from sshrelease.services.fanout import failed, fan_out
from sshrelease.services.transport import ParamikoSession, Session


class HostConnector:
    """Opens one session per configured host, all or nothing."""

    def __init__(
        self,
        logger,
        console,
        session_factory: Callable[[], Session] = ParamikoSession,
        auth_sock: Optional[str] = None,
        max_workers: Optional[int] = None,
    ):
        self.logger = logger
        self.console = console
        self.session_factory = session_factory
        self.auth_sock = auth_sock
        self.max_workers = max_workers

    def connect(self, host: Host) -> HostSession:
        session = host.session if host.session is not None else self.session_factory()
        try:
            connected = session.connect(host.address, host.username, self.auth_sock, host.port)
        except Exception as exc:
            message = f"Failed to connect to {host.name}: {exc}"
            self.console.print(f"[red]{message}[/red]")
            self.logger.error(message)
            raise

        self.console.print(f"[green]Successful connection to {host.name}[/green]")
        self.logger.info("Successful connection to %s", host.name)
        return HostSession(host=host, session=connected or session)

    def connect_all(self, hosts: Sequence[Host]) -> Tuple[HostSession, ...]:
        results = fan_out(
            [(host.name, lambda host=host: self.connect(host)) for host in hosts],
            max_workers=self.max_workers,
        )

        failures = failed(results)
        if failures:
            # A partial fleet is never handed back, so release what did connect.
            for result in results:
                if result.ok:
                    self.dispose(result.value)
            raise ConnectError(
                actionable_error(
                    "connect_failed",
                    hosts=", ".join(f"{result.host} ({result.error})" for result in failures),
                )
            )

        return tuple(result.value for result in results)

    def dispose(self, host_session: HostSession):
        try:
            host_session.session.dispose()
        except Exception as exc:
            self.logger.warning("Could not close connection to %s: %s", host_session.name, exc)
