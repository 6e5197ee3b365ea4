"""Remote session interface and the paramiko-backed implementation."""

import logging
import os
import posixpath
import stat
import time
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

import paramiko

from sshrelease.constants import (
    COMMAND_POLL_INTERVAL,
    DEFAULT_COMMAND_TIMEOUT,
    DEFAULT_CONNECT_TIMEOUT,
    DEFAULT_SSH_PORT,
)
from sshrelease.errors import ConnectError, ExecError, TransferError
from sshrelease.models import CommandResult

logger = logging.getLogger("sshrelease")

READ_CHUNK = 32768


class Session(ABC):
    """Capabilities the deployer needs from one remote host."""

    @abstractmethod
    def connect(
        self,
        address: str,
        username: str,
        auth_sock: Optional[str] = None,
        port: int = DEFAULT_SSH_PORT,
    ) -> "Session":
        """Open the session. Raises ConnectError."""

    @abstractmethod
    def execute(self, command: str) -> CommandResult:
        """Run a shell command. Raises ExecError when the transport fails."""

    @abstractmethod
    def copy_directory(self, local_path: str, remote_path: str):
        """Recursively copy a local tree to ``remote_path``. Raises TransferError."""

    @abstractmethod
    def dispose(self):
        """Release the session. Safe to call more than once."""


class ParamikoSession(Session):
    """SSH session over paramiko, authenticated through the SSH agent."""

    def __init__(
        self,
        connect_timeout: float = DEFAULT_CONNECT_TIMEOUT,
        command_timeout: Optional[float] = DEFAULT_COMMAND_TIMEOUT,
        client_factory=paramiko.SSHClient,
    ):
        self.connect_timeout = connect_timeout
        self.command_timeout = command_timeout
        self.client_factory = client_factory
        self.client: Optional[paramiko.SSHClient] = None

    def connect(
        self,
        address: str,
        username: str,
        auth_sock: Optional[str] = None,
        port: int = DEFAULT_SSH_PORT,
    ) -> "ParamikoSession":
        client = self.client_factory()
        client.load_system_host_keys()
        client.set_missing_host_key_policy(paramiko.AutoAddPolicy())

        # paramiko talks to the agent through SSH_AUTH_SOCK; without one we
        # fall back to the user's default key files. Passwords are never used.
        try:
            client.connect(
                hostname=address,
                port=port,
                username=username,
                allow_agent=bool(auth_sock),
                look_for_keys=not auth_sock,
                timeout=self.connect_timeout,
            )
        except (paramiko.SSHException, OSError) as exc:
            client.close()
            raise ConnectError(f"{exc.__class__.__name__}: {exc}") from exc

        self.client = client
        return self

    def execute(self, command: str) -> CommandResult:
        client = self._require_client()
        try:
            _stdin, stdout, _stderr = client.exec_command(command, timeout=self.command_timeout)
            out, err = self._drain(stdout.channel, command)
            status = stdout.channel.recv_exit_status()
        except (paramiko.SSHException, OSError) as exc:
            raise ExecError(f"Failed to execute command: {command}. {exc}") from exc

        return CommandResult(stdout=out, stderr=err, exit_status=status)

    def _drain(self, channel, command: str):
        """Read stdout and stderr together until the command exits.

        Reading one stream to EOF first can stall the remote once the other
        fills the channel window.
        """
        out, err = [], []
        deadline = None
        if self.command_timeout is not None:
            deadline = time.monotonic() + self.command_timeout

        while True:
            if channel.recv_ready():
                out.append(channel.recv(READ_CHUNK))
            elif channel.recv_stderr_ready():
                err.append(channel.recv_stderr(READ_CHUNK))
            elif channel.exit_status_ready():
                break
            else:
                time.sleep(COMMAND_POLL_INTERVAL)

            if deadline is not None and time.monotonic() >= deadline:
                channel.close()
                raise ExecError(f"Command timed out after {self.command_timeout:g}s: {command}")

        return (
            b"".join(out).decode("utf-8", errors="replace"),
            b"".join(err).decode("utf-8", errors="replace"),
        )

    def copy_directory(self, local_path: str, remote_path: str):
        client = self._require_client()
        try:
            sftp = client.open_sftp()
        except (paramiko.SSHException, OSError) as exc:
            raise TransferError(f"Could not open SFTP channel: {exc}") from exc

        try:
            self._ensure_remote_dir(sftp, remote_path)
            for current_root, dirs, files in os.walk(local_path):
                relative = Path(current_root).relative_to(local_path)
                remote_root = posixpath.join(remote_path, *relative.parts)
                for directory in sorted(dirs):
                    self._ensure_remote_dir(sftp, posixpath.join(remote_root, directory))
                for file_name in sorted(files):
                    local_file = os.path.join(current_root, file_name)
                    remote_file = posixpath.join(remote_root, file_name)
                    logger.debug("Uploading %s -> %s", local_file, remote_file)
                    sftp.put(local_file, remote_file)
        except (paramiko.SSHException, OSError) as exc:
            raise TransferError(f"Failed to copy {local_path} to {remote_path}: {exc}") from exc
        finally:
            sftp.close()

    def dispose(self):
        if self.client is None:
            return
        try:
            self.client.close()
        except Exception as exc:
            logger.debug("Ignoring error while closing SSH client: %s", exc)
        self.client = None

    def _require_client(self) -> paramiko.SSHClient:
        if self.client is None:
            raise ExecError("Session is not connected.")
        return self.client

    @staticmethod
    def _ensure_remote_dir(sftp: paramiko.SFTPClient, path: str):
        try:
            attrs = sftp.stat(path)
        except FileNotFoundError:
            sftp.mkdir(path)
            return
        if not stat.S_ISDIR(attrs.st_mode):
            raise TransferError(f"Remote path exists and is not a directory: {path}")
