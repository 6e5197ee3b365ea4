"""In-memory session that records what would be sent to a host."""

import re
from typing import Callable, List, Optional, Sequence, Tuple, Union

from sshrelease.constants import DEFAULT_SSH_PORT
from sshrelease.models import CommandResult
from sshrelease.services.transport import Session

Response = Union[CommandResult, Callable[[str], CommandResult], BaseException]


class RecordingSession(Session):
    """Records commands and directory copies instead of touching the network.

    ``responses`` is a list of ``(pattern, response)`` pairs checked in order
    against each command with ``re.search``. A response is a CommandResult, a
    callable producing one, or an exception to raise. Unmatched commands
    succeed with empty output.
    """

    def __init__(
        self,
        responses: Optional[Sequence[Tuple[str, Response]]] = None,
        connect_error: Optional[BaseException] = None,
        copy_error: Optional[BaseException] = None,
        dispose_error: Optional[BaseException] = None,
    ):
        self.responses = list(responses or [])
        self.connect_error = connect_error
        self.copy_error = copy_error
        self.dispose_error = dispose_error

        self.address: Optional[str] = None
        self.username: Optional[str] = None
        self.auth_sock: Optional[str] = None
        self.commands: List[str] = []
        self.directories: List[Tuple[str, str]] = []
        self.connected = False
        self.dispose_count = 0

    @property
    def is_disposed(self) -> bool:
        return self.dispose_count > 0

    def connect(self, address, username, auth_sock=None, port=DEFAULT_SSH_PORT):
        self.address = address
        self.username = username
        self.auth_sock = auth_sock
        if self.connect_error is not None:
            raise self.connect_error
        self.connected = True
        return self

    def respond(self, pattern: str, response: Response):
        self.responses.append((pattern, response))
        return self

    def execute(self, command: str) -> CommandResult:
        self.commands.append(command)
        for pattern, response in self.responses:
            if not re.search(pattern, command):
                continue
            if isinstance(response, BaseException):
                raise response
            if callable(response):
                return response(command)
            return response
        return CommandResult()

    def copy_directory(self, local_path: str, remote_path: str):
        self.directories.append((local_path, remote_path))
        if self.copy_error is not None:
            raise self.copy_error

    def dispose(self):
        self.dispose_count += 1
        self.connected = False
        if self.dispose_error is not None:
            raise self.dispose_error

    def has_command(self, pattern: str) -> bool:
        return any(re.search(pattern, command) for command in self.commands)
