"""Shared domain models for sshrelease."""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

from .constants import DEFAULT_KEEP, DEFAULT_RELEASES_DIR, DEFAULT_SSH_PORT, DEFAULT_TARGET_LINK


@dataclass(frozen=True)
class Host:
    """One deployment target. ``session`` lets callers inject a ready session."""

    address: str
    username: str
    port: int = DEFAULT_SSH_PORT
    session: Optional[Any] = field(default=None, compare=False, repr=False)

    @property
    def name(self) -> str:
        """Label used in logs and reports; unique per address and port."""
        if self.port == DEFAULT_SSH_PORT:
            return self.address
        return f"{self.address}:{self.port}"


@dataclass(frozen=True)
class CommandResult:
    stdout: str = ""
    stderr: str = ""
    exit_status: int = 0


@dataclass(frozen=True)
class HostSession:
    """An open session paired with the host it belongs to."""

    host: Host
    session: Any

    @property
    def address(self) -> str:
        return self.host.address

    @property
    def name(self) -> str:
        return self.host.name


@dataclass(frozen=True)
class HostResult:
    """Outcome of one per-host task in a fan-out."""

    host: str
    value: Any = None
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class DeployConfig:
    hosts: Tuple[Host, ...]
    target_dir: str
    source_dir: str
    releases_dir: str = DEFAULT_RELEASES_DIR
    target_link: str = DEFAULT_TARGET_LINK
    keep: int = DEFAULT_KEEP


@dataclass(frozen=True)
class RunContext:
    """Run-scoped state threaded through every stage.

    Stages never mutate a context; they return a copy with the fields they
    produce filled in (see ``dataclasses.replace``).
    """

    revision_key: Optional[str] = None
    sessions: Tuple[HostSession, ...] = ()
    release_name: Optional[str] = None
    release_path: Optional[str] = None
    releases_path: Optional[str] = None
    uploaded_hosts: Tuple[str, ...] = ()
    pruned: Dict[str, Tuple[str, ...]] = field(default_factory=dict)
