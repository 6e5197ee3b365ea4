import logging
import os
import uuid
from dataclasses import replace
from functools import partial
from typing import Any, Callable, Dict, Optional

from rich.console import Console

from .constants import DEFAULT_COMMAND_TIMEOUT, DEFAULT_CONNECT_TIMEOUT
from .errors import DeployerError
from .models import DeployConfig, RunContext
from .services.activator import ReleaseActivator
from .services.command_runner import RemoteCommandRunner
from .services.connector import HostConnector
from .services.manifest import ManifestService
from .services.memory_transport import RecordingSession
from .services.release_dirs import ReleaseDirectoryService, release_name
from .services.retention import RetentionService
from .services.transport import ParamikoSession, Session
from .services.uploader import ArtifactUploader

console = Console()
logger = logging.getLogger("sshrelease")


class ReleaseDeployer:
    STAGES = ("setup", "prepare", "upload", "activate", "prune")

    def __init__(
        self,
        config: DeployConfig,
        revision_key: Optional[str] = None,
        auth_sock: Optional[str] = None,
        connect_timeout: float = DEFAULT_CONNECT_TIMEOUT,
        command_timeout: float = DEFAULT_COMMAND_TIMEOUT,
        manifest_file: Optional[str] = None,
        dry_run: bool = False,
        session_factory: Optional[Callable[[], Session]] = None,
        max_workers: Optional[int] = None,
    ):
        self.config = config
        if revision_key is not None:
            release_name(revision_key)
        self.revision_key = revision_key
        self.dry_run = dry_run
        self.auth_sock = auth_sock if auth_sock is not None else os.environ.get("SSH_AUTH_SOCK")
        self.run_id = uuid.uuid4().hex[:10]

        if session_factory is None:
            if dry_run:
                session_factory = RecordingSession
            else:
                session_factory = partial(
                    ParamikoSession,
                    connect_timeout=connect_timeout,
                    command_timeout=command_timeout,
                )

        self.manifest_service = ManifestService(manifest_file=manifest_file, logger=logger)
        self.command_runner = RemoteCommandRunner(logger=logger, console=console, max_workers=max_workers)
        self.connector = HostConnector(
            logger=logger,
            console=console,
            session_factory=session_factory,
            auth_sock=self.auth_sock,
            max_workers=max_workers,
        )
        self.release_dir_service = ReleaseDirectoryService(
            logger=logger,
            console=console,
            command_runner=self.command_runner,
        )
        self.uploader = ArtifactUploader(logger=logger, console=console, max_workers=max_workers)
        self.activator = ReleaseActivator(
            logger=logger,
            console=console,
            command_runner=self.command_runner,
            max_workers=max_workers,
        )
        self.retention_service = RetentionService(
            logger=logger,
            console=console,
            command_runner=self.command_runner,
            max_workers=max_workers,
        )

    def _build_manifest_metadata(self) -> Dict[str, Any]:
        return {
            "hosts": [host.name for host in self.config.hosts],
            "target_dir": self.config.target_dir,
            "source_dir": self.config.source_dir,
            "releases_dir": self.config.releases_dir,
            "target_link": self.config.target_link,
            "keep": self.config.keep,
            "revision_key": self.revision_key,
            "dry_run": self.dry_run,
        }

    def _run_step(self, name: str, callback, context: RunContext) -> RunContext:
        self.manifest_service.step_started(name)
        try:
            result = callback(context)
        except Exception as exc:
            self.manifest_service.step_finished(name, "failed", error=str(exc))
            raise

        self.manifest_service.step_finished(name, "success")
        return result

    @staticmethod
    def _require(context: RunContext, field_name: str, stage: str):
        if not getattr(context, field_name):
            raise DeployerError(f"Run context has no {field_name}; run {stage} first.")

    def setup(self, context: Optional[RunContext] = None) -> RunContext:
        context = context or RunContext(revision_key=self.revision_key)
        sessions = self.connector.connect_all(self.config.hosts)
        for host_session in sessions:
            self.manifest_service.set_host_value(host_session.name, "connected", True)
        return replace(context, sessions=sessions)

    def prepare(self, context: RunContext) -> RunContext:
        self._require(context, "sessions", "setup")
        context = self.release_dir_service.prepare(
            context,
            target_dir=self.config.target_dir,
            releases_dir=self.config.releases_dir,
        )
        self.manifest_service.set_release(context.release_name, context.release_path)
        return context

    def upload(self, context: RunContext) -> RunContext:
        self._require(context, "release_path", "prepare")
        context = self.uploader.upload(context, self.config.source_dir)
        for host in context.uploaded_hosts:
            self.manifest_service.set_host_value(host, "uploaded", True)
        return context

    def activate(self, context: RunContext) -> RunContext:
        self._require(context, "release_path", "prepare")
        return self.activator.activate(context, self.config.target_dir, self.config.target_link)

    def prune(self, context: RunContext) -> RunContext:
        self._require(context, "releases_path", "prepare")
        context = self.retention_service.prune(context, self.config.keep)
        for host, names in context.pruned.items():
            self.manifest_service.set_host_value(host, "deleted_releases", list(names))
        return context

    def teardown(self, context: RunContext) -> RunContext:
        for host_session in context.sessions:
            self.connector.dispose(host_session)
        console.print("[green]Connections closed[/green]")
        logger.info("Connections closed")
        return replace(context, sessions=())

    def print_plan(self, context: RunContext):
        console.print("[bold blue]Dry run: commands planned per host[/bold blue]")
        for host_session in context.sessions:
            session = host_session.session
            console.print(f"[bold]{host_session.name}[/bold]")
            for local, remote in getattr(session, "directories", []):
                console.print(f"  upload {local} -> {remote}")
            for command in getattr(session, "commands", []):
                console.print(f"  {command}")

    def run(self) -> int:
        exit_code = 1
        manifest_status = "failed"
        manifest_error: Optional[str] = None
        context = RunContext(revision_key=self.revision_key)

        try:
            logger.info("Starting deployment to %s host(s)...", len(self.config.hosts))
            self.manifest_service.start_run(
                run_id=self.run_id,
                metadata=self._build_manifest_metadata(),
            )

            for stage in self.STAGES:
                context = self._run_step(stage, getattr(self, stage), context)

            if self.dry_run:
                self.print_plan(context)

            console.print(f"[bold green]Release {context.release_name} deployed.[/bold green]")
            manifest_status = "success"
            exit_code = 0
            return exit_code

        except KeyboardInterrupt:
            console.print("[bold red]Operation cancelled by user.[/bold red]")
            logger.info("Operation cancelled by user")
            manifest_status = "aborted"
            manifest_error = "Operation cancelled by user."
            return exit_code
        except DeployerError as exc:
            console.print(f"[bold red]Error:[/bold red] {exc}")
            logger.error(str(exc))
            manifest_error = str(exc)
            return exit_code
        except Exception as exc:
            console.print(f"[bold red]Unexpected error:[/bold red] {exc}")
            logger.exception("Unexpected error")
            manifest_error = str(exc)
            return exit_code
        finally:
            try:
                self.manifest_service.step_started("teardown")
            finally:
                self.teardown(context)
                self.manifest_service.step_finished("teardown", "success")
                self.manifest_service.finalize(manifest_status, error=manifest_error)
