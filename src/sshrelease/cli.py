import logging
import os

import click
from rich.logging import RichHandler

from .constants import DEFAULT_COMMAND_TIMEOUT, DEFAULT_CONFIG_FILE, DEFAULT_CONNECT_TIMEOUT
from .core import ReleaseDeployer
from .errors import DeployerError
from .services.config_loader import ConfigLoader, build_config


def _resolve_option(cli_value, config, key, default=None):
    if cli_value is not None:
        return cli_value
    if key in config:
        return config[key]
    return default


logging.basicConfig(
    level="INFO",
    format="%(message)s",
    datefmt="[%X]",
    handlers=[RichHandler(rich_tracebacks=True, show_level=False, show_path=False)],
)


@click.command()
@click.option(
    "--config",
    required=False,
    type=click.Path(),
    help=f"Path to a YAML configuration file. Defaults to {DEFAULT_CONFIG_FILE} if present.",
)
@click.option(
    "--host",
    "hosts",
    multiple=True,
    help="Target host as user@host[:port]. Repeat for several hosts.",
)
@click.option("--target-dir", required=False, help="Remote directory that holds releases and the link")
@click.option("--source-dir", required=False, help="Local build directory to upload")
@click.option("--releases-dir", required=False, help="Releases directory under the target (default: releases)")
@click.option("--target-link", required=False, help="Name of the current-release link (default: current)")
@click.option("--keep", required=False, type=int, default=None, help="Number of releases to keep (default: 5)")
@click.option(
    "--revision-key",
    required=False,
    help="Release name. Defaults to the current UTC hour, e.g. 20240131T09.",
)
@click.option("--verbose", is_flag=True, default=None, help="Enable verbose logging")
@click.option("--log-file", type=click.Path(), help="Path to log file")
@click.option("--manifest-file", type=click.Path(), help="Write a JSON run manifest to this path")
@click.option(
    "--connect-timeout",
    required=False,
    type=float,
    default=None,
    help="SSH connection timeout in seconds.",
)
@click.option(
    "--command-timeout",
    required=False,
    type=float,
    default=None,
    help="Seconds a single remote command may run before it is abandoned (default: 600).",
)
@click.option(
    "--dry-run",
    is_flag=True,
    default=None,
    help="Run the pipeline against in-memory sessions and print the planned commands.",
)
def main(
    config,
    hosts,
    target_dir,
    source_dir,
    releases_dir,
    target_link,
    keep,
    revision_key,
    verbose,
    log_file,
    manifest_file,
    connect_timeout,
    command_timeout,
    dry_run,
):
    """Upload a build to every host, switch the current link and prune old releases."""
    logger = logging.getLogger("sshrelease")

    try:
        config_loader = ConfigLoader()
        resolved_config = config
        if resolved_config is None:
            default_config_path = os.path.join(os.getcwd(), DEFAULT_CONFIG_FILE)
            if os.path.exists(default_config_path):
                resolved_config = default_config_path

        config_values = config_loader.load(resolved_config)
    except DeployerError as exc:
        raise click.ClickException(str(exc)) from exc

    verbose = bool(_resolve_option(verbose, config_values, "verbose", default=False))
    log_file = _resolve_option(log_file, config_values, "log_file")
    manifest_file = _resolve_option(manifest_file, config_values, "manifest_file")
    revision_key = _resolve_option(revision_key, config_values, "revision_key")
    dry_run = bool(_resolve_option(dry_run, config_values, "dry_run", default=False))
    connect_timeout = float(
        _resolve_option(connect_timeout, config_values, "connect_timeout", default=DEFAULT_CONNECT_TIMEOUT)
    )
    command_timeout = float(
        _resolve_option(command_timeout, config_values, "command_timeout", default=DEFAULT_COMMAND_TIMEOUT)
    )

    settings = {
        "hosts": list(hosts) or config_values.get("hosts"),
        "target_dir": _resolve_option(target_dir, config_values, "target_dir"),
        "source_dir": _resolve_option(source_dir, config_values, "source_dir"),
        "releases_dir": _resolve_option(releases_dir, config_values, "releases_dir"),
        "target_link": _resolve_option(target_link, config_values, "target_link"),
        "keep": _resolve_option(keep, config_values, "keep"),
    }

    try:
        deploy_config = build_config(settings)
    except DeployerError as exc:
        raise click.ClickException(str(exc)) from exc

    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)
        logger.setLevel(logging.DEBUG)
    else:
        logger.setLevel(logging.INFO)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(logging.DEBUG if verbose else logging.INFO)
        file_handler.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(message)s"))
        logger.addHandler(file_handler)

    try:
        deployer = ReleaseDeployer(
            config=deploy_config,
            revision_key=None if revision_key is None else str(revision_key),
            connect_timeout=connect_timeout,
            command_timeout=command_timeout,
            manifest_file=manifest_file,
            dry_run=dry_run,
        )
    except DeployerError as exc:
        raise click.ClickException(str(exc)) from exc

    raise SystemExit(deployer.run())


if __name__ == "__main__":
    main()
