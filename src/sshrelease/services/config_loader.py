"""Configuration loading and validation for sshrelease."""

from collections.abc import Iterable
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from sshrelease.constants import DEFAULT_KEEP, DEFAULT_RELEASES_DIR, DEFAULT_SSH_PORT, DEFAULT_TARGET_LINK
from sshrelease.errors import ConfigurationError
from sshrelease.errors_catalog import actionable_error
from sshrelease.models import DeployConfig, Host

REQUIRED_KEYS = ("hosts", "target_dir", "source_dir")
HOST_KEYS = {"host", "address", "username", "port"}


class ConfigLoader:
    """Loads YAML configuration files for CLI defaults."""

    SUPPORTED_KEYS = {
        "hosts",
        "target_dir",
        "source_dir",
        "releases_dir",
        "target_link",
        "keep",
        "revision_key",
        "verbose",
        "log_file",
        "manifest_file",
        "connect_timeout",
        "command_timeout",
        "dry_run",
    }

    def load(self, config_path: Optional[str]) -> Dict[str, Any]:
        if not config_path:
            return {}

        path = Path(config_path)
        if not path.exists():
            raise ConfigurationError(f"Config file not found: {config_path}")

        try:
            parsed = yaml.safe_load(path.read_text(encoding="utf-8"))
        except (yaml.YAMLError, OSError) as exc:
            raise ConfigurationError(f"Invalid config file '{config_path}': {exc}") from exc

        if parsed is None:
            return {}
        if not isinstance(parsed, dict):
            raise ConfigurationError("Config file must contain a YAML mapping at the root.")

        unknown = sorted(set(parsed.keys()) - self.SUPPORTED_KEYS)
        if unknown:
            unknown_list = ", ".join(unknown)
            raise ConfigurationError(f"Unknown configuration keys: {unknown_list}")

        return parsed


def parse_host(entry: Any) -> Host:
    """Accept ``user@host[:port]`` strings or ``{host, username, port}`` mappings."""
    if isinstance(entry, Host):
        return entry

    if isinstance(entry, str):
        username, sep, address = entry.strip().rpartition("@")
        if not sep or not username or not address:
            raise ConfigurationError(f"Host must look like user@host[:port]: {entry!r}")
        port = DEFAULT_SSH_PORT
        if ":" in address:
            address, port_text = address.rsplit(":", 1)
            port = _parse_port(port_text, entry)
        return Host(address=address, username=username, port=port)

    if isinstance(entry, dict):
        unknown = sorted(str(key) for key in set(entry) - HOST_KEYS)
        if unknown:
            raise ConfigurationError(f"Unknown host entry keys: {', '.join(unknown)}")
        address = entry.get("host") or entry.get("address")
        username = entry.get("username")
        if not address or not username:
            raise ConfigurationError(f"Host entries need 'host' and 'username': {entry!r}")
        port = _parse_port(entry.get("port", DEFAULT_SSH_PORT), entry)
        return Host(address=str(address), username=str(username), port=port)

    raise ConfigurationError(f"Unsupported host entry: {entry!r}")


def _parse_port(value: Any, entry: Any) -> int:
    try:
        port = int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"Invalid port in host entry {entry!r}") from exc
    if not 0 < port < 65536:
        raise ConfigurationError(f"Invalid port in host entry {entry!r}")
    return port


def build_config(values: Dict[str, Any]) -> DeployConfig:
    """Validate resolved settings and build a DeployConfig.

    Raises ConfigurationError before any remote interaction happens.
    """
    for key in REQUIRED_KEYS:
        if not values.get(key):
            raise ConfigurationError(
                actionable_error("missing_config", key=key, option=key.replace("_", "-"))
            )

    hosts = values["hosts"]
    if isinstance(hosts, (str, dict)) or not isinstance(hosts, Iterable):
        hosts = [hosts]
    parsed_hosts = tuple(parse_host(entry) for entry in hosts)

    names = [host.name for host in parsed_hosts]
    duplicates = sorted({name for name in names if names.count(name) > 1})
    if duplicates:
        raise ConfigurationError(f"Duplicate hosts in configuration: {', '.join(duplicates)}")

    keep = values.get("keep")
    if keep is None:
        keep = DEFAULT_KEEP
    if isinstance(keep, bool) or not isinstance(keep, int):
        try:
            keep = int(str(keep))
        except ValueError as exc:
            raise ConfigurationError(f"'keep' must be a non-negative integer, got {keep!r}") from exc
    if keep < 0:
        raise ConfigurationError(f"'keep' must be a non-negative integer, got {keep}")

    return DeployConfig(
        hosts=parsed_hosts,
        target_dir=str(values["target_dir"]),
        source_dir=str(values["source_dir"]),
        releases_dir=str(values.get("releases_dir") or DEFAULT_RELEASES_DIR),
        target_link=str(values.get("target_link") or DEFAULT_TARGET_LINK),
        keep=keep,
    )
