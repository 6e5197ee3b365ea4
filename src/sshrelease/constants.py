"""Shared defaults for sshrelease."""

DEFAULT_RELEASES_DIR = "releases"
DEFAULT_TARGET_LINK = "current"
DEFAULT_KEEP = 5
DEFAULT_SSH_PORT = 22
DEFAULT_CONNECT_TIMEOUT = 10.0
DEFAULT_COMMAND_TIMEOUT = 600.0
COMMAND_POLL_INTERVAL = 0.05
DEFAULT_CONFIG_FILE = ".sshrelease.yml"

RELEASES_DIR_MODE = "750"
RELEASE_DIR_MODE = "0750"
RELEASE_FILE_MODE = "0640"

RELEASE_NAME_FORMAT = "%Y%m%dT%H"
RELEASE_MISSING_MESSAGE = "Release is missing!"
