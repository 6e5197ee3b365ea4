"""Domain errors for sshrelease."""


class DeployerError(RuntimeError):
    """Raised when the deployment cannot continue safely."""


class ConfigurationError(DeployerError):
    """Required settings are missing or invalid."""


class ConnectError(DeployerError):
    """A host could not be reached or rejected authentication."""


class ExecError(DeployerError):
    """A remote command wrote to stderr or the transport failed to run it."""


class TransferError(DeployerError):
    """Copying the artifact to a host failed."""


class ActivationError(ExecError):
    """The release could not be linked or its permissions normalized."""
