"""
sshrelease - Atomic multi-host release deployments over SSH
"""

__version__ = "0.3.0"

from .core import ReleaseDeployer
from .errors import DeployerError

__all__ = ["ReleaseDeployer", "DeployerError"]
