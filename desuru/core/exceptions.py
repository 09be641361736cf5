"""
Deployment exceptions.

Every fatal condition raises a DesuruError subclass carrying remediation hints
that the CLI prints below the error message. Advisory failures never raise;
stages report them as warnings and count them in ProvisioningState.
"""

from typing import List, Optional, Sequence


class DesuruError(Exception):
    """Base class for errors that abort a deployment run."""

    def __init__(self, message: str, hints: Optional[Sequence[str]] = None):
        super().__init__(message)
        self.hints: List[str] = list(hints or [])


class PreconditionError(DesuruError):
    """Raised when the environment cannot run a deployment (e.g. not root)."""
    pass


class ValidationError(DesuruError):
    """Raised for bad user-supplied parameters, before any host mutation."""
    pass


class ClassificationError(DesuruError):
    """Raised when the project manifest is missing or unreadable."""
    pass


class ProvisioningError(DesuruError):
    """
    Raised when a required step fails on the host.

    Examples:
        - Node.js, nginx or PM2 cannot be installed
        - Package index refresh failed
    """
    pass


class BuildError(ProvisioningError):
    """Raised when dependency installation or the build fails."""
    pass


class LaunchError(ProvisioningError):
    """Raised when the supervisor cannot start or persist the application."""
    pass


class EdgeConfigError(ProvisioningError):
    """Raised when the nginx site cannot be written, validated or reloaded."""
    pass


class CommandError(Exception):
    """
    Raised when an external command exits non-zero or cannot be found.

    Callers decide whether the failure is fatal (wrap in a DesuruError) or
    advisory (warn and count).
    """

    def __init__(self, message: str, command: Sequence[str] = (), returncode: Optional[int] = None,
                 output: str = ""):
        super().__init__(message)
        self.command = list(command)
        self.returncode = returncode
        self.output = output
