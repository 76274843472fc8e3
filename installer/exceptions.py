# installer/exceptions.py
# -*- coding: utf-8 -*-
"""
Exceptions raised by provisioning stages.

Every exception carries the process exit code the entry points report when
it escapes a stage.
"""

from installer.config import EXIT_PRECONDITION, EXIT_STAGE_FAILED


class ProvisioningError(RuntimeError):
    """Base class for provisioning failures."""

    def __init__(self, message: str, exit_code: int = EXIT_STAGE_FAILED):
        super().__init__(message)
        self.exit_code = exit_code


class PreconditionError(ProvisioningError):
    """Raised before any host mutation when the run cannot proceed."""

    def __init__(self, message: str):
        super().__init__(message, exit_code=EXIT_PRECONDITION)


class InstallationError(ProvisioningError):
    """Raised when a package or tool installation step fails."""


class ServiceNotReadyError(ProvisioningError):
    """Raised when mongod does not accept connections after a start."""

    def __init__(self, message: str, status=None):
        super().__init__(message)
        self.status = status


class ReplicaSetError(ProvisioningError):
    """Raised when a replica set administrative command fails."""


class AdminUserError(ProvisioningError):
    """Raised when the administrative user cannot be created."""
