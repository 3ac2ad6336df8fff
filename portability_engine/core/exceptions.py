"""
Custom exceptions for the Portability Engine.

This module defines the exception classes raised by the engine's
components. Validation, not-found and illegal-transition errors are
raised synchronously to callers; pipeline failures are captured into
the export record instead.
"""

from typing import Any, Dict, List, Optional


class PortabilityError(Exception):
    """Base exception class for Portability Engine errors."""

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}


class ConfigurationError(PortabilityError):
    """Raised when engine settings or catalog data are invalid."""
    pass


class ValidationError(PortabilityError):
    """Raised when a create request fails validation."""

    def __init__(
        self,
        message: str,
        failed_checks: Optional[List[str]] = None,
        **kwargs
    ):
        super().__init__(message, **kwargs)
        self.failed_checks = failed_checks or []


class NotFoundError(PortabilityError):
    """Raised when an operation references an unknown identifier."""

    resource = "resource"

    def __init__(self, identifier: str, **kwargs):
        super().__init__(f"{self.resource} not found: {identifier}", **kwargs)
        self.identifier = identifier


class ExportNotFoundError(NotFoundError):
    resource = "Export"


class ProviderNotFoundError(NotFoundError):
    resource = "Provider"


class AirGappedConfigNotFoundError(NotFoundError):
    resource = "Air-gapped configuration"


class MigrationPlanNotFoundError(NotFoundError):
    resource = "Migration plan"


class IllegalTransitionError(PortabilityError):
    """Raised when a lifecycle transition is not allowed from the current state."""

    def __init__(self, entity: str, current: str, target: str, **kwargs):
        super().__init__(
            f"Cannot move {entity} from '{current}' to '{target}'",
            **kwargs
        )
        self.entity = entity
        self.current = current
        self.target = target


class PipelineError(PortabilityError):
    """Raised inside the export pipeline when a stage fails."""

    def __init__(self, message: str, stage: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.stage = stage


class SecurityError(PortabilityError):
    """Raised when key provisioning or encryption fails."""
    pass


class ExportNotAvailableError(PortabilityError):
    """Raised when a download is requested for an export that is not ready."""
    pass
