"""
Core module for the Portability Engine.

This module contains the exception hierarchy shared by every component.
"""

from portability_engine.core.exceptions import (
    PortabilityError,
    ConfigurationError,
    ValidationError,
    NotFoundError,
    ExportNotFoundError,
    ProviderNotFoundError,
    AirGappedConfigNotFoundError,
    MigrationPlanNotFoundError,
    IllegalTransitionError,
    PipelineError,
    SecurityError,
    ExportNotAvailableError,
)

__all__ = [
    "PortabilityError",
    "ConfigurationError",
    "ValidationError",
    "NotFoundError",
    "ExportNotFoundError",
    "ProviderNotFoundError",
    "AirGappedConfigNotFoundError",
    "MigrationPlanNotFoundError",
    "IllegalTransitionError",
    "PipelineError",
    "SecurityError",
    "ExportNotAvailableError",
]
