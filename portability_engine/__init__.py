"""
Platform Portability Engine

Turns a hosted platform into provider-independent deployment artifacts,
runs it disconnected with local service substitutes, and plans moves
between hosting providers.
"""

__version__ = "0.1.0"
__author__ = "Portability Engine Team"

from portability_engine.models.config import EngineSettings
from portability_engine.models.export import ExportPackage, ExportStatus
from portability_engine.models.migration import MigrationPlan, PlanStatus

__all__ = [
    "EngineSettings",
    "ExportPackage",
    "ExportStatus",
    "MigrationPlan",
    "PlanStatus",
]
