"""
Data models for the Portability Engine.

This module contains all Pydantic models used throughout the engine
for settings, entities and request validation.
"""

from portability_engine.models.config import EngineSettings, StageDelays
from portability_engine.models.provider import (
    CloudProvider,
    MigrationComplexity,
    ProviderCapability,
    CostEstimate,
    CostItem,
    ProviderAbstraction,
    ProviderComparison,
)
from portability_engine.models.export import (
    ExportFormat,
    NetworkMode,
    ExportStatus,
    ComponentType,
    DependencyType,
    DependencySource,
    CompressionType,
    EncryptionAlgorithm,
    ExportComponent,
    Dependency,
    ExportConfiguration,
    SecurityConfig,
    ExportRequest,
    ExportPackage,
    DownloadDescriptor,
)
from portability_engine.models.airgap import (
    AirGappedMode,
    SecurityLevel,
    ServiceStatus,
    SyncFrequency,
    SyncDirection,
    ServiceResources,
    LocalService,
    SyncSchedule,
    SyncResult,
    AirGappedConfigRequest,
    AirGappedConfig,
)
from portability_engine.models.migration import (
    RiskLevel,
    PlanStatus,
    StepStatus,
    MigrationStep,
    MigrationPlanRequest,
    MigrationPlan,
)
from portability_engine.models.stats import PortabilityStats

__all__ = [
    # Settings
    "EngineSettings",
    "StageDelays",
    # Providers
    "CloudProvider",
    "MigrationComplexity",
    "ProviderCapability",
    "CostEstimate",
    "CostItem",
    "ProviderAbstraction",
    "ProviderComparison",
    # Exports
    "ExportFormat",
    "NetworkMode",
    "ExportStatus",
    "ComponentType",
    "DependencyType",
    "DependencySource",
    "CompressionType",
    "EncryptionAlgorithm",
    "ExportComponent",
    "Dependency",
    "ExportConfiguration",
    "SecurityConfig",
    "ExportRequest",
    "ExportPackage",
    "DownloadDescriptor",
    # Air-gapped operation
    "AirGappedMode",
    "SecurityLevel",
    "ServiceStatus",
    "SyncFrequency",
    "SyncDirection",
    "ServiceResources",
    "LocalService",
    "SyncSchedule",
    "SyncResult",
    "AirGappedConfigRequest",
    "AirGappedConfig",
    # Migration plans
    "RiskLevel",
    "PlanStatus",
    "StepStatus",
    "MigrationStep",
    "MigrationPlanRequest",
    "MigrationPlan",
    # Stats
    "PortabilityStats",
]
