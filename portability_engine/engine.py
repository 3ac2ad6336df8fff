"""
Portability engine facade.

This module provides the PortabilityEngine class, which wires the
provider registry, catalogs, export pipeline, air-gapped manager,
migration planner and stats aggregator together behind one object.
"""

import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from portability_engine.airgap.manager import AirGappedManager, SyncBackend
from portability_engine.catalog.components import ComponentCatalog
from portability_engine.catalog.loader import CatalogLoader, FormatDescriptor
from portability_engine.export.backend import PackagingBackend
from portability_engine.export.pipeline import ExportPipeline
from portability_engine.migration.planner import MigrationPlanner
from portability_engine.models.airgap import (
    AirGappedConfig,
    AirGappedConfigRequest,
    SyncResult,
)
from portability_engine.models.config import EngineSettings
from portability_engine.models.export import DownloadDescriptor, ExportPackage, ExportRequest
from portability_engine.models.migration import MigrationPlan, StepStatus
from portability_engine.models.provider import (
    CloudProvider,
    ProviderAbstraction,
    ProviderComparison,
)
from portability_engine.models.stats import PortabilityStats
from portability_engine.providers.registry import ProviderRegistry
from portability_engine.security.keys import EncryptionKeyProvider
from portability_engine.stats.aggregator import StatsAggregator
from portability_engine.storage.repository import InMemoryRepository, Repository
from portability_engine.utils.logging import AuditLogger

logger = logging.getLogger(__name__)


class PortabilityEngine:
    """
    Entry point for exports, provider queries, air-gapped operation,
    migration planning and statistics.

    Every collaborator can be injected; anything not given is built from
    the settings, with in-memory repositories for storage.
    """

    def __init__(
        self,
        settings: Optional[EngineSettings] = None,
        loader: Optional[CatalogLoader] = None,
        key_provider: Optional[EncryptionKeyProvider] = None,
        packaging_backend: Optional[PackagingBackend] = None,
        sync_backend: Optional[SyncBackend] = None,
        export_repository: Optional[Repository[ExportPackage]] = None,
        air_gapped_repository: Optional[Repository[AirGappedConfig]] = None,
        plan_repository: Optional[Repository[MigrationPlan]] = None,
        audit_logger: Optional[AuditLogger] = None
    ):
        """
        Initialize the engine.

        Args:
            settings: Engine settings (defaults if omitted)
            loader: Catalog loader; defaults to the settings' catalog directory
            key_provider: Export encryption key source; defaults to the
                environment variable named in the settings
            packaging_backend: Work performed in each export stage
            sync_backend: Data transfer performed by air-gapped syncs
            export_repository: Store for export packages
            air_gapped_repository: Store for air-gapped configurations
            plan_repository: Store for migration plans
            audit_logger: Audit event sink
        """
        self.settings = settings or EngineSettings()
        self.loader = (loader or CatalogLoader(self.settings.catalog_dir)).load_all()
        self.audit_logger = audit_logger or AuditLogger(self.settings.audit_log_file)

        self.registry = ProviderRegistry(loader=self.loader)
        self.catalog = ComponentCatalog(self.loader)

        self.exports = ExportPipeline(
            registry=self.registry,
            catalog=self.catalog,
            repository=export_repository if export_repository is not None else InMemoryRepository(),
            backend=packaging_backend,
            key_provider=key_provider,
            settings=self.settings,
            audit_logger=self.audit_logger,
        )
        self.air_gapped = AirGappedManager(
            repository=(
                air_gapped_repository if air_gapped_repository is not None
                else InMemoryRepository()
            ),
            loader=self.loader,
            sync_backend=sync_backend,
            audit_logger=self.audit_logger,
        )
        self.planner = MigrationPlanner(
            registry=self.registry,
            repository=plan_repository if plan_repository is not None else InMemoryRepository(),
            loader=self.loader,
            audit_logger=self.audit_logger,
        )
        self.stats = StatsAggregator(
            exports=self.exports.repository,
            air_gapped=self.air_gapped.repository,
            plans=self.planner.repository,
            registry=self.registry,
        )

        logger.debug(
            f"Portability engine ready: {len(self.registry)} providers, "
            f"{len(self.loader.formats)} export formats"
        )

    # Exports

    async def create_export_package(
        self,
        tenant_id: str,
        request: Union[ExportRequest, Mapping[str, Any]]
    ) -> ExportPackage:
        return await self.exports.create_export_package(tenant_id, request)

    def get_export(self, export_id: str) -> ExportPackage:
        return self.exports.get_export(export_id)

    def list_exports(self, tenant_id: str) -> List[ExportPackage]:
        return self.exports.list_exports(tenant_id)

    async def cancel_export(self, export_id: str, reason: str = "Cancelled by user") -> ExportPackage:
        return await self.exports.cancel_export(export_id, reason)

    async def wait_for_export(self, export_id: str, timeout: Optional[float] = None) -> ExportPackage:
        return await self.exports.wait_for_export(export_id, timeout)

    def get_download(self, export_id: str) -> DownloadDescriptor:
        return self.exports.get_download(export_id)

    def list_formats(self) -> List[FormatDescriptor]:
        return self.catalog.list_formats()

    # Providers

    def list_providers(self) -> List[ProviderAbstraction]:
        return self.registry.list_providers()

    def get_provider(self, provider_type: Union[CloudProvider, str]) -> ProviderAbstraction:
        return self.registry.get_provider(provider_type)

    def compare_providers(
        self,
        provider_types: Iterable[Union[CloudProvider, str]]
    ) -> ProviderComparison:
        return self.registry.compare_providers(provider_types)

    # Air-gapped operation

    def create_air_gapped_config(
        self,
        tenant_id: str,
        request: Union[AirGappedConfigRequest, Mapping[str, Any]]
    ) -> AirGappedConfig:
        return self.air_gapped.create_config(tenant_id, request)

    def enable_air_gapped(self, config_id: str) -> AirGappedConfig:
        return self.air_gapped.enable(config_id)

    def disable_air_gapped(self, config_id: str) -> AirGappedConfig:
        return self.air_gapped.disable(config_id)

    async def sync_air_gapped_data(self, config_id: str) -> SyncResult:
        return await self.air_gapped.sync_air_gapped_data(config_id)

    def get_air_gapped_config(self, config_id: str) -> AirGappedConfig:
        return self.air_gapped.get_config(config_id)

    def list_air_gapped_configs(self, tenant_id: str) -> List[AirGappedConfig]:
        return self.air_gapped.list_configs(tenant_id)

    # Migration planning

    def create_migration_plan(
        self,
        tenant_id: str,
        platform_id: str,
        source_provider: Union[CloudProvider, str],
        target_provider: Union[CloudProvider, str]
    ) -> MigrationPlan:
        return self.planner.create_plan(tenant_id, {
            "platform_id": platform_id,
            "source_provider": source_provider,
            "target_provider": target_provider,
        })

    def approve_migration_plan(self, plan_id: str) -> MigrationPlan:
        return self.planner.approve_plan(plan_id)

    def start_migration_plan(self, plan_id: str) -> MigrationPlan:
        return self.planner.start_plan(plan_id)

    def record_step_progress(
        self,
        plan_id: str,
        order: int,
        status: Union[StepStatus, str]
    ) -> MigrationPlan:
        return self.planner.record_step_progress(plan_id, order, status)

    def complete_migration_plan(self, plan_id: str) -> MigrationPlan:
        return self.planner.complete_plan(plan_id)

    def rollback_migration_plan(self, plan_id: str) -> MigrationPlan:
        return self.planner.rollback_plan(plan_id)

    def get_migration_plan(self, plan_id: str) -> MigrationPlan:
        return self.planner.get_plan(plan_id)

    def list_migration_plans(self, tenant_id: str) -> List[MigrationPlan]:
        return self.planner.list_plans(tenant_id)

    # Stats

    def get_stats(self, tenant_id: str) -> PortabilityStats:
        return self.stats.get_stats(tenant_id)

    def get_status(self) -> Dict[str, Any]:
        """Summarize engine configuration for diagnostics."""
        return {
            "providers": len(self.registry),
            "formats": [fmt.value for fmt in self.loader.formats],
            "catalog_dir": str(self.loader.catalog_dir),
            "encryption_key_provisioned": self.exports.key_provider.has_key,
            "stage_timeout": self.settings.stage_timeout,
            "max_pipeline_duration": self.settings.max_pipeline_duration,
        }

    async def shutdown(self):
        await self.exports.shutdown()
