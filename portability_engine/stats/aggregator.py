"""Read-side statistics across exports, air-gapped configs and migration plans."""

from collections import Counter

from portability_engine.models.airgap import AirGappedConfig
from portability_engine.models.export import ExportPackage, ExportStatus
from portability_engine.models.migration import MigrationPlan, PlanStatus
from portability_engine.models.stats import (
    AirGappedStats,
    ExportStats,
    MigrationStats,
    PortabilityStats,
    ProviderStats,
)
from portability_engine.providers.registry import ProviderRegistry
from portability_engine.storage.repository import Repository

_IN_PROGRESS_EXPORT = (
    ExportStatus.PENDING,
    ExportStatus.PREPARING,
    ExportStatus.PACKAGING,
    ExportStatus.ENCRYPTING,
)


class StatsAggregator:
    """Folds over the entity stores for one tenant. Never mutates anything."""

    def __init__(
        self,
        exports: Repository[ExportPackage],
        air_gapped: Repository[AirGappedConfig],
        plans: Repository[MigrationPlan],
        registry: ProviderRegistry
    ):
        self.exports = exports
        self.air_gapped = air_gapped
        self.plans = plans
        self.registry = registry

    def get_stats(self, tenant_id: str) -> PortabilityStats:
        return PortabilityStats(
            tenant_id=tenant_id,
            exports=self._export_stats(tenant_id),
            air_gapped=self._air_gapped_stats(tenant_id),
            migrations=self._migration_stats(tenant_id),
            providers=ProviderStats(
                available=len(self.registry),
                offline_supported=len(self.registry.offline_capable()),
            ),
        )

    def _export_stats(self, tenant_id: str) -> ExportStats:
        packages = self.exports.list(tenant_id)
        by_status = Counter(p.status.value for p in packages)
        return ExportStats(
            total=len(packages),
            by_status=dict(by_status),
            completed=by_status[ExportStatus.COMPLETED.value],
            in_progress=sum(by_status[s.value] for s in _IN_PROGRESS_EXPORT),
            failed=by_status[ExportStatus.FAILED.value],
            total_size=sum(p.size for p in packages if p.status == ExportStatus.COMPLETED),
        )

    def _air_gapped_stats(self, tenant_id: str) -> AirGappedStats:
        configs = self.air_gapped.list(tenant_id)
        sync_times = [c.last_sync_at for c in configs if c.last_sync_at is not None]
        last_sync = max(sync_times) if sync_times else None
        return AirGappedStats(
            total=len(configs),
            enabled=sum(1 for c in configs if c.enabled),
            last_sync=last_sync,
        )

    def _migration_stats(self, tenant_id: str) -> MigrationStats:
        plans = self.plans.list(tenant_id)
        by_status = Counter(p.status.value for p in plans)
        return MigrationStats(
            total=len(plans),
            by_status=dict(by_status),
            draft=by_status[PlanStatus.DRAFT.value],
            in_progress=by_status[PlanStatus.IN_PROGRESS.value],
            completed=by_status[PlanStatus.COMPLETED.value],
        )
