"""
Air-gapped configuration manager.

Tracks the local services that stand in for managed external ones,
switches them on and off together with the configuration's enabled flag,
and records synchronization bookkeeping. What a sync actually transfers
is decided by a SyncBackend.
"""

import logging
from abc import ABC, abstractmethod
from datetime import datetime, UTC
from typing import Any, List, Mapping, Optional, Union

from portability_engine.catalog.loader import CatalogLoader
from portability_engine.core.exceptions import AirGappedConfigNotFoundError
from portability_engine.core.validation import build_request, require_tenant
from portability_engine.models.airgap import (
    AirGappedConfig,
    AirGappedConfigRequest,
    LocalService,
    ServiceStatus,
    SyncResult,
)
from portability_engine.storage.repository import InMemoryRepository, Repository
from portability_engine.utils.helpers import generate_id
from portability_engine.utils.logging import AuditLogger

logger = logging.getLogger(__name__)


class SyncBackend(ABC):
    """Performs the data transfer behind a sync and reports what moved."""

    @abstractmethod
    async def synchronize(self, config: AirGappedConfig) -> int:
        """Synchronize data for a configuration and return the item count."""


class NullSyncBackend(SyncBackend):
    """Records the sync without transferring anything."""

    async def synchronize(self, config: AirGappedConfig) -> int:
        logger.debug(f"No sync backend configured for {config.id}; nothing transferred")
        return 0


class AirGappedManager:
    """Creates, toggles and synchronizes air-gapped configurations."""

    def __init__(
        self,
        repository: Optional[Repository[AirGappedConfig]] = None,
        loader: Optional[CatalogLoader] = None,
        sync_backend: Optional[SyncBackend] = None,
        audit_logger: Optional[AuditLogger] = None
    ):
        self.repository = repository if repository is not None else InMemoryRepository()
        self.loader = loader or CatalogLoader()
        self.sync_backend = sync_backend or NullSyncBackend()
        self.audit_logger = audit_logger or AuditLogger()

    def create_config(
        self,
        tenant_id: str,
        request: Union[AirGappedConfigRequest, Mapping[str, Any]]
    ) -> AirGappedConfig:
        """
        Create a disabled configuration with the full local service set.

        Args:
            tenant_id: Owning tenant
            request: AirGappedConfigRequest or an equivalent mapping

        Returns:
            The new configuration with every local service stopped
        """
        tenant_id = require_tenant(tenant_id)
        request = build_request(AirGappedConfigRequest, request)

        services = [
            LocalService(
                name=template.name,
                type=template.type,
                status=ServiceStatus.STOPPED,
                port=template.port,
                replaces=template.replaces,
                resources=template.resources,
            )
            for template in self.loader.local_services
        ]

        config = AirGappedConfig(
            id=generate_id("airgap"),
            tenant_id=tenant_id,
            platform_id=request.platform_id,
            enabled=False,
            mode=request.mode,
            local_services=services,
            sync_schedule=request.sync_schedule,
            data_retention=request.data_retention,
            security_level=request.security_level,
        )
        self.repository.add(config)

        logger.info(
            f"Created air-gapped config {config.id} for platform {config.platform_id} "
            f"({len(services)} local services, {config.mode.value} mode)"
        )
        self.audit_logger.log_event(
            "airgap.created",
            tenant_id=tenant_id,
            entity_id=config.id,
            details={"mode": config.mode.value, "security_level": config.security_level.value}
        )
        return config

    def enable(self, config_id: str) -> AirGappedConfig:
        """Enable the configuration and start every local service."""
        return self._set_enabled(config_id, True)

    def disable(self, config_id: str) -> AirGappedConfig:
        """Disable the configuration and stop every local service."""
        return self._set_enabled(config_id, False)

    def _set_enabled(self, config_id: str, enabled: bool) -> AirGappedConfig:
        config = self.get_config(config_id)
        if config.enabled == enabled and config.is_consistent():
            logger.debug(f"Air-gapped config {config_id} already {'enabled' if enabled else 'disabled'}")
            return config

        # Flag and service statuses change in one repository update
        config.set_enabled(enabled)
        self.repository.update(config)

        action = "enabled" if enabled else "disabled"
        logger.info(f"Air-gapped config {config_id} {action}")
        self.audit_logger.log_event(
            f"airgap.{action}",
            tenant_id=config.tenant_id,
            entity_id=config_id,
            details={"services": len(config.local_services)}
        )
        return config

    async def sync_air_gapped_data(self, config_id: str) -> SyncResult:
        """
        Run a sync for a configuration and record when it happened.

        ``last_sync_at`` never moves backwards, even if the clock does.
        The enabled flag is left untouched.
        """
        config = self.get_config(config_id)
        items_synced = await self.sync_backend.synchronize(config)

        # Re-read so a concurrent enable/disable is not overwritten
        config = self.get_config(config_id)
        synced_at = datetime.now(UTC)
        if config.last_sync_at is not None and config.last_sync_at > synced_at:
            synced_at = config.last_sync_at

        config.last_sync_at = synced_at
        if config.sync_schedule is not None:
            config.sync_schedule.record_sync(synced_at)
        config.updated_at = datetime.now(UTC)
        self.repository.update(config)

        logger.info(f"Synchronized air-gapped config {config_id}: {items_synced} items")
        self.audit_logger.log_event(
            "airgap.synced",
            tenant_id=config.tenant_id,
            entity_id=config_id,
            details={"items_synced": items_synced}
        )
        return SyncResult(success=True, synced_at=synced_at, items_synced=items_synced)

    def get_config(self, config_id: str) -> AirGappedConfig:
        config = self.repository.get(config_id)
        if config is None:
            raise AirGappedConfigNotFoundError(config_id)
        return config

    def list_configs(self, tenant_id: str) -> List[AirGappedConfig]:
        return self.repository.list(tenant_id)
