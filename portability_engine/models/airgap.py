"""
Air-gapped operation models for the Portability Engine.

An air-gapped configuration pairs a tenant's platform with a set of
local services that stand in for managed external ones. The enabled
flag and the status of every local service always agree.
"""

from datetime import datetime, timedelta, UTC
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class AirGappedMode(str, Enum):
    FULL = "full"
    PARTIAL = "partial"
    HYBRID = "hybrid"


class SecurityLevel(str, Enum):
    STANDARD = "standard"
    ENHANCED = "enhanced"
    MILITARY = "military"


class ServiceStatus(str, Enum):
    RUNNING = "running"
    STOPPED = "stopped"
    ERROR = "error"


class SyncFrequency(str, Enum):
    MANUAL = "manual"
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


class SyncDirection(str, Enum):
    PULL = "pull"
    PUSH = "push"
    BIDIRECTIONAL = "bidirectional"


SYNC_INTERVALS = {
    SyncFrequency.DAILY: timedelta(days=1),
    SyncFrequency.WEEKLY: timedelta(days=7),
    SyncFrequency.MONTHLY: timedelta(days=30),
}


class ServiceResources(BaseModel):
    """Resource footprint: CPU cores, memory and storage in MB."""
    model_config = ConfigDict(frozen=True)

    cpu: float = Field(..., gt=0)
    memory: int = Field(..., gt=0)
    storage: int = Field(..., ge=0)


class LocalService(BaseModel):
    """A locally run substitute for one managed external service."""
    name: str
    type: str
    status: ServiceStatus = ServiceStatus.STOPPED
    port: int = Field(..., gt=0, lt=65536)
    replaces: str
    resources: ServiceResources


class SyncSchedule(BaseModel):
    frequency: SyncFrequency = SyncFrequency.MANUAL
    direction: SyncDirection = SyncDirection.PULL
    data_types: List[str] = Field(default_factory=list)
    last_sync: Optional[datetime] = None
    next_sync: Optional[datetime] = None

    def record_sync(self, synced_at: datetime):
        """Record a completed sync and schedule the next one."""
        self.last_sync = synced_at
        interval = SYNC_INTERVALS.get(self.frequency)
        self.next_sync = synced_at + interval if interval else None


class AirGappedConfigRequest(BaseModel):
    """Caller input for creating an air-gapped configuration."""
    platform_id: str
    mode: AirGappedMode
    security_level: SecurityLevel
    data_retention: int = Field(default=365, gt=0)
    sync_schedule: Optional[SyncSchedule] = None

    @field_validator('platform_id')
    @classmethod
    def platform_id_not_blank(cls, v):
        if not v or not v.strip():
            raise ValueError('platform_id must not be blank')
        return v.strip()


class SyncResult(BaseModel):
    success: bool
    synced_at: datetime
    items_synced: int = Field(..., ge=0)


class AirGappedConfig(BaseModel):
    """Disconnected-operation settings for one tenant platform."""
    id: str
    tenant_id: str
    platform_id: str
    enabled: bool = False
    mode: AirGappedMode
    local_services: List[LocalService] = Field(default_factory=list)
    sync_schedule: Optional[SyncSchedule] = None
    data_retention: int = Field(..., gt=0)
    security_level: SecurityLevel
    last_sync_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    def set_enabled(self, enabled: bool):
        """Flip the enabled flag and cascade the matching status to every service."""
        status = ServiceStatus.RUNNING if enabled else ServiceStatus.STOPPED
        self.local_services = [
            service.model_copy(update={"status": status})
            for service in self.local_services
        ]
        self.enabled = enabled
        self.updated_at = datetime.now(UTC)

    def is_consistent(self) -> bool:
        expected = ServiceStatus.RUNNING if self.enabled else ServiceStatus.STOPPED
        return all(service.status == expected for service in self.local_services)
