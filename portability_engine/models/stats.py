"""Read-side statistics models."""

from datetime import datetime
from typing import Dict, Optional

from pydantic import BaseModel, Field


class ExportStats(BaseModel):
    total: int = 0
    by_status: Dict[str, int] = Field(default_factory=dict)
    completed: int = 0
    in_progress: int = 0
    failed: int = 0
    total_size: int = 0  # bytes, completed exports only


class AirGappedStats(BaseModel):
    total: int = 0
    enabled: int = 0
    last_sync: Optional[datetime] = None


class MigrationStats(BaseModel):
    total: int = 0
    by_status: Dict[str, int] = Field(default_factory=dict)
    draft: int = 0
    in_progress: int = 0
    completed: int = 0


class ProviderStats(BaseModel):
    available: int = 0
    offline_supported: int = 0


class PortabilityStats(BaseModel):
    tenant_id: str
    exports: ExportStats
    air_gapped: AirGappedStats
    migrations: MigrationStats
    providers: ProviderStats
