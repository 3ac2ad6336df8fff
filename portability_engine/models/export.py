"""
Export models for the Portability Engine.

This module defines the export package entity, its components and
dependencies, the caller-supplied export configuration, and the
status state machine driven by the export pipeline.
"""

from datetime import datetime, UTC
from enum import Enum
from typing import Dict, FrozenSet, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from portability_engine.core.exceptions import IllegalTransitionError
from portability_engine.models.provider import CloudProvider


class ExportFormat(str, Enum):
    """Deployment artifact formats."""
    DOCKER = "docker"
    KUBERNETES = "kubernetes"
    TERRAFORM = "terraform"
    ANSIBLE = "ansible"
    STANDALONE = "standalone"
    VM_IMAGE = "vm-image"


class NetworkMode(str, Enum):
    """Network connectivity the exported platform will run with."""
    ONLINE = "online"
    HYBRID = "hybrid"
    OFFLINE = "offline"
    AIR_GAPPED = "air-gapped"

    @property
    def is_disconnected(self) -> bool:
        return self in (NetworkMode.OFFLINE, NetworkMode.AIR_GAPPED)


class ExportStatus(str, Enum):
    """Export package status."""
    PENDING = "pending"
    PREPARING = "preparing"
    PACKAGING = "packaging"
    ENCRYPTING = "encrypting"
    COMPLETED = "completed"
    FAILED = "failed"


class ComponentType(str, Enum):
    FRONTEND = "frontend"
    BACKEND = "backend"
    DATABASE = "database"
    CACHE = "cache"
    STORAGE = "storage"
    MESSAGING = "messaging"
    MONITORING = "monitoring"
    SECURITY = "security"


class DependencyType(str, Enum):
    RUNTIME = "runtime"
    BUILD = "build"
    DEV = "dev"
    OPTIONAL = "optional"


class DependencySource(str, Enum):
    NPM = "npm"
    PIP = "pip"
    APT = "apt"
    BINARY = "binary"
    CONTAINER = "container"


class CompressionType(str, Enum):
    NONE = "none"
    GZIP = "gzip"
    BROTLI = "brotli"
    LZ4 = "lz4"


class EncryptionAlgorithm(str, Enum):
    NONE = "none"
    AES_256_GCM = "aes-256-gcm"
    CHACHA20_POLY1305 = "chacha20-poly1305"


# Allowed status transitions; completed and failed are terminal.
EXPORT_TRANSITIONS: Dict[ExportStatus, FrozenSet[ExportStatus]] = {
    ExportStatus.PENDING: frozenset({ExportStatus.PREPARING, ExportStatus.FAILED}),
    ExportStatus.PREPARING: frozenset({ExportStatus.PACKAGING, ExportStatus.FAILED}),
    ExportStatus.PACKAGING: frozenset({
        ExportStatus.ENCRYPTING, ExportStatus.COMPLETED, ExportStatus.FAILED
    }),
    ExportStatus.ENCRYPTING: frozenset({ExportStatus.COMPLETED, ExportStatus.FAILED}),
    ExportStatus.COMPLETED: frozenset(),
    ExportStatus.FAILED: frozenset(),
}


class ExportComponent(BaseModel):
    """A named subsystem bundled into an export."""
    model_config = ConfigDict(frozen=True)

    name: str
    type: ComponentType
    included: bool = True
    size: int = Field(..., ge=0)
    version: str
    dependencies: List[str] = Field(default_factory=list)


class Dependency(BaseModel):
    """A package the exported platform needs at build or run time."""
    model_config = ConfigDict(frozen=True)

    name: str
    version: str
    type: DependencyType
    source: DependencySource
    offline_bundle: bool = False
    size: int = Field(..., ge=0)


class ExportConfiguration(BaseModel):
    """What goes into the export and how it is compressed and encrypted."""
    include_data: bool = True
    include_secrets: bool = False
    include_configs: bool = True
    include_logs: bool = False
    include_backups: bool = False
    compression: CompressionType = CompressionType.GZIP
    encryption: EncryptionAlgorithm = EncryptionAlgorithm.AES_256_GCM
    split_size: Optional[int] = Field(default=None, gt=0)


class SecurityConfig(BaseModel):
    """Security settings derived from the export configuration."""
    encryption_enabled: bool
    key_id: Optional[str] = None
    signature_enabled: bool = True
    integrity_check: bool = True
    access_control: bool = True
    audit_trail: bool = True


class ExportRequest(BaseModel):
    """Caller input for creating an export package."""
    platform_id: str
    platform_name: str = "Platform Export"
    version: str = "1.0.0"
    format: ExportFormat
    target_provider: CloudProvider
    network_mode: NetworkMode = NetworkMode.ONLINE
    configuration: ExportConfiguration = Field(default_factory=ExportConfiguration)

    @field_validator('platform_id', 'platform_name', 'version')
    @classmethod
    def not_blank(cls, v):
        if not v or not v.strip():
            raise ValueError('must not be blank')
        return v.strip()


class DownloadDescriptor(BaseModel):
    """What a caller needs to fetch a completed export."""
    export_id: str
    filename: str
    url: str
    size: int
    checksum: str
    expires_at: datetime


class ExportPackage(BaseModel):
    """Artifact descriptor for one platform/format/provider combination."""
    id: str
    tenant_id: str
    platform_id: str
    platform_name: str
    version: str
    format: ExportFormat
    target_provider: CloudProvider
    network_mode: NetworkMode
    components: List[ExportComponent] = Field(default_factory=list)
    dependencies: List[Dependency] = Field(default_factory=list)
    configuration: ExportConfiguration
    security: SecurityConfig
    status: ExportStatus = ExportStatus.PENDING
    status_history: List[ExportStatus] = Field(
        default_factory=lambda: [ExportStatus.PENDING]
    )
    size: int = 0
    part_count: Optional[int] = None
    checksum: str = ""
    download_url: Optional[str] = None
    expires_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    completed_at: Optional[datetime] = None
    error: Optional[str] = None

    @property
    def is_terminal(self) -> bool:
        return self.status in (ExportStatus.COMPLETED, ExportStatus.FAILED)

    @property
    def bundle_size(self) -> int:
        """Sum of every component and dependency size."""
        return (
            sum(component.size for component in self.components)
            + sum(dependency.size for dependency in self.dependencies)
        )

    def transition_to(self, status: ExportStatus):
        """Move to the given status, rejecting anything the state machine forbids."""
        if status not in EXPORT_TRANSITIONS[self.status]:
            raise IllegalTransitionError("export", self.status.value, status.value)
        self.status = status
        self.status_history.append(status)
        self.updated_at = datetime.now(UTC)

    def complete(self, checksum: str, download_url: str, expires_at: datetime):
        """Mark the export as completed with its download details."""
        if not checksum or not download_url:
            raise ValueError("A completed export needs a checksum and download URL")
        self.transition_to(ExportStatus.COMPLETED)
        self.checksum = checksum
        self.download_url = download_url
        self.expires_at = expires_at
        self.completed_at = self.updated_at

    def fail(self, error: str):
        """Mark the export as failed with a human-readable reason."""
        self.transition_to(ExportStatus.FAILED)
        self.error = error or "Export failed"

    def invariant_violations(self) -> List[str]:
        """Return descriptions of any broken invariants (empty when consistent)."""
        problems = []
        completed = self.status == ExportStatus.COMPLETED
        if bool(self.checksum) != completed:
            problems.append("checksum must be set exactly when completed")
        if bool(self.download_url) != completed:
            problems.append("download_url must be set exactly when completed")
        if bool(self.error) != (self.status == ExportStatus.FAILED):
            problems.append("error must be set exactly when failed")
        if self.status == ExportStatus.PENDING and self.size != 0:
            problems.append("size must be 0 while pending")
        return problems
