"""
Provider models for the Portability Engine.

This module defines the normalized description of a hosting provider:
what it supports, what it costs, and how hard it is to move to or from.
"""

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class CloudProvider(str, Enum):
    """Provider types an export or migration can target."""
    AWS = "aws"
    AZURE = "azure"
    GCP = "gcp"
    HETZNER = "hetzner"
    DIGITALOCEAN = "digitalocean"
    BARE_METAL = "bare-metal"
    ON_PREMISE = "on-premise"
    AIR_GAPPED = "air-gapped"


class MigrationComplexity(str, Enum):
    """How hard it is to migrate to or from a provider."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class ProviderCapability(BaseModel):
    """A single capability and, when unsupported, the usual workaround."""
    model_config = ConfigDict(frozen=True)

    name: str
    supported: bool
    alternative: Optional[str] = None


class CostItem(BaseModel):
    model_config = ConfigDict(frozen=True)

    item: str
    cost: float


class CostEstimate(BaseModel):
    """Monthly and annual running cost with an itemized breakdown."""
    model_config = ConfigDict(frozen=True)

    monthly: float = Field(..., gt=0)
    annual: float
    currency: str = "USD"
    breakdown: List[CostItem] = Field(default_factory=list)


class ProviderAbstraction(BaseModel):
    """Static reference data describing one provider type."""
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    type: CloudProvider
    capabilities: List[ProviderCapability]
    limitations: List[str] = Field(default_factory=list)
    cost_estimate: CostEstimate
    migration_complexity: MigrationComplexity
    offline_support: bool = False
    certifications: List[str] = Field(default_factory=list)

    @property
    def supported_capability_count(self) -> int:
        return sum(1 for capability in self.capabilities if capability.supported)

    def get_capability(self, name: str) -> Optional[ProviderCapability]:
        """Return the named capability, or None if the provider does not list it."""
        for capability in self.capabilities:
            if capability.name == name:
                return capability
        return None


class ProviderComparison(BaseModel):
    """Result of comparing a set of providers capability by capability."""
    providers: List[ProviderAbstraction]
    comparison_matrix: List[Dict[str, Any]]
    recommended_provider: CloudProvider
    recommendation: str
