"""
Provider registry: the queryable catalog of hosting providers.

The registry is read-only after construction and safe for concurrent
reads. Comparison is pure and deterministic for identical inputs.
"""

import logging
from typing import Dict, Iterable, List, Optional

from portability_engine.catalog.loader import CatalogLoader
from portability_engine.core.exceptions import ProviderNotFoundError, ValidationError
from portability_engine.models.provider import (
    CloudProvider,
    ProviderAbstraction,
    ProviderComparison,
)

logger = logging.getLogger(__name__)

SUPPORTED = "Yes"
UNSUPPORTED = "No"


class ProviderRegistry:
    """Static catalog of providers keyed by provider type."""

    def __init__(
        self,
        providers: Optional[Iterable[ProviderAbstraction]] = None,
        loader: Optional[CatalogLoader] = None
    ):
        if providers is None:
            providers = (loader or CatalogLoader()).providers
        self._providers: List[ProviderAbstraction] = list(providers)
        self._by_type: Dict[CloudProvider, ProviderAbstraction] = {
            provider.type: provider for provider in self._providers
        }

    def __contains__(self, provider_type) -> bool:
        try:
            return CloudProvider(provider_type) in self._by_type
        except ValueError:
            return False

    def __len__(self) -> int:
        return len(self._providers)

    def list_providers(self) -> List[ProviderAbstraction]:
        """Return every provider in catalog order."""
        return list(self._providers)

    def get_provider(self, provider_type) -> ProviderAbstraction:
        """Return the provider of the given type or raise ProviderNotFoundError."""
        try:
            provider = self._by_type.get(CloudProvider(provider_type))
        except ValueError:
            provider = None
        if provider is None:
            raise ProviderNotFoundError(str(getattr(provider_type, "value", provider_type)))
        return provider

    def offline_capable(self) -> List[ProviderAbstraction]:
        return [provider for provider in self._providers if provider.offline_support]

    def compare_providers(self, provider_types: Iterable) -> ProviderComparison:
        """
        Compare providers capability by capability.

        The matrix has one row per capability name found in any selected
        provider; each cell is "Yes", the provider's declared alternative,
        or "No". The recommendation maximises supported capabilities per
        unit of monthly cost, with ties going to the provider listed first
        in the catalog.

        Args:
            provider_types: Provider types to compare (duplicates ignored)

        Returns:
            ProviderComparison with the selected providers in catalog order
        """
        if isinstance(provider_types, str):
            raise ValidationError(
                "Provider types must be given as a collection, not a single provider",
                failed_checks=["providers"]
            )

        requested = set()
        for provider_type in provider_types:
            requested.add(self.get_provider(provider_type).type)

        if len(requested) < 2:
            raise ValidationError(
                "At least 2 distinct providers are required for a comparison",
                failed_checks=["providers"]
            )

        selected = [p for p in self._providers if p.type in requested]

        capability_names: List[str] = []
        for provider in selected:
            for capability in provider.capabilities:
                if capability.name not in capability_names:
                    capability_names.append(capability.name)

        matrix = []
        for name in capability_names:
            row = {"capability": name}
            for provider in selected:
                capability = provider.get_capability(name)
                if capability is not None and capability.supported:
                    row[provider.type.value] = SUPPORTED
                elif capability is not None and capability.alternative:
                    row[provider.type.value] = capability.alternative
                else:
                    row[provider.type.value] = UNSUPPORTED
            matrix.append(row)

        # max() keeps the first of equal scores, i.e. catalog order
        best = max(
            selected,
            key=lambda p: p.supported_capability_count / p.cost_estimate.monthly
        )

        logger.debug(
            f"Compared providers {[p.type.value for p in selected]}, recommending {best.type.value}"
        )

        return ProviderComparison(
            providers=selected,
            comparison_matrix=matrix,
            recommended_provider=best.type,
            recommendation=(
                f"Based on cost-to-capability ratio, {best.name} offers the best value "
                f"for your needs."
            ),
        )
