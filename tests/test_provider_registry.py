"""
Tests for the provider registry and provider comparison.
"""

import pytest

from portability_engine.core.exceptions import ProviderNotFoundError, ValidationError
from portability_engine.models.provider import (
    CloudProvider,
    CostEstimate,
    MigrationComplexity,
    ProviderAbstraction,
    ProviderCapability,
)
from portability_engine.providers.registry import ProviderRegistry


def make_provider(provider_type, supported, monthly):
    return ProviderAbstraction(
        id=provider_type.value,
        name=provider_type.value.title(),
        type=provider_type,
        capabilities=[
            ProviderCapability(name=f"cap-{i}", supported=i < supported)
            for i in range(4)
        ],
        cost_estimate=CostEstimate(monthly=monthly, annual=monthly * 12),
        migration_complexity=MigrationComplexity.LOW,
    )


class TestProviderLookup:
    """Test listing and lookup."""

    def test_list_providers_in_catalog_order(self, registry):
        types = [p.type for p in registry.list_providers()]
        assert types == [
            CloudProvider.AWS,
            CloudProvider.AZURE,
            CloudProvider.GCP,
            CloudProvider.HETZNER,
            CloudProvider.ON_PREMISE,
            CloudProvider.AIR_GAPPED,
        ]

    def test_get_provider_by_enum_or_string(self, registry):
        assert registry.get_provider(CloudProvider.GCP).name == "Google Cloud Platform"
        assert registry.get_provider("hetzner").migration_complexity == MigrationComplexity.LOW

    @pytest.mark.parametrize("provider_type", ["digitalocean", "bare-metal", "unknown"])
    def test_missing_provider(self, registry, provider_type):
        with pytest.raises(ProviderNotFoundError):
            registry.get_provider(provider_type)
        assert provider_type not in registry

    def test_offline_capable(self, registry):
        offline = {p.type for p in registry.offline_capable()}
        assert offline == {CloudProvider.AZURE, CloudProvider.ON_PREMISE, CloudProvider.AIR_GAPPED}

    def test_list_is_a_copy(self, registry):
        providers = registry.list_providers()
        providers.clear()
        assert len(registry) == 6


class TestCompareProviders:
    """Test capability comparison and recommendation."""

    def test_aws_azure_has_row_per_capability(self, registry):
        """Test every capability of either provider appears as a row."""
        comparison = registry.compare_providers({"aws", "azure"})

        names = {
            c.name
            for p in (registry.get_provider("aws"), registry.get_provider("azure"))
            for c in p.capabilities
        }
        assert {row["capability"] for row in comparison.comparison_matrix} == names
        assert len(comparison.comparison_matrix) == len(names)
        for row in comparison.comparison_matrix:
            assert set(row) == {"capability", "aws", "azure"}

    def test_cells_show_alternative_or_no(self, registry):
        comparison = registry.compare_providers(["aws", "hetzner", "air-gapped"])
        rows = {row["capability"]: row for row in comparison.comparison_matrix}

        assert rows["CDN"] == {
            "capability": "CDN", "aws": "Yes", "hetzner": "Cloudflare", "air-gapped": "No",
        }
        assert rows["Database"]["hetzner"] == "Self-managed"
        # Supported wins over a declared alternative
        assert rows["AI/ML"]["air-gapped"] == "Yes"

    def test_recommends_best_value(self, registry):
        """Test the recommendation maximises supported capabilities per dollar."""
        comparison = registry.compare_providers([p.type for p in registry.list_providers()])
        assert comparison.recommended_provider == CloudProvider.HETZNER
        assert "Hetzner Cloud" in comparison.recommendation

    def test_aws_azure_recommends_cheaper_equal_provider(self, registry):
        comparison = registry.compare_providers(["aws", "azure"])
        assert comparison.recommended_provider == CloudProvider.AZURE

    def test_deterministic_regardless_of_input_order(self, registry):
        first = registry.compare_providers(["gcp", "aws", "hetzner"])
        second = registry.compare_providers(["hetzner", "gcp", "aws", "gcp"])
        assert first.model_dump() == second.model_dump()
        assert [p.type for p in first.providers] == [
            CloudProvider.AWS, CloudProvider.GCP, CloudProvider.HETZNER,
        ]

    def test_ties_go_to_catalog_order(self):
        registry = ProviderRegistry(providers=[
            make_provider(CloudProvider.GCP, supported=2, monthly=100),
            make_provider(CloudProvider.AWS, supported=4, monthly=200),
        ])
        comparison = registry.compare_providers(["aws", "gcp"])
        assert comparison.recommended_provider == CloudProvider.GCP

    @pytest.mark.parametrize("types", [["aws"], ["aws", "aws"], []])
    def test_needs_two_distinct_providers(self, registry, types):
        with pytest.raises(ValidationError):
            registry.compare_providers(types)

    @pytest.mark.parametrize("types", ["aws", CloudProvider.AWS])
    def test_single_provider_rejected(self, registry, types):
        """Test a bare provider is not treated as a sequence of characters."""
        with pytest.raises(ValidationError) as exc_info:
            registry.compare_providers(types)
        assert exc_info.value.failed_checks == ["providers"]

    def test_unknown_provider_in_comparison(self, registry):
        with pytest.raises(ProviderNotFoundError):
            registry.compare_providers(["aws", "digitalocean"])
