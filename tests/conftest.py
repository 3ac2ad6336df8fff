"""
Pytest configuration and fixtures for the Portability Engine tests.

This module provides engine components wired with zero stage delays,
a fixed encryption key and in-memory repositories.
"""

import pytest
import pytest_asyncio

from portability_engine.airgap.manager import AirGappedManager
from portability_engine.catalog.components import ComponentCatalog
from portability_engine.catalog.loader import CatalogLoader
from portability_engine.engine import PortabilityEngine
from portability_engine.export.backend import LocalPackagingBackend
from portability_engine.export.pipeline import ExportPipeline
from portability_engine.migration.planner import MigrationPlanner
from portability_engine.models.config import EngineSettings, StageDelays
from portability_engine.providers.registry import ProviderRegistry
from portability_engine.security.keys import EncryptionKeyProvider
from portability_engine.storage.repository import InMemoryRepository
from portability_engine.utils.logging import AuditLogger

TEST_KEY = bytes(range(32))
TENANT = "tenant-1"


@pytest.fixture(scope="session")
def loader() -> CatalogLoader:
    """Catalog loader over the packaged data files."""
    return CatalogLoader().load_all()


@pytest.fixture(scope="session")
def registry(loader: CatalogLoader) -> ProviderRegistry:
    return ProviderRegistry(loader=loader)


@pytest.fixture(scope="session")
def catalog(loader: CatalogLoader) -> ComponentCatalog:
    return ComponentCatalog(loader)


@pytest.fixture
def settings() -> EngineSettings:
    """Settings with no simulated stage delays."""
    return EngineSettings(
        stage_delays=StageDelays(preparing=0, packaging=0, encrypting=0)
    )


@pytest.fixture
def key_provider() -> EncryptionKeyProvider:
    return EncryptionKeyProvider(key=TEST_KEY)


@pytest.fixture
def audit_logger() -> AuditLogger:
    return AuditLogger()


@pytest_asyncio.fixture
async def pipeline(registry, catalog, settings, key_provider, audit_logger):
    """Export pipeline that is shut down after the test."""
    export_pipeline = ExportPipeline(
        registry=registry,
        catalog=catalog,
        repository=InMemoryRepository(),
        backend=LocalPackagingBackend(settings.stage_delays),
        key_provider=key_provider,
        settings=settings,
        audit_logger=audit_logger,
    )
    yield export_pipeline
    await export_pipeline.shutdown()


@pytest.fixture
def air_gapped_manager(loader, audit_logger) -> AirGappedManager:
    return AirGappedManager(
        repository=InMemoryRepository(),
        loader=loader,
        audit_logger=audit_logger,
    )


@pytest.fixture
def planner(registry, loader, audit_logger) -> MigrationPlanner:
    return MigrationPlanner(
        registry=registry,
        repository=InMemoryRepository(),
        loader=loader,
        audit_logger=audit_logger,
    )


@pytest_asyncio.fixture
async def engine(settings, loader, key_provider):
    """Fully wired engine that is shut down after the test."""
    portability_engine = PortabilityEngine(
        settings=settings,
        loader=loader,
        key_provider=key_provider,
    )
    yield portability_engine
    await portability_engine.shutdown()


@pytest.fixture
def export_request():
    """Minimal docker export request for AWS."""
    return {
        "platform_id": "platform-1",
        "platform_name": "Acme Platform",
        "version": "2.1.0",
        "format": "docker",
        "target_provider": "aws",
        "network_mode": "online",
    }
