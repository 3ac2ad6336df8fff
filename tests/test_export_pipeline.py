"""
Tests for the export pipeline.

This module covers export creation and validation, the status state
machine, failure capture, cancellation, timeouts and download
descriptors.
"""

import asyncio
import gzip
import json
from datetime import datetime, timedelta, UTC

import pytest

from portability_engine.core.exceptions import (
    ExportNotAvailableError,
    ExportNotFoundError,
    IllegalTransitionError,
    SecurityError,
    ValidationError,
)
from portability_engine.export.backend import LocalPackagingBackend
from portability_engine.export.pipeline import ExportPipeline
from portability_engine.models.config import EngineSettings, StageDelays
from portability_engine.models.export import (
    ComponentType,
    EncryptionAlgorithm,
    ExportStatus,
)
from portability_engine.security.encryption import decrypt_artifact
from portability_engine.security.keys import EncryptionKeyProvider
from portability_engine.storage.repository import InMemoryRepository

TENANT = "tenant-1"
TEST_KEY = bytes(range(32))

FULL_PATH = [
    ExportStatus.PENDING,
    ExportStatus.PREPARING,
    ExportStatus.PACKAGING,
    ExportStatus.ENCRYPTING,
    ExportStatus.COMPLETED,
]


def make_pipeline(registry, catalog, key_provider=None, backend=None, **settings_overrides):
    settings = EngineSettings(**settings_overrides)
    return ExportPipeline(
        registry=registry,
        catalog=catalog,
        repository=InMemoryRepository(),
        backend=backend or LocalPackagingBackend(settings.stage_delays),
        key_provider=key_provider or EncryptionKeyProvider(key=TEST_KEY),
        settings=settings,
    )


def is_subsequence(history, path):
    remaining = iter(path)
    return all(status in remaining for status in history)


class RecordingBackend(LocalPackagingBackend):
    """Keeps the last artifact each stage produced."""

    def __init__(self):
        super().__init__(StageDelays(preparing=0, packaging=0, encrypting=0))
        self.built = None
        self.encrypted = None

    async def build(self, package):
        self.built = await super().build(package)
        return self.built

    async def encrypt(self, package, artifact, key):
        self.encrypted = await super().encrypt(package, artifact, key)
        return self.encrypted


class FailingBackend(LocalPackagingBackend):
    """Fails while building the artifact."""

    def __init__(self):
        super().__init__(StageDelays(preparing=0, packaging=0, encrypting=0))

    async def build(self, package):
        raise RuntimeError("disk full")


class TestCreateExport:
    """Test export creation and request validation."""

    @pytest.mark.asyncio
    async def test_returns_pending_package(self, pipeline, export_request):
        """Test creation returns immediately with a pending package."""
        package = await pipeline.create_export_package(TENANT, export_request)

        assert package.id.startswith("export_")
        assert package.tenant_id == TENANT
        assert package.status == ExportStatus.PENDING
        assert package.status_history == [ExportStatus.PENDING]
        assert package.size == 0
        assert package.checksum == ""
        assert package.download_url is None
        assert package.invariant_violations() == []

    @pytest.mark.asyncio
    async def test_security_config_derived_from_configuration(self, pipeline, export_request, key_provider):
        """Test encryption settings flow into the security config."""
        package = await pipeline.create_export_package(TENANT, export_request)
        assert package.configuration.encryption == EncryptionAlgorithm.AES_256_GCM
        assert package.security.encryption_enabled is True
        assert package.security.key_id == key_provider.key_id

        export_request["configuration"] = {"encryption": "none"}
        plain = await pipeline.create_export_package(TENANT, export_request)
        assert plain.security.encryption_enabled is False
        assert plain.security.key_id is None

    @pytest.mark.asyncio
    async def test_messaging_only_included_for_kubernetes(self, pipeline, export_request):
        """Test the message queue component is only included for kubernetes."""
        docker = await pipeline.create_export_package(TENANT, export_request)
        export_request["format"] = "kubernetes"
        kubernetes = await pipeline.create_export_package(TENANT, export_request)

        def messaging(package):
            return next(c for c in package.components if c.type == ComponentType.MESSAGING)

        assert messaging(docker).included is False
        assert messaging(kubernetes).included is True
        assert all(c.included for c in docker.components if c.type != ComponentType.MESSAGING)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("network_mode", ["offline", "air-gapped"])
    async def test_disconnected_modes_bundle_every_dependency(self, pipeline, export_request, network_mode):
        """Test offline and air-gapped exports vendor all dependencies."""
        export_request["network_mode"] = network_mode
        package = await pipeline.create_export_package(TENANT, export_request)
        assert package.dependencies
        assert all(d.offline_bundle for d in package.dependencies)

    @pytest.mark.asyncio
    async def test_unknown_target_provider_rejected(self, pipeline, export_request):
        """Test a provider missing from the registry is rejected before persistence."""
        export_request["target_provider"] = "digitalocean"
        with pytest.raises(ValidationError) as exc_info:
            await pipeline.create_export_package(TENANT, export_request)
        assert exc_info.value.failed_checks == ["target_provider"]
        assert pipeline.list_exports(TENANT) == []

    @pytest.mark.asyncio
    async def test_invalid_request_fields_rejected(self, pipeline, export_request):
        """Test invalid and blank fields raise the engine ValidationError."""
        export_request["format"] = "zip"
        export_request["platform_id"] = "  "
        with pytest.raises(ValidationError) as exc_info:
            await pipeline.create_export_package(TENANT, export_request)
        assert "format" in exc_info.value.failed_checks
        assert "platform_id" in exc_info.value.failed_checks

    @pytest.mark.asyncio
    async def test_missing_tenant_rejected(self, pipeline, export_request):
        """Test a blank tenant id is rejected."""
        with pytest.raises(ValidationError):
            await pipeline.create_export_package("", export_request)

    @pytest.mark.asyncio
    async def test_encryption_without_key_is_hard_failure(self, registry, catalog, export_request):
        """Test requesting encryption with no provisioned key fails up front."""
        pipeline = make_pipeline(
            registry, catalog,
            key_provider=EncryptionKeyProvider(environ={}),
            stage_delays=StageDelays(preparing=0, packaging=0, encrypting=0),
        )
        try:
            with pytest.raises(SecurityError) as exc_info:
                await pipeline.create_export_package(TENANT, export_request)
            assert exc_info.value.code == "KEY_NOT_PROVISIONED"
            assert pipeline.list_exports(TENANT) == []

            export_request["configuration"] = {"encryption": "none"}
            package = await pipeline.create_export_package(TENANT, export_request)
            done = await pipeline.wait_for_export(package.id, timeout=5)
            assert done.status == ExportStatus.COMPLETED
        finally:
            await pipeline.shutdown()


class TestPipelineLifecycle:
    """Test the background state machine."""

    @pytest.mark.asyncio
    async def test_docker_online_export_completes(self, pipeline, export_request):
        """Test a docker/online export reaches completed with checksum and URL."""
        package = await pipeline.create_export_package(TENANT, export_request)
        done = await pipeline.wait_for_export(package.id, timeout=5)

        assert done.status == ExportStatus.COMPLETED
        assert done.checksum.startswith("sha256:")
        assert done.download_url == f"/api/portability/exports/{package.id}/download"
        assert done.error is None
        assert done.completed_at is not None
        assert done.invariant_violations() == []

    @pytest.mark.asyncio
    async def test_status_history_follows_state_machine(self, pipeline, export_request):
        """Test an encrypted export visits every stage in order."""
        package = await pipeline.create_export_package(TENANT, export_request)
        done = await pipeline.wait_for_export(package.id, timeout=5)
        assert done.status_history == FULL_PATH

    @pytest.mark.asyncio
    async def test_unencrypted_export_skips_encrypting(self, pipeline, export_request):
        """Test the encrypting stage is skipped when encryption is none."""
        export_request["configuration"] = {"encryption": "none"}
        package = await pipeline.create_export_package(TENANT, export_request)
        done = await pipeline.wait_for_export(package.id, timeout=5)

        assert done.status == ExportStatus.COMPLETED
        assert ExportStatus.ENCRYPTING not in done.status_history
        assert is_subsequence(done.status_history, FULL_PATH)

    @pytest.mark.asyncio
    async def test_size_is_sum_of_components_and_dependencies(self, pipeline, export_request):
        """Test size is computed from every component and dependency."""
        package = await pipeline.create_export_package(TENANT, export_request)
        done = await pipeline.wait_for_export(package.id, timeout=5)

        expected = (
            sum(c.size for c in package.components)
            + sum(d.size for d in package.dependencies)
        )
        assert done.size == expected
        assert done.part_count is None

    @pytest.mark.asyncio
    async def test_split_size_sets_part_count(self, pipeline, export_request):
        """Test the part count rounds up when a split size is given."""
        export_request["configuration"] = {"split_size": 100 * 1024 * 1024}
        package = await pipeline.create_export_package(TENANT, export_request)
        done = await pipeline.wait_for_export(package.id, timeout=5)
        assert done.part_count == -(-done.size // (100 * 1024 * 1024))

    @pytest.mark.asyncio
    async def test_expiry_is_seven_days_after_completion(self, pipeline, export_request):
        """Test the download expires seven days after completion."""
        package = await pipeline.create_export_package(TENANT, export_request)
        done = await pipeline.wait_for_export(package.id, timeout=5)
        drift = abs(done.expires_at - done.completed_at - timedelta(days=7))
        assert drift < timedelta(seconds=1)

    @pytest.mark.asyncio
    async def test_encrypted_artifact_round_trips(self, registry, catalog, export_request):
        """Test the encrypted artifact decrypts to the gzip manifest and matches the checksum."""
        backend = RecordingBackend()
        pipeline = make_pipeline(registry, catalog, backend=backend)
        try:
            package = await pipeline.create_export_package(TENANT, export_request)
            done = await pipeline.wait_for_export(package.id, timeout=5)
            assert done.status == ExportStatus.COMPLETED

            plaintext = decrypt_artifact(
                backend.encrypted, TEST_KEY, EncryptionAlgorithm.AES_256_GCM,
                package.id.encode("utf-8")
            )
            assert plaintext == backend.built
            manifest = json.loads(gzip.decompress(plaintext))
            assert manifest["export_id"] == package.id
            assert manifest["format"] == "docker"
            assert manifest["size"] == done.size
        finally:
            await pipeline.shutdown()

    @pytest.mark.asyncio
    async def test_concurrent_exports_complete_independently(self, pipeline, export_request):
        """Test several exports run at once without interfering."""
        packages = await asyncio.gather(*(
            pipeline.create_export_package(TENANT, dict(export_request, platform_id=f"p-{i}"))
            for i in range(5)
        ))
        results = await asyncio.gather(*(
            pipeline.wait_for_export(p.id, timeout=5) for p in packages
        ))

        assert len({p.id for p in results}) == 5
        assert all(p.status == ExportStatus.COMPLETED for p in results)
        assert {p.platform_id for p in results} == {f"p-{i}" for i in range(5)}

    @pytest.mark.asyncio
    async def test_audit_events_recorded(self, pipeline, export_request, audit_logger):
        """Test creation and completion are audited."""
        package = await pipeline.create_export_package(TENANT, export_request)
        await pipeline.wait_for_export(package.id, timeout=5)

        events = [e.operation for e in audit_logger.recent_events(entity_id=package.id)]
        assert events == ["export.created", "export.completed"]


class TestPipelineFailures:
    """Test failure capture, cancellation and timeouts."""

    @pytest.mark.asyncio
    async def test_stage_exception_captured_into_record(self, registry, catalog, export_request):
        """Test a backend exception fails the export instead of propagating."""
        pipeline = make_pipeline(registry, catalog, backend=FailingBackend())
        try:
            package = await pipeline.create_export_package(TENANT, export_request)
            done = await pipeline.wait_for_export(package.id, timeout=5)

            assert done.status == ExportStatus.FAILED
            assert done.error == "Packaging failed: disk full"
            assert done.checksum == ""
            assert done.download_url is None
            assert done.status_history[-1] == ExportStatus.FAILED
            assert done.invariant_violations() == []
        finally:
            await pipeline.shutdown()

    @pytest.mark.asyncio
    async def test_stage_timeout_fails_export(self, registry, catalog, export_request):
        """Test a stage running past the stage timeout fails the export."""
        pipeline = make_pipeline(
            registry, catalog,
            stage_delays=StageDelays(preparing=0, packaging=5, encrypting=0),
            stage_timeout=0.05,
        )
        try:
            package = await pipeline.create_export_package(TENANT, export_request)
            done = await pipeline.wait_for_export(package.id, timeout=5)

            assert done.status == ExportStatus.FAILED
            assert done.error.startswith("Packaging failed:")
            assert "stage timeout" in done.error
            assert done.status_history == [
                ExportStatus.PENDING, ExportStatus.PREPARING,
                ExportStatus.PACKAGING, ExportStatus.FAILED,
            ]
        finally:
            await pipeline.shutdown()

    @pytest.mark.asyncio
    async def test_max_pipeline_duration_fails_export(self, registry, catalog, export_request):
        """Test the total duration cap fails a long-running export."""
        pipeline = make_pipeline(
            registry, catalog,
            stage_delays=StageDelays(preparing=5, packaging=0, encrypting=0),
            max_pipeline_duration=0.05,
        )
        try:
            package = await pipeline.create_export_package(TENANT, export_request)
            done = await pipeline.wait_for_export(package.id, timeout=5)

            assert done.status == ExportStatus.FAILED
            assert "maximum pipeline duration" in done.error
        finally:
            await pipeline.shutdown()

    @pytest.mark.asyncio
    async def test_cancel_running_export(self, registry, catalog, export_request):
        """Test cancelling mid-stage records the reason and stops the pipeline."""
        pipeline = make_pipeline(
            registry, catalog,
            stage_delays=StageDelays(preparing=10, packaging=0, encrypting=0),
        )
        try:
            package = await pipeline.create_export_package(TENANT, export_request)
            await asyncio.sleep(0.05)
            assert pipeline.get_export(package.id).status == ExportStatus.PREPARING

            cancelled = await pipeline.cancel_export(package.id, "operator request")

            assert cancelled.status == ExportStatus.FAILED
            assert cancelled.error == "Cancelled: operator request"
            assert cancelled.status_history == [
                ExportStatus.PENDING, ExportStatus.PREPARING, ExportStatus.FAILED,
            ]
            # The pipeline task must not overwrite the cancellation
            await asyncio.sleep(0.05)
            assert pipeline.get_export(package.id).error == "Cancelled: operator request"
        finally:
            await pipeline.shutdown()

    @pytest.mark.asyncio
    async def test_cancel_before_pipeline_starts(self, registry, catalog, export_request):
        """Test cancelling straight after creation fails from pending."""
        pipeline = make_pipeline(registry, catalog)
        try:
            package = await pipeline.create_export_package(TENANT, export_request)
            cancelled = await pipeline.cancel_export(package.id)
            assert cancelled.status_history == [ExportStatus.PENDING, ExportStatus.FAILED]
            assert cancelled.error == "Cancelled: Cancelled by user"
        finally:
            await pipeline.shutdown()

    @pytest.mark.asyncio
    async def test_cancel_terminal_export_rejected(self, pipeline, export_request):
        """Test a completed export cannot be cancelled."""
        package = await pipeline.create_export_package(TENANT, export_request)
        await pipeline.wait_for_export(package.id, timeout=5)

        with pytest.raises(IllegalTransitionError):
            await pipeline.cancel_export(package.id)
        assert pipeline.get_export(package.id).status == ExportStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_shutdown_fails_running_exports(self, registry, catalog, export_request):
        """Test shutdown leaves no export stuck in a non-terminal state."""
        pipeline = make_pipeline(
            registry, catalog,
            stage_delays=StageDelays(preparing=10, packaging=0, encrypting=0),
        )
        package = await pipeline.create_export_package(TENANT, export_request)
        await asyncio.sleep(0.05)
        await pipeline.shutdown()

        stopped = pipeline.get_export(package.id)
        assert stopped.status == ExportStatus.FAILED
        assert stopped.error == "Export pipeline was cancelled"


class TestExportQueries:
    """Test reads and download descriptors."""

    @pytest.mark.asyncio
    async def test_get_unknown_export(self, pipeline):
        with pytest.raises(ExportNotFoundError):
            pipeline.get_export("export_missing")

    @pytest.mark.asyncio
    async def test_list_exports_newest_first_and_tenant_scoped(self, pipeline, export_request):
        """Test listing is newest first and only returns the tenant's exports."""
        created = [
            await pipeline.create_export_package(TENANT, export_request)
            for _ in range(3)
        ]
        await pipeline.create_export_package("other-tenant", export_request)

        listed = pipeline.list_exports(TENANT)
        assert [p.id for p in listed] == [p.id for p in reversed(created)]

    @pytest.mark.asyncio
    async def test_download_descriptor(self, pipeline, export_request):
        """Test a completed export yields a download descriptor."""
        package = await pipeline.create_export_package(TENANT, export_request)
        done = await pipeline.wait_for_export(package.id, timeout=5)

        download = pipeline.get_download(package.id)
        assert download.filename == "Acme_Platform-2.1.0-docker.tar.gz"
        assert download.url == done.download_url
        assert download.checksum == done.checksum
        assert download.size == done.size

    @pytest.mark.asyncio
    async def test_download_unavailable_until_completed(self, registry, catalog, export_request):
        pipeline = make_pipeline(
            registry, catalog,
            stage_delays=StageDelays(preparing=10, packaging=0, encrypting=0),
        )
        try:
            package = await pipeline.create_export_package(TENANT, export_request)
            with pytest.raises(ExportNotAvailableError):
                pipeline.get_download(package.id)
        finally:
            await pipeline.shutdown()

    @pytest.mark.asyncio
    async def test_download_unavailable_after_expiry(self, pipeline, export_request):
        package = await pipeline.create_export_package(TENANT, export_request)
        done = await pipeline.wait_for_export(package.id, timeout=5)

        done.expires_at = datetime.now(UTC) - timedelta(minutes=1)
        pipeline.repository.update(done)

        with pytest.raises(ExportNotAvailableError) as exc_info:
            pipeline.get_download(package.id)
        assert exc_info.value.code == "EXPORT_EXPIRED"
