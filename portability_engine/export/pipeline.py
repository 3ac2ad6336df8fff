"""
Export pipeline for the Portability Engine.

Creating an export persists a pending package and starts one background
task that walks it through preparing, packaging and (optionally)
encrypting to completed. Any failure, timeout or cancellation lands the
package in failed with a readable error. Each transition re-reads the
stored record first, so a cancellation recorded elsewhere is never
overwritten by a later pipeline step.
"""

import asyncio
import logging
import math
from datetime import datetime, timedelta, UTC
from typing import Any, Callable, Dict, List, Mapping, Optional, Union

from portability_engine.catalog.components import ComponentCatalog
from portability_engine.core.exceptions import (
    ExportNotAvailableError,
    ExportNotFoundError,
    IllegalTransitionError,
    PipelineError,
    PortabilityError,
    ValidationError,
)
from portability_engine.core.validation import build_request, require_tenant
from portability_engine.export.backend import LocalPackagingBackend, PackagingBackend
from portability_engine.models.config import EngineSettings
from portability_engine.models.export import (
    DownloadDescriptor,
    EncryptionAlgorithm,
    ExportPackage,
    ExportRequest,
    ExportStatus,
    SecurityConfig,
)
from portability_engine.providers.registry import ProviderRegistry
from portability_engine.security.keys import EncryptionKeyProvider
from portability_engine.storage.repository import InMemoryRepository, Repository
from portability_engine.utils.helpers import calculate_checksum, generate_id, safe_filename
from portability_engine.utils.logging import AuditLogger

logger = logging.getLogger(__name__)


class _ExportClosed(Exception):
    """The stored export reached a terminal state while the pipeline was running."""


class ExportPipeline:
    """
    Creates export packages and drives each one through its status
    lifecycle in a background asyncio task.

    All record mutations happen on the event loop thread, so a read
    followed by an update of the same record is never interleaved with
    another pipeline step or a cancellation.
    """

    def __init__(
        self,
        registry: ProviderRegistry,
        catalog: ComponentCatalog,
        repository: Optional[Repository[ExportPackage]] = None,
        backend: Optional[PackagingBackend] = None,
        key_provider: Optional[EncryptionKeyProvider] = None,
        settings: Optional[EngineSettings] = None,
        audit_logger: Optional[AuditLogger] = None
    ):
        self.settings = settings or EngineSettings()
        self.registry = registry
        self.catalog = catalog
        self.repository = repository if repository is not None else InMemoryRepository()
        self.backend = backend or LocalPackagingBackend(self.settings.stage_delays)
        self.key_provider = key_provider or EncryptionKeyProvider(
            env_var=self.settings.encryption_key_env
        )
        self.audit_logger = audit_logger or AuditLogger()
        self._tasks: Dict[str, asyncio.Task] = {}

    async def create_export_package(
        self,
        tenant_id: str,
        request: Union[ExportRequest, Mapping[str, Any]]
    ) -> ExportPackage:
        """
        Validate a request, persist a pending export and start its pipeline.

        Args:
            tenant_id: Owning tenant
            request: ExportRequest or an equivalent mapping

        Returns:
            The export package in pending status

        Raises:
            ValidationError: If the request or target provider is invalid
            SecurityError: If encryption is requested but no key is provisioned
        """
        tenant_id = require_tenant(tenant_id)
        request = build_request(ExportRequest, request)

        if request.target_provider not in self.registry:
            raise ValidationError(
                f"Target provider is not in the provider registry: "
                f"{request.target_provider.value}",
                failed_checks=["target_provider"]
            )
        self.catalog.get_format(request.format)

        encryption_enabled = request.configuration.encryption != EncryptionAlgorithm.NONE
        key_id = None
        if encryption_enabled:
            self.key_provider.require_key()
            key_id = self.key_provider.key_id

        package = ExportPackage(
            id=generate_id("export"),
            tenant_id=tenant_id,
            platform_id=request.platform_id,
            platform_name=request.platform_name,
            version=request.version,
            format=request.format,
            target_provider=request.target_provider,
            network_mode=request.network_mode,
            components=self.catalog.components_for(request.format),
            dependencies=self.catalog.dependencies_for(request.format, request.network_mode),
            configuration=request.configuration,
            security=SecurityConfig(encryption_enabled=encryption_enabled, key_id=key_id),
        )
        self.repository.add(package)

        task = asyncio.create_task(self._run(package.id), name=f"export-{package.id}")
        self._tasks[package.id] = task
        task.add_done_callback(lambda _t, export_id=package.id: self._tasks.pop(export_id, None))

        logger.info(
            f"Created export {package.id} ({package.format.value} for "
            f"{package.target_provider.value}, {package.network_mode.value})"
        )
        self.audit_logger.log_event(
            "export.created",
            tenant_id=tenant_id,
            entity_id=package.id,
            details={
                "format": package.format.value,
                "target_provider": package.target_provider.value,
                "network_mode": package.network_mode.value,
                "encrypted": encryption_enabled,
            }
        )
        return package

    def get_export(self, export_id: str) -> ExportPackage:
        package = self.repository.get(export_id)
        if package is None:
            raise ExportNotFoundError(export_id)
        return package

    def list_exports(self, tenant_id: str) -> List[ExportPackage]:
        """Return a tenant's exports, newest first."""
        packages = self.repository.list(tenant_id)
        # Reverse first so equal timestamps keep later insertions ahead
        return sorted(reversed(packages), key=lambda p: p.created_at, reverse=True)

    async def cancel_export(self, export_id: str, reason: str = "Cancelled by user") -> ExportPackage:
        """
        Cancel a running export.

        The export is marked failed with the reason before its task is
        cancelled.

        Raises:
            ExportNotFoundError: If the export does not exist
            IllegalTransitionError: If the export already completed or failed
        """
        package = self.get_export(export_id)
        if package.is_terminal:
            raise IllegalTransitionError(
                "export", package.status.value, ExportStatus.FAILED.value
            )

        self._fail(export_id, f"Cancelled: {reason}")

        task = self._tasks.get(export_id)
        if task is not None and not task.done():
            task.cancel()
            await asyncio.wait([task])

        self.audit_logger.log_event(
            "export.cancelled",
            tenant_id=package.tenant_id,
            entity_id=export_id,
            details={"reason": reason}
        )
        return self.get_export(export_id)

    async def wait_for_export(
        self,
        export_id: str,
        timeout: Optional[float] = None
    ) -> ExportPackage:
        """Wait until the export's pipeline finishes (or ``timeout`` elapses)."""
        self.get_export(export_id)
        task = self._tasks.get(export_id)
        if task is not None:
            await asyncio.wait([task], timeout=timeout)
        return self.get_export(export_id)

    def get_download(self, export_id: str) -> DownloadDescriptor:
        """
        Describe how to fetch a completed export.

        Raises:
            ExportNotFoundError: If the export does not exist
            ExportNotAvailableError: If the export is not completed or has expired
        """
        package = self.get_export(export_id)
        if package.status != ExportStatus.COMPLETED:
            raise ExportNotAvailableError(
                f"Export {export_id} is {package.status.value}, not completed",
                details={"status": package.status.value}
            )
        if package.expires_at is not None and package.expires_at <= datetime.now(UTC):
            raise ExportNotAvailableError(
                f"Export {export_id} expired at {package.expires_at.isoformat()}",
                code="EXPORT_EXPIRED"
            )

        stem = safe_filename(f"{package.platform_name}-{package.version}-{package.format.value}")
        return DownloadDescriptor(
            export_id=package.id,
            filename=f"{stem}.tar.gz",
            url=package.download_url,
            size=package.size,
            checksum=package.checksum,
            expires_at=package.expires_at,
        )

    async def shutdown(self):
        """Cancel every running pipeline and wait for the tasks to finish."""
        tasks = [task for task in self._tasks.values() if not task.done()]
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.wait(tasks)
            logger.info(f"Cancelled {len(tasks)} running export pipeline(s)")

    async def _run(self, export_id: str):
        try:
            await asyncio.wait_for(
                self._process(export_id),
                timeout=self.settings.max_pipeline_duration
            )
        except asyncio.TimeoutError:
            self._fail(
                export_id,
                f"Export exceeded the maximum pipeline duration of "
                f"{self.settings.max_pipeline_duration:g}s"
            )
        except asyncio.CancelledError:
            self._fail(export_id, "Export pipeline was cancelled")
            raise

    async def _process(self, export_id: str):
        stage = ExportStatus.PREPARING
        try:
            package = self._advance(export_id, ExportStatus.PREPARING)
            await self._run_stage(stage, self.backend.prepare(package))

            stage = ExportStatus.PACKAGING
            package = self._advance(export_id, ExportStatus.PACKAGING, self._size_package)
            artifact = await self._run_stage(stage, self.backend.build(package))

            if package.security.encryption_enabled:
                stage = ExportStatus.ENCRYPTING
                package = self._advance(export_id, ExportStatus.ENCRYPTING)
                key = self.key_provider.require_key()
                artifact = await self._run_stage(
                    stage, self.backend.encrypt(package, artifact, key)
                )

            self._finish(export_id, calculate_checksum(artifact))

        except _ExportClosed:
            logger.info(f"Export {export_id} was closed during {stage.value}; pipeline stopped")
        except Exception as e:
            logger.error(f"Export {export_id} failed during {stage.value}: {e}")
            self._fail(export_id, self._describe_failure(stage, e))

    async def _run_stage(self, stage: ExportStatus, work):
        try:
            return await asyncio.wait_for(work, timeout=self.settings.stage_timeout)
        except asyncio.TimeoutError as e:
            raise PipelineError(
                f"exceeded the {self.settings.stage_timeout:g}s stage timeout",
                stage=stage.value
            ) from e

    def _size_package(self, package: ExportPackage):
        package.size = package.bundle_size
        split_size = package.configuration.split_size
        if split_size:
            package.part_count = max(1, math.ceil(package.size / split_size))

    def _advance(
        self,
        export_id: str,
        status: ExportStatus,
        apply: Optional[Callable[[ExportPackage], None]] = None
    ) -> ExportPackage:
        package = self.repository.get(export_id)
        if package is None or package.is_terminal:
            raise _ExportClosed(export_id)
        if apply is not None:
            apply(package)
        package.transition_to(status)
        self.repository.update(package)
        logger.debug(f"Export {export_id} -> {status.value}")
        return package

    def _finish(self, export_id: str, checksum: str):
        package = self.repository.get(export_id)
        if package is None or package.is_terminal:
            raise _ExportClosed(export_id)

        package.complete(
            checksum=checksum,
            download_url=f"{self.settings.download_base_url}/exports/{export_id}/download",
            expires_at=datetime.now(UTC) + timedelta(days=self.settings.export_ttl_days),
        )
        self.repository.update(package)

        logger.info(f"Export {export_id} completed ({checksum})")
        self.audit_logger.log_event(
            "export.completed",
            tenant_id=package.tenant_id,
            entity_id=export_id,
            details={"size": package.size, "checksum": checksum}
        )

    def _fail(self, export_id: str, reason: str) -> bool:
        """Mark the export failed unless it already reached a terminal state."""
        package = self.repository.get(export_id)
        if package is None or package.is_terminal:
            return False

        package.fail(reason)
        self.repository.update(package)

        logger.warning(f"Export {export_id} failed: {reason}")
        self.audit_logger.log_event(
            "export.failed",
            tenant_id=package.tenant_id,
            entity_id=export_id,
            details={"error": reason}
        )
        return True

    @staticmethod
    def _describe_failure(stage: ExportStatus, error: Exception) -> str:
        if isinstance(error, PortabilityError):
            message = error.message
        else:
            message = str(error) or error.__class__.__name__
        return f"{stage.value.capitalize()} failed: {message}"
