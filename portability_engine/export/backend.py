"""
Packaging backends for the export pipeline.

The pipeline owns the state machine; a backend owns the work done in
each stage. Swapping the local backend for one that builds real images
or renders Terraform does not change any state-transition logic.
"""

import asyncio
import gzip
import json
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

from portability_engine.core.exceptions import PipelineError
from portability_engine.models.config import StageDelays
from portability_engine.models.export import CompressionType, ExportPackage
from portability_engine.security.encryption import encrypt_artifact

logger = logging.getLogger(__name__)


class PackagingBackend(ABC):
    """Work performed by each export pipeline stage."""

    @abstractmethod
    async def prepare(self, package: ExportPackage) -> None:
        """Validate inputs and allocate whatever the build needs."""

    @abstractmethod
    async def build(self, package: ExportPackage) -> bytes:
        """Produce the artifact bytes."""

    @abstractmethod
    async def encrypt(self, package: ExportPackage, artifact: bytes, key: bytes) -> bytes:
        """Encrypt the artifact with the package's configured algorithm."""


class LocalPackagingBackend(PackagingBackend):
    """
    Builds a JSON manifest of the export as the artifact.

    Stage delays stand in for the time real artifact construction takes;
    CPU-bound work runs in a worker thread so the event loop stays free.
    """

    def __init__(self, delays: Optional[StageDelays] = None):
        self.delays = delays or StageDelays()

    def build_manifest(self, package: ExportPackage) -> Dict[str, Any]:
        configuration = package.configuration
        return {
            "export_id": package.id,
            "platform": {
                "id": package.platform_id,
                "name": package.platform_name,
                "version": package.version,
            },
            "format": package.format.value,
            "target_provider": package.target_provider.value,
            "network_mode": package.network_mode.value,
            "components": [
                {"name": c.name, "type": c.type.value, "version": c.version, "size": c.size}
                for c in package.components
                if c.included
            ],
            "dependencies": [
                {
                    "name": d.name,
                    "version": d.version,
                    "source": d.source.value,
                    "offline_bundle": d.offline_bundle,
                }
                for d in package.dependencies
            ],
            "contents": {
                "data": configuration.include_data,
                "secrets": configuration.include_secrets,
                "configs": configuration.include_configs,
                "logs": configuration.include_logs,
                "backups": configuration.include_backups,
            },
            "compression": configuration.compression.value,
            "encryption": configuration.encryption.value,
            "size": package.size,
            "part_count": package.part_count,
        }

    async def prepare(self, package: ExportPackage) -> None:
        await asyncio.sleep(self.delays.preparing)
        if not any(component.included for component in package.components):
            raise PipelineError("Export has no included components", stage="preparing")

    async def build(self, package: ExportPackage) -> bytes:
        await asyncio.sleep(self.delays.packaging)
        manifest = json.dumps(self.build_manifest(package), sort_keys=True).encode("utf-8")

        compression = package.configuration.compression
        if compression == CompressionType.GZIP:
            return await asyncio.to_thread(gzip.compress, manifest, 9, mtime=0)
        if compression != CompressionType.NONE:
            logger.info(
                f"Export {package.id}: {compression.value} compression is applied by the "
                f"artifact builder; manifest stored uncompressed"
            )
        return manifest

    async def encrypt(self, package: ExportPackage, artifact: bytes, key: bytes) -> bytes:
        await asyncio.sleep(self.delays.encrypting)
        return await asyncio.to_thread(
            encrypt_artifact,
            artifact,
            key,
            package.configuration.encryption,
            package.id.encode("utf-8"),
        )
