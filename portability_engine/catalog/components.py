"""
Component and dependency catalog.

Given an export format and network mode, enumerates the software
components and dependencies to bundle into an export package.
"""

from typing import List, Optional

from portability_engine.catalog.loader import CatalogLoader, FormatDescriptor
from portability_engine.core.exceptions import ValidationError
from portability_engine.models.export import (
    Dependency,
    ExportComponent,
    ExportFormat,
    NetworkMode,
)


class ComponentCatalog:
    """Fixed component/dependency sets per export format."""

    def __init__(self, loader: Optional[CatalogLoader] = None):
        self.loader = loader or CatalogLoader()

    def list_formats(self) -> List[FormatDescriptor]:
        return list(self.loader.formats.values())

    def get_format(self, export_format: ExportFormat) -> FormatDescriptor:
        descriptor = self.loader.formats.get(ExportFormat(export_format))
        if descriptor is None:
            raise ValidationError(
                f"Export format has no catalog entry: {export_format}",
                failed_checks=["format"]
            )
        return descriptor

    def components_for(self, export_format: ExportFormat) -> List[ExportComponent]:
        """
        Return the component set for a format.

        Every component is listed; those restricted to other formats are
        returned with ``included=False``.
        """
        export_format = ExportFormat(export_format)
        return [
            ExportComponent(
                name=template.name,
                type=template.type,
                included=(
                    not template.only_for_formats
                    or export_format in template.only_for_formats
                ),
                size=template.size,
                version=template.version,
                dependencies=list(template.dependencies),
            )
            for template in self.loader.components
        ]

    def dependencies_for(
        self,
        export_format: ExportFormat,
        network_mode: NetworkMode
    ) -> List[Dependency]:
        """
        Return the dependency set for a format and network mode.

        Offline and air-gapped exports bundle every dependency. TLS
        certificate material is bundled in every mode.
        """
        offline = NetworkMode(network_mode).is_disconnected
        return [
            Dependency(
                name=template.name,
                version=template.version,
                type=template.type,
                source=template.source,
                offline_bundle=offline or template.always_bundled,
                size=template.size,
            )
            for template in self.loader.dependencies
        ]
