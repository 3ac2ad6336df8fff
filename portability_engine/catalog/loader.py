"""
Catalog loader for the Portability Engine.

Providers, export formats, component and dependency templates, local
service substitutes and the migration step template are versioned YAML
data shipped in ``portability_engine/data``. Adding a provider or format
means editing data, not pipeline logic.
"""

import logging
from functools import cached_property
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from portability_engine.core.exceptions import ConfigurationError
from portability_engine.models.airgap import ServiceResources
from portability_engine.models.export import (
    ComponentType,
    DependencySource,
    DependencyType,
    ExportFormat,
)
from portability_engine.models.provider import ProviderAbstraction
from portability_engine.utils.helpers import load_config_file

logger = logging.getLogger(__name__)

DEFAULT_CATALOG_DIR = Path(__file__).resolve().parent.parent / "data"
SUPPORTED_CATALOG_VERSION = 1


class FormatDescriptor(BaseModel):
    model_config = ConfigDict(frozen=True)

    format: ExportFormat
    name: str
    description: str


class ComponentTemplate(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    type: ComponentType
    size: int = Field(..., ge=0)
    version: str
    dependencies: List[str] = Field(default_factory=list)
    # Empty means the component is included for every format
    only_for_formats: List[ExportFormat] = Field(default_factory=list)


class DependencyTemplate(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    version: str
    type: DependencyType
    source: DependencySource
    size: int = Field(..., ge=0)
    always_bundled: bool = False


class LocalServiceTemplate(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    type: str
    port: int = Field(..., gt=0, lt=65536)
    replaces: str
    resources: ServiceResources


class StepTemplate(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    description: str
    duration: float = Field(..., ge=0)
    automated: bool
    rollbackable: bool


class MigrationTemplate(BaseModel):
    model_config = ConfigDict(frozen=True)

    steps: List[StepTemplate] = Field(..., min_length=1)
    rollback_plan: List[str] = Field(..., min_length=1)
    cost_multiplier: float = Field(default=2, gt=0)


class CatalogLoader:
    """Loads and validates the static catalogs, once per instance."""

    def __init__(self, catalog_dir: Optional[Union[str, Path]] = None):
        self.catalog_dir = Path(catalog_dir) if catalog_dir else DEFAULT_CATALOG_DIR

    def _load(self, filename: str) -> Dict[str, Any]:
        path = self.catalog_dir / filename
        try:
            data = load_config_file(path)
        except (OSError, ValueError) as e:
            raise ConfigurationError(f"Cannot read catalog file {path}: {e}") from e

        if not isinstance(data, dict):
            raise ConfigurationError(f"Catalog file {path} must contain a mapping")

        version = data.get("version", SUPPORTED_CATALOG_VERSION)
        if version != SUPPORTED_CATALOG_VERSION:
            raise ConfigurationError(
                f"Catalog file {path} has unsupported version {version}",
                details={"supported": SUPPORTED_CATALOG_VERSION}
            )

        logger.debug(f"Loaded catalog file {path}")
        return data

    def _parse(self, filename: str, model: type, items: Any) -> Any:
        try:
            if isinstance(items, list):
                return [model(**item) for item in items]
            return model(**items)
        except (TypeError, PydanticValidationError) as e:
            raise ConfigurationError(f"Invalid entry in catalog file {filename}: {e}") from e

    @cached_property
    def providers(self) -> List[ProviderAbstraction]:
        data = self._load("providers.yaml")
        providers = self._parse("providers.yaml", ProviderAbstraction, data.get("providers", []))
        types = [p.type for p in providers]
        if len(set(types)) != len(types):
            raise ConfigurationError("Duplicate provider types in providers.yaml")
        return providers

    @cached_property
    def formats(self) -> Dict[ExportFormat, FormatDescriptor]:
        data = self._load("formats.yaml")
        entries = data.get("formats", {})
        if not isinstance(entries, dict):
            raise ConfigurationError("formats.yaml: 'formats' must be a mapping")
        descriptors = self._parse(
            "formats.yaml",
            FormatDescriptor,
            [{"format": key, **value} for key, value in entries.items()]
        )
        return {descriptor.format: descriptor for descriptor in descriptors}

    @cached_property
    def components(self) -> List[ComponentTemplate]:
        data = self._load("components.yaml")
        return self._parse("components.yaml", ComponentTemplate, data.get("components", []))

    @cached_property
    def dependencies(self) -> List[DependencyTemplate]:
        data = self._load("dependencies.yaml")
        return self._parse("dependencies.yaml", DependencyTemplate, data.get("dependencies", []))

    @cached_property
    def local_services(self) -> List[LocalServiceTemplate]:
        data = self._load("local_services.yaml")
        return self._parse(
            "local_services.yaml", LocalServiceTemplate, data.get("local_services", [])
        )

    @cached_property
    def migration(self) -> MigrationTemplate:
        data = self._load("migration.yaml")
        data.pop("version", None)
        return self._parse("migration.yaml", MigrationTemplate, data)

    def load_all(self) -> "CatalogLoader":
        """Eagerly load every catalog so bad data fails at startup."""
        self.providers
        self.formats
        self.components
        self.dependencies
        self.local_services
        self.migration
        return self
