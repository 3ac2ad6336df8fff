"""
Export module for the Portability Engine.

This module contains the export pipeline and the packaging backends
that perform each pipeline stage.
"""

from portability_engine.export.backend import PackagingBackend, LocalPackagingBackend
from portability_engine.export.pipeline import ExportPipeline

__all__ = [
    "PackagingBackend",
    "LocalPackagingBackend",
    "ExportPipeline",
]
