"""
Utilities module for the Portability Engine.

This module contains helper functions and logging utilities
used throughout the engine.
"""

from portability_engine.utils.helpers import (
    generate_id,
    calculate_checksum,
    format_bytes,
    format_hours,
    safe_filename,
    load_config_file,
)
from portability_engine.utils.logging import (
    setup_logging,
    get_logger,
    AuditLogger,
    StructuredFormatter,
)

__all__ = [
    # Helper functions
    "generate_id",
    "calculate_checksum",
    "format_bytes",
    "format_hours",
    "safe_filename",
    "load_config_file",
    # Logging utilities
    "setup_logging",
    "get_logger",
    "AuditLogger",
    "StructuredFormatter",
]
