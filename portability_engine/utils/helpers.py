"""
Helper utilities for the Portability Engine.

This module contains small functions used throughout the engine for
identifiers, checksums, formatting and loading configuration files.
"""

import hashlib
import json
import uuid
from datetime import datetime, UTC
from pathlib import Path
from typing import Any, Dict, Union

import yaml


def generate_id(prefix: str) -> str:
    """Generate a unique entity ID such as ``export_20250101120000123_1a2b3c4d``."""
    timestamp = datetime.now(UTC).strftime("%Y%m%d%H%M%S%f")
    unique_id = uuid.uuid4().hex[:8]
    return f"{prefix}_{timestamp}_{unique_id}"


def calculate_checksum(data: bytes, algorithm: str = "sha256") -> str:
    """
    Calculate a prefixed content checksum.

    Args:
        data: Content to hash
        algorithm: Hash algorithm name understood by hashlib

    Returns:
        Checksum string in the form ``<algorithm>:<hexdigest>``
    """
    hash_obj = hashlib.new(algorithm)
    hash_obj.update(data)
    return f"{algorithm}:{hash_obj.hexdigest()}"


def format_bytes(bytes_count: int) -> str:
    """Format bytes into human-readable string."""
    for unit in ['B', 'KB', 'MB', 'GB', 'TB']:
        if bytes_count < 1024.0:
            return f"{bytes_count:.1f} {unit}"
        bytes_count /= 1024.0
    return f"{bytes_count:.1f} PB"


def format_hours(hours: float) -> str:
    """Format a duration in hours, switching to days past 48h."""
    if hours < 48:
        return f"{hours:g}h"
    return f"{hours / 24:.1f}d"


def safe_filename(filename: str) -> str:
    """Convert a string to a safe filename."""
    unsafe_chars = '<>:"/\\|?* '
    for char in unsafe_chars:
        filename = filename.replace(char, '_')

    filename = filename.strip('_.')

    if len(filename) > 255:
        filename = filename[:255]

    return filename


def load_config_file(file_path: Union[str, Path]) -> Dict[str, Any]:
    """
    Load configuration from YAML or JSON file.

    Args:
        file_path: Path to configuration file

    Returns:
        Configuration dictionary
    """
    file_path = Path(file_path)

    if not file_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {file_path}")

    with open(file_path, 'r', encoding='utf-8') as f:
        if file_path.suffix.lower() in ['.yaml', '.yml']:
            return yaml.safe_load(f)
        elif file_path.suffix.lower() == '.json':
            return json.load(f)
        else:
            raise ValueError(f"Unsupported configuration file format: {file_path.suffix}")
