"""
Provider abstraction layer.
"""

from portability_engine.providers.registry import ProviderRegistry

__all__ = ["ProviderRegistry"]
