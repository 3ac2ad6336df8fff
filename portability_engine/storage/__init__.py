"""
Storage abstractions for engine entities.
"""

from portability_engine.storage.repository import Repository, InMemoryRepository

__all__ = ["Repository", "InMemoryRepository"]
