"""
Entity repositories for the Portability Engine.

Components talk to storage only through the Repository interface, so a
durable store can replace the in-memory one without touching engine
logic. Each update replaces one whole entity; there are no cross-entity
transactions.
"""

import threading
from abc import ABC, abstractmethod
from typing import Dict, Generic, List, Optional, TypeVar

from pydantic import BaseModel

EntityT = TypeVar("EntityT", bound=BaseModel)


class Repository(ABC, Generic[EntityT]):
    """Keyed store for one entity type. Entities expose ``id`` and ``tenant_id``."""

    @abstractmethod
    def add(self, entity: EntityT) -> EntityT:
        """Store a new entity; raises KeyError if the id already exists."""

    @abstractmethod
    def get(self, entity_id: str) -> Optional[EntityT]:
        """Return the entity or None."""

    @abstractmethod
    def list(self, tenant_id: Optional[str] = None) -> List[EntityT]:
        """Return entities in insertion order, optionally for one tenant."""

    @abstractmethod
    def update(self, entity: EntityT) -> EntityT:
        """Replace a stored entity; raises KeyError if it does not exist."""


class InMemoryRepository(Repository[EntityT]):
    """
    Thread-safe in-memory repository.

    Entities are deep-copied on the way in and out, so callers never hold
    a reference to stored state and an update becomes visible all at once.
    """

    def __init__(self):
        self._items: Dict[str, EntityT] = {}
        self._lock = threading.Lock()

    def add(self, entity: EntityT) -> EntityT:
        with self._lock:
            if entity.id in self._items:
                raise KeyError(f"Duplicate id: {entity.id}")
            self._items[entity.id] = entity.model_copy(deep=True)
        return entity

    def get(self, entity_id: str) -> Optional[EntityT]:
        with self._lock:
            entity = self._items.get(entity_id)
            return entity.model_copy(deep=True) if entity is not None else None

    def list(self, tenant_id: Optional[str] = None) -> List[EntityT]:
        with self._lock:
            return [
                entity.model_copy(deep=True)
                for entity in self._items.values()
                if tenant_id is None or entity.tenant_id == tenant_id
            ]

    def update(self, entity: EntityT) -> EntityT:
        with self._lock:
            if entity.id not in self._items:
                raise KeyError(f"Unknown id: {entity.id}")
            self._items[entity.id] = entity.model_copy(deep=True)
        return entity

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)
