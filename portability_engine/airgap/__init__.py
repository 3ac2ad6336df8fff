"""Air-gapped operation: local service substitutes and sync bookkeeping."""

from portability_engine.airgap.manager import AirGappedManager, SyncBackend, NullSyncBackend

__all__ = [
    "AirGappedManager",
    "SyncBackend",
    "NullSyncBackend",
]
