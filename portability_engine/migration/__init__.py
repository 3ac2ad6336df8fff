"""Migration planning between hosting providers."""

from portability_engine.migration.planner import MigrationPlanner, assess_risk

__all__ = [
    "MigrationPlanner",
    "assess_risk",
]
