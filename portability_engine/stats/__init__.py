"""Read-side statistics for the Portability Engine."""

from portability_engine.stats.aggregator import StatsAggregator

__all__ = ["StatsAggregator"]
