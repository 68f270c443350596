from iplay.leaderboards.aggregator import (
    AggregationReport,
    cache_document_id,
    compute_partitions,
    rank_users,
    refresh_leaderboards,
)

__all__ = [
    "AggregationReport",
    "cache_document_id",
    "compute_partitions",
    "rank_users",
    "refresh_leaderboards",
]
