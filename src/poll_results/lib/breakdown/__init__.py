"""Breakdown library — demographic vote breakdowns for a poll.

Public API:
    - Dimension: gender / age_group / region, with their bucket sets
    - fetch_votes: Raw vote rows for a poll
    - resolve_profiles: Batched voter id → attribute lookup
    - aggregate_breakdown / count_votes: Client-side aggregation
    - normalize_breakdown: Decode server breakdown responses of any known shape
    - Breakdown, BreakdownRow, BreakdownFilter, ProfileAttributes, VoteRow: Records
"""

from poll_results.lib.breakdown.aggregator import aggregate_breakdown, count_votes
from poll_results.lib.breakdown.buckets import (
    BUCKETS,
    NO_ANSWER,
    Dimension,
    age_group_for_age,
    bucket_for_label,
    region_for_prefecture,
)
from poll_results.lib.breakdown.fetcher import DEFAULT_VOTE_LIMIT, fetch_votes
from poll_results.lib.breakdown.normalizer import SCHEMA_ADAPTERS, normalize_breakdown
from poll_results.lib.breakdown.resolver import DEFAULT_BATCH_SIZE, chunk_ids, resolve_profiles
from poll_results.lib.breakdown.types import (
    Breakdown,
    BreakdownFilter,
    BreakdownRow,
    ProfileAttributes,
    ProfileRow,
    VoteRow,
)

__all__ = [
    "BUCKETS",
    "DEFAULT_BATCH_SIZE",
    "DEFAULT_VOTE_LIMIT",
    "NO_ANSWER",
    "SCHEMA_ADAPTERS",
    "Breakdown",
    "BreakdownFilter",
    "BreakdownRow",
    "Dimension",
    "ProfileAttributes",
    "ProfileRow",
    "VoteRow",
    "age_group_for_age",
    "aggregate_breakdown",
    "bucket_for_label",
    "chunk_ids",
    "count_votes",
    "fetch_votes",
    "normalize_breakdown",
    "region_for_prefecture",
    "resolve_profiles",
]
