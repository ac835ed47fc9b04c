"""Client-side breakdown aggregation over raw votes and resolved profiles.

Used when the server has no aggregation procedure for the requested
dimension/filter combination.  Produces the same ``Breakdown`` shape as
the server path.
"""

from collections.abc import Iterable, Mapping

from poll_results.lib.breakdown.buckets import Dimension
from poll_results.lib.breakdown.types import Breakdown, BreakdownFilter, BreakdownRow, ProfileAttributes, VoteRow


def aggregate_breakdown(
    votes: Iterable[VoteRow],
    profiles: Mapping[str, ProfileAttributes],
    dimension: Dimension | str,
    filters: BreakdownFilter | None = None,
) -> Breakdown:
    """Bucket votes per option along one dimension.

    Votes from voters without a profile, or with a blank attribute, land in
    ``no_answer``.  Filters are applied before bucketing, so excluded votes
    contribute to neither a bucket nor the option total.  Options left with
    no counted votes are omitted.

    Args:
        votes: Vote rows for a single poll.
        profiles: Voter id → attributes, as returned by ``resolve_profiles``.
        dimension: Dimension to bucket by.
        filters: Optional voter predicates.

    Returns:
        Breakdown keyed by option id, in order of first counted vote.
    """
    dim = Dimension.parse(dimension)
    active = filters if filters is not None and not filters.is_empty else None

    breakdown = Breakdown(dimension=dim)
    for vote in votes:
        attributes = profiles.get(vote.user_id) if vote.user_id else None
        if active is not None and not active.matches(attributes):
            continue
        bucket = (attributes or ProfileAttributes()).bucket(dim)
        row = breakdown.rows.get(vote.option_id)
        if row is None:
            row = BreakdownRow(option_id=vote.option_id, dimension=dim)
            breakdown.rows[vote.option_id] = row
        row.add(bucket)
    return breakdown


def count_votes(
    votes: Iterable[VoteRow],
    profiles: Mapping[str, ProfileAttributes] | None = None,
    filters: BreakdownFilter | None = None,
) -> dict[str, int]:
    """Count votes per option, optionally restricted by voter filters."""
    active = filters if filters is not None and not filters.is_empty else None
    counts: dict[str, int] = {}
    for vote in votes:
        if active is not None:
            attributes = (profiles or {}).get(vote.user_id) if vote.user_id else None
            if not active.matches(attributes):
                continue
        counts[vote.option_id] = counts.get(vote.option_id, 0) + 1
    return counts
