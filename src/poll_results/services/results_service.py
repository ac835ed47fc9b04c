"""Results service — vote counts and demographic breakdowns for a poll.

A breakdown is served by the dimension's server-side procedure when one is
available and no voter filter is requested.  Otherwise it is computed on
the client from raw votes joined to profiles.  Both paths return the same
``Breakdown`` shape.
"""

from loguru import logger

from poll_results.lib.breakdown import (
    DEFAULT_BATCH_SIZE,
    DEFAULT_VOTE_LIMIT,
    Breakdown,
    BreakdownFilter,
    Dimension,
    aggregate_breakdown,
    count_votes,
    fetch_votes,
    normalize_breakdown,
    resolve_profiles,
)
from poll_results.lib.breakdown.resolver import DEFAULT_CONCURRENCY, DEFAULT_PROFILE_SELECT
from poll_results.lib.rest import RestClient
from poll_results.schemas.poll import VoteResult


def _profile_columns(select: str, filters: BreakdownFilter | None) -> str:
    """Add the age column to a profile select list when an age range is filtered on."""
    if filters is None or (filters.age_min is None and filters.age_max is None):
        return select
    columns = [c.strip() for c in select.split(",") if c.strip()]
    if "*" in columns or "age" in columns:
        return select
    return ",".join([*columns, "age"])


async def fetch_breakdown(
    client: RestClient,
    poll_id: str,
    dimension: Dimension | str,
    filters: BreakdownFilter | None = None,
    *,
    use_server: bool = True,
    vote_limit: int = DEFAULT_VOTE_LIMIT,
    batch_size: int = DEFAULT_BATCH_SIZE,
    concurrency: int = DEFAULT_CONCURRENCY,
    profile_select: str = DEFAULT_PROFILE_SELECT,
) -> Breakdown:
    """Get the per-option breakdown of a poll along one dimension.

    Args:
        client: REST client.
        poll_id: Poll identifier.
        dimension: gender, age_group (or age) or region.
        filters: Optional voter predicates; forces the client-side path.
        use_server: Whether the server procedure for this dimension may be used.
        vote_limit: Maximum vote rows fetched on the client-side path.
        batch_size: Voter ids per profile request.
        concurrency: Maximum profile requests in flight.
        profile_select: Profile columns to request.

    Returns:
        Breakdown keyed by option id.

    Raises:
        ValueError: If the dimension is unknown.
        TransportError: If a backend call fails.
        DecodeError: If a response cannot be decoded.
    """
    dim = Dimension.parse(dimension)
    has_filters = filters is not None and not filters.is_empty

    if use_server and not has_filters:
        logger.debug("Fetching {} breakdown for poll {} via {}", dim.value, poll_id, dim.rpc_name)
        payload = await client.rpc(dim.rpc_name, {"poll_id": poll_id})
        return normalize_breakdown(payload, dim)

    logger.debug("Aggregating {} breakdown for poll {} on the client", dim.value, poll_id)
    votes = await fetch_votes(client, poll_id, limit=vote_limit)
    if not votes:
        return Breakdown(dimension=dim)

    profiles = await resolve_profiles(
        client,
        (v.user_id for v in votes if v.user_id),
        batch_size=batch_size,
        concurrency=concurrency,
        select=_profile_columns(profile_select, filters),
    )
    return aggregate_breakdown(votes, profiles, dim, filters)


async def fetch_results(
    client: RestClient,
    poll_id: str,
    filters: BreakdownFilter | None = None,
    *,
    vote_limit: int = DEFAULT_VOTE_LIMIT,
    batch_size: int = DEFAULT_BATCH_SIZE,
    concurrency: int = DEFAULT_CONCURRENCY,
    profile_select: str = DEFAULT_PROFILE_SELECT,
) -> list[VoteResult]:
    """Count votes per option, optionally only for voters matching filters.

    Profiles are only looked up when filters are given.

    Returns:
        One VoteResult per option with at least one counted vote.
    """
    votes = await fetch_votes(client, poll_id, limit=vote_limit)
    profiles = None
    if votes and filters is not None and not filters.is_empty:
        profiles = await resolve_profiles(
            client,
            (v.user_id for v in votes if v.user_id),
            batch_size=batch_size,
            concurrency=concurrency,
            select=_profile_columns(profile_select, filters),
        )
    counts = count_votes(votes, profiles, filters)
    return [VoteResult(option_id=option_id, count=count) for option_id, count in counts.items()]
