"""Profile resolver — voter ids to demographic attributes, in bounded batches.

Batches are issued concurrently and merged only after every batch has
completed.  Each batch returns its own partial map; nothing is shared
between in-flight requests.
"""

import asyncio
from collections.abc import Iterable

from loguru import logger
from pydantic import TypeAdapter, ValidationError

from poll_results.lib.breakdown.types import ProfileAttributes, ProfileRow
from poll_results.lib.rest import DecodeError, RestClient, in_list

DEFAULT_BATCH_SIZE = 200
DEFAULT_CONCURRENCY = 4
DEFAULT_PROFILE_SELECT = "user_id,gender,age_group,region,age,prefecture_code"

_PROFILE_ROWS = TypeAdapter(list[ProfileRow])


def chunk_ids(voter_ids: Iterable[str], batch_size: int) -> list[list[str]]:
    """Deduplicate ids (keeping first-seen order) and split them into batches.

    Raises:
        ValueError: If batch_size is not positive.
    """
    if batch_size <= 0:
        msg = f"batch_size must be positive, got {batch_size}"
        raise ValueError(msg)
    unique = list(dict.fromkeys(v for v in voter_ids if v))
    return [unique[i : i + batch_size] for i in range(0, len(unique), batch_size)]


async def resolve_profiles(
    client: RestClient,
    voter_ids: Iterable[str],
    batch_size: int = DEFAULT_BATCH_SIZE,
    concurrency: int = DEFAULT_CONCURRENCY,
    select: str = DEFAULT_PROFILE_SELECT,
) -> dict[str, ProfileAttributes]:
    """Resolve demographic attributes for a set of voters.

    Voters without a profile are simply absent from the result.

    Args:
        client: REST client.
        voter_ids: Voter identifiers; duplicates and blanks are ignored.
        batch_size: Maximum ids per request.
        concurrency: Maximum requests in flight.
        select: Profile columns to request.

    Returns:
        Mapping of voter id to attributes.

    Raises:
        TransportError: If any batch request fails.
        DecodeError: If any batch returns rows of an unexpected shape.
    """
    batches = chunk_ids(voter_ids, batch_size)
    if not batches:
        return {}

    semaphore = asyncio.Semaphore(max(1, concurrency))

    async def _run(batch: list[str]) -> dict[str, ProfileAttributes]:
        async with semaphore:
            return await _fetch_batch(client, batch, select, batch_size)

    tasks = [asyncio.create_task(_run(batch)) for batch in batches]
    try:
        partials = await asyncio.gather(*tasks)
    except BaseException:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise

    merged: dict[str, ProfileAttributes] = {}
    for partial in partials:
        merged.update(partial)
    logger.debug("Resolved {} profiles in {} batch(es)", len(merged), len(batches))
    return merged


async def _fetch_batch(
    client: RestClient,
    batch: list[str],
    select: str,
    limit: int,
) -> dict[str, ProfileAttributes]:
    """Fetch and decode one batch of profiles."""
    rows = await client.select(
        "profiles",
        {
            "user_id": in_list(batch),
            "select": select,
            "limit": str(limit),
        },
    )
    try:
        profiles = _PROFILE_ROWS.validate_python(rows)
    except ValidationError as exc:
        msg = f"Unexpected profile row shape: {exc.error_count()} error(s)"
        logger.error(msg)
        raise DecodeError(msg) from exc
    return {p.user_id: ProfileAttributes.from_row(p) for p in profiles}
