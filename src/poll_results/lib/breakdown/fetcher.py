"""Fetch the raw vote rows of a poll."""

from loguru import logger
from pydantic import TypeAdapter, ValidationError

from poll_results.lib.breakdown.types import VoteRow
from poll_results.lib.rest import DecodeError, RestClient, eq

DEFAULT_VOTE_LIMIT = 10000

_VOTE_ROWS = TypeAdapter(list[VoteRow])


async def fetch_votes(
    client: RestClient,
    poll_id: str,
    limit: int = DEFAULT_VOTE_LIMIT,
) -> list[VoteRow]:
    """Fetch ``(option_id, user_id)`` pairs for a poll.

    Args:
        client: REST client.
        poll_id: Poll identifier.
        limit: Maximum number of rows to request.

    Returns:
        Vote rows in server order (possibly empty).

    Raises:
        TransportError: If the request fails.
        DecodeError: If the rows do not have the expected shape.
    """
    rows = await client.select(
        "votes",
        {
            "poll_id": eq(poll_id),
            "select": "option_id,user_id",
            "limit": str(limit),
        },
    )
    try:
        votes = _VOTE_ROWS.validate_python(rows)
    except ValidationError as exc:
        msg = f"Unexpected vote row shape for poll {poll_id}: {exc.error_count()} error(s)"
        logger.error(msg)
        raise DecodeError(msg) from exc

    if len(votes) >= limit:
        logger.warning("Vote rows for poll {} hit the fetch limit of {}; counts may be truncated", poll_id, limit)
    logger.debug("Fetched {} votes for poll {}", len(votes), poll_id)
    return votes
