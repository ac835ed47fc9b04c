"""Liking polls and counting likes."""

from collections import Counter
from collections.abc import Sequence

from loguru import logger
from pydantic import BaseModel, ConfigDict, TypeAdapter, ValidationError

from poll_results.lib.rest import DecodeError, RestClient, eq, in_list
from poll_results.schemas.poll import Identity


class _LikeRow(BaseModel):
    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)

    poll_id: str


_LIKE_ROWS = TypeAdapter(list[_LikeRow])


def _decode_likes(rows: list) -> list[_LikeRow]:
    try:
        return _LIKE_ROWS.validate_python(rows)
    except ValidationError as exc:
        msg = f"Unexpected like row shape: {exc.error_count()} error(s)"
        logger.error(msg)
        raise DecodeError(msg) from exc


async def like(client: RestClient, identity: Identity, poll_id: str) -> None:
    """Like a poll; liking twice is not an error."""
    await client.insert(
        "likes",
        {"poll_id": poll_id, "user_id": identity.user_id},
        on_conflict="poll_id,user_id",
        prefer="resolution=merge-duplicates,return=minimal",
    )


async def unlike(client: RestClient, identity: Identity, poll_id: str) -> None:
    """Remove the user's like from a poll."""
    await client.delete("likes", {"poll_id": eq(poll_id), "user_id": eq(identity.user_id)})


async def fetch_like_counts(client: RestClient, poll_ids: Sequence[str]) -> dict[str, int]:
    """Count likes for several polls.

    Polls without likes are absent from the result.

    Raises:
        DecodeError: If a like row has no poll id.
    """
    if not poll_ids:
        return {}
    rows = await client.select(
        "likes",
        {"poll_id": in_list(poll_ids), "select": "poll_id", "limit": "10000"},
    )
    return dict(Counter(r.poll_id for r in _decode_likes(rows)))


async def fetch_liked_poll_ids(client: RestClient, identity: Identity, poll_ids: Sequence[str]) -> set[str]:
    """Return which of the given polls the user has liked."""
    if not poll_ids:
        return set()
    rows = await client.select(
        "likes",
        {
            "poll_id": in_list(poll_ids),
            "user_id": eq(identity.user_id),
            "select": "poll_id",
            "limit": "10000",
        },
    )
    return {r.poll_id for r in _decode_likes(rows)}
