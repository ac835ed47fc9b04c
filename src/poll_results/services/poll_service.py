"""Listing, creating and voting on polls."""

from loguru import logger
from pydantic import TypeAdapter, ValidationError

from poll_results.lib.breakdown import DEFAULT_BATCH_SIZE, chunk_ids
from poll_results.lib.rest import DecodeError, RestClient, TransportError, eq, in_list
from poll_results.schemas.poll import Identity, Poll, PollCreateRequest, PollOption

_POLL_COLUMNS = "id,question,category,created_at,owner_id,description"
_POLLS = TypeAdapter(list[Poll])
_OPTIONS = TypeAdapter(list[PollOption])


def _decode_polls(rows: list, source: str) -> list[Poll]:
    try:
        return _POLLS.validate_python(rows)
    except ValidationError as exc:
        msg = f"Unexpected poll row shape from {source}"
        logger.error(msg)
        raise DecodeError(msg) from exc


async def list_polls(
    client: RestClient,
    limit: int = 20,
    order: str = "created_at.desc",
    category: str | None = None,
) -> list[Poll]:
    """List polls, newest first by default, optionally within one category."""
    params = {"select": _POLL_COLUMNS, "order": order, "limit": str(limit)}
    if category:
        params["category"] = eq(category)
    return _decode_polls(await client.select("polls", params), "polls")


async def list_popular_polls(
    client: RestClient,
    limit: int = 20,
    category: str | None = None,
) -> list[Poll]:
    """List polls ordered by like count, then recency."""
    params = {
        "select": f"{_POLL_COLUMNS},like_count",
        "order": "like_count.desc,created_at.desc",
        "limit": str(limit),
    }
    if category:
        params["category"] = eq(category)
    return _decode_polls(await client.select("polls_popular", params), "polls_popular")


async def list_options(client: RestClient, poll_id: str) -> list[PollOption]:
    """List a poll's options in display order."""
    rows = await client.select(
        "poll_options",
        {"poll_id": eq(poll_id), "select": "*", "order": "idx.asc", "limit": "1000"},
    )
    try:
        return _OPTIONS.validate_python(rows)
    except ValidationError as exc:
        msg = f"Unexpected option row shape for poll {poll_id}"
        logger.error(msg)
        raise DecodeError(msg) from exc


async def create_poll(client: RestClient, identity: Identity, request: PollCreateRequest) -> str:
    """Create a poll and its options.

    The poll row is inserted first; if inserting the options fails the poll
    is deleted again and the original error is re-raised.

    Returns:
        The new poll id.
    """
    created = await client.insert(
        "polls",
        {
            "question": request.question,
            "category": request.category,
            "description": request.description,
            "owner_id": identity.user_id,
            "is_public": request.is_public,
        },
        prefer="return=representation",
    )
    if not isinstance(created, list) or not created or "id" not in created[0]:
        msg = "Poll insert did not return the created row"
        logger.error(msg)
        raise DecodeError(msg)
    poll_id = str(created[0]["id"])

    option_rows = [
        {"poll_id": poll_id, "idx": i, "label": label}
        for i, label in enumerate(request.options, start=1)
    ]
    try:
        await client.insert("poll_options", option_rows)
    except TransportError:
        logger.warning("Option insert failed for poll {}; rolling back", poll_id)
        try:
            await delete_poll(client, poll_id)
        except TransportError as rollback_exc:
            logger.error("Rollback of poll {} failed: {}", poll_id, rollback_exc)
        raise

    logger.info("Created poll {} with {} options", poll_id, len(option_rows))
    return poll_id


async def delete_poll(client: RestClient, poll_id: str) -> None:
    """Delete a poll by id."""
    await client.delete("polls", {"id": eq(poll_id)})


async def submit_vote(client: RestClient, identity: Identity, poll_id: str, option_id: str) -> None:
    """Record a vote.

    Upserts on (poll_id, user_id) so a repeated vote succeeds instead of
    conflicting.
    """
    await client.insert(
        "votes",
        {"poll_id": poll_id, "user_id": identity.user_id, "option_id": option_id},
        on_conflict="poll_id,user_id",
        prefer="resolution=merge-duplicates,return=minimal",
    )
    logger.info("Vote recorded for poll {}", poll_id)


async def has_voted(client: RestClient, identity: Identity, poll_id: str) -> bool:
    """Whether the user already voted on a poll."""
    rows = await client.select(
        "votes",
        {"poll_id": eq(poll_id), "user_id": eq(identity.user_id), "select": "id", "limit": "1"},
    )
    return bool(rows)


async def list_my_polls(
    client: RestClient,
    identity: Identity,
    limit: int = 50,
    order: str = "created_at.desc",
) -> list[Poll]:
    """List polls created by the user."""
    rows = await client.select(
        "polls",
        {"owner_id": eq(identity.user_id), "select": _POLL_COLUMNS, "order": order, "limit": str(limit)},
    )
    return _decode_polls(rows, "polls")


async def list_voted_polls(
    client: RestClient,
    identity: Identity,
    limit: int = 50,
    order: str = "created_at.desc",
) -> list[Poll]:
    """List polls the user voted on.

    Poll ids are looked up in batches so the ``in.(...)`` filter stays within
    URL length limits; the merged result is re-sorted by the first ordering
    column and capped at ``limit``.
    """
    rows = await client.select(
        "votes",
        {"user_id": eq(identity.user_id), "select": "poll_id", "limit": "10000"},
    )
    poll_ids = [str(r["poll_id"]) for r in rows if isinstance(r, dict) and r.get("poll_id")]
    batches = chunk_ids(poll_ids, DEFAULT_BATCH_SIZE)
    if not batches:
        return []

    polls: dict[str, Poll] = {}
    for batch in batches:
        chunk = await client.select(
            "polls",
            {"id": in_list(batch), "select": _POLL_COLUMNS, "order": order, "limit": str(limit)},
        )
        for poll in _decode_polls(chunk, "polls"):
            polls.setdefault(poll.id, poll)
    if len(batches) == 1:
        return list(polls.values())
    return _sort_polls(list(polls.values()), order)[:limit]


def _sort_polls(polls: list[Poll], order: str) -> list[Poll]:
    """Sort polls by the first column of a PostgREST ``order`` expression."""
    column, _, direction = order.split(",")[0].partition(".")
    if column not in Poll.model_fields:
        return polls
    return sorted(
        polls,
        key=lambda p: (getattr(p, column) is not None, getattr(p, column)),
        reverse=direction.startswith("desc"),
    )
