"""Reading and writing the acting user's profile."""

from loguru import logger
from pydantic import TypeAdapter, ValidationError

from poll_results.lib.breakdown import ProfileRow
from poll_results.lib.breakdown.resolver import DEFAULT_PROFILE_SELECT
from poll_results.lib.rest import DecodeError, RestClient, eq
from poll_results.schemas.poll import Identity, ProfileUpdate

_PROFILE_ROWS = TypeAdapter(list[ProfileRow])


def _decode_profiles(rows: object, user_id: str) -> list[ProfileRow]:
    try:
        return _PROFILE_ROWS.validate_python(rows)
    except ValidationError as exc:
        msg = f"Unexpected profile row shape for user {user_id}"
        logger.error(msg)
        raise DecodeError(msg) from exc


async def fetch_profile(
    client: RestClient,
    identity: Identity,
    select: str = DEFAULT_PROFILE_SELECT,
) -> ProfileRow | None:
    """Fetch the user's profile, or None when they have not created one."""
    rows = await client.select(
        "profiles",
        {"user_id": eq(identity.user_id), "select": select, "limit": "1"},
    )
    profiles = _decode_profiles(rows, identity.user_id)
    return profiles[0] if profiles else None


async def upsert_profile(client: RestClient, identity: Identity, update: ProfileUpdate) -> ProfileRow:
    """Create or update the user's profile.

    Only fields set on ``update`` are sent, so existing columns are kept.

    Returns:
        The profile as stored after the write.

    Raises:
        TransportError: If the request fails.
        DecodeError: If the server does not return the stored row.
    """
    body = {"user_id": identity.user_id, **update.model_dump(mode="json", exclude_none=True)}
    rows = await client.insert(
        "profiles",
        body,
        on_conflict="user_id",
        prefer="resolution=merge-duplicates,return=representation",
    )
    profiles = _decode_profiles(rows, identity.user_id)
    if not profiles:
        msg = f"Profile upsert for user {identity.user_id} returned no row"
        logger.error(msg)
        raise DecodeError(msg)
    logger.info("Profile saved for user {}", identity.user_id)
    return profiles[0]
