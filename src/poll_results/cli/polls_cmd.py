"""CLI commands for listing polls, voting, liking and reporting."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Annotated

import typer

if TYPE_CHECKING:
    from poll_results.core.config import Settings
    from poll_results.schemas.poll import Identity

polls_app = typer.Typer()

UserIdOpt = Annotated[
    str | None,
    typer.Option("--user-id", help="Acting user id (defaults to POLL_USER_ID)"),
]


def _identity(settings: Settings, user_id: str | None) -> Identity:
    """Resolve the acting user from the option or settings."""
    from poll_results.schemas.poll import Identity

    resolved = user_id or settings.poll_user_id
    if not resolved:
        typer.echo("Error: No user id. Pass --user-id or set POLL_USER_ID.", err=True)
        raise typer.Exit(code=1)
    return Identity(user_id=resolved)


@polls_app.command("list")
def list_polls(
    limit: Annotated[int, typer.Option("--limit", help="Maximum polls to list", min=1)] = 20,
    category: Annotated[str | None, typer.Option("--category", help="Only polls in this category")] = None,
    popular: Annotated[bool, typer.Option("--popular", help="Order by like count")] = False,
) -> None:
    """List recent (or popular) polls."""
    asyncio.run(_list_polls_impl(limit, category, popular))


async def _list_polls_impl(limit: int, category: str | None, popular: bool) -> None:
    from poll_results.core.config import get_settings
    from poll_results.lib.rest import DataSourceError, RestClient
    from poll_results.services import poll_service

    settings = get_settings()
    try:
        async with RestClient.from_settings(settings) as client:
            if popular:
                polls = await poll_service.list_popular_polls(client, limit=limit, category=category)
            else:
                polls = await poll_service.list_polls(client, limit=limit, category=category)
    except DataSourceError as e:
        typer.echo(f"Error: Failed to list polls: {e}", err=True)
        raise typer.Exit(code=1) from e

    if not polls:
        typer.echo("No polls found.")
        return
    for poll in polls:
        likes = f"\t{poll.like_count} likes" if poll.like_count is not None else ""
        typer.echo(f"{poll.id}\t[{poll.category}]\t{poll.question}{likes}")


@polls_app.command("options")
def options(
    poll_id: Annotated[str, typer.Option("--poll-id", help="Poll identifier")],
) -> None:
    """List a poll's options in display order."""
    asyncio.run(_options_impl(poll_id))


async def _options_impl(poll_id: str) -> None:
    from poll_results.core.config import get_settings
    from poll_results.lib.rest import DataSourceError, RestClient
    from poll_results.services import poll_service

    settings = get_settings()
    try:
        async with RestClient.from_settings(settings) as client:
            items = await poll_service.list_options(client, poll_id)
    except DataSourceError as e:
        typer.echo(f"Error: Failed to list options: {e}", err=True)
        raise typer.Exit(code=1) from e

    if not items:
        typer.echo("No options found.")
        return
    for item in items:
        typer.echo(f"{item.idx}\t{item.id}\t{item.label}")


@polls_app.command("vote")
def vote(
    poll_id: Annotated[str, typer.Option("--poll-id", help="Poll identifier")],
    option_id: Annotated[str, typer.Option("--option-id", help="Chosen option")],
    user_id: UserIdOpt = None,
) -> None:
    """Vote on a poll; voting again replaces the earlier choice."""
    asyncio.run(_vote_impl(poll_id, option_id, user_id))


async def _vote_impl(poll_id: str, option_id: str, user_id: str | None) -> None:
    from poll_results.core.config import get_settings
    from poll_results.lib.rest import DataSourceError, RestClient
    from poll_results.services import poll_service

    settings = get_settings()
    identity = _identity(settings, user_id)
    try:
        async with RestClient.from_settings(settings) as client:
            await poll_service.submit_vote(client, identity, poll_id, option_id)
    except DataSourceError as e:
        typer.echo(f"Error: Failed to vote: {e}", err=True)
        raise typer.Exit(code=1) from e
    typer.echo(f"Voted for {option_id} on poll {poll_id}.")


@polls_app.command("like")
def like(
    poll_id: Annotated[str, typer.Option("--poll-id", help="Poll identifier")],
    user_id: UserIdOpt = None,
    remove: Annotated[bool, typer.Option("--remove", help="Remove the like instead")] = False,
) -> None:
    """Like (or unlike) a poll."""
    asyncio.run(_like_impl(poll_id, user_id, remove))


async def _like_impl(poll_id: str, user_id: str | None, remove: bool) -> None:
    from poll_results.core.config import get_settings
    from poll_results.lib.rest import DataSourceError, RestClient
    from poll_results.services import like_service

    settings = get_settings()
    identity = _identity(settings, user_id)
    try:
        async with RestClient.from_settings(settings) as client:
            if remove:
                await like_service.unlike(client, identity, poll_id)
            else:
                await like_service.like(client, identity, poll_id)
    except DataSourceError as e:
        typer.echo(f"Error: Failed to update like: {e}", err=True)
        raise typer.Exit(code=1) from e
    typer.echo(f"{'Unliked' if remove else 'Liked'} poll {poll_id}.")


@polls_app.command("report")
def report(
    poll_id: Annotated[str, typer.Option("--poll-id", help="Poll identifier")],
    reason: Annotated[
        str,
        typer.Option("--reason", help="spam, hate, nsfw, illegal, privacy or other"),
    ],
    detail: Annotated[str | None, typer.Option("--detail", help="Free text, up to 300 characters")] = None,
    user_id: UserIdOpt = None,
) -> None:
    """Report a poll for moderation."""
    asyncio.run(_report_impl(poll_id, reason, detail, user_id))


async def _report_impl(poll_id: str, reason: str, detail: str | None, user_id: str | None) -> None:
    from poll_results.core.config import get_settings
    from poll_results.lib.rest import DataSourceError, RestClient
    from poll_results.services.report_service import submit_report

    settings = get_settings()
    identity = _identity(settings, user_id)
    try:
        async with RestClient.from_settings(settings) as client:
            result = await submit_report(
                client,
                identity,
                poll_id,
                reason,
                detail,
                function=settings.report_function,
                token=settings.report_token,
            )
    except (DataSourceError, ValueError) as e:
        typer.echo(f"Error: Failed to report poll: {e}", err=True)
        raise typer.Exit(code=1) from e

    if result.already_reported:
        typer.echo(f"Poll {poll_id} was already reported.")
    else:
        typer.echo(f"Reported poll {poll_id}.")
