"""CLI commands for poll results and demographic breakdowns."""

from __future__ import annotations

import asyncio
import json
from typing import TYPE_CHECKING, Annotated

import typer

if TYPE_CHECKING:
    from poll_results.lib.breakdown import Breakdown, BreakdownFilter, Dimension

GenderOpt = Annotated[str | None, typer.Option("--gender", help="Only count voters of this gender")]
AgeGroupOpt = Annotated[str | None, typer.Option("--age-group", help="Only count voters in this age group")]
RegionOpt = Annotated[str | None, typer.Option("--region", help="Only count voters from this region")]
AgeMinOpt = Annotated[int | None, typer.Option("--age-min", help="Minimum voter age (inclusive)")]
AgeMaxOpt = Annotated[int | None, typer.Option("--age-max", help="Maximum voter age (inclusive)")]
JsonOpt = Annotated[bool, typer.Option("--json", help="Print JSON instead of a table")]


def _build_filter(
    gender: str | None,
    age_group: str | None,
    region: str | None,
    age_min: int | None,
    age_max: int | None,
) -> BreakdownFilter:
    from poll_results.lib.breakdown import BreakdownFilter

    try:
        return BreakdownFilter(
            gender=gender,
            age_group=age_group,
            region=region,
            age_min=age_min,
            age_max=age_max,
        )
    except ValueError as e:
        raise typer.BadParameter(str(e)) from e


def _render_breakdown(breakdown: Breakdown) -> str:
    buckets = breakdown.dimension.buckets
    lines = ["\t".join(["option_id", *buckets, "total"])]
    for row in breakdown.rows.values():
        lines.append("\t".join([row.option_id, *(str(row.counts[b]) for b in buckets), str(row.total)]))
    return "\n".join(lines)


def breakdown(
    poll_id: Annotated[str, typer.Option("--poll-id", help="Poll identifier")],
    dimension: Annotated[
        str,
        typer.Option("--dimension", help="gender, age_group (or age) or region"),
    ] = "gender",
    gender: GenderOpt = None,
    age_group: AgeGroupOpt = None,
    region: RegionOpt = None,
    age_min: AgeMinOpt = None,
    age_max: AgeMaxOpt = None,
    client_side: Annotated[
        bool,
        typer.Option("--client-side", help="Aggregate locally even when a server procedure exists"),
    ] = False,
    as_json: JsonOpt = False,
) -> None:
    """Show per-option vote counts bucketed by a demographic dimension."""
    from poll_results.lib.breakdown import Dimension

    try:
        dim = Dimension.parse(dimension)
    except ValueError as e:
        raise typer.BadParameter(str(e), param_hint="--dimension") from e
    filters = _build_filter(gender, age_group, region, age_min, age_max)
    asyncio.run(_breakdown_impl(poll_id, dim, filters, client_side, as_json))


async def _breakdown_impl(
    poll_id: str,
    dim: Dimension,
    filters: BreakdownFilter,
    client_side: bool,
    as_json: bool,
) -> None:
    from poll_results.core.config import get_settings
    from poll_results.lib.rest import DataSourceError, RestClient
    from poll_results.services.results_service import fetch_breakdown

    settings = get_settings()

    try:
        use_server = dim in settings.server_breakdown_dimension_list and not client_side
        async with RestClient.from_settings(settings) as client:
            result = await fetch_breakdown(
                client,
                poll_id,
                dim,
                filters,
                use_server=use_server,
                vote_limit=settings.vote_fetch_limit,
                batch_size=settings.profile_batch_size,
                concurrency=settings.profile_batch_concurrency,
                profile_select=settings.profile_select,
            )
    except (DataSourceError, ValueError) as e:
        typer.echo(f"Error: Failed to fetch breakdown: {e}", err=True)
        raise typer.Exit(code=1) from e

    if as_json:
        typer.echo(json.dumps(result.to_dicts(), ensure_ascii=False, indent=2))
        return
    if not result.rows:
        typer.echo("No votes.")
        return
    typer.echo(_render_breakdown(result))
    typer.echo(f"Total votes: {result.total_votes}")


def results(
    poll_id: Annotated[str, typer.Option("--poll-id", help="Poll identifier")],
    gender: GenderOpt = None,
    age_group: AgeGroupOpt = None,
    region: RegionOpt = None,
    age_min: AgeMinOpt = None,
    age_max: AgeMaxOpt = None,
    as_json: JsonOpt = False,
) -> None:
    """Show vote counts per option, optionally for matching voters only."""
    filters = _build_filter(gender, age_group, region, age_min, age_max)
    asyncio.run(_results_impl(poll_id, filters, as_json))


async def _results_impl(poll_id: str, filters: BreakdownFilter, as_json: bool) -> None:
    from poll_results.core.config import get_settings
    from poll_results.lib.rest import DataSourceError, RestClient
    from poll_results.services.results_service import fetch_results

    settings = get_settings()
    try:
        async with RestClient.from_settings(settings) as client:
            counts = await fetch_results(
                client,
                poll_id,
                filters,
                vote_limit=settings.vote_fetch_limit,
                batch_size=settings.profile_batch_size,
                concurrency=settings.profile_batch_concurrency,
                profile_select=settings.profile_select,
            )
    except (DataSourceError, ValueError) as e:
        typer.echo(f"Error: Failed to fetch results: {e}", err=True)
        raise typer.Exit(code=1) from e

    if as_json:
        typer.echo(json.dumps([c.model_dump() for c in counts], ensure_ascii=False, indent=2))
        return
    if not counts:
        typer.echo("No votes.")
        return
    for item in counts:
        typer.echo(f"{item.option_id}\t{item.count}")
    typer.echo(f"Total votes: {sum(c.count for c in counts)}")
