"""Fetch commands -- read spaces, content types, entries and assets.

Each command builds a client from the global options, runs one blocking
fetch and prints the result: a table for collections, the raw JSON object
for single resources.

Example::

    cda --space cfexampleapi --token b4c0n73n7fu1 entries --content-type cat
    cda --json entry nyancat
"""

from __future__ import annotations

from typing import Optional

import typer

from cdaclient.commands.common import client_session, parse_where, resource_row
from cdaclient.models import CDAArray, CDAAsset, CDAContentType, CDAEntry
from cdaclient.output import format_response, get_output, print_table, warning

_HEADERS = ["id", "type", "description"]


def _print_array(array: CDAArray, title: str) -> None:
    rows = [resource_row(item) for item in array.items]
    print_table(_HEADERS, rows, title=f"{title} ({len(rows)} of {array.total})")
    unresolved = array.unresolved_entries
    if unresolved:
        warning(f"{len(unresolved)} entries reference unknown content types")


def space_command(ctx: typer.Context) -> None:
    """Show the space: name and locales."""
    with client_session(ctx) as client:
        space = client.fetch_space()
        format_response(space.raw)


def content_types_command(ctx: typer.Context) -> None:
    """List the content types of the space."""
    with client_session(ctx) as client:
        types = client.orchestrator.resolve_content_types().blocking()
        rows = [resource_row(ct) for ct in sorted(types.values(), key=lambda ct: ct.id or "")]
        print_table(_HEADERS, rows, title="Content types")


def content_type_command(
    ctx: typer.Context,
    content_type_id: str = typer.Argument(help="Content type id."),
) -> None:
    """Show one content type with its fields."""
    with client_session(ctx) as client:
        content_type = client.fetch(CDAContentType).one(content_type_id)
        format_response(content_type.raw)


def entries_command(
    ctx: typer.Context,
    content_type: Optional[str] = typer.Option(
        None, "--content-type", "-t", help="Only entries of this content type."
    ),
    where: Optional[list[str]] = typer.Option(
        None, "--where", "-w", help="Query parameter as key=value (repeatable)."
    ),
) -> None:
    """List entries, optionally filtered.

    Example::

        cda entries -t cat -w fields.color=rainbow
    """
    params = parse_where(where)
    with client_session(ctx) as client:
        query = client.fetch(CDAEntry)
        if content_type:
            query.where("content_type", content_type)
        for key, value in params.items():
            query.where(key, value)
        array = query.all()
        if get_output().is_verbose:
            get_output().debug(f"Cache: {client.cache.stats()}")
        _print_array(array, "Entries")


def entry_command(
    ctx: typer.Context,
    entry_id: str = typer.Argument(help="Entry id."),
) -> None:
    """Show one entry as returned by the API."""
    with client_session(ctx) as client:
        entry = client.fetch(CDAEntry).one(entry_id)
        if entry.missing_content_type:
            warning(f"Content type {entry.content_type_id} of entry {entry_id} is unknown")
        format_response(entry.raw)


def assets_command(
    ctx: typer.Context,
    where: Optional[list[str]] = typer.Option(
        None, "--where", "-w", help="Query parameter as key=value (repeatable)."
    ),
) -> None:
    """List assets."""
    params = parse_where(where)
    with client_session(ctx) as client:
        query = client.fetch(CDAAsset)
        for key, value in params.items():
            query.where(key, value)
        _print_array(query.all(), "Assets")


def asset_command(
    ctx: typer.Context,
    asset_id: str = typer.Argument(help="Asset id."),
) -> None:
    """Show one asset as returned by the API."""
    with client_session(ctx) as client:
        asset = client.fetch(CDAAsset).one(asset_id)
        format_response(asset.raw)
