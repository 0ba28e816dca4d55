"""Client construction and error handling shared by the ``cda`` commands."""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Iterator, Optional

import typer

from cdaclient.client import CDAClient
from cdaclient.config import resolve_client_config
from cdaclient.exceptions import CDAError
from cdaclient.models import CDAAsset, CDAContentType, CDAEntry, CDAResource
from cdaclient.output import error


def create_client(ctx: typer.Context) -> CDAClient:
    """Build a client from the global options stored on *ctx*.

    Raises:
        ConfigurationError: If no space id or access token can be resolved.
    """
    opts = ctx.obj or {}
    config = resolve_client_config(
        cli_profile=opts.get("profile"),
        cli_space=opts.get("space"),
        cli_token=opts.get("token"),
        cli_endpoint=opts.get("endpoint"),
        cli_preview=opts.get("preview"),
        cli_log_level=opts.get("log_level"),
    )
    return CDAClient(config)


@contextmanager
def client_session(ctx: typer.Context) -> Iterator[CDAClient]:
    """Yield a client for one command and close it afterwards.

    A :class:`~cdaclient.exceptions.CDAError` is reported on stderr and
    turned into a :class:`typer.Exit` carrying the error's exit code.
    """
    try:
        client = create_client(ctx)
    except CDAError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None
    try:
        yield client
    except CDAError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None
    finally:
        client.close()


def parse_where(pairs: Optional[list[str]]) -> dict[str, str]:
    """Turn ``key=value`` strings into query parameters.

    Raises:
        typer.Exit: With code 2 for a pair without ``=``.
    """
    params: dict[str, str] = {}
    for pair in pairs or []:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            error(f"Invalid --where value {pair!r}; expected key=value")
            raise typer.Exit(code=2)
        params[key] = value
    return params


def _cell(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, dict) and len(value) == 1:
        # Localized value with a single locale
        return _cell(next(iter(value.values())))
    return str(value)


def resource_row(resource: CDAResource) -> list[str]:
    """Table row for a resource: id, type, and a short description."""
    if isinstance(resource, CDAEntry):
        type_id = resource.content_type_id or ""
        if resource.missing_content_type:
            type_id = f"{type_id} (unknown)"
        return [resource.id or "", type_id, _cell(resource.display_value)]
    if isinstance(resource, CDAAsset):
        return [resource.id or "", _cell(resource.mime_type), _cell(resource.title)]
    if isinstance(resource, CDAContentType):
        return [resource.id or "", resource.name, f"{len(resource.fields)} fields"]
    return [resource.id or "", resource.type or "", ""]
