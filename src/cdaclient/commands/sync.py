"""Sync command -- run an initial or incremental synchronization.

Prints a summary of the run and the token to pass to the next
``cda sync --token`` call.
"""

from __future__ import annotations

from typing import Optional

import typer

from cdaclient.commands.common import client_session
from cdaclient.models import CDADeletedResource
from cdaclient.output import format_response, success


def sync_command(
    ctx: typer.Context,
    token: Optional[str] = typer.Option(
        None, "--token", "-k", help="Sync token from a previous run. Omit for an initial sync."
    ),
) -> None:
    """Synchronize the space and print what changed.

    Example::

        cda sync
        cda sync --token w5ZGw6JFwqZmVcKsE8Kow4grw45QdybC...
    """
    with client_session(ctx) as client:
        result = client.sync(token).fetch()
        deleted = [item for item in result.items if isinstance(item, CDADeletedResource)]
        format_response(
            {
                "initial": token is None,
                "items": len(result.items),
                "entries": len(result.entries),
                "assets": len(result.assets),
                "deleted": len(deleted),
                "sync_token": result.sync_token,
            }
        )
        success("Sync complete.")
