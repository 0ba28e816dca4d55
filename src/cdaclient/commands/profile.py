"""Profile commands -- manage saved space profiles.

Provides the ``cda profile`` sub-command group.  A profile records a space
id, where to read its access token from, and connection settings, so that
``cda --profile NAME ...`` (or the default profile) needs no further flags.

Typical workflow::

    cda profile add demo --space cfexampleapi --token-source env:DEMO_TOKEN
    cda profile use demo
    cda entries
"""

from __future__ import annotations

from typing import Optional

import typer

from cdaclient.exceptions import ConfigurationError
from cdaclient.exit_codes import EXIT_NOT_FOUND
from cdaclient.models import LogLevel, Profile
from cdaclient.output import error, format_response, info, success


profile_app = typer.Typer(no_args_is_help=True)


@profile_app.command("add")
def profile_add(
    name: str = typer.Argument(help="Profile name."),
    space: str = typer.Option(..., "--space", "-s", help="Space id."),
    token_source: str = typer.Option(
        "env:CDA_ACCESS_TOKEN",
        "--token-source",
        help="Where to read the access token: env:VAR, file:/path or prompt.",
    ),
    endpoint: Optional[str] = typer.Option(None, "--endpoint", help="Custom API endpoint."),
    preview: bool = typer.Option(False, "--preview", help="Use the preview endpoint."),
    log_level: LogLevel = typer.Option(
        LogLevel.NONE, "--log-level", case_sensitive=False, help="HTTP log level."
    ),
    default: bool = typer.Option(False, "--default", help="Make this the default profile."),
    force: bool = typer.Option(False, "--force", "-f", help="Overwrite an existing profile."),
) -> None:
    """Create or overwrite a profile."""
    from cdaclient.config import load_global_config, profile_exists, save_global_config, save_profile

    if profile_exists(name) and not force:
        error(f"Profile '{name}' already exists. Use --force to overwrite.")
        raise typer.Exit(code=2)

    if not token_source.startswith(("env:", "file:")) and token_source != "prompt":
        error(f"Unknown token source {token_source!r}; expected env:VAR, file:/path or prompt")
        raise typer.Exit(code=2)

    save_profile(
        Profile(
            name=name,
            space_id=space,
            token_source=token_source,
            endpoint=endpoint,
            preview=preview,
            log_level=log_level,
        )
    )
    success(f'Profile "{name}" saved.')

    if default:
        config = load_global_config()
        config.default_profile = name
        save_global_config(config)
        info(f'Default profile set to "{name}".')


@profile_app.command("list")
def profile_list() -> None:
    """List saved profiles; the default one is marked."""
    from cdaclient.config import list_profiles, load_global_config
    from cdaclient.output import print_table

    names = list_profiles()
    if not names:
        info("No profiles. Create one with: cda profile add NAME --space SPACE_ID")
        return
    default = load_global_config().default_profile
    rows = [[name, "*" if name == default else ""] for name in names]
    print_table(["name", "default"], rows, title="Profiles")


@profile_app.command("show")
def profile_show(name: str = typer.Argument(help="Profile name.")) -> None:
    """Show a profile's settings."""
    from cdaclient.config import load_profile

    try:
        profile = load_profile(name)
    except ConfigurationError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None
    format_response(profile.model_dump(mode="json"))


@profile_app.command("remove")
def profile_remove(name: str = typer.Argument(help="Profile name.")) -> None:
    """Delete a profile, clearing it as default if needed."""
    from cdaclient.config import delete_profile, load_global_config, save_global_config

    try:
        delete_profile(name)
    except ConfigurationError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None

    config = load_global_config()
    if config.default_profile == name:
        config.default_profile = None
        save_global_config(config)
    success(f'Profile "{name}" removed.')


@profile_app.command("use")
def profile_use(name: str = typer.Argument(help="Profile name.")) -> None:
    """Make a profile the default."""
    from cdaclient.config import load_global_config, profile_exists, save_global_config

    if not profile_exists(name):
        error(f"Profile '{name}' not found.")
        raise typer.Exit(code=EXIT_NOT_FOUND)

    config = load_global_config()
    config.default_profile = name
    save_global_config(config)
    success(f'Default profile set to "{name}".')
