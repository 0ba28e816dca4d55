"""Configuration management with XDG paths, atomic writes, and precedence resolution.

This module handles the persistent configuration of the ``cda`` tool:

* **Directory layout** -- XDG Base Directory compliant on Linux/BSD,
  ``~/.cdaclient/`` on macOS and Windows. See :func:`get_config_dir`,
  :func:`get_data_dir`, :func:`get_profiles_dir`.
* **Global config** -- A single :class:`~cdaclient.models.GlobalConfig`
  JSON file storing the default profile and output format.
* **Profiles** -- One JSON file per space, each deserialised into a
  :class:`~cdaclient.models.Profile`. Managed via :func:`load_profile`,
  :func:`save_profile`, :func:`delete_profile`.
* **Precedence resolution** -- :func:`resolve_client_config` merges CLI
  flags, environment variables and the selected profile into a
  :class:`~cdaclient.models.ClientConfig`.
* **Credential resolution** -- :func:`resolve_credential` reads the access
  token from an env var, a file, or an interactive prompt.

All file writes use an atomic temp-file-then-rename strategy
(:func:`_atomic_write`).  Access tokens are never written to disk.
"""

from __future__ import annotations

import getpass
import json
import os
import platform
import sys
import tempfile
from pathlib import Path
from typing import Optional

from cdaclient.exceptions import ConfigurationError
from cdaclient.models import ClientConfig, GlobalConfig, LogLevel, Profile

_APP_NAME = "cdaclient"
_CONFIG_FILENAME = "config.json"

ENV_PROFILE = "CDA_PROFILE"
ENV_SPACE_ID = "CDA_SPACE_ID"
ENV_ACCESS_TOKEN = "CDA_ACCESS_TOKEN"
ENV_ENDPOINT = "CDA_ENDPOINT"
ENV_PREVIEW = "CDA_PREVIEW"

_TRUTHY = {"1", "true", "yes", "on"}


# --- XDG path resolution ---


def _is_xdg_platform() -> bool:
    """Return True if the platform supports XDG Base Directory spec (Linux/FreeBSD)."""
    return platform.system() == "Linux" or platform.system().endswith("BSD")


def _fallback_base_dir() -> Path:
    return Path.home() / f".{_APP_NAME}"


def _xdg_base(env_var: str, default_segments: tuple[str, ...]) -> Path:
    """Resolve an XDG base directory from an env var with fallback segments under $HOME."""
    env_value = os.environ.get(env_var, "")
    if env_value:
        return Path(env_value)
    base = Path.home()
    for seg in default_segments:
        base = base / seg
    return base


def get_config_dir() -> Path:
    """Return the configuration directory, creating it if necessary.

    On Linux/BSD: ``$XDG_CONFIG_HOME/cdaclient/`` (default ``~/.config/cdaclient/``).
    On macOS/Windows: ``~/.cdaclient/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_CONFIG_HOME", (".config",)) / _APP_NAME
    else:
        path = _fallback_base_dir()
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_data_dir() -> Path:
    """Return the data directory (crash logs), creating it if necessary.

    On Linux/BSD: ``$XDG_DATA_HOME/cdaclient/`` (default ``~/.local/share/cdaclient/``).
    On macOS/Windows: ``~/.cdaclient/logs/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_DATA_HOME", (".local", "share")) / _APP_NAME
    else:
        path = _fallback_base_dir() / "logs"
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_profiles_dir() -> Path:
    """Return the profiles directory (``<config_dir>/profiles/``), creating it if necessary."""
    path = get_config_dir() / "profiles"
    path.mkdir(parents=True, exist_ok=True)
    return path


# --- Atomic file writes ---


def _atomic_write(path: Path, data: str) -> None:
    """Write data to file atomically using temp file + rename.

    The temporary file lives in the same directory as *path* so that
    ``os.replace`` is an atomic rename on POSIX systems.  On failure the
    temp file is removed.
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    fd = None
    tmp_path: Optional[str] = None
    try:
        fd = tempfile.NamedTemporaryFile(
            mode="w",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
            encoding="utf-8",
        )
        tmp_path = fd.name
        fd.write(data)
        fd.flush()
        os.fsync(fd.fileno())
        fd.close()
        fd = None
        os.replace(tmp_path, path)
    except BaseException:
        if fd is not None:
            fd.close()
        if tmp_path is not None:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
        raise


# --- Global config ---


def _global_config_path() -> Path:
    return get_config_dir() / _CONFIG_FILENAME


def load_global_config() -> GlobalConfig:
    """Load the global configuration, or defaults if the file does not exist.

    Raises:
        ConfigurationError: If the file exists but is invalid.
    """
    path = _global_config_path()
    if not path.is_file():
        return GlobalConfig()
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        return GlobalConfig.model_validate(data)
    except (json.JSONDecodeError, ValueError) as exc:
        raise ConfigurationError(f"Invalid global config at {path}: {exc}") from exc


def save_global_config(config: GlobalConfig) -> None:
    data = config.model_dump(mode="json")
    _atomic_write(_global_config_path(), json.dumps(data, indent=2) + "\n")


# --- Profiles ---


def _profile_path(name: str) -> Path:
    return get_profiles_dir() / f"{name}.json"


def list_profiles() -> list[str]:
    """Return all profile names, sorted alphabetically."""
    return sorted(p.stem for p in get_profiles_dir().glob("*.json") if p.is_file())


def load_profile(name: str) -> Profile:
    """Load and validate a profile from disk.

    Raises:
        ConfigurationError: If the profile does not exist or is invalid.
    """
    path = _profile_path(name)
    if not path.is_file():
        raise ConfigurationError(f"Profile '{name}' not found at {path}")
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        return Profile.model_validate(data)
    except (json.JSONDecodeError, ValueError) as exc:
        raise ConfigurationError(f"Invalid profile '{name}' at {path}: {exc}") from exc


def save_profile(profile: Profile) -> None:
    """Persist a profile atomically; the file name comes from ``profile.name``."""
    data = profile.model_dump(mode="json")
    _atomic_write(_profile_path(profile.name), json.dumps(data, indent=2) + "\n")


def delete_profile(name: str) -> None:
    """Delete a profile's JSON file.

    Raises:
        ConfigurationError: If the profile does not exist.
    """
    path = _profile_path(name)
    if not path.is_file():
        raise ConfigurationError(f"Profile '{name}' not found at {path}")
    path.unlink()


def profile_exists(name: str) -> bool:
    return _profile_path(name).is_file()


# --- Credential source resolution ---


def resolve_credential(source: str) -> str:
    """Resolve an access token from its source descriptor.

    Supported formats:
        - ``"env:VAR_NAME"`` -- reads ``os.environ["VAR_NAME"]``
        - ``"file:/path/to/file"`` -- reads file content, stripped of whitespace
        - ``"prompt"`` -- prompts interactively (requires a TTY)

    Raises:
        ConfigurationError: If the source can't be resolved.
    """
    if source.startswith("env:"):
        var_name = source[4:]
        value = os.environ.get(var_name)
        if value is None:
            raise ConfigurationError(
                f"Environment variable '{var_name}' is not set (source: {source})"
            )
        return value

    if source.startswith("file:"):
        path = Path(source[5:]).expanduser()
        if not path.is_file():
            raise ConfigurationError(f"Credential file not found: {path} (source: {source})")
        try:
            return path.read_text(encoding="utf-8").strip()
        except OSError as exc:
            raise ConfigurationError(f"Cannot read credential file {path}: {exc}") from exc

    if source == "prompt":
        if not sys.stdin.isatty():
            raise ConfigurationError(
                "Cannot prompt for access token: stdin is not a TTY (source: prompt)"
            )
        return getpass.getpass("Access token: ")

    raise ConfigurationError(f"Unknown credential source format: {source}")


# --- Precedence resolution ---


def select_profile(cli_profile: Optional[str] = None) -> Optional[Profile]:
    """Pick the active profile.

    Precedence (high to low): ``--profile``, ``$CDA_PROFILE``, the global
    ``default_profile``, then the only saved profile when
    ``auto_select_single_profile`` is enabled.
    """
    global_cfg = load_global_config()
    name: Optional[str] = global_cfg.default_profile
    env_profile = os.environ.get(ENV_PROFILE)
    if env_profile:
        name = env_profile
    if cli_profile is not None:
        name = cli_profile

    if name is None and global_cfg.auto_select_single_profile:
        profiles = list_profiles()
        if len(profiles) == 1:
            name = profiles[0]

    return load_profile(name) if name is not None else None


def resolve_client_config(
    cli_profile: Optional[str] = None,
    cli_space: Optional[str] = None,
    cli_token: Optional[str] = None,
    cli_endpoint: Optional[str] = None,
    cli_preview: Optional[bool] = None,
    cli_log_level: Optional[LogLevel] = None,
) -> ClientConfig:
    """Merge CLI flags, environment and the active profile into a :class:`ClientConfig`.

    Precedence (high to low):
        1. CLI flags
        2. Environment variables (``CDA_SPACE_ID``, ``CDA_ACCESS_TOKEN``,
           ``CDA_ENDPOINT``, ``CDA_PREVIEW``)
        3. The profile chosen by :func:`select_profile`
        4. Defaults

    The profile's ``token_source`` is only consulted when neither a flag
    nor ``$CDA_ACCESS_TOKEN`` supplies the token.

    Raises:
        ConfigurationError: If no space id or access token can be found, or
            the profile is unusable.
    """
    profile = select_profile(cli_profile)

    space_id = cli_space or os.environ.get(ENV_SPACE_ID) or (profile.space_id if profile else None)
    if not space_id:
        raise ConfigurationError(
            "Space ID must be provided (--space, $CDA_SPACE_ID or a profile)."
        )

    token = cli_token or os.environ.get(ENV_ACCESS_TOKEN)
    if not token and profile is not None:
        token = resolve_credential(profile.token_source)
    if not token:
        raise ConfigurationError(
            "Access token must be provided (--token, $CDA_ACCESS_TOKEN or a profile)."
        )

    endpoint = cli_endpoint or os.environ.get(ENV_ENDPOINT) or (profile.endpoint if profile else None)

    if cli_preview is not None:
        preview = cli_preview
    elif cli_endpoint:
        preview = False
    elif os.environ.get(ENV_PREVIEW):
        preview = os.environ[ENV_PREVIEW].strip().lower() in _TRUTHY
    else:
        preview = profile.preview if profile else False

    log_level = cli_log_level or (profile.log_level if profile else LogLevel.NONE)
    request = profile.request if profile else None

    values = {
        "space_id": space_id,
        "access_token": token,
        "endpoint": endpoint,
        "preview": preview,
        "log_level": log_level,
    }
    if request is not None:
        values["request"] = request
    return ClientConfig(**values)
