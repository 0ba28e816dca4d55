"""Tests for config paths, atomic writes, profiles and precedence resolution."""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import patch

import pytest

from cdaclient.config import (
    _atomic_write,
    delete_profile,
    get_config_dir,
    get_data_dir,
    get_profiles_dir,
    list_profiles,
    load_global_config,
    load_profile,
    profile_exists,
    resolve_client_config,
    resolve_credential,
    save_global_config,
    save_profile,
    select_profile,
)
from cdaclient.exceptions import ConfigurationError
from cdaclient.models import GlobalConfig, LogLevel, OutputConfig, Profile, RequestConfig


def _write_json(path: Path, data: object) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data), encoding="utf-8")


def _make_profile(name: str = "example", **overrides) -> Profile:
    values = {"name": name, "space_id": "cfexampleapi", "token_source": "env:EXAMPLE_TOKEN"}
    values.update(overrides)
    return Profile(**values)


@pytest.fixture()
def xdg(isolated_config: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    monkeypatch.setattr("cdaclient.config._is_xdg_platform", lambda: True)
    return isolated_config


# ---------------------------------------------------------------------------
# Directory layout
# ---------------------------------------------------------------------------


class TestXDGPaths:
    def test_config_dir_uses_xdg_config_home(self, xdg: Path) -> None:
        path = get_config_dir()
        assert path == xdg / "config" / "cdaclient"
        assert path.is_dir()

    def test_data_dir_uses_xdg_data_home(self, xdg: Path) -> None:
        path = get_data_dir()
        assert path == xdg / "data" / "cdaclient"
        assert path.is_dir()

    def test_profiles_dir(self, xdg: Path) -> None:
        assert get_profiles_dir() == xdg / "config" / "cdaclient" / "profiles"

    def test_defaults_under_home(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("cdaclient.config._is_xdg_platform", lambda: True)
        monkeypatch.delenv("XDG_CONFIG_HOME", raising=False)
        monkeypatch.setattr(Path, "home", lambda: tmp_path)
        assert get_config_dir() == tmp_path / ".config" / "cdaclient"


class TestFallbackPaths:
    @pytest.fixture(autouse=True)
    def _non_xdg(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("cdaclient.config._is_xdg_platform", lambda: False)
        monkeypatch.setattr(Path, "home", lambda: tmp_path)

    def test_config_dir(self, tmp_path: Path) -> None:
        assert get_config_dir() == tmp_path / ".cdaclient"

    def test_data_dir(self, tmp_path: Path) -> None:
        assert get_data_dir() == tmp_path / ".cdaclient" / "logs"


# ---------------------------------------------------------------------------
# Atomic writes
# ---------------------------------------------------------------------------


class TestAtomicWrite:
    def test_creates_file_with_content(self, tmp_path: Path) -> None:
        target = tmp_path / "a" / "b" / "test.txt"
        _atomic_write(target, "hello world")
        assert target.read_text(encoding="utf-8") == "hello world"

    def test_overwrites_existing_file(self, tmp_path: Path) -> None:
        target = tmp_path / "test.txt"
        target.write_text("old", encoding="utf-8")
        _atomic_write(target, "new")
        assert target.read_text(encoding="utf-8") == "new"
        assert list(tmp_path.iterdir()) == [target]

    def test_no_temp_files_left_on_error(self, tmp_path: Path) -> None:
        target = tmp_path / "test.txt"
        with patch("cdaclient.config.os.fsync", side_effect=OSError("disk error")):
            with pytest.raises(OSError, match="disk error"):
                _atomic_write(target, "will fail")
        assert list(tmp_path.iterdir()) == []


# ---------------------------------------------------------------------------
# Global config
# ---------------------------------------------------------------------------


class TestGlobalConfig:
    def test_defaults_when_missing(self, xdg: Path) -> None:
        cfg = load_global_config()
        assert cfg == GlobalConfig()
        assert cfg.auto_select_single_profile is True

    def test_roundtrip(self, xdg: Path) -> None:
        original = GlobalConfig(default_profile="example", output=OutputConfig(format="json"))
        save_global_config(original)
        assert load_global_config() == original

    def test_invalid_json(self, xdg: Path) -> None:
        (get_config_dir() / "config.json").write_text("{nope", encoding="utf-8")
        with pytest.raises(ConfigurationError, match="Invalid global config"):
            load_global_config()

    def test_invalid_schema(self, xdg: Path) -> None:
        _write_json(get_config_dir() / "config.json", {"output": "not-a-dict"})
        with pytest.raises(ConfigurationError, match="Invalid global config"):
            load_global_config()


# ---------------------------------------------------------------------------
# Profiles
# ---------------------------------------------------------------------------


class TestProfiles:
    def test_empty(self, xdg: Path) -> None:
        assert list_profiles() == []
        assert not profile_exists("example")

    def test_save_and_load(self, xdg: Path) -> None:
        profile = _make_profile(preview=True, request=RequestConfig(max_retries=2))
        save_profile(profile)
        assert profile_exists("example")
        assert load_profile("example") == profile

    def test_token_is_not_persisted(self, xdg: Path) -> None:
        save_profile(_make_profile())
        text = (get_profiles_dir() / "example.json").read_text(encoding="utf-8")
        assert "env:EXAMPLE_TOKEN" in text
        assert "access_token" not in text

    def test_list_sorted(self, xdg: Path) -> None:
        for name in ["zeta", "alpha", "mid"]:
            save_profile(_make_profile(name))
        assert list_profiles() == ["alpha", "mid", "zeta"]

    def test_load_missing(self, xdg: Path) -> None:
        with pytest.raises(ConfigurationError, match="not found"):
            load_profile("ghost")

    def test_load_invalid(self, xdg: Path) -> None:
        _write_json(get_profiles_dir() / "broken.json", {"name": "broken"})
        with pytest.raises(ConfigurationError, match="Invalid profile 'broken'"):
            load_profile("broken")

    def test_delete(self, xdg: Path) -> None:
        save_profile(_make_profile())
        delete_profile("example")
        assert not profile_exists("example")

    def test_delete_missing(self, xdg: Path) -> None:
        with pytest.raises(ConfigurationError):
            delete_profile("ghost")


# ---------------------------------------------------------------------------
# Credential sources
# ---------------------------------------------------------------------------


class TestResolveCredential:
    def test_env_source(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("EXAMPLE_TOKEN", "secret")
        assert resolve_credential("env:EXAMPLE_TOKEN") == "secret"

    def test_env_source_missing(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("EXAMPLE_TOKEN", raising=False)
        with pytest.raises(ConfigurationError, match="EXAMPLE_TOKEN"):
            resolve_credential("env:EXAMPLE_TOKEN")

    def test_file_source_strips_whitespace(self, tmp_path: Path) -> None:
        token_file = tmp_path / "token"
        token_file.write_text("  from-file\n", encoding="utf-8")
        assert resolve_credential(f"file:{token_file}") == "from-file"

    def test_file_source_missing(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigurationError, match="not found"):
            resolve_credential(f"file:{tmp_path / 'nope'}")

    def test_prompt_with_tty(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("sys.stdin.isatty", lambda: True)
        monkeypatch.setattr("getpass.getpass", lambda prompt: "typed")
        assert resolve_credential("prompt") == "typed"

    def test_prompt_without_tty(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("sys.stdin.isatty", lambda: False)
        with pytest.raises(ConfigurationError, match="not a TTY"):
            resolve_credential("prompt")

    def test_unknown_source(self) -> None:
        with pytest.raises(ConfigurationError, match="Unknown credential source"):
            resolve_credential("vault:secret/path")


# ---------------------------------------------------------------------------
# Profile selection
# ---------------------------------------------------------------------------


class TestSelectProfile:
    def test_none_without_profiles(self, xdg: Path) -> None:
        assert select_profile() is None

    def test_single_profile_auto_selected(self, xdg: Path) -> None:
        save_profile(_make_profile("only"))
        assert select_profile().name == "only"

    def test_auto_select_disabled(self, xdg: Path) -> None:
        save_profile(_make_profile("only"))
        save_global_config(GlobalConfig(auto_select_single_profile=False))
        assert select_profile() is None

    def test_several_profiles_need_a_choice(self, xdg: Path) -> None:
        save_profile(_make_profile("one"))
        save_profile(_make_profile("two"))
        assert select_profile() is None

    def test_precedence(self, xdg: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        for name in ["global", "env", "cli"]:
            save_profile(_make_profile(name))
        save_global_config(GlobalConfig(default_profile="global"))
        assert select_profile().name == "global"

        monkeypatch.setenv("CDA_PROFILE", "env")
        assert select_profile().name == "env"
        assert select_profile("cli").name == "cli"

    def test_missing_named_profile(self, xdg: Path) -> None:
        with pytest.raises(ConfigurationError, match="not found"):
            select_profile("ghost")


# ---------------------------------------------------------------------------
# Client config resolution
# ---------------------------------------------------------------------------


class TestResolveClientConfig:
    def test_cli_flags_only(self, xdg: Path) -> None:
        config = resolve_client_config(cli_space="space", cli_token="token")
        assert config.space_id == "space"
        assert config.access_token == "token"
        assert config.endpoint is None
        assert config.preview is False
        assert config.log_level == LogLevel.NONE

    def test_env_only(self, xdg: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("CDA_SPACE_ID", "env-space")
        monkeypatch.setenv("CDA_ACCESS_TOKEN", "env-token")
        monkeypatch.setenv("CDA_ENDPOINT", "https://cdn.example.com")
        config = resolve_client_config()
        assert (config.space_id, config.access_token) == ("env-space", "env-token")
        assert config.endpoint == "https://cdn.example.com"

    def test_cli_beats_env_beats_profile(self, xdg: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("EXAMPLE_TOKEN", "profile-token")
        save_profile(_make_profile(space_id="profile-space", log_level=LogLevel.BASIC))

        config = resolve_client_config()
        assert config.space_id == "profile-space"
        assert config.access_token == "profile-token"
        assert config.log_level == LogLevel.BASIC

        monkeypatch.setenv("CDA_SPACE_ID", "env-space")
        monkeypatch.setenv("CDA_ACCESS_TOKEN", "env-token")
        config = resolve_client_config()
        assert (config.space_id, config.access_token) == ("env-space", "env-token")

        config = resolve_client_config(cli_space="cli-space", cli_token="cli-token", cli_log_level=LogLevel.FULL)
        assert (config.space_id, config.access_token) == ("cli-space", "cli-token")
        assert config.log_level == LogLevel.FULL

    def test_token_source_not_consulted_when_token_given(self, xdg: Path) -> None:
        save_profile(_make_profile(token_source="prompt"))
        config = resolve_client_config(cli_token="cli-token")
        assert config.access_token == "cli-token"

    def test_profile_request_settings(self, xdg: Path) -> None:
        save_profile(_make_profile(request=RequestConfig(timeout=5, max_retries=3)))
        config = resolve_client_config(cli_token="token")
        assert config.request.max_retries == 3
        assert config.request.timeout == 5

    def test_missing_space(self, xdg: Path) -> None:
        with pytest.raises(ConfigurationError, match="Space ID must be provided"):
            resolve_client_config(cli_token="token")

    def test_missing_token(self, xdg: Path) -> None:
        with pytest.raises(ConfigurationError, match="Access token must be provided"):
            resolve_client_config(cli_space="space")

    def test_profile_token_source_unresolvable(self, xdg: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("EXAMPLE_TOKEN", raising=False)
        save_profile(_make_profile())
        with pytest.raises(ConfigurationError, match="EXAMPLE_TOKEN"):
            resolve_client_config()

    @pytest.mark.parametrize(("value", "expected"), [("1", True), ("TRUE", True), ("on", True), ("0", False), ("no", False)])
    def test_preview_env(self, xdg: Path, monkeypatch: pytest.MonkeyPatch, value: str, expected: bool) -> None:
        monkeypatch.setenv("CDA_PREVIEW", value)
        assert resolve_client_config(cli_space="s", cli_token="t").preview is expected

    def test_preview_from_profile(self, xdg: Path) -> None:
        save_profile(_make_profile(preview=True))
        assert resolve_client_config(cli_token="t").preview is True

    def test_cli_endpoint_disables_preview(self, xdg: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("CDA_PREVIEW", "1")
        config = resolve_client_config(cli_space="s", cli_token="t", cli_endpoint="https://cdn.example.com")
        assert config.endpoint == "https://cdn.example.com"
        assert config.preview is False

    def test_cli_preview_flag_wins(self, xdg: Path) -> None:
        save_profile(_make_profile(preview=True))
        assert resolve_client_config(cli_token="t", cli_preview=False).preview is False
