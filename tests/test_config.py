"""Tests for trieve_cli.config -- XDG paths, atomic writes, storage, precedence."""

from __future__ import annotations

import json
import os
import stat
from pathlib import Path
from unittest.mock import patch

import pytest

from trieve_cli.config import (
    ProfileStorage,
    _atomic_write,
    env_flag,
    get_config_dir,
    get_data_dir,
    resolve_profile,
    resolve_settings,
)
from trieve_cli.exceptions import ConfigError, PersistenceError
from trieve_cli.models import DEFAULT_API_URL, Profile, ProfileCollection, Settings
from trieve_cli.profiles import ProfileStore


def _collection(*profiles: Profile) -> ProfileCollection:
    return ProfileCollection(profiles=list(profiles))


@pytest.fixture
def two_profiles(work_settings: Settings, home_settings: Settings) -> ProfileCollection:
    return _collection(
        Profile(name="work", settings=work_settings, selected=True),
        Profile(name="home", settings=home_settings),
    )


# ---------------------------------------------------------------------------
# XDG path resolution
# ---------------------------------------------------------------------------


class TestXDGPaths:
    def test_config_dir_xdg_default(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("trieve_cli.config._is_xdg_platform", lambda: True)
        monkeypatch.delenv("XDG_CONFIG_HOME", raising=False)
        monkeypatch.setattr(Path, "home", classmethod(lambda cls: tmp_path))

        result = get_config_dir()
        assert result == tmp_path / ".config" / "trieve"
        assert result.is_dir()

    def test_config_dir_xdg_custom(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("trieve_cli.config._is_xdg_platform", lambda: True)
        monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "custom"))

        assert get_config_dir() == tmp_path / "custom" / "trieve"

    def test_data_dir_xdg_custom(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("trieve_cli.config._is_xdg_platform", lambda: True)
        monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))

        result = get_data_dir()
        assert result == tmp_path / "data" / "trieve"
        assert result.is_dir()

    def test_fallback_paths(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("trieve_cli.config._is_xdg_platform", lambda: False)
        monkeypatch.setattr(Path, "home", classmethod(lambda cls: tmp_path))

        assert get_config_dir() == tmp_path / ".trieve"
        assert get_data_dir() == tmp_path / ".trieve" / "logs"


# ---------------------------------------------------------------------------
# Atomic writes
# ---------------------------------------------------------------------------


class TestAtomicWrite:
    def test_writes_content(self, tmp_path: Path) -> None:
        target = tmp_path / "sub" / "file.json"
        _atomic_write(target, '{"a": 1}')
        assert target.read_text() == '{"a": 1}'

    def test_file_is_private(self, tmp_path: Path) -> None:
        target = tmp_path / "file.json"
        _atomic_write(target, "secret")
        assert stat.S_IMODE(os.stat(target).st_mode) == 0o600

    def test_no_temp_files_left(self, tmp_path: Path) -> None:
        _atomic_write(tmp_path / "file.json", "x")
        assert [p.name for p in tmp_path.iterdir()] == ["file.json"]

    def test_failure_keeps_original(self, tmp_path: Path) -> None:
        target = tmp_path / "file.json"
        target.write_text("original")

        with patch("trieve_cli.config.os.replace", side_effect=OSError("disk full")):
            with pytest.raises(OSError):
                _atomic_write(target, "new")

        assert target.read_text() == "original"
        assert [p.name for p in tmp_path.iterdir()] == ["file.json"]


# ---------------------------------------------------------------------------
# ProfileStorage
# ---------------------------------------------------------------------------


class TestProfileStorage:
    def test_missing_file_loads_none(self, storage: ProfileStorage) -> None:
        assert storage.load() is None
        assert storage.load_legacy() is None

    def test_round_trip_document_shape(self, storage: ProfileStorage, two_profiles) -> None:
        storage.save(two_profiles)

        data = json.loads(storage.profiles_path.read_text())
        assert data["profiles"][0] == {
            "name": "work",
            "settings": {
                "api_key": "tr-work-key",
                "organization_id": "org-work",
                "api_url": "https://api.trieve.ai",
            },
            "selected": True,
        }
        assert storage.load() == two_profiles

    @pytest.mark.parametrize(
        "content",
        ["{not json", "[]", '{"profiles": [{"selected": true}]}', "\xff\xfe"],
    )
    def test_unreadable_file_loads_none(self, storage: ProfileStorage, content: str) -> None:
        storage.config_dir.mkdir(parents=True, exist_ok=True)
        storage.profiles_path.write_text(content, encoding="latin-1")
        assert storage.load() is None

    def test_missing_fields_take_defaults(self, storage: ProfileStorage) -> None:
        storage.config_dir.mkdir(parents=True, exist_ok=True)
        storage.profiles_path.write_text('{"profiles": [{"name": "bare"}]}')

        loaded = storage.load()

        assert loaded.profiles == [Profile(name="bare")]
        assert loaded.profiles[0].settings.api_url == DEFAULT_API_URL

    def test_null_credentials_load_as_unprovisioned(self, storage: ProfileStorage) -> None:
        storage.config_dir.mkdir(parents=True, exist_ok=True)
        storage.profiles_path.write_text(
            json.dumps(
                {
                    "profiles": [
                        {
                            "name": "work",
                            "settings": {"api_key": "tr-work-key", "organization_id": "org-work"},
                            "selected": True,
                        },
                        {
                            "name": "fresh",
                            "settings": {"api_key": None, "organization_id": None},
                        },
                    ]
                }
            )
        )

        loaded = storage.load()

        assert [p.name for p in loaded.profiles] == ["work", "fresh"]
        assert loaded.profiles[1].settings == Settings()
        assert not loaded.profiles[1].settings.is_provisioned

    def test_null_organization_survives_next_save(self, storage: ProfileStorage) -> None:
        storage.config_dir.mkdir(parents=True, exist_ok=True)
        storage.profiles_path.write_text(
            json.dumps(
                {
                    "profiles": [
                        {
                            "name": "work",
                            "settings": {"api_key": "tr-work-key", "organization_id": "org-work"},
                            "selected": True,
                        },
                        {"name": "fresh", "settings": {"organization_id": None}},
                    ]
                }
            )
        )

        ProfileStore(storage).upsert("new", Settings(api_key="tr-new", organization_id="org-new"))

        names = [p["name"] for p in json.loads(storage.profiles_path.read_text())["profiles"]]
        assert sorted(names) == ["fresh", "new", "work"]

    def test_save_failure_raises_persistence_error(self, storage: ProfileStorage, two_profiles) -> None:
        with patch("trieve_cli.config._atomic_write", side_effect=OSError("read-only")):
            with pytest.raises(PersistenceError, match="read-only"):
                storage.save(two_profiles)

    def test_legacy_slot(self, storage: ProfileStorage, work_settings: Settings) -> None:
        storage.config_dir.mkdir(parents=True, exist_ok=True)
        storage.legacy_path.write_text(work_settings.model_dump_json())
        assert storage.load_legacy() == work_settings

    def test_default_dir_is_config_dir(self, isolated_config: Path) -> None:
        assert ProfileStorage().profiles_path == isolated_config / "profiles.json"


# ---------------------------------------------------------------------------
# Precedence
# ---------------------------------------------------------------------------


class TestEnvFlag:
    @pytest.mark.parametrize("value", ["1", "true", "YES", " on "])
    def test_truthy(self, monkeypatch: pytest.MonkeyPatch, value: str) -> None:
        monkeypatch.setenv("TRIEVE_NO_PROFILE", value)
        assert env_flag("TRIEVE_NO_PROFILE") is True

    @pytest.mark.parametrize("value", ["", "0", "false", "nope"])
    def test_falsy(self, monkeypatch: pytest.MonkeyPatch, value: str) -> None:
        monkeypatch.setenv("TRIEVE_NO_PROFILE", value)
        assert env_flag("TRIEVE_NO_PROFILE") is False


class TestResolveProfile:
    def test_selected_by_default(self, isolated_config, two_profiles) -> None:
        assert resolve_profile(two_profiles).name == "work"

    def test_cli_flag_wins_over_env(self, isolated_config, monkeypatch, two_profiles) -> None:
        monkeypatch.setenv("TRIEVE_PROFILE", "missing")
        assert resolve_profile(two_profiles, "home").name == "home"

    def test_env_wins_over_selected(self, isolated_config, monkeypatch, two_profiles) -> None:
        monkeypatch.setenv("TRIEVE_PROFILE", "home")
        assert resolve_profile(two_profiles).name == "home"

    def test_named_profile_missing(self, isolated_config, two_profiles) -> None:
        with pytest.raises(ConfigError, match="ghost"):
            resolve_profile(two_profiles, "ghost")

    def test_does_not_change_selection(self, isolated_config, two_profiles) -> None:
        resolve_profile(two_profiles, "home")
        assert two_profiles.selected().name == "work"


class TestResolveSettings:
    def test_selected_profile_settings(self, isolated_config, two_profiles, work_settings) -> None:
        assert resolve_settings(lambda: two_profiles) == work_settings

    def test_empty_store_raises(self, isolated_config) -> None:
        with pytest.raises(ConfigError, match="trieve login"):
            resolve_settings(lambda: ProfileCollection())

    def test_unprovisioned_profile_raises(self, isolated_config) -> None:
        collection = _collection(Profile(name="blank", selected=True))
        with pytest.raises(ConfigError):
            resolve_settings(lambda: collection)

    def test_no_profile_reads_env_without_loading(self, isolated_config, monkeypatch) -> None:
        monkeypatch.setenv("TRIEVE_API_KEY", "tr-env")
        monkeypatch.setenv("TRIEVE_ORGANIZATION_ID", "org-env")
        settings = resolve_settings(lambda: pytest.fail("store loaded"), no_profile=True)

        assert settings == Settings(api_key="tr-env", organization_id="org-env")

    def test_no_profile_env_var(self, isolated_config, monkeypatch) -> None:
        monkeypatch.setenv("TRIEVE_NO_PROFILE", "1")
        monkeypatch.setenv("TRIEVE_API_KEY", "tr-env")
        monkeypatch.setenv("TRIEVE_API_URL", "http://localhost:8090")

        settings = resolve_settings(lambda: pytest.fail("store loaded"))

        assert settings.api_url == "http://localhost:8090"
        assert settings.organization_id == ""

    def test_no_profile_without_key_raises(self, isolated_config) -> None:
        with pytest.raises(ConfigError, match="TRIEVE_API_KEY"):
            resolve_settings(lambda: ProfileCollection(), no_profile=True)
