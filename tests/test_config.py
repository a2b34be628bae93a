"""Config loading and profile overlay."""

import pytest

from predbets.config import Settings, get_settings, load_config


def test_profile_overlay(tmp_path):
    (tmp_path / "default.toml").write_text(
        '[storage]\ndb_path = "data/a.duckdb"\n\n[settlement]\ndefault_fee_basis_points = 200\n\n'
        '[logging]\nlevel = "INFO"\n'
    )
    (tmp_path / "dev.toml").write_text('[logging]\nlevel = "debug"\n')
    raw = load_config("dev", tmp_path)
    assert raw["storage"]["db_path"] == "data/a.duckdb"
    assert raw["logging"]["level"] == "debug"
    settings = get_settings("dev", tmp_path)
    assert settings.logging_level == "DEBUG"
    assert settings.default_fee_basis_points == 200


def test_missing_config_gives_defaults(tmp_path):
    settings = get_settings(config_dir=tmp_path)
    assert settings.db_path == "data/predbets.duckdb"
    assert settings.default_fee_basis_points == 200
    assert settings.api_port == 8000


def test_fee_out_of_range():
    with pytest.raises(ValueError):
        Settings(settlement={"default_fee_basis_points": 10_001}).default_fee_basis_points


def test_env_overrides_secrets(monkeypatch):
    monkeypatch.setenv("PREDBETS_AUTH_SECRET", "from-env")
    settings = Settings(auth={"secret": "from-file"})
    assert settings.auth_secret == "from-env"
