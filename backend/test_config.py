"""Tests for settings loading and client construction."""

import pytest

from dbtools import config
from dbtools.config import SupabaseSettings, init_supabase, load_settings
from dbtools.errors import ConfigError

ENV_VARS = (
    config.URL_VARS + config.ANON_KEY_VARS + config.SERVICE_KEY_VARS + (config.SQL_RPC_VAR,)
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    # keep load_dotenv() away from any real .env
    monkeypatch.chdir(tmp_path)


def test_env_file_values(tmp_path):
    env = tmp_path / "test.env"
    env.write_text(
        "SUPABASE_URL=https://abc.supabase.co\n"
        "SUPABASE_ANON_KEY=anon\n"
        "SUPABASE_SERVICE_ROLE_KEY=service\n"
    )
    settings = load_settings(env)
    assert settings.url == "https://abc.supabase.co"
    assert settings.anon_key == "anon"
    assert settings.has_service_role
    assert settings.sql_rpc == "exec_sql"


def test_frontend_variable_fallbacks(monkeypatch):
    monkeypatch.setenv("VITE_SUPABASE_URL", "https://vite.supabase.co")
    monkeypatch.setenv("NEXT_PUBLIC_SUPABASE_ANON_KEY", "next-anon")
    monkeypatch.setenv("SUPABASE_SERVICE_KEY", "legacy-service")
    monkeypatch.setenv("SUPABASE_SQL_RPC", "run_sql")

    settings = load_settings()
    assert settings.url == "https://vite.supabase.co"
    assert settings.anon_key == "next-anon"
    assert settings.service_role_key == "legacy-service"
    assert settings.sql_rpc == "run_sql"


def test_missing_env_file(tmp_path):
    with pytest.raises(ConfigError, match="not found"):
        load_settings(tmp_path / "nope.env")


def test_validate_lists_every_missing_setting():
    with pytest.raises(ConfigError) as exc:
        SupabaseSettings().validate_public()
    assert "SUPABASE_URL" in str(exc.value)
    assert "SUPABASE_ANON_KEY" in str(exc.value)


def test_service_role_client_requires_key():
    settings = SupabaseSettings(url="https://abc.supabase.co", anon_key="anon")
    with pytest.raises(ConfigError, match="service role key"):
        init_supabase(settings, service_role=True)


def test_clients_use_matching_keys(monkeypatch):
    created = []
    monkeypatch.setattr(config, "create_client", lambda url, key, **kw: created.append((url, key, kw)))
    settings = SupabaseSettings(url="https://abc.supabase.co", anon_key="anon", service_role_key="service")

    init_supabase(settings)
    init_supabase(settings, service_role=True)

    assert created[0][:2] == ("https://abc.supabase.co", "anon")
    assert created[1][:2] == ("https://abc.supabase.co", "service")
    assert created[1][2]["options"].persist_session is False
