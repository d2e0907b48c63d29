import json

from chartchat.core.config import Settings


def test_json_values_take_precedence_over_environment():
    settings = Settings.from_sources(
        {"tenantId": "json-tenant", "clientId": "", "powerBIWorkspaceId": "ws-1"},
        environ={"TENANT_ID": "env-tenant", "CLIENT_ID": "env-client"},
    )

    assert settings.powerbi.tenant_id == "json-tenant"
    assert settings.powerbi.client_id == "env-client"
    assert settings.powerbi.group_id == "ws-1"


def test_defaults_when_nothing_is_configured():
    settings = Settings.from_sources({}, environ={})

    assert settings.powerbi.authority_url == "https://login.microsoftonline.com/"
    assert settings.powerbi.scope_base == "https://analysis.windows.net/powerbi/api/.default"
    assert settings.cache.schema_ttl == 300
    assert settings.cache.schema_grace == 300
    assert not settings.powerbi.has_credentials
    assert settings.log_level == "INFO"


def test_token_url_joins_authority_and_tenant():
    settings = Settings.from_sources(
        {"tenantId": "abc", "authorityUrl": "https://login.microsoftonline.com"}, environ={}
    )

    assert settings.powerbi.token_url == "https://login.microsoftonline.com/abc/oauth2/v2.0/token"


def test_from_file_reads_json(tmp_path, monkeypatch):
    for key in ("TENANT_ID", "POWERBI_GROUP_ID", "SCHEMA_CACHE_SECONDS"):
        monkeypatch.delenv(key, raising=False)
    config_file = tmp_path / "config.json"
    config_file.write_text(
        json.dumps({"tenantId": "file-tenant", "powerBIGroupId": "g", "schemaCacheSeconds": 60}),
        encoding="utf-8",
    )

    settings = Settings.from_file(config_file)

    assert settings.powerbi.tenant_id == "file-tenant"
    assert settings.powerbi.group_id == "g"
    assert settings.cache.schema_ttl == 60


def test_missing_file_falls_back_to_environment(tmp_path, monkeypatch):
    monkeypatch.setenv("POWERBI_REPORT_ID", "env-report")

    settings = Settings.from_file(tmp_path / "absent.json")

    assert settings.powerbi.report_id == "env-report"
