import pytest
from fastapi.testclient import TestClient

from chartchat.assistant.chat_service import ChatReply
from chartchat.core.config import Settings
from chartchat.dependencies import (
    get_app_settings,
    get_chat_service,
    get_powerbi_client,
    get_schema_provider,
)
from chartchat.errors import ConfigurationError, SchemaUnavailable, UpstreamError
from chartchat.main import create_app


class StubChatService:
    def __init__(self, reply=None, error=None) -> None:
        self.reply = reply or ChatReply(response='{"chatResponse": "hi"}', usage={"total_tokens": 3})
        self.error = error
        self.calls = []

    async def chat(self, message, current_chart, history):
        self.calls.append((message, current_chart, history))
        if self.error:
            raise self.error
        return self.reply


class StubSchemaProvider:
    def __init__(self, snapshot=None, error=None) -> None:
        self.snapshot = snapshot
        self.error = error
        self.refreshes = []

    async def get_schema(self, force_refresh=False):
        self.refreshes.append(force_refresh)
        if self.error:
            raise self.error
        return self.snapshot

    def cache_info(self):
        return {"status": "no_cache", "message": "No metadata cached yet"}


class StubPowerBIClient:
    def __init__(self, error=None) -> None:
        self.error = error

    async def get_embed_info(self, report_id=None):
        if self.error:
            raise self.error
        return {"accessToken": "t", "embedUrl": [{"id": report_id or "r1"}], "expiry": "later"}


@pytest.fixture
def app():
    application = create_app()
    application.dependency_overrides[get_app_settings] = lambda: Settings.from_sources(
        {"powerBIGroupId": "ws", "powerBIDatasetId": "ds", "powerBIReportId": "rp"}, environ={}
    )
    yield application
    application.dependency_overrides.clear()


def _returning(value):
    return lambda: value


def _client(app, **overrides):
    mapping = {
        "chat": get_chat_service,
        "schema": get_schema_provider,
        "powerbi": get_powerbi_client,
    }
    for key, value in overrides.items():
        app.dependency_overrides[mapping[key]] = _returning(value)
    return TestClient(app)


def test_chat_returns_raw_model_text(app):
    service = StubChatService()
    client = _client(app, chat=service)

    response = client.post(
        "/chat",
        json={
            "message": "sales by month",
            "currentChart": {"yAxis": "Sales.TotalSales", "xAxis": "Time.Month", "chartType": "lineChart"},
            "chatHistory": [{"role": "user", "content": "hi"}, {"role": "bogus", "content": "x"}],
        },
    )

    assert response.status_code == 200
    assert response.json() == {"response": '{"chatResponse": "hi"}', "usage": {"total_tokens": 3}}
    message, chart, history = service.calls[0]
    assert message == "sales by month"
    assert chart.chart_type == "lineChart"
    assert [turn.content for turn in history] == ["hi"]


def test_chat_requires_message(app):
    client = _client(app, chat=StubChatService())

    for body in ({}, {"message": ""}, {"message": "   "}):
        response = client.post("/chat", json=body)
        assert response.status_code == 400
        assert response.json() == {"error": "Message is required"}


def test_chat_failure_hides_upstream_detail(app):
    service = StubChatService(error=UpstreamError("boom", detail="secret upstream body"))
    client = _client(app, chat=service)

    response = client.post("/chat", json={"message": "sales"})

    assert response.status_code == 500
    body = response.json()
    assert body["error"] == "Failed to process chat message"
    assert "secret" not in body.get("details", "")


def test_unconfigured_provider_returns_error_envelope(app, monkeypatch):
    def _unconfigured():
        raise ConfigurationError("OpenAI service not configured")

    monkeypatch.setattr("chartchat.dependencies.get_llm_provider", _unconfigured)
    client = _client(app, schema=StubSchemaProvider())

    response = client.post("/chat", json={"message": "sales"})

    assert response.status_code == 500
    assert response.json() == {"error": "OpenAI service not configured"}


def test_empty_message_is_rejected_before_provider_lookup(app, monkeypatch):
    def _unconfigured():
        raise ConfigurationError("OpenAI service not configured")

    monkeypatch.setattr("chartchat.dependencies.get_llm_provider", _unconfigured)
    client = _client(app, schema=StubSchemaProvider())

    response = client.post("/chat", json={"message": ""})

    assert response.status_code == 400
    assert response.json() == {"error": "Message is required"}


def test_chat_history_tolerates_non_object_entries(app):
    service = StubChatService()
    client = _client(app, chat=service)

    response = client.post(
        "/chat",
        json={"message": "sales", "chatHistory": ["stray", {"role": "assistant", "content": "ok"}, 3]},
    )

    assert response.status_code == 200
    assert [turn.content for turn in service.calls[0][2]] == ["ok"]


def test_dataset_metadata_and_refresh(app, sales_schema):
    provider = StubSchemaProvider(sales_schema)
    client = _client(app, schema=provider)

    response = client.get("/getDatasetMetadata", params={"refresh": "true"})

    assert response.status_code == 200
    assert response.json()["dataset"]["name"] == "Retail Analysis"
    assert provider.refreshes == [True]


def test_dataset_metadata_failure(app):
    client = _client(app, schema=StubSchemaProvider(error=SchemaUnavailable("x", detail="403 forbidden")))

    response = client.get("/getDatasetMetadata")

    assert response.status_code == 500
    assert response.json() == {"error": "Failed to get dataset metadata", "details": "403 forbidden"}


def test_text_schema_views(app, sales_schema):
    client = _client(app, schema=StubSchemaProvider(sales_schema))

    name_only = client.get("/getNameOnlySchema")
    simplified = client.get("/getSimplifiedMetadata")

    assert name_only.headers["content-type"].startswith("text/plain")
    assert "Time.Month [date]" in name_only.text
    assert simplified.text.startswith("Dataset: Retail Analysis")


def test_system_config_and_cache(app):
    client = _client(app, schema=StubSchemaProvider())

    assert client.get("/system/config").json() == {
        "workspaceId": "ws",
        "datasetId": "ds",
        "reportId": "rp",
    }
    assert client.get("/system/cache").json()["status"] == "no_cache"


def test_embed_token(app):
    client = _client(app, powerbi=StubPowerBIClient())

    response = client.get("/getEmbedToken", params={"reportId": "abc"})

    assert response.status_code == 200
    assert response.json()["embedUrl"] == [{"id": "abc"}]


def test_embed_token_without_report(app):
    client = _client(app, powerbi=StubPowerBIClient(error=ConfigurationError("No report ID provided")))

    response = client.get("/getEmbedToken")

    assert response.status_code == 400
    assert response.json() == {"error": "No report ID provided"}


def test_client_log_endpoints_accept_anything(app):
    client = TestClient(app)

    assert client.post("/log-error", json={"message": "TypeError", "lineno": 3}).status_code == 204
    assert client.post("/log-console", json={"level": "warn", "message": "hi"}).status_code == 204
    assert client.post("/log-console", content=b"not json").status_code == 204


def test_health(app):
    body = TestClient(app).get("/health").json()

    assert body["status"] == "healthy"
    assert body["service"] == "chartchat"
    assert set(body["configuration"]) == {"powerbi", "llm"}


def test_index_page(app):
    response = TestClient(app).get("/")

    assert response.status_code == 200
    assert 'id="chat-input"' in response.text
