from fastapi import FastAPI

from chartchat.main import create_app


def test_create_app_registers_routes() -> None:
    app = create_app()
    assert isinstance(app, FastAPI)
    paths = {route.path for route in app.routes}
    for path in (
        "/chat",
        "/getDatasetMetadata",
        "/getSimplifiedMetadata",
        "/getNameOnlySchema",
        "/getEmbedToken",
        "/system/config",
        "/system/cache",
        "/log-error",
        "/log-console",
        "/health",
        "/",
    ):
        assert path in paths


def test_module_entry_point_serves_the_app(monkeypatch):
    import chartchat.__main__ as entry

    calls = []
    monkeypatch.setattr(entry.uvicorn, "run", lambda app, **options: calls.append((app, options)))
    monkeypatch.setenv("PORT", "8123")
    monkeypatch.delenv("HOST", raising=False)
    monkeypatch.delenv("RELOAD", raising=False)

    entry.main()

    assert calls == [("chartchat.main:app", {"host": "0.0.0.0", "port": 8123, "reload": False})]
