import pytest

from hypeserv import __main__ as entrypoint


def test_main_runs_uvicorn(monkeypatch):
    calls = []
    monkeypatch.setenv("PORT", "4000")
    monkeypatch.delenv("HOST", raising=False)
    monkeypatch.setenv("LOG_LEVEL", "warning")
    monkeypatch.setattr(entrypoint, "DnsLookup", lambda timeout: object())
    monkeypatch.setattr(entrypoint.uvicorn, "run", lambda app, **kwargs: calls.append((app, kwargs)))

    entrypoint.main()

    (app, kwargs) = calls[0]
    assert kwargs == {"host": "0.0.0.0", "port": 4000, "log_level": "warning"}
    assert any(route.path == "/query/{query_type}" for route in app.routes)


def test_main_refuses_bad_config(monkeypatch):
    monkeypatch.setenv("PORT", "not-a-port")
    monkeypatch.setattr(entrypoint.uvicorn, "run", pytest.fail)

    with pytest.raises(SystemExit, match="PORT must be a number"):
        entrypoint.main()
