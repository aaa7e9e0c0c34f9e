"""Tests for the stockpot-server launcher."""

from __future__ import annotations

import pytest

from stockpot.server import run


@pytest.fixture()
def uvicorn_calls(monkeypatch):
    calls = []
    monkeypatch.setattr(run.uvicorn, "run", lambda *args, **kwargs: calls.append((args, kwargs)))
    for name in ("STOCKPOT_SERVER_HOST", "STOCKPOT_SERVER_PORT", "RELOAD"):
        monkeypatch.delenv(name, raising=False)
    return calls


def test_defaults_serve_the_app_factory(uvicorn_calls):
    run.main()

    (args, kwargs), = uvicorn_calls
    assert args == ("stockpot.server.app:create_app",)
    assert kwargs == {"host": "127.0.0.1", "port": 8000, "reload": False, "factory": True}


def test_environment_overrides_host_port_and_reload(uvicorn_calls, monkeypatch):
    monkeypatch.setenv("STOCKPOT_SERVER_HOST", "0.0.0.0")
    monkeypatch.setenv("STOCKPOT_SERVER_PORT", "9100")
    monkeypatch.setenv("RELOAD", "1")

    run.main()

    _, kwargs = uvicorn_calls[0]
    assert (kwargs["host"], kwargs["port"], kwargs["reload"]) == ("0.0.0.0", 9100, True)


@pytest.mark.parametrize("value", ["eighty", "0", "70000"])
def test_invalid_port_exits(uvicorn_calls, monkeypatch, value):
    monkeypatch.setenv("STOCKPOT_SERVER_PORT", value)

    with pytest.raises(SystemExit):
        run.main()

    assert uvicorn_calls == []
