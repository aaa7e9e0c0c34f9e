"""Launch the Stockpot API under uvicorn."""

from __future__ import annotations

import os

import uvicorn

APP_PATH = "stockpot.server.app:create_app"


def _port(value: str) -> int:
    try:
        port = int(value)
    except ValueError as exc:
        raise SystemExit(f"Invalid STOCKPOT_SERVER_PORT '{value}': {exc}") from exc
    if not 0 < port < 65536:
        raise SystemExit("STOCKPOT_SERVER_PORT must be between 1 and 65535.")
    return port


def main() -> None:
    """Entry point for the ``stockpot-server`` script.

    Reads ``STOCKPOT_SERVER_HOST`` (default ``127.0.0.1``), ``STOCKPOT_SERVER_PORT``
    (default ``8000``) and ``RELOAD=1`` for auto-reload during development.
    """

    host = os.environ.get("STOCKPOT_SERVER_HOST", "127.0.0.1")
    port = _port(os.environ.get("STOCKPOT_SERVER_PORT", "8000"))
    reload_enabled = os.environ.get("RELOAD") == "1"

    uvicorn.run(APP_PATH, host=host, port=port, reload=reload_enabled, factory=True)


if __name__ == "__main__":
    main()
