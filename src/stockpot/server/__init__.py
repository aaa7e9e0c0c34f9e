"""ASGI application factory and dependencies for the Stockpot server."""

from stockpot.server.app import app, create_app

__all__ = ["app", "create_app"]
