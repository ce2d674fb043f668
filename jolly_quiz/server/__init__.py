"""HTTP server for players and quiz admins."""

from .api_server import create_api_app, run_api_server

__all__ = ["create_api_app", "run_api_server"]
