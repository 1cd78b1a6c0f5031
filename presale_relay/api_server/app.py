"""
FastAPI/ASGI application entrypoint.

Build and configure the ASGI app from environment settings.
Run with: uvicorn presale_relay.api_server.app:app --host 0.0.0.0 --port 3000
"""

from presale_relay.api_server.server import create_app

app = create_app()

__all__ = ["app"]
