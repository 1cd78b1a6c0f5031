"""
Main entrypoint: presale relay FastAPI server.

Env: HASH_PRIVATE_KEY, PRESALE_MINT_ADDRESS, PRESALE_RECIPIENT_KEY (required for the
transaction routes), SOLANA_RPC_URL, API_HOST, PORT, NODE_ENV, LOG_LEVEL, etc.

Equivalent: uvicorn presale_relay.api_server.app:app --host 0.0.0.0 --port 3000
"""

import os

# Configure structured JSON logging before other imports that may log
from presale_relay.logging import get_logger

logger = get_logger("main")


def main() -> None:
    """Build the app from env settings and serve it with uvicorn on all interfaces."""
    import uvicorn

    from presale_relay.api_server.server import create_app
    from presale_relay.config import get_settings

    settings = get_settings()
    app = create_app(settings)

    logger.info(
        "main_server_starting",
        host=settings.api_host,
        port=settings.api_port,
        env=settings.app_env,
        health=f"http://localhost:{settings.api_port}/health",
        transactions=f"http://localhost:{settings.api_port}/api/transactions",
    )
    uvicorn.run(app, host=settings.api_host, port=settings.api_port, log_level=os.getenv("LOG_LEVEL", "info").lower())


if __name__ == "__main__":
    main()
