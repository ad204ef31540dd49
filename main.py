"""Git OAuth Relay.

A small HTTP relay for browser-based Git clients. It handles:
- OAuth code-for-token exchanges with GitHub/GitLab/Bitbucket (/oauth),
  injecting the client secret server-side
- Authenticated GET requests to provider APIs (/apis)
- Public OAuth client IDs for the front-end (/config)

Targets are limited to a fixed allow-list and browser access is gated by
a CORS policy on the caller's Origin.
"""
import logging
from typing import Optional

import httpx
from fastapi import FastAPI

from config import RelayConfig, load_config
from relay.cors import CorsGateMiddleware
from relay.endpoints import VERSION, init_relay_routes

logger = logging.getLogger(__name__)


def create_app(
    config: Optional[RelayConfig] = None,
    relay_logger=None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> FastAPI:
    """Build the relay application.

    Args:
        config: Relay configuration (loaded from the environment if omitted)
        relay_logger: Logger handed to the relay routes
        transport: httpx transport for outbound calls
    """
    config = config or load_config()

    app = FastAPI(
        title="Git OAuth Relay",
        description="OAuth token and API relay for browser-based Git clients",
        version=VERSION,
    )

    # Every response, including errors and preflights, goes through the gate
    app.add_middleware(CorsGateMiddleware, policy=config.cors)

    app.include_router(init_relay_routes(config, logger=relay_logger, transport=transport))

    providers = ", ".join(p.value for p in config.credentials) or "none"
    logger.info(f"[STARTUP] Credentials configured for: {providers}")
    logger.info(f"[STARTUP] OAuth endpoints: {len(config.oauth_endpoints)}, API prefixes: {len(config.api_prefixes)}")

    return app


# ============== Main Entry Point ==============

if __name__ == "__main__":
    from cli import main
    main()
