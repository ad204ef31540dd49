"""Relay endpoints.

This module contains all relay routes:
- Service info (/, /health)
- Public OAuth client IDs (/config)
- OAuth code-for-token exchange (/oauth)
- Authenticated provider API reads (/apis)
"""

import json
import logging
from typing import Optional
from urllib.parse import parse_qsl, urlencode

import httpx
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from config import RelayConfig
from logging_config import redact
from relay.allowlist import Provider, match_oauth_endpoint, normalize_api_url

VERSION = "1.0.0"
USER_AGENT = "git-oauth-relay"


def _error(status_code: int, error: str, details=None, upstream_status: Optional[int] = None) -> JSONResponse:
    payload = {"error": error}
    if details is not None:
        payload["details"] = details
    if upstream_status is not None:
        payload["status"] = upstream_status
    return JSONResponse(payload, status_code=status_code)


def inject_credentials(body: str, provider: Provider, config: RelayConfig) -> str:
    """Return the form body with the provider's client_id/client_secret set.

    Caller-supplied values for those two fields are dropped. If no
    credentials are configured for the provider the body is returned as is.
    """
    creds = config.credentials_for(provider)
    if not creds:
        return body

    fields = [
        (key, value)
        for key, value in parse_qsl(body, keep_blank_values=True)
        if key not in ("client_id", "client_secret")
    ]
    fields.append(("client_id", creds.client_id))
    fields.append(("client_secret", creds.client_secret))
    return urlencode(fields)


def init_relay_routes(
    config: RelayConfig,
    logger=None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> APIRouter:
    """Build the relay router for one app.

    Args:
        config: Allow-lists, credentials and limits for this deployment
        logger: Anything with info/warning/error methods (defaults to this module's logger)
        transport: httpx transport for outbound calls (tests pass httpx.MockTransport)

    Returns:
        A new APIRouter whose handlers only see the given collaborators.
    """
    logger = logger or logging.getLogger(__name__)
    router = APIRouter(tags=["relay"])

    def client() -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=config.timeout, transport=transport)

    def excerpt(text: str) -> str:
        return text[:config.excerpt_limit]

    # ============== Service Info ==============

    @router.get("/")
    async def root():
        """Root endpoint with usage info."""
        return {
            "status": "ok",
            "version": VERSION,
            "endpoints": {
                "oauth": "POST /oauth?url=<encoded-oauth-endpoint>",
                "apis": "GET /apis?url=<encoded-api-endpoint>",
                "config": "GET /config",
            },
        }

    @router.get("/health")
    async def health_check():
        """Health check endpoint for the hosting platform."""
        return {"status": "healthy", "service": "git-oauth-relay"}

    @router.get("/config")
    async def public_config():
        """OAuth client IDs the front-end needs to start an authorization flow."""
        return {
            "github": {"clientId": config.client_id(Provider.GITHUB)},
            "gitlab": {"clientId": config.client_id(Provider.GITLAB)},
        }

    # ============== OAuth Token Relay ==============

    @router.post("/oauth")
    async def oauth_relay(request: Request, url: Optional[str] = None):
        """Forward an OAuth code-for-token exchange with server-side credentials."""
        provider = match_oauth_endpoint(url, config.oauth_endpoints)
        if provider is None:
            logger.warning(f"[OAUTH] Rejected target: {url!r}")
            return _error(400, "Invalid or unauthorized URL")

        secret_values = config.secrets()
        try:
            body = (await request.body()).decode("utf-8")

            if config.credentials_for(provider) is None:
                logger.warning(f"[OAUTH] No credentials configured for {provider.value}, forwarding body unchanged")
            body = inject_credentials(body, provider, config)

            logger.info(f"[OAUTH] Relaying token exchange to {provider.value}")
            async with client() as http:
                response = await http.post(
                    url,
                    content=body,
                    headers={
                        "Content-Type": "application/x-www-form-urlencoded",
                        "Accept": "application/json",
                    },
                )
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            details = redact(str(e), secret_values)
            logger.error(f"[OAUTH] Token exchange with {provider.value} failed: {details}")
            return _error(500, "Proxy request failed", details)

        logger.info(f"[OAUTH] Token exchange with {provider.value} returned {response.status_code}")
        return JSONResponse(data, status_code=response.status_code)

    # ============== API Relay ==============

    @router.get("/apis")
    async def api_relay(request: Request, url: Optional[str] = None):
        """Forward an authenticated GET to an allow-listed provider API."""
        if not url:
            return _error(400, "Missing url parameter")
        target = normalize_api_url(url, config.api_prefixes)
        if target is None:
            logger.warning(f"[API] Rejected target: {url!r}")
            return _error(400, "Invalid or unauthorized URL")

        headers = {"Accept": "application/json", "User-Agent": USER_AGENT}
        authorization = request.headers.get("Authorization")
        if authorization:
            headers["Authorization"] = authorization

        logger.info(f"[API] Relaying GET {target} (auth: {bool(authorization)})")
        try:
            async with client() as http:
                response = await http.get(target, headers=headers)
        except httpx.HTTPError as e:
            logger.error(f"[API] Request to {target} failed: {e}")
            return _error(500, "API proxy request failed", str(e))

        text = response.text
        content_type = response.headers.get("content-type", "")
        if "application/json" not in content_type:
            logger.error(f"[API] Non-JSON response from {target} ({response.status_code}, {content_type!r})")
            return _error(500, "Upstream returned non-JSON response", excerpt(text), response.status_code)

        try:
            data = json.loads(text)
        except ValueError as e:
            logger.error(f"[API] Invalid JSON from {target}: {e}")
            return _error(500, "Failed to parse upstream JSON", excerpt(text), response.status_code)

        if not response.is_success:
            message = data.get("message") if isinstance(data, dict) else None
            logger.warning(f"[API] Upstream {target} returned {response.status_code}")
            return _error(response.status_code, message or json.dumps(data), data, response.status_code)

        logger.info(f"[API] GET {target} returned {response.status_code}")
        return JSONResponse(data, status_code=response.status_code)

    return router
