"""CORS gate for browser callers.

Only origins under the parent domain, the exact apex origin, or a local
dev server get their origin echoed back. Everyone else sees the fallback
origin, which the browser then rejects.
"""

from dataclasses import dataclass
from typing import Optional

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response


@dataclass(frozen=True)
class CorsPolicy:
    parent_domain: str = ".abhi.now"
    exact_origin: str = "https://abhi.now"
    localhost_prefix: str = "http://localhost:"
    fallback_origin: str = "https://g.abhi.now"
    allow_methods: tuple = ("GET", "POST", "OPTIONS")
    allow_headers: tuple = ("Content-Type", "Accept", "Authorization")
    max_age: int = 86400


def resolve_origin(origin: Optional[str], policy: CorsPolicy) -> str:
    """Return the origin to advertise for a given Origin header."""
    if origin and (
        origin.endswith(policy.parent_domain)
        or origin == policy.exact_origin
        or origin.startswith(policy.localhost_prefix)
    ):
        return origin
    return policy.fallback_origin


class CorsGateMiddleware(BaseHTTPMiddleware):
    """Apply the CORS policy to every response and answer preflights."""

    def __init__(self, app, policy: CorsPolicy = CorsPolicy()):
        super().__init__(app)
        self.policy = policy

    async def dispatch(self, request: Request, call_next):
        allow_origin = resolve_origin(request.headers.get("origin"), self.policy)

        if request.method == "OPTIONS":
            response = Response(status_code=204)
            response.headers["Access-Control-Allow-Methods"] = ", ".join(self.policy.allow_methods)
            response.headers["Access-Control-Allow-Headers"] = ", ".join(self.policy.allow_headers)
            response.headers["Access-Control-Max-Age"] = str(self.policy.max_age)
        else:
            response = await call_next(request)

        response.headers["Access-Control-Allow-Origin"] = allow_origin
        response.headers["Vary"] = "Origin"
        return response
