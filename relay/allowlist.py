"""Fixed allow-lists for the relay.

The relay only forwards to URLs listed here:
- OAuth token endpoints, matched exactly and mapped to their provider
- API base URLs, matched by prefix after normalization
"""

import re
from enum import Enum
from types import MappingProxyType
from typing import Mapping, Optional
from urllib.parse import unquote

import httpx


class Provider(str, Enum):
    """Supported Git hosting providers."""
    GITHUB = "github"
    GITLAB = "gitlab"
    BITBUCKET = "bitbucket"


OAUTH_ENDPOINTS: Mapping[str, Provider] = MappingProxyType({
    "https://github.com/login/oauth/access_token": Provider.GITHUB,
    "https://gitlab.com/oauth/token": Provider.GITLAB,
    "https://bitbucket.org/site/oauth2/access_token": Provider.BITBUCKET,
})

# Each prefix ends with "/" so look-alike hosts (api.github.com.evil.example)
# never match.
API_PREFIXES: tuple = (
    "https://api.github.com/",
    "https://gitlab.com/api/v4/",
    "https://api.bitbucket.org/2.0/",
)


def match_oauth_endpoint(url: Optional[str], endpoints: Mapping[str, Provider] = OAUTH_ENDPOINTS) -> Optional[Provider]:
    """Return the provider for an exactly allow-listed token endpoint, else None."""
    if not url:
        return None
    return endpoints.get(url)


def _has_dot_segment(url: str) -> bool:
    """Check the raw path for "." or ".." segments, percent-encoded or not."""
    path = re.split(r"[?#]", url, maxsplit=1)[0]
    for segment in re.split(r"[/\\]", unquote(path)):
        if segment in (".", ".."):
            return True
    return False


def normalize_api_url(url: Optional[str], prefixes: tuple = API_PREFIXES) -> Optional[str]:
    """Return the URL that will actually be requested, or None if it is not allowed.

    Both the raw and the normalized form must start with the same prefix,
    and any dot segment in the raw path is refused outright.
    """
    if not url or _has_dot_segment(url):
        return None
    try:
        target = str(httpx.URL(url))
    except (httpx.InvalidURL, ValueError):
        return None
    for prefix in prefixes:
        if url.startswith(prefix) and target.startswith(prefix):
            return target
    return None


def is_allowed_api_url(url: Optional[str], prefixes: tuple = API_PREFIXES) -> bool:
    """Check that url stays under one of the allowed API prefixes."""
    return normalize_api_url(url, prefixes) is not None
