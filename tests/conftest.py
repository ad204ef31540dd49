import httpx
import pytest
from fastapi.testclient import TestClient

from config import ProviderCredentials, RelayConfig
from main import create_app
from relay.allowlist import Provider


GITHUB_SECRET = "gh-secret-0123456789"
GITLAB_SECRET = "gl-secret-9876543210"


class FakeLogger:
    """Collects relay log calls so tests can assert on them."""

    def __init__(self):
        self.records = []

    def _log(self, level, message):
        self.records.append((level, message))

    def debug(self, message):
        self._log("debug", message)

    def info(self, message):
        self._log("info", message)

    def warning(self, message):
        self._log("warning", message)

    def error(self, message):
        self._log("error", message)

    def messages(self, level=None):
        return [m for lvl, m in self.records if level is None or lvl == level]


class Upstream:
    """Stands in for the provider; records every outbound request."""

    def __init__(self):
        self.requests = []
        self.respond = lambda request: httpx.Response(200, json={})

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.respond(request)

    @property
    def transport(self):
        return httpx.MockTransport(self.handler)


@pytest.fixture
def relay_config():
    return RelayConfig(
        credentials={
            Provider.GITHUB: ProviderCredentials("gh-client-id", GITHUB_SECRET),
            Provider.GITLAB: ProviderCredentials("gl-client-id", GITLAB_SECRET),
        },
        excerpt_limit=50,
    )


@pytest.fixture
def upstream():
    return Upstream()


@pytest.fixture
def fake_logger():
    return FakeLogger()


@pytest.fixture
def client(relay_config, upstream, fake_logger):
    app = create_app(relay_config, relay_logger=fake_logger, transport=upstream.transport)
    return TestClient(app)
