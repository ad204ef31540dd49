import httpx
import pytest


USER_URL = "https://api.github.com/user"


def test_apis_requires_url(client, upstream):
    r = client.get("/apis")
    assert r.status_code == 400
    assert r.json() == {"error": "Missing url parameter"}
    assert upstream.requests == []


@pytest.mark.parametrize("target", [
    "https://evil.example/user",
    "https://api.github.com.evil.example/user",
    "https://api.github.com",
    "http://api.github.com/user",
    "https://gitlab.com/oauth/token",
    "https://gitlab.com/api/v3/projects",
    "file:///etc/passwd",
    "https://gitlab.com/api/v4/../../oauth/token",
    "https://gitlab.com/api/v4/%2e%2e/%2E%2E/oauth/token",
    "https://api.bitbucket.org/2.0/../site/oauth2/access_token",
    "https://api.github.com/./../user",
    "https://api.github.com/repos/..%2f..%2fuser",
])
def test_apis_rejects_unlisted_targets(client, upstream, target):
    r = client.get("/apis", params={"url": target})
    assert r.status_code == 400
    assert r.json() == {"error": "Invalid or unauthorized URL"}
    assert upstream.requests == []


@pytest.mark.parametrize("target", [
    "https://api.github.com/user/repos?per_page=100",
    "https://gitlab.com/api/v4/projects?membership=true",
    "https://api.bitbucket.org/2.0/repositories/team",
])
def test_apis_forwards_allowed_targets(client, upstream, target):
    upstream.respond = lambda request: httpx.Response(200, json=[{"id": 1}])

    r = client.get("/apis", params={"url": target})

    assert r.status_code == 200
    assert r.json() == [{"id": 1}]
    assert str(upstream.requests[0].url) == target


def test_apis_passes_through_authorization(client, upstream):
    upstream.respond = lambda request: httpx.Response(200, json={"login": "octocat"})

    r = client.get("/apis", params={"url": USER_URL}, headers={"Authorization": "Bearer gho_abc"})

    assert r.status_code == 200
    assert r.json() == {"login": "octocat"}
    sent = upstream.requests[0]
    assert sent.method == "GET"
    assert sent.headers["authorization"] == "Bearer gho_abc"
    assert sent.headers["accept"] == "application/json"
    assert sent.headers["user-agent"] == "git-oauth-relay"


def test_apis_without_authorization_sends_none(client, upstream):
    client.get("/apis", params={"url": USER_URL})
    assert "authorization" not in upstream.requests[0].headers


def test_apis_non_json_returns_capped_excerpt(client, upstream, relay_config):
    page = "<html>" + "x" * 1000 + "</html>"
    upstream.respond = lambda request: httpx.Response(
        200, content=page.encode(), headers={"content-type": "text/html; charset=utf-8"}
    )

    r = client.get("/apis", params={"url": USER_URL})

    assert r.status_code == 500
    body = r.json()
    assert body["error"] == "Upstream returned non-JSON response"
    assert body["status"] == 200
    assert body["details"] == page[:relay_config.excerpt_limit]
    assert len(body["details"]) == relay_config.excerpt_limit


def test_apis_invalid_json_returns_excerpt(client, upstream, fake_logger):
    upstream.respond = lambda request: httpx.Response(
        200, content=b'{"login": "octo', headers={"content-type": "application/json"}
    )

    r = client.get("/apis", params={"url": USER_URL})

    assert r.status_code == 500
    body = r.json()
    assert body["error"] == "Failed to parse upstream JSON"
    assert body["details"] == '{"login": "octo'
    assert fake_logger.messages("error")


def test_apis_upstream_error_uses_message(client, upstream):
    upstream.respond = lambda request: httpx.Response(
        401, json={"message": "Bad credentials", "documentation_url": "https://docs.github.com/rest"}
    )

    r = client.get("/apis", params={"url": USER_URL}, headers={"Authorization": "Bearer expired"})

    assert r.status_code == 401
    body = r.json()
    assert body["error"] == "Bad credentials"
    assert body["status"] == 401
    assert body["details"]["documentation_url"] == "https://docs.github.com/rest"


def test_apis_upstream_error_without_message_is_stringified(client, upstream):
    upstream.respond = lambda request: httpx.Response(404, json={"error": "404 Not Found"})

    r = client.get("/apis", params={"url": "https://gitlab.com/api/v4/projects/0"})

    assert r.status_code == 404
    assert r.json()["error"] == '{"error": "404 Not Found"}'


def test_apis_transport_failure_returns_500(client, upstream):
    def fail(request):
        raise httpx.ConnectTimeout("timed out")

    upstream.respond = fail

    r = client.get("/apis", params={"url": USER_URL})

    assert r.status_code == 500
    assert r.json() == {"error": "API proxy request failed", "details": "timed out"}


def test_apis_never_logs_authorization(client, fake_logger):
    client.get("/apis", params={"url": USER_URL}, headers={"Authorization": "Bearer gho_topsecret"})

    assert fake_logger.messages("info")
    for _, message in fake_logger.records:
        assert "gho_topsecret" not in message


def test_apis_forwards_dotted_names_under_prefix(client, upstream):
    target = "https://api.github.com/repos/octo/site.io/contents/a..b.json"

    r = client.get("/apis", params={"url": target})

    assert r.status_code == 200
    sent = str(upstream.requests[0].url)
    assert sent == target
    assert sent.startswith("https://api.github.com/")
