from __future__ import annotations

import json

import httpx
import pytest

from component_engine.config import settings
from component_engine.errors import (
    RateLimitedError,
    RemoteNotFoundError,
    RemoteTransportError,
    UntrustedContentURLError,
)
from component_engine.services.github_client import (
    DirectTransport,
    GitHubClient,
    ProxyTransport,
    create_github_client,
    is_trusted_content_url,
    parse_repository_reference,
)

from conftest import API_URL, FakeGitHub, content_url


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("https://github.com/acme/widgets", ("acme", "widgets")),
        ("https://github.com/acme/widgets.git", ("acme", "widgets")),
        ("https://github.com/acme/widgets/tree/main/src", ("acme", "widgets")),
        ("https://github.com/acme/widgets?tab=readme-ov-file", ("acme", "widgets")),
        ("https://github.com/acme/widgets#readme", ("acme", "widgets")),
        ("https://github.com/acme/widgets.git?ref=main", ("acme", "widgets")),
        ("  acme/widgets  ", ("acme", "widgets")),
    ],
)
def test_parse_repository_reference_accepts_urls_and_shorthand(text: str, expected: tuple) -> None:
    reference = parse_repository_reference(text)

    assert reference is not None
    assert (reference.owner, reference.repo) == expected


@pytest.mark.parametrize("text", ["", "widgets", "acme/widgets/extra", "https://gitlab.com/acme/widgets"])
def test_parse_repository_reference_rejects_other_input(text: str) -> None:
    assert parse_repository_reference(text) is None


def test_trusted_content_urls_match_on_hostname() -> None:
    assert is_trusted_content_url("https://raw.githubusercontent.com/acme/widgets/main/index.html")
    assert is_trusted_content_url("https://github.com/acme/widgets/raw/main/index.html")
    assert not is_trusted_content_url("https://evil.example/raw.githubusercontent.com/x")
    assert not is_trusted_content_url("https://githubusercontent.com.evil.example/x")
    assert not is_trusted_content_url("ftp://raw.githubusercontent.com/x")
    assert not is_trusted_content_url("not a url")


@pytest.mark.anyio
async def test_direct_listing_sends_ref_and_token(static_repo: FakeGitHub) -> None:
    client = static_repo.client(token="secret-token")

    files = await client.list_directory("acme", "widgets", "/", "feature")

    assert [f.name for f in files] == ["index.html", "style.css"]
    assert all(f.kind == "file" for f in files)
    request = static_repo.requests[0]
    assert request.url.params["ref"] == "feature"
    assert request.headers["Authorization"] == "Bearer secret-token"
    assert request.headers["Accept"] == "application/vnd.github.v3+json"


@pytest.mark.anyio
async def test_direct_listing_is_anonymous_without_token(static_repo: FakeGitHub) -> None:
    await static_repo.client().list_directory("acme", "widgets")

    request = static_repo.requests[0]
    assert "Authorization" not in request.headers
    assert request.url.params["ref"] == settings.GITHUB_DEFAULT_BRANCH


@pytest.mark.anyio
async def test_listing_a_file_path_returns_single_entry(static_repo: FakeGitHub) -> None:
    files = await static_repo.client().list_directory("acme", "widgets", "index.html")

    assert len(files) == 1
    assert files[0].path == "index.html"
    assert files[0].download_url == content_url("index.html")


@pytest.mark.anyio
async def test_browse_directories_keeps_only_directories(framework_repo: FakeGitHub) -> None:
    directories = await framework_repo.client().browse_directories("acme", "widgets", "demo/src")

    assert [d.name for d in directories] == ["app", "styles"]
    assert all(d.download_url is None for d in directories)


@pytest.mark.anyio
async def test_missing_owner_is_rejected_before_any_request(static_repo: FakeGitHub) -> None:
    with pytest.raises(ValueError):
        await static_repo.client().list_directory("", "widgets")

    assert static_repo.requests == []


@pytest.mark.anyio
@pytest.mark.parametrize(
    ("status", "error_class"),
    [(404, RemoteNotFoundError), (403, RateLimitedError), (429, RateLimitedError), (500, RemoteTransportError)],
)
async def test_listing_status_codes_map_to_typed_errors(status: int, error_class: type) -> None:
    transport = httpx.MockTransport(lambda request: httpx.Response(status, json={"message": "nope"}))
    client = GitHubClient(DirectTransport(api_url=API_URL, http_transport=transport))

    with pytest.raises(error_class):
        await client.list_directory("acme", "widgets", "components/hero")


@pytest.mark.anyio
async def test_rate_limit_message_suggests_a_token() -> None:
    transport = httpx.MockTransport(lambda request: httpx.Response(403))
    client = GitHubClient(DirectTransport(api_url=API_URL, http_transport=transport))

    with pytest.raises(RateLimitedError) as excinfo:
        await client.list_directory("acme", "widgets")

    assert "Try adding a GitHub token" in excinfo.value.message


@pytest.mark.anyio
async def test_upstream_status_is_kept_on_transport_errors() -> None:
    transport = httpx.MockTransport(lambda request: httpx.Response(502, text="bad gateway"))
    client = GitHubClient(DirectTransport(api_url=API_URL, http_transport=transport))

    with pytest.raises(RemoteTransportError) as excinfo:
        await client.list_directory("acme", "widgets")

    assert excinfo.value.upstream_status == 502
    assert excinfo.value.status_code == 502


@pytest.mark.anyio
async def test_malformed_listing_body_is_a_transport_error() -> None:
    transport = httpx.MockTransport(lambda request: httpx.Response(200, text="<html>oops</html>"))
    client = GitHubClient(DirectTransport(api_url=API_URL, http_transport=transport))

    with pytest.raises(RemoteTransportError):
        await client.list_directory("acme", "widgets")


@pytest.mark.anyio
async def test_network_failure_is_a_transport_error() -> None:
    def _boom(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    client = GitHubClient(DirectTransport(api_url=API_URL, http_transport=httpx.MockTransport(_boom)))

    with pytest.raises(RemoteTransportError):
        await client.list_directory("acme", "widgets")


@pytest.mark.anyio
async def test_fetch_file_content_returns_raw_text(static_repo: FakeGitHub) -> None:
    text = await static_repo.client().fetch_file_content(content_url("index.html"))

    assert text == "<div>{{title}}</div>"


@pytest.mark.anyio
async def test_fetch_from_untrusted_host_never_leaves_the_process(static_repo: FakeGitHub) -> None:
    with pytest.raises(UntrustedContentURLError):
        await static_repo.client().fetch_file_content("https://evil.example/index.html")

    assert static_repo.requests == []


@pytest.mark.anyio
async def test_proxy_transport_uses_browse_and_content_endpoints() -> None:
    seen = []

    def _proxy(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        seen.append((request.method, request.url.path, body))
        if request.url.path == "/api/github/browse":
            return httpx.Response(
                200,
                json={
                    "success": True,
                    "files": [
                        {"name": "src", "path": "src", "type": "dir", "download_url": None},
                        {"name": "package.json", "path": "package.json", "type": "file",
                         "download_url": content_url("package.json")},
                    ],
                },
            )
        return httpx.Response(200, json={"success": True, "content": "{}"})

    client = GitHubClient(
        ProxyTransport(base_url="https://builder.example/", http_transport=httpx.MockTransport(_proxy))
    )

    files = await client.list_directory("acme", "widgets", "demo", "main")
    text = await client.fetch_file_content(content_url("package.json"))

    assert [(f.name, f.kind) for f in files] == [("src", "directory"), ("package.json", "file")]
    assert text == "{}"
    assert seen[0] == (
        "POST",
        "/api/github/browse",
        {"owner": "acme", "repo": "widgets", "path": "demo", "branch": "main"},
    )
    assert seen[1] == ("POST", "/api/github/content", {"url": content_url("package.json")})


@pytest.mark.anyio
async def test_proxy_transport_maps_error_statuses() -> None:
    def _proxy(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/api/github/browse":
            return httpx.Response(404, json={"error": "Repository or path not found"})
        return httpx.Response(400, json={"error": "Invalid URL domain"})

    client = GitHubClient(
        ProxyTransport(base_url="https://builder.example", http_transport=httpx.MockTransport(_proxy))
    )

    with pytest.raises(RemoteNotFoundError):
        await client.list_directory("acme", "widgets", "missing")
    with pytest.raises(UntrustedContentURLError):
        await client.fetch_file_content("https://evil.example/x")


def test_create_github_client_follows_transport_setting(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(settings, "GITHUB_TRANSPORT", "auto")
    monkeypatch.setattr(settings, "GITHUB_PROXY_URL", "")
    monkeypatch.setattr(settings, "GITHUB_TOKEN", "server-token")

    direct = create_github_client()
    assert isinstance(direct.transport, DirectTransport)
    assert direct.transport.token == "server-token"
    assert create_github_client(token="user-token").transport.token == "user-token"

    monkeypatch.setattr(settings, "GITHUB_PROXY_URL", "https://builder.example")
    proxied = create_github_client()
    assert isinstance(proxied.transport, ProxyTransport)
    assert proxied.transport.base_url == "https://builder.example"
