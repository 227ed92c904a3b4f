"""
GitHub source client.

One client, two interchangeable transports:
- DirectTransport calls the GitHub contents API (optionally with a token)
- ProxyTransport goes through the /api/github/* proxy so the token stays server-side

Both normalize listings into RemoteFile entries and raise the same typed errors,
so callers never need to know which one is in use.
"""
import re
from typing import Any, Dict, List, Optional
from urllib.parse import urlparse

import httpx

from component_engine.config import settings
from component_engine.errors import (
    RateLimitedError,
    RemoteNotFoundError,
    RemoteTransportError,
    UntrustedContentURLError,
)
from component_engine.logging_config import logger
from component_engine.models import RemoteFile, RepositoryReference


USER_AGENT = "component-engine"

# https://github.com/<owner>/<repo>[.git][/...]
_URL_PATTERN = re.compile(r"github\.com/([^/\s?#]+)/([^/\s?#]+)")
# <owner>/<repo>
_SHORT_PATTERN = re.compile(r"^([^/\s]+)/([^/\s]+)$")


def parse_repository_reference(text: str) -> Optional[RepositoryReference]:
    """
    Parse a repository URL or an owner/repo shorthand.

    Returns None for anything else; an unparseable reference is an expected
    outcome the caller checks, not an error.
    """
    if not text:
        return None
    value = text.strip()

    match = _URL_PATTERN.search(value)
    if match:
        repo = match.group(2)
        if repo.endswith(".git"):
            repo = repo[:-4]
        return RepositoryReference(owner=match.group(1), repo=repo) if repo else None

    match = _SHORT_PATTERN.match(value)
    if match:
        return RepositoryReference(owner=match.group(1), repo=match.group(2))

    return None


def is_trusted_content_url(url: str, trusted_hosts: Optional[List[str]] = None) -> bool:
    """True when url points at one of the known raw content hosts"""
    hosts = trusted_hosts if trusted_hosts is not None else settings.trusted_content_hosts
    try:
        parsed = urlparse(url)
    except ValueError:
        return False
    if parsed.scheme not in ("http", "https") or not parsed.hostname:
        return False
    hostname = parsed.hostname.lower()
    return any(hostname == host or hostname.endswith("." + host) for host in hosts)


def _raise_for_listing_status(response: httpx.Response, owner: str, repo: str, path: str) -> None:
    if response.is_success:
        return

    status = response.status_code
    logger.warning(
        "Directory listing failed",
        status=status,
        owner=owner,
        repo=repo,
        path=path,
    )
    if status == 404:
        raise RemoteNotFoundError(f"Repository or path not found: {owner}/{repo}/{path}".rstrip("/"))
    if status in (403, 429):
        raise RateLimitedError(
            "Rate limit exceeded or access forbidden. Try adding a GitHub token."
        )
    raise RemoteTransportError(f"GitHub API error (status {status})", upstream_status=status)


def _json_body(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError as e:
        raise RemoteTransportError(f"Malformed response from GitHub: {e}") from e


class DirectTransport:
    """Talks to the GitHub REST API directly"""

    name = "direct"

    def __init__(
        self,
        token: Optional[str] = None,
        api_url: Optional[str] = None,
        timeout: Optional[float] = None,
        http_transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.token = token
        self.api_url = (api_url or settings.GITHUB_API_URL).rstrip("/")
        self.timeout = timeout or settings.HTTP_TIMEOUT
        self._http_transport = http_transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self._http_transport)

    def _headers(self) -> Dict[str, str]:
        headers = {
            "Accept": "application/vnd.github.v3+json",
            "User-Agent": USER_AGENT,
        }
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    async def list_entries(self, owner: str, repo: str, path: str, branch: str) -> List[Dict[str, Any]]:
        url = f"{self.api_url}/repos/{owner}/{repo}/contents/{path}"
        try:
            async with self._client() as client:
                response = await client.get(url, params={"ref": branch}, headers=self._headers())
        except httpx.HTTPError as e:
            raise RemoteTransportError(f"GitHub request failed: {e}") from e

        _raise_for_listing_status(response, owner, repo, path)
        data = _json_body(response)
        # A path that resolves to a single file comes back as one object
        return data if isinstance(data, list) else [data]

    async def fetch_content(self, url: str) -> str:
        if not is_trusted_content_url(url):
            raise UntrustedContentURLError(f"Refusing to fetch content from untrusted URL: {url}")

        try:
            async with self._client() as client:
                response = await client.get(url, headers={"User-Agent": USER_AGENT})
        except httpx.HTTPError as e:
            raise RemoteTransportError(f"Failed to fetch file: {e}") from e

        if not response.is_success:
            raise RemoteTransportError(
                f"Failed to fetch file (status {response.status_code})",
                upstream_status=response.status_code,
            )
        return response.text


class ProxyTransport:
    """Goes through the /api/github proxy endpoints of a deployment"""

    name = "proxy"

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        http_transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (base_url if base_url is not None else settings.GITHUB_PROXY_URL).rstrip("/")
        self.timeout = timeout or settings.HTTP_TIMEOUT
        self._http_transport = http_transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self._http_transport)

    async def _post(self, endpoint: str, payload: Dict[str, Any]) -> httpx.Response:
        try:
            async with self._client() as client:
                return await client.post(f"{self.base_url}/api/github/{endpoint}", json=payload)
        except httpx.HTTPError as e:
            raise RemoteTransportError(f"Proxy request failed: {e}") from e

    async def list_entries(self, owner: str, repo: str, path: str, branch: str) -> List[Dict[str, Any]]:
        response = await self._post(
            "browse",
            {"owner": owner, "repo": repo, "path": path, "branch": branch},
        )
        _raise_for_listing_status(response, owner, repo, path)
        data = _json_body(response)
        if not isinstance(data, dict) or not data.get("success"):
            raise RemoteTransportError("Proxy returned an unexpected listing payload")
        return data.get("files", [])

    async def fetch_content(self, url: str) -> str:
        response = await self._post("content", {"url": url})
        if response.status_code == 400:
            raise UntrustedContentURLError(f"Proxy refused URL: {url}")
        if not response.is_success:
            raise RemoteTransportError(
                f"Failed to fetch file (status {response.status_code})",
                upstream_status=response.status_code,
            )
        data = _json_body(response)
        if not isinstance(data, dict) or "content" not in data:
            raise RemoteTransportError("Proxy returned an unexpected content payload")
        return data["content"]


class GitHubClient:
    """Read-only access to component sources on GitHub"""

    def __init__(self, transport=None):
        self.transport = transport or DirectTransport(token=settings.GITHUB_TOKEN or None)

    async def list_directory(
        self,
        owner: str,
        repo: str,
        path: str = "",
        branch: Optional[str] = None,
    ) -> List[RemoteFile]:
        """
        List a repository directory.

        Args:
            owner: Repository owner (non-empty)
            repo: Repository name (non-empty)
            path: Directory path, empty for the repository root
            branch: Git ref, defaults to the configured default branch

        Returns:
            Entries of the directory, or a single entry when path is a file
        """
        if not owner or not repo:
            raise ValueError("owner and repo are required")
        branch = branch or settings.GITHUB_DEFAULT_BRANCH
        path = path.strip("/")

        logger.info(
            "Listing directory",
            transport=self.transport.name,
            owner=owner,
            repo=repo,
            path=path,
            branch=branch,
        )
        entries = await self.transport.list_entries(owner, repo, path, branch)
        return [RemoteFile.from_github(entry) for entry in entries]

    async def fetch_file_content(self, url: str) -> str:
        logger.debug("Fetching file content", transport=self.transport.name, url=url)
        return await self.transport.fetch_content(url)

    async def browse_directories(
        self,
        owner: str,
        repo: str,
        path: str = "",
        branch: Optional[str] = None,
    ) -> List[RemoteFile]:
        """Directory entries only, for drill-down browsing"""
        entries = await self.list_directory(owner, repo, path, branch)
        return [entry for entry in entries if entry.is_directory]


def create_github_client(
    token: Optional[str] = None,
    http_transport: Optional[httpx.AsyncBaseTransport] = None,
) -> GitHubClient:
    """Build a client whose transport follows the deployment settings"""
    if settings.resolved_transport == "proxy":
        return GitHubClient(ProxyTransport(http_transport=http_transport))
    return GitHubClient(
        DirectTransport(token=token or settings.GITHUB_TOKEN or None, http_transport=http_transport)
    )
