"""
GitHub proxy API router.

Server-side indirection for the GitHub contents API so the token never
reaches the browser. Responses follow a small JSON contract:
{success: true, files|content} or {error} with a non-2xx status.
"""
from typing import Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from slowapi import Limiter
from slowapi.util import get_remote_address

from component_engine.config import settings
from component_engine.errors import (
    ComponentEngineError,
    MissingCredentialError,
    RateLimitedError,
    RemoteNotFoundError,
    RemoteTransportError,
)
from component_engine.logging_config import logger
from component_engine.services.github_client import (
    DirectTransport,
    GitHubClient,
    is_trusted_content_url,
)

router = APIRouter()
limiter = Limiter(key_func=get_remote_address)

TRUSTED_DOMAIN_MARKERS = ("githubusercontent.com", "github.com")


class BrowseRequest(BaseModel):
    owner: Optional[str] = None
    repo: Optional[str] = None
    path: str = ""
    branch: Optional[str] = None


class ContentRequest(BaseModel):
    url: Optional[str] = None


def get_upstream_client() -> GitHubClient:
    """Direct client carrying the server-side token"""
    return GitHubClient(DirectTransport(token=settings.GITHUB_TOKEN))


def _error(status_code: int, error: str, **extra) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": error, **extra})


def _require_token() -> None:
    if not settings.GITHUB_TOKEN:
        logger.error("GITHUB_TOKEN not configured")
        raise MissingCredentialError("GitHub token not configured on server")


@router.post("/browse")
@limiter.limit(settings.PROXY_RATE_LIMIT)
async def browse(
    request: Request,
    data: BrowseRequest,
    client: GitHubClient = Depends(get_upstream_client),
):
    """
    List a repository directory through the server token.

    Status codes: 400 missing owner/repo, 404 not found, 403 forbidden or
    rate limited, 500 token missing, upstream status passthrough otherwise.
    """
    if not data.owner or not data.repo:
        return _error(400, "Missing required fields: owner and repo")

    branch = data.branch or settings.GITHUB_DEFAULT_BRANCH
    try:
        _require_token()
        files = await client.list_directory(data.owner, data.repo, data.path, branch)
    except MissingCredentialError as e:
        return _error(e.status_code, e.message)
    except RemoteNotFoundError:
        return _error(404, "Repository or path not found", details=f"{data.owner}/{data.repo}/{data.path}")
    except RateLimitedError as e:
        return _error(403, "Rate limit exceeded or access forbidden", details=e.message)
    except RemoteTransportError as e:
        return _error(e.upstream_status or 502, "GitHub API error", status=e.upstream_status, details=e.message)

    logger.info("Proxy browse succeeded", owner=data.owner, repo=data.repo, path=data.path, count=len(files))
    return {"success": True, "files": [f.to_github() for f in files]}


@router.post("/content")
@limiter.limit(settings.PROXY_RATE_LIMIT)
async def content(
    request: Request,
    data: ContentRequest,
    client: GitHubClient = Depends(get_upstream_client),
):
    """Fetch raw file content from a trusted GitHub content host"""
    if not data.url:
        return _error(400, "Missing required field: url")

    if not any(marker in data.url for marker in TRUSTED_DOMAIN_MARKERS) or not is_trusted_content_url(data.url):
        logger.warning("Proxy refused untrusted URL", url=data.url)
        return _error(400, "Invalid URL domain")

    try:
        _require_token()
        text = await client.fetch_file_content(data.url)
    except RemoteTransportError as e:
        return _error(e.upstream_status or 502, "Failed to fetch file content", status=e.upstream_status)
    except ComponentEngineError as e:
        return _error(e.status_code, e.message)

    logger.info("Proxy content fetched", url=data.url, size=len(text))
    return {"success": True, "content": text}
