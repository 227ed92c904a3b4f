from __future__ import annotations

from typing import Dict, Iterable, List, Optional

import httpx
import pytest

from component_engine.main import app
from component_engine.services.github_client import DirectTransport, GitHubClient

API_URL = "https://api.github.com"
OWNER = "acme"
REPO = "widgets"
BRANCH = "main"
RAW_URL = f"https://raw.githubusercontent.com/{OWNER}/{REPO}/{BRANCH}"

HERO_SOURCE = """import { motion } from "motion/react";

export function Hero({ title, description }: HeroProps) {
  return (
    <section className="hero">
      <h1>{title}</h1>
      <p>{description}</p>
    </section>
  );
}
"""


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


class FakeGitHub:
    """In-memory repository served through httpx.MockTransport.

    `tree` maps file paths to contents; directories are implied by the paths.
    Paths listed in `broken` answer 500 when their content is fetched.
    """

    def __init__(self, tree: Dict[str, str], broken: Iterable[str] = ()) -> None:
        self.tree = dict(tree)
        self.broken = set(broken)
        self.requests: List[httpx.Request] = []

    def _file_entry(self, path: str) -> dict:
        return {
            "name": path.rsplit("/", 1)[-1],
            "path": path,
            "sha": f"sha-{path}",
            "size": len(self.tree[path]),
            "type": "file",
            "download_url": f"{RAW_URL}/{path}",
        }

    def _dir_entry(self, path: str) -> dict:
        return {
            "name": path.rsplit("/", 1)[-1],
            "path": path,
            "sha": f"sha-{path}",
            "size": 0,
            "type": "dir",
            "download_url": None,
        }

    def listing(self, path: str) -> Optional[List[dict]]:
        if path in self.tree:
            return [self._file_entry(path)]
        prefix = f"{path}/" if path else ""
        children: Dict[str, str] = {}
        for full_path in self.tree:
            if not full_path.startswith(prefix):
                continue
            head, separator, _ = full_path[len(prefix):].partition("/")
            children[prefix + head] = "dir" if separator else "file"
        if path and not children:
            return None
        return [
            self._dir_entry(child) if kind == "dir" else self._file_entry(child)
            for child, kind in sorted(children.items())
        ]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.host == "api.github.com":
            contents_prefix = f"/repos/{OWNER}/{REPO}/contents"
            if not request.url.path.startswith(contents_prefix):
                return httpx.Response(404, json={"message": "Not Found"})
            path = request.url.path[len(contents_prefix):].strip("/")
            entries = self.listing(path)
            if entries is None:
                return httpx.Response(404, json={"message": "Not Found"})
            if path in self.tree:
                return httpx.Response(200, json=entries[0])
            return httpx.Response(200, json=entries)

        if request.url.host == "raw.githubusercontent.com":
            path = request.url.path[len(f"/{OWNER}/{REPO}/{BRANCH}/"):]
            if path in self.broken:
                return httpx.Response(500, text="upstream exploded")
            if path not in self.tree:
                return httpx.Response(404, text="404: Not Found")
            return httpx.Response(200, text=self.tree[path])

        return httpx.Response(404)

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def client(self, token: Optional[str] = None) -> GitHubClient:
        return GitHubClient(
            DirectTransport(token=token, api_url=API_URL, http_transport=self.transport())
        )


def content_url(path: str) -> str:
    return f"{RAW_URL}/{path}"


@pytest.fixture
def static_repo() -> FakeGitHub:
    return FakeGitHub(
        {
            "index.html": "<div>{{title}}</div>",
            "style.css": ".x{color:red}",
        }
    )


@pytest.fixture
def framework_repo() -> FakeGitHub:
    return FakeGitHub(
        {
            "demo/package.json": '{"name": "demo"}',
            "demo/src/main.tsx": "import App from './app/App';",
            "demo/src/app/components/Hero.tsx": HERO_SOURCE,
            "demo/src/app/components/index.tsx": "export * from './Hero';",
            "demo/src/app/components/ui/button.tsx": "export const Button = () => null;",
            "demo/src/styles/index.css": "@tailwind base;",
            "demo/src/styles/theme.css": ":root { --brand: #f60; }",
        }
    )


@pytest.fixture
def clean_overrides():
    yield app.dependency_overrides
    app.dependency_overrides.clear()
