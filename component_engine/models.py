"""
Data models shared by the parsing pipeline, the preview renderers and the API
"""
from typing import Any, Dict, List, Literal, Optional
from pydantic import BaseModel, ConfigDict, Field, model_validator

from component_engine.config import settings


COMPONENT_CATEGORIES = ("hero", "features", "pricing", "testimonials", "footer", "other")


def normalize_category(value: Optional[str], default: str = "other") -> str:
    """Map a free-text category onto the fixed taxonomy (case-insensitive)"""
    if not value:
        return default
    candidate = value.strip().lower()
    return candidate if candidate in COMPONENT_CATEGORIES else "other"


class RemoteFile(BaseModel):
    """One entry of a remote directory listing"""

    model_config = ConfigDict(frozen=True)

    name: str
    path: str
    kind: Literal["file", "directory"]
    download_url: Optional[str] = None
    size: Optional[int] = None
    sha: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def _directories_have_no_content_url(cls, data: Any) -> Any:
        if isinstance(data, dict) and data.get("kind") == "directory" and data.get("download_url"):
            data = {**data, "download_url": None}
        return data

    @property
    def is_directory(self) -> bool:
        return self.kind == "directory"

    @classmethod
    def from_github(cls, entry: Dict[str, Any]) -> "RemoteFile":
        """Build from a GitHub contents API entry ({name, path, type, download_url, ...})"""
        kind = "directory" if entry.get("type") == "dir" else "file"
        return cls(
            name=entry["name"],
            path=entry.get("path", entry["name"]),
            kind=kind,
            download_url=entry.get("download_url"),
            size=entry.get("size"),
            sha=entry.get("sha"),
        )

    def to_github(self) -> Dict[str, Any]:
        """Inverse of from_github, used by the proxy response contract"""
        return {
            "name": self.name,
            "path": self.path,
            "sha": self.sha,
            "size": self.size,
            "download_url": self.download_url,
            "type": "dir" if self.is_directory else "file",
        }


class RepositoryReference(BaseModel):
    owner: str
    repo: str


class SourceLocation(BaseModel):
    """Where a component lives on the remote host"""

    owner: str = Field(min_length=1)
    repo: str = Field(min_length=1)
    path: str = ""
    branch: str = Field(default_factory=lambda: settings.GITHUB_DEFAULT_BRANCH)
    token: Optional[str] = None


class ComponentConfig(BaseModel):
    """Optional config.json metadata shipped next to a component"""

    name: Optional[str] = None
    category: Optional[str] = None
    description: Optional[str] = None
    variables: Optional[Dict[str, str]] = None
    thumbnail: Optional[str] = None
    dependencies: List[str] = []


class ParsedComponent(BaseModel):
    """Normalized template produced by every parsing strategy"""

    name: str
    category: str = "other"
    description: Optional[str] = None
    html: str
    css: str
    script: Optional[str] = None
    variables: Dict[str, str] = {}
    thumbnail: Optional[str] = None
    source_kind: Literal["static", "framework"] = "static"

    def template_fields(self) -> Dict[str, Any]:
        """The three fields a stored template record keeps"""
        return {"html": self.html, "css": self.css, "variables": dict(self.variables)}


class ValidationResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    valid: bool
    errors: List[str] = []
    warnings: List[str] = []
    layout: Literal["static", "framework"] = "static"


class UploadedFile(BaseModel):
    """A file from a locally uploaded component folder"""

    path: str
    content: str

    @property
    def name(self) -> str:
        return self.path.rsplit("/", 1)[-1]


class PreviewError(BaseModel):
    kind: Literal["runtime_timeout", "component_not_found", "compile_error"]
    title: str
    message: str
    stack: Optional[str] = None
    excerpt: Optional[str] = None


class PreviewResult(BaseModel):
    state: str
    document: Optional[str] = None
    error: Optional[PreviewError] = None
