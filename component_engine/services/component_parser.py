"""
Component parser.

Turns a GitHub directory listing into a ParsedComponent, using one of two
strategies picked by the structure validator:

1. Static: index.html + style.css (+ optional script.js, config.json, thumbnail)
2. React/Vite: component file under src/ + stylesheets from src/styles/
"""
import asyncio
import json
from typing import Iterable, List, Optional, Sequence, Tuple

from pydantic import ValidationError

from component_engine.errors import (
    ComponentEngineError,
    ComponentParseError,
    RemoteNotFoundError,
    StructuralInvalidError,
)
from component_engine.logging_config import logger
from component_engine.models import (
    ComponentConfig,
    ParsedComponent,
    RemoteFile,
    SourceLocation,
    normalize_category,
)
from component_engine.services.github_client import GitHubClient
from component_engine.services.source_converter import convert_source_to_html
from component_engine.services.structure_validator import (
    CONFIG_NAME,
    CSS_SUFFIXES,
    HTML_SUFFIXES,
    IMAGE_SUFFIXES,
    SOURCE_DIR_NAME,
    validate_structure,
)
from component_engine.services.variable_detector import (
    detect_source_variables,
    detect_variables,
)


DEFAULT_COMPONENT_NAME = "Untitled Component"

HTML_PREFERRED = ("index.html", "component.html")
CSS_PREFERRED = ("style.css", "styles.css")
SCRIPT_PREFERRED = ("script.js", "index.js")
SCRIPT_SUFFIXES = (".js",)
THUMBNAIL_PREFERRED = ("thumbnail.png", "preview.png")

# Searched in order, relative to the component base path
COMPONENT_DIR_CANDIDATES = (
    "src/app/components",
    "src/components",
    "src/app",
    "src",
)
COMPONENT_SUFFIXES = (".tsx", ".jsx")
BARREL_NAMES = ("index.tsx", "index.jsx")
EXCLUDED_SUBPATHS = ("/ui/", "/figma/")
STYLES_DIR_NAME = "styles"

DEFAULT_STYLESHEET = (
    "/* No CSS files found - using defaults */\n"
    "* { box-sizing: border-box; }\n"
    "body { margin: 0; padding: 0; }"
)


def join_path(base: str, sub: str) -> str:
    """Join repository paths; an empty base means the repository root"""
    base = (base or "").strip().strip("/")
    sub = (sub or "").strip().strip("/")
    if not base:
        return sub
    if not sub:
        return base
    return f"{base}/{sub}"


def select_file(
    files: Iterable,
    preferred_names: Sequence[str],
    suffixes: Sequence[str],
):
    """
    Pick a file by priority: each preferred name in order, then the first
    file with a matching suffix. Works on anything with `name` (and `kind`).
    """
    candidates = [f for f in files if getattr(f, "kind", "file") == "file"]
    for preferred in preferred_names:
        for candidate in candidates:
            if candidate.name == preferred:
                return candidate
    for candidate in candidates:
        if candidate.name.lower().endswith(tuple(suffixes)):
            return candidate
    return None


def parse_config(text: Optional[str]) -> ComponentConfig:
    """config.json is optional metadata: anything unreadable means no config"""
    if not text or not text.strip():
        return ComponentConfig()
    try:
        return ComponentConfig.model_validate(json.loads(text))
    except (ValueError, ValidationError) as e:
        logger.warning("Failed to parse config.json, using defaults", error=str(e))
        return ComponentConfig()


def strip_component_suffix(filename: str) -> str:
    for suffix in COMPONENT_SUFFIXES:
        if filename.endswith(suffix):
            return filename[: -len(suffix)]
    return filename


def pick_component_file(files: List[RemoteFile]) -> Optional[RemoteFile]:
    """Prefer a real component over the barrel index; skip ui/figma helpers"""
    eligible = [
        f for f in files
        if f.kind == "file" and f.name.endswith(COMPONENT_SUFFIXES)
    ]
    for entry in eligible:
        path = "/" + entry.path
        if entry.name.startswith("index"):
            continue
        if any(excluded in path for excluded in EXCLUDED_SUBPATHS):
            continue
        return entry
    for entry in eligible:
        if entry.name in BARREL_NAMES:
            return entry
    return None


class ComponentParser:
    """Parses component sources fetched through a GitHubClient"""

    def __init__(self, client: GitHubClient):
        self.client = client

    async def parse(
        self,
        files: List[RemoteFile],
        location: Optional[SourceLocation] = None,
    ) -> ParsedComponent:
        """
        Parse a component from its directory listing.

        Args:
            files: Listing of the component directory
            location: Where the listing came from; needed to browse deeper
                into React/Vite projects

        Raises:
            StructuralInvalidError: listing misses required files
            ComponentParseError: no usable component/HTML file
        """
        validation = validate_structure(files)
        if not validation.valid:
            raise StructuralInvalidError(validation)

        if validation.layout == "framework" and location is not None:
            return await self.parse_framework_component(location)
        return await self.parse_static_component(files)

    async def parse_static_component(self, files: List[RemoteFile]) -> ParsedComponent:
        html_file = select_file(files, HTML_PREFERRED, HTML_SUFFIXES)
        css_file = select_file(files, CSS_PREFERRED, CSS_SUFFIXES)
        script_file = select_file(files, SCRIPT_PREFERRED, SCRIPT_SUFFIXES)
        config_file = select_file(files, (CONFIG_NAME,), ())
        thumbnail_file = select_file(files, THUMBNAIL_PREFERRED, IMAGE_SUFFIXES)

        if not html_file or not css_file:
            raise ComponentParseError("Missing required files (HTML and CSS files are required)")
        if not html_file.download_url or not css_file.download_url:
            raise ComponentParseError("Missing required files (HTML and CSS files have no download URL)")

        logger.info(
            "Parsing static component",
            html=html_file.path,
            css=css_file.path,
            script=script_file.path if script_file else None,
            config=config_file.path if config_file else None,
        )

        html, css, script, config_text = await asyncio.gather(
            self.client.fetch_file_content(html_file.download_url),
            self.client.fetch_file_content(css_file.download_url),
            self._fetch_optional(script_file),
            self._fetch_optional(config_file),
            return_exceptions=True,
        )

        for required, entry in ((html, html_file), (css, css_file)):
            if isinstance(required, BaseException):
                logger.error("Required file fetch failed", path=entry.path, error=str(required))
                if isinstance(required, ComponentEngineError):
                    raise required
                raise ComponentParseError(f"Failed to fetch {entry.name}: {required}") from required

        script = self._optional_result(script, script_file)
        config = parse_config(self._optional_result(config_text, config_file))

        return ParsedComponent(
            name=config.name or DEFAULT_COMPONENT_NAME,
            category=normalize_category(config.category, default="other"),
            description=config.description,
            html=html,
            css=css,
            script=script or None,
            variables=config.variables if config.variables is not None else detect_variables(html),
            thumbnail=config.thumbnail or (thumbnail_file.download_url if thumbnail_file else None),
            source_kind="static",
        )

    async def parse_framework_component(self, location: SourceLocation) -> ParsedComponent:
        source_path = join_path(location.path, SOURCE_DIR_NAME)
        logger.info(
            "Parsing React component",
            owner=location.owner,
            repo=location.repo,
            source_path=source_path,
        )

        source_entries = await self._list_or_empty(location, source_path)
        component_file, component_source = await self._find_component_source(location)
        if component_file is None:
            raise ComponentParseError("No component file found in src/app/components/ or fallbacks")

        component_name = strip_component_suffix(component_file.name)
        css = await self._collect_styles(location, source_entries)
        config = await self._fetch_root_config(location)

        html = convert_source_to_html(component_source, component_name)
        variables = (
            config.variables
            if config.variables is not None
            else detect_source_variables(component_source)
        )
        name = config.name or component_name

        return ParsedComponent(
            name=name,
            category=normalize_category(config.category, default="hero"),
            description=config.description or f"React component: {component_name}",
            html=html,
            css=css,
            script=component_source,
            variables=variables,
            thumbnail=config.thumbnail,
            source_kind="framework",
        )

    async def _find_component_source(
        self, location: SourceLocation
    ) -> Tuple[Optional[RemoteFile], str]:
        # Sequential on purpose: the first candidate with a component wins
        for candidate in COMPONENT_DIR_CANDIDATES:
            full_path = join_path(location.path, candidate)
            entries = await self._list_or_empty(location, full_path)
            component_file = pick_component_file(entries)
            if component_file is None or not component_file.download_url:
                continue
            logger.info("Component file found", path=component_file.path)
            source = await self.client.fetch_file_content(component_file.download_url)
            return component_file, source
        return None, ""

    async def _collect_styles(self, location: SourceLocation, source_entries: List[RemoteFile]) -> str:
        styles_dir = next(
            (e for e in source_entries if e.is_directory and e.name == STYLES_DIR_NAME),
            None,
        )
        if styles_dir is None:
            return DEFAULT_STYLESHEET

        style_entries = await self._list_or_empty(location, styles_dir.path)
        stylesheets = [
            e for e in style_entries
            if e.kind == "file" and e.name.lower().endswith(CSS_SUFFIXES) and e.download_url
        ]
        contents = [await self.client.fetch_file_content(e.download_url) for e in stylesheets]
        css = "\n\n".join(contents)
        return css if css.strip() else DEFAULT_STYLESHEET

    async def _fetch_root_config(self, location: SourceLocation) -> ComponentConfig:
        root_entries = await self._list_or_empty(location, location.path)
        config_file = next(
            (e for e in root_entries if e.kind == "file" and e.name == CONFIG_NAME),
            None,
        )
        if config_file is None or not config_file.download_url:
            return ComponentConfig()
        try:
            text = await self.client.fetch_file_content(config_file.download_url)
        except ComponentEngineError as e:
            logger.warning("Failed to fetch config.json", error=e.message)
            return ComponentConfig()
        return parse_config(text)

    async def _list_or_empty(self, location: SourceLocation, path: str) -> List[RemoteFile]:
        try:
            return await self.client.list_directory(
                location.owner, location.repo, path, location.branch
            )
        except RemoteNotFoundError:
            logger.debug("Directory not found, skipping", path=path)
            return []

    async def _fetch_optional(self, entry: Optional[RemoteFile]) -> str:
        if entry is None or not entry.download_url:
            return ""
        return await self.client.fetch_file_content(entry.download_url)

    @staticmethod
    def _optional_result(result, entry: Optional[RemoteFile]) -> str:
        if isinstance(result, BaseException):
            logger.warning(
                "Optional file fetch failed",
                path=entry.path if entry else None,
                error=str(result),
            )
            return ""
        return result or ""
