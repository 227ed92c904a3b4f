"""
Component builder session: the consumer side of the pipeline.

Holds the currently loaded component and its preview bindings. A new load
cancels the one still in flight, and a failed load keeps the previous
component so the user can retry.
"""
import asyncio
from typing import Dict, List, Optional

from component_engine.errors import ComponentEngineError
from component_engine.logging_config import logger
from component_engine.models import (
    ParsedComponent,
    PreviewResult,
    SourceLocation,
    UploadedFile,
)
from component_engine.services.component_parser import ComponentParser
from component_engine.services.dynamic_preview import DynamicPreviewRenderer
from component_engine.services.folder_parser import parse_uploaded_folder
from component_engine.services.github_client import GitHubClient
from component_engine.services.preview_surface import PreviewSurface, SrcdocSurface
from component_engine.services.static_preview import StaticPreviewRenderer
from component_engine.services.template_engine import unresolved_placeholders


class BuilderSession:
    def __init__(self, client: GitHubClient, surface: Optional[PreviewSurface] = None):
        self.parser = ComponentParser(client)
        self.client = client
        self.surface = surface or SrcdocSurface()
        self.component: Optional[ParsedComponent] = None
        self.bindings: Dict[str, str] = {}
        self.last_error: Optional[ComponentEngineError] = None
        self._load_task: Optional[asyncio.Task] = None
        self._static = StaticPreviewRenderer(self.surface)
        self._dynamic = DynamicPreviewRenderer(self.surface)

    async def load_from_github(self, location: SourceLocation) -> ParsedComponent:
        """List the location, then parse it; supersedes any running load"""
        return await self._run_load(self._parse_location(location))

    async def load_from_folder(self, files: List[UploadedFile]) -> ParsedComponent:
        return await self._run_load(self._parse_folder(files))

    async def _parse_location(self, location: SourceLocation) -> ParsedComponent:
        files = await self.client.list_directory(
            location.owner, location.repo, location.path, location.branch
        )
        return await self.parser.parse(files, location)

    async def _parse_folder(self, files: List[UploadedFile]) -> ParsedComponent:
        return parse_uploaded_folder(files)

    async def _run_load(self, coro) -> ParsedComponent:
        if self._load_task is not None and not self._load_task.done():
            logger.info("Cancelling superseded component load")
            self._load_task.cancel()

        task = asyncio.ensure_future(coro)
        self._load_task = task
        try:
            component = await task
        except asyncio.CancelledError:
            if task is self._load_task or asyncio.current_task().cancelling():
                raise
            # Superseded callers settle with the newest load
            return await self._follow_latest()
        except ComponentEngineError as e:
            # Keep whatever was loaded before
            self.last_error = e
            logger.warning("Component load failed", error=e.message, error_type=e.error_type)
            raise

        if task is not self._load_task:
            # A newer load started while this one was finishing
            return self.component or component

        self.last_error = None
        self.component = component
        self.bindings = dict(component.variables)
        logger.info("Component loaded", name=component.name, variables=len(component.variables))
        return component

    async def _follow_latest(self) -> ParsedComponent:
        while True:
            latest = self._load_task
            try:
                # The newest load's own caller owns its cancellation
                await asyncio.shield(latest)
            except asyncio.CancelledError:
                if asyncio.current_task().cancelling() or latest is self._load_task:
                    raise
                continue
            except ComponentEngineError:
                if latest is self._load_task:
                    raise
                continue
            if latest is self._load_task:
                return latest.result()

    def set_binding(self, name: str, value: str) -> None:
        self.bindings[name] = value

    def unresolved(self) -> List[str]:
        if self.component is None:
            return []
        return unresolved_placeholders(self.component.html, self.bindings)

    async def preview(self) -> Optional[str]:
        """Static preview of the current component with the current bindings"""
        if self.component is None:
            return None
        return await self._static.render(self.component.html, self.component.css, self.bindings)

    async def preview_dynamic(self) -> Optional[PreviewResult]:
        """Runtime preview of the unconverted component source"""
        if self.component is None or not self.component.script:
            return None
        return await self._dynamic.render(self.component.script, self.component.css)
