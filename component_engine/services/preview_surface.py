"""
Isolated rendering surfaces for component previews.

A surface is the sandboxed iframe the preview is written into. Every write
replaces the whole document. Surfaces that can be inspected (a live browser
page) also report the state published by the preview bootstrap script.
"""
import html as html_lib
from typing import Any, Dict, Optional


# iframe sandbox: scripts run, no top-level navigation, no same-origin access
SANDBOX_POLICY = "allow-scripts"

# Global the dynamic preview bootstrap publishes its state on
PREVIEW_STATE_GLOBAL = "__componentPreview"


class PreviewSurface:
    """Base class for rendering surfaces"""

    # True when read_state() reflects what actually runs inside the surface
    observable = False

    async def write(self, document: str) -> None:
        raise NotImplementedError

    async def read_state(self) -> Optional[Dict[str, Any]]:
        return None


class SrcdocSurface(PreviewSurface):
    """
    Holds the document for an <iframe srcdoc> rendered by the client.

    Nothing executes server-side, so the surface is not observable.
    """

    def __init__(self):
        self.document: Optional[str] = None
        self.writes = 0

    async def write(self, document: str) -> None:
        self.document = document
        self.writes += 1

    def to_iframe(self, title: str = "Component Preview") -> str:
        if self.document is None:
            return ""
        return (
            f'<iframe title="{html_lib.escape(title)}" sandbox="{SANDBOX_POLICY}" '
            f'srcdoc="{html_lib.escape(self.document, quote=True)}"></iframe>'
        )


class PageSurface(PreviewSurface):
    """
    Wraps a browser page (e.g. a Playwright Page) that loads the preview.

    The page only needs async set_content(html) and evaluate(expression).
    """

    observable = True

    def __init__(self, page):
        self.page = page

    async def write(self, document: str) -> None:
        await self.page.set_content(document, wait_until="domcontentloaded")

    async def read_state(self) -> Optional[Dict[str, Any]]:
        return await self.page.evaluate(f"() => window.{PREVIEW_STATE_GLOBAL} || null")
