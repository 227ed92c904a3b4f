"""
Static live preview: substituted HTML + component CSS in a sandboxed document.
"""
from typing import Dict, Mapping, Optional, Tuple

from bs4 import BeautifulSoup

from component_engine.logging_config import logger
from component_engine.services.preview_surface import PreviewSurface
from component_engine.services.template_engine import substitute


IDLE = "idle"
RENDERING = "rendering"
RENDERED = "rendered"

BASE_RESET = """/* Base reset */
body { margin: 0; font-family: sans-serif; }
* { box-sizing: border-box; }"""


def split_full_document(html: str) -> Tuple[str, str]:
    """
    Reduce a full HTML document to its body markup.

    Returns (body_markup, inline_css). Fragments come back unchanged with
    no extra CSS.
    """
    if "<body" not in html.lower():
        return html, ""

    soup = BeautifulSoup(html, "html.parser")
    body = soup.body
    if body is None:
        return html, ""

    inline_css = "\n".join(style.get_text() for style in soup.find_all("style"))
    for style in body.find_all("style"):
        style.decompose()
    return body.decode_contents(), inline_css


def build_static_document(html: str, css: str, bindings: Optional[Mapping[str, str]] = None) -> str:
    """Full isolated document: base reset, component CSS, substituted body"""
    body, inline_css = split_full_document(substitute(html, bindings or {}))
    styles = "\n".join(part for part in (BASE_RESET, css, inline_css) if part)
    return (
        "<!DOCTYPE html>\n"
        "<html>\n"
        "<head>\n"
        '<meta charset="UTF-8">\n'
        "<style>\n"
        f"{styles}\n"
        "</style>\n"
        "</head>\n"
        "<body>\n"
        f"{body}\n"
        "</body>\n"
        "</html>\n"
    )


class StaticPreviewRenderer:
    """
    Renders template previews into a surface.

    Idle -> Rendering -> Rendered; any input change renders again from
    scratch (full document replace, never a patch).
    """

    def __init__(self, surface: Optional[PreviewSurface] = None):
        self.surface = surface
        self.state = IDLE
        self.html = ""
        self.css = ""
        self.bindings: Dict[str, str] = {}

    def mount(self, surface: PreviewSurface) -> None:
        self.surface = surface

    async def render(
        self,
        html: str,
        css: str,
        bindings: Optional[Mapping[str, str]] = None,
    ) -> Optional[str]:
        """Render and return the written document (None when no surface is mounted)"""
        self.html, self.css, self.bindings = html, css, dict(bindings or {})
        if self.surface is None:
            logger.debug("Preview surface not mounted, skipping render")
            return None

        self.state = RENDERING
        document = build_static_document(self.html, self.css, self.bindings)
        try:
            await self.surface.write(document)
        except Exception:
            # update() renders again from IDLE
            self.state = IDLE
            raise
        self.state = RENDERED
        return document

    async def update(
        self,
        html: Optional[str] = None,
        css: Optional[str] = None,
        bindings: Optional[Mapping[str, str]] = None,
    ) -> Optional[str]:
        """Re-render when any input changed"""
        next_html = self.html if html is None else html
        next_css = self.css if css is None else css
        next_bindings = self.bindings if bindings is None else dict(bindings)
        unchanged = (
            self.state == RENDERED
            and next_html == self.html
            and next_css == self.css
            and next_bindings == self.bindings
        )
        if unchanged:
            return None
        return await self.render(next_html, next_css, next_bindings)
