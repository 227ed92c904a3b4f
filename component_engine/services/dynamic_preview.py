"""
Dynamic live preview: runs the uploaded React component itself inside the iframe.

The source is compiled to a function object inside the sandboxed document
(React, ReactDOM and Framer Motion injected as arguments) and mounted into
#root. This isolates the component from host state only; code inside the
iframe can still reach the network and its own DOM.

States: idle -> waiting_for_runtime -> compiling -> rendered | errored
"""
import asyncio
import html as html_lib
import json
import re
from dataclasses import dataclass
from typing import Optional

from component_engine.config import settings
from component_engine.errors import ComponentLocateError
from component_engine.logging_config import logger
from component_engine.models import PreviewError, PreviewResult
from component_engine.services.preview_surface import PREVIEW_STATE_GLOBAL, PreviewSurface


IDLE = "idle"
WAITING_FOR_RUNTIME = "waiting_for_runtime"
COMPILING = "compiling"
RENDERED = "rendered"
ERRORED = "errored"

# States as published by the bootstrap script
_BOOTSTRAP_STATES = {
    "waiting": WAITING_FOR_RUNTIME,
    "compiling": COMPILING,
    "rendered": RENDERED,
    "errored": ERRORED,
}

EXCERPT_LENGTH = 200

_IMPORT_STATEMENT = re.compile(
    r"^[ \t]*import\s+['\"][^'\"]+['\"];?[ \t]*$"
    r"|^[ \t]*import\s+(?:type\s+)?[^;'\"]*?\bfrom\s*['\"][^'\"]+['\"];?[ \t]*$",
    re.MULTILINE,
)
_EXPORT_DEFAULT_IDENTIFIER = re.compile(r"^[ \t]*export\s+default\s+[A-Za-z_$][\w$]*\s*;?[ \t]*$", re.MULTILINE)
_EXPORT_LIST = re.compile(r"^[ \t]*export\s*\{[^}]*\}\s*;?[ \t]*$", re.MULTILINE)
_EXPORT_KEYWORD = re.compile(r"^([ \t]*)export\s+(?:default\s+)?(?=(?:async\s+)?function\b|const\b|let\b|var\b|class\b)", re.MULTILINE)

# Tried in order: most common authoring style first
COMPONENT_NAME_PATTERNS = (
    # function Hero(...) {  /  const Hero = (...) => {  /  const Hero = function (...) {
    re.compile(
        r"(?:function\s+([A-Z][\w$]*)\s*\([^)]*\)[^{]*\{"
        r"|const\s+([A-Z][\w$]*)\s*(?::[^=]+)?=\s*(?:function\b[^{]*|(?:async\s*)?\([^)]*\)[^={]*=>\s*)\{)"
    ),
    # any function declaration with a body
    re.compile(r"function\s+([A-Za-z_$][\w$]*)\s*\([^)]*\)[^{]*\{"),
    # any arrow-function const, including expression bodies
    re.compile(r"const\s+([A-Za-z_$][\w$]*)\s*(?::[^=]+)?=\s*(?:async\s*)?(?:\([^)]*\)|[A-Za-z_$][\w$]*)\s*(?::[^=]+)?=>"),
)


@dataclass(frozen=True)
class PreparedComponent:
    name: str
    code: str


def strip_module_syntax(source: str) -> str:
    """Remove imports (the runtime is injected) and export keywords"""
    code = _IMPORT_STATEMENT.sub("", source)
    code = _EXPORT_DEFAULT_IDENTIFIER.sub("", code)
    code = _EXPORT_LIST.sub("", code)
    code = _EXPORT_KEYWORD.sub(r"\1", code)
    return code.strip()


def locate_component_name(code: str) -> Optional[str]:
    for pattern in COMPONENT_NAME_PATTERNS:
        match = pattern.search(code)
        if match:
            return next(group for group in match.groups() if group)
    return None


def source_excerpt(source: str, length: int = EXCERPT_LENGTH) -> str:
    source = source or ""
    return source if len(source) <= length else source[:length] + "..."


def prepare_component_source(source: str) -> PreparedComponent:
    """
    Strip module syntax and find the component to mount.

    Raises:
        ComponentLocateError: none of the patterns matched
    """
    code = strip_module_syntax(source or "")
    name = locate_component_name(code)
    if name is None:
        raise ComponentLocateError("Could not find component function", excerpt=source_excerpt(source))
    return PreparedComponent(name=name, code=code)


def _json_for_script(value) -> str:
    # No raw "<", so "</script>" and "<!--" stay inert inside the script block
    return json.dumps(value).replace("<", "\\u003c")


ERROR_PANEL_STYLE = """
.preview-error { padding: 20px; margin: 20px; background: #fee; border: 1px solid #fcc; border-radius: 8px; font-family: sans-serif; }
.preview-error h3 { color: #c00; margin: 0 0 10px 0; }
.preview-error p { margin: 0; color: #600; font-family: monospace; font-size: 12px; }
.preview-error pre { margin: 10px 0 0 0; padding: 10px; background: #fff5f5; color: #333; font-size: 11px; white-space: pre-wrap; overflow: auto; }
.preview-error .hint { margin-top: 10px; color: #666; font-family: sans-serif; }
"""

BASE_STYLE = """
body {
    margin: 0;
    padding: 0;
    font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', 'Roboto', 'Helvetica Neue', sans-serif;
    -webkit-font-smoothing: antialiased;
    -moz-osx-font-smoothing: grayscale;
}
* { box-sizing: border-box; }
"""

BOOTSTRAP_SCRIPT = """
(function () {
    var config = JSON.parse(document.getElementById('component-config').textContent);
    var root = document.getElementById('root');

    function publish(state, error) {
        window.__STATE_GLOBAL__ = { state: state, error: error || null };
        try {
            window.parent.postMessage({ source: 'component-preview', state: state, error: error || null }, '*');
        } catch (e) {}
    }

    function escapeHtml(value) {
        return String(value == null ? '' : value).replace(/[&<>"']/g, function (c) {
            return { '&': '&amp;', '<': '&lt;', '>': '&gt;', '"': '&quot;', "'": '&#39;' }[c];
        });
    }

    function showError(error) {
        root.innerHTML =
            '<div class="preview-error">' +
            '<h3>' + escapeHtml(error.title) + '</h3>' +
            '<p>' + escapeHtml(error.message) + '</p>' +
            (error.stack ? '<pre>' + escapeHtml(error.stack) + '</pre>' : '') +
            '<p class="hint">The component may use features not supported in preview mode.</p>' +
            '</div>';
        publish('errored', error);
    }

    function compileError(err) {
        return {
            kind: 'compile_error',
            title: 'Preview Error',
            message: err && err.message ? err.message : String(err),
            stack: err && err.stack ? String(err.stack) : null
        };
    }

    function runtimeReady() {
        return Boolean(window.React && window.ReactDOM && window.Motion);
    }

    function mount() {
        publish('compiling');
        window.addEventListener('error', function (event) {
            showError(compileError(event.error || event.message));
        });
        try {
            var code = config.code;
            if (window.Babel) {
                code = window.Babel.transform(code, {
                    filename: 'component.tsx',
                    presets: ['react', ['typescript', { isTSX: true, allExtensions: true }]]
                }).code;
            }
            var R = window.React;
            var M = window.Motion;
            var factory = new Function(
                'React', 'useState', 'useEffect', 'useRef', 'useCallback', 'useMemo',
                'motion', 'AnimatePresence', 'useScroll', 'useTransform',
                code + '\\nreturn ' + config.name + ';'
            );
            var Component = factory(
                R, R.useState, R.useEffect, R.useRef, R.useCallback, R.useMemo,
                M.motion, M.AnimatePresence, M.useScroll, M.useTransform
            );
            window.ReactDOM.createRoot(root).render(R.createElement(Component));
            publish('rendered');
        } catch (err) {
            console.error('Preview error:', err);
            showError(compileError(err));
        }
    }

    var attempts = 0;
    function poll() {
        if (runtimeReady()) {
            mount();
            return;
        }
        attempts += 1;
        if (attempts >= config.maxAttempts) {
            showError({
                kind: 'runtime_timeout',
                title: 'Runtime did not load',
                message: 'React, ReactDOM or Framer Motion were not available after ' +
                    (config.maxAttempts * config.pollInterval) + 'ms.',
                stack: null
            });
            return;
        }
        setTimeout(poll, config.pollInterval);
    }

    publish('waiting');
    poll();
})();
""".replace("__STATE_GLOBAL__", PREVIEW_STATE_GLOBAL)


def build_runtime_document(
    prepared: PreparedComponent,
    css: str,
    poll_interval: Optional[float] = None,
    poll_attempts: Optional[int] = None,
) -> str:
    """Sandboxed document that loads the runtime by reference and mounts the component"""
    interval = poll_interval if poll_interval is not None else settings.PREVIEW_POLL_INTERVAL
    attempts = poll_attempts if poll_attempts is not None else settings.PREVIEW_POLL_ATTEMPTS
    config = {
        "name": prepared.name,
        "code": prepared.code,
        "pollInterval": int(interval * 1000),
        "maxAttempts": attempts,
    }
    return (
        "<!DOCTYPE html>\n"
        "<html>\n"
        "<head>\n"
        '<meta charset="UTF-8">\n'
        '<meta name="viewport" content="width=device-width, initial-scale=1.0">\n'
        f'<script src="{settings.PREVIEW_TAILWIND_URL}"></script>\n'
        f'<script crossorigin src="{settings.PREVIEW_REACT_URL}"></script>\n'
        f'<script crossorigin src="{settings.PREVIEW_REACT_DOM_URL}"></script>\n'
        f'<script src="{settings.PREVIEW_MOTION_URL}"></script>\n'
        f'<script src="{settings.PREVIEW_BABEL_URL}"></script>\n'
        "<style>\n"
        f"{BASE_STYLE}\n{ERROR_PANEL_STYLE}\n"
        "/* Custom CSS from component */\n"
        f"{css or ''}\n"
        "</style>\n"
        "</head>\n"
        "<body>\n"
        '<div id="root"></div>\n'
        f'<script type="application/json" id="component-config">{_json_for_script(config)}</script>\n'
        f"<script>{BOOTSTRAP_SCRIPT}</script>\n"
        "</body>\n"
        "</html>\n"
    )


def build_error_document(error: PreviewError) -> str:
    """Error panel rendered where the component would have appeared"""
    parts = [
        f"<h3>{html_lib.escape(error.title)}</h3>",
        f"<p>{html_lib.escape(error.message)}</p>",
    ]
    if error.excerpt:
        parts.append(f"<pre>{html_lib.escape(error.excerpt)}</pre>")
    if error.stack:
        parts.append(f"<pre>{html_lib.escape(error.stack)}</pre>")
    state = _json_for_script({"state": "errored", "error": error.model_dump()})
    return (
        "<!DOCTYPE html>\n"
        "<html>\n"
        "<head>\n"
        '<meta charset="UTF-8">\n'
        f"<style>{BASE_STYLE}\n{ERROR_PANEL_STYLE}</style>\n"
        "</head>\n"
        "<body>\n"
        '<div id="root"><div class="preview-error">'
        + "".join(parts)
        + "</div></div>\n"
        f"<script>window.{PREVIEW_STATE_GLOBAL} = {state};</script>\n"
        "</body>\n"
        "</html>\n"
    )


class DynamicPreviewRenderer:
    """
    Renders raw component source with the live React runtime.

    On observable surfaces the renderer follows the bootstrap's progress with
    bounded polling; errors are shown inside the surface and returned on the
    result so the host can flag them too.
    """

    def __init__(
        self,
        surface: Optional[PreviewSurface] = None,
        poll_interval: Optional[float] = None,
        poll_attempts: Optional[int] = None,
    ):
        self.surface = surface
        self.poll_interval = poll_interval if poll_interval is not None else settings.PREVIEW_POLL_INTERVAL
        self.poll_attempts = poll_attempts if poll_attempts is not None else settings.PREVIEW_POLL_ATTEMPTS
        self.state = IDLE
        self.error: Optional[PreviewError] = None

    async def render(self, source: str, css: str = "", surface: Optional[PreviewSurface] = None) -> PreviewResult:
        surface = surface or self.surface
        self.state = IDLE
        self.error = None

        try:
            prepared = prepare_component_source(source)
        except ComponentLocateError as e:
            return await self._fail(
                surface,
                PreviewError(
                    kind="component_not_found",
                    title="Component Parsing Error",
                    message=e.message,
                    excerpt=e.excerpt,
                ),
            )

        document = build_runtime_document(prepared, css, self.poll_interval, self.poll_attempts)
        self.state = WAITING_FOR_RUNTIME
        if surface is None:
            logger.debug("Preview surface not mounted, returning document only")
            return PreviewResult(state=self.state, document=document)

        await surface.write(document)
        logger.info("Dynamic preview written", component=prepared.name, observable=surface.observable)
        if not surface.observable:
            return PreviewResult(state=self.state, document=document)

        return await self._follow(surface, document)

    async def _follow(self, surface: PreviewSurface, document: str) -> PreviewResult:
        for _ in range(self.poll_attempts):
            snapshot = await surface.read_state() or {}
            state = _BOOTSTRAP_STATES.get(snapshot.get("state"), WAITING_FOR_RUNTIME)

            if state == RENDERED:
                self.state = RENDERED
                return PreviewResult(state=self.state, document=document)

            if state == ERRORED:
                # The bootstrap already drew its panel inside the surface
                self.state = ERRORED
                self.error = PreviewError(**(snapshot.get("error") or {
                    "kind": "compile_error",
                    "title": "Preview Error",
                    "message": "Unknown preview error",
                }))
                logger.warning("Dynamic preview failed", kind=self.error.kind, message=self.error.message)
                return PreviewResult(state=self.state, document=document, error=self.error)

            self.state = state
            await asyncio.sleep(self.poll_interval)

        if self.state == WAITING_FOR_RUNTIME:
            error = PreviewError(
                kind="runtime_timeout",
                title="Runtime did not load",
                message=(
                    "React, ReactDOM or Framer Motion were not available after "
                    f"{self.poll_attempts * self.poll_interval:.1f}s"
                ),
            )
        else:
            error = PreviewError(
                kind="compile_error",
                title="Preview Error",
                message="Component did not finish rendering",
            )
        return await self._fail(surface, error)

    async def _fail(self, surface: Optional[PreviewSurface], error: PreviewError) -> PreviewResult:
        self.state = ERRORED
        self.error = error
        document = build_error_document(error)
        logger.warning("Dynamic preview errored", kind=error.kind, message=error.message)
        if surface is not None:
            await surface.write(document)
        return PreviewResult(state=self.state, document=document, error=error)
