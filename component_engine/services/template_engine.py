"""
Placeholder substitution: {{title}} -> "My Title"
"""
from typing import List, Mapping

from component_engine.services.variable_detector import PLACEHOLDER_PATTERN


def substitute(html: str, bindings: Mapping[str, str]) -> str:
    """
    Replace every {{key}} whose trimmed key has a binding.

    Unbound placeholders are left verbatim so they stay visible in the
    preview; unknown binding keys are ignored.
    """
    if not bindings:
        return html

    def _replace(match):
        key = match.group(1).strip()
        if key in bindings:
            return str(bindings[key])
        return match.group(0)

    return PLACEHOLDER_PATTERN.sub(_replace, html)


def find_placeholders(html: str) -> List[str]:
    """Unique trimmed placeholder names in first-occurrence order"""
    seen: List[str] = []
    for match in PLACEHOLDER_PATTERN.finditer(html or ""):
        key = match.group(1).strip()
        if key and key not in seen:
            seen.append(key)
    return seen


def unresolved_placeholders(html: str, bindings: Mapping[str, str]) -> List[str]:
    return [key for key in find_placeholders(html) if key not in bindings]
