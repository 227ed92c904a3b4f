"""
Variable detection for component templates.

Two detectors share one labelling rule:
- detect_variables() reads {{placeholder}} tokens from templated HTML
- detect_source_variables() looks for common content props in raw React source

detect_upload_variables() also seeds uploaded components with the copy they
already carry (the first slide of a `slides` array, string constants).
"""
import re
from typing import Dict

PLACEHOLDER_PATTERN = re.compile(r"\{\{([^}]+)\}\}")

# Content props worth exposing as editable fields, in canonical spelling
SOURCE_PROP_VOCABULARY = (
    "title",
    "heading",
    "description",
    "text",
    "label",
    "buttonText",
    "subtitle",
    "name",
)
_SOURCE_PROP_PATTERN = re.compile(
    r"\b(" + "|".join(SOURCE_PROP_VOCABULARY) + r")\b",
    re.IGNORECASE,
)
_CANONICAL_PROPS = {prop.lower(): prop for prop in SOURCE_PROP_VOCABULARY}

DEFAULT_SOURCE_VARIABLES = ("title", "description")

_SLIDES_ARRAY = re.compile(r"const\s+slides[^=]*=\s*\[([\s\S]*?)\];")
_FIRST_SLIDE = re.compile(r"\{\s*id:\s*\d+,?\s*([\s\S]*?)\}")
_STRING_PROP = re.compile(r"(\w+):\s*['\"`]([^'\"`]+)['\"`]")
_STRING_CONST = re.compile(r"const\s+(\w+)\s*=\s*['\"`]([^'\"`]+)['\"`]")
# Component names, not copy
IGNORED_CONSTANTS = {"Hero", "Component", "App"}


def humanize_label(name: str) -> str:
    """
    Turn a variable name into a readable label.

    heroTitle -> "Hero title", button_text -> "Button text"
    """
    label = re.sub(r"([A-Z])", r" \1", name)
    label = label.replace("_", " ").strip().lower()
    return label[:1].upper() + label[1:]


def detect_variables(html: str) -> Dict[str, str]:
    """
    Collect {{placeholder}} names from a template, in first-occurrence order.

    Idempotent: the same text always yields the same ordered dictionary.
    """
    variables: Dict[str, str] = {}
    for match in PLACEHOLDER_PATTERN.finditer(html or ""):
        name = match.group(1).strip()
        if name and name not in variables:
            variables[name] = humanize_label(name)
    return variables


def detect_source_variables(source: str) -> Dict[str, str]:
    """Guess editable fields from raw component source; never returns an empty dict"""
    variables: Dict[str, str] = {}
    for match in _SOURCE_PROP_PATTERN.finditer(source or ""):
        name = _CANONICAL_PROPS[match.group(1).lower()]
        if name not in variables:
            variables[name] = humanize_label(name)

    if not variables:
        for name in DEFAULT_SOURCE_VARIABLES:
            variables[name] = humanize_label(name)

    return variables


def detect_content_defaults(source: str) -> Dict[str, str]:
    """
    Default copy found in component source, keyed by variable name.

    Reads the string props of the first entry of a `slides` array and
    top-level string constants. Values are the strings themselves.
    """
    defaults: Dict[str, str] = {}
    source = source or ""

    slides = _SLIDES_ARRAY.search(source)
    if slides:
        first = _FIRST_SLIDE.search(slides.group(1))
        if first:
            for name, value in _STRING_PROP.findall(first.group(1)):
                defaults[name] = value

    for name, value in _STRING_CONST.findall(source):
        if name not in IGNORED_CONSTANTS:
            defaults.setdefault(name, value)

    return defaults


def detect_upload_variables(source: str) -> Dict[str, str]:
    """Content defaults first, then any vocabulary props not already covered"""
    variables = detect_content_defaults(source)
    if not variables:
        return detect_source_variables(source)

    for match in _SOURCE_PROP_PATTERN.finditer(source):
        name = _CANONICAL_PROPS[match.group(1).lower()]
        variables.setdefault(name, humanize_label(name))
    return variables
