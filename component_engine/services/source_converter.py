"""
Best-effort React/JSX to HTML template conversion.

The markup of the first `return (...)` block is run through an ordered list of
rewrite rules. This is a heuristic, not a transpiler: when nothing usable
comes out, the result is a fixed block asking for manual editing.
"""
import re
from dataclasses import dataclass
from typing import Callable, List, Optional, Union

from component_engine.logging_config import logger


MIN_TEMPLATE_LENGTH = 20

FALLBACK_TEMPLATE = (
    '<div class="component-preview">'
    "<p>Component preview unavailable - use manual editing</p>"
    "</div>"
)

VOID_ELEMENTS = {
    "area", "base", "br", "col", "embed", "hr", "img", "input",
    "link", "meta", "source", "track", "wbr",
}

_RETURN_BLOCK = re.compile(r"return\s*\(\s*([\s\S]*?)\s*\);?\s*\}")


@dataclass(frozen=True)
class RewriteRule:
    """A single regex rewrite of the conversion pipeline"""

    name: str
    pattern: str
    replacement: Union[str, Callable[[re.Match], str]]
    flags: int = 0

    def apply(self, text: str) -> str:
        return re.sub(self.pattern, self.replacement, text, flags=self.flags)


def _expand_self_closing(match: re.Match) -> str:
    tag, attributes = match.group(1), match.group(2).rstrip()
    if tag.lower() in VOID_ELEMENTS:
        return f"<{tag}{attributes}>"
    return f"<{tag}{attributes}></{tag}>"


def _quote_attribute_expression(match: re.Match) -> str:
    name = "_".join(part for part in match.groups() if part)
    return f'="{{{{{name}}}}}"'


REWRITE_RULES: List[RewriteRule] = [
    RewriteRule("class-attribute", r"\bclassName=", "class="),
    RewriteRule("label-target-attribute", r"\bhtmlFor=", "for="),
    RewriteRule("motion-open-tag", r"<motion\.(\w+)", r"<\1"),
    RewriteRule("motion-close-tag", r"</motion\.(\w+)", r"</\1"),
    RewriteRule("animate-presence-open", r"<AnimatePresence\b[^>]*>", ""),
    RewriteRule("animate-presence-close", r"</AnimatePresence>", ""),
    RewriteRule("event-handlers", r"\s+on[A-Z]\w*=\{[^}]*\}+", ""),
    RewriteRule("ref-attributes", r"\s+ref=\{[^}]*\}", ""),
    RewriteRule("template-literal-attributes", r"=\{`([^`\"]*)`\}", r'="\1"'),
    RewriteRule("string-literal-attributes", r"=\{(['\"])([^'\"]*)\1\}", r'="\2"'),
    RewriteRule("string-literal-text", r"\{(['\"])([^'\"]*)\1\}", r"\2"),
    RewriteRule("self-closing-tags", r"<([A-Za-z][\w.-]*)((?:\s+[^<>]*?)?)\s*/>", _expand_self_closing),
    RewriteRule("attribute-expressions", r"=\{\s*(\w+)(?:\.(\w+))?\s*\}", _quote_attribute_expression),
    RewriteRule("nested-property-placeholders", r"(?<!\{)\{\s*(\w+)\.(\w+)\s*\}(?!\})", r"{{\1_\2}}"),
    RewriteRule("identifier-placeholders", r"(?<!\{)\{\s*(\w+)\s*\}(?!\})", r"{{\1}}"),
]


def extract_return_block(source: str) -> Optional[str]:
    """Markup of the first `return (...)` statement, or None"""
    match = _RETURN_BLOCK.search(source or "")
    if not match or not match.group(1).strip():
        return None
    return match.group(1).strip()


def apply_rewrite_rules(markup: str, rules: Optional[List[RewriteRule]] = None) -> str:
    for rule in rules if rules is not None else REWRITE_RULES:
        markup = rule.apply(markup)
    return markup.strip()


def convert_source_to_html(source: str, component_name: str = "Component") -> str:
    """
    Convert component source into an HTML template approximation.

    Args:
        source: Raw .tsx/.jsx source
        component_name: Used for the leading comment

    Returns:
        Template HTML with {{placeholders}}, or the fallback block
    """
    block = extract_return_block(source)
    if block is None:
        logger.info("No return block found, using fallback template", component=component_name)
        return FALLBACK_TEMPLATE

    markup = apply_rewrite_rules(block)
    if len(markup) < MIN_TEMPLATE_LENGTH:
        logger.info("Converted markup too short, using fallback template", component=component_name)
        return FALLBACK_TEMPLATE

    return f"<!-- {component_name} Component -->\n{markup}"
