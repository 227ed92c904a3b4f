"""
Parse a component from a locally uploaded folder (no GitHub round-trips).
"""
import re
from typing import List

from component_engine.errors import ComponentParseError
from component_engine.logging_config import logger
from component_engine.models import ParsedComponent, UploadedFile, normalize_category
from component_engine.services.component_parser import (
    COMPONENT_SUFFIXES,
    CSS_PREFERRED,
    DEFAULT_COMPONENT_NAME,
    HTML_PREFERRED,
    SCRIPT_PREFERRED,
    SCRIPT_SUFFIXES,
    parse_config,
    select_file,
    strip_component_suffix,
)
from component_engine.services.source_converter import convert_source_to_html
from component_engine.services.structure_validator import CONFIG_NAME, CSS_SUFFIXES, HTML_SUFFIXES
from component_engine.services.variable_detector import detect_upload_variables, detect_variables


MAIN_COMPONENT_NAMES = ("Hero", "Component", "index")
_NON_COMPONENT_FILE = re.compile(r"(test|\.spec)|^(App|main)\.(tsx|jsx)$")


def is_component_file(name: str) -> bool:
    return name.endswith(COMPONENT_SUFFIXES) and not _NON_COMPONENT_FILE.search(name)


def is_stylesheet(name: str) -> bool:
    return name.lower().endswith(CSS_SUFFIXES)


def parse_uploaded_folder(files: List[UploadedFile]) -> ParsedComponent:
    """
    Parse an uploaded component folder.

    Static bundles (an HTML and a CSS file) are used as-is; otherwise the
    main React component is converted to a template and every stylesheet in
    the upload is concatenated in upload order.
    """
    html_file = select_file(files, HTML_PREFERRED, HTML_SUFFIXES)
    css_file = select_file(files, CSS_PREFERRED, CSS_SUFFIXES)
    if html_file and css_file:
        return _parse_static_upload(files, html_file, css_file)

    components = [f for f in files if is_component_file(f.name)]
    stylesheets = [f for f in files if is_stylesheet(f.name)]
    if not components and not stylesheets:
        raise ComponentParseError("No component or CSS files found in the uploaded folder")
    if not components:
        raise ComponentParseError("No React component files (.tsx or .jsx) found")

    main = _pick_main_component(components)
    name = strip_component_suffix(main.name)
    logger.info(
        "Parsing uploaded React component",
        component=main.path,
        stylesheets=len(stylesheets),
    )

    return ParsedComponent(
        name=name,
        category=normalize_category("hero"),
        description=f"React component: {name}",
        html=convert_source_to_html(main.content, name),
        css="\n\n".join(f.content for f in stylesheets),
        script=main.content,
        variables=detect_upload_variables(main.content),
        source_kind="framework",
    )


def _pick_main_component(components: List[UploadedFile]) -> UploadedFile:
    for preferred in MAIN_COMPONENT_NAMES:
        for candidate in components:
            if strip_component_suffix(candidate.name) == preferred:
                return candidate
    return components[0]


def _parse_static_upload(
    files: List[UploadedFile],
    html_file: UploadedFile,
    css_file: UploadedFile,
) -> ParsedComponent:
    script_file = select_file(files, SCRIPT_PREFERRED, SCRIPT_SUFFIXES)
    config_file = select_file(files, (CONFIG_NAME,), ())
    config = parse_config(config_file.content if config_file else None)

    logger.info("Parsing uploaded static component", html=html_file.path, css=css_file.path)

    return ParsedComponent(
        name=config.name or DEFAULT_COMPONENT_NAME,
        category=normalize_category(config.category, default="other"),
        description=config.description,
        html=html_file.content,
        css=css_file.content,
        script=script_file.content if script_file else None,
        variables=(
            config.variables
            if config.variables is not None
            else detect_variables(html_file.content)
        ),
        thumbnail=config.thumbnail,
        source_kind="static",
    )
