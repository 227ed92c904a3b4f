"""
Structure validation for component listings.

Classifies a directory listing as a flat static bundle or a nested
React/Vite project before any file body is fetched.
"""
from typing import List

from component_engine.models import RemoteFile, ValidationResult


SOURCE_DIR_NAME = "src"
MANIFEST_NAME = "package.json"
CONFIG_NAME = "config.json"
HTML_SUFFIXES = (".html", ".htm")
CSS_SUFFIXES = (".css",)
IMAGE_SUFFIXES = (".png", ".jpg", ".jpeg")


def has_suffix(entry: RemoteFile, suffixes) -> bool:
    return entry.kind == "file" and entry.name.lower().endswith(tuple(suffixes))


def is_framework_layout(files: List[RemoteFile]) -> bool:
    has_source_dir = any(f.is_directory and f.name == SOURCE_DIR_NAME for f in files)
    has_manifest = any(not f.is_directory and f.name == MANIFEST_NAME for f in files)
    return has_source_dir and has_manifest


def validate_structure(files: List[RemoteFile]) -> ValidationResult:
    """
    Validate a component listing.

    Framework projects are always reported valid: the component may live
    several directories deep, so the parser decides their final validity.
    Static bundles need an HTML and a CSS file; config and thumbnail are
    optional and only produce warnings.
    """
    errors: List[str] = []
    warnings: List[str] = []

    if is_framework_layout(files):
        warnings.append("React/Vite project detected - will parse from src/")
        return ValidationResult(valid=True, errors=errors, warnings=warnings, layout="framework")

    if not any(has_suffix(f, HTML_SUFFIXES) for f in files):
        errors.append("No HTML file found")

    if not any(has_suffix(f, CSS_SUFFIXES) for f in files):
        errors.append("No CSS file found")

    if not any(f.kind == "file" and f.name == CONFIG_NAME for f in files):
        warnings.append("No config.json found - metadata will be auto-generated")

    if not any(has_suffix(f, IMAGE_SUFFIXES) for f in files):
        warnings.append("No thumbnail image found - preview will be auto-generated")

    return ValidationResult(
        valid=len(errors) == 0,
        errors=errors,
        warnings=warnings,
        layout="static",
    )
