"""
Component builder API router.

Endpoints backing the admin component builder: locate a component on GitHub
(or upload a folder), validate and parse it into an {html, css, variables}
template, and render sandboxed previews.
"""
from typing import Callable, Dict, List, Literal, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from component_engine.auth import require_admin
from component_engine.logging_config import logger
from component_engine.models import (
    ParsedComponent,
    PreviewResult,
    RemoteFile,
    RepositoryReference,
    SourceLocation,
    UploadedFile,
    ValidationResult,
)
from component_engine.services.component_parser import ComponentParser
from component_engine.services.dynamic_preview import DynamicPreviewRenderer
from component_engine.services.folder_parser import parse_uploaded_folder
from component_engine.services.github_client import (
    GitHubClient,
    create_github_client,
    parse_repository_reference,
)
from component_engine.services.preview_surface import SANDBOX_POLICY, SrcdocSurface
from component_engine.services.static_preview import StaticPreviewRenderer
from component_engine.services.structure_validator import validate_structure
from component_engine.services.template_engine import substitute, unresolved_placeholders
from component_engine.services.variable_detector import detect_source_variables, detect_variables

router = APIRouter(dependencies=[Depends(require_admin)])


def get_client_factory() -> Callable[..., GitHubClient]:
    """Builds clients following the deployment transport; a per-request token wins"""
    return create_github_client


class ResolveRepositoryRequest(BaseModel):
    """Request model for repository reference parsing"""
    input: str


class ResolveRepositoryResponse(BaseModel):
    success: bool
    repository: Optional[RepositoryReference] = None
    error: Optional[str] = None


class BrowseResponse(BaseModel):
    success: bool
    directories: List[RemoteFile] = []


class ValidateResponse(BaseModel):
    success: bool
    validation: ValidationResult
    files: List[RemoteFile] = []


class ParseResponse(BaseModel):
    success: bool
    component: ParsedComponent
    warnings: List[str] = []


class ParseFolderRequest(BaseModel):
    files: List[UploadedFile] = Field(min_length=1)


class DetectVariablesRequest(BaseModel):
    """Request model for variable detection"""
    text: str
    mode: Literal["template", "source"] = "template"


class DetectVariablesResponse(BaseModel):
    success: bool
    variables: Dict[str, str]


class SubstituteRequest(BaseModel):
    html: str
    bindings: Dict[str, str] = {}


class SubstituteResponse(BaseModel):
    success: bool
    html: str
    unresolved: List[str] = []


class StaticPreviewRequest(BaseModel):
    """Request model for the template preview"""
    html: str
    css: str = ""
    bindings: Dict[str, str] = {}


class StaticPreviewResponse(BaseModel):
    success: bool
    document: str
    sandbox: str = SANDBOX_POLICY
    unresolved: List[str] = []


class DynamicPreviewRequest(BaseModel):
    """Request model for the React runtime preview"""
    source: str
    css: str = ""


class DynamicPreviewResponse(BaseModel):
    success: bool
    preview: PreviewResult
    sandbox: str = SANDBOX_POLICY


@router.post("/component/resolve-repository", response_model=ResolveRepositoryResponse)
async def resolve_repository(data: ResolveRepositoryRequest):
    """Parse `https://github.com/owner/repo[.git]` or `owner/repo`"""
    reference = parse_repository_reference(data.input)
    if reference is None:
        return ResolveRepositoryResponse(
            success=False,
            error="Invalid GitHub URL. Use https://github.com/owner/repo or owner/repo",
        )
    return ResolveRepositoryResponse(success=True, repository=reference)


@router.post("/component/browse", response_model=BrowseResponse)
async def browse_directories(
    data: SourceLocation,
    make_client: Callable[..., GitHubClient] = Depends(get_client_factory),
):
    """Subdirectories of a repository path, for drill-down navigation"""
    client = make_client(token=data.token)
    directories = await client.browse_directories(data.owner, data.repo, data.path, data.branch)
    return BrowseResponse(success=True, directories=directories)


@router.post("/component/validate", response_model=ValidateResponse)
async def validate_component(
    data: SourceLocation,
    make_client: Callable[..., GitHubClient] = Depends(get_client_factory),
):
    """
    Check that a repository path looks like a component before parsing it.

    Only the directory listing is fetched; file bodies are not.
    """
    client = make_client(token=data.token)
    files = await client.list_directory(data.owner, data.repo, data.path, data.branch)
    validation = validate_structure(files)
    logger.info(
        "Component structure validated",
        owner=data.owner,
        repo=data.repo,
        path=data.path,
        valid=validation.valid,
        layout=validation.layout,
    )
    return ValidateResponse(success=validation.valid, validation=validation, files=files)


@router.post("/component/parse", response_model=ParseResponse)
async def parse_component(
    data: SourceLocation,
    make_client: Callable[..., GitHubClient] = Depends(get_client_factory),
):
    """
    Parse a GitHub component into an {html, css, variables} template.

    Supports static bundles (index.html + style.css) and React/Vite projects
    (src/app/components/*.tsx + src/styles/*.css).
    """
    client = make_client(token=data.token)
    files = await client.list_directory(data.owner, data.repo, data.path, data.branch)
    validation = validate_structure(files)
    component = await ComponentParser(client).parse(files, data)

    logger.info(
        "Component parsed",
        name=component.name,
        source_kind=component.source_kind,
        variables=len(component.variables),
    )
    return ParseResponse(success=True, component=component, warnings=validation.warnings)


@router.post("/component/parse-folder", response_model=ParseResponse)
async def parse_folder(data: ParseFolderRequest):
    """Parse an uploaded component folder (paths + text contents)"""
    component = parse_uploaded_folder(data.files)
    logger.info("Uploaded component parsed", name=component.name, files=len(data.files))
    return ParseResponse(success=True, component=component)


@router.post("/component/detect-variables", response_model=DetectVariablesResponse)
async def detect_template_variables(data: DetectVariablesRequest):
    if data.mode == "source":
        variables = detect_source_variables(data.text)
    else:
        variables = detect_variables(data.text)
    return DetectVariablesResponse(success=True, variables=variables)


@router.post("/component/substitute", response_model=SubstituteResponse)
async def substitute_variables(data: SubstituteRequest):
    return SubstituteResponse(
        success=True,
        html=substitute(data.html, data.bindings),
        unresolved=unresolved_placeholders(data.html, data.bindings),
    )


@router.post("/component/preview", response_model=StaticPreviewResponse)
async def static_preview(data: StaticPreviewRequest):
    """Full sandboxed document for an <iframe srcdoc> template preview"""
    surface = SrcdocSurface()
    document = await StaticPreviewRenderer(surface).render(data.html, data.css, data.bindings)
    return StaticPreviewResponse(
        success=True,
        document=document,
        unresolved=unresolved_placeholders(data.html, data.bindings),
    )


@router.post("/component/preview/dynamic", response_model=DynamicPreviewResponse)
async def dynamic_preview(data: DynamicPreviewRequest):
    """
    Document that runs the unconverted React source inside the iframe.

    A source without a recognizable component comes back with an error panel
    document and success=false; it is not an HTTP error.
    """
    surface = SrcdocSurface()
    result = await DynamicPreviewRenderer(surface).render(data.source, data.css)
    return DynamicPreviewResponse(success=result.error is None, preview=result)
