"""
Error taxonomy for the component pipeline.

Every failure a caller can act on is a ComponentEngineError carrying a
user-facing message and the HTTP status the API reports it with.
"""
from typing import Optional


class ComponentEngineError(Exception):
    """Base class for all typed, message-bearing failures"""

    status_code = 500
    error_type = "component_engine_error"

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code

    def to_dict(self) -> dict:
        return {
            "success": False,
            "error": self.message,
            "error_type": self.error_type,
        }


class RemoteNotFoundError(ComponentEngineError):
    """Repository or path does not exist on the remote host"""

    status_code = 404
    error_type = "not_found"


class RateLimitedError(ComponentEngineError):
    """Remote host refused the request (rate limit or permissions)"""

    status_code = 403
    error_type = "rate_limited"


class RemoteTransportError(ComponentEngineError):
    """Generic upstream failure: non-2xx, malformed JSON, network error"""

    status_code = 502
    error_type = "transport_error"

    def __init__(self, message: str, upstream_status: Optional[int] = None):
        super().__init__(message, status_code=upstream_status or 502)
        self.upstream_status = upstream_status


class UntrustedContentURLError(ComponentEngineError):
    status_code = 400
    error_type = "untrusted_url"


class MissingCredentialError(ComponentEngineError):
    status_code = 500
    error_type = "missing_credential"


class StructuralInvalidError(ComponentEngineError):
    """Listing is missing required files; carries the full validation result"""

    status_code = 422
    error_type = "structural_invalid"

    def __init__(self, validation):
        super().__init__("; ".join(validation.errors) or "Invalid component structure")
        self.validation = validation

    def to_dict(self) -> dict:
        payload = super().to_dict()
        payload["errors"] = list(self.validation.errors)
        payload["warnings"] = list(self.validation.warnings)
        return payload


class ComponentParseError(ComponentEngineError):
    """No component or HTML file could be located in a valid structure"""

    status_code = 422
    error_type = "parse_failure"


class ComponentLocateError(ComponentEngineError):
    """Dynamic preview could not find a component function in the source"""

    status_code = 422
    error_type = "component_not_found"

    def __init__(self, message: str, excerpt: str = ""):
        super().__init__(message)
        self.excerpt = excerpt
