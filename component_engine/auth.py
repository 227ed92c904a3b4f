"""
Admin guard for the component builder endpoints.

Access is decided per request from an explicit AdminContext built out of the
X-Admin-Token header; nothing is cached between requests.
"""
import hmac
from dataclasses import dataclass
from typing import Optional

from fastapi import Header, HTTPException

from component_engine.config import settings


@dataclass(frozen=True)
class AdminContext:
    token: Optional[str]

    @property
    def is_admin(self) -> bool:
        expected = settings.ADMIN_API_TOKEN
        if not expected:
            # No token configured: builder endpoints are open (development)
            return True
        return bool(self.token) and hmac.compare_digest(self.token.encode(), expected.encode())


def get_admin_context(x_admin_token: Optional[str] = Header(default=None)) -> AdminContext:
    return AdminContext(token=x_admin_token)


def require_admin(x_admin_token: Optional[str] = Header(default=None)) -> AdminContext:
    context = get_admin_context(x_admin_token)
    if not context.is_admin:
        raise HTTPException(status_code=401, detail="Admin access required")
    return context
