"""
Configuration settings for the Component Engine
"""
import os
import logging
from typing import List, Optional
from pydantic_settings import BaseSettings
from dotenv import load_dotenv

load_dotenv()

# Configure basic logger for config module
logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Application settings"""

    # Environment
    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")
    DEBUG: bool = os.getenv("DEBUG", "false").lower() == "true"
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # GitHub access
    GITHUB_TOKEN: str = os.getenv("GITHUB_TOKEN", "")
    GITHUB_API_URL: str = os.getenv("GITHUB_API_URL", "https://api.github.com")
    GITHUB_DEFAULT_BRANCH: str = os.getenv("GITHUB_DEFAULT_BRANCH", "main")

    # "direct" calls the GitHub API, "proxy" goes through /api/github/* of
    # GITHUB_PROXY_URL, "auto" picks proxy whenever a proxy URL is configured
    GITHUB_TRANSPORT: str = os.getenv("GITHUB_TRANSPORT", "auto")
    GITHUB_PROXY_URL: str = os.getenv("GITHUB_PROXY_URL", "")

    HTTP_TIMEOUT: float = float(os.getenv("HTTP_TIMEOUT", "30"))

    # Raw file content is only fetched from these hosts
    TRUSTED_CONTENT_HOSTS: str = os.getenv(
        "TRUSTED_CONTENT_HOSTS",
        "githubusercontent.com,github.com"
    )

    # Rate limit for the public proxy endpoints
    PROXY_RATE_LIMIT: str = os.getenv("PROXY_RATE_LIMIT", "60/minute")

    # Dynamic preview runtime (loaded by reference inside the iframe)
    PREVIEW_POLL_INTERVAL: float = float(os.getenv("PREVIEW_POLL_INTERVAL", "0.1"))
    PREVIEW_POLL_ATTEMPTS: int = int(os.getenv("PREVIEW_POLL_ATTEMPTS", "50"))
    PREVIEW_REACT_URL: str = "https://unpkg.com/react@18/umd/react.production.min.js"
    PREVIEW_REACT_DOM_URL: str = "https://unpkg.com/react-dom@18/umd/react-dom.production.min.js"
    PREVIEW_MOTION_URL: str = "https://unpkg.com/framer-motion@11/dist/framer-motion.js"
    PREVIEW_TAILWIND_URL: str = "https://cdn.tailwindcss.com"
    PREVIEW_BABEL_URL: str = "https://unpkg.com/@babel/standalone/babel.min.js"

    # Component builder endpoints require this token when set
    ADMIN_API_TOKEN: str = os.getenv("ADMIN_API_TOKEN", "")

    # Monitoring
    SENTRY_DSN: Optional[str] = os.getenv("SENTRY_DSN")
    SENTRY_ENVIRONMENT: str = os.getenv("SENTRY_ENVIRONMENT", "development")
    SENTRY_TRACES_SAMPLE_RATE: float = float(
        os.getenv("SENTRY_TRACES_SAMPLE_RATE", "0.1")
    )

    # CORS - comma-separated list of allowed origins
    CORS_ORIGINS: str = os.getenv(
        "CORS_ORIGINS",
        "http://localhost:3000,http://localhost:5173,http://127.0.0.1:3000,http://127.0.0.1:5173"
    )

    class Config:
        env_file = ".env"
        case_sensitive = True

    @property
    def trusted_content_hosts(self) -> List[str]:
        return [
            host.strip().lower()
            for host in self.TRUSTED_CONTENT_HOSTS.split(",")
            if host.strip()
        ]

    @property
    def resolved_transport(self) -> str:
        """Transport actually used by create_github_client()"""
        transport = self.GITHUB_TRANSPORT.lower()
        if transport == "auto":
            return "proxy" if self.GITHUB_PROXY_URL else "direct"
        return transport


# Global settings instance
settings = Settings()


def validate_required_config():
    """Validate required configuration on startup"""
    errors = []

    if settings.resolved_transport not in ("direct", "proxy"):
        errors.append(
            f"GITHUB_TRANSPORT must be auto, direct or proxy (got {settings.GITHUB_TRANSPORT!r})"
        )

    if settings.resolved_transport == "proxy" and not settings.GITHUB_PROXY_URL:
        errors.append("GITHUB_PROXY_URL must be configured for the proxy transport")

    if not settings.GITHUB_TOKEN:
        # Direct calls work anonymously, the proxy endpoints do not
        logger.warning("GITHUB_TOKEN not configured, /api/github/* will answer 500")

    if errors:
        for error in errors:
            logger.error(f"Configuration error: {error}")
        if settings.ENVIRONMENT == "production":
            raise ValueError(f"Missing required configuration: {', '.join(errors)}")

    return len(errors) == 0
