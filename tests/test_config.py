from __future__ import annotations

import pytest

from component_engine.config import Settings, settings, validate_required_config
from component_engine.models import RemoteFile, normalize_category


def test_auto_transport_prefers_proxy_when_configured() -> None:
    assert Settings(GITHUB_TRANSPORT="auto", GITHUB_PROXY_URL="").resolved_transport == "direct"
    assert Settings(GITHUB_TRANSPORT="auto", GITHUB_PROXY_URL="https://builder.example").resolved_transport == "proxy"
    assert Settings(GITHUB_TRANSPORT="Direct", GITHUB_PROXY_URL="https://builder.example").resolved_transport == "direct"


def test_trusted_hosts_are_normalized() -> None:
    config = Settings(TRUSTED_CONTENT_HOSTS=" RAW.githubusercontent.com, ,github.com ")

    assert config.trusted_content_hosts == ["raw.githubusercontent.com", "github.com"]


def test_proxy_transport_without_url_only_fails_hard_in_production(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(settings, "GITHUB_TRANSPORT", "proxy")
    monkeypatch.setattr(settings, "GITHUB_PROXY_URL", "")
    monkeypatch.setattr(settings, "ENVIRONMENT", "development")

    assert validate_required_config() is False

    monkeypatch.setattr(settings, "ENVIRONMENT", "production")
    with pytest.raises(ValueError, match="GITHUB_PROXY_URL"):
        validate_required_config()


def test_valid_direct_configuration_passes(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(settings, "GITHUB_TRANSPORT", "direct")
    monkeypatch.setattr(settings, "GITHUB_TOKEN", "")

    assert validate_required_config() is True


def test_categories_are_folded_into_the_taxonomy() -> None:
    assert normalize_category("Hero") == "hero"
    assert normalize_category(" Testimonials ") == "testimonials"
    assert normalize_category("Banner") == "other"
    assert normalize_category(None, default="hero") == "hero"


def test_directory_entries_never_carry_a_content_url() -> None:
    entry = RemoteFile.from_github(
        {"name": "src", "path": "demo/src", "type": "dir", "download_url": "https://raw.githubusercontent.com/x"}
    )

    assert entry.is_directory
    assert entry.download_url is None
    assert entry.to_github()["type"] == "dir"
