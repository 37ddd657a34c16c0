# =============================================================================
# tests/conftest.py - Pytest Configuration
# =============================================================================
# Shared fixtures:
# - site: a copy of tests/fixtures/site in a temp dir (logs and uploads land
#   there, never in the repo)
# - make_settings / make_client: build settings and a TestClient over them
# =============================================================================

import os
import shutil
from pathlib import Path

# Keep the developer's environment out of Settings
for key in list(os.environ):
    if key.startswith("PORTICO_"):
        del os.environ[key]

import pytest
from fastapi.testclient import TestClient

from portico import create_app, load_config

FIXTURES = Path(__file__).parent / "fixtures"


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def site(tmp_path) -> Path:
    """Fresh copy of the fixture site."""
    root = tmp_path / "site"
    shutil.copytree(FIXTURES / "site", root)
    return root


@pytest.fixture
def bad_routes() -> Path:
    """Directory of deliberately broken route modules."""
    return FIXTURES / "bad_routes"


@pytest.fixture
def make_settings(site):
    """Build Settings rooted at the fixture site."""

    def _make(**overrides):
        base = {
            "root": site,
            "name": "test-site",
            "static": ["public", "assets"],
            "routes": ["routes"],
            "views": "views",
            "token_secret_key": "test-secret",
        }
        return load_config(base, overrides)

    return _make


@pytest.fixture
def make_client(make_settings):
    """Build a TestClient for an app with the given setting overrides."""

    def _make(**overrides):
        return TestClient(create_app(make_settings(**overrides)))

    return _make


@pytest.fixture
def client(make_client):
    """TestClient for the fixture site with default settings."""
    return make_client()


@pytest.fixture
def read_log(site):
    """Read <site>/logs/<name>.log ('' if never written)."""

    def _read(name: str) -> str:
        path = site / "logs" / f"{name}.log"
        return path.read_text(encoding="utf-8") if path.exists() else ""

    return _read
