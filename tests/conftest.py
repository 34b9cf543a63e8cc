# =============================================================================
# tests/conftest.py - Pytest Configuration
# =============================================================================
# This module provides pytest fixtures and configuration for all tests.
#
# Key features:
# - Sets up environment variables before any imports
# - Builds a throwaway public directory with the page documents
# - Provides route groups with small echo handlers standing in for the
#   real auth / products / orders logic
# =============================================================================

import os

# =============================================================================
# Set up test environment BEFORE any imports
# =============================================================================
# app.config loads settings immediately on import

os.environ.setdefault("NODE_ENV", "development")
os.environ.setdefault("DEBUG", "false")

import pytest
from fastapi import HTTPException, Request
from fastapi.testclient import TestClient
from pydantic import BaseModel

from app.config import Settings
from app.dependencies import DecodedBody, SettingsDep
from app.exceptions import HandlerError
from app.main import create_app
from app.routers import default_route_groups

PAGES = {
    "index.html": "<h1>Storefront</h1>",
    "admin.html": "<h1>Admin Portal</h1>",
    "login.html": "<h1>Login</h1>",
    "register.html": "<h1>Register</h1>",
    "profile.html": "<h1>Profile</h1>",
    "cart.html": "<h1>Cart</h1>",
    "orders.html": "<h1>Orders</h1>",
}


class Credentials(BaseModel):
    email: str
    password: str


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def public_dir(tmp_path):
    """Public asset directory with every page document and a few assets."""
    root = tmp_path / "public"
    root.mkdir()
    for name, content in PAGES.items():
        (root / name).write_text(content)

    (root / "css").mkdir()
    (root / "css" / "site.css").write_text("body { color: #333; }")
    (root / "js").mkdir()
    (root / "js" / "app.js").write_text("console.log('storefront');")
    (root / "docs").mkdir()
    (root / "docs" / "index.html").write_text("<h1>Docs</h1>")
    (root / ".env").write_text("SECRET=1")

    # Lives next to the public directory, never inside it
    (tmp_path / "secret.txt").write_text("top secret")
    return root


@pytest.fixture
def handler_calls():
    """Records every route group handler invocation."""
    return []


@pytest.fixture
def route_groups(handler_calls):
    """Route groups with echo handlers registered."""
    groups = default_route_groups()
    products = groups["products"].router
    auth = groups["auth"].router
    settings_group = groups["settings"].router

    @products.get("/")
    async def list_products():
        handler_calls.append("list_products")
        return {"products": []}

    @products.post("/echo")
    async def echo_body(body: DecodedBody):
        handler_calls.append("echo_body")
        return {"body": body}

    @products.post("/raw")
    async def echo_raw(request: Request):
        handler_calls.append("echo_raw")
        raw = await request.body()
        return {"raw": raw.decode("utf-8")}

    @products.get("/boom")
    async def boom():
        handler_calls.append("boom")
        raise RuntimeError("database exploded")

    @products.get("/items/{sku}")
    async def get_item(sku: str):
        handler_calls.append("get_item")
        raise HTTPException(status_code=404, detail=f"Product not found: {sku}")

    @products.get("/forbidden")
    async def forbidden():
        handler_calls.append("forbidden")
        raise HandlerError("Admin access required", status_code=403)

    @auth.post("/login")
    async def login(credentials: Credentials):
        handler_calls.append("login")
        return {"email": credentials.email}

    @settings_group.get("/mode")
    async def mode(settings: SettingsDep):
        handler_calls.append("mode")
        return {"production": settings.is_production}

    return groups


@pytest.fixture
def make_settings(public_dir):
    """Factory for Settings pointing at the test public directory."""

    def _make(**overrides) -> Settings:
        values = {"PUBLIC_DIR": public_dir, "NODE_ENV": "development"}
        values.update(overrides)
        return Settings(**values)

    return _make


@pytest.fixture
def make_client(make_settings, route_groups):
    """Factory for a TestClient around a freshly built application."""

    def _make(rate_limiter=None, **overrides) -> TestClient:
        app = create_app(
            make_settings(**overrides),
            rate_limiter=rate_limiter,
            route_groups=route_groups,
        )
        return TestClient(app)

    return _make


@pytest.fixture
def client(make_client):
    """Development-mode client with default limits."""
    return make_client()


@pytest.fixture
def production_client(make_client):
    """Production-mode client with a configured CORS origin."""
    return make_client(NODE_ENV="production", CORS_ORIGIN="https://shop.example.com")
