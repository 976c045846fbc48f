"""Shared fixtures: a route table mirroring the documented examples and a test client."""
from __future__ import annotations

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from goredirect.config import Settings
from goredirect.domain.routes import RouteTable
from goredirect.main import create_app
from goredirect.service.redirect_service import build_route_table

PAIRS = [
    ("9fans.net/go", "https://github.com/9fans/go"),
    ("rsc.io/*", "https://github.com/rsc/*"),
    ("example.com/*", "hg+https://example.org/*"),
]


@pytest.fixture
def table() -> RouteTable:
    return build_route_table(PAIRS)


@pytest.fixture
def settings() -> Settings:
    return Settings()


@pytest.fixture
def app(table: RouteTable, settings: Settings) -> FastAPI:
    return create_app(table, settings)


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    """Test client; absolute URLs set the Host header the router matches on."""
    return TestClient(app)
