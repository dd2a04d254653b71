"""Shared pytest fixtures for the relay tests."""

from __future__ import annotations

import json
from typing import Any
from unittest.mock import MagicMock

import pytest

from app import create_app
from config import Settings
from probe import ProviderEndpoint

STUB_API_BASE = "https://tiktok.stub/open_api/v1.3"


def fake_response(status: int = 200, payload: Any = None, text: str | None = None) -> MagicMock:
    """A stand-in for requests.Response; a None payload means the body is not JSON."""
    resp = MagicMock()
    resp.status_code = status
    resp.ok = 200 <= status < 300
    if payload is None:
        resp.json.side_effect = ValueError("not json")
        resp.text = text or ""
    else:
        resp.json.return_value = payload
        resp.text = json.dumps(payload)
    return resp


@pytest.fixture
def make_response():
    return fake_response


@pytest.fixture
def settings() -> Settings:
    return Settings(
        api_base=STUB_API_BASE,
        timeout=0.5,
        ip_providers=(
            ProviderEndpoint("first", "https://first.stub/json"),
            ProviderEndpoint("second", "https://second.stub/json"),
        ),
    )


@pytest.fixture
def session() -> MagicMock:
    """Mock requests.Session; no test reaches the network."""
    return MagicMock()


@pytest.fixture
def client(settings: Settings, session: MagicMock):
    return create_app(settings, session).test_client()
