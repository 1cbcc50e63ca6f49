"""Shared fixtures for the gasdash test suite."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from builders import FakePocketBase
from gasdash.main import app
from gasdash.pocketbase import create_backend_client


@pytest.fixture
def backend() -> FakePocketBase:
    return FakePocketBase()


@pytest.fixture
def client(backend: FakePocketBase):
    app.state.backend_factory = backend.client
    with TestClient(app) as test_client:
        yield test_client
    app.state.backend_factory = create_backend_client
