"""Shared pytest fixtures."""

import pytest
from fastapi.testclient import TestClient

from eoapi.main import app


@pytest.fixture
def client() -> TestClient:
    """A TestClient bound to the FastAPI app."""
    return TestClient(app)
