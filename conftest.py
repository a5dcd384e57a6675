import pytest
from fastapi.testclient import TestClient

import api as api_module
from library import Library


@pytest.fixture
def lib():
    # Each test gets a library freshly seeded with the three starting books
    return Library()


@pytest.fixture
def client(lib, monkeypatch):
    # Point the app's global library at this test's instance
    monkeypatch.setattr(api_module, "library", lib)
    with TestClient(api_module.app) as test_client:
        yield test_client
