import os
import sys

import pytest
from fastapi.testclient import TestClient

# Add the project root directory to the Python path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from imagor_url.main import app
from imagor_url.services.builder import ImagorUrlBuilder
from imagor_url.services.client import builder_registry
from imagor_url.services.signing import HmacSigner

from tests.helpers import SECRET, SERVER


@pytest.fixture(autouse=True)
def clear_registry():
    """Isolate tests from builders cached by earlier tests."""
    builder_registry.clear()
    yield
    builder_registry.clear()


@pytest.fixture
def signed_builder():
    """Create a builder with a signing secret."""
    return ImagorUrlBuilder.create(server=SERVER, secret=SECRET, signer=HmacSigner())


@pytest.fixture
def unsigned_builder():
    """Create a builder without a secret."""
    return ImagorUrlBuilder.create(server=SERVER)


@pytest.fixture
def client():
    """Create a test client for the app."""
    return TestClient(app)
