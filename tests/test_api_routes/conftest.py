"""
Fixtures for route tests: a full app wired to a temporary database.
"""
import pytest
from fastapi.testclient import TestClient

from gtdtree.app.factory import create_app
from gtdtree.dependencies.services import ServiceContainer, set_services


@pytest.fixture
def services(db, settings):
    container = ServiceContainer(settings=settings, db=db)
    yield container
    set_services(None)


@pytest.fixture
def app(services):
    """Create the FastAPI app bound to the temporary database."""
    return create_app(services=services)


@pytest.fixture
def client(app):
    """Create a test client."""
    return TestClient(app)
