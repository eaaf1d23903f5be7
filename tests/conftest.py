"""
Shared fixtures: every test gets its own in-memory store, so no state leaks
between tests and no HTTP server is needed for store-level checks.
"""
import pytest
from fastapi.testclient import TestClient

from scamcheck.api.main import create_app
from scamcheck.infra.repositories import InMemoryRepository
from scamcheck.services.report_service import ReportService


@pytest.fixture
def repo():
    return InMemoryRepository()


@pytest.fixture
def service(repo):
    return ReportService(repo)


@pytest.fixture
def client(service):
    return TestClient(create_app(service))


@pytest.fixture
def report_payload():
    return {
        "phoneNumber": "555-123-4567",
        "category": "robocalls",
        "description": "Recorded voice asking for SSN",
    }
