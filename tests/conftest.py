"""
Shared test fixtures and configuration for entire test suite.

Provides: in-memory datastore, reservation service, API client
Dependencies: pytest, pytest-asyncio, fastapi
"""

import os

# Settings are cached on first import, so pin the test environment early.
os.environ["ENV_MODE"] = "development"
os.environ["EXCEL_EXPORT_ENABLED"] = "false"
os.environ["REDIS_URL"] = "redis://localhost:6399/0"

import pytest
from fastapi.testclient import TestClient

from festa.core.config import get_settings
from festa.services.datastore import MockDatastore, reset_datastore
from festa.services.reservations import ReservationService, get_reservation_service

PARTY_FOODS = [
    {"id": 1, "nome": "Coxinha", "quantidade": 2},
    {"id": 2, "nome": "Bolo de chocolate", "quantidade": 1},
    {"id": 3, "nome": "Refrigerante", "quantidade": 0, "categoria": "bebida"},
]


@pytest.fixture(autouse=True)
def clear_caches():
    """Fresh settings and singletons for each test."""
    get_settings.cache_clear()
    reset_datastore()
    get_reservation_service.cache_clear()
    yield
    get_settings.cache_clear()
    reset_datastore()
    get_reservation_service.cache_clear()


@pytest.fixture
def datastore():
    """In-memory tables seeded with a small menu."""
    return MockDatastore(foods=[dict(f) for f in PARTY_FOODS])


@pytest.fixture
def service(datastore):
    return ReservationService(datastore, max_retries=5)


@pytest.fixture
def client(service):
    """API client bound to the fixture service."""
    from festa.main import app

    app.dependency_overrides[get_reservation_service] = lambda: service
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def maria():
    return {"nome": "Maria Silva", "telefone": "11999990000"}


@pytest.fixture
def joao():
    return {"nome": "João Souza", "telefone": "11888880000"}
