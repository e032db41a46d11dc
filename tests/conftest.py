"""Global test configuration and fixtures."""

import asyncio

import pytest
from fastapi.testclient import TestClient

from offline_geocoder.api.deps import get_geocoder_service
from offline_geocoder.main import app
from offline_geocoder.resolver import CodeOnly, NamedArea, PlaceCandidate
from offline_geocoder.service import GeocoderService
from offline_geocoder.store import InMemoryCacheStore
from tests.test_helpers import DELHI, GORAKHPUR, FakeClock, FakeResolver


@pytest.fixture
def gorakhpur_candidate():
    return PlaceCandidate(
        name="Gorakhpur",
        latitude=26.76628,
        longitude=83.36889,
        country_code="IN",
        admin1=NamedArea(code="36", name="Uttar Pradesh"),
        admin2=NamedArea(code="9165", name="Gorakhpur"),
        population=674246,
        feature_code="PPLA2",
        geoname_id=1270926,
    )


@pytest.fixture
def delhi_candidate():
    return PlaceCandidate(
        name="New Delhi",
        latitude=28.63576,
        longitude=77.22445,
        country_code="IN",
        admin1=CodeOnly(code="07"),
        population=317797,
        feature_code="PPLC",
    )


@pytest.fixture
def fake_resolver(gorakhpur_candidate, delhi_candidate):
    resolver = FakeResolver()
    resolver.responses[GORAKHPUR] = [gorakhpur_candidate]
    resolver.responses[DELHI] = [delhi_candidate]
    return resolver


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def memory_store(clock):
    return InMemoryCacheStore(clock=clock)


@pytest.fixture
def service(fake_resolver, memory_store, clock):
    """Geocoder service that still needs ``await service.init()``."""
    return GeocoderService(fake_resolver, memory_store, clock=clock)


@pytest.fixture
def ready_service(service):
    asyncio.run(service.init())
    return service


@pytest.fixture()
def client(ready_service):
    """Test client wired to a ready service with a fake resolver."""
    app.dependency_overrides[get_geocoder_service] = lambda: ready_service
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture()
def uninitialized_client(service):
    app.dependency_overrides[get_geocoder_service] = lambda: service
    yield TestClient(app)
    app.dependency_overrides.clear()
