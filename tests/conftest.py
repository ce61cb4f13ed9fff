import pytest
from fastapi.testclient import TestClient

from config import Settings
from database import MemoryStore
from main import build_services, create_app
from schemas import MenuItemCreate
from seed import seed_store

ADMIN_PASSCODE = "test-passcode"


@pytest.fixture
def settings():
    return Settings(admin_passcode=ADMIN_PASSCODE)


@pytest.fixture
def store():
    store = MemoryStore()
    seed_store(store)
    return store


@pytest.fixture
def services(store, settings):
    return build_services(store, settings)


@pytest.fixture
def pizza(services):
    return services.catalog.create_menu_item(
        MenuItemCreate(id="pizza-1", name="Pizza", description="Test pizza", price="16.00", category_id="3")
    )


@pytest.fixture
def client(settings):
    app = create_app(settings, MemoryStore())
    with TestClient(app) as client:
        yield client


@pytest.fixture
def lenient_client(settings):
    """Client that turns unhandled errors into 500 responses instead of raising."""
    app = create_app(settings, MemoryStore())
    with TestClient(app, raise_server_exceptions=False) as client:
        yield client
