import pytest
from fastapi.testclient import TestClient

import main
from config import Settings
from schemas import Product
from sources import MemorySource
from storefront import Storefront

TSHIRT = "65a1f0c2e4b0a1a2b3c4d501"
TROUSERS = "65a1f0c2e4b0a1a2b3c4d502"
BLOUSE = "65a1f0c2e4b0a1a2b3c4d503"
OXFORDS = "65a1f0c2e4b0a1a2b3c4d505"
TOTE = "65a1f0c2e4b0a1a2b3c4d506"


def make_product(pid, name="Item", price=10.0, category="MAN", created_at="2024-01-01T00:00:00Z"):
    return Product.model_validate(
        {"_id": pid, "name": name, "price": price, "category": category, "createdAt": created_at}
    )


@pytest.fixture
def settings(tmp_path):
    return Settings(data_source="memory", session_file=str(tmp_path / "session.json"))


@pytest.fixture
def source():
    return MemorySource()


@pytest.fixture
def storefront(settings, source):
    return Storefront(settings, source=source)


@pytest.fixture
def client(storefront, monkeypatch, tmp_path):
    monkeypatch.setenv("STOREFRONT_DATA_SOURCE", "memory")
    monkeypatch.setenv("STOREFRONT_SESSION_FILE", str(tmp_path / "app-session.json"))
    main.app.dependency_overrides[main.get_storefront] = lambda: storefront
    with TestClient(main.app) as c:
        yield c
    main.app.dependency_overrides.clear()
