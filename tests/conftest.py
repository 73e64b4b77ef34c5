# tests/conftest.py
import pytest

from inventory_service.events import ProductCreated, ProductUpdated
from inventory_service.reconciliation import ReconciliationService
from mocks.fake_store import FakeEquipmentStore
from mocks.payloads import snapshot_data


@pytest.fixture
def store():
    """Provide an empty in-memory equipment store"""
    return FakeEquipmentStore()


@pytest.fixture
def service(store):
    return ReconciliationService(store)


@pytest.fixture
def make_created():
    def _make(**overrides) -> ProductCreated:
        return ProductCreated.model_validate(snapshot_data(**overrides))
    return _make


@pytest.fixture
def make_updated():
    def _make(**overrides) -> ProductUpdated:
        data = snapshot_data(**overrides)
        data["previous"] = snapshot_data(product_id=data["product_id"], base_price="40000")
        return ProductUpdated.model_validate(data)
    return _make
