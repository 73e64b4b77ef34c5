# tests/test_metrics.py
from datetime import datetime, timezone
from decimal import Decimal
from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import OperationalError, ProgrammingError

from inventory_service.metrics import (
    COUNT_QUERIES,
    METRIC_NAMES,
    VALUE_QUERIES,
    MetricsAggregator,
)


class FakeSession:
    def __init__(self, factory):
        self.factory = factory

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        return False

    async def execute(self, statement, params=None):
        sql = statement.text
        self.factory.calls.append((sql, params))
        for fragment, error in self.factory.failures.items():
            if fragment in sql:
                raise error
        name = next(n for n, q in {**COUNT_QUERIES, **VALUE_QUERIES}.items() if q == sql)
        result = MagicMock()
        result.scalar.return_value = self.factory.values.get(name)
        return result


class FakeSessionFactory:
    """Session factory whose queries answer from a name -> value table"""

    def __init__(self, values=None, failures=None):
        self.values = values or {}
        self.failures = failures or {}
        self.calls: list = []

    def __call__(self):
        return FakeSession(self)


NOW = datetime(2026, 1, 15, 9, 0, tzinfo=timezone.utc)


def _aggregator(factory, **kwargs):
    return MetricsAggregator(factory, clock=lambda: NOW, **kwargs)


# --- Healthy store ---

@pytest.mark.asyncio
async def test_counts_and_values_are_returned():
    factory = FakeSessionFactory(values={
        "total_equipment": 12,
        "available_equipment": 9,
        "out_of_stock_equipment": 3,
        "low_stock_equipment": 4,
        "active_alerts": 2,
        "critical_alerts": 1,
        "pending_reservations": 5,
        "active_reservations": 6,
        "overdue_maintenance": 1,
        "maintenance_in_progress": 2,
        "total_inventory_value": Decimal("123456.50"),
        "available_inventory_value": Decimal("100000.00"),
    })
    metrics = _aggregator(factory)

    assert await metrics.total_equipment() == 12
    assert await metrics.available_equipment() == 9
    assert await metrics.out_of_stock_equipment() == 3
    assert await metrics.low_stock_equipment() == 4
    assert await metrics.active_alerts() == 2
    assert await metrics.critical_alerts() == 1
    assert await metrics.pending_reservations() == 5
    assert await metrics.active_reservations() == 6
    assert await metrics.overdue_maintenance() == 1
    assert await metrics.maintenance_in_progress() == 2
    assert await metrics.total_inventory_value() == 123456.5
    assert await metrics.available_inventory_value() == 100000.0


@pytest.mark.asyncio
async def test_empty_sum_is_zero_value_not_failure():
    metrics = _aggregator(FakeSessionFactory(values={"total_inventory_value": None}))

    result = await metrics.measure("total_inventory_value")

    assert result.ok
    assert result.value == 0.0


@pytest.mark.asyncio
async def test_low_stock_threshold_is_bound():
    factory = FakeSessionFactory(values={"low_stock_equipment": 0})
    metrics = _aggregator(factory, low_stock_threshold=3)

    await metrics.low_stock_equipment()

    assert factory.calls[0][1] == {"threshold": 3}


@pytest.mark.asyncio
async def test_overdue_maintenance_uses_clock():
    factory = FakeSessionFactory(values={"overdue_maintenance": 0})

    await _aggregator(factory).overdue_maintenance()

    assert factory.calls[0][1] == {"now": NOW}


@pytest.mark.asyncio
async def test_unknown_metric_name_is_rejected():
    with pytest.raises(KeyError):
        await _aggregator(FakeSessionFactory()).measure("revenue")


# --- Failing store ---

@pytest.mark.asyncio
@pytest.mark.parametrize("name", METRIC_NAMES)
async def test_every_accessor_returns_default_on_failure(name):
    factory = FakeSessionFactory(failures={"SELECT": OperationalError("SELECT", {}, Exception("down"))})
    metrics = _aggregator(factory)

    value = await getattr(metrics, name)()

    if name in VALUE_QUERIES:
        assert value == 0.0
        assert isinstance(value, float)
    else:
        assert value == 0
        assert isinstance(value, int)


@pytest.mark.asyncio
async def test_failure_is_distinguishable_from_empty_state():
    failing = _aggregator(FakeSessionFactory(failures={"equipment": RuntimeError("boom")}))
    empty = _aggregator(FakeSessionFactory(values={"total_equipment": 0}))

    failed = await failing.measure("total_equipment")
    genuine = await empty.measure("total_equipment")

    assert not failed.ok
    assert "boom" in failed.error
    assert failed.or_default() == 0
    assert genuine.ok
    assert genuine.value == 0


@pytest.mark.asyncio
async def test_missing_table_does_not_affect_other_metrics():
    missing = ProgrammingError("SELECT", {}, Exception('relation "inventory_alerts" does not exist'))
    factory = FakeSessionFactory(
        values={"total_equipment": 4, "pending_reservations": 2},
        failures={"inventory_alerts": missing},
    )

    snapshot = await _aggregator(factory).snapshot()

    assert snapshot["total_equipment"] == 4
    assert snapshot["pending_reservations"] == 2
    assert snapshot["active_alerts"] == 0
    assert snapshot["critical_alerts"] == 0
    assert set(snapshot) == set(METRIC_NAMES)


@pytest.mark.asyncio
async def test_failure_is_logged_with_metric_name(caplog):
    factory = FakeSessionFactory(failures={"stock_reservations": RuntimeError("timeout")})

    with caplog.at_level("WARNING", logger="inventory_service.metrics"):
        assert await _aggregator(factory).pending_reservations() == 0

    assert "pending_reservations" in caplog.text
