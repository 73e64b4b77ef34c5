# tests/test_sync_health.py
import logging
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from inventory_service.sync_health import DataSyncHealthCheck, SyncStatus

NOW = datetime(2026, 1, 15, 9, 0, tzinfo=timezone.utc)


def _session_factory(row=None, error=None):
    session = AsyncMock()
    if error is not None:
        session.execute.side_effect = error
    else:
        result = MagicMock()
        result.one.return_value = row
        session.execute.return_value = result
    factory = MagicMock()
    factory.return_value.__aenter__.return_value = session
    factory.return_value.__aexit__.return_value = False
    return factory, session


def _row(total, issues=0, stale=0):
    return SimpleNamespace(total_equipment=total, cache_issues=issues, stale_cache_count=stale)


@pytest.mark.parametrize(
    "status, healthy",
    [
        (SyncStatus(100, 0, 0), True),
        (SyncStatus(100, 0, 9), True),
        (SyncStatus(100, 0, 10), False),
        (SyncStatus(100, 1, 0), False),
        (SyncStatus(0, 0, 0), True),
        (SyncStatus(5, 0, 1), False),
    ],
)
def test_health_thresholds(status, healthy):
    assert status.healthy is healthy


@pytest.mark.asyncio
async def test_stale_cutoff_is_relative_to_clock():
    factory, session = _session_factory(_row(10))
    check = DataSyncHealthCheck(factory, clock=lambda: NOW)

    await check.check_data_sync()

    params = session.execute.await_args.args[1]
    assert params["cutoff"] == NOW - timedelta(hours=24)


@pytest.mark.asyncio
async def test_report_healthy():
    factory, _ = _session_factory(_row(40, stale=2))
    check = DataSyncHealthCheck(factory, clock=lambda: NOW)

    body = await check.report()

    assert body == {
        "status": "healthy",
        "last_check": NOW.isoformat(),
        "total_equipment": 40,
        "cache_issues": 0,
        "stale_cache_count": 2,
    }


@pytest.mark.asyncio
async def test_report_unhealthy_is_logged(caplog):
    factory, _ = _session_factory(_row(40, issues=3, stale=8))
    check = DataSyncHealthCheck(factory, clock=lambda: NOW)

    with caplog.at_level(logging.WARNING, logger="inventory_service.sync_health"):
        body = await check.report()

    assert body["status"] == "unhealthy"
    assert body["cache_issues"] == 3
    assert body["stale_cache_count"] == 8
    assert "Product cache unhealthy" in caplog.text


@pytest.mark.asyncio
async def test_report_error_when_query_fails():
    factory, _ = _session_factory(
        error=OperationalError("SELECT", {}, Exception("connection refused"))
    )
    check = DataSyncHealthCheck(factory, clock=lambda: NOW)

    body = await check.report()

    assert body["status"] == "error"
    assert "connection refused" in body["error"]
