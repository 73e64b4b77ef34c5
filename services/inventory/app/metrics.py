"""
Inventory Service — 監視用メトリクス集計

ダッシュボード・監視エクスポーターから定期的にポーリングされる読み取り専用の集計。
各クエリは独立したセッションで実行し、1 つの失敗が他に波及しないようにする。

失敗時の扱い:
  measure() は値または失敗理由を持つ MetricResult を返す (失敗はここでログ出力)。
  公開アクセサ (total_equipment() など) だけが失敗を 0 / 0.0 に置き換える。
  本当の障害はダッシュボード上では 0 として見えるので、区別したい場合は
  measure() / measure_all() を使うこと。
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable

from sqlalchemy import text
from sqlalchemy.orm import sessionmaker

logger = logging.getLogger(__name__)

DEFAULT_LOW_STOCK_THRESHOLD = 5

COUNT_QUERIES: dict[str, str] = {
    "total_equipment": "SELECT COUNT(*) FROM equipment",
    "available_equipment": "SELECT COUNT(*) FROM equipment WHERE available_quantity > 0",
    "out_of_stock_equipment": "SELECT COUNT(*) FROM equipment WHERE available_quantity = 0",
    "low_stock_equipment": """
        SELECT COUNT(*) FROM equipment
        WHERE available_quantity > 0 AND available_quantity <= :threshold
    """,
    "active_alerts": "SELECT COUNT(*) FROM inventory_alerts WHERE status = 'ACTIVE'",
    "critical_alerts": """
        SELECT COUNT(*) FROM inventory_alerts
        WHERE severity = 'CRITICAL' AND status = 'ACTIVE'
    """,
    "pending_reservations": "SELECT COUNT(*) FROM stock_reservations WHERE status = 'PENDING'",
    "active_reservations": "SELECT COUNT(*) FROM stock_reservations WHERE status = 'CONFIRMED'",
    "overdue_maintenance": """
        SELECT COUNT(*) FROM maintenance_records
        WHERE status = 'SCHEDULED' AND scheduled_date < :now
    """,
    "maintenance_in_progress": """
        SELECT COUNT(*) FROM maintenance_records WHERE status = 'IN_PROGRESS'
    """,
}

VALUE_QUERIES: dict[str, str] = {
    "total_inventory_value": """
        SELECT SUM(daily_rate * (available_quantity + reserved_quantity)) FROM equipment
    """,
    "available_inventory_value": "SELECT SUM(daily_rate * available_quantity) FROM equipment",
}

METRIC_NAMES: tuple[str, ...] = tuple(COUNT_QUERIES) + tuple(VALUE_QUERIES)


@dataclass(frozen=True)
class MetricResult:
    name: str
    value: int | float | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def or_default(self) -> int | float:
        if self.ok:
            return self.value
        return default_for(self.name)


def default_for(name: str) -> int | float:
    return 0.0 if name in VALUE_QUERIES else 0


class MetricsAggregator:
    def __init__(
        self,
        session_factory: sessionmaker,
        low_stock_threshold: int = DEFAULT_LOW_STOCK_THRESHOLD,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self._session_factory = session_factory
        self.low_stock_threshold = low_stock_threshold
        self._clock = clock

    async def measure(self, name: str) -> MetricResult:
        """1 つのメトリクスを取得する。例外は MetricResult.error に変換する。"""
        if name in COUNT_QUERIES:
            sql = COUNT_QUERIES[name]
        elif name in VALUE_QUERIES:
            sql = VALUE_QUERIES[name]
        else:
            raise KeyError(f"Unknown metric: {name}")

        try:
            async with self._session_factory() as session:
                result = await session.execute(text(sql), self._params(name))
                raw = result.scalar()
        except Exception as exc:
            logger.warning("Metric %s unavailable: %r", name, exc)
            return MetricResult(name, error=repr(exc))

        if name in VALUE_QUERIES:
            return MetricResult(name, float(raw) if raw is not None else 0.0)
        return MetricResult(name, int(raw) if raw is not None else 0)

    async def measure_all(self) -> dict[str, MetricResult]:
        return {name: await self.measure(name) for name in METRIC_NAMES}

    async def snapshot(self) -> dict[str, int | float]:
        """全メトリクスをデフォルト値適用済みで返す (ダッシュボード用)"""
        results = await self.measure_all()
        return {name: r.or_default() for name, r in results.items()}

    def _params(self, name: str) -> dict:
        if name == "low_stock_equipment":
            return {"threshold": self.low_stock_threshold}
        if name == "overdue_maintenance":
            return {"now": self._clock()}
        return {}

    # ── 監視向けアクセサ (失敗時は 0 / 0.0) ─────────────

    async def total_equipment(self) -> int:
        return (await self.measure("total_equipment")).or_default()

    async def available_equipment(self) -> int:
        return (await self.measure("available_equipment")).or_default()

    async def out_of_stock_equipment(self) -> int:
        return (await self.measure("out_of_stock_equipment")).or_default()

    async def low_stock_equipment(self) -> int:
        return (await self.measure("low_stock_equipment")).or_default()

    async def active_alerts(self) -> int:
        return (await self.measure("active_alerts")).or_default()

    async def critical_alerts(self) -> int:
        return (await self.measure("critical_alerts")).or_default()

    async def pending_reservations(self) -> int:
        return (await self.measure("pending_reservations")).or_default()

    async def active_reservations(self) -> int:
        return (await self.measure("active_reservations")).or_default()

    async def overdue_maintenance(self) -> int:
        return (await self.measure("overdue_maintenance")).or_default()

    async def maintenance_in_progress(self) -> int:
        return (await self.measure("maintenance_in_progress")).or_default()

    async def total_inventory_value(self) -> float:
        return (await self.measure("total_inventory_value")).or_default()

    async def available_inventory_value(self) -> float:
        return (await self.measure("available_inventory_value")).or_default()
