"""
Inventory Service — データ同期ヘルスチェック

equipment に保持している商品キャッシュの健全性を集計する。

  - cache_issues:      sku / name が欠けている行 (同期が不完全)
  - stale_cache_count: synced_at が stale_after (既定 24 時間) より古い行

cache_issues が 1 件でもあるか、stale が全体の 10% 以上なら unhealthy。
synced_at が NULL の行は stale として数えない。
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable

from sqlalchemy import text
from sqlalchemy.orm import sessionmaker

logger = logging.getLogger(__name__)

STALE_AFTER = timedelta(hours=24)
UNHEALTHY_STALE_RATIO = 0.1

SYNC_STATUS_QUERY = """
    SELECT COUNT(*) AS total_equipment,
           COUNT(*) FILTER (WHERE sku IS NULL OR name IS NULL) AS cache_issues,
           COUNT(*) FILTER (WHERE synced_at < :cutoff) AS stale_cache_count
    FROM equipment
"""


@dataclass(frozen=True)
class SyncStatus:
    total_equipment: int
    cache_issues: int
    stale_cache_count: int

    @property
    def healthy(self) -> bool:
        if self.cache_issues:
            return False
        if self.stale_cache_count == 0:
            return True
        return self.stale_cache_count < self.total_equipment * UNHEALTHY_STALE_RATIO


class DataSyncHealthCheck:
    def __init__(
        self,
        session_factory: sessionmaker,
        stale_after: timedelta = STALE_AFTER,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self._session_factory = session_factory
        self.stale_after = stale_after
        self._clock = clock

    async def check_data_sync(self) -> SyncStatus:
        async with self._session_factory() as session:
            result = await session.execute(
                text(SYNC_STATUS_QUERY),
                {"cutoff": self._clock() - self.stale_after},
            )
            row = result.one()
        return SyncStatus(
            total_equipment=row.total_equipment or 0,
            cache_issues=row.cache_issues or 0,
            stale_cache_count=row.stale_cache_count or 0,
        )

    async def report(self) -> dict:
        """/health/sync 用のレスポンス本文。集計自体の失敗は status=error で返す。"""
        try:
            status = await self.check_data_sync()
        except Exception as exc:
            logger.warning("Data sync health check failed: %r", exc)
            return {"status": "error", "error": repr(exc)}

        body = {
            "status": "healthy" if status.healthy else "unhealthy",
            "last_check": self._clock().isoformat(),
            "total_equipment": status.total_equipment,
            "cache_issues": status.cache_issues,
            "stale_cache_count": status.stale_cache_count,
        }
        if not status.healthy:
            logger.warning(
                "Product cache unhealthy: %d issues, %d stale of %d",
                status.cache_issues, status.stale_cache_count, status.total_equipment,
            )
        return body
