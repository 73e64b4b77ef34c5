"""
Inventory Service — FastAPI エントリーポイント

Product Catalog Service の商品イベントを Redis Pub/Sub で購読し、
バックグラウンドで equipment (設備) に反映する。
設備の参照と監視用メトリクスの HTTP API を提供する。

┌─────────────────┐  product_events  ┌───────────────────┐
│ Product Catalog │ ───── Redis ───▶ │ Inventory Service │
│ (商品の正本)     │    Pub/Sub       │ (equipment 投影)  │
└─────────────────┘                  └────────┬──────────┘
                                              │
                                     ┌────────▼──────────┐
                                     │   Inventory DB    │
                                     └───────────────────┘
"""

import asyncio
import logging
import os
from contextlib import asynccontextmanager
from uuid import UUID

from fastapi import FastAPI, HTTPException
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker

from . import queries
from .consistency import ConsistencyChecker
from .metrics import METRIC_NAMES, MetricsAggregator
from .reconciliation import ReconciliationService
from .store import SqlEquipmentStore
from .subscriber import run_subscriber
from .sync_health import DataSyncHealthCheck

logger = logging.getLogger(__name__)

DATABASE_URL = os.environ["DATABASE_URL"]
REDIS_URL = os.environ.get("REDIS_URL", "redis://localhost:6379")
CATALOG_SERVICE_URL = os.environ.get("CATALOG_SERVICE_URL", "http://localhost:8001")
PRODUCT_EVENTS_CHANNEL = os.environ.get("PRODUCT_EVENTS_CHANNEL", "product_events")
PRODUCT_EVENTS_DEAD_LETTER = os.environ.get(
    "PRODUCT_EVENTS_DEAD_LETTER", "product_events:dead_letter"
)
LOW_STOCK_THRESHOLD = int(os.environ.get("LOW_STOCK_THRESHOLD", "5"))

engine = create_async_engine(DATABASE_URL, echo=False)
async_session = sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

equipment_store = SqlEquipmentStore(async_session)
reconciliation = ReconciliationService(equipment_store)
metrics = MetricsAggregator(async_session, low_stock_threshold=LOW_STOCK_THRESHOLD)
sync_health = DataSyncHealthCheck(async_session)
consistency = ConsistencyChecker(equipment_store, CATALOG_SERVICE_URL)


def _log_subscriber_exit(task: asyncio.Task) -> None:
    """サブスクライバが停止したら即座にログに残す (停止後のイベントは失われる)。"""
    if task.cancelled():
        logger.info("Product event subscriber stopped")
        return
    failure = task.exception()
    if failure is not None:
        logger.error("Product event subscriber died", exc_info=failure)
    else:
        logger.info("Product event subscriber stopped")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """起動時に Redis サブスクライバをバックグラウンドタスクとして開始する。"""
    shutdown_event = asyncio.Event()
    subscriber_task = asyncio.create_task(
        run_subscriber(
            REDIS_URL,
            reconciliation,
            shutdown_event,
            channel=PRODUCT_EVENTS_CHANNEL,
            dead_letter_key=PRODUCT_EVENTS_DEAD_LETTER,
        )
    )
    subscriber_task.add_done_callback(_log_subscriber_exit)
    yield
    shutdown_event.set()
    subscriber_task.cancel()
    try:
        await subscriber_task
    except asyncio.CancelledError:
        pass
    await engine.dispose()


app = FastAPI(title="Inventory Service", lifespan=lifespan)


# ── Query Endpoints ──────────────────────────────


@app.get("/queries/equipment")
async def query_list_equipment(active_only: bool = False):
    """設備一覧"""
    async with async_session() as session:
        return await queries.list_equipment(session, active_only=active_only)


@app.get("/queries/equipment/{product_id}")
async def query_get_equipment(product_id: UUID):
    """商品 ID で設備を取得"""
    async with async_session() as session:
        equipment = await queries.get_equipment(session, product_id)
        if not equipment:
            raise HTTPException(404, "Equipment not found")
        return equipment


# ── Metrics (監視エクスポーターからのポーリング用) ────


@app.get("/metrics/inventory")
async def get_inventory_metrics():
    return await metrics.snapshot()


@app.get("/metrics/inventory/{name}")
async def get_inventory_metric(name: str):
    if name not in METRIC_NAMES:
        raise HTTPException(404, "Unknown metric")
    return {"name": name, "value": await getattr(metrics, name)()}


# ── 商品キャッシュの同期状態 ─────────────────────


@app.get("/sync/differences")
async def get_sync_differences():
    """カタログの正本との差分 (修正はしない)"""
    return [d.to_dict() for d in await consistency.detect_differences()]


@app.get("/sync/consistency")
async def get_sync_consistency():
    return (await consistency.consistency_check()).to_dict()


@app.get("/health/sync")
async def health_sync():
    body = await sync_health.report()
    return JSONResponse(body, status_code=200 if body["status"] == "healthy" else 503)


@app.get("/health")
async def health():
    return {"status": "ok", "service": "inventory-service"}
