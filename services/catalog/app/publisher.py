"""
Product Catalog Service — 商品イベント発行

商品の変更を Redis Pub/Sub の product_events チャネルに発行する。

発行は fire-and-forget:
  publish_xxx() は送信タスクを登録してすぐに戻る (呼び出し元は待たない)。
  送信結果は完了コールバックでログに記録するだけで、
  失敗しても再送・永続化はしない。at-least-once ではない。

  「送信が受け付けられた」と「Inventory に届いた」は別物。
  Redis の publish は受信したサブスクライバ数を返すので、0 なら警告を出す。
"""

import asyncio
import json
import logging
from uuid import UUID

import redis.asyncio as aioredis

from .events import (
    Product,
    ProductActivated,
    ProductCreated,
    ProductDeactivated,
    ProductDeleted,
    ProductEvent,
    ProductUpdated,
)

logger = logging.getLogger(__name__)


class ProductEventPublisher:
    def __init__(self, redis: aioredis.Redis, channel: str = "product_events"):
        self.redis = redis
        self.channel = channel
        self._in_flight: set[asyncio.Task] = set()

    # ── 発行 API ─────────────────────────────────────

    def publish_created(self, product: Product) -> asyncio.Task:
        return self._submit("created", ProductCreated.of(product))

    def publish_updated(self, old_product: Product, new_product: Product) -> asyncio.Task:
        return self._submit("updated", ProductUpdated.of(old_product, new_product))

    def publish_deleted(self, product_id: UUID, sku: str) -> asyncio.Task:
        return self._submit("deleted", ProductDeleted(product_id=product_id, sku=sku))

    def publish_activated(self, product_id: UUID, sku: str) -> asyncio.Task:
        return self._submit("activated", ProductActivated(product_id=product_id, sku=sku))

    def publish_deactivated(self, product_id: UUID, sku: str) -> asyncio.Task:
        return self._submit(
            "deactivated", ProductDeactivated(product_id=product_id, sku=sku)
        )

    async def drain(self) -> None:
        """送信中のタスクをすべて待つ (シャットダウン時)"""
        if self._in_flight:
            await asyncio.wait(set(self._in_flight))

    # ── 内部処理 ─────────────────────────────────────

    def _submit(self, action: str, event: ProductEvent) -> asyncio.Task:
        payload = json.dumps(
            {
                "event_type": type(event).__name__,
                "data": event.model_dump(mode="json"),
            },
            default=str,
        )
        task = asyncio.create_task(self.redis.publish(self.channel, payload))
        self._in_flight.add(task)
        task.add_done_callback(
            lambda t: self._on_complete(t, action, event.product_id)
        )
        return task

    def _on_complete(self, task: asyncio.Task, action: str, product_id: UUID) -> None:
        self._in_flight.discard(task)
        try:
            if task.cancelled():
                logger.error(
                    "Publishing product %s event was cancelled for product: %s",
                    action,
                    product_id,
                )
                return
            failure = task.exception()
            if failure is not None:
                logger.error(
                    "Failed to publish product %s event for product: %s",
                    action,
                    product_id,
                    exc_info=failure,
                )
                return
            receivers = task.result()
            if not receivers:
                logger.warning(
                    "Published product %s event for product: %s but no subscriber received it",
                    action,
                    product_id,
                )
            else:
                logger.info(
                    "Published product %s event for product: %s (receivers=%s)",
                    action,
                    product_id,
                    receivers,
                )
        except Exception:
            logger.exception("Publish callback failed for product: %s", product_id)
