"""
Inventory Service — 商品イベントの突き合わせ (Reconciliation)

Product Catalog から届いたライフサイクルイベントを equipment に反映する。
すべてのハンドラは product_id をキーにした upsert として書かれているため、
同じイベントの再配信や順序の入れ替わりがあっても最終状態は同じになる。

  ProductCreated      → upsert (無ければ INSERT、有れば UPDATE)
  ProductUpdated      → upsert (無ければ新しいスナップショットで作成)
  ProductDeleted      → is_active = false (無ければ何もしない)
  ProductActivated    → is_active = true  (無ければ EquipmentNotFoundError)
  ProductDeactivated  → is_active = false (無ければ EquipmentNotFoundError)
"""

import enum
import logging
from dataclasses import dataclass
from uuid import UUID

from .equipment import Equipment
from .events import (
    EVENT_TYPES,
    ProductActivated,
    ProductCreated,
    ProductDeactivated,
    ProductDeleted,
    ProductSnapshot,
    ProductUpdated,
)
from .exceptions import (
    DuplicateEquipmentError,
    EquipmentNotFoundError,
    ReconciliationError,
    StoreError,
)

logger = logging.getLogger(__name__)


class UpsertOutcome(enum.Enum):
    CREATED = "CREATED"
    UPDATED = "UPDATED"


@dataclass
class UpsertResult:
    outcome: UpsertOutcome
    equipment: Equipment


class ReconciliationService:
    def __init__(self, store):
        self.store = store

    async def handle_event(self, event_type: str, data: dict):
        """イベントタイプに応じたハンドラを呼び出す。未知のタイプは無視する。"""
        handler = {
            "ProductCreated": self.handle_created,
            "ProductUpdated": self.handle_updated,
            "ProductDeleted": self.handle_deleted,
            "ProductActivated": self.handle_activated,
            "ProductDeactivated": self.handle_deactivated,
        }.get(event_type)
        if not handler:
            logger.warning("Ignoring unknown product event type: %s", event_type)
            return None
        event = EVENT_TYPES[event_type].model_validate(data)
        return await handler(event)

    # ── イベントハンドラ ─────────────────────────────

    async def handle_created(self, event: ProductCreated) -> UpsertResult:
        result = await self.upsert(event)
        if result.outcome is UpsertOutcome.UPDATED:
            logger.warning(
                "Equipment already exists for product %s, updated instead",
                event.product_id,
            )
        return result

    async def handle_updated(self, event: ProductUpdated) -> UpsertResult:
        result = await self.upsert(event)
        if result.outcome is UpsertOutcome.CREATED:
            logger.warning(
                "Update for unknown product %s, created equipment from snapshot",
                event.product_id,
            )
        return result

    async def handle_deleted(self, event: ProductDeleted) -> Equipment | None:
        equipment = await self.store.find_by_product_id(event.product_id)
        if equipment is None:
            logger.info("No equipment for deleted product %s, nothing to do", event.product_id)
            return None
        if equipment.reserved_quantity > 0:
            logger.warning(
                "Deactivating equipment for deleted product %s with %d reserved",
                event.product_id,
                equipment.reserved_quantity,
            )
        equipment.deactivate()
        return await self.store.update(equipment)

    async def handle_activated(self, event: ProductActivated) -> Equipment:
        return await self._set_active(event.product_id, True)

    async def handle_deactivated(self, event: ProductDeactivated) -> Equipment:
        return await self._set_active(event.product_id, False)

    # ── upsert ───────────────────────────────────────

    async def upsert(self, snapshot: ProductSnapshot) -> UpsertResult:
        """
        product_id をキーにスナップショットを反映する。

        1. 既存行を検索
        2. 無ければ INSERT → CREATED
        3. 有れば項目を上書きして UPDATE → UPDATED
        INSERT が一意制約で競合した場合 (同時配信) は、
        勝った側の行に対して一度だけ UPDATE を再試行する。
        """
        existing = await self.store.find_by_product_id(snapshot.product_id)
        if existing is None:
            try:
                created = await self.store.insert(Equipment.from_snapshot(snapshot))
                logger.info(
                    "Created equipment for product %s with daily rate %s",
                    snapshot.product_id,
                    created.daily_rate,
                )
                return UpsertResult(UpsertOutcome.CREATED, created)
            except DuplicateEquipmentError as exc:
                logger.warning(
                    "Concurrent insert for product %s, retrying as update",
                    snapshot.product_id,
                )
                return await self._retry_as_update(snapshot, exc)

        existing.apply_snapshot(snapshot)
        updated = await self.store.update(existing)
        return UpsertResult(UpsertOutcome.UPDATED, updated)

    async def _retry_as_update(
        self, snapshot: ProductSnapshot, cause: DuplicateEquipmentError
    ) -> UpsertResult:
        try:
            existing = await self.store.find_by_product_id(snapshot.product_id)
            if existing is None:
                raise ReconciliationError(
                    f"Equipment for product {snapshot.product_id} conflicted but was not found"
                ) from cause
            existing.apply_snapshot(snapshot)
            updated = await self.store.update(existing)
        except StoreError as exc:
            raise ReconciliationError(
                f"Failed to reconcile product {snapshot.product_id} after conflict"
            ) from exc
        return UpsertResult(UpsertOutcome.UPDATED, updated)

    async def _set_active(self, product_id: UUID, active: bool) -> Equipment:
        equipment = await self.store.find_by_product_id(product_id)
        if equipment is None:
            raise EquipmentNotFoundError(product_id)
        if active:
            equipment.activate()
        else:
            equipment.deactivate()
        updated = await self.store.update(equipment)
        logger.info(
            "%s equipment for product %s",
            "Activated" if active else "Deactivated",
            product_id,
        )
        return updated
