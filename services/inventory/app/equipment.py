"""
Inventory Service — 設備 (Equipment)

Product の派生データ。商品スナップショットの項目をキャッシュし、
レンタル料金と在庫数を付け加えたもの。

apply_xxx メソッド: スナップショットや有効/無効の変更を適用する
在庫数 (available / reserved) は同期処理では変更しない。
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from .events import ProductSnapshot
from .rates import compute_daily_rate, is_rental_eligible


class Equipment:
    def __init__(self) -> None:
        self.id: int | None = None
        self.product_id: UUID | None = None
        self.sku: str = ""
        self.name: str = ""
        self.equipment_type: str = "OTHER"
        self.category_name: str | None = None
        self.brand_name: str | None = None
        self.size_range: str | None = None
        self.difficulty_level: str | None = None
        self.base_price: Decimal | None = None
        self.daily_rate: Decimal = Decimal("0.00")
        self.rental_available: bool = False
        self.available_quantity: int = 0
        self.reserved_quantity: int = 0
        self.is_active: bool = True
        # 最後に商品イベントを反映した時刻 (ストアが書き込む)
        self.synced_at: datetime | None = None

    # ── 状態変更メソッド ──────────────────────────────

    def apply_snapshot(self, snapshot: ProductSnapshot) -> None:
        self.product_id = snapshot.product_id
        self.sku = snapshot.sku
        self.name = snapshot.name
        self.equipment_type = snapshot.equipment_type
        self.category_name = snapshot.category_name
        self.brand_name = snapshot.brand_name
        self.size_range = snapshot.size_range
        self.difficulty_level = snapshot.difficulty_level
        self.base_price = snapshot.base_price
        self.daily_rate = compute_daily_rate(snapshot.base_price, snapshot.equipment_type)
        self.rental_available = snapshot.rental_available and is_rental_eligible(
            snapshot.equipment_type
        )
        self.is_active = snapshot.active

    def activate(self) -> None:
        self.is_active = True

    def deactivate(self) -> None:
        self.is_active = False

    # ── 生成 ─────────────────────────────────────────

    @classmethod
    def from_snapshot(cls, snapshot: ProductSnapshot) -> "Equipment":
        """新規設備: 在庫数は 0 から始まる。"""
        equipment = cls()
        equipment.apply_snapshot(snapshot)
        return equipment

    @classmethod
    def from_row(cls, row) -> "Equipment":
        equipment = cls()
        equipment.id = row.id
        equipment.product_id = UUID(str(row.product_id))
        equipment.sku = row.sku
        equipment.name = row.name
        equipment.equipment_type = row.equipment_type
        equipment.category_name = row.category_name
        equipment.brand_name = row.brand_name
        equipment.size_range = row.size_range
        equipment.difficulty_level = row.difficulty_level
        equipment.base_price = row.base_price
        equipment.daily_rate = row.daily_rate
        equipment.rental_available = row.rental_available
        equipment.available_quantity = row.available_quantity
        equipment.reserved_quantity = row.reserved_quantity
        equipment.is_active = row.is_active
        equipment.synced_at = row.synced_at
        return equipment

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": str(self.product_id),
            "sku": self.sku,
            "name": self.name,
            "equipment_type": self.equipment_type,
            "category_name": self.category_name,
            "brand_name": self.brand_name,
            "size_range": self.size_range,
            "difficulty_level": self.difficulty_level,
            "base_price": float(self.base_price) if self.base_price is not None else None,
            "daily_rate": float(self.daily_rate),
            "rental_available": self.rental_available,
            "available_quantity": self.available_quantity,
            "reserved_quantity": self.reserved_quantity,
            "is_active": self.is_active,
            "synced_at": self.synced_at.isoformat() if self.synced_at else None,
        }
