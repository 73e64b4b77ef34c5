"""
Inventory Service — 受信イベント定義

Product Catalog Service から product_events チャネルで届くイベント。
スキーマは Catalog 側の定義と同じ形だが、各サービスが自前で持つ
(サービス間でコードを共有しない)。
"""

from datetime import datetime, timezone
from decimal import Decimal
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class ProductEvent(BaseModel):
    event_id: UUID = Field(default_factory=uuid4)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    product_id: UUID
    sku: str


class ProductSnapshot(ProductEvent):
    """商品の全項目スナップショット"""
    name: str
    category_name: str | None = None
    brand_name: str | None = None
    equipment_type: str = "OTHER"
    size_range: str | None = None
    difficulty_level: str | None = None
    base_price: Decimal | None = None
    description: str | None = None
    image_url: str | None = None
    rental_available: bool = True
    active: bool = True


class ProductCreated(ProductSnapshot):
    """商品が作成された"""


class ProductUpdated(ProductSnapshot):
    """商品が更新された (previous は更新前のスナップショット)"""
    previous: ProductSnapshot | None = None


class ProductDeleted(ProductEvent):
    """商品が削除された"""


class ProductActivated(ProductEvent):
    """商品が有効化された"""


class ProductDeactivated(ProductEvent):
    """商品が無効化された"""


EVENT_TYPES: dict[str, type[ProductEvent]] = {
    "ProductCreated": ProductCreated,
    "ProductUpdated": ProductUpdated,
    "ProductDeleted": ProductDeleted,
    "ProductActivated": ProductActivated,
    "ProductDeactivated": ProductDeactivated,
}
