"""
Product Catalog Service — イベント定義

商品のライフサイクルで発生するイベント。
作成・更新は商品の全項目スナップショットを運び、
削除・有効化・無効化は product_id と sku だけを運ぶ。
"""

from datetime import datetime, timezone
from decimal import Decimal
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class Product(BaseModel):
    """商品 (Catalog 側が正本)"""
    id: UUID = Field(default_factory=uuid4)
    sku: str
    name: str
    category_name: str | None = None
    brand_name: str | None = None
    equipment_type: str = "OTHER"
    size_range: str | None = None
    difficulty_level: str | None = None
    base_price: Decimal
    description: str | None = None
    image_url: str | None = None
    rental_available: bool = True
    active: bool = True


class ProductEvent(BaseModel):
    event_id: UUID = Field(default_factory=uuid4)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    product_id: UUID
    sku: str


class ProductSnapshot(ProductEvent):
    name: str
    category_name: str | None = None
    brand_name: str | None = None
    equipment_type: str
    size_range: str | None = None
    difficulty_level: str | None = None
    base_price: Decimal
    description: str | None = None
    image_url: str | None = None
    rental_available: bool
    active: bool

    @classmethod
    def snapshot_fields(cls, product: Product) -> dict:
        data = product.model_dump(exclude={"id"})
        data["product_id"] = product.id
        return data


class ProductCreated(ProductSnapshot):
    """商品が作成された"""

    @classmethod
    def of(cls, product: Product) -> "ProductCreated":
        return cls(**cls.snapshot_fields(product))


class ProductUpdated(ProductSnapshot):
    """商品が更新された (更新前のスナップショットも運ぶ)"""
    previous: ProductSnapshot

    @classmethod
    def of(cls, old: Product, new: Product) -> "ProductUpdated":
        return cls(
            **cls.snapshot_fields(new),
            previous=ProductSnapshot(**ProductSnapshot.snapshot_fields(old)),
        )


class ProductDeleted(ProductEvent):
    """商品が削除された"""


class ProductActivated(ProductEvent):
    """商品が有効化された"""


class ProductDeactivated(ProductEvent):
    """商品が無効化された"""
