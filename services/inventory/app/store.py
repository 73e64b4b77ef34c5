"""
Inventory Service — 設備ストア (Equipment Store)

equipment テーブルへの読み書き。product_id には UNIQUE 制約があり、
1 商品につき設備は高々 1 行。同時 INSERT の競合は
DuplicateEquipmentError として呼び出し側に伝える。
"""

from uuid import UUID

from sqlalchemy import text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import sessionmaker

from .equipment import Equipment
from .exceptions import DuplicateEquipmentError, StoreError


def _params(equipment: Equipment) -> dict:
    return {
        "product_id": str(equipment.product_id),
        "sku": equipment.sku,
        "name": equipment.name,
        "equipment_type": equipment.equipment_type,
        "category_name": equipment.category_name,
        "brand_name": equipment.brand_name,
        "size_range": equipment.size_range,
        "difficulty_level": equipment.difficulty_level,
        "base_price": equipment.base_price,
        "daily_rate": equipment.daily_rate,
        "rental_available": equipment.rental_available,
        "available_quantity": equipment.available_quantity,
        "reserved_quantity": equipment.reserved_quantity,
        "is_active": equipment.is_active,
    }


class SqlEquipmentStore:
    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    async def find_by_product_id(self, product_id: UUID) -> Equipment | None:
        async with self._session_factory() as session:
            result = await session.execute(
                text("SELECT * FROM equipment WHERE product_id = :product_id"),
                {"product_id": str(product_id)},
            )
            row = result.fetchone()
        if not row:
            return None
        return Equipment.from_row(row)

    async def list_all(self) -> list[Equipment]:
        async with self._session_factory() as session:
            result = await session.execute(
                text("SELECT * FROM equipment ORDER BY product_id")
            )
            rows = result.fetchall()
        return [Equipment.from_row(row) for row in rows]

    async def insert(self, equipment: Equipment) -> Equipment:
        async with self._session_factory() as session:
            try:
                result = await session.execute(
                    text("""
                        INSERT INTO equipment
                            (product_id, sku, name, equipment_type, category_name,
                             brand_name, size_range, difficulty_level, base_price,
                             daily_rate, rental_available, available_quantity,
                             reserved_quantity, is_active, synced_at, created_at, updated_at)
                        VALUES
                            (:product_id, :sku, :name, :equipment_type, :category_name,
                             :brand_name, :size_range, :difficulty_level, :base_price,
                             :daily_rate, :rental_available, :available_quantity,
                             :reserved_quantity, :is_active, NOW(), NOW(), NOW())
                        RETURNING id, synced_at
                    """),
                    _params(equipment),
                )
                row = result.one()
                equipment.id = row.id
                equipment.synced_at = row.synced_at
                await session.commit()
            except IntegrityError as exc:
                await session.rollback()
                raise DuplicateEquipmentError(equipment.product_id) from exc
        return equipment

    async def update(self, equipment: Equipment) -> Equipment:
        """product_id をキーに、同期対象の項目を上書きする (在庫数は対象外)。"""
        async with self._session_factory() as session:
            result = await session.execute(
                text("""
                    UPDATE equipment
                    SET sku = :sku,
                        name = :name,
                        equipment_type = :equipment_type,
                        category_name = :category_name,
                        brand_name = :brand_name,
                        size_range = :size_range,
                        difficulty_level = :difficulty_level,
                        base_price = :base_price,
                        daily_rate = :daily_rate,
                        rental_available = :rental_available,
                        is_active = :is_active,
                        synced_at = NOW(),
                        updated_at = NOW()
                    WHERE product_id = :product_id
                    RETURNING synced_at
                """),
                _params(equipment),
            )
            row = result.fetchone()
            if row is None:
                await session.rollback()
                raise StoreError(f"Equipment vanished during update: {equipment.product_id}")
            equipment.synced_at = row.synced_at
            await session.commit()
        return equipment
