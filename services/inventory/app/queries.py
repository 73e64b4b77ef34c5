"""
Inventory Service — 設備の参照クエリ
"""

from uuid import UUID

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from .equipment import Equipment


async def get_equipment(session: AsyncSession, product_id: UUID) -> dict | None:
    result = await session.execute(
        text("SELECT * FROM equipment WHERE product_id = :product_id"),
        {"product_id": str(product_id)},
    )
    row = result.fetchone()
    if not row:
        return None
    return Equipment.from_row(row).to_dict()


async def list_equipment(session: AsyncSession, active_only: bool = False) -> list[dict]:
    sql = "SELECT * FROM equipment"
    if active_only:
        sql += " WHERE is_active = TRUE"
    result = await session.execute(text(sql + " ORDER BY name"))
    return [Equipment.from_row(row).to_dict() for row in result.fetchall()]
