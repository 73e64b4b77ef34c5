"""
Product Catalog Service — コマンドハンドラ

商品の作成・更新・削除・有効化・無効化を products テーブルに反映し、
コミット後に商品イベントを発行する。

イベント発行は fire-and-forget なので、発行に失敗しても
コマンド自体は成功として呼び出し元に返る (結果整合性)。
"""

from uuid import UUID

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from .events import Product
from .publisher import ProductEventPublisher


def _product_params(product: Product) -> dict:
    return {
        "id": str(product.id),
        "sku": product.sku,
        "name": product.name,
        "category_name": product.category_name,
        "brand_name": product.brand_name,
        "equipment_type": product.equipment_type,
        "size_range": product.size_range,
        "difficulty_level": product.difficulty_level,
        "base_price": product.base_price,
        "description": product.description,
        "image_url": product.image_url,
        "rental_available": product.rental_available,
        "is_active": product.active,
    }


def _from_row(row) -> Product:
    return Product(
        id=UUID(str(row.id)),
        sku=row.sku,
        name=row.name,
        category_name=row.category_name,
        brand_name=row.brand_name,
        equipment_type=row.equipment_type,
        size_range=row.size_range,
        difficulty_level=row.difficulty_level,
        base_price=row.base_price,
        description=row.description,
        image_url=row.image_url,
        rental_available=row.rental_available,
        active=row.is_active,
    )


async def get_product(session: AsyncSession, product_id: UUID) -> Product | None:
    result = await session.execute(
        text("SELECT * FROM products WHERE id = :id"),
        {"id": str(product_id)},
    )
    row = result.fetchone()
    if not row:
        return None
    return _from_row(row)


async def list_products(session: AsyncSession) -> list[Product]:
    """全商品 (Inventory Service の整合性チェックが参照する)"""
    result = await session.execute(text("SELECT * FROM products ORDER BY sku"))
    return [_from_row(row) for row in result.fetchall()]


async def create_product(
    session: AsyncSession,
    publisher: ProductEventPublisher,
    product: Product,
) -> Product:
    """
    商品作成コマンド

    1. products に INSERT
    2. コミット
    3. ProductCreated を発行
    """
    await session.execute(
        text("""
            INSERT INTO products
                (id, sku, name, category_name, brand_name, equipment_type, size_range,
                 difficulty_level, base_price, description, image_url,
                 rental_available, is_active, created_at, updated_at)
            VALUES
                (:id, :sku, :name, :category_name, :brand_name, :equipment_type, :size_range,
                 :difficulty_level, :base_price, :description, :image_url,
                 :rental_available, :is_active, NOW(), NOW())
        """),
        _product_params(product),
    )
    await session.commit()

    publisher.publish_created(product)
    return product


async def update_product(
    session: AsyncSession,
    publisher: ProductEventPublisher,
    product_id: UUID,
    changes: dict,
) -> Product | None:
    """
    商品更新コマンド: 更新前後のスナップショットを ProductUpdated で発行する。

    changes に None を明示した項目はクリアされる。必須項目を None にすると
    pydantic.ValidationError (何も書き込まない)。
    """
    old = await get_product(session, product_id)
    if old is None:
        return None
    new = Product.model_validate({**old.model_dump(), **changes, "id": old.id})

    await session.execute(
        text("""
            UPDATE products
            SET sku = :sku, name = :name, category_name = :category_name,
                brand_name = :brand_name, equipment_type = :equipment_type,
                size_range = :size_range, difficulty_level = :difficulty_level,
                base_price = :base_price, description = :description,
                image_url = :image_url, rental_available = :rental_available,
                is_active = :is_active, updated_at = NOW()
            WHERE id = :id
        """),
        _product_params(new),
    )
    await session.commit()

    publisher.publish_updated(old, new)
    return new


async def delete_product(
    session: AsyncSession,
    publisher: ProductEventPublisher,
    product_id: UUID,
) -> bool:
    product = await get_product(session, product_id)
    if product is None:
        return False

    await session.execute(
        text("DELETE FROM products WHERE id = :id"),
        {"id": str(product_id)},
    )
    await session.commit()

    publisher.publish_deleted(product.id, product.sku)
    return True


async def set_product_active(
    session: AsyncSession,
    publisher: ProductEventPublisher,
    product_id: UUID,
    active: bool,
) -> Product | None:
    """商品の有効化 / 無効化コマンド"""
    product = await get_product(session, product_id)
    if product is None:
        return None

    await session.execute(
        text("""
            UPDATE products
            SET is_active = :active, updated_at = NOW()
            WHERE id = :id
        """),
        {"id": str(product_id), "active": active},
    )
    await session.commit()

    if active:
        publisher.publish_activated(product.id, product.sku)
    else:
        publisher.publish_deactivated(product.id, product.sku)
    return product.model_copy(update={"active": active})
