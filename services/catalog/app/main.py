"""
Product Catalog Service — FastAPI エントリーポイント

商品の正本を管理する。商品の変更はすべて product_events チャネルに
イベントとして発行され、Inventory Service が購読して設備に反映する。
"""

import os
from contextlib import asynccontextmanager
from decimal import Decimal
from uuid import UUID

import redis.asyncio as aioredis
from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, ValidationError
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker

from . import commands
from .events import Product
from .publisher import ProductEventPublisher

DATABASE_URL = os.environ["DATABASE_URL"]
REDIS_URL = os.environ.get("REDIS_URL", "redis://localhost:6379")
PRODUCT_EVENTS_CHANNEL = os.environ.get("PRODUCT_EVENTS_CHANNEL", "product_events")

engine = create_async_engine(DATABASE_URL, echo=False)
async_session = sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
redis_pool: aioredis.Redis | None = None
publisher: ProductEventPublisher | None = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    global redis_pool, publisher
    redis_pool = aioredis.from_url(REDIS_URL, decode_responses=True)
    publisher = ProductEventPublisher(redis_pool, channel=PRODUCT_EVENTS_CHANNEL)
    yield
    await publisher.drain()
    await redis_pool.aclose()
    await engine.dispose()


app = FastAPI(title="Product Catalog Service", lifespan=lifespan)


# ── Request Models ───────────────────────────────


class UpdateProductRequest(BaseModel):
    sku: str | None = None
    name: str | None = None
    category_name: str | None = None
    brand_name: str | None = None
    equipment_type: str | None = None
    size_range: str | None = None
    difficulty_level: str | None = None
    base_price: Decimal | None = None
    description: str | None = None
    image_url: str | None = None
    rental_available: bool | None = None
    active: bool | None = None


# ── Command Endpoints ────────────────────────────


@app.post("/commands/products")
async def cmd_create_product(req: Product):
    """商品作成コマンド"""
    async with async_session() as session:
        return await commands.create_product(session, publisher, req)


@app.put("/commands/products/{product_id}")
async def cmd_update_product(product_id: UUID, req: UpdateProductRequest):
    """商品更新コマンド (指定された項目のみ変更)"""
    async with async_session() as session:
        changes = req.model_dump(exclude_unset=True)
        try:
            product = await commands.update_product(session, publisher, product_id, changes)
        except ValidationError as exc:
            raise HTTPException(422, exc.errors(include_url=False))
        if not product:
            raise HTTPException(404, "Product not found")
        return product


@app.delete("/commands/products/{product_id}")
async def cmd_delete_product(product_id: UUID):
    async with async_session() as session:
        if not await commands.delete_product(session, publisher, product_id):
            raise HTTPException(404, "Product not found")
        return {"product_id": str(product_id), "deleted": True}


@app.post("/commands/products/{product_id}/activate")
async def cmd_activate_product(product_id: UUID):
    async with async_session() as session:
        product = await commands.set_product_active(session, publisher, product_id, True)
        if not product:
            raise HTTPException(404, "Product not found")
        return product


@app.post("/commands/products/{product_id}/deactivate")
async def cmd_deactivate_product(product_id: UUID):
    async with async_session() as session:
        product = await commands.set_product_active(session, publisher, product_id, False)
        if not product:
            raise HTTPException(404, "Product not found")
        return product


@app.get("/queries/products")
async def query_list_products():
    async with async_session() as session:
        return await commands.list_products(session)


@app.get("/queries/products/{product_id}")
async def query_get_product(product_id: UUID):
    async with async_session() as session:
        product = await commands.get_product(session, product_id)
        if not product:
            raise HTTPException(404, "Product not found")
        return product


@app.get("/health")
async def health():
    return {"status": "ok", "service": "catalog-service"}
