"""
Inventory Service — Redis Pub/Sub サブスクライバー

product_events チャネルを購読し、受信した商品イベントを
ReconciliationService で equipment に反映する。

失敗時の扱い:
  - EquipmentNotFoundError (Activate/Deactivate の順序逆転など) は警告のみで破棄
  - それ以外 (JSON 不正、検証エラー、再試行後も失敗した競合) は
    生メッセージを dead letter リストに退避する
  - 退避自体の失敗もログに残して次のメッセージへ進む

注意: Redis Pub/Sub は fire-and-forget 方式。
サービスがダウンしている間のイベントは失われる。
"""

import asyncio
import json
import logging

import redis.asyncio as aioredis

from .exceptions import EquipmentNotFoundError
from .reconciliation import ReconciliationService

logger = logging.getLogger(__name__)


async def process_message(
    service: ReconciliationService,
    redis_conn: aioredis.Redis,
    raw: str,
    dead_letter_key: str,
) -> bool:
    """
    1 件のメッセージを処理する。反映できた (または無視してよい) 場合 True。
    """
    try:
        event = json.loads(raw)
        event_type = event.get("event_type")
        event_data = event.get("data", {})
        await service.handle_event(event_type, event_data)
        logger.info("Reconciled event: %s", event_type)
        return True
    except EquipmentNotFoundError as exc:
        logger.warning("Dropping event for unknown equipment: %s", exc)
        return False
    except Exception:
        logger.exception("Failed to reconcile event, moving to %s", dead_letter_key)
        await _dead_letter(redis_conn, dead_letter_key, raw)
        return False


async def _dead_letter(redis_conn: aioredis.Redis, dead_letter_key: str, raw: str) -> None:
    # 退避に失敗してもループは止めない (メッセージはログにのみ残る)
    try:
        await redis_conn.rpush(dead_letter_key, raw)
    except Exception:
        logger.exception("Failed to dead-letter event to %s: %s", dead_letter_key, raw)


async def run_subscriber(
    redis_url: str,
    service: ReconciliationService,
    shutdown_event: asyncio.Event,
    channel: str = "product_events",
    dead_letter_key: str = "product_events:dead_letter",
) -> None:
    """
    channel を購読し、shutdown_event がセットされるまでイベントを処理し続ける。
    メッセージは到着順に 1 件ずつ最後まで処理する。
    """
    redis_conn = aioredis.from_url(redis_url, decode_responses=True)
    pubsub = redis_conn.pubsub()
    await pubsub.subscribe(channel)
    logger.info("Subscribed to %s channel", channel)

    try:
        while not shutdown_event.is_set():
            message = await pubsub.get_message(
                ignore_subscribe_messages=True, timeout=1.0
            )
            if message and message["type"] == "message":
                await process_message(
                    service, redis_conn, message["data"], dead_letter_key
                )
            else:
                await asyncio.sleep(0.1)
    finally:
        await pubsub.unsubscribe(channel)
        await pubsub.aclose()
        await redis_conn.aclose()
