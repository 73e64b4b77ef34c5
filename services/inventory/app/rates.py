"""
Inventory Service — レンタル料金計算

商品の基本価格と設備タイプから日額レンタル料金を算出する。
副作用なしの純粋関数のみ。
"""

from decimal import ROUND_HALF_UP, Decimal
from enum import Enum


class EquipmentType(str, Enum):
    SKI_BOARD = "SKI_BOARD"
    BINDING = "BINDING"
    POLE = "POLE"
    BOOT = "BOOT"
    HELMET = "HELMET"
    PROTECTOR = "PROTECTOR"
    WEAR = "WEAR"
    GOGGLE = "GOGGLE"
    GLOVE = "GLOVE"
    BAG = "BAG"
    WAX = "WAX"
    TUNING = "TUNING"
    OTHER = "OTHER"


BASE_RATE = Decimal("0.10")
DEFAULT_MULTIPLIER = Decimal("1.0")

CATEGORY_MULTIPLIERS: dict[str, Decimal] = {
    EquipmentType.SKI_BOARD.value: Decimal("1.2"),
    EquipmentType.BOOT.value: Decimal("1.1"),
    EquipmentType.HELMET.value: Decimal("0.8"),
    EquipmentType.POLE.value: Decimal("0.6"),
}

# ワックス・チューンナップ用品 (消耗品・サービス) はレンタル対象外
RENTAL_ELIGIBLE_TYPES: frozenset[str] = frozenset(
    t.value
    for t in EquipmentType
    if t not in (EquipmentType.WAX, EquipmentType.TUNING)
)

_CENT = Decimal("0.01")


def category_multiplier(equipment_type: str | None) -> Decimal:
    return CATEGORY_MULTIPLIERS.get(equipment_type, DEFAULT_MULTIPLIER)


def compute_daily_rate(base_price: Decimal | None, equipment_type: str | None) -> Decimal:
    """
    日額レンタル料金 = 基本価格 × 10% × カテゴリ倍率

    未知の設備タイプは倍率 1.0。基本価格が無い場合は 0。
    """
    if base_price is None:
        return Decimal("0").quantize(_CENT)
    rate = Decimal(base_price) * BASE_RATE * category_multiplier(equipment_type)
    return rate.quantize(_CENT, rounding=ROUND_HALF_UP)


def is_rental_eligible(equipment_type: str | None) -> bool:
    """レンタル対象の設備タイプかどうか (列挙された集合のみ True)"""
    return equipment_type in RENTAL_ELIGIBLE_TYPES
