"""
Inventory Service — カタログとの整合性チェック

Pub/Sub はイベントを取りこぼしうるので、定期的にカタログの正本と
equipment を突き合わせて差分を洗い出す (修正はしない)。

差分の種類:
  MISSING_IN_INVENTORY:  カタログにあるが equipment にない
  ORPHANED_IN_INVENTORY: equipment にあるがカタログにない
  DATA_MISMATCH:         キャッシュ項目 (sku / name / category / brand) が食い違う
  SYNC_ERROR:            カタログまたはストアの読み取り自体に失敗
"""

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from uuid import UUID

import httpx

from .equipment import Equipment

logger = logging.getLogger(__name__)

COMPARED_FIELDS = ("sku", "name", "category_name", "brand_name")


class DifferenceType(str, Enum):
    MISSING_IN_INVENTORY = "MISSING_IN_INVENTORY"
    ORPHANED_IN_INVENTORY = "ORPHANED_IN_INVENTORY"
    DATA_MISMATCH = "DATA_MISMATCH"
    SYNC_ERROR = "SYNC_ERROR"


@dataclass(frozen=True)
class InventoryDifference:
    type: DifferenceType
    product_id: UUID | None
    name: str | None
    description: str

    def to_dict(self) -> dict:
        return {
            "type": self.type.value,
            "product_id": str(self.product_id) if self.product_id else None,
            "name": self.name,
            "description": self.description,
        }


@dataclass
class ConsistencyReport:
    total_equipment_checked: int = 0
    inconsistencies: list[dict] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "total_equipment_checked": self.total_equipment_checked,
            "inconsistencies_found": len(self.inconsistencies),
            "inconsistencies": self.inconsistencies,
        }


def diff_against_catalog(
    catalog_products: list[dict], equipment: list[Equipment]
) -> list[InventoryDifference]:
    """catalog_products は Catalog Service の /queries/products のレスポンス。"""
    catalog = {UUID(str(p["id"])): p for p in catalog_products}
    inventory = {e.product_id: e for e in equipment}
    differences = []

    for product_id, product in catalog.items():
        cached = inventory.get(product_id)
        if cached is None:
            differences.append(InventoryDifference(
                DifferenceType.MISSING_IN_INVENTORY, product_id, product.get("name"),
                "Product exists in catalog but not in inventory",
            ))
            continue
        mismatches = [
            f"{name}: {getattr(cached, name)!r} vs {product.get(name)!r}"
            for name in COMPARED_FIELDS
            if getattr(cached, name) != product.get(name)
        ]
        if mismatches:
            differences.append(InventoryDifference(
                DifferenceType.DATA_MISMATCH, product_id, product.get("name"),
                "Data mismatches: " + ", ".join(mismatches),
            ))

    for product_id, cached in inventory.items():
        if product_id not in catalog:
            differences.append(InventoryDifference(
                DifferenceType.ORPHANED_IN_INVENTORY, product_id, cached.name,
                "Equipment exists in inventory but not in catalog",
            ))
    return differences


def equipment_issues(equipment: Equipment) -> list[str]:
    issues = []
    if equipment.product_id is None:
        issues.append("Missing product_id")
    if equipment.daily_rate is None or equipment.daily_rate < Decimal("0"):
        issues.append("Invalid daily rate")
    if equipment.available_quantity is None or equipment.available_quantity < 0:
        issues.append("Invalid available quantity")
    if equipment.reserved_quantity is None or equipment.reserved_quantity < 0:
        issues.append("Invalid reserved quantity")
    return issues


class ConsistencyChecker:
    def __init__(self, store, catalog_url: str, transport: httpx.AsyncBaseTransport | None = None):
        self._store = store
        self._catalog_url = catalog_url.rstrip("/")
        self._transport = transport

    async def fetch_catalog_products(self) -> list[dict]:
        async with httpx.AsyncClient(timeout=10.0, transport=self._transport) as client:
            resp = await client.get(f"{self._catalog_url}/queries/products")
            resp.raise_for_status()
            return resp.json()

    async def detect_differences(self) -> list[InventoryDifference]:
        try:
            catalog_products = await self.fetch_catalog_products()
            equipment = await self._store.list_all()
        except Exception as exc:
            logger.exception("Failed to detect differences")
            return [InventoryDifference(
                DifferenceType.SYNC_ERROR, None, "System Error",
                f"Failed to detect differences: {exc!r}",
            )]

        differences = diff_against_catalog(catalog_products, equipment)
        if differences:
            logger.warning("Detected %d catalog/inventory differences", len(differences))
        return differences

    async def consistency_check(self) -> ConsistencyReport:
        """equipment の各行の値の妥当性を検査する (カタログは参照しない)。"""
        report = ConsistencyReport()
        try:
            equipment = await self._store.list_all()
        except Exception as exc:
            logger.exception("Consistency check failed")
            report.inconsistencies.append({
                "equipment_id": None,
                "product_id": None,
                "name": "System Error",
                "issues": [f"Consistency check failed: {exc!r}"],
            })
            return report

        report.total_equipment_checked = len(equipment)
        for e in equipment:
            issues = equipment_issues(e)
            if issues:
                report.inconsistencies.append({
                    "equipment_id": e.id,
                    "product_id": str(e.product_id) if e.product_id else None,
                    "name": e.name,
                    "issues": issues,
                })
        return report
