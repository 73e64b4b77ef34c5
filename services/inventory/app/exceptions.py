"""
Inventory Service — 例外

EquipmentNotFoundError はイベントを破棄してよい (回復可能) 失敗、
ReconciliationError はそのイベントにとって致命的な失敗。
"""

from uuid import UUID


class InventoryServiceError(Exception):
    """Base exception for inventory service errors."""
    pass


class StoreError(InventoryServiceError):
    """Raised when the equipment store rejects a write."""
    pass


class DuplicateEquipmentError(StoreError):
    """Raised when an equipment row already exists for the product id."""

    def __init__(self, product_id: UUID):
        super().__init__(f"Equipment already exists for product: {product_id}")
        self.product_id = product_id


class EquipmentNotFoundError(InventoryServiceError):
    """Raised when an event references a product with no equipment row."""

    def __init__(self, product_id: UUID):
        super().__init__(f"No equipment for product: {product_id}")
        self.product_id = product_id


class ReconciliationError(InventoryServiceError):
    """Raised when an event cannot be applied to the equipment store."""
    pass
