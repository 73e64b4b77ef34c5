from uuid import uuid4


def snapshot_data(**overrides) -> dict:
    """Product snapshot fields as they arrive on the wire."""
    data = {
        "product_id": str(uuid4()),
        "sku": "SKI-ALL-170",
        "name": "All Mountain Ski 170",
        "category_name": "Ski Board",
        "brand_name": "Rossignol",
        "equipment_type": "SKI_BOARD",
        "size_range": "150-190cm",
        "difficulty_level": "INTERMEDIATE",
        "base_price": "50000",
        "description": "Versatile all-mountain ski",
        "image_url": "/images/ski-170.jpg",
        "rental_available": True,
        "active": True,
    }
    data.update(overrides)
    return data
