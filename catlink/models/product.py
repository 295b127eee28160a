# catlink/models/product.py
from typing import Optional
from .base import TimeStampedModel

class Product(TimeStampedModel):
    """Product model, mapped to a category by id"""
    sku: str
    name: str
    description: Optional[str] = None
    category_id: Optional[str] = None
    category_group_id: Optional[str] = None
    is_active: bool = True
