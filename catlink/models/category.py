# catlink/models/category.py
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional, List
import pytz
from pydantic import BaseModel, Field
from .base import TimeStampedModel

class InventoryType(str, Enum):
    WEIGHT = "weight"
    QTY = "qty"

class InventoryUnit(str, Enum):
    KG = "kg"
    G = "g"
    PCS = "pcs"

WEIGHT_UNITS = (InventoryUnit.KG, InventoryUnit.G)

def utc_now() -> datetime:
    return datetime.now(pytz.utc)

class CategoryLink(BaseModel):
    """Directed edge from one category to another for cascade deduction"""
    category_id: str
    is_active: bool = True
    created_at: datetime = Field(default_factory=utc_now)

class Category(TimeStampedModel):
    """Category model with inventory deduction configuration"""
    id: Optional[str] = None
    name: str
    description: Optional[str] = None
    tag: Optional[str] = None
    category_group_id: Optional[str] = None
    inventory_type: Optional[InventoryType] = None
    inventory_unit: Optional[InventoryUnit] = None
    unit_conversion_rate: Optional[Decimal] = None
    inventory_deduction_quantity: Optional[Decimal] = None
    linked_categories: List[CategoryLink] = []

    def active_links(self) -> List[CategoryLink]:
        return [link for link in self.linked_categories if link.is_active]

    @property
    def has_deduction_quantity(self) -> bool:
        return bool(self.inventory_deduction_quantity and self.inventory_deduction_quantity > 0)

    @property
    def has_deduction_config(self) -> bool:
        """True when an order against this category can deduct inventory"""
        return self.has_deduction_quantity and bool(self.category_group_id)
