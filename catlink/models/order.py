# catlink/models/order.py
from decimal import Decimal
from typing import Dict, List, Optional
from pydantic import BaseModel, Field
from .category import InventoryUnit
from .inventory import CascadeSource, DeductionResult, Platform
from .product import Product

class OrderLine(BaseModel):
    """Single product line of an incoming order"""
    name: str
    quantity: int = Field(default=1, ge=0)
    sku: Optional[str] = None
    platform: Optional[Platform] = None
    order_id: Optional[str] = None
    batch_id: Optional[str] = None

class EnhancedOrderLine(OrderLine):
    """Order line resolved against the product and category snapshot"""
    category_id: Optional[str] = None
    category_name: Optional[str] = None
    category_group_id: Optional[str] = None
    product: Optional[Product] = None
    category_deduction_quantity: Optional[Decimal] = None
    inventory_unit: Optional[InventoryUnit] = None
    inventory_deduction_required: bool = False

class DeductionPreviewItem(BaseModel):
    product_sku: str
    product_name: str
    category_name: str
    category_group_id: str
    order_quantity: int
    deduction_quantity: Decimal
    total_deduction: Decimal
    inventory_unit: InventoryUnit
    is_cascade: bool = False
    cascade_source: Optional[CascadeSource] = None

class GroupTotal(BaseModel):
    category_group_id: Optional[str] = None
    category_group_name: str
    total_quantity: Decimal
    unit: InventoryUnit

class DeductionPreview(BaseModel):
    """Dry-run view of what an order would deduct"""
    items: List[DeductionPreviewItem] = []
    total_deductions: Dict[str, GroupTotal] = {}
    warnings: List[str] = []
    errors: List[str] = []

    @property
    def cascade_items(self) -> List[DeductionPreviewItem]:
        return [item for item in self.items if item.is_cascade]

class ProcessedOrder(BaseModel):
    order_items: List[EnhancedOrderLine] = []
    inventory_result: DeductionResult = Field(default_factory=DeductionResult)
