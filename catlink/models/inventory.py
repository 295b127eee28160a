# catlink/models/inventory.py
from decimal import Decimal
from enum import Enum
from typing import Optional, List
from pydantic import BaseModel, Field
from .category import InventoryUnit

class Platform(str, Enum):
    AMAZON = "amazon"
    FLIPKART = "flipkart"

class MovementType(str, Enum):
    DEDUCTION = "deduction"
    ADDITION = "addition"
    ADJUSTMENT = "adjustment"
    INITIAL = "initial"

class CascadeSource(BaseModel):
    """Which link produced a cascade deduction, for audit display"""
    source_category_name: str
    target_category_name: str

class DeductionRequest(BaseModel):
    """One inventory deduction against a category group"""
    category_group_id: str
    quantity: Decimal = Field(ge=0)
    unit: InventoryUnit = InventoryUnit.PCS
    product_sku: str = ""
    order_reference: Optional[str] = None
    transaction_reference: Optional[str] = None
    platform: Optional[Platform] = None
    is_cascade: bool = False
    cascade_source: Optional[CascadeSource] = None

class DeductionEntry(BaseModel):
    category_group_id: str
    requested_quantity: Decimal
    deducted_quantity: Decimal
    new_inventory_level: Decimal
    movement_id: str

class DeductionWarning(BaseModel):
    category_group_id: str
    warning: str
    requested_quantity: Decimal
    available_quantity: Decimal

class DeductionError(BaseModel):
    category_group_id: str
    error: str
    requested_quantity: Decimal
    reason: str

class DeductionResult(BaseModel):
    """Outcome of submitting deduction requests to inventory"""
    deductions: List[DeductionEntry] = []
    warnings: List[DeductionWarning] = []
    errors: List[DeductionError] = []

class CategoryGroup(BaseModel):
    """Unit against which physical inventory is tracked"""
    id: str
    name: str
    current_inventory: Decimal = Decimal(0)
    inventory_unit: InventoryUnit = InventoryUnit.PCS
    minimum_threshold: Decimal = Decimal(0)
