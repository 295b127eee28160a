# catlink/services/__init__.py
"""ماژول سرویس‌ها"""
from .circular_dependency import CircularDependencyValidator
from .link_validator import LinkValidator
from .deduction_validation import DeductionConfigValidator
from .cascade_calculator import CascadeDeductionCalculator
from .category_service import CategoryService
from .product_service import ProductService
from .inventory_service import InventoryService
from .inventory_order_processor import InventoryOrderProcessor

__all__ = [
    'CircularDependencyValidator',
    'LinkValidator',
    'DeductionConfigValidator',
    'CascadeDeductionCalculator',
    'CategoryService',
    'ProductService',
    'InventoryService',
    'InventoryOrderProcessor'
]
