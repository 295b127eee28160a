# catlink/models/__init__.py
from .base import TimeStampedModel
from .category import Category, CategoryLink, InventoryType, InventoryUnit
from .product import Product
from .validation import ValidationResult
from .inventory import (
    CascadeSource, CategoryGroup, DeductionEntry, DeductionError,
    DeductionRequest, DeductionResult, DeductionWarning, MovementType, Platform,
)
from .order import (
    DeductionPreview, DeductionPreviewItem, EnhancedOrderLine, GroupTotal,
    OrderLine, ProcessedOrder,
)
