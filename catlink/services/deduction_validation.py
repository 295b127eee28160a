# catlink/services/deduction_validation.py
from decimal import Decimal
from typing import Dict, List, Optional
from ..models.category import Category, InventoryType, InventoryUnit, WEIGHT_UNITS
from ..models.validation import ValidationResult

LARGE_QUANTITY = Decimal(10000)
SMALL_KG_QUANTITY = Decimal("0.001")

class DeductionConfigValidator:
    """Checks a category's inventory deduction settings"""

    def validate_deduction_quantity(self, quantity: Optional[Decimal]) -> ValidationResult:
        result = ValidationResult.ok()
        # None disables deduction
        if quantity is None:
            return result

        try:
            quantity = Decimal(quantity)
        except (ArithmeticError, TypeError, ValueError):
            return ValidationResult.failure("Deduction quantity must be a valid number")
        if not quantity.is_finite():
            return ValidationResult.failure("Deduction quantity must be a valid number")

        if quantity <= 0:
            result.add_error("Deduction quantity must be greater than 0")
        if quantity > LARGE_QUANTITY:
            result.add_warning("Deduction quantity is very large (>10,000) - please verify this is correct")
        if quantity % 1 != 0:
            result.add_warning(
                "Non-integer deduction quantities may cause precision issues with piece-based inventory"
            )
        return result

    def validate_category_deduction_config(self, category: Category) -> ValidationResult:
        quantity = category.inventory_deduction_quantity
        if quantity is None:
            return ValidationResult.ok()

        result = self.validate_deduction_quantity(quantity)

        if not category.category_group_id:
            result.add_error(
                "Category must be assigned to a category group to enable automatic inventory deduction"
            )
        if not category.inventory_type:
            result.add_warning(
                "Category should have an inventory type (weight or qty) defined for optimal deduction tracking"
            )
        if not category.inventory_unit:
            result.add_warning(
                "Category should have an inventory unit (kg, g, or pcs) defined for optimal deduction tracking"
            )

        inventory_type, unit = category.inventory_type, category.inventory_unit
        if inventory_type and unit:
            if inventory_type == InventoryType.WEIGHT and unit not in WEIGHT_UNITS:
                result.add_warning(
                    f"Inventory type 'weight' but unit '{unit.value}' is not a weight unit (kg, g)"
                )
            if inventory_type == InventoryType.QTY and unit != InventoryUnit.PCS:
                result.add_warning(
                    f"Inventory type 'qty' but unit '{unit.value}' is not a quantity unit (pcs)"
                )

        if inventory_type == InventoryType.WEIGHT and quantity:
            if unit == InventoryUnit.KG and quantity < SMALL_KG_QUANTITY:
                result.add_warning("Very small deduction quantities in kg may cause precision issues")
            if unit == InventoryUnit.G and quantity > LARGE_QUANTITY:
                result.add_warning("Very large deduction quantities in grams - consider using kg units instead")

        return result

    def validate_multiple_categories(self, categories: List[Category]) -> ValidationResult:
        result = ValidationResult.ok()
        for position, category in enumerate(categories, start=1):
            label = category.name or f"Category {position}"
            result.extend(self.validate_category_deduction_config(category), prefix=label)

        groups: Dict[str, List[Category]] = {}
        for category in categories:
            if category.inventory_deduction_quantity is not None and category.category_group_id:
                groups.setdefault(category.category_group_id, []).append(category)

        for group_id, members in groups.items():
            types = sorted({c.inventory_type.value for c in members if c.inventory_type})
            units = sorted({c.inventory_unit.value for c in members if c.inventory_unit})
            if len(types) > 1:
                result.add_warning(
                    f"Category group {group_id} contains categories with different inventory types "
                    f"({', '.join(types)}) - this may cause confusion"
                )
            if len(units) > 1:
                result.add_warning(
                    f"Category group {group_id} contains categories with different inventory units "
                    f"({', '.join(units)}) - ensure this is intentional"
                )
        return result

    def is_category_ready_for_deduction(self, category: Category) -> bool:
        return bool(
            category.has_deduction_config
            and category.inventory_type
            and category.inventory_unit
        )

    def get_validation_summary(self, category: Category) -> str:
        if not category.inventory_deduction_quantity:
            return "Automatic inventory deduction is disabled"

        validation = self.validate_category_deduction_config(category)
        if validation.is_valid:
            unit = category.inventory_unit.value if category.inventory_unit else "units"
            return (
                f"Ready for automatic deduction: {category.inventory_deduction_quantity} {unit} per product"
            )
        return f"Configuration issues: {', '.join(validation.errors)}"
