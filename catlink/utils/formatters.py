# catlink/utils/formatters.py
from datetime import datetime
from decimal import Decimal
import pytz
from ..config import Config
from ..models.inventory import DeductionResult
from ..models.order import DeductionPreview
from ..models.validation import ValidationResult

def format_quantity(quantity: Decimal) -> str:
    """Decimal without trailing zeros"""
    quantity = Decimal(quantity)
    if quantity == quantity.to_integral_value():
        return f"{quantity.quantize(Decimal(1)):f}"
    return f"{quantity.normalize():f}"

def format_datetime(dt: datetime) -> str:
    local_tz = pytz.timezone(Config.TIMEZONE)
    if dt.tzinfo is None:
        dt = pytz.utc.localize(dt)
    return dt.astimezone(local_tz).strftime("%Y-%m-%d %H:%M:%S")

def format_validation_result(result: ValidationResult) -> str:
    """Errors first, then warnings"""
    lines = ["✅ Valid" if result.is_valid else "❌ Invalid"]
    lines.extend(f"  ❌ {error}" for error in result.errors)
    lines.extend(f"  ⚠️ {warning}" for warning in result.warnings)
    return "\n".join(lines)

def format_preview(preview: DeductionPreview) -> str:
    lines = []
    for item in preview.items:
        line = (
            f"- {item.product_sku} ({item.category_name}): "
            f"{item.order_quantity} x {format_quantity(item.deduction_quantity)} = "
            f"{format_quantity(item.total_deduction)}{item.inventory_unit.value}"
        )
        if item.cascade_source:
            line += f"  ↳ cascade from {item.cascade_source.source_category_name}"
        lines.append(line)

    if preview.total_deductions:
        lines.append("------------------")
        for group_id, total in preview.total_deductions.items():
            lines.append(
                f"{total.category_group_name} [{group_id}]: "
                f"{format_quantity(total.total_quantity)}{total.unit.value}"
            )

    lines.extend(f"❌ {error}" for error in preview.errors)
    lines.extend(f"⚠️ {warning}" for warning in preview.warnings)
    return "\n".join(lines) if lines else "No inventory deductions"

def format_deduction_result(result: DeductionResult) -> str:
    lines = [
        f"📦 {entry.category_group_id}: -{format_quantity(entry.deducted_quantity)} "
        f"(new level {format_quantity(entry.new_inventory_level)}, movement #{entry.movement_id})"
        for entry in result.deductions
    ]
    lines.extend(f"⚠️ {warning.category_group_id}: {warning.warning}" for warning in result.warnings)
    lines.extend(
        f"❌ {error.category_group_id}: {error.error} - {error.reason}" for error in result.errors
    )
    return "\n".join(lines) if lines else "No inventory deductions"
