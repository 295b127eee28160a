# catlink/services/inventory_service.py
import logging
from decimal import Decimal
from typing import Dict, Iterable, List, Optional
from ..models.category import InventoryUnit
from ..models.inventory import (
    CategoryGroup, DeductionEntry, DeductionError, DeductionRequest,
    DeductionResult, DeductionWarning, MovementType,
)
from ..utils.formatters import format_quantity

GRAMS_PER_KG = Decimal(1000)

def convert_quantity(quantity: Decimal, from_unit: InventoryUnit, to_unit: InventoryUnit) -> Optional[Decimal]:
    """تبدیل بین واحدهای هم‌نوع؛ برای واحدهای ناسازگار None"""
    if from_unit == to_unit:
        return quantity
    if from_unit == InventoryUnit.KG and to_unit == InventoryUnit.G:
        return quantity * GRAMS_PER_KG
    if from_unit == InventoryUnit.G and to_unit == InventoryUnit.KG:
        return quantity / GRAMS_PER_KG
    return None

class InventoryService:
    """سرویس موجودی گروه‌های دسته‌بندی"""

    def __init__(self, db):
        self.db = db
        self.logger = logging.getLogger(__name__)

    async def get_category_group_names(self, group_ids: Iterable[str]) -> Dict[str, str]:
        """نام گروه‌ها برای نمایش"""
        ids = list(group_ids)
        if not ids:
            return {}
        async with self.db.pool.acquire() as conn:
            rows = await conn.fetch("""
                SELECT group_id, name
                FROM category_groups
                WHERE group_id = ANY($1::text[])
            """, ids)
            return {row['group_id']: row['name'] for row in rows}

    async def deduct_inventory_from_order(self, requests: List[DeductionRequest]) -> DeductionResult:
        """کسر موجودی برای درخواست‌های یک سفارش، یک حرکت به ازای هر گروه"""
        result = DeductionResult()
        if not requests:
            return result

        grouped: Dict[str, List[DeductionRequest]] = {}
        for request in requests:
            if not request.category_group_id:
                result.errors.append(DeductionError(
                    category_group_id='unknown',
                    error='Missing category group mapping',
                    requested_quantity=request.quantity,
                    reason='Product SKU must be mapped to a category group before inventory deduction'
                ))
                continue
            grouped.setdefault(request.category_group_id, []).append(request)

        async with self.db.pool.acquire() as conn:
            async with conn.transaction():
                # ترتیب ثابت قفل گروه‌ها بین سفارش‌های همزمان
                for group_id in sorted(grouped):
                    await self._deduct_group(conn, group_id, grouped[group_id], result)

        self.logger.info(
            f"Inventory deduction finished: {len(result.deductions)} deducted, "
            f"{len(result.warnings)} warnings, {len(result.errors)} errors"
        )
        return result

    async def _deduct_group(self, conn, group_id: str, items: List[DeductionRequest], result: DeductionResult):
        row = await conn.fetchrow("""
            SELECT group_id, name, current_inventory, inventory_unit, minimum_threshold
            FROM category_groups
            WHERE group_id = $1
            FOR UPDATE
        """, group_id)

        if not row:
            result.errors.append(DeductionError(
                category_group_id=group_id,
                error='Category group not found',
                requested_quantity=sum((item.quantity for item in items), Decimal(0)),
                reason=f"Category group '{group_id}' does not exist"
            ))
            return

        group = self._row_to_group(row)
        total = Decimal(0)
        accepted: List[DeductionRequest] = []
        for item in items:
            converted = convert_quantity(item.quantity, item.unit, group.inventory_unit)
            if converted is None:
                result.errors.append(DeductionError(
                    category_group_id=group_id,
                    error='Unit mismatch',
                    requested_quantity=item.quantity,
                    reason=(
                        f"Order item unit ({item.unit.value}) does not match "
                        f"category group unit ({group.inventory_unit.value})"
                    )
                ))
                continue
            total += converted
            accepted.append(item)

        if not accepted:
            return

        unit = group.inventory_unit.value
        if total > group.current_inventory:
            result.warnings.append(DeductionWarning(
                category_group_id=group_id,
                warning=(
                    f"Insufficient inventory: requested {format_quantity(total)}{unit}, "
                    f"available {format_quantity(group.current_inventory)}{unit}"
                ),
                requested_quantity=total,
                available_quantity=group.current_inventory
            ))

        new_level = group.current_inventory - total
        first = accepted[0]

        await conn.execute("""
            UPDATE category_groups
            SET current_inventory = $1, updated_at = CURRENT_TIMESTAMP
            WHERE group_id = $2
        """, new_level, group_id)

        movement_id = await conn.fetchval("""
            INSERT INTO inventory_movements (
                category_group_id, movement_type, quantity, unit,
                previous_inventory, new_inventory, transaction_reference,
                order_reference, product_sku, platform, reason, notes
            ) VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11, $12)
            RETURNING movement_id
        """,
            group_id,
            MovementType.DEDUCTION.value,
            total,
            unit,
            group.current_inventory,
            new_level,
            next((i.transaction_reference for i in accepted if i.transaction_reference), None),
            next((i.order_reference for i in accepted if i.order_reference), None),
            first.product_sku or None,
            first.platform.value if first.platform else None,
            f"Order processing deduction for {len(accepted)} item(s)",
            self._movement_notes(accepted)
        )

        result.deductions.append(DeductionEntry(
            category_group_id=group_id,
            requested_quantity=total,
            deducted_quantity=total,
            new_inventory_level=new_level,
            movement_id=str(movement_id)
        ))

    @staticmethod
    def _row_to_group(row) -> CategoryGroup:
        return CategoryGroup(
            id=row['group_id'],
            name=row['name'],
            current_inventory=row['current_inventory'],
            inventory_unit=row['inventory_unit'],
            minimum_threshold=row['minimum_threshold'],
        )

    @staticmethod
    def _movement_notes(items: List[DeductionRequest]) -> str:
        """SKUها و لینک‌های cascade هر حرکت موجودی"""
        skus = list(dict.fromkeys(item.product_sku for item in items if item.product_sku))
        notes = f"SKUs: {', '.join(skus)}"
        cascades = list(dict.fromkeys(
            f"{item.cascade_source.source_category_name} → {item.cascade_source.target_category_name} "
            f"({format_quantity(item.quantity)}{item.unit.value})"
            for item in items if item.is_cascade and item.cascade_source
        ))
        if cascades:
            notes += f"; cascade: {', '.join(cascades)}"
        return notes
