# catlink/services/inventory_order_processor.py
import asyncio
import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence
from ..config import Config
from ..models.category import Category, InventoryUnit
from ..models.inventory import DeductionError, DeductionResult
from ..models.order import (
    DeductionPreview, DeductionPreviewItem, EnhancedOrderLine, OrderLine, ProcessedOrder,
)
from ..models.product import Product
from .cascade_calculator import CalculatedDeduction, CascadeDeductionCalculator
from .category_service import CategoryService
from .inventory_service import InventoryService
from .product_service import ProductService

class InventoryOrderProcessor:
    """Category based inventory deduction for incoming orders.

    Resolves each order line to its product and category, computes the
    primary and cascade deductions and either returns them as a preview or
    submits them to the inventory service in one batch. Every call loads its
    own snapshot, so concurrent calls share no state.
    """

    def __init__(
        self,
        db=None,
        category_service: Optional[CategoryService] = None,
        product_service: Optional[ProductService] = None,
        inventory_service: Optional[InventoryService] = None,
        timeout: Optional[float] = None,
    ):
        self.category_service = category_service or CategoryService(db)
        self.product_service = product_service or ProductService(db)
        self.inventory_service = inventory_service or InventoryService(db)
        self.timeout = timeout if timeout is not None else Config.COLLABORATOR_TIMEOUT
        self.calculator = CascadeDeductionCalculator(
            self.category_service.get_linked_categories, timeout=self.timeout
        )
        self.logger = logging.getLogger(__name__)

    async def process_order_with_category_deduction(
        self, order_items: Sequence[OrderLine], order_id: Optional[str] = None
    ) -> ProcessedOrder:
        """Deduct inventory for an order.

        Lines without a product or without deduction settings contribute
        nothing. A failure of the inventory submission is raised to the caller.
        """
        if not order_items:
            return ProcessedOrder()

        try:
            enhanced = await self.enhance_order_items(order_items)
        except Exception as e:
            self.logger.error(f"Error processing order with category deduction: {e}", exc_info=True)
            return ProcessedOrder(
                order_items=[self._enhance(line, None, None) for line in order_items],
                inventory_result=DeductionResult(errors=[DeductionError(
                    category_group_id='unknown',
                    error=f"Order processing failed: {e}",
                    requested_quantity=Decimal(0),
                    reason='Processing error',
                )]),
            )

        results = await self.calculator.calculate(enhanced, order_id)
        requests = self.calculator.flatten(results)

        inventory_result = DeductionResult()
        if requests:
            inventory_result = await self.inventory_service.deduct_inventory_from_order(requests)

        return ProcessedOrder(order_items=enhanced, inventory_result=inventory_result)

    async def preview_category_deductions(self, order_items: Sequence[OrderLine]) -> DeductionPreview:
        """What an order would deduct, without touching inventory"""
        preview = DeductionPreview()
        if not order_items:
            return preview

        try:
            enhanced = await self.enhance_order_items(order_items)
        except Exception as e:
            self.logger.error(f"Error loading data for deduction preview: {e}")
            preview.errors.append(f"Preview calculation failed: {e}")
            return preview

        results = await self.calculator.calculate(enhanced)
        for result in results:
            for deduction in result.deductions:
                preview.items.append(self._preview_item(result.line, deduction))
            if result.cascade_error:
                preview.warnings.append(
                    f"Could not calculate cascade deductions for "
                    f"{result.line.category_name or 'Unknown'} category"
                )

        requests = self.calculator.flatten(results)
        group_names = await self._group_names({request.category_group_id for request in requests})
        preview.total_deductions = self.calculator.aggregate_by_group(requests, group_names)
        for parts in self.calculator.mixed_unit_groups(preview.total_deductions).values():
            units = ", ".join(part.unit.value for part in parts)
            preview.warnings.append(
                f"{parts[0].category_group_name} mixes incompatible units ({units}); "
                f"these deductions cannot be combined"
            )

        not_configured = [line for line in enhanced if not line.inventory_deduction_required]
        if not_configured:
            preview.warnings.append(
                f"{len(not_configured)} items will not trigger automatic inventory deduction (not configured)"
            )

        cascade_count = len(preview.cascade_items)
        if cascade_count:
            preview.warnings.append(
                f"{cascade_count} additional cascade deductions will be processed from linked categories"
            )

        return preview

    async def enhance_order_items(self, order_items: Sequence[OrderLine]) -> List[EnhancedOrderLine]:
        """Attach product and category information to each order line"""
        products, categories = await asyncio.gather(
            asyncio.wait_for(self.product_service.get_products(), self.timeout),
            asyncio.wait_for(self.category_service.get_categories(), self.timeout),
        )

        products_by_sku: Dict[str, Product] = {}
        for product in products:
            products_by_sku.setdefault(product.sku, product)
        categories_by_id: Dict[str, Category] = {}
        for category in categories:
            if category.id:
                categories_by_id.setdefault(category.id, category)

        enhanced = []
        for line in order_items:
            product = products_by_sku.get(line.sku) if line.sku else None
            category = categories_by_id.get(product.category_id) if product and product.category_id else None
            enhanced.append(self._enhance(line, product, category))
        return enhanced

    @staticmethod
    def _enhance(line: OrderLine, product: Optional[Product], category: Optional[Category]) -> EnhancedOrderLine:
        fields = {name: getattr(line, name) for name in OrderLine.model_fields}
        if category is None:
            return EnhancedOrderLine(
                **fields,
                category_id=product.category_id if product else None,
                product=product,
            )
        return EnhancedOrderLine(
            **fields,
            category_id=category.id,
            category_name=category.name,
            category_group_id=category.category_group_id,
            product=product,
            category_deduction_quantity=(
                category.inventory_deduction_quantity if category.has_deduction_quantity else None
            ),
            inventory_unit=category.inventory_unit,
            inventory_deduction_required=category.has_deduction_config,
        )

    @staticmethod
    def _preview_item(line: EnhancedOrderLine, deduction: CalculatedDeduction) -> DeductionPreviewItem:
        request = deduction.request
        return DeductionPreviewItem(
            product_sku=line.sku or 'Unknown',
            product_name=line.name,
            category_name=deduction.category_name,
            category_group_id=request.category_group_id,
            order_quantity=line.quantity,
            deduction_quantity=deduction.deduction_quantity,
            total_deduction=request.quantity,
            inventory_unit=request.unit or InventoryUnit.PCS,
            is_cascade=request.is_cascade,
            cascade_source=request.cascade_source,
        )

    async def _group_names(self, group_ids) -> Dict[str, str]:
        if not group_ids:
            return {}
        try:
            return await asyncio.wait_for(
                self.inventory_service.get_category_group_names(sorted(group_ids)), self.timeout
            )
        except Exception as e:
            self.logger.warning(f"Could not load category group names: {e}")
            return {}

    async def get_categories_with_deduction_enabled(self) -> List[Category]:
        return await self.category_service.get_categories_with_inventory_deduction()

    async def is_automatic_deduction_enabled(self, product_sku: str) -> bool:
        try:
            product = await self.product_service.get_product_by_sku(product_sku)
            if not product or not product.category_id:
                return False
            return await self.category_service.is_category_ready_for_deduction(product.category_id)
        except Exception as e:
            self.logger.warning(f"Could not check automatic deduction for {product_sku}: {e}")
            return False

    async def get_deduction_configuration_summary(self) -> List[Dict[str, Any]]:
        try:
            categories = await self.category_service.get_categories()
        except Exception as e:
            self.logger.error(f"Error getting deduction configuration summary: {e}")
            return []

        validator = self.category_service.deduction_validator
        return [
            {
                'category_id': category.id,
                'category_name': category.name,
                'summary': validator.get_validation_summary(category),
            }
            for category in categories
            if category.id
        ]
