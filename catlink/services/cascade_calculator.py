# catlink/services/cascade_calculator.py
import asyncio
import logging
from decimal import Decimal
from typing import Awaitable, Callable, Dict, Iterable, List, Optional
from pydantic import BaseModel
from ..config import Config
from ..models.category import Category, InventoryUnit
from ..models.inventory import CascadeSource, DeductionRequest
from ..models.order import EnhancedOrderLine, GroupTotal
from .inventory_service import convert_quantity

LinkedCategoryFetcher = Callable[[str], Awaitable[List[Category]]]

class CalculatedDeduction(BaseModel):
    """A deduction request together with the category that produced it"""
    request: DeductionRequest
    category_name: str
    deduction_quantity: Decimal

class CascadeBranch(BaseModel):
    """Linked categories of one primary category, or the reason they are missing"""
    targets: List[Category] = []
    error: Optional[str] = None

    @property
    def failed(self) -> bool:
        return self.error is not None

class LineDeductions(BaseModel):
    """Everything a single order line deducts"""
    line: EnhancedOrderLine
    primary: Optional[CalculatedDeduction] = None
    cascades: List[CalculatedDeduction] = []
    cascade_error: Optional[str] = None

    @property
    def deductions(self) -> List[CalculatedDeduction]:
        return ([self.primary] if self.primary else []) + self.cascades

    @property
    def requests(self) -> List[DeductionRequest]:
        return [deduction.request for deduction in self.deductions]

class CascadeDeductionCalculator:
    """Turns resolved order lines into primary and cascade deduction requests.

    Cascade is single level: only the direct active links of the primary
    category are read, never the links of the cascade targets.
    """

    def __init__(self, fetch_linked_categories: LinkedCategoryFetcher, timeout: Optional[float] = None):
        self.fetch_linked_categories = fetch_linked_categories
        self.timeout = timeout if timeout is not None else Config.COLLABORATOR_TIMEOUT
        self.logger = logging.getLogger(__name__)

    async def calculate(
        self, lines: Iterable[EnhancedOrderLine], order_reference: Optional[str] = None
    ) -> List[LineDeductions]:
        return list(await asyncio.gather(
            *(self.calculate_line(line, order_reference) for line in lines)
        ))

    async def calculate_line(
        self, line: EnhancedOrderLine, order_reference: Optional[str] = None
    ) -> LineDeductions:
        result = LineDeductions(line=line, primary=self._primary_deduction(line, order_reference))

        if not line.category_id:
            return result

        branch = await self._fetch_branch(line.category_id)
        if branch.failed:
            result.cascade_error = branch.error
            return result

        source_name = line.category_name or "Unknown"
        for target in branch.targets:
            # missing configuration was already reported when the link was created
            if not target.has_deduction_config:
                continue
            total = Decimal(line.quantity) * target.inventory_deduction_quantity
            if total <= 0:
                continue
            result.cascades.append(CalculatedDeduction(
                request=self._request(
                    line, target.category_group_id, total,
                    target.inventory_unit or InventoryUnit.PCS, order_reference,
                    cascade_source=CascadeSource(
                        source_category_name=source_name,
                        target_category_name=target.name,
                    ),
                ),
                category_name=target.name,
                deduction_quantity=target.inventory_deduction_quantity,
            ))
        return result

    def _primary_deduction(
        self, line: EnhancedOrderLine, order_reference: Optional[str]
    ) -> Optional[CalculatedDeduction]:
        quantity = line.category_deduction_quantity
        if not line.inventory_deduction_required or not quantity or quantity <= 0 or not line.category_group_id:
            return None

        total = Decimal(line.quantity) * quantity
        if total <= 0:
            return None

        return CalculatedDeduction(
            request=self._request(
                line, line.category_group_id, total,
                line.inventory_unit or InventoryUnit.PCS, order_reference,
            ),
            category_name=line.category_name or "Unknown",
            deduction_quantity=quantity,
        )

    async def _fetch_branch(self, category_id: str) -> CascadeBranch:
        try:
            targets = await asyncio.wait_for(self.fetch_linked_categories(category_id), self.timeout)
        except Exception as e:
            self.logger.error(f"Error fetching linked categories for {category_id}: {e}")
            return CascadeBranch(error=str(e) or type(e).__name__)
        return CascadeBranch(targets=targets)

    @staticmethod
    def _request(
        line: EnhancedOrderLine,
        category_group_id: str,
        quantity: Decimal,
        unit: InventoryUnit,
        order_reference: Optional[str],
        cascade_source: Optional[CascadeSource] = None,
    ) -> DeductionRequest:
        return DeductionRequest(
            category_group_id=category_group_id,
            quantity=quantity,
            unit=unit,
            product_sku=line.sku or "",
            order_reference=line.order_id or order_reference,
            transaction_reference=line.batch_id,
            platform=line.platform,
            is_cascade=cascade_source is not None,
            cascade_source=cascade_source,
        )

    @staticmethod
    def flatten(results: Iterable[LineDeductions]) -> List[DeductionRequest]:
        return [request for result in results for request in result.requests]

    @staticmethod
    def aggregate_by_group(
        requests: Iterable[DeductionRequest], group_names: Optional[Dict[str, str]] = None
    ) -> Dict[str, GroupTotal]:
        """Sum request quantities per category group.

        Quantities are converted into the unit of the group's first request,
        the same conversion the inventory service applies. A request whose
        unit cannot be converted (pcs against kg or g) gets its own total
        keyed ``<group>:<unit>``.
        """
        group_names = group_names or {}
        totals: Dict[str, GroupTotal] = {}
        for request in requests:
            group_id = request.category_group_id
            for total in totals.values():
                if total.category_group_id != group_id:
                    continue
                converted = convert_quantity(request.quantity, request.unit, total.unit)
                if converted is not None:
                    total.total_quantity += converted
                    break
            else:
                key = f"{group_id}:{request.unit.value}" if group_id in totals else group_id
                totals[key] = GroupTotal(
                    category_group_id=group_id,
                    category_group_name=group_names.get(group_id) or f"Group {group_id}",
                    total_quantity=request.quantity,
                    unit=request.unit,
                )
        return totals

    @staticmethod
    def mixed_unit_groups(totals: Dict[str, GroupTotal]) -> Dict[str, List[GroupTotal]]:
        """Groups whose requests could not be summed into one unit"""
        by_group: Dict[str, List[GroupTotal]] = {}
        for total in totals.values():
            by_group.setdefault(total.category_group_id, []).append(total)
        return {group_id: parts for group_id, parts in by_group.items() if len(parts) > 1}
