# catlink/services/link_validator.py
import logging
from typing import List, Optional
from ..models.category import Category, CategoryLink, utc_now
from ..models.validation import ValidationResult
from .circular_dependency import CircularDependencyValidator

class LinkValidator:
    """Gate for a single proposed link before it is stored"""

    def __init__(self, cycle_validator: Optional[CircularDependencyValidator] = None):
        self.cycle_validator = cycle_validator or CircularDependencyValidator()
        self.logger = logging.getLogger(__name__)

    def validate_link(self, source_id: str, target_id: str, all_categories: List[Category]) -> ValidationResult:
        """Validate the link source_id -> target_id against a category snapshot"""
        if source_id == target_id:
            return ValidationResult.failure("Cannot link a category to itself")

        result = ValidationResult.ok()
        source = self._find(source_id, all_categories)
        target = self._find(target_id, all_categories)

        if source is None:
            result.add_error(f"Source category with ID '{source_id}' not found")
        if target is None:
            result.add_error(f"Target category with ID '{target_id}' not found")
        if not result.is_valid:
            return result

        if not target.has_deduction_quantity:
            result.add_warning(
                f"Target category '{target.name}' has no inventory deduction quantity configured "
                f"- cascade deduction will not occur"
            )
        if not target.category_group_id:
            result.add_warning(
                f"Target category '{target.name}' is not assigned to a category group "
                f"- inventory deduction will not be possible"
            )

        simulated = self.simulate_link(source_id, target_id, all_categories)
        cycle_check = self.cycle_validator.check_circular_dependency(source_id, simulated)
        result.extend(cycle_check)

        if not result.is_valid:
            self.logger.info(f"Rejected link {source_id} -> {target_id}: {result.errors[0]}")
        return result

    @staticmethod
    def simulate_link(source_id: str, target_id: str, all_categories: List[Category]) -> List[Category]:
        """Copy of the snapshot with an extra active link on the source category"""
        simulated = []
        for category in all_categories:
            if category.id == source_id:
                links = [link.model_copy() for link in category.linked_categories]
                links.append(CategoryLink(category_id=target_id, is_active=True, created_at=utc_now()))
                category = category.model_copy(update={"linked_categories": links})
            simulated.append(category)
        return simulated

    @staticmethod
    def _find(category_id: str, all_categories: List[Category]) -> Optional[Category]:
        if not category_id:
            return None
        return next((category for category in all_categories if category.id == category_id), None)
