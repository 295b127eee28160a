# catlink/services/circular_dependency.py
import logging
import time
from typing import Dict, Iterable, List, Optional, Set
from ..config import Config
from ..models.category import Category
from ..models.validation import ValidationResult

CHAIN_SEPARATOR = " → "
TRUNCATED_MARKER = "[...]"

class CircularDependencyValidator:
    """Cycle detection and dependency chain reporting over category links.

    All methods work on a snapshot list of categories and never modify it.
    Only active links take part in traversal.
    """

    def __init__(self, max_depth: Optional[int] = None, deep_chain_warning: Optional[int] = None):
        self.max_depth = max_depth if max_depth is not None else Config.MAX_DEPENDENCY_DEPTH
        self.deep_chain_warning = (
            deep_chain_warning if deep_chain_warning is not None else Config.DEEP_CHAIN_WARNING
        )
        self.logger = logging.getLogger(__name__)

    def check_circular_dependency(
        self,
        category_id: str,
        all_categories: List[Category],
        visited: Optional[Set[str]] = None,
        path: Optional[List[str]] = None,
    ) -> ValidationResult:
        """Check whether category_id can reach itself through active links.

        `visited` holds ids whose sub-graph is already fully checked and is
        updated in place, so callers may share it between calls. `path` is the
        chain that led to category_id.
        """
        if visited is None:
            visited = set()
        index = self._index(all_categories)
        result = ValidationResult.ok()

        # Each frame is (category id, path including it, iterator of active link targets)
        stack = []
        frame = self._enter(category_id, list(path or []), index, visited, result)
        if frame:
            stack.append(frame)

        while stack:
            node_id, current_path, targets = stack[-1]
            target_id = next(targets, None)
            if target_id is not None:
                child = self._enter(target_id, current_path, index, visited, result)
                if child:
                    stack.append(child)
                continue

            stack.pop()
            visited.add(node_id)
            if len(current_path) > self.deep_chain_warning:
                result.add_warning(
                    f"Deep dependency chain detected ({len(current_path)} levels): "
                    f"{self._chain(current_path, index)}"
                )

        return result

    def _enter(self, node_id, path, index, visited, result):
        if len(path) > self.max_depth:
            result.add_error(
                f"Dependency chain exceeded maximum depth of {self.max_depth} "
                f"- possible circular dependency"
            )
            return None

        if node_id in path:
            cycle = path[path.index(node_id):] + [node_id]
            result.add_error(f"Circular dependency detected: {self._chain(cycle, index)}")
            return None

        if node_id in visited:
            return None

        category = index.get(node_id)
        if category is None:
            # existence is reported by the link validator
            return None

        targets = iter([link.category_id for link in category.active_links()])
        return node_id, path + [node_id], targets

    def validate_all_category_links(self, categories: List[Category]) -> ValidationResult:
        """Run the cycle check for every linked category in the snapshot"""
        result = ValidationResult.ok()
        started = time.perf_counter()

        for category in categories:
            if category.id and category.linked_categories:
                category_result = self.check_circular_dependency(category.id, categories)
                result.extend(category_result, prefix=category.name or category.id)

        elapsed_ms = int((time.perf_counter() - started) * 1000)
        if elapsed_ms > Config.VALIDATION_TIME_WARNING_MS:
            result.add_warning(
                f"Circular dependency validation took {elapsed_ms}ms - consider simplifying "
                f"category link structure for better performance"
            )

        total_links = sum(len(category.linked_categories) for category in categories)
        if total_links > Config.LINK_COUNT_WARNING:
            result.add_warning(
                f"High number of category links ({total_links}) detected - monitor system "
                f"performance with complex dependency chains"
            )

        if not result.is_valid:
            self.logger.warning(f"Link graph has {len(result.errors)} structural error(s)")

        return result

    def get_dependency_chains(
        self,
        category_id: str,
        all_categories: List[Category],
        max_depth: Optional[int] = None,
    ) -> List[str]:
        """List every chain of active links starting at category_id.

        One string per terminal category. Chains longer than max_depth are cut
        and end with a truncation marker.
        """
        if max_depth is None:
            max_depth = Config.DEPENDENCY_CHAIN_MAX_DEPTH
        index = self._index(all_categories)
        chains: List[str] = []

        stack = [(category_id, [category_id], 0)]
        while stack:
            current_id, path, depth = stack.pop()
            if depth > max_depth:
                chains.append(f"{self._chain(path, index)}{CHAIN_SEPARATOR}{TRUNCATED_MARKER}")
                continue

            category = index.get(current_id)
            links = category.active_links() if category else []
            if not links:
                if len(path) > 1:
                    chains.append(self._chain(path, index))
                continue

            # reversed so the first link is expanded first
            for link in reversed(links):
                stack.append((link.category_id, path + [link.category_id], depth + 1))

        return chains

    def get_link_validation_summary(self, category: Category, all_categories: List[Category]) -> str:
        if not category.linked_categories:
            return "No category links configured"

        active_links = category.active_links()
        if not active_links:
            return "All category links are disabled"

        if category.id:
            validation = self.check_circular_dependency(category.id, all_categories)
        else:
            validation = ValidationResult.ok()

        if not validation.is_valid:
            return f"Link configuration has issues: {validation.errors[0]}"

        link_count = len(active_links)
        warning_count = len(validation.warnings)
        summary = f"{link_count} active link{'s' if link_count != 1 else ''}"
        if warning_count:
            summary += f" ({warning_count} warning{'s' if warning_count != 1 else ''})"
        return summary

    @staticmethod
    def _index(categories: Iterable[Category]) -> Dict[str, Category]:
        index: Dict[str, Category] = {}
        for category in categories:
            if category.id and category.id not in index:
                index[category.id] = category
        return index

    @staticmethod
    def _chain(category_ids: List[str], index: Dict[str, Category]) -> str:
        names = []
        for category_id in category_ids:
            category = index.get(category_id)
            names.append(category.name if category and category.name else category_id)
        return CHAIN_SEPARATOR.join(names)
