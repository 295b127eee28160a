# catlink/services/category_service.py
import logging
from decimal import Decimal
from typing import List, Dict, Optional, Any
from ..models.category import Category, CategoryLink
from ..models.validation import ValidationResult
from .circular_dependency import CircularDependencyValidator
from .deduction_validation import DeductionConfigValidator
from .link_validator import LinkValidator

UPDATABLE_FIELDS = (
    'name', 'description', 'tag', 'category_group_id', 'inventory_type',
    'inventory_unit', 'unit_conversion_rate', 'inventory_deduction_quantity',
)

CATEGORY_COLUMNS = """
    c.category_id, c.name, c.description, c.tag, c.category_group_id,
    c.inventory_type, c.inventory_unit, c.unit_conversion_rate,
    c.inventory_deduction_quantity, c.created_at, c.updated_at
"""

def row_to_category(row, links: Optional[List[CategoryLink]] = None) -> Category:
    return Category(
        id=row['category_id'],
        name=row['name'],
        description=row['description'],
        tag=row['tag'],
        category_group_id=row['category_group_id'],
        inventory_type=row['inventory_type'],
        inventory_unit=row['inventory_unit'],
        unit_conversion_rate=row['unit_conversion_rate'],
        inventory_deduction_quantity=row['inventory_deduction_quantity'],
        created_at=row['created_at'],
        updated_at=row['updated_at'],
        linked_categories=links or [],
    )

class CategoryService:
    """سرویس مدیریت دسته‌بندی‌ها و لینک‌های کسر موجودی"""
    
    def __init__(self, db):
        self.db = db
        self.cycle_validator = CircularDependencyValidator()
        self.link_validator = LinkValidator(self.cycle_validator)
        self.deduction_validator = DeductionConfigValidator()
        self.logger = logging.getLogger(__name__)

    async def get_categories(self) -> List[Category]:
        """دریافت تمام دسته‌بندی‌ها به همراه لینک‌ها"""
        async with self.db.pool.acquire() as conn:
            rows = await conn.fetch(f"""
                SELECT {CATEGORY_COLUMNS}
                FROM categories c
                ORDER BY c.name
            """)
            link_rows = await conn.fetch("""
                SELECT source_category_id, target_category_id, is_active, created_at
                FROM category_links
                ORDER BY created_at
            """)

        links: Dict[str, List[CategoryLink]] = {}
        for link in link_rows:
            links.setdefault(link['source_category_id'], []).append(CategoryLink(
                category_id=link['target_category_id'],
                is_active=link['is_active'],
                created_at=link['created_at'],
            ))
        return [row_to_category(row, links.get(row['category_id'])) for row in rows]

    async def get_category(self, category_id: str) -> Optional[Category]:
        """دریافت اطلاعات دسته‌بندی"""
        if not category_id:
            return None
        async with self.db.pool.acquire() as conn:
            row = await conn.fetchrow(f"""
                SELECT {CATEGORY_COLUMNS}
                FROM categories c
                WHERE c.category_id = $1
            """, category_id)
            if not row:
                return None
            link_rows = await conn.fetch("""
                SELECT target_category_id, is_active, created_at
                FROM category_links
                WHERE source_category_id = $1
                ORDER BY created_at
            """, category_id)

        links = [
            CategoryLink(category_id=link['target_category_id'], is_active=link['is_active'],
                         created_at=link['created_at'])
            for link in link_rows
        ]
        return row_to_category(row, links)

    async def create_category(self, category_data: Dict[str, Any]) -> str:
        """افزودن دسته‌بندی جدید"""
        validation = self.deduction_validator.validate_deduction_quantity(
            category_data.get('inventory_deduction_quantity')
        )
        if not validation.is_valid:
            raise ValueError(f"Invalid inventory deduction quantity: {', '.join(validation.errors)}")

        async with self.db.pool.acquire() as conn:
            category_id = await conn.fetchval("""
                INSERT INTO categories (
                    name, description, tag, category_group_id, inventory_type,
                    inventory_unit, unit_conversion_rate, inventory_deduction_quantity
                ) VALUES ($1, $2, $3, $4, $5, $6, $7, $8)
                RETURNING category_id
            """,
                category_data['name'],
                category_data.get('description') or '',
                category_data.get('tag') or '',
                category_data.get('category_group_id'),
                category_data.get('inventory_type'),
                category_data.get('inventory_unit'),
                category_data.get('unit_conversion_rate'),
                category_data.get('inventory_deduction_quantity')
            )
            self.logger.info(f"Category {category_id} created")
            return category_id

    async def update_category(self, category_id: str, update_data: Dict[str, Any]) -> bool:
        """بروزرسانی دسته‌بندی"""
        query_parts = []
        params = []
        param_count = 1

        for key, value in update_data.items():
            if key not in UPDATABLE_FIELDS:
                raise ValueError(f"Unknown category field: {key}")
            query_parts.append(f"{key} = ${param_count}")
            params.append(value)
            param_count += 1

        if not query_parts:
            return False

        params.append(category_id)
        query = f"""
            UPDATE categories 
            SET {', '.join(query_parts)}, updated_at = CURRENT_TIMESTAMP
            WHERE category_id = ${param_count}
        """

        async with self.db.pool.acquire() as conn:
            result = await conn.execute(query, *params)
            return result == "UPDATE 1"

    async def delete_category(self, category_id: str) -> bool:
        """حذف دسته‌بندی؛ لینک‌های ورودی و خروجی با آن حذف می‌شوند"""
        async with self.db.pool.acquire() as conn:
            async with conn.transaction():
                await conn.execute("""
                    UPDATE products
                    SET category_id = NULL
                    WHERE category_id = $1
                """, category_id)
                
                result = await conn.execute("""
                    DELETE FROM categories
                    WHERE category_id = $1
                """, category_id)
                
                return result == "DELETE 1"

    # لینک‌ها

    async def add_category_link(self, source_id: str, target_id: str, is_active: bool = True) -> ValidationResult:
        """افزودن لینک بین دو دسته‌بندی پس از بررسی وابستگی حلقوی"""
        if not source_id or not target_id:
            return ValidationResult.failure("Source and target category IDs are required")

        categories = await self.get_categories()
        validation = self.link_validator.validate_link(source_id, target_id, categories)
        if not validation.is_valid:
            return validation

        source = next(c for c in categories if c.id == source_id)
        if any(link.category_id == target_id for link in source.linked_categories):
            validation.add_error(f"Category '{source.name}' is already linked to this category")
            return validation

        async with self.db.pool.acquire() as conn:
            await conn.execute("""
                INSERT INTO category_links (source_category_id, target_category_id, is_active)
                VALUES ($1, $2, $3)
            """, source_id, target_id, is_active)

        self.logger.info(f"Link {source_id} -> {target_id} added (active={is_active})")
        return validation

    async def remove_category_link(self, source_id: str, target_id: str) -> ValidationResult:
        """حذف لینک"""
        if not source_id or not target_id:
            return ValidationResult.failure("Source and target category IDs are required")

        async with self.db.pool.acquire() as conn:
            result = await conn.execute("""
                DELETE FROM category_links
                WHERE source_category_id = $1 AND target_category_id = $2
            """, source_id, target_id)

        if result != "DELETE 1":
            return ValidationResult.failure("Category link not found")

        self.logger.info(f"Link {source_id} -> {target_id} removed")
        return ValidationResult.ok()

    async def set_category_link_active(self, source_id: str, target_id: str, is_active: bool) -> ValidationResult:
        """فعال یا غیرفعال کردن لینک"""
        if not source_id or not target_id:
            return ValidationResult.failure("Source and target category IDs are required")

        validation = ValidationResult.ok()
        if is_active:
            # فعال‌سازی دوباره لینک را به گراف برمی‌گرداند
            categories = await self.get_categories()
            without_link = [
                category.model_copy(update={'linked_categories': [
                    link for link in category.linked_categories if link.category_id != target_id
                ]}) if category.id == source_id else category
                for category in categories
            ]
            validation = self.link_validator.validate_link(source_id, target_id, without_link)
            if not validation.is_valid:
                return validation

        async with self.db.pool.acquire() as conn:
            result = await conn.execute("""
                UPDATE category_links
                SET is_active = $3
                WHERE source_category_id = $1 AND target_category_id = $2
            """, source_id, target_id, is_active)

        if result != "UPDATE 1":
            validation.add_error("Category link not found")
        return validation

    async def update_category_link(self, source_id: str, target_id: str, updates: Dict[str, Any]) -> ValidationResult:
        """بروزرسانی لینک"""
        unknown = set(updates) - {'is_active'}
        if unknown:
            return ValidationResult.failure(f"Unsupported link fields: {', '.join(sorted(unknown))}")
        if 'is_active' not in updates:
            return ValidationResult.ok()
        return await self.set_category_link_active(source_id, target_id, bool(updates['is_active']))

    async def get_linked_categories(self, category_id: str, include_inactive: bool = False) -> List[Category]:
        """دریافت دسته‌بندی‌های لینک‌شده"""
        if not category_id:
            return []
        async with self.db.pool.acquire() as conn:
            rows = await conn.fetch(f"""
                SELECT {CATEGORY_COLUMNS}
                FROM category_links l
                JOIN categories c ON c.category_id = l.target_category_id
                WHERE l.source_category_id = $1
                AND ($2 OR l.is_active)
                ORDER BY l.created_at
            """, category_id, include_inactive)
            return [row_to_category(row) for row in rows]

    async def get_categories_linking_to(self, category_id: str) -> List[Category]:
        """دریافت دسته‌بندی‌هایی که به این دسته‌بندی لینک دارند"""
        if not category_id:
            return []
        async with self.db.pool.acquire() as conn:
            rows = await conn.fetch(f"""
                SELECT {CATEGORY_COLUMNS}
                FROM category_links l
                JOIN categories c ON c.category_id = l.source_category_id
                WHERE l.target_category_id = $1
                ORDER BY c.name
            """, category_id)
            return [row_to_category(row) for row in rows]

    async def get_category_link_details(self, category_id: str) -> List[Dict[str, Any]]:
        """جزئیات لینک‌های خروجی برای نمایش"""
        if not category_id:
            return []
        async with self.db.pool.acquire() as conn:
            rows = await conn.fetch("""
                SELECT l.target_category_id, l.is_active, l.created_at,
                       c.name, c.category_group_id, c.inventory_deduction_quantity
                FROM category_links l
                JOIN categories c ON c.category_id = l.target_category_id
                WHERE l.source_category_id = $1
                ORDER BY l.created_at
            """, category_id)
            return [dict(row) for row in rows]

    async def get_dependency_chains(self, category_id: str, max_depth: Optional[int] = None) -> List[str]:
        """زنجیره‌های وابستگی یک دسته‌بندی"""
        if not category_id:
            return []
        categories = await self.get_categories()
        return self.cycle_validator.get_dependency_chains(category_id, categories, max_depth)

    async def validate_all_links(self) -> ValidationResult:
        """بررسی همه لینک‌ها"""
        categories = await self.get_categories()
        return self.cycle_validator.validate_all_category_links(categories)

    # تنظیمات کسر موجودی

    def validate_inventory_deduction_config(self, category: Category) -> ValidationResult:
        return self.deduction_validator.validate_category_deduction_config(category)

    async def get_categories_with_inventory_deduction(self) -> List[Category]:
        """دسته‌بندی‌هایی که کسر خودکار موجودی دارند"""
        async with self.db.pool.acquire() as conn:
            rows = await conn.fetch(f"""
                SELECT {CATEGORY_COLUMNS}
                FROM categories c
                WHERE c.inventory_deduction_quantity > 0
                ORDER BY c.name
            """)
            return [row_to_category(row) for row in rows]

    async def update_inventory_deduction_quantity(self, category_id: str, quantity: Optional[Decimal]) -> bool:
        """بروزرسانی مقدار کسر موجودی؛ None کسر را غیرفعال می‌کند"""
        validation = self.deduction_validator.validate_deduction_quantity(quantity)
        if not validation.is_valid:
            raise ValueError(f"Invalid inventory deduction quantity: {', '.join(validation.errors)}")
        return await self.update_category(category_id, {'inventory_deduction_quantity': quantity})

    async def is_category_ready_for_deduction(self, category_id: str) -> bool:
        category = await self.get_category(category_id)
        if category is None:
            return False
        return self.deduction_validator.is_category_ready_for_deduction(category)

    async def get_deduction_validation_summary(self, category_id: str) -> str:
        category = await self.get_category(category_id)
        if category is None:
            return "Category not found"
        return self.deduction_validator.get_validation_summary(category)
