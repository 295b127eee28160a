# catlink/services/product_service.py
from typing import List, Optional
from ..models.category import Category
from ..models.product import Product
from .category_service import CATEGORY_COLUMNS, row_to_category

class ProductService:
    def __init__(self, db):
        self.db = db

    async def get_products(self) -> List[Product]:
        """دریافت همه محصولات فعال"""
        async with self.db.pool.acquire() as conn:
            rows = await conn.fetch("""
                SELECT p.sku, p.name, p.description, p.category_id, p.is_active,
                       p.created_at, p.updated_at, c.category_group_id
                FROM products p
                LEFT JOIN categories c ON c.category_id = p.category_id
                WHERE p.is_active = true
                ORDER BY p.sku
            """)
            return [Product(**dict(row)) for row in rows]

    async def get_product_by_sku(self, sku: str) -> Optional[Product]:
        """دریافت اطلاعات محصول با SKU"""
        if not sku:
            return None
        async with self.db.pool.acquire() as conn:
            row = await conn.fetchrow("""
                SELECT p.sku, p.name, p.description, p.category_id, p.is_active,
                       p.created_at, p.updated_at, c.category_group_id
                FROM products p
                LEFT JOIN categories c ON c.category_id = p.category_id
                WHERE p.sku = $1 AND p.is_active = true
            """, sku)
            return Product(**dict(row)) if row else None

    async def resolve_product_category(self, sku: str) -> Optional[Category]:
        """دسته‌بندی محصول، بدون لینک‌ها"""
        if not sku:
            return None
        async with self.db.pool.acquire() as conn:
            row = await conn.fetchrow(f"""
                SELECT {CATEGORY_COLUMNS}
                FROM products p
                JOIN categories c ON c.category_id = p.category_id
                WHERE p.sku = $1 AND p.is_active = true
            """, sku)
            return row_to_category(row) if row else None
