from decimal import Decimal
import pytest
from catlink.models.category import Category, CategoryLink, InventoryUnit
from catlink.models.inventory import DeductionEntry, DeductionResult
from catlink.models.product import Product
from catlink.services.deduction_validation import DeductionConfigValidator


def make_category(category_id, name=None, links=(), inactive=(), group=None, quantity=None,
                  unit=InventoryUnit.PCS):
    linked = [CategoryLink(category_id=target) for target in links]
    linked += [CategoryLink(category_id=target, is_active=False) for target in inactive]
    return Category(
        id=category_id,
        name=name or category_id,
        category_group_id=group,
        inventory_deduction_quantity=Decimal(str(quantity)) if quantity is not None else None,
        inventory_unit=unit,
        linked_categories=linked,
    )


class FakeCategoryService:
    def __init__(self, categories, failing=()):
        self.categories = categories
        self.failing = set(failing)
        self.deduction_validator = DeductionConfigValidator()
        self.linked_calls = []

    async def get_categories(self):
        return list(self.categories)

    async def get_linked_categories(self, category_id, include_inactive=False):
        self.linked_calls.append(category_id)
        if category_id in self.failing:
            raise ConnectionError("link lookup unavailable")
        by_id = {category.id: category for category in self.categories}
        source = by_id.get(category_id)
        if source is None:
            return []
        return [
            by_id[link.category_id]
            for link in source.linked_categories
            if (include_inactive or link.is_active) and link.category_id in by_id
        ]

    async def get_categories_with_inventory_deduction(self):
        return [category for category in self.categories if category.has_deduction_quantity]

    async def is_category_ready_for_deduction(self, category_id):
        category = next((c for c in self.categories if c.id == category_id), None)
        return bool(category) and self.deduction_validator.is_category_ready_for_deduction(category)


class FakeProductService:
    def __init__(self, products, fail=False):
        self.products = products
        self.fail = fail

    async def get_products(self):
        if self.fail:
            raise ConnectionError("product store unavailable")
        return list(self.products)

    async def get_product_by_sku(self, sku):
        return next((product for product in self.products if product.sku == sku), None)


class FakeInventoryService:
    def __init__(self, group_names=None, fail=False):
        self.group_names = group_names or {}
        self.fail = fail
        self.submitted = []

    async def get_category_group_names(self, group_ids):
        return {group_id: self.group_names[group_id] for group_id in group_ids if group_id in self.group_names}

    async def deduct_inventory_from_order(self, requests):
        self.submitted.append(list(requests))
        if self.fail:
            raise RuntimeError("inventory store rejected the batch")
        return DeductionResult(deductions=[
            DeductionEntry(
                category_group_id=request.category_group_id,
                requested_quantity=request.quantity,
                deducted_quantity=request.quantity,
                new_inventory_level=Decimal(0),
                movement_id=str(position),
            )
            for position, request in enumerate(requests, start=1)
        ])


class FakeTransaction:
    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False


class FakeConnection:
    """Answers the handful of queries the services issue.

    ``rows`` maps a query fragment to the rows returned for any fetch whose
    query contains it.
    """

    def __init__(self, groups=None, rows=None):
        self.groups = groups or {}
        self.rows = rows or {}
        self.executed = []
        self.fetched = []
        self.movements = []
        self.locked = []
        self.execute_status = None

    def transaction(self):
        return FakeTransaction()

    async def fetchrow(self, query, *args):
        if "FOR UPDATE" in query:
            self.locked.append(args[0])
        if "FROM category_groups" in query:
            return self.groups.get(args[0])
        rows = await self.fetch(query, *args)
        return rows[0] if rows else None

    async def fetch(self, query, *args):
        self.fetched.append((" ".join(query.split()), args))
        for fragment, rows in self.rows.items():
            if fragment in query:
                return rows
        return []

    async def fetchval(self, query, *args):
        if "INSERT INTO inventory_movements" in query:
            self.movements.append(args)
            return len(self.movements)
        if "INSERT INTO categories" in query:
            self.executed.append((" ".join(query.split()), args))
            return "new-category"
        return None

    async def execute(self, query, *args):
        self.executed.append((" ".join(query.split()), args))
        if self.execute_status:
            return self.execute_status
        verb = query.split()[0].upper()
        return f"{verb} 0 1" if verb == "INSERT" else f"{verb} 1"


class FakeAcquire:
    def __init__(self, conn):
        self.conn = conn

    async def __aenter__(self):
        return self.conn

    async def __aexit__(self, *exc):
        return False


class FakePool:
    def __init__(self, conn):
        self.conn = conn

    def acquire(self):
        return FakeAcquire(self.conn)


class FakeDatabase:
    def __init__(self, conn):
        self.pool = FakePool(conn)


@pytest.fixture
def electronics_snapshot():
    return [
        make_category("electronics", "Electronics", links=["batteries", "chargers"],
                      group="electronics-group", quantity=1),
        make_category("batteries", "Batteries", group="battery-group", quantity=2),
        make_category("chargers", "Chargers", group="charger-group", quantity=1),
    ]


@pytest.fixture
def electronics_products():
    return [
        Product(sku="PHONE-1", name="Phone", category_id="electronics"),
        Product(sku="LOOSE-1", name="Loose item"),
    ]
