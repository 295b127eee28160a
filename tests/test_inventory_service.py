from decimal import Decimal
import pytest
from catlink.models.category import InventoryUnit
from catlink.models.inventory import CascadeSource, DeductionRequest, Platform
from catlink.services.inventory_service import InventoryService, convert_quantity
from tests.conftest import FakeConnection, FakeDatabase


def group_row(group_id="group-1", current=100, unit="pcs"):
    return {
        "group_id": group_id,
        "name": "Test Group",
        "current_inventory": Decimal(current),
        "inventory_unit": unit,
        "minimum_threshold": Decimal(10),
    }


def service_with(*rows):
    conn = FakeConnection({row["group_id"]: row for row in rows})
    return InventoryService(FakeDatabase(conn)), conn


@pytest.mark.asyncio
async def test_empty_request_list():
    service, conn = service_with()
    result = await service.deduct_inventory_from_order([])

    assert result.deductions == [] and result.warnings == [] and result.errors == []
    assert conn.executed == []


@pytest.mark.asyncio
async def test_request_without_group_is_an_error():
    service, _ = service_with()
    result = await service.deduct_inventory_from_order([
        DeductionRequest(category_group_id="", quantity=Decimal(5), product_sku="TEST-001")
    ])

    [error] = result.errors
    assert error.category_group_id == "unknown"
    assert error.error == "Missing category group mapping"
    assert error.requested_quantity == Decimal(5)
    assert result.deductions == []


@pytest.mark.asyncio
async def test_successful_deduction_writes_movement():
    service, conn = service_with(group_row())
    result = await service.deduct_inventory_from_order([
        DeductionRequest(
            category_group_id="group-1", quantity=Decimal(10), product_sku="TEST-001",
            order_reference="ORDER-123", transaction_reference="TXN-456", platform=Platform.AMAZON,
        )
    ])

    [entry] = result.deductions
    assert entry.requested_quantity == Decimal(10)
    assert entry.new_inventory_level == Decimal(90)
    assert entry.movement_id == "1"
    assert result.warnings == [] and result.errors == []

    [movement] = conn.movements
    assert movement[:10] == (
        "group-1", "deduction", Decimal(10), "pcs", Decimal(100), Decimal(90),
        "TXN-456", "ORDER-123", "TEST-001", "amazon",
    )
    assert movement[10] == "Order processing deduction for 1 item(s)"
    assert movement[11] == "SKUs: TEST-001"


@pytest.mark.asyncio
async def test_requests_for_one_group_become_one_movement():
    service, conn = service_with(group_row())
    result = await service.deduct_inventory_from_order([
        DeductionRequest(category_group_id="group-1", quantity=Decimal(10), product_sku="A"),
        DeductionRequest(category_group_id="group-1", quantity=Decimal(5), product_sku="B", is_cascade=True),
    ])

    [entry] = result.deductions
    assert entry.deducted_quantity == Decimal(15)
    assert conn.movements[0][10] == "Order processing deduction for 2 item(s)"
    assert conn.movements[0][11] == "SKUs: A, B"


@pytest.mark.asyncio
async def test_insufficient_inventory_warns_but_deducts():
    service, _ = service_with(group_row(current=20))
    result = await service.deduct_inventory_from_order([
        DeductionRequest(category_group_id="group-1", quantity=Decimal(100), product_sku="TEST-001")
    ])

    [warning] = result.warnings
    assert warning.warning == "Insufficient inventory: requested 100pcs, available 20pcs"
    assert warning.available_quantity == Decimal(20)
    assert result.deductions[0].new_inventory_level == Decimal(-80)


@pytest.mark.asyncio
async def test_unit_mismatch_is_an_error():
    service, conn = service_with(group_row())
    result = await service.deduct_inventory_from_order([
        DeductionRequest(category_group_id="group-1", quantity=Decimal(10), unit=InventoryUnit.KG)
    ])

    [error] = result.errors
    assert error.error == "Unit mismatch"
    assert error.reason == "Order item unit (kg) does not match category group unit (pcs)"
    assert result.deductions == []
    assert conn.movements == []


@pytest.mark.asyncio
async def test_weight_units_are_converted():
    service, _ = service_with(group_row(current=2000, unit="g"))
    result = await service.deduct_inventory_from_order([
        DeductionRequest(category_group_id="group-1", quantity=Decimal("0.5"), unit=InventoryUnit.KG)
    ])

    assert result.deductions[0].deducted_quantity == Decimal(500)
    assert result.deductions[0].new_inventory_level == Decimal(1500)


@pytest.mark.asyncio
async def test_unknown_group_is_an_error():
    service, _ = service_with()
    result = await service.deduct_inventory_from_order([
        DeductionRequest(category_group_id="missing", quantity=Decimal(3))
    ])

    [error] = result.errors
    assert error.error == "Category group not found"
    assert error.requested_quantity == Decimal(3)


def test_convert_quantity():
    assert convert_quantity(Decimal(2), InventoryUnit.KG, InventoryUnit.G) == Decimal(2000)
    assert convert_quantity(Decimal(250), InventoryUnit.G, InventoryUnit.KG) == Decimal("0.25")
    assert convert_quantity(Decimal(1), InventoryUnit.PCS, InventoryUnit.G) is None


@pytest.mark.asyncio
async def test_groups_are_locked_in_a_fixed_order():
    locked = []
    for order in (["g1", "g2"], ["g2", "g1"]):
        service, conn = service_with(group_row("g1"), group_row("g2"))
        await service.deduct_inventory_from_order([
            DeductionRequest(category_group_id=group_id, quantity=Decimal(1)) for group_id in order
        ])
        locked.append(conn.locked)

    assert locked == [["g1", "g2"], ["g1", "g2"]]


@pytest.mark.asyncio
async def test_cascade_provenance_is_kept_in_notes():
    service, conn = service_with(group_row())
    await service.deduct_inventory_from_order([
        DeductionRequest(category_group_id="group-1", quantity=Decimal(2), product_sku="PHONE-1"),
        DeductionRequest(
            category_group_id="group-1", quantity=Decimal(4), product_sku="PHONE-1", is_cascade=True,
            cascade_source=CascadeSource(source_category_name="Electronics", target_category_name="Batteries"),
        ),
    ])

    [movement] = conn.movements
    assert movement[11] == "SKUs: PHONE-1; cascade: Electronics → Batteries (4pcs)"
