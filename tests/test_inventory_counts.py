"""Inventory count tests."""

from decimal import Decimal

import pytest

from app.exceptions import StateError, ValidationError
from app.models.enums import MovementType
from app.schemas.inventory_count import InventoryCountCreate
from app.services.inventory_counts import InventoryCountService
from app.services.stock_ledger import StockLedger


@pytest.fixture
def stocked_items(db_session, business, branch, make_item):
    sugar = make_item("Sugar")
    salt = make_item("Salt")
    ledger = StockLedger(db_session)
    ledger.adjust(business.id, sugar.id, Decimal("5"), MovementType.MANUAL_ADDITION, branch.id)
    ledger.adjust(business.id, salt.id, Decimal("2"), MovementType.MANUAL_ADDITION, branch.id)
    db_session.commit()
    return sugar, salt


class TestInventoryCount:
    """Test the count, reconcile and cancel flow."""

    def test_create_snapshots_expected(self, db_session, business, branch, stocked_items):
        sugar, salt = stocked_items
        count = InventoryCountService(db_session).create(business.id, InventoryCountCreate(branch_id=branch.id))

        expected = {line.item_id: line.expected_quantity for line in count.items}
        assert expected == {sugar.id: Decimal("5"), salt.id: Decimal("2")}
        assert count.status == "draft"
        assert count.count_number.startswith("CNT-")

    def test_partial_needs_items(self, db_session, business, branch, stocked_items):
        with pytest.raises(ValidationError):
            InventoryCountService(db_session).create(
                business.id, InventoryCountCreate(branch_id=branch.id, count_type="partial")
            )

    def test_complete_applies_variance(self, db_session, business, branch, stocked_items):
        sugar, salt = stocked_items
        service = InventoryCountService(db_session)
        count = service.create(business.id, InventoryCountCreate(
            branch_id=branch.id, count_type="partial", item_ids=[sugar.id, salt.id],
        ))

        line = service.update_line(business.id, count.id, sugar.id, Decimal("4.5"), "spilled")
        assert line.variance == Decimal("-0.5")
        assert count.status == "in_progress"
        service.update_line(business.id, count.id, salt.id, Decimal("2"))

        completed = service.complete(business.id, count.id)

        ledger = StockLedger(db_session)
        assert completed.status == "completed"
        assert ledger.get(business.id, sugar.id, branch.id).quantity == Decimal("4.5")
        assert ledger.get(business.id, salt.id, branch.id).last_count_quantity == Decimal("2")
        adjustments = ledger.list_movements(business.id, movement_type="count_adjustment")
        assert [m.item_id for m in adjustments] == [sugar.id]

    def test_uncounted_lines_block_completion(self, db_session, business, branch, stocked_items):
        sugar, _ = stocked_items
        service = InventoryCountService(db_session)
        count = service.create(business.id, InventoryCountCreate(branch_id=branch.id))
        service.update_line(business.id, count.id, sugar.id, Decimal("5"))

        with pytest.raises(ValidationError):
            service.complete(business.id, count.id)

    def test_negative_count_rejected(self, db_session, business, branch, stocked_items):
        sugar, _ = stocked_items
        service = InventoryCountService(db_session)
        count = service.create(business.id, InventoryCountCreate(branch_id=branch.id))

        with pytest.raises(ValidationError):
            service.update_line(business.id, count.id, sugar.id, Decimal("-1"))

    def test_cancelled_count_is_closed(self, db_session, business, branch, stocked_items):
        sugar, _ = stocked_items
        service = InventoryCountService(db_session)
        count = service.create(business.id, InventoryCountCreate(branch_id=branch.id))
        service.cancel(business.id, count.id)

        with pytest.raises(StateError):
            service.update_line(business.id, count.id, sugar.id, Decimal("1"))
        assert StockLedger(db_session).get(business.id, sugar.id, branch.id).quantity == Decimal("5")
