"""Order inventory workflow tests."""

import uuid
from datetime import timedelta
from decimal import Decimal

import pytest

from app.models.enums import MovementType
from app.models.order_inventory import CancelledOrderItem
from app.schemas.order_inventory import OrderLine, WasteDecisionItem
from app.services.order_inventory import OrderInventoryService
from app.services.stock_ledger import StockLedger
from app.utils.timezone import utc_now


@pytest.fixture
def stocked(db_session, business, branch, menu):
    """2 Kg of rice and 10 eggs at the main branch."""
    ledger = StockLedger(db_session)
    ledger.adjust(business.id, menu["rice"].id, Decimal("2"), MovementType.MANUAL_ADDITION, branch.id)
    ledger.adjust(business.id, menu["egg"].id, Decimal("10"), MovementType.MANUAL_ADDITION, branch.id)
    db_session.commit()
    return menu


def _lines(menu, quantity="1"):
    return [OrderLine(product_id=menu["fried_rice"].id, quantity=Decimal(quantity))]


class TestAvailability:
    """Test the pre-order availability check."""

    def test_enough_stock(self, db_session, business, branch, stocked):
        service = OrderInventoryService(db_session)
        assert service.check_availability(business.id, branch.id, _lines(stocked, "5")) == []

    def test_shortage_reported_in_serving_units(self, db_session, business, branch, stocked):
        shortages = OrderInventoryService(db_session).check_availability(
            business.id, branch.id, _lines(stocked, "12")
        )

        by_item = {s["item_id"]: s for s in shortages}
        assert set(by_item) == {stocked["rice"].id, stocked["egg"].id}
        assert by_item[stocked["rice"].id]["required"] == Decimal("2400")
        assert by_item[stocked["rice"].id]["available"] == Decimal("2000")
        assert by_item[stocked["rice"].id]["unit"] == "grams"


class TestLifecycle:
    """Test reserve, consume and release."""

    def test_reserve_then_consume(self, db_session, business, branch, stocked):
        service = OrderInventoryService(db_session)
        ledger = StockLedger(db_session)

        service.reserve_for_order(business.id, branch.id, "ORD-1", _lines(stocked, "2"))
        assert ledger.get(business.id, stocked["egg"].id, branch.id).reserved_quantity == Decimal("2")
        assert ledger.available(business.id, stocked["egg"].id, branch.id) == Decimal("8")

        service.consume_for_order(business.id, branch.id, "ORD-1", _lines(stocked, "2"))
        egg_stock = ledger.get(business.id, stocked["egg"].id, branch.id)
        assert egg_stock.reserved_quantity == Decimal("0")
        assert egg_stock.quantity == Decimal("8")
        assert ledger.get(business.id, stocked["rice"].id, branch.id).quantity == Decimal("1.6")

    def test_release(self, db_session, business, branch, stocked):
        service = OrderInventoryService(db_session)
        service.reserve_for_order(business.id, branch.id, "ORD-2", _lines(stocked))
        service.release_for_order(business.id, branch.id, "ORD-2", _lines(stocked))

        stock = StockLedger(db_session).get(business.id, stocked["egg"].id, branch.id)
        assert stock.reserved_quantity == Decimal("0")
        assert stock.quantity == Decimal("10")

    def test_movements_reference_the_order(self, db_session, business, branch, stocked):
        OrderInventoryService(db_session).reserve_for_order(business.id, branch.id, "ORD-3", _lines(stocked))

        movements = StockLedger(db_session).list_movements(business.id, reference_id="ORD-3")
        assert {m.movement_type for m in movements} == {"order_reserve"}
        assert len(movements) == 2

    def test_waste_open_order(self, db_session, business, branch, stocked):
        service = OrderInventoryService(db_session)
        service.reserve_for_order(business.id, branch.id, "ORD-4", _lines(stocked))
        service.waste_order_items(business.id, branch.id, "ORD-4", _lines(stocked))

        stock = StockLedger(db_session).get(business.id, stocked["egg"].id, branch.id)
        assert stock.quantity == Decimal("9")
        assert stock.reserved_quantity == Decimal("0")


class TestCancellation:
    """Test cancelled orders and waste decisions."""

    def _cancel(self, db_session, business, branch, stocked, order_id="ORD-9"):
        service = OrderInventoryService(db_session)
        service.reserve_for_order(business.id, branch.id, order_id, _lines(stocked))
        queued = service.cancel_order(business.id, branch.id, order_id, _lines(stocked))
        db_session.commit()
        return service, queued

    def test_cancel_releases_and_queues(self, db_session, business, branch, stocked):
        service, queued = self._cancel(db_session, business, branch, stocked)

        assert len(queued) == 2
        assert all(entry.decision is None for entry in queued)
        stock = StockLedger(db_session).get(business.id, stocked["egg"].id, branch.id)
        assert stock.reserved_quantity == Decimal("0")
        assert stock.quantity == Decimal("10")
        assert len(service.pending_decisions(business.id)) == 2

    def test_waste_and_return_decisions(self, db_session, business, branch, stocked, user_id):
        service, queued = self._cancel(db_session, business, branch, stocked)
        egg_entry = next(e for e in queued if e.item_id == stocked["egg"].id)
        rice_entry = next(e for e in queued if e.item_id == stocked["rice"].id)

        result = service.process_waste_decisions(business.id, [
            WasteDecisionItem(cancelled_item_id=egg_entry.id, decision="waste"),
            WasteDecisionItem(cancelled_item_id=rice_entry.id, decision="return"),
        ], user_id)

        assert result == {"processed": 2, "errors": []}
        ledger = StockLedger(db_session)
        assert ledger.get(business.id, stocked["egg"].id, branch.id).quantity == Decimal("9")
        assert ledger.get(business.id, stocked["rice"].id, branch.id).quantity == Decimal("2")
        assert egg_entry.decided_by == user_id
        assert service.pending_decisions(business.id) == []

    def test_decisions_collect_errors(self, db_session, business, branch, stocked):
        service, queued = self._cancel(db_session, business, branch, stocked)
        service.process_waste_decisions(business.id, [
            WasteDecisionItem(cancelled_item_id=queued[0].id, decision="return"),
        ])

        missing = uuid.uuid4()
        result = service.process_waste_decisions(business.id, [
            WasteDecisionItem(cancelled_item_id=queued[0].id, decision="waste"),
            WasteDecisionItem(cancelled_item_id=missing, decision="waste"),
            WasteDecisionItem(cancelled_item_id=queued[1].id, decision="waste"),
        ])

        assert result["processed"] == 1
        codes = {str(e["cancelled_item_id"]): e["code"] for e in result["errors"]}
        assert codes == {str(queued[0].id): "invalid_state", str(missing): "not_found"}

    def test_auto_expire_is_idempotent(self, db_session, business, branch, stocked):
        service, _ = self._cancel(db_session, business, branch, stocked)
        later = utc_now() + timedelta(hours=25)

        assert service.auto_expire_cancelled_items(now=later) == 2
        assert service.auto_expire_cancelled_items(now=later) == 0

        entries = db_session.query(CancelledOrderItem).all()
        assert all(e.decision == "waste" and e.auto_expired for e in entries)
        assert StockLedger(db_session).get(business.id, stocked["egg"].id, branch.id).quantity == Decimal("9")

    def test_auto_expire_leaves_recent_items(self, db_session, business, branch, stocked):
        service, _ = self._cancel(db_session, business, branch, stocked)
        assert service.auto_expire_cancelled_items(now=utc_now()) == 0
