"""Manual stock addition and deduction tests."""

from decimal import Decimal

import pytest

from app.exceptions import ValidationError
from app.services.stock_ledger import StockLedger
from app.services.stock_transactions import StockTransactionService


class TestManualStock:
    """Test manual corrections."""

    def test_add_requires_note(self, db_session, business, make_item):
        item = make_item("Oil", unit="mL", storage_unit="L")
        with pytest.raises(ValidationError):
            StockTransactionService(db_session).add_stock(business.id, item.id, Decimal("1"), "  ")

    def test_add_and_deduct(self, db_session, business, branch, make_item, user_id):
        item = make_item("Oil", unit="mL", storage_unit="L", cost="0.03")
        service = StockTransactionService(db_session)
        service.add_stock(business.id, item.id, Decimal("5"), "found in back storage", branch.id, user_id)

        stock = service.deduct_stock(business.id, item.id, Decimal("1.5"), "expired", branch_id=branch.id)

        assert stock.quantity == Decimal("3.5")
        movements = StockLedger(db_session).list_movements(business.id, item_id=item.id)
        assert {m.movement_type for m in movements} == {"manual_addition", "manual_deduction"}
        deduction = next(m for m in movements if m.movement_type == "manual_deduction")
        assert deduction.notes == "expired"
        assert deduction.unit_cost == Decimal("30")

    def test_others_needs_note(self, db_session, business, make_item):
        item = make_item("Vinegar", unit="mL", storage_unit="L")
        with pytest.raises(ValidationError):
            StockTransactionService(db_session).deduct_stock(business.id, item.id, Decimal("1"), "others")

    def test_unknown_reason(self, db_session, business, make_item):
        item = make_item("Soy Sauce", unit="mL", storage_unit="L")
        with pytest.raises(ValidationError):
            StockTransactionService(db_session).deduct_stock(business.id, item.id, Decimal("1"), "stolen")

    def test_quantity_must_be_positive(self, db_session, business, make_item):
        item = make_item("Honey")
        with pytest.raises(ValidationError):
            StockTransactionService(db_session).deduct_stock(business.id, item.id, Decimal("0"), "damaged")
