import logging
from uuid import UUID

from sqlalchemy.orm import Session

from app.exceptions import ValidationError
from app.models.enums import DeductionReason, MovementType, ReferenceType
from app.models.inventory import InventoryStock
from app.services.cost_ledger import CostLedger
from app.services.items import ItemService
from app.services.stock_ledger import StockLedger, StockContext
from app.utils.unit_conversion import get_conversion_factor, to_decimal

logger = logging.getLogger(__name__)


class StockTransactionService:
    """Manual stock corrections outside of purchasing, counting and orders"""

    def __init__(self, db: Session):
        self.db = db
        self.items = ItemService(db)
        self.cost_ledger = CostLedger(db)
        self.stock = StockLedger(db, self.cost_ledger)

    def _context(self, business_id: UUID, item, notes: str, user_id: UUID) -> StockContext:
        return StockContext(
            reference_type=ReferenceType.MANUAL.value,
            unit_cost=self.cost_ledger.effective_cost(business_id, item) * get_conversion_factor(item.storage_unit, item.unit),
            notes=notes,
            user_id=user_id,
        )

    def add_stock(self, business_id: UUID, item_id: UUID, quantity, notes: str,
                  branch_id: UUID = None, user_id: UUID = None) -> InventoryStock:
        qty = to_decimal(quantity)
        if qty <= 0:
            raise ValidationError("Quantity must be greater than zero")
        if not (notes or "").strip():
            raise ValidationError("A note explaining the addition is required")

        item = self.items.get_item(business_id, item_id)
        stock = self.stock.adjust(
            business_id, item.id, qty, MovementType.MANUAL_ADDITION, branch_id,
            self._context(business_id, item, notes.strip(), user_id),
        )
        logger.info("Manual addition of %s %s to item %s", qty, item.storage_unit, item.id)
        return stock

    def deduct_stock(self, business_id: UUID, item_id: UUID, quantity, reason, notes: str = None,
                     branch_id: UUID = None, user_id: UUID = None) -> InventoryStock:
        qty = to_decimal(quantity)
        if qty <= 0:
            raise ValidationError("Quantity must be greater than zero")

        reason = getattr(reason, "value", reason)
        if reason not in {r.value for r in DeductionReason}:
            raise ValidationError(
                f"Invalid deduction reason: {reason}. Must be one of: {', '.join(r.value for r in DeductionReason)}"
            )
        notes = (notes or "").strip()
        if reason == DeductionReason.OTHERS.value and not notes:
            raise ValidationError("A note is required when the reason is 'others'")

        item = self.items.get_item(business_id, item_id)
        label = f"{reason}: {notes}" if notes else reason
        stock = self.stock.adjust(
            business_id, item.id, -qty, MovementType.MANUAL_DEDUCTION, branch_id,
            self._context(business_id, item, label, user_id),
        )
        logger.info("Manual deduction of %s %s from item %s (%s)", qty, item.storage_unit, item.id, reason)
        return stock
