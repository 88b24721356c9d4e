"""
Stock side of the order lifecycle: reserve on create, consume on completion,
release on cancellation, then waste-or-return once the kitchen decides.

The calling layer serializes lifecycle transitions per order; this service
only has to apply them in order per item.
"""
import logging
from datetime import datetime, timedelta
from typing import List, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from app.config import settings
from app.exceptions import InventoryError
from app.models.enums import ReferenceType, WasteDecision
from app.models.order_inventory import CancelledOrderItem
from app.schemas.order_inventory import OrderLine, WasteDecisionItem
from app.services.recipe_resolver import RecipeResolver, RequiredIngredient
from app.services.stock_ledger import StockLedger, StockContext
from app.utils.timezone import utc_now
from app.utils.unit_conversion import storage_to_serving

logger = logging.getLogger(__name__)


class OrderInventoryService:
    def __init__(self, db: Session):
        self.db = db
        self.resolver = RecipeResolver(db)
        self.stock = StockLedger(db)

    @staticmethod
    def _context(order_id, user_id: Optional[UUID], notes: str) -> StockContext:
        return StockContext(
            reference_type=ReferenceType.ORDER.value,
            reference_id=str(order_id),
            notes=notes,
            user_id=user_id,
        )

    def check_availability(self, business_id: UUID, branch_id: Optional[UUID], lines: List[OrderLine]) -> List[dict]:
        """Ingredients the branch cannot cover, in serving units"""
        shortages = []
        for ingredient in self.resolver.resolve(business_id, lines):
            available = self.stock.available(business_id, ingredient.item_id, branch_id)
            if available >= ingredient.quantity_in_storage:
                continue
            item = self.stock.get_item(ingredient.item_id)
            shortages.append({
                "item_id": ingredient.item_id,
                "item_name": ingredient.item_name,
                "required": storage_to_serving(ingredient.quantity_in_storage, item.storage_unit, item.unit),
                "available": storage_to_serving(available, item.storage_unit, item.unit),
                "unit": item.unit,
            })
        return shortages

    def reserve_for_order(self, business_id: UUID, branch_id: Optional[UUID], order_id: str,
                          lines: List[OrderLine], user_id: UUID = None) -> List[RequiredIngredient]:
        ingredients = self.resolver.resolve(business_id, lines)
        context = self._context(order_id, user_id, f"Reserved for order {order_id}")
        for ingredient in ingredients:
            self.stock.reserve(business_id, ingredient.item_id, ingredient.quantity_in_storage, branch_id, context)
        logger.info("Reserved %d ingredient(s) for order %s", len(ingredients), order_id)
        return ingredients

    def consume_for_order(self, business_id: UUID, branch_id: Optional[UUID], order_id: str,
                          lines: List[OrderLine], user_id: UUID = None) -> List[RequiredIngredient]:
        ingredients = self.resolver.resolve(business_id, lines)
        context = self._context(order_id, user_id, f"Consumed by order {order_id}")
        for ingredient in ingredients:
            self.stock.consume(business_id, ingredient.item_id, ingredient.quantity_in_storage, branch_id, context)
        logger.info("Consumed %d ingredient(s) for order %s", len(ingredients), order_id)
        return ingredients

    def release_for_order(self, business_id: UUID, branch_id: Optional[UUID], order_id: str,
                          lines: List[OrderLine], user_id: UUID = None) -> List[RequiredIngredient]:
        ingredients = self.resolver.resolve(business_id, lines)
        context = self._context(order_id, user_id, f"Reservation released for order {order_id}")
        for ingredient in ingredients:
            self.stock.release(business_id, ingredient.item_id, ingredient.quantity_in_storage, branch_id, context)
        return ingredients

    def cancel_order(self, business_id: UUID, branch_id: Optional[UUID], order_id: str,
                     lines: List[OrderLine], user_id: UUID = None) -> List[CancelledOrderItem]:
        """
        Release the order's reservations right away and queue every
        ingredient for the kitchen to mark as waste or return.
        """
        ingredients = self.resolver.resolve(business_id, lines)
        context = self._context(order_id, user_id, f"Order {order_id} cancelled - reservation released")

        queued = []
        for ingredient in ingredients:
            self.stock.release(business_id, ingredient.item_id, ingredient.quantity_in_storage, branch_id, context)
            entry = CancelledOrderItem(
                business_id=business_id,
                branch_id=branch_id,
                order_id=str(order_id),
                item_id=ingredient.item_id,
                product_id=ingredient.product_id,
                product_name=ingredient.product_name,
                quantity=ingredient.quantity_in_storage,
                unit=ingredient.storage_unit,
                auto_expired=False,
            )
            self.db.add(entry)
            queued.append(entry)

        self.db.flush()
        logger.info("Order %s cancelled: %d item(s) awaiting waste decision", order_id, len(queued))
        return queued

    def waste_order_items(self, business_id: UUID, branch_id: Optional[UUID], order_id: str,
                          lines: List[OrderLine], user_id: UUID = None) -> List[RequiredIngredient]:
        """Reserved stock of an open order was spoiled (dropped plate, remake)"""
        ingredients = self.resolver.resolve(business_id, lines)
        context = self._context(order_id, user_id, f"Wasted from order {order_id}")
        for ingredient in ingredients:
            self.stock.release_and_deduct_waste(
                business_id, ingredient.item_id, ingredient.quantity_in_storage, branch_id, context
            )
        return ingredients

    def pending_decisions(self, business_id: UUID, branch_id: UUID = None) -> List[CancelledOrderItem]:
        query = self.db.query(CancelledOrderItem).filter(
            CancelledOrderItem.business_id == business_id,
            CancelledOrderItem.decision.is_(None),
        )
        if branch_id is not None:
            query = query.filter(CancelledOrderItem.branch_id == branch_id)
        return query.order_by(CancelledOrderItem.created_at).all()

    def _apply_decision(self, entry: CancelledOrderItem, decision: str, user_id: Optional[UUID],
                        now: datetime, auto_expired: bool = False):
        if decision == WasteDecision.WASTE.value:
            note = "Auto-expired cancelled item" if auto_expired else "Kitchen marked cancelled item as waste"
            self.stock.process_waste(
                entry.business_id,
                entry.item_id,
                entry.quantity,
                entry.branch_id,
                self._context(entry.order_id, user_id, note),
            )
        # "return" goes back on the shelf; the reservation is already released
        entry.decision = decision
        entry.decided_by = user_id
        entry.decided_at = now
        entry.auto_expired = auto_expired

    def process_waste_decisions(self, business_id: UUID, decisions: List[WasteDecisionItem], user_id: UUID = None) -> dict:
        """Apply each decision independently; failures are collected, not raised"""
        processed = 0
        errors = []
        now = utc_now()

        for item in decisions:
            entry = (
                self.db.query(CancelledOrderItem)
                .filter(CancelledOrderItem.id == item.cancelled_item_id, CancelledOrderItem.business_id == business_id)
                .first()
            )
            if entry is None:
                errors.append({
                    "cancelled_item_id": item.cancelled_item_id,
                    "code": "not_found",
                    "message": "Cancelled item not found",
                })
                continue
            if entry.decision is not None:
                errors.append({
                    "cancelled_item_id": item.cancelled_item_id,
                    "code": "invalid_state",
                    "message": f"Already decided as '{entry.decision}'",
                })
                continue

            try:
                with self.db.begin_nested():
                    self._apply_decision(entry, getattr(item.decision, "value", item.decision), user_id, now)
            except InventoryError as exc:
                logger.warning("Waste decision for %s failed: %s", entry.id, exc.message)
                errors.append({"cancelled_item_id": entry.id, "code": exc.code, "message": exc.message})
                continue
            processed += 1

        self.db.flush()
        return {"processed": processed, "errors": errors}

    def auto_expire_cancelled_items(self, now: datetime = None, business_id: UUID = None,
                                    max_age_hours: int = None) -> int:
        """
        Undecided cancelled items older than the expiry window become waste.
        Safe to run repeatedly: decided items are never touched again.
        """
        now = now or utc_now()
        max_age_hours = max_age_hours if max_age_hours is not None else settings.CANCELLED_ITEM_EXPIRY_HOURS
        cutoff = now - timedelta(hours=max_age_hours)

        query = self.db.query(CancelledOrderItem).filter(
            CancelledOrderItem.decision.is_(None),
            CancelledOrderItem.created_at < cutoff,
        )
        if business_id is not None:
            query = query.filter(CancelledOrderItem.business_id == business_id)

        expired = 0
        for entry in query.all():
            try:
                with self.db.begin_nested():
                    self._apply_decision(entry, WasteDecision.WASTE.value, None, now, auto_expired=True)
            except InventoryError as exc:
                logger.warning("Auto-expire of %s failed: %s", entry.id, exc.message)
                continue
            expired += 1

        if expired:
            logger.info("Auto-expired %d cancelled item(s) as waste", expired)
        self.db.flush()
        return expired
