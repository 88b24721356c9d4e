"""
Per (business, branch, item) stock balances and the movement log behind them.

``StockLedger.adjust`` is the only code path that writes stock quantities.
Every helper here (reserve, consume, waste, ...) is expressed as a call to it,
so each change is a locked read-modify-write that leaves exactly one
``InventoryMovement`` row behind.
"""
import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.exceptions import NotFoundError, ValidationError
from app.models.enums import MovementType
from app.models.inventory import InventoryStock, InventoryMovement
from app.models.item import Item
from app.services.cost_ledger import CostLedger, round_cost
from app.utils.unit_conversion import to_decimal

logger = logging.getLogger(__name__)

ZERO = Decimal("0")

# Purchases update item totals through the cost ledger
_UNTRACKED_TOTALS = {MovementType.PURCHASE_RECEIVE.value}


@dataclass
class StockContext:
    """What caused a movement and who did it"""
    reference_type: Optional[str] = None
    reference_id: Optional[str] = None
    unit_cost: Optional[Decimal] = None  # per storage unit
    notes: Optional[str] = None
    user_id: Optional[UUID] = None


class StockLedger:
    def __init__(self, db: Session, cost_ledger: CostLedger = None):
        self.db = db
        self.cost_ledger = cost_ledger or CostLedger(db)

    def _stock_query(self, business_id: UUID, item_id: UUID, branch_id: Optional[UUID]):
        query = self.db.query(InventoryStock).filter(
            InventoryStock.business_id == business_id,
            InventoryStock.item_id == item_id,
        )
        if branch_id is not None:
            return query.filter(InventoryStock.branch_id == branch_id)
        return query.filter(InventoryStock.branch_id.is_(None))

    def get_item(self, item_id: UUID) -> Item:
        item = self.db.get(Item, item_id)
        if item is None:
            raise NotFoundError(f"Item {item_id} not found")
        return item

    def get(self, business_id: UUID, item_id: UUID, branch_id: UUID = None) -> Optional[InventoryStock]:
        return self._stock_query(business_id, item_id, branch_id).first()

    def get_or_create(self, business_id: UUID, item_id: UUID, branch_id: UUID = None, lock: bool = False) -> InventoryStock:
        query = self._stock_query(business_id, item_id, branch_id)
        if lock:
            query = query.with_for_update()
        stock = query.first()

        if stock is None:
            stock = InventoryStock(
                business_id=business_id,
                branch_id=branch_id,
                item_id=item_id,
                quantity=ZERO,
                reserved_quantity=ZERO,
                held_quantity=ZERO,
                min_quantity=ZERO,
                movement_sequence=0,
            )
            try:
                with self.db.begin_nested():
                    self.db.add(stock)
            except IntegrityError:
                # Created by a concurrent transaction since our select
                logger.info("Stock record for item %s at branch %s already exists, reloading", item_id, branch_id)
                query = self._stock_query(business_id, item_id, branch_id)
                if lock:
                    query = query.with_for_update()
                stock = query.one()

        return stock

    def adjust(
        self,
        business_id: UUID,
        item_id: UUID,
        delta,
        movement_type: str,
        branch_id: UUID = None,
        context: StockContext = None,
        reserved_delta=ZERO,
        held_delta=ZERO,
    ) -> InventoryStock:
        """
        Apply ``delta`` to on-hand quantity (and optionally to reserved/held)
        and append one movement row. Every field is clamped at zero.
        """
        context = context or StockContext()
        movement_type = getattr(movement_type, "value", movement_type)
        item = self.get_item(item_id)
        stock = self.get_or_create(business_id, item_id, branch_id, lock=True)

        before = to_decimal(stock.quantity)
        reserved_before = to_decimal(stock.reserved_quantity)
        held_before = to_decimal(stock.held_quantity)

        requested_after = before + to_decimal(delta)
        after = max(requested_after, ZERO)
        reserved_after = max(reserved_before + to_decimal(reserved_delta), ZERO)
        held_after = max(held_before + to_decimal(held_delta), ZERO)

        if requested_after < 0:
            logger.warning(
                "Clamped %s of item %s at branch %s: %s %+f would go negative",
                movement_type, item_id, branch_id, before, to_decimal(delta),
            )

        stock.quantity = after
        stock.reserved_quantity = reserved_after
        stock.held_quantity = held_after
        stock.movement_sequence = (stock.movement_sequence or 0) + 1

        applied = after - before
        unit_cost = round_cost(context.unit_cost) if context.unit_cost is not None else None
        total_cost = (unit_cost * abs(applied)).quantize(Decimal("0.0001")) if unit_cost is not None else None

        self.db.add(InventoryMovement(
            business_id=business_id,
            branch_id=branch_id,
            item_id=item_id,
            movement_type=movement_type,
            quantity=applied,
            quantity_before=before,
            quantity_after=after,
            reserved_before=reserved_before,
            reserved_after=reserved_after,
            unit_cost=unit_cost,
            total_cost=total_cost,
            reference_type=context.reference_type,
            reference_id=str(context.reference_id) if context.reference_id is not None else None,
            notes=context.notes,
            created_by=context.user_id,
            sequence=stock.movement_sequence,
        ))

        if applied != 0 and movement_type not in _UNTRACKED_TOTALS:
            self.cost_ledger.record_stock_change(item, applied, business_id)

        self.db.flush()
        return stock

    @staticmethod
    def _positive(quantity, action: str) -> Decimal:
        qty = to_decimal(quantity)
        if qty < 0:
            raise ValidationError(f"Quantity to {action} cannot be negative")
        return qty

    def reserve(self, business_id: UUID, item_id: UUID, quantity, branch_id: UUID = None, context: StockContext = None) -> InventoryStock:
        qty = self._positive(quantity, "reserve")
        return self.adjust(business_id, item_id, ZERO, MovementType.ORDER_RESERVE, branch_id, context, reserved_delta=qty)

    def release(self, business_id: UUID, item_id: UUID, quantity, branch_id: UUID = None, context: StockContext = None) -> InventoryStock:
        qty = self._positive(quantity, "release")
        return self.adjust(business_id, item_id, ZERO, MovementType.ORDER_RELEASE, branch_id, context, reserved_delta=-qty)

    def consume(self, business_id: UUID, item_id: UUID, quantity, branch_id: UUID = None, context: StockContext = None) -> InventoryStock:
        """Reserved stock has physically left the shelf"""
        qty = self._positive(quantity, "consume")
        return self.adjust(business_id, item_id, -qty, MovementType.ORDER_CONSUME, branch_id, context, reserved_delta=-qty)

    def process_waste(self, business_id: UUID, item_id: UUID, quantity, branch_id: UUID = None, context: StockContext = None) -> InventoryStock:
        """Deduct spoiled stock whose reservation was already released"""
        qty = self._positive(quantity, "waste")
        return self.adjust(business_id, item_id, -qty, MovementType.WASTE, branch_id, context)

    def release_and_deduct_waste(self, business_id: UUID, item_id: UUID, quantity, branch_id: UUID = None, context: StockContext = None) -> InventoryStock:
        """Reserved stock was spoiled rather than returned"""
        qty = self._positive(quantity, "waste")
        return self.adjust(business_id, item_id, -qty, MovementType.WASTE, branch_id, context, reserved_delta=-qty)

    def available(self, business_id: UUID, item_id: UUID, branch_id: UUID = None) -> Decimal:
        stock = self.get(business_id, item_id, branch_id)
        if stock is None:
            return ZERO
        return available_quantity(stock)

    def set_limits(self, business_id: UUID, item_id: UUID, branch_id: UUID = None, min_quantity=None, max_quantity=None) -> InventoryStock:
        min_qty = to_decimal(min_quantity) if min_quantity is not None else None
        max_qty = to_decimal(max_quantity) if max_quantity is not None else None

        if min_qty is not None and min_qty < 0:
            raise ValidationError("Minimum quantity cannot be negative")
        if max_qty is not None and max_qty < 0:
            raise ValidationError("Maximum quantity cannot be negative")
        if min_qty is not None and max_qty is not None and max_qty < min_qty:
            raise ValidationError("Maximum quantity cannot be lower than minimum quantity")

        self.get_item(item_id)
        stock = self.get_or_create(business_id, item_id, branch_id, lock=True)
        if min_qty is not None:
            stock.min_quantity = min_qty
        if max_qty is not None:
            stock.max_quantity = max_qty
        self.db.flush()
        return stock

    def get_stock_levels(
        self,
        business_id: UUID,
        branch_id: UUID = None,
        item_id: UUID = None,
        low_stock_only: bool = False,
    ) -> List[InventoryStock]:
        query = (
            self.db.query(InventoryStock)
            .join(Item, Item.id == InventoryStock.item_id)
            .filter(InventoryStock.business_id == business_id)
        )
        if branch_id is not None:
            query = query.filter(InventoryStock.branch_id == branch_id)
        if item_id is not None:
            query = query.filter(InventoryStock.item_id == item_id)

        rows = query.order_by(Item.name).all()

        if branch_id is None:
            # Items tracked per branch drop their business-level row
            branch_scoped = {row.item_id for row in rows if row.branch_id is not None}
            rows = [row for row in rows if row.branch_id is not None or row.item_id not in branch_scoped]

        if low_stock_only:
            rows = [row for row in rows if is_low_stock(row)]

        return rows

    def list_movements(
        self,
        business_id: UUID,
        branch_id: UUID = None,
        item_id: UUID = None,
        movement_type: str = None,
        reference_type: str = None,
        reference_id: str = None,
        limit: int = 100,
    ) -> List[InventoryMovement]:
        query = self.db.query(InventoryMovement).filter(InventoryMovement.business_id == business_id)
        if branch_id is not None:
            query = query.filter(InventoryMovement.branch_id == branch_id)
        if item_id is not None:
            query = query.filter(InventoryMovement.item_id == item_id)
        if movement_type:
            query = query.filter(InventoryMovement.movement_type == movement_type)
        if reference_type:
            query = query.filter(InventoryMovement.reference_type == reference_type)
        if reference_id:
            query = query.filter(InventoryMovement.reference_id == str(reference_id))

        return query.order_by(InventoryMovement.created_at.desc(), InventoryMovement.sequence.desc()).limit(limit).all()


def available_quantity(stock: InventoryStock) -> Decimal:
    """On hand minus reserved minus held, never below zero"""
    available = (
        to_decimal(stock.quantity)
        - to_decimal(stock.reserved_quantity)
        - to_decimal(stock.held_quantity)
    )
    return max(available, ZERO)


def is_low_stock(stock: InventoryStock) -> bool:
    min_qty = to_decimal(stock.min_quantity)
    return min_qty > 0 and to_decimal(stock.quantity) <= min_qty
