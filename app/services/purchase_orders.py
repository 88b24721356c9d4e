"""
Purchase orders: pending -> counted -> received, with cancellation allowed
until the goods are received.

Receiving is the only step that touches stock and cost. Counting records what
arrived (with variance reasons and barcode confirmation); receiving prices it
from the invoice and feeds the cost ledger and the stock ledger.
"""
import logging
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, List, Optional
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.exceptions import NotFoundError, StateError, ValidationError
from app.models.business import Business, Branch
from app.models.enums import MovementType, PurchaseOrderStatus, ReferenceType, VarianceReason
from app.models.purchase_order import PurchaseOrder, PurchaseOrderItem, PurchaseOrderActivity
from app.models.vendor import Vendor
from app.schemas.purchase_order import (
    PurchaseOrderCreate,
    PurchaseOrderUpdate,
    PurchaseOrderItemCreate,
    PurchaseOrderCountLine,
    PurchaseOrderReceiveLine,
)
from app.services.cost_ledger import CostLedger, round_cost
from app.services.items import ItemService
from app.services.stock_ledger import StockLedger, StockContext
from app.utils.document_numbers import PURCHASE_ORDER_PREFIX, generate_document_number
from app.utils.timezone import get_local_now, utc_now
from app.utils.unit_conversion import to_decimal

logger = logging.getLogger(__name__)

MONEY = Decimal("0.01")

PENDING = PurchaseOrderStatus.PENDING.value
COUNTED = PurchaseOrderStatus.COUNTED.value
RECEIVED = PurchaseOrderStatus.RECEIVED.value
CANCELLED = PurchaseOrderStatus.CANCELLED.value

TRANSITIONS = {
    PENDING: {COUNTED, RECEIVED, CANCELLED},
    COUNTED: {RECEIVED, CANCELLED},
    RECEIVED: set(),
    CANCELLED: set(),
}

VARIANCE_REASONS = {reason.value for reason in VarianceReason}


def _jsonable(value):
    if isinstance(value, (Decimal, UUID)):
        return str(value)
    if hasattr(value, "isoformat"):
        return value.isoformat()
    return value


class PurchaseOrderService:
    def __init__(self, db: Session):
        self.db = db
        self.items = ItemService(db)
        self.cost_ledger = CostLedger(db)
        self.stock = StockLedger(db, self.cost_ledger)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def get(self, business_id: UUID, po_id: UUID, lock: bool = False) -> PurchaseOrder:
        query = self.db.query(PurchaseOrder).filter(
            PurchaseOrder.id == po_id,
            PurchaseOrder.business_id == business_id,
        )
        if lock:
            query = query.with_for_update()
        po = query.first()
        if po is None:
            raise NotFoundError("Purchase order not found")
        return po

    @staticmethod
    def _transition(po: PurchaseOrder, new_status: str):
        if new_status not in TRANSITIONS.get(po.status, set()):
            raise StateError(f"Cannot move purchase order {po.order_number} from '{po.status}' to '{new_status}'")
        old_status = po.status
        po.status = new_status
        return old_status

    def _log_activity(self, po: PurchaseOrder, action: str, old_status: str = None, new_status: str = None,
                      changes: dict = None, notes: str = None, user_id: UUID = None):
        """Audit trail is best effort; a failed insert never fails the order"""
        try:
            with self.db.begin_nested():
                self.db.add(PurchaseOrderActivity(
                    purchase_order_id=po.id,
                    business_id=po.business_id,
                    action=action,
                    old_status=old_status,
                    new_status=new_status,
                    changes=changes,
                    notes=notes,
                    user_id=user_id,
                ))
        except SQLAlchemyError:
            logger.exception("Failed to log '%s' activity for purchase order %s", action, po.id)

    def _validate_lines(self, business_id: UUID, lines: List[PurchaseOrderItemCreate]):
        if not lines:
            raise ValidationError("A purchase order needs at least one item")
        seen = set()
        for line in lines:
            if line.item_id in seen:
                raise ValidationError("Each item can only appear once per purchase order")
            seen.add(line.item_id)
            if to_decimal(line.quantity) <= 0:
                raise ValidationError("Ordered quantity must be greater than zero")
            self.items.get_item(business_id, line.item_id)

    def _build_items(self, lines: List[PurchaseOrderItemCreate]) -> List[PurchaseOrderItem]:
        return [
            PurchaseOrderItem(
                item_id=line.item_id,
                quantity=to_decimal(line.quantity),
                received_quantity=Decimal("0"),
                unit_cost=Decimal("0"),
                total_cost=Decimal("0"),
                barcode_scanned=False,
                notes=line.notes,
            )
            for line in lines
        ]

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def list_orders(self, business_id: UUID, status: str = None, vendor_id: UUID = None, branch_id: UUID = None) -> List[PurchaseOrder]:
        query = self.db.query(PurchaseOrder).filter(PurchaseOrder.business_id == business_id)
        if status:
            query = query.filter(PurchaseOrder.status == status)
        if vendor_id:
            query = query.filter(PurchaseOrder.vendor_id == vendor_id)
        if branch_id:
            query = query.filter(PurchaseOrder.branch_id == branch_id)
        return query.order_by(PurchaseOrder.created_at.desc()).all()

    def activity(self, business_id: UUID, po_id: UUID) -> List[PurchaseOrderActivity]:
        po = self.get(business_id, po_id)
        return (
            self.db.query(PurchaseOrderActivity)
            .filter(PurchaseOrderActivity.purchase_order_id == po.id)
            .order_by(PurchaseOrderActivity.created_at)
            .all()
        )

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def create(self, business_id: UUID, data: PurchaseOrderCreate, user_id: UUID = None) -> PurchaseOrder:
        vendor = (
            self.db.query(Vendor)
            .filter(Vendor.id == data.vendor_id, Vendor.business_id == business_id)
            .first()
        )
        if vendor is None:
            raise NotFoundError("Vendor not found")
        if data.branch_id is not None:
            branch = (
                self.db.query(Branch)
                .filter(Branch.id == data.branch_id, Branch.business_id == business_id)
                .first()
            )
            if branch is None:
                raise NotFoundError("Branch not found")
        self._validate_lines(business_id, data.items)

        po = PurchaseOrder(
            business_id=business_id,
            branch_id=data.branch_id,
            vendor_id=vendor.id,
            order_number=generate_document_number(
                self.db, PurchaseOrder, PurchaseOrder.order_number, business_id, PURCHASE_ORDER_PREFIX
            ),
            status=PENDING,
            order_date=get_local_now().date(),
            expected_date=data.expected_date,
            subtotal=Decimal("0"),
            tax_amount=Decimal("0"),
            total_amount=Decimal("0"),
            notes=data.notes,
            created_by=user_id,
        )
        po.items = self._build_items(data.items)
        self.db.add(po)
        self.db.flush()

        self._log_activity(
            po, "created", new_status=PENDING,
            changes={"items": len(po.items), "vendor_id": str(vendor.id)},
            user_id=user_id,
        )
        logger.info("Created purchase order %s with %d item(s)", po.order_number, len(po.items))
        return po

    def update(self, business_id: UUID, po_id: UUID, data: PurchaseOrderUpdate, user_id: UUID = None) -> PurchaseOrder:
        po = self.get(business_id, po_id, lock=True)
        if po.status != PENDING:
            raise StateError("Only pending purchase orders can be edited")

        update_data = data.model_dump(exclude_unset=True)
        changes = {}

        for field in ("expected_date", "notes"):
            if field in update_data and update_data[field] != getattr(po, field):
                changes[field] = {"old": _jsonable(getattr(po, field)), "new": _jsonable(update_data[field])}
                setattr(po, field, update_data[field])

        if data.items is not None:
            self._validate_lines(business_id, data.items)
            changes["items"] = {
                "old": [{"item_id": str(i.item_id), "quantity": str(i.quantity)} for i in po.items],
                "new": [{"item_id": str(i.item_id), "quantity": str(i.quantity)} for i in data.items],
            }
            po.items.clear()
            self.db.flush()
            po.items.extend(self._build_items(data.items))

        self.db.flush()
        if changes:
            self._log_activity(po, "updated", old_status=po.status, new_status=po.status, changes=changes, user_id=user_id)
        return po

    def count(self, business_id: UUID, po_id: UUID, lines: List[PurchaseOrderCountLine], user_id: UUID = None) -> PurchaseOrder:
        """
        Record what actually arrived. Every line must be counted and scanned;
        a shortfall needs a reason and an excess needs a note. Nothing is
        written unless all lines pass.
        """
        po = self.get(business_id, po_id, lock=True)
        if COUNTED not in TRANSITIONS.get(po.status, set()):
            raise StateError(f"Cannot count a purchase order in status '{po.status}'")

        lines_by_item: Dict[UUID, PurchaseOrderCountLine] = {}
        for line in lines:
            if line.item_id in lines_by_item:
                raise ValidationError("Each item can only be counted once")
            lines_by_item[line.item_id] = line

        po_item_ids = {po_item.item_id for po_item in po.items}
        unknown = [str(item_id) for item_id in lines_by_item if item_id not in po_item_ids]
        if unknown:
            raise ValidationError(f"Items not on this purchase order: {', '.join(unknown)}")

        errors = []
        for po_item in po.items:
            name = po_item.item.name if po_item.item else str(po_item.item_id)
            line = lines_by_item.get(po_item.item_id)
            if line is None or line.counted_quantity is None:
                errors.append(f"{name}: counted quantity is required")
                continue

            counted = to_decimal(line.counted_quantity)
            ordered = to_decimal(po_item.quantity)
            if counted < 0:
                errors.append(f"{name}: counted quantity cannot be negative")
            elif counted < ordered:
                if not line.variance_reason:
                    errors.append(f"{name}: a variance reason is required when fewer items arrive than ordered")
                elif line.variance_reason not in VARIANCE_REASONS:
                    errors.append(f"{name}: variance reason must be one of {', '.join(sorted(VARIANCE_REASONS))}")
            elif counted > ordered and not (line.variance_note and line.variance_note.strip()):
                errors.append(f"{name}: a note is required when more items arrive than ordered")

            if not [b for b in line.scanned_barcodes if b and b.strip()]:
                errors.append(f"{name}: at least one barcode scan is required")

        scanned_by: dict = {}
        for line in lines_by_item.values():
            for barcode in {b.strip() for b in line.scanned_barcodes if b and b.strip()}:
                scanned_by.setdefault(barcode, []).append(line.item_id)
        for barcode, item_ids in scanned_by.items():
            if len(item_ids) > 1:
                errors.append(f"Barcode {barcode} was scanned for {len(item_ids)} different items")

        if errors:
            raise ValidationError("; ".join(errors))

        for po_item in po.items:
            for barcode in lines_by_item[po_item.item_id].scanned_barcodes:
                if barcode and barcode.strip():
                    self.items.ensure_barcode_available(business_id, po_item.item_id, barcode)

        now = utc_now()
        changes = {}
        for po_item in po.items:
            line = lines_by_item[po_item.item_id]
            for barcode in {b.strip() for b in line.scanned_barcodes if b and b.strip()}:
                self.items.register_barcode(business_id, po_item.item_id, barcode, user_id)

            po_item.counted_quantity = to_decimal(line.counted_quantity)
            po_item.variance_reason = line.variance_reason
            po_item.variance_note = line.variance_note
            po_item.barcode_scanned = True
            po_item.counted_at = now
            changes[str(po_item.item_id)] = {
                "ordered": str(po_item.quantity),
                "counted": str(po_item.counted_quantity),
                "variance_reason": line.variance_reason,
            }

        old_status = self._transition(po, COUNTED)
        po.counted_by = user_id
        po.counted_at = now
        self.db.flush()

        self._log_activity(po, "counted", old_status=old_status, new_status=COUNTED, changes=changes, user_id=user_id)
        logger.info("Counted purchase order %s", po.order_number)
        return po

    def receive(self, business_id: UUID, po_id: UUID, invoice_image_url: Optional[str],
                lines: List[PurchaseOrderReceiveLine], user_id: UUID = None) -> PurchaseOrder:
        """
        Price the delivery from the invoice and bring it into stock.

        A counted order receives its counted quantities; an order received
        straight from pending must supply ``received_quantity`` per line.
        """
        po = self.get(business_id, po_id, lock=True)
        if RECEIVED not in TRANSITIONS.get(po.status, set()):
            raise StateError(f"Cannot receive a purchase order in status '{po.status}'")
        if not invoice_image_url or not invoice_image_url.strip():
            raise ValidationError("An invoice image is required to receive a purchase order")

        lines_by_item: Dict[UUID, PurchaseOrderReceiveLine] = {}
        for line in lines:
            if line.item_id in lines_by_item:
                raise ValidationError("Each item can only be received once")
            lines_by_item[line.item_id] = line

        po_item_ids = {po_item.item_id for po_item in po.items}
        unknown = [str(item_id) for item_id in lines_by_item if item_id not in po_item_ids]
        if unknown:
            raise ValidationError(f"Items not on this purchase order: {', '.join(unknown)}")

        was_counted = po.status == COUNTED
        plan = []
        for po_item in po.items:
            name = po_item.item.name if po_item.item else str(po_item.item_id)
            line = lines_by_item.get(po_item.item_id)

            if was_counted:
                quantity = to_decimal(po_item.counted_quantity)
            elif line is None:
                quantity = Decimal("0")
            elif line.received_quantity is None:
                raise ValidationError(f"{name}: received quantity is required")
            else:
                quantity = to_decimal(line.received_quantity)

            if quantity < 0:
                raise ValidationError(f"{name}: received quantity cannot be negative")

            total_cost = to_decimal(line.total_cost) if line is not None and line.total_cost is not None else None
            if total_cost is None:
                if quantity > 0:
                    raise ValidationError(f"{name}: total cost from the invoice is required")
                total_cost = Decimal("0")
            if total_cost < 0:
                raise ValidationError(f"{name}: total cost cannot be negative")

            plan.append((po_item, quantity, total_cost))

        context_notes = f"Received from purchase order {po.order_number}"
        for po_item, quantity, total_cost in plan:
            unit_cost = total_cost / quantity if quantity > 0 else Decimal("0")
            po_item.received_quantity = quantity
            po_item.total_cost = total_cost
            po_item.unit_cost = round_cost(unit_cost)

            if quantity <= 0:
                continue

            self.cost_ledger.receive(po_item.item, quantity, total_cost, business_id=po.business_id)
            self.stock.adjust(
                po.business_id,
                po_item.item_id,
                quantity,
                MovementType.PURCHASE_RECEIVE,
                branch_id=po.branch_id,
                context=StockContext(
                    reference_type=ReferenceType.PURCHASE_ORDER.value,
                    reference_id=str(po.id),
                    unit_cost=unit_cost,
                    notes=context_notes,
                    user_id=user_id,
                ),
            )

        business = self.db.get(Business, po.business_id)
        subtotal = sum((total for _, _, total in plan), Decimal("0"))
        tax_amount = Decimal("0")
        if business is not None and business.vat_enabled and to_decimal(business.tax_rate) > 0:
            tax_amount = subtotal * to_decimal(business.tax_rate) / Decimal("100")

        po.subtotal = subtotal.quantize(MONEY, rounding=ROUND_HALF_UP)
        po.tax_amount = tax_amount.quantize(MONEY, rounding=ROUND_HALF_UP)
        po.total_amount = po.subtotal + po.tax_amount
        po.invoice_image_url = invoice_image_url.strip()
        po.received_by = user_id
        po.received_date = utc_now()

        old_status = self._transition(po, RECEIVED)
        self.db.flush()

        self._log_activity(
            po, "received", old_status=old_status, new_status=RECEIVED,
            changes={
                "subtotal": str(po.subtotal),
                "tax_amount": str(po.tax_amount),
                "total_amount": str(po.total_amount),
                "lines": {
                    str(po_item.item_id): {"quantity": str(quantity), "total_cost": str(total)}
                    for po_item, quantity, total in plan
                },
            },
            user_id=user_id,
        )
        logger.info("Received purchase order %s, total %s", po.order_number, po.total_amount)
        return po

    def cancel(self, business_id: UUID, po_id: UUID, reason: str = None, user_id: UUID = None) -> PurchaseOrder:
        po = self.get(business_id, po_id, lock=True)
        old_status = self._transition(po, CANCELLED)
        po.cancel_reason = reason
        self.db.flush()

        self._log_activity(
            po, "cancelled", old_status=old_status, new_status=CANCELLED,
            changes={"reason": reason} if reason else None,
            notes=reason,
            user_id=user_id,
        )
        return po
