"""
Stock transfers between branches, possibly across businesses.

A pending transfer never touches stock, which is what makes cancelling it a
plain status change. Stock moves once, at receive time: the requested
quantity leaves the source and the received quantity lands at the
destination, so any loss in transit shows up as the difference between the
two movements.
"""
import logging
from decimal import Decimal
from typing import Dict, List
from uuid import UUID

from sqlalchemy import or_
from sqlalchemy.orm import Session

from app.exceptions import NotFoundError, StateError, ValidationError
from app.models.business import Branch
from app.models.enums import MovementType, ReferenceType, TransferStatus
from app.models.stock_transfer import StockTransfer, StockTransferItem
from app.schemas.stock_transfer import StockTransferCreate, StockTransferReceiveLine
from app.services.cost_ledger import CostLedger
from app.services.items import ItemService
from app.services.stock_ledger import StockLedger, StockContext
from app.utils.document_numbers import TRANSFER_PREFIX, generate_document_number
from app.utils.timezone import utc_now
from app.utils.unit_conversion import get_conversion_factor, to_decimal

logger = logging.getLogger(__name__)


class TransferService:
    def __init__(self, db: Session):
        self.db = db
        self.items = ItemService(db)
        self.cost_ledger = CostLedger(db)
        self.stock = StockLedger(db, self.cost_ledger)

    def _branch(self, business_id: UUID, branch_id: UUID) -> Branch:
        branch = (
            self.db.query(Branch)
            .filter(Branch.id == branch_id, Branch.business_id == business_id)
            .first()
        )
        if branch is None:
            raise NotFoundError("Branch not found")
        return branch

    def get(self, business_id: UUID, transfer_id: UUID, lock: bool = False) -> StockTransfer:
        """Transfers are visible to both the sending and the receiving business"""
        query = self.db.query(StockTransfer).filter(
            StockTransfer.id == transfer_id,
            or_(StockTransfer.business_id == business_id, StockTransfer.to_business_id == business_id),
        )
        if lock:
            query = query.with_for_update()
        transfer = query.first()
        if transfer is None:
            raise NotFoundError("Transfer not found")
        return transfer

    def list_transfers(self, business_id: UUID, status: str = None, branch_id: UUID = None) -> List[StockTransfer]:
        query = self.db.query(StockTransfer).filter(
            or_(StockTransfer.business_id == business_id, StockTransfer.to_business_id == business_id)
        )
        if status:
            query = query.filter(StockTransfer.status == status)
        if branch_id:
            query = query.filter(or_(StockTransfer.from_branch_id == branch_id, StockTransfer.to_branch_id == branch_id))
        return query.order_by(StockTransfer.created_at.desc()).all()

    def create(self, business_id: UUID, data: StockTransferCreate, user_id: UUID = None) -> StockTransfer:
        to_business_id = data.to_business_id or business_id
        self._branch(business_id, data.from_branch_id)
        self._branch(to_business_id, data.to_branch_id)

        if data.from_branch_id == data.to_branch_id:
            raise ValidationError("Source and destination branch must be different")
        if not data.items:
            raise ValidationError("A transfer needs at least one item")

        seen = set()
        for line in data.items:
            if line.item_id in seen:
                raise ValidationError("Each item can only appear once per transfer")
            seen.add(line.item_id)
            if to_decimal(line.quantity) <= 0:
                raise ValidationError("Transfer quantity must be greater than zero")
            self.items.get_item(business_id, line.item_id)

        transfer = StockTransfer(
            transfer_number=generate_document_number(
                self.db, StockTransfer, StockTransfer.transfer_number, business_id, TRANSFER_PREFIX
            ),
            business_id=business_id,
            from_branch_id=data.from_branch_id,
            to_business_id=to_business_id,
            to_branch_id=data.to_branch_id,
            status=TransferStatus.PENDING.value,
            notes=data.notes,
            created_by=user_id,
        )
        transfer.items = [
            StockTransferItem(item_id=line.item_id, quantity=to_decimal(line.quantity), notes=line.notes)
            for line in data.items
        ]
        self.db.add(transfer)
        self.db.flush()

        logger.info("Created transfer %s with %d item(s)", transfer.transfer_number, len(transfer.items))
        return transfer

    def receive(self, business_id: UUID, transfer_id: UUID, lines: List[StockTransferReceiveLine],
                user_id: UUID = None) -> StockTransfer:
        transfer = self.get(business_id, transfer_id, lock=True)
        if transfer.status != TransferStatus.PENDING.value:
            raise StateError(f"Cannot receive a transfer in status '{transfer.status}'")

        received: Dict[UUID, Decimal] = {}
        for line in lines:
            received[line.item_id] = to_decimal(line.received_quantity)

        known = {transfer_item.item_id for transfer_item in transfer.items}
        unknown = [str(item_id) for item_id in received if item_id not in known]
        if unknown:
            raise ValidationError(f"Items not on this transfer: {', '.join(unknown)}")

        for transfer_item in transfer.items:
            quantity = received.get(transfer_item.item_id, to_decimal(transfer_item.quantity))
            if quantity < 0:
                raise ValidationError("Received quantity cannot be negative")
            if quantity > to_decimal(transfer_item.quantity):
                raise ValidationError("Received quantity cannot exceed the quantity sent")

        for transfer_item in transfer.items:
            item = transfer_item.item
            sent = to_decimal(transfer_item.quantity)
            arrived = received.get(transfer_item.item_id, sent)
            unit_cost = self.cost_ledger.effective_cost(transfer.business_id, item) * get_conversion_factor(
                item.storage_unit, item.unit
            )

            self.stock.adjust(
                transfer.business_id,
                item.id,
                -sent,
                MovementType.TRANSFER_OUT,
                branch_id=transfer.from_branch_id,
                context=StockContext(
                    reference_type=ReferenceType.TRANSFER.value,
                    reference_id=str(transfer.id),
                    unit_cost=unit_cost,
                    notes=f"Transfer {transfer.transfer_number} sent",
                    user_id=user_id,
                ),
            )
            self.stock.adjust(
                transfer.to_business_id,
                item.id,
                arrived,
                MovementType.TRANSFER_IN,
                branch_id=transfer.to_branch_id,
                context=StockContext(
                    reference_type=ReferenceType.TRANSFER.value,
                    reference_id=str(transfer.id),
                    unit_cost=unit_cost,
                    notes=f"Transfer {transfer.transfer_number} received",
                    user_id=user_id,
                ),
            )
            transfer_item.received_quantity = arrived
            if arrived < sent:
                logger.warning(
                    "Transfer %s lost %s %s of item %s in transit",
                    transfer.transfer_number, sent - arrived, item.storage_unit, item.id,
                )

        transfer.status = TransferStatus.RECEIVED.value
        transfer.received_by = user_id
        transfer.received_at = utc_now()
        self.db.flush()
        return transfer

    def cancel(self, business_id: UUID, transfer_id: UUID, user_id: UUID = None) -> StockTransfer:
        transfer = self.get(business_id, transfer_id, lock=True)
        if transfer.status != TransferStatus.PENDING.value:
            raise StateError(f"Cannot cancel a transfer in status '{transfer.status}'")

        transfer.status = TransferStatus.CANCELLED.value
        transfer.cancelled_by = user_id
        transfer.cancelled_at = utc_now()
        self.db.flush()
        return transfer
