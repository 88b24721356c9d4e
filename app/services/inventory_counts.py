import logging
from decimal import Decimal
from typing import List
from uuid import UUID

from sqlalchemy.orm import Session

from app.exceptions import NotFoundError, StateError, ValidationError
from app.models.business import Branch
from app.models.enums import CountStatus, CountType, MovementType, ReferenceType
from app.models.inventory_count import InventoryCount, InventoryCountItem
from app.schemas.inventory_count import InventoryCountCreate
from app.services.items import ItemService
from app.services.stock_ledger import StockLedger, StockContext
from app.utils.document_numbers import COUNT_PREFIX, generate_document_number
from app.utils.timezone import utc_now
from app.utils.unit_conversion import to_decimal

logger = logging.getLogger(__name__)

OPEN_STATUSES = {CountStatus.DRAFT.value, CountStatus.IN_PROGRESS.value}


class InventoryCountService:
    """Snapshot expected stock, record what is on the shelf, then reconcile"""

    def __init__(self, db: Session):
        self.db = db
        self.items = ItemService(db)
        self.stock = StockLedger(db)

    def get(self, business_id: UUID, count_id: UUID) -> InventoryCount:
        count = (
            self.db.query(InventoryCount)
            .filter(InventoryCount.id == count_id, InventoryCount.business_id == business_id)
            .first()
        )
        if count is None:
            raise NotFoundError("Inventory count not found")
        return count

    def list_counts(self, business_id: UUID, status: str = None, branch_id: UUID = None) -> List[InventoryCount]:
        query = self.db.query(InventoryCount).filter(InventoryCount.business_id == business_id)
        if status:
            query = query.filter(InventoryCount.status == status)
        if branch_id:
            query = query.filter(InventoryCount.branch_id == branch_id)
        return query.order_by(InventoryCount.created_at.desc()).all()

    def create(self, business_id: UUID, data: InventoryCountCreate, user_id: UUID = None) -> InventoryCount:
        if data.branch_id is not None:
            branch = (
                self.db.query(Branch)
                .filter(Branch.id == data.branch_id, Branch.business_id == business_id)
                .first()
            )
            if branch is None:
                raise NotFoundError("Branch not found")

        count_type = getattr(data.count_type, "value", data.count_type)
        if data.item_ids:
            items = [self.items.get_item(business_id, item_id) for item_id in dict.fromkeys(data.item_ids)]
        elif count_type == CountType.PARTIAL.value:
            raise ValidationError("A partial count needs a list of items")
        else:
            items = self.items.list_items(business_id)

        if not items:
            raise ValidationError("There are no active items to count")

        count = InventoryCount(
            business_id=business_id,
            branch_id=data.branch_id,
            count_number=generate_document_number(
                self.db, InventoryCount, InventoryCount.count_number, business_id, COUNT_PREFIX
            ),
            count_type=count_type,
            status=CountStatus.DRAFT.value,
            notes=data.notes,
            created_by=user_id,
        )
        for item in items:
            stock = self.stock.get(business_id, item.id, data.branch_id)
            count.items.append(InventoryCountItem(
                item_id=item.id,
                expected_quantity=to_decimal(stock.quantity) if stock else Decimal("0"),
            ))

        self.db.add(count)
        self.db.flush()
        logger.info("Created inventory count %s with %d line(s)", count.count_number, len(count.items))
        return count

    def update_line(self, business_id: UUID, count_id: UUID, item_id: UUID, counted_quantity,
                    variance_reason: str = None, user_id: UUID = None) -> InventoryCountItem:
        count = self.get(business_id, count_id)
        if count.status not in OPEN_STATUSES:
            raise StateError(f"Cannot update a count in status '{count.status}'")

        counted = to_decimal(counted_quantity)
        if counted < 0:
            raise ValidationError("Counted quantity cannot be negative")

        line = next((line for line in count.items if line.item_id == item_id), None)
        if line is None:
            raise NotFoundError("Item is not part of this count")

        line.counted_quantity = counted
        line.variance = counted - to_decimal(line.expected_quantity)
        line.variance_reason = variance_reason
        line.counted_by = user_id
        line.counted_at = utc_now()
        count.status = CountStatus.IN_PROGRESS.value
        self.db.flush()
        return line

    def complete(self, business_id: UUID, count_id: UUID, user_id: UUID = None) -> InventoryCount:
        count = self.get(business_id, count_id)
        if count.status not in OPEN_STATUSES:
            raise StateError(f"Cannot complete a count in status '{count.status}'")

        uncounted = [line for line in count.items if line.counted_quantity is None]
        if uncounted:
            raise ValidationError(f"{len(uncounted)} item(s) have not been counted yet")

        now = utc_now()
        adjusted = 0
        for line in count.items:
            variance = to_decimal(line.variance)
            if variance != 0:
                self.stock.adjust(
                    business_id,
                    line.item_id,
                    variance,
                    MovementType.COUNT_ADJUSTMENT,
                    branch_id=count.branch_id,
                    context=StockContext(
                        reference_type=ReferenceType.INVENTORY_COUNT.value,
                        reference_id=str(count.id),
                        notes=line.variance_reason or f"Inventory count {count.count_number}",
                        user_id=user_id,
                    ),
                )
                adjusted += 1
            stock = self.stock.get_or_create(business_id, line.item_id, count.branch_id)
            stock.last_count_date = now
            stock.last_count_quantity = to_decimal(line.counted_quantity)

        count.status = CountStatus.COMPLETED.value
        count.completed_by = user_id
        count.completed_at = now
        self.db.flush()

        logger.info("Completed inventory count %s: %d adjustment(s)", count.count_number, adjusted)
        return count

    def cancel(self, business_id: UUID, count_id: UUID, user_id: UUID = None) -> InventoryCount:
        count = self.get(business_id, count_id)
        if count.status not in OPEN_STATUSES:
            raise StateError(f"Cannot cancel a count in status '{count.status}'")
        count.status = CountStatus.CANCELLED.value
        self.db.flush()
        return count
