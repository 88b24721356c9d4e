from sqlalchemy import Column, String, ForeignKey, DateTime, Numeric, Integer, Uuid, Index, func, text
from sqlalchemy.orm import relationship
import uuid

from app.database import Base
from app.models.base import TimestampMixin
from app.utils.timezone import utc_now


class InventoryStock(Base, TimestampMixin):
    __tablename__ = "inventory_stock"
    __table_args__ = (
        # One record per (business, branch, item); NULL branch is business-level stock
        Index(
            "uq_inventory_stock_branch_item", "business_id", "branch_id", "item_id", unique=True,
            postgresql_where=text("branch_id IS NOT NULL"), sqlite_where=text("branch_id IS NOT NULL"),
        ),
        Index(
            "uq_inventory_stock_business_item", "business_id", "item_id", unique=True,
            postgresql_where=text("branch_id IS NULL"), sqlite_where=text("branch_id IS NULL"),
        ),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    business_id = Column(Uuid, ForeignKey('businesses.id', ondelete='CASCADE'), nullable=False)
    branch_id = Column(Uuid, ForeignKey('branches.id', ondelete='CASCADE'))  # NULL = business-level stock
    item_id = Column(Uuid, ForeignKey('items.id', ondelete='CASCADE'), nullable=False)
    quantity = Column(Numeric(14, 4), nullable=False, default=0)  # item's storage unit
    reserved_quantity = Column(Numeric(14, 4), nullable=False, default=0)
    held_quantity = Column(Numeric(14, 4), nullable=False, default=0)
    min_quantity = Column(Numeric(14, 4), nullable=False, default=0)
    max_quantity = Column(Numeric(14, 4))
    last_count_date = Column(DateTime(timezone=True))
    last_count_quantity = Column(Numeric(14, 4))
    movement_sequence = Column(Integer, nullable=False, default=0)  # bumped under the row lock by every movement

    # Relationships
    item = relationship("Item")


class InventoryMovement(Base):
    """Append-only; rows are never updated or deleted"""
    __tablename__ = "inventory_movements"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    business_id = Column(Uuid, ForeignKey('businesses.id', ondelete='CASCADE'), nullable=False)
    branch_id = Column(Uuid, ForeignKey('branches.id', ondelete='SET NULL'))
    item_id = Column(Uuid, ForeignKey('items.id', ondelete='CASCADE'), nullable=False)
    movement_type = Column(String(50), nullable=False)
    quantity = Column(Numeric(14, 4), nullable=False)  # applied delta, after clamping
    quantity_before = Column(Numeric(14, 4), nullable=False)
    quantity_after = Column(Numeric(14, 4), nullable=False)
    reserved_before = Column(Numeric(14, 4), nullable=False, default=0)
    reserved_after = Column(Numeric(14, 4), nullable=False, default=0)
    unit_cost = Column(Numeric(18, 8))
    total_cost = Column(Numeric(18, 4))
    reference_type = Column(String(50))
    reference_id = Column(String(64))
    notes = Column(String)
    created_by = Column(Uuid)
    # Client clock per row, not transaction start
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now, server_default=func.now())
    sequence = Column(Integer, nullable=False, default=0)  # position within the stock record, ties on created_at

    # Relationships
    item = relationship("Item")
