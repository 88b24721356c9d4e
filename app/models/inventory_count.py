from sqlalchemy import Column, String, ForeignKey, DateTime, Numeric, Uuid
from sqlalchemy.orm import relationship
import uuid

from app.database import Base
from app.models.base import TimestampMixin


class InventoryCount(Base, TimestampMixin):
    __tablename__ = "inventory_counts"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    business_id = Column(Uuid, ForeignKey('businesses.id', ondelete='CASCADE'), nullable=False)
    branch_id = Column(Uuid, ForeignKey('branches.id'))
    count_number = Column(String(50), nullable=False)
    count_type = Column(String(20), nullable=False, default='full')  # full, partial
    status = Column(String(20), nullable=False, default='draft')  # draft, in_progress, completed, cancelled
    notes = Column(String)
    created_by = Column(Uuid)
    completed_by = Column(Uuid)
    completed_at = Column(DateTime(timezone=True))

    # Relationships
    items = relationship("InventoryCountItem", back_populates="count", cascade="all, delete-orphan")


class InventoryCountItem(Base):
    __tablename__ = "inventory_count_items"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    count_id = Column(Uuid, ForeignKey('inventory_counts.id', ondelete='CASCADE'), nullable=False)
    item_id = Column(Uuid, ForeignKey('items.id'), nullable=False)
    expected_quantity = Column(Numeric(14, 4), nullable=False, default=0)
    counted_quantity = Column(Numeric(14, 4))
    variance = Column(Numeric(14, 4))
    variance_reason = Column(String)
    counted_by = Column(Uuid)
    counted_at = Column(DateTime(timezone=True))

    # Relationships
    count = relationship("InventoryCount", back_populates="items")
    item = relationship("Item")
