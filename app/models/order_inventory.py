from sqlalchemy import Column, String, ForeignKey, DateTime, Numeric, Boolean, Uuid
from sqlalchemy.orm import relationship
import uuid

from app.database import Base
from app.models.base import TimestampMixin


class CancelledOrderItem(Base, TimestampMixin):
    """Ingredient of a cancelled order waiting for the kitchen's waste/return decision"""
    __tablename__ = "cancelled_order_items"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    business_id = Column(Uuid, ForeignKey('businesses.id', ondelete='CASCADE'), nullable=False)
    branch_id = Column(Uuid, ForeignKey('branches.id'))
    order_id = Column(String(64), nullable=False)
    item_id = Column(Uuid, ForeignKey('items.id'), nullable=False)
    product_id = Column(Uuid, ForeignKey('products.id', ondelete='SET NULL'))
    product_name = Column(String(255))
    quantity = Column(Numeric(14, 4), nullable=False)  # item's storage unit
    unit = Column(String(20))
    decision = Column(String(20))  # NULL = pending, waste, return
    decided_by = Column(Uuid)
    decided_at = Column(DateTime(timezone=True))
    auto_expired = Column(Boolean, nullable=False, default=False)

    # Relationships
    item = relationship("Item")
