from sqlalchemy import Column, String, ForeignKey, DateTime, Numeric, Uuid
from sqlalchemy.orm import relationship
import uuid

from app.database import Base
from app.models.base import TimestampMixin


class StockTransfer(Base, TimestampMixin):
    __tablename__ = "stock_transfers"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    transfer_number = Column(String(50), nullable=False)
    business_id = Column(Uuid, ForeignKey('businesses.id', ondelete='CASCADE'), nullable=False)  # source
    from_branch_id = Column(Uuid, ForeignKey('branches.id'), nullable=False)
    to_business_id = Column(Uuid, ForeignKey('businesses.id', ondelete='CASCADE'), nullable=False)
    to_branch_id = Column(Uuid, ForeignKey('branches.id'), nullable=False)
    status = Column(String(20), nullable=False, default='pending')  # pending, received, cancelled
    notes = Column(String)
    created_by = Column(Uuid)
    received_by = Column(Uuid)
    received_at = Column(DateTime(timezone=True))
    cancelled_by = Column(Uuid)
    cancelled_at = Column(DateTime(timezone=True))

    # Relationships
    from_branch = relationship("Branch", foreign_keys=[from_branch_id])
    to_branch = relationship("Branch", foreign_keys=[to_branch_id])
    items = relationship("StockTransferItem", back_populates="transfer", cascade="all, delete-orphan")


class StockTransferItem(Base):
    __tablename__ = "stock_transfer_items"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    transfer_id = Column(Uuid, ForeignKey('stock_transfers.id', ondelete='CASCADE'), nullable=False)
    item_id = Column(Uuid, ForeignKey('items.id'), nullable=False)
    quantity = Column(Numeric(14, 4), nullable=False)  # requested, item's storage unit
    received_quantity = Column(Numeric(14, 4))
    notes = Column(String)

    # Relationships
    transfer = relationship("StockTransfer", back_populates="items")
    item = relationship("Item")
