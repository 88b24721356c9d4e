from sqlalchemy import Column, String, ForeignKey, DateTime, Numeric, Uuid
from sqlalchemy.orm import relationship
import uuid

from app.database import Base
from app.models.base import TimestampMixin


class Production(Base, TimestampMixin):
    __tablename__ = "productions"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    business_id = Column(Uuid, ForeignKey('businesses.id', ondelete='CASCADE'), nullable=False)
    branch_id = Column(Uuid, ForeignKey('branches.id'))
    production_number = Column(String(50), nullable=False)
    composite_item_id = Column(Uuid, ForeignKey('items.id'), nullable=False)
    batch_count = Column(Numeric(10, 2), nullable=False, default=1)
    produced_quantity = Column(Numeric(14, 4), nullable=False)  # composite's storage unit
    unit_cost = Column(Numeric(18, 8), nullable=False, default=0)  # per serving unit
    total_cost = Column(Numeric(18, 4), nullable=False, default=0)
    notes = Column(String)
    created_by = Column(Uuid)
    produced_at = Column(DateTime(timezone=True))

    # Relationships
    composite_item = relationship("Item")
    consumed_items = relationship("ProductionConsumedItem", back_populates="production", cascade="all, delete-orphan")


class ProductionConsumedItem(Base):
    __tablename__ = "production_consumed_items"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    production_id = Column(Uuid, ForeignKey('productions.id', ondelete='CASCADE'), nullable=False)
    item_id = Column(Uuid, ForeignKey('items.id'), nullable=False)
    quantity = Column(Numeric(14, 4), nullable=False)  # serving units
    storage_quantity = Column(Numeric(14, 4), nullable=False)
    unit_cost = Column(Numeric(18, 8), nullable=False, default=0)
    total_cost = Column(Numeric(18, 4), nullable=False, default=0)

    # Relationships
    production = relationship("Production", back_populates="consumed_items")
    item = relationship("Item")
