from sqlalchemy import (
    Column, String, Boolean, ForeignKey, Numeric, DateTime, Uuid,
    UniqueConstraint, CheckConstraint,
)
from sqlalchemy.orm import relationship
import uuid

from app.database import Base
from app.models.base import TimestampMixin


class Item(Base, TimestampMixin):
    __tablename__ = "items"
    __table_args__ = (
        UniqueConstraint('business_id', 'name', name='uq_items_business_name'),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    business_id = Column(Uuid, ForeignKey('businesses.id', ondelete='CASCADE'))  # NULL = shared item
    name = Column(String(255), nullable=False)
    sku = Column(String(100))
    category = Column(String(100))
    unit = Column(String(20), nullable=False, default='grams')  # serving unit: grams, mL, piece
    storage_unit = Column(String(20), nullable=False, default='Kg')  # Kg, L, piece, grams, mL
    cost_per_unit = Column(Numeric(18, 8), nullable=False, default=0)  # WAC per serving unit
    total_stock_quantity = Column(Numeric(18, 4), nullable=False, default=0)  # serving units
    total_stock_value = Column(Numeric(18, 4), nullable=False, default=0)
    last_purchase_cost = Column(Numeric(18, 8))
    last_purchase_date = Column(DateTime(timezone=True))
    is_composite = Column(Boolean, nullable=False, default=False)
    batch_quantity = Column(Numeric(14, 4))
    batch_unit = Column(String(20))
    status = Column(String(20), nullable=False, default='active')

    # Relationships
    components = relationship(
        "CompositeItemComponent",
        foreign_keys="CompositeItemComponent.composite_item_id",
        back_populates="composite_item",
        cascade="all, delete-orphan",
    )
    barcodes = relationship("ItemBarcode", back_populates="item", cascade="all, delete-orphan")

    @property
    def is_shared(self) -> bool:
        return self.business_id is None


class BusinessItemPrice(Base, TimestampMixin):
    __tablename__ = "business_item_prices"
    __table_args__ = (
        UniqueConstraint('business_id', 'item_id', name='uq_business_item_prices'),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    business_id = Column(Uuid, ForeignKey('businesses.id', ondelete='CASCADE'), nullable=False)
    item_id = Column(Uuid, ForeignKey('items.id', ondelete='CASCADE'), nullable=False)
    cost_per_unit = Column(Numeric(18, 8), nullable=False, default=0)


class CompositeItemComponent(Base):
    __tablename__ = "composite_item_components"
    __table_args__ = (
        UniqueConstraint('composite_item_id', 'component_item_id', name='uq_composite_component'),
        CheckConstraint('composite_item_id != component_item_id', name='ck_composite_not_self'),
        CheckConstraint('quantity > 0', name='ck_composite_quantity_positive'),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    composite_item_id = Column(Uuid, ForeignKey('items.id', ondelete='CASCADE'), nullable=False)
    component_item_id = Column(Uuid, ForeignKey('items.id', ondelete='CASCADE'), nullable=False)
    quantity = Column(Numeric(14, 4), nullable=False)  # component's serving unit

    # Relationships
    composite_item = relationship("Item", foreign_keys=[composite_item_id], back_populates="components")
    component_item = relationship("Item", foreign_keys=[component_item_id])


class ItemBarcode(Base, TimestampMixin):
    __tablename__ = "item_barcodes"
    __table_args__ = (
        UniqueConstraint('business_id', 'barcode', name='uq_item_barcodes_business_barcode'),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    business_id = Column(Uuid, ForeignKey('businesses.id', ondelete='CASCADE'), nullable=False)
    item_id = Column(Uuid, ForeignKey('items.id', ondelete='CASCADE'), nullable=False)
    barcode = Column(String(100), nullable=False)
    created_by = Column(Uuid)

    # Relationships
    item = relationship("Item", back_populates="barcodes")
