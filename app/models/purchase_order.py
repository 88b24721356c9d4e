from sqlalchemy import Column, String, ForeignKey, DateTime, Date, Numeric, Boolean, Uuid, JSON, func
from sqlalchemy.orm import relationship
import uuid

from app.database import Base
from app.models.base import TimestampMixin


class PurchaseOrder(Base, TimestampMixin):
    __tablename__ = "purchase_orders"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    business_id = Column(Uuid, ForeignKey('businesses.id', ondelete='CASCADE'), nullable=False)
    branch_id = Column(Uuid, ForeignKey('branches.id'))
    vendor_id = Column(Uuid, ForeignKey('vendors.id'), nullable=False)
    order_number = Column(String(50), nullable=False)
    status = Column(String(20), nullable=False, default='pending')  # pending, counted, received, cancelled
    order_date = Column(Date, nullable=False)
    expected_date = Column(Date)
    subtotal = Column(Numeric(14, 2), nullable=False, default=0)
    tax_amount = Column(Numeric(14, 2), nullable=False, default=0)
    total_amount = Column(Numeric(14, 2), nullable=False, default=0)
    notes = Column(String)
    invoice_image_url = Column(String)
    cancel_reason = Column(String)
    created_by = Column(Uuid)
    counted_by = Column(Uuid)
    counted_at = Column(DateTime(timezone=True))
    received_by = Column(Uuid)
    received_date = Column(DateTime(timezone=True))

    # Relationships
    vendor = relationship("Vendor")
    items = relationship("PurchaseOrderItem", back_populates="purchase_order", cascade="all, delete-orphan")
    activities = relationship(
        "PurchaseOrderActivity",
        back_populates="purchase_order",
        order_by="PurchaseOrderActivity.created_at",
    )


class PurchaseOrderItem(Base):
    __tablename__ = "purchase_order_items"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    purchase_order_id = Column(Uuid, ForeignKey('purchase_orders.id', ondelete='CASCADE'), nullable=False)
    item_id = Column(Uuid, ForeignKey('items.id'), nullable=False)
    quantity = Column(Numeric(14, 4), nullable=False)  # ordered, item's storage unit
    counted_quantity = Column(Numeric(14, 4))
    received_quantity = Column(Numeric(14, 4), nullable=False, default=0)
    unit_cost = Column(Numeric(18, 8), nullable=False, default=0)  # per storage unit
    total_cost = Column(Numeric(14, 2), nullable=False, default=0)
    variance_reason = Column(String(20))  # missing, canceled, rejected
    variance_note = Column(String)
    barcode_scanned = Column(Boolean, nullable=False, default=False)
    counted_at = Column(DateTime(timezone=True))
    notes = Column(String)

    # Relationships
    purchase_order = relationship("PurchaseOrder", back_populates="items")
    item = relationship("Item")


class PurchaseOrderActivity(Base):
    """Immutable audit trail of purchase order changes"""
    __tablename__ = "purchase_order_activity"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    purchase_order_id = Column(Uuid, ForeignKey('purchase_orders.id', ondelete='CASCADE'), nullable=False)
    business_id = Column(Uuid, ForeignKey('businesses.id', ondelete='CASCADE'), nullable=False)
    action = Column(String(50), nullable=False)  # created, updated, counted, received, cancelled
    old_status = Column(String(20))
    new_status = Column(String(20))
    changes = Column(JSON)
    notes = Column(String)
    user_id = Column(Uuid)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    # Relationships
    purchase_order = relationship("PurchaseOrder", back_populates="activities")
