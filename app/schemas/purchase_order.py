from pydantic import BaseModel
from typing import Optional, List, Any
from datetime import date, datetime
from uuid import UUID
from decimal import Decimal


class PurchaseOrderItemCreate(BaseModel):
    item_id: UUID
    quantity: Decimal
    notes: Optional[str] = None


class PurchaseOrderCreate(BaseModel):
    vendor_id: UUID
    branch_id: Optional[UUID] = None
    expected_date: Optional[date] = None
    notes: Optional[str] = None
    items: List[PurchaseOrderItemCreate]


class PurchaseOrderUpdate(BaseModel):
    expected_date: Optional[date] = None
    notes: Optional[str] = None
    items: Optional[List[PurchaseOrderItemCreate]] = None


class PurchaseOrderCountLine(BaseModel):
    item_id: UUID
    counted_quantity: Optional[Decimal] = None
    variance_reason: Optional[str] = None  # missing, canceled, rejected
    variance_note: Optional[str] = None
    scanned_barcodes: List[str] = []


class PurchaseOrderCount(BaseModel):
    lines: List[PurchaseOrderCountLine]


class PurchaseOrderReceiveLine(BaseModel):
    item_id: UUID
    total_cost: Optional[Decimal] = None
    received_quantity: Optional[Decimal] = None  # only when the order was not counted first


class ReceivePurchaseOrder(BaseModel):
    invoice_image_url: Optional[str] = None
    lines: List[PurchaseOrderReceiveLine] = []


class CancelPurchaseOrder(BaseModel):
    reason: Optional[str] = None


class PurchaseOrderItemResponse(BaseModel):
    id: UUID
    item_id: UUID
    quantity: Decimal
    counted_quantity: Optional[Decimal]
    received_quantity: Decimal
    unit_cost: Decimal
    total_cost: Decimal
    variance_reason: Optional[str]
    variance_note: Optional[str]
    barcode_scanned: bool
    counted_at: Optional[datetime]
    notes: Optional[str]

    class Config:
        from_attributes = True


class PurchaseOrderResponse(BaseModel):
    id: UUID
    business_id: UUID
    branch_id: Optional[UUID]
    vendor_id: UUID
    order_number: str
    status: str
    order_date: date
    expected_date: Optional[date]
    subtotal: Decimal
    tax_amount: Decimal
    total_amount: Decimal
    notes: Optional[str]
    invoice_image_url: Optional[str]
    cancel_reason: Optional[str]
    created_by: Optional[UUID]
    counted_by: Optional[UUID]
    counted_at: Optional[datetime]
    received_by: Optional[UUID]
    received_date: Optional[datetime]
    items: List[PurchaseOrderItemResponse] = []

    class Config:
        from_attributes = True


class PurchaseOrderActivityResponse(BaseModel):
    id: UUID
    purchase_order_id: UUID
    action: str
    old_status: Optional[str]
    new_status: Optional[str]
    changes: Optional[Any]
    notes: Optional[str]
    user_id: Optional[UUID]
    created_at: Optional[datetime]

    class Config:
        from_attributes = True
