from pydantic import BaseModel
from typing import Optional, List
from datetime import datetime
from uuid import UUID
from decimal import Decimal


class StockTransferItemCreate(BaseModel):
    item_id: UUID
    quantity: Decimal
    notes: Optional[str] = None


class StockTransferCreate(BaseModel):
    from_branch_id: UUID
    to_branch_id: UUID
    to_business_id: Optional[UUID] = None  # defaults to the sending business
    notes: Optional[str] = None
    items: List[StockTransferItemCreate]


class StockTransferReceiveLine(BaseModel):
    item_id: UUID
    received_quantity: Decimal


class ReceiveStockTransfer(BaseModel):
    lines: List[StockTransferReceiveLine] = []


class StockTransferItemResponse(BaseModel):
    id: UUID
    item_id: UUID
    quantity: Decimal
    received_quantity: Optional[Decimal]
    notes: Optional[str]

    class Config:
        from_attributes = True


class StockTransferResponse(BaseModel):
    id: UUID
    transfer_number: str
    business_id: UUID
    from_branch_id: UUID
    to_business_id: UUID
    to_branch_id: UUID
    status: str
    notes: Optional[str]
    created_by: Optional[UUID]
    received_by: Optional[UUID]
    received_at: Optional[datetime]
    cancelled_by: Optional[UUID]
    cancelled_at: Optional[datetime]
    created_at: Optional[datetime] = None
    items: List[StockTransferItemResponse] = []

    class Config:
        from_attributes = True
