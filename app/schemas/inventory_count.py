from pydantic import BaseModel
from typing import Optional, List
from datetime import datetime
from uuid import UUID
from decimal import Decimal

from app.models.enums import CountType


class InventoryCountCreate(BaseModel):
    branch_id: Optional[UUID] = None
    count_type: CountType = CountType.FULL
    item_ids: Optional[List[UUID]] = None
    notes: Optional[str] = None


class InventoryCountLineUpdate(BaseModel):
    counted_quantity: Decimal
    variance_reason: Optional[str] = None


class InventoryCountItemResponse(BaseModel):
    id: UUID
    item_id: UUID
    expected_quantity: Decimal
    counted_quantity: Optional[Decimal]
    variance: Optional[Decimal]
    variance_reason: Optional[str]
    counted_by: Optional[UUID]
    counted_at: Optional[datetime]

    class Config:
        from_attributes = True


class InventoryCountResponse(BaseModel):
    id: UUID
    business_id: UUID
    branch_id: Optional[UUID]
    count_number: str
    count_type: str
    status: str
    notes: Optional[str]
    created_by: Optional[UUID]
    completed_by: Optional[UUID]
    completed_at: Optional[datetime]
    created_at: Optional[datetime] = None
    items: List[InventoryCountItemResponse] = []

    class Config:
        from_attributes = True
