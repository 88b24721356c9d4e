from pydantic import BaseModel
from typing import Optional
from datetime import datetime
from uuid import UUID
from decimal import Decimal

from app.models.enums import DeductionReason


class InventoryStockResponse(BaseModel):
    id: UUID
    business_id: UUID
    branch_id: Optional[UUID]
    item_id: UUID
    quantity: Decimal
    reserved_quantity: Decimal
    held_quantity: Decimal
    min_quantity: Decimal
    max_quantity: Optional[Decimal]
    last_count_date: Optional[datetime]
    last_count_quantity: Optional[Decimal]
    updated_at: Optional[datetime] = None

    # Additional fields from joins
    item_name: Optional[str] = None
    storage_unit: Optional[str] = None
    available_quantity: Optional[Decimal] = None
    is_low_stock: Optional[bool] = False

    class Config:
        from_attributes = True


class InventoryMovementResponse(BaseModel):
    id: UUID
    business_id: UUID
    branch_id: Optional[UUID]
    item_id: UUID
    movement_type: str
    quantity: Decimal
    quantity_before: Decimal
    quantity_after: Decimal
    reserved_before: Optional[Decimal]
    reserved_after: Optional[Decimal]
    unit_cost: Optional[Decimal]
    total_cost: Optional[Decimal]
    reference_type: Optional[str]
    reference_id: Optional[str]
    notes: Optional[str]
    created_by: Optional[UUID]
    created_at: Optional[datetime]

    class Config:
        from_attributes = True


class AvailabilityResponse(BaseModel):
    item_id: UUID
    branch_id: Optional[UUID]
    available_quantity: Decimal
    storage_unit: str


class StockLimitsUpdate(BaseModel):
    branch_id: Optional[UUID] = None
    min_quantity: Optional[Decimal] = None
    max_quantity: Optional[Decimal] = None


class StockAddition(BaseModel):
    item_id: UUID
    branch_id: Optional[UUID] = None
    quantity: Decimal
    notes: str


class StockDeduction(BaseModel):
    item_id: UUID
    branch_id: Optional[UUID] = None
    quantity: Decimal
    reason: DeductionReason
    notes: Optional[str] = None
