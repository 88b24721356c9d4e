from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime
from uuid import UUID
from decimal import Decimal


class ProductionCreate(BaseModel):
    composite_item_id: UUID
    branch_id: Optional[UUID] = None
    batch_count: Decimal = Field(Decimal("1"), gt=0)  # fractional batches allowed, e.g. 0.5
    notes: Optional[str] = None


class ComponentAvailability(BaseModel):
    item_id: UUID
    item_name: str
    unit: str
    required_quantity: Decimal
    available_quantity: Decimal
    sufficient: bool


class ProductionAvailabilityResponse(BaseModel):
    composite_item_id: UUID
    batch_count: Decimal
    can_produce: bool
    components: List[ComponentAvailability]


class ProductionConsumedItemResponse(BaseModel):
    id: UUID
    item_id: UUID
    quantity: Decimal
    storage_quantity: Decimal
    unit_cost: Decimal
    total_cost: Decimal

    class Config:
        from_attributes = True


class ProductionResponse(BaseModel):
    id: UUID
    business_id: UUID
    branch_id: Optional[UUID]
    production_number: str
    composite_item_id: UUID
    batch_count: Decimal
    produced_quantity: Decimal
    unit_cost: Decimal
    total_cost: Decimal
    notes: Optional[str]
    created_by: Optional[UUID]
    produced_at: Optional[datetime]
    consumed_items: List[ProductionConsumedItemResponse] = []

    class Config:
        from_attributes = True
