from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime
from uuid import UUID
from decimal import Decimal

from app.models.enums import ModifierType, WasteDecision


class OrderModifier(BaseModel):
    type: ModifierType
    modifier_id: Optional[UUID] = None
    name: Optional[str] = None
    quantity: Decimal = Field(default=Decimal("1"), ge=0)


class OrderLine(BaseModel):
    product_id: UUID
    variant_id: Optional[UUID] = None
    quantity: Decimal = Field(default=Decimal("1"), gt=0)
    product_name: Optional[str] = None
    modifiers: List[OrderModifier] = []


class OrderInventoryRequest(BaseModel):
    order_id: str = Field(..., min_length=1)
    branch_id: Optional[UUID] = None
    lines: List[OrderLine]


class RequiredIngredientResponse(BaseModel):
    item_id: UUID
    item_name: str
    quantity_in_storage: Decimal
    storage_unit: str
    product_id: Optional[UUID] = None
    product_name: Optional[str] = None

    class Config:
        from_attributes = True


class IngredientShortageResponse(BaseModel):
    item_id: UUID
    item_name: str
    required: Decimal
    available: Decimal
    unit: str


class InventoryCheckResponse(BaseModel):
    can_fulfil: bool
    shortages: List[IngredientShortageResponse] = []


class CancelledOrderItemResponse(BaseModel):
    id: UUID
    order_id: str
    branch_id: Optional[UUID]
    item_id: UUID
    product_id: Optional[UUID]
    product_name: Optional[str]
    quantity: Decimal
    unit: Optional[str]
    decision: Optional[str]
    decided_by: Optional[UUID]
    decided_at: Optional[datetime]
    auto_expired: bool
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class WasteDecisionItem(BaseModel):
    cancelled_item_id: UUID
    decision: WasteDecision


class WasteDecisionRequest(BaseModel):
    decisions: List[WasteDecisionItem]


class WasteDecisionError(BaseModel):
    cancelled_item_id: UUID
    code: str
    message: str


class WasteDecisionResult(BaseModel):
    processed: int
    errors: List[WasteDecisionError] = []


class AutoExpireResult(BaseModel):
    expired: int
