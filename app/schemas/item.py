from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime
from uuid import UUID
from decimal import Decimal


class ItemBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    sku: Optional[str] = None
    category: Optional[str] = None
    unit: str = "grams"
    storage_unit: Optional[str] = None


class ItemCreate(ItemBase):
    cost_per_unit: Decimal = Decimal("0")


class ItemUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    sku: Optional[str] = None
    category: Optional[str] = None
    unit: Optional[str] = None
    storage_unit: Optional[str] = None
    cost_per_unit: Optional[Decimal] = None
    status: Optional[str] = None


class CompositeComponentInput(BaseModel):
    item_id: UUID
    quantity: Decimal


class CompositeItemCreate(ItemBase):
    batch_quantity: Decimal
    batch_unit: Optional[str] = None
    components: List[CompositeComponentInput]


class CompositeComponentsUpdate(BaseModel):
    components: List[CompositeComponentInput]
    batch_quantity: Optional[Decimal] = None


class CompositeComponentResponse(BaseModel):
    component_item_id: UUID
    quantity: Decimal

    class Config:
        from_attributes = True


class ItemResponse(BaseModel):
    id: UUID
    business_id: Optional[UUID]
    name: str
    sku: Optional[str]
    category: Optional[str]
    unit: str
    storage_unit: str
    cost_per_unit: Decimal
    effective_cost: Optional[Decimal] = None
    total_stock_quantity: Decimal
    total_stock_value: Decimal
    last_purchase_cost: Optional[Decimal]
    last_purchase_date: Optional[datetime]
    is_composite: bool
    batch_quantity: Optional[Decimal]
    batch_unit: Optional[str]
    status: str
    components: List[CompositeComponentResponse] = []

    class Config:
        from_attributes = True


class BusinessPriceUpdate(BaseModel):
    cost_per_unit: Decimal


class BusinessPriceResponse(BaseModel):
    business_id: UUID
    item_id: UUID
    cost_per_unit: Decimal

    class Config:
        from_attributes = True


class BarcodeCreate(BaseModel):
    barcode: str = Field(..., min_length=1, max_length=100)


class BarcodeResponse(BaseModel):
    id: UUID
    item_id: UUID
    barcode: str
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
