from pydantic import BaseModel, Field
from typing import Optional, List
from uuid import UUID
from decimal import Decimal


class ProductIngredientInput(BaseModel):
    item_id: UUID
    quantity: Decimal = Field(..., gt=0)
    removable: bool = False


class ProductVariantInput(BaseModel):
    name: str = Field(..., min_length=1)
    price_adjustment: Decimal = Decimal("0")
    sort_order: int = 0
    ingredients: List[ProductIngredientInput] = []


class ProductModifierInput(BaseModel):
    name: str = Field(..., min_length=1)
    item_id: Optional[UUID] = None
    quantity: Decimal = Field(default=Decimal("1"), gt=0)
    extra_price: Decimal = Decimal("0")


class ProductCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    category: Optional[str] = None
    price: Decimal = Decimal("0")
    ingredients: List[ProductIngredientInput] = []
    variants: List[ProductVariantInput] = []
    modifiers: List[ProductModifierInput] = []


class ProductIngredientResponse(BaseModel):
    id: UUID
    variant_id: Optional[UUID]
    item_id: UUID
    quantity: Decimal
    removable: bool

    class Config:
        from_attributes = True


class ProductVariantResponse(BaseModel):
    id: UUID
    name: str
    price_adjustment: Decimal
    total_cost: Decimal
    sort_order: int

    class Config:
        from_attributes = True


class ProductModifierResponse(BaseModel):
    id: UUID
    name: str
    item_id: Optional[UUID]
    quantity: Decimal
    extra_price: Decimal

    class Config:
        from_attributes = True


class ProductResponse(BaseModel):
    id: UUID
    business_id: UUID
    name: str
    category: Optional[str]
    price: Decimal
    total_cost: Decimal
    has_variants: bool
    is_active: bool
    variants: List[ProductVariantResponse] = []
    ingredients: List[ProductIngredientResponse] = []
    modifiers: List[ProductModifierResponse] = []

    class Config:
        from_attributes = True
