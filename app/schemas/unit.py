from pydantic import BaseModel
from typing import List
from decimal import Decimal


class UnitResponse(BaseModel):
    name: str
    category: str
    is_serving_unit: bool
    is_storage_unit: bool


class UnitConversionRequest(BaseModel):
    quantity: Decimal
    from_unit: str
    to_unit: str


class UnitConversionResponse(BaseModel):
    quantity: Decimal
    from_unit: str
    to_unit: str
    converted_quantity: Decimal


class CompatibleUnitsResponse(BaseModel):
    serving_unit: str
    default_storage_unit: str
    storage_units: List[str]
