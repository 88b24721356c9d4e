from fastapi import APIRouter, Depends
from typing import List

from app.dependencies import get_current_user
from app.schemas.unit import (
    UnitResponse,
    UnitConversionRequest,
    UnitConversionResponse,
    CompatibleUnitsResponse,
)
from app.utils.unit_conversion import (
    SERVING_UNITS,
    STORAGE_UNITS,
    UNIT_CATEGORIES,
    compatible_storage_units_for,
    convert_units,
    default_storage_unit,
)

router = APIRouter()


@router.get("/", response_model=List[UnitResponse])
def get_all_units(current_user: dict = Depends(get_current_user)):
    """Get all supported units (global, no business filter)"""
    return [
        {
            "name": unit,
            "category": category,
            "is_serving_unit": unit in SERVING_UNITS,
            "is_storage_unit": unit in STORAGE_UNITS,
        }
        for unit, category in UNIT_CATEGORIES.items()
    ]


@router.post("/convert", response_model=UnitConversionResponse)
def convert_quantity(
    data: UnitConversionRequest,
    current_user: dict = Depends(get_current_user)
):
    return {
        "quantity": data.quantity,
        "from_unit": data.from_unit,
        "to_unit": data.to_unit,
        "converted_quantity": convert_units(data.quantity, data.from_unit, data.to_unit),
    }


@router.get("/{serving_unit}/storage-units", response_model=CompatibleUnitsResponse)
def get_compatible_storage_units(
    serving_unit: str,
    current_user: dict = Depends(get_current_user)
):
    """Storage units an item served in ``serving_unit`` may be stocked in"""
    return {
        "serving_unit": serving_unit,
        "default_storage_unit": default_storage_unit(serving_unit),
        "storage_units": compatible_storage_units_for(serving_unit),
    }
