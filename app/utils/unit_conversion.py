"""
Unit conversion between storage units (Kg, L, piece) and serving units
(grams, mL, piece).

Every unit belongs to one physical category and converts through the base
unit of that category. Conversions never round; display code does.
"""
from decimal import Decimal
from typing import List, Optional, Union

from app.exceptions import IncompatibleUnitsError, ValidationError

Number = Union[Decimal, int, float, str]

WEIGHT = "weight"
VOLUME = "volume"
COUNT = "count"

SERVING_UNITS = ("grams", "mL", "piece")
STORAGE_UNITS = ("Kg", "L", "piece", "grams", "mL")

UNIT_CATEGORIES = {
    "grams": WEIGHT,
    "Kg": WEIGHT,
    "mL": VOLUME,
    "L": VOLUME,
    "piece": COUNT,
}

# Factor that turns one unit into its category's base unit
TO_BASE_UNIT = {
    "grams": Decimal("1"),
    "Kg": Decimal("1000"),
    "mL": Decimal("1"),
    "L": Decimal("1000"),
    "piece": Decimal("1"),
}

DEFAULT_STORAGE_UNIT = {
    "grams": "Kg",
    "mL": "L",
    "piece": "piece",
}


def to_decimal(value: Number) -> Decimal:
    if isinstance(value, Decimal):
        return value
    if value is None:
        return Decimal("0")
    return Decimal(str(value))


def get_unit_category(unit: str) -> str:
    try:
        return UNIT_CATEGORIES[unit]
    except KeyError:
        raise ValidationError(f"Unknown unit: {unit}")


def are_compatible(storage_unit: str, serving_unit: str) -> bool:
    return get_unit_category(storage_unit) == get_unit_category(serving_unit)


def compatible_storage_units_for(serving_unit: str) -> List[str]:
    category = get_unit_category(serving_unit)
    return [unit for unit in STORAGE_UNITS if UNIT_CATEGORIES[unit] == category]


def convert_units(quantity: Number, from_unit: str, to_unit: str) -> Decimal:
    """Convert ``quantity`` from one unit to another of the same category"""
    if get_unit_category(from_unit) != get_unit_category(to_unit):
        raise IncompatibleUnitsError(from_unit, to_unit)

    qty = to_decimal(quantity)
    if from_unit == to_unit:
        return qty
    return qty * TO_BASE_UNIT[from_unit] / TO_BASE_UNIT[to_unit]


def storage_to_serving(quantity: Number, storage_unit: str, serving_unit: str) -> Decimal:
    return convert_units(quantity, storage_unit, serving_unit)


def serving_to_storage(quantity: Number, serving_unit: str, storage_unit: str) -> Decimal:
    return convert_units(quantity, serving_unit, storage_unit)


def get_conversion_factor(storage_unit: str, serving_unit: str) -> Decimal:
    """How many serving units fit in one storage unit (1000 for Kg -> grams)"""
    return convert_units(1, storage_unit, serving_unit)


def calculate_servings(
    storage_quantity: Number,
    storage_unit: str,
    serving_quantity: Number,
    serving_unit: str,
) -> int:
    """Whole servings of ``serving_quantity`` that fit in the stored amount"""
    per_serving = to_decimal(serving_quantity)
    if per_serving <= 0:
        return 0
    available = storage_to_serving(storage_quantity, storage_unit, serving_unit)
    return int(available // per_serving)


def default_storage_unit(serving_unit: str) -> str:
    get_unit_category(serving_unit)
    return DEFAULT_STORAGE_UNIT.get(serving_unit, serving_unit)


def validate_unit_pairing(storage_unit: str, serving_unit: str) -> Optional[str]:
    """Returns an error message for an invalid storage/serving pair, or None"""
    if serving_unit not in SERVING_UNITS:
        return f"Invalid serving unit: {serving_unit}. Must be one of: {', '.join(SERVING_UNITS)}"
    if storage_unit not in STORAGE_UNITS:
        return f"Invalid storage unit: {storage_unit}. Must be one of: {', '.join(STORAGE_UNITS)}"
    if not are_compatible(storage_unit, serving_unit):
        allowed = ", ".join(compatible_storage_units_for(serving_unit))
        return (
            f"Storage unit '{storage_unit}' is not compatible with serving unit '{serving_unit}'. "
            f"Compatible storage units: {allowed}"
        )
    return None
