"""Unit conversion tests."""

from decimal import Decimal

import pytest

from app.exceptions import IncompatibleUnitsError, ValidationError
from app.utils.unit_conversion import (
    calculate_servings,
    compatible_storage_units_for,
    convert_units,
    default_storage_unit,
    get_conversion_factor,
    get_unit_category,
    validate_unit_pairing,
)


class TestConvertUnits:
    """Test conversions within and across unit categories."""

    def test_kg_to_grams(self):
        assert convert_units(Decimal("2.5"), "Kg", "grams") == Decimal("2500")

    def test_ml_to_litres(self):
        assert convert_units(750, "mL", "L") == Decimal("0.75")

    def test_same_unit_returns_quantity(self):
        assert convert_units(Decimal("3"), "piece", "piece") == Decimal("3")

    @pytest.mark.parametrize("a,b", [("Kg", "grams"), ("L", "mL"), ("grams", "Kg"), ("piece", "piece")])
    def test_round_trip(self, a, b):
        x = Decimal("12.345")
        assert convert_units(convert_units(x, a, b), b, a) == x

    def test_weight_to_count_rejected(self):
        with pytest.raises(IncompatibleUnitsError):
            convert_units(1, "Kg", "piece")

    def test_volume_to_weight_rejected(self):
        with pytest.raises(IncompatibleUnitsError) as exc_info:
            convert_units(1, "mL", "grams")
        assert exc_info.value.code == "incompatible_units"

    def test_unknown_unit(self):
        with pytest.raises(ValidationError):
            get_unit_category("cup")


class TestUnitHelpers:
    """Test storage/serving helpers."""

    def test_conversion_factor(self):
        assert get_conversion_factor("Kg", "grams") == Decimal("1000")
        assert get_conversion_factor("piece", "piece") == Decimal("1")

    def test_calculate_servings_floors(self):
        # 1.25 Kg of rice at 200 g a plate
        assert calculate_servings(Decimal("1.25"), "Kg", 200, "grams") == 6

    def test_calculate_servings_zero_portion(self):
        assert calculate_servings(5, "Kg", 0, "grams") == 0

    def test_default_storage_unit(self):
        assert default_storage_unit("grams") == "Kg"
        assert default_storage_unit("mL") == "L"
        assert default_storage_unit("piece") == "piece"

    def test_compatible_storage_units(self):
        assert compatible_storage_units_for("grams") == ["Kg", "grams"]

    def test_validate_pairing(self):
        assert validate_unit_pairing("Kg", "grams") is None
        assert "not compatible" in validate_unit_pairing("L", "grams")
        assert "Invalid serving unit" in validate_unit_pairing("Kg", "Kg")
