"""Recipe resolution tests."""

import uuid
from decimal import Decimal

from app.schemas.order_inventory import OrderLine, OrderModifier
from app.schemas.product import ProductCreate, ProductIngredientInput, ProductModifierInput, ProductVariantInput
from app.services.products import ProductService
from app.services.recipe_resolver import RecipeResolver


def _by_item(ingredients):
    return {ingredient.item_id: ingredient.quantity_in_storage for ingredient in ingredients}


class TestResolve:
    """Test turning order lines into storage-unit requirements."""

    def test_converts_to_storage_units(self, db_session, business, menu):
        lines = [OrderLine(product_id=menu["fried_rice"].id, quantity=Decimal("2"))]

        result = _by_item(RecipeResolver(db_session).resolve(business.id, lines))

        assert result[menu["rice"].id] == Decimal("0.4")
        assert result[menu["egg"].id] == Decimal("2")

    def test_lines_are_aggregated(self, db_session, business, menu):
        lines = [
            OrderLine(product_id=menu["fried_rice"].id, quantity=Decimal("1")),
            OrderLine(product_id=menu["fried_rice"].id, quantity=Decimal("3")),
        ]

        result = RecipeResolver(db_session).resolve(business.id, lines)

        assert len(result) == 2
        assert _by_item(result)[menu["rice"].id] == Decimal("0.8")

    def test_removal_drops_ingredient(self, db_session, business, menu):
        lines = [OrderLine(
            product_id=menu["fried_rice"].id,
            modifiers=[OrderModifier(type="removal", name="egg")],
        )]

        result = _by_item(RecipeResolver(db_session).resolve(business.id, lines))

        assert menu["egg"].id not in result
        assert result[menu["rice"].id] == Decimal("0.2")

    def test_extras_scale_with_order_quantity(self, db_session, business, menu):
        extra = menu["fried_rice"].modifiers[0]
        lines = [OrderLine(
            product_id=menu["fried_rice"].id,
            quantity=Decimal("2"),
            modifiers=[OrderModifier(type="extra", modifier_id=extra.id, quantity=Decimal("2"))],
        )]

        result = _by_item(RecipeResolver(db_session).resolve(business.id, lines))

        # 1 egg per plate plus 2 extra eggs per plate, two plates
        assert result[menu["egg"].id] == Decimal("6")

    def test_removal_by_modifier_id(self, db_session, business, menu):
        omelette = ProductService(db_session).create_product(business.id, ProductCreate(
            name="Rice Omelette",
            ingredients=[
                ProductIngredientInput(item_id=menu["rice"].id, quantity=Decimal("150")),
                ProductIngredientInput(item_id=menu["egg"].id, quantity=Decimal("2"), removable=True),
            ],
            modifiers=[ProductModifierInput(name="Egg")],
        ))
        no_egg = omelette.modifiers[0]
        lines = [OrderLine(
            product_id=omelette.id,
            modifiers=[OrderModifier(type="removal", modifier_id=no_egg.id)],
        )]

        result = _by_item(RecipeResolver(db_session).resolve(business.id, lines))

        assert menu["egg"].id not in result
        assert result[menu["rice"].id] == Decimal("0.15")

    def test_unknown_product_is_skipped(self, db_session, business, menu):
        lines = [OrderLine(product_id=uuid.uuid4())]
        assert RecipeResolver(db_session).resolve(business.id, lines) == []

    def test_other_business_product_is_skipped(self, db_session, other_business, menu):
        lines = [OrderLine(product_id=menu["fried_rice"].id)]
        assert RecipeResolver(db_session).resolve(other_business.id, lines) == []


class TestVariants:
    """Test variant recipe selection."""

    def _coffee(self, db_session, business, make_item):
        milk = make_item("Milk", unit="mL", storage_unit="L", cost="0.02")
        return milk, ProductService(db_session).create_product(business.id, ProductCreate(
            name="Latte",
            price=Decimal("30000"),
            variants=[
                ProductVariantInput(name="Large", sort_order=0, ingredients=[
                    ProductIngredientInput(item_id=milk.id, quantity=Decimal("300")),
                ]),
                ProductVariantInput(name="Original", sort_order=1, ingredients=[
                    ProductIngredientInput(item_id=milk.id, quantity=Decimal("200")),
                ]),
            ],
        ))

    def test_falls_back_to_original_variant(self, db_session, business, make_item):
        milk, latte = self._coffee(db_session, business, make_item)

        result = _by_item(RecipeResolver(db_session).resolve(business.id, [OrderLine(product_id=latte.id)]))

        assert result[milk.id] == Decimal("0.2")

    def test_explicit_variant(self, db_session, business, make_item):
        milk, latte = self._coffee(db_session, business, make_item)
        large = next(v for v in latte.variants if v.name == "Large")

        result = _by_item(RecipeResolver(db_session).resolve(
            business.id, [OrderLine(product_id=latte.id, variant_id=large.id)]
        ))

        assert result[milk.id] == Decimal("0.3")

    def test_variant_product_cost_is_cheapest_variant(self, db_session, business, make_item):
        _, latte = self._coffee(db_session, business, make_item)
        # 200 mL x 0.02
        assert latte.total_cost == Decimal("4")

    def test_first_variant_by_sort_order_without_original(self, db_session, business, make_item):
        beans = make_item("Coffee Beans", cost="0.3")
        americano = ProductService(db_session).create_product(business.id, ProductCreate(
            name="Americano",
            variants=[
                ProductVariantInput(name="Double", sort_order=2, ingredients=[
                    ProductIngredientInput(item_id=beans.id, quantity=Decimal("36")),
                ]),
                ProductVariantInput(name="Single", sort_order=1, ingredients=[
                    ProductIngredientInput(item_id=beans.id, quantity=Decimal("18")),
                ]),
            ],
        ))

        result = _by_item(RecipeResolver(db_session).resolve(business.id, [OrderLine(product_id=americano.id)]))

        assert result[beans.id] == Decimal("0.018")
