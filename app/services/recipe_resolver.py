"""
Turn order lines into the stock they need.

Recipes are written in serving units; the resolver converts each ingredient
to its item's storage unit so the result can be handed straight to the stock
ledger. Bad recipe data never blocks an order: an unresolvable line or
modifier contributes nothing and is logged.
"""
import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, Iterable, List, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from app.exceptions import InventoryError
from app.models.enums import ModifierType
from app.models.item import Item
from app.models.product import Product, ProductVariant, ProductIngredient, ProductModifier
from app.schemas.order_inventory import OrderLine, OrderModifier
from app.utils.unit_conversion import convert_units, to_decimal

logger = logging.getLogger(__name__)

DEFAULT_VARIANT_NAME = "original"


@dataclass
class RequiredIngredient:
    item_id: UUID
    item_name: str
    quantity_in_storage: Decimal
    storage_unit: str
    product_id: Optional[UUID] = None
    product_name: Optional[str] = None


def default_variant(product: Product) -> Optional[ProductVariant]:
    """The variant called "Original", else the first by sort order"""
    if not product.variants:
        return None
    for variant in product.variants:
        if (variant.name or "").strip().lower() == DEFAULT_VARIANT_NAME:
            return variant
    return sorted(product.variants, key=lambda v: v.sort_order or 0)[0]


class RecipeResolver:
    def __init__(self, db: Session):
        self.db = db

    def resolve(self, business_id: UUID, lines: Iterable[OrderLine]) -> List[RequiredIngredient]:
        totals: Dict[UUID, RequiredIngredient] = {}

        for line in lines:
            product = (
                self.db.query(Product)
                .filter(Product.id == line.product_id, Product.business_id == business_id)
                .first()
            )
            if product is None:
                logger.warning("Order line references unknown product %s; skipping", line.product_id)
                continue

            order_qty = to_decimal(line.quantity)
            removals = self._removal_names(product, line.modifiers)

            for ingredient in self.ingredients_for(product, line.variant_id):
                item = ingredient.item
                if item is None:
                    continue
                if (item.name or "").strip().lower() in removals:
                    continue
                per_unit = self._to_storage(ingredient.quantity, item)
                if per_unit is None:
                    continue
                self._add(totals, item, per_unit * order_qty, product)

            for modifier in line.modifiers:
                if modifier.type != ModifierType.EXTRA:
                    continue
                product_modifier = self._find_modifier(product, modifier)
                if product_modifier is None or product_modifier.item is None:
                    logger.warning(
                        "Extra %s on product %s has no stock item; skipping",
                        modifier.modifier_id or modifier.name, product.id,
                    )
                    continue
                per_extra = self._to_storage(product_modifier.quantity, product_modifier.item)
                if per_extra is None:
                    continue
                self._add(totals, product_modifier.item, per_extra * to_decimal(modifier.quantity) * order_qty, product)

        return list(totals.values())

    def ingredients_for(self, product: Product, variant_id: UUID = None) -> List[ProductIngredient]:
        if variant_id is not None:
            if not any(v.id == variant_id for v in product.variants):
                logger.warning("Variant %s does not belong to product %s", variant_id, product.id)
                return []
            return [i for i in product.ingredients if i.variant_id == variant_id]

        product_level = [i for i in product.ingredients if i.variant_id is None]
        if product_level:
            return product_level

        variant = default_variant(product)
        if variant is None:
            return []
        return [i for i in product.ingredients if i.variant_id == variant.id]

    def _removal_names(self, product: Product, modifiers: List[OrderModifier]) -> set:
        names = set()
        for modifier in modifiers:
            if modifier.type != ModifierType.REMOVAL:
                continue
            name = modifier.name
            if not name and modifier.modifier_id is not None:
                match = self._find_modifier(product, modifier)
                name = match.name if match else None
            if name:
                names.add(name.strip().lower())
        return names

    @staticmethod
    def _find_modifier(product: Product, modifier: OrderModifier) -> Optional[ProductModifier]:
        if modifier.modifier_id is not None:
            return next((m for m in product.modifiers if m.id == modifier.modifier_id), None)
        if modifier.name:
            wanted = modifier.name.strip().lower()
            return next((m for m in product.modifiers if (m.name or "").strip().lower() == wanted), None)
        return None

    @staticmethod
    def _to_storage(quantity, item: Item) -> Optional[Decimal]:
        try:
            return convert_units(quantity, item.unit, item.storage_unit)
        except InventoryError as exc:
            logger.warning("Cannot convert recipe quantity for item %s: %s", item.id, exc.message)
            return None

    @staticmethod
    def _add(totals: Dict[UUID, RequiredIngredient], item: Item, quantity: Decimal, product: Product):
        entry = totals.get(item.id)
        if entry is None:
            totals[item.id] = RequiredIngredient(
                item_id=item.id,
                item_name=item.name,
                quantity_in_storage=quantity,
                storage_unit=item.storage_unit,
                product_id=product.id,
                product_name=product.name,
            )
        else:
            entry.quantity_in_storage += quantity
