"""
Weighted average cost (WAC) per item.

Costs are kept per *serving* unit (grams, mL, piece) with 8 decimal places,
so a gram of saffron and a kilo of rice both keep a meaningful cost. Receipts
arrive in storage units and are normalized before blending.
"""
import logging
from decimal import Decimal, ROUND_HALF_UP
from typing import List, Optional, Set
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.config import settings
from app.exceptions import ValidationError
from app.models.inventory import InventoryStock
from app.models.item import Item, BusinessItemPrice, CompositeItemComponent
from app.models.product import Product, ProductIngredient
from app.services.events import EventBus, ItemCostChanged, event_bus
from app.utils.timezone import utc_now
from app.utils.unit_conversion import convert_units, get_conversion_factor, to_decimal

logger = logging.getLogger(__name__)

ZERO = Decimal("0")
COST_QUANTUM = Decimal(1).scaleb(-settings.COST_PRECISION)
VALUE_QUANTUM = Decimal("0.0001")


def round_cost(value) -> Decimal:
    return to_decimal(value).quantize(COST_QUANTUM, rounding=ROUND_HALF_UP)


def calculate_weighted_average_cost(existing_qty, existing_cost, received_qty, received_cost) -> Decimal:
    """
    WAC = (existing_qty * existing_cost + received_qty * received_cost)
          / (existing_qty + received_qty)

    Negative quantities count as zero; with nothing on hand the received
    cost wins outright.
    """
    eq = max(to_decimal(existing_qty), ZERO)
    rq = max(to_decimal(received_qty), ZERO)
    ec = to_decimal(existing_cost)
    rc = to_decimal(received_cost)

    total_qty = eq + rq
    if total_qty <= 0:
        return round_cost(rc)

    return round_cost((eq * ec + rq * rc) / total_qty)


class CostLedger:
    def __init__(self, db: Session, bus: EventBus = None):
        self.db = db
        self.bus = bus or event_bus

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def business_price(self, business_id: UUID, item_id: UUID) -> Optional[BusinessItemPrice]:
        if business_id is None:
            return None
        return (
            self.db.query(BusinessItemPrice)
            .filter(BusinessItemPrice.business_id == business_id, BusinessItemPrice.item_id == item_id)
            .first()
        )

    def effective_cost(self, business_id: Optional[UUID], item: Item) -> Decimal:
        """Business override for shared items, else the item's own WAC"""
        if item.is_shared:
            price = self.business_price(business_id, item.id)
            if price is not None:
                return to_decimal(price.cost_per_unit)
        return to_decimal(item.cost_per_unit)

    def _business_stock_in_serving_units(self, business_id: UUID, item: Item) -> Decimal:
        on_hand = (
            self.db.query(func.coalesce(func.sum(InventoryStock.quantity), 0))
            .filter(InventoryStock.business_id == business_id, InventoryStock.item_id == item.id)
            .scalar()
        )
        return convert_units(on_hand, item.storage_unit, item.unit)

    # ------------------------------------------------------------------
    # Receipts
    # ------------------------------------------------------------------

    def receive(self, item: Item, received_quantity, total_invoice_cost, business_id: UUID = None) -> Decimal:
        """
        Blend a receipt of ``received_quantity`` storage units costing
        ``total_invoice_cost`` into the item's WAC and return the new WAC.

        Shared items keep their blended cost on the receiving business's
        price override, so one tenant's purchases never reprice another's.
        """
        qty = to_decimal(received_quantity)
        total = to_decimal(total_invoice_cost)
        business_id = business_id or item.business_id

        if qty <= 0:
            logger.warning("Ignoring receipt of %s %s for item %s", qty, item.storage_unit, item.id)
            return self.effective_cost(business_id, item)

        factor = get_conversion_factor(item.storage_unit, item.unit)
        received_cost = total / qty / factor
        received_serving_qty = qty * factor

        if item.is_shared:
            if business_id is None:
                raise ValidationError("A business is required to receive a shared item")
            price = self.business_price(business_id, item.id)
            if price is None:
                price = BusinessItemPrice(business_id=business_id, item_id=item.id, cost_per_unit=item.cost_per_unit)
                self.db.add(price)
            old_cost = to_decimal(price.cost_per_unit)
            existing_qty = self._business_stock_in_serving_units(business_id, item)
            new_cost = calculate_weighted_average_cost(existing_qty, old_cost, received_serving_qty, received_cost)
            price.cost_per_unit = new_cost
        else:
            old_cost = to_decimal(item.cost_per_unit)
            existing_qty = max(to_decimal(item.total_stock_quantity), ZERO)
            new_cost = calculate_weighted_average_cost(existing_qty, old_cost, received_serving_qty, received_cost)
            new_total_qty = existing_qty + received_serving_qty
            item.cost_per_unit = new_cost
            item.total_stock_quantity = new_total_qty
            item.total_stock_value = (new_total_qty * new_cost).quantize(VALUE_QUANTUM, rounding=ROUND_HALF_UP)

        item.last_purchase_cost = round_cost(received_cost)
        item.last_purchase_date = utc_now()
        self.db.flush()

        logger.info(
            "WAC for item %s: %s -> %s (received %s %s at %s per %s)",
            item.id, old_cost, new_cost, qty, item.storage_unit, round_cost(received_cost), item.unit,
        )

        if new_cost != old_cost:
            self.bus.publish(self.db, ItemCostChanged(business_id, item.id, old_cost, new_cost))

        return new_cost

    def record_stock_change(self, item: Item, delta_storage_units, business_id: UUID = None):
        """
        Keep the denormalized totals of a business-owned item in step with
        non-purchase movements. The totals follow the owner's stock only, so
        a transfer into another business counts as stock leaving the owner.
        """
        if item.is_shared:
            return
        if business_id is not None and business_id != item.business_id:
            return
        delta = convert_units(delta_storage_units, item.storage_unit, item.unit)
        new_qty = max(to_decimal(item.total_stock_quantity) + delta, ZERO)
        item.total_stock_quantity = new_qty
        item.total_stock_value = (new_qty * to_decimal(item.cost_per_unit)).quantize(VALUE_QUANTUM, rounding=ROUND_HALF_UP)

    def set_item_cost(self, item: Item, new_cost, business_id: UUID = None) -> Decimal:
        """Directly set the default cost of an item (manual price edit)"""
        new_cost = round_cost(new_cost)
        if new_cost < 0:
            raise ValidationError("Cost per unit cannot be negative")
        old_cost = to_decimal(item.cost_per_unit)
        item.cost_per_unit = new_cost
        item.total_stock_value = (to_decimal(item.total_stock_quantity) * new_cost).quantize(VALUE_QUANTUM, rounding=ROUND_HALF_UP)
        self.db.flush()
        if new_cost != old_cost:
            self.bus.publish(self.db, ItemCostChanged(business_id or item.business_id, item.id, old_cost, new_cost))
        return new_cost

    # ------------------------------------------------------------------
    # Derived costs
    # ------------------------------------------------------------------

    def composite_unit_cost(self, business_id: Optional[UUID], composite: Item) -> Decimal:
        """Batch cost of the recipe divided by the batch size, per serving unit"""
        batch_quantity = to_decimal(composite.batch_quantity)
        if composite.batch_unit and composite.batch_unit != composite.unit:
            batch_quantity = convert_units(batch_quantity, composite.batch_unit, composite.unit)
        if batch_quantity <= 0:
            return ZERO

        batch_cost = ZERO
        for component in composite.components:
            batch_cost += to_decimal(component.quantity) * self.effective_cost(business_id, component.component_item)

        return round_cost(batch_cost / batch_quantity)

    def _ingredients_cost(self, business_id: UUID, ingredients: List[ProductIngredient]) -> Decimal:
        total = ZERO
        for ingredient in ingredients:
            if ingredient.item is None:
                continue
            total += to_decimal(ingredient.quantity) * self.effective_cost(business_id, ingredient.item)
        return total

    def recalculate_product_cost(self, product: Product) -> Decimal:
        """
        Non-variant products cost the sum of their ingredients; variant
        products cost their cheapest non-zero variant. A recipe that sums to
        zero leaves the previously stored cost in place.
        """
        base_cost = self._ingredients_cost(
            product.business_id, [i for i in product.ingredients if i.variant_id is None]
        )

        if product.has_variants and product.variants:
            variant_costs = []
            for variant in product.variants:
                cost = self._ingredients_cost(
                    product.business_id, [i for i in product.ingredients if i.variant_id == variant.id]
                )
                if cost > 0:
                    variant.total_cost = round_cost(cost)
                if to_decimal(variant.total_cost) > 0:
                    variant_costs.append(to_decimal(variant.total_cost))
            if variant_costs:
                product.total_cost = min(variant_costs)
        elif base_cost > 0:
            product.total_cost = round_cost(base_cost)

        return to_decimal(product.total_cost)

    # ------------------------------------------------------------------
    # Cascade
    # ------------------------------------------------------------------

    def cascade_item_cost_update(self, business_id: Optional[UUID], item_id: UUID) -> dict:
        """
        Push a new item cost into every composite item and product that
        consumes it. Composites cannot contain composites, so one level of
        composites plus the products above them covers the whole graph.
        """
        affected: Set[UUID] = {item_id}
        composites_updated = 0

        composite_query = (
            self.db.query(Item)
            .join(CompositeItemComponent, CompositeItemComponent.composite_item_id == Item.id)
            .filter(CompositeItemComponent.component_item_id == item_id)
        )
        if business_id is not None:
            composite_query = composite_query.filter(Item.business_id == business_id)

        for composite in composite_query.all():
            new_cost = self.composite_unit_cost(composite.business_id, composite)
            if new_cost != to_decimal(composite.cost_per_unit):
                composite.cost_per_unit = new_cost
                composite.total_stock_value = (
                    to_decimal(composite.total_stock_quantity) * new_cost
                ).quantize(VALUE_QUANTUM, rounding=ROUND_HALF_UP)
                composites_updated += 1
            affected.add(composite.id)

        product_query = self.db.query(Product).filter(
            Product.id.in_(
                self.db.query(ProductIngredient.product_id).filter(ProductIngredient.item_id.in_(affected))
            )
        )
        if business_id is not None:
            product_query = product_query.filter(Product.business_id == business_id)

        products = product_query.all()
        for product in products:
            self.recalculate_product_cost(product)

        self.db.flush()
        logger.info(
            "Cost cascade for item %s: %d composite(s), %d product(s) updated",
            item_id, composites_updated, len(products),
        )
        return {"composites_updated": composites_updated, "products_updated": len(products)}


def _on_item_cost_changed(db: Session, event: ItemCostChanged):
    CostLedger(db).cascade_item_cost_update(event.business_id, event.item_id)


event_bus.subscribe(ItemCostChanged, _on_item_cost_changed)
