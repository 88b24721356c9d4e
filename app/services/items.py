import logging
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from app.exceptions import ConflictError, NotFoundError, ValidationError
from app.models.enums import ItemStatus
from app.models.item import Item, BusinessItemPrice, CompositeItemComponent, ItemBarcode
from app.schemas.item import (
    ItemCreate,
    ItemUpdate,
    CompositeItemCreate,
    CompositeComponentInput,
)
from app.services.cost_ledger import CostLedger, round_cost
from app.services.events import ItemCostChanged
from app.utils.unit_conversion import (
    convert_units,
    default_storage_unit,
    to_decimal,
    validate_unit_pairing,
)

logger = logging.getLogger(__name__)


class ItemService:
    def __init__(self, db: Session):
        self.db = db
        self.cost_ledger = CostLedger(db)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def _visible(self, business_id: UUID):
        return self.db.query(Item).filter(or_(Item.business_id == business_id, Item.business_id.is_(None)))

    def list_items(
        self,
        business_id: UUID,
        search: str = None,
        category: str = None,
        is_composite: bool = None,
        include_inactive: bool = False,
    ) -> List[Item]:
        query = self._visible(business_id)
        if search:
            query = query.filter(Item.name.ilike(f"%{search}%"))
        if category:
            query = query.filter(Item.category == category)
        if is_composite is not None:
            query = query.filter(Item.is_composite == is_composite)
        if not include_inactive:
            query = query.filter(Item.status == ItemStatus.ACTIVE.value)
        return query.order_by(Item.name).all()

    def get_item(self, business_id: UUID, item_id: UUID) -> Item:
        item = self._visible(business_id).filter(Item.id == item_id).first()
        if item is None:
            raise NotFoundError("Item not found")
        return item

    def get_owned_item(self, business_id: UUID, item_id: UUID) -> Item:
        item = self.get_item(business_id, item_id)
        if item.is_shared:
            raise ValidationError("Shared items cannot be edited; set a business price instead")
        return item

    # ------------------------------------------------------------------
    # Validation helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _resolve_units(unit: str, storage_unit: Optional[str]) -> str:
        storage_unit = storage_unit or default_storage_unit(unit)
        message = validate_unit_pairing(storage_unit, unit)
        if message:
            raise ValidationError(message)
        return storage_unit

    def _ensure_unique(self, business_id: UUID, name: str = None, sku: str = None, exclude_id: UUID = None):
        if name:
            query = self.db.query(Item).filter(
                Item.business_id == business_id,
                func.lower(Item.name) == name.strip().lower(),
            )
            if exclude_id:
                query = query.filter(Item.id != exclude_id)
            if query.first():
                raise ConflictError(f"An item named '{name}' already exists")
        if sku:
            query = self.db.query(Item).filter(Item.business_id == business_id, Item.sku == sku)
            if exclude_id:
                query = query.filter(Item.id != exclude_id)
            if query.first():
                raise ConflictError(f"SKU '{sku}' is already used by another item")

    def _build_components(self, business_id: UUID, composite: Item, components: List[CompositeComponentInput]) -> List[CompositeItemComponent]:
        if not components:
            raise ValidationError("A composite item needs at least one component")

        seen = set()
        rows = []
        for component in components:
            if component.item_id in seen:
                raise ValidationError("Each component can only appear once")
            seen.add(component.item_id)

            if to_decimal(component.quantity) <= 0:
                raise ValidationError("Component quantity must be greater than zero")
            if composite.id is not None and component.item_id == composite.id:
                raise ValidationError("A composite item cannot contain itself")

            item = self.get_item(business_id, component.item_id)
            if item.is_composite:
                raise ValidationError(f"'{item.name}' is a composite item; composite items cannot contain other composite items")

            rows.append(CompositeItemComponent(component_item=item, quantity=to_decimal(component.quantity)))
        return rows

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def create_item(self, business_id: UUID, data: ItemCreate) -> Item:
        storage_unit = self._resolve_units(data.unit, data.storage_unit)
        if to_decimal(data.cost_per_unit) < 0:
            raise ValidationError("Cost per unit cannot be negative")
        self._ensure_unique(business_id, data.name, data.sku)

        item = Item(
            business_id=business_id,
            name=data.name.strip(),
            sku=data.sku,
            category=data.category,
            unit=data.unit,
            storage_unit=storage_unit,
            cost_per_unit=round_cost(data.cost_per_unit),
            total_stock_quantity=Decimal("0"),
            total_stock_value=Decimal("0"),
            is_composite=False,
            status=ItemStatus.ACTIVE.value,
        )
        self.db.add(item)
        self.db.flush()
        logger.info("Created item %s (%s) for business %s", item.id, item.name, business_id)
        return item

    def update_item(self, business_id: UUID, item_id: UUID, data: ItemUpdate) -> Item:
        item = self.get_owned_item(business_id, item_id)
        update_data = data.model_dump(exclude_unset=True)

        if "unit" in update_data or "storage_unit" in update_data:
            unit = update_data.get("unit") or item.unit
            storage = update_data.get("storage_unit") or item.storage_unit
            message = validate_unit_pairing(storage, unit)
            if message:
                raise ValidationError(message)
            item.unit = unit
            item.storage_unit = storage

        if update_data.get("status") and update_data["status"] not in {s.value for s in ItemStatus}:
            raise ValidationError(f"Invalid status: {update_data['status']}")

        self._ensure_unique(business_id, update_data.get("name"), update_data.get("sku"), exclude_id=item.id)

        for field in ("name", "sku", "category", "status"):
            if field in update_data and update_data[field] is not None:
                setattr(item, field, update_data[field])

        if update_data.get("cost_per_unit") is not None:
            if item.is_composite:
                raise ValidationError("Composite item cost is derived from its components")
            self.cost_ledger.set_item_cost(item, update_data["cost_per_unit"], business_id)

        self.db.flush()
        return item

    def create_composite_item(self, business_id: UUID, data: CompositeItemCreate) -> Item:
        storage_unit = self._resolve_units(data.unit, data.storage_unit)
        batch_unit = data.batch_unit or data.unit
        if to_decimal(data.batch_quantity) <= 0:
            raise ValidationError("Batch quantity must be greater than zero")
        # raises IncompatibleUnitsError for e.g. a piece batch of a gram item
        convert_units(data.batch_quantity, batch_unit, data.unit)
        self._ensure_unique(business_id, data.name, data.sku)

        item = Item(
            business_id=business_id,
            name=data.name.strip(),
            sku=data.sku,
            category=data.category,
            unit=data.unit,
            storage_unit=storage_unit,
            cost_per_unit=Decimal("0"),
            total_stock_quantity=Decimal("0"),
            total_stock_value=Decimal("0"),
            is_composite=True,
            batch_quantity=to_decimal(data.batch_quantity),
            batch_unit=batch_unit,
            status=ItemStatus.ACTIVE.value,
        )
        item.components = self._build_components(business_id, item, data.components)
        self.db.add(item)
        self.db.flush()

        item.cost_per_unit = self.cost_ledger.composite_unit_cost(business_id, item)
        self.db.flush()
        logger.info("Created composite item %s with %d component(s), cost %s", item.id, len(item.components), item.cost_per_unit)
        return item

    def update_components(self, business_id: UUID, item_id: UUID, components: List[CompositeComponentInput],
                          batch_quantity=None) -> Item:
        item = self.get_owned_item(business_id, item_id)
        if not item.is_composite:
            raise ValidationError("Only composite items have components")

        if batch_quantity is not None:
            if to_decimal(batch_quantity) <= 0:
                raise ValidationError("Batch quantity must be greater than zero")
            item.batch_quantity = to_decimal(batch_quantity)

        new_rows = self._build_components(business_id, item, components)
        item.components.clear()
        self.db.flush()
        item.components.extend(new_rows)
        self.db.flush()

        old_cost = to_decimal(item.cost_per_unit)
        new_cost = self.cost_ledger.composite_unit_cost(business_id, item)
        item.cost_per_unit = new_cost
        self.db.flush()

        if new_cost != old_cost:
            self.cost_ledger.bus.publish(self.db, ItemCostChanged(business_id, item.id, old_cost, new_cost))
        return item

    def set_business_price(self, business_id: UUID, item_id: UUID, cost_per_unit) -> BusinessItemPrice:
        item = self.get_item(business_id, item_id)
        if not item.is_shared:
            raise ValidationError("Business prices only apply to shared items")
        cost = to_decimal(cost_per_unit)
        if cost < 0:
            raise ValidationError("Cost per unit cannot be negative")

        price = self.cost_ledger.business_price(business_id, item.id)
        old_cost = to_decimal(price.cost_per_unit) if price else to_decimal(item.cost_per_unit)
        if price is None:
            price = BusinessItemPrice(business_id=business_id, item_id=item.id)
            self.db.add(price)
        price.cost_per_unit = round_cost(cost)
        self.db.flush()

        if price.cost_per_unit != old_cost:
            self.cost_ledger.bus.publish(self.db, ItemCostChanged(business_id, item.id, old_cost, price.cost_per_unit))
        return price

    # ------------------------------------------------------------------
    # Barcodes
    # ------------------------------------------------------------------

    def find_barcode(self, business_id: UUID, barcode: str) -> Optional[ItemBarcode]:
        return (
            self.db.query(ItemBarcode)
            .filter(ItemBarcode.business_id == business_id, ItemBarcode.barcode == barcode.strip())
            .first()
        )

    def ensure_barcode_available(self, business_id: UUID, item_id: UUID, barcode: str):
        existing = self.find_barcode(business_id, barcode)
        if existing is not None and existing.item_id != item_id:
            raise ConflictError(f"Barcode {barcode} is already assigned to another item")

    def register_barcode(self, business_id: UUID, item_id: UUID, barcode: str, user_id: UUID = None) -> ItemBarcode:
        barcode = (barcode or "").strip()
        if not barcode:
            raise ValidationError("Barcode cannot be empty")
        self.get_item(business_id, item_id)

        existing = self.find_barcode(business_id, barcode)
        if existing is not None:
            if existing.item_id != item_id:
                raise ConflictError(f"Barcode {barcode} is already assigned to another item")
            return existing

        row = ItemBarcode(business_id=business_id, item_id=item_id, barcode=barcode, created_by=user_id)
        self.db.add(row)
        self.db.flush()
        return row

    def get_by_barcode(self, business_id: UUID, barcode: str) -> Item:
        row = self.find_barcode(business_id, barcode)
        if row is None:
            raise NotFoundError(f"No item with barcode {barcode}")
        return self.get_item(business_id, row.item_id)

    def list_barcodes(self, business_id: UUID, item_id: UUID) -> List[ItemBarcode]:
        self.get_item(business_id, item_id)
        return (
            self.db.query(ItemBarcode)
            .filter(ItemBarcode.business_id == business_id, ItemBarcode.item_id == item_id)
            .order_by(ItemBarcode.created_at)
            .all()
        )
