"""
Batch production of composite items.

Producing N batches of a composite consumes N times its recipe from stock and
adds N times the batch yield of the composite itself, valued at the
composite's current unit cost.
"""
import logging
from decimal import Decimal, ROUND_HALF_UP
from typing import List
from uuid import UUID

from sqlalchemy.orm import Session

from app.exceptions import NotFoundError, ValidationError
from app.models.business import Branch
from app.models.enums import MovementType, ReferenceType
from app.models.item import Item
from app.models.production import Production, ProductionConsumedItem
from app.schemas.production import ProductionCreate
from app.services.cost_ledger import CostLedger, round_cost
from app.services.items import ItemService
from app.services.stock_ledger import StockLedger, StockContext
from app.utils.document_numbers import PRODUCTION_PREFIX, generate_document_number
from app.utils.timezone import utc_now
from app.utils.unit_conversion import (
    convert_units,
    get_conversion_factor,
    serving_to_storage,
    storage_to_serving,
    to_decimal,
)

logger = logging.getLogger(__name__)

VALUE_QUANTUM = Decimal("0.0001")


class ProductionService:
    def __init__(self, db: Session):
        self.db = db
        self.items = ItemService(db)
        self.cost_ledger = CostLedger(db)
        self.stock = StockLedger(db, self.cost_ledger)

    def _composite(self, business_id: UUID, item_id: UUID) -> Item:
        item = self.items.get_item(business_id, item_id)
        if not item.is_composite:
            raise ValidationError(f"'{item.name}' is not a composite item")
        if not item.components:
            raise ValidationError(f"'{item.name}' has no components")
        return item

    def _check_branch(self, business_id: UUID, branch_id: UUID):
        if branch_id is None:
            return
        branch = (
            self.db.query(Branch)
            .filter(Branch.id == branch_id, Branch.business_id == business_id)
            .first()
        )
        if branch is None:
            raise NotFoundError("Branch not found")

    def _requirements(self, business_id: UUID, branch_id: UUID, composite: Item, batch_count: Decimal) -> List[dict]:
        rows = []
        for component in composite.components:
            item = component.component_item
            required = to_decimal(component.quantity) * batch_count
            available = storage_to_serving(
                self.stock.available(business_id, item.id, branch_id), item.storage_unit, item.unit
            )
            rows.append({
                "item": item,
                "item_id": item.id,
                "item_name": item.name,
                "unit": item.unit,
                "required_quantity": required,
                "available_quantity": available,
                "sufficient": available >= required,
            })
        return rows

    def check_availability(self, business_id: UUID, branch_id: UUID, composite_item_id: UUID, batch_count=1) -> dict:
        batch_count = to_decimal(batch_count)
        if batch_count <= 0:
            raise ValidationError("Batch count must be greater than zero")
        self._check_branch(business_id, branch_id)
        composite = self._composite(business_id, composite_item_id)
        rows = self._requirements(business_id, branch_id, composite, batch_count)
        return {
            "composite_item_id": composite.id,
            "batch_count": batch_count,
            "can_produce": all(row["sufficient"] for row in rows),
            "components": [{k: v for k, v in row.items() if k != "item"} for row in rows],
        }

    def produce(self, business_id: UUID, data: ProductionCreate, user_id: UUID = None) -> Production:
        batch_count = to_decimal(data.batch_count)
        if batch_count <= 0:
            raise ValidationError("Batch count must be greater than zero")
        self._check_branch(business_id, data.branch_id)
        composite = self._composite(business_id, data.composite_item_id)

        rows = self._requirements(business_id, data.branch_id, composite, batch_count)
        short = [row for row in rows if not row["sufficient"]]
        if short:
            details = ", ".join(
                f"{row['item_name']} (need {row['required_quantity']} {row['unit']}, have {row['available_quantity']})"
                for row in short
            )
            raise ValidationError(f"Insufficient stock: {details}", code="insufficient_stock")

        batch_unit = composite.batch_unit or composite.unit
        produced_serving = convert_units(to_decimal(composite.batch_quantity) * batch_count, batch_unit, composite.unit)
        produced_storage = serving_to_storage(produced_serving, composite.unit, composite.storage_unit)
        output_cost = self.cost_ledger.composite_unit_cost(business_id, composite)

        production = Production(
            business_id=business_id,
            branch_id=data.branch_id,
            production_number=generate_document_number(
                self.db, Production, Production.production_number, business_id, PRODUCTION_PREFIX
            ),
            composite_item_id=composite.id,
            batch_count=batch_count,
            produced_quantity=produced_storage,
            unit_cost=round_cost(output_cost),
            notes=data.notes,
            created_by=user_id,
            produced_at=utc_now(),
        )
        self.db.add(production)
        self.db.flush()

        total_cost = Decimal("0")
        for row in rows:
            item = row["item"]
            unit_cost = self.cost_ledger.effective_cost(business_id, item)
            storage_quantity = serving_to_storage(row["required_quantity"], item.unit, item.storage_unit)
            line_cost = (row["required_quantity"] * unit_cost).quantize(VALUE_QUANTUM, rounding=ROUND_HALF_UP)
            total_cost += line_cost

            self.stock.adjust(
                business_id,
                item.id,
                -storage_quantity,
                MovementType.PRODUCTION_CONSUME,
                branch_id=data.branch_id,
                context=StockContext(
                    reference_type=ReferenceType.PRODUCTION.value,
                    reference_id=str(production.id),
                    unit_cost=unit_cost * get_conversion_factor(item.storage_unit, item.unit),
                    notes=f"Production {production.production_number}",
                    user_id=user_id,
                ),
            )
            production.consumed_items.append(ProductionConsumedItem(
                item_id=item.id,
                quantity=row["required_quantity"],
                storage_quantity=storage_quantity,
                unit_cost=unit_cost,
                total_cost=line_cost,
            ))

        self.stock.adjust(
            business_id,
            composite.id,
            produced_storage,
            MovementType.PRODUCTION_OUTPUT,
            branch_id=data.branch_id,
            context=StockContext(
                reference_type=ReferenceType.PRODUCTION.value,
                reference_id=str(production.id),
                unit_cost=output_cost * get_conversion_factor(composite.storage_unit, composite.unit),
                notes=f"Production {production.production_number}",
                user_id=user_id,
            ),
        )

        production.total_cost = total_cost
        self.db.flush()

        logger.info(
            "Production %s: %s x%s -> %s %s",
            production.production_number, composite.name, batch_count, produced_storage, composite.storage_unit,
        )
        return production

    def get(self, business_id: UUID, production_id: UUID) -> Production:
        production = (
            self.db.query(Production)
            .filter(Production.id == production_id, Production.business_id == business_id)
            .first()
        )
        if production is None:
            raise NotFoundError("Production not found")
        return production

    def list_productions(self, business_id: UUID, composite_item_id: UUID = None, branch_id: UUID = None) -> List[Production]:
        query = self.db.query(Production).filter(Production.business_id == business_id)
        if composite_item_id:
            query = query.filter(Production.composite_item_id == composite_item_id)
        if branch_id:
            query = query.filter(Production.branch_id == branch_id)
        return query.order_by(Production.created_at.desc()).all()
