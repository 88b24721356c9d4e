import logging
import uuid
from decimal import Decimal
from typing import List
from uuid import UUID

from sqlalchemy.orm import Session

from app.exceptions import NotFoundError
from app.models.product import Product, ProductVariant, ProductIngredient, ProductModifier
from app.schemas.product import ProductCreate
from app.services.cost_ledger import CostLedger
from app.services.items import ItemService

logger = logging.getLogger(__name__)


class ProductService:
    """Menu products whose recipes the resolver and the cost cascade read"""

    def __init__(self, db: Session):
        self.db = db
        self.items = ItemService(db)
        self.cost_ledger = CostLedger(db)

    def list_products(self, business_id: UUID) -> List[Product]:
        return (
            self.db.query(Product)
            .filter(Product.business_id == business_id)
            .order_by(Product.name)
            .all()
        )

    def get_product(self, business_id: UUID, product_id: UUID) -> Product:
        product = (
            self.db.query(Product)
            .filter(Product.id == product_id, Product.business_id == business_id)
            .first()
        )
        if product is None:
            raise NotFoundError("Product not found")
        return product

    def create_product(self, business_id: UUID, data: ProductCreate) -> Product:
        product = Product(
            business_id=business_id,
            name=data.name.strip(),
            category=data.category,
            price=data.price,
            total_cost=Decimal("0"),
            has_variants=bool(data.variants),
            is_active=True,
        )

        for ingredient in data.ingredients:
            product.ingredients.append(ProductIngredient(
                item=self.items.get_item(business_id, ingredient.item_id),
                quantity=ingredient.quantity,
                removable=ingredient.removable,
            ))

        for index, variant_data in enumerate(data.variants):
            variant = ProductVariant(
                id=uuid.uuid4(),
                name=variant_data.name.strip(),
                price_adjustment=variant_data.price_adjustment,
                sort_order=variant_data.sort_order if variant_data.sort_order is not None else index,
                total_cost=Decimal("0"),
            )
            product.variants.append(variant)
            for ingredient in variant_data.ingredients:
                product.ingredients.append(ProductIngredient(
                    variant=variant,
                    item=self.items.get_item(business_id, ingredient.item_id),
                    quantity=ingredient.quantity,
                    removable=ingredient.removable,
                ))

        for modifier in data.modifiers:
            product.modifiers.append(ProductModifier(
                name=modifier.name.strip(),
                item=self.items.get_item(business_id, modifier.item_id) if modifier.item_id else None,
                quantity=modifier.quantity,
                extra_price=modifier.extra_price,
            ))

        self.db.add(product)
        self.db.flush()

        self.cost_ledger.recalculate_product_cost(product)
        self.db.flush()
        logger.info("Created product %s (%s), cost %s", product.id, product.name, product.total_cost)
        return product
