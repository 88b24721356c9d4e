from sqlalchemy import Column, String, Boolean, ForeignKey, Integer, Numeric, Uuid
from sqlalchemy.orm import relationship
import uuid

from app.database import Base
from app.models.base import TimestampMixin


class Product(Base, TimestampMixin):
    __tablename__ = "products"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    business_id = Column(Uuid, ForeignKey('businesses.id', ondelete='CASCADE'), nullable=False)
    name = Column(String(255), nullable=False)
    category = Column(String(100))
    price = Column(Numeric(12, 2), nullable=False, default=0)
    total_cost = Column(Numeric(18, 8), nullable=False, default=0)
    has_variants = Column(Boolean, nullable=False, default=False)
    is_active = Column(Boolean, nullable=False, default=True)

    # Relationships
    variants = relationship(
        "ProductVariant",
        back_populates="product",
        cascade="all, delete-orphan",
        order_by="ProductVariant.sort_order",
    )
    ingredients = relationship("ProductIngredient", back_populates="product", cascade="all, delete-orphan")
    modifiers = relationship("ProductModifier", back_populates="product", cascade="all, delete-orphan")


class ProductVariant(Base, TimestampMixin):
    __tablename__ = "product_variants"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    product_id = Column(Uuid, ForeignKey('products.id', ondelete='CASCADE'), nullable=False)
    name = Column(String(255), nullable=False)
    price_adjustment = Column(Numeric(12, 2), nullable=False, default=0)
    total_cost = Column(Numeric(18, 8), nullable=False, default=0)
    sort_order = Column(Integer, nullable=False, default=0)

    # Relationships
    product = relationship("Product", back_populates="variants")


class ProductIngredient(Base):
    __tablename__ = "product_ingredients"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    product_id = Column(Uuid, ForeignKey('products.id', ondelete='CASCADE'), nullable=False)
    variant_id = Column(Uuid, ForeignKey('product_variants.id', ondelete='CASCADE'))  # NULL = product-level
    item_id = Column(Uuid, ForeignKey('items.id'), nullable=False)
    quantity = Column(Numeric(14, 4), nullable=False)  # item's serving unit
    removable = Column(Boolean, nullable=False, default=False)

    # Relationships
    product = relationship("Product", back_populates="ingredients")
    variant = relationship("ProductVariant")
    item = relationship("Item")


class ProductModifier(Base):
    __tablename__ = "product_modifiers"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    product_id = Column(Uuid, ForeignKey('products.id', ondelete='CASCADE'), nullable=False)
    item_id = Column(Uuid, ForeignKey('items.id'))
    name = Column(String(255), nullable=False)
    quantity = Column(Numeric(14, 4), nullable=False, default=1)  # per extra, item's serving unit
    extra_price = Column(Numeric(12, 2), nullable=False, default=0)

    # Relationships
    product = relationship("Product", back_populates="modifiers")
    item = relationship("Item")
