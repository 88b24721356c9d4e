from sqlalchemy import Column, String, Boolean, ForeignKey, Numeric, Uuid
from sqlalchemy.orm import relationship
import uuid

from app.database import Base
from app.models.base import TimestampMixin


class Business(Base, TimestampMixin):
    __tablename__ = "businesses"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String(255), nullable=False)
    currency = Column(String(10), nullable=False, default="IDR")
    vat_enabled = Column(Boolean, nullable=False, default=False)
    tax_rate = Column(Numeric(5, 2), nullable=False, default=0)  # percent, e.g. 11.00
    is_active = Column(Boolean, nullable=False, default=True)

    # Relationships
    branches = relationship("Branch", back_populates="business", cascade="all, delete-orphan")


class Branch(Base, TimestampMixin):
    __tablename__ = "branches"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    business_id = Column(Uuid, ForeignKey('businesses.id', ondelete='CASCADE'), nullable=False)
    name = Column(String(255), nullable=False)
    code = Column(String(50))
    address = Column(String)
    is_active = Column(Boolean, nullable=False, default=True)

    # Relationships
    business = relationship("Business", back_populates="branches")
