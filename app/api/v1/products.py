from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from typing import List
from uuid import UUID

from app.database import get_db
from app.dependencies import get_current_user, require_role, get_business_context
from app.schemas.product import ProductCreate, ProductResponse
from app.services.products import ProductService

router = APIRouter()


@router.get("/", response_model=List[ProductResponse])
def get_all_products(
    business_id: UUID = Depends(get_business_context),
    db: Session = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    return ProductService(db).list_products(business_id)


@router.get("/{product_id}", response_model=ProductResponse)
def get_product_by_id(
    product_id: UUID,
    business_id: UUID = Depends(get_business_context),
    db: Session = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    return ProductService(db).get_product(business_id, product_id)


@router.post("/", response_model=ProductResponse, status_code=status.HTTP_201_CREATED)
def create_product(
    data: ProductCreate,
    business_id: UUID = Depends(get_business_context),
    db: Session = Depends(get_db),
    current_user: dict = Depends(require_role("OWNER", "ADMIN", "MANAGER"))
):
    """
    Create a product together with its recipe
    Total cost is calculated from the recipe
    """
    product = ProductService(db).create_product(business_id, data)
    db.commit()
    db.refresh(product)
    return product


@router.post("/{product_id}/recalculate-cost", response_model=ProductResponse)
def recalculate_product_cost(
    product_id: UUID,
    business_id: UUID = Depends(get_business_context),
    db: Session = Depends(get_db),
    current_user: dict = Depends(require_role("OWNER", "ADMIN", "MANAGER"))
):
    service = ProductService(db)
    product = service.get_product(business_id, product_id)
    service.cost_ledger.recalculate_product_cost(product)
    db.commit()
    db.refresh(product)
    return product
