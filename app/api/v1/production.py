from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from app.database import get_db
from app.dependencies import get_current_user, require_role, get_business_context
from app.schemas.production import (
    ProductionCreate,
    ProductionAvailabilityResponse,
    ProductionResponse,
)
from app.services.production import ProductionService

router = APIRouter()


@router.get("/", response_model=List[ProductionResponse])
def get_all_productions(
    composite_item_id: Optional[UUID] = Query(None),
    branch_id: Optional[UUID] = Query(None),
    business_id: UUID = Depends(get_business_context),
    db: Session = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    return ProductionService(db).list_productions(business_id, composite_item_id, branch_id)


@router.get("/availability", response_model=ProductionAvailabilityResponse)
def check_production_availability(
    composite_item_id: UUID,
    batch_count: Decimal = Query(Decimal("1"), gt=0),
    branch_id: Optional[UUID] = Query(None),
    business_id: UUID = Depends(get_business_context),
    db: Session = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    """Component requirements for a number of batches against what is in stock"""
    return ProductionService(db).check_availability(business_id, branch_id, composite_item_id, batch_count)


@router.get("/{production_id}", response_model=ProductionResponse)
def get_production_by_id(
    production_id: UUID,
    business_id: UUID = Depends(get_business_context),
    db: Session = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    return ProductionService(db).get(business_id, production_id)


@router.post("/", response_model=ProductionResponse, status_code=status.HTTP_201_CREATED)
def produce_composite_item(
    data: ProductionCreate,
    business_id: UUID = Depends(get_business_context),
    db: Session = Depends(get_db),
    current_user: dict = Depends(require_role("OWNER", "ADMIN", "MANAGER"))
):
    """Consume components and add the produced batches to stock"""
    production = ProductionService(db).produce(business_id, data, current_user["user_id"])
    db.commit()
    db.refresh(production)
    return production
