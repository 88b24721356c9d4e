from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import List, Optional
from uuid import UUID

from app.database import get_db
from app.dependencies import get_current_user, require_role, get_business_context
from app.schemas.inventory_count import (
    InventoryCountCreate,
    InventoryCountLineUpdate,
    InventoryCountItemResponse,
    InventoryCountResponse,
)
from app.services.inventory_counts import InventoryCountService

router = APIRouter()


@router.get("/", response_model=List[InventoryCountResponse])
def get_all_inventory_counts(
    status: Optional[str] = Query(None, description="Filter by status"),
    branch_id: Optional[UUID] = Query(None, description="Filter by branch"),
    business_id: UUID = Depends(get_business_context),
    db: Session = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    return InventoryCountService(db).list_counts(business_id, status, branch_id)


@router.get("/{count_id}", response_model=InventoryCountResponse)
def get_inventory_count_by_id(
    count_id: UUID,
    business_id: UUID = Depends(get_business_context),
    db: Session = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    return InventoryCountService(db).get(business_id, count_id)


@router.post("/", response_model=InventoryCountResponse, status_code=status.HTTP_201_CREATED)
def create_inventory_count(
    data: InventoryCountCreate,
    business_id: UUID = Depends(get_business_context),
    db: Session = Depends(get_db),
    current_user: dict = Depends(require_role("OWNER", "ADMIN", "MANAGER"))
):
    """Snapshot expected quantities for a full or partial stock take"""
    count = InventoryCountService(db).create(business_id, data, current_user["user_id"])
    db.commit()
    db.refresh(count)
    return count


@router.put("/{count_id}/items/{item_id}", response_model=InventoryCountItemResponse)
def update_inventory_count_line(
    count_id: UUID,
    item_id: UUID,
    data: InventoryCountLineUpdate,
    business_id: UUID = Depends(get_business_context),
    db: Session = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    line = InventoryCountService(db).update_line(
        business_id, count_id, item_id, data.counted_quantity, data.variance_reason, current_user["user_id"]
    )
    db.commit()
    db.refresh(line)
    return line


@router.patch("/{count_id}/complete", response_model=InventoryCountResponse)
def complete_inventory_count(
    count_id: UUID,
    business_id: UUID = Depends(get_business_context),
    db: Session = Depends(get_db),
    current_user: dict = Depends(require_role("OWNER", "ADMIN", "MANAGER"))
):
    """Apply every non-zero variance to stock as a count adjustment"""
    count = InventoryCountService(db).complete(business_id, count_id, current_user["user_id"])
    db.commit()
    db.refresh(count)
    return count


@router.patch("/{count_id}/cancel", response_model=InventoryCountResponse)
def cancel_inventory_count(
    count_id: UUID,
    business_id: UUID = Depends(get_business_context),
    db: Session = Depends(get_db),
    current_user: dict = Depends(require_role("OWNER", "ADMIN", "MANAGER"))
):
    count = InventoryCountService(db).cancel(business_id, count_id, current_user["user_id"])
    db.commit()
    db.refresh(count)
    return count
