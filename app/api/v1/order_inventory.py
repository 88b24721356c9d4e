from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import List, Optional
from uuid import UUID

from app.database import get_db
from app.dependencies import get_current_user, require_role, get_business_context
from app.schemas.order_inventory import (
    OrderInventoryRequest,
    RequiredIngredientResponse,
    InventoryCheckResponse,
    CancelledOrderItemResponse,
    WasteDecisionRequest,
    WasteDecisionResult,
    AutoExpireResult,
)
from app.services.order_inventory import OrderInventoryService

router = APIRouter()


@router.post("/check", response_model=InventoryCheckResponse)
def check_order_inventory(
    data: OrderInventoryRequest,
    business_id: UUID = Depends(get_business_context),
    db: Session = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    """Can the branch cover every ingredient of the order?"""
    shortages = OrderInventoryService(db).check_availability(business_id, data.branch_id, data.lines)
    return {"can_fulfil": not shortages, "shortages": shortages}


@router.post("/reserve", response_model=List[RequiredIngredientResponse])
def reserve_order_inventory(
    data: OrderInventoryRequest,
    business_id: UUID = Depends(get_business_context),
    db: Session = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    ingredients = OrderInventoryService(db).reserve_for_order(
        business_id, data.branch_id, data.order_id, data.lines, current_user["user_id"]
    )
    db.commit()
    return ingredients


@router.post("/consume", response_model=List[RequiredIngredientResponse])
def consume_order_inventory(
    data: OrderInventoryRequest,
    business_id: UUID = Depends(get_business_context),
    db: Session = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    """Order completed: reserved ingredients leave stock"""
    ingredients = OrderInventoryService(db).consume_for_order(
        business_id, data.branch_id, data.order_id, data.lines, current_user["user_id"]
    )
    db.commit()
    return ingredients


@router.post("/release", response_model=List[RequiredIngredientResponse])
def release_order_inventory(
    data: OrderInventoryRequest,
    business_id: UUID = Depends(get_business_context),
    db: Session = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    ingredients = OrderInventoryService(db).release_for_order(
        business_id, data.branch_id, data.order_id, data.lines, current_user["user_id"]
    )
    db.commit()
    return ingredients


@router.post("/cancel", response_model=List[CancelledOrderItemResponse])
def cancel_order_inventory(
    data: OrderInventoryRequest,
    business_id: UUID = Depends(get_business_context),
    db: Session = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    """
    Order cancelled: reservations are released and every ingredient
    waits for a waste or return decision
    """
    queued = OrderInventoryService(db).cancel_order(
        business_id, data.branch_id, data.order_id, data.lines, current_user["user_id"]
    )
    db.commit()
    for entry in queued:
        db.refresh(entry)
    return queued


@router.post("/waste", response_model=List[RequiredIngredientResponse])
def waste_order_inventory(
    data: OrderInventoryRequest,
    business_id: UUID = Depends(get_business_context),
    db: Session = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    ingredients = OrderInventoryService(db).waste_order_items(
        business_id, data.branch_id, data.order_id, data.lines, current_user["user_id"]
    )
    db.commit()
    return ingredients


@router.get("/cancelled-items", response_model=List[CancelledOrderItemResponse])
def get_pending_waste_decisions(
    branch_id: Optional[UUID] = Query(None, description="Filter by branch"),
    business_id: UUID = Depends(get_business_context),
    db: Session = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    """Cancelled items still waiting for a waste or return decision"""
    return OrderInventoryService(db).pending_decisions(business_id, branch_id)


@router.post("/cancelled-items/decisions", response_model=WasteDecisionResult)
def submit_waste_decisions(
    data: WasteDecisionRequest,
    business_id: UUID = Depends(get_business_context),
    db: Session = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    result = OrderInventoryService(db).process_waste_decisions(
        business_id, data.decisions, current_user["user_id"]
    )
    db.commit()
    return result


@router.post("/cancelled-items/auto-expire", response_model=AutoExpireResult)
def auto_expire_cancelled_items(
    business_id: UUID = Depends(get_business_context),
    db: Session = Depends(get_db),
    current_user: dict = Depends(require_role("OWNER", "ADMIN", "MANAGER"))
):
    """Mark undecided cancelled items past the expiry window as waste"""
    expired = OrderInventoryService(db).auto_expire_cancelled_items(business_id=business_id)
    db.commit()
    return {"expired": expired}
