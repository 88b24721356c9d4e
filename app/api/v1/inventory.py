from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import List, Optional
from uuid import UUID

from app.database import get_db
from app.dependencies import get_current_user, require_role, get_business_context
from app.schemas.inventory import (
    InventoryStockResponse,
    InventoryMovementResponse,
    AvailabilityResponse,
    StockLimitsUpdate,
    StockAddition,
    StockDeduction,
)
from app.services.items import ItemService
from app.services.stock_ledger import StockLedger, available_quantity, is_low_stock
from app.services.stock_transactions import StockTransactionService

router = APIRouter()


def _stock_response(stock) -> InventoryStockResponse:
    response = InventoryStockResponse.model_validate(stock)
    response.item_name = stock.item.name
    response.storage_unit = stock.item.storage_unit
    response.available_quantity = available_quantity(stock)
    response.is_low_stock = is_low_stock(stock)
    return response


@router.get("/stock", response_model=List[InventoryStockResponse])
def get_inventory_stock(
    branch_id: Optional[UUID] = Query(None, description="Filter by branch"),
    item_id: Optional[UUID] = Query(None, description="Filter by item"),
    low_stock_only: bool = Query(False, description="Show only low stock items"),
    business_id: UUID = Depends(get_business_context),
    db: Session = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    """Get inventory stock levels"""
    rows = StockLedger(db).get_stock_levels(business_id, branch_id, item_id, low_stock_only)
    return [_stock_response(row) for row in rows]


@router.get("/availability/{item_id}", response_model=AvailabilityResponse)
def get_item_availability(
    item_id: UUID,
    branch_id: Optional[UUID] = Query(None),
    business_id: UUID = Depends(get_business_context),
    db: Session = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    """On hand minus reserved and held, in the item's storage unit"""
    item = ItemService(db).get_item(business_id, item_id)
    return {
        "item_id": item.id,
        "branch_id": branch_id,
        "available_quantity": StockLedger(db).available(business_id, item.id, branch_id),
        "storage_unit": item.storage_unit,
    }


@router.put("/stock/{item_id}/limits", response_model=InventoryStockResponse)
def update_stock_limits(
    item_id: UUID,
    data: StockLimitsUpdate,
    business_id: UUID = Depends(get_business_context),
    db: Session = Depends(get_db),
    current_user: dict = Depends(require_role("OWNER", "ADMIN", "MANAGER"))
):
    """Set min / max stock levels used for low-stock alerts"""
    ItemService(db).get_item(business_id, item_id)
    stock = StockLedger(db).set_limits(
        business_id, item_id, data.branch_id, data.min_quantity, data.max_quantity
    )
    db.commit()
    db.refresh(stock)
    return _stock_response(stock)


@router.get("/movements", response_model=List[InventoryMovementResponse])
def get_inventory_movements(
    branch_id: Optional[UUID] = Query(None),
    item_id: Optional[UUID] = Query(None),
    movement_type: Optional[str] = Query(None),
    reference_type: Optional[str] = Query(None),
    reference_id: Optional[str] = Query(None),
    limit: int = Query(100, ge=1, le=1000),
    business_id: UUID = Depends(get_business_context),
    db: Session = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    """Get the stock movement history"""
    return StockLedger(db).list_movements(
        business_id, branch_id, item_id, movement_type, reference_type, reference_id, limit
    )


@router.post("/add", response_model=InventoryStockResponse, status_code=status.HTTP_201_CREATED)
def add_stock(
    data: StockAddition,
    business_id: UUID = Depends(get_business_context),
    db: Session = Depends(get_db),
    current_user: dict = Depends(require_role("OWNER", "ADMIN", "MANAGER"))
):
    stock = StockTransactionService(db).add_stock(
        business_id, data.item_id, data.quantity, data.notes, data.branch_id, current_user["user_id"]
    )
    db.commit()
    db.refresh(stock)
    return _stock_response(stock)


@router.post("/deduct", response_model=InventoryStockResponse, status_code=status.HTTP_201_CREATED)
def deduct_stock(
    data: StockDeduction,
    business_id: UUID = Depends(get_business_context),
    db: Session = Depends(get_db),
    current_user: dict = Depends(require_role("OWNER", "ADMIN", "MANAGER"))
):
    """Write off stock that can no longer be used"""
    stock = StockTransactionService(db).deduct_stock(
        business_id, data.item_id, data.quantity, data.reason, data.notes, data.branch_id, current_user["user_id"]
    )
    db.commit()
    db.refresh(stock)
    return _stock_response(stock)
