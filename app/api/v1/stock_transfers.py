from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import List, Optional
from uuid import UUID

from app.database import get_db
from app.dependencies import get_current_user, require_role, get_business_context
from app.schemas.stock_transfer import (
    StockTransferCreate,
    ReceiveStockTransfer,
    StockTransferResponse,
)
from app.services.transfers import TransferService

router = APIRouter()


@router.get("/", response_model=List[StockTransferResponse])
def get_all_stock_transfers(
    status: Optional[str] = Query(None, description="Filter by status"),
    branch_id: Optional[UUID] = Query(None, description="Filter by source or destination branch"),
    business_id: UUID = Depends(get_business_context),
    db: Session = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    """Get transfers sent or received by this business"""
    return TransferService(db).list_transfers(business_id, status, branch_id)


@router.get("/{transfer_id}", response_model=StockTransferResponse)
def get_stock_transfer_by_id(
    transfer_id: UUID,
    business_id: UUID = Depends(get_business_context),
    db: Session = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    return TransferService(db).get(business_id, transfer_id)


@router.post("/", response_model=StockTransferResponse, status_code=status.HTTP_201_CREATED)
def create_stock_transfer(
    data: StockTransferCreate,
    business_id: UUID = Depends(get_business_context),
    db: Session = Depends(get_db),
    current_user: dict = Depends(require_role("OWNER", "ADMIN", "MANAGER"))
):
    """
    Create a pending transfer
    Stock does not move until the destination receives it
    """
    transfer = TransferService(db).create(business_id, data, current_user["user_id"])
    db.commit()
    db.refresh(transfer)
    return transfer


@router.patch("/{transfer_id}/receive", response_model=StockTransferResponse)
def receive_stock_transfer(
    transfer_id: UUID,
    data: ReceiveStockTransfer,
    business_id: UUID = Depends(get_business_context),
    db: Session = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    """
    Receive transfer at destination
    Lines left out are received in full
    """
    transfer = TransferService(db).receive(business_id, transfer_id, data.lines, current_user["user_id"])
    db.commit()
    db.refresh(transfer)
    return transfer


@router.patch("/{transfer_id}/cancel", response_model=StockTransferResponse)
def cancel_stock_transfer(
    transfer_id: UUID,
    business_id: UUID = Depends(get_business_context),
    db: Session = Depends(get_db),
    current_user: dict = Depends(require_role("OWNER", "ADMIN", "MANAGER"))
):
    transfer = TransferService(db).cancel(business_id, transfer_id, current_user["user_id"])
    db.commit()
    db.refresh(transfer)
    return transfer
