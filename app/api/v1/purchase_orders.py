from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import List, Optional
from uuid import UUID

from app.database import get_db
from app.dependencies import get_current_user, require_role, get_business_context
from app.schemas.purchase_order import (
    PurchaseOrderCreate,
    PurchaseOrderUpdate,
    PurchaseOrderCount,
    ReceivePurchaseOrder,
    CancelPurchaseOrder,
    PurchaseOrderResponse,
    PurchaseOrderActivityResponse,
)
from app.services.purchase_orders import PurchaseOrderService

router = APIRouter()


@router.get("/", response_model=List[PurchaseOrderResponse])
def get_all_purchase_orders(
    status: Optional[str] = Query(None, description="Filter by status"),
    vendor_id: Optional[UUID] = Query(None, description="Filter by vendor"),
    branch_id: Optional[UUID] = Query(None, description="Filter by branch"),
    business_id: UUID = Depends(get_business_context),
    db: Session = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    """Get all purchase orders"""
    return PurchaseOrderService(db).list_orders(business_id, status, vendor_id, branch_id)


@router.get("/{po_id}", response_model=PurchaseOrderResponse)
def get_purchase_order_by_id(
    po_id: UUID,
    business_id: UUID = Depends(get_business_context),
    db: Session = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    return PurchaseOrderService(db).get(business_id, po_id)


@router.get("/{po_id}/activity", response_model=List[PurchaseOrderActivityResponse])
def get_purchase_order_activity(
    po_id: UUID,
    business_id: UUID = Depends(get_business_context),
    db: Session = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    """Audit trail of every change made to the purchase order"""
    return PurchaseOrderService(db).activity(business_id, po_id)


@router.post("/", response_model=PurchaseOrderResponse, status_code=status.HTTP_201_CREATED)
def create_purchase_order(
    data: PurchaseOrderCreate,
    business_id: UUID = Depends(get_business_context),
    db: Session = Depends(get_db),
    current_user: dict = Depends(require_role("OWNER", "ADMIN", "MANAGER"))
):
    po = PurchaseOrderService(db).create(business_id, data, current_user["user_id"])
    db.commit()
    db.refresh(po)
    return po


@router.put("/{po_id}", response_model=PurchaseOrderResponse)
def update_purchase_order(
    po_id: UUID,
    data: PurchaseOrderUpdate,
    business_id: UUID = Depends(get_business_context),
    db: Session = Depends(get_db),
    current_user: dict = Depends(require_role("OWNER", "ADMIN", "MANAGER"))
):
    """Only pending purchase orders can be edited"""
    po = PurchaseOrderService(db).update(business_id, po_id, data, current_user["user_id"])
    db.commit()
    db.refresh(po)
    return po


@router.patch("/{po_id}/count", response_model=PurchaseOrderResponse)
def count_purchase_order(
    po_id: UUID,
    data: PurchaseOrderCount,
    business_id: UUID = Depends(get_business_context),
    db: Session = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    """
    Record counted quantities and scanned barcodes for every line
    Short deliveries need a variance reason
    """
    po = PurchaseOrderService(db).count(business_id, po_id, data.lines, current_user["user_id"])
    db.commit()
    db.refresh(po)
    return po


@router.patch("/{po_id}/receive", response_model=PurchaseOrderResponse)
def receive_purchase_order(
    po_id: UUID,
    data: ReceivePurchaseOrder,
    business_id: UUID = Depends(get_business_context),
    db: Session = Depends(get_db),
    current_user: dict = Depends(require_role("OWNER", "ADMIN", "MANAGER"))
):
    """
    Receive purchase order against its invoice
    Updates weighted average costs and inventory stock
    """
    po = PurchaseOrderService(db).receive(
        business_id, po_id, data.invoice_image_url, data.lines, current_user["user_id"]
    )
    db.commit()
    db.refresh(po)
    return po


@router.patch("/{po_id}/cancel", response_model=PurchaseOrderResponse)
def cancel_purchase_order(
    po_id: UUID,
    data: CancelPurchaseOrder,
    business_id: UUID = Depends(get_business_context),
    db: Session = Depends(get_db),
    current_user: dict = Depends(require_role("OWNER", "ADMIN", "MANAGER"))
):
    po = PurchaseOrderService(db).cancel(business_id, po_id, data.reason, current_user["user_id"])
    db.commit()
    db.refresh(po)
    return po
