from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import List, Optional
from uuid import UUID

from app.database import get_db
from app.dependencies import get_current_user, require_role, get_business_context
from app.schemas.item import (
    ItemCreate,
    ItemUpdate,
    ItemResponse,
    CompositeItemCreate,
    CompositeComponentsUpdate,
    BusinessPriceUpdate,
    BusinessPriceResponse,
    BarcodeCreate,
    BarcodeResponse,
)
from app.services.items import ItemService

router = APIRouter()


def _to_response(service: ItemService, business_id: UUID, item) -> ItemResponse:
    response = ItemResponse.model_validate(item)
    response.effective_cost = service.cost_ledger.effective_cost(business_id, item)
    return response


@router.get("/", response_model=List[ItemResponse])
def get_all_items(
    search: Optional[str] = Query(None, description="Search by name"),
    category: Optional[str] = Query(None, description="Filter by category"),
    is_composite: Optional[bool] = Query(None, description="Filter composite items"),
    include_inactive: bool = Query(False),
    business_id: UUID = Depends(get_business_context),
    db: Session = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    """Get business items and shared catalog items"""
    service = ItemService(db)
    items = service.list_items(business_id, search, category, is_composite, include_inactive)
    return [_to_response(service, business_id, item) for item in items]


@router.get("/barcode/{barcode}", response_model=ItemResponse)
def get_item_by_barcode(
    barcode: str,
    business_id: UUID = Depends(get_business_context),
    db: Session = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    service = ItemService(db)
    return _to_response(service, business_id, service.get_by_barcode(business_id, barcode))


@router.get("/{item_id}", response_model=ItemResponse)
def get_item_by_id(
    item_id: UUID,
    business_id: UUID = Depends(get_business_context),
    db: Session = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    service = ItemService(db)
    return _to_response(service, business_id, service.get_item(business_id, item_id))


@router.post("/", response_model=ItemResponse, status_code=status.HTTP_201_CREATED)
def create_item(
    data: ItemCreate,
    business_id: UUID = Depends(get_business_context),
    db: Session = Depends(get_db),
    current_user: dict = Depends(require_role("OWNER", "ADMIN", "MANAGER"))
):
    service = ItemService(db)
    item = service.create_item(business_id, data)
    db.commit()
    db.refresh(item)
    return _to_response(service, business_id, item)


@router.post("/composite", response_model=ItemResponse, status_code=status.HTTP_201_CREATED)
def create_composite_item(
    data: CompositeItemCreate,
    business_id: UUID = Depends(get_business_context),
    db: Session = Depends(get_db),
    current_user: dict = Depends(require_role("OWNER", "ADMIN", "MANAGER"))
):
    """
    Create a composite (prepared) item from raw components
    Its cost is derived from the components and kept in sync
    """
    service = ItemService(db)
    item = service.create_composite_item(business_id, data)
    db.commit()
    db.refresh(item)
    return _to_response(service, business_id, item)


@router.put("/{item_id}", response_model=ItemResponse)
def update_item(
    item_id: UUID,
    data: ItemUpdate,
    business_id: UUID = Depends(get_business_context),
    db: Session = Depends(get_db),
    current_user: dict = Depends(require_role("OWNER", "ADMIN", "MANAGER"))
):
    service = ItemService(db)
    item = service.update_item(business_id, item_id, data)
    db.commit()
    db.refresh(item)
    return _to_response(service, business_id, item)


@router.put("/{item_id}/components", response_model=ItemResponse)
def update_composite_components(
    item_id: UUID,
    data: CompositeComponentsUpdate,
    business_id: UUID = Depends(get_business_context),
    db: Session = Depends(get_db),
    current_user: dict = Depends(require_role("OWNER", "ADMIN", "MANAGER"))
):
    service = ItemService(db)
    item = service.update_components(business_id, item_id, data.components, data.batch_quantity)
    db.commit()
    db.refresh(item)
    return _to_response(service, business_id, item)


@router.put("/{item_id}/business-price", response_model=BusinessPriceResponse)
def set_business_price(
    item_id: UUID,
    data: BusinessPriceUpdate,
    business_id: UUID = Depends(get_business_context),
    db: Session = Depends(get_db),
    current_user: dict = Depends(require_role("OWNER", "ADMIN", "MANAGER"))
):
    """Override the cost of a shared catalog item for this business"""
    price = ItemService(db).set_business_price(business_id, item_id, data.cost_per_unit)
    db.commit()
    db.refresh(price)
    return price


@router.get("/{item_id}/barcodes", response_model=List[BarcodeResponse])
def get_item_barcodes(
    item_id: UUID,
    business_id: UUID = Depends(get_business_context),
    db: Session = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    return ItemService(db).list_barcodes(business_id, item_id)


@router.post("/{item_id}/barcodes", response_model=BarcodeResponse, status_code=status.HTTP_201_CREATED)
def register_item_barcode(
    item_id: UUID,
    data: BarcodeCreate,
    business_id: UUID = Depends(get_business_context),
    db: Session = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    barcode = ItemService(db).register_barcode(business_id, item_id, data.barcode, current_user["user_id"])
    db.commit()
    db.refresh(barcode)
    return barcode
