from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import func
from sqlalchemy.orm import Session
from typing import List
from uuid import UUID

from app.database import get_db
from app.dependencies import get_current_user, require_role, get_business_context
from app.exceptions import ConflictError, NotFoundError
from app.models.vendor import Vendor
from app.schemas.vendor import VendorCreate, VendorUpdate, VendorResponse

router = APIRouter()


def _get_vendor(db: Session, business_id: UUID, vendor_id: UUID) -> Vendor:
    vendor = db.query(Vendor).filter(Vendor.id == vendor_id, Vendor.business_id == business_id).first()
    if not vendor:
        raise NotFoundError("Vendor not found")
    return vendor


def _ensure_unique_name(db: Session, business_id: UUID, name: str, exclude_id: UUID = None):
    query = db.query(Vendor).filter(
        Vendor.business_id == business_id,
        func.lower(Vendor.name) == name.strip().lower(),
    )
    if exclude_id:
        query = query.filter(Vendor.id != exclude_id)
    if query.first():
        raise ConflictError(f"Vendor '{name}' already exists")


@router.get("/", response_model=List[VendorResponse])
def get_all_vendors(
    include_inactive: bool = Query(False),
    business_id: UUID = Depends(get_business_context),
    db: Session = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    query = db.query(Vendor).filter(Vendor.business_id == business_id)
    if not include_inactive:
        query = query.filter(Vendor.is_active.is_(True))
    return query.order_by(Vendor.name).all()


@router.get("/{vendor_id}", response_model=VendorResponse)
def get_vendor_by_id(
    vendor_id: UUID,
    business_id: UUID = Depends(get_business_context),
    db: Session = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    return _get_vendor(db, business_id, vendor_id)


@router.post("/", response_model=VendorResponse, status_code=status.HTTP_201_CREATED)
def create_vendor(
    data: VendorCreate,
    business_id: UUID = Depends(get_business_context),
    db: Session = Depends(get_db),
    current_user: dict = Depends(require_role("OWNER", "ADMIN", "MANAGER"))
):
    _ensure_unique_name(db, business_id, data.name)
    vendor = Vendor(business_id=business_id, is_active=True, **data.model_dump())
    vendor.name = vendor.name.strip()
    db.add(vendor)
    db.commit()
    db.refresh(vendor)
    return vendor


@router.patch("/{vendor_id}", response_model=VendorResponse)
def update_vendor(
    vendor_id: UUID,
    data: VendorUpdate,
    business_id: UUID = Depends(get_business_context),
    db: Session = Depends(get_db),
    current_user: dict = Depends(require_role("OWNER", "ADMIN", "MANAGER"))
):
    vendor = _get_vendor(db, business_id, vendor_id)
    update_data = data.model_dump(exclude_unset=True)
    if update_data.get("name"):
        _ensure_unique_name(db, business_id, update_data["name"], exclude_id=vendor.id)

    for field, value in update_data.items():
        if value is not None:
            setattr(vendor, field, value)

    db.commit()
    db.refresh(vendor)
    return vendor


@router.delete("/{vendor_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_vendor(
    vendor_id: UUID,
    business_id: UUID = Depends(get_business_context),
    db: Session = Depends(get_db),
    current_user: dict = Depends(require_role("OWNER", "ADMIN"))
):
    """Soft delete: purchase orders keep pointing at the vendor"""
    vendor = _get_vendor(db, business_id, vendor_id)
    vendor.is_active = False
    db.commit()
    return None
