from sqlalchemy import func
from sqlalchemy.orm import Session

from app.utils.timezone import get_local_now

PURCHASE_ORDER_PREFIX = "PO"
TRANSFER_PREFIX = "TRF"
COUNT_PREFIX = "CNT"
PRODUCTION_PREFIX = "PRD"


def generate_document_number(db: Session, model, number_column, business_id, prefix: str) -> str:
    """
    Generate the next sequential number for the current month,
    e.g. PO-2410-0001.
    """
    period_prefix = f"{prefix}-{get_local_now().strftime('%y%m')}-"

    count = (
        db.query(func.count(model.id))
        .filter(model.business_id == business_id, number_column.like(f"{period_prefix}%"))
        .scalar()
    )

    return f"{period_prefix}{(count or 0) + 1:04d}"
