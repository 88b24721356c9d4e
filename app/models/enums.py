from enum import Enum


class ItemStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class MovementType(str, Enum):
    PURCHASE_RECEIVE = "purchase_receive"
    TRANSFER_OUT = "transfer_out"
    TRANSFER_IN = "transfer_in"
    COUNT_ADJUSTMENT = "count_adjustment"
    ORDER_RESERVE = "order_reserve"
    ORDER_RELEASE = "order_release"
    ORDER_CONSUME = "order_consume"
    WASTE = "waste"
    PRODUCTION_CONSUME = "production_consume"
    PRODUCTION_OUTPUT = "production_output"
    MANUAL_ADDITION = "manual_addition"
    MANUAL_DEDUCTION = "manual_deduction"


class ReferenceType(str, Enum):
    ORDER = "order"
    PURCHASE_ORDER = "purchase_order"
    TRANSFER = "transfer"
    INVENTORY_COUNT = "inventory_count"
    PRODUCTION = "production"
    MANUAL = "manual"


class PurchaseOrderStatus(str, Enum):
    PENDING = "pending"
    COUNTED = "counted"
    RECEIVED = "received"
    CANCELLED = "cancelled"


class VarianceReason(str, Enum):
    MISSING = "missing"
    CANCELED = "canceled"
    REJECTED = "rejected"


class TransferStatus(str, Enum):
    PENDING = "pending"
    RECEIVED = "received"
    CANCELLED = "cancelled"


class CountType(str, Enum):
    FULL = "full"
    PARTIAL = "partial"


class CountStatus(str, Enum):
    DRAFT = "draft"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class WasteDecision(str, Enum):
    WASTE = "waste"
    RETURN = "return"


class DeductionReason(str, Enum):
    EXPIRED = "expired"
    DAMAGED = "damaged"
    SPOILED = "spoiled"
    OTHERS = "others"


class ModifierType(str, Enum):
    EXTRA = "extra"
    REMOVAL = "removal"
