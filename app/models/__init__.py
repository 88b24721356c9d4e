from app.models.base import TimestampMixin
from app.models.business import Business, Branch
from app.models.vendor import Vendor
from app.models.item import Item, BusinessItemPrice, CompositeItemComponent, ItemBarcode
from app.models.product import Product, ProductVariant, ProductIngredient, ProductModifier
from app.models.inventory import InventoryStock, InventoryMovement
from app.models.purchase_order import PurchaseOrder, PurchaseOrderItem, PurchaseOrderActivity
from app.models.stock_transfer import StockTransfer, StockTransferItem
from app.models.inventory_count import InventoryCount, InventoryCountItem
from app.models.order_inventory import CancelledOrderItem
from app.models.production import Production, ProductionConsumedItem

__all__ = [
    "TimestampMixin",
    "Business",
    "Branch",
    "Vendor",
    "Item",
    "BusinessItemPrice",
    "CompositeItemComponent",
    "ItemBarcode",
    "Product",
    "ProductVariant",
    "ProductIngredient",
    "ProductModifier",
    "InventoryStock",
    "InventoryMovement",
    "PurchaseOrder",
    "PurchaseOrderItem",
    "PurchaseOrderActivity",
    "StockTransfer",
    "StockTransferItem",
    "InventoryCount",
    "InventoryCountItem",
    "CancelledOrderItem",
    "Production",
    "ProductionConsumedItem",
]
