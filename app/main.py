import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.config import settings
from app.database import Base, engine
from app.exception_handlers import setup_exception_handlers
from app.api.v1 import (
    units,
    items,
    products,
    vendors,
    inventory,
    purchase_orders,
    stock_transfers,
    inventory_counts,
    production,
    order_inventory,
)
from app import models  # noqa: F401  registers tables on Base.metadata

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    Base.metadata.create_all(bind=engine)
    logger.info("%s started (%s)", settings.APP_NAME, settings.APP_ENV)
    yield


# Create FastAPI app
app = FastAPI(
    title=settings.APP_NAME,
    description="Multi-tenant restaurant inventory with weighted average costing",
    version="1.0.0",
    debug=settings.DEBUG,
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_credentials=True,
    allow_headers=["*"],
    allow_origins=settings.allowed_origins_list,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]
)

setup_exception_handlers(app)


# Health check
@app.get("/")
def read_root():
    return {
        "app": settings.APP_NAME,
        "version": "1.0.0",
        "status": "running"
    }


@app.get("/health")
def health_check():
    return {"status": "healthy"}


# Include routers
app.include_router(units.router, prefix=f"{settings.API_V1_PREFIX}/units", tags=["Units"])
app.include_router(items.router, prefix=f"{settings.API_V1_PREFIX}/items", tags=["Items"])
app.include_router(products.router, prefix=f"{settings.API_V1_PREFIX}/products", tags=["Products"])
app.include_router(vendors.router, prefix=f"{settings.API_V1_PREFIX}/vendors", tags=["Vendors"])
app.include_router(inventory.router, prefix=f"{settings.API_V1_PREFIX}/inventory", tags=["Inventory"])
app.include_router(purchase_orders.router, prefix=f"{settings.API_V1_PREFIX}/purchase-orders", tags=["Purchase Orders"])
app.include_router(stock_transfers.router, prefix=f"{settings.API_V1_PREFIX}/stock-transfers", tags=["Stock Transfers"])
app.include_router(inventory_counts.router, prefix=f"{settings.API_V1_PREFIX}/inventory-counts", tags=["Inventory Counts"])
app.include_router(production.router, prefix=f"{settings.API_V1_PREFIX}/production", tags=["Production"])
app.include_router(order_inventory.router, prefix=f"{settings.API_V1_PREFIX}/order-inventory", tags=["Order Inventory"])

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("app.main:app", host="0.0.0.0", port=8000, reload=settings.DEBUG)
