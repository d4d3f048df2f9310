from fastapi import APIRouter

from storekeeper.app.api.v1.endpoints import (
    customers,
    inventory,
    products,
    sales,
)

api_router = APIRouter(prefix="/api/v1")

api_router.include_router(sales.router, prefix="/sales", tags=["sales"])
api_router.include_router(customers.router, prefix="/customers", tags=["customers"])
api_router.include_router(products.router, prefix="/products", tags=["products"])
api_router.include_router(inventory.router, prefix="/inventory", tags=["inventory"])
