from fastapi import APIRouter
from app.api.v1.pharmacy import routes as pharmacy
from app.api.v1.inventory import routes as inventory

api_router = APIRouter()
api_router.include_router(pharmacy.router, prefix="/pharmacy")
api_router.include_router(inventory.router, prefix="/inventory")
