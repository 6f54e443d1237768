from fastapi import APIRouter

from app.api.routes import (
    admin_settings,
    deals,
    financial,
    health,
    invoices,
    negotiations,
    payments,
)

api_router = APIRouter()
api_router.include_router(health.router)
api_router.include_router(deals.router)
api_router.include_router(negotiations.router)
api_router.include_router(payments.router)
api_router.include_router(invoices.router)
api_router.include_router(financial.router)
api_router.include_router(admin_settings.router)
