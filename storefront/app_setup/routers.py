"""
Registre central des routers.
- API v1: catalogue, checkout, commandes, paiements
- Health: health_router
"""
from fastapi import FastAPI
from storefront.catalog import views as catalog_views
from storefront.orders import views as orders_views
from storefront.payments import views as payments_views
from storefront.health.router import router as health_router

def register_routers(app: FastAPI) -> None:
    # API v1
    app.include_router(catalog_views.router)
    app.include_router(orders_views.router)
    app.include_router(orders_views.orders_router)
    app.include_router(payments_views.router)
    # Health & monitoring
    app.include_router(health_router)
