"""
Registre central des routers.
- Web: pages du parcours de paiement (checkout, succès, échec)
- API: statut, soumission du formulaire, confirmation
- SumUp: webhook et diagnostics
- Health: health_router
"""
from fastapi import FastAPI
from paybridge.checkout.views import web_router as checkout_web_router, api_router as checkout_api_router
from paybridge.payments import views as payments_views
from paybridge.health.router import router as health_router

def register_routers(app: FastAPI) -> None:
    # Pages web (HTML)
    app.include_router(checkout_web_router)
    # API
    app.include_router(checkout_api_router)
    app.include_router(payments_views.router)
    # Health & monitoring
    app.include_router(health_router)
