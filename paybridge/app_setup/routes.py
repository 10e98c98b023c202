"""
Routes simples (hors routers).
- /: bannière de service (statut, message, horodatage), utile aux sondes et au diagnostic.
- /favicon.ico: pas de contenu (204) pour éviter des 404 dans les logs.
"""
from datetime import datetime, timezone
from fastapi import FastAPI
from fastapi.responses import Response
from starlette.status import HTTP_204_NO_CONTENT

def register_routes(app: FastAPI) -> None:
    @app.get("/", include_in_schema=False)
    def root_banner():
        return {
            "status": "active",
            "message": "SumUp-Shopify payment bridge is running",
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    @app.get("/favicon.ico", include_in_schema=False)
    async def favicon():
        return Response(status_code=HTTP_204_NO_CONTENT)
