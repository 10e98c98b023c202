from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from paybridge import config
from paybridge.utils.rate_limit import rate_limit_health_info

router = APIRouter(prefix="/health", tags=["Health"])

@router.get("")
def health_root():
    return {"status": "healthy"}

@router.get("/config")
def health_config():
    # Noms des variables manquantes uniquement, jamais leurs valeurs
    missing = config.missing_settings()
    return JSONResponse({"ok": not missing, "missing": missing})

@router.get("/rate-limit")
def health_rate_limit(request: Request):
    return JSONResponse(rate_limit_health_info(request))
