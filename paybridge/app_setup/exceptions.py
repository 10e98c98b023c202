"""
Gestionnaires d’exceptions utilisés par la factory.
- CheckoutError et sous-classes -> JSON {"status": "error", "message", ...} avec le code HTTP de la classe.
- UpstreamError -> 500 + détails amont (status/body) pour le diagnostic.
- HTTPException -> JSON FastAPI standard.
"""
import logging
from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from paybridge.checkout.errors import CheckoutError, UpstreamError, ValidationError

logger = logging.getLogger(__name__)


def error_payload(exc: CheckoutError) -> dict:
    payload = {"status": "error", "message": exc.message}
    if isinstance(exc, ValidationError) and exc.fields:
        payload["fields"] = exc.fields
    if isinstance(exc, UpstreamError):
        payload["details"] = {"service": exc.service, "status_code": exc.upstream_status, "body": exc.body}
    return payload


def register_exception_handlers(app: FastAPI) -> None:
    """
    Enregistre les handlers d’erreurs métier et HTTP.
    - Les pages HTML gèrent elles-mêmes leurs erreurs (voir checkout.views): ici, réponses JSON.
    """
    @app.exception_handler(CheckoutError)
    async def checkout_error(request: Request, exc: CheckoutError):
        if exc.status_code >= 500:
            logger.error("checkout error path=%s: %s", request.url.path, exc.message)
        return JSONResponse(status_code=exc.status_code, content=error_payload(exc))

    @app.exception_handler(HTTPException)
    async def http_error(request: Request, exc: HTTPException):
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})
