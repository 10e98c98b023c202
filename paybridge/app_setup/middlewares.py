from fastapi import Request, FastAPI
from fastapi.responses import RedirectResponse
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.trustedhost import TrustedHostMiddleware
try:
    from uvicorn.middleware.proxy_headers import ProxyHeadersMiddleware
except Exception:
    ProxyHeadersMiddleware = None
from paybridge import config

"""
Middlewares transverses de l’application.
- register_basic_middlewares: CORS, TrustedHost et confiance en X-Forwarded-*.
- register_security_middleware: en-têtes de sécurité et CSP compatible avec le widget SumUp.
- register_no_cache_middleware: empêche la mise en cache des pages de paiement.
- register_force_https_middleware: force la redirection HTTPS (utile derrière proxy).
Notes:
- L’ordre d’ajout est important: le middleware HTTPS est ajouté en dernier pour s’exécuter en premier.
"""

# Origines nécessaires au widget de carte SumUp (script, iframe, appels XHR)
SUMUP_ORIGINS = ["https://gateway.sumup.com", "https://api.sumup.com"]
NO_CACHE_PREFIXES = ("/checkout", "/payment/", "/api/check-payment/")


def register_basic_middlewares(app: FastAPI) -> None:
    """
    Ajoute les middlewares « de base »:
    - CORSMiddleware: autorise les origines définies (la boutique Shopify appelle /checkout).
    - TrustedHostMiddleware: limite les hôtes acceptés (défense host header).
    - ProxyHeadersMiddleware (si dispo): fait confiance aux en-têtes du proxy (x-forwarded-*).
    """
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.CORS_ORIGINS,
        allow_credentials="*" not in config.CORS_ORIGINS,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(
        TrustedHostMiddleware,
        allowed_hosts=config.ALLOWED_HOSTS + ["*"] if "*" in config.CORS_ORIGINS else config.ALLOWED_HOSTS,
    )
    if ProxyHeadersMiddleware:
        app.add_middleware(ProxyHeadersMiddleware, trusted_hosts=["*"])


def register_security_middleware(app: FastAPI) -> None:
    @app.middleware("http")
    async def security_headers(request: Request, call_next):
        response = await call_next(request)

        response.headers.setdefault("X-Frame-Options", "DENY")
        response.headers.setdefault("X-Content-Type-Options", "nosniff")
        response.headers.setdefault("Referrer-Policy", "no-referrer")
        response.headers.setdefault("Permissions-Policy", "geolocation=(), microphone=(), camera=()")
        if config.COOKIE_SECURE:
            response.headers.setdefault("Strict-Transport-Security", "max-age=63072000; includeSubDomains; preload")

        sumup = " ".join(SUMUP_ORIGINS)
        csp = (
            "default-src 'self'; "
            "base-uri 'self'; object-src 'none'; frame-ancestors 'none'; "
            "img-src 'self' data: blob:; "
            f"style-src 'self' 'unsafe-inline' {sumup}; "
            f"script-src 'self' 'unsafe-inline' {sumup}; "
            f"frame-src 'self' {sumup}; "
            f"connect-src 'self' {sumup}"
        )
        response.headers["Content-Security-Policy"] = csp
        return response


def register_no_cache_middleware(app: FastAPI) -> None:
    """
    Empêche la mise en cache des pages et statuts de paiement:
    - Un statut de paiement en cache ferait croire à un paiement encore PENDING.
    """
    @app.middleware("http")
    async def no_cache_for_payment(request: Request, call_next):
        response = await call_next(request)
        if request.method == "GET" and request.url.path.startswith(NO_CACHE_PREFIXES):
            response.headers["Cache-Control"] = "no-store, no-cache, must-revalidate, max-age=0"
            response.headers["Pragma"] = "no-cache"
            response.headers["Expires"] = "0"
        return response


def register_force_https_middleware(app: FastAPI) -> None:
    """
    Force la redirection HTTP -> HTTPS lorsqu’un proxy place x-forwarded-proto=http.
    - Ajouté en dernier afin qu’il s’exécute en premier dans la pile des middlewares.
    """
    @app.middleware("http")
    async def force_https(request: Request, call_next):
        if request.headers.get("x-forwarded-proto") == "http":
            url = str(request.url).replace("http://", "https://", 1)
            return RedirectResponse(url, status_code=301)
        return await call_next(request)
