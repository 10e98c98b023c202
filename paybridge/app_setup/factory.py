"""
Factory d’application utilisée par les entrypoints (paybridge.app, paybridge.asgi).
Ordonne les étapes d’initialisation de manière lisible et testable.
"""
from fastapi import FastAPI
from paybridge import config
from .lifespan import lifespan
from .middlewares import (
    register_basic_middlewares,
    register_force_https_middleware,
    register_no_cache_middleware,
    register_security_middleware,
)
from .static import mount_static_files
from .exceptions import register_exception_handlers
from .routes import register_routes
from .routers import register_routers

def create_app() -> FastAPI:
    """
    Construit l’app FastAPI avec le lifespan et enregistre:
      - middlewares de base, statiques, sécurité (CSP SumUp), no-cache
      - gestionnaires d’exceptions et routes simples
      - tous les routers (pages, API, webhook, health)
      - redirection HTTPS en dernier (FORCE_HTTPS) pour qu’elle s’exécute en premier
    """
    app = FastAPI(title="SumUp Shopify Payment Bridge", lifespan=lifespan)
    register_basic_middlewares(app)
    mount_static_files(app)
    register_security_middleware(app)
    register_no_cache_middleware(app)
    register_exception_handlers(app)
    register_routes(app)
    register_routers(app)
    if config.FORCE_HTTPS:
        register_force_https_middleware(app)
    return app
