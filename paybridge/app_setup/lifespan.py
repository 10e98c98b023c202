"""
Lifespan FastAPI: initialisation/arrêt des ressources partagées.
- Crée le store de sessions et l’orchestrateur (app.state.session_store / app.state.orchestrator).
- Initialise FastAPILimiter (Redis) avec options de test (fakeredis).
- Journalise l’état de la configuration SumUp/Shopify au démarrage.
- À l’arrêt: annule les pollers serveur encore actifs.
Variables d’environnement supportées:
  - DISABLE_FASTAPI_LIMITER_INIT_FOR_TESTS=1: désactive complètement le rate limiting (tests)
  - USE_FAKE_REDIS_FOR_TESTS=1: utilise fakeredis (tests)
  - LOCAL_RATE_LIMIT_FALLBACK=1: active un fallback local si l’init échoue
"""
import os
import logging
from contextlib import asynccontextmanager
import redis.asyncio as aioredis
from fastapi import FastAPI
from fastapi_limiter import FastAPILimiter

from paybridge import config
from paybridge.checkout.latch import SessionLatch
from paybridge.checkout.service import CheckoutOrchestrator
from paybridge.checkout.store import InMemorySessionStore

try:
    from fakeredis.aioredis import FakeRedis  # tests only
except Exception:
    FakeRedis = None


def init_checkout_state(app: FastAPI) -> CheckoutOrchestrator:
    """Store + verrou + orchestrateur, partagés par toutes les requêtes du processus."""
    store = getattr(app.state, "session_store", None)
    if store is None:
        store = InMemorySessionStore()
    app.state.session_store = store
    app.state.orchestrator = CheckoutOrchestrator(store, SessionLatch())
    return app.state.orchestrator


async def init_rate_limiter(app: FastAPI, logger: logging.Logger) -> None:
    """
    Configure le rate limiting et gère les fallbacks.
    - En cas d’échec de Redis et sans fallback, le rate limiting est désactivé proprement.
    """
    try:
        if os.getenv("DISABLE_FASTAPI_LIMITER_INIT_FOR_TESTS") == "1":
            app.state.rate_limit_enabled = False
            logger.info("Rate limiting disabled by DISABLE_FASTAPI_LIMITER_INIT_FOR_TESTS")
            return

        if os.getenv("USE_FAKE_REDIS_FOR_TESTS") == "1":
            if not FakeRedis:
                raise RuntimeError("USE_FAKE_REDIS_FOR_TESTS=1 mais fakeredis n'est pas installé.")
            r = FakeRedis(decode_responses=True)
        else:
            redis_url = os.getenv("RATE_LIMIT_REDIS_URL", "redis://127.0.0.1:6379/0")
            r = aioredis.from_url(redis_url, encoding="utf-8", decode_responses=True)

        await FastAPILimiter.init(r)
        app.state.rate_limit_enabled = True
        logger.info("Rate limiting enabled")
    except Exception as e:
        if os.getenv("LOCAL_RATE_LIMIT_FALLBACK") == "1":
            app.state.rate_limit_enabled = True
            logger.warning(f"Rate limiting falling back to local in-memory due to init error: {e}")
        else:
            app.state.rate_limit_enabled = False
            logger.warning(f"Rate limiting disabled due to init error: {e}")


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger = logging.getLogger("uvicorn.error")
    orchestrator = init_checkout_state(app)
    await init_rate_limiter(app, logger)

    logger.info("Payment bridge running, base URL %s", config.BASE_URL)
    logger.info("SumUp configured: %s", "yes" if config.SUMUP_API_KEY else "no")
    logger.info("Shopify configured: %s", "yes" if config.SHOPIFY_ACCESS_TOKEN else "no")
    missing = config.missing_settings()
    if missing:
        logger.warning("Missing settings: %s", ", ".join(missing))
    logger.info("Checkout URL: %s/checkout", config.BASE_URL)

    yield

    orchestrator.cancel_polling()
