from fastapi import Request

from .service import CheckoutOrchestrator


def get_orchestrator(request: Request) -> CheckoutOrchestrator:
    """Orchestrateur partagé du processus (créé par le lifespan, sinon à la première requête)."""
    orchestrator = getattr(request.app.state, "orchestrator", None)
    if orchestrator is None:
        from paybridge.app_setup.lifespan import init_checkout_state
        orchestrator = init_checkout_state(request.app)
    return orchestrator
