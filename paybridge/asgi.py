"""
ASGI entrypoint: expose `app` for process managers / deployments.

- En production, un process manager importe `paybridge.asgi:app`
  (ex: uvicorn paybridge.asgi:app --port 3000).
- Toute la configuration FastAPI est centralisée dans paybridge.app_setup.factory,
  ce fichier ne fait qu’exposer l’instance `app`.
"""

from paybridge.app import app

if __name__ == "__main__":
    import uvicorn
    from paybridge import config
    uvicorn.run(
        "paybridge.asgi:app",
        host="0.0.0.0",
        port=config.PORT,
        reload=True,     # rechargement automatique en dev
    )
