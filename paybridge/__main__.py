"""
Point d'entrée principal du bridge.

Usage:
    python -m paybridge   (ou la commande `paybridge` après installation)

Ce mode lance uvicorn directement et lit quelques variables d'environnement:
- PORT: port d'écoute (par défaut 3000)
- UVICORN_RELOAD: active le reload auto en dev ("1"/"true"/"yes")
- LOG_LEVEL: niveau de logs uvicorn (ex: "info", "debug")
"""
import os
import uvicorn
from paybridge import config


def main() -> None:
    # Activer le reload uniquement si explicitement demandé (ex: en local)
    reload_flag = os.environ.get("UVICORN_RELOAD", "").lower() in ("1", "true", "yes")
    log_level = os.environ.get("LOG_LEVEL", "info")
    uvicorn.run(
        "paybridge.asgi:app",  # on réutilise l'ASGI app unique
        host="0.0.0.0",
        port=config.PORT,
        reload=reload_flag,
        log_level=log_level
    )


if __name__ == "__main__":
    main()
