"""
Montage des fichiers statiques.
Expose:
- /static -> scripts et styles de la page de paiement (paybridge/static)
"""
from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles
from paybridge.config import STATIC_DIR

def mount_static_files(app: FastAPI) -> None:
    """
    Monte le répertoire statique sur un préfixe stable.
    - Utilisé par la factory pour servir les assets sans passer par un serveur externe.
    """
    app.mount("/static", StaticFiles(directory=str(STATIC_DIR)), name="static")
