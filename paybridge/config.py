# paybridge.config
from pathlib import Path
import os
from typing import List
from dotenv import load_dotenv

# Chemin du projet puis chargement explicite du .env racine
PACKAGE_DIR = Path(__file__).resolve().parent
BASE_DIR = PACKAGE_DIR.parent
ENV_PATH = BASE_DIR / ".env"
load_dotenv(dotenv_path=ENV_PATH, override=False)

TEMPLATES_DIR = PACKAGE_DIR / "templates"
STATIC_DIR = PACKAGE_DIR / "static"

"""
Configuration centrale du bridge SumUp -> Shopify.

- Charge le fichier .env à la racine du projet (BASE_DIR/.env)
- Expose les chemins utiles (TEMPLATES_DIR, STATIC_DIR)
- Normalise et expose les secrets/URLs (SumUp, Shopify), sécurité, CORS/hosts
- Paramètres du polling de confirmation (intervalle, fenêtre maximale)
"""

def _clean_env(v: str) -> str:
    """
    Nettoie une valeur d'environnement:
    - supprime les espaces et guillemets (simples, doubles) et backticks
    - retourne toujours une chaîne (jamais None)
    """
    return (v or "").strip().strip("'").strip('"').strip("`")

def _env_flag(name: str, default: str = "false") -> bool:
    return _clean_env(os.getenv(name, default)).lower() in ("1", "true", "yes")

def _env_float(name: str, default: float) -> float:
    try:
        return float(_clean_env(os.getenv(name) or "") or default)
    except ValueError:
        return default

# Serveur
PORT = int(_clean_env(os.getenv("PORT") or "3000") or 3000)
BASE_URL = _clean_env(os.getenv("BASE_URL") or os.getenv("APP_URL") or f"http://localhost:{PORT}").rstrip("/")

# SumUp: clé API (Bearer) et identité du bénéficiaire (pay_to_email)
SUMUP_API_KEY = _clean_env(os.getenv("SUMUP_API_KEY") or "")
SUMUP_EMAIL = _clean_env(os.getenv("SUMUP_EMAIL") or "")
SUMUP_BASE_URL = _clean_env(os.getenv("SUMUP_BASE_URL") or "https://api.sumup.com/v0.1").rstrip("/")
SUMUP_SDK_URL = _clean_env(os.getenv("SUMUP_SDK_URL") or "https://gateway.sumup.com/gateway/ecom/card/v2/sdk.js")

# Shopify: domaine de la boutique (peut être fourni avec schéma) et token Admin API
SHOPIFY_STORE = _clean_env(os.getenv("SHOPIFY_STORE") or "")
SHOPIFY_ACCESS_TOKEN = _clean_env(os.getenv("SHOPIFY_ACCESS_TOKEN") or "")
SHOPIFY_API_VERSION = _clean_env(os.getenv("SHOPIFY_API_VERSION") or "2024-10")

# Normalisations utiles: on ne garde que le domaine (ex: boutique.myshopify.com)
for _prefix in ("https://", "http://"):
    if SHOPIFY_STORE.startswith(_prefix):
        SHOPIFY_STORE = SHOPIFY_STORE[len(_prefix):]
SHOPIFY_STORE = SHOPIFY_STORE.rstrip("/")

# Appels sortants
HTTP_TIMEOUT_SECONDS = _env_float("HTTP_TIMEOUT_SECONDS", 10.0)

# Polling de confirmation: toutes les 2 s, au plus 120 s depuis le premier appel
POLL_INTERVAL_SECONDS = _env_float("POLL_INTERVAL_SECONDS", 2.0)
POLL_TIMEOUT_SECONDS = _env_float("POLL_TIMEOUT_SECONDS", 120.0)
# Polling côté serveur en plus du polling navigateur (désactivé par défaut)
SERVER_SIDE_POLLING = _env_flag("SERVER_SIDE_POLLING")

# Éviction des sessions: résolues après 1 h, toutes après 24 h
SESSION_TTL_SECONDS = _env_float("SESSION_TTL_SECONDS", 3600.0)
SESSION_MAX_AGE_SECONDS = _env_float("SESSION_MAX_AGE_SECONDS", 86400.0)

# Libellés de la page de paiement (en, fr, nl)
CHECKOUT_LOCALE = _clean_env(os.getenv("CHECKOUT_LOCALE") or "en").lower()

# Sécurité / CORS
COOKIE_SECURE = _env_flag("COOKIE_SECURE")
FORCE_HTTPS = _env_flag("FORCE_HTTPS")
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]
ALLOWED_HOSTS = [h.strip() for h in os.getenv("ALLOWED_HOSTS", "localhost,127.0.0.1,testserver").split(",") if h.strip()]

def missing_settings() -> List[str]:
    """
    Liste les variables obligatoires absentes.
    - PORT et BASE_URL ont des valeurs par défaut et ne sont jamais signalés.
    """
    required = {
        "SUMUP_API_KEY": SUMUP_API_KEY,
        "SUMUP_EMAIL": SUMUP_EMAIL,
        "SHOPIFY_STORE": SHOPIFY_STORE,
        "SHOPIFY_ACCESS_TOKEN": SHOPIFY_ACCESS_TOKEN,
    }
    return [name for name, value in required.items() if not value]
