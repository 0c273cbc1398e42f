"""
Configuration de l'application (Settings)
=========================================

Rôle
----
- Centraliser les paramètres de l'assistant (nom, host/port, chemins des docs,
  langue, délais du contrôleur).
- Les valeurs par défaut conviennent pour un environnement de dev local.
- Les variables peuvent être surchargées via un fichier `.env` ou l'environnement.

Intégrations
------------
- `pydantic-settings` charge automatiquement les variables d'env et `.env`.
- Les services/routers importent `from assistant.config.settings import settings`.

Délais
------
- `EVENT_TIMEOUT` : borne (s) d'une étape de composition; au-delà → erreur "timeout".
- `AUTO_ACK_DELAY` : délai (s) avant l'acquittement automatique d'un conseil affiché.
- `ERROR_RECOVERY_DELAY` : délai (s) avant le retour automatique de `ERROR` vers `IDLE`.
  Les trois valeurs sont indépendantes.

Exemples de `.env`
------------------
APP_NAME="Asistente (Staging)"
PORT=8080
LOCALE="en"
DOCS_DIR="/var/opt/assistant/docs"
AUTO_ACK_DELAY=4.5
"""
from pydantic_settings import BaseSettings, SettingsConfigDict
import os

_DATA_DIR = os.path.join(os.path.dirname(os.path.dirname(__file__)), "data")


class Settings(BaseSettings):
    # Nom du service (apparaît dans /health)
    APP_NAME: str = "In-game Assistant"
    # Bind réseau (FastAPI / Uvicorn)
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    # Répertoire des données embarquées (textes localisés, docs)
    # Par défaut: <repo>/assistant/data
    DATA_DIR: str = _DATA_DIR
    # Documentation: README principal + un fichier par mini-jeu (topic)
    DOCS_DIR: str = os.path.join(_DATA_DIR, "docs")
    PRIMARY_DOC_PATH: str = os.path.join(_DATA_DIR, "docs", "README.md")
    TOPICS_DIR: str = os.path.join(_DATA_DIR, "docs", "minigames")

    # Textes localisés {locale: {clé: texte}}
    STRINGS_PATH: str = os.path.join(_DATA_DIR, "strings.json")
    LOCALE: str = "es"
    FALLBACK_LOCALE: str = "en"

    # Délais du contrôleur (secondes)
    EVENT_TIMEOUT: float = 5.0
    AUTO_ACK_DELAY: float = 3.0
    ERROR_RECOVERY_DELAY: float = 2.0

    # Front(s) autorisés pour le CORS
    ALLOWED_ORIGINS: list[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]

    # Paramétrage pydantic-settings :
    # - lit le fichier .env (UTF-8) si présent
    # - ignore les clés supplémentaires pour éviter les erreurs
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")


# Instance unique importable partout : `settings`
settings = Settings()
