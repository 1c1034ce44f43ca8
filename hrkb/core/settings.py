"""Définition et chargement des paramètres de configuration applicative.

Objectif du module
------------------
- Centraliser les paramètres (env/.env) via Pydantic Settings
- Résoudre le fichier `.env` à utiliser selon la stratégie: ENV_FILE > .env.{APP_ENV} > .env
"""

import os
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


def _resolve_env_file() -> Path | str:
    """Retourne le fichier .env à charger (ENV_FILE > .env.{APP_ENV} > .env)."""
    env_file = os.getenv("ENV_FILE")
    if env_file:
        return env_file
    cwd = Path.cwd()
    specific = cwd / f".env.{os.getenv('APP_ENV', 'dev')}"
    if specific.exists():
        return specific
    return cwd / ".env"


class Settings(BaseSettings):
    """Modèle de configuration chargé depuis l'environnement et .env."""

    model_config = SettingsConfigDict(
        env_file=_resolve_env_file(),
        env_file_encoding="utf-8",
        env_ignore_empty=True,
        case_sensitive=False,
        extra="ignore",
    )
    APP_NAME: str = "hr-knowledge-base"
    APP_ENV: str = "dev"
    APP_DEBUG: bool = True
    APP_HOST: str = "0.0.0.0"
    APP_PORT: int = 8000

    DATABASE_URL: str = "sqlite+pysqlite:///./hrkb.db"
    # JWT/Auth (jetons émis par le service d'identité)
    JWT_SECRET: str = "dev-secret-change-me"
    JWT_ALG: str = "HS256"

    # Embeddings
    OPENAI_API_KEY: str | None = None
    EMBEDDINGS_BASE_URL: str = "https://models.github.ai/inference"
    EMBEDDINGS_MODEL: str = "text-embedding-3-large"
    EMBEDDINGS_DIMENSIONS: int = 3072
    EMBEDDINGS_TIMEOUT_S: float = 30.0
    EMBEDDINGS_MAX_RETRIES: int = 2

    # Recherche hybride
    SEARCH_SIMILARITY_THRESHOLD: float = 0.3
    SEARCH_CANDIDATE_LIMIT: int = 50
    SEARCH_VECTOR_WEIGHT: float = 0.7
    SEARCH_KEYWORD_WEIGHT: float = 0.3
    DEFAULT_PAGE_SIZE: int = 20
    MAX_PAGE_SIZE: int = 100


def get_settings() -> Settings:
    """Construit et retourne la configuration de l'application."""
    return Settings()
