"""
Fournisseur d'embeddings basé sur l'API OpenAI (compatible GitHub Models).

Ce module implémente `EmbeddingProvider` via le SDK `openai`: un client unique, des délais et
tentatives bornés, et la validation de la dimension des vecteurs retournés.
"""

from __future__ import annotations

import time

import structlog
from openai import OpenAI, OpenAIError

from hrkb.app.metrics import EMBEDDING_LATENCY, EMBEDDING_REQUESTS
from hrkb.core.settings import Settings
from hrkb.domain.errors import ConfigurationError, ProviderError
from hrkb.infra.embeddings.base import EmbeddingProvider, normalize_text

log = structlog.get_logger(__name__)


class OpenAIEmbedder(EmbeddingProvider):
    """
    Fournisseur d'embeddings OpenAI.

    Sans état par appel: le client SDK est injecté une fois et réutilisé par toutes les requêtes.
    """

    def __init__(self, client: OpenAI, model: str, dimensions: int) -> None:
        """
        Initialise le fournisseur.

        Args:
            client: Client SDK OpenAI déjà configuré.
            model: Nom du modèle d'embedding.
            dimensions: Longueur attendue des vecteurs.
        """
        self.client = client
        self.model = model
        self.dimensions = dimensions

    def embed(self, text: str) -> list[float]:
        """
        Génère l'embedding d'un texte via l'API.

        Args:
            text: Texte brut; les retours à la ligne sont normalisés en espaces.

        Returns:
            list[float]: Vecteur de longueur `dimensions`.

        Raises:
            ProviderError: Appel en échec, expiré, ou réponse sans vecteur valide.
        """
        start = time.perf_counter()
        try:
            resp = self.client.embeddings.create(
                model=self.model,
                input=normalize_text(text),
                encoding_format="float",
            )
        except OpenAIError as exc:
            EMBEDDING_REQUESTS.labels(outcome="error").inc()
            log.warning("embedding_request_failed", model=self.model, error=type(exc).__name__)
            raise ProviderError(f"embedding request failed: {type(exc).__name__}") from exc
        finally:
            EMBEDDING_LATENCY.observe(time.perf_counter() - start)

        data = getattr(resp, "data", None) or []
        vector = getattr(data[0], "embedding", None) if data else None
        if not vector:
            EMBEDDING_REQUESTS.labels(outcome="empty").inc()
            raise ProviderError("embedding service returned no vector")
        if len(vector) != self.dimensions:
            EMBEDDING_REQUESTS.labels(outcome="bad_dimension").inc()
            raise ProviderError(
                f"embedding has {len(vector)} dimensions, expected {self.dimensions}"
            )
        EMBEDDING_REQUESTS.labels(outcome="ok").inc()
        return [float(x) for x in vector]


def build_openai_embedder(settings: Settings) -> OpenAIEmbedder:
    """Construit le fournisseur à partir de la configuration.

    Raises:
        ConfigurationError: si `OPENAI_API_KEY` n'est pas configurée.
    """
    if not settings.OPENAI_API_KEY:
        raise ConfigurationError("OPENAI_API_KEY is not configured")
    client = OpenAI(
        api_key=settings.OPENAI_API_KEY,
        base_url=settings.EMBEDDINGS_BASE_URL,
        timeout=settings.EMBEDDINGS_TIMEOUT_S,
        max_retries=settings.EMBEDDINGS_MAX_RETRIES,
    )
    log.info("embedding_provider_ready", model=settings.EMBEDDINGS_MODEL)
    return OpenAIEmbedder(
        client, model=settings.EMBEDDINGS_MODEL, dimensions=settings.EMBEDDINGS_DIMENSIONS
    )
