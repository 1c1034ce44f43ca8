"""
Interface de base pour les fournisseurs d'embeddings.

Ce module définit l'interface abstraite implémentée par les fournisseurs de vecteurs, ainsi qu'un
accesseur paresseux qui ne construit le fournisseur réel qu'au premier besoin.
"""

from __future__ import annotations

import re
import threading
from abc import ABC, abstractmethod
from collections.abc import Callable

_NEWLINES = re.compile(r"\r?\n")


def normalize_text(text: str) -> str:
    """Remplace les retours à la ligne par des espaces avant soumission au modèle."""
    return _NEWLINES.sub(" ", text)


class EmbeddingProvider(ABC):
    """Interface abstraite pour les fournisseurs d'embeddings."""

    @abstractmethod
    def embed(self, text: str) -> list[float]:
        """Retourne le vecteur d'embedding d'un texte."""
        ...


class LazyEmbeddingProvider(EmbeddingProvider):
    """Fournisseur construit une seule fois, au premier appel à `embed`.

    La fabrique peut lever `ConfigurationError` (identifiants absents); dans ce cas rien n'est
    mémorisé et l'appel suivant retente la construction.
    """

    def __init__(self, factory: Callable[[], EmbeddingProvider]) -> None:
        """Initialise l'accesseur avec la fabrique du fournisseur réel.

        Args:
            factory: Callable sans argument retournant le fournisseur.
        """
        self._factory = factory
        self._provider: EmbeddingProvider | None = None
        self._lock = threading.Lock()

    @property
    def initialized(self) -> bool:
        """Vrai si le fournisseur réel a déjà été construit."""
        return self._provider is not None

    def get(self) -> EmbeddingProvider:
        """Retourne le fournisseur réel, en le construisant si nécessaire."""
        if self._provider is None:
            with self._lock:
                if self._provider is None:
                    self._provider = self._factory()
        return self._provider

    def embed(self, text: str) -> list[float]:
        """Délègue au fournisseur réel."""
        return self.get().embed(text)
