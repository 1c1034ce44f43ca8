# ============================================================
# Module : hrkb/domain/hybrid_search.py
# Objet  : Recherche hybride (similarité vectorielle + sous-chaîne).
# Invariants :
#  - Un seul appel au fournisseur d'embeddings par requête non vide.
#  - score = w_vec * similarité + w_kw * présence mot-clé ; tri score desc puis id asc.
#  - total = taille de l'union fusionnée (après filtres), pas la largeur de récupération.
# ============================================================
"""Moteur de recherche hybride.

Combine deux chemins de récupération indépendants sur le même dépôt d'entrées:

- vectoriel: voisins les plus proches par similarité cosinus, au-dessus d'un seuil strict;
- mots-clés: correspondance de sous-chaîne insensible à la casse sur les champs texte.

Les deux ensembles sont fusionnés, notés, triés puis paginés; les ids de la page sont hydratés en
enregistrements complets dans l'ordre du classement. Une requête vide contourne la notation et
renvoie une liste filtrée triée par horodatage.
"""

from __future__ import annotations

import time
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Protocol

import structlog

from hrkb.app.metrics import SEARCH_CANDIDATES, SEARCH_LATENCY, SEARCH_REQUESTS
from hrkb.core.constants import CANDIDATE_LIMIT, KEYWORD_WEIGHT, SIMILARITY_THRESHOLD, VECTOR_WEIGHT
from hrkb.core.settings import Settings
from hrkb.domain.search_types import PageRequest, ScoredId, SearchFilters, SearchPage
from hrkb.infra.embeddings.base import EmbeddingProvider

log = structlog.get_logger(__name__)


class SearchableRepository(Protocol):
    """Primitives du Content Store consommées par le moteur."""

    entity: str

    def nearest_neighbors(
        self, vector: Sequence[float], threshold: float, limit: int
    ) -> list[tuple[str, float]]: ...

    def keyword_matches(self, terms: Sequence[str], limit: int) -> list[str]: ...

    def filter_ids(self, ids: Iterable[str], filters: SearchFilters) -> set[str]: ...

    def get_many(self, ids: Sequence[str]) -> dict: ...

    def list_page(self, filters: SearchFilters, offset: int, limit: int) -> tuple[list, int]: ...


@dataclass(frozen=True)
class SearchConfig:
    """Paramètres de classement."""

    threshold: float = SIMILARITY_THRESHOLD
    candidate_limit: int = CANDIDATE_LIMIT
    vector_weight: float = VECTOR_WEIGHT
    keyword_weight: float = KEYWORD_WEIGHT

    @classmethod
    def from_settings(cls, settings: Settings) -> SearchConfig:
        return cls(
            threshold=settings.SEARCH_SIMILARITY_THRESHOLD,
            candidate_limit=settings.SEARCH_CANDIDATE_LIMIT,
            vector_weight=settings.SEARCH_VECTOR_WEIGHT,
            keyword_weight=settings.SEARCH_KEYWORD_WEIGHT,
        )


def keyword_terms(query: str) -> list[str]:
    """Termes recherchés par sous-chaîne: la requête brute puis chacun de ses mots.

    Chaque mot compte seul: "연차 정산" trouve aussi une entrée qui ne contient que "연차".
    Une correspondance sur l'un quelconque des termes donne la même présence mot-clé (1).
    """
    terms = [query]
    for word in query.split():
        if word not in terms:
            terms.append(word)
    return terms


def merge_scores(
    vector_hits: Sequence[tuple[str, float]],
    keyword_ids: Iterable[str],
    vector_weight: float = VECTOR_WEIGHT,
    keyword_weight: float = KEYWORD_WEIGHT,
) -> list[ScoredId]:
    """Fusionne les deux chemins et trie par score combiné décroissant.

    Une entrée absente du chemin vectoriel a une similarité de 0; une entrée absente du chemin
    mots-clés a une présence de 0. Égalité de score départagée par id croissant.

    Args:
        vector_hits: Couples (id, similarité) du chemin vectoriel.
        keyword_ids: Ids du chemin mots-clés.
        vector_weight: Poids de la similarité.
        keyword_weight: Poids de la présence mot-clé.

    Returns:
        list[ScoredId]: Union des ids, notée et triée.
    """
    components: dict[str, list[float]] = {}
    for entry_id, similarity in vector_hits:
        components[entry_id] = [float(similarity), 0.0]
    for entry_id in keyword_ids:
        components.setdefault(entry_id, [0.0, 0.0])[1] = 1.0
    scored = [
        ScoredId(
            id=entry_id,
            vector=vec,
            keyword=kw,
            score=vector_weight * vec + keyword_weight * kw,
        )
        for entry_id, (vec, kw) in components.items()
    ]
    scored.sort(key=lambda s: (-s.score, s.id))
    return scored


class HybridSearchEngine:
    """Orchestration de la recherche hybride pour un type d'entrée.

    Le moteur ne connaît pas le moteur de stockage: il ne dépend que des primitives de
    `SearchableRepository` et d'un `EmbeddingProvider` injecté.
    """

    def __init__(
        self,
        repo: SearchableRepository,
        provider: EmbeddingProvider,
        config: SearchConfig | None = None,
    ) -> None:
        """Initialise le moteur.

        Args:
            repo: Dépôt de l'entité recherchée.
            provider: Fournisseur d'embeddings (appelé une fois par requête non vide).
            config: Seuil, largeur de récupération et poids.
        """
        self.repo = repo
        self.provider = provider
        self.config = config or SearchConfig()

    def search(self, query: str | None, filters: SearchFilters, page: PageRequest) -> SearchPage:
        """Recherche paginée.

        Raises:
            ProviderError: l'embedding de la requête a échoué (aucun repli mots-clés seul).
            ConfigurationError: identifiants du fournisseur absents.
        """
        if not query or not query.strip():
            return self._listing(filters, page)
        return self._hybrid(query, filters, page)

    def rank(self, query: str, filters: SearchFilters | None = None) -> list[ScoredId]:
        """Classement complet (avant pagination) d'une requête non vide."""
        cfg = self.config
        vector = self.provider.embed(query)
        vector_hits = self.repo.nearest_neighbors(vector, cfg.threshold, cfg.candidate_limit)
        keyword_ids = self.repo.keyword_matches(keyword_terms(query), cfg.candidate_limit)
        SEARCH_CANDIDATES.labels(entity=self.repo.entity, path="vector").observe(len(vector_hits))
        SEARCH_CANDIDATES.labels(entity=self.repo.entity, path="keyword").observe(len(keyword_ids))

        ranked = merge_scores(vector_hits, keyword_ids, cfg.vector_weight, cfg.keyword_weight)
        if filters is not None and not filters.is_empty():
            allowed = self.repo.filter_ids([s.id for s in ranked], filters)
            ranked = [s for s in ranked if s.id in allowed]
        log.info(
            "hybrid_search",
            entity=self.repo.entity,
            vector=len(vector_hits),
            keyword=len(keyword_ids),
            combined=len(ranked),
        )
        return ranked

    def _hybrid(self, query: str, filters: SearchFilters, page: PageRequest) -> SearchPage:
        start = time.perf_counter()
        ranked = self.rank(query, filters)
        window = ranked[page.offset : page.offset + page.page_size]
        rows = self.repo.get_many([s.id for s in window])
        # ordre du classement; une entrée supprimée entre-temps disparaît de la page
        items = [rows[s.id] for s in window if s.id in rows]
        self._observe("hybrid", start)
        return SearchPage(
            items=items, total=len(ranked), page=page.page, page_size=page.page_size
        )

    def _listing(self, filters: SearchFilters, page: PageRequest) -> SearchPage:
        start = time.perf_counter()
        items, total = self.repo.list_page(filters, page.offset, page.page_size)
        self._observe("listing", start)
        return SearchPage(items=items, total=total, page=page.page, page_size=page.page_size)

    def _observe(self, mode: str, start: float) -> None:
        SEARCH_REQUESTS.labels(entity=self.repo.entity, mode=mode).inc()
        SEARCH_LATENCY.labels(entity=self.repo.entity, mode=mode).observe(
            time.perf_counter() - start
        )
