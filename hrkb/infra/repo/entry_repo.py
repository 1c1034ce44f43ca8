# ============================================================
# Module : hrkb/infra/repo/entry_repo.py
# Objet  : Accès SQL aux entrées indexées (Q&A, manuels).
# Invariants :
#  - Toute requête de lecture exclut is_deleted = true, sauf lookup d'audit explicite.
#  - L'opérateur de distance cosinus reste confiné à nearest_neighbors().
# ============================================================
"""Dépôts des entrées de la base de connaissances.

Expose les primitives consommées par le moteur de recherche hybride: voisins les plus proches par
similarité cosinus, correspondances par sous-chaîne, filtrage exact, pagination et hydratation.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import ClassVar, Generic, TypeVar

import numpy as np
from sqlalchemy import Float, func, or_, select, update
from sqlalchemy.orm import Session

from hrkb.core.constants import ENTITY_MANUAL, ENTITY_QNA
from hrkb.domain.result import Result
from hrkb.domain.search_types import SearchFilters
from hrkb.infra.repo.models import Category, Manual, QnAEntry, Tag

E = TypeVar("E", QnAEntry, Manual)


def cosine_similarity(a: np.ndarray, b: np.ndarray) -> float | None:
    """Similarité cosinus, ou None si un vecteur est nul ou de dimension différente."""
    if a.shape != b.shape:
        return None
    denom = float(np.linalg.norm(a)) * float(np.linalg.norm(b))
    if denom == 0.0:
        return None
    return float(np.dot(a, b)) / denom


class EntryRepository(Generic[E]):
    """Dépôt générique d'entrées embarquables, paramétré par le modèle ORM."""

    entity: ClassVar[str]
    model: ClassVar[type]

    def __init__(self, session: Session) -> None:
        """Construit le dépôt avec une session SQLAlchemy."""
        self._session = session

    # -------------------- Lookups --------------------

    def find_by_id(self, entry_id: str, include_deleted: bool = False) -> Result[E]:
        """Retourne l'entrée par id; une entrée supprimée est absente sauf pour l'audit."""
        row = self._session.get(self.model, entry_id)
        if row is None or (row.is_deleted and not include_deleted):
            return Result.missing(self.entity, entry_id)
        return Result.found(row)

    def get_many(self, ids: Sequence[str]) -> dict[str, E]:
        """Charge les entrées non supprimées d'une liste d'ids, indexées par id (ordre libre)."""
        if not ids:
            return {}
        stmt = select(self.model).where(self.model.id.in_(ids), self.model.is_deleted.is_(False))
        return {row.id: row for row in self._session.scalars(stmt)}

    def add(self, entry: E) -> E:
        """Ajoute l'entrée à la session et force l'écriture (id, défauts)."""
        self._session.add(entry)
        self._session.flush()
        return entry

    # -------------------- Recherche --------------------

    def nearest_neighbors(
        self, vector: Sequence[float], threshold: float, limit: int
    ) -> list[tuple[str, float]]:
        """Classe les entrées par similarité cosinus au vecteur requête.

        Ne retient que les entrées non supprimées avec embedding et une similarité strictement
        supérieure à `threshold`; ordre: similarité décroissante puis id croissant.

        Returns:
            list[tuple[str, float]]: Couples (id, similarité), au plus `limit`.
        """
        if self._dialect() == "postgresql":
            return self._nearest_neighbors_sql(vector, threshold, limit)
        query = np.asarray(vector, dtype=np.float64)
        stmt = select(self.model.id, self.model.embedding).where(
            self.model.is_deleted.is_(False), self.model.embedding.is_not(None)
        )
        hits: list[tuple[str, float]] = []
        for entry_id, embedding in self._session.execute(stmt):
            sim = cosine_similarity(query, np.asarray(embedding, dtype=np.float64))
            if sim is not None and sim > threshold:
                hits.append((entry_id, sim))
        hits.sort(key=lambda h: (-h[1], h[0]))
        return hits[:limit]

    def _nearest_neighbors_sql(
        self, vector: Sequence[float], threshold: float, limit: int
    ) -> list[tuple[str, float]]:
        distance = self.model.embedding.op("<=>", return_type=Float)(list(vector))
        similarity = (1 - distance).label("similarity")
        stmt = (
            select(self.model.id, similarity)
            .where(
                self.model.is_deleted.is_(False),
                self.model.embedding.is_not(None),
                (1 - distance) > threshold,
            )
            .order_by(similarity.desc(), self.model.id.asc())
            .limit(limit)
        )
        return [(row.id, float(row.similarity)) for row in self._session.execute(stmt)]

    def keyword_matches(self, terms: Sequence[str], limit: int) -> list[str]:
        """Ids des entrées dont un champ texte contient l'un des termes (insensible à la casse)."""
        clauses = [
            getattr(self.model, field).icontains(term, autoescape=True)
            for term in terms
            for field in self.model.KEYWORD_FIELDS
        ]
        if not clauses:
            return []
        stmt = (
            select(self.model.id)
            .where(self.model.is_deleted.is_(False), or_(*clauses))
            .limit(limit)
        )
        return list(self._session.scalars(stmt))

    def filter_ids(self, ids: Iterable[str], filters: SearchFilters) -> set[str]:
        """Sous-ensemble des ids (non supprimés) satisfaisant les filtres."""
        ids = list(ids)
        if not ids:
            return set()
        stmt = select(self.model.id).where(self.model.id.in_(ids), *self._filter_clauses(filters))
        return set(self._session.scalars(stmt))

    def list_page(self, filters: SearchFilters, offset: int, limit: int) -> tuple[list[E], int]:
        """Liste filtrée, triée par horodatage décroissant, paginée côté store."""
        base = select(self.model).where(*self._filter_clauses(filters))
        total = self._session.scalar(select(func.count()).select_from(base.subquery())) or 0
        stmt = (
            base.order_by(self._listing_order().desc(), self.model.id.asc())
            .offset(offset)
            .limit(limit)
        )
        return list(self._session.scalars(stmt)), int(total)

    def _filter_clauses(self, filters: SearchFilters) -> list:
        clauses = [self.model.is_deleted.is_(False)]
        if filters.start_date is not None:
            clauses.append(self.model.created_at >= filters.start_date)
        if filters.end_date is not None:
            clauses.append(self.model.created_at <= filters.end_date)
        return clauses

    def _listing_order(self):
        return self.model.updated_at

    # -------------------- Maintenance des embeddings --------------------

    def ids_for_backfill(self, only_missing: bool) -> list[str]:
        """Ids des entrées non supprimées à (ré)embarquer, ordre de création."""
        stmt = select(self.model.id).where(self.model.is_deleted.is_(False))
        if only_missing:
            stmt = stmt.where(self.model.embedding.is_(None))
        return list(self._session.scalars(stmt.order_by(self.model.created_at, self.model.id)))

    def clear_embeddings(self) -> int:
        """Met tous les embeddings à NULL; retourne le nombre de lignes touchées."""
        result = self._session.execute(update(self.model).values(embedding=None))
        return result.rowcount or 0

    def embedding_counts(self) -> dict[str, int]:
        """Nombre d'entrées non supprimées, avec et sans embedding."""
        not_deleted = self.model.is_deleted.is_(False)
        total = self._session.scalar(select(func.count()).where(not_deleted)) or 0
        missing = (
            self._session.scalar(
                select(func.count()).where(not_deleted, self.model.embedding.is_(None))
            )
            or 0
        )
        return {"total": int(total), "missing": int(missing), "embedded": int(total - missing)}

    def count_active(self) -> int:
        return int(
            self._session.scalar(
                select(func.count()).select_from(self.model).where(self.model.is_deleted.is_(False))
            )
            or 0
        )

    def _dialect(self) -> str:
        return self._session.get_bind().dialect.name


class QnARepository(EntryRepository[QnAEntry]):
    """Dépôt des entrées Q&A (filtres catégorie, étiquette, dates; tri par création)."""

    entity = ENTITY_QNA
    model = QnAEntry

    def _filter_clauses(self, filters: SearchFilters) -> list:
        clauses = super()._filter_clauses(filters)
        if filters.category_id:
            clauses.append(QnAEntry.categories.any(Category.id == filters.category_id))
        if filters.tag:
            clauses.append(QnAEntry.tags.any(Tag.name == filters.tag))
        return clauses

    def _listing_order(self):
        return QnAEntry.created_at

    def recent(self, since, limit: int) -> list[QnAEntry]:
        """Dernières Q&A créées depuis `since`."""
        stmt = (
            select(QnAEntry)
            .where(QnAEntry.is_deleted.is_(False), QnAEntry.created_at >= since)
            .order_by(QnAEntry.created_at.desc(), QnAEntry.id.asc())
            .limit(limit)
        )
        return list(self._session.scalars(stmt))


class ManualRepository(EntryRepository[Manual]):
    """Dépôt des manuels (filtres de dates; tri par dernière mise à jour)."""

    entity = ENTITY_MANUAL
    model = Manual
