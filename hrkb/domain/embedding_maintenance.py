# ============================================================
# Module : hrkb/domain/embedding_maintenance.py
# Objet  : Synchronisation des embeddings avec les champs texte des entrées.
# Invariants :
#  - embedding est NULL ou calculé sur la concaténation exacte des TEXT_FIELDS.
#  - Backfill: une transaction courte par entrée ; un échec n'interrompt pas le lot.
#  - ConfigurationError n'est jamais absorbée (aucune entrée ne pourrait réussir).
# ============================================================
"""Maintenance des embeddings.

Deux usages:

- écriture unitaire: `compute()` fournit le vecteur avant l'écriture de l'entrée, si bien que le
  contenu et son embedding sont validés dans la même transaction;
- maintenance en masse: `backfill()` (entrées sans embedding, ou toutes), `clear()` avant une
  migration de modèle ou de dimension, et `status()` pour suivre l'avancement.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Literal

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from hrkb.app.metrics import EMBEDDING_BACKFILL_ITEMS
from hrkb.core.constants import ENTITY_MANUAL, ENTITY_QNA
from hrkb.domain.errors import ProviderError, ValidationError
from hrkb.infra.embeddings.base import EmbeddingProvider, LazyEmbeddingProvider
from hrkb.infra.repo.db import session_scope
from hrkb.infra.repo.entry_repo import EntryRepository, ManualRepository, QnARepository
from hrkb.infra.repo.models import EmbeddableMixin

log = structlog.get_logger(__name__)

BackfillMode = Literal["missing", "all"]

REPOSITORIES: dict[str, type[EntryRepository]] = {
    ENTITY_QNA: QnARepository,
    ENTITY_MANUAL: ManualRepository,
}


@dataclass
class BackfillReport:
    """Bilan d'un passage de backfill pour un type d'entrée."""

    entity: str
    mode: str
    scanned: int = 0
    updated: int = 0
    failed: int = 0
    skipped: int = 0
    cancelled: bool = False
    failed_ids: list[str] = field(default_factory=list)


def repository_for(kind: str) -> type[EntryRepository]:
    """Classe de dépôt associée à un type d'entrée.

    Raises:
        ValidationError: type inconnu.
    """
    try:
        return REPOSITORIES[kind]
    except KeyError:
        raise ValidationError(f"unknown entry kind: {kind!r}") from None


class EmbeddingMaintainer:
    """Calcule et persiste les embeddings des entrées."""

    def __init__(
        self, provider: EmbeddingProvider, session_factory: sessionmaker[Session] | None = None
    ) -> None:
        """Initialise le mainteneur.

        Args:
            provider: Fournisseur d'embeddings (paresseux en production).
            session_factory: Factory de sessions, requise pour les opérations de masse.
        """
        self.provider = provider
        self.session_factory = session_factory

    def compute(self, entry: EmbeddableMixin, **overrides: str | None) -> list[float]:
        """Vecteur de l'entrée, `overrides` remplaçant des champs texte pas encore écrits."""
        return self.provider.embed(entry.embedding_text(**overrides))

    def refresh(self, entry: EmbeddableMixin) -> list[float]:
        """Recalcule et affecte l'embedding à partir des champs texte courants."""
        entry.embedding = self.compute(entry)
        log.debug("embedding_refreshed", entity=type(entry).__name__, id=entry.id)
        return entry.embedding

    # -------------------- Opérations de masse --------------------

    def backfill(
        self,
        kind: str,
        mode: BackfillMode = "missing",
        stop_event: threading.Event | None = None,
    ) -> BackfillReport:
        """Calcule les embeddings manquants (`missing`) ou régénère tout (`all`).

        Les ids candidats sont figés au départ; chaque entrée est ensuite relue et écrite dans sa
        propre transaction. Une entrée supprimée entre-temps, ou déjà remplie par une écriture
        concurrente en mode `missing`, est ignorée. L'arrêt est vérifié entre deux entrées.

        Args:
            kind: `qna` ou `manual`.
            mode: `missing` ou `all`.
            stop_event: Signal d'annulation coopératif.

        Returns:
            BackfillReport: Compteurs du passage.

        Raises:
            ValidationError: type ou mode inconnu.
            ConfigurationError: identifiants du fournisseur absents.
        """
        if mode not in ("missing", "all"):
            raise ValidationError(f"unknown backfill mode: {mode!r}")
        repo_cls = repository_for(kind)
        factory = self._factory()
        only_missing = mode == "missing"
        with session_scope(factory) as session:
            ids = repo_cls(session).ids_for_backfill(only_missing)

        report = BackfillReport(entity=kind, mode=mode)
        log.info("embedding_backfill_started", entity=kind, mode=mode, candidates=len(ids))
        for entry_id in ids:
            if stop_event is not None and stop_event.is_set():
                report.cancelled = True
                break
            report.scanned += 1
            outcome = self._backfill_one(repo_cls, entry_id, only_missing)
            EMBEDDING_BACKFILL_ITEMS.labels(entity=kind, outcome=outcome).inc()
            if outcome == "updated":
                report.updated += 1
            elif outcome == "skipped":
                report.skipped += 1
            else:
                report.failed += 1
                report.failed_ids.append(entry_id)
        log.info(
            "embedding_backfill_done",
            entity=kind,
            mode=mode,
            scanned=report.scanned,
            updated=report.updated,
            failed=report.failed,
            skipped=report.skipped,
            cancelled=report.cancelled,
        )
        return report

    def _backfill_one(
        self, repo_cls: type[EntryRepository], entry_id: str, only_missing: bool
    ) -> str:
        try:
            with session_scope(self._factory()) as session:
                found = repo_cls(session).find_by_id(entry_id)
                if not found.ok:
                    return "skipped"
                entry = found.unwrap()
                if only_missing and entry.embedding is not None:
                    return "skipped"
                entry.embedding = self.compute(entry)
            return "updated"
        except (ProviderError, SQLAlchemyError) as exc:
            log.warning(
                "embedding_backfill_item_failed",
                entity=repo_cls.entity,
                id=entry_id,
                error=type(exc).__name__,
                detail=str(exc),
            )
            return "failed"

    def clear(self, kind: str) -> int:
        """Met à NULL tous les embeddings d'un type; retourne le nombre de lignes touchées.

        Le fournisseur est construit avant l'écriture: sans identifiants, rien n'est effacé.

        Raises:
            ConfigurationError: identifiants du fournisseur absents.
        """
        repo_cls = repository_for(kind)
        self.ensure_provider()
        with session_scope(self._factory()) as session:
            cleared = repo_cls(session).clear_embeddings()
        log.info("embedding_cleared", entity=kind, rows=cleared)
        return cleared

    def status(self) -> dict[str, dict[str, int]]:
        """Compteurs total/embedded/missing des entrées non supprimées, par type."""
        with session_scope(self._factory()) as session:
            return {
                kind: repo_cls(session).embedding_counts()
                for kind, repo_cls in REPOSITORIES.items()
            }

    def ensure_provider(self) -> None:
        """Construit le fournisseur paresseux s'il ne l'est pas encore (ConfigurationError sinon)."""
        if isinstance(self.provider, LazyEmbeddingProvider):
            self.provider.get()

    def _factory(self) -> sessionmaker[Session]:
        if self.session_factory is None:
            raise RuntimeError("EmbeddingMaintainer requires a session factory for bulk operations")
        return self.session_factory
