"""Services métier de la base de connaissances RH.

Chaque service est construit pour une requête avec la session SQLAlchemy de celle-ci: toutes les
écritures d'une opération (contenu, liens, embedding, version) sont validées ensemble par
`session_scope`. L'embedding est calculé avant toute écriture, si bien qu'un échec du fournisseur
laisse l'entrée inchangée.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import timedelta
from typing import Any

import structlog
from sqlalchemy.orm import Session

from hrkb.core.constants import (
    CHANGE_LOG_CREATED,
    CHANGE_LOG_UPDATED,
    INITIAL_VERSION,
    RECENT_ACTIVITY_DAYS,
    RECENT_ACTIVITY_LIMIT,
)
from hrkb.domain.embedding_maintenance import EmbeddingMaintainer
from hrkb.domain.entities import (
    CategoryInput,
    CategoryPatch,
    ManualInput,
    ManualUpdate,
    QnAInput,
    QnAUpdate,
    TagMergeInput,
)
from hrkb.domain.errors import ConflictError, NotFoundError, ValidationError
from hrkb.domain.hybrid_search import HybridSearchEngine, SearchConfig
from hrkb.domain.manual_versions import CHANGE_MAJOR, next_version, revert_change_log
from hrkb.domain.search_types import PageRequest, SearchFilters, SearchPage
from hrkb.infra.repo.entry_repo import ManualRepository, QnARepository
from hrkb.infra.repo.manual_version_repo import ManualVersionRepo
from hrkb.infra.repo.models import Category, Manual, ManualVersion, QnAEntry, Tag, utcnow
from hrkb.infra.repo.taxonomy_repo import CategoryRepo, TagRepo

log = structlog.get_logger(__name__)


def _require_text(value: str | None, field: str) -> str:
    if value is None or not value.strip():
        raise ValidationError(f"{field} is required")
    return value


class QnAService:
    """Cycle de vie et recherche des Q&A."""

    def __init__(
        self,
        session: Session,
        maintainer: EmbeddingMaintainer,
        config: SearchConfig | None = None,
    ) -> None:
        """Initialise le service.

        Args:
            session: Session de la requête.
            maintainer: Calcul des embeddings à l'écriture.
            config: Paramètres de classement de la recherche.
        """
        self.session = session
        self.repo = QnARepository(session)
        self.categories = CategoryRepo(session)
        self.tags = TagRepo(session)
        self.maintainer = maintainer
        self.engine = HybridSearchEngine(self.repo, maintainer.provider, config)

    def create(self, payload: QnAInput, user_id: str | None = None) -> QnAEntry:
        """Crée une Q&A avec ses catégories, étiquettes et son embedding.

        Raises:
            ValidationError: titre/détails vides ou catégorie inconnue.
            ProviderError: échec du calcul de l'embedding (rien n'est écrit).
        """
        _require_text(payload.question_title, "question_title")
        _require_text(payload.question_details, "question_details")
        categories = self._resolve_categories(payload.category_ids)

        now = utcnow()
        entry = QnAEntry(
            question_title=payload.question_title,
            question_details=payload.question_details,
            answer=payload.answer,
            answer_basis=payload.answer_basis,
            view_count=0,
            created_by_id=user_id,
            updated_by_id=user_id,
            created_at=now,
            updated_at=now,
        )
        entry.embedding = self.maintainer.compute(entry)
        entry.categories = categories
        entry.tags = self.tags.get_or_create(payload.tags)
        self.repo.add(entry)
        log.info("qna_created", id=entry.id, user=user_id)
        return entry

    def update(self, entry_id: str, payload: QnAUpdate, user_id: str | None = None) -> QnAEntry:
        """Met à jour une Q&A; l'embedding est recalculé si un champ texte change ou s'il manque.

        Raises:
            NotFoundError: entrée absente ou supprimée.
            ValidationError: titre/détails vidés ou catégorie inconnue.
            ProviderError: échec du recalcul (l'entrée reste inchangée).
        """
        entry = self.repo.find_by_id(entry_id).unwrap()
        changes = {
            f: getattr(payload, f) for f in QnAEntry.TEXT_FIELDS if getattr(payload, f) is not None
        }
        if "question_title" in changes:
            _require_text(changes["question_title"], "question_title")
        if "question_details" in changes:
            _require_text(changes["question_details"], "question_details")
        categories = (
            self._resolve_categories(payload.category_ids)
            if payload.category_ids is not None
            else None
        )

        text_changed = any(getattr(entry, f) != v for f, v in changes.items())
        embedding = None
        if text_changed or entry.embedding is None:
            embedding = self.maintainer.compute(entry, **changes)

        for f, v in changes.items():
            setattr(entry, f, v)
        if payload.answer_basis is not None:
            entry.answer_basis = payload.answer_basis
        if categories is not None:
            entry.categories = categories
        if payload.tags is not None:
            entry.tags = self.tags.get_or_create(payload.tags)
        if embedding is not None:
            entry.embedding = embedding
        entry.updated_at = utcnow()
        entry.updated_by_id = user_id
        self.session.flush()
        log.info("qna_updated", id=entry.id, user=user_id, reembedded=embedding is not None)
        return entry

    def get(self, entry_id: str) -> QnAEntry:
        """Lecture par id; incrémente le compteur de vues (pas `updated_at`).

        Raises:
            NotFoundError: entrée absente ou supprimée.
        """
        entry = self.repo.find_by_id(entry_id).unwrap()
        entry.view_count = QnAEntry.view_count + 1
        entry.last_viewed_at = utcnow()
        self.session.flush()
        self.session.refresh(entry, ["view_count"])
        return entry

    def delete(self, entry_id: str, user_id: str | None = None) -> None:
        """Suppression logique."""
        entry = self.repo.find_by_id(entry_id).unwrap()
        entry.is_deleted = True
        entry.deleted_at = utcnow()
        entry.deleted_by_id = user_id
        self.session.flush()
        log.info("qna_deleted", id=entry.id, user=user_id)

    def search(self, query: str | None, filters: SearchFilters, page: PageRequest) -> SearchPage:
        """Recherche hybride (ou liste filtrée si la requête est vide)."""
        return self.engine.search(query, filters, page)

    def _resolve_categories(self, category_ids: Sequence[str]) -> list[Category]:
        wanted = list(dict.fromkeys(category_ids))
        found = {c.id: c for c in self.categories.get_many(wanted)}
        unknown = [cid for cid in wanted if cid not in found]
        if unknown:
            raise ValidationError(f"unknown category: {', '.join(unknown)}")
        return [found[cid] for cid in wanted]


class ManualService:
    """Cycle de vie, historique de versions et recherche des manuels.

    La version courante d'un manuel est toujours égale à celle de son dernier instantané.
    """

    def __init__(
        self,
        session: Session,
        maintainer: EmbeddingMaintainer,
        config: SearchConfig | None = None,
    ) -> None:
        """Initialise le service avec la session de la requête."""
        self.session = session
        self.repo = ManualRepository(session)
        self.qna = QnARepository(session)
        self.versions_repo = ManualVersionRepo(session)
        self.maintainer = maintainer
        self.engine = HybridSearchEngine(self.repo, maintainer.provider, config)

    def create(self, payload: ManualInput, user_id: str | None = None) -> Manual:
        """Crée un manuel en version 1.0 avec son premier instantané.

        Raises:
            ValidationError: titre/contenu vides ou Q&A source inconnue.
            ProviderError: échec du calcul de l'embedding (rien n'est écrit).
        """
        _require_text(payload.title, "title")
        _require_text(payload.content, "content")
        wanted = list(dict.fromkeys(payload.qna_ids))
        sources = self.qna.get_many(wanted)
        unknown = [qid for qid in wanted if qid not in sources]
        if unknown:
            raise ValidationError(f"unknown Q&A source: {', '.join(unknown)}")

        major, minor = INITIAL_VERSION
        now = utcnow()
        manual = Manual(
            title=payload.title,
            content=payload.content,
            version_major=major,
            version_minor=minor,
            created_by_id=user_id,
            updated_by_id=user_id,
            created_at=now,
            updated_at=now,
        )
        manual.embedding = self.maintainer.compute(manual)
        manual.qna_sources = [sources[qid] for qid in wanted]
        self.repo.add(manual)
        self._snapshot(manual, CHANGE_MAJOR, CHANGE_LOG_CREATED, user_id)
        return manual

    def update(self, manual_id: str, payload: ManualUpdate, user_id: str | None = None) -> Manual:
        """Écrit un nouvel état courant et ajoute l'instantané correspondant.

        Raises:
            NotFoundError: manuel absent ou supprimé.
            ValidationError: titre/contenu vidés.
            ProviderError: échec du recalcul (aucune version créée).
        """
        manual = self.repo.find_by_id(manual_id).unwrap()
        title = manual.title if payload.title is None else _require_text(payload.title, "title")
        content = (
            manual.content if payload.content is None else _require_text(payload.content, "content")
        )
        major, minor = next_version(manual.version_major, manual.version_minor, payload.change_type)

        embedding = None
        if title != manual.title or content != manual.content or manual.embedding is None:
            embedding = self.maintainer.compute(manual, title=title, content=content)

        manual.title = title
        manual.content = content
        manual.version_major, manual.version_minor = major, minor
        if embedding is not None:
            manual.embedding = embedding
        manual.updated_at = utcnow()
        manual.updated_by_id = user_id
        self._snapshot(
            manual, payload.change_type, payload.change_log or CHANGE_LOG_UPDATED, user_id
        )
        return manual

    def revert(self, manual_id: str, version_id: str, user_id: str | None = None) -> Manual:
        """Restaure le contenu d'une version par copie vers l'avant (saut majeur).

        Le titre courant est conservé; seul le contenu est restauré.

        Raises:
            NotFoundError: manuel absent/supprimé, ou version d'un autre manuel.
            ProviderError: échec du recalcul (aucune version créée).
        """
        manual = self.repo.find_by_id(manual_id).unwrap()
        target = self.versions_repo.find_by_id(version_id).unwrap()
        if target.manual_id != manual.id:
            raise NotFoundError("manual_version", version_id)

        major, minor = next_version(manual.version_major, manual.version_minor, CHANGE_MAJOR)
        embedding = self.maintainer.compute(manual, content=target.content)

        manual.content = target.content
        manual.version_major, manual.version_minor = major, minor
        manual.embedding = embedding
        manual.updated_at = utcnow()
        manual.updated_by_id = user_id
        change_log = revert_change_log(target.version_major, target.version_minor)
        self._snapshot(manual, CHANGE_MAJOR, change_log, user_id)
        log.info("manual_reverted", id=manual.id, target=target.version, version=manual.version)
        return manual

    def get(self, manual_id: str) -> tuple[Manual, list[ManualVersion]]:
        """Manuel non supprimé et son historique (plus récent d'abord)."""
        manual = self.repo.find_by_id(manual_id).unwrap()
        return manual, self.versions_repo.list_for_manual(manual.id)

    def versions(self, manual_id: str) -> list[ManualVersion]:
        """Historique complet, y compris pour un manuel supprimé (audit)."""
        manual = self.repo.find_by_id(manual_id, include_deleted=True).unwrap()
        return self.versions_repo.list_for_manual(manual.id)

    def delete(self, manual_id: str, user_id: str | None = None) -> None:
        """Suppression logique; l'historique est conservé."""
        manual = self.repo.find_by_id(manual_id).unwrap()
        manual.is_deleted = True
        manual.deleted_at = utcnow()
        manual.deleted_by_id = user_id
        self.session.flush()
        log.info("manual_deleted", id=manual.id, user=user_id)

    def search(self, query: str | None, filters: SearchFilters, page: PageRequest) -> SearchPage:
        """Recherche hybride (ou liste filtrée si la requête est vide)."""
        return self.engine.search(query, filters, page)

    def _snapshot(
        self, manual: Manual, change_type: str, change_log: str, user_id: str | None
    ) -> ManualVersion:
        version = self.versions_repo.append(
            ManualVersion(
                manual_id=manual.id,
                version_major=manual.version_major,
                version_minor=manual.version_minor,
                content=manual.content,
                change_type=change_type,
                change_log=change_log,
                created_by_id=user_id,
                created_at=manual.updated_at,
            )
        )
        log.info(
            "manual_version_created",
            id=manual.id,
            version=version.version,
            change_type=change_type,
        )
        return version


class CategoryService:
    """Gestion des catégories (administration)."""

    def __init__(self, session: Session) -> None:
        """Construit le service avec la session de la requête."""
        self.repo = CategoryRepo(session)

    def list_active(self) -> list[Category]:
        return self.repo.list_active()

    def list_with_usage(self) -> list[tuple[Category, int]]:
        return self.repo.list_with_usage()

    def create(self, payload: CategoryInput) -> Category:
        """Crée une catégorie. Lève ConflictError si le nom est déjà pris."""
        name = _require_text(payload.name, "name").strip()
        if self.repo.name_taken(name):
            raise ConflictError("Category name already exists")
        return self.repo.save(
            Category(
                name=name,
                description=payload.description,
                color=payload.color,
                display_order=payload.display_order,
                is_active=True,
            )
        )

    def update(self, category_id: str, payload: CategoryPatch) -> Category:
        """Mise à jour partielle d'une catégorie."""
        category = self.repo.find_by_id(category_id).unwrap()
        fields = payload.model_dump(exclude_none=True)
        if "name" in fields:
            fields["name"] = _require_text(fields["name"], "name").strip()
            if self.repo.name_taken(fields["name"], exclude_id=category.id):
                raise ConflictError("Category name already exists")
        for key, value in fields.items():
            setattr(category, key, value)
        return self.repo.save(category)

    def delete(self, category_id: str) -> None:
        """Supprime une catégorie inutilisée.

        Raises:
            ConflictError: catégorie encore liée à des Q&A.
        """
        category = self.repo.find_by_id(category_id).unwrap()
        used = self.repo.usage_count(category.id)
        if used:
            raise ConflictError(f"Cannot delete category: used in {used} Q&A entries")
        self.repo.delete(category)


class TagService:
    """Gestion des étiquettes (administration)."""

    def __init__(self, session: Session) -> None:
        """Construit le service avec la session de la requête."""
        self.repo = TagRepo(session)

    def list_with_usage(self) -> list[tuple[Tag, int]]:
        return self.repo.list_with_usage()

    def merge(self, payload: TagMergeInput) -> int:
        """Fusionne `source` dans `target`; retourne le nombre de liens déplacés.

        Raises:
            ValidationError: id manquant ou source identique à la cible.
            NotFoundError: étiquette inconnue.
        """
        if not payload.source_tag_id or not payload.target_tag_id:
            raise ValidationError("Source and target tag IDs are required")
        if payload.source_tag_id == payload.target_tag_id:
            raise ValidationError("Source and target cannot be the same")
        source = self.repo.find_by_id(payload.source_tag_id).unwrap()
        target = self.repo.find_by_id(payload.target_tag_id).unwrap()
        moved = self.repo.merge(source, target)
        log.info("tags_merged", source=source.name, target=target.name, moved=moved)
        return moved

    def delete(self, tag_id: str) -> None:
        self.repo.delete(self.repo.find_by_id(tag_id).unwrap())


def collect_stats(session: Session) -> dict[str, Any]:
    """Statistiques d'administration: volumes, embeddings manquants, activité récente."""
    qna = QnARepository(session)
    manuals = ManualRepository(session)
    since = utcnow() - timedelta(days=RECENT_ACTIVITY_DAYS)
    return {
        "total_qna": qna.count_active(),
        "total_manuals": manuals.count_active(),
        "missing_embeddings": {
            qna.entity: qna.embedding_counts()["missing"],
            manuals.entity: manuals.embedding_counts()["missing"],
        },
        "recent_activity": [
            {"id": e.id, "question_title": e.question_title, "created_at": e.created_at}
            for e in qna.recent(since, RECENT_ACTIVITY_LIMIT)
        ],
    }
