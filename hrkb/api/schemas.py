"""
Schémas Pydantic pour l'API.

Ce module définit les modèles de réponse exposés par les routes. Les entrées sont lues directement
depuis les modèles ORM (`from_attributes`); le vecteur d'embedding n'est jamais sérialisé, seule
sa présence (`has_embedding`) l'est.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict

from hrkb.domain.search_types import SearchPage


class ORMModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)


class CategoryOut(ORMModel):
    """Catégorie publique."""

    id: str
    name: str
    description: str | None = None
    color: str | None = None
    display_order: int
    is_active: bool


class CategoryUsageOut(CategoryOut):
    """Catégorie et nombre de Q&A liées (administration)."""

    qna_count: int


class TagOut(ORMModel):
    id: str
    name: str


class TagUsageOut(TagOut):
    usage_count: int


class QnAOut(ORMModel):
    """Entrée Q&A complète."""

    id: str
    question_title: str
    question_details: str
    answer: str | None = None
    answer_basis: str | None = None
    view_count: int
    last_viewed_at: datetime | None = None
    created_by_id: str | None = None
    updated_by_id: str | None = None
    created_at: datetime
    updated_at: datetime
    has_embedding: bool
    categories: list[CategoryOut] = []
    tags: list[TagOut] = []


class QnARefOut(ORMModel):
    id: str
    question_title: str


class ManualOut(ORMModel):
    """Manuel et sa version courante."""

    id: str
    title: str
    content: str
    version: str
    version_major: int
    version_minor: int
    created_by_id: str | None = None
    updated_by_id: str | None = None
    created_at: datetime
    updated_at: datetime
    has_embedding: bool


class ManualVersionOut(ORMModel):
    """Instantané d'historique."""

    id: str
    manual_id: str
    version: str
    version_major: int
    version_minor: int
    content: str
    change_type: str
    change_log: str | None = None
    created_by_id: str | None = None
    created_at: datetime


class ManualDetailOut(ManualOut):
    """Manuel, historique (plus récent d'abord) et Q&A sources."""

    versions: list[ManualVersionOut] = []
    qna_sources: list[QnARefOut] = []


class PageMeta(BaseModel):
    """Métadonnées de pagination (`totalPages = ceil(total / limit)`)."""

    total: int
    page: int
    limit: int
    totalPages: int  # noqa: N815

    @classmethod
    def of(cls, result: SearchPage) -> PageMeta:
        return cls(
            total=result.total,
            page=result.page,
            limit=result.page_size,
            totalPages=result.total_pages,
        )


class QnAPage(BaseModel):
    data: list[QnAOut]
    meta: PageMeta


class ManualPage(BaseModel):
    data: list[ManualOut]
    meta: PageMeta


class MessageOut(BaseModel):
    message: str


class RecentActivityOut(BaseModel):
    id: str
    question_title: str
    created_at: datetime


class StatsOut(BaseModel):
    """Statistiques d'administration."""

    total_qna: int
    total_manuals: int
    missing_embeddings: dict[str, int]
    recent_activity: list[RecentActivityOut]


class EmbeddingCountsOut(BaseModel):
    total: int
    embedded: int
    missing: int
