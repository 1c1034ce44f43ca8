"""
Entités du domaine métier.

Ce module définit les modèles d'entrée des services (création, mise à jour, restauration) et
l'utilisateur authentifié transmis par la couche API.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from hrkb.domain.manual_versions import ChangeType


class User(BaseModel):
    """Utilisateur authentifié (jeton émis par le service d'identité)."""

    id: str
    email: str
    role: str


class QnAInput(BaseModel):
    """Données de création d'une Q&A."""

    question_title: str
    question_details: str
    answer: str | None = None
    answer_basis: str | None = None
    category_ids: list[str] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)


class QnAUpdate(BaseModel):
    """Mise à jour partielle d'une Q&A; un champ à None reste inchangé."""

    question_title: str | None = None
    question_details: str | None = None
    answer: str | None = None
    answer_basis: str | None = None
    category_ids: list[str] | None = None
    tags: list[str] | None = None


class ManualInput(BaseModel):
    """Données de création d'un manuel."""

    title: str
    content: str
    qna_ids: list[str] = Field(default_factory=list)


class ManualUpdate(BaseModel):
    """Mise à jour d'un manuel avec le type de changement de version."""

    title: str | None = None
    content: str | None = None
    change_type: ChangeType = "minor"
    change_log: str | None = None


class RevertInput(BaseModel):
    """Restauration vers une version existante du même manuel."""

    version_id: str


class CategoryInput(BaseModel):
    """Création d'une catégorie."""

    name: str
    description: str | None = None
    color: str | None = None
    display_order: int = 0


class CategoryPatch(BaseModel):
    """Mise à jour partielle d'une catégorie."""

    name: str | None = None
    description: str | None = None
    color: str | None = None
    display_order: int | None = None
    is_active: bool | None = None


class TagMergeInput(BaseModel):
    """Fusion d'une étiquette source dans une étiquette cible."""

    source_tag_id: str
    target_tag_id: str
