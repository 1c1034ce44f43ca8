"""Dépôts des catégories et étiquettes associées aux Q&A."""

from __future__ import annotations

from collections.abc import Sequence

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from hrkb.domain.errors import ConflictError
from hrkb.domain.result import Result
from hrkb.infra.repo.models import Category, Tag, qna_categories, qna_tags


class CategoryRepo:
    """CRUD des catégories."""

    def __init__(self, session: Session) -> None:
        """Construit le repo avec une session (SQLAlchemy)."""
        self._session = session

    def find_by_id(self, category_id: str) -> Result[Category]:
        row = self._session.get(Category, category_id)
        if row is None:
            return Result.missing("category", category_id)
        return Result.found(row)

    def get_many(self, ids: Sequence[str]) -> list[Category]:
        if not ids:
            return []
        return list(self._session.scalars(select(Category).where(Category.id.in_(ids))))

    def list_active(self) -> list[Category]:
        stmt = (
            select(Category)
            .where(Category.is_active.is_(True))
            .order_by(Category.display_order, Category.name)
        )
        return list(self._session.scalars(stmt))

    def list_with_usage(self) -> list[tuple[Category, int]]:
        """Toutes les catégories avec leur nombre de Q&A liées."""
        usage = func.count(qna_categories.c.qna_id)
        stmt = (
            select(Category, usage)
            .outerjoin(qna_categories, qna_categories.c.category_id == Category.id)
            .group_by(Category.id)
            .order_by(Category.display_order, Category.name)
        )
        return [(row[0], int(row[1])) for row in self._session.execute(stmt)]

    def usage_count(self, category_id: str) -> int:
        stmt = select(func.count()).where(qna_categories.c.category_id == category_id)
        return int(self._session.scalar(stmt) or 0)

    def save(self, category: Category) -> Category:
        """Écrit la catégorie. Lève ConflictError si le nom existe déjà."""
        self._session.add(category)
        try:
            self._session.flush()
        except IntegrityError as exc:
            self._session.rollback()
            raise ConflictError("Category name already exists") from exc
        return category

    def name_taken(self, name: str, exclude_id: str | None = None) -> bool:
        stmt = select(Category.id).where(Category.name == name)
        if exclude_id:
            stmt = stmt.where(Category.id != exclude_id)
        return self._session.scalars(stmt).first() is not None

    def delete(self, category: Category) -> None:
        self._session.delete(category)
        self._session.flush()


class TagRepo:
    """Étiquettes: création à la volée, fusion et suppression."""

    def __init__(self, session: Session) -> None:
        """Construit le repo avec une session (SQLAlchemy)."""
        self._session = session

    def find_by_id(self, tag_id: str) -> Result[Tag]:
        row = self._session.get(Tag, tag_id)
        if row is None:
            return Result.missing("tag", tag_id)
        return Result.found(row)

    def get_or_create(self, names: Sequence[str]) -> list[Tag]:
        """Retourne les étiquettes par nom, en créant celles qui manquent (ordre des noms)."""
        wanted = list(dict.fromkeys(n.strip() for n in names if n and n.strip()))
        if not wanted:
            return []
        existing = {
            t.name: t for t in self._session.scalars(select(Tag).where(Tag.name.in_(wanted)))
        }
        tags: list[Tag] = []
        for name in wanted:
            tag = existing.get(name)
            if tag is None:
                tag = Tag(name=name)
                self._session.add(tag)
            tags.append(tag)
        self._session.flush()
        return tags

    def list_with_usage(self) -> list[tuple[Tag, int]]:
        """Étiquettes triées par nombre d'usages décroissant."""
        usage = func.count(qna_tags.c.qna_id)
        stmt = (
            select(Tag, usage)
            .outerjoin(qna_tags, qna_tags.c.tag_id == Tag.id)
            .group_by(Tag.id)
            .order_by(usage.desc(), Tag.name)
        )
        return [(row[0], int(row[1])) for row in self._session.execute(stmt)]

    def merge(self, source: Tag, target: Tag) -> int:
        """Déplace les liens de `source` vers `target` puis supprime `source`.

        Les Q&A portant déjà `target` perdent simplement le lien `source`.

        Returns:
            int: Nombre de liens déplacés.
        """
        target_qna = set(
            self._session.scalars(select(qna_tags.c.qna_id).where(qna_tags.c.tag_id == target.id))
        )
        source_qna = set(
            self._session.scalars(select(qna_tags.c.qna_id).where(qna_tags.c.tag_id == source.id))
        )
        moved = source_qna - target_qna
        if moved:
            self._session.execute(
                update(qna_tags)
                .where(qna_tags.c.tag_id == source.id, qna_tags.c.qna_id.in_(moved))
                .values(tag_id=target.id)
            )
        self.delete(source)
        return len(moved)

    def delete(self, tag: Tag) -> None:
        """Supprime l'étiquette et ses liens."""
        self._session.execute(delete(qna_tags).where(qna_tags.c.tag_id == tag.id))
        self._session.delete(tag)
        self._session.flush()
        self._session.expire_all()
