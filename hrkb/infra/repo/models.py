"""SQLAlchemy models for the knowledge base (Q&A, manuals, versions, taxonomy)."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime

from pgvector.sqlalchemy import Vector
from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, relationship
from sqlalchemy.types import TypeDecorator

from hrkb.core.constants import EMBEDDING_DIMENSIONS


def new_id() -> str:
    """Identifiant UUID4 sous forme de chaîne."""
    return str(uuid.uuid4())


def utcnow() -> datetime:
    """Horodatage UTC courant."""
    return datetime.now(UTC)


class Base(DeclarativeBase):
    """Classe de base pour tous les modèles SQLAlchemy."""

    metadata = MetaData()


class EmbeddingVector(TypeDecorator):
    """Colonne d'embedding: `vector(n)` pgvector sur PostgreSQL, JSON ailleurs.

    Les valeurs sont toujours exposées en `list[float]` côté Python, quel que soit le dialecte.
    """

    impl = JSON
    cache_ok = True

    def __init__(self, dim: int = EMBEDDING_DIMENSIONS) -> None:
        """Construit le type pour des vecteurs de dimension `dim`."""
        super().__init__(none_as_null=True)
        self.dim = dim

    def load_dialect_impl(self, dialect):
        """Choisit le type natif selon le dialecte."""
        if dialect.name == "postgresql":
            return dialect.type_descriptor(Vector(self.dim))
        return dialect.type_descriptor(JSON(none_as_null=True))

    def process_bind_param(self, value, dialect):
        """Convertit le vecteur en liste de flottants avant écriture."""
        if value is None:
            return None
        return [float(x) for x in value]

    def process_result_value(self, value, dialect):
        """Retourne une liste de flottants (pgvector renvoie un tableau numpy)."""
        if value is None:
            return None
        return [float(x) for x in value]

    def compare_values(self, x, y):
        """Comparaison élément par élément (évite la vérité ambiguë des tableaux)."""
        if x is None or y is None:
            return x is y
        return list(x) == list(y)


qna_categories = Table(
    "qna_categories",
    Base.metadata,
    Column("qna_id", String(36), ForeignKey("qna_entries.id", ondelete="CASCADE"), primary_key=True),
    Column(
        "category_id", String(36), ForeignKey("categories.id", ondelete="CASCADE"), primary_key=True
    ),
)

qna_tags = Table(
    "qna_tags",
    Base.metadata,
    Column("qna_id", String(36), ForeignKey("qna_entries.id", ondelete="CASCADE"), primary_key=True),
    Column("tag_id", String(36), ForeignKey("tags.id", ondelete="CASCADE"), primary_key=True),
)

manual_qna_sources = Table(
    "manual_qna_sources",
    Base.metadata,
    Column("manual_id", String(36), ForeignKey("manuals.id", ondelete="CASCADE"), primary_key=True),
    Column("qna_id", String(36), ForeignKey("qna_entries.id", ondelete="CASCADE"), primary_key=True),
)


class EmbeddableMixin:
    """Entrée dont les champs texte forment le document embarqué."""

    TEXT_FIELDS: tuple[str, ...] = ()

    @property
    def has_embedding(self) -> bool:
        return self.embedding is not None

    def embedding_text(self, **overrides: str | None) -> str:
        """Concatène les champs texte par une espace; `overrides` remplace des valeurs."""
        values = (overrides[f] if f in overrides else getattr(self, f) for f in self.TEXT_FIELDS)
        return " ".join(v or "" for v in values)


class Category(Base):
    """Catégorie de Q&A (gérée par les administrateurs)."""

    __tablename__ = "categories"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String(100), nullable=False, unique=True)
    description = Column(Text, nullable=True)
    color = Column(String(32), nullable=True)
    display_order = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)


class Tag(Base):
    """Étiquette libre, créée à la volée par nom."""

    __tablename__ = "tags"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String(100), nullable=False, unique=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)


class QnAEntry(EmbeddableMixin, Base):
    """Entrée questions/réponses indexée pour la recherche."""

    __tablename__ = "qna_entries"

    TEXT_FIELDS = ("question_title", "question_details", "answer")
    KEYWORD_FIELDS = ("question_title", "question_details", "answer")

    id = Column(String(36), primary_key=True, default=new_id)
    question_title = Column(String(500), nullable=False)
    question_details = Column(Text, nullable=False)
    answer = Column(Text, nullable=True)
    answer_basis = Column(Text, nullable=True)
    view_count = Column(Integer, nullable=False, default=0)
    last_viewed_at = Column(DateTime(timezone=True), nullable=True)
    created_by_id = Column(String(64), nullable=True)
    updated_by_id = Column(String(64), nullable=True)
    is_deleted = Column(Boolean, nullable=False, default=False, index=True)
    deleted_at = Column(DateTime(timezone=True), nullable=True)
    deleted_by_id = Column(String(64), nullable=True)
    embedding = Column(EmbeddingVector(EMBEDDING_DIMENSIONS), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    categories = relationship(
        "Category", secondary=qna_categories, lazy="selectin", order_by="Category.display_order"
    )
    tags = relationship("Tag", secondary=qna_tags, lazy="selectin", order_by="Tag.name")


class Manual(EmbeddableMixin, Base):
    """Manuel de processus versionné."""

    __tablename__ = "manuals"

    TEXT_FIELDS = ("title", "content")
    KEYWORD_FIELDS = ("title", "content")

    id = Column(String(36), primary_key=True, default=new_id)
    title = Column(String(500), nullable=False)
    content = Column(Text, nullable=False)
    version_major = Column(Integer, nullable=False, default=1)
    version_minor = Column(Integer, nullable=False, default=0)
    created_by_id = Column(String(64), nullable=True)
    updated_by_id = Column(String(64), nullable=True)
    is_deleted = Column(Boolean, nullable=False, default=False, index=True)
    deleted_at = Column(DateTime(timezone=True), nullable=True)
    deleted_by_id = Column(String(64), nullable=True)
    embedding = Column(EmbeddingVector(EMBEDDING_DIMENSIONS), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    qna_sources = relationship("QnAEntry", secondary=manual_qna_sources, lazy="selectin")

    @property
    def version(self) -> str:
        return f"{self.version_major}.{self.version_minor}"


class ManualVersion(Base):
    """Instantané immuable du contenu d'un manuel."""

    __tablename__ = "manual_versions"

    id = Column(String(36), primary_key=True, default=new_id)
    manual_id = Column(String(36), ForeignKey("manuals.id"), nullable=False, index=True)
    version_major = Column(Integer, nullable=False)
    version_minor = Column(Integer, nullable=False)
    content = Column(Text, nullable=False)
    change_type = Column(String(16), nullable=False)
    change_log = Column(Text, nullable=True)
    created_by_id = Column(String(64), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    __table_args__ = (
        UniqueConstraint("manual_id", "version_major", "version_minor", name="uq_manual_version"),
    )

    @property
    def version(self) -> str:
        return f"{self.version_major}.{self.version_minor}"
