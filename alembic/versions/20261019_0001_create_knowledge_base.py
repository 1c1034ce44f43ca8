# mypy: ignore-errors
"""
Migration Alembic initiale de la base de connaissances.

Crée les tables des catégories, étiquettes, Q&A, manuels et versions de manuels, ainsi que les
tables d'association. Sur PostgreSQL, active l'extension `vector` (pgvector) utilisée par les
colonnes d'embedding.
"""

from __future__ import annotations

import sqlalchemy as sa

from alembic import op
from hrkb.core.constants import EMBEDDING_DIMENSIONS
from hrkb.infra.repo.models import EmbeddingVector

# revision identifiers, used by Alembic.
revision = "20261019_0001"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    ]


def _soft_delete() -> list[sa.Column]:
    return [
        sa.Column("is_deleted", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("deleted_by_id", sa.String(length=64), nullable=True),
    ]


def upgrade() -> None:
    """Crée le schéma complet."""
    if op.get_bind().dialect.name == "postgresql":
        op.execute("CREATE EXTENSION IF NOT EXISTS vector")

    op.create_table(
        "categories",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("name", sa.String(length=100), nullable=False, unique=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("color", sa.String(length=32), nullable=True),
        sa.Column("display_order", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_table(
        "tags",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("name", sa.String(length=100), nullable=False, unique=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_table(
        "qna_entries",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("question_title", sa.String(length=500), nullable=False),
        sa.Column("question_details", sa.Text(), nullable=False),
        sa.Column("answer", sa.Text(), nullable=True),
        sa.Column("answer_basis", sa.Text(), nullable=True),
        sa.Column("view_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("last_viewed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_by_id", sa.String(length=64), nullable=True),
        sa.Column("updated_by_id", sa.String(length=64), nullable=True),
        *_soft_delete(),
        sa.Column("embedding", EmbeddingVector(EMBEDDING_DIMENSIONS), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_qna_entries_is_deleted", "qna_entries", ["is_deleted"])
    op.create_table(
        "manuals",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("title", sa.String(length=500), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("version_major", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("version_minor", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_by_id", sa.String(length=64), nullable=True),
        sa.Column("updated_by_id", sa.String(length=64), nullable=True),
        *_soft_delete(),
        sa.Column("embedding", EmbeddingVector(EMBEDDING_DIMENSIONS), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_manuals_is_deleted", "manuals", ["is_deleted"])
    op.create_table(
        "manual_versions",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("manual_id", sa.String(length=36), sa.ForeignKey("manuals.id"), nullable=False),
        sa.Column("version_major", sa.Integer(), nullable=False),
        sa.Column("version_minor", sa.Integer(), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("change_type", sa.String(length=16), nullable=False),
        sa.Column("change_log", sa.Text(), nullable=True),
        sa.Column("created_by_id", sa.String(length=64), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint(
            "manual_id", "version_major", "version_minor", name="uq_manual_version"
        ),
    )
    op.create_index("ix_manual_versions_manual_id", "manual_versions", ["manual_id"])
    op.create_table(
        "qna_categories",
        sa.Column(
            "qna_id",
            sa.String(length=36),
            sa.ForeignKey("qna_entries.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column(
            "category_id",
            sa.String(length=36),
            sa.ForeignKey("categories.id", ondelete="CASCADE"),
            primary_key=True,
        ),
    )
    op.create_table(
        "qna_tags",
        sa.Column(
            "qna_id",
            sa.String(length=36),
            sa.ForeignKey("qna_entries.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column(
            "tag_id",
            sa.String(length=36),
            sa.ForeignKey("tags.id", ondelete="CASCADE"),
            primary_key=True,
        ),
    )
    op.create_table(
        "manual_qna_sources",
        sa.Column(
            "manual_id",
            sa.String(length=36),
            sa.ForeignKey("manuals.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column(
            "qna_id",
            sa.String(length=36),
            sa.ForeignKey("qna_entries.id", ondelete="CASCADE"),
            primary_key=True,
        ),
    )


def downgrade() -> None:
    """Supprime le schéma (l'extension `vector` est conservée)."""
    op.drop_table("manual_qna_sources")
    op.drop_table("qna_tags")
    op.drop_table("qna_categories")
    op.drop_index("ix_manual_versions_manual_id", table_name="manual_versions")
    op.drop_table("manual_versions")
    op.drop_index("ix_manuals_is_deleted", table_name="manuals")
    op.drop_table("manuals")
    op.drop_index("ix_qna_entries_is_deleted", table_name="qna_entries")
    op.drop_table("qna_entries")
    op.drop_table("tags")
    op.drop_table("categories")
