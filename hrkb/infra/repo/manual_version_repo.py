# ============================================================
# Module : hrkb/infra/repo/manual_version_repo.py
# Objet  : Accès SQL (append-only) pour ManualVersion.
# ============================================================

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from hrkb.domain.result import Result
from hrkb.infra.repo.models import ManualVersion


class ManualVersionRepo:
    """Historique des versions de manuels: ajout et lecture uniquement."""

    def __init__(self, session: Session) -> None:
        """Construit le repo avec une session (SQLAlchemy)."""
        self._session = session

    def append(self, version: ManualVersion) -> ManualVersion:
        """Ajoute un instantané. Lève IntegrityError sur (manual_id, major, minor) en doublon."""
        self._session.add(version)
        self._session.flush()
        return version

    def find_by_id(self, version_id: str) -> Result[ManualVersion]:
        """Retourne une version par id."""
        row = self._session.get(ManualVersion, version_id)
        if row is None:
            return Result.missing("manual_version", version_id)
        return Result.found(row)

    def list_for_manual(self, manual_id: str) -> list[ManualVersion]:
        """Versions d'un manuel, les plus récentes d'abord."""
        stmt = (
            select(ManualVersion)
            .where(ManualVersion.manual_id == manual_id)
            .order_by(
                ManualVersion.created_at.desc(),
                ManualVersion.version_major.desc(),
                ManualVersion.version_minor.desc(),
            )
        )
        return list(self._session.scalars(stmt))

    def latest(self, manual_id: str) -> ManualVersion | None:
        """Dernière version par numéro (major, minor)."""
        stmt = (
            select(ManualVersion)
            .where(ManualVersion.manual_id == manual_id)
            .order_by(ManualVersion.version_major.desc(), ManualVersion.version_minor.desc())
            .limit(1)
        )
        return self._session.scalars(stmt).first()
