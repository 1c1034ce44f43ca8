"""
Types de données pour la recherche hybride.

Ce module définit les filtres, la pagination et les résultats notés manipulés par le moteur de
recherche et exposés par la couche API.
"""

from __future__ import annotations

import math
from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from hrkb.domain.errors import ValidationError


class SearchFilters(BaseModel):
    """Contraintes exactes orthogonales à la recherche textuelle."""

    category_id: str | None = None
    tag: str | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None

    def is_empty(self) -> bool:
        """Vrai si aucun filtre n'est renseigné."""
        return not any(v is not None for v in self.model_dump().values())


class PageRequest(BaseModel):
    """Paramètres de pagination validés."""

    page: int = 1
    page_size: int = 20

    @classmethod
    def of(cls, page: int, page_size: int, max_page_size: int) -> PageRequest:
        """Valide puis construit la requête de page.

        Raises:
            ValidationError: page < 1, taille <= 0 ou au-delà du maximum.
        """
        if page < 1:
            raise ValidationError("page must be >= 1")
        if page_size <= 0:
            raise ValidationError("limit must be > 0")
        if page_size > max_page_size:
            raise ValidationError(f"limit must be <= {max_page_size}")
        return cls(page=page, page_size=page_size)

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size


class ScoredId(BaseModel):
    """Identifiant d'entrée et ses composantes de score."""

    id: str
    score: float
    vector: float = 0.0
    keyword: float = 0.0


class SearchPage(BaseModel):
    """Page de résultats ordonnés et total avant découpage."""

    items: list[Any] = Field(default_factory=list)
    total: int = 0
    page: int = 1
    page_size: int = 20

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.page_size) if self.page_size else 0
