"""Résultat explicite pour les recherches par identifiant.

Les dépôts retournent un `Result` plutôt que `None` ou une exception: l'appelant décide au point
d'appel s'il traite l'absence ou la propage via `unwrap()`.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar

from hrkb.domain.errors import NotFoundError

T = TypeVar("T")


@dataclass(frozen=True)
class Result(Generic[T]):
    """Valeur trouvée ou `NotFoundError`."""

    value: T | None = None
    error: NotFoundError | None = None

    @classmethod
    def found(cls, value: T) -> Result[T]:
        """Construit un résultat porteur d'une valeur."""
        return cls(value=value)

    @classmethod
    def missing(cls, entity: str, entity_id: str) -> Result[T]:
        """Construit un résultat d'absence pour l'entité donnée."""
        return cls(error=NotFoundError(entity, entity_id))

    @property
    def ok(self) -> bool:
        """Vrai si une valeur est présente."""
        return self.error is None

    def unwrap(self) -> T:
        """Retourne la valeur ou lève l'erreur d'absence."""
        if self.error is not None:
            raise self.error
        return self.value  # type: ignore[return-value]
