# ============================================================
# Module : hrkb/domain/manual_versions.py
# Objet  : Arithmétique des numéros de version des manuels.
# Invariants :
#  - major: major + 1, minor remis à 0 ; minor: minor + 1, major conservé.
#  - Une restauration repart de la version courante, jamais de la cible.
# ============================================================

from __future__ import annotations

from typing import Literal

from hrkb.domain.errors import ValidationError

ChangeType = Literal["major", "minor"]

CHANGE_MAJOR: ChangeType = "major"
CHANGE_MINOR: ChangeType = "minor"


def next_version(major: int, minor: int, change_type: str) -> tuple[int, int]:
    """Numéro de version suivant pour un changement donné.

    Args:
        major: Version majeure courante.
        minor: Version mineure courante.
        change_type: `major` ou `minor`.

    Returns:
        tuple[int, int]: Couple (major, minor) de la nouvelle version.

    Raises:
        ValidationError: type de changement inconnu.
    """
    if change_type == CHANGE_MAJOR:
        return major + 1, 0
    if change_type == CHANGE_MINOR:
        return major, minor + 1
    raise ValidationError(f"change_type must be 'major' or 'minor', got {change_type!r}")


def revert_change_log(major: int, minor: int) -> str:
    """Journal de modification auto-généré d'une restauration."""
    return f"Reverted to v{major}.{minor}"
