"""
Taxonomie des erreurs du domaine.

Chaque erreur opérationnelle (création, mise à jour, recherche) remonte à l'appelant sous l'un de ces
types; la couche API les traduit en réponses HTTP avec une enveloppe standard.
"""

from __future__ import annotations


class KnowledgeBaseError(Exception):
    """Erreur de base de l'application."""

    code = "KB_ERROR"

    def __init__(self, message: str) -> None:
        """Initialise l'erreur avec un message lisible côté client."""
        super().__init__(message)
        self.message = message


class ConfigurationError(KnowledgeBaseError):
    """Identifiants du fournisseur d'embeddings absents au premier usage."""

    code = "CONFIGURATION_ERROR"


class ProviderError(KnowledgeBaseError):
    """Appel au fournisseur d'embeddings en échec, expiré ou sans vecteur."""

    code = "PROVIDER_ERROR"


class NotFoundError(KnowledgeBaseError):
    """Enregistrement introuvable ou supprimé logiquement."""

    code = "NOT_FOUND"

    def __init__(self, entity: str, entity_id: str) -> None:
        """Construit l'erreur pour une entité et un identifiant donnés."""
        super().__init__(f"{entity} not found")
        self.entity = entity
        self.entity_id = entity_id


class ValidationError(KnowledgeBaseError):
    """Paramètres invalides, rejetés avant tout appel au store ou au fournisseur."""

    code = "VALIDATION_ERROR"


class ConflictError(KnowledgeBaseError):
    """Collision sur un champ unique ou suppression refusée car encore référencée."""

    code = "CONFLICT"
