"""
Endpoint de santé pour vérifier la disponibilité de l'API et du stockage.

Expose `/health`; ne construit jamais le fournisseur d'embeddings (une clé absente ne rend pas
l'application indisponible).
"""


from fastapi import APIRouter

from hrkb.core.container import container

router = APIRouter(tags=["health"])


@router.get("/health")
def health():
    """Vérifie la disponibilité de l'API et le backend de stockage."""
    return {
        "status": "ok",
        "storage": container.storage_backend,
        "embeddings_configured": bool(container.settings.OPENAI_API_KEY),
        "embeddings_initialized": container.embeddings.initialized,
    }
