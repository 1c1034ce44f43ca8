"""Route publique des catégories actives (filtres de recherche côté client)."""

from fastapi import APIRouter, Depends

from hrkb.api.deps import get_category_service, get_current_user
from hrkb.api.schemas import CategoryOut
from hrkb.domain.entities import User
from hrkb.domain.services import CategoryService

router = APIRouter(prefix="/api/categories", tags=["categories"])


@router.get("", response_model=list[CategoryOut])
def list_categories(
    user: User = Depends(get_current_user),
    service: CategoryService = Depends(get_category_service),
):
    """Catégories actives, par ordre d'affichage."""
    return [CategoryOut.model_validate(c) for c in service.list_active()]
