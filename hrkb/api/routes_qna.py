"""
Routes Q&A: recherche hybride, lecture, création, mise à jour et suppression logique.

La lecture est ouverte à tout utilisateur authentifié; l'écriture exige le rôle `hr_staff` ou
`admin`.
"""

from datetime import datetime

from fastapi import APIRouter, Depends

from hrkb.api.deps import get_current_user, get_qna_service, require_roles
from hrkb.api.schemas import MessageOut, PageMeta, QnAOut, QnAPage
from hrkb.core.constants import EDITOR_ROLES, HTTP_CREATED
from hrkb.core.container import container
from hrkb.domain.entities import QnAInput, QnAUpdate, User
from hrkb.domain.search_types import PageRequest, SearchFilters
from hrkb.domain.services import QnAService

router = APIRouter(prefix="/api/qna", tags=["qna"])
reader_dep = Depends(get_current_user)
editor_dep = Depends(require_roles(*EDITOR_ROLES))
service_dep = Depends(get_qna_service)


@router.get("", response_model=QnAPage)
def list_qna(
    q: str | None = None,
    page: int = 1,
    limit: int | None = None,
    category_id: str | None = None,
    tag: str | None = None,
    start_date: datetime | None = None,
    end_date: datetime | None = None,
    user: User = reader_dep,
    service: QnAService = service_dep,
):
    """
    Recherche hybride des Q&A, ou liste filtrée quand `q` est vide.

    Paramètres:
    - q: texte libre.
    - page, limit: pagination (limit par défaut 20, maximum 100).
    - category_id, tag, start_date, end_date: filtres exacts, appliqués dans les deux modes.

    Retour: `{data, meta: {total, page, limit, totalPages}}`.
    """
    settings = container.settings
    page_req = PageRequest.of(
        page, settings.DEFAULT_PAGE_SIZE if limit is None else limit, settings.MAX_PAGE_SIZE
    )
    filters = SearchFilters(
        category_id=category_id, tag=tag, start_date=start_date, end_date=end_date
    )
    result = service.search(q, filters, page_req)
    return QnAPage(
        data=[QnAOut.model_validate(e) for e in result.items], meta=PageMeta.of(result)
    )


@router.post("", response_model=QnAOut, status_code=HTTP_CREATED)
def create_qna(payload: QnAInput, user: User = editor_dep, service: QnAService = service_dep):
    """Crée une Q&A; l'embedding est calculé dans la même opération."""
    return QnAOut.model_validate(service.create(payload, user.id))


@router.get("/{entry_id}", response_model=QnAOut)
def get_qna(entry_id: str, user: User = reader_dep, service: QnAService = service_dep):
    """Retourne une Q&A et incrémente son compteur de vues."""
    return QnAOut.model_validate(service.get(entry_id))


@router.put("/{entry_id}", response_model=QnAOut)
def update_qna(
    entry_id: str,
    payload: QnAUpdate,
    user: User = editor_dep,
    service: QnAService = service_dep,
):
    """Met à jour une Q&A (champs absents inchangés)."""
    return QnAOut.model_validate(service.update(entry_id, payload, user.id))


@router.delete("/{entry_id}", response_model=MessageOut)
def delete_qna(entry_id: str, user: User = editor_dep, service: QnAService = service_dep):
    """Suppression logique d'une Q&A."""
    service.delete(entry_id, user.id)
    return MessageOut(message="Q&A deleted successfully")
