"""
Routes des manuels: recherche hybride, historique de versions et restauration.

Chaque écriture (création, mise à jour, restauration) ajoute un instantané à l'historique; la
suppression est logique et laisse l'historique consultable.
"""

from datetime import datetime

from fastapi import APIRouter, Depends

from hrkb.api.deps import get_current_user, get_manual_service, require_roles
from hrkb.api.schemas import (
    ManualDetailOut,
    ManualOut,
    ManualPage,
    ManualVersionOut,
    MessageOut,
    PageMeta,
    QnARefOut,
)
from hrkb.core.constants import EDITOR_ROLES, HTTP_CREATED
from hrkb.core.container import container
from hrkb.domain.entities import ManualInput, ManualUpdate, RevertInput, User
from hrkb.domain.search_types import PageRequest, SearchFilters
from hrkb.domain.services import ManualService

router = APIRouter(prefix="/api/manuals", tags=["manuals"])
reader_dep = Depends(get_current_user)
editor_dep = Depends(require_roles(*EDITOR_ROLES))
service_dep = Depends(get_manual_service)


@router.get("", response_model=ManualPage)
def list_manuals(
    q: str | None = None,
    page: int = 1,
    limit: int | None = None,
    start_date: datetime | None = None,
    end_date: datetime | None = None,
    user: User = reader_dep,
    service: ManualService = service_dep,
):
    """Recherche hybride des manuels, ou liste par dernière mise à jour quand `q` est vide."""
    settings = container.settings
    page_req = PageRequest.of(
        page, settings.DEFAULT_PAGE_SIZE if limit is None else limit, settings.MAX_PAGE_SIZE
    )
    result = service.search(q, SearchFilters(start_date=start_date, end_date=end_date), page_req)
    return ManualPage(
        data=[ManualOut.model_validate(m) for m in result.items], meta=PageMeta.of(result)
    )


@router.post("", response_model=ManualOut, status_code=HTTP_CREATED)
def create_manual(
    payload: ManualInput, user: User = editor_dep, service: ManualService = service_dep
):
    """Crée un manuel en version 1.0."""
    return ManualOut.model_validate(service.create(payload, user.id))


@router.get("/{manual_id}", response_model=ManualDetailOut)
def get_manual(manual_id: str, user: User = reader_dep, service: ManualService = service_dep):
    """Détail d'un manuel avec son historique et ses Q&A sources."""
    manual, versions = service.get(manual_id)
    return ManualDetailOut(
        **ManualOut.model_validate(manual).model_dump(),
        versions=[ManualVersionOut.model_validate(v) for v in versions],
        qna_sources=[QnARefOut.model_validate(q) for q in manual.qna_sources if not q.is_deleted],
    )


@router.put("/{manual_id}", response_model=ManualOut)
def update_manual(
    manual_id: str,
    payload: ManualUpdate,
    user: User = editor_dep,
    service: ManualService = service_dep,
):
    """Nouvelle version (`change_type` major|minor, minor par défaut)."""
    return ManualOut.model_validate(service.update(manual_id, payload, user.id))


@router.get("/{manual_id}/versions", response_model=list[ManualVersionOut])
def list_versions(manual_id: str, user: User = reader_dep, service: ManualService = service_dep):
    """Historique des versions, disponible aussi pour un manuel supprimé."""
    return [ManualVersionOut.model_validate(v) for v in service.versions(manual_id)]


@router.post("/{manual_id}/revert", response_model=ManualOut)
def revert_manual(
    manual_id: str,
    payload: RevertInput,
    user: User = editor_dep,
    service: ManualService = service_dep,
):
    """Restaure le contenu d'une version (nouvelle version majeure, titre conservé)."""
    return ManualOut.model_validate(service.revert(manual_id, payload.version_id, user.id))


@router.delete("/{manual_id}", response_model=MessageOut)
def delete_manual(manual_id: str, user: User = editor_dep, service: ManualService = service_dep):
    """Suppression logique d'un manuel."""
    service.delete(manual_id, user.id)
    return MessageOut(message="Manual deleted successfully")
