"""
Routes d'administration: catégories, étiquettes, statistiques et état des embeddings.

Toutes les routes exigent le rôle `admin`.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from hrkb.api.deps import (
    get_category_service,
    get_maintainer,
    get_session,
    get_tag_service,
    require_roles,
)
from hrkb.api.schemas import (
    CategoryOut,
    CategoryUsageOut,
    EmbeddingCountsOut,
    MessageOut,
    StatsOut,
    TagUsageOut,
)
from hrkb.core.constants import HTTP_CREATED, ROLE_ADMIN
from hrkb.domain.embedding_maintenance import REPOSITORIES, EmbeddingMaintainer
from hrkb.domain.entities import CategoryInput, CategoryPatch, TagMergeInput
from hrkb.domain.services import CategoryService, TagService, collect_stats

router = APIRouter(
    prefix="/api/admin", tags=["admin"], dependencies=[Depends(require_roles(ROLE_ADMIN))]
)
category_dep = Depends(get_category_service)
tag_dep = Depends(get_tag_service)


@router.get("/categories", response_model=list[CategoryUsageOut])
def list_categories(service: CategoryService = category_dep):
    """Toutes les catégories (actives ou non) avec leur nombre de Q&A."""
    return [
        CategoryUsageOut(**CategoryOut.model_validate(c).model_dump(), qna_count=count)
        for c, count in service.list_with_usage()
    ]


@router.post("/categories", response_model=CategoryOut, status_code=HTTP_CREATED)
def create_category(payload: CategoryInput, service: CategoryService = category_dep):
    """Crée une catégorie (409 si le nom existe déjà)."""
    return CategoryOut.model_validate(service.create(payload))


@router.patch("/categories/{category_id}", response_model=CategoryOut)
def update_category(
    category_id: str, payload: CategoryPatch, service: CategoryService = category_dep
):
    return CategoryOut.model_validate(service.update(category_id, payload))


@router.delete("/categories/{category_id}", response_model=MessageOut)
def delete_category(category_id: str, service: CategoryService = category_dep):
    """Supprime une catégorie inutilisée (409 sinon)."""
    service.delete(category_id)
    return MessageOut(message="Category deleted successfully")


@router.get("/tags", response_model=list[TagUsageOut])
def list_tags(service: TagService = tag_dep):
    """Étiquettes, les plus utilisées d'abord."""
    return [
        TagUsageOut(id=t.id, name=t.name, usage_count=count)
        for t, count in service.list_with_usage()
    ]


@router.post("/tags/merge", response_model=MessageOut)
def merge_tags(payload: TagMergeInput, service: TagService = tag_dep):
    moved = service.merge(payload)
    return MessageOut(message=f"Tags merged successfully ({moved} links moved)")


@router.delete("/tags/{tag_id}", response_model=MessageOut)
def delete_tag(tag_id: str, service: TagService = tag_dep):
    service.delete(tag_id)
    return MessageOut(message="Tag deleted successfully")


@router.get("/stats", response_model=StatsOut)
def stats(session: Session = Depends(get_session)):
    """Volumes, embeddings manquants et activité des 7 derniers jours."""
    return StatsOut(**collect_stats(session))


@router.get("/embeddings/status", response_model=dict[str, EmbeddingCountsOut])
def embeddings_status(maintainer: EmbeddingMaintainer = Depends(get_maintainer)):
    """Nombre d'entrées avec et sans embedding, par type."""
    counts = maintainer.status()
    return {kind: EmbeddingCountsOut(**counts[kind]) for kind in REPOSITORIES}
