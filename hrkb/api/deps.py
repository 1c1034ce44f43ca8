"""Dépendances partagées pour les routes de l'API.

But du module
-------------
- Ouvrir une session par requête (validée en sortie, annulée sur erreur).
- Authentifier l'appelant (jeton Bearer) et vérifier son rôle.
- Construire les services à partir du conteneur; chaque fabrique peut être remplacée via
  `app.dependency_overrides` (tests).
"""

from __future__ import annotations

from collections.abc import Callable, Iterator

from fastapi import Depends, Header, HTTPException
from sqlalchemy.orm import Session, sessionmaker

from hrkb.core.constants import HTTP_FORBIDDEN, HTTP_UNAUTHORIZED
from hrkb.core.container import container
from hrkb.domain.auth import decode_token
from hrkb.domain.embedding_maintenance import EmbeddingMaintainer
from hrkb.domain.entities import User
from hrkb.domain.hybrid_search import SearchConfig
from hrkb.domain.services import CategoryService, ManualService, QnAService, TagService
from hrkb.infra.repo.db import session_scope


def get_session_factory() -> sessionmaker[Session]:
    return container.session_factory


def get_session(factory: sessionmaker[Session] = Depends(get_session_factory)) -> Iterator[Session]:
    """Session transactionnelle de la requête."""
    with session_scope(factory) as session:
        yield session


def get_maintainer() -> EmbeddingMaintainer:
    return container.maintainer


def get_search_config() -> SearchConfig:
    return container.search_config


def get_current_user(authorization: str = Header(None)) -> User:
    """Extrait et valide l'utilisateur courant à partir du token d'autorisation."""
    if not authorization or not authorization.lower().startswith("bearer "):
        raise HTTPException(status_code=HTTP_UNAUTHORIZED, detail="missing_token")
    token = authorization.split(" ", 1)[1]
    data = decode_token(token, container.settings.JWT_SECRET, container.settings.JWT_ALG)
    if not data:
        raise HTTPException(status_code=HTTP_UNAUTHORIZED, detail="invalid_token")
    return User(id=data.sub, email=data.email, role=data.role)


def require_roles(*roles: str) -> Callable[..., User]:
    """Dépendance exigeant l'un des rôles donnés (403 sinon)."""

    def _check(user: User = Depends(get_current_user)) -> User:
        if user.role not in roles:
            raise HTTPException(status_code=HTTP_FORBIDDEN, detail="insufficient_role")
        return user

    return _check


def get_qna_service(
    session: Session = Depends(get_session),
    maintainer: EmbeddingMaintainer = Depends(get_maintainer),
    config: SearchConfig = Depends(get_search_config),
) -> QnAService:
    return QnAService(session, maintainer, config)


def get_manual_service(
    session: Session = Depends(get_session),
    maintainer: EmbeddingMaintainer = Depends(get_maintainer),
    config: SearchConfig = Depends(get_search_config),
) -> ManualService:
    return ManualService(session, maintainer, config)


def get_category_service(session: Session = Depends(get_session)) -> CategoryService:
    return CategoryService(session)


def get_tag_service(session: Session = Depends(get_session)) -> TagService:
    return TagService(session)
