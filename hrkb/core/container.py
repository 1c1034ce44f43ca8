"""
Conteneur d'injection de dépendances et configuration application.

Instancie les composants centraux (settings, moteur SQL, fournisseur d'embeddings paresseux,
mainteneur d'embeddings) et expose un singleton `container` utilisé par le reste de l'application.
Le client du fournisseur n'est construit qu'au premier embedding demandé: une clé absente ne lève
`ConfigurationError` qu'à ce moment-là.
"""

from __future__ import annotations

from hrkb.core.settings import Settings, get_settings
from hrkb.domain.embedding_maintenance import EmbeddingMaintainer
from hrkb.domain.hybrid_search import SearchConfig
from hrkb.infra.embeddings.base import LazyEmbeddingProvider
from hrkb.infra.embeddings.openai_embedder import build_openai_embedder
from hrkb.infra.repo.db import get_engine, get_session_factory
from hrkb.infra.repo.models import Base


class Container:
    def __init__(self, settings: Settings | None = None):
        self.settings = settings or get_settings()
        self.engine = get_engine(self.settings.DATABASE_URL)
        self.session_factory = get_session_factory(self.engine)
        if self.engine.dialect.name == "sqlite":
            # base locale de dev/tests: pas de migration Alembic
            Base.metadata.create_all(self.engine)
        self.embeddings = LazyEmbeddingProvider(lambda: build_openai_embedder(self.settings))
        self.maintainer = EmbeddingMaintainer(self.embeddings, self.session_factory)
        self.search_config = SearchConfig.from_settings(self.settings)

    @property
    def storage_backend(self) -> str:
        return self.engine.dialect.name


container = Container()
