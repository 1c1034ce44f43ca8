"""Configuration de test pour pytest.

Ce module ajoute la racine du projet au sys.path, force une configuration de test (SQLite en
mémoire, aucune clé de fournisseur) avant tout import de `hrkb`, et fournit les fixtures de base:
moteur et sessions SQLite, fournisseur d'embeddings factice, mainteneur et client HTTP.
"""

import os
import sys

import pytest

# Ensure project root is on sys.path so that
# imports like `from hrkb...` resolve.
CURRENT_DIR = os.path.dirname(__file__)
PROJECT_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

os.environ["ENV_FILE"] = os.path.join(CURRENT_DIR, ".env.test")
os.environ["DATABASE_URL"] = "sqlite+pysqlite:///:memory:"
os.environ["JWT_SECRET"] = "test-secret"
os.environ.pop("OPENAI_API_KEY", None)

from fastapi.testclient import TestClient  # noqa: E402

from hrkb.api.deps import get_maintainer, get_session_factory  # noqa: E402
from hrkb.app.main import app  # noqa: E402
from hrkb.domain.embedding_maintenance import EmbeddingMaintainer  # noqa: E402
from hrkb.infra.repo.db import get_engine  # noqa: E402
from hrkb.infra.repo.db import get_session_factory as make_session_factory  # noqa: E402
from hrkb.infra.repo.models import Base  # noqa: E402
from tests.fakes import FakeEmbeddingProvider  # noqa: E402


@pytest.fixture
def engine():
    """Base SQLite en mémoire partagée par toutes les sessions du test."""
    eng = get_engine("sqlite+pysqlite:///:memory:")
    Base.metadata.create_all(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return make_session_factory(engine)


@pytest.fixture
def session(session_factory):
    s = session_factory()
    yield s
    s.close()


@pytest.fixture
def provider():
    return FakeEmbeddingProvider()


@pytest.fixture
def maintainer(provider, session_factory):
    return EmbeddingMaintainer(provider, session_factory)


@pytest.fixture
def client(session_factory, maintainer):
    """Client HTTP branché sur la base de test et le fournisseur factice."""
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_maintainer] = lambda: maintainer
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
