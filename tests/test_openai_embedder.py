"""Tests du fournisseur OpenAI (client SDK simulé) et de l'accesseur paresseux."""

from __future__ import annotations

from types import SimpleNamespace
from unittest import mock

import pytest
from openai import OpenAIError

from hrkb.core.settings import Settings
from hrkb.domain.errors import ConfigurationError, ProviderError
from hrkb.infra.embeddings import openai_embedder
from hrkb.infra.embeddings.base import LazyEmbeddingProvider
from hrkb.infra.embeddings.openai_embedder import OpenAIEmbedder, build_openai_embedder


class _Embeddings:
    def __init__(self, vector=None, exc=None) -> None:
        self.vector = vector
        self.exc = exc
        self.kwargs: list[dict] = []

    def create(self, **kwargs):
        self.kwargs.append(kwargs)
        if self.exc is not None:
            raise self.exc
        data = [] if self.vector is None else [SimpleNamespace(embedding=self.vector)]
        return SimpleNamespace(data=data)


def _embedder(**kw) -> tuple[OpenAIEmbedder, _Embeddings]:
    endpoint = _Embeddings(**kw)
    client = SimpleNamespace(embeddings=endpoint)
    return OpenAIEmbedder(client, model="text-embedding-3-large", dimensions=3), endpoint


def test_embed_normalizes_newlines_and_returns_floats() -> None:
    embedder, endpoint = _embedder(vector=[1, 2, 3])
    assert embedder.embed("첫 줄\n둘째 줄\r\n셋째") == [1.0, 2.0, 3.0]
    call = endpoint.kwargs[0]
    assert call["input"] == "첫 줄 둘째 줄 셋째"
    assert call["model"] == "text-embedding-3-large"


def test_sdk_error_becomes_provider_error() -> None:
    embedder, _ = _embedder(exc=OpenAIError("boom"))
    with pytest.raises(ProviderError):
        embedder.embed("x")


@pytest.mark.parametrize("vector", [None, [], [0.1, 0.2]])
def test_missing_or_malformed_vector_is_provider_error(vector) -> None:
    embedder, _ = _embedder(vector=vector)
    with pytest.raises(ProviderError):
        embedder.embed("x")


def test_build_without_key_is_configuration_error() -> None:
    with pytest.raises(ConfigurationError):
        build_openai_embedder(Settings(_env_file=None, OPENAI_API_KEY=None))


def test_build_configures_single_client() -> None:
    settings = Settings(
        _env_file=None,
        OPENAI_API_KEY="sk-test",
        EMBEDDINGS_BASE_URL="https://example.test/v1",
        EMBEDDINGS_TIMEOUT_S=5.0,
        EMBEDDINGS_MAX_RETRIES=1,
        EMBEDDINGS_DIMENSIONS=1,
    )
    with mock.patch.object(openai_embedder, "OpenAI") as client_cls:
        client_cls.return_value = SimpleNamespace(embeddings=_Embeddings(vector=[0.0]))
        embedder = build_openai_embedder(settings)

    client_cls.assert_called_once_with(
        api_key="sk-test",
        base_url="https://example.test/v1",
        timeout=5.0,
        max_retries=1,
    )
    assert embedder.dimensions == 1
    assert embedder.embed("a") == [0.0]


def test_lazy_provider_builds_once() -> None:
    builds: list[int] = []

    def factory():
        builds.append(1)
        embedder, _ = _embedder(vector=[1.0, 0.0, 0.0])
        return embedder

    lazy = LazyEmbeddingProvider(factory)
    assert not lazy.initialized
    lazy.embed("a")
    lazy.embed("b")
    assert lazy.initialized
    assert len(builds) == 1


def test_lazy_provider_retries_after_configuration_error() -> None:
    attempts: list[int] = []

    def factory():
        attempts.append(1)
        if len(attempts) == 1:
            raise ConfigurationError("OPENAI_API_KEY is not configured")
        embedder, _ = _embedder(vector=[1.0, 0.0, 0.0])
        return embedder

    lazy = LazyEmbeddingProvider(factory)
    with pytest.raises(ConfigurationError):
        lazy.embed("a")
    assert not lazy.initialized
    assert lazy.embed("a") == [1.0, 0.0, 0.0]
    assert len(attempts) == 2
