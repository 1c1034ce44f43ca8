"""Tests du service Q&A: écriture atomique avec embedding, compteur de vues, suppression logique."""

from __future__ import annotations

import pytest

from hrkb.domain.embedding_maintenance import EmbeddingMaintainer
from hrkb.domain.entities import QnAInput, QnAUpdate
from hrkb.domain.errors import NotFoundError, ProviderError, ValidationError
from hrkb.domain.services import QnAService
from hrkb.infra.repo.models import Category
from tests.fakes import FailingEmbeddingProvider, FakeEmbeddingProvider


@pytest.fixture
def service(session, maintainer) -> QnAService:
    return QnAService(session, maintainer)


def _payload(**kw) -> QnAInput:
    data = {"question_title": "연차 이월", "question_details": "남은 연차는?", "answer": "최대 5일"}
    data.update(kw)
    return QnAInput(**data)


def test_create_embeds_concatenated_text_fields(service, provider) -> None:
    entry = service.create(_payload(), "hr-1")
    assert provider.calls == ["연차 이월 남은 연차는? 최대 5일"]
    assert entry.has_embedding
    assert entry.created_by_id == "hr-1"
    assert entry.view_count == 0


def test_create_links_categories_and_creates_tags(session, service) -> None:
    category = Category(name="근태")
    session.add(category)
    session.flush()
    entry = service.create(_payload(category_ids=[category.id], tags=["연차", "연차", " 휴가 "]))
    assert [c.name for c in entry.categories] == ["근태"]
    assert sorted(t.name for t in entry.tags) == ["연차", "휴가"]

    second = service.create(_payload(question_title="연차 신청", tags=["연차"]))
    assert second.tags[0].id in {t.id for t in entry.tags}


def test_create_rejects_invalid_input_before_embedding(service, provider) -> None:
    with pytest.raises(ValidationError):
        service.create(_payload(question_title="   "))
    with pytest.raises(ValidationError):
        service.create(_payload(category_ids=["nope"]))
    assert provider.calls == []


def test_provider_failure_writes_nothing(session) -> None:
    service = QnAService(session, EmbeddingMaintainer(FailingEmbeddingProvider()))
    with pytest.raises(ProviderError):
        service.create(_payload())
    assert service.repo.count_active() == 0


def test_update_recomputes_embedding_when_text_changes(session) -> None:
    provider = FakeEmbeddingProvider({"연차 이월 남은 연차는? 최대 10일": [1.0, 0.0, 0.0, 0.0]})
    service = QnAService(session, EmbeddingMaintainer(provider))
    entry = service.create(_payload())
    before = list(entry.embedding)

    updated = service.update(entry.id, QnAUpdate(answer="최대 10일"), "hr-2")
    assert updated.embedding == [1.0, 0.0, 0.0, 0.0]
    assert updated.embedding != before
    assert updated.updated_by_id == "hr-2"
    assert updated.updated_at >= updated.created_at


def test_update_without_text_change_keeps_embedding(service, provider) -> None:
    entry = service.create(_payload())
    service.update(entry.id, QnAUpdate(answer_basis="취업규칙 제12조", tags=["규정"]))
    assert len(provider.calls) == 1
    assert entry.answer_basis == "취업규칙 제12조"
    assert [t.name for t in entry.tags] == ["규정"]


def test_update_fills_missing_embedding(service, provider) -> None:
    entry = service.create(_payload())
    entry.embedding = None
    service.update(entry.id, QnAUpdate(answer_basis="근거"))
    assert entry.has_embedding
    assert len(provider.calls) == 2


def test_failed_update_leaves_entry_untouched(session, service) -> None:
    entry = service.create(_payload())
    failing = QnAService(session, EmbeddingMaintainer(FailingEmbeddingProvider()))
    with pytest.raises(ProviderError):
        failing.update(entry.id, QnAUpdate(question_title="변경"))
    assert entry.question_title == "연차 이월"


def test_get_increments_view_count_without_touching_updated_at(service) -> None:
    entry = service.create(_payload())
    updated_at = entry.updated_at
    service.get(entry.id)
    fetched = service.get(entry.id)
    assert fetched.view_count == 2
    assert fetched.last_viewed_at is not None
    assert fetched.updated_at == updated_at


def test_delete_is_soft(service) -> None:
    entry = service.create(_payload())
    service.delete(entry.id, "hr-1")
    with pytest.raises(NotFoundError):
        service.get(entry.id)
    audit = service.repo.find_by_id(entry.id, include_deleted=True).unwrap()
    assert audit.is_deleted and audit.deleted_by_id == "hr-1"


def test_update_unknown_entry(service) -> None:
    with pytest.raises(NotFoundError):
        service.update("missing", QnAUpdate(answer="x"))
