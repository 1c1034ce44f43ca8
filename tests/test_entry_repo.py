# ============================================================
# Tests : tests/test_entry_repo.py
# Objet  : Primitives du dépôt d'entrées (sqlite mémoire).
# ============================================================
"""Tests des primitives de dépôt consommées par la recherche hybride."""

from __future__ import annotations

import numpy as np
import pytest

from hrkb.domain.errors import NotFoundError
from hrkb.domain.search_types import SearchFilters
from hrkb.infra.repo.entry_repo import QnARepository, cosine_similarity
from hrkb.infra.repo.models import QnAEntry


def _add(session, title, embedding=None, deleted=False) -> QnAEntry:
    entry = QnAEntry(
        question_title=title, question_details="d", embedding=embedding, is_deleted=deleted
    )
    session.add(entry)
    session.flush()
    return entry


def test_cosine_similarity_edge_cases() -> None:
    a = np.array([1.0, 0.0])
    assert cosine_similarity(a, np.array([2.0, 0.0])) == pytest.approx(1.0)
    assert cosine_similarity(a, np.array([0.0, 0.0])) is None
    assert cosine_similarity(a, np.array([1.0, 0.0, 0.0])) is None


def test_find_by_id_returns_explicit_result(session) -> None:
    repo = QnARepository(session)
    live = _add(session, "live")
    gone = _add(session, "gone", deleted=True)

    assert repo.find_by_id(live.id).unwrap() is live
    missing = repo.find_by_id(gone.id)
    assert not missing.ok
    with pytest.raises(NotFoundError):
        missing.unwrap()
    assert repo.find_by_id(gone.id, include_deleted=True).ok


def test_nearest_neighbors_orders_by_similarity_then_id(session) -> None:
    repo = QnARepository(session)
    a = _add(session, "a", embedding=[1.0, 0.0, 0.0, 0.0])
    b = _add(session, "b", embedding=[2.0, 0.0, 0.0, 0.0])
    c = _add(session, "c", embedding=[1.0, 1.0, 0.0, 0.0])
    _add(session, "wrong-dim", embedding=[1.0, 0.0])
    _add(session, "deleted", embedding=[1.0, 0.0, 0.0, 0.0], deleted=True)

    hits = repo.nearest_neighbors([1.0, 0.0, 0.0, 0.0], threshold=0.3, limit=50)
    assert [h[0] for h in hits] == sorted([a.id, b.id]) + [c.id]
    assert repo.nearest_neighbors([1.0, 0.0, 0.0, 0.0], threshold=0.3, limit=1)[0][1] == (
        pytest.approx(1.0)
    )


def test_keyword_matches_any_term_on_any_field(session) -> None:
    repo = QnARepository(session)
    in_title = _add(session, "육아휴직 신청")
    in_answer = QnAEntry(question_title="x", question_details="y", answer="출산 휴가 안내")
    session.add(in_answer)
    session.flush()
    _add(session, "육아휴직 (삭제)", deleted=True)

    assert set(repo.keyword_matches(["육아휴직", "출산"], limit=50)) == {in_title.id, in_answer.id}
    assert repo.keyword_matches([], limit=50) == []
    assert len(repo.keyword_matches(["육아휴직", "출산"], limit=1)) == 1


def test_filter_ids_and_get_many_drop_deleted(session) -> None:
    repo = QnARepository(session)
    live = _add(session, "live")
    gone = _add(session, "gone", deleted=True)
    assert repo.filter_ids([live.id, gone.id], SearchFilters()) == {live.id}
    assert set(repo.get_many([live.id, gone.id, "unknown"])) == {live.id}


def test_embedding_counts_ignore_deleted(session) -> None:
    repo = QnARepository(session)
    _add(session, "a", embedding=[1.0])
    _add(session, "b")
    _add(session, "c", deleted=True)
    assert repo.embedding_counts() == {"total": 2, "missing": 1, "embedded": 1}
    assert repo.ids_for_backfill(only_missing=True) == [
        e.id for e in session.query(QnAEntry).filter_by(question_title="b")
    ]
