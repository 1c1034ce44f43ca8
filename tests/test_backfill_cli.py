"""Tests du script de backfill des embeddings (codes de sortie, options)."""

from __future__ import annotations

import threading

import pytest

from hrkb.core.container import container
from hrkb.domain.embedding_maintenance import EmbeddingMaintainer
from hrkb.domain.errors import ConfigurationError
from hrkb.infra.embeddings.base import LazyEmbeddingProvider
from hrkb.infra.repo.db import session_scope
from hrkb.infra.repo.models import Manual, QnAEntry
from hrkb.scripts import backfill_embeddings as cli
from tests.fakes import FakeEmbeddingProvider


def _seed(session_factory, *titles: str) -> None:
    with session_scope(session_factory) as s:
        s.add_all(QnAEntry(question_title=t, question_details="d") for t in titles)
        s.add(Manual(title="m", content="c"))


def test_run_reports_each_kind(session_factory, capsys) -> None:
    _seed(session_factory, "a", "b")
    maintainer = EmbeddingMaintainer(FakeEmbeddingProvider(), session_factory)
    code = cli.run(maintainer, ["qna", "manual"], False, False, threading.Event())

    assert code == 0
    out = capsys.readouterr().out
    assert "qna: scanned=2 updated=2 failed=0" in out
    assert "manual: scanned=1 updated=1 failed=0" in out


def test_run_exits_1_on_partial_failure(session_factory, capsys) -> None:
    _seed(session_factory, "ok", "broken")
    maintainer = EmbeddingMaintainer(FakeEmbeddingProvider(fail_on=("broken",)), session_factory)
    assert cli.run(maintainer, ["qna"], False, False, threading.Event()) == cli.EXIT_FAILURES
    assert "failed ids:" in capsys.readouterr().out


def test_run_exits_130_when_cancelled(session_factory) -> None:
    _seed(session_factory, "a")
    stop = threading.Event()
    stop.set()
    maintainer = EmbeddingMaintainer(FakeEmbeddingProvider(), session_factory)
    assert cli.run(maintainer, ["qna", "manual"], False, False, stop) == cli.EXIT_CANCELLED


def test_clear_with_regenerate_rebuilds_everything(session_factory) -> None:
    with session_scope(session_factory) as s:
        s.add(QnAEntry(question_title="a", question_details="d", embedding=[9.0, 9.0]))
    provider = FakeEmbeddingProvider()
    maintainer = EmbeddingMaintainer(provider, session_factory)
    assert cli.run(maintainer, ["qna"], True, True, threading.Event()) == 0
    with session_scope(session_factory) as s:
        assert s.query(QnAEntry).one().embedding == [0.0, 0.0, 0.0, 1.0]


def test_main_exits_2_without_credentials(session_factory, monkeypatch) -> None:
    _seed(session_factory, "a")

    def unconfigured():
        raise ConfigurationError("OPENAI_API_KEY is not configured")

    maintainer = EmbeddingMaintainer(LazyEmbeddingProvider(unconfigured), session_factory)
    monkeypatch.setattr(container, "maintainer", maintainer)
    assert cli.main(["--kind", "qna"]) == cli.EXIT_CONFIGURATION


def test_main_parses_kind(session_factory, monkeypatch) -> None:
    _seed(session_factory, "a")
    provider = FakeEmbeddingProvider()
    monkeypatch.setattr(container, "maintainer", EmbeddingMaintainer(provider, session_factory))
    assert cli.main(["--kind", "manual"]) == 0
    assert provider.calls == ["m c"]


def test_clear_without_credentials_keeps_stored_vectors(session_factory) -> None:
    with session_scope(session_factory) as s:
        s.add(QnAEntry(question_title="a", question_details="d", embedding=[0.5, 0.5]))

    def unconfigured():
        raise ConfigurationError("OPENAI_API_KEY is not configured")

    maintainer = EmbeddingMaintainer(LazyEmbeddingProvider(unconfigured), session_factory)
    with pytest.raises(ConfigurationError):
        cli.run(maintainer, ["qna"], True, True, threading.Event())
    with session_scope(session_factory) as s:
        assert s.query(QnAEntry).one().embedding == [0.5, 0.5]


def test_main_clear_without_credentials_exits_2(session_factory, monkeypatch) -> None:
    with session_scope(session_factory) as s:
        s.add(QnAEntry(question_title="a", question_details="d", embedding=[0.5, 0.5]))

    def unconfigured():
        raise ConfigurationError("OPENAI_API_KEY is not configured")

    maintainer = EmbeddingMaintainer(LazyEmbeddingProvider(unconfigured), session_factory)
    monkeypatch.setattr(container, "maintainer", maintainer)
    assert cli.main(["--kind", "qna", "--clear", "--all"]) == cli.EXIT_CONFIGURATION
    assert maintainer.status()["qna"]["embedded"] == 1
