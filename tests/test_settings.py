"""Tests de résolution du fichier d'environnement et des valeurs par défaut."""

from __future__ import annotations

from hrkb.core import settings as settings_mod
from hrkb.core.settings import Settings


def test_env_file_variable_wins(monkeypatch) -> None:
    monkeypatch.setenv("ENV_FILE", "/tmp/custom.env")
    assert settings_mod._resolve_env_file() == "/tmp/custom.env"


def test_app_env_specific_file(monkeypatch, tmp_path) -> None:
    monkeypatch.delenv("ENV_FILE", raising=False)
    monkeypatch.setenv("APP_ENV", "staging")
    monkeypatch.chdir(tmp_path)
    assert settings_mod._resolve_env_file() == tmp_path / ".env"
    (tmp_path / ".env.staging").write_text("APP_DEBUG=false\n", encoding="utf-8")
    assert settings_mod._resolve_env_file() == tmp_path / ".env.staging"


def test_values_are_read_from_env_file(tmp_path) -> None:
    env = tmp_path / ".env"
    env.write_text("SEARCH_VECTOR_WEIGHT=0.6\nMAX_PAGE_SIZE=50\nOPENAI_API_KEY=\n", encoding="utf-8")
    s = Settings(_env_file=env)
    assert s.SEARCH_VECTOR_WEIGHT == 0.6
    assert s.MAX_PAGE_SIZE == 50
    assert s.OPENAI_API_KEY is None


def test_search_defaults() -> None:
    s = Settings(_env_file=None)
    assert (s.SEARCH_SIMILARITY_THRESHOLD, s.SEARCH_CANDIDATE_LIMIT) == (0.3, 50)
    assert (s.SEARCH_VECTOR_WEIGHT, s.SEARCH_KEYWORD_WEIGHT) == (0.7, 0.3)
    assert (s.DEFAULT_PAGE_SIZE, s.MAX_PAGE_SIZE) == (20, 100)
