"""Tests du type Result et de la pagination."""

import pytest

from hrkb.domain.errors import NotFoundError, ValidationError
from hrkb.domain.result import Result
from hrkb.domain.search_types import PageRequest, SearchFilters, SearchPage


def test_result_found_and_missing() -> None:
    assert Result.found(3).unwrap() == 3
    missing = Result.missing("qna", "x")
    assert not missing.ok
    with pytest.raises(NotFoundError) as exc:
        missing.unwrap()
    assert (exc.value.entity, exc.value.entity_id) == ("qna", "x")


@pytest.mark.parametrize(("page", "size"), [(0, 20), (1, 0), (1, 101)])
def test_page_request_bounds(page, size) -> None:
    with pytest.raises(ValidationError):
        PageRequest.of(page, size, 100)


def test_page_offsets_and_total_pages() -> None:
    assert PageRequest.of(3, 20, 100).offset == 40
    assert SearchPage(total=41, page_size=20).total_pages == 3
    assert SearchPage(total=0, page_size=20).total_pages == 0
    assert SearchFilters().is_empty()
    assert not SearchFilters(tag="연차").is_empty()
