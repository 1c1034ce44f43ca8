"""Tests des routes d'administration (catégories, étiquettes, statistiques, embeddings)."""

from __future__ import annotations

from tests.fakes import auth_headers

ADMIN = auth_headers("admin", "admin-1")
EDITOR = auth_headers("hr_staff", "hr-1")
VIEWER = auth_headers("viewer", "emp-1")


def _category(client, name: str, **extra) -> dict:
    resp = client.post("/api/admin/categories", json={"name": name, **extra}, headers=ADMIN)
    assert resp.status_code == 201, resp.text
    return resp.json()


def _qna(client, title: str, **extra) -> dict:
    body = {"question_title": title, "question_details": "내용", **extra}
    resp = client.post("/api/qna", json=body, headers=EDITOR)
    assert resp.status_code == 201, resp.text
    return resp.json()


def test_admin_routes_require_admin_role(client) -> None:
    assert client.get("/api/admin/stats", headers=EDITOR).status_code == 403
    assert client.get("/api/admin/tags", headers=VIEWER).status_code == 403
    assert client.get("/api/admin/stats").status_code == 401


def test_category_lifecycle(client) -> None:
    benefits = _category(client, "복리후생", display_order=2)
    _category(client, "근태", display_order=1)

    duplicate = client.post("/api/admin/categories", json={"name": "근태"}, headers=ADMIN)
    assert duplicate.status_code == 409
    assert duplicate.json()["code"] == "CONFLICT"

    resp = client.patch(
        f"/api/admin/categories/{benefits['id']}", json={"is_active": False}, headers=ADMIN
    )
    assert resp.json()["is_active"] is False

    public = client.get("/api/categories", headers=VIEWER).json()
    assert [c["name"] for c in public] == ["근태"]
    admin_view = client.get("/api/admin/categories", headers=ADMIN).json()
    assert [(c["name"], c["qna_count"]) for c in admin_view] == [("근태", 0), ("복리후생", 0)]


def test_rename_to_existing_name_conflicts(client) -> None:
    first = _category(client, "근태")
    _category(client, "급여")
    resp = client.patch(
        f"/api/admin/categories/{first['id']}", json={"name": "급여"}, headers=ADMIN
    )
    assert resp.status_code == 409


def test_category_in_use_cannot_be_deleted(client) -> None:
    used = _category(client, "근태")
    unused = _category(client, "급여")
    _qna(client, "지각 처리", category_ids=[used["id"]])

    resp = client.delete(f"/api/admin/categories/{used['id']}", headers=ADMIN)
    assert resp.status_code == 409
    assert resp.json()["message"] == "Cannot delete category: used in 1 Q&A entries"

    resp = client.delete(f"/api/admin/categories/{unused['id']}", headers=ADMIN)
    assert resp.json() == {"message": "Category deleted successfully"}


def test_tag_merge_moves_links(client) -> None:
    _qna(client, "a", tags=["연차"])
    _qna(client, "b", tags=["연차", "휴가"])
    _qna(client, "c", tags=["휴가"])

    tags = {t["name"]: t for t in client.get("/api/admin/tags", headers=ADMIN).json()}
    assert (tags["연차"]["usage_count"], tags["휴가"]["usage_count"]) == (2, 2)

    resp = client.post(
        "/api/admin/tags/merge",
        json={"source_tag_id": tags["연차"]["id"], "target_tag_id": tags["휴가"]["id"]},
        headers=ADMIN,
    )
    assert resp.json() == {"message": "Tags merged successfully (1 links moved)"}

    after = client.get("/api/admin/tags", headers=ADMIN).json()
    assert [(t["name"], t["usage_count"]) for t in after] == [("휴가", 3)]
    tagged = client.get("/api/qna", params={"tag": "휴가"}, headers=VIEWER).json()
    assert tagged["meta"]["total"] == 3


def test_tag_merge_rejects_same_or_unknown_tag(client) -> None:
    _qna(client, "a", tags=["연차"])
    tag_id = client.get("/api/admin/tags", headers=ADMIN).json()[0]["id"]

    same = client.post(
        "/api/admin/tags/merge",
        json={"source_tag_id": tag_id, "target_tag_id": tag_id},
        headers=ADMIN,
    )
    assert same.status_code == 400
    unknown = client.post(
        "/api/admin/tags/merge",
        json={"source_tag_id": tag_id, "target_tag_id": "missing"},
        headers=ADMIN,
    )
    assert unknown.status_code == 404


def test_delete_tag_unlinks_entries(client) -> None:
    entry = _qna(client, "a", tags=["연차"])
    tag_id = entry["tags"][0]["id"]
    resp = client.delete(f"/api/admin/tags/{tag_id}", headers=ADMIN)
    assert resp.json() == {"message": "Tag deleted successfully"}
    assert client.get(f"/api/qna/{entry['id']}", headers=VIEWER).json()["tags"] == []


def test_stats_and_embedding_status(client) -> None:
    _qna(client, "최근 질문")
    client.post("/api/manuals", json={"title": "m", "content": "c"}, headers=EDITOR)

    stats = client.get("/api/admin/stats", headers=ADMIN).json()
    assert stats["total_qna"] == 1
    assert stats["total_manuals"] == 1
    assert stats["missing_embeddings"] == {"qna": 0, "manual": 0}
    assert [a["question_title"] for a in stats["recent_activity"]] == ["최근 질문"]

    status = client.get("/api/admin/embeddings/status", headers=ADMIN).json()
    assert status == {
        "qna": {"total": 1, "embedded": 1, "missing": 0},
        "manual": {"total": 1, "embedded": 1, "missing": 0},
    }
