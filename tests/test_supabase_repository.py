import pytest

from app.core.exceptions import RecordNotFound, StoreError
from app.repositories.supabase_repository import SupabaseClient, SupabaseLeadRepository
from app.schemas.lead import LeadIn, ActivityIn
from app.schemas.pipeline import PipelineStage

from fakes import FakeResponse, FakeSession, offline

URL = "https://project.supabase.co"

LEAD_ROW = {
    "id": "5b0e",
    "name": "Carlos",
    "email": "carlos@example.com",
    "status": "contato",
    "meeting_date": None,
    "created_at": "2026-01-09T10:00:00+00:00",
    "updated_at": "2026-01-09T10:00:00+00:00",
    "lead_tags": [{"tags": {"id": 7, "name": "Frio", "color": "#3B82F6"}}, {"tags": None}],
    "activities": [{"id": 1, "type": "note", "content": "Lead criado", "created_at": "2026-01-09T10:00:00+00:00"}],
}


def make_repo(handler):
    session = FakeSession(handler)
    return SupabaseLeadRepository(SupabaseClient(URL, "service-key", session=session)), session


def test_client_sets_auth_headers():
    session = FakeSession(offline)
    SupabaseClient(URL, "service-key", session=session)
    assert session.headers["apikey"] == "service-key"
    assert session.headers["Authorization"] == "Bearer service-key"


def test_get_lead_uses_embedded_select():
    repo, session = make_repo(lambda m, u, k: FakeResponse(200, [LEAD_ROW]))

    lead = repo.get_lead("5b0e")

    assert lead.status == "contato"
    assert [(t.id, t.name) for t in lead.tags] == [("7", "Frio")]
    assert lead.activities[0].id == "1"
    assert lead.meeting is None
    method, url, kwargs = session.calls[0]
    assert url == f"{URL}/rest/v1/leads"
    assert kwargs["params"]["id"] == "eq.5b0e"
    assert "lead_tags(tags(id,name,color))" in kwargs["params"]["select"]


def test_get_lead_empty_result_is_not_found():
    repo, _ = make_repo(lambda m, u, k: FakeResponse(200, []))
    with pytest.raises(RecordNotFound):
        repo.get_lead("missing")


def test_update_of_missing_lead_is_not_found():
    repo, _ = make_repo(lambda m, u, k: FakeResponse(200, []))
    with pytest.raises(RecordNotFound):
        repo.set_lead_status("missing", "novo")


def test_set_status_patches_with_updated_at():
    repo, session = make_repo(lambda m, u, k: FakeResponse(200, [LEAD_ROW]))
    repo.set_lead_status("5b0e", "proposta")

    method, url, kwargs = session.calls[0]
    assert method == "PATCH"
    assert kwargs["json"]["status"] == "proposta"
    assert "updated_at" in kwargs["json"]
    assert kwargs["headers"]["Prefer"] == "return=representation"


def test_replace_lead_tags_deletes_then_inserts():
    repo, session = make_repo(lambda m, u, k: FakeResponse(200, []))
    repo.replace_lead_tags("5b0e", ["7", "8", "7"])

    assert [c[0] for c in session.calls] == ["DELETE", "POST"]
    assert session.calls[0][2]["params"] == {"lead_id": "eq.5b0e"}
    assert session.calls[1][2]["json"] == [
        {"lead_id": "5b0e", "tag_id": "7"},
        {"lead_id": "5b0e", "tag_id": "8"},
    ]


def test_insert_lead_reloads_with_relations():
    def handler(method, url, kwargs):
        if method == "POST":
            return FakeResponse(201, [{"id": "5b0e"}])
        return FakeResponse(200, [LEAD_ROW])

    repo, session = make_repo(handler)
    lead = repo.insert_lead(LeadIn(name="Carlos"), "novo")

    assert lead.id == "5b0e"
    assert session.calls[0][2]["json"][0]["name"] == "Carlos"


def test_pipeline_stages_map_slug_to_id():
    rows = [{"id": 1, "slug": "novo", "title": "Novos", "color": "bg-x", "order_index": 0}]
    repo, _ = make_repo(lambda m, u, k: FakeResponse(200, rows))

    stages = repo.list_pipeline_stages()
    assert [(s.id, s.title) for s in stages] == [("novo", "Novos")]


def test_http_errors_become_store_errors():
    repo, _ = make_repo(lambda m, u, k: FakeResponse(401, {"message": "JWT expired"}))
    with pytest.raises(StoreError):
        repo.list_leads()


def test_insert_with_empty_representation_is_store_error():
    repo, _ = make_repo(lambda m, u, k: FakeResponse(201, []))
    with pytest.raises(StoreError):
        repo.insert_lead(LeadIn(name="Carlos"), "novo")
    with pytest.raises(StoreError):
        repo.insert_activity("5b0e", ActivityIn(type="note", content="x"))
    with pytest.raises(StoreError):
        repo.insert_tag("Frio", "#3B82F6")


def test_replace_pipeline_stages_upserts_before_removing_leftovers():
    repo, session = make_repo(lambda m, u, k: FakeResponse(200, []))
    repo.replace_pipeline_stages([
        PipelineStage(id="entrada", title="Entrada", order_index=0),
        PipelineStage(id="fechado", title="Fechado", order_index=1),
    ])

    assert [c[0] for c in session.calls] == ["POST", "DELETE"]
    post, delete = session.calls[0][2], session.calls[1][2]
    assert post["params"] == {"on_conflict": "slug"}
    assert "merge-duplicates" in post["headers"]["Prefer"]
    assert [r["slug"] for r in post["json"]] == ["entrada", "fechado"]
    assert delete["params"] == {"slug": 'not.in.("entrada","fechado")'}
