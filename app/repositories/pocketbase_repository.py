import logging
from datetime import datetime
from typing import List, Optional

from app.core.exceptions import StoreError, RecordNotFound
from app.repositories.base import (
    LeadRepository,
    lead_to_record,
    meeting_from_record,
    parse_timestamp,
    jsonable,
    sort_newest_first,
)
from app.repositories.http_client import HttpClient
from app.schemas.lead import Lead, LeadIn, LeadTag, LeadActivity, ActivityIn
from app.schemas.pipeline import PipelineStage

logger = logging.getLogger(__name__)

PER_PAGE = 200
LEAD_EXPAND = "tags,activities_via_lead"


def pb_quote(value: str) -> str:
    """Quotes a value for a PocketBase filter expression."""
    return '"' + str(value).replace("\\", "\\\\").replace('"', '\\"') + '"'


class PocketBaseClient(HttpClient):
    """One authenticated session per process, created at startup."""

    def __init__(self, base_url: str, email: str = None, password: str = None, timeout: float = 15, session=None):
        super().__init__(base_url, timeout=timeout, session=session)
        self.email = email
        self.password = password

    def authenticate(self) -> bool:
        if not (self.email and self.password):
            logger.warning("⚠️ PocketBase credentials not provided. Relying on public collection rules.")
            return False

        body = {"identity": self.email, "password": self.password}
        # v0.23+ superusers first, then the legacy admins endpoint
        for path in ("/api/collections/_superusers/auth-with-password", "/api/admins/auth-with-password"):
            try:
                data = self.request("POST", path, json=body)
            except RecordNotFound:
                continue
            except StoreError as e:
                logger.error(f"❌ PocketBase auth error: {e}")
                return False
            self.set_header("Authorization", data["token"])
            logger.info("✅ Authenticated with PocketBase")
            return True
        return False

    # --- generic record helpers ---
    def records(self, collection: str, **params) -> list:
        items, page = [], 1
        while True:
            data = self.request(
                "GET",
                f"/api/collections/{collection}/records",
                params={"page": page, "perPage": PER_PAGE, **params},
            )
            items.extend(data.get("items", []))
            if page >= (data.get("totalPages") or 1):
                return items
            page += 1

    def first(self, collection: str, filter: str, **params) -> Optional[dict]:
        data = self.request(
            "GET",
            f"/api/collections/{collection}/records",
            params={"page": 1, "perPage": 1, "filter": filter, "skipTotal": 1, **params},
        )
        items = data.get("items", [])
        return items[0] if items else None

    def create(self, collection: str, body: dict) -> dict:
        return self.request("POST", f"/api/collections/{collection}/records", json=jsonable(body))

    def update(self, collection: str, record_id: str, body: dict) -> dict:
        return self.request("PATCH", f"/api/collections/{collection}/records/{record_id}", json=jsonable(body))

    def delete(self, collection: str, record_id: str) -> None:
        self.request("DELETE", f"/api/collections/{collection}/records/{record_id}")

    def view(self, collection: str, record_id: str, **params) -> dict:
        return self.request("GET", f"/api/collections/{collection}/records/{record_id}", params=params)


def record_to_lead(record: dict) -> Lead:
    expand = record.get("expand") or {}
    meeting = meeting_from_record(record)
    if meeting and meeting["date"]:
        meeting["date"] = str(meeting["date"])[:10]  # '2026-01-08 00:00:00.000Z'

    activities = [
        LeadActivity(
            id=a["id"],
            type=a.get("type") or "note",
            content=a.get("content"),
            created_at=parse_timestamp(a.get("created")),
            old_status=a.get("old_status") or None,
            new_status=a.get("new_status") or None,
        )
        for a in expand.get("activities_via_lead") or []
    ]
    activities.sort(key=lambda a: a.created_at or datetime.min)

    return Lead(
        id=record["id"],
        name=record.get("name") or "",
        email=record.get("email") or None,
        phone=record.get("phone") or None,
        location=record.get("location") or None,
        capital=record.get("capital") or None,
        profile=record.get("profile") or None,
        operation=record.get("operation") or None,
        interest=record.get("interest") or None,
        source=record.get("source") or None,
        status=record.get("status") or "",
        notes=record.get("notes") or None,
        meeting=meeting,
        submitted_at=parse_timestamp(record.get("submitted_at")),
        created_at=parse_timestamp(record.get("created")),
        updated_at=parse_timestamp(record.get("updated")),
        tags=[LeadTag(id=t["id"], name=t.get("name", ""), color=t.get("color")) for t in expand.get("tags") or []],
        activities=activities,
    )


class PocketBaseLeadRepository(LeadRepository):
    """
    PocketBase collections: leads (tags as a multi-relation field),
    tags, activities (relation 'lead', cascade delete) and pipeline_stages.
    """

    def __init__(self, client: PocketBaseClient):
        self.client = client

    # ---------------------------------------------------------
    # LEADS
    # ---------------------------------------------------------
    def list_leads(self) -> List[Lead]:
        records = self.client.records("leads", sort="-created", expand=LEAD_EXPAND)
        return sort_newest_first([record_to_lead(r) for r in records])

    def get_lead(self, lead_id: str) -> Lead:
        return record_to_lead(self.client.view("leads", lead_id, expand=LEAD_EXPAND))

    def _find_lead(self, field: str, value: str) -> Optional[Lead]:
        record = self.client.first("leads", f"{field}={pb_quote(value)}", sort="created", expand=LEAD_EXPAND)
        return record_to_lead(record) if record else None

    def find_lead_by_email(self, email: str) -> Optional[Lead]:
        return self._find_lead("email", email)

    def find_lead_by_phone(self, phone: str) -> Optional[Lead]:
        return self._find_lead("phone", phone)

    def insert_lead(self, fields: LeadIn, status: str) -> Lead:
        record = self.client.create("leads", lead_to_record(fields, status))
        return record_to_lead(record)

    def update_lead(self, lead_id: str, fields: LeadIn, status: str) -> None:
        self.client.update("leads", lead_id, lead_to_record(fields, status))

    def set_lead_status(self, lead_id: str, status: str) -> None:
        self.client.update("leads", lead_id, {"status": status})

    def touch_lead(self, lead_id: str) -> None:
        # any save refreshes the 'updated' autodate
        self.client.update("leads", lead_id, {})

    def delete_lead(self, lead_id: str) -> None:
        self.client.delete("leads", lead_id)

    def replace_lead_tags(self, lead_id: str, tag_ids: List[str]) -> None:
        self.client.update("leads", lead_id, {"tags": list(dict.fromkeys(tag_ids))})

    # ---------------------------------------------------------
    # ACTIVITIES
    # ---------------------------------------------------------
    def insert_activity(self, lead_id: str, activity: ActivityIn) -> LeadActivity:
        record = self.client.create("activities", {
            "lead": lead_id,
            "type": activity.type,
            "content": activity.content,
            "old_status": activity.old_status,
            "new_status": activity.new_status,
        })
        return LeadActivity(
            id=record["id"],
            type=record.get("type") or activity.type,
            content=record.get("content"),
            created_at=parse_timestamp(record.get("created")),
            old_status=record.get("old_status") or None,
            new_status=record.get("new_status") or None,
        )

    # ---------------------------------------------------------
    # TAGS
    # ---------------------------------------------------------
    def list_tags(self) -> List[LeadTag]:
        return [LeadTag(id=r["id"], name=r.get("name", ""), color=r.get("color")) for r in self.client.records("tags", sort="name")]

    def find_tag_by_name(self, name: str) -> Optional[LeadTag]:
        record = self.client.first("tags", f"name={pb_quote(name)}")
        return LeadTag(id=record["id"], name=record["name"], color=record.get("color")) if record else None

    def insert_tag(self, name: str, color: str) -> LeadTag:
        record = self.client.create("tags", {"name": name, "color": color})
        return LeadTag(id=record["id"], name=record["name"], color=record.get("color"))

    def update_tag(self, tag: LeadTag) -> None:
        self.client.update("tags", tag.id, {"name": tag.name, "color": tag.color})

    def delete_tag(self, tag_id: str) -> None:
        self.client.delete("tags", tag_id)

    # ---------------------------------------------------------
    # PIPELINE
    # ---------------------------------------------------------
    def list_pipeline_stages(self) -> List[PipelineStage]:
        records = self.client.records("pipeline_stages", sort="order_index")
        return [
            PipelineStage(
                id=r.get("slug") or r["id"],
                title=r.get("title") or r.get("slug") or r["id"],
                color=r.get("color"),
                order_index=r.get("order_index") or 0,
            )
            for r in records
        ]

    def replace_pipeline_stages(self, stages: List[PipelineStage]) -> None:
        # upsert by slug first, drop leftovers last: a failure midway keeps the old stages
        existing = {r.get("slug"): r["id"] for r in self.client.records("pipeline_stages")}
        for s in stages:
            body = {"slug": s.id, "title": s.title, "color": s.color, "order_index": s.order_index}
            if s.id in existing:
                self.client.update("pipeline_stages", existing.pop(s.id), body)
            else:
                self.client.create("pipeline_stages", body)
        for record_id in existing.values():
            self.client.delete("pipeline_stages", record_id)
