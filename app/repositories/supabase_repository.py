import logging
from datetime import datetime
from typing import List, Optional

from app.core.exceptions import RecordNotFound, StoreError
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

LEAD_SELECT = "*,lead_tags(tags(id,name,color)),activities(id,type,content,created_at,old_status,new_status)"
RETURN_ROWS = {"Prefer": "return=representation"}
RETURN_NOTHING = {"Prefer": "return=minimal"}
MERGE_DUPLICATES = {"Prefer": "resolution=merge-duplicates,return=minimal"}


class SupabaseClient(HttpClient):
    """PostgREST endpoint of a Supabase project (service-role key)."""

    def __init__(self, url: str, key: str, timeout: float = 15, session=None):
        super().__init__(
            f"{(url or '').rstrip('/')}/rest/v1",
            headers={
                "apikey": key or "",
                "Authorization": f"Bearer {key or ''}",
                "content-type": "application/json",
            },
            timeout=timeout,
            session=session,
        )

    def select(self, table: str, **params) -> list:
        return self.request("GET", f"/{table}", params=params) or []

    def insert(self, table: str, rows: list) -> list:
        created = self.request("POST", f"/{table}", json=[jsonable(r) for r in rows], headers=RETURN_ROWS)
        if not created:
            # insert went through but row-level security hid the new rows
            raise StoreError(f"Insert into {table} returned no rows")
        return created

    def link(self, table: str, rows: list) -> None:
        self.request("POST", f"/{table}", json=[jsonable(r) for r in rows], headers=RETURN_NOTHING)

    def upsert(self, table: str, rows: list, on_conflict: str) -> None:
        self.request(
            "POST",
            f"/{table}",
            params={"on_conflict": on_conflict},
            json=[jsonable(r) for r in rows],
            headers=MERGE_DUPLICATES,
        )

    def patch(self, table: str, body: dict, **filters) -> list:
        return self.request("PATCH", f"/{table}", params=filters, json=jsonable(body), headers=RETURN_ROWS) or []

    def remove(self, table: str, **filters) -> list:
        return self.request("DELETE", f"/{table}", params=filters, headers=RETURN_ROWS) or []


def row_to_lead(row: dict) -> Lead:
    activities = [
        LeadActivity(
            id=str(a["id"]),
            type=a.get("type") or "note",
            content=a.get("content"),
            created_at=parse_timestamp(a.get("created_at")),
            old_status=a.get("old_status"),
            new_status=a.get("new_status"),
        )
        for a in row.get("activities") or []
    ]
    activities.sort(key=lambda a: a.created_at or datetime.min)

    tags = []
    for link in row.get("lead_tags") or []:
        t = link.get("tags")
        if t:
            tags.append(LeadTag(id=str(t["id"]), name=t.get("name", ""), color=t.get("color")))

    return Lead(
        id=str(row["id"]),
        name=row.get("name") or "",
        email=row.get("email"),
        phone=row.get("phone"),
        location=row.get("location"),
        capital=row.get("capital"),
        profile=row.get("profile"),
        operation=row.get("operation"),
        interest=row.get("interest"),
        source=row.get("source"),
        status=row.get("status") or "",
        notes=row.get("notes"),
        meeting=meeting_from_record(row),
        submitted_at=parse_timestamp(row.get("submitted_at")),
        created_at=parse_timestamp(row.get("created_at")),
        updated_at=parse_timestamp(row.get("updated_at")),
        tags=tags,
        activities=activities,
    )


def eq(value) -> str:
    return f"eq.{value}"


class SupabaseLeadRepository(LeadRepository):
    """Tables: leads, tags (unique name), lead_tags, activities (lead_id FK), pipeline_stages."""

    def __init__(self, client: SupabaseClient):
        self.client = client

    # ---------------------------------------------------------
    # LEADS
    # ---------------------------------------------------------
    def list_leads(self) -> List[Lead]:
        rows = self.client.select("leads", select=LEAD_SELECT, order="created_at.desc")
        return sort_newest_first([row_to_lead(r) for r in rows])

    def get_lead(self, lead_id: str) -> Lead:
        rows = self.client.select("leads", select=LEAD_SELECT, id=eq(lead_id))
        if not rows:
            raise RecordNotFound(f"Lead {lead_id} not found")
        return row_to_lead(rows[0])

    def _find_lead(self, column: str, value: str) -> Optional[Lead]:
        rows = self.client.select("leads", select=LEAD_SELECT, order="created_at.asc", limit=1, **{column: eq(value)})
        return row_to_lead(rows[0]) if rows else None

    def find_lead_by_email(self, email: str) -> Optional[Lead]:
        return self._find_lead("email", email)

    def find_lead_by_phone(self, phone: str) -> Optional[Lead]:
        return self._find_lead("phone", phone)

    def insert_lead(self, fields: LeadIn, status: str) -> Lead:
        rows = self.client.insert("leads", [lead_to_record(fields, status)])
        return self.get_lead(str(rows[0]["id"]))

    def _patch_lead(self, lead_id: str, body: dict) -> None:
        body = {**body, "updated_at": datetime.utcnow()}
        if not self.client.patch("leads", body, id=eq(lead_id)):
            raise RecordNotFound(f"Lead {lead_id} not found")

    def update_lead(self, lead_id: str, fields: LeadIn, status: str) -> None:
        self._patch_lead(lead_id, lead_to_record(fields, status))

    def set_lead_status(self, lead_id: str, status: str) -> None:
        self._patch_lead(lead_id, {"status": status})

    def touch_lead(self, lead_id: str) -> None:
        self._patch_lead(lead_id, {})

    def delete_lead(self, lead_id: str) -> None:
        if not self.client.remove("leads", id=eq(lead_id)):
            raise RecordNotFound(f"Lead {lead_id} not found")

    def replace_lead_tags(self, lead_id: str, tag_ids: List[str]) -> None:
        self.client.remove("lead_tags", lead_id=eq(lead_id))
        wanted = list(dict.fromkeys(tag_ids))
        if wanted:
            self.client.link("lead_tags", [{"lead_id": lead_id, "tag_id": t} for t in wanted])

    # ---------------------------------------------------------
    # ACTIVITIES
    # ---------------------------------------------------------
    def insert_activity(self, lead_id: str, activity: ActivityIn) -> LeadActivity:
        rows = self.client.insert("activities", [{
            "lead_id": lead_id,
            "type": activity.type,
            "content": activity.content,
            "old_status": activity.old_status,
            "new_status": activity.new_status,
        }])
        row = rows[0]
        return LeadActivity(
            id=str(row["id"]),
            type=row.get("type") or activity.type,
            content=row.get("content"),
            created_at=parse_timestamp(row.get("created_at")),
            old_status=row.get("old_status"),
            new_status=row.get("new_status"),
        )

    # ---------------------------------------------------------
    # TAGS
    # ---------------------------------------------------------
    def list_tags(self) -> List[LeadTag]:
        rows = self.client.select("tags", select="id,name,color", order="name.asc")
        return [LeadTag(id=str(r["id"]), name=r["name"], color=r.get("color")) for r in rows]

    def find_tag_by_name(self, name: str) -> Optional[LeadTag]:
        rows = self.client.select("tags", select="id,name,color", name=eq(name), limit=1)
        if not rows:
            return None
        return LeadTag(id=str(rows[0]["id"]), name=rows[0]["name"], color=rows[0].get("color"))

    def insert_tag(self, name: str, color: str) -> LeadTag:
        row = self.client.insert("tags", [{"name": name, "color": color}])[0]
        return LeadTag(id=str(row["id"]), name=row["name"], color=row.get("color"))

    def update_tag(self, tag: LeadTag) -> None:
        if not self.client.patch("tags", {"name": tag.name, "color": tag.color}, id=eq(tag.id)):
            raise RecordNotFound(f"Tag {tag.id} not found")

    def delete_tag(self, tag_id: str) -> None:
        if not self.client.remove("tags", id=eq(tag_id)):
            raise RecordNotFound(f"Tag {tag_id} not found")

    # ---------------------------------------------------------
    # PIPELINE
    # ---------------------------------------------------------
    def list_pipeline_stages(self) -> List[PipelineStage]:
        rows = self.client.select(
            "pipeline_stages",
            select="id,slug,title,color,order_index",
            order="order_index.asc.nullslast",
        )
        return [
            PipelineStage(
                id=r.get("slug") or str(r["id"]),
                title=r.get("title") or r.get("slug") or str(r["id"]),
                color=r.get("color"),
                order_index=r.get("order_index") or 0,
            )
            for r in rows
        ]

    def replace_pipeline_stages(self, stages: List[PipelineStage]) -> None:
        # upsert by slug first, drop leftovers last: a failure midway keeps the old stages
        if not stages:
            self.client.remove("pipeline_stages", id="not.is.null")
            return
        self.client.upsert("pipeline_stages", [
            {"slug": s.id, "title": s.title, "color": s.color, "order_index": s.order_index}
            for s in stages
        ], on_conflict="slug")
        slugs = ",".join(f'"{s.id}"' for s in stages)
        self.client.remove("pipeline_stages", slug=f"not.in.({slugs})")
