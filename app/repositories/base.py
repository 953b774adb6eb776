from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional

from app.schemas.lead import Lead, LeadIn, LeadTag, LeadActivity, ActivityIn
from app.schemas.pipeline import PipelineStage


def lead_to_record(fields: LeadIn, status: str) -> dict:
    """Flattens a LeadIn into the column shape every store shares (meeting_* columns)."""
    meeting = fields.meeting
    return {
        "name": fields.name,
        "email": fields.email,
        "phone": fields.phone,
        "location": fields.location,
        "capital": fields.capital,
        "profile": fields.profile,
        "operation": fields.operation,
        "interest": fields.interest,
        "source": fields.source,
        "status": status,
        "notes": fields.notes,
        "meeting_date": meeting.date if meeting else None,
        "meeting_time": meeting.time if meeting else None,
        "meeting_link": meeting.link if meeting else None,
        "submitted_at": fields.submitted_at,
    }


def meeting_from_record(record: dict) -> Optional[dict]:
    if not record.get("meeting_date"):
        return None
    return {
        "date": record.get("meeting_date"),
        "time": record.get("meeting_time"),
        "link": record.get("meeting_link"),
    }


def parse_timestamp(value) -> Optional[datetime]:
    """Store timestamps come back as ISO strings ('2026-01-09 12:00:00.123Z' on PocketBase)."""
    if not value:
        return None
    if isinstance(value, datetime):
        return value
    raw = str(value).strip().replace(" ", "T", 1)
    if raw.endswith("Z"):
        raw = raw[:-1] + "+00:00"
    try:
        dt = datetime.fromisoformat(raw)
    except ValueError:
        return None
    if dt.tzinfo is not None:
        dt = dt.replace(tzinfo=None) - dt.utcoffset()
    return dt


def jsonable(record: dict) -> dict:
    return {k: (v.isoformat() if isinstance(v, datetime) else v) for k, v in record.items()}


def sort_newest_first(leads: List[Lead]) -> List[Lead]:
    """Submission time when the form gave one, creation time otherwise."""
    def key(lead):
        return (lead.submitted_at or lead.created_at or datetime.min, lead.created_at or datetime.min)
    return sorted(leads, key=key, reverse=True)


class LeadRepository(ABC):
    """
    Primitive operations against one record store. Adapters translate their
    own record shapes into the schema objects below and raise StoreError
    (RecordNotFound for a missing id) on any failure. Business rules
    (activities, status validation, upsert) live in LeadService, not here.
    """

    # --- LEADS ---
    @abstractmethod
    def list_leads(self) -> List[Lead]:
        """All leads with tags and activities, newest submission/creation first."""

    @abstractmethod
    def get_lead(self, lead_id: str) -> Lead:
        ...

    @abstractmethod
    def find_lead_by_email(self, email: str) -> Optional[Lead]:
        ...

    @abstractmethod
    def find_lead_by_phone(self, phone: str) -> Optional[Lead]:
        ...

    @abstractmethod
    def insert_lead(self, fields: LeadIn, status: str) -> Lead:
        ...

    @abstractmethod
    def update_lead(self, lead_id: str, fields: LeadIn, status: str) -> None:
        """Overwrites every mutable field and bumps updated_at. Tags untouched."""

    @abstractmethod
    def set_lead_status(self, lead_id: str, status: str) -> None:
        ...

    @abstractmethod
    def touch_lead(self, lead_id: str) -> None:
        """Bumps updated_at only."""

    @abstractmethod
    def delete_lead(self, lead_id: str) -> None:
        ...

    @abstractmethod
    def replace_lead_tags(self, lead_id: str, tag_ids: List[str]) -> None:
        """Delete-all then re-insert; calling it twice with the same ids is harmless."""

    # --- ACTIVITIES ---
    @abstractmethod
    def insert_activity(self, lead_id: str, activity: ActivityIn) -> LeadActivity:
        ...

    # --- TAGS ---
    @abstractmethod
    def list_tags(self) -> List[LeadTag]:
        ...

    @abstractmethod
    def find_tag_by_name(self, name: str) -> Optional[LeadTag]:
        ...

    @abstractmethod
    def insert_tag(self, name: str, color: str) -> LeadTag:
        ...

    @abstractmethod
    def update_tag(self, tag: LeadTag) -> None:
        ...

    @abstractmethod
    def delete_tag(self, tag_id: str) -> None:
        ...

    # --- PIPELINE ---
    @abstractmethod
    def list_pipeline_stages(self) -> List[PipelineStage]:
        """Stored stages ordered by order_index; empty list when none are stored."""

    @abstractmethod
    def replace_pipeline_stages(self, stages: List[PipelineStage]) -> None:
        ...

    def close(self) -> None:
        pass
