from pydantic import BaseModel, Field, field_validator, model_validator
from typing import List, Optional
from datetime import datetime

from app.workers.lead.normalizer import (
    SOURCES,
    PROFILES,
    OPERATIONS,
    ACTIVITY_TYPES,
    map_source,
    clean_email,
    clean_text,
)


class LeadTag(BaseModel):
    id: str
    name: str
    color: Optional[str] = None

    class Config:
        from_attributes = True


class LeadMeeting(BaseModel):
    date: Optional[str] = None  # 'YYYY-MM-DD'
    time: Optional[str] = None  # 'HH:MM'
    link: Optional[str] = None


class LeadActivity(BaseModel):
    id: str
    type: str  # note | status_change | call | email | meeting
    content: Optional[str] = None
    created_at: Optional[datetime] = None
    old_status: Optional[str] = None
    new_status: Optional[str] = None

    class Config:
        from_attributes = True


class ActivityIn(BaseModel):
    type: str = "note"
    content: str = ""
    old_status: Optional[str] = None
    new_status: Optional[str] = None

    @field_validator("type")
    @classmethod
    def known_type(cls, v):
        if v not in ACTIVITY_TYPES:
            raise ValueError(f"unknown activity type: {v}")
        return v


# ---------------------------------------------------------
# LEAD FIELDS
# ---------------------------------------------------------
class LeadBase(BaseModel):
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    location: Optional[str] = None
    capital: Optional[str] = None
    profile: Optional[str] = "outro"
    operation: Optional[str] = "definindo"
    interest: Optional[str] = None
    source: Optional[str] = "outro"
    status: Optional[str] = None
    notes: Optional[str] = None
    meeting: Optional[LeadMeeting] = None
    submitted_at: Optional[datetime] = None


class LeadIn(LeadBase):
    """
    Everything a caller may write on a lead. Used for create, full update
    and the ingestion path; `tag_ids` replaces the lead's tag set.
    """

    tag_ids: List[str] = Field(default_factory=list)

    @field_validator("name")
    @classmethod
    def name_required(cls, v):
        v = (v or "").strip()
        if not v:
            raise ValueError("name is required")
        return v

    @field_validator("email", mode="before")
    @classmethod
    def email_needs_at(cls, v):
        return clean_email(v)

    @field_validator("phone", "location", "capital", "interest", mode="before")
    @classmethod
    def blank_to_none(cls, v):
        return clean_text(v)

    @field_validator("source", mode="before")
    @classmethod
    def canonical_source(cls, v):
        if v in SOURCES:
            return v
        return map_source(v)

    @field_validator("profile", mode="before")
    @classmethod
    def canonical_profile(cls, v):
        return v if v in PROFILES else "outro"

    @field_validator("operation", mode="before")
    @classmethod
    def canonical_operation(cls, v):
        return v if v in OPERATIONS else "outro"

    @model_validator(mode="after")
    def meeting_needs_date(self):
        # all-or-nothing: no date, no meeting
        if self.meeting is not None and not (self.meeting.date or "").strip():
            self.meeting = None
        return self


class Lead(LeadBase):
    id: str
    status: str
    tags: List[LeadTag] = Field(default_factory=list)
    activities: List[LeadActivity] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def to_input(self) -> LeadIn:
        data = self.model_dump(exclude={"id", "tags", "activities", "created_at", "updated_at"})
        return LeadIn(**data, tag_ids=[t.id for t in self.tags])


# ---------------------------------------------------------
# REQUEST BODIES
# ---------------------------------------------------------
class StatusUpdate(BaseModel):
    status: str


class NoteCreate(BaseModel):
    content: str

    @field_validator("content")
    @classmethod
    def not_blank(cls, v):
        v = (v or "").strip()
        if not v:
            raise ValueError("content is required")
        return v
