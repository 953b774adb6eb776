import logging
from contextlib import contextmanager
from datetime import datetime
from typing import List, Optional

from sqlalchemy import desc, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from app.core.exceptions import StoreError, RecordNotFound
from app.models import Lead as LeadRow, Tag as TagRow, Activity as ActivityRow, PipelineStage as StageRow
from app.repositories.base import LeadRepository, lead_to_record, meeting_from_record
from app.schemas.lead import Lead, LeadIn, LeadTag, LeadActivity, ActivityIn
from app.schemas.pipeline import PipelineStage

logger = logging.getLogger(__name__)


def row_to_lead(row: LeadRow) -> Lead:
    columns = {c.name: getattr(row, c.name) for c in row.__table__.columns}
    return Lead(
        id=row.id,
        name=row.name,
        email=row.email,
        phone=row.phone,
        location=row.location,
        capital=row.capital,
        profile=row.profile,
        operation=row.operation,
        interest=row.interest,
        source=row.source,
        status=row.status,
        notes=row.notes,
        meeting=meeting_from_record(columns),
        submitted_at=row.submitted_at,
        created_at=row.created_at,
        updated_at=row.updated_at,
        tags=[LeadTag.model_validate(t) for t in row.tags],
        activities=[LeadActivity.model_validate(a) for a in row.activities],
    )


class SqlLeadRepository(LeadRepository):
    """Lead store backed by a SQLAlchemy session (Postgres in prod, SQLite locally)."""

    def __init__(self, db: Session):
        self.db = db

    @contextmanager
    def _write(self, what: str):
        try:
            yield
            self.db.commit()
        except RecordNotFound:
            self.db.rollback()
            raise
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"❌ SQL store error ({what}): {e}")
            raise StoreError(f"Failed to {what}") from e

    @contextmanager
    def _read(self, what: str):
        try:
            yield
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"❌ SQL store error ({what}): {e}")
            raise StoreError(f"Failed to {what}") from e

    def _lead_row(self, lead_id: str) -> LeadRow:
        row = self.db.get(LeadRow, lead_id)
        if not row:
            raise RecordNotFound(f"Lead {lead_id} not found")
        return row

    def _query_leads(self):
        return self.db.query(LeadRow).options(
            selectinload(LeadRow.tags),
            selectinload(LeadRow.activities),
        )

    # ---------------------------------------------------------
    # LEADS
    # ---------------------------------------------------------
    def list_leads(self) -> List[Lead]:
        with self._read("list leads"):
            rows = self._query_leads().order_by(
                desc(func.coalesce(LeadRow.submitted_at, LeadRow.created_at)),
                desc(LeadRow.created_at),
            ).all()
            return [row_to_lead(r) for r in rows]

    def get_lead(self, lead_id: str) -> Lead:
        with self._read("load lead"):
            row = self._query_leads().filter(LeadRow.id == lead_id).first()
        if not row:
            raise RecordNotFound(f"Lead {lead_id} not found")
        return row_to_lead(row)

    def find_lead_by_email(self, email: str) -> Optional[Lead]:
        with self._read("look up lead by email"):
            row = self._query_leads().filter(LeadRow.email == email).order_by(LeadRow.created_at).first()
            return row_to_lead(row) if row else None

    def find_lead_by_phone(self, phone: str) -> Optional[Lead]:
        with self._read("look up lead by phone"):
            row = self._query_leads().filter(LeadRow.phone == phone).order_by(LeadRow.created_at).first()
            return row_to_lead(row) if row else None

    def insert_lead(self, fields: LeadIn, status: str) -> Lead:
        now = datetime.utcnow()
        row = LeadRow(**lead_to_record(fields, status), created_at=now, updated_at=now)
        with self._write("create lead"):
            self.db.add(row)
        return self.get_lead(row.id)

    def update_lead(self, lead_id: str, fields: LeadIn, status: str) -> None:
        with self._write("update lead"):
            row = self._lead_row(lead_id)
            for key, value in lead_to_record(fields, status).items():
                setattr(row, key, value)
            row.updated_at = datetime.utcnow()

    def set_lead_status(self, lead_id: str, status: str) -> None:
        with self._write("update lead status"):
            row = self._lead_row(lead_id)
            row.status = status
            row.updated_at = datetime.utcnow()

    def touch_lead(self, lead_id: str) -> None:
        with self._write("touch lead"):
            row = self._lead_row(lead_id)
            row.updated_at = datetime.utcnow()

    def delete_lead(self, lead_id: str) -> None:
        with self._write("delete lead"):
            row = self._lead_row(lead_id)
            self.db.delete(row)

    def replace_lead_tags(self, lead_id: str, tag_ids: List[str]) -> None:
        with self._write("set lead tags"):
            row = self._lead_row(lead_id)
            wanted = list(dict.fromkeys(tag_ids))
            tags = self.db.query(TagRow).filter(TagRow.id.in_(wanted)).all() if wanted else []
            row.tags = tags

    # ---------------------------------------------------------
    # ACTIVITIES
    # ---------------------------------------------------------
    def insert_activity(self, lead_id: str, activity: ActivityIn) -> LeadActivity:
        row = ActivityRow(
            lead_id=lead_id,
            type=activity.type,
            content=activity.content,
            old_status=activity.old_status,
            new_status=activity.new_status,
            created_at=datetime.utcnow(),
        )
        with self._write("create activity"):
            self._lead_row(lead_id)
            self.db.add(row)
        return LeadActivity.model_validate(row)

    # ---------------------------------------------------------
    # TAGS
    # ---------------------------------------------------------
    def list_tags(self) -> List[LeadTag]:
        with self._read("list tags"):
            return [LeadTag.model_validate(t) for t in self.db.query(TagRow).order_by(TagRow.name).all()]

    def find_tag_by_name(self, name: str) -> Optional[LeadTag]:
        with self._read("look up tag"):
            row = self.db.query(TagRow).filter(TagRow.name == name).first()
            return LeadTag.model_validate(row) if row else None

    def insert_tag(self, name: str, color: str) -> LeadTag:
        row = TagRow(name=name, color=color, created_at=datetime.utcnow())
        with self._write("create tag"):
            self.db.add(row)
        return LeadTag.model_validate(row)

    def update_tag(self, tag: LeadTag) -> None:
        with self._write("update tag"):
            row = self.db.get(TagRow, tag.id)
            if not row:
                raise RecordNotFound(f"Tag {tag.id} not found")
            row.name = tag.name
            row.color = tag.color

    def delete_tag(self, tag_id: str) -> None:
        with self._write("delete tag"):
            row = self.db.get(TagRow, tag_id)
            if not row:
                raise RecordNotFound(f"Tag {tag_id} not found")
            self.db.delete(row)

    # ---------------------------------------------------------
    # PIPELINE
    # ---------------------------------------------------------
    def list_pipeline_stages(self) -> List[PipelineStage]:
        with self._read("list pipeline stages"):
            rows = self.db.query(StageRow).order_by(StageRow.order_index.is_(None), StageRow.order_index).all()
            return [
                PipelineStage(id=r.slug or r.id, title=r.title, color=r.color, order_index=r.order_index or 0)
                for r in rows
            ]

    def replace_pipeline_stages(self, stages: List[PipelineStage]) -> None:
        with self._write("save pipeline stages"):
            self.db.query(StageRow).delete()
            for s in stages:
                self.db.add(StageRow(slug=s.id, title=s.title, color=s.color, order_index=s.order_index))

    def close(self) -> None:
        self.db.close()
