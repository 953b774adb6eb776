import logging
from typing import List, Optional

from app.core.exceptions import StoreError, ValidationError
from app.repositories.base import LeadRepository
from app.schemas.ingestion import IngestionResult
from app.schemas.lead import Lead, LeadIn, LeadActivity, ActivityIn
from app.services.pipeline_service import PipelineRegistry
from app.services.tag_service import TagService
from app.workers.lead.deduplicator import find_existing

logger = logging.getLogger(__name__)

COPY_SUFFIX = " (cópia)"


class LeadService:
    """
    Lead operations the panel, the webhook and the scripts depend on.

    Multi-step writes are not transactional: the primary write (the lead
    row, the status, the note) either succeeds or raises StoreError with
    the previous state intact; the follow-up steps (tag links, automatic
    activities) are idempotent, and when they fail they are logged and
    reported as warnings while the primary write stands.
    """

    def __init__(self, repository: LeadRepository, registry: PipelineRegistry, tags: TagService = None):
        self.repository = repository
        self.registry = registry
        self.tags = tags or TagService(repository)
        self.warnings: List[str] = []

    # ---------------------------------------------------------
    # HELPERS
    # ---------------------------------------------------------
    def _resolve_status(self, status: Optional[str]) -> str:
        if not status:
            return self.registry.first_stage_id()
        if not self.registry.contains(status):
            raise ValidationError(f"Unknown pipeline stage: {status}")
        return status

    def _best_effort(self, what: str, fn, *args):
        try:
            return fn(*args)
        except StoreError as e:
            message = f"{what} failed: {e}"
            logger.warning(f"⚠️ {message}")
            self.warnings.append(message)
            return None

    def _log_activity(self, lead_id: str, activity: ActivityIn):
        return self._best_effort(f"activity for lead {lead_id}", self.repository.insert_activity, lead_id, activity)

    def _reload(self, lead: Lead) -> Lead:
        try:
            return self.repository.get_lead(lead.id)
        except StoreError as e:
            logger.warning(f"⚠️ Could not reload lead {lead.id}: {e}")
            return lead

    def _status_change(self, old: str, new: str) -> ActivityIn:
        return ActivityIn(
            type="status_change",
            content=f"Status alterado de {self.registry.title_for(old)} para {self.registry.title_for(new)}",
            old_status=old,
            new_status=new,
        )

    # ---------------------------------------------------------
    # 1. READ
    # ---------------------------------------------------------
    def list(self) -> List[Lead]:
        return self.repository.list_leads()

    def get(self, lead_id: str) -> Lead:
        return self.repository.get_lead(lead_id)

    # ---------------------------------------------------------
    # 2. CREATE / UPDATE / DELETE
    # ---------------------------------------------------------
    def create(self, fields: LeadIn, activity_content: str = "Lead criado") -> Lead:
        status = self._resolve_status(fields.status)

        lead = self.repository.insert_lead(fields, status)
        logger.info(f"✅ Lead created: {lead.name} [{lead.id}]")

        if fields.tag_ids:
            self._best_effort(f"tags for lead {lead.id}", self.repository.replace_lead_tags, lead.id, fields.tag_ids)
        self._log_activity(lead.id, ActivityIn(type="note", content=activity_content))

        return self._reload(lead)

    def update(self, lead_id: str, fields: LeadIn) -> Lead:
        current = self.repository.get_lead(lead_id)
        status = self._resolve_status(fields.status) if fields.status else current.status

        self.repository.update_lead(lead_id, fields, status)
        self._best_effort(f"tags for lead {lead_id}", self.repository.replace_lead_tags, lead_id, fields.tag_ids)

        if status != current.status:
            self._log_activity(lead_id, self._status_change(current.status, status))

        return self._reload(current)

    def update_status(self, lead_id: str, new_status: str) -> Lead:
        """
        Persists a status the caller has usually already shown (optimistic
        update). On StoreError nothing changed and the caller rolls back its view.
        Same status as the current one is a no-op: no write, no activity.
        """
        if not new_status or not self.registry.contains(new_status):
            raise ValidationError(f"Unknown pipeline stage: {new_status}")

        lead = self.repository.get_lead(lead_id)
        if lead.status == new_status:
            return lead

        self.repository.set_lead_status(lead_id, new_status)
        logger.info(f"🔀 Lead {lead_id}: {lead.status} -> {new_status}")
        self._log_activity(lead_id, self._status_change(lead.status, new_status))

        return self._reload(lead)

    def move(self, lead_id: str, direction: str) -> Lead:
        lead = self.repository.get_lead(lead_id)
        target = self.registry.adjacent(lead.status, direction)
        if target is None:
            return lead
        return self.update_status(lead_id, target)

    def delete(self, lead_id: str) -> None:
        # activities go with the lead only if the store cascades
        self.repository.delete_lead(lead_id)
        logger.info(f"🗑️ Lead deleted: {lead_id}")

    def duplicate(self, lead_id: str) -> Lead:
        original = self.repository.get_lead(lead_id)
        fields = original.to_input().model_copy(update={
            "name": f"{original.name}{COPY_SUFFIX}",
            "status": self.registry.first_stage_id(),
            "submitted_at": None,
        })
        return self.create(fields)

    def add_note(self, lead_id: str, content: str) -> LeadActivity:
        content = (content or "").strip()
        if not content:
            raise ValidationError("Note content is required")

        activity = self.repository.insert_activity(lead_id, ActivityIn(type="note", content=content))
        self._best_effort(f"updated_at for lead {lead_id}", self.repository.touch_lead, lead_id)
        return activity

    # ---------------------------------------------------------
    # 3. TAGS
    # ---------------------------------------------------------
    def sync_tags(self, lead_id: str, tag_specs: List[dict]) -> List[str]:
        """
        Find-or-create every {"name", "color"} and make them the lead's tag set.
        Safe to call again after a partial failure.
        """
        tag_ids = []
        for spec in tag_specs:
            tag = self._best_effort(f"tag '{spec['name']}'", self.tags.find_or_create, spec["name"], spec.get("color"))
            if tag:
                tag_ids.append(tag.id)

        self.repository.replace_lead_tags(lead_id, tag_ids)
        return tag_ids

    # ---------------------------------------------------------
    # 4. UPSERT (ingestion)
    # ---------------------------------------------------------
    def upsert(self, fields: LeadIn, tag_specs: List[dict] = None, channel: str = "Webhook") -> IngestionResult:
        """
        Email first, then phone: a match is overwritten in place, otherwise a
        new lead is created. The lead keeps its pipeline stage when updated.
        """
        self.warnings = []
        existing = find_existing(self.repository, fields.email, fields.phone)

        if existing:
            status = existing.status if self.registry.contains(existing.status) else self.registry.first_stage_id()
            self.repository.update_lead(existing.id, fields, status)
            lead, is_new = existing, False
            logger.info(f"♻️ Lead updated via {channel}: {fields.name} [{lead.id}]")
            if status != existing.status:
                # stage was removed from the pipeline, lead falls back to the first one
                self._log_activity(lead.id, self._status_change(existing.status, status))
        else:
            lead = self.repository.insert_lead(fields, self.registry.first_stage_id())
            is_new = True
            logger.info(f"✅ Lead created via {channel}: {fields.name} [{lead.id}]")

        if tag_specs:
            self._best_effort(f"tags for lead {lead.id}", self.sync_tags, lead.id, tag_specs)

        verb = "criado" if is_new else "atualizado"
        self._log_activity(lead.id, ActivityIn(type="note", content=f"Lead {verb} via {channel}"))

        return IngestionResult(lead=self._reload(lead), is_new=is_new, warnings=list(self.warnings))
