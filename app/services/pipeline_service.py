import logging
from typing import List, Optional

from app.core.exceptions import StoreError, ValidationError
from app.repositories.base import LeadRepository
from app.schemas.pipeline import PipelineStage

logger = logging.getLogger(__name__)

DEFAULT_STAGES = [
    PipelineStage(id="novo", title="Novos", color="bg-lead-new", order_index=0),
    PipelineStage(id="contato", title="Em Contato", color="bg-lead-contacted", order_index=1),
    PipelineStage(id="qualificado", title="Qualificados", color="bg-lead-qualified", order_index=2),
    PipelineStage(id="proposta", title="Proposta", color="bg-lead-proposal", order_index=3),
    PipelineStage(id="negociacao", title="Negociação", color="bg-lead-negotiation", order_index=4),
    PipelineStage(id="ganho", title="Ganhos", color="bg-lead-won", order_index=5),
    PipelineStage(id="perdido", title="Perdidos", color="bg-lead-lost", order_index=6),
]

WON_STAGE = "ganho"
LOST_STAGE = "perdido"


class PipelineRegistry:
    """
    Ordered list of pipeline stages, the source of truth for valid lead
    statuses. Stored stages replace the defaults wholesale; an empty or
    unreachable store falls back to DEFAULT_STAGES so there is always a
    usable pipeline.
    """

    def __init__(self, repository: LeadRepository):
        self.repository = repository
        self.stages: List[PipelineStage] = list(DEFAULT_STAGES)
        self.is_default = True

    def load(self) -> List[PipelineStage]:
        try:
            stored = self.repository.list_pipeline_stages()
        except StoreError as e:
            logger.warning(f"⚠️ Could not load pipeline stages, using defaults: {e}")
            stored = []

        if stored:
            self.stages = sorted(stored, key=lambda s: s.order_index)
            self.is_default = False
        else:
            self.stages = list(DEFAULT_STAGES)
            self.is_default = True
        return self.stages

    def save(self, stages: List[PipelineStage]) -> List[PipelineStage]:
        if not stages:
            raise ValidationError("A pipeline needs at least one stage")

        slugs = [s.id for s in stages]
        if len(set(slugs)) != len(slugs):
            raise ValidationError("Stage ids must be unique")

        ordered = [s.model_copy(update={"order_index": i}) for i, s in enumerate(stages)]
        self.repository.replace_pipeline_stages(ordered)
        self.stages = ordered
        self.is_default = False
        logger.info(f"✅ Pipeline saved with {len(ordered)} stages")
        return self.stages

    # ---------------------------------------------------------
    # QUERIES
    # ---------------------------------------------------------
    def stage_ids(self) -> List[str]:
        return [s.id for s in self.stages]

    def first_stage_id(self) -> str:
        return self.stages[0].id

    def contains(self, stage_id: str) -> bool:
        return stage_id in self.stage_ids()

    def title_for(self, stage_id: str) -> str:
        for s in self.stages:
            if s.id == stage_id:
                return s.title
        return stage_id or ""

    def adjacent(self, stage_id: str, direction: str) -> Optional[str]:
        """Stage id one step left/right of `stage_id`; None when there is nowhere to go."""
        ids = self.stage_ids()
        if stage_id not in ids:
            return None
        step = {"left": -1, "right": 1}.get(direction)
        if step is None:
            raise ValidationError(f"Unknown direction: {direction}")
        target = ids.index(stage_id) + step
        if target < 0 or target >= len(ids):
            return None
        return ids[target]

    def orphaned(self, leads):
        """Leads whose status no longer matches any stage (no migration is attempted)."""
        ids = set(self.stage_ids())
        return [lead for lead in leads if lead.status not in ids]
