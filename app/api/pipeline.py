from fastapi import APIRouter, Depends
from typing import List

from app.core.dependencies import get_registry
from app.services.pipeline_service import PipelineRegistry
from app.schemas.pipeline import PipelineStage, PipelineResponse

router = APIRouter(prefix="/api/pipeline", tags=["Pipeline"])


@router.get("/", response_model=PipelineResponse)
def get_pipeline(registry: PipelineRegistry = Depends(get_registry)):
    return PipelineResponse(stages=registry.stages, is_default=registry.is_default)


@router.put("/", response_model=PipelineResponse)
def save_pipeline(stages: List[PipelineStage], registry: PipelineRegistry = Depends(get_registry)):
    # leads on removed stages are left as they are, see /api/leads/orphans
    registry.save(stages)
    return PipelineResponse(stages=registry.stages, is_default=registry.is_default)
