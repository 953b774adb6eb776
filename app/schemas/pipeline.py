from pydantic import BaseModel, field_validator
from typing import List, Optional


class PipelineStage(BaseModel):
    id: str  # slug, what lead.status points at
    title: str
    color: Optional[str] = None
    order_index: int = 0

    @field_validator("id", "title")
    @classmethod
    def not_blank(cls, v):
        v = (v or "").strip()
        if not v:
            raise ValueError("must not be empty")
        return v


class PipelineResponse(BaseModel):
    stages: List[PipelineStage]
    is_default: bool  # True when the store had no stages (or was unreachable)
