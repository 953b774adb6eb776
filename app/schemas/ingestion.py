from pydantic import BaseModel, Field
from typing import List

from app.schemas.lead import Lead


class IngestionResult(BaseModel):
    lead: Lead
    is_new: bool
    # secondary steps (tags, activity) that failed; the lead itself was written
    warnings: List[str] = Field(default_factory=list)


class ImportSummary(BaseModel):
    imported: int = 0
    skipped: int = 0
    failed: int = 0
