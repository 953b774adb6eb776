from pydantic import BaseModel, field_validator
from typing import Optional

DEFAULT_TAG_COLOR = "#64748b"


class TagCreate(BaseModel):
    name: str
    color: Optional[str] = DEFAULT_TAG_COLOR

    @field_validator("name")
    @classmethod
    def name_required(cls, v):
        v = (v or "").strip()
        if not v:
            raise ValueError("name is required")
        return v


class TagUpdate(TagCreate):
    pass
