from .lead import Lead, lead_tags
from .tag import Tag
from .activity import Activity
from .pipeline_stage import PipelineStage

__all__ = [
    "Lead",
    "lead_tags",
    "Tag",
    "Activity",
    "PipelineStage",
]
