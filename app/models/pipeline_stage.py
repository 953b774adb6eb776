from sqlalchemy import Column, Integer, String, Text
from app.core.database import Base
from app.models.lead import new_id


class PipelineStage(Base):
    __tablename__ = "pipeline_stages"

    id = Column(String(32), primary_key=True, default=new_id)

    slug = Column(String(50), unique=True, nullable=False)  # what leads.status points at
    title = Column(Text, nullable=False)
    color = Column(String(50))
    order_index = Column(Integer)
