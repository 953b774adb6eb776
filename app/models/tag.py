from datetime import datetime

from sqlalchemy import Column, String, Text, TIMESTAMP
from sqlalchemy.orm import relationship
from app.core.database import Base
from app.models.lead import lead_tags, new_id


class Tag(Base):
    __tablename__ = "tags"

    id = Column(String(32), primary_key=True, default=new_id)

    name = Column(Text, unique=True, nullable=False)  # natural key for find-or-create
    color = Column(String(30), default="#64748b")

    created_at = Column(TIMESTAMP, default=datetime.utcnow)

    leads = relationship("Lead", secondary=lead_tags, back_populates="tags")
