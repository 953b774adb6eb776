from datetime import datetime

from sqlalchemy import Column, String, Text, TIMESTAMP, ForeignKey
from sqlalchemy.orm import relationship
from app.core.database import Base
from app.models.lead import new_id


class Activity(Base):
    __tablename__ = "activities"

    id = Column(String(32), primary_key=True, default=new_id)

    lead_id = Column(String(32), ForeignKey("leads.id", ondelete="CASCADE"), nullable=False, index=True)

    # Types: 'note', 'status_change', 'call', 'email', 'meeting'
    type = Column(String(20), nullable=False)
    content = Column(Text)

    # Only filled for 'status_change'
    old_status = Column(String(50))
    new_status = Column(String(50))

    created_at = Column(TIMESTAMP, default=datetime.utcnow)

    lead = relationship("Lead", back_populates="activities")
