import uuid
from datetime import datetime

from sqlalchemy import Column, String, Text, TIMESTAMP, ForeignKey, Table
from sqlalchemy.orm import relationship
from app.core.database import Base


def new_id():
    return uuid.uuid4().hex


# ---------------------------------------------------------
# LEAD <-> TAG (many-to-many join table)
# ---------------------------------------------------------
lead_tags = Table(
    "lead_tags",
    Base.metadata,
    Column("lead_id", String(32), ForeignKey("leads.id", ondelete="CASCADE"), primary_key=True),
    Column("tag_id", String(32), ForeignKey("tags.id", ondelete="CASCADE"), primary_key=True),
)


class Lead(Base):
    __tablename__ = "leads"

    id = Column(String(32), primary_key=True, default=new_id)

    # Contact
    name = Column(Text, nullable=False)
    email = Column(Text, index=True)
    phone = Column(Text, index=True)

    # Qualification
    location = Column(Text)
    capital = Column(Text)
    profile = Column(String(30), default="outro")
    operation = Column(String(30), default="definindo")
    interest = Column(Text)

    # Classification
    source = Column(String(30), default="outro")
    status = Column(String(50), nullable=False)  # slug of a pipeline stage

    notes = Column(Text)

    # Meeting is stored flat, present only when meeting_date is set
    meeting_date = Column(String(20))
    meeting_time = Column(String(10))
    meeting_link = Column(Text)

    submitted_at = Column(TIMESTAMP)
    created_at = Column(TIMESTAMP, default=datetime.utcnow)
    updated_at = Column(TIMESTAMP, default=datetime.utcnow)

    # Relationships
    tags = relationship("Tag", secondary=lead_tags, back_populates="leads")
    activities = relationship(
        "Activity",
        back_populates="lead",
        cascade="all, delete-orphan",
        order_by="Activity.created_at",
    )
