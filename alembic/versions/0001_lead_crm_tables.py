"""lead crm tables

Revision ID: 0001
Revises:
Create Date: 2026-01-09 12:00:00

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "leads",
        sa.Column("id", sa.String(32), primary_key=True),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("email", sa.Text()),
        sa.Column("phone", sa.Text()),
        sa.Column("location", sa.Text()),
        sa.Column("capital", sa.Text()),
        sa.Column("profile", sa.String(30)),
        sa.Column("operation", sa.String(30)),
        sa.Column("interest", sa.Text()),
        sa.Column("source", sa.String(30)),
        sa.Column("status", sa.String(50), nullable=False),
        sa.Column("notes", sa.Text()),
        sa.Column("meeting_date", sa.String(20)),
        sa.Column("meeting_time", sa.String(10)),
        sa.Column("meeting_link", sa.Text()),
        sa.Column("submitted_at", sa.TIMESTAMP()),
        sa.Column("created_at", sa.TIMESTAMP()),
        sa.Column("updated_at", sa.TIMESTAMP()),
    )
    op.create_index("ix_leads_email", "leads", ["email"])
    op.create_index("ix_leads_phone", "leads", ["phone"])

    op.create_table(
        "tags",
        sa.Column("id", sa.String(32), primary_key=True),
        sa.Column("name", sa.Text(), nullable=False, unique=True),
        sa.Column("color", sa.String(30)),
        sa.Column("created_at", sa.TIMESTAMP()),
    )

    op.create_table(
        "lead_tags",
        sa.Column("lead_id", sa.String(32), sa.ForeignKey("leads.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("tag_id", sa.String(32), sa.ForeignKey("tags.id", ondelete="CASCADE"), primary_key=True),
    )

    op.create_table(
        "activities",
        sa.Column("id", sa.String(32), primary_key=True),
        sa.Column("lead_id", sa.String(32), sa.ForeignKey("leads.id", ondelete="CASCADE"), nullable=False),
        sa.Column("type", sa.String(20), nullable=False),
        sa.Column("content", sa.Text()),
        sa.Column("old_status", sa.String(50)),
        sa.Column("new_status", sa.String(50)),
        sa.Column("created_at", sa.TIMESTAMP()),
    )
    op.create_index("ix_activities_lead_id", "activities", ["lead_id"])

    op.create_table(
        "pipeline_stages",
        sa.Column("id", sa.String(32), primary_key=True),
        sa.Column("slug", sa.String(50), nullable=False, unique=True),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("color", sa.String(50)),
        sa.Column("order_index", sa.Integer()),
    )


def downgrade() -> None:
    op.drop_table("pipeline_stages")
    op.drop_index("ix_activities_lead_id", table_name="activities")
    op.drop_table("activities")
    op.drop_table("lead_tags")
    op.drop_table("tags")
    op.drop_index("ix_leads_phone", table_name="leads")
    op.drop_index("ix_leads_email", table_name="leads")
    op.drop_table("leads")
