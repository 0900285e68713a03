"""init schema

Revision ID: 20261019_0001
Revises:
Create Date: 2026-10-19 00:00:00.000000
"""

from alembic import op
import sqlalchemy as sa


revision = "20261019_0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    store_status = sa.Enum("Provisioning", "Ready", "Failed", "Deleting", "TeardownFailed", name="store_status")
    job_status = sa.Enum("QUEUED", "IN_PROGRESS", "DONE", "CANCELLED", name="job_status")

    op.create_table(
        "stores",
        sa.Column("id", sa.String(length=64), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=120), nullable=False),
        sa.Column("type", sa.String(length=64), nullable=False),
        sa.Column("status", store_status, nullable=False),
        sa.Column("url", sa.String(length=255), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_stores_created_at", "stores", ["created_at"])

    op.create_table(
        "provisioning_jobs",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column("store_id", sa.String(length=64), nullable=False),
        sa.Column("hostname", sa.String(length=255), nullable=False),
        sa.Column("engine", sa.String(length=64), nullable=False),
        sa.Column("status", job_status, nullable=False),
        sa.Column("attempt", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("locked_by", sa.String(length=120), nullable=True),
        sa.Column("locked_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_provisioning_jobs_store_id", "provisioning_jobs", ["store_id"])
    op.create_index("ix_provisioning_jobs_status_created", "provisioning_jobs", ["status", "created_at"])

    op.create_table(
        "store_events",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("store_id", sa.String(length=64), nullable=False),
        sa.Column("event_type", sa.String(length=80), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_store_events_store_id_created", "store_events", ["store_id", "created_at"])

    op.create_table(
        "rate_limit_hits",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("key", sa.String(length=200), nullable=False),
        sa.Column("hit_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_rate_limit_hits_key", "rate_limit_hits", ["key"])


def downgrade() -> None:
    op.drop_index("ix_rate_limit_hits_key", table_name="rate_limit_hits")
    op.drop_table("rate_limit_hits")
    op.drop_index("ix_store_events_store_id_created", table_name="store_events")
    op.drop_table("store_events")
    op.drop_index("ix_provisioning_jobs_status_created", table_name="provisioning_jobs")
    op.drop_index("ix_provisioning_jobs_store_id", table_name="provisioning_jobs")
    op.drop_table("provisioning_jobs")
    op.drop_index("ix_stores_created_at", table_name="stores")
    op.drop_table("stores")

    bind = op.get_bind()
    sa.Enum(name="job_status").drop(bind, checkfirst=True)
    sa.Enum(name="store_status").drop(bind, checkfirst=True)
