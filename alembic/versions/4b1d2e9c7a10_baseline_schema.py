"""Baseline schema: users, usage logs, skills, curriculums and homework jobs.

Revision ID: 4b1d2e9c7a10
Revises:
Create Date: 2026-10-19
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "4b1d2e9c7a10"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
  """Upgrade schema."""
  op.create_table(
    "users",
    sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
    sa.Column("firebase_uid", sa.String(), nullable=False),
    sa.Column("email", sa.String(), nullable=False),
    sa.Column("preferences", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
    sa.Column("quota_used", sa.Integer(), server_default="0", nullable=False),
    sa.Column("quota_limit", sa.Integer(), server_default="1000", nullable=False),
    sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=True),
    sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=True),
    sa.PrimaryKeyConstraint("id"),
  )
  op.create_index(op.f("ix_users_firebase_uid"), "users", ["firebase_uid"], unique=True)
  op.create_index(op.f("ix_users_email"), "users", ["email"], unique=True)

  op.create_table(
    "user_usage_logs",
    sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
    sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
    sa.Column("action_type", sa.String(), nullable=False),
    sa.Column("quantity", sa.Integer(), nullable=False),
    sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
    sa.PrimaryKeyConstraint("id"),
  )
  op.create_index(op.f("ix_user_usage_logs_user_id"), "user_usage_logs", ["user_id"], unique=False)

  confidence_tier = postgresql.ENUM("low", "medium", "high", name="confidence_tier")
  op.create_table(
    "skill_records",
    sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
    sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
    sa.Column("lesson_id", sa.String(), nullable=False),
    sa.Column("mastery_score", sa.Float(), nullable=False),
    sa.Column("confidence", confidence_tier, nullable=False),
    sa.Column("last_attempt", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
    sa.PrimaryKeyConstraint("id"),
    sa.UniqueConstraint("user_id", "lesson_id", name="ux_skill_records_user_lesson"),
  )
  op.create_index(op.f("ix_skill_records_user_id"), "skill_records", ["user_id"], unique=False)
  op.create_index(op.f("ix_skill_records_lesson_id"), "skill_records", ["lesson_id"], unique=False)

  op.create_table(
    "curriculums",
    sa.Column("id", sa.String(), nullable=False),
    sa.Column("country_code", sa.String(), nullable=False),
    sa.Column("data", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
    sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=True),
    sa.PrimaryKeyConstraint("id"),
  )
  op.create_index(op.f("ix_curriculums_country_code"), "curriculums", ["country_code"], unique=False)

  op.create_table(
    "homework_jobs",
    sa.Column("id", sa.String(), nullable=False),
    sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
    sa.Column("status", sa.String(), nullable=False),
    sa.Column("learning_style", sa.String(), nullable=False),
    sa.Column("image_bytes", sa.LargeBinary(), nullable=True),
    sa.Column("image_media_type", sa.String(), nullable=False),
    sa.Column("solution", sa.Text(), nullable=True),
    sa.Column("failure_reason", sa.Text(), nullable=True),
    sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    sa.Column("started_at", sa.DateTime(timezone=True), nullable=True),
    sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
    sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
    sa.PrimaryKeyConstraint("id"),
  )
  op.create_index(op.f("ix_homework_jobs_user_id"), "homework_jobs", ["user_id"], unique=False)
  op.create_index("ix_homework_jobs_status_updated", "homework_jobs", ["status", "updated_at"], unique=False)


def downgrade() -> None:
  """Downgrade schema."""
  op.drop_index("ix_homework_jobs_status_updated", table_name="homework_jobs")
  op.drop_index(op.f("ix_homework_jobs_user_id"), table_name="homework_jobs")
  op.drop_table("homework_jobs")
  op.drop_index(op.f("ix_curriculums_country_code"), table_name="curriculums")
  op.drop_table("curriculums")
  op.drop_index(op.f("ix_skill_records_lesson_id"), table_name="skill_records")
  op.drop_index(op.f("ix_skill_records_user_id"), table_name="skill_records")
  op.drop_table("skill_records")
  postgresql.ENUM(name="confidence_tier").drop(op.get_bind(), checkfirst=True)
  op.drop_index(op.f("ix_user_usage_logs_user_id"), table_name="user_usage_logs")
  op.drop_table("user_usage_logs")
  op.drop_index(op.f("ix_users_email"), table_name="users")
  op.drop_index(op.f("ix_users_firebase_uid"), table_name="users")
  op.drop_table("users")
