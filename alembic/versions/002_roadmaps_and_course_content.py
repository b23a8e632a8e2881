"""Course content (outcomes, syllabus) and learning roadmaps.

Revision ID: 002_roadmaps_and_course_content
Revises: 001_catalog_tables
Create Date: 2026-10-18
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision: str = "002_roadmaps_and_course_content"
down_revision: str | None = "001_catalog_tables"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.add_column("courses", sa.Column("instructor_bio", sa.Text, nullable=True))

    # --- Course content ---
    op.create_table(
        "course_learning_outcomes",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("course_id", sa.String(36), sa.ForeignKey("courses.id", ondelete="CASCADE"), nullable=False),
        sa.Column("text", sa.Text, nullable=False),
        sa.Column("sort_order", sa.Integer, nullable=False, server_default="0"),
    )
    op.create_index("ix_course_learning_outcomes_course_id", "course_learning_outcomes", ["course_id"])

    op.create_table(
        "course_syllabus_sections",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("course_id", sa.String(36), sa.ForeignKey("courses.id", ondelete="CASCADE"), nullable=False),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("duration", sa.String(20), nullable=True),
        sa.Column("sort_order", sa.Integer, nullable=False, server_default="0"),
    )
    op.create_index("ix_course_syllabus_sections_course_id", "course_syllabus_sections", ["course_id"])

    op.create_table(
        "course_syllabus_items",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "section_id",
            sa.String(36),
            sa.ForeignKey("course_syllabus_sections.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("sort_order", sa.Integer, nullable=False, server_default="0"),
    )
    op.create_index("ix_course_syllabus_items_section_id", "course_syllabus_items", ["section_id"])

    # --- Roadmaps ---
    op.create_table(
        "roadmaps",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("slug", sa.String(200), nullable=False),
        sa.Column("subtitle", sa.String(320), nullable=True),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("icon_name", sa.String(50), nullable=True),
        sa.Column("estimated_hours", sa.Integer, nullable=True),
        sa.Column("level", sa.String(16), nullable=False, server_default="ALL_LEVELS"),
        sa.Column("skill_tags", postgresql.JSONB, nullable=False, server_default=sa.text("'[]'::jsonb")),
        sa.Column("has_job_guarantee", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("has_certificate", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("has_free_resources", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("is_short_path", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("is_featured", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("sort_order", sa.Integer, nullable=False, server_default="0"),
        sa.Column("category_id", sa.String(36), sa.ForeignKey("categories.id"), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("NOW()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("NOW()")),
        sa.UniqueConstraint("slug", name="uq_roadmaps_slug"),
    )
    op.create_index("ix_roadmaps_active_sort", "roadmaps", ["is_active", "sort_order"])

    op.create_table(
        "roadmap_steps",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("roadmap_id", sa.String(36), sa.ForeignKey("roadmaps.id", ondelete="CASCADE"), nullable=False),
        sa.Column("course_id", sa.String(36), sa.ForeignKey("courses.id"), nullable=False),
        sa.Column("title", sa.String(200), nullable=True),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("order_index", sa.Integer, nullable=False, server_default="0"),
    )
    op.create_index("ix_roadmap_steps_roadmap_id", "roadmap_steps", ["roadmap_id"])


def downgrade() -> None:
    op.drop_table("roadmap_steps")
    op.drop_table("roadmaps")
    op.drop_table("course_syllabus_items")
    op.drop_table("course_syllabus_sections")
    op.drop_table("course_learning_outcomes")
    op.drop_column("courses", "instructor_bio")
