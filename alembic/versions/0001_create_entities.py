"""create entities and auxiliary content tables

Revision ID: 0001_create_entities
Revises:
Create Date: 2026-10-12 10:00:00.000000
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "0001_create_entities"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.execute("CREATE EXTENSION IF NOT EXISTS pgcrypto")

    op.create_table(
        "entities",
        sa.Column("id", postgresql.UUID(as_uuid=True), server_default=sa.text("gen_random_uuid()"), nullable=False),
        sa.Column("type", sa.String(length=50), nullable=False),
        sa.Column("slug", sa.String(length=255), nullable=False),
        sa.Column("title", sa.String(length=500), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("content", postgresql.JSONB(astext_type=sa.Text()), server_default=sa.text("'{}'::jsonb"), nullable=True),
        sa.Column("metadata", postgresql.JSONB(astext_type=sa.Text()), server_default=sa.text("'{}'::jsonb"), nullable=True),
        sa.Column("status", sa.String(length=20), server_default="active", nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("type", "slug", name="entities_type_slug_key"),
    )
    op.create_index("idx_entities_type", "entities", ["type"])
    op.create_index("idx_entities_status", "entities", ["status"])
    op.create_index("idx_entities_type_status", "entities", ["type", "status"])
    op.create_index("idx_entities_content_gin", "entities", ["content"], postgresql_using="gin")
    op.create_index("idx_entities_metadata_gin", "entities", ["metadata"], postgresql_using="gin")

    op.create_table(
        "entity_relationships",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("source_slug", sa.String(length=255), nullable=False),
        sa.Column("source_type", sa.String(length=50), nullable=False),
        sa.Column("target_slug", sa.String(length=255), nullable=False),
        sa.Column("target_type", sa.String(length=50), nullable=False),
        sa.Column("relation", sa.String(length=100), nullable=False),
        sa.Column("metadata", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_rels_source", "entity_relationships", ["source_slug", "source_type", "relation"])
    op.create_index("idx_rels_target", "entity_relationships", ["target_slug", "target_type", "relation"])
    op.create_index("idx_rels_relation", "entity_relationships", ["relation"])

    op.create_table(
        "content_files",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("slug", sa.String(length=255), nullable=False),
        sa.Column("type", sa.String(length=50), nullable=False),
        sa.Column("file_path", sa.String(length=500), nullable=False),
        sa.Column("metadata", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_content_files_slug_type", "content_files", ["slug", "type"])

    op.create_table(
        "user_interactions",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("entity_type", sa.String(length=50), nullable=False),
        sa.Column("entity_slug", sa.String(length=255), nullable=False),
        sa.Column("interaction_type", sa.String(length=50), nullable=False),
        sa.Column("user_id", sa.String(length=255), nullable=True),
        sa.Column("session_id", sa.String(length=255), nullable=True),
        sa.Column("metadata", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_interactions_entity", "user_interactions", ["entity_type", "entity_slug"])
    op.create_index("idx_interactions_type", "user_interactions", ["interaction_type"])


def downgrade() -> None:
    op.drop_table("user_interactions")
    op.drop_table("content_files")
    op.drop_table("entity_relationships")
    op.drop_index("idx_entities_metadata_gin", table_name="entities")
    op.drop_index("idx_entities_content_gin", table_name="entities")
    op.drop_index("idx_entities_type_status", table_name="entities")
    op.drop_index("idx_entities_status", table_name="entities")
    op.drop_index("idx_entities_type", table_name="entities")
    op.drop_table("entities")
