"""Initial schema: upstream caches, organization data and audit log.

Revision ID: 0001
Revises:
Create Date: 2026-10-19
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

revision = "0001"
down_revision = None
branch_labels = None
depends_on = None

MEMBERSHIP_TYPES = ("cat_2", "cat_3")
AUDIT_CATEGORIES = ("sync_management",)
AUDIT_ACTIONS = (
    "sync_members",
    "sync_abas",
    "sync_forum_groups",
    "sync_organization",
    "sync_unit",
    "pin_primary",
    "update_exclusions",
    "set_forum_groups",
    "configure_forum",
    "delete_data",
)


def _membership_type() -> sa.Enum:
    return sa.Enum(*MEMBERSHIP_TYPES, name="membership_type", native_enum=False, length=32)


def upgrade() -> None:
    op.create_table(
        "roster_snapshot",
        sa.Column("faction_id", sa.Integer(), autoincrement=False, nullable=False),
        sa.Column("members", sa.Text(), nullable=False),
        sa.Column("last_sync_timestamp", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("faction_id", name="pk_roster_snapshot"),
    )
    op.create_table(
        "abas_cache",
        sa.Column("character_id", sa.Integer(), autoincrement=False, nullable=False),
        sa.Column("faction_id", sa.Integer(), autoincrement=False, nullable=False),
        sa.Column("abas", sa.String(), nullable=True),
        sa.Column("last_sync_timestamp", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("character_id", "faction_id", name="pk_abas_cache"),
    )
    op.create_table(
        "alternate_character",
        sa.Column("user_id", sa.Integer(), autoincrement=False, nullable=False),
        sa.Column("faction_id", sa.Integer(), autoincrement=False, nullable=False),
        sa.Column("character_id", sa.Integer(), nullable=False),
        sa.Column("character_name", sa.String(), nullable=False),
        sa.Column("rank", sa.Integer(), nullable=False),
        sa.Column("manually_set", sa.Boolean(), nullable=False),
        sa.Column("alternative_characters", sa.Text(), nullable=False),
        sa.PrimaryKeyConstraint("user_id", "faction_id", name="pk_alternate_character"),
    )
    op.create_table(
        "forum_group_cache",
        sa.Column("faction_id", sa.Integer(), autoincrement=False, nullable=False),
        sa.Column("group_id", sa.Integer(), autoincrement=False, nullable=False),
        sa.Column("members", sa.Text(), nullable=False),
        sa.Column("last_sync_timestamp", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("faction_id", "group_id", name="pk_forum_group_cache"),
    )
    op.create_table(
        "faction",
        sa.Column("faction_id", sa.Integer(), autoincrement=False, nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("phpbb_api_url", sa.String(), nullable=True),
        sa.Column("phpbb_api_key", sa.String(), nullable=True),
        sa.PrimaryKeyConstraint("faction_id", name="pk_faction"),
    )
    op.create_table(
        "syncable_forum_group",
        sa.Column("faction_id", sa.Integer(), autoincrement=False, nullable=False),
        sa.Column("group_id", sa.Integer(), autoincrement=False, nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.PrimaryKeyConstraint("faction_id", "group_id", name="pk_syncable_forum_group"),
    )
    op.create_table(
        "organization_unit",
        sa.Column("type", _membership_type(), nullable=False),
        sa.Column("id", sa.Integer(), autoincrement=False, nullable=False),
        sa.Column("faction_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("forum_group_id", sa.Integer(), nullable=True),
        sa.Column("secondary", sa.Boolean(), nullable=False),
        sa.Column("default_title", sa.String(), nullable=True),
        sa.PrimaryKeyConstraint("type", "id", name="pk_organization_unit"),
    )
    op.create_index(
        "ix_organization_unit_faction_id", "organization_unit", ["faction_id"], unique=False
    )
    op.create_table(
        "organization_membership",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("type", _membership_type(), nullable=False),
        sa.Column("category_id", sa.Integer(), nullable=False),
        sa.Column("character_id", sa.Integer(), nullable=False),
        sa.Column("manual", sa.Boolean(), nullable=False),
        sa.Column("title", sa.String(), nullable=True),
        sa.Column("secondary", sa.Boolean(), nullable=False),
        sa.Column("created_by", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id", name="pk_organization_membership"),
        sa.UniqueConstraint(
            "type",
            "category_id",
            "character_id",
            name="uq_organization_membership_organization_membership_type",
        ),
    )
    op.create_index(
        "ix_organization_membership_unit",
        "organization_membership",
        ["type", "category_id"],
        unique=False,
    )
    op.create_table(
        "sync_exclusion",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("type", _membership_type(), nullable=False),
        sa.Column("category_id", sa.Integer(), nullable=False),
        sa.Column("character_name", sa.String(), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_sync_exclusion"),
        sa.UniqueConstraint(
            "type",
            "category_id",
            "character_name",
            name="uq_sync_exclusion_sync_exclusion_type",
        ),
    )
    op.create_table(
        "audit_log",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("faction_id", sa.Integer(), nullable=False),
        sa.Column("actor_id", sa.Integer(), nullable=True),
        sa.Column(
            "category",
            sa.Enum(*AUDIT_CATEGORIES, name="audit_category", native_enum=False, length=32),
            nullable=False,
        ),
        sa.Column(
            "action",
            sa.Enum(*AUDIT_ACTIONS, name="audit_action", native_enum=False, length=32),
            nullable=False,
        ),
        sa.Column("details", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_audit_log"),
    )
    op.create_index("ix_audit_log_faction_id", "audit_log", ["faction_id"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_audit_log_faction_id", table_name="audit_log")
    op.drop_table("audit_log")
    op.drop_table("sync_exclusion")
    op.drop_index("ix_organization_membership_unit", table_name="organization_membership")
    op.drop_table("organization_membership")
    op.drop_index("ix_organization_unit_faction_id", table_name="organization_unit")
    op.drop_table("organization_unit")
    op.drop_table("syncable_forum_group")
    op.drop_table("faction")
    op.drop_table("forum_group_cache")
    op.drop_table("alternate_character")
    op.drop_table("abas_cache")
    op.drop_table("roster_snapshot")
