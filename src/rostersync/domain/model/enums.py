"""Domain enums (pure, dependency-light)."""

from __future__ import annotations

from enum import StrEnum


class MembershipType(StrEnum):
    """Organizational level a membership row belongs to."""

    UNIT = "cat_2"
    DETAIL = "cat_3"


class AuditCategory(StrEnum):
    SYNC_MANAGEMENT = "sync_management"


class AuditAction(StrEnum):
    SYNC_MEMBERS = "sync_members"
    SYNC_ABAS = "sync_abas"
    SYNC_FORUM_GROUPS = "sync_forum_groups"
    SYNC_ORGANIZATION = "sync_organization"
    SYNC_UNIT = "sync_unit"
    PIN_PRIMARY = "pin_primary"
    UPDATE_EXCLUSIONS = "update_exclusions"
    SET_FORUM_GROUPS = "set_forum_groups"
    CONFIGURE_FORUM = "configure_forum"
    DELETE_DATA = "delete_data"
