"""Organizational units (units and details) and their memberships."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from datetime import datetime

    from .enums import MembershipType


@dataclass(eq=False, kw_only=True)
class OrganizationUnit:
    """A unit or detail, optionally linked to a forum group for membership sync."""

    id: int
    faction_id: int
    type: MembershipType
    name: str
    forum_group_id: int | None = None
    secondary: bool = False
    default_title: str | None = None


@dataclass(eq=False, kw_only=True)
class OrganizationMembership:
    """Membership row. Sync only ever creates or deletes rows with ``manual=False``."""

    type: MembershipType
    category_id: int
    character_id: int
    manual: bool = False
    title: str | None = None
    secondary: bool = False
    created_by: int | None = None
    created_at: datetime | None = None
    id: int | None = None


@dataclass(eq=False, kw_only=True)
class SyncExclusion:
    """Character name an administrator excluded from a unit's forum sync."""

    type: MembershipType
    category_id: int
    character_name: str
    id: int | None = None
