"""Public domain model surface."""

from __future__ import annotations

from rostersync.domain.model.audit import AuditEntry
from rostersync.domain.model.enums import AuditAction, AuditCategory, MembershipType
from rostersync.domain.model.forum import (
    ForumGroupCache,
    ForumGroupRoster,
    ForumGroupSummary,
    ForumIntegration,
    ForumUser,
    SyncableForumGroup,
)
from rostersync.domain.model.organization import (
    OrganizationMembership,
    OrganizationUnit,
    SyncExclusion,
)
from rostersync.domain.model.roster import (
    AbasEntry,
    AbasRecord,
    AlternateCharacterEntry,
    CharacterRecord,
    RosterSnapshot,
)

__all__ = [  # noqa: RUF022
    # roster
    "CharacterRecord",
    "RosterSnapshot",
    "AbasEntry",
    "AbasRecord",
    "AlternateCharacterEntry",
    # organization
    "OrganizationUnit",
    "OrganizationMembership",
    "SyncExclusion",
    # forum
    "ForumIntegration",
    "SyncableForumGroup",
    "ForumUser",
    "ForumGroupRoster",
    "ForumGroupSummary",
    "ForumGroupCache",
    # audit
    "AuditEntry",
    # enums
    "AuditAction",
    "AuditCategory",
    "MembershipType",
]
