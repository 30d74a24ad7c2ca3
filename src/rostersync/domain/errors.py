"""Errors raised by sync previews and commits.

Every failure a caller can act on derives from :class:`SyncError`, so callers that only
need to report a failure can catch the base class.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from rostersync.domain.model import MembershipType


class SyncError(RuntimeError):
    """Base class for reconciliation failures."""


class UpstreamAuthExpired(SyncError):
    """The upstream rejected our credential (HTTP 401)."""

    def __init__(self, source: str) -> None:
        super().__init__(f"{source} rejected the access token; re-authentication required")
        self.source = source


class UpstreamUnavailable(SyncError):
    """The upstream answered with a non-success status or could not be reached."""

    def __init__(
        self, source: str, status_code: int | None = None, detail: str | None = None
    ) -> None:
        message = f"{source} is unavailable"
        if status_code is not None:
            message += f" (HTTP {status_code})"
        if detail:
            message += f": {detail}"
        super().__init__(message)
        self.source = source
        self.status_code = status_code


class MalformedUpstreamPayload(SyncError):
    """The upstream body was not JSON or did not match the expected shape."""

    def __init__(self, source: str, detail: str) -> None:
        super().__init__(f"{source} returned an unexpected payload: {detail}")
        self.source = source


class NoActiveConfiguration(SyncError):
    """Forum integration is not configured for the faction."""

    def __init__(self, faction_id: int | None = None) -> None:
        target = f"faction {faction_id}" if faction_id is not None else "this faction"
        super().__init__(f"Forum integration is not configured for {target}")
        self.faction_id = faction_id


class TransactionFailure(SyncError):
    """The store rejected a commit; nothing was written."""


class RosterSnapshotMissing(SyncError):
    """Organization sync needs a member snapshot to resolve names."""

    def __init__(self, faction_id: int) -> None:
        super().__init__(
            f"No member snapshot for faction {faction_id}; sync members before organization data"
        )
        self.faction_id = faction_id


class ForumGroupCacheMissing(SyncError):
    """A unit-level sync needs the cached forum group of the unit."""

    def __init__(self, faction_id: int, group_id: int) -> None:
        super().__init__(
            f"Forum group {group_id} of faction {faction_id} has not been synced yet"
        )
        self.faction_id = faction_id
        self.group_id = group_id


class UnknownOrganizationUnit(SyncError):
    def __init__(self, unit_type: MembershipType, category_id: int) -> None:
        super().__init__(f"No {unit_type} unit with id {category_id}")
        self.unit_type = unit_type
        self.category_id = category_id


class UnitNotLinked(SyncError):
    """The unit has no forum group configured, so there is nothing to sync from."""

    def __init__(self, unit_type: MembershipType, category_id: int) -> None:
        super().__init__(f"{unit_type} unit {category_id} has no forum group configured")
        self.unit_type = unit_type
        self.category_id = category_id


class InvalidPinError(SyncError):
    """A primary-character pin does not refer to one of the account's characters."""


__all__ = [
    "ForumGroupCacheMissing",
    "InvalidPinError",
    "MalformedUpstreamPayload",
    "NoActiveConfiguration",
    "RosterSnapshotMissing",
    "SyncError",
    "TransactionFailure",
    "UnitNotLinked",
    "UnknownOrganizationUnit",
    "UpstreamAuthExpired",
    "UpstreamUnavailable",
]
