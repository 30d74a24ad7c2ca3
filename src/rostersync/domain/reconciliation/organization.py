"""Forum-driven organization membership reconciliation.

Rows created by sync carry ``manual=False``. Rows an administrator created carry
``manual=True`` and are never removed or duplicated by sync.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from logging import getLogger
from typing import TYPE_CHECKING

from rostersync.domain.model import MembershipType, OrganizationMembership

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from rostersync.domain.model import ForumGroupCache, OrganizationUnit
    from rostersync.domain.ports import MembershipRepository
    from rostersync.domain.reconciliation.identity import CharacterIndex

log = getLogger(__name__)


@dataclass(frozen=True, slots=True, kw_only=True)
class UnitReconciliation:
    unit_type: MembershipType
    category_id: int
    added: tuple[int, ...] = ()
    removed: tuple[int, ...] = ()

    @property
    def has_changes(self) -> bool:
        return bool(self.added or self.removed)


@dataclass(frozen=True, slots=True, kw_only=True)
class UnitSyncPayload:
    """Desired automatic membership of one unit, replayed by ``commit_organization``."""

    type: MembershipType
    category_id: int
    character_ids: tuple[int, ...] = ()


@dataclass(frozen=True, slots=True, kw_only=True)
class MemberChange:
    character_id: int
    character_name: str
    rank_name: str = "N/A"


@dataclass(slots=True, kw_only=True)
class UnitSyncPreview:
    """Per-unit preview; ``source_data`` is what a commit of this unit replays."""

    unit_type: MembershipType
    category_id: int
    unit_name: str
    added: list[MemberChange] = field(default_factory=list[MemberChange])
    removed: list[MemberChange] = field(default_factory=list[MemberChange])
    source_data: UnitSyncPayload | None = None


@dataclass(frozen=True, slots=True, kw_only=True)
class UnitCandidate:
    character_id: int
    character_name: str
    rank_name: str
    is_already_assigned: bool = False
    is_excluded: bool = False


@dataclass(slots=True, kw_only=True)
class UnitCandidates:
    """Candidates for one unit's confirm step; the caller picks the subset to apply."""

    unit_type: MembershipType
    category_id: int
    to_add: list[UnitCandidate] = field(default_factory=list[UnitCandidate])
    to_remove: list[UnitCandidate] = field(default_factory=list[UnitCandidate])


def reconcile_unit(
    unit_type: MembershipType,
    category_id: int,
    desired_ids: Iterable[int],
    current_rows: Iterable[OrganizationMembership],
) -> UnitReconciliation:
    """Compute which character ids to insert and which automatic rows to delete.

    ``added`` follows ``desired_ids`` order and ``removed`` follows ``current_rows``
    order. A desired character that already has any row (manual or automatic) is
    left alone.
    """

    desired = list(dict.fromkeys(desired_ids))
    desired_set = set(desired)
    rows = [
        row for row in current_rows if row.type == unit_type and row.category_id == category_id
    ]
    present = {row.character_id for row in rows}

    added = tuple(character_id for character_id in desired if character_id not in present)
    removed = tuple(
        dict.fromkeys(
            row.character_id
            for row in rows
            if not row.manual and row.character_id not in desired_set
        )
    )
    return UnitReconciliation(
        unit_type=unit_type, category_id=category_id, added=added, removed=removed
    )


def apply_unit_reconciliation(
    repository: MembershipRepository,
    reconciliation: UnitReconciliation,
    *,
    actor_id: int | None,
    title: str | None = None,
    secondary: bool = False,
    now: datetime | None = None,
) -> None:
    """Delete then insert automatic rows within the caller's unit of work."""

    if reconciliation.removed:
        repository.delete_automatic(
            reconciliation.unit_type, reconciliation.category_id, reconciliation.removed
        )
    created_at = now or datetime.now(tz=UTC)
    for character_id in reconciliation.added:
        repository.add(
            OrganizationMembership(
                type=reconciliation.unit_type,
                category_id=reconciliation.category_id,
                character_id=character_id,
                manual=False,
                title=title,
                secondary=secondary,
                created_by=actor_id,
                created_at=created_at,
            )
        )
    log.debug(
        "Applied %s %s: added=%s, removed=%s",
        reconciliation.unit_type,
        reconciliation.category_id,
        len(reconciliation.added),
        len(reconciliation.removed),
    )


def desired_character_ids(
    cache: ForumGroupCache,
    index: CharacterIndex,
    *,
    separator: str = "_",
    include_leaders: bool = True,
) -> tuple[int, ...]:
    """Character ids of the cached forum group members that resolve against the roster."""

    usernames = (
        user.username for user in cache.members if include_leaders or not user.leader
    )
    return tuple(index.resolve_usernames(usernames, separator=separator))


def unit_preview(
    unit: OrganizationUnit,
    cache: ForumGroupCache,
    current_rows: Sequence[OrganizationMembership],
    index: CharacterIndex,
    *,
    separator: str = "_",
    include_leaders: bool = True,
) -> UnitSyncPreview:
    desired = desired_character_ids(
        cache, index, separator=separator, include_leaders=include_leaders
    )
    reconciliation = reconcile_unit(unit.type, unit.id, desired, current_rows)
    return UnitSyncPreview(
        unit_type=unit.type,
        category_id=unit.id,
        unit_name=unit.name,
        added=[_member_change(character_id, index) for character_id in reconciliation.added],
        removed=[
            _member_change(character_id, index) for character_id in reconciliation.removed
        ],
        source_data=UnitSyncPayload(type=unit.type, category_id=unit.id, character_ids=desired),
    )


def unit_candidates(
    unit: OrganizationUnit,
    reconciliation: UnitReconciliation,
    index: CharacterIndex,
    *,
    assigned_elsewhere: set[int],
    excluded_names: set[str],
) -> UnitCandidates:
    """Annotate a reconciliation with assignment conflicts and exclusions.

    A candidate counts as already assigned only when this unit is primary and the
    character holds a primary membership in some other unit.
    """

    to_add: list[UnitCandidate] = []
    for character_id in reconciliation.added:
        record = index.get(character_id)
        to_add.append(
            UnitCandidate(
                character_id=character_id,
                character_name=index.name_for(character_id),
                rank_name=index.rank_name_for(character_id),
                is_already_assigned=not unit.secondary and character_id in assigned_elsewhere,
                is_excluded=record is not None and record.character_name in excluded_names,
            )
        )
    to_remove = [
        UnitCandidate(
            character_id=character_id,
            character_name=index.name_for(character_id),
            rank_name=index.rank_name_for(character_id),
        )
        for character_id in reconciliation.removed
    ]
    return UnitCandidates(
        unit_type=unit.type, category_id=unit.id, to_add=to_add, to_remove=to_remove
    )


def _member_change(character_id: int, index: CharacterIndex) -> MemberChange:
    return MemberChange(
        character_id=character_id,
        character_name=index.name_for(character_id),
        rank_name=index.rank_name_for(character_id),
    )
