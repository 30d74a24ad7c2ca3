"""Primary/alternate character classification per account.

An account with two or more characters in a faction gets one cache entry naming its
primary character; every other character is an alternate. The primary is the
highest-ranked character unless an administrator pinned one manually and that
character is still in the faction.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING

from rostersync.domain.errors import InvalidPinError
from rostersync.domain.model import AlternateCharacterEntry

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from rostersync.domain.model import CharacterRecord
    from rostersync.domain.ports import AlternateCharacterRepository

log = getLogger(__name__)

type EntryKey = tuple[int, int]


@dataclass(slots=True)
class AlternatesPlan:
    """Writes needed to bring the alternate cache in line with a roster."""

    upserts: list[AlternateCharacterEntry] = field(
        default_factory=list[AlternateCharacterEntry]
    )
    deletes: list[EntryKey] = field(default_factory=list[EntryKey])
    skipped: list[int] = field(default_factory=list[int])


def group_by_account(members: Iterable[CharacterRecord]) -> dict[int, list[CharacterRecord]]:
    """Group characters by ``user_id`` in first-seen account order."""

    grouped: dict[int, list[CharacterRecord]] = {}
    for member in members:
        grouped.setdefault(member.user_id, []).append(member)
    return grouped


def plan_alternates(
    faction_id: int,
    members: Sequence[CharacterRecord],
    existing: Iterable[AlternateCharacterEntry],
) -> AlternatesPlan:
    existing_by_user = {
        entry.user_id: entry for entry in existing if entry.faction_id == faction_id
    }
    plan = AlternatesPlan()
    grouped = group_by_account(members)

    for user_id, characters in grouped.items():
        current = existing_by_user.get(user_id)
        try:
            entry = _classify(faction_id, user_id, characters, current)
        except (ValueError, TypeError):
            log.exception(
                "Skipping alternate classification for user %s in faction %s", user_id, faction_id
            )
            plan.skipped.append(user_id)
            continue
        if entry is None:
            if current is not None:
                plan.deletes.append((user_id, faction_id))
        else:
            plan.upserts.append(entry)

    plan.deletes.extend(
        (user_id, faction_id) for user_id in existing_by_user if user_id not in grouped
    )
    return plan


def reconcile_alternates(
    faction_id: int,
    members: Sequence[CharacterRecord],
    repository: AlternateCharacterRepository,
) -> AlternatesPlan:
    """Plan against the stored entries and write the result through ``repository``.

    Repository errors propagate so the surrounding unit of work rolls back.
    """

    plan = plan_alternates(faction_id, members, repository.list_for_faction(faction_id))
    for user_id, entry_faction_id in plan.deletes:
        repository.delete(user_id, entry_faction_id)
    for entry in plan.upserts:
        repository.upsert(entry)
    log.info(
        "Reconciled alternates for faction %s: upserts=%s, deletes=%s, skipped=%s",
        faction_id,
        len(plan.upserts),
        len(plan.deletes),
        len(plan.skipped),
    )
    return plan


def pinned_entry(
    faction_id: int,
    user_id: int,
    character_id: int,
    characters: Sequence[CharacterRecord],
) -> AlternateCharacterEntry:
    """Entry with ``character_id`` pinned as primary, or :class:`InvalidPinError`."""

    if len(characters) < 2:
        raise InvalidPinError(
            f"User {user_id} has fewer than two characters in faction {faction_id}"
        )
    if not any(character.character_id == character_id for character in characters):
        raise InvalidPinError(
            f"Character {character_id} does not belong to user {user_id} in faction {faction_id}"
        )
    entry = _pinned(faction_id, user_id, character_id, characters)
    if entry is None:
        raise InvalidPinError(f"User {user_id} has no alternates to pin against")
    return entry


def _classify(
    faction_id: int,
    user_id: int,
    characters: list[CharacterRecord],
    current: AlternateCharacterEntry | None,
) -> AlternateCharacterEntry | None:
    if len(characters) < 2:
        return None

    if current is not None and current.manually_set:
        pinned_ids = {character.character_id for character in characters}
        if current.character_id in pinned_ids:
            return _pinned(faction_id, user_id, current.character_id, characters)

    # sorted() is stable with reverse=True, so equal ranks keep roster order
    ordered = sorted(characters, key=lambda character: character.rank, reverse=True)
    primary, *alternatives = ordered
    return AlternateCharacterEntry(
        user_id=user_id,
        faction_id=faction_id,
        character_id=primary.character_id,
        character_name=primary.character_name,
        rank=primary.rank,
        manually_set=False,
        alternative_characters=alternatives,
    )


def _pinned(
    faction_id: int,
    user_id: int,
    character_id: int,
    characters: Sequence[CharacterRecord],
) -> AlternateCharacterEntry | None:
    primary = next(c for c in characters if c.character_id == character_id)
    alternatives = [c for c in characters if c.character_id != character_id]
    if not alternatives:
        return None
    return AlternateCharacterEntry(
        user_id=user_id,
        faction_id=faction_id,
        character_id=primary.character_id,
        character_name=primary.character_name,
        rank=primary.rank,
        manually_set=True,
        alternative_characters=alternatives,
    )
