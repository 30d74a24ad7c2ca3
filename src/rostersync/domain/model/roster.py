"""Faction roster entities: characters, snapshots and their derived caches."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from datetime import datetime


@dataclass(frozen=True, slots=True, kw_only=True)
class CharacterRecord:
    """One character as reported by the roster API.

    ``character_id`` is the canonical identity. ``character_name`` is mutable upstream
    and only used to bridge from systems that know names but not ids.
    """

    character_id: int
    character_name: str
    user_id: int
    rank: int
    rank_name: str
    last_online: datetime | None = None
    last_duty: datetime | None = None


@dataclass(eq=False, kw_only=True)
class RosterSnapshot:
    """Latest full roster of a faction, replaced wholesale on every members sync."""

    faction_id: int
    members: list[CharacterRecord] = field(default_factory=list["CharacterRecord"])
    last_sync_timestamp: datetime | None = None


@dataclass(frozen=True, slots=True, kw_only=True)
class AbasEntry:
    """Live activity score for one character.

    ``abas`` is kept as the raw upstream string so formatting changes surface in diffs.
    """

    character_id: int
    abas: str
    character_name: str | None = None


@dataclass(eq=False, kw_only=True)
class AbasRecord:
    """Cached activity score keyed by ``(character_id, faction_id)``."""

    character_id: int
    faction_id: int
    abas: str | None = None
    last_sync_timestamp: datetime | None = None


@dataclass(eq=False, kw_only=True)
class AlternateCharacterEntry:
    """Primary/alternate split for one account with several characters in a faction."""

    user_id: int
    faction_id: int
    character_id: int
    character_name: str
    rank: int
    manually_set: bool = False
    alternative_characters: list[CharacterRecord] = field(
        default_factory=list["CharacterRecord"]
    )

    @property
    def key(self) -> tuple[int, int]:
        return (self.user_id, self.faction_id)

    @property
    def alternative_ids(self) -> tuple[int, ...]:
        return tuple(record.character_id for record in self.alternative_characters)
