"""Lookup of characters by id, name or owning account.

Built once per reconciliation pass from the latest roster snapshot. Names are not
unique upstream; the first occurrence in roster order wins.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable

    from rostersync.domain.model import CharacterRecord, RosterSnapshot


def normalize_forum_username(username: str, separator: str = "_") -> str:
    """Forum usernames use ``separator`` where character names use a space."""

    return username.replace(separator, " ")


@dataclass(slots=True)
class CharacterIndex:
    by_id: dict[int, CharacterRecord] = field(default_factory=dict[int, "CharacterRecord"])
    by_name: dict[str, CharacterRecord] = field(default_factory=dict[str, "CharacterRecord"])
    by_user: dict[int, list[CharacterRecord]] = field(
        default_factory=dict[int, list["CharacterRecord"]]
    )

    @classmethod
    def from_records(cls, records: Iterable[CharacterRecord]) -> CharacterIndex:
        index = cls()
        for record in records:
            index.by_id.setdefault(record.character_id, record)
            index.by_name.setdefault(record.character_name, record)
            index.by_user.setdefault(record.user_id, []).append(record)
        return index

    @classmethod
    def from_snapshot(cls, snapshot: RosterSnapshot | None) -> CharacterIndex:
        return cls.from_records(snapshot.members if snapshot is not None else ())

    def __len__(self) -> int:
        return len(self.by_id)

    def get(self, character_id: int) -> CharacterRecord | None:
        return self.by_id.get(character_id)

    def lookup_name(self, character_name: str) -> CharacterRecord | None:
        return self.by_name.get(character_name)

    def name_for(self, character_id: int) -> str:
        record = self.by_id.get(character_id)
        return record.character_name if record is not None else f"ID: {character_id}"

    def rank_name_for(self, character_id: int) -> str:
        record = self.by_id.get(character_id)
        return record.rank_name if record is not None else "N/A"

    def characters_of(self, user_id: int) -> list[CharacterRecord]:
        return list(self.by_user.get(user_id, ()))

    def resolve_usernames(self, usernames: Iterable[str], *, separator: str = "_") -> list[int]:
        """Map forum usernames to character ids.

        Order follows ``usernames``, duplicates collapse and unknown names are dropped.
        """

        resolved: dict[int, None] = {}
        for username in usernames:
            record = self.by_name.get(normalize_forum_username(username, separator))
            if record is not None:
                resolved.setdefault(record.character_id, None)
        return list(resolved)
