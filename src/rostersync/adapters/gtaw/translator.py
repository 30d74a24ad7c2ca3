"""Translate GTA:World payloads into domain records."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING

from rostersync.domain.model import AbasEntry, CharacterRecord

if TYPE_CHECKING:
    from .schema import AbasPayload, MemberPayload


def _as_utc(value: datetime | None) -> datetime | None:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def parse_member(payload: MemberPayload) -> CharacterRecord:
    return CharacterRecord(
        character_id=payload.character_id,
        character_name=payload.character_name,
        user_id=payload.user_id,
        rank=payload.rank,
        rank_name=payload.rank_name,
        last_online=_as_utc(payload.last_online),
        last_duty=_as_utc(payload.last_duty),
    )


def parse_abas(payload: AbasPayload) -> AbasEntry:
    return AbasEntry(character_id=payload.character_id, abas=payload.abas)
