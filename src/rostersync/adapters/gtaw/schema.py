"""Pydantic models describing the GTA:World UCP faction API payloads."""

from __future__ import annotations

from datetime import datetime  # noqa: TC003

from pydantic import BaseModel, ConfigDict, field_validator


def _blank_to_none(value: object) -> object:
    if isinstance(value, str):
        stripped = value.strip()
        return stripped or None
    return value


class GtawBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class MemberPayload(GtawBaseModel):
    character_id: int
    character_name: str
    user_id: int
    rank: int
    rank_name: str
    last_online: datetime | None = None
    last_duty: datetime | None = None

    _normalize_timestamps = field_validator("last_online", "last_duty", mode="before")(
        _blank_to_none
    )


class FactionData(GtawBaseModel):
    members: list[MemberPayload]


class FactionResponse(GtawBaseModel):
    data: FactionData


class AbasPayload(GtawBaseModel):
    character_id: int
    abas: str

    @field_validator("abas", mode="before")
    @classmethod
    def _keep_raw_text(cls, value: object) -> object:
        # Only string scores keep their exact text. JSON numbers arrive parsed,
        # so 12.00 becomes "12.0".
        if isinstance(value, int | float) and not isinstance(value, bool):
            return str(value)
        return value


class AbasResponse(GtawBaseModel):
    data: list[AbasPayload]
