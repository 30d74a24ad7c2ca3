"""Pydantic models describing the phpBB group API payloads."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class PhpbbBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class UserPayload(PhpbbBaseModel):
    username: str


class GroupPayload(PhpbbBaseModel):
    members: list[UserPayload] = Field(default_factory=list[UserPayload])
    leaders: list[UserPayload] = Field(default_factory=list[UserPayload])


class GroupResponse(PhpbbBaseModel):
    group: GroupPayload


class GroupSummaryPayload(PhpbbBaseModel):
    id: int
    name: str


class GroupsResponse(PhpbbBaseModel):
    groups: list[GroupSummaryPayload] = Field(default_factory=list[GroupSummaryPayload])
