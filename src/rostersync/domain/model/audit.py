"""Append-only audit records written by every commit."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from .enums import AuditAction, AuditCategory


@dataclass(eq=False, kw_only=True)
class AuditEntry:
    faction_id: int
    action: AuditAction
    category: AuditCategory = AuditCategory.SYNC_MANAGEMENT
    actor_id: int | None = None
    details: dict[str, Any] = field(default_factory=dict[str, Any])
    created_at: datetime = field(default_factory=lambda: datetime.now(tz=UTC))
    id: int | None = None
