"""Reconciliation of upstream rosters into local sync state.

Layered flow:
1) index the latest roster snapshot (``identity``)
2) diff live data against cached data (``diff``, ``forum``)
3) classify alternates and reconcile unit memberships (``alternates``, ``organization``)
4) commit the result with an audit entry (``apply``)
"""

from __future__ import annotations

from .alternates import AlternatesPlan, plan_alternates, reconcile_alternates
from .diff import ChangeRecord, Diff, FieldChange, diff_entities, diff_records
from .forum import ForumGroupDiff, forum_group_diff
from .identity import CharacterIndex, normalize_forum_username
from .organization import (
    MemberChange,
    UnitCandidate,
    UnitCandidates,
    UnitReconciliation,
    UnitSyncPayload,
    UnitSyncPreview,
    apply_unit_reconciliation,
    reconcile_unit,
)

__all__ = [
    "AlternatesPlan",
    "ChangeRecord",
    "CharacterIndex",
    "Diff",
    "FieldChange",
    "ForumGroupDiff",
    "MemberChange",
    "UnitCandidate",
    "UnitCandidates",
    "UnitReconciliation",
    "UnitSyncPayload",
    "UnitSyncPreview",
    "apply_unit_reconciliation",
    "diff_entities",
    "diff_records",
    "forum_group_diff",
    "normalize_forum_username",
    "plan_alternates",
    "reconcile_alternates",
    "reconcile_unit",
]
