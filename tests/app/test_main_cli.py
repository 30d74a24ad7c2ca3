from __future__ import annotations

import json
from typing import Any

import pytest

from rostersync import main as main_module
from rostersync.domain.errors import UpstreamAuthExpired
from rostersync.domain.model import AuditAction, AuditEntry, MembershipType
from rostersync.domain.reconciliation import (
    ChangeRecord,
    Diff,
    FieldChange,
    UnitCandidate,
    UnitCandidates,
)
from tests.helpers.roster import FACTION_ID, SYNCED_AT, make_character


def _members_diff() -> Diff[int, Any, Any]:
    updated = make_character(1, "John Doe", rank=2, rank_name="Senior Officer")
    return Diff(
        added=[make_character(2, "Jane Roe")],
        updated=[
            ChangeRecord(
                key=1,
                entity=updated,
                changes={"rank_name": FieldChange(old="Officer", new="Senior Officer")},
            )
        ],
        source_data=[updated, make_character(2, "Jane Roe")],
    )


def _audit(action: AuditAction) -> AuditEntry:
    return AuditEntry(faction_id=FACTION_ID, action=action, created_at=SYNCED_AT, id=1)


def _read_output(capsys: pytest.CaptureFixture[str]) -> Any:
    return json.loads(capsys.readouterr().out)


def test_missing_faction_id_exits_with_usage_error(monkeypatch: pytest.MonkeyPatch) -> None:
    def fake_preview(*_: object, **__: object) -> None:
        raise AssertionError("preview must not run")

    monkeypatch.setattr(main_module.app, "preview_members_diff", fake_preview)

    with pytest.raises(SystemExit) as excinfo:
        main_module.main(["preview", "members"])

    assert excinfo.value.code == 2


def test_preview_members_prints_diff(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    monkeypatch.setattr(main_module.app, "preview_members_diff", lambda _faction: _members_diff())

    main_module.main(["--faction-id", str(FACTION_ID), "preview", "members"])

    output = _read_output(capsys)
    assert output["counts"] == {"added": 1, "updated": 1, "removed": 0}
    assert output["added"][0]["character_name"] == "Jane Roe"
    assert output["updated"][0]["summary"] == "Rank Name: Officer -> Senior Officer"
    assert output["updated"][0]["changes"]["rank_name"] == {
        "old": "Officer",
        "new": "Senior Officer",
    }


def test_sync_without_confirmation_is_a_dry_run(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    commits: list[object] = []
    monkeypatch.setattr(main_module.app, "preview_members_diff", lambda _faction: _members_diff())
    monkeypatch.setattr(
        main_module.app, "commit_members", lambda *args, **kwargs: commits.append(args)
    )

    main_module.main(["--faction-id", str(FACTION_ID), "sync", "members"])

    assert commits == []
    assert _read_output(capsys)["audit"] is None


def test_sync_with_confirmation_commits_the_previewed_diff(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    diff = _members_diff()
    captured: dict[str, Any] = {}

    def fake_commit(faction_id: int, preview: object, *, actor_id: int | None) -> AuditEntry:
        captured.update(faction_id=faction_id, preview=preview, actor_id=actor_id)
        return _audit(AuditAction.SYNC_MEMBERS)

    monkeypatch.setattr(main_module.app, "preview_members_diff", lambda _faction: diff)
    monkeypatch.setattr(main_module.app, "commit_members", fake_commit)

    main_module.main(
        ["--faction-id", str(FACTION_ID), "--actor-id", "42", "sync", "members", "--yes"]
    )

    assert captured == {"faction_id": FACTION_ID, "preview": diff, "actor_id": 42}
    audit = _read_output(capsys)["audit"]
    assert audit["action"] == "sync_members"
    assert audit["created_at"] == SYNCED_AT.isoformat()


def test_delete_data_requires_confirmation(monkeypatch: pytest.MonkeyPatch) -> None:
    deletions: list[int] = []
    monkeypatch.setattr(
        main_module.app,
        "delete_sync_data",
        lambda faction_id, **_: deletions.append(faction_id),
    )

    with pytest.raises(SystemExit) as excinfo:
        main_module.main(["--faction-id", str(FACTION_ID), "delete-data"])

    assert excinfo.value.code == 2
    assert deletions == []


def test_upstream_failure_exits_with_error(monkeypatch: pytest.MonkeyPatch) -> None:
    def failing_preview(_faction: int) -> None:
        raise RuntimeError("upstream down")

    monkeypatch.setattr(main_module.app, "preview_abas_diff", failing_preview)

    with pytest.raises(SystemExit) as excinfo:
        main_module.main(["--faction-id", str(FACTION_ID), "preview", "abas"])

    assert excinfo.value.code == 1


def test_unit_sync_defaults_skip_excluded_and_assigned_candidates(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    candidates = UnitCandidates(
        unit_type=MembershipType.DETAIL,
        category_id=9,
        to_add=[
            UnitCandidate(
                character_id=1, character_name="Busy", rank_name="R", is_already_assigned=True
            ),
            UnitCandidate(
                character_id=2, character_name="Excluded", rank_name="R", is_excluded=True
            ),
            UnitCandidate(character_id=3, character_name="Fresh", rank_name="R"),
        ],
        to_remove=[UnitCandidate(character_id=4, character_name="Stale", rank_name="R")],
    )
    captured: dict[str, Any] = {}

    def fake_commit(
        unit_type: MembershipType,
        category_id: int,
        add_ids: list[int],
        remove_ids: list[int],
        *,
        actor_id: int | None,
    ) -> AuditEntry:
        captured.update(unit=(unit_type, category_id), add=add_ids, remove=remove_ids)
        return _audit(AuditAction.SYNC_UNIT)

    monkeypatch.setattr(main_module.app, "preview_unit_sync", lambda *_: candidates)
    monkeypatch.setattr(main_module.app, "commit_unit_sync", fake_commit)

    main_module.main(["unit", "sync", "--type", "cat_3", "--id", "9", "--yes"])

    assert captured == {"unit": (MembershipType.DETAIL, 9), "add": [3], "remove": [4]}
    assert _read_output(capsys)["audit"]["action"] == "sync_unit"


def test_forum_select_rejects_unknown_groups(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(main_module.app, "list_forum_groups", lambda _faction: [])

    with pytest.raises(SystemExit) as excinfo:
        main_module.main(["--faction-id", str(FACTION_ID), "forum", "select", "70"])

    assert excinfo.value.code == 1


def test_rejected_credentials_exit_with_their_own_status(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    def expired_preview(_faction: int) -> None:
        raise UpstreamAuthExpired("GTA:World")

    monkeypatch.setattr(main_module.app, "preview_members_diff", expired_preview)

    with pytest.raises(SystemExit) as excinfo:
        main_module.main(["--faction-id", str(FACTION_ID), "preview", "members"])

    assert excinfo.value.code == main_module.EXIT_AUTH_EXPIRED == 3
