#!/usr/bin/env python3

# ruff: noqa: T201

from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import fields, is_dataclass
from datetime import datetime
from signal import SIGINT, signal
from typing import TYPE_CHECKING, Any

from dotenv import load_dotenv

from rostersync import app
from rostersync.config import configure_logging
from rostersync.domain.errors import UpstreamAuthExpired
from rostersync.domain.model import MembershipType
from rostersync.domain.reconciliation import ChangeRecord, Diff

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

    from rostersync.domain.model import AuditEntry

log = logging.getLogger(__name__)

DATASETS = ("members", "abas", "forum", "organization")
EXIT_AUTH_EXPIRED = 3
_FACTIONLESS_COMMANDS = {"unit"}


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Reconcile faction rosters with GTA:World")
    parser.add_argument(
        "--faction-id",
        type=int,
        help="Faction whose sync state is read or written",
    )
    parser.add_argument(
        "--actor-id",
        type=int,
        help="Panel user id recorded on audit entries and created memberships",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("status", help="Show last sync times and forum integration state")
    subparsers.add_parser("audit", help="List recent sync audit entries")

    preview = subparsers.add_parser("preview", help="Show pending changes without writing")
    preview.add_argument("dataset", choices=DATASETS)

    sync = subparsers.add_parser("sync", help="Preview a dataset and commit it")
    sync.add_argument("dataset", choices=DATASETS)
    sync.add_argument("--yes", action="store_true", help="Commit the previewed changes")

    delete = subparsers.add_parser("delete-data", help="Delete cached upstream data")
    delete.add_argument("--yes", action="store_true", help="Confirm the deletion")

    pin = subparsers.add_parser("pin", help="Pin an account's primary character")
    pin.add_argument("--user-id", type=int, required=True)
    pin.add_argument("--character-id", type=int, required=True)

    unit = subparsers.add_parser("unit", help="Forum-driven sync of a single unit or detail")
    unit_sub = unit.add_subparsers(dest="unit_command", required=True)
    for name, help_text in (
        ("preview", "List candidates to add and remove"),
        ("sync", "Apply candidates to the unit"),
        ("exclude", "Replace the unit's exclusion list"),
    ):
        command = unit_sub.add_parser(name, help=help_text)
        command.add_argument(
            "--type",
            dest="unit_type",
            choices=[member.value for member in MembershipType],
            required=True,
        )
        command.add_argument("--id", dest="category_id", type=int, required=True)
        if name == "sync":
            command.add_argument(
                "--add",
                type=int,
                nargs="*",
                help="Character ids to add (defaults to every candidate that is "
                "neither excluded nor assigned elsewhere)",
            )
            command.add_argument(
                "--remove",
                type=int,
                nargs="*",
                help="Character ids to remove (defaults to every removal candidate)",
            )
            command.add_argument("--yes", action="store_true", help="Commit the selection")
        elif name == "exclude":
            command.add_argument("names", nargs="*", help="Character names to exclude")

    forum = subparsers.add_parser("forum", help="Forum integration settings")
    forum_sub = forum.add_subparsers(dest="forum_command", required=True)
    forum_sub.add_parser("groups", help="List every group the forum exposes")
    configure = forum_sub.add_parser("configure", help="Store forum API credentials")
    configure.add_argument("--name", type=str, required=True, help="Faction display name")
    configure.add_argument("--url", type=str, help="phpBB base URL (omit to disable)")
    configure.add_argument("--key", type=str, help="phpBB API key (omit to disable)")
    select = forum_sub.add_parser("select", help="Choose which groups are synchronised")
    select.add_argument("group_ids", type=int, nargs="*")

    return parser.parse_args(list(argv))


def _validate(args: argparse.Namespace) -> None:
    if args.command not in _FACTIONLESS_COMMANDS and args.faction_id is None:
        raise ValueError(f"Missing --faction-id for '{args.command}'")
    if args.command == "delete-data" and not args.yes:
        raise ValueError("Refusing to delete sync data without --yes")


def _jsonable(value: Any) -> Any:
    if isinstance(value, Diff):
        return {
            "counts": value.counts(),
            "added": _jsonable(value.added),
            "updated": _jsonable(value.updated),
            "removed": _jsonable(value.removed),
        }
    if isinstance(value, ChangeRecord):
        return {
            "key": _jsonable(value.key),
            "summary": value.summary,
            "changes": {
                name: {"old": _jsonable(change.old), "new": _jsonable(change.new)}
                for name, change in value.changes.items()
            },
            "entity": _jsonable(value.entity),
        }
    if is_dataclass(value) and not isinstance(value, type):
        return {item.name: _jsonable(getattr(value, item.name)) for item in fields(value)}
    if isinstance(value, dict):
        return {str(key): _jsonable(item) for key, item in value.items()}
    if isinstance(value, list | tuple | set | frozenset):
        return [_jsonable(item) for item in value]
    if isinstance(value, datetime):
        return value.isoformat()
    return value


def _emit(payload: Any) -> None:
    print(json.dumps(_jsonable(payload), indent=2, sort_keys=False))


def _preview(dataset: str, faction_id: int) -> Any:
    if dataset == "members":
        return app.preview_members_diff(faction_id)
    if dataset == "abas":
        return app.preview_abas_diff(faction_id)
    if dataset == "forum":
        return app.preview_forum_group_diff(faction_id)
    return app.preview_organization_diff(faction_id)


def _commit(dataset: str, faction_id: int, preview: Any, actor_id: int | None) -> AuditEntry:
    if dataset == "members":
        return app.commit_members(faction_id, preview, actor_id=actor_id)
    if dataset == "abas":
        return app.commit_abas(faction_id, preview.source_data, actor_id=actor_id)
    if dataset == "forum":
        return app.commit_forum_groups(faction_id, preview, actor_id=actor_id)
    payload = [item.source_data for item in preview if item.source_data is not None]
    return app.commit_organization(faction_id, payload, actor_id=actor_id)


def _run_unit(args: argparse.Namespace) -> None:
    unit_type = MembershipType(args.unit_type)
    if args.unit_command == "exclude":
        _emit(
            app.set_sync_exclusions(
                unit_type, args.category_id, args.names, actor_id=args.actor_id
            )
        )
        return

    candidates = app.preview_unit_sync(unit_type, args.category_id)
    if args.unit_command == "preview":
        _emit(candidates)
        return

    add_ids = (
        args.add
        if args.add is not None
        else [
            candidate.character_id
            for candidate in candidates.to_add
            if not candidate.is_excluded and not candidate.is_already_assigned
        ]
    )
    remove_ids = (
        args.remove
        if args.remove is not None
        else [candidate.character_id for candidate in candidates.to_remove]
    )
    entry = None
    if args.yes:
        entry = app.commit_unit_sync(
            unit_type, args.category_id, add_ids, remove_ids, actor_id=args.actor_id
        )
    else:
        log.info("Dry run: pass --yes to apply the selection")
    _emit({"candidates": candidates, "add": add_ids, "remove": remove_ids, "audit": entry})


def _run_forum(args: argparse.Namespace) -> None:
    if args.forum_command == "configure":
        _emit(
            app.configure_forum_integration(
                args.faction_id,
                name=args.name,
                phpbb_api_url=args.url,
                phpbb_api_key=args.key,
                actor_id=args.actor_id,
            )
        )
        return

    groups = app.list_forum_groups(args.faction_id)
    if args.forum_command == "groups":
        _emit(groups)
        return

    wanted = set(args.group_ids)
    selected = [group for group in groups if group.group_id in wanted]
    unknown = wanted - {group.group_id for group in selected}
    if unknown:
        raise ValueError(f"Unknown forum group ids: {sorted(unknown)}")
    _emit(app.set_syncable_forum_groups(args.faction_id, selected, actor_id=args.actor_id))


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    configure_logging()
    parsed_args: argparse.Namespace
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    try:
        parsed_args = _parse_args(args_list)
        _validate(parsed_args)
    except ValueError:
        log.exception("CLI validation error")
        sys.exit(2)

    faction_id: int = parsed_args.faction_id
    try:
        if parsed_args.command == "status":
            _emit(app.sync_status(faction_id))
        elif parsed_args.command == "audit":
            _emit(app.recent_audit_entries(faction_id))
        elif parsed_args.command == "preview":
            _emit(_preview(parsed_args.dataset, faction_id))
        elif parsed_args.command == "sync":
            preview = _preview(parsed_args.dataset, faction_id)
            entry = None
            if parsed_args.yes:
                entry = _commit(parsed_args.dataset, faction_id, preview, parsed_args.actor_id)
            else:
                log.info("Dry run: pass --yes to commit %s", parsed_args.dataset)
            _emit({"preview": preview, "audit": entry})
        elif parsed_args.command == "delete-data":
            _emit(app.delete_sync_data(faction_id, actor_id=parsed_args.actor_id))
        elif parsed_args.command == "pin":
            _emit(
                app.pin_primary_character(
                    faction_id,
                    parsed_args.user_id,
                    parsed_args.character_id,
                    actor_id=parsed_args.actor_id,
                )
            )
        elif parsed_args.command == "unit":
            _run_unit(parsed_args)
        elif parsed_args.command == "forum":
            _run_forum(parsed_args)
        else:
            raise ValueError(f"Unsupported command: {parsed_args.command}")  # noqa: TRY301

    except UpstreamAuthExpired:
        log.exception("Upstream credentials rejected; update them before retrying")
        sys.exit(EXIT_AUTH_EXPIRED)
    except Exception:
        log.exception("Fatal error during sync")
        sys.exit(1)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


def cli() -> None:
    """Console script entry point: load ``.env`` and run :func:`main`."""
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()


if __name__ == "__main__":
    cli()
