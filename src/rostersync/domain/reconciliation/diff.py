"""Three-way diff of a live dataset against its cached copy.

The engine is pure: it only reads attributes from the entities it is given. Live and
cached entities may be different types (``AbasEntry`` against ``AbasRecord``) as long
as both expose the compared fields.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Mapping, Sequence


@dataclass(frozen=True, slots=True)
class FieldChange:
    old: Any
    new: Any


@dataclass(slots=True, kw_only=True)
class ChangeRecord[K, T]:
    """One key present on both sides with at least one differing compared field."""

    key: K
    entity: T
    changes: dict[str, FieldChange]
    unchanged: dict[str, Any] = field(default_factory=dict[str, Any])

    @property
    def summary(self) -> str:
        return ", ".join(
            f"{field_label(name)}: {change.old} -> {change.new}"
            for name, change in self.changes.items()
        )


@dataclass(slots=True, kw_only=True)
class Diff[K, T, C]:
    """Result of :func:`diff_entities`.

    ``source_data`` always holds the full live dataset, so a commit can replay it
    without fetching again.
    """

    added: list[T] = field(default_factory=list[T])
    updated: list[ChangeRecord[K, T]] = field(default_factory=list[ChangeRecord[K, T]])
    removed: list[C] = field(default_factory=list[C])
    source_data: list[T] = field(default_factory=list[T])

    @property
    def has_changes(self) -> bool:
        return bool(self.added or self.updated or self.removed)

    def counts(self) -> dict[str, int]:
        return {
            "added": len(self.added),
            "updated": len(self.updated),
            "removed": len(self.removed),
        }


def field_label(name: str) -> str:
    """``rank_name`` -> ``Rank Name``."""

    return name.replace("_", " ").title()


def values_equal(old: Any, new: Any) -> bool:
    """Exact equality: values of different types are never equal (``1`` vs ``True``)."""

    return type(old) is type(new) and old == new


def diff_entities[K, T, C](
    live: Mapping[K, T],
    cached: Mapping[K, C],
    *,
    compared_fields: Sequence[str],
    track_removed: bool = True,
) -> Diff[K, T, C]:
    """Partition ``live`` and ``cached`` into added, updated and removed entities.

    ``added`` follows live order and ``removed`` follows cached order. With
    ``track_removed=False`` nothing is reported as removed, which suits sparse caches
    that are only ever upserted.
    """

    result: Diff[K, T, C] = Diff(source_data=list(live.values()))

    for key, entity in live.items():
        if key not in cached:
            result.added.append(entity)
            continue
        record = _compare(key, entity, cached[key], compared_fields)
        if record is not None:
            result.updated.append(record)

    if track_removed:
        result.removed.extend(entity for key, entity in cached.items() if key not in live)

    return result


def diff_records[K, T, C](
    live: Iterable[T],
    cached: Iterable[C],
    *,
    key: Callable[[Any], K],
    compared_fields: Sequence[str],
    track_removed: bool = True,
) -> Diff[K, T, C]:
    """Index both sides by ``key`` (first occurrence wins) and diff them."""

    return diff_entities(
        index_by(live, key),
        index_by(cached, key),
        compared_fields=compared_fields,
        track_removed=track_removed,
    )


def index_by[K, T](items: Iterable[T], key: Callable[[T], K]) -> dict[K, T]:
    indexed: dict[K, T] = {}
    for item in items:
        indexed.setdefault(key(item), item)
    return indexed


def _compare[K, T](
    key: K, live: T, cached: object, compared_fields: Sequence[str]
) -> ChangeRecord[K, T] | None:
    changes: dict[str, FieldChange] = {}
    unchanged: dict[str, Any] = {}
    for name in compared_fields:
        old = getattr(cached, name, None)
        new = getattr(live, name, None)
        if values_equal(old, new):
            unchanged[name] = new
        else:
            changes[name] = FieldChange(old=old, new=new)
    if not changes:
        return None
    return ChangeRecord(key=key, entity=live, changes=changes, unchanged=unchanged)
