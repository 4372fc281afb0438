from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Generic, Hashable, Iterable, TypeVar

from cninfo_watch.models import Announcement, AnnualReport

T = TypeVar("T")


@dataclass
class MergeResult(Generic[T]):
    items: list[T]
    delta: list[T] = field(default_factory=list)


def merge_new(
    existing: Iterable[T],
    fetched: Iterable[T],
    key: Callable[[T], Hashable] | None = None,
) -> MergeResult[T]:
    """Append fetched items missing from ``existing`` and report them as the delta.

    Items are matched by ``key`` (the item itself when omitted) against both
    the stored items and those accepted earlier in the same call.
    """
    identity = key or (lambda item: item)
    items = list(existing)
    delta: list[T] = []
    for item in fetched:
        item_key = identity(item)
        if any(identity(seen) == item_key for seen in items):
            continue
        items.append(item)
        delta.append(item)
    return MergeResult(items=items, delta=delta)


def merge_announcements(
    existing: Iterable[Announcement],
    fetched: Iterable[Announcement],
) -> MergeResult[Announcement]:
    return merge_new(existing, fetched, key=lambda item: item.id)


def merge_annual_reports(
    existing: Iterable[AnnualReport],
    fetched: Iterable[AnnualReport],
) -> MergeResult[AnnualReport]:
    return merge_new(existing, fetched)


def sort_announcements(announcements: list[Announcement]) -> list[Announcement]:
    # newest first, higher id first on equal publish time
    announcements.sort(key=lambda item: (item.time, item.numeric_id), reverse=True)
    return announcements
