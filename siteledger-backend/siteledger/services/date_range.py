from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Generic, Iterable, List, Optional, TypeVar

from .normalize import parse_datetime

T = TypeVar("T")


def end_of_day(value: datetime) -> datetime:
    return value.replace(hour=23, minute=59, second=59, microsecond=999000)


def is_within_range(value: Optional[datetime], start: Optional[datetime], end: Optional[datetime]) -> bool:
    """``start <= value <= end_of_day(end)``; a missing bound is not enforced."""
    if value is None:
        return start is None and end is None
    if start is not None and value < start:
        return False
    if end is not None and value > end_of_day(end):
        return False
    return True


@dataclass(frozen=True)
class DateWindow:
    start: Optional[datetime] = None
    end: Optional[datetime] = None

    @classmethod
    def from_bounds(cls, start: Any = None, end: Any = None) -> "DateWindow":
        return cls(start=parse_datetime(start), end=parse_datetime(end))

    @property
    def is_open(self) -> bool:
        return self.start is None and self.end is None

    def contains(self, value: Optional[datetime]) -> bool:
        return is_within_range(value, self.start, self.end)


@dataclass
class DateFilterResult(Generic[T]):
    kept: List[T] = field(default_factory=list)
    skipped: int = 0


def filter_by_date(
    records: Iterable[T],
    key: Callable[[T], Optional[datetime]],
    window: Optional[DateWindow] = None,
) -> DateFilterResult[T]:
    """Keep records inside ``window``; undated records are counted, not kept.

    With no bound at all every record passes, dated or not.
    """
    window = window or DateWindow()
    result: DateFilterResult[T] = DateFilterResult()
    for record in records:
        if window.is_open:
            result.kept.append(record)
            continue
        value = key(record)
        if value is None:
            result.skipped += 1
            continue
        if window.contains(value):
            result.kept.append(record)
    return result
