"""
Booking rule variants.

Every rule has a day/resource scope and three operations:

- calculate_selection: the span a click on ``hour_idx`` should propose.
- extend_selection:    the span after a drag onto ``new_hour_idx``, or the input
                       selection unchanged when the move is not allowed.
- validate:            whether a final span satisfies the rule. Rules are inert
                       (always valid) outside their scope.

Free-run searches are greedy single-pass scans over the 0..23 hour range; they
stop at the first booked hour or range boundary. A click on a booked hour only
ever proposes that single hour; callers holding the booking state reject it.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import ClassVar, Collection, Optional, Protocol, Sequence

from .selection import FIRST_HOUR, HOURS_PER_DAY, LAST_HOUR, IsBooked, ResourceRef, Selection, resource_index

__all__ = [
    "BaseRule",
    "BookingRule",
    "FixedDurationRule",
    "FixedSlotRule",
    "MinMaxDurationRule",
    "RuleKind",
    "TimeRangeRule",
    "extend_by_one_hour",
]


class RuleKind(StrEnum):
    BASE = "base"
    FIXED_SLOT = "fixed_slot"
    FIXED_DURATION = "fixed_duration"
    MIN_MAX_DURATION = "min_max_duration"
    TIME_RANGE = "time_range"


class BookingRule(Protocol):
    kind: ClassVar[RuleKind]
    name: str

    def applies(self, day_idx: int, resource: ResourceRef, start_hour_idx: int, end_hour_idx: int) -> bool: ...

    def validate(self, day_idx: int, resource: ResourceRef, start_hour_idx: int, end_hour_idx: int) -> bool: ...

    def calculate_selection(
        self,
        day_idx: int,
        hour_idx: int,
        resource: ResourceRef,
        is_booked: IsBooked,
    ) -> Selection: ...

    def extend_selection(
        self,
        selection: Optional[Selection],
        new_hour_idx: int,
        is_booked: IsBooked,
    ) -> Optional[Selection]: ...


def _is_free(is_booked: IsBooked, day_idx: int, resource_idx: int, hours: range) -> bool:
    return not any(is_booked(day_idx, hour, resource_idx) for hour in hours)


def _scan_forward(is_booked: IsBooked, day_idx: int, resource_idx: int, start: int, last: int) -> int:
    """Return the furthest hour <= ``last`` reachable from ``start`` through free hours."""
    end = start
    for hour in range(start + 1, last + 1):
        if is_booked(day_idx, hour, resource_idx):
            break
        end = hour
    return end


def extend_by_one_hour(selection: Selection, new_hour_idx: int, is_booked: IsBooked) -> Selection:
    """Grow ``selection`` by one adjacent hour if that hour is free."""
    start, end = selection.start_hour_idx, selection.end_hour_idx
    if new_hour_idx not in (start - 1, end + 1):
        return selection
    if not FIRST_HOUR <= new_hour_idx <= LAST_HOUR:
        return selection
    if is_booked(selection.day_idx, new_hour_idx, selection.resource_idx):
        return selection
    if new_hour_idx == end + 1:
        return selection.with_hours(start, new_hour_idx)
    return selection.with_hours(new_hour_idx, end)


@dataclass(frozen=True, kw_only=True)
class BaseRule:
    """Fallback rule: single-hour proposals, one-hour adjacent extensions."""

    kind: ClassVar[RuleKind] = RuleKind.BASE

    name: str = ""
    days: Collection[int] = ()
    resources: Collection[ResourceRef] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "days", frozenset(self.days))
        object.__setattr__(self, "resources", frozenset(resource_index(r) for r in self.resources))

    def applies(self, day_idx: int, resource: ResourceRef, start_hour_idx: int, end_hour_idx: int) -> bool:
        if self.days and day_idx not in self.days:
            return False
        return not self.resources or resource_index(resource) in self.resources

    def validate(self, day_idx: int, resource: ResourceRef, start_hour_idx: int, end_hour_idx: int) -> bool:
        return True

    def calculate_selection(
        self,
        day_idx: int,
        hour_idx: int,
        resource: ResourceRef,
        is_booked: IsBooked,
    ) -> Selection:
        return Selection.single(day_idx, resource_index(resource), hour_idx)

    def extend_selection(
        self,
        selection: Optional[Selection],
        new_hour_idx: int,
        is_booked: IsBooked,
    ) -> Optional[Selection]:
        if selection is None:
            return None
        if not self._applies_all_day(selection):
            return selection
        return extend_by_one_hour(selection, new_hour_idx, is_booked)

    def _applies_all_day(self, selection: Selection) -> bool:
        return self.applies(selection.day_idx, selection.resource_idx, FIRST_HOUR, LAST_HOUR)


@dataclass(frozen=True, kw_only=True)
class FixedSlotRule(BaseRule):
    """
    Bookings snap to predefined half-open windows, e.g. 10-14, 14-18, 18-22.

    Without any slots the rule behaves like BaseRule.
    """

    kind: ClassVar[RuleKind] = RuleKind.FIXED_SLOT

    slots: Sequence[tuple[int, int]] = ()

    def __post_init__(self) -> None:
        super().__post_init__()
        object.__setattr__(self, "slots", tuple((int(start), int(end)) for start, end in self.slots))

    def validate(self, day_idx: int, resource: ResourceRef, start_hour_idx: int, end_hour_idx: int) -> bool:
        if not self.applies(day_idx, resource, start_hour_idx, end_hour_idx) or not self.slots:
            return True
        return any(start_hour_idx == start and end_hour_idx == end - 1 for start, end in self.slots)

    def calculate_selection(
        self,
        day_idx: int,
        hour_idx: int,
        resource: ResourceRef,
        is_booked: IsBooked,
    ) -> Selection:
        resource_idx = resource_index(resource)
        single = Selection.single(day_idx, resource_idx, hour_idx)
        if not self.slots or not self.applies(day_idx, resource_idx, FIRST_HOUR, LAST_HOUR):
            return single

        slot = self._slot_for(hour_idx)
        if slot is None:
            return single
        slot_start, slot_end = slot
        if not _is_free(is_booked, day_idx, resource_idx, range(slot_start, slot_end)):
            return single
        return Selection(day_idx, resource_idx, slot_start, slot_end - 1)

    def extend_selection(
        self,
        selection: Optional[Selection],
        new_hour_idx: int,
        is_booked: IsBooked,
    ) -> Optional[Selection]:
        if selection is None:
            return None
        if not self.slots:
            return super().extend_selection(selection, new_hour_idx, is_booked)
        if not self._applies_all_day(selection):
            return selection

        start, end = selection.start_hour_idx, selection.end_hour_idx
        forward = new_hour_idx > end
        if not forward and new_hour_idx >= start:
            return selection
        if not self._is_aligned(selection):
            return selection

        if forward:
            adjacent = next((slot for slot in self.slots if slot[0] == end + 1), None)
        else:
            adjacent = next((slot for slot in self.slots if slot[1] == start), None)
        if adjacent is None:
            return selection
        slot_start, slot_end = adjacent
        if not _is_free(is_booked, selection.day_idx, selection.resource_idx, range(slot_start, slot_end)):
            return selection

        if forward:
            return selection.with_hours(start, slot_end - 1)
        return selection.with_hours(slot_start, end)

    def _slot_for(self, hour_idx: int) -> Optional[tuple[int, int]]:
        """Slot containing ``hour_idx``, else the first slot starting after it."""
        containing = next((slot for slot in self.slots if slot[0] <= hour_idx < slot[1]), None)
        if containing is not None:
            return containing
        return next((slot for slot in self.slots if slot[0] > hour_idx), None)

    def _is_aligned(self, selection: Selection) -> bool:
        starts_at_slot = any(selection.start_hour_idx == start for start, _ in self.slots)
        ends_at_slot = any(selection.end_hour_idx == end - 1 for _, end in self.slots)
        first_start, first_end = self.slots[0]
        slot_length = first_end - first_start
        multiple_of_slot = slot_length > 0 and selection.duration % slot_length == 0
        return starts_at_slot or ends_at_slot or multiple_of_slot


@dataclass(frozen=True, kw_only=True)
class FixedDurationRule(BaseRule):
    """
    Bookings are blocks of exactly ``duration`` hours inside ``[start_hour, end_hour)``.

    Extensions add whole blocks, so multi-block spans (8h from two 4h blocks) can
    be built by dragging, but only a single block validates.
    """

    kind: ClassVar[RuleKind] = RuleKind.FIXED_DURATION

    start_hour: int = FIRST_HOUR
    end_hour: int = HOURS_PER_DAY
    duration: int = 1

    def validate(self, day_idx: int, resource: ResourceRef, start_hour_idx: int, end_hour_idx: int) -> bool:
        if not self.applies(day_idx, resource, start_hour_idx, end_hour_idx) or self.duration < 1:
            return True
        if start_hour_idx < self.start_hour or end_hour_idx >= self.end_hour:
            return False
        return end_hour_idx - start_hour_idx + 1 == self.duration

    def calculate_selection(
        self,
        day_idx: int,
        hour_idx: int,
        resource: ResourceRef,
        is_booked: IsBooked,
    ) -> Selection:
        resource_idx = resource_index(resource)
        single = Selection.single(day_idx, resource_idx, hour_idx)
        if self.duration < 1 or not self.applies(day_idx, resource_idx, FIRST_HOUR, LAST_HOUR):
            return single

        start = max(hour_idx, self.start_hour)
        if start >= self.end_hour or start > LAST_HOUR:
            return single
        if is_booked(day_idx, start, resource_idx):
            return single

        end = _scan_forward(is_booked, day_idx, resource_idx, start, self._last_hour_from(start))

        if end - start + 1 < self.duration and start > self.start_hour:
            for new_start in range(start - 1, self.start_hour - 1, -1):
                if is_booked(day_idx, new_start, resource_idx):
                    break
                new_end = end
                if new_end - new_start + 1 < self.duration:
                    new_end = _scan_forward(is_booked, day_idx, resource_idx, end, self._last_hour_from(new_start))
                if new_end - new_start + 1 == self.duration:
                    start, end = new_start, new_end
                    break

        return Selection(day_idx, resource_idx, start, end)

    def extend_selection(
        self,
        selection: Optional[Selection],
        new_hour_idx: int,
        is_booked: IsBooked,
    ) -> Optional[Selection]:
        if selection is None:
            return None
        if self.duration < 1:
            return super().extend_selection(selection, new_hour_idx, is_booked)
        if not self._applies_all_day(selection):
            return selection
        if selection.duration % self.duration != 0:
            return selection

        start, end = selection.start_hour_idx, selection.end_hour_idx
        if new_hour_idx == end + 1:
            new_end = end + self.duration
            if new_end >= self.end_hour or new_end > LAST_HOUR:
                return selection
            block = range(end + 1, new_end + 1)
            extended = selection.with_hours(start, new_end)
        elif new_hour_idx == start - 1:
            new_start = start - self.duration
            if new_start < self.start_hour or new_start < FIRST_HOUR:
                return selection
            block = range(new_start, start)
            extended = selection.with_hours(new_start, end)
        else:
            return selection

        if not _is_free(is_booked, selection.day_idx, selection.resource_idx, block):
            return selection
        return extended

    def _last_hour_from(self, start: int) -> int:
        return min(start + self.duration - 1, self.end_hour - 1, LAST_HOUR)


@dataclass(frozen=True, kw_only=True)
class MinMaxDurationRule(BaseRule):
    """Bookings between ``min_duration`` and ``max_duration`` hours inside ``[start_hour, end_hour)``."""

    kind: ClassVar[RuleKind] = RuleKind.MIN_MAX_DURATION

    start_hour: int = FIRST_HOUR
    end_hour: int = HOURS_PER_DAY
    min_duration: int = 1
    max_duration: int = HOURS_PER_DAY

    def validate(self, day_idx: int, resource: ResourceRef, start_hour_idx: int, end_hour_idx: int) -> bool:
        if not self.applies(day_idx, resource, start_hour_idx, end_hour_idx):
            return True
        if start_hour_idx < self.start_hour or end_hour_idx >= self.end_hour:
            return False
        return self.min_duration <= end_hour_idx - start_hour_idx + 1 <= self.max_duration

    def calculate_selection(
        self,
        day_idx: int,
        hour_idx: int,
        resource: ResourceRef,
        is_booked: IsBooked,
    ) -> Selection:
        resource_idx = resource_index(resource)
        single = Selection.single(day_idx, resource_idx, hour_idx)
        if not self.applies(day_idx, resource_idx, FIRST_HOUR, LAST_HOUR):
            return single

        start = max(hour_idx, self.start_hour)
        if start >= self.end_hour or start > LAST_HOUR:
            return single
        if is_booked(day_idx, start, resource_idx):
            return single

        last = min(start + self.max_duration - 1, self.end_hour - 1, LAST_HOUR)
        end = _scan_forward(is_booked, day_idx, resource_idx, start, last)

        if end - start + 1 < self.min_duration and start > self.start_hour:
            for new_start in range(start - 1, self.start_hour - 1, -1):
                if is_booked(day_idx, new_start, resource_idx):
                    break
                if end - new_start + 1 >= self.min_duration:
                    start = new_start
                    break

        return Selection(day_idx, resource_idx, start, end)

    def extend_selection(
        self,
        selection: Optional[Selection],
        new_hour_idx: int,
        is_booked: IsBooked,
    ) -> Optional[Selection]:
        if selection is None:
            return None
        if not self._applies_all_day(selection):
            return selection
        if selection.start_hour_idx < self.start_hour or selection.end_hour_idx >= self.end_hour:
            return selection
        if selection.duration >= self.max_duration:
            return selection
        if not self.start_hour <= new_hour_idx < self.end_hour:
            return selection
        return extend_by_one_hour(selection, new_hour_idx, is_booked)


@dataclass(frozen=True, kw_only=True)
class TimeRangeRule(BaseRule):
    """
    Time-of-day rule: inside ``[start_hour, end_hour)`` bookings grow in
    ``increment_size`` blocks.

    Unlike the other variants it only applies to spans touching its window.
    """

    kind: ClassVar[RuleKind] = RuleKind.TIME_RANGE

    start_hour: int = FIRST_HOUR
    end_hour: int = HOURS_PER_DAY
    increment_size: int = 1

    def applies(self, day_idx: int, resource: ResourceRef, start_hour_idx: int, end_hour_idx: int) -> bool:
        if not super().applies(day_idx, resource, start_hour_idx, end_hour_idx):
            return False
        return (
            self.start_hour <= start_hour_idx < self.end_hour
            or self.start_hour <= end_hour_idx < self.end_hour
            or (start_hour_idx <= self.start_hour and end_hour_idx >= self.end_hour)
        )

    def validate(self, day_idx: int, resource: ResourceRef, start_hour_idx: int, end_hour_idx: int) -> bool:
        if not self.applies(day_idx, resource, start_hour_idx, end_hour_idx) or self.increment_size < 1:
            return True
        return (end_hour_idx - start_hour_idx + 1) % self.increment_size == 0

    def calculate_selection(
        self,
        day_idx: int,
        hour_idx: int,
        resource: ResourceRef,
        is_booked: IsBooked,
    ) -> Selection:
        resource_idx = resource_index(resource)
        if self.increment_size <= 1 or not self.applies(day_idx, resource_idx, hour_idx, hour_idx):
            return Selection.single(day_idx, resource_idx, hour_idx)
        if is_booked(day_idx, hour_idx, resource_idx):
            return Selection.single(day_idx, resource_idx, hour_idx)
        last = min(hour_idx + self.increment_size - 1, self.end_hour - 1, LAST_HOUR)
        end = _scan_forward(is_booked, day_idx, resource_idx, hour_idx, last)
        return Selection(day_idx, resource_idx, hour_idx, end)

    def extend_selection(
        self,
        selection: Optional[Selection],
        new_hour_idx: int,
        is_booked: IsBooked,
    ) -> Optional[Selection]:
        if selection is None:
            return None
        start, end = selection.start_hour_idx, selection.end_hour_idx
        span_start, span_end = min(start, new_hour_idx), max(end, new_hour_idx)
        if not self.applies(selection.day_idx, selection.resource_idx, span_start, span_end):
            return selection
        if self.increment_size <= 1:
            return extend_by_one_hour(selection, new_hour_idx, is_booked)

        if new_hour_idx == end + 1:
            new_end = end + self.increment_size
            if new_end >= self.end_hour or new_end > LAST_HOUR:
                return selection
            block = range(end + 1, new_end + 1)
            extended = selection.with_hours(start, new_end)
        elif new_hour_idx == start - 1:
            new_start = start - self.increment_size
            if new_start < self.start_hour or new_start < FIRST_HOUR:
                return selection
            block = range(new_start, start)
            extended = selection.with_hours(new_start, end)
        else:
            return selection

        if not _is_free(is_booked, selection.day_idx, selection.resource_idx, block):
            return selection
        return extended
