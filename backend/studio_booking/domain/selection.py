from __future__ import annotations

import re
from dataclasses import dataclass, replace
from typing import Callable, Union

FIRST_HOUR = 0
LAST_HOUR = 23
HOURS_PER_DAY = LAST_HOUR + 1

ResourceRef = Union[int, str]
IsBooked = Callable[[int, int, int], bool]

_RESOURCE_LABEL = re.compile(r"^Resource\s+(\d+)$")


def resource_label(resource_idx: int) -> str:
    """Return the human label for a 0-based resource index ("Resource 1" for 0)."""
    return f"Resource {resource_idx + 1}"


def resource_index(resource: ResourceRef) -> int:
    """Normalize a resource given by index or by its "Resource N" label."""
    if isinstance(resource, int):
        return resource
    match = _RESOURCE_LABEL.match(resource.strip())
    if match is None or int(match.group(1)) < 1:
        raise ValueError(f"invalid resource label: {resource!r}")
    return int(match.group(1)) - 1


@dataclass(frozen=True)
class Selection:
    day_idx: int
    resource_idx: int
    start_hour_idx: int
    end_hour_idx: int

    def __post_init__(self) -> None:
        if not FIRST_HOUR <= self.start_hour_idx <= self.end_hour_idx <= LAST_HOUR:
            raise ValueError(
                f"invalid hour span {self.start_hour_idx}..{self.end_hour_idx}"
            )

    @classmethod
    def single(cls, day_idx: int, resource_idx: int, hour_idx: int) -> "Selection":
        return cls(day_idx, resource_idx, hour_idx, hour_idx)

    @property
    def duration(self) -> int:
        return self.end_hour_idx - self.start_hour_idx + 1

    @property
    def hours(self) -> range:
        return range(self.start_hour_idx, self.end_hour_idx + 1)

    def with_hours(self, start_hour_idx: int, end_hour_idx: int) -> "Selection":
        return replace(self, start_hour_idx=start_hour_idx, end_hour_idx=end_hour_idx)
