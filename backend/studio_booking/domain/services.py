from dataclasses import dataclass, field

from .engine import RuleEngine
from .errors import SelectionRejectedError, SlotConflictError
from .selection import Selection


@dataclass(frozen=True)
class GridSnapshot:
    """Booked hours of one resource on one grid day, read once per request."""

    day_idx: int
    resource_idx: int
    booked_hours: frozenset[int] = field(default_factory=frozenset)

    def is_booked(self, day_idx: int, hour_idx: int, resource_idx: int) -> bool:
        if day_idx != self.day_idx or resource_idx != self.resource_idx:
            return False
        return hour_idx in self.booked_hours


def validate_reservation(engine: RuleEngine, selection: Selection, snapshot: GridSnapshot) -> int:
    """
    Pure validation: ensures the span satisfies every applicable rule and does not
    overlap a booked hour. Returns the number of hours booked if OK. Raises domain errors otherwise.
    """
    if not engine.validate_selection(selection):
        raise SelectionRejectedError("selection violates booking rules")
    if any(snapshot.is_booked(selection.day_idx, hour, selection.resource_idx) for hour in selection.hours):
        raise SlotConflictError("selection overlaps an existing reservation")
    return selection.duration
