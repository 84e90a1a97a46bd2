from __future__ import annotations

import logging
from typing import Iterable, Optional

from .rules import BookingRule, RuleKind, extend_by_one_hour
from .selection import FIRST_HOUR, LAST_HOUR, IsBooked, ResourceRef, Selection, resource_index

logger = logging.getLogger(__name__)


class RuleEngine:
    """
    Resolves which booking rules govern a grid query and dispatches to them.

    Proposals and extensions use the first applicable rule only; validation
    requires every rule applicable to the day/resource to accept the span.
    When a specific hour is in question, time-range rules are tried before
    all other rules regardless of their position in the list.
    """

    def __init__(self, rules: Iterable[BookingRule] = ()) -> None:
        self._rules: tuple[BookingRule, ...] = tuple(rules)

    @property
    def rules(self) -> tuple[BookingRule, ...]:
        return self._rules

    def __len__(self) -> int:
        return len(self._rules)

    def get_applicable_rules(
        self,
        day_idx: int,
        resource: ResourceRef,
        hour_idx: Optional[int] = None,
    ) -> list[BookingRule]:
        if hour_idx is None:
            return [rule for rule in self._rules if rule.applies(day_idx, resource, FIRST_HOUR, LAST_HOUR)]

        applicable = [rule for rule in self._rules if rule.applies(day_idx, resource, hour_idx, hour_idx)]
        time_range = [rule for rule in applicable if rule.kind is RuleKind.TIME_RANGE]
        others = [rule for rule in applicable if rule.kind is not RuleKind.TIME_RANGE]
        return time_range + others

    def calculate_selection(
        self,
        day_idx: int,
        hour_idx: int,
        resource: ResourceRef,
        is_booked: IsBooked,
    ) -> Selection:
        resource_idx = resource_index(resource)
        rules = self.get_applicable_rules(day_idx, resource_idx, hour_idx)
        if not rules:
            return Selection.single(day_idx, resource_idx, hour_idx)
        rule = rules[0]
        logger.debug(
            "calculate_selection day=%s hour=%s resource=%s -> rule %r",
            day_idx,
            hour_idx,
            resource_idx,
            rule.name,
        )
        return rule.calculate_selection(day_idx, hour_idx, resource_idx, is_booked)

    def extend_selection(
        self,
        selection: Optional[Selection],
        new_hour_idx: int,
        is_booked: IsBooked,
    ) -> Optional[Selection]:
        if selection is None:
            return None
        rules = self.get_applicable_rules(selection.day_idx, selection.resource_idx, new_hour_idx)
        if not rules:
            return extend_by_one_hour(selection, new_hour_idx, is_booked)
        rule = rules[0]
        logger.debug("extend_selection %s to hour=%s -> rule %r", selection, new_hour_idx, rule.name)
        return rule.extend_selection(selection, new_hour_idx, is_booked)

    def validate_selection(self, selection: Optional[Selection]) -> bool:
        if selection is None:
            return True
        rules = self.get_applicable_rules(selection.day_idx, selection.resource_idx)
        for rule in rules:
            if not rule.validate(
                selection.day_idx,
                selection.resource_idx,
                selection.start_hour_idx,
                selection.end_hour_idx,
            ):
                logger.debug("validate_selection %s rejected by rule %r", selection, rule.name)
                return False
        return True
