"""
Rule configuration shapes and the default studio policy.

Policies are plain lists of rule configs, discriminated by ``kind``; they can be
kept in a JSON file (see ``load_policy``) and turned into a RuleEngine by the
service that owns the grid.
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated, Literal, Optional, Sequence, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator, model_validator

from .engine import RuleEngine
from .rules import BaseRule, BookingRule, FixedDurationRule, FixedSlotRule, MinMaxDurationRule, TimeRangeRule
from .selection import HOURS_PER_DAY, resource_index

DAYS_PER_WEEK = 7

HourBound = Annotated[int, Field(ge=0, le=HOURS_PER_DAY)]


class _RuleConfig(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str = ""
    days: list[Annotated[int, Field(ge=0, lt=DAYS_PER_WEEK)]] = Field(default_factory=list)
    resources: list[Union[Annotated[int, Field(ge=0)], str]] = Field(default_factory=list)

    @field_validator("resources")
    @classmethod
    def _check_resource_labels(cls, value: list[Union[int, str]]) -> list[Union[int, str]]:
        for resource in value:
            resource_index(resource)
        return value


class _HourWindowConfig(_RuleConfig):
    start_hour: HourBound
    end_hour: HourBound

    @model_validator(mode="after")
    def _check_window(self) -> "_HourWindowConfig":
        if self.start_hour >= self.end_hour:
            raise ValueError("start_hour must be earlier than end_hour")
        return self


class BaseRuleConfig(_RuleConfig):
    kind: Literal["base"] = "base"


class FixedSlotRuleConfig(_RuleConfig):
    kind: Literal["fixed_slot"] = "fixed_slot"
    slots: list[tuple[HourBound, HourBound]] = Field(default_factory=list)

    @field_validator("slots")
    @classmethod
    def _check_slots(cls, value: list[tuple[int, int]]) -> list[tuple[int, int]]:
        previous_end = 0
        for start, end in value:
            if start >= end:
                raise ValueError(f"slot [{start}, {end}) is empty")
            if start < previous_end:
                raise ValueError("slots must be ordered and disjoint")
            previous_end = end
        return value


class FixedDurationRuleConfig(_HourWindowConfig):
    kind: Literal["fixed_duration"] = "fixed_duration"
    duration: int = Field(ge=1)


class MinMaxDurationRuleConfig(_HourWindowConfig):
    kind: Literal["min_max_duration"] = "min_max_duration"
    min_duration: int = Field(ge=1)
    max_duration: int = Field(ge=1)

    @model_validator(mode="after")
    def _check_durations(self) -> "MinMaxDurationRuleConfig":
        if self.min_duration > self.max_duration:
            raise ValueError("min_duration must not exceed max_duration")
        return self


class TimeRangeRuleConfig(_HourWindowConfig):
    kind: Literal["time_range"] = "time_range"
    increment_size: int = Field(default=1, ge=1)


RuleConfig = Annotated[
    Union[
        BaseRuleConfig,
        FixedSlotRuleConfig,
        FixedDurationRuleConfig,
        MinMaxDurationRuleConfig,
        TimeRangeRuleConfig,
    ],
    Field(discriminator="kind"),
]

_policy_adapter: TypeAdapter[list[RuleConfig]] = TypeAdapter(list[RuleConfig])


DEFAULT_POLICY: tuple[RuleConfig, ...] = (
    TimeRangeRuleConfig(
        name="Early morning 1h blocks",
        resources=[0, 1, 2],
        start_hour=0,
        end_hour=10,
        increment_size=1,
    ),
    TimeRangeRuleConfig(
        name="Late evening 1h blocks",
        resources=[0, 1, 2],
        start_hour=22,
        end_hour=24,
        increment_size=1,
    ),
    FixedSlotRuleConfig(
        name="3x4h windows",
        resources=[0, 1, 2],
        slots=[(10, 14), (14, 18), (18, 22)],
    ),
    # Monday = 1
    FixedDurationRuleConfig(
        name="Weekday 4h fixed blocks",
        days=[1, 2, 3, 4, 5],
        resources=[0, 1],
        start_hour=10,
        end_hour=22,
        duration=4,
    ),
    MinMaxDurationRuleConfig(
        name="Evening max 2h",
        resources=[2],
        start_hour=15,
        end_hour=20,
        min_duration=1,
        max_duration=2,
    ),
)


def build_rule(config: RuleConfig) -> BookingRule:
    scope = {"name": config.name, "days": config.days, "resources": config.resources}
    if isinstance(config, FixedSlotRuleConfig):
        return FixedSlotRule(**scope, slots=config.slots)
    if isinstance(config, FixedDurationRuleConfig):
        return FixedDurationRule(
            **scope,
            start_hour=config.start_hour,
            end_hour=config.end_hour,
            duration=config.duration,
        )
    if isinstance(config, MinMaxDurationRuleConfig):
        return MinMaxDurationRule(
            **scope,
            start_hour=config.start_hour,
            end_hour=config.end_hour,
            min_duration=config.min_duration,
            max_duration=config.max_duration,
        )
    if isinstance(config, TimeRangeRuleConfig):
        return TimeRangeRule(
            **scope,
            start_hour=config.start_hour,
            end_hour=config.end_hour,
            increment_size=config.increment_size,
        )
    return BaseRule(**scope)


def build_engine(configs: Sequence[RuleConfig]) -> RuleEngine:
    return RuleEngine(build_rule(config) for config in configs)


def parse_policy(raw: Union[str, bytes]) -> list[RuleConfig]:
    """Parse a JSON policy document (a list of rule configs). Raises pydantic ValidationError."""
    return _policy_adapter.validate_json(raw)


def load_policy(path: Union[str, Path]) -> list[RuleConfig]:
    return parse_policy(Path(path).read_bytes())


def load_rule_engine(path: Optional[Union[str, Path]] = None) -> RuleEngine:
    """Build the engine from a policy file, or from DEFAULT_POLICY when no path is given."""
    if path is None:
        return build_engine(DEFAULT_POLICY)
    return build_engine(load_policy(path))
