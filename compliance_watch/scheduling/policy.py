from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Mapping, Optional

from compliance_watch.common.enums import PriorityTier
from compliance_watch.scheduling.errors import SchedulePolicyError


CRITICAL_MAX_INTERVAL_MINUTES = 1440.0

DEFAULT_PRIORITY_INTERVALS: Dict[PriorityTier, float] = {
    PriorityTier.testing: 0.25,
    PriorityTier.critical: 1440.0,
    PriorityTier.high: 2880.0,
    PriorityTier.medium: 10080.0,
    PriorityTier.low: 43200.0,
}

# Lower rank dispatches first within a tick.
PRIORITY_RANK: Dict[PriorityTier, int] = {
    PriorityTier.testing: 0,
    PriorityTier.critical: 1,
    PriorityTier.high: 2,
    PriorityTier.medium: 3,
    PriorityTier.low: 4,
}


@dataclass(frozen=True)
class SchedulePolicy:
    intervals: Mapping[PriorityTier, float] = field(
        default_factory=lambda: dict(DEFAULT_PRIORITY_INTERVALS)
    )
    backoff_factor: float = 2.0
    max_backoff_multiplier: float = 16.0

    def __post_init__(self) -> None:
        missing = set(PriorityTier) - set(self.intervals)
        if missing:
            raise SchedulePolicyError(
                f"intervals missing tier(s): {sorted(tier.value for tier in missing)}"
            )
        for tier, minutes in self.intervals.items():
            if minutes <= 0:
                raise SchedulePolicyError(f"interval for {tier.value} must be positive")
        if self.backoff_factor <= 1:
            raise SchedulePolicyError("backoff_factor must be greater than 1")
        if self.max_backoff_multiplier < 1:
            raise SchedulePolicyError("max_backoff_multiplier must be at least 1")

    def base_interval(self, priority: PriorityTier) -> float:
        return self.intervals[priority]

    def backoff_multiplier(self, rate_limit_streak: int) -> float:
        if rate_limit_streak <= 0:
            return 1.0
        return min(self.backoff_factor ** rate_limit_streak, self.max_backoff_multiplier)

    def with_overrides(self, overrides: Mapping[PriorityTier, float]) -> "SchedulePolicy":
        intervals = dict(self.intervals)
        intervals.update(overrides)
        return SchedulePolicy(
            intervals=intervals,
            backoff_factor=self.backoff_factor,
            max_backoff_multiplier=self.max_backoff_multiplier,
        )


def parse_interval_overrides(raw: Optional[str]) -> Dict[PriorityTier, float]:
    # "critical=1440,high=2880" -> {critical: 1440.0, high: 2880.0}
    overrides: Dict[PriorityTier, float] = {}
    if not raw or not raw.strip():
        return overrides
    for chunk in raw.split(","):
        chunk = chunk.strip()
        if not chunk:
            continue
        if "=" not in chunk:
            raise SchedulePolicyError(f"Malformed interval override: {chunk!r}")
        name, value = (part.strip() for part in chunk.split("=", 1))
        try:
            tier = PriorityTier(name)
        except ValueError as exc:
            raise SchedulePolicyError(f"Unknown priority tier: {name!r}") from exc
        try:
            minutes = float(value)
        except ValueError as exc:
            raise SchedulePolicyError(f"Interval for {name} must be numeric") from exc
        if minutes <= 0:
            raise SchedulePolicyError(f"Interval for {name} must be positive")
        overrides[tier] = minutes
    return overrides
