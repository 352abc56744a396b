"""Environment-driven configuration for the monitoring pipeline."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Dict, Optional

from dotenv import find_dotenv, load_dotenv

from compliance_watch.common.enums import PriorityTier
from compliance_watch.common.local_bind import LocalBindError, ensure_local_url
from compliance_watch.scheduling.errors import SchedulePolicyError
from compliance_watch.scheduling.policy import SchedulePolicy, parse_interval_overrides


CLASSIFIER_PROVIDERS = ("anthropic", "openai")


class ConfigError(ValueError):
    pass


@dataclass(frozen=True)
class MonitorConfig:
    firecrawl_api_key: str = ""
    classifier_provider: str = "anthropic"
    anthropic_api_key: str = ""
    openai_api_key: str = ""
    openai_base_url: str = ""
    classifier_model: str = ""
    meaningful_threshold: float = 70.0
    fetch_timeout_seconds: float = 60.0
    classify_timeout_seconds: float = 30.0
    dispatch_interval_minutes: float = 10.0
    max_tick_seconds: float = 240.0
    max_workers: int = 4
    max_dispatch_per_tick: int = 50
    backoff_factor: float = 2.0
    max_backoff_multiplier: float = 16.0
    snapshot_history_limit: int = 20
    priority_intervals: Dict[PriorityTier, float] = field(default_factory=dict)
    only_main_content: bool = False
    notify_only_if_meaningful: bool = True
    redis_url: Optional[str] = None
    monitor_api_url: str = "http://127.0.0.1:8010"
    audit_log_limit: int = 10000

    def validate(self) -> None:
        if self.classifier_provider not in CLASSIFIER_PROVIDERS:
            raise ConfigError(
                f"Unknown classifier provider: {self.classifier_provider}. "
                f"Use one of {', '.join(CLASSIFIER_PROVIDERS)}."
            )
        if not 0 <= self.meaningful_threshold <= 100:
            raise ConfigError("MEANINGFUL_THRESHOLD must be between 0 and 100.")
        for name in (
            "fetch_timeout_seconds",
            "classify_timeout_seconds",
            "dispatch_interval_minutes",
            "max_tick_seconds",
        ):
            if getattr(self, name) <= 0:
                raise ConfigError(f"{name.upper()} must be positive.")
        if self.max_workers < 1:
            raise ConfigError("MAX_WORKERS must be at least 1.")
        if self.max_dispatch_per_tick < 1:
            raise ConfigError("MAX_DISPATCH_PER_TICK must be at least 1.")
        if self.snapshot_history_limit < 0:
            raise ConfigError("SNAPSHOT_HISTORY_LIMIT cannot be negative.")
        if self.audit_log_limit < 1:
            raise ConfigError("AUDIT_LOG_LIMIT must be at least 1.")
        try:
            ensure_local_url(self.monitor_api_url)
        except LocalBindError as exc:
            raise ConfigError(f"MONITOR_API_URL must be local: {exc}") from exc
        try:
            self.schedule_policy()
        except SchedulePolicyError as exc:
            raise ConfigError(str(exc)) from exc

    def schedule_policy(self) -> SchedulePolicy:
        base = SchedulePolicy(
            backoff_factor=self.backoff_factor,
            max_backoff_multiplier=self.max_backoff_multiplier,
        )
        return base.with_overrides(self.priority_intervals)


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ConfigError(f"{name} must be numeric; received {raw!r}") from exc


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ConfigError(f"{name} must be an integer; received {raw!r}") from exc


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def load_monitor_config(env_file: Optional[str] = None) -> MonitorConfig:
    load_dotenv(env_file or find_dotenv(usecwd=True))

    try:
        intervals = parse_interval_overrides(os.getenv("PRIORITY_INTERVALS"))
    except SchedulePolicyError as exc:
        raise ConfigError(str(exc)) from exc

    config = MonitorConfig(
        firecrawl_api_key=os.getenv("FIRECRAWL_API_KEY", ""),
        classifier_provider=os.getenv("CLASSIFIER_PROVIDER", "anthropic").strip().lower(),
        anthropic_api_key=os.getenv("ANTHROPIC_API_KEY", ""),
        openai_api_key=os.getenv("OPENAI_API_KEY", ""),
        openai_base_url=os.getenv("OPENAI_BASE_URL", ""),
        classifier_model=os.getenv("CLASSIFIER_MODEL", ""),
        meaningful_threshold=_env_float("MEANINGFUL_THRESHOLD", 70.0),
        fetch_timeout_seconds=_env_float("FETCH_TIMEOUT_SECONDS", 60.0),
        classify_timeout_seconds=_env_float("CLASSIFY_TIMEOUT_SECONDS", 30.0),
        dispatch_interval_minutes=_env_float("DISPATCH_INTERVAL_MINUTES", 10.0),
        max_tick_seconds=_env_float("MAX_TICK_SECONDS", 240.0),
        max_workers=_env_int("MAX_WORKERS", 4),
        max_dispatch_per_tick=_env_int("MAX_DISPATCH_PER_TICK", 50),
        backoff_factor=_env_float("BACKOFF_FACTOR", 2.0),
        max_backoff_multiplier=_env_float("MAX_BACKOFF_MULTIPLIER", 16.0),
        snapshot_history_limit=_env_int("SNAPSHOT_HISTORY_LIMIT", 20),
        priority_intervals=intervals,
        only_main_content=_env_bool("ONLY_MAIN_CONTENT", False),
        notify_only_if_meaningful=_env_bool("NOTIFY_ONLY_IF_MEANINGFUL", True),
        redis_url=os.getenv("REDIS_URL") or None,
        monitor_api_url=os.getenv("MONITOR_API_URL") or "http://127.0.0.1:8010",
        audit_log_limit=_env_int("AUDIT_LOG_LIMIT", 10000),
    )
    config.validate()
    return config
