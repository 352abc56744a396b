from enum import Enum


class PriorityTier(str, Enum):
    critical = "critical"
    high = "high"
    medium = "medium"
    low = "low"
    testing = "testing"


class SessionStatus(str, Enum):
    pending = "pending"
    running = "running"
    completed = "completed"
    failed = "failed"


TERMINAL_STATUSES = frozenset({SessionStatus.completed, SessionStatus.failed})


class SessionTrigger(str, Enum):
    scheduled = "scheduled"
    manual = "manual"


class FailureKind(str, Enum):
    rateLimited = "rateLimited"
    timeout = "timeout"
    notFound = "notFound"
    serverError = "serverError"
    invalidResponse = "invalidResponse"
    internal = "internal"
    cancelled = "cancelled"


class ClassifierErrorKind(str, Enum):
    unreachable = "unreachable"
    timeout = "timeout"


class VerdictKind(str, Enum):
    parsed = "parsed"
    fallback = "fallback"


class NotificationPreference(str, Enum):
    none = "none"
    email = "email"
    webhook = "webhook"
    both = "both"


class NotificationChannel(str, Enum):
    email = "email"
    webhook = "webhook"
