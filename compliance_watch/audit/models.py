from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class AuditLogRecord:
    audit_id: str
    target_id: Optional[str]
    session_id: Optional[str]
    outcome: str
    params: Dict[str, Any]
    error_kind: Optional[str]
    created_at: datetime
