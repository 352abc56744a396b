from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from pydantic import BaseModel


@dataclass(frozen=True)
class SnapshotRecord:
    snapshot_id: str
    target_id: str
    content_hash: str
    content: str
    captured_at: datetime


class SnapshotView(BaseModel):
    snapshot_id: str
    target_id: str
    content_hash: str
    content: str
    captured_at: datetime
    history_size: int
