from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List

from pydantic import BaseModel, Field


class FetchRequest(BaseModel):
    url: str
    formats: List[str] = Field(default_factory=lambda: ["markdown"])
    only_main_content: bool = False
    timeout_s: float = 60.0


class FetchResponse(BaseModel):
    url: str
    content: str
    status_code: int = 200
    fetched_at: datetime
    metadata: Dict[str, Any] = Field(default_factory=dict)
