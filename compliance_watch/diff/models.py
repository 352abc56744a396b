from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List


@dataclass(frozen=True)
class DiffPayload:
    text: str
    added: List[str] = field(default_factory=list)
    removed: List[str] = field(default_factory=list)

    @property
    def structured(self) -> Dict[str, Any]:
        return {"added": list(self.added), "removed": list(self.removed)}

    @property
    def is_empty(self) -> bool:
        return not self.added and not self.removed


@dataclass(frozen=True)
class DiffResult:
    changed: bool
    first_seen: bool
    content_hash: str
    content: str
    diff: DiffPayload

    @property
    def needs_classification(self) -> bool:
        return self.changed and not self.first_seen
