from __future__ import annotations

import threading
from dataclasses import replace
from datetime import datetime
from typing import Callable, Dict, List, Optional
from uuid import uuid4

from compliance_watch.targets.errors import TargetNotFoundError
from compliance_watch.targets.models import MonitoredTarget


class TargetRepository:
    # Stored targets are only changed under the lock; readers get copies.

    def __init__(self) -> None:
        self._targets: Dict[str, MonitoredTarget] = {}
        self._lock = threading.Lock()

    def add(self, target: MonitoredTarget) -> None:
        with self._lock:
            self._targets[target.target_id] = replace(target)

    def get(self, target_id: str) -> Optional[MonitoredTarget]:
        with self._lock:
            target = self._targets.get(target_id)
            return replace(target) if target else None

    def require(self, target_id: str) -> MonitoredTarget:
        target = self.get(target_id)
        if target is None:
            raise TargetNotFoundError(target_id)
        return target

    def list(self) -> List[MonitoredTarget]:
        with self._lock:
            targets = [replace(target) for target in self._targets.values()]
        return sorted(targets, key=lambda target: target.target_id)

    def list_schedulable(self) -> List[MonitoredTarget]:
        return [target for target in self.list() if target.active and not target.paused]

    def update(self, target_id: str, mutate: Callable[[MonitoredTarget], None]) -> MonitoredTarget:
        with self._lock:
            stored = self._targets.get(target_id)
            if stored is None:
                raise TargetNotFoundError(target_id)
            candidate = replace(stored)
            mutate(candidate)
            self._targets[target_id] = candidate
            return replace(candidate)

    def touch(self, target_id: str, checked_at: datetime) -> None:
        def _touch(target: MonitoredTarget) -> None:
            target.last_checked = checked_at

        self.update(target_id, _touch)

    def new_id(self) -> str:
        return str(uuid4())
