from __future__ import annotations

import threading
from typing import Callable, List, Optional, Protocol
from uuid import uuid4

from compliance_watch.common.clock import Clock
from compliance_watch.monitoring.models import CheckRequest


class CheckQueueBackend(Protocol):
    def enqueue(self, target_id: str) -> str: ...

    def list(self) -> List[CheckRequest]: ...

    def drain(self) -> List[CheckRequest]: ...


class InMemoryCheckQueue:
    def __init__(self, clock: Optional[Clock] = None) -> None:
        self._items: List[CheckRequest] = []
        self._clock = clock or Clock()
        self._lock = threading.Lock()

    def enqueue(self, target_id: str) -> str:
        with self._lock:
            for item in self._items:
                if item.target_id == target_id:
                    return item.request_id
            request = CheckRequest(
                request_id=str(uuid4()),
                target_id=target_id,
                requested_at=self._clock.now(),
            )
            self._items.append(request)
            return request.request_id

    def list(self) -> List[CheckRequest]:
        with self._lock:
            return list(self._items)

    def drain(self) -> List[CheckRequest]:
        with self._lock:
            items, self._items = self._items, []
        return items


class RQCheckQueue:
    def __init__(
        self,
        *,
        queue_name: str,
        connection,
        api_url: str,
        job_handler: Optional[Callable[..., object]] = None,
        queue=None,
        clock: Optional[Clock] = None,
    ) -> None:
        if queue is None:
            from rq import Queue

            queue = Queue(name=queue_name, connection=connection)
        self._queue = queue
        self._api_url = api_url
        self._job_handler = job_handler
        self._clock = clock or Clock()

    def enqueue(self, target_id: str) -> str:
        if self._job_handler is None:
            raise ValueError("job_handler is required for RQ enqueue")
        job = self._queue.enqueue(self._job_handler, target_id, self._api_url)
        return job.id

    def list(self) -> List[CheckRequest]:
        return [
            CheckRequest(
                request_id=job.id,
                target_id=str(job.args[0]) if job.args else job.id,
                requested_at=job.enqueued_at or job.created_at or self._clock.now(),
            )
            for job in self._queue.get_jobs()
        ]

    def drain(self) -> List[CheckRequest]:
        # rq workers run these through run_check_now against the API process.
        return []
