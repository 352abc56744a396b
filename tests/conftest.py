from datetime import datetime, timezone
from typing import Dict, List, Optional, Union

import pytest

from compliance_watch.acquisition.models import FetchRequest, FetchResponse
from compliance_watch.alerts.dispatchers import DispatchResult
from compliance_watch.common.clock import FrozenClock
from compliance_watch.common.enums import NotificationChannel, PriorityTier
from compliance_watch.config import MonitorConfig
from compliance_watch.monitoring.factory import build_monitor
from compliance_watch.monitoring.queue import InMemoryCheckQueue
from compliance_watch.targets.models import TargetCreateRequest


FIXED_TIME = datetime(2026, 1, 28, tzinfo=timezone.utc)


class FakeFetchClient:
    def __init__(self) -> None:
        self.pages: Dict[str, Union[str, Exception]] = {}
        self.calls: List[FetchRequest] = []

    def set_page(self, url: str, content: Union[str, Exception]) -> None:
        self.pages[url] = content

    def fetch(self, request: FetchRequest) -> FetchResponse:
        self.calls.append(request)
        page = self.pages.get(request.url, "")
        if isinstance(page, Exception):
            raise page
        return FetchResponse(url=request.url, content=page, fetched_at=FIXED_TIME)


class FakeReasoningClient:
    def __init__(self, model: str = "fake-model") -> None:
        self.model = model
        self.replies: List[Union[str, Exception]] = []
        self.prompts: List[str] = []

    def reply_with(self, *replies: Union[str, Exception]) -> None:
        self.replies.extend(replies)

    def complete(self, system_prompt: str, user_prompt: str) -> str:
        self.prompts.append(user_prompt)
        if not self.replies:
            raise AssertionError("unexpected classification call")
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply


class RecordingChannel:
    def __init__(self, result: Optional[DispatchResult] = None) -> None:
        self.result = result or DispatchResult(success=True)
        self.sent = []

    def send(self, notification):
        self.sent.append(notification)
        return self.result


@pytest.fixture
def clock():
    return FrozenClock(FIXED_TIME)


@pytest.fixture
def fetch_client():
    return FakeFetchClient()


@pytest.fixture
def reasoning_client():
    return FakeReasoningClient()


@pytest.fixture
def channels():
    return {
        NotificationChannel.email: RecordingChannel(),
        NotificationChannel.webhook: RecordingChannel(),
    }


@pytest.fixture
def monitor_config():
    return MonitorConfig()


@pytest.fixture
def monitor(monitor_config, clock, fetch_client, reasoning_client, channels):
    built = build_monitor(
        monitor_config,
        clock=clock,
        fetch_client=fetch_client,
        reasoning_client=reasoning_client,
        dispatchers=channels,
        check_queue=InMemoryCheckQueue(clock),
    )
    yield built
    built.shutdown()


@pytest.fixture
def add_target(monitor):
    def _add(
        name: str = "State wage order",
        url: str = "https://labor.example.gov/wage-order",
        priority: PriorityTier = PriorityTier.medium,
        **overrides,
    ):
        request = TargetCreateRequest(
            schema_version="v1",
            url=url,
            name=name,
            priority=priority,
            **overrides,
        )
        return monitor.target_service.create(request)

    return _add
