from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Optional

from compliance_watch.acquisition.clients import DisabledFetchClient, FetchClient, FirecrawlSdkClient
from compliance_watch.acquisition.fetcher import ContentFetcher
from compliance_watch.alerts.dispatchers import DisabledChannelAdapter, NotificationChannelAdapter
from compliance_watch.alerts.repository import NotificationRepository
from compliance_watch.alerts.service import NotificationService
from compliance_watch.audit.logger import AuditLogger
from compliance_watch.audit.repository import AuditLogRepository
from compliance_watch.classifier.clients import (
    AnthropicReasoningClient,
    DisabledReasoningClient,
    OpenAIReasoningClient,
    ReasoningClient,
)
from compliance_watch.classifier.repository import ChangeAnalysisRepository
from compliance_watch.classifier.service import ChangeClassifier
from compliance_watch.common.clock import Clock
from compliance_watch.common.enums import NotificationChannel
from compliance_watch.config import MonitorConfig
from compliance_watch.diff.engine import DiffEngine
from compliance_watch.monitoring.dispatcher import Dispatcher
from compliance_watch.monitoring.jobs import run_check_now
from compliance_watch.monitoring.pipeline import CheckPipeline
from compliance_watch.monitoring.queue import CheckQueueBackend, InMemoryCheckQueue, RQCheckQueue
from compliance_watch.scheduling.scheduler import PriorityScheduler
from compliance_watch.sessions.manager import CrawlSessionManager
from compliance_watch.sessions.repository import SessionRepository
from compliance_watch.snapshot_store.repository import SnapshotRepository
from compliance_watch.snapshot_store.service import SnapshotStoreService
from compliance_watch.targets.repository import TargetRepository
from compliance_watch.targets.service import TargetService


CHECK_QUEUE_NAME = "compliance-checks"


@dataclass
class Monitor:
    config: MonitorConfig
    clock: Clock
    audit_repo: AuditLogRepository
    audit_logger: AuditLogger
    targets: TargetRepository
    target_service: TargetService
    snapshots: SnapshotStoreService
    fetcher: ContentFetcher
    diff_engine: DiffEngine
    analyses: ChangeAnalysisRepository
    classifier: ChangeClassifier
    sessions: SessionRepository
    session_manager: CrawlSessionManager
    scheduler: PriorityScheduler
    notification_repo: NotificationRepository
    notifications: NotificationService
    pipeline: CheckPipeline
    check_queue: CheckQueueBackend
    dispatcher: Dispatcher

    def shutdown(self) -> None:
        self.dispatcher.shutdown()
        self.fetcher.shutdown()
        self.classifier.shutdown()


def build_fetch_client(config: MonitorConfig) -> FetchClient:
    if not config.firecrawl_api_key:
        return DisabledFetchClient(reason="FIRECRAWL_API_KEY not configured")
    return FirecrawlSdkClient(api_key=config.firecrawl_api_key)


def build_reasoning_client(config: MonitorConfig) -> ReasoningClient:
    model = config.classifier_model or None
    if config.classifier_provider == "anthropic" and config.anthropic_api_key:
        return AnthropicReasoningClient(
            api_key=config.anthropic_api_key,
            model=model,
            timeout_s=config.classify_timeout_seconds,
        )
    if config.classifier_provider == "openai" and config.openai_api_key:
        return OpenAIReasoningClient(
            api_key=config.openai_api_key,
            model=model,
            base_url=config.openai_base_url or None,
            timeout_s=config.classify_timeout_seconds,
        )
    return DisabledReasoningClient(reason=f"{config.classifier_provider} API key not configured")


def build_check_queue(config: MonitorConfig, clock: Clock) -> CheckQueueBackend:
    if not config.redis_url:
        return InMemoryCheckQueue(clock)
    from redis import Redis

    return RQCheckQueue(
        queue_name=CHECK_QUEUE_NAME,
        connection=Redis.from_url(config.redis_url),
        api_url=config.monitor_api_url,
        job_handler=run_check_now,
        clock=clock,
    )


def default_dispatchers() -> Mapping[NotificationChannel, NotificationChannelAdapter]:
    return {
        NotificationChannel.email: DisabledChannelAdapter(reason="email_transport_not_configured"),
        NotificationChannel.webhook: DisabledChannelAdapter(reason="webhook_transport_not_configured"),
    }


def build_monitor(
    config: Optional[MonitorConfig] = None,
    *,
    clock: Optional[Clock] = None,
    fetch_client: Optional[FetchClient] = None,
    reasoning_client: Optional[ReasoningClient] = None,
    dispatchers: Optional[Mapping[NotificationChannel, NotificationChannelAdapter]] = None,
    check_queue: Optional[CheckQueueBackend] = None,
) -> Monitor:
    config = config or MonitorConfig()
    config.validate()
    clock = clock or Clock()

    audit_repo = AuditLogRepository(max_records=config.audit_log_limit)
    audit_logger = AuditLogger(audit_repo, clock)
    targets = TargetRepository()
    target_service = TargetService(targets, clock=clock)
    snapshots = SnapshotStoreService(SnapshotRepository(), history_limit=config.snapshot_history_limit)
    fetcher = ContentFetcher(
        client=fetch_client or build_fetch_client(config),
        max_workers=config.max_workers,
    )
    diff_engine = DiffEngine(snapshots)
    analyses = ChangeAnalysisRepository()
    classifier = ChangeClassifier(
        client=reasoning_client or build_reasoning_client(config),
        repository=analyses,
        audit_logger=audit_logger,
        threshold=config.meaningful_threshold,
        timeout_s=config.classify_timeout_seconds,
        clock=clock,
        max_workers=config.max_workers,
    )
    sessions = SessionRepository()
    session_manager = CrawlSessionManager(
        repository=sessions,
        targets=targets,
        audit_logger=audit_logger,
        clock=clock,
    )
    scheduler = PriorityScheduler(
        targets=targets,
        sessions=sessions,
        policy=config.schedule_policy(),
        audit_logger=audit_logger,
        max_dispatch_per_tick=config.max_dispatch_per_tick,
        clock=clock,
    )
    notification_repo = NotificationRepository()
    notifications = NotificationService(
        notification_repo,
        audit_logger,
        dispatchers=dispatchers if dispatchers is not None else default_dispatchers(),
        notify_only_if_meaningful=config.notify_only_if_meaningful,
        clock=clock,
    )
    pipeline = CheckPipeline(
        sessions=session_manager,
        fetcher=fetcher,
        diff_engine=diff_engine,
        classifier=classifier,
        notifications=notifications,
        audit_logger=audit_logger,
        fetch_timeout_s=config.fetch_timeout_seconds,
        only_main_content=config.only_main_content,
        clock=clock,
    )
    queue = check_queue or build_check_queue(config, clock)
    dispatcher = Dispatcher(
        scheduler=scheduler,
        pipeline=pipeline,
        targets=targets,
        check_queue=queue,
        audit_logger=audit_logger,
        max_workers=config.max_workers,
        max_tick_seconds=config.max_tick_seconds,
        interval_minutes=config.dispatch_interval_minutes,
        clock=clock,
    )
    return Monitor(
        config=config,
        clock=clock,
        audit_repo=audit_repo,
        audit_logger=audit_logger,
        targets=targets,
        target_service=target_service,
        snapshots=snapshots,
        fetcher=fetcher,
        diff_engine=diff_engine,
        analyses=analyses,
        classifier=classifier,
        sessions=sessions,
        session_manager=session_manager,
        scheduler=scheduler,
        notification_repo=notification_repo,
        notifications=notifications,
        pipeline=pipeline,
        check_queue=queue,
        dispatcher=dispatcher,
    )
