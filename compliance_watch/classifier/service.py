from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import Optional

from compliance_watch.audit.logger import AuditLogger
from compliance_watch.classifier.clients import ReasoningClient
from compliance_watch.classifier.errors import ClassifierUnavailableError
from compliance_watch.classifier.models import ChangeAnalysis, FallbackVerdict, ParsedVerdict, Verdict
from compliance_watch.classifier.parsing import parse_verdict
from compliance_watch.classifier.prompts import MAX_DIFF_CHARS, SYSTEM_PROMPT, build_user_prompt
from compliance_watch.classifier.repository import ChangeAnalysisRepository
from compliance_watch.common.clock import Clock
from compliance_watch.common.enums import ClassifierErrorKind
from compliance_watch.diff.models import DiffPayload
from compliance_watch.targets.models import MonitoredTarget


DEFAULT_THRESHOLD = 70.0


def is_meaningful(verdict: Verdict, threshold: float) -> bool:
    if isinstance(verdict, FallbackVerdict):
        return True
    return verdict.score >= threshold


class ChangeClassifier:
    def __init__(
        self,
        *,
        client: ReasoningClient,
        repository: ChangeAnalysisRepository,
        audit_logger: AuditLogger,
        threshold: float = DEFAULT_THRESHOLD,
        timeout_s: float = 30.0,
        max_diff_chars: int = MAX_DIFF_CHARS,
        clock: Optional[Clock] = None,
        max_workers: int = 4,
    ) -> None:
        if not 0 <= threshold <= 100:
            raise ValueError("threshold must be between 0 and 100")
        self._client = client
        self._repository = repository
        self._audit_logger = audit_logger
        self._threshold = threshold
        self._timeout_s = timeout_s
        self._max_diff_chars = max_diff_chars
        self._clock = clock or Clock()
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="classify")

    @property
    def threshold(self) -> float:
        return self._threshold

    def _ask(self, target: MonitoredTarget, diff: DiffPayload) -> str:
        user_prompt = build_user_prompt(target, diff.text, limit=self._max_diff_chars)
        future = self._executor.submit(self._client.complete, SYSTEM_PROMPT, user_prompt)
        try:
            return future.result(timeout=self._timeout_s)
        except FutureTimeoutError as exc:
            future.cancel()
            raise ClassifierUnavailableError(
                f"Classification exceeded {self._timeout_s:g}s",
                kind=ClassifierErrorKind.timeout,
            ) from exc
        except ClassifierUnavailableError:
            raise
        except Exception as exc:
            raise ClassifierUnavailableError(f"{exc.__class__.__name__}: {exc}") from exc

    def classify(self, target: MonitoredTarget, diff: DiffPayload, *, session_id: str) -> ChangeAnalysis:
        raw = self._ask(target, diff)
        verdict = parse_verdict(raw)
        if isinstance(verdict, FallbackVerdict):
            self._audit_logger.log(
                outcome="classifier_fallback",
                target_id=target.target_id,
                session_id=session_id,
                params={"detail": verdict.detail, "response_excerpt": (raw or "")[:200]},
                error_kind="malformedResponse",
            )

        analysis = ChangeAnalysis(
            analysis_id=self._repository.new_id(),
            target_id=target.target_id,
            session_id=session_id,
            score=verdict.score,
            is_meaningful=is_meaningful(verdict, self._threshold),
            reasoning=verdict.reasoning,
            model=self._client.model,
            analyzed_at=self._clock.now(),
            verdict_kind=verdict.kind,
            service_claimed_meaningful=(
                verdict.claimed_meaningful if isinstance(verdict, ParsedVerdict) else None
            ),
        )
        return analysis

    def record(self, analysis: ChangeAnalysis) -> ChangeAnalysis:
        self._repository.add(analysis)
        return analysis

    def shutdown(self, wait: bool = False) -> None:
        self._executor.shutdown(wait=wait)
