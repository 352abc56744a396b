from __future__ import annotations

from typing import Any, Dict, Optional, Protocol

from firecrawl import FirecrawlApp

from compliance_watch.acquisition.errors import (
    FetchError,
    FetchTimeoutError,
    InvalidResponseError,
    RateLimitedError,
    fetch_error_for_status,
)
from compliance_watch.acquisition.models import FetchRequest, FetchResponse
from compliance_watch.common.clock import utc_now


class FetchClient(Protocol):
    def fetch(self, request: FetchRequest) -> FetchResponse: ...


class DisabledFetchClient:
    def __init__(self, *, reason: str = "fetch_client_not_configured") -> None:
        self._reason = reason

    def fetch(self, request: FetchRequest) -> FetchResponse:
        raise InvalidResponseError(self._reason)


def _field(result: Any, name: str, default: Any = None) -> Any:
    if hasattr(result, name):
        return getattr(result, name)
    if isinstance(result, dict):
        return result.get(name, default)
    return default


def _as_dict(value: Any) -> Dict[str, Any]:
    if hasattr(value, "model_dump"):
        return value.model_dump()
    if isinstance(value, dict):
        return value
    return {}


def translate_sdk_error(exc: Exception) -> FetchError:
    if isinstance(exc, FetchError):
        return exc
    message = str(exc) or exc.__class__.__name__
    status_code = getattr(exc, "status_code", None)
    if status_code is None:
        response = getattr(exc, "response", None)
        status_code = getattr(response, "status_code", None)
    if isinstance(status_code, int):
        return fetch_error_for_status(status_code, message)
    if isinstance(exc, TimeoutError) or "timeout" in exc.__class__.__name__.lower():
        return FetchTimeoutError(message)
    lowered = message.lower()
    if "rate limit" in lowered or "429" in lowered:
        return RateLimitedError(message, status_code=429)
    if "timed out" in lowered or "timeout" in lowered:
        return FetchTimeoutError(message)
    return InvalidResponseError(message)


class FirecrawlSdkClient:
    def __init__(self, *, api_key: str, app: Optional[Any] = None) -> None:
        self._app = app or FirecrawlApp(api_key=api_key)

    def fetch(self, request: FetchRequest) -> FetchResponse:
        try:
            result = self._app.scrape(
                request.url,
                formats=list(request.formats),
                only_main_content=request.only_main_content,
                timeout=int(request.timeout_s * 1000),
            )
        except Exception as exc:
            raise translate_sdk_error(exc) from exc

        if not result:
            raise InvalidResponseError(f"Empty response from Firecrawl for {request.url}")
        metadata = _as_dict(_field(result, "metadata", {}))
        status_code = metadata.get("status_code") or metadata.get("statusCode") or 200
        if isinstance(status_code, int) and status_code >= 400:
            raise fetch_error_for_status(status_code, f"Upstream returned {status_code} for {request.url}")
        content = _field(result, request.formats[0]) or _field(result, "markdown") or ""
        return FetchResponse(
            url=request.url,
            content=content,
            status_code=status_code if isinstance(status_code, int) else 200,
            fetched_at=utc_now(),
            metadata=metadata,
        )
