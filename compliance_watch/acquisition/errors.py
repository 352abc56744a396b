from __future__ import annotations

from typing import Optional

from compliance_watch.common.enums import FailureKind


class FetchRequestError(ValueError):
    pass


class FetchError(RuntimeError):
    kind: FailureKind = FailureKind.invalidResponse

    def __init__(self, message: str, *, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class RateLimitedError(FetchError):
    kind = FailureKind.rateLimited


class FetchTimeoutError(FetchError):
    kind = FailureKind.timeout


class NotFoundError(FetchError):
    kind = FailureKind.notFound


class ServerError(FetchError):
    kind = FailureKind.serverError


class InvalidResponseError(FetchError):
    kind = FailureKind.invalidResponse


def fetch_error_for_status(status_code: int, message: str) -> FetchError:
    if status_code == 429:
        return RateLimitedError(message, status_code=status_code)
    if status_code == 404:
        return NotFoundError(message, status_code=status_code)
    if status_code in {408, 504}:
        return FetchTimeoutError(message, status_code=status_code)
    if 500 <= status_code < 600:
        return ServerError(message, status_code=status_code)
    return InvalidResponseError(message, status_code=status_code)
