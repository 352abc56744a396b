from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError

from compliance_watch.acquisition.clients import FetchClient, translate_sdk_error
from compliance_watch.acquisition.errors import FetchTimeoutError, InvalidResponseError
from compliance_watch.acquisition.models import FetchRequest, FetchResponse
from compliance_watch.acquisition.validation import validate_fetch_request


class ContentFetcher:
    def __init__(self, *, client: FetchClient, max_workers: int = 4) -> None:
        self._client = client
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="fetch")

    def fetch(self, request: FetchRequest) -> FetchResponse:
        validate_fetch_request(request)
        future = self._executor.submit(self._client.fetch, request)
        try:
            response = future.result(timeout=request.timeout_s)
        except FutureTimeoutError as exc:
            future.cancel()
            raise FetchTimeoutError(
                f"Fetch of {request.url} exceeded {request.timeout_s:g}s"
            ) from exc
        except Exception as exc:
            raise translate_sdk_error(exc) from exc

        if not response.content or not response.content.strip():
            raise InvalidResponseError(f"No content returned for {request.url}")
        return response

    def shutdown(self, wait: bool = False) -> None:
        self._executor.shutdown(wait=wait)
