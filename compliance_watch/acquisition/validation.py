from __future__ import annotations

from urllib.parse import urlparse

from compliance_watch.acquisition.errors import FetchRequestError
from compliance_watch.acquisition.models import FetchRequest


ALLOWED_FORMATS = {"markdown", "html", "rawHtml"}


def validate_fetch_request(request: FetchRequest) -> None:
    parsed = urlparse(request.url)
    if parsed.scheme not in {"http", "https"} or not parsed.hostname:
        raise FetchRequestError(f"url must be an absolute http(s) URL; received {request.url!r}")
    if not request.formats:
        raise FetchRequestError("at least one format is required")
    unknown = set(request.formats) - ALLOWED_FORMATS
    if unknown:
        raise FetchRequestError(f"Unsupported format field(s): {sorted(unknown)}")
    if request.timeout_s <= 0:
        raise FetchRequestError("timeout_s must be positive")
