from __future__ import annotations

import json
from typing import Any, Dict, Iterator, Optional

from pydantic import ValidationError

from compliance_watch.classifier.models import FallbackVerdict, ParsedVerdict, Verdict, VerdictPayload


def _balanced_end(text: str, start: int) -> Optional[int]:
    depth = 0
    in_string = False
    escaped = False
    for index in range(start, len(text)):
        char = text[index]
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue
        if char == '"':
            in_string = True
        elif char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return index
    return None


def _candidates(text: str) -> Iterator[str]:
    start = text.find("{")
    while start != -1:
        end = _balanced_end(text, start)
        if end is None:
            return
        yield text[start : end + 1]
        start = text.find("{", start + 1)


def extract_first_json_object(text: str) -> Optional[Dict[str, Any]]:
    """Return the first balanced ``{...}`` in ``text`` that decodes to an object."""
    for candidate in _candidates(text or ""):
        try:
            decoded = json.loads(candidate)
        except ValueError:
            continue
        if isinstance(decoded, dict):
            return decoded
    return None


def parse_verdict(text: Optional[str]) -> Verdict:
    payload = extract_first_json_object(text or "")
    if payload is None:
        return FallbackVerdict(detail="no_json_object")
    try:
        verdict = VerdictPayload.model_validate(payload)
    except ValidationError as exc:
        fields = sorted({str(error["loc"][0]) for error in exc.errors() if error.get("loc")})
        return FallbackVerdict(detail="invalid_fields:" + ",".join(fields))
    return ParsedVerdict(
        score=float(verdict.score),
        claimed_meaningful=verdict.isMeaningful,
        reasoning=verdict.reasoning,
    )
