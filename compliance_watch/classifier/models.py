from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from compliance_watch.common.enums import VerdictKind


FALLBACK_SCORE = 50.0
FALLBACK_REASONING = "Classifier response parsing failed, flagged for manual review"


class VerdictPayload(BaseModel):
    model_config = ConfigDict(strict=True, extra="ignore")

    score: float = Field(ge=0, le=100)
    isMeaningful: bool
    reasoning: str

    @field_validator("score")
    @classmethod
    def _finite(cls, value: float) -> float:
        if not math.isfinite(value):
            raise ValueError("score must be finite")
        return value

    @field_validator("reasoning")
    @classmethod
    def _non_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("reasoning must not be blank")
        return value.strip()


@dataclass(frozen=True)
class ParsedVerdict:
    score: float
    claimed_meaningful: bool
    reasoning: str

    @property
    def kind(self) -> VerdictKind:
        return VerdictKind.parsed


@dataclass(frozen=True)
class FallbackVerdict:
    detail: str
    score: float = FALLBACK_SCORE
    reasoning: str = FALLBACK_REASONING

    @property
    def kind(self) -> VerdictKind:
        return VerdictKind.fallback


Verdict = Union[ParsedVerdict, FallbackVerdict]


@dataclass(frozen=True)
class ChangeAnalysis:
    analysis_id: str
    target_id: str
    session_id: str
    score: float
    is_meaningful: bool
    reasoning: str
    model: str
    analyzed_at: datetime
    verdict_kind: VerdictKind
    service_claimed_meaningful: Optional[bool] = None
