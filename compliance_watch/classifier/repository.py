from __future__ import annotations

import threading
from typing import Dict, List, Optional
from uuid import uuid4

from compliance_watch.classifier.errors import DuplicateAnalysisError
from compliance_watch.classifier.models import ChangeAnalysis


class ChangeAnalysisRepository:
    def __init__(self) -> None:
        self._analyses: Dict[str, ChangeAnalysis] = {}
        self._by_session: Dict[str, str] = {}
        self._lock = threading.Lock()

    def add(self, analysis: ChangeAnalysis) -> None:
        with self._lock:
            if analysis.session_id in self._by_session:
                raise DuplicateAnalysisError(
                    f"session {analysis.session_id} already has an analysis"
                )
            self._analyses[analysis.analysis_id] = analysis
            self._by_session[analysis.session_id] = analysis.analysis_id

    def get(self, analysis_id: str) -> Optional[ChangeAnalysis]:
        with self._lock:
            return self._analyses.get(analysis_id)

    def for_session(self, session_id: str) -> Optional[ChangeAnalysis]:
        with self._lock:
            analysis_id = self._by_session.get(session_id)
            return self._analyses.get(analysis_id) if analysis_id else None

    def list(self, *, target_id: Optional[str] = None) -> List[ChangeAnalysis]:
        with self._lock:
            analyses = list(self._analyses.values())
        if target_id is not None:
            analyses = [analysis for analysis in analyses if analysis.target_id == target_id]
        return sorted(analyses, key=lambda analysis: (analysis.analyzed_at, analysis.analysis_id))

    def new_id(self) -> str:
        return str(uuid4())
