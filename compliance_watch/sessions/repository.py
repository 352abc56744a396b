from __future__ import annotations

import threading
from dataclasses import replace
from datetime import datetime
from typing import Callable, Dict, List, Optional, Tuple
from uuid import uuid4

from compliance_watch.common.enums import SessionStatus
from compliance_watch.sessions.errors import SessionNotFoundError
from compliance_watch.sessions.models import CrawlSession, SessionTransition


class SessionRepository:
    def __init__(self) -> None:
        self._sessions: Dict[str, CrawlSession] = {}
        self._order: List[str] = []
        self._by_target: Dict[str, List[str]] = {}
        self._open_by_target: Dict[str, str] = {}
        self._transitions: List[SessionTransition] = []
        self._transitions_by_session: Dict[str, List[SessionTransition]] = {}
        self._lock = threading.RLock()

    def create_if_absent(
        self,
        target_id: str,
        build: Callable[[str], CrawlSession],
        changed_at: datetime,
    ) -> Tuple[CrawlSession, bool]:
        with self._lock:
            open_id = self._open_by_target.get(target_id)
            if open_id is not None:
                return replace(self._sessions[open_id]), False
            session = build(str(uuid4()))
            self._sessions[session.session_id] = session
            self._order.append(session.session_id)
            self._by_target.setdefault(target_id, []).append(session.session_id)
            self._open_by_target[target_id] = session.session_id
            self._record(
                SessionTransition(
                    session_id=session.session_id,
                    target_id=target_id,
                    from_status=None,
                    to_status=session.status,
                    changed_at=changed_at,
                )
            )
            return replace(session), True

    def transition(
        self,
        session_id: str,
        allowed_from: SessionStatus,
        mutate: Callable[[CrawlSession], None],
        changed_at: datetime,
    ) -> Tuple[Optional[CrawlSession], CrawlSession]:
        # updated is None when the stored status did not match allowed_from
        with self._lock:
            stored = self._sessions.get(session_id)
            if stored is None:
                raise SessionNotFoundError(session_id)
            if stored.status != allowed_from:
                return None, replace(stored)
            candidate = replace(stored)
            mutate(candidate)
            self._sessions[session_id] = candidate
            if candidate.is_terminal:
                self._open_by_target.pop(candidate.target_id, None)
            self._record(
                SessionTransition(
                    session_id=session_id,
                    target_id=candidate.target_id,
                    from_status=stored.status,
                    to_status=candidate.status,
                    changed_at=changed_at,
                )
            )
            return replace(candidate), replace(candidate)

    def get(self, session_id: str) -> Optional[CrawlSession]:
        with self._lock:
            session = self._sessions.get(session_id)
            return replace(session) if session else None

    def open_session_for(self, target_id: str) -> Optional[CrawlSession]:
        with self._lock:
            open_id = self._open_by_target.get(target_id)
            return replace(self._sessions[open_id]) if open_id else None

    def list(self, *, target_id: Optional[str] = None) -> List[CrawlSession]:
        with self._lock:
            ids = self._order if target_id is None else self._by_target.get(target_id, [])
            return [replace(self._sessions[sid]) for sid in ids]

    def recent_for_target(self, target_id: str, limit: int = 20) -> List[CrawlSession]:
        # most recent first
        with self._lock:
            ids = self._by_target.get(target_id, [])[-limit:] if limit > 0 else []
            return [replace(self._sessions[sid]) for sid in reversed(ids)]

    def transitions(self, *, session_id: Optional[str] = None) -> List[SessionTransition]:
        with self._lock:
            if session_id is None:
                return list(self._transitions)
            return list(self._transitions_by_session.get(session_id, []))

    def _record(self, transition: SessionTransition) -> None:
        self._transitions.append(transition)
        self._transitions_by_session.setdefault(transition.session_id, []).append(transition)
