from __future__ import annotations

from compliance_watch.common.enums import SessionStatus


class SessionInvariantError(RuntimeError):
    pass


class IllegalTransitionError(SessionInvariantError):
    def __init__(self, session_id: str, from_status: SessionStatus, to_status: SessionStatus) -> None:
        super().__init__(
            f"Illegal transition for session {session_id}: {from_status.value} -> {to_status.value}"
        )
        self.session_id = session_id
        self.from_status = from_status
        self.to_status = to_status


class SessionNotFoundError(KeyError):
    pass
