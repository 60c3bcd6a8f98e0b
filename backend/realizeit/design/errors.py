"""Errors raised by the design-session components."""

from __future__ import annotations


class DesignSessionError(Exception):
    """Base class for design-session failures."""

    def __init__(self, session_id: str, message: str) -> None:
        super().__init__(message)
        self.session_id = session_id


class SessionNotFound(DesignSessionError):
    def __init__(self, session_id: str) -> None:
        super().__init__(session_id, f"Design session {session_id} not found")


class VariationFetchFailed(DesignSessionError):
    def __init__(self, session_id: str, reason: str) -> None:
        super().__init__(session_id, f"Could not load variations for {session_id}: {reason}")


class EnqueueFailed(DesignSessionError):
    """Every submission strategy rejected the job."""

    def __init__(self, session_id: str, job_type: str, attempts: list[str]) -> None:
        super().__init__(
            session_id,
            f"Could not queue {job_type} job for {session_id} (tried: {', '.join(attempts)})",
        )
        self.job_type = job_type
        self.attempts = attempts
