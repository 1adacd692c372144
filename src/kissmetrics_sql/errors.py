# Kissmetrics SQL Adapter
# File: errors.py
# Version: v1

"""Exception types raised by the Kissmetrics SQL adapter."""

from __future__ import annotations

from typing import Optional


class KissmetricsError(RuntimeError):
    """Base class for adapter errors."""


class RemoteServiceError(KissmetricsError):
    """An HTTP call to the query API failed.

    ``status_code`` is None when the request never produced a response
    (DNS, connection reset, timeout).
    """

    def __init__(
        self,
        message: str,
        endpoint: str,
        status_code: Optional[int] = None,
        job_id: Optional[str] = None,
        body: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.endpoint = endpoint
        self.status_code = status_code
        self.job_id = job_id
        self.body = body


class QueryFailedError(RemoteServiceError):
    """The service reported the query job itself as failed."""


class QueryTimeoutError(KissmetricsError):
    """A query job did not complete within the configured poll bounds."""

    def __init__(self, job_id: str, attempts: int, elapsed_seconds: float) -> None:
        super().__init__(
            f"Query job '{job_id}' did not complete after {attempts} status "
            f"checks ({elapsed_seconds:.1f}s)."
        )
        self.job_id = job_id
        self.attempts = attempts
        self.elapsed_seconds = elapsed_seconds


class UnsupportedOperationError(KissmetricsError, NotImplementedError):
    """Operation the Kissmetrics client does not implement."""
