# Kissmetrics SQL Adapter
# File: executor.py
# Version: v1

"""Run a SQL statement as a Kissmetrics query job.

The query API is asynchronous: a statement is submitted as a job and the
job is polled at a fixed interval until the service reports it complete.
Each job moves through ``submitted -> polling -> complete`` (or
``failed`` / ``timed_out``). Polls are strictly sequential and the
interval is constant.

Poll bounds come from ``KissmetricsConfig.max_poll_attempts`` and
``max_wait_seconds``; when both are 0 the job is polled until it completes.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, Optional

from .client import KissmetricsClient
from .config import KissmetricsConfig
from .errors import QueryFailedError, QueryTimeoutError
from .models import ConnectionContext, JobState, QueryJob

Sleep = Callable[[float], Awaitable[Any]]
Clock = Callable[[], float]


class AsyncQueryExecutor:
    """Submit a statement, poll it to completion, return the raw rows."""

    def __init__(
        self,
        client: KissmetricsClient,
        config: KissmetricsConfig,
        logger: Optional[logging.Logger] = None,
        sleep: Sleep = asyncio.sleep,
        clock: Clock = time.monotonic,
    ) -> None:
        self.client = client
        self.config = config
        self.logger = logger or logging.getLogger(__name__)
        self._sleep = sleep
        self._clock = clock

    async def run(
        self,
        query_text: str,
        context: ConnectionContext,
        product_id: Optional[str] = None,
    ) -> Any:
        """Execute ``query_text`` and return the job's row payload.

        Returns an empty list without any network call when the context
        is unauthenticated.
        """
        if not context.authenticated:
            return []

        job = await self.submit(query_text, context, product_id or context.product_id)
        await self.wait(job, context)
        return [] if job.data is None else job.data

    async def submit(
        self,
        query_text: str,
        context: ConnectionContext,
        product_id: Optional[str],
    ) -> QueryJob:
        job_id = await self.client.submit(product_id, query_text, context.token or "")
        self.logger.debug("New query started: %s", job_id)
        return QueryJob(id=job_id, product_id=product_id)

    async def wait(self, job: QueryJob, context: ConnectionContext) -> QueryJob:
        """Poll ``job`` until it leaves the polling state."""
        max_attempts = self.config.max_poll_attempts
        max_wait = self.config.max_wait_seconds
        started = self._clock()

        job.state = JobState.POLLING
        while not job.finished:
            elapsed = self._clock() - started
            if (max_attempts and job.attempts >= max_attempts) or (
                max_wait and elapsed >= max_wait
            ):
                job.state = JobState.TIMED_OUT
                self.logger.warning(
                    "Query job %s timed out after %d status checks", job.id, job.attempts
                )
                raise QueryTimeoutError(job.id, job.attempts, elapsed)

            await self._sleep(self.config.poll_interval_seconds)
            status = await self.client.poll_status(job.id, context.token or "")
            job.attempts += 1
            self.logger.debug(
                "Query job %s poll #%d: completed=%s", job.id, job.attempts, status.completed
            )

            if status.failed:
                job.state = JobState.FAILED
                url = self.client.url(f"queries/{job.id}")
                raise QueryFailedError(
                    f"Query job '{job.id}' failed: {status.error or 'unknown error'}",
                    endpoint=url,
                    job_id=job.id,
                    body=status.error,
                )

            job.completed = status.completed
            job.data = status.data
            if status.completed:
                job.state = JobState.COMPLETE

        return job
