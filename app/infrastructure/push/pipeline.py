"""Bounded worker pool delivering push jobs through a :class:`PushGateway`.

Each worker takes one :class:`PushJob` and drives it to ``DELIVERED`` or
``FAILED`` before taking the next. Database writes run in a thread with a
fresh session so the event loop never blocks on the ORM.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Any

from anyio import from_thread, to_thread
from sqlalchemy.orm import Session, sessionmaker

from app.config import Settings
from app.domain.entities import PushJob, PushJobState
from app.domain.errors import PushPermanentFailure, PushTransientFailure
from app.infrastructure.database import session_scope
from app.infrastructure.repositories import DeviceTokenRepository, NotificationRepository

from .gateway import PushGateway, build_push_gateway

logger = logging.getLogger(__name__)


class PushDeliveryPipeline:
    """Queue of push jobs consumed by ``workers`` asyncio tasks."""

    def __init__(
        self,
        gateway: PushGateway,
        session_factory: sessionmaker[Session],
        *,
        workers: int = 4,
        max_attempts: int = 4,
        backoff_seconds: float = 1.0,
        backoff_max_seconds: float = 30.0,
        queue_size: int = 10_000,
    ) -> None:
        if workers < 1:
            raise ValueError("workers must be >= 1")
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        self._gateway = gateway
        self._session_factory = session_factory
        self._worker_count = workers
        self._max_attempts = max_attempts
        self._backoff_seconds = backoff_seconds
        self._backoff_max_seconds = max(backoff_seconds, backoff_max_seconds)
        self._queue_size = queue_size
        self._queue: asyncio.Queue[PushJob] | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._workers: list[asyncio.Task[None]] = []
        self._interrupted: list[PushJob] = []
        self._bookkeeping: set[asyncio.Task[None]] = set()

    @property
    def max_attempts(self) -> int:
        return self._max_attempts

    @property
    def running(self) -> bool:
        return bool(self._workers)

    def pending(self) -> int:
        return self._queue.qsize() if self._queue is not None else 0

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Create the queue and spawn the workers on the running loop."""

        if self._workers:
            return
        self._loop = asyncio.get_running_loop()
        self._queue = asyncio.Queue(maxsize=self._queue_size)
        self._workers = [
            asyncio.create_task(self._worker(index), name=f"push-worker-{index}")
            for index in range(self._worker_count)
        ]
        logger.info("Push pipeline started with %s workers", self._worker_count)

    async def drain(self) -> None:
        """Wait until every queued job reached a terminal state."""

        if self._queue is not None:
            await self._queue.join()

    async def stop(self, *, drain: bool = True, timeout: float | None = 30.0) -> None:
        """Stop the workers, optionally letting queued jobs finish first.

        Jobs still queued or interrupted mid-send are recorded as failures.
        """

        if drain and self._queue is not None:
            try:
                await asyncio.wait_for(self._queue.join(), timeout=timeout)
            except asyncio.TimeoutError:
                logger.warning(
                    "Push pipeline drain timed out with %s jobs still queued", self.pending()
                )
        for task in self._workers:
            task.cancel()
        await asyncio.gather(*self._workers, return_exceptions=True)
        self._workers = []

        leftovers = [job for job in self._interrupted if not job.state.is_terminal]
        self._interrupted = []
        while self._queue is not None and not self._queue.empty():
            leftovers.append(self._queue.get_nowait())
            self._queue.task_done()
        for job in leftovers:
            job.state = PushJobState.FAILED
            job.last_error = "pipeline stopped"
            await self._record_failure_safely(job)
        if leftovers:
            logger.warning(
                "Push pipeline stopped with %s undelivered jobs recorded as failures",
                len(leftovers),
            )

        if self._bookkeeping:
            await asyncio.gather(*self._bookkeeping, return_exceptions=True)
        await self._gateway.aclose()
        logger.info("Push pipeline stopped")

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------

    def submit(self, job: PushJob) -> None:
        """Queue ``job``. Safe to call from the loop or from a worker thread."""

        if self._loop is None or self._queue is None:
            raise RuntimeError("Push pipeline is not running")

        try:
            running_loop = asyncio.get_running_loop()
        except RuntimeError:
            running_loop = None

        if running_loop is self._loop:
            self._queue.put_nowait(job)
            return

        try:
            from_thread.run_sync(self._queue.put_nowait, job)
        except RuntimeError:
            # Not an anyio worker thread (e.g. a plain threading.Thread).
            self._loop.call_soon_threadsafe(self._put_or_drop, job)

    def _put_or_drop(self, job: PushJob) -> None:
        assert self._queue is not None
        try:
            self._queue.put_nowait(job)
        except asyncio.QueueFull:
            logger.error(
                "Push queue full; dropping job for notification %s", job.notification_id
            )
            job.state = PushJobState.FAILED
            job.last_error = "push queue full"
            task = asyncio.create_task(self._record_failure_safely(job))
            self._bookkeeping.add(task)
            task.add_done_callback(self._bookkeeping.discard)

    # ------------------------------------------------------------------
    # Processing
    # ------------------------------------------------------------------

    def backoff_delay(self, attempt: int) -> float:
        """Exponential backoff for the retry following ``attempt``."""

        exponent = max(0, attempt - 1)
        return min(self._backoff_max_seconds, self._backoff_seconds * (2**exponent))

    async def _worker(self, index: int) -> None:
        assert self._queue is not None
        while True:
            job = await self._queue.get()
            try:
                await self.process(job)
            except asyncio.CancelledError:
                self._interrupted.append(job)
                raise
            except Exception:
                logger.exception(
                    "push-worker-%s crashed on notification %s", index, job.notification_id
                )
                job.state = PushJobState.FAILED
                job.last_error = "worker error"
                await self._record_failure_safely(job)
            finally:
                self._queue.task_done()

    async def process(self, job: PushJob) -> PushJobState:
        """Run ``job`` to a terminal state and record the outcome."""

        if not await self._run_db(self._token_is_valid, job.token):
            job.state = PushJobState.FAILED
            job.last_error = "token invalidated"
            await self._run_db(self._record_failure, job)
            return job.state

        job.state = PushJobState.SENDING
        while True:
            job.attempts += 1
            try:
                await self._gateway.send(job.token, job.platform, job.payload)
            except PushPermanentFailure as exc:
                job.state = PushJobState.FAILED
                job.last_error = str(exc)
                if exc.token_invalid:
                    await self._run_db(self._invalidate_token, job.token, str(exc))
                await self._run_db(self._record_failure, job)
                logger.warning(
                    "Push for notification %s to user %s failed permanently: %s",
                    job.notification_id,
                    job.user_id,
                    exc,
                )
                return job.state
            except PushTransientFailure as exc:
                job.last_error = str(exc)
                if job.attempts >= self._max_attempts:
                    job.state = PushJobState.FAILED
                    await self._run_db(self._record_failure, job)
                    logger.error(
                        "Push for notification %s to user %s gave up after %s attempts: %s",
                        job.notification_id,
                        job.user_id,
                        job.attempts,
                        exc,
                    )
                    return job.state
                delay = self.backoff_delay(job.attempts)
                logger.warning(
                    "Push for notification %s attempt %s failed (%s); retrying in %.2fs",
                    job.notification_id,
                    job.attempts,
                    exc,
                    delay,
                )
                await asyncio.sleep(delay)
                continue

            job.state = PushJobState.DELIVERED
            job.last_error = None
            await self._run_db(self._record_success, job)
            return job.state

    # ------------------------------------------------------------------
    # Database steps (run in a worker thread)
    # ------------------------------------------------------------------

    async def _run_db(self, func: Callable[..., Any], *args: Any) -> Any:
        return await to_thread.run_sync(func, *args)

    async def _record_failure_safely(self, job: PushJob) -> None:
        try:
            await self._run_db(self._record_failure, job)
        except Exception:
            logger.exception(
                "Could not record push failure for notification %s", job.notification_id
            )

    def _token_is_valid(self, token: str) -> bool:
        with session_scope(self._session_factory) as session:
            return DeviceTokenRepository(session).is_valid(token)

    def _invalidate_token(self, token: str, reason: str) -> None:
        with session_scope(self._session_factory) as session:
            if DeviceTokenRepository(session).invalidate(token, reason=reason[:120]):
                logger.warning("Invalidated device token prefix=%s", token[:8])

    def _record_success(self, job: PushJob) -> None:
        with session_scope(self._session_factory) as session:
            repository = NotificationRepository(session)
            repository.mark_delivered(job.notification_id, job.user_id)
            repository.increment_push_counters(job.notification_id, success=1)
            DeviceTokenRepository(session).touch(job.token)

    def _record_failure(self, job: PushJob) -> None:
        with session_scope(self._session_factory) as session:
            NotificationRepository(session).increment_push_counters(
                job.notification_id, failure=1
            )


def build_push_pipeline(
    settings: Settings, session_factory: sessionmaker[Session]
) -> PushDeliveryPipeline:
    """Create the pipeline described by ``settings``."""

    return PushDeliveryPipeline(
        build_push_gateway(settings),
        session_factory,
        workers=settings.push_workers,
        max_attempts=settings.push_max_attempts,
        backoff_seconds=settings.push_backoff_seconds,
        backoff_max_seconds=settings.push_backoff_max_seconds,
        queue_size=settings.push_queue_size,
    )


__all__ = ["PushDeliveryPipeline", "build_push_pipeline"]
