# services/ingestion_queue.py
"""Background ingestion: asyncio job queue drained by a fixed worker pool"""
import asyncio
import logging
from typing import Awaitable, Callable, Dict, List, Optional, Set

from config import settings
from core.errors import TRANSIENT_ERRORS

logger = logging.getLogger(settings.LOGGER_NAME)

JobHandler = Callable[[str], Awaitable[None]]
FailureHandler = Callable[[str, Exception], Awaitable[None]]


class IngestionQueue:
    """
    Runs one job per document id through `handler`.

    - A document already waiting in the queue is not queued twice.
    - Jobs for the same document never overlap (per-document lock); a job
      submitted while another runs waits for it.
    - Transient errors are retried with exponential backoff; the final
      error (or any non-transient one) goes to `on_failure`.
    Call start() once the event loop runs and stop() on shutdown.
    """

    def __init__(
        self,
        handler: JobHandler,
        on_failure: FailureHandler,
        workers: int = settings.INGESTION_WORKERS,
        max_retries: int = settings.INGESTION_MAX_RETRIES,
        backoff_seconds: float = settings.INGESTION_RETRY_BACKOFF_SECONDS,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep
    ):
        self.handler = handler
        self.on_failure = on_failure
        self.workers = workers
        self.max_retries = max_retries
        self.backoff_seconds = backoff_seconds
        self._sleep = sleep

        self._queue: Optional[asyncio.Queue] = None
        self._tasks: List[asyncio.Task] = []
        self._pending: Set[str] = set()
        self._locks: Dict[str, asyncio.Lock] = {}
        self._lock_users: Dict[str, int] = {}

    @property
    def running(self) -> bool:
        return bool(self._tasks)

    def is_pending(self, document_id: str) -> bool:
        return document_id in self._pending

    async def start(self) -> None:
        if self._tasks:
            return
        self._queue = asyncio.Queue()
        self._tasks = [
            asyncio.create_task(self._worker(i), name=f"ingestion-worker-{i}")
            for i in range(self.workers)
        ]
        logger.info(f"[QUEUE] Started {self.workers} ingestion workers")

    async def stop(self) -> None:
        """Cancel workers; jobs still queued are dropped (documents stay `processing`)."""
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []
        logger.info("[QUEUE] Ingestion workers stopped")

    async def submit(self, document_id: str) -> bool:
        """Queue a job. Returns False when an identical job is already waiting."""
        if self._queue is None:
            raise RuntimeError("IngestionQueue.start() has not been called")
        if document_id in self._pending:
            logger.info(f"[QUEUE] Job for {document_id} already queued, coalescing")
            return False
        self._pending.add(document_id)
        await self._queue.put(document_id)
        logger.debug(f"[QUEUE] Queued {document_id} (depth {self._queue.qsize()})")
        return True

    async def join(self) -> None:
        """Wait until every queued job has finished (including retries)."""
        if self._queue is not None:
            await self._queue.join()

    def _acquire_lock(self, document_id: str) -> asyncio.Lock:
        self._lock_users[document_id] = self._lock_users.get(document_id, 0) + 1
        return self._locks.setdefault(document_id, asyncio.Lock())

    def _release_lock(self, document_id: str) -> None:
        self._lock_users[document_id] -= 1
        if self._lock_users[document_id] == 0:
            del self._lock_users[document_id]
            del self._locks[document_id]

    async def _worker(self, worker_id: int) -> None:
        assert self._queue is not None
        while True:
            document_id = await self._queue.get()
            # From here on a new submission is a new job, not a duplicate
            self._pending.discard(document_id)
            lock = self._acquire_lock(document_id)
            try:
                async with lock:
                    await self._run_with_retry(document_id, worker_id)
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception(f"[QUEUE] Worker {worker_id} crashed on {document_id}")
            finally:
                self._release_lock(document_id)
                self._queue.task_done()

    async def _run_with_retry(self, document_id: str, worker_id: int) -> None:
        attempt = 0
        while True:
            try:
                await self.handler(document_id)
                return
            except TRANSIENT_ERRORS as e:
                if attempt >= self.max_retries:
                    logger.error(f"[QUEUE] {document_id} failed after {attempt + 1} attempts: {e}")
                    await self._report_failure(document_id, e)
                    return
                delay = self.backoff_seconds * (2 ** attempt)
                attempt += 1
                logger.warning(
                    f"[QUEUE] Worker {worker_id}: transient error on {document_id} ({e}); "
                    f"retry {attempt}/{self.max_retries} in {delay:.1f}s"
                )
                await self._sleep(delay)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error(f"[QUEUE] {document_id} failed: {e}")
                await self._report_failure(document_id, e)
                return

    async def _report_failure(self, document_id: str, error: Exception) -> None:
        try:
            await self.on_failure(document_id, error)
        except Exception:
            logger.exception(f"[QUEUE] Could not record failure for {document_id}")
