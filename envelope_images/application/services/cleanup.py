"""Background deletion of blobs no longer referenced by the catalog."""

import asyncio
import contextlib

from envelope_images.commons.infrastructure.blob.base import BlobStorageBase
from envelope_images.commons.telemetry import get_logger


class BlobCleanupQueue:
    """Bounded queue of blob handles to delete off the request path.

    Handles are only scheduled after the catalog change that orphaned them
    was acknowledged. Each deletion is attempted once: failures are logged
    and dropped, since an orphan blob only leaks space (the catalog decides
    what is live). When the queue is full the handle is dropped the same way.
    """

    def __init__(
        self,
        blob_storage: BlobStorageBase,
        max_size: int = 1000,
        workers: int = 1,
    ) -> None:
        """Initialize the queue.

        Args:
            blob_storage: Blob storage provider to delete from.
            max_size: Maximum pending deletions.
            workers: Number of concurrent deletion workers.
        """
        self._blob = blob_storage
        self._queue: asyncio.Queue[tuple[str, str]] = asyncio.Queue(maxsize=max_size)
        self._worker_count = workers
        self._workers: list[asyncio.Task[None]] = []
        self._logger = get_logger(__name__)

    @property
    def pending(self) -> int:
        """Number of deletions waiting for a worker."""
        return self._queue.qsize()

    @property
    def running(self) -> bool:
        """Whether any worker task is alive."""
        return any(not task.done() for task in self._workers)

    def start(self) -> None:
        """Start the worker tasks on the running event loop."""
        if self.running:
            return
        self._workers = [
            asyncio.create_task(self._work(n), name=f"blob-cleanup-{n}")
            for n in range(self._worker_count)
        ]
        self._logger.debug(
            "Blob cleanup workers started",
            extra={"workers": self._worker_count},
        )

    def schedule(self, handle: str, reason: str) -> bool:
        """Queue a blob for deletion without waiting for it.

        Returns:
            True if queued, False if the queue was full and the handle dropped.
        """
        self.start()
        try:
            self._queue.put_nowait((handle, reason))
        except asyncio.QueueFull:
            self._logger.warning(
                "Blob cleanup queue full, leaving orphan blob",
                extra={"blob_handle": handle, "reason": reason},
            )
            return False
        self._logger.debug(
            "Blob deletion scheduled",
            extra={"blob_handle": handle, "reason": reason},
        )
        return True

    async def delete_now(self, handle: str, reason: str) -> bool:
        """Attempt one deletion inline; never raises.

        Returns:
            True if the blob was deleted, False if absent or the attempt failed.
        """
        try:
            deleted = await self._blob.delete(handle)
        except Exception:
            self._logger.warning(
                "Blob deletion failed, leaving orphan blob",
                exc_info=True,
                extra={"blob_handle": handle, "reason": reason},
            )
            return False

        if deleted:
            self._logger.info(
                "Blob deleted",
                extra={"blob_handle": handle, "reason": reason},
            )
        else:
            self._logger.debug(
                "Blob already gone",
                extra={"blob_handle": handle, "reason": reason},
            )
        return deleted

    async def join(self) -> None:
        """Wait until every scheduled deletion has been attempted."""
        if self._queue.empty() and not self.running:
            return
        self.start()
        await self._queue.join()

    async def stop(self, drain_timeout: float | None = 5.0) -> None:
        """Stop the workers, first giving pending deletions a chance to run.

        Args:
            drain_timeout: Seconds to wait for the queue to drain; None waits
                indefinitely, 0 skips draining.
        """
        if self.running and drain_timeout != 0:
            try:
                await asyncio.wait_for(self._queue.join(), timeout=drain_timeout)
            except TimeoutError:
                self._logger.warning(
                    "Blob cleanup queue not drained before shutdown",
                    extra={"pending": self.pending},
                )

        for task in self._workers:
            task.cancel()
        for task in self._workers:
            with contextlib.suppress(asyncio.CancelledError):
                await task
        self._workers = []

    async def _work(self, worker_number: int) -> None:
        """Worker loop: one deletion attempt per queued handle."""
        while True:
            handle, reason = await self._queue.get()
            try:
                await self.delete_now(handle, reason)
            finally:
                self._queue.task_done()
