# src/s3cp/session.py
"""
The per-copy state machine.

A `CopySession` resolves the source size, then either copies the object in a
single request or runs a multipart copy: it creates the upload, partitions
the object into ranges, feeds them to a bounded pool of worker tasks, collects
their results by part number, and completes (or aborts) the upload. The
source is deleted afterwards if requested and nothing failed.

Producer, workers and collector are connected by two bounded queues. The
error slot and the completed-part list are the only state the stages share.
"""

import asyncio
import logging
import threading
from typing import Any, Dict, List, Optional, Tuple

from botocore.exceptions import BotoCoreError, ClientError

from s3cp.clients import S3Api
from s3cp.config import CopierConfig
from s3cp.events import CopyEvent, EventKind, EventSink
from s3cp.exceptions import (
    AbortError,
    ConfigError,
    CopyCancelledError,
    CopyTimeoutError,
    DeleteError,
    FinalizeError,
    MultipartCreateError,
    ObjectCopyError,
    PartCopyError,
    S3CpError,
    SizeResolutionError,
)
from s3cp.partition import PartResult, PartTask, partition
from s3cp.request import CopyRequest, parse_locator

logger: logging.Logger = logging.getLogger(__name__)

REMOTE_ERRORS: Tuple[type, ...] = (ClientError, BotoCoreError)


class ErrorSlot:
    """
    Holds the first error recorded by a session.

    Later errors never overwrite it.
    """

    def __init__(self) -> None:
        self._lock: threading.Lock = threading.Lock()
        self._error: Optional[Exception] = None

    def get(self) -> Optional[Exception]:
        with self._lock:
            return self._error

    def set(self, error: Exception) -> bool:
        """
        Records an error if none has been recorded yet.

        Args:
            error (Exception): The error to record.

        Returns:
            bool: True if the error was recorded, False if the slot was taken.
        """
        with self._lock:
            if self._error is not None:
                return False
            self._error = error
            return True


class CopySession:
    """
    Copies one object, from size resolution to the optional source deletion.

    `start()` returns once the copy has been dispatched: a single-shot copy
    has finished by then, source deletion included, while a multipart copy
    may still have parts in flight. `wait()` blocks until the session
    concludes and raises its error.

    Once the copy itself has succeeded, the session is final: neither
    `cancel()` nor the deadline can turn it into a failure.
    """

    def __init__(
        self,
        request: CopyRequest,
        config: CopierConfig,
        client: S3Api,
        source_client: S3Api,
        on_event: Optional[EventSink] = None,
    ) -> None:
        """
        Initializes the session.

        Args:
            request (CopyRequest): What to copy.
            config (CopierConfig): The effective tunables for this copy.
            client (S3Api): The client for the destination.
            source_client (S3Api): The client for the source region. Used
                for the size lookup and the deletion.
            on_event (EventSink, optional): Receives a `CopyEvent` per step.
        """
        self._request: CopyRequest = request
        self._config: CopierConfig = config
        self._client: S3Api = client
        self._source_client: S3Api = source_client
        self._on_event: Optional[EventSink] = on_event

        self.content_length: Optional[int] = None
        self.upload_id: Optional[str] = None

        self._errors: ErrorSlot = ErrorSlot()
        self._source: Optional[Tuple[str, str]] = None
        self._parts: List[Optional[Dict[str, Any]]] = []
        self._work: Optional[asyncio.Queue[Optional[PartTask]]] = None
        self._results: Optional[asyncio.Queue[PartResult]] = None
        self._dispatched: asyncio.Event = asyncio.Event()
        self._task: Optional[asyncio.Task[None]] = None
        self._cancel_reason: Optional[CopyCancelledError] = None
        self._timer: Optional[asyncio.TimerHandle] = None
        self._finalized: bool = False

    @property
    def error(self) -> Optional[Exception]:
        """The first error recorded by the session, if any."""
        return self._errors.get()

    @property
    def completed_parts(self) -> List[Optional[Dict[str, Any]]]:
        """The completed-part descriptors, indexed by part number - 1."""
        return list(self._parts)

    @property
    def started(self) -> bool:
        return self._task is not None

    @property
    def done(self) -> bool:
        return self._task is not None and self._task.done()

    async def start(self) -> "CopySession":
        """
        Starts the copy and returns once it has been dispatched.

        Returns:
            CopySession: This session, to be awaited with `wait()`.
        """
        if self._task is not None:
            raise RuntimeError("A copy session can only be started once.")
        self._task = asyncio.create_task(self._run_guarded())
        dispatched: asyncio.Task[bool] = asyncio.create_task(self._dispatched.wait())
        try:
            await asyncio.wait(
                {self._task, dispatched}, return_when=asyncio.FIRST_COMPLETED
            )
        except asyncio.CancelledError:
            self._task.cancel()
            raise
        finally:
            dispatched.cancel()
        return self

    async def wait(self) -> None:
        """
        Waits for the session to conclude.

        Raises:
            S3CpError: The first error the session recorded.
        """
        if self._task is None:
            raise RuntimeError("The copy session has not been started.")
        await self._task

    async def run(self) -> None:
        """Starts the session and waits for it to conclude."""
        await self.start()
        await self.wait()

    def cancel(self) -> None:
        """
        Cancels the session.

        Parts in flight are abandoned and the multipart upload is aborted,
        unless parts are to be left on error.
        """
        self._cancel_with(
            CopyCancelledError(
                f"copy of '{self._request.copy_source}' to "
                f"'{self._request.destination}' was cancelled"
            )
        )

    def _expire(self) -> None:
        self._cancel_with(
            CopyTimeoutError(
                f"copy of '{self._request.copy_source}' to "
                f"'{self._request.destination}' did not finish within "
                f"{self._config.timeout_s}s"
            )
        )

    def _cancel_with(self, reason: CopyCancelledError) -> None:
        if self._task is None or self._task.done():
            return
        if self._finalized or self._cancel_reason:
            return
        self._cancel_reason = reason
        self._errors.set(reason)
        self._task.cancel()

    async def _run_guarded(self) -> None:
        """Runs the session under its deadline."""
        loop: asyncio.AbstractEventLoop = asyncio.get_running_loop()
        timer: asyncio.TimerHandle = loop.call_later(
            self._config.timeout_s, self._expire
        )
        self._timer = timer
        try:
            await self._run()
        except asyncio.CancelledError:
            if self._cancel_reason is not None:
                # Cancelled by cancel() or the deadline: report it as an error.
                raise self._cancel_reason from None
            if not self._finalized:
                # Cancelled from outside, e.g. through a cancelled waiter.
                self._errors.set(
                    CopyCancelledError(
                        f"copy of '{self._request.copy_source}' was cancelled"
                    )
                )
            raise
        finally:
            timer.cancel()
            self._dispatched.set()

    async def _run(self) -> None:
        try:
            self._source = parse_locator(self._request.copy_source)
            await self._resolve_size()
            assert self.content_length is not None
            if self.content_length < self._config.part_size:
                await self._single_part_copy()
            else:
                await self._multipart_copy()
        except S3CpError as e:
            self._errors.set(e)

        error: Optional[Exception] = self._errors.get()
        if error is not None:
            raise error

        self._finalize()
        if self._request.delete:
            await self._delete_source()

    def _finalize(self) -> None:
        """Marks the copy as succeeded; cancellation no longer applies."""
        self._finalized = True
        if self._timer is not None:
            self._timer.cancel()

    def _call_params(self, params: Dict[str, Any]) -> Dict[str, Any]:
        return {**self._config.request_options, **params}

    def _emit(
        self, kind: EventKind, locator: Optional[str] = None, **fields: Any
    ) -> None:
        if self._on_event is None:
            return
        event: CopyEvent = CopyEvent(
            kind=kind, locator=locator or self._request.destination, **fields
        )
        try:
            self._on_event(event)
        except Exception:
            logger.exception(f"Event sink failed on {kind.value} event.")

    async def _resolve_size(self) -> None:
        """Sets `content_length`, from the request or from the source's metadata."""
        if self._request.size > 0:
            self.content_length = self._request.size
        else:
            assert self._source is not None
            bucket, key = self._source
            try:
                info: Dict[str, Any] = await self._source_client.head_object(
                    **self._call_params({"Bucket": bucket, "Key": key})
                )
            except REMOTE_ERRORS as e:
                raise SizeResolutionError(f"error getting object info: {e}") from e
            self.content_length = int(info["ContentLength"])

        logger.debug(
            f"Size of '{self._request.copy_source}' is {self.content_length} bytes."
        )
        self._emit(
            EventKind.SIZE_RESOLVED,
            locator=self._request.copy_source,
            size=self.content_length,
        )

    async def _single_part_copy(self) -> None:
        try:
            await self._client.copy_object(
                **self._call_params(self._request.copy_object_params())
            )
        except REMOTE_ERRORS as e:
            logger.error(
                f"Failed to copy '{self._request.copy_source}' to "
                f"'{self._request.destination}': {e}"
            )
            raise ObjectCopyError(f"error copying object: {e}") from e

        logger.info(
            f"Copied '{self._request.copy_source}' to '{self._request.destination}'."
        )
        self._emit(EventKind.OBJECT_COPIED, size=self.content_length)

    async def _multipart_copy(self) -> None:
        """
        Runs the multipart path.

        Once the upload exists, anything that ends the copy early abandons
        it, a cancellation included.
        """
        if self._config.concurrency < 1:
            raise ConfigError(
                f"Concurrency must be at least 1, got {self._config.concurrency}."
            )
        if self._config.part_size < 1:
            raise ConfigError(
                f"Part size must be at least 1 byte, got {self._config.part_size}."
            )

        await self._start_multipart()
        try:
            await self._copy_parts()
            if self._errors.get() is None:
                await self._complete_multipart()
        except asyncio.CancelledError:
            self._errors.set(
                CopyCancelledError(
                    f"multipart copy to '{self._request.destination}' was cancelled"
                )
            )
            await self._abandon_multipart()
            raise
        except Exception as e:
            self._errors.set(e)
            await self._abandon_multipart()
            raise

        if self._errors.get() is not None:
            await self._abandon_multipart()

    async def _copy_parts(self) -> None:
        """Partitions the object and drains the worker pool."""
        assert self.content_length is not None and self.upload_id is not None
        tasks: List[PartTask] = partition(
            self.content_length, self._config.part_size, self.upload_id
        )
        self._prime_multipart(len(tasks))
        num_workers: int = min(self._config.concurrency, len(tasks))

        producer_task: asyncio.Task[None] = asyncio.create_task(
            self._produce_parts(tasks, num_workers)
        )
        worker_tasks: List[asyncio.Task[None]] = [
            asyncio.create_task(self._part_worker(i)) for i in range(num_workers)
        ]
        self._dispatched.set()
        logger.info(
            f"Copying '{self._request.copy_source}' to "
            f"'{self._request.destination}' in {len(tasks)} parts "
            f"with {num_workers} workers."
        )

        try:
            await self._collect_results(len(tasks))
        except asyncio.CancelledError:
            producer_task.cancel()
            for task in worker_tasks:
                task.cancel()
            raise
        finally:
            await asyncio.gather(producer_task, *worker_tasks, return_exceptions=True)

    async def _start_multipart(self) -> None:
        """
        Creates the upload and sets `upload_id`.

        If the session is cancelled while the create call is in flight, the
        call is still awaited so that an upload the service did create can be
        abandoned instead of orphaned.
        """
        create: asyncio.Future[Dict[str, Any]] = asyncio.ensure_future(
            self._client.create_multipart_upload(
                **self._call_params(self._request.create_multipart_params())
            )
        )
        try:
            response: Dict[str, Any] = await asyncio.shield(create)
        except asyncio.CancelledError:
            await self._abandon_pending_create(create)
            raise
        except REMOTE_ERRORS as e:
            raise MultipartCreateError(f"error creating multipart upload: {e}") from e

        self.upload_id = response["UploadId"]
        logger.debug(
            f"Created multipart upload '{self.upload_id}' "
            f"for '{self._request.destination}'."
        )

    async def _abandon_pending_create(
        self, create: "asyncio.Future[Dict[str, Any]]"
    ) -> None:
        try:
            response: Dict[str, Any] = await create
        except REMOTE_ERRORS:
            # No upload was created.
            return
        self.upload_id = response["UploadId"]
        await self._abandon_multipart()

    def _prime_multipart(self, count: int) -> None:
        self._parts = [None] * count
        self._work = asyncio.Queue(maxsize=self._config.concurrency)
        self._results = asyncio.Queue(maxsize=self._config.concurrency)
        self._emit(
            EventKind.MULTIPART_CREATED, part_count=count, size=self.content_length
        )

    async def _produce_parts(self, tasks: List[PartTask], num_workers: int) -> None:
        """Feeds the work queue, then closes it with one sentinel per worker."""
        assert self._work is not None
        for task in tasks:
            await self._work.put(task)
        for _ in range(num_workers):
            await self._work.put(None)

    async def _part_worker(self, worker_id: int) -> None:
        """Copies parts from the work queue until it is closed."""
        assert self._work is not None and self._results is not None
        logger.debug(f"Part worker {worker_id} started.")
        while True:
            task: Optional[PartTask] = await self._work.get()
            if task is None:
                break
            result: PartResult = await self._copy_part(task)
            await self._results.put(result)
        logger.debug(f"Part worker {worker_id} finished.")

    async def _copy_part(self, task: PartTask) -> PartResult:
        """
        Copies one range. Failures are returned, never raised nor retried;
        retries belong to the botocore client.
        """
        logger.info(
            f"Copying Part: {task.part_number} ({task.byte_range}) "
            f"of '{self._request.destination}'"
        )
        params: Dict[str, Any] = self._call_params(
            self._request.upload_part_copy_params(
                task.part_number, task.byte_range, task.upload_id
            )
        )
        try:
            response: Dict[str, Any] = await self._client.upload_part_copy(**params)
            etag: str = response["CopyPartResult"]["ETag"]
        except REMOTE_ERRORS as e:
            return PartResult(
                task.part_number,
                error=PartCopyError(
                    f"error copying part {task.part_number}: {e}", task.part_number
                ),
            )
        except Exception as e:
            logger.exception(
                f"An unexpected error occurred copying Part: {task.part_number}"
            )
            return PartResult(
                task.part_number,
                error=PartCopyError(
                    f"error copying part {task.part_number}: {e}", task.part_number
                ),
            )
        return PartResult(task.part_number, etag=etag)

    async def _collect_results(self, count: int) -> None:
        """
        Drains one result per part, filing tags by part number.

        Each result received decrements the outstanding count; draining stops
        when it reaches zero.
        """
        assert self._results is not None
        outstanding: int = count
        while outstanding > 0:
            result: PartResult = await self._results.get()
            outstanding -= 1

            if result.error is not None:
                logger.error(
                    f"Failed Part: {result.part_number} "
                    f"of '{self._request.destination}': {result.error}"
                )
                self._errors.set(result.error)
                self._emit(
                    EventKind.PART_FAILED,
                    part_number=result.part_number,
                    error=result.error,
                )
                continue

            self._parts[result.part_number - 1] = {
                "ETag": result.etag,
                "PartNumber": result.part_number,
            }
            logger.info(
                f"Copied Part: {result.part_number} of '{self._request.destination}'"
            )
            self._emit(
                EventKind.PART_COPIED,
                part_number=result.part_number,
                part_count=count,
            )

    async def _complete_multipart(self) -> None:
        assert self.upload_id is not None
        params: Dict[str, Any] = self._call_params(
            self._request.upload_params(self.upload_id)
        )
        params["MultipartUpload"] = {"Parts": list(self._parts)}
        try:
            await self._client.complete_multipart_upload(**params)
        except REMOTE_ERRORS as e:
            raise FinalizeError(f"error completing multipart upload: {e}") from e

        logger.info(
            f"Copied '{self._request.copy_source}' to "
            f"'{self._request.destination}' in {len(self._parts)} parts."
        )
        self._emit(EventKind.MULTIPART_COMPLETED, part_count=len(self._parts))

    async def _abandon_multipart(self) -> None:
        """
        Aborts the upload, unless its parts are to be left for recovery.

        Also runs when a cancellation lands during the complete call. If the
        service had already completed the upload, the abort fails and is only
        logged; the session still reports the cancellation.
        """
        if self.upload_id is None:
            return
        if self._config.leave_parts_on_error:
            logger.warning(
                f"Leaving the parts of multipart upload '{self.upload_id}' "
                f"for '{self._request.destination}' for manual recovery."
            )
            return

        try:
            await self._client.abort_multipart_upload(
                **self._call_params(self._request.upload_params(self.upload_id))
            )
        except REMOTE_ERRORS as e:
            error: AbortError = AbortError(
                f"error aborting multipart upload '{self.upload_id}': {e}"
            )
            logger.error(f"Failed to abort '{self._request.destination}': {error}")
            self._emit(EventKind.ABORT_FAILED, error=error)
            return

        logger.warning(
            f"Aborted multipart upload '{self.upload_id}' "
            f"for '{self._request.destination}'."
        )
        self._emit(EventKind.MULTIPART_ABORTED)

    async def _delete_source(self) -> None:
        """Deletes the source. A failure is logged, the copy still succeeded."""
        assert self._source is not None
        bucket, key = self._source
        try:
            await self._source_client.delete_object(
                **self._call_params({"Bucket": bucket, "Key": key})
            )
        except asyncio.CancelledError:
            # Only an outside cancellation gets here; the copy already succeeded.
            logger.error(f"Deletion of '{self._request.copy_source}' was interrupted.")
            self._emit(
                EventKind.DELETE_FAILED,
                locator=self._request.copy_source,
                error=DeleteError("deletion of the source was interrupted"),
            )
            raise
        except REMOTE_ERRORS as e:
            error: DeleteError = DeleteError(f"error deleting object: {e}")
            logger.error(f"Failed to delete '{self._request.copy_source}': {e}")
            self._emit(
                EventKind.DELETE_FAILED, locator=self._request.copy_source, error=error
            )
            return

        logger.info(f"Deleted source '{self._request.copy_source}'.")
        self._emit(EventKind.SOURCE_DELETED, locator=self._request.copy_source)
