"""Async concurrent execution for per-record processing."""

import asyncio
import functools
from typing import Callable, Iterable, TypeVar, Union

from schemadrift.core.exceptions import RecordTimeoutError

T = TypeVar("T")
R = TypeVar("R")


class AsyncRecordExecutor:
    """Async executor for processing records concurrently.

    Uses asyncio.Semaphore to limit concurrency. Results keep input order and
    each record's failure is returned in its slot rather than raised, so one
    bad record never aborts the others.
    """

    def __init__(self, concurrency: int, timeout: float | None = None):
        """Initialize async record executor.

        Args:
            concurrency: Maximum number of records processed at once
            timeout: Optional per-record timeout in seconds. A timed-out sync
                function keeps running in its worker thread, so its side
                effects (a registration, say) may still land after the record
                is reported as failed.
        """
        if concurrency < 1:
            raise ValueError("concurrency must be at least 1")
        if timeout is not None and timeout <= 0:
            raise ValueError("timeout must be greater than 0")
        self.concurrency = concurrency
        self.timeout = timeout

    async def process_records(
        self,
        records: Iterable[T],
        process_func: Callable[[T], R],
    ) -> list[Union[R, BaseException]]:
        """Process records concurrently while maintaining order.

        Args:
            records: Records to process
            process_func: Function to process each record (sync or async)

        Returns:
            One entry per record: the result, or the exception it failed with
        """
        record_list = list(records)

        if not record_list:
            return []

        semaphore = asyncio.Semaphore(self.concurrency)
        tasks = [
            asyncio.ensure_future(self._process_with_semaphore(semaphore, record, process_func))
            for record in record_list
        ]
        return await asyncio.gather(*tasks, return_exceptions=True)

    async def _process_with_semaphore(
        self,
        semaphore: asyncio.Semaphore,
        record: T,
        process_func: Callable[[T], R],
    ) -> R:
        async with semaphore:
            if asyncio.iscoroutinefunction(process_func):
                call = process_func(record)
            else:
                loop = asyncio.get_running_loop()
                call = loop.run_in_executor(None, functools.partial(process_func, record))

            if self.timeout is None:
                return await call
            try:
                return await asyncio.wait_for(call, timeout=self.timeout)
            except asyncio.TimeoutError as e:
                raise RecordTimeoutError(
                    f"Record processing timed out after {self.timeout}s",
                    context={"timeout": self.timeout},
                ) from e
