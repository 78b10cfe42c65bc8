"""
Concurrent Recipient Archiver

Fetches, flattens, encodes and stores the recipients of every security test,
one object per test.

Tests are processed in consecutive batches. Every task of a batch is started
before any outcome is read, and each task reports exactly one outcome on a
shared queue. The coroutine draining that queue is the only owner of the error
counter. Once the counter reaches the error budget no further batch is
started; tasks already running are left to finish and nothing already stored
is removed.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Optional

from utils.api import DEFAULT_MAX_PAGES, RECIPIENTS_PATH, ReportingClient, collect_pages
from utils.errors import TooManyErrorsError
from utils.flatten import flatten_all, flatten_recipient
from utils.jsonl import encode_jsonl
from utils.schemas import Recipient
from utils.storage import ObjectStore, recipients_key

logger = logging.getLogger(__name__)

DEFAULT_CONCURRENCY = 5
DEFAULT_MAX_ERRORS = 5


@dataclass
class RecipientOutcome:
    """Completion message sent by one recipient pipeline."""

    pst_id: int
    error: Optional[Exception] = None
    recipient_count: int = 0


@dataclass
class ArchiveResult:
    stored: int = 0
    errors: int = 0
    failed_ids: list[int] = field(default_factory=list)


def batches(pst_ids: list[int], width: int) -> list[list[int]]:
    """Split ``pst_ids`` into consecutive batches of at most ``width``."""
    return [pst_ids[i:i + width] for i in range(0, len(pst_ids), width)]


class RecipientArchiver:
    """
    Bounded, error-budgeted fan-out of per-test recipient pipelines.

    Handles:
    - Batching security tests by concurrency width
    - Running each test's collect -> flatten -> encode -> store pipeline
    - Counting failures across the whole run
    """

    def __init__(
        self,
        client: ReportingClient,
        store: ObjectStore,
        concurrency: int = DEFAULT_CONCURRENCY,
        max_errors: int = DEFAULT_MAX_ERRORS,
        max_pages: int = DEFAULT_MAX_PAGES,
    ) -> None:
        """
        Initialize the archiver.

        Args:
            client: Reporting API client shared by all pipelines
            store: Destination object store
            concurrency: Number of pipelines started per batch
            max_errors: Failures tolerated across the run before aborting
            max_pages: Page ceiling for each recipient collection
        """
        if concurrency < 1:
            raise ValueError("concurrency must be at least 1")
        if max_errors < 1:
            raise ValueError("max_errors must be at least 1")

        self.client = client
        self.store = store
        self.concurrency = concurrency
        self.max_errors = max_errors
        self.max_pages = max_pages

    async def archive_one(self, pst_id: int) -> int:
        """Run the pipeline for one security test.

        Returns:
            Number of recipient records stored
        """
        path = RECIPIENTS_PATH.format(pst_id=pst_id)
        recipients = await collect_pages(self.client, path, Recipient, self.max_pages)
        body = encode_jsonl(flatten_all(recipients, flatten_recipient))
        await self.store.put(recipients_key(pst_id), body)
        return len(recipients)

    async def _run_pipeline(self, pst_id: int, outbox: asyncio.Queue) -> None:
        try:
            count = await self.archive_one(pst_id)
        except Exception as e:
            await outbox.put(RecipientOutcome(pst_id=pst_id, error=e))
            return
        await outbox.put(RecipientOutcome(pst_id=pst_id, recipient_count=count))

    async def archive(self, pst_ids: list[int]) -> ArchiveResult:
        """Archive the recipients of every security test in ``pst_ids``.

        Args:
            pst_ids: Security test ids, in the order they are processed

        Returns:
            Counts of stored objects and failures

        Raises:
            TooManyErrorsError: When the error budget is reached
        """
        result = ArchiveResult()
        outbox: asyncio.Queue = asyncio.Queue(maxsize=1)

        logger.info(
            "Archiving recipients",
            extra={
                "pst_count": len(pst_ids),
                "concurrency": self.concurrency,
                "max_errors": self.max_errors,
            },
        )

        for batch in batches(pst_ids, self.concurrency):
            tasks = [
                asyncio.create_task(self._run_pipeline(pst_id, outbox))
                for pst_id in batch
            ]

            try:
                for _ in tasks:
                    self._record(result, await outbox.get())
            except asyncio.CancelledError:
                # pipelines still running would block on the full outbox
                for task in tasks:
                    task.cancel()
                await asyncio.gather(*tasks, return_exceptions=True)
                raise

            await asyncio.gather(*tasks)

            if result.errors >= self.max_errors:
                self._log_totals(result)
                raise TooManyErrorsError(result.errors, result.stored, result.failed_ids)

        self._log_totals(result)
        return result

    @staticmethod
    def _record(result: ArchiveResult, outcome: RecipientOutcome) -> None:
        if outcome.error is None:
            result.stored += 1
            logger.debug(
                "Stored recipients",
                extra={"pst_id": outcome.pst_id, "count": outcome.recipient_count},
            )
            return

        result.errors += 1
        result.failed_ids.append(outcome.pst_id)
        logger.error(
            "Recipient pipeline failed for security test %s: %s",
            outcome.pst_id,
            outcome.error,
            extra={"pst_id": outcome.pst_id, "error_count": result.errors},
        )

    @staticmethod
    def _log_totals(result: ArchiveResult) -> None:
        logger.info(
            "Recipient archive finished: stored=%d, errors=%d",
            result.stored,
            result.errors,
            extra={"stored": result.stored, "errors": result.errors},
        )
