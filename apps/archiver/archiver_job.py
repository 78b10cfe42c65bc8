"""
Archive Job - One Full Export Run

Sequence:
1. campaigns       -> campaigns/knowbe4_campaigns.json
2. groups          -> groups/knowbe4_groups.json
3. security tests  -> campaigns/pst/knowbe4_security_tests.json
4. recipients of each security test -> recipients/knowbe4_recipients_<pst_id>.json

The first three stages are all-or-nothing: any failure stops the run. The
recipient stage tolerates failures up to the configured error budget.

Usage:
    from apps.archiver.archiver_job import run_archive

    summary = await run_archive()
"""

import logging
import time
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Callable, Optional

from pydantic import BaseModel

from apps.archiver.recipients import ArchiveResult, RecipientArchiver
from utils.api import (
    CAMPAIGNS_PATH,
    GROUPS_PATH,
    SECURITY_TESTS_PATH,
    ReportingClient,
    collect_pages,
)
from utils.config import Settings, settings as default_settings
from utils.flatten import flatten_all, flatten_campaign, flatten_group, flatten_security_test
from utils.jsonl import encode_jsonl
from utils.schemas import Campaign, FlatSecurityTest, Group, SecurityTest
from utils.storage import CAMPAIGNS_KEY, GROUPS_KEY, SECURITY_TESTS_KEY, ObjectStore

logger = logging.getLogger(__name__)


@dataclass
class ArchiveSummary:
    campaigns: int
    groups: int
    security_tests: int
    recipients: ArchiveResult


async def archive_collection(
    client: ReportingClient,
    store: ObjectStore,
    stage: str,
    path: str,
    model: type[BaseModel],
    flatten: Callable,
    key: str,
    max_pages: int,
) -> list:
    """Collect, flatten and store one whole collection.

    Returns:
        The flat records that were stored

    Raises:
        ArchiverError: Any failure, after logging it with the stage name
    """
    try:
        records = await collect_pages(client, path, model, max_pages)
        flat_records = flatten_all(records, flatten)
        await store.put(key, encode_jsonl(flat_records))
    except Exception as e:
        logger.error(
            "Error saving %s ... %s",
            stage,
            e,
            extra={"stage": stage, "key": key},
        )
        raise

    logger.info(
        "Success saving %d %s",
        len(flat_records),
        stage,
        extra={"stage": stage, "key": key, "count": len(flat_records)},
    )
    return flat_records


def select_pst_ids(tests: Sequence[FlatSecurityTest], max_file_count: int) -> list[int]:
    """Security test ids to archive recipients for, capped when requested.

    A cap of 0 (or one larger than the number of tests) selects every test.
    """
    pst_ids = [test.pst_id for test in tests]
    if max_file_count > 0:
        return pst_ids[:max_file_count]
    return pst_ids


async def run_archive(
    config: Optional[Settings] = None,
    client: Optional[ReportingClient] = None,
    store: Optional[ObjectStore] = None,
) -> ArchiveSummary:
    """
    Run one complete archive.

    Args:
        config: Settings, defaults to the environment-loaded singleton
        client: Reporting API client, built from settings when omitted
        store: Object store, built from settings when omitted

    Returns:
        Counts of archived records per collection

    Raises:
        ConfigurationError: If a required setting is missing
        ArchiverError: The first fatal stage error, or TooManyErrorsError
    """
    config = config or default_settings
    config.validate_required()

    start_time = time.time()
    # store first: nothing to close if boto3 fails to build its client
    if store is None:
        store = ObjectStore(config.AWS_S3_BUCKET, region=config.AWS_REGION)
    owns_client = client is None
    if client is None:
        client = ReportingClient(
            config.API_BASE_URL,
            config.API_AUTH_TOKEN,
            timeout=config.API_TIMEOUT,
        )

    logger.info(
        "Archive run started",
        extra={"bucket": config.AWS_S3_BUCKET, "max_file_count": config.MAX_FILE_COUNT},
    )

    try:
        campaigns = await archive_collection(
            client, store, "campaigns", CAMPAIGNS_PATH, Campaign,
            flatten_campaign, CAMPAIGNS_KEY, config.API_MAX_PAGES,
        )
        groups = await archive_collection(
            client, store, "groups", GROUPS_PATH, Group,
            flatten_group, GROUPS_KEY, config.API_MAX_PAGES,
        )
        tests = await archive_collection(
            client, store, "security tests", SECURITY_TESTS_PATH, SecurityTest,
            flatten_security_test, SECURITY_TESTS_KEY, config.API_MAX_PAGES,
        )

        archiver = RecipientArchiver(
            client,
            store,
            concurrency=config.ARCHIVE_CONCURRENCY,
            max_errors=config.ARCHIVE_MAX_ERRORS,
            max_pages=config.API_MAX_PAGES,
        )
        recipients = await archiver.archive(select_pst_ids(tests, config.MAX_FILE_COUNT))
    finally:
        if owns_client:
            await client.close()

    logger.info(
        "Archive run completed: elapsed=%.3fs",
        time.time() - start_time,
        extra={
            "campaigns": len(campaigns),
            "groups": len(groups),
            "security_tests": len(tests),
            "recipient_files": recipients.stored,
            "recipient_errors": recipients.errors,
        },
    )

    return ArchiveSummary(
        campaigns=len(campaigns),
        groups=len(groups),
        security_tests=len(tests),
        recipients=recipients,
    )
