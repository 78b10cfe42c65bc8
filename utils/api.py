"""
Reporting API client and paginated collector.

Every collection endpoint is paged with ``per_page``/``page`` query parameters.
A page shorter than PAGE_SIZE is the last one; the collector also stops with
an error once it reaches a page ceiling, so an API that keeps returning full
pages cannot loop forever.

Usage:
    from utils.api import ReportingClient, collect_pages, SECURITY_TESTS_PATH
    from utils.schemas import SecurityTest

    async with ReportingClient(base_url, token) as client:
        tests = await collect_pages(client, SECURITY_TESTS_PATH, SecurityTest)
"""

import logging
from typing import Any, Optional, TypeVar

import httpx
from pydantic import BaseModel, TypeAdapter, ValidationError

from utils.errors import ApiError, DecodeError, PaginationError, TransportError

logger = logging.getLogger(__name__)

PAGE_SIZE = 500
DEFAULT_MAX_PAGES = 1000

CAMPAIGNS_PATH = "v1/phishing/campaigns"
GROUPS_PATH = "v1/groups"
SECURITY_TESTS_PATH = "v1/phishing/security_tests"
RECIPIENTS_PATH = "v1/phishing/security_tests/{pst_id}/recipients"

ModelT = TypeVar("ModelT", bound=BaseModel)


class ReportingClient:
    """Authenticated GET client for the reporting API.

    One instance is shared by every concurrent fetch of a run; the underlying
    httpx.AsyncClient pools connections.
    """

    def __init__(
        self,
        base_url: str,
        token: str,
        timeout: float = 30,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        """
        Initialize the client.

        Args:
            base_url: API root, e.g. https://us.api.example.com
            token: Bearer token sent on every request
            timeout: Per-request timeout in seconds
            transport: Optional httpx transport (tests use httpx.MockTransport)
        """
        self.base_url = base_url.rstrip("/")
        self._client = httpx.AsyncClient(
            headers={
                "Authorization": f"Bearer {token}",
                "Accept": "application/json",
            },
            timeout=timeout,
            transport=transport,
        )

    async def __aenter__(self) -> "ReportingClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    async def close(self) -> None:
        await self._client.aclose()

    def url_for(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    async def get(self, path: str, params: Optional[dict[str, Any]] = None) -> bytes:
        """Issue a GET request and return the raw response body.

        Args:
            path: Endpoint path relative to the base URL
            params: Query parameters

        Returns:
            Response body bytes

        Raises:
            TransportError: If no response was received
            ApiError: If the status code is 300 or above
        """
        url = httpx.URL(self.url_for(path), params=params)
        try:
            response = await self._client.get(url)
        except httpx.HTTPError as e:
            raise TransportError(f"error making http request to {url}: {e}", str(url)) from e

        if response.status_code >= 300:
            raise ApiError(str(url), response.status_code, response.text)

        return response.content


async def fetch_page(
    client: ReportingClient,
    path: str,
    adapter: TypeAdapter,
    page: int,
) -> list[Any]:
    """Fetch and decode a single page of a collection."""
    body = await client.get(path, params={"per_page": PAGE_SIZE, "page": page})
    try:
        return adapter.validate_json(body)
    except ValidationError as e:
        raise DecodeError(f"error decoding response json for {path} page {page}: {e}") from e


async def collect_pages(
    client: ReportingClient,
    path: str,
    model: type[ModelT],
    max_pages: int = DEFAULT_MAX_PAGES,
) -> list[ModelT]:
    """Collect every page of a collection, in API order.

    Pages are requested strictly in ascending order starting at 1. Collection
    stops after the first page holding fewer than PAGE_SIZE records (an empty
    page included). Any failure discards the pages gathered so far.

    Args:
        client: Reporting API client
        path: Endpoint path, already formatted with any path parameter
        model: Record model each array element is decoded into
        max_pages: Page ceiling

    Returns:
        All decoded records

    Raises:
        TransportError, ApiError, DecodeError: From the failing page
        PaginationError: If max_pages full pages were returned
    """
    adapter = TypeAdapter(list[model])
    records: list[ModelT] = []

    for page in range(1, max_pages + 1):
        page_records = await fetch_page(client, path, adapter, page)
        records.extend(page_records)

        logger.debug(
            "Fetched page",
            extra={"path": path, "page": page, "count": len(page_records)},
        )

        if len(page_records) < PAGE_SIZE:
            return records

    raise PaginationError(
        f"{path} still returned full pages after {max_pages} pages; refusing to truncate"
    )
