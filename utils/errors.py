"""
Archiver error taxonomy.

Every failure the pipeline can raise derives from ArchiverError so callers can
tell expected run failures apart from programming errors.
"""

from typing import Optional


class ArchiverError(Exception):
    """Base class for all archive run failures."""


class ConfigurationError(ArchiverError):
    """A required setting is missing or invalid."""


class TransportError(ArchiverError):
    """The request never produced an HTTP response (network, DNS, timeout)."""

    def __init__(self, message: str, url: str) -> None:
        super().__init__(message)
        self.url = url


class ApiError(ArchiverError):
    """The reporting API answered with a status code of 300 or above."""

    def __init__(self, url: str, status_code: int, body: str) -> None:
        super().__init__(
            f"API returned an error. URL: {url}, Code: {status_code}, Body: {body}"
        )
        self.url = url
        self.status_code = status_code
        self.body = body


class DecodeError(ArchiverError):
    """A response body did not match the expected record shape."""


class PaginationError(ArchiverError):
    """A collection reached the page ceiling without a short final page."""


class StoreError(ArchiverError):
    """Writing an object to the bucket failed."""

    def __init__(self, message: str, bucket: str, key: str) -> None:
        super().__init__(message)
        self.bucket = bucket
        self.key = key


class TooManyErrorsError(ArchiverError):
    """The recipient fan-out used up its error budget."""

    def __init__(
        self,
        error_count: int,
        stored_count: int,
        failed_ids: Optional[list[int]] = None,
    ) -> None:
        super().__init__(f"aborting due to getting too many ({error_count}) errors")
        self.error_count = error_count
        self.stored_count = stored_count
        self.failed_ids = failed_ids or []
