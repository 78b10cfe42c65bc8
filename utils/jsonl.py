"""
JSON Lines encoding for archived collections.

One JSON value per record, each followed by a single newline, so a partially
written object is still readable line by line.

Usage:
    from utils.jsonl import encode_jsonl

    body = encode_jsonl(flat_tests)
"""

from collections.abc import Sequence
from typing import Any

import orjson
from pydantic import BaseModel


def _to_jsonable(record: Any) -> Any:
    if isinstance(record, BaseModel):
        return record.model_dump(mode="json", by_alias=True)
    return record


def encode_jsonl(records: Sequence[Any]) -> bytes:
    """Serialize an ordered sequence of records as JSON Lines.

    Args:
        records: List or tuple of pydantic models, dicts or JSON scalars

    Returns:
        UTF-8 bytes; empty when ``records`` is empty

    Raises:
        TypeError: If ``records`` is not a sequence (str and bytes included)
    """
    if not isinstance(records, Sequence) or isinstance(records, (str, bytes, bytearray)):
        raise TypeError(
            f"encode_jsonl expects a sequence of records, got {type(records).__name__}"
        )

    return b"".join(orjson.dumps(_to_jsonable(record)) + b"\n" for record in records)
