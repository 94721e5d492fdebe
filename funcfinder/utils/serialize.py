"""
Helpers for turning analysis results into JSON-ready structures.
"""

import json
from typing import Any, Iterable, Optional

ADDRESS_MASK = 0xFFFFFFFFFFFFFFFF


def hexify(n: int) -> str:
    """Return a 64-bit address as a 0x-prefixed hex string, e.g. 0x401000."""
    return f"0x{n & ADDRESS_MASK:x}"


def parse_address(text: str) -> int:
    """
    Parse a user-supplied address (decimal or 0x-prefixed hex).

    Raises:
        ValueError: If the value is not an unsigned 64-bit integer
    """
    value = int(str(text), 0)
    if value < 0 or value > ADDRESS_MASK:
        raise ValueError(f"address out of 64-bit range: {text}")
    return value


def records_to_dicts(records: Optional[Iterable[Any]]) -> list:
    return [record.to_dict() for record in records or []]


def dump_json(payload: Any, pretty: bool = False) -> str:
    if pretty:
        return json.dumps(payload, indent=2, default=str)
    return json.dumps(payload, default=str)
