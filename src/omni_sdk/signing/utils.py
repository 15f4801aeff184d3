"""
Utility functions for request signing

This module provides timestamp generation, base64url handling and the
case-insensitive metadata helpers used by the signers.
"""

import base64
import binascii
import json
import time
from typing import Any, List, Optional

from .types import Clock, Metadata


def generate_timestamp(clock: Optional[Clock] = None) -> int:
    """
    Generate current Unix timestamp.

    Args:
        clock: Optional clock returning seconds since epoch (defaults to time.time)

    Returns:
        int: Current Unix timestamp (seconds since epoch)
    """
    return int((clock or time.time)())


def base64url_encode(data: bytes) -> str:
    """Base64url encode without padding (RFC 7515)."""
    return base64.urlsafe_b64encode(data).rstrip(b'=').decode('ascii')


def base64url_decode(value: str) -> bytes:
    """
    Decode unpadded base64url text.

    Raises:
        ValueError: If the text is not valid base64url
    """
    padded = value + '=' * (-len(value) % 4)
    try:
        return base64.b64decode(padded, altchars=b'-_', validate=True)
    except binascii.Error as e:
        raise ValueError(f"Invalid base64url segment: {e}") from e


def compact_json(value: Any) -> str:
    """Serialize with sorted keys and no insignificant whitespace."""
    return json.dumps(value, sort_keys=True, separators=(',', ':'), ensure_ascii=False)


def normalize_header_name(name: str) -> str:
    """
    Normalize header name to lowercase for consistent processing.

    Args:
        name: Header name to normalize

    Returns:
        str: Lowercase header name
    """
    return name.lower().strip()


def get_header_values(metadata: Metadata, name: str) -> List[str]:
    """
    Collect the values of a header across all case variants of its name.

    Values keep their order within each entry; entries are visited in
    mapping order.
    """
    wanted = normalize_header_name(name)
    values: List[str] = []
    for key, entry in metadata.items():
        if normalize_header_name(key) != wanted:
            continue
        if isinstance(entry, str):
            values.append(entry)
        else:
            values.extend(entry)
    return values


def remove_header(metadata: Metadata, name: str) -> None:
    """Remove every case variant of a header."""
    wanted = normalize_header_name(name)
    for key in [k for k in metadata if normalize_header_name(k) == wanted]:
        del metadata[key]


def set_header(metadata: Metadata, name: str, value: str) -> None:
    """Replace every case variant of a header with a single value."""
    remove_header(metadata, name)
    metadata[name] = [value]
