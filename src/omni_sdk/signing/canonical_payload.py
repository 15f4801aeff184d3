"""
Canonical payload construction for signed Omni requests

The signed payload is a JSON document holding the RPC method and the values
of an allow-listed set of call headers. Its serialized text is both the
value of the payload header and the exact byte sequence that is signed, so
serialization must be reproducible: keys are sorted, separators are compact
and header values keep their call order.
"""

from typing import Iterable, Optional, Tuple

from .types import Metadata, SignablePayload, TIMESTAMP_HEADER
from .utils import compact_json, get_header_values

# Headers covered by the signature; anything else on the call is not signed
SIGNED_HEADER_ALLOW_LIST: Tuple[str, ...] = (
    TIMESTAMP_HEADER,
    "nodes",
    "selectors",
    "fieldSelectors",
    "runtime",
    "context",
    "cluster",
    "namespace",
    "uid",
    "authorization",
)


class PayloadCanonicalizer:
    """
    Builds and serializes the signable payload for a call
    """

    def __init__(self, allowed_headers: Optional[Iterable[str]] = None):
        """
        Initialize the canonicalizer.

        Args:
            allowed_headers: Header names to include (defaults to SIGNED_HEADER_ALLOW_LIST)
        """
        self.allowed_headers = tuple(allowed_headers) if allowed_headers is not None else SIGNED_HEADER_ALLOW_LIST

    def build(self, metadata: Metadata, method: str) -> SignablePayload:
        """
        Build the payload from call metadata.

        Header names match case-insensitively; the payload uses the
        allow-list spelling. Names without values are left out.

        Args:
            metadata: Call metadata, header name to list of values
            method: Full RPC method path

        Returns:
            SignablePayload: Payload for this call
        """
        headers = {}
        for header_name in self.allowed_headers:
            values = get_header_values(metadata, header_name)
            if values:
                headers[header_name] = values

        return SignablePayload(method=method, headers=headers)

    def serialize(self, payload: SignablePayload) -> str:
        """Serialize a payload to its canonical JSON text."""
        return compact_json(payload.to_dict())

    def canonicalize(self, metadata: Metadata, method: str) -> str:
        """Build and serialize the payload in one step."""
        return self.serialize(self.build(metadata, method))
