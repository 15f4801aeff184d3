"""
Type definitions for request signing functionality

This module provides the data classes and constants shared by the request
signer and the bearer token signer.
"""

from dataclasses import dataclass, field
from typing import Callable, Dict, List, MutableMapping

from ..crypto.signing_key import KeyAlgorithm, SigningKey
from ..exceptions import AuthenticationError, AuthErrorKind

SIGNATURE_VERSION = "siderov1"

TIMESTAMP_HEADER = "x-sidero-timestamp"
PAYLOAD_HEADER = "x-sidero-payload"
SIGNATURE_HEADER = "x-sidero-signature"

# Bearer assertions are valid for one hour from issuance
TOKEN_VALIDITY_SECONDS = 3600


@dataclass(frozen=True)
class SigningIdentity:
    """
    Identity bound to the signing key that authenticates it

    Attributes:
        identity: User or service account identity
        key: Signing key extracted from the identity's key ring
    """
    identity: str
    key: SigningKey

    def __post_init__(self):
        """Validate identity after initialization"""
        if not self.identity:
            raise AuthenticationError(
                AuthErrorKind.MALFORMED_CREDENTIAL,
                "Identity cannot be empty",
                {"field": "name"}
            )

        # The identity is a field of the space-separated signature header
        if any(c.isspace() for c in self.identity):
            raise AuthenticationError(
                AuthErrorKind.MALFORMED_CREDENTIAL,
                "Identity cannot contain whitespace",
                {"field": "name"}
            )

    @property
    def fingerprint(self) -> str:
        return self.key.fingerprint

    @property
    def algorithm(self) -> KeyAlgorithm:
        return self.key.algorithm


@dataclass
class SignablePayload:
    """
    The structure whose JSON serialization is signed for each call

    Attributes:
        method: Full RPC method path, e.g. "/omni.management.ManagementService/ListClusters"
        headers: Allow-listed header names mapped to their values in call order
    """
    method: str
    headers: Dict[str, List[str]] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, object]:
        return {"headers": self.headers, "method": self.method}


@dataclass(frozen=True)
class SignatureHeader:
    """
    Parsed value of the x-sidero-signature header

    Attributes:
        version: Signature scheme version tag
        identity: Signer identity
        fingerprint: Signing key fingerprint (lowercase hex)
        signature: Base64 signature over the payload header value
    """
    version: str
    identity: str
    fingerprint: str
    signature: str

    def __str__(self) -> str:
        return f"{self.version} {self.identity} {self.fingerprint} {self.signature}"

    @classmethod
    def parse(cls, value: str) -> 'SignatureHeader':
        """
        Parse an x-sidero-signature header value.

        Raises:
            ValueError: If the value does not have exactly four fields
        """
        parts = value.split(' ')
        if len(parts) != 4 or not all(parts):
            raise ValueError(f"Signature header must have 4 space-separated fields, got {len(parts)}")
        return cls(*parts)


# Type aliases for convenience
Metadata = MutableMapping[str, List[str]]
Clock = Callable[[], float]
