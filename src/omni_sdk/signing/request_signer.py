"""
Per-call request signing for the Omni API

This module implements the Sidero request signature scheme: before each call
the signer stamps the metadata with a timestamp, serializes the allow-listed
headers and the method into a JSON payload, signs it with the identity's PGP
signing key and attaches the payload and the signature as metadata.
"""

import base64
import logging
from typing import Optional, Union

from ..credentials import (
    KeyCredential,
    PathLike,
    load_credential,
    load_credential_file,
    load_credential_file_async,
)
from ..crypto.signature_engine import sign_data
from ..crypto.signing_key import parse_signing_key
from .canonical_payload import PayloadCanonicalizer
from .types import (
    Clock,
    Metadata,
    PAYLOAD_HEADER,
    SIGNATURE_HEADER,
    SIGNATURE_VERSION,
    SignatureHeader,
    SigningIdentity,
    TIMESTAMP_HEADER,
)
from .utils import generate_timestamp, remove_header, set_header

logger = logging.getLogger(__name__)


class RequestSigner:
    """
    Signs outgoing RPC metadata on behalf of one identity

    The signer holds no per-call state, so one instance can be shared by
    every call a client makes, from any thread.
    """

    def __init__(
        self,
        identity: SigningIdentity,
        canonicalizer: Optional[PayloadCanonicalizer] = None,
        clock: Optional[Clock] = None
    ):
        """
        Initialize the signer.

        Args:
            identity: Identity and its signing key
            canonicalizer: Payload canonicalizer (defaults to the standard allow-list)
            clock: Clock returning seconds since epoch (defaults to time.time)
        """
        self.signing_identity = identity
        self.canonicalizer = canonicalizer or PayloadCanonicalizer()
        self.clock = clock

        logger.debug(
            "Initialized Omni request signer with identity: %s, key fingerprint: %s",
            identity.identity, identity.fingerprint
        )

    @property
    def identity(self) -> str:
        return self.signing_identity.identity

    @property
    def fingerprint(self) -> str:
        return self.signing_identity.fingerprint

    @classmethod
    def from_armored_key(
        cls,
        identity: str,
        armored_private_key: Union[str, bytes],
        **kwargs
    ) -> 'RequestSigner':
        """
        Create a signer from an identity and its armored PGP private key.

        Raises:
            AuthenticationError: If the key ring cannot be parsed
        """
        key = parse_signing_key(armored_private_key)
        return cls(SigningIdentity(identity=identity, key=key), **kwargs)

    @classmethod
    def from_credential(cls, credential: KeyCredential, **kwargs) -> 'RequestSigner':
        """Create a signer from a decoded credential."""
        return cls.from_armored_key(credential.identity, credential.armored_private_key, **kwargs)

    @classmethod
    def from_credential_string(cls, blob: Union[str, bytes], **kwargs) -> 'RequestSigner':
        """Create a signer from a base64 credential blob (e.g. a service account key)."""
        return cls.from_credential(load_credential(blob), **kwargs)

    @classmethod
    def from_file(cls, path: PathLike, **kwargs) -> 'RequestSigner':
        """Create a signer from a credential file."""
        return cls.from_credential(load_credential_file(path), **kwargs)

    @classmethod
    async def from_file_async(cls, path: PathLike, **kwargs) -> 'RequestSigner':
        """Create a signer from a credential file without blocking the event loop."""
        credential = await load_credential_file_async(path)
        return cls.from_credential(credential, **kwargs)

    def sign(self, metadata: Metadata, method: str, now: Optional[float] = None) -> None:
        """
        Sign a call by adding authentication headers to its metadata.

        The timestamp, payload and signature headers are replaced rather than
        appended, so a metadata mapping can be signed again on retry. No other
        entry is modified.

        Args:
            metadata: Call metadata, header name to list of values (mutated in place)
            method: Full RPC method path, e.g. "/omni.management.ManagementService/ListClusters"
            now: Signing time in seconds since epoch (defaults to the signer's clock)
        """
        timestamp = int(now) if now is not None else generate_timestamp(self.clock)
        set_header(metadata, TIMESTAMP_HEADER, str(timestamp))

        remove_header(metadata, PAYLOAD_HEADER)
        remove_header(metadata, SIGNATURE_HEADER)

        payload = self.canonicalizer.build(metadata, method)
        payload_json = self.canonicalizer.serialize(payload)
        # Header values may carry bearer tokens, so only names are logged
        logger.debug("Signing payload for %s with headers: %s", method, sorted(payload.headers))

        signature = sign_data(payload_json.encode('utf-8'), self.signing_identity.key)
        header = SignatureHeader(
            version=SIGNATURE_VERSION,
            identity=self.identity,
            fingerprint=self.fingerprint,
            signature=base64.b64encode(signature).decode('ascii'),
        )

        metadata[PAYLOAD_HEADER] = [payload_json]
        metadata[SIGNATURE_HEADER] = [str(header)]

        logger.debug("Signed gRPC request for method: %s", method)

    def authentication_info(self) -> str:
        """Identity and key fingerprint, for diagnostics."""
        return f"Identity: {self.identity}, Fingerprint: {self.fingerprint}"

    def __repr__(self) -> str:
        return f"RequestSigner(identity='{self.identity}', fingerprint='{self.fingerprint}')"


def create_signer(identity: str, armored_private_key: Union[str, bytes], **kwargs) -> RequestSigner:
    """
    Create a new request signer.

    Args:
        identity: User or service account identity
        armored_private_key: ASCII-armored PGP private key block
        **kwargs: Passed to RequestSigner

    Returns:
        RequestSigner: Configured signer instance
    """
    return RequestSigner.from_armored_key(identity, armored_private_key, **kwargs)
