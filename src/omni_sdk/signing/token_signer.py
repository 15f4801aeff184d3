"""
Bearer token issuance signed with a PGP signing key

Tokens are compact JWS strings (header.claims.signature, base64url without
padding) carrying the subject and a one hour validity window. The signature
uses the same algorithm rules as request signing, including the fixed-width
r || s form for ES256.
"""

import json
import logging
from typing import Any, Dict, Optional

from ..credentials import PathLike, load_credential_file, load_credential_file_async, KeyCredential
from ..crypto.signature_engine import sign_data
from ..crypto.signing_key import parse_signing_key
from .types import Clock, SigningIdentity, TOKEN_VALIDITY_SECONDS
from .utils import base64url_decode, base64url_encode, generate_timestamp

logger = logging.getLogger(__name__)


def _encode_segment(value: Dict[str, Any]) -> str:
    # Insertion order is kept so the header reads {"typ", "alg"}
    return base64url_encode(json.dumps(value, separators=(',', ':')).encode('utf-8'))


class TokenSigner:
    """
    Issues short-lived bearer tokens for an identity
    """

    def __init__(self, validity_seconds: int = TOKEN_VALIDITY_SECONDS, clock: Optional[Clock] = None):
        """
        Initialize the token signer.

        Args:
            validity_seconds: Token lifetime from issuance
            clock: Clock returning seconds since epoch (defaults to time.time)
        """
        if validity_seconds <= 0:
            raise ValueError("Token validity must be positive")

        self.validity_seconds = validity_seconds
        self.clock = clock

    def issue(
        self,
        identity: SigningIdentity,
        subject: Optional[str] = None,
        now: Optional[float] = None
    ) -> str:
        """
        Issue a signed bearer token.

        Args:
            identity: Identity and signing key
            subject: Token subject (defaults to the identity)
            now: Issuance time in seconds since epoch (defaults to the clock)

        Returns:
            str: Compact token "header.claims.signature"
        """
        issued_at = int(now) if now is not None else generate_timestamp(self.clock)
        algorithm = identity.algorithm.jwt_algorithm

        header = {"typ": "JWT", "alg": algorithm}
        claims = {
            "sub": subject or identity.identity,
            "iat": issued_at,
            "exp": issued_at + self.validity_seconds,
        }

        unsigned_token = f"{_encode_segment(header)}.{_encode_segment(claims)}"
        logger.debug("Unsigned JWT: %s", unsigned_token)

        signature = sign_data(unsigned_token.encode('utf-8'), identity.key)

        logger.info("JWT successfully signed with %s signature", algorithm)
        return f"{unsigned_token}.{base64url_encode(signature)}"

    def issue_for_credential(self, credential: KeyCredential, now: Optional[float] = None) -> str:
        """Parse a credential's key ring and issue a token for its identity."""
        key = parse_signing_key(credential.armored_private_key)
        return self.issue(SigningIdentity(identity=credential.identity, key=key), now=now)


def decode_token_claims(token: str) -> Dict[str, Any]:
    """
    Decode the claims of a compact token without verifying it.

    Args:
        token: Compact token

    Returns:
        dict: Payload claims

    Raises:
        ValueError: If the token is not three base64url segments with JSON claims
    """
    segments = token.split('.')
    if len(segments) != 3 or not all(segments):
        raise ValueError("Token must have three non-empty segments")

    claims = json.loads(base64url_decode(segments[1]).decode('utf-8'))
    if not isinstance(claims, dict):
        raise ValueError("Token claims must be a JSON object")
    return claims


def generate_token_from_file(path: PathLike, now: Optional[float] = None) -> str:
    """
    Load a credential file and issue a bearer token for its identity.

    Raises:
        AuthenticationError: FILE_NOT_FOUND, credential or key ring errors
    """
    logger.info("Generating JWT and signing with PGP private key...")
    return TokenSigner().issue_for_credential(load_credential_file(path), now=now)


async def generate_token_from_file_async(path: PathLike, now: Optional[float] = None) -> str:
    """Async variant of generate_token_from_file; only the file read is awaited."""
    logger.info("Generating JWT and signing with PGP private key...")
    credential = await load_credential_file_async(path)
    return TokenSigner().issue_for_credential(credential, now=now)
