"""
Omni Python SDK - Request Signing Module

Sidero request signatures (x-sidero-* metadata) and signed bearer tokens
for authenticating with the Omni API.
"""

from .types import (
    SigningIdentity,
    SignablePayload,
    SignatureHeader,
    SIGNATURE_VERSION,
    TIMESTAMP_HEADER,
    PAYLOAD_HEADER,
    SIGNATURE_HEADER,
    TOKEN_VALIDITY_SECONDS,
)

from .canonical_payload import (
    PayloadCanonicalizer,
    SIGNED_HEADER_ALLOW_LIST,
)

from .request_signer import (
    RequestSigner,
    create_signer,
)

from .token_signer import (
    TokenSigner,
    decode_token_claims,
    generate_token_from_file,
    generate_token_from_file_async,
)

from .utils import (
    generate_timestamp,
    base64url_encode,
    base64url_decode,
    normalize_header_name,
    get_header_values,
)

from .integration import (
    SigningClientInterceptor,
    BearerTokenClientInterceptor,
    DefaultTimeoutClientInterceptor,
    BearerTokenAuth,
    create_signed_channel,
    create_signing_session,
    metadata_to_dict,
    dict_to_metadata,
)

__all__ = [
    # Types
    'SigningIdentity',
    'SignablePayload',
    'SignatureHeader',
    'SIGNATURE_VERSION',
    'TIMESTAMP_HEADER',
    'PAYLOAD_HEADER',
    'SIGNATURE_HEADER',
    'TOKEN_VALIDITY_SECONDS',
    # Payload
    'PayloadCanonicalizer',
    'SIGNED_HEADER_ALLOW_LIST',
    # Signers
    'RequestSigner',
    'create_signer',
    'TokenSigner',
    'decode_token_claims',
    'generate_token_from_file',
    'generate_token_from_file_async',
    # Utilities
    'generate_timestamp',
    'base64url_encode',
    'base64url_decode',
    'normalize_header_name',
    'get_header_values',
    # Transport integration
    'SigningClientInterceptor',
    'BearerTokenClientInterceptor',
    'DefaultTimeoutClientInterceptor',
    'BearerTokenAuth',
    'create_signed_channel',
    'create_signing_session',
    'metadata_to_dict',
    'dict_to_metadata',
]
