"""
Omni Python SDK
PGP request signing and bearer tokens for the Omni API
"""

from .version import __version__
from .exceptions import (
    OmniSDKError,
    AuthErrorKind,
    AuthenticationError,
    ConfigurationError,
)
from .credentials import (
    KeyCredential,
    load_credential,
    load_credential_file,
    load_credential_file_async,
    encode_credential,
    load_credential_from_keyring,
    store_credential_in_keyring,
)
from .crypto import (
    KeyAlgorithm,
    SigningKey,
    parse_signing_key,
    sign_data,
)
from .signing import (
    # Core signing functionality
    RequestSigner,
    create_signer,
    TokenSigner,
    decode_token_claims,
    generate_token_from_file,
    generate_token_from_file_async,
    # Types
    SigningIdentity,
    SignablePayload,
    SignatureHeader,
    PayloadCanonicalizer,
    SIGNED_HEADER_ALLOW_LIST,
    # Transport integration
    SigningClientInterceptor,
    BearerTokenAuth,
    create_signed_channel,
    create_signing_session,
)
from .config import (
    OmniClientOptions,
    create_authenticator,
    create_channel,
)

# Public API exports
__all__ = [
    '__version__',
    # Exceptions
    'OmniSDKError',
    'AuthErrorKind',
    'AuthenticationError',
    'ConfigurationError',
    # Credentials
    'KeyCredential',
    'load_credential',
    'load_credential_file',
    'load_credential_file_async',
    'encode_credential',
    'load_credential_from_keyring',
    'store_credential_in_keyring',
    # Keys
    'KeyAlgorithm',
    'SigningKey',
    'parse_signing_key',
    'sign_data',
    # Signing
    'RequestSigner',
    'create_signer',
    'TokenSigner',
    'decode_token_claims',
    'generate_token_from_file',
    'generate_token_from_file_async',
    'SigningIdentity',
    'SignablePayload',
    'SignatureHeader',
    'PayloadCanonicalizer',
    'SIGNED_HEADER_ALLOW_LIST',
    'SigningClientInterceptor',
    'BearerTokenAuth',
    'create_signed_channel',
    'create_signing_session',
    # Configuration
    'OmniClientOptions',
    'create_authenticator',
    'create_channel',
]
