"""
Transport integration for request signing

This module attaches Omni authentication to outgoing calls: a gRPC client
interceptor that signs every call's metadata, and a requests auth handler
that sends a cached bearer token.
"""

import collections
import logging
import threading
from typing import Iterable, List, Optional, Sequence, Tuple, Union

import grpc
import requests
from requests.auth import AuthBase

from .request_signer import RequestSigner
from .token_signer import TokenSigner
from .types import Clock, Metadata, SigningIdentity
from .utils import generate_timestamp, set_header

logger = logging.getLogger(__name__)

MetadataTuples = Sequence[Tuple[str, Union[str, bytes]]]

# Tokens are reissued this many seconds before they expire
DEFAULT_REFRESH_MARGIN = 60


def metadata_to_dict(metadata: Optional[MetadataTuples]) -> Metadata:
    """
    Convert gRPC metadata tuples to a header name -> values mapping.

    Repeated names collect their values in call order.
    """
    result: Metadata = {}
    for key, value in metadata or ():
        result.setdefault(key, []).append(value)
    return result


def dict_to_metadata(metadata: Metadata) -> List[Tuple[str, Union[str, bytes]]]:
    """
    Convert a header name -> values mapping back to gRPC metadata tuples.

    gRPC only accepts lowercase metadata keys, so names are lowercased.
    """
    return [(key.lower(), value) for key, values in metadata.items() for value in values]


class _ClientCallDetails(
    collections.namedtuple(
        '_ClientCallDetails',
        ('method', 'timeout', 'metadata', 'credentials', 'wait_for_ready', 'compression')
    ),
    grpc.ClientCallDetails
):
    pass


class _MetadataClientInterceptor(
    grpc.UnaryUnaryClientInterceptor,
    grpc.UnaryStreamClientInterceptor,
    grpc.StreamUnaryClientInterceptor,
    grpc.StreamStreamClientInterceptor
):
    """Base interceptor that rewrites the metadata of every call shape."""

    # Deadline applied to calls made without one
    default_timeout: Optional[float] = None

    def _update_metadata(self, metadata: Metadata, method: str) -> None:
        raise NotImplementedError

    def _details(self, client_call_details):
        method = client_call_details.method
        if isinstance(method, bytes):
            method = method.decode('utf-8')

        metadata = metadata_to_dict(client_call_details.metadata)
        self._update_metadata(metadata, method)

        timeout = client_call_details.timeout
        if timeout is None:
            timeout = self.default_timeout

        return _ClientCallDetails(
            client_call_details.method,
            timeout,
            dict_to_metadata(metadata),
            client_call_details.credentials,
            getattr(client_call_details, 'wait_for_ready', None),
            getattr(client_call_details, 'compression', None),
        )

    def intercept_unary_unary(self, continuation, client_call_details, request):
        return continuation(self._details(client_call_details), request)

    def intercept_unary_stream(self, continuation, client_call_details, request):
        return continuation(self._details(client_call_details), request)

    def intercept_stream_unary(self, continuation, client_call_details, request_iterator):
        return continuation(self._details(client_call_details), request_iterator)

    def intercept_stream_stream(self, continuation, client_call_details, request_iterator):
        return continuation(self._details(client_call_details), request_iterator)


class SigningClientInterceptor(_MetadataClientInterceptor):
    """
    gRPC client interceptor that signs every outgoing call

    Authentication failures raised by the signer propagate to the caller
    before the call is started.
    """

    def __init__(self, signer: RequestSigner):
        self.signer = signer

    def _update_metadata(self, metadata: Metadata, method: str) -> None:
        self.signer.sign(metadata, method)


class BearerTokenClientInterceptor(_MetadataClientInterceptor):
    """gRPC client interceptor that sends a fixed bearer token."""

    def __init__(self, token: str):
        if not token:
            raise ValueError("Bearer token cannot be empty")
        self._authorization = f"Bearer {token}"

    def _update_metadata(self, metadata: Metadata, method: str) -> None:
        set_header(metadata, 'authorization', self._authorization)


class DefaultTimeoutClientInterceptor(_MetadataClientInterceptor):
    """gRPC client interceptor that sets a deadline on calls made without one."""

    def __init__(self, timeout_seconds: float):
        if timeout_seconds <= 0:
            raise ValueError("Timeout must be positive")
        self.default_timeout = timeout_seconds

    def _update_metadata(self, metadata: Metadata, method: str) -> None:
        pass


def create_signed_channel(
    target: str,
    signer: Optional[RequestSigner] = None,
    use_tls: bool = True,
    root_certificates: Optional[bytes] = None,
    options: Optional[Iterable[Tuple[str, object]]] = None,
    interceptors: Optional[Sequence[grpc.UnaryUnaryClientInterceptor]] = None,
    default_timeout: Optional[float] = None
) -> grpc.Channel:
    """
    Create a gRPC channel whose calls are signed by the given signer.

    Args:
        target: Channel target, "host:port"
        signer: Request signer (no signing when None)
        use_tls: Use a secure channel
        root_certificates: PEM root certificates for TLS (system roots when None)
        options: gRPC channel options
        interceptors: Additional interceptors applied after signing
        default_timeout: Deadline in seconds for calls made without one

    Returns:
        grpc.Channel: Channel, intercepted when a signer is given
    """
    channel_options = list(options or [])
    if use_tls:
        credentials = grpc.ssl_channel_credentials(root_certificates=root_certificates)
        channel = grpc.secure_channel(target, credentials, options=channel_options)
    else:
        channel = grpc.insecure_channel(target, options=channel_options)

    chain = []
    if signer is not None:
        chain.append(SigningClientInterceptor(signer))
    chain.extend(interceptors or [])
    if default_timeout is not None:
        chain.append(DefaultTimeoutClientInterceptor(default_timeout))

    if not chain:
        return channel

    logger.debug("Created %s channel to %s with %d interceptor(s)",
                 "secure" if use_tls else "insecure", target, len(chain))
    return grpc.intercept_channel(channel, *chain)


class BearerTokenAuth(AuthBase):
    """
    requests auth handler sending a bearer token signed by an identity's key

    Tokens are cached and reissued shortly before they expire. One instance
    may be shared between threads.
    """

    def __init__(
        self,
        identity: SigningIdentity,
        token_signer: Optional[TokenSigner] = None,
        refresh_margin: int = DEFAULT_REFRESH_MARGIN,
        clock: Optional[Clock] = None
    ):
        self.identity = identity
        self.token_signer = token_signer or TokenSigner(clock=clock)
        if refresh_margin < 0 or refresh_margin >= self.token_signer.validity_seconds:
            raise ValueError("Refresh margin must be non-negative and shorter than token validity")

        self.refresh_margin = refresh_margin
        self.clock = clock
        self._token: Optional[str] = None
        self._expires_at = 0
        self._lock = threading.Lock()

    def token(self) -> str:
        """Return the cached token, issuing a new one when it is close to expiry."""
        with self._lock:
            now = generate_timestamp(self.clock)
            if self._token is None or now >= self._expires_at - self.refresh_margin:
                self._token = self.token_signer.issue(self.identity, now=now)
                self._expires_at = now + self.token_signer.validity_seconds
                logger.debug("Issued bearer token for %s, expires at %d", self.identity.identity, self._expires_at)
            return self._token

    def __call__(self, r):
        r.headers['Authorization'] = f"Bearer {self.token()}"
        return r


def create_signing_session(
    signer_or_identity: Union[RequestSigner, SigningIdentity],
    **auth_kwargs
) -> requests.Session:
    """
    Create a requests session that authenticates with bearer tokens.

    Args:
        signer_or_identity: Request signer or signing identity
        **auth_kwargs: Passed to BearerTokenAuth

    Returns:
        requests.Session: Session with BearerTokenAuth installed
    """
    if isinstance(signer_or_identity, RequestSigner):
        identity = signer_or_identity.signing_identity
    else:
        identity = signer_or_identity

    session = requests.Session()
    session.auth = BearerTokenAuth(identity, **auth_kwargs)
    return session
