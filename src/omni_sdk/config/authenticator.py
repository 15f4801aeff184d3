"""
Authenticator construction from client options
"""

import logging
from typing import Optional
from urllib.parse import urlparse

import grpc

from ..credentials import load_credential_from_keyring
from ..exceptions import ConfigurationError
from ..signing.integration import BearerTokenClientInterceptor, create_signed_channel
from ..signing.request_signer import RequestSigner
from .client_options import OmniClientOptions

logger = logging.getLogger(__name__)


def create_authenticator(options: OmniClientOptions, **signer_kwargs) -> Optional[RequestSigner]:
    """
    Create a request signer from the configured credential source.

    Sources are tried in order: direct key, service account key, key file,
    keyring. Errors raised while loading a configured source propagate.

    Args:
        options: Client options
        **signer_kwargs: Passed to RequestSigner (e.g. clock)

    Returns:
        RequestSigner or None when no key source is configured and
        unauthenticated calls are allowed

    Raises:
        ConfigurationError: If no key source is configured and
            unauthenticated calls are not allowed
        AuthenticationError: If the configured source cannot be loaded
    """
    if options.pgp_private_key:
        if not options.identity:
            raise ConfigurationError(["identity must be provided together with pgp_private_key"])
        logger.debug("Creating authenticator from direct PGP key for identity: %s", options.identity)
        return RequestSigner.from_armored_key(options.identity, options.pgp_private_key, **signer_kwargs)

    if options.service_account_key:
        logger.debug("Creating authenticator from service account key")
        return RequestSigner.from_credential_string(options.service_account_key, **signer_kwargs)

    if options.pgp_key_file_path:
        logger.debug("Creating authenticator from key file: %s", options.pgp_key_file_path)
        return RequestSigner.from_file(options.pgp_key_file_path, **signer_kwargs)

    if options.keyring_service and options.keyring_username:
        logger.debug("Creating authenticator from keyring service: %s", options.keyring_service)
        credential = load_credential_from_keyring(options.keyring_service, options.keyring_username)
        return RequestSigner.from_credential(credential, **signer_kwargs)

    if options.auth_token:
        logger.debug("Pre-issued auth token configured; no request signer created")
        return None

    if not options.allow_unauthenticated:
        raise ConfigurationError(["No authentication credentials configured"])

    logger.warning("No authentication configured - requests will be unauthenticated")
    return None


def channel_target(endpoint: str, use_tls: bool = True) -> str:
    """
    Convert an endpoint URL to a gRPC target "host:port".

    The port defaults to 443 with TLS and 80 without.
    """
    parsed = urlparse(endpoint)
    if not parsed.hostname:
        raise ConfigurationError([f"endpoint must be an absolute URL: {endpoint}"])

    host = parsed.hostname
    if ':' in host:
        host = f"[{host}]"
    port = parsed.port or (443 if use_tls else 80)
    return f"{host}:{port}"


def create_channel(options: OmniClientOptions, **channel_kwargs) -> grpc.Channel:
    """
    Create an authenticated gRPC channel for the configured endpoint.

    Args:
        options: Client options (validated first)
        **channel_kwargs: Passed to create_signed_channel; default_timeout
            defaults to options.timeout_seconds

    Returns:
        grpc.Channel: Channel that signs each call, or sends the configured
        bearer token when no signing key is configured

    Raises:
        ConfigurationError: If the options are invalid
        AuthenticationError: If the configured credential cannot be loaded
    """
    options.ensure_valid()
    target = channel_target(options.endpoint, options.use_tls)
    signer = create_authenticator(options)

    interceptors = list(channel_kwargs.pop('interceptors', None) or [])
    if signer is None and options.auth_token:
        interceptors.insert(0, BearerTokenClientInterceptor(options.auth_token))

    channel_kwargs.setdefault('default_timeout', options.timeout_seconds)

    logger.info("Connecting to Omni endpoint %s", target)
    return create_signed_channel(
        target,
        signer=signer,
        use_tls=options.use_tls,
        interceptors=interceptors,
        **channel_kwargs
    )
