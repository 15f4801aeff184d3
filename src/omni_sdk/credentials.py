"""
Credential loading for Omni Python SDK

An Omni credential (for example a service account key) is a base64-encoded
JSON document ``{"name": ..., "pgp_key": ...}`` holding the identity and its
armored PGP private key. This module decodes it from a string, a file or the
OS keychain. No cryptography happens here.
"""

import asyncio
import base64
import binascii
import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Union

import keyring
from keyring.errors import KeyringError

from .exceptions import AuthenticationError, AuthErrorKind

logger = logging.getLogger(__name__)

NAME_FIELD = "name"
PGP_KEY_FIELD = "pgp_key"

PathLike = Union[str, Path]


@dataclass(frozen=True)
class KeyCredential:
    """
    Identity plus armored private key, as decoded from a credential blob

    Attributes:
        identity: User or service account identity
        armored_private_key: ASCII-armored PGP private key block
    """
    identity: str
    armored_private_key: str = field(repr=False)


def _require_string(document: dict, name: str) -> str:
    value = document.get(name)
    if value is None:
        raise AuthenticationError(
            AuthErrorKind.MISSING_FIELD,
            f"Missing '{name}' property in JSON content",
            {"field": name}
        )
    if not isinstance(value, str):
        raise AuthenticationError(
            AuthErrorKind.MISSING_FIELD,
            f"Property '{name}' must be a string",
            {"field": name, "type": type(value).__name__}
        )
    return value


def load_credential(source: Union[str, bytes]) -> KeyCredential:
    """
    Decode a credential blob.

    Args:
        source: Base64 text of the credential JSON document

    Returns:
        KeyCredential: Decoded identity and armored key

    Raises:
        AuthenticationError: INVALID_ENCODING, MALFORMED_CREDENTIAL or MISSING_FIELD
    """
    if isinstance(source, str):
        try:
            source = source.encode('ascii')
        except UnicodeEncodeError as e:
            raise AuthenticationError(
                AuthErrorKind.INVALID_ENCODING,
                "Invalid Base64 content: non-ASCII characters"
            ) from e

    try:
        decoded = base64.b64decode(b''.join(source.split()), validate=True)
    except (binascii.Error, ValueError) as e:
        raise AuthenticationError(
            AuthErrorKind.INVALID_ENCODING,
            f"Invalid Base64 content: {e}"
        ) from e

    try:
        document = json.loads(decoded.decode('utf-8'))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise AuthenticationError(
            AuthErrorKind.MALFORMED_CREDENTIAL,
            f"Credential is not valid JSON: {e}"
        ) from e

    if not isinstance(document, dict):
        raise AuthenticationError(
            AuthErrorKind.MALFORMED_CREDENTIAL,
            "Credential JSON must be an object",
            {"type": type(document).__name__}
        )

    identity = _require_string(document, NAME_FIELD)
    armored_private_key = _require_string(document, PGP_KEY_FIELD)

    logger.debug("Loaded credential for identity: %s", identity)
    return KeyCredential(identity=identity, armored_private_key=armored_private_key)


def encode_credential(credential: KeyCredential) -> str:
    """
    Encode a credential into its base64 blob form.

    Args:
        credential: Credential to encode

    Returns:
        str: Base64 text accepted by load_credential
    """
    document = {NAME_FIELD: credential.identity, PGP_KEY_FIELD: credential.armored_private_key}
    return base64.b64encode(json.dumps(document).encode('utf-8')).decode('ascii')


def _read_credential_file(path: PathLike) -> str:
    path = Path(path)
    try:
        with open(path, 'r', encoding='utf-8') as f:
            return f.read()
    except FileNotFoundError as e:
        raise AuthenticationError(
            AuthErrorKind.FILE_NOT_FOUND,
            f"PGP key file not found: {path}",
            {"path": str(path)}
        ) from e


def load_credential_file(path: PathLike) -> KeyCredential:
    """
    Load a credential from a file whose whole content is the base64 blob.

    Args:
        path: Credential file path

    Returns:
        KeyCredential: Decoded credential

    Raises:
        AuthenticationError: FILE_NOT_FOUND, or any load_credential error
    """
    return load_credential(_read_credential_file(path))


async def load_credential_file_async(path: PathLike) -> KeyCredential:
    """
    Load a credential file without blocking the event loop.

    Cancelling the awaiting task abandons the read; decoding is not
    interruptible once the content is available.

    Args:
        path: Credential file path

    Returns:
        KeyCredential: Decoded credential
    """
    loop = asyncio.get_running_loop()
    contents = await loop.run_in_executor(None, _read_credential_file, path)
    return load_credential(contents)


def load_credential_from_keyring(service_name: str, username: str) -> KeyCredential:
    """
    Load a credential blob stored in the OS keychain.

    Args:
        service_name: Keychain service name
        username: Keychain account name

    Returns:
        KeyCredential: Decoded credential

    Raises:
        AuthenticationError: CREDENTIAL_NOT_FOUND, KEYRING_UNAVAILABLE, or
            any load_credential error
    """
    try:
        blob = keyring.get_password(service_name, username)
    except KeyringError as e:
        raise AuthenticationError(
            AuthErrorKind.KEYRING_UNAVAILABLE,
            f"Failed to read credential from keyring: {e}",
            {"service": service_name, "username": username}
        ) from e

    if blob is None:
        raise AuthenticationError(
            AuthErrorKind.CREDENTIAL_NOT_FOUND,
            f"No credential stored in keyring for {service_name}/{username}",
            {"service": service_name, "username": username}
        )

    return load_credential(blob)


def store_credential_in_keyring(service_name: str, username: str, blob: str) -> KeyCredential:
    """
    Validate a credential blob and store it in the OS keychain.

    Args:
        service_name: Keychain service name
        username: Keychain account name
        blob: Base64 credential blob

    Returns:
        KeyCredential: The decoded credential that was stored

    Raises:
        AuthenticationError: KEYRING_UNAVAILABLE, or any load_credential error
    """
    credential = load_credential(blob)
    try:
        keyring.set_password(service_name, username, blob.strip())
    except KeyringError as e:
        raise AuthenticationError(
            AuthErrorKind.KEYRING_UNAVAILABLE,
            f"Failed to store credential in keyring: {e}",
            {"service": service_name, "username": username}
        ) from e

    logger.info("Stored credential for %s in keyring %s/%s", credential.identity, service_name, username)
    return credential
