"""
Signing key extraction from OpenPGP secret key rings

This module turns an armored OpenPGP private key block into a signing key
usable with the cryptography package: it selects the first signing-capable
key in the ring, derives its fingerprint and builds the private key object.
The algorithm is decided once here and carried on the result, so the
signature engine never has to inspect key object types.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Union

from cryptography.hazmat.primitives.asymmetric import ec, rsa
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey

from ..exceptions import AuthenticationError, AuthErrorKind
from .armor import dearmor
from .packets import (
    PublicKeyAlgorithm,
    SecretKeyPacket,
    read_secret_key_packets,
    read_secret_mpis,
    read_secret_octets,
)

logger = logging.getLogger(__name__)

EC_P256_COMPONENT_LENGTH = 32
ED25519_SEED_LENGTH = 32

PrivateKey = Union[rsa.RSAPrivateKey, ec.EllipticCurvePrivateKey, Ed25519PrivateKey]


class KeyAlgorithm(str, Enum):
    """Signing algorithms supported for request and token signing"""
    RSA = "rsa"
    ECDSA = "ecdsa"
    EDDSA = "eddsa"

    @property
    def jwt_algorithm(self) -> str:
        """The JWS "alg" header value for this algorithm"""
        return _JWT_ALGORITHMS[self]


_JWT_ALGORITHMS = {
    KeyAlgorithm.RSA: "RS256",
    KeyAlgorithm.ECDSA: "ES256",
    KeyAlgorithm.EDDSA: "EdDSA",
}


@dataclass(frozen=True)
class SigningKey:
    """
    A private signing key extracted from a key ring

    Attributes:
        fingerprint: Lowercase hex OpenPGP fingerprint of the public key
        algorithm: Signing algorithm tag
        private_key: cryptography private key object (never mutated)
        key_id: Lowercase hex 64-bit key ID
        created_at: Key creation time (seconds since epoch)
    """
    fingerprint: str
    algorithm: KeyAlgorithm
    private_key: PrivateKey = field(repr=False)
    key_id: str = ""
    created_at: int = 0


def _unsupported(key_packet: SecretKeyPacket) -> AuthenticationError:
    return AuthenticationError(
        AuthErrorKind.UNSUPPORTED_KEY_ALGORITHM,
        f"Unsupported PGP key type: {key_packet.algorithm_name}. Supported types: RSA, ECDSA (P-256), Ed25519",
        {"algorithm": key_packet.algorithm_name}
    )


def _build_rsa_key(key_packet: SecretKeyPacket) -> rsa.RSAPrivateKey:
    n = key_packet.public_params['n']
    e = key_packet.public_params['e']
    # OpenPGP stores u = p^-1 mod q; cryptography wants q^-1 mod p, so it is recomputed
    d, p, q, _u = read_secret_mpis(key_packet, 4)

    try:
        numbers = rsa.RSAPrivateNumbers(
            p=p,
            q=q,
            d=d,
            dmp1=rsa.rsa_crt_dmp1(d, p),
            dmq1=rsa.rsa_crt_dmq1(d, q),
            iqmp=rsa.rsa_crt_iqmp(p, q),
            public_numbers=rsa.RSAPublicNumbers(e, n),
        )
        return numbers.private_key()
    except ValueError as e:
        raise AuthenticationError(
            AuthErrorKind.KEY_EXTRACTION_FAILED,
            f"Invalid RSA key parameters: {e}"
        ) from e


def _build_ecdsa_key(key_packet: SecretKeyPacket) -> ec.EllipticCurvePrivateKey:
    (d,) = read_secret_mpis(key_packet, 1)
    try:
        private_key = ec.derive_private_key(d, ec.SECP256R1())
    except ValueError as e:
        raise AuthenticationError(
            AuthErrorKind.KEY_EXTRACTION_FAILED,
            f"Invalid ECDSA private scalar: {e}"
        ) from e

    try:
        expected = ec.EllipticCurvePublicKey.from_encoded_point(
            ec.SECP256R1(), key_packet.public_params['point']
        )
    except ValueError as e:
        raise AuthenticationError(
            AuthErrorKind.INVALID_KEY_FORMAT,
            f"Invalid ECDSA public point: {e}"
        ) from e

    if expected.public_numbers() != private_key.public_key().public_numbers():
        raise AuthenticationError(
            AuthErrorKind.KEY_EXTRACTION_FAILED,
            "ECDSA private key does not match its public point"
        )
    return private_key


def _build_ed25519_key(key_packet: SecretKeyPacket) -> Ed25519PrivateKey:
    if key_packet.algorithm == PublicKeyAlgorithm.ED25519:
        seed = read_secret_octets(key_packet, ED25519_SEED_LENGTH)
    else:
        (scalar,) = read_secret_mpis(key_packet, 1)
        if scalar.bit_length() > ED25519_SEED_LENGTH * 8:
            raise AuthenticationError(
                AuthErrorKind.KEY_EXTRACTION_FAILED,
                "EdDSA secret is longer than 32 bytes"
            )
        # Leading zero octets are dropped by the MPI encoding
        seed = scalar.to_bytes(ED25519_SEED_LENGTH, 'big')

    return Ed25519PrivateKey.from_private_bytes(seed)


_KEY_BUILDERS = {
    PublicKeyAlgorithm.RSA_GENERAL: (KeyAlgorithm.RSA, _build_rsa_key),
    PublicKeyAlgorithm.RSA_SIGN: (KeyAlgorithm.RSA, _build_rsa_key),
    PublicKeyAlgorithm.ECDSA: (KeyAlgorithm.ECDSA, _build_ecdsa_key),
    PublicKeyAlgorithm.EDDSA_LEGACY: (KeyAlgorithm.EDDSA, _build_ed25519_key),
    PublicKeyAlgorithm.ED25519: (KeyAlgorithm.EDDSA, _build_ed25519_key),
}

_REQUIRED_CURVES = {
    PublicKeyAlgorithm.ECDSA: 'nistp256',
    PublicKeyAlgorithm.EDDSA_LEGACY: 'ed25519',
}


def select_signing_packet(key_packets) -> SecretKeyPacket:
    """
    Select the first signing-capable key in ring order.

    Raises:
        AuthenticationError: NO_SIGNING_KEY if no key qualifies
    """
    for key_packet in key_packets:
        if key_packet.is_signing_key:
            return key_packet

    raise AuthenticationError(
        AuthErrorKind.NO_SIGNING_KEY,
        "No suitable signing key found in PGP key ring",
        {"algorithms": [key_packet.algorithm_name for key_packet in key_packets]}
    )


def parse_signing_key(armored_private_key: Union[str, bytes]) -> SigningKey:
    """
    Parse an OpenPGP private key ring and extract its signing key.

    Args:
        armored_private_key: ASCII-armored (or binary) secret key ring

    Returns:
        SigningKey: The first signing-capable key with its fingerprint

    Raises:
        AuthenticationError: INVALID_KEY_FORMAT, NO_SIGNING_KEY,
            KEY_EXTRACTION_FAILED or UNSUPPORTED_KEY_ALGORITHM
    """
    if not armored_private_key:
        raise AuthenticationError(
            AuthErrorKind.INVALID_KEY_FORMAT,
            "PGP private key cannot be empty"
        )

    key_packets = read_secret_key_packets(dearmor(armored_private_key))
    if not key_packets:
        raise AuthenticationError(
            AuthErrorKind.INVALID_KEY_FORMAT,
            "No secret key packets found in PGP key ring"
        )

    key_packet = select_signing_packet(key_packets)

    try:
        algorithm, build = _KEY_BUILDERS[key_packet.algorithm]
    except KeyError:
        raise _unsupported(key_packet) from None

    required_curve = _REQUIRED_CURVES.get(key_packet.algorithm)
    if required_curve is not None and key_packet.curve != required_curve:
        raise _unsupported(key_packet)

    # Only unprotected keys can be extracted (no passphrase support)
    if key_packet.is_protected:
        raise AuthenticationError(
            AuthErrorKind.KEY_EXTRACTION_FAILED,
            "Failed to extract private key: passphrase-protected keys are not supported",
            {"s2k_usage": key_packet.s2k_usage}
        )

    private_key = build(key_packet)
    fingerprint = key_packet.fingerprint().hex().lower()

    logger.debug(
        "Selected %s signing key %s (subkey=%s)",
        algorithm.value, fingerprint, key_packet.is_subkey
    )

    return SigningKey(
        fingerprint=fingerprint,
        algorithm=algorithm,
        private_key=private_key,
        key_id=key_packet.key_id().hex(),
        created_at=key_packet.created_at,
    )
