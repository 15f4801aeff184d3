"""
Signature generation for RSA, ECDSA and Ed25519 signing keys

Dispatch happens on the algorithm tag chosen when the key ring was parsed.
ECDSA signatures use the fixed-width r || s form (64 bytes for P-256), not
DER, which is what the verifier expects.
"""

from typing import Callable, Dict, Union

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec, padding, utils

from .signing_key import EC_P256_COMPONENT_LENGTH, KeyAlgorithm, SigningKey

ED25519_SIGNATURE_LENGTH = 64
ECDSA_P256_SIGNATURE_LENGTH = EC_P256_COMPONENT_LENGTH * 2


def _sign_rsa(key: SigningKey, data: bytes) -> bytes:
    return key.private_key.sign(data, padding.PKCS1v15(), hashes.SHA256())


def _sign_ecdsa(key: SigningKey, data: bytes) -> bytes:
    der_signature = key.private_key.sign(data, ec.ECDSA(hashes.SHA256()))
    r, s = utils.decode_dss_signature(der_signature)
    return (
        r.to_bytes(EC_P256_COMPONENT_LENGTH, 'big')
        + s.to_bytes(EC_P256_COMPONENT_LENGTH, 'big')
    )


def _sign_eddsa(key: SigningKey, data: bytes) -> bytes:
    return key.private_key.sign(data)


_SIGNERS: Dict[KeyAlgorithm, Callable[[SigningKey, bytes], bytes]] = {
    KeyAlgorithm.RSA: _sign_rsa,
    KeyAlgorithm.ECDSA: _sign_ecdsa,
    KeyAlgorithm.EDDSA: _sign_eddsa,
}


def sign_data(data: Union[str, bytes], key: SigningKey) -> bytes:
    """
    Sign data with a signing key.

    Args:
        data: Data to sign; strings are UTF-8 encoded
        key: Signing key from parse_signing_key

    Returns:
        bytes: Raw signature (PKCS#1 v1.5 for RSA, r || s for ECDSA,
            64-byte Ed25519 signature for EdDSA)
    """
    if isinstance(data, str):
        data = data.encode('utf-8')

    try:
        signer = _SIGNERS[key.algorithm]
    except KeyError:
        # parse_signing_key only produces the three known tags
        raise AssertionError(f"No signer for key algorithm {key.algorithm!r}") from None

    return signer(key, data)
