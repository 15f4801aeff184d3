"""
Shared fixtures for the Omni SDK test suite
"""

import pytest
from cryptography.hazmat.primitives.asymmetric import ec, rsa
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey

from omni_sdk.credentials import KeyCredential, encode_credential
from omni_sdk.crypto.signing_key import parse_signing_key
from omni_sdk.signing.types import SigningIdentity

import pgp_keys


@pytest.fixture(scope="session")
def rsa_private_key():
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def p256_private_key():
    return ec.generate_private_key(ec.SECP256R1())


@pytest.fixture(scope="session")
def ed25519_private_key():
    return Ed25519PrivateKey.generate()


@pytest.fixture(scope="session")
def rsa_material(rsa_private_key):
    return pgp_keys.rsa_material(rsa_private_key)


@pytest.fixture(scope="session")
def ecdsa_material(p256_private_key):
    return pgp_keys.ecdsa_material(p256_private_key)


@pytest.fixture(scope="session")
def eddsa_material(ed25519_private_key):
    return pgp_keys.eddsa_legacy_material(ed25519_private_key)


@pytest.fixture(scope="session")
def rsa_armored(rsa_material):
    return pgp_keys.armored_key(rsa_material)


@pytest.fixture(scope="session")
def ecdsa_armored(ecdsa_material):
    return pgp_keys.armored_key(ecdsa_material)


@pytest.fixture(scope="session")
def eddsa_armored(eddsa_material):
    return pgp_keys.armored_key(eddsa_material)


@pytest.fixture(params=["rsa", "ecdsa", "eddsa"])
def key_case(request, rsa_armored, ecdsa_armored, eddsa_armored,
             rsa_private_key, p256_private_key, ed25519_private_key):
    """(algorithm name, armored ring, cryptography private key) for each supported algorithm"""
    cases = {
        "rsa": (rsa_armored, rsa_private_key),
        "ecdsa": (ecdsa_armored, p256_private_key),
        "eddsa": (eddsa_armored, ed25519_private_key),
    }
    armored, private_key = cases[request.param]
    return request.param, armored, private_key


@pytest.fixture
def eddsa_identity(eddsa_armored):
    return SigningIdentity(identity="alice", key=parse_signing_key(eddsa_armored))


@pytest.fixture
def david_key_file(tmp_path, rsa_armored):
    """Credential file for identity 'david' holding an RSA key"""
    path = tmp_path / "david.key"
    path.write_text(encode_credential(KeyCredential(identity="david", armored_private_key=rsa_armored)))
    return path


@pytest.fixture
def alice_key_file(tmp_path, eddsa_armored):
    """Credential file for identity 'alice'"""
    path = tmp_path / "alice.key"
    path.write_text(encode_credential(KeyCredential(identity="alice", armored_private_key=eddsa_armored)))
    return path
