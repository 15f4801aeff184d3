"""
Cryptographic operations for Omni Python SDK

OpenPGP key ring parsing and the signature primitives used by request and
token signing.
"""

from .armor import (
    crc24,
    dearmor,
    is_armored,
)

from .packets import (
    PacketTag,
    PublicKeyAlgorithm,
    SecretKeyPacket,
    iter_packets,
    read_secret_key_packets,
)

from .signing_key import (
    KeyAlgorithm,
    SigningKey,
    parse_signing_key,
    select_signing_packet,
)

from .signature_engine import sign_data

__all__ = [
    # Armor
    'crc24',
    'dearmor',
    'is_armored',
    # Packets
    'PacketTag',
    'PublicKeyAlgorithm',
    'SecretKeyPacket',
    'iter_packets',
    'read_secret_key_packets',
    # Signing keys
    'KeyAlgorithm',
    'SigningKey',
    'parse_signing_key',
    'select_signing_packet',
    'sign_data',
]
