"""
OpenPGP packet reader for secret key rings

This module splits a binary OpenPGP packet stream into packets and decodes
version 4 secret key and secret subkey packets into their public and secret
key material. Only the parts needed to sign are decoded; other packets
(user IDs, signatures, trust) are returned untouched so callers can skip them.
"""

import hashlib
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Dict, Iterator, List, Optional, Tuple

from ..exceptions import AuthenticationError, AuthErrorKind


class PacketTag(IntEnum):
    """OpenPGP packet tags used by key rings"""
    SIGNATURE = 2
    SECRET_KEY = 5
    PUBLIC_KEY = 6
    SECRET_SUBKEY = 7
    USER_ID = 13
    PUBLIC_SUBKEY = 14


class PublicKeyAlgorithm(IntEnum):
    """OpenPGP public-key algorithm identifiers"""
    RSA_GENERAL = 1
    RSA_ENCRYPT = 2
    RSA_SIGN = 3
    ELGAMAL_ENCRYPT = 16
    DSA = 17
    ECDH = 18
    ECDSA = 19
    ELGAMAL_GENERAL = 20
    EDDSA_LEGACY = 22
    X25519 = 25
    X448 = 26
    ED25519 = 27
    ED448 = 28


# Algorithms an OpenPGP implementation treats as signing keys
SIGNING_ALGORITHMS = frozenset({
    PublicKeyAlgorithm.RSA_GENERAL,
    PublicKeyAlgorithm.RSA_SIGN,
    PublicKeyAlgorithm.DSA,
    PublicKeyAlgorithm.ECDSA,
    PublicKeyAlgorithm.ELGAMAL_GENERAL,
    PublicKeyAlgorithm.EDDSA_LEGACY,
    PublicKeyAlgorithm.ED25519,
    PublicKeyAlgorithm.ED448,
})

# Curve OIDs (DER content octets, without tag and length)
CURVE_OIDS: Dict[bytes, str] = {
    bytes.fromhex('2a8648ce3d030107'): 'nistp256',
    bytes.fromhex('2b81040022'): 'nistp384',
    bytes.fromhex('2b81040023'): 'nistp521',
    bytes.fromhex('2b06010401da470f01'): 'ed25519',
    bytes.fromhex('2b060104019755010501'): 'curve25519',
    bytes.fromhex('2b2403030208010107'): 'brainpoolP256r1',
    bytes.fromhex('2b240303020801010b'): 'brainpoolP384r1',
    bytes.fromhex('2b240303020801010d'): 'brainpoolP512r1',
}

S2K_USAGE_UNPROTECTED = 0


@dataclass
class Packet:
    """A raw OpenPGP packet"""
    tag: int
    body: bytes


@dataclass
class SecretKeyPacket:
    """
    Decoded version 4 secret key (or subkey) packet

    Attributes:
        tag: Packet tag (SECRET_KEY or SECRET_SUBKEY)
        algorithm: Public-key algorithm identifier
        created_at: Key creation time (seconds since epoch)
        public_body: Public key packet body, the input to the fingerprint
        public_params: Decoded public parameters (names depend on algorithm)
        s2k_usage: String-to-key usage octet of the secret part
        secret_data: Raw secret key material following the S2K usage octet
        curve: Curve name for ECC algorithms, or the OID in hex when unknown
    """
    tag: int
    algorithm: int
    created_at: int
    public_body: bytes
    public_params: Dict[str, object] = field(default_factory=dict)
    s2k_usage: int = 0
    secret_data: bytes = b''
    curve: Optional[str] = None

    @property
    def is_subkey(self) -> bool:
        return self.tag == PacketTag.SECRET_SUBKEY

    @property
    def is_signing_key(self) -> bool:
        return self.algorithm in SIGNING_ALGORITHMS

    @property
    def is_protected(self) -> bool:
        return self.s2k_usage != S2K_USAGE_UNPROTECTED

    @property
    def algorithm_name(self) -> str:
        try:
            name = PublicKeyAlgorithm(self.algorithm).name
        except ValueError:
            name = f"ALGORITHM_{self.algorithm}"
        if self.curve:
            return f"{name}/{self.curve}"
        return name

    def fingerprint(self) -> bytes:
        """V4 fingerprint: SHA-1 over 0x99, two-octet length and the public key body."""
        prefix = b'\x99' + len(self.public_body).to_bytes(2, 'big')
        return hashlib.sha1(prefix + self.public_body).digest()

    def key_id(self) -> bytes:
        """The low 64 bits of the fingerprint."""
        return self.fingerprint()[-8:]


def _format_error(message: str, **details) -> AuthenticationError:
    return AuthenticationError(AuthErrorKind.INVALID_KEY_FORMAT, message, details or None)


def _read_new_length(data: bytes, pos: int) -> Tuple[int, int, bool]:
    """Decode a new-format body length; returns (length, new position, partial)."""
    if pos >= len(data):
        raise _format_error("Truncated packet length")
    first = data[pos]
    if first < 192:
        return first, pos + 1, False
    if first < 224:
        if pos + 1 >= len(data):
            raise _format_error("Truncated packet length")
        return ((first - 192) << 8) + data[pos + 1] + 192, pos + 2, False
    if first == 255:
        if pos + 5 > len(data):
            raise _format_error("Truncated packet length")
        return int.from_bytes(data[pos + 1:pos + 5], 'big'), pos + 5, False
    return 1 << (first & 0x1F), pos + 1, True


def iter_packets(data: bytes) -> Iterator[Packet]:
    """
    Iterate over the packets in a binary OpenPGP stream.

    Args:
        data: Binary packet stream

    Yields:
        Packet: Each packet in stream order

    Raises:
        AuthenticationError: INVALID_KEY_FORMAT on malformed framing
    """
    pos = 0
    while pos < len(data):
        header = data[pos]
        if not header & 0x80:
            raise _format_error("Invalid packet header", offset=pos)
        pos += 1

        if header & 0x40:
            tag = header & 0x3F
            length, pos, partial = _read_new_length(data, pos)
            chunks = []
            while partial:
                chunks.append(data[pos:pos + length])
                pos += length
                length, pos, partial = _read_new_length(data, pos)
            chunks.append(data[pos:pos + length])
            pos += length
            body = b''.join(chunks)
        else:
            tag = (header >> 2) & 0x0F
            length_type = header & 0x03
            if length_type == 3:
                length = len(data) - pos
            else:
                size = (1, 2, 4)[length_type]
                if pos + size > len(data):
                    raise _format_error("Truncated packet length")
                length = int.from_bytes(data[pos:pos + size], 'big')
                pos += size
            body = data[pos:pos + length]
            pos += length

        if pos > len(data):
            raise _format_error("Truncated packet body", tag=tag)

        yield Packet(tag=tag, body=body)


class _Reader:
    """Cursor over a packet body"""

    def __init__(self, data: bytes, error_kind: AuthErrorKind):
        self.data = data
        self.pos = 0
        self.error_kind = error_kind

    def take(self, count: int) -> bytes:
        if self.pos + count > len(self.data):
            raise AuthenticationError(self.error_kind, "Key packet is truncated")
        chunk = self.data[self.pos:self.pos + count]
        self.pos += count
        return chunk

    def octet(self) -> int:
        return self.take(1)[0]

    def uint(self, size: int) -> int:
        return int.from_bytes(self.take(size), 'big')

    def mpi(self) -> int:
        bits = self.uint(2)
        return int.from_bytes(self.take((bits + 7) // 8), 'big')

    def mpi_bytes(self) -> bytes:
        bits = self.uint(2)
        return self.take((bits + 7) // 8)

    def oid(self) -> bytes:
        size = self.octet()
        if size in (0, 0xFF):
            raise AuthenticationError(self.error_kind, "Reserved curve OID length")
        return self.take(size)

    def rest(self) -> bytes:
        chunk = self.data[self.pos:]
        self.pos = len(self.data)
        return chunk


def _read_public_params(reader: _Reader, algorithm: int) -> Tuple[Dict[str, object], Optional[str]]:
    """Decode algorithm-specific public key material."""
    curve = None
    if algorithm in (PublicKeyAlgorithm.RSA_GENERAL, PublicKeyAlgorithm.RSA_ENCRYPT, PublicKeyAlgorithm.RSA_SIGN):
        params = {'n': reader.mpi(), 'e': reader.mpi()}
    elif algorithm == PublicKeyAlgorithm.DSA:
        params = {'p': reader.mpi(), 'q': reader.mpi(), 'g': reader.mpi(), 'y': reader.mpi()}
    elif algorithm in (PublicKeyAlgorithm.ELGAMAL_ENCRYPT, PublicKeyAlgorithm.ELGAMAL_GENERAL):
        params = {'p': reader.mpi(), 'g': reader.mpi(), 'y': reader.mpi()}
    elif algorithm in (PublicKeyAlgorithm.ECDSA, PublicKeyAlgorithm.EDDSA_LEGACY):
        oid = reader.oid()
        curve = CURVE_OIDS.get(oid, oid.hex())
        params = {'point': reader.mpi_bytes()}
    elif algorithm == PublicKeyAlgorithm.ECDH:
        oid = reader.oid()
        curve = CURVE_OIDS.get(oid, oid.hex())
        params = {'point': reader.mpi_bytes()}
        kdf_size = reader.octet()
        params['kdf'] = reader.take(kdf_size)
    elif algorithm in (PublicKeyAlgorithm.X25519, PublicKeyAlgorithm.ED25519):
        params = {'point': reader.take(32)}
    elif algorithm == PublicKeyAlgorithm.X448:
        params = {'point': reader.take(56)}
    elif algorithm == PublicKeyAlgorithm.ED448:
        params = {'point': reader.take(57)}
    else:
        raise _format_error(f"Unknown public-key algorithm: {algorithm}", algorithm=algorithm)
    return params, curve


def parse_secret_key_packet(packet: Packet) -> SecretKeyPacket:
    """
    Decode a secret key or secret subkey packet.

    The secret material is kept raw; it is decoded only for the key that is
    actually selected for signing.

    Args:
        packet: Packet with tag SECRET_KEY or SECRET_SUBKEY

    Returns:
        SecretKeyPacket: Decoded packet

    Raises:
        AuthenticationError: INVALID_KEY_FORMAT for unsupported versions or
            malformed public material
    """
    reader = _Reader(packet.body, AuthErrorKind.INVALID_KEY_FORMAT)
    version = reader.octet()
    if version != 4:
        raise _format_error(f"Unsupported key packet version: {version}", version=version)

    created_at = reader.uint(4)
    algorithm = reader.octet()
    public_params, curve = _read_public_params(reader, algorithm)
    public_body = packet.body[:reader.pos]

    s2k_usage = reader.octet()

    return SecretKeyPacket(
        tag=packet.tag,
        algorithm=algorithm,
        created_at=created_at,
        public_body=public_body,
        public_params=public_params,
        s2k_usage=s2k_usage,
        secret_data=reader.rest(),
        curve=curve,
    )


def read_secret_key_packets(data: bytes) -> List[SecretKeyPacket]:
    """
    Decode every secret key and secret subkey packet in ring order.

    Args:
        data: Binary packet stream

    Returns:
        list: Secret key packets, primary key first
    """
    return [
        parse_secret_key_packet(packet)
        for packet in iter_packets(data)
        if packet.tag in (PacketTag.SECRET_KEY, PacketTag.SECRET_SUBKEY)
    ]


def read_secret_mpis(key_packet: SecretKeyPacket, count: int) -> List[int]:
    """
    Read unprotected secret MPIs and verify the two-octet checksum.

    Args:
        key_packet: Unprotected secret key packet
        count: Number of MPIs the algorithm stores

    Returns:
        list: Secret integers in packet order

    Raises:
        AuthenticationError: KEY_EXTRACTION_FAILED if truncated or the
            checksum does not match
    """
    reader = _Reader(key_packet.secret_data, AuthErrorKind.KEY_EXTRACTION_FAILED)
    values = [reader.mpi() for _ in range(count)]
    _verify_checksum(key_packet.secret_data[:reader.pos], reader.uint(2))
    return values


def read_secret_octets(key_packet: SecretKeyPacket, size: int) -> bytes:
    """Read fixed-size unprotected secret material (native Ed25519) and verify the checksum."""
    reader = _Reader(key_packet.secret_data, AuthErrorKind.KEY_EXTRACTION_FAILED)
    secret = reader.take(size)
    _verify_checksum(secret, reader.uint(2))
    return secret


def secret_checksum(data: bytes) -> int:
    """Two-octet checksum: sum of all octets modulo 65536."""
    return sum(data) & 0xFFFF


def _verify_checksum(data: bytes, expected: int) -> None:
    if secret_checksum(data) != expected:
        raise AuthenticationError(
            AuthErrorKind.KEY_EXTRACTION_FAILED,
            "Secret key checksum mismatch"
        )
