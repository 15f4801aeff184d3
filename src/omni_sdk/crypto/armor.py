"""
ASCII armor decoding for OpenPGP key material

This module strips the ASCII armor (RFC 4880 section 6) from an OpenPGP
block and returns the binary packet stream. Binary input is passed through
unchanged, so callers can hand over either form.
"""

import base64
import binascii
from typing import Union

from ..exceptions import AuthenticationError, AuthErrorKind

CRC24_INIT = 0xB704CE
CRC24_POLY = 0x1864CFB

ARMOR_BEGIN_PREFIX = "-----BEGIN PGP "
ARMOR_END_PREFIX = "-----END PGP "


def crc24(data: bytes) -> int:
    """
    Compute the OpenPGP CRC-24 checksum.

    Args:
        data: Bytes to checksum

    Returns:
        int: 24-bit checksum
    """
    crc = CRC24_INIT
    for octet in data:
        crc ^= octet << 16
        for _ in range(8):
            crc <<= 1
            if crc & 0x1000000:
                crc ^= CRC24_POLY
    return crc & 0xFFFFFF


def is_armored(data: Union[str, bytes]) -> bool:
    """Check whether data looks like an ASCII-armored block."""
    if isinstance(data, bytes):
        if data[:1] and data[0] & 0x80:
            return False
        try:
            data = data.decode('ascii')
        except UnicodeDecodeError:
            return False
    return ARMOR_BEGIN_PREFIX in data


def dearmor(data: Union[str, bytes]) -> bytes:
    """
    Decode an ASCII-armored OpenPGP block.

    Args:
        data: Armored text, or binary packet data

    Returns:
        bytes: Binary packet stream

    Raises:
        AuthenticationError: INVALID_KEY_FORMAT if the armor is malformed or
            the checksum does not match
    """
    if isinstance(data, bytes):
        if not is_armored(data):
            if not data:
                raise AuthenticationError(AuthErrorKind.INVALID_KEY_FORMAT, "Key data is empty")
            return data
        text = data.decode('ascii')
    else:
        text = data

    lines = [line.strip() for line in text.replace('\r\n', '\n').split('\n')]

    try:
        begin = next(i for i, line in enumerate(lines) if line.startswith(ARMOR_BEGIN_PREFIX))
    except StopIteration:
        raise AuthenticationError(
            AuthErrorKind.INVALID_KEY_FORMAT,
            "Armor header line not found"
        )

    try:
        end = next(i for i in range(begin + 1, len(lines)) if lines[i].startswith(ARMOR_END_PREFIX))
    except StopIteration:
        raise AuthenticationError(
            AuthErrorKind.INVALID_KEY_FORMAT,
            "Armor tail line not found"
        )

    body = lines[begin + 1:end]

    # Armor headers ("Version: ...", "Comment: ...") end at the first blank line
    if any(':' in line for line in body[:1]):
        try:
            blank = body.index('')
        except ValueError:
            raise AuthenticationError(
                AuthErrorKind.INVALID_KEY_FORMAT,
                "Armor headers are not terminated by a blank line"
            )
        body = body[blank + 1:]

    checksum = None
    payload_lines = []
    for line in body:
        if not line:
            continue
        if line.startswith('=') and len(line) == 5:
            checksum = line[1:]
            continue
        payload_lines.append(line)

    try:
        packets = base64.b64decode(''.join(payload_lines), validate=True)
    except (binascii.Error, ValueError) as e:
        raise AuthenticationError(
            AuthErrorKind.INVALID_KEY_FORMAT,
            f"Armor body is not valid base64: {e}"
        ) from e

    if not packets:
        raise AuthenticationError(AuthErrorKind.INVALID_KEY_FORMAT, "Armor body is empty")

    if checksum is not None:
        try:
            expected = int.from_bytes(base64.b64decode(checksum, validate=True), 'big')
        except (binascii.Error, ValueError) as e:
            raise AuthenticationError(
                AuthErrorKind.INVALID_KEY_FORMAT,
                f"Armor checksum is not valid base64: {e}"
            ) from e

        actual = crc24(packets)
        if actual != expected:
            raise AuthenticationError(
                AuthErrorKind.INVALID_KEY_FORMAT,
                "Armor checksum mismatch",
                {"expected": f"{expected:06x}", "actual": f"{actual:06x}"}
            )

    return packets
