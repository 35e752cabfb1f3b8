"""
OpenPGP packet framing and the packet bodies used by the codec (RFC 4880).

Reads old and new format headers, including partial body lengths and the old
format's indeterminate length. Writes new format headers with definite lengths.
"""

import bz2
import struct
import zlib

from encrypt_content.crypto.openpgp.s2k import encode_s2k, parse_s2k
from encrypt_content.exceptions import PGPFormatError
from encrypt_content.models.pgp import (
    CompressionAlgorithm,
    LiteralData,
    Packet,
    PacketTag,
    PKESKPacket,
    PublicKeyAlgorithm,
    SKESKPacket,
    SymmetricAlgorithm,
)

_MIN_PKESK_BODY_LENGTH = 10
_MIN_SKESK_BODY_LENGTH = 4
_LITERAL_FORMATS = frozenset(b"btu")


def read_packets(data: bytes) -> list[Packet]:
    """
    Split a binary OpenPGP stream into packets.

    Args:
        data: Binary (dearmored) packet stream.

    Returns:
        Packets in stream order, partial bodies reassembled.

    Raises:
        PGPFormatError: If a header is invalid or a body is truncated.
    """
    packets = []
    offset = 0
    while offset < len(data):
        packet, offset = _read_packet(data, offset)
        packets.append(packet)
    return packets


def encode_packet(tag: int, body: bytes) -> bytes:
    """Encode a packet with a new format header and a definite length."""
    return bytes([0xC0 | tag]) + _encode_new_length(len(body)) + body


def _read_packet(data: bytes, offset: int) -> tuple[Packet, int]:
    first_byte = data[offset]
    offset += 1

    if (first_byte & 0xC0) == 0xC0:
        tag = first_byte & 0x3F
        body, offset = _read_new_format_body(data, offset)
        return Packet(tag=tag, body=body), offset

    if (first_byte & 0x80) == 0x80:
        tag = (first_byte & 0x3C) >> 2
        length_type = first_byte & 0x03
        body, offset = _read_old_format_body(data, offset, length_type)
        return Packet(tag=tag, body=body), offset

    msg = f"Invalid packet header: 0x{first_byte:02x}"
    raise PGPFormatError(msg, offset=offset - 1)


def _read_new_format_body(data: bytes, offset: int) -> tuple[bytes, int]:
    parts = []
    while True:
        if offset >= len(data):
            msg = "Missing length byte"
            raise PGPFormatError(msg, offset=offset)
        length_byte = data[offset]

        if length_byte < 192:
            length, offset = length_byte, offset + 1
            partial = False
        elif length_byte < 224:
            if offset + 2 > len(data):
                msg = "Incomplete two-byte length"
                raise PGPFormatError(msg, offset=offset)
            length = ((length_byte - 192) << 8) + data[offset + 1] + 192
            offset += 2
            partial = False
        elif length_byte == 255:
            if offset + 5 > len(data):
                msg = "Incomplete five-byte length"
                raise PGPFormatError(msg, offset=offset)
            length = int.from_bytes(data[offset + 1 : offset + 5], "big")
            offset += 5
            partial = False
        else:
            length = 1 << (length_byte & 0x1F)
            offset += 1
            partial = True

        parts.append(_take(data, offset, length))
        offset += length
        if not partial:
            return b"".join(parts), offset


def _read_old_format_body(data: bytes, offset: int, length_type: int) -> tuple[bytes, int]:
    if length_type == 3:
        # Indeterminate: the packet runs to the end of the stream.
        return data[offset:], len(data)

    size = (1, 2, 4)[length_type]
    if offset + size > len(data):
        msg = "Incomplete old format length"
        raise PGPFormatError(msg, offset=offset)
    length = int.from_bytes(data[offset : offset + size], "big")
    offset += size
    return _take(data, offset, length), offset + length


def _take(data: bytes, offset: int, length: int) -> bytes:
    if offset + length > len(data):
        msg = f"Packet body truncated: need {length} bytes, have {len(data) - offset}"
        raise PGPFormatError(msg, offset=offset)
    return data[offset : offset + length]


def _encode_new_length(length: int) -> bytes:
    if length < 192:
        return bytes([length])
    if length < 8384:
        length -= 192
        return bytes([(length >> 8) + 192, length & 0xFF])
    return b"\xff" + struct.pack(">I", length)


def parse_skesk(body: bytes) -> SKESKPacket:
    """
    Parse a version 4 Symmetric-Key Encrypted Session Key packet body.

    Raises:
        PGPFormatError: If the body is malformed or not version 4.
    """
    if len(body) < _MIN_SKESK_BODY_LENGTH:
        msg = f"SKESK body too short: {len(body)} bytes"
        raise PGPFormatError(msg)

    version = body[0]
    if version != 4:
        msg = f"Unsupported SKESK version: {version}"
        raise PGPFormatError(msg)

    algorithm = _symmetric_algorithm(body[1])
    s2k, offset = parse_s2k(body, 2)
    return SKESKPacket(
        version=version,
        algorithm=algorithm,
        s2k=s2k,
        encrypted_session_key=body[offset:],
    )


def encode_skesk(packet: SKESKPacket) -> bytes:
    body = bytes([packet.version, packet.algorithm]) + encode_s2k(packet.s2k) + packet.encrypted_session_key
    return encode_packet(PacketTag.SKESK, body)


def parse_pkesk(body: bytes) -> PKESKPacket:
    """
    Parse a version 3 Public-Key Encrypted Session Key packet body.

    Raises:
        PGPFormatError: If the body is malformed or not version 3.
    """
    if len(body) < _MIN_PKESK_BODY_LENGTH:
        msg = f"PKESK body too short: {len(body)} bytes"
        raise PGPFormatError(msg)

    version = body[0]
    if version != 3:
        msg = f"Unsupported PKESK version: {version}"
        raise PGPFormatError(msg)

    try:
        algorithm = PublicKeyAlgorithm(body[9])
    except ValueError:
        msg = f"Unknown public key algorithm: {body[9]}"
        raise PGPFormatError(msg) from None

    return PKESKPacket(
        version=version,
        key_id=body[1:9],
        algorithm=algorithm,
        encrypted_session_key=body[10:],
    )


def encode_pkesk(packet: PKESKPacket) -> bytes:
    body = bytes([packet.version]) + packet.key_id + bytes([packet.algorithm]) + packet.encrypted_session_key
    return encode_packet(PacketTag.PKESK, body)


def parse_literal_data(body: bytes) -> LiteralData:
    """
    Parse a literal data packet body: format, file name, date, data.

    Raises:
        PGPFormatError: If the header is truncated.
    """
    if len(body) < 6:
        msg = f"Literal data packet too short: {len(body)} bytes"
        raise PGPFormatError(msg)

    name_length = body[1]
    data_offset = 2 + name_length + 4
    if len(body) < data_offset:
        msg = "Literal data header truncated"
        raise PGPFormatError(msg)

    return LiteralData(
        format=chr(body[0]),
        filename=body[2 : 2 + name_length].decode("utf-8", errors="replace"),
        timestamp=int.from_bytes(body[2 + name_length : data_offset], "big"),
        data=body[data_offset:],
    )


def encode_literal_data(literal: LiteralData) -> bytes:
    if ord(literal.format) not in _LITERAL_FORMATS:
        msg = f"Unknown literal data format: {literal.format!r}"
        raise ValueError(msg)
    name = literal.filename.encode("utf-8")[:255]
    body = (
        literal.format.encode("ascii")
        + bytes([len(name)])
        + name
        + struct.pack(">I", literal.timestamp)
        + literal.data
    )
    return encode_packet(PacketTag.LITERAL_DATA, body)


def decompress(body: bytes) -> bytes:
    """
    Inflate a compressed data packet body into its inner packet stream.

    Raises:
        PGPFormatError: If the algorithm is unknown or the data is corrupt.
    """
    if not body:
        msg = "Compressed data packet is empty"
        raise PGPFormatError(msg)

    try:
        algorithm = CompressionAlgorithm(body[0])
    except ValueError:
        msg = f"Unknown compression algorithm: {body[0]}"
        raise PGPFormatError(msg) from None

    payload = body[1:]
    try:
        match algorithm:
            case CompressionAlgorithm.UNCOMPRESSED:
                return payload
            case CompressionAlgorithm.ZIP:
                inflater = zlib.decompressobj(-zlib.MAX_WBITS)
                return inflater.decompress(payload) + inflater.flush()
            case CompressionAlgorithm.ZLIB:
                return zlib.decompress(payload)
            case CompressionAlgorithm.BZIP2:
                return bz2.decompress(payload)
    except (zlib.error, OSError, ValueError) as e:
        msg = f"Failed to decompress {algorithm.name} data: {e}"
        raise PGPFormatError(msg) from e


def encode_mpi(value: int) -> bytes:
    """Encode an integer as an OpenPGP MPI: [bit count(2)] + [big-endian bytes]."""
    bit_count = value.bit_length()
    return struct.pack(">H", bit_count) + value.to_bytes((bit_count + 7) // 8, "big")


def parse_mpi(data: bytes, offset: int = 0) -> tuple[bytes, int]:
    """
    Parse an MPI.

    Returns:
        Tuple of (mpi_bytes, offset after the MPI).
    """
    if len(data) < offset + 2:
        msg = "MPI too short"
        raise PGPFormatError(msg)

    bit_count = int.from_bytes(data[offset : offset + 2], "big")
    byte_count = (bit_count + 7) // 8
    end = offset + 2 + byte_count
    if len(data) < end:
        msg = f"MPI data incomplete: need {byte_count}, have {len(data) - offset - 2}"
        raise PGPFormatError(msg)
    return data[offset + 2 : end], end


def _symmetric_algorithm(algorithm_id: int) -> SymmetricAlgorithm:
    try:
        return SymmetricAlgorithm(algorithm_id)
    except ValueError:
        msg = f"Unknown symmetric algorithm: {algorithm_id}"
        raise PGPFormatError(msg) from None
