"""
OpenPGP domain models (RFC 4880 identifiers and parsed packets).
"""

from dataclasses import dataclass
from enum import IntEnum


class SymmetricAlgorithm(IntEnum):
    """RFC 4880 section 9.2 symmetric-key algorithm ids."""

    PLAINTEXT = 0
    IDEA = 1
    TRIPLE_DES = 2
    CAST5 = 3
    BLOWFISH = 4
    SAFER = 5
    DES = 6
    AES_128 = 7
    AES_192 = 8
    AES_256 = 9
    TWOFISH = 10
    CAMELLIA_128 = 11
    CAMELLIA_192 = 12
    CAMELLIA_256 = 13

    @property
    def key_size(self) -> int:
        """Key size in bytes, 0 when the id has no usable cipher."""
        return _CIPHER_SIZES.get(self, (0, 0))[0]

    @property
    def block_size(self) -> int:
        """Block size in bytes, 0 when the id has no usable cipher."""
        return _CIPHER_SIZES.get(self, (0, 0))[1]


# (key bytes, block bytes)
_CIPHER_SIZES: dict[SymmetricAlgorithm, tuple[int, int]] = {
    SymmetricAlgorithm.IDEA: (16, 8),
    SymmetricAlgorithm.TRIPLE_DES: (24, 8),
    SymmetricAlgorithm.CAST5: (16, 8),
    SymmetricAlgorithm.BLOWFISH: (16, 8),
    SymmetricAlgorithm.DES: (8, 8),
    SymmetricAlgorithm.AES_128: (16, 16),
    SymmetricAlgorithm.AES_192: (24, 16),
    SymmetricAlgorithm.AES_256: (32, 16),
    SymmetricAlgorithm.TWOFISH: (32, 16),
    SymmetricAlgorithm.CAMELLIA_128: (16, 16),
    SymmetricAlgorithm.CAMELLIA_192: (24, 16),
    SymmetricAlgorithm.CAMELLIA_256: (32, 16),
}


# NULL and SAFER are never offered for encryption.
PGP_SYMMETRIC_CIPHERS: tuple[SymmetricAlgorithm, ...] = tuple(
    alg
    for alg in SymmetricAlgorithm
    if alg not in (SymmetricAlgorithm.PLAINTEXT, SymmetricAlgorithm.SAFER)
)
DEFAULT_PGP_SYMMETRIC_CIPHER = SymmetricAlgorithm.AES_128


class PublicKeyAlgorithm(IntEnum):
    """OpenPGP public key algorithm identifiers."""

    RSA_ENCRYPT_OR_SIGN = 1
    RSA_ENCRYPT_ONLY = 2
    RSA_SIGN_ONLY = 3
    ELGAMAL_ENCRYPT_ONLY = 16
    DSA = 17
    ECDH = 18
    ECDSA = 19
    ELGAMAL_ENCRYPT_OR_SIGN = 20
    EDDSA = 22
    X25519 = 25
    ED25519 = 27


class HashAlgorithm(IntEnum):
    """OpenPGP hash algorithm identifiers."""

    MD5 = 1
    SHA1 = 2
    RIPEMD160 = 3
    SHA256 = 8
    SHA384 = 9
    SHA512 = 10
    SHA224 = 11


class CompressionAlgorithm(IntEnum):
    """OpenPGP compression algorithm identifiers."""

    UNCOMPRESSED = 0
    ZIP = 1
    ZLIB = 2
    BZIP2 = 3


class PacketTag(IntEnum):
    """OpenPGP packet tags used by the codec."""

    PKESK = 1
    SIGNATURE = 2
    SKESK = 3
    ONE_PASS_SIGNATURE = 4
    SECRET_KEY = 5
    PUBLIC_KEY = 6
    SECRET_SUBKEY = 7
    COMPRESSED_DATA = 8
    SYMMETRICALLY_ENCRYPTED_DATA = 9
    MARKER = 10
    LITERAL_DATA = 11
    TRUST = 12
    USER_ID = 13
    PUBLIC_SUBKEY = 14
    USER_ATTRIBUTE = 17
    SEIPD = 18
    MDC = 19


@dataclass(frozen=True, kw_only=True)
class Packet:
    """A raw OpenPGP packet: tag plus fully assembled body."""

    tag: int
    body: bytes


@dataclass(frozen=True, kw_only=True)
class S2KSpecifier:
    """
    OpenPGP string-to-key specifier.

    Attributes:
        s2k_type: 0 simple, 1 salted, 3 iterated and salted.
        hash_algorithm: Hash used by the S2K.
        salt: 8-byte salt (empty for simple S2K).
        count: Number of bytes hashed (iterated S2K only).
    """

    s2k_type: int
    hash_algorithm: HashAlgorithm
    salt: bytes = b""
    count: int = 0


@dataclass(frozen=True, kw_only=True)
class SKESKPacket:
    """
    Symmetric-Key Encrypted Session Key packet (tag 3, version 4).
    """

    version: int
    algorithm: SymmetricAlgorithm
    s2k: S2KSpecifier
    encrypted_session_key: bytes = b""


@dataclass(frozen=True, kw_only=True)
class PKESKPacket:
    """
    Public-Key Encrypted Session Key packet (tag 1, version 3).
    """

    version: int
    key_id: bytes  # 8 bytes
    algorithm: PublicKeyAlgorithm
    encrypted_session_key: bytes


@dataclass(frozen=True, kw_only=True)
class SessionKey:
    """
    Symmetric key protecting one message.

    Attributes:
        algorithm: Cipher the SEIPD or SED packet is encrypted with.
        key_data: Key bytes, algorithm.key_size long.
    """

    algorithm: SymmetricAlgorithm
    key_data: bytes

    def __post_init__(self) -> None:
        expected = self.algorithm.key_size
        if expected and len(self.key_data) != expected:
            msg = f"{self.algorithm.name} session key must be {expected} bytes, got {len(self.key_data)}"
            raise ValueError(msg)

    @property
    def block_size(self) -> int:
        return self.algorithm.block_size

    @property
    def checksum(self) -> int:
        """Sum of the key octets modulo 65536."""
        return sum(self.key_data) % 65536

    def to_payload(self) -> bytes:
        """PKESK plaintext: algorithm id, key, 2-byte checksum."""
        return bytes([self.algorithm]) + self.key_data + self.checksum.to_bytes(2, "big")

    def __repr__(self) -> str:
        return f"SessionKey({self.algorithm.name}, <{len(self.key_data)} bytes>)"


@dataclass(frozen=True, kw_only=True)
class LiteralData:
    """Contents of a literal data packet."""

    format: str
    filename: str
    timestamp: int
    data: bytes
