"""
Encryption method and key derivation function catalogs.

Both are closed enums whose members carry their fixed attributes as data.
"""

from dataclasses import dataclass
from enum import Enum


class PBEScheme(Enum):
    """How a password-based method turns a password and salt into key and IV."""

    OPENSSL = "openssl"  # EVP_BytesToKey, iteration count ignored
    PKCS5_V1 = "pkcs5v1"  # PBKDF1
    PKCS12 = "pkcs12"  # RFC 7292 appendix B


class BlockMode(Enum):
    CBC = "CBC"
    CTR = "CTR"
    GCM = "GCM"
    STREAM = "STREAM"
    NONE = "NONE"


@dataclass(frozen=True)
class MethodAttributes:
    algorithm: str
    cipher: str
    key_length: int
    block_mode: BlockMode
    padded: bool = True
    digest: str | None = None
    pbe_scheme: PBEScheme | None = None
    keyed: bool = False
    unlimited_strength: bool = False
    pgp: bool = False
    armor: bool = False


_BLOCK_SIZES = {"AES": 16, "Twofish": 16, "DES": 8, "DESede": 8, "RC2": 8, "RC4": 0, "PGP": 0}
KEYED_CIPHER_KEY_LENGTHS = (128, 192, 256)


def _pbe(
    algorithm: str,
    cipher: str,
    key_length: int,
    digest: str,
    scheme: PBEScheme,
    *,
    unlimited: bool = False,
) -> MethodAttributes:
    mode = BlockMode.STREAM if cipher == "RC4" else BlockMode.CBC
    return MethodAttributes(
        algorithm=algorithm,
        cipher=cipher,
        key_length=key_length,
        block_mode=mode,
        padded=mode is BlockMode.CBC,
        digest=digest,
        pbe_scheme=scheme,
        unlimited_strength=unlimited,
    )


def _keyed(algorithm: str, mode: BlockMode, *, padded: bool) -> MethodAttributes:
    return MethodAttributes(
        algorithm=algorithm, cipher="AES", key_length=128, block_mode=mode, padded=padded, keyed=True
    )


class EncryptionMethod(Enum):
    """Supported encryption algorithms."""

    MD5_128AES = _pbe("PBEWITHMD5AND128BITAES-CBC-OPENSSL", "AES", 128, "md5", PBEScheme.OPENSSL)
    MD5_192AES = _pbe(
        "PBEWITHMD5AND192BITAES-CBC-OPENSSL", "AES", 192, "md5", PBEScheme.OPENSSL, unlimited=True
    )
    MD5_256AES = _pbe(
        "PBEWITHMD5AND256BITAES-CBC-OPENSSL", "AES", 256, "md5", PBEScheme.OPENSSL, unlimited=True
    )
    MD5_DES = _pbe("PBEWITHMD5ANDDES", "DES", 64, "md5", PBEScheme.PKCS5_V1)
    MD5_RC2 = _pbe("PBEWITHMD5ANDRC2", "RC2", 64, "md5", PBEScheme.PKCS5_V1)
    SHA1_RC2 = _pbe("PBEWITHSHA1ANDRC2", "RC2", 64, "sha1", PBEScheme.PKCS5_V1)
    SHA1_DES = _pbe("PBEWITHSHA1ANDDES", "DES", 64, "sha1", PBEScheme.PKCS5_V1)
    SHA_128AES = _pbe("PBEWITHSHAAND128BITAES-CBC-BC", "AES", 128, "sha1", PBEScheme.PKCS12)
    SHA_192AES = _pbe(
        "PBEWITHSHAAND192BITAES-CBC-BC", "AES", 192, "sha1", PBEScheme.PKCS12, unlimited=True
    )
    SHA_256AES = _pbe(
        "PBEWITHSHAAND256BITAES-CBC-BC", "AES", 256, "sha1", PBEScheme.PKCS12, unlimited=True
    )
    SHA_40RC2 = _pbe("PBEWITHSHAAND40BITRC2-CBC", "RC2", 40, "sha1", PBEScheme.PKCS12)
    SHA_128RC2 = _pbe("PBEWITHSHAAND128BITRC2-CBC", "RC2", 128, "sha1", PBEScheme.PKCS12)
    SHA_40RC4 = _pbe("PBEWITHSHAAND40BITRC4", "RC4", 40, "sha1", PBEScheme.PKCS12)
    SHA_128RC4 = _pbe("PBEWITHSHAAND128BITRC4", "RC4", 128, "sha1", PBEScheme.PKCS12)
    SHA256_128AES = _pbe("PBEWITHSHA256AND128BITAES-CBC-BC", "AES", 128, "sha256", PBEScheme.PKCS12)
    SHA256_192AES = _pbe(
        "PBEWITHSHA256AND192BITAES-CBC-BC", "AES", 192, "sha256", PBEScheme.PKCS12, unlimited=True
    )
    SHA256_256AES = _pbe(
        "PBEWITHSHA256AND256BITAES-CBC-BC", "AES", 256, "sha256", PBEScheme.PKCS12, unlimited=True
    )
    SHA_2KEYTRIPLEDES = _pbe("PBEWITHSHAAND2-KEYTRIPLEDES-CBC", "DESede", 128, "sha1", PBEScheme.PKCS12)
    SHA_3KEYTRIPLEDES = _pbe("PBEWITHSHAAND3-KEYTRIPLEDES-CBC", "DESede", 192, "sha1", PBEScheme.PKCS12)
    SHA_TWOFISH = _pbe(
        "PBEWITHSHAANDTWOFISH-CBC", "Twofish", 256, "sha1", PBEScheme.PKCS12, unlimited=True
    )
    PGP = MethodAttributes(algorithm="PGP", cipher="PGP", key_length=0, block_mode=BlockMode.NONE, pgp=True)
    PGP_ASCII_ARMOR = MethodAttributes(
        algorithm="PGP-ASCII-ARMOR",
        cipher="PGP",
        key_length=0,
        block_mode=BlockMode.NONE,
        pgp=True,
        armor=True,
    )
    AES_CBC_NO_PADDING = _keyed("AES/CBC/NoPadding", BlockMode.CBC, padded=False)
    AES_CBC = _keyed("AES/CBC/PKCS7Padding", BlockMode.CBC, padded=True)
    AES_CTR = _keyed("AES/CTR/NoPadding", BlockMode.CTR, padded=False)
    AES_GCM = _keyed("AES/GCM/NoPadding", BlockMode.GCM, padded=False)

    @property
    def algorithm(self) -> str:
        return self.value.algorithm

    @property
    def cipher(self) -> str:
        return self.value.cipher

    @property
    def key_length(self) -> int:
        """Key length in bits (default derived length for keyed ciphers)."""
        return self.value.key_length

    @property
    def block_mode(self) -> BlockMode:
        return self.value.block_mode

    @property
    def block_size(self) -> int:
        """Cipher block size in bytes, 0 for stream ciphers and PGP."""
        return _BLOCK_SIZES[self.value.cipher]

    @property
    def is_padded(self) -> bool:
        return self.value.padded

    @property
    def digest(self) -> str | None:
        return self.value.digest

    @property
    def pbe_scheme(self) -> PBEScheme | None:
        return self.value.pbe_scheme

    @property
    def is_keyed_cipher(self) -> bool:
        return self.value.keyed

    @property
    def is_unlimited_strength(self) -> bool:
        return self.value.unlimited_strength

    @property
    def is_pgp(self) -> bool:
        return self.value.pgp

    @property
    def uses_ascii_armor(self) -> bool:
        return self.value.armor

    @property
    def legacy_salt_length(self) -> int:
        """Salt length of the NiFi legacy KDF: the block size, or 8 for stream ciphers."""
        return self.block_size or 8

    def __str__(self) -> str:
        return self.algorithm


@dataclass(frozen=True)
class KdfAttributes:
    display_name: str
    description: str
    strong: bool = False
    salt_length: int = 0


class KeyDerivationFunction(Enum):
    """Key derivation functions."""

    NONE = KdfAttributes("None", "The cipher is given a raw key conforming to the algorithm specifications")
    NIFI_LEGACY = KdfAttributes("NiFi Legacy KDF", "MD5 @ 1000 iterations")
    OPENSSL_EVP_BYTES_TO_KEY = KdfAttributes(
        "OpenSSL EVP_BytesToKey", "Single iteration MD5 compatible with PKCS#5 v1.5", salt_length=8
    )
    BCRYPT = KdfAttributes("Bcrypt", "Bcrypt with configurable work factor", strong=True, salt_length=16)
    SCRYPT = KdfAttributes("Scrypt", "Scrypt with configurable cost parameters", strong=True, salt_length=16)
    PBKDF2 = KdfAttributes(
        "PBKDF2", "PBKDF2 with configurable hash function and iteration count", strong=True, salt_length=16
    )
    ARGON2 = KdfAttributes("Argon2", "Argon2id with configurable cost parameters", strong=True, salt_length=16)

    @property
    def display_name(self) -> str:
        return self.value.display_name

    @property
    def description(self) -> str:
        return self.value.description

    @property
    def is_strong(self) -> bool:
        return self.value.strong

    @property
    def salt_length(self) -> int:
        return self.value.salt_length

    def __str__(self) -> str:
        return self.display_name


PBE_KDFS = (KeyDerivationFunction.NIFI_LEGACY, KeyDerivationFunction.OPENSSL_EVP_BYTES_TO_KEY)
KEYED_KDFS = (
    KeyDerivationFunction.BCRYPT,
    KeyDerivationFunction.SCRYPT,
    KeyDerivationFunction.PBKDF2,
    KeyDerivationFunction.ARGON2,
    KeyDerivationFunction.NONE,
)
