"""
Key derivation: password + salt into key (and IV, for password-based methods).

Password-based methods derive both key and IV, following the method's PBE
scheme. Strong KDFs only derive a key; the IV is random and carried in the
frame.
"""

import base64
import hashlib
import os
from dataclasses import dataclass

import bcrypt
import structlog
from argon2.low_level import Type, hash_secret_raw
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC
from cryptography.hazmat.primitives.kdf.scrypt import Scrypt

from encrypt_content.config import EncryptContentSettings
from encrypt_content.exceptions import CipherInitializationError, UnsupportedAlgorithmError
from encrypt_content.models.methods import EncryptionMethod, KeyDerivationFunction, PBEScheme

logger = structlog.get_logger(__name__)

_STANDARD_ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789+/"
_BCRYPT_ALPHABET = "./ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789"
_BCRYPT_MAX_PASSWORD = 72
_PKCS12_KEY_ID = 1
_PKCS12_IV_ID = 2


@dataclass(frozen=True)
class DerivedKey:
    """Key and IV produced by a KDF. The IV is empty when it is not derived."""

    key: bytes
    iv: bytes = b""

    def __repr__(self) -> str:
        return f"DerivedKey(key=<{len(self.key)} bytes>, iv=<{len(self.iv)} bytes>)"


def salt_length(kdf: KeyDerivationFunction, method: EncryptionMethod) -> int:
    """Number of salt bytes the KDF consumes for this method."""
    if kdf is KeyDerivationFunction.NIFI_LEGACY:
        return method.legacy_salt_length
    return kdf.salt_length


def generate_salt(kdf: KeyDerivationFunction, method: EncryptionMethod) -> bytes:
    return os.urandom(salt_length(kdf, method))


def derive_key(
    password: bytes,
    salt: bytes,
    kdf: KeyDerivationFunction,
    method: EncryptionMethod,
    settings: EncryptContentSettings | None = None,
) -> DerivedKey:
    """
    Derive key material for a method.

    Deterministic: the same inputs always give the same key and IV.

    Args:
        password: UTF-8 password bytes.
        salt: Salt read from or written to the frame (may be empty for OpenSSL unsalted).
        kdf: Key derivation function.
        method: Method whose key length, digest and PBE scheme apply.
        settings: Work factors; defaults are used when omitted.

    Returns:
        DerivedKey; iv is only populated for password-based KDFs.

    Raises:
        UnsupportedAlgorithmError: If the KDF does not apply to the method.
    """
    settings = settings or EncryptContentSettings()
    key_length = method.key_length // 8

    match kdf:
        case KeyDerivationFunction.NIFI_LEGACY:
            derived = _derive_pbe(password, salt, method, settings.legacy_iteration_count)
        case KeyDerivationFunction.OPENSSL_EVP_BYTES_TO_KEY:
            derived = evp_bytes_to_key(password, salt, _digest(method), key_length, method.block_size)
        case KeyDerivationFunction.PBKDF2:
            derived = DerivedKey(_pbkdf2(password, salt, key_length, settings))
        case KeyDerivationFunction.BCRYPT:
            derived = DerivedKey(_bcrypt(password, salt, key_length, settings))
        case KeyDerivationFunction.SCRYPT:
            derived = DerivedKey(_scrypt(password, salt, key_length, settings))
        case KeyDerivationFunction.ARGON2:
            derived = DerivedKey(_argon2(password, salt, key_length, settings))
        case _:
            msg = f"{kdf.display_name} does not derive keys from a password"
            raise UnsupportedAlgorithmError(msg, kdf=kdf.name)

    logger.debug("Derived key", kdf=kdf.name, method=method.name, salt_length=len(salt))
    return derived


def evp_bytes_to_key(
    password: bytes,
    salt: bytes,
    digest: str,
    key_length: int,
    iv_length: int,
    iterations: int = 1,
) -> DerivedKey:
    """
    OpenSSL EVP_BytesToKey.

    D_i = H^count(D_(i-1) || password || salt), concatenated until key and IV
    are filled.
    """
    material = b""
    block = b""
    while len(material) < key_length + iv_length:
        block = hashlib.new(digest, block + password + salt).digest()
        for _ in range(iterations - 1):
            block = hashlib.new(digest, block).digest()
        material += block
    return DerivedKey(material[:key_length], material[key_length : key_length + iv_length])


def pbkdf1(password: bytes, salt: bytes, digest: str, iterations: int) -> DerivedKey:
    """PKCS#5 v1.5 PBKDF1; the first 8 bytes are the key and the next 8 the IV."""
    block = hashlib.new(digest, password + salt).digest()
    for _ in range(iterations - 1):
        block = hashlib.new(digest, block).digest()
    return DerivedKey(block[:8], block[8:16])


def pkcs12_kdf(password: bytes, salt: bytes, id_byte: int, iterations: int, length: int, digest: str) -> bytes:
    """
    RFC 7292 appendix B.2 key generation.

    Args:
        password: Password already encoded as a null-terminated BMPString.
        salt: Salt.
        id_byte: 1 for key material, 2 for IV, 3 for MAC key.
        iterations: Iteration count.
        length: Bytes to produce.
        digest: hashlib digest name.
    """
    h = hashlib.new(digest)
    u = h.digest_size
    v = h.block_size

    d = bytes([id_byte]) * v
    s = _fill(salt, v)
    p = _fill(password, v)
    i = bytearray(s + p)

    result = b""
    for _ in range(-(-length // u)):
        a = hashlib.new(digest, d + bytes(i)).digest()
        for _ in range(iterations - 1):
            a = hashlib.new(digest, a).digest()
        result += a
        b = int.from_bytes(_fill(a, v), "big")
        for j in range(0, len(i), v):
            chunk = (int.from_bytes(i[j : j + v], "big") + b + 1) % (1 << (v * 8))
            i[j : j + v] = chunk.to_bytes(v, "big")
    return result[:length]


def pkcs12_password(password: bytes) -> bytes:
    """Encode a UTF-8 password as a null-terminated big-endian BMPString."""
    if not password:
        return b""
    return password.decode("utf-8").encode("utf-16-be") + b"\x00\x00"


def _derive_pbe(password: bytes, salt: bytes, method: EncryptionMethod, iterations: int) -> DerivedKey:
    key_length = method.key_length // 8
    iv_length = method.block_size
    digest = _digest(method)

    match method.pbe_scheme:
        case PBEScheme.OPENSSL:
            return evp_bytes_to_key(password, salt, digest, key_length, iv_length)
        case PBEScheme.PKCS5_V1:
            return pbkdf1(password, salt, digest, iterations)
        case PBEScheme.PKCS12:
            encoded = pkcs12_password(password)
            key = pkcs12_kdf(encoded, salt, _PKCS12_KEY_ID, iterations, key_length, digest)
            iv = pkcs12_kdf(encoded, salt, _PKCS12_IV_ID, iterations, iv_length, digest) if iv_length else b""
            return DerivedKey(key, iv)
        case _:
            msg = f"{method.name} is not a password-based method"
            raise UnsupportedAlgorithmError(msg, method=method.name)


def _digest(method: EncryptionMethod) -> str:
    if method.digest is None:
        msg = f"{method.name} has no password-based digest"
        raise UnsupportedAlgorithmError(msg, method=method.name)
    return method.digest


def _pbkdf2(password: bytes, salt: bytes, key_length: int, settings: EncryptContentSettings) -> bytes:
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA512(),
        length=key_length,
        salt=salt,
        iterations=settings.pbkdf2_iterations,
    )
    return kdf.derive(password)


def _scrypt(password: bytes, salt: bytes, key_length: int, settings: EncryptContentSettings) -> bytes:
    kdf = Scrypt(salt=salt, length=key_length, n=settings.scrypt_n, r=settings.scrypt_r, p=settings.scrypt_p)
    try:
        return kdf.derive(password)
    except MemoryError as e:
        msg = "Scrypt parameters exceed available memory"
        raise CipherInitializationError(msg, n=settings.scrypt_n, r=settings.scrypt_r) from e


def _argon2(password: bytes, salt: bytes, key_length: int, settings: EncryptContentSettings) -> bytes:
    return hash_secret_raw(
        secret=password,
        salt=salt,
        time_cost=settings.argon2_time_cost,
        memory_cost=settings.argon2_memory_cost,
        parallelism=settings.argon2_parallelism,
        hash_len=key_length,
        type=Type.ID,
    )


def _bcrypt(password: bytes, salt: bytes, key_length: int, settings: EncryptContentSettings) -> bytes:
    """
    Bcrypt the password with the 16 raw salt bytes, then stretch the hash with SHA-512.

    Only the first 72 password bytes take part, as bcrypt has always done.
    """
    standard_b64 = base64.b64encode(salt[:16]).decode("ascii")
    translation_table = str.maketrans(_STANDARD_ALPHABET, _BCRYPT_ALPHABET)
    bcrypt_salt = standard_b64.translate(translation_table)[:22]
    full_salt = f"$2a${settings.bcrypt_work_factor:02d}${bcrypt_salt}".encode("ascii")
    bcrypt_hash = bcrypt.hashpw(password[:_BCRYPT_MAX_PASSWORD], full_salt)
    # Hash component: the last 31 characters.
    return hashlib.sha512(bcrypt_hash[-31:]).digest()[:key_length]


def _fill(data: bytes, v: int) -> bytes:
    if not data:
        return b""
    n = v * (-(-len(data) // v))
    return (data * (n // len(data) + 1))[:n]
