"""
OpenPGP string-to-key (RFC 4880 section 3.7).
"""

import os

from pgpy.constants import SymmetricKeyAlgorithm
from pgpy.packet.fields import String2Key

from encrypt_content.exceptions import PGPFormatError
from encrypt_content.models.pgp import HashAlgorithm, S2KSpecifier

SIMPLE = 0
SALTED = 1
ITERATED_SALTED = 3

_SALT_LENGTH = 8
# Widest OpenPGP cipher key, in bytes.
_MAX_KEY_SIZE = 32


def decode_count(coded: int) -> int:
    """Expand the one-octet coded iteration count into a byte count."""
    return (16 + (coded & 15)) << ((coded >> 4) + 6)


def encode_count(count: int) -> int:
    """Smallest coded count whose expansion is at least count."""
    for coded in range(256):
        if decode_count(coded) >= count:
            return coded
    return 255


def new_iterated_s2k(hash_algorithm: HashAlgorithm, count: int) -> S2KSpecifier:
    """Iterated and salted S2K with a fresh salt; count is rounded up to an encodable value."""
    return S2KSpecifier(
        s2k_type=ITERATED_SALTED,
        hash_algorithm=hash_algorithm,
        salt=os.urandom(_SALT_LENGTH),
        count=decode_count(encode_count(count)),
    )


def parse_s2k(data: bytes, offset: int) -> tuple[S2KSpecifier, int]:
    """
    Parse an S2K specifier.

    Returns:
        Tuple of (specifier, offset after it).

    Raises:
        PGPFormatError: If the type or hash is unsupported or the data is truncated.
    """
    if len(data) < offset + 2:
        msg = "S2K specifier truncated"
        raise PGPFormatError(msg)

    s2k_type = data[offset]
    hash_algorithm = _hash_algorithm(data[offset + 1])
    offset += 2

    match s2k_type:
        case 0:
            return S2KSpecifier(s2k_type=SIMPLE, hash_algorithm=hash_algorithm), offset
        case 1:
            salt = _read_salt(data, offset)
            return S2KSpecifier(s2k_type=SALTED, hash_algorithm=hash_algorithm, salt=salt), offset + 8
        case 3:
            salt = _read_salt(data, offset)
            if len(data) < offset + 9:
                msg = "S2K count missing"
                raise PGPFormatError(msg)
            count = decode_count(data[offset + 8])
            spec = S2KSpecifier(s2k_type=ITERATED_SALTED, hash_algorithm=hash_algorithm, salt=salt, count=count)
            return spec, offset + 9
        case _:
            msg = f"Unsupported S2K type: {s2k_type}"
            raise PGPFormatError(msg)


def encode_s2k(spec: S2KSpecifier) -> bytes:
    head = bytes([spec.s2k_type, spec.hash_algorithm])
    match spec.s2k_type:
        case 0:
            return head
        case 1:
            return head + spec.salt
        case 3:
            return head + spec.salt + bytes([encode_count(spec.count)])
        case _:
            msg = f"Unsupported S2K type: {spec.s2k_type}"
            raise ValueError(msg)


def derive_s2k_key(spec: S2KSpecifier, passphrase: bytes, key_size: int) -> bytes:
    """
    Hash the passphrase into a key of key_size bytes with pgpy's String2Key.

    The output for a shorter key is a prefix of the output for a longer one,
    so the key is derived at the widest cipher size and truncated.
    """
    if key_size > _MAX_KEY_SIZE:
        msg = f"S2K key size must be at most {_MAX_KEY_SIZE} bytes, got {key_size}"
        raise ValueError(msg)
    s2k = String2Key()
    s2k.encalg = SymmetricKeyAlgorithm.AES256
    s2k.specifier = spec.s2k_type
    s2k.halg = int(spec.hash_algorithm)
    s2k.salt = bytearray(spec.salt)
    if spec.s2k_type == ITERATED_SALTED:
        s2k.count = encode_count(spec.count)
    return s2k.derive_key(passphrase)[:key_size]


def _read_salt(data: bytes, offset: int) -> bytes:
    if len(data) < offset + _SALT_LENGTH:
        msg = "S2K salt truncated"
        raise PGPFormatError(msg)
    return data[offset : offset + _SALT_LENGTH]


def _hash_algorithm(algorithm_id: int) -> HashAlgorithm:
    try:
        return HashAlgorithm(algorithm_id)
    except ValueError:
        msg = f"Unknown S2K hash algorithm: {algorithm_id}"
        raise PGPFormatError(msg) from None
