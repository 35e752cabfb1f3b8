"""
Cipher construction, capability queries and chunked streaming over the
cryptography backend.

Legacy ciphers (DES, Triple DES, RC4, Blowfish, CAST5, IDEA) come from
cryptography's decrepit module. RC2 comes from pycryptodome, which can set the
effective key length the 40 and 64 bit methods need. Twofish has no
implementation and is always reported as unsupported.
"""

from collections.abc import Callable
from functools import lru_cache
from typing import Any, BinaryIO

from Crypto.Cipher import ARC2
from cryptography.exceptions import InvalidTag, UnsupportedAlgorithm
from cryptography.hazmat.decrepit.ciphers import algorithms as decrepit
from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, CipherAlgorithm, CipherContext, algorithms, modes

from encrypt_content.exceptions import (
    CipherInitializationError,
    DecryptionError,
    FormatError,
    IntegrityError,
    UndersizedInputError,
    UnsupportedAlgorithmError,
)
from encrypt_content.models.methods import BlockMode, EncryptionMethod
from encrypt_content.models.pgp import SymmetricAlgorithm

GCM_TAG_LENGTH = 16


class BlockContext:
    """
    Incremental context over a pycryptodome CBC cipher.

    pycryptodome only accepts whole blocks, so a partial tail is held back
    until more data arrives. Any tail left at finalize() is an error, as it is
    for an unpadded cryptography CBC context.
    """

    def __init__(self, transform: Callable[[bytes], bytes], block_size: int) -> None:
        self._transform = transform
        self._block_size = block_size
        self._pending = b""

    def update(self, data: bytes) -> bytes:
        data = self._pending + data
        cut = len(data) - len(data) % self._block_size
        self._pending = data[cut:]
        return self._transform(data[:cut]) if cut else b""

    def finalize(self) -> bytes:
        if self._pending:
            msg = "The length of the provided data is not a multiple of the block length."
            raise ValueError(msg)
        return b""


class RC2Cipher:
    """RC2-CBC with an explicit effective key length, shaped like a cryptography Cipher."""

    block_size = ARC2.block_size

    def __init__(self, key: bytes, iv: bytes, effective_bits: int) -> None:
        self._key = key
        self._iv = iv
        self._effective_bits = effective_bits
        try:
            self._new()
        except ValueError as e:
            msg = f"Invalid key or IV for RC2: {e}"
            raise CipherInitializationError(
                msg, cipher="RC2", key_bits=len(key) * 8, effective_bits=effective_bits
            ) from e

    def _new(self) -> Any:
        return ARC2.new(self._key, ARC2.MODE_CBC, iv=self._iv, effective_keylen=self._effective_bits)

    def encryptor(self) -> BlockContext:
        return BlockContext(self._new().encrypt, self.block_size)

    def decryptor(self) -> BlockContext:
        return BlockContext(self._new().decrypt, self.block_size)


StreamCipher = Cipher | RC2Cipher


def cipher_algorithm(family: str, key: bytes) -> CipherAlgorithm:
    """
    Build the block or stream cipher primitive for a method's cipher family.

    Args:
        family: Cipher family name (EncryptionMethod.cipher).
        key: Raw key bytes.

    Raises:
        UnsupportedAlgorithmError: If the family has no cryptography implementation.
        CipherInitializationError: If the key length is invalid for the family.
    """
    try:
        match family:
            case "AES":
                return algorithms.AES(key)
            case "DES" | "DESede":
                # An 8-byte key is expanded to K1=K2=K3, which is single DES.
                return decrepit.TripleDES(key)
            case "RC4":
                return decrepit.ARC4(key)
            case _:
                msg = f"No implementation for cipher {family}"
                raise UnsupportedAlgorithmError(msg, cipher=family)
    except ValueError as e:
        msg = f"Invalid key for {family}: {e}"
        raise CipherInitializationError(msg, cipher=family, key_bits=len(key) * 8) from e


def pgp_cipher_algorithm(algorithm: SymmetricAlgorithm, key: bytes) -> CipherAlgorithm:
    """
    Build the cipher primitive for an OpenPGP symmetric algorithm id.

    Raises:
        UnsupportedAlgorithmError: If the algorithm has no implementation.
        CipherInitializationError: If the key length is invalid.
    """
    try:
        match algorithm:
            case SymmetricAlgorithm.AES_128 | SymmetricAlgorithm.AES_192 | SymmetricAlgorithm.AES_256:
                return algorithms.AES(key)
            case SymmetricAlgorithm.TRIPLE_DES | SymmetricAlgorithm.DES:
                return decrepit.TripleDES(key)
            case SymmetricAlgorithm.CAST5:
                return decrepit.CAST5(key)
            case SymmetricAlgorithm.BLOWFISH:
                return decrepit.Blowfish(key)
            case SymmetricAlgorithm.IDEA:
                return decrepit.IDEA(key)
            case (
                SymmetricAlgorithm.CAMELLIA_128
                | SymmetricAlgorithm.CAMELLIA_192
                | SymmetricAlgorithm.CAMELLIA_256
            ):
                return algorithms.Camellia(key)
            case _:
                msg = f"No implementation for OpenPGP cipher {algorithm.name}"
                raise UnsupportedAlgorithmError(msg, algorithm=int(algorithm))
    except ValueError as e:
        msg = f"Invalid key for {algorithm.name}: {e}"
        raise CipherInitializationError(msg, algorithm=int(algorithm)) from e


def method_cipher(
    method: EncryptionMethod, key: bytes, iv: bytes, *, tag: bytes | None = None
) -> StreamCipher:
    """
    Build a cipher for a non-PGP method with its block mode.

    Args:
        method: Encryption method.
        key: Derived or raw key.
        iv: IV or nonce; ignored for stream ciphers.
        tag: GCM tag, only when decrypting with a known tag.
    """
    if method.cipher == "RC2":
        return RC2Cipher(key, iv, method.key_length)

    algorithm = cipher_algorithm(method.cipher, key)
    match method.block_mode:
        case BlockMode.CBC:
            mode = modes.CBC(iv)
        case BlockMode.CTR:
            mode = modes.CTR(iv)
        case BlockMode.GCM:
            mode = modes.GCM(iv, tag, min_tag_length=GCM_TAG_LENGTH)
        case BlockMode.STREAM:
            mode = None
        case _:
            msg = f"{method.name} is not a block or stream cipher method"
            raise UnsupportedAlgorithmError(msg, method=method.name)
    try:
        return Cipher(algorithm, mode)
    except ValueError as e:
        msg = f"Invalid IV for {method.name}: {e}"
        raise CipherInitializationError(msg, method=method.name, iv_length=len(iv)) from e


def pgp_cfb_cipher(algorithm: SymmetricAlgorithm, key: bytes, iv: bytes) -> Cipher:
    """Build the CFB cipher used by OpenPGP encrypted data packets."""
    return Cipher(pgp_cipher_algorithm(algorithm, key), modes.CFB(iv))


@lru_cache(maxsize=None)
def is_method_supported(method: EncryptionMethod) -> bool:
    """
    Whether the installed backends can build this method's cipher at its key length.

    PGP methods report True; their cipher is checked per OpenPGP algorithm id.
    """
    if method.is_pgp:
        return True
    key = bytes(method.key_length // 8)
    iv = bytes(method.block_size or 16)
    try:
        method_cipher(method, key, iv).encryptor()
    except (UnsupportedAlgorithmError, CipherInitializationError, UnsupportedAlgorithm, ValueError):
        return False
    return True


@lru_cache(maxsize=None)
def is_pgp_cipher_supported(algorithm: SymmetricAlgorithm) -> bool:
    """Whether the installed backend can build this OpenPGP cipher in CFB mode."""
    if not algorithm.key_size or not algorithm.block_size:
        return False
    key = bytes(algorithm.key_size)
    iv = bytes(algorithm.block_size)
    try:
        pgp_cfb_cipher(algorithm, key, iv).encryptor()
    except (UnsupportedAlgorithmError, CipherInitializationError, UnsupportedAlgorithm, ValueError):
        return False
    return True


def encrypt_stream(
    cipher: StreamCipher,
    source: BinaryIO,
    sink: BinaryIO,
    *,
    pad_block_size: int = 0,
    buffer_size: int = 65536,
) -> CipherContext | BlockContext:
    """
    Encrypt source into sink chunk by chunk.

    Args:
        cipher: Cipher to encrypt with.
        source: Plaintext stream.
        sink: Ciphertext stream.
        pad_block_size: Block size in bytes for PKCS#7 padding, 0 for none.
        buffer_size: Read size.

    Returns:
        The finalized encryptor (GCM callers read its tag).

    Raises:
        FormatError: If unpadded block cipher input is not a whole number of blocks.
    """
    encryptor = cipher.encryptor()
    padder = padding.PKCS7(pad_block_size * 8).padder() if pad_block_size else None
    while chunk := source.read(buffer_size):
        if padder is not None:
            chunk = padder.update(chunk)
        sink.write(encryptor.update(chunk))
    if padder is not None:
        sink.write(encryptor.update(padder.finalize()))
    try:
        sink.write(encryptor.finalize())
    except ValueError as e:
        msg = "Input length is not a multiple of the cipher block size"
        raise FormatError(msg) from e
    return encryptor


def decrypt_stream(
    cipher: StreamCipher,
    source: BinaryIO,
    sink: BinaryIO,
    *,
    pad_block_size: int = 0,
    tag_length: int = 0,
    buffer_size: int = 65536,
    head: bytes = b"",
) -> None:
    """
    Decrypt source into sink chunk by chunk.

    With tag_length set, the trailing bytes of the input are held back and
    verified as the authentication tag.

    Args:
        cipher: Cipher to decrypt with (GCM built without a tag).
        source: Ciphertext stream, positioned after the frame header.
        sink: Plaintext stream.
        pad_block_size: Block size in bytes for PKCS#7 unpadding, 0 for none.
        tag_length: Length of the trailing authentication tag, 0 for none.
        buffer_size: Read size.
        head: Ciphertext already consumed from source while probing the header.

    Raises:
        UndersizedInputError: If the input cannot hold the tag.
        FormatError: If the ciphertext is not a whole number of blocks.
        DecryptionError: If the padding is invalid (typically a wrong key).
        IntegrityError: If the authentication tag does not verify.
    """
    decryptor = cipher.decryptor()
    unpadder = padding.PKCS7(pad_block_size * 8).unpadder() if pad_block_size else None

    def emit(data: bytes) -> None:
        out = decryptor.update(data)
        if unpadder is not None:
            out = unpadder.update(out)
        sink.write(out)

    pending = bytearray(head)
    while True:
        if len(pending) > tag_length:
            cut = len(pending) - tag_length
            emit(bytes(pending[:cut]))
            del pending[:cut]
        chunk = source.read(buffer_size)
        if not chunk:
            break
        pending += chunk

    try:
        if tag_length:
            if len(pending) < tag_length:
                msg = "Input is too short to contain an authentication tag"
                raise UndersizedInputError(msg, expected=tag_length, actual=len(pending))
            final = decryptor.finalize_with_tag(bytes(pending))
        else:
            final = decryptor.finalize()
    except InvalidTag as e:
        msg = "Authentication tag verification failed"
        raise IntegrityError(msg) from e
    except ValueError as e:
        msg = "Ciphertext length is not a multiple of the cipher block size"
        raise FormatError(msg) from e

    if unpadder is None:
        sink.write(final)
        return
    try:
        sink.write(unpadder.update(final) + unpadder.finalize())
    except ValueError as e:
        msg = "Invalid padding, the key or password is probably wrong"
        raise DecryptionError(msg) from e


def read_exactly(source: BinaryIO, size: int) -> bytes:
    """Read up to size bytes, looping over short reads; fewer only at end of stream."""
    data = b""
    while len(data) < size:
        chunk = source.read(size - len(data))
        if not chunk:
            break
        data += chunk
    return data
