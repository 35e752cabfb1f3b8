"""
Keyed AES cipher path: raw key, or a key derived by a strong KDF.

Frame layouts:
- raw key:    [16-byte IV]["NiFiIV"][ciphertext]
- strong KDF: [16-byte salt]["NiFiSALT"][16-byte IV]["NiFiIV"][ciphertext]

GCM appends its 16-byte authentication tag to the ciphertext.
"""

import os
from typing import BinaryIO

import structlog

from encrypt_content.config import EncryptContentSettings
from encrypt_content.crypto.ciphers import (
    GCM_TAG_LENGTH,
    decrypt_stream,
    encrypt_stream,
    method_cipher,
    read_exactly,
)
from encrypt_content.crypto.kdf import derive_key, generate_salt, salt_length
from encrypt_content.crypto.secret import SecretValue
from encrypt_content.exceptions import (
    CipherInitializationError,
    FormatError,
    UndersizedInputError,
    UnsupportedAlgorithmError,
)
from encrypt_content.models.methods import (
    KEYED_CIPHER_KEY_LENGTHS,
    BlockMode,
    EncryptionMethod,
    KeyDerivationFunction,
)

logger = structlog.get_logger(__name__)

SALT_DELIMITER = b"NiFiSALT"
IV_DELIMITER = b"NiFiIV"
IV_LENGTH = 16


class KeyedEncryptor:
    """
    Encrypts and decrypts with a keyed AES method.

    Either a raw key (KDF NONE) or a password with a strong KDF is given.
    """

    def __init__(
        self,
        method: EncryptionMethod,
        *,
        key: SecretValue | None = None,
        password: SecretValue | None = None,
        kdf: KeyDerivationFunction = KeyDerivationFunction.NONE,
        settings: EncryptContentSettings | None = None,
        iv: bytes | None = None,
        salt: bytes | None = None,
    ) -> None:
        """
        Args:
            method: A keyed cipher method.
            key: Raw key of 128, 192 or 256 bits, with KDF NONE.
            password: Password, with a strong KDF.
            kdf: NONE or a strong KDF.
            settings: Buffer size and KDF work factors.
            iv: Fixed IV for encryption, for reproducible output in tests.
            salt: Fixed salt for encryption, for reproducible output in tests.
        """
        if not method.is_keyed_cipher:
            msg = f"{method.name} is not a keyed cipher"
            raise UnsupportedAlgorithmError(msg, method=method.name)
        if kdf is KeyDerivationFunction.NONE:
            if key is None:
                msg = "A raw key is required when the KDF is None"
                raise CipherInitializationError(msg, method=method.name)
            if len(key) * 8 not in KEYED_CIPHER_KEY_LENGTHS:
                msg = f"Raw key must be 128, 192 or 256 bits, got {len(key) * 8}"
                raise CipherInitializationError(msg, method=method.name)
        elif not kdf.is_strong:
            msg = f"{kdf.display_name} cannot be used with keyed cipher {method.name}"
            raise UnsupportedAlgorithmError(msg, method=method.name, kdf=kdf.name)
        elif password is None:
            msg = f"A password is required with {kdf.display_name}"
            raise CipherInitializationError(msg, method=method.name)

        self._method = method
        self._key = key
        self._password = password
        self._kdf = kdf
        self._settings = settings or EncryptContentSettings()
        self._iv = iv
        self._salt = salt

    @property
    def _uses_kdf(self) -> bool:
        return self._kdf is not KeyDerivationFunction.NONE

    @property
    def _tag_length(self) -> int:
        return GCM_TAG_LENGTH if self._method.block_mode is BlockMode.GCM else 0

    @property
    def _pad_block_size(self) -> int:
        return self._method.block_size if self._method.is_padded else 0

    def encrypt(self, source: BinaryIO, sink: BinaryIO) -> None:
        salt = b""
        if self._uses_kdf:
            salt = self._salt if self._salt is not None else generate_salt(self._kdf, self._method)
            sink.write(salt + SALT_DELIMITER)
        iv = self._iv if self._iv is not None else os.urandom(IV_LENGTH)
        sink.write(iv + IV_DELIMITER)

        cipher = method_cipher(self._method, self._resolve_key(salt), iv)
        encryptor = encrypt_stream(
            cipher,
            source,
            sink,
            pad_block_size=self._pad_block_size,
            buffer_size=self._settings.buffer_size,
        )
        if self._tag_length:
            sink.write(encryptor.tag)
        logger.debug("Encrypted content", method=self._method.name, kdf=self._kdf.name)

    def decrypt(self, source: BinaryIO, sink: BinaryIO) -> None:
        """
        Raises:
            UndersizedInputError: If the input is shorter than the frame header.
            FormatError: If a delimiter is missing or the ciphertext is misaligned.
            DecryptionError: If the padding is invalid.
            IntegrityError: If the GCM tag does not verify.
        """
        salt = b""
        if self._uses_kdf:
            salt = _read_field(source, salt_length(self._kdf, self._method), SALT_DELIMITER, "salt")
        iv = _read_field(source, IV_LENGTH, IV_DELIMITER, "IV")

        cipher = method_cipher(self._method, self._resolve_key(salt), iv)
        decrypt_stream(
            cipher,
            source,
            sink,
            pad_block_size=self._pad_block_size,
            tag_length=self._tag_length,
            buffer_size=self._settings.buffer_size,
        )
        logger.debug("Decrypted content", method=self._method.name, kdf=self._kdf.name)

    def _resolve_key(self, salt: bytes) -> bytes:
        if not self._uses_kdf:
            return bytes(self._key)
        return derive_key(bytes(self._password), salt, self._kdf, self._method, self._settings).key


def _read_field(source: BinaryIO, length: int, delimiter: bytes, name: str) -> bytes:
    expected = length + len(delimiter)
    data = read_exactly(source, expected)
    if len(data) < expected:
        msg = f"Input is too short to contain the {name}"
        raise UndersizedInputError(msg, expected=expected, actual=len(data))
    if data[length:] != delimiter:
        msg = f"Missing {name} delimiter"
        raise FormatError(msg, delimiter=delimiter.decode("ascii"))
    return data[:length]
