"""
Password-based cipher framing (NiFi legacy and OpenSSL enc formats).

Frame layouts:
- NIFI_LEGACY:              [salt][ciphertext]
- OPENSSL_EVP_BYTES_TO_KEY: ["Salted__"][8-byte salt][ciphertext], or just
  [ciphertext] when the data was produced without a salt.
"""

from typing import BinaryIO

import structlog

from encrypt_content.config import EncryptContentSettings
from encrypt_content.crypto.ciphers import decrypt_stream, encrypt_stream, method_cipher, read_exactly
from encrypt_content.crypto.kdf import derive_key, generate_salt, salt_length
from encrypt_content.crypto.secret import SecretValue
from encrypt_content.exceptions import UndersizedInputError, UnsupportedAlgorithmError
from encrypt_content.models.methods import PBE_KDFS, EncryptionMethod, KeyDerivationFunction

logger = structlog.get_logger(__name__)

OPENSSL_SALT_HEADER = b"Salted__"
OPENSSL_SALT_LENGTH = 8


class PasswordBasedEncryptor:
    """
    Encrypts and decrypts with a password-derived key and IV.

    Example:
        encryptor = PasswordBasedEncryptor(
            EncryptionMethod.MD5_256AES,
            KeyDerivationFunction.OPENSSL_EVP_BYTES_TO_KEY,
            SecretValue.from_string("correct horse battery staple"),
        )
        encryptor.encrypt(source, sink)
    """

    def __init__(
        self,
        method: EncryptionMethod,
        kdf: KeyDerivationFunction,
        password: SecretValue,
        settings: EncryptContentSettings | None = None,
        *,
        salt: bytes | None = None,
    ) -> None:
        """
        Args:
            method: A password-based (non-keyed, non-PGP) method.
            kdf: NIFI_LEGACY or OPENSSL_EVP_BYTES_TO_KEY.
            password: Password; not cleared by this class.
            settings: Buffer size and iteration counts.
            salt: Fixed salt for encryption, for reproducible output in tests.
                An empty salt with the OpenSSL KDF writes an unsalted frame.
        """
        if method.is_keyed_cipher or method.is_pgp:
            msg = f"{method.name} is not a password-based method"
            raise UnsupportedAlgorithmError(msg, method=method.name)
        if kdf not in PBE_KDFS:
            msg = f"{kdf.display_name} cannot frame password-based ciphertext"
            raise UnsupportedAlgorithmError(msg, kdf=kdf.name)
        self._method = method
        self._kdf = kdf
        self._password = password
        self._settings = settings or EncryptContentSettings()
        self._salt = salt

    @property
    def _is_openssl(self) -> bool:
        return self._kdf is KeyDerivationFunction.OPENSSL_EVP_BYTES_TO_KEY

    def encrypt(self, source: BinaryIO, sink: BinaryIO) -> None:
        salt = self._salt if self._salt is not None else generate_salt(self._kdf, self._method)
        derived = derive_key(bytes(self._password), salt, self._kdf, self._method, self._settings)

        if self._is_openssl:
            if salt:
                sink.write(OPENSSL_SALT_HEADER + salt)
        else:
            sink.write(salt)

        cipher = method_cipher(self._method, derived.key, derived.iv)
        encrypt_stream(
            cipher,
            source,
            sink,
            pad_block_size=self._pad_block_size,
            buffer_size=self._settings.buffer_size,
        )
        logger.debug("Encrypted content", method=self._method.name, kdf=self._kdf.name)

    def decrypt(self, source: BinaryIO, sink: BinaryIO) -> None:
        """
        Raises:
            UndersizedInputError: If the input is shorter than the salt header.
            FormatError: If the ciphertext is not a whole number of blocks.
            DecryptionError: If the padding is invalid.
        """
        if self._is_openssl:
            salt, head = self._read_openssl_header(source)
        else:
            salt, head = self._read_legacy_salt(source), b""

        derived = derive_key(bytes(self._password), salt, self._kdf, self._method, self._settings)
        cipher = method_cipher(self._method, derived.key, derived.iv)
        decrypt_stream(
            cipher,
            source,
            sink,
            pad_block_size=self._pad_block_size,
            buffer_size=self._settings.buffer_size,
            head=head,
        )
        logger.debug("Decrypted content", method=self._method.name, kdf=self._kdf.name)

    @property
    def _pad_block_size(self) -> int:
        return self._method.block_size if self._method.is_padded else 0

    def _read_openssl_header(self, source: BinaryIO) -> tuple[bytes, bytes]:
        """Return (salt, ciphertext already read); the salt is empty for unsalted input."""
        leading = read_exactly(source, len(OPENSSL_SALT_HEADER))
        if len(leading) < len(OPENSSL_SALT_HEADER) and self._pad_block_size:
            # Padded ciphertext is at least one block, salted or not.
            msg = "Input is too short to contain a salt header or a cipher block"
            raise UndersizedInputError(msg, expected=len(OPENSSL_SALT_HEADER), actual=len(leading))
        if leading != OPENSSL_SALT_HEADER:
            logger.debug("No OpenSSL salt header, treating input as unsalted")
            return b"", leading

        salt = read_exactly(source, OPENSSL_SALT_LENGTH)
        if len(salt) < OPENSSL_SALT_LENGTH:
            expected = len(OPENSSL_SALT_HEADER) + OPENSSL_SALT_LENGTH
            msg = "Input is too short to contain the OpenSSL salt"
            raise UndersizedInputError(msg, expected=expected, actual=len(leading) + len(salt))
        return salt, b""

    def _read_legacy_salt(self, source: BinaryIO) -> bytes:
        expected = salt_length(self._kdf, self._method)
        salt = read_exactly(source, expected)
        if len(salt) < expected:
            msg = "Input is too short to contain the salt"
            raise UndersizedInputError(msg, expected=expected, actual=len(salt))
        return salt

