"""
Encrypt/decrypt orchestrator.

This is the main entry point: it validates the properties, picks the
encryption path for the method and streams content through it.
"""

import io
from typing import BinaryIO

import structlog

from encrypt_content.config import EncryptContentSettings
from encrypt_content.crypto.keyed import KeyedEncryptor
from encrypt_content.crypto.keyring import KeyringLoader, default_loader
from encrypt_content.crypto.openpgp.codec import OpenPGPEncryptor
from encrypt_content.crypto.password_based import PasswordBasedEncryptor
from encrypt_content.crypto.protocol import ContentEncryptor, KeyringSource
from encrypt_content.exceptions import EncryptContentError
from encrypt_content.models.flow import FlowOutcome
from encrypt_content.models.plan import EncryptionConfig
from encrypt_content.models.properties import EncryptionProperties, ValidationResult
from encrypt_content.services.validation import ConfigurationValidator

logger = structlog.get_logger(__name__)


class EncryptContent:
    """
    Encrypts or decrypts content according to a set of properties.

    Example:
        ```python
        properties = EncryptionProperties(
            mode=Mode.ENCRYPT,
            encryption_algorithm=EncryptionMethod.MD5_256AES,
            key_derivation_function=KeyDerivationFunction.OPENSSL_EVP_BYTES_TO_KEY,
            password="correct horse battery staple",
        )
        processor = EncryptContent(properties)

        for result in processor.validate():
            print(result)

        outcome = processor.process(b"Hello, World!")
        if outcome.is_success:
            ciphertext = outcome.content
        ```

    Args:
        properties: Unvalidated configuration.
        settings: Engine settings. Uses defaults if not provided.
        keyring_source: Where keyrings are read from; files by default.
    """

    def __init__(
        self,
        properties: EncryptionProperties,
        settings: EncryptContentSettings | None = None,
        *,
        keyring_source: KeyringSource | None = None,
    ) -> None:
        self._properties = properties
        self._settings = settings or EncryptContentSettings()
        loader = KeyringLoader(keyring_source) if keyring_source is not None else default_loader()
        self._validator = ConfigurationValidator(self._settings, loader)

    @property
    def properties(self) -> EncryptionProperties:
        return self._properties

    def validate(self) -> list[ValidationResult]:
        """Return every validation failure; an empty list means the properties are usable."""
        return self._validator.validate(self._properties)

    def transform(self, source: BinaryIO, sink: BinaryIO) -> None:
        """
        Encrypt or decrypt everything in source into sink.

        Neither stream is closed.

        Raises:
            ValidationFailedError: If the properties are invalid.
            FormatError: If the input frame is malformed.
            CryptoError: If a cipher cannot be built or decryption fails.
        """
        config = self._validator.resolve(self._properties)
        try:
            encryptor = self._encryptor(config)
            if config.is_encrypt:
                encryptor.encrypt(source, sink)
            else:
                encryptor.decrypt(source, sink)
        finally:
            config.clear()

        logger.debug("Transformed content", mode=config.mode.value, method=config.method.name)

    def process(self, content: bytes) -> FlowOutcome:
        """
        Transform content and route the outcome.

        Returns:
            SUCCESS with the output bytes, or FAILURE with the original content
            and the error that caused it.
        """
        with io.BytesIO(content) as source, io.BytesIO() as sink:
            try:
                self.transform(source, sink)
            except EncryptContentError as e:
                logger.warning(
                    "Cannot transform content",
                    mode=str(self._properties.mode),
                    error=type(e).__name__,
                    reason=e.message,
                )
                return FlowOutcome.failure(content, e)
            output = sink.getvalue()

        logger.info("Processed content", size_in=len(content), size_out=len(output))
        return FlowOutcome.success(output)

    def _encryptor(self, config: EncryptionConfig) -> ContentEncryptor:
        method = config.method
        match (method.is_pgp, method.is_keyed_cipher):
            case (True, _):
                return OpenPGPEncryptor(
                    password=config.password,
                    public_key=config.public_key,
                    private_keyring=config.private_keyring,
                    cipher=config.pgp_cipher,
                    ascii_armor=config.ascii_armor,
                    settings=self._settings,
                )
            case (False, True):
                return KeyedEncryptor(
                    method,
                    key=config.raw_key,
                    password=config.password,
                    kdf=config.kdf,
                    settings=self._settings,
                )
            case _:
                return PasswordBasedEncryptor(method, config.kdf, config.password, self._settings)
