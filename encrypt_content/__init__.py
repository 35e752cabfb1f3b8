"""
Stream content encryption and decryption.

Password-based ciphers compatible with `openssl enc`, keyed AES with raw keys
or strong key derivation, and OpenPGP messages (symmetric or RSA keyrings).

Example:
    ```python
    from encrypt_content import EncryptContent, EncryptionProperties, Mode

    properties = EncryptionProperties(
        mode=Mode.DECRYPT,
        encryption_algorithm="PGP",
        password="Hello, World!",
    )
    outcome = EncryptContent(properties).process(Path("text.txt.gpg").read_bytes())
    if outcome.is_success:
        print(outcome.content.decode())
    ```
"""

from encrypt_content.config import EncryptContentSettings
from encrypt_content.exceptions import (
    ArmorError,
    CipherInitializationError,
    ConfigurationError,
    CryptoError,
    DecryptionError,
    EncryptContentError,
    FormatError,
    IntegrityError,
    KeyringError,
    KeyringFormatError,
    KeyringNotFoundError,
    KeyringPassphraseError,
    PGPFormatError,
    PublicKeyNotFoundError,
    SessionKeyError,
    UndersizedInputError,
    UnsupportedAlgorithmError,
    ValidationFailedError,
)
from encrypt_content.models.flow import FlowOutcome, Relationship
from encrypt_content.models.methods import EncryptionMethod, KeyDerivationFunction
from encrypt_content.models.properties import EncryptionProperties, Mode, ValidationResult
from encrypt_content.processor import EncryptContent

__version__ = "0.1.0"

__all__ = [
    # Main entry point
    "EncryptContent",
    "EncryptContentSettings",
    # Models
    "EncryptionProperties",
    "EncryptionMethod",
    "KeyDerivationFunction",
    "Mode",
    "ValidationResult",
    "FlowOutcome",
    "Relationship",
    # Exceptions
    "EncryptContentError",
    "ConfigurationError",
    "ValidationFailedError",
    "KeyringError",
    "KeyringNotFoundError",
    "KeyringFormatError",
    "PublicKeyNotFoundError",
    "KeyringPassphraseError",
    "FormatError",
    "UndersizedInputError",
    "PGPFormatError",
    "ArmorError",
    "CryptoError",
    "UnsupportedAlgorithmError",
    "CipherInitializationError",
    "DecryptionError",
    "IntegrityError",
    "SessionKeyError",
]
