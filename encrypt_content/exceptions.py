"""
encrypt_content exception hierarchy.

All exceptions inherit from EncryptContentError for easy catching. The three
branches follow where a problem is detected:

- ConfigurationError: bad settings, found during validation, never while streaming.
- FormatError: the input does not have the expected frame or packet layout.
- CryptoError: a cipher could not be built, or decryption/integrity checks failed.
"""

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from encrypt_content.models.properties import ValidationResult


class EncryptContentError(Exception):
    """Base exception for all encrypt_content errors."""

    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message)
        self.message = message
        self.context = context

    def __str__(self) -> str:
        if self.context:
            ctx = ", ".join(f"{k}={v!r}" for k, v in self.context.items())
            return f"{self.message} ({ctx})"
        return self.message


class ConfigurationError(EncryptContentError):
    """Settings are missing, invalid or conflicting."""


class ValidationFailedError(ConfigurationError):
    """Validation produced one or more errors; all of them are attached."""

    def __init__(self, results: "list[ValidationResult]") -> None:
        summary = "; ".join(str(r) for r in results)
        super().__init__(f"Configuration is invalid: {summary}")
        self.results = results


class KeyringError(ConfigurationError):
    """An OpenPGP keyring could not be used."""

    def __init__(self, message: str, *, keyring: str | None = None) -> None:
        super().__init__(message, keyring=keyring)
        self.keyring = keyring


class KeyringNotFoundError(KeyringError):
    """The keyring file does not exist."""


class KeyringFormatError(KeyringError):
    """The keyring file is not a valid OpenPGP keyring."""


class PublicKeyNotFoundError(KeyringError):
    """No single public key in the keyring matches the user id."""


class KeyringPassphraseError(KeyringError):
    """The passphrase does not unlock any secret key in the keyring."""


class FormatError(EncryptContentError):
    """Input does not have the expected frame or packet layout."""


class UndersizedInputError(FormatError):
    """Input is too short to contain the expected header."""

    def __init__(self, message: str, *, expected: int, actual: int) -> None:
        super().__init__(message, expected=expected, actual=actual)
        self.expected = expected
        self.actual = actual


class PGPFormatError(FormatError):
    """Malformed OpenPGP packet stream."""


class ArmorError(PGPFormatError):
    """Malformed ASCII armor or checksum mismatch."""


class CryptoError(EncryptContentError):
    """Cryptographic operation failed."""


class UnsupportedAlgorithmError(CryptoError):
    """The cipher backend cannot build the requested algorithm."""


class CipherInitializationError(CryptoError):
    """Cipher could not be initialized with the given key material."""


class DecryptionError(CryptoError):
    """Decryption failed (wrong key, bad padding, truncated data)."""


class IntegrityError(CryptoError):
    """Integrity verification failed (MDC or authentication tag mismatch)."""


class SessionKeyError(CryptoError):
    """Failed to recover or use an OpenPGP session key."""
