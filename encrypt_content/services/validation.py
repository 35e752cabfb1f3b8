"""
Configuration validation and method selection.

Turns raw EncryptionProperties into a resolved EncryptionConfig, or reports
every violated rule at once.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import TypeVar

import structlog

from encrypt_content.config import EncryptContentSettings
from encrypt_content.crypto.ciphers import is_method_supported, is_pgp_cipher_supported
from encrypt_content.crypto.keyring import KeyringLoader, PrivateKeyring, PublicEncryptionKey, default_loader
from encrypt_content.crypto.secret import SecretValue
from encrypt_content.exceptions import KeyringError, ValidationFailedError
from encrypt_content.models.methods import (
    KEYED_CIPHER_KEY_LENGTHS,
    KEYED_KDFS,
    PBE_KDFS,
    EncryptionMethod,
    KeyDerivationFunction,
)
from encrypt_content.models.pgp import DEFAULT_PGP_SYMMETRIC_CIPHER, PGP_SYMMETRIC_CIPHERS, SymmetricAlgorithm
from encrypt_content.models.plan import EncryptionConfig
from encrypt_content.models.properties import (
    ALLOW_WEAK_CRYPTO,
    ALLOWED,
    ENCRYPTION_ALGORITHM,
    KEY_DERIVATION_FUNCTION,
    MODE,
    NOT_ALLOWED,
    PASSWORD,
    PGP_SYMMETRIC_ENCRYPTION_CIPHER,
    PRIVATE_KEYRING,
    PRIVATE_KEYRING_PASSPHRASE,
    PUBLIC_KEY_USERID,
    PUBLIC_KEYRING,
    RAW_KEY_HEX,
    EncryptionProperties,
    Mode,
    PropertyDescriptor,
    ValidationResult,
)

logger = structlog.get_logger(__name__)

E = TypeVar("E", bound=Enum)


@dataclass
class _Resolution:
    """Values resolved so far; only turned into an EncryptionConfig when no rule failed."""

    results: list[ValidationResult] = field(default_factory=list)
    mode: Mode | None = None
    method: EncryptionMethod | None = None
    kdf: KeyDerivationFunction | None = None
    allow_weak_crypto: bool = False
    password: SecretValue | None = None
    raw_key: SecretValue | None = None
    public_key: PublicEncryptionKey | None = None
    private_keyring: PrivateKeyring | None = None
    pgp_cipher: SymmetricAlgorithm = DEFAULT_PGP_SYMMETRIC_CIPHER

    def fail(self, subject: PropertyDescriptor, explanation: str, value: object = None) -> None:
        self.results.append(
            ValidationResult(
                subject=subject.name,
                explanation=explanation,
                input=None if value is None else str(value),
            )
        )

    def discard_secrets(self) -> None:
        """Zero the secrets and drop the unlocked keys; used when no plan is built."""
        for secret in (self.password, self.raw_key):
            if secret is not None:
                secret.clear()
        self.private_keyring = None


class ConfigurationValidator:
    """
    Validates properties and resolves them into an execution plan.

    Example:
        validator = ConfigurationValidator()
        for result in validator.validate(properties):
            print(result)
        config = validator.resolve(properties)
    """

    def __init__(
        self,
        settings: EncryptContentSettings | None = None,
        keyring_loader: KeyringLoader | None = None,
    ) -> None:
        """
        Args:
            settings: Password policy and key length policy.
            keyring_loader: Loads keyrings named by the properties; the shared file loader by default.
        """
        self._settings = settings or EncryptContentSettings()
        self._keyrings = keyring_loader or default_loader()

    def validate(self, properties: EncryptionProperties) -> list[ValidationResult]:
        """
        Check every rule and return all failures (empty when valid).

        Keyrings named by the properties are loaded to check them.
        """
        resolution = self._evaluate(properties)
        resolution.discard_secrets()
        return resolution.results

    def resolve(self, properties: EncryptionProperties) -> EncryptionConfig:
        """
        Validate and build the execution plan.

        Raises:
            ValidationFailedError: Carrying every failed rule.
        """
        resolution = self._evaluate(properties)
        if resolution.results:
            resolution.discard_secrets()
            raise ValidationFailedError(resolution.results)

        config = EncryptionConfig(
            mode=resolution.mode,
            method=resolution.method,
            kdf=resolution.kdf,
            password=resolution.password,
            raw_key=resolution.raw_key,
            public_key=resolution.public_key,
            private_keyring=resolution.private_keyring,
            pgp_cipher=resolution.pgp_cipher,
            allow_weak_crypto=resolution.allow_weak_crypto,
        )
        logger.debug(
            "Resolved configuration",
            mode=config.mode.value,
            method=config.method.name,
            kdf=config.kdf.name,
        )
        return config

    def _evaluate(self, properties: EncryptionProperties) -> _Resolution:
        r = _Resolution()
        r.mode = _parse_enum(r, MODE, Mode, properties.mode)
        r.method = _parse_enum(r, ENCRYPTION_ALGORITHM, EncryptionMethod, properties.encryption_algorithm)
        r.kdf = _parse_enum(r, KEY_DERIVATION_FUNCTION, KeyDerivationFunction, properties.key_derivation_function)
        r.allow_weak_crypto = self._parse_allow_weak_crypto(r, properties.allow_weak_crypto)

        if r.method is None:
            return r

        self._check_policy(r, r.method)
        if r.method.is_pgp:
            self._validate_pgp(r, properties)
        elif r.method.is_keyed_cipher:
            self._validate_keyed(r, properties)
        else:
            self._validate_password_based(r, properties)
        return r

    def _check_policy(self, r: _Resolution, method: EncryptionMethod) -> None:
        limit = self._settings.max_allowed_key_length
        if method.is_unlimited_strength and limit is not None and method.key_length > limit:
            r.fail(
                ENCRYPTION_ALGORITHM,
                f"{method.algorithm} requires a {method.key_length}-bit key but the cryptographic "
                f"policy allows at most {limit} bits",
                method.name,
            )
        if not is_method_supported(method):
            r.fail(
                ENCRYPTION_ALGORITHM,
                f"{method.algorithm} is not supported by the installed cryptography backend",
                method.name,
            )

    def _validate_pgp(self, r: _Resolution, properties: EncryptionProperties) -> None:
        method = r.method
        r.pgp_cipher = self._parse_pgp_cipher(r, properties.pgp_symmetric_encryption_cipher)

        if properties.password:
            # Symmetric PGP: keyring fields are ignored and the length rule does not apply.
            r.password = SecretValue.from_string(properties.password)
            return
        if r.mode is None:
            return

        if r.mode is Mode.ENCRYPT:
            keyring, user_id = properties.public_keyring, properties.public_key_user_id
            if not keyring or not user_id:
                r.fail(
                    PUBLIC_KEYRING,
                    f"{method.algorithm} encryption without a {PASSWORD.display_name} requires both "
                    f"{PUBLIC_KEYRING.display_name} and {PUBLIC_KEY_USERID.display_name}",
                )
                return
            try:
                r.public_key = self._keyrings.load_public_key(keyring, user_id)
            except KeyringError as e:
                r.fail(PUBLIC_KEYRING, f"{type(e).__name__}: {e.message}", keyring)
            return

        keyring, passphrase = properties.private_keyring, properties.private_keyring_passphrase
        if not keyring or not passphrase:
            r.fail(
                PRIVATE_KEYRING,
                f"{method.algorithm} decryption without a {PASSWORD.display_name} requires both "
                f"{PRIVATE_KEYRING.display_name} and {PRIVATE_KEYRING_PASSPHRASE.display_name}",
            )
            return
        try:
            with SecretValue.from_string(passphrase) as secret:
                r.private_keyring = self._keyrings.load_private_keyring(keyring, secret)
        except KeyringError as e:
            r.fail(PRIVATE_KEYRING, f"{type(e).__name__}: {e.message}", keyring)

    def _parse_pgp_cipher(self, r: _Resolution, value: int | str | None) -> SymmetricAlgorithm:
        if value is None or value == "":
            return DEFAULT_PGP_SYMMETRIC_CIPHER
        try:
            cipher_id = int(value)
        except (TypeError, ValueError):
            r.fail(PGP_SYMMETRIC_ENCRYPTION_CIPHER, "PGP Symmetric Cipher must be an integer", value)
            return DEFAULT_PGP_SYMMETRIC_CIPHER

        allowed = {int(c): c for c in PGP_SYMMETRIC_CIPHERS}
        if cipher_id not in allowed:
            ids = ", ".join(str(i) for i in allowed)
            r.fail(
                PGP_SYMMETRIC_ENCRYPTION_CIPHER,
                f"PGP Symmetric Cipher {cipher_id} is not one of the allowed values [{ids}]",
                value,
            )
            return DEFAULT_PGP_SYMMETRIC_CIPHER

        cipher = allowed[cipher_id]
        if not is_pgp_cipher_supported(cipher):
            r.fail(
                PGP_SYMMETRIC_ENCRYPTION_CIPHER,
                f"PGP Symmetric Cipher {cipher.name} ({cipher_id}) is not supported by the installed "
                "cryptography backend",
                value,
            )
        return cipher

    def _validate_keyed(self, r: _Resolution, properties: EncryptionProperties) -> None:
        method, kdf = r.method, r.kdf
        if kdf is None:
            return
        if kdf not in KEYED_KDFS:
            r.fail(
                KEY_DERIVATION_FUNCTION,
                f"Key Derivation Function is required to be {_names(KEYED_KDFS)} when using algorithm "
                f"{method.algorithm}. See Admin Guide.",
                kdf.name,
            )
            return

        if kdf is KeyDerivationFunction.NONE:
            self._validate_raw_key(r, properties.raw_key_hex)
            return

        if not properties.password:
            r.fail(
                PASSWORD,
                f"Password is required when using algorithm {method.algorithm} and KDF {kdf}. "
                "See Admin Guide.",
            )
            return
        self._accept_password(r, properties.password)

    def _validate_raw_key(self, r: _Resolution, raw_key_hex: str | None) -> None:
        method = r.method
        if not raw_key_hex:
            r.fail(
                RAW_KEY_HEX,
                f"{RAW_KEY_HEX.display_name} is required when using algorithm {method.algorithm} "
                f"and KDF {r.kdf}. See Admin Guide.",
            )
            return
        try:
            key = SecretValue.from_hex(raw_key_hex)
        except ValueError:
            r.fail(RAW_KEY_HEX, f"{RAW_KEY_HEX.display_name} must be a valid hexadecimal string")
            return

        bits = key.bit_length
        limit = self._settings.max_allowed_key_length
        if bits not in KEYED_CIPHER_KEY_LENGTHS:
            lengths = ", ".join(str(b) for b in KEYED_CIPHER_KEY_LENGTHS)
            r.fail(RAW_KEY_HEX, f"Key must be {lengths} bits, was {bits} bits")
        elif limit is not None and bits > limit:
            r.fail(RAW_KEY_HEX, f"Key length {bits} exceeds the policy maximum of {limit} bits")
        else:
            r.raw_key = key
            return
        key.clear()

    def _validate_password_based(self, r: _Resolution, properties: EncryptionProperties) -> None:
        method, kdf = r.method, r.kdf
        if not properties.password:
            r.fail(PASSWORD, f"Password is required when using algorithm {method.algorithm}. See Admin Guide.")
            return

        self._accept_password(r, properties.password)
        if kdf is not None and kdf not in PBE_KDFS:
            r.fail(
                KEY_DERIVATION_FUNCTION,
                f"Key Derivation Function is required to be {_names(PBE_KDFS)} when using algorithm "
                f"{method.algorithm}. See Admin Guide.",
                kdf.name,
            )

    def _accept_password(self, r: _Resolution, password: str) -> None:
        minimum = self._settings.min_password_length
        if len(password.encode("utf-8")) < minimum and not r.allow_weak_crypto:
            r.fail(
                PASSWORD,
                f"Password length less than {minimum} characters is potentially unsafe. See Admin Guide.",
            )
        r.password = SecretValue.from_string(password)

    @staticmethod
    def _parse_allow_weak_crypto(r: _Resolution, value: bool | str) -> bool:
        if isinstance(value, bool):
            return value
        if value == ALLOWED:
            return True
        if value == NOT_ALLOWED:
            return False
        r.fail(ALLOW_WEAK_CRYPTO, f"Value must be '{ALLOWED}' or '{NOT_ALLOWED}'", value)
        return False


def _parse_enum(r: _Resolution, subject: PropertyDescriptor, enum_type: type[E], value: object) -> E | None:
    """Accept a member, a member name, or the member's host-facing string."""
    if isinstance(value, enum_type):
        return value
    if isinstance(value, str):
        if value in enum_type.__members__:
            return enum_type[value]
        for member in enum_type:
            if value == str(member) or value == member.value:
                return member
    r.fail(subject, f"'{value}' is not a known {subject.display_name}", value)
    return None


def _names(kdfs: tuple[KeyDerivationFunction, ...]) -> str:
    return ", ".join(k.name for k in kdfs)
