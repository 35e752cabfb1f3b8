"""
Raw configuration record supplied by the host, and validation results.
"""

from collections.abc import Mapping
from dataclasses import dataclass, fields
from enum import Enum
from os import PathLike
from typing import Any, Self

from encrypt_content.models.methods import EncryptionMethod, KeyDerivationFunction
from encrypt_content.models.pgp import DEFAULT_PGP_SYMMETRIC_CIPHER


class Mode(Enum):
    ENCRYPT = "Encrypt"
    DECRYPT = "Decrypt"


@dataclass(frozen=True)
class PropertyDescriptor:
    """Host-facing name of a configuration field."""

    name: str
    display_name: str
    field: str


MODE = PropertyDescriptor("Mode", "Mode", "mode")
ENCRYPTION_ALGORITHM = PropertyDescriptor(
    "Encryption Algorithm", "Encryption Algorithm", "encryption_algorithm"
)
KEY_DERIVATION_FUNCTION = PropertyDescriptor(
    "key-derivation-function", "Key Derivation Function", "key_derivation_function"
)
PASSWORD = PropertyDescriptor("Password", "Password", "password")
RAW_KEY_HEX = PropertyDescriptor("raw-key-hex", "Raw Key (hexadecimal)", "raw_key_hex")
PUBLIC_KEYRING = PropertyDescriptor("public-keyring-file", "Public Keyring File", "public_keyring")
PUBLIC_KEY_USERID = PropertyDescriptor("public-key-user-id", "Public Key User Id", "public_key_user_id")
PRIVATE_KEYRING = PropertyDescriptor("private-keyring-file", "Private Keyring File", "private_keyring")
PRIVATE_KEYRING_PASSPHRASE = PropertyDescriptor(
    "private-keyring-passphrase", "Private Keyring Passphrase", "private_keyring_passphrase"
)
PGP_SYMMETRIC_ENCRYPTION_CIPHER = PropertyDescriptor(
    "pgp-symmetric-cipher", "PGP Symmetric Cipher", "pgp_symmetric_encryption_cipher"
)
ALLOW_WEAK_CRYPTO = PropertyDescriptor(
    "allow-weak-crypto", "Allow insecure cryptographic modes", "allow_weak_crypto"
)

PROPERTY_DESCRIPTORS = (
    MODE,
    ENCRYPTION_ALGORITHM,
    KEY_DERIVATION_FUNCTION,
    PASSWORD,
    RAW_KEY_HEX,
    PUBLIC_KEYRING,
    PUBLIC_KEY_USERID,
    PRIVATE_KEYRING,
    PRIVATE_KEYRING_PASSPHRASE,
    PGP_SYMMETRIC_ENCRYPTION_CIPHER,
    ALLOW_WEAK_CRYPTO,
)

ALLOWED = "allowed"
NOT_ALLOWED = "not-allowed"


@dataclass(frozen=True, kw_only=True)
class EncryptionProperties:
    """
    Unvalidated configuration for one invocation.

    Enum-valued fields accept either the enum member or its name, the way a
    host's property store hands them over. Nothing is checked here; see
    ConfigurationValidator.
    """

    mode: Mode | str = Mode.ENCRYPT
    encryption_algorithm: EncryptionMethod | str = EncryptionMethod.AES_GCM
    key_derivation_function: KeyDerivationFunction | str = KeyDerivationFunction.NONE
    password: str | None = None
    raw_key_hex: str | None = None
    public_keyring: str | PathLike[str] | None = None
    public_key_user_id: str | None = None
    private_keyring: str | PathLike[str] | None = None
    private_keyring_passphrase: str | None = None
    pgp_symmetric_encryption_cipher: int | str | None = DEFAULT_PGP_SYMMETRIC_CIPHER.value
    allow_weak_crypto: bool | str = False

    def __repr__(self) -> str:
        shown = []
        for f in fields(self):
            value = getattr(self, f.name)
            if value is not None and f.name in ("password", "private_keyring_passphrase", "raw_key_hex"):
                value = "<redacted>"
            shown.append(f"{f.name}={value!r}")
        return f"EncryptionProperties({', '.join(shown)})"

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any]) -> Self:
        """
        Build from host property names (or field names).

        Empty strings count as unset, like an unset property in the host UI.

        Args:
            values: Property name to value.

        Returns:
            EncryptionProperties with unknown keys rejected.

        Raises:
            KeyError: If a key is neither a property name nor a field name.
        """
        by_name = {d.name: d.field for d in PROPERTY_DESCRIPTORS}
        by_name.update({d.field: d.field for d in PROPERTY_DESCRIPTORS})
        kwargs: dict[str, Any] = {}
        for key, value in values.items():
            if key not in by_name:
                msg = f"Unknown property: {key}"
                raise KeyError(msg)
            if value == "":
                continue
            kwargs[by_name[key]] = value
        return cls(**kwargs)


@dataclass(frozen=True, kw_only=True)
class ValidationResult:
    """
    Outcome of a single validation rule.

    Attributes:
        subject: Host property name the result is about.
        explanation: Human readable reason.
        valid: Whether the rule passed; only failures are reported by the validator.
        input: Offending input, when it is safe to show.
    """

    subject: str
    explanation: str
    valid: bool = False
    input: str | None = None

    def __str__(self) -> str:
        if self.valid:
            return f"'{self.subject}' is valid"
        return f"'{self.subject}' is invalid because {self.explanation}"
