"""
Domain models for encrypt_content.

Catalogs are closed enums; records are immutable (frozen) dataclasses.
"""

from encrypt_content.models.flow import FlowOutcome, Relationship
from encrypt_content.models.methods import (
    KEYED_KDFS,
    PBE_KDFS,
    BlockMode,
    EncryptionMethod,
    KeyDerivationFunction,
    PBEScheme,
)
from encrypt_content.models.pgp import (
    DEFAULT_PGP_SYMMETRIC_CIPHER,
    PGP_SYMMETRIC_CIPHERS,
    CompressionAlgorithm,
    HashAlgorithm,
    LiteralData,
    PacketTag,
    PublicKeyAlgorithm,
    SymmetricAlgorithm,
)
from encrypt_content.models.plan import EncryptionConfig
from encrypt_content.models.properties import (
    ALLOWED,
    NOT_ALLOWED,
    EncryptionProperties,
    Mode,
    PropertyDescriptor,
    ValidationResult,
)

__all__ = [
    # Catalogs
    "EncryptionMethod",
    "KeyDerivationFunction",
    "BlockMode",
    "PBEScheme",
    "PBE_KDFS",
    "KEYED_KDFS",
    # OpenPGP
    "SymmetricAlgorithm",
    "PublicKeyAlgorithm",
    "HashAlgorithm",
    "CompressionAlgorithm",
    "PacketTag",
    "LiteralData",
    "PGP_SYMMETRIC_CIPHERS",
    "DEFAULT_PGP_SYMMETRIC_CIPHER",
    # Configuration
    "Mode",
    "EncryptionProperties",
    "PropertyDescriptor",
    "ValidationResult",
    "ALLOWED",
    "NOT_ALLOWED",
    "EncryptionConfig",
    # Outcome
    "FlowOutcome",
    "Relationship",
]
