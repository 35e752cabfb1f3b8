"""
Resolved, validated execution plan for one invocation.
"""

from dataclasses import dataclass
from typing import TYPE_CHECKING

from encrypt_content.crypto.secret import SecretValue
from encrypt_content.models.methods import EncryptionMethod, KeyDerivationFunction
from encrypt_content.models.pgp import DEFAULT_PGP_SYMMETRIC_CIPHER, SymmetricAlgorithm
from encrypt_content.models.properties import Mode

if TYPE_CHECKING:
    from encrypt_content.crypto.keyring import PrivateKeyring, PublicEncryptionKey


@dataclass(frozen=True, kw_only=True, eq=False)
class EncryptionConfig:
    """
    A configuration that passed validation.

    Built by ConfigurationValidator.resolve(); exactly one key source is set:
    a password, a raw key, a recipient public key (PGP encrypt) or an unlocked
    private keyring (PGP decrypt).

    Attributes:
        mode: Encrypt or decrypt.
        method: Encryption method.
        kdf: Key derivation function (ignored for PGP).
        password: Password for password-based, strong-KDF keyed or symmetric PGP.
        raw_key: Raw key for keyed ciphers with KDF NONE.
        public_key: Recipient key for public-key PGP encryption.
        private_keyring: Unlocked keys for public-key PGP decryption.
        pgp_cipher: Symmetric algorithm declared on PGP encrypt.
        allow_weak_crypto: Whether weak passwords were accepted.
    """

    mode: Mode
    method: EncryptionMethod
    kdf: KeyDerivationFunction = KeyDerivationFunction.NONE
    password: SecretValue | None = None
    raw_key: SecretValue | None = None
    public_key: "PublicEncryptionKey | None" = None
    private_keyring: "PrivateKeyring | None" = None
    pgp_cipher: SymmetricAlgorithm = DEFAULT_PGP_SYMMETRIC_CIPHER
    allow_weak_crypto: bool = False

    def __post_init__(self) -> None:
        sources = [
            s for s in (self.password, self.raw_key, self.public_key, self.private_keyring) if s is not None
        ]
        if len(sources) != 1:
            msg = f"Exactly one key source must be set, got {len(sources)}"
            raise ValueError(msg)
        if self.raw_key is not None and not (
            self.method.is_keyed_cipher and self.kdf is KeyDerivationFunction.NONE
        ):
            msg = f"A raw key requires a keyed cipher with KDF None, not {self.method.name}/{self.kdf.name}"
            raise ValueError(msg)
        if (self.public_key is not None or self.private_keyring is not None) and not self.method.is_pgp:
            msg = f"Keyrings are only used with PGP, not {self.method.name}"
            raise ValueError(msg)
        if self.public_key is not None and self.mode is not Mode.ENCRYPT:
            msg = "A public key is only used to encrypt"
            raise ValueError(msg)
        if self.private_keyring is not None and self.mode is not Mode.DECRYPT:
            msg = "A private keyring is only used to decrypt"
            raise ValueError(msg)
        if self.password is not None and self.method.is_keyed_cipher and not self.kdf.is_strong:
            msg = f"A password with {self.method.name} requires a strong KDF, not {self.kdf.name}"
            raise ValueError(msg)

    @property
    def ascii_armor(self) -> bool:
        return self.method.uses_ascii_armor

    @property
    def is_encrypt(self) -> bool:
        return self.mode is Mode.ENCRYPT

    def clear(self) -> None:
        """Zero the secrets held by this plan."""
        for secret in (self.password, self.raw_key):
            if secret is not None:
                secret.clear()
