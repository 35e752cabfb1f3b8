"""
OpenPGP keyring loading with pgpy.

Public keyrings are parsed into immutable entries and cached process-wide,
keyed by a digest of their content, so a changed file is parsed again and an
unchanged one is not. Private keyrings are parsed and unlocked per call.
"""

import hashlib
from dataclasses import dataclass
from os import PathLike
from pathlib import Path

import pgpy
import structlog
from cryptography.hazmat.primitives.asymmetric import rsa
from pgpy.constants import PubKeyAlgorithm
from pgpy.errors import PGPDecryptionError, PGPError

from encrypt_content.core.cache import LRUCache
from encrypt_content.crypto.protocol import KeyringSource
from encrypt_content.crypto.secret import SecretValue
from encrypt_content.exceptions import (
    KeyringError,
    KeyringFormatError,
    KeyringNotFoundError,
    KeyringPassphraseError,
    PublicKeyNotFoundError,
)

logger = structlog.get_logger(__name__)

WILDCARD_KEY_ID = bytes(8)
_RSA_ENCRYPTION_ALGORITHMS = (PubKeyAlgorithm.RSAEncryptOrSign, PubKeyAlgorithm.RSAEncrypt)
_DEFAULT_CACHE_SIZE = 64


@dataclass(frozen=True, kw_only=True)
class PublicEncryptionKey:
    """
    A recipient's RSA encryption key resolved from a public keyring.

    Attributes:
        user_id: The user id that matched.
        key_id: 8-byte id of the (sub)key used for encryption.
        fingerprint: Fingerprint of the primary key.
        public_key: RSA public key of the encryption (sub)key.
    """

    user_id: str
    key_id: bytes
    fingerprint: str
    public_key: rsa.RSAPublicKey


@dataclass(frozen=True, kw_only=True)
class PrivateDecryptionKey:
    key_id: bytes
    private_key: rsa.RSAPrivateKey

    def __repr__(self) -> str:
        return f"PrivateDecryptionKey(key_id={self.key_id.hex()})"


@dataclass(frozen=True)
class PrivateKeyring:
    """Unlocked RSA secret keys from a private keyring."""

    keys: tuple[PrivateDecryptionKey, ...]

    def find(self, key_id: bytes) -> list[PrivateDecryptionKey]:
        """Keys matching a PKESK key id; the wildcard id matches every key."""
        if key_id == WILDCARD_KEY_ID:
            return list(self.keys)
        return [k for k in self.keys if k.key_id == key_id]

    def __len__(self) -> int:
        return len(self.keys)


@dataclass(frozen=True)
class _PublicKeyEntry:
    user_ids: tuple[str, ...]
    fingerprint: str
    encryption_key_id: bytes | None
    encryption_key: rsa.RSAPublicKey | None


class FileKeyringSource:
    """Reads keyrings from the filesystem."""

    def read(self, location: str | PathLike[str]) -> bytes:
        path = Path(location)
        try:
            return path.read_bytes()
        except FileNotFoundError as e:
            msg = f"FileNotFoundError: {path}"
            raise KeyringNotFoundError(msg, keyring=str(path)) from e
        except OSError as e:
            msg = f"Unable to read keyring: {e}"
            raise KeyringError(msg, keyring=str(path)) from e


class InMemoryKeyringSource:
    """Serves keyrings from a mapping of location to bytes."""

    def __init__(self, keyrings: dict[str, bytes] | None = None) -> None:
        self._keyrings = dict(keyrings or {})

    def add(self, location: str, data: bytes) -> None:
        self._keyrings[location] = data

    def read(self, location: str | PathLike[str]) -> bytes:
        key = str(location)
        if key not in self._keyrings:
            msg = f"FileNotFoundError: {key}"
            raise KeyringNotFoundError(msg, keyring=key)
        return self._keyrings[key]


_shared_public_cache: LRUCache[tuple[_PublicKeyEntry, ...]] = LRUCache(_DEFAULT_CACHE_SIZE)


class KeyringLoader:
    """
    Loads public encryption keys and private decryption keys.

    Example:
        loader = KeyringLoader()
        recipient = loader.load_public_key("pubring.gpg", "alice@example.com")
        keyring = loader.load_private_keyring("secring.gpg", SecretValue.from_string("passphrase"))
    """

    def __init__(
        self,
        source: KeyringSource | None = None,
        cache: LRUCache[tuple[_PublicKeyEntry, ...]] | None = None,
    ) -> None:
        """
        Args:
            source: Where keyring bytes come from; files by default.
            cache: Public keyring cache; the process-wide cache by default.
        """
        self._source = source or FileKeyringSource()
        self._cache = cache if cache is not None else _shared_public_cache

    def load_public_key(self, location: str | PathLike[str], user_id: str) -> PublicEncryptionKey:
        """
        Find the single RSA encryption key for a user id.

        An exact match on the full user id, the name or the email wins;
        otherwise user ids containing the given text are considered.

        Raises:
            KeyringNotFoundError: If the keyring does not exist.
            KeyringFormatError: If it is not a valid OpenPGP keyring.
            PublicKeyNotFoundError: If zero or several keys match, or the match has no RSA key.
        """
        entries = self._load_public_entries(location)

        matches = [e for e in entries if user_id in e.user_ids]
        if not matches:
            matches = [e for e in entries if any(user_id in uid for uid in e.user_ids)]

        if not matches:
            msg = "Could not find a public key with the given userId"
            raise PublicKeyNotFoundError(msg, keyring=str(location))
        if len(matches) > 1:
            msg = f"Found {len(matches)} public keys matching the given userId"
            raise PublicKeyNotFoundError(msg, keyring=str(location))

        entry = matches[0]
        if entry.encryption_key is None or entry.encryption_key_id is None:
            msg = "The public key for the given userId has no RSA encryption key"
            raise PublicKeyNotFoundError(msg, keyring=str(location))

        logger.debug("Resolved public key", fingerprint=entry.fingerprint, key_id=entry.encryption_key_id.hex())
        return PublicEncryptionKey(
            user_id=user_id,
            key_id=entry.encryption_key_id,
            fingerprint=entry.fingerprint,
            public_key=entry.encryption_key,
        )

    def load_private_keyring(self, location: str | PathLike[str], passphrase: SecretValue) -> PrivateKeyring:
        """
        Parse a secret keyring and unlock every key the passphrase opens.

        Raises:
            KeyringNotFoundError: If the keyring does not exist.
            KeyringFormatError: If it is not a valid OpenPGP keyring or holds no secret keys.
            KeyringPassphraseError: If the passphrase unlocks no secret key.
        """
        keys = [k for k in _parse_keys(self._source.read(location), location) if not k.is_public]
        if not keys:
            msg = "Keyring does not contain any secret keys"
            raise KeyringFormatError(msg, keyring=str(location))

        unlocked: list[PrivateDecryptionKey] = []
        opened = 0
        for key in keys:
            try:
                with key.unlock(passphrase.decode()):
                    unlocked.extend(_private_rsa_keys(key))
                    opened += 1
            except PGPDecryptionError:
                logger.debug("Passphrase does not unlock key", key_id=str(key.fingerprint.keyid))
            except (PGPError, NotImplementedError) as e:
                msg = f"Unable to unlock secret key: {e}"
                raise KeyringFormatError(msg, keyring=str(location)) from e

        if not opened:
            msg = "Private Keyring File could not be opened with the provided Private Keyring Passphrase"
            raise KeyringPassphraseError(msg, keyring=str(location))

        logger.debug("Unlocked private keyring", keys=len(unlocked))
        return PrivateKeyring(tuple(unlocked))

    def _load_public_entries(self, location: str | PathLike[str]) -> tuple[_PublicKeyEntry, ...]:
        data = self._source.read(location)
        digest = hashlib.sha256(data).hexdigest()
        return self._cache.get_or_load(digest, lambda: _public_entries(data, location))


def _parse_keys(data: bytes, location: str | PathLike[str]) -> list[pgpy.PGPKey]:
    keys: dict[str, pgpy.PGPKey] = {}
    try:
        loaded = pgpy.PGPKey.from_blob(data)
        first, others = loaded if isinstance(loaded, tuple) else (loaded, {})
        for key in (first, *others.values()):
            if key.fingerprint is None:
                continue
            existing = keys.get(str(key.fingerprint))
            # Prefer the secret version when both halves of a key are present.
            if existing is None or (existing.is_public and not key.is_public):
                keys[str(key.fingerprint)] = key
    except Exception as e:
        msg = f"Invalid OpenPGP keyring format: {e}"
        raise KeyringFormatError(msg, keyring=str(location)) from e

    if not keys:
        msg = "Invalid OpenPGP keyring format: no keys found"
        raise KeyringFormatError(msg, keyring=str(location))
    return list(keys.values())


def _public_entries(data: bytes, location: str | PathLike[str]) -> tuple[_PublicKeyEntry, ...]:
    entries = []
    for key in _parse_keys(data, location):
        public = key if key.is_public else key.pubkey
        encryption = _find_encryption_key(public)
        entries.append(
            _PublicKeyEntry(
                user_ids=tuple(_user_id_strings(public)),
                fingerprint=str(public.fingerprint),
                encryption_key_id=_key_id(encryption) if encryption is not None else None,
                encryption_key=_rsa_public_key(encryption) if encryption is not None else None,
            )
        )
    logger.debug("Parsed public keyring", keyring=str(location), keys=len(entries))
    return tuple(entries)


def _user_id_strings(key: pgpy.PGPKey) -> list[str]:
    result = []
    for uid in key.userids:
        if not uid.is_uid:
            continue
        parts = [uid.name]
        if uid.comment:
            parts.append(f"({uid.comment})")
        if uid.email:
            parts.append(f"<{uid.email}>")
        result.append(" ".join(p for p in parts if p))
        result.extend(v for v in (uid.name, uid.email) if v)
    return result


def _find_encryption_key(key: pgpy.PGPKey) -> pgpy.PGPKey | None:
    for subkey in key.subkeys.values():
        if subkey.key_algorithm in _RSA_ENCRYPTION_ALGORITHMS:
            return subkey
    if key.key_algorithm in _RSA_ENCRYPTION_ALGORITHMS:
        return key
    return None


def _key_id(key: pgpy.PGPKey) -> bytes:
    return bytes.fromhex(str(key.fingerprint.keyid))


def _rsa_public_key(key: pgpy.PGPKey) -> rsa.RSAPublicKey:
    material = key._key.keymaterial
    return rsa.RSAPublicNumbers(int(material.e), int(material.n)).public_key()


def _private_rsa_keys(key: pgpy.PGPKey) -> list[PrivateDecryptionKey]:
    """Extract RSA private keys from an unlocked primary key and its subkeys."""
    result = []
    for candidate in (key, *key.subkeys.values()):
        if candidate.key_algorithm not in _RSA_ENCRYPTION_ALGORITHMS:
            continue
        material = candidate._key.keymaterial
        p, q, d = int(material.p), int(material.q), int(material.d)
        numbers = rsa.RSAPrivateNumbers(
            p=p,
            q=q,
            d=d,
            dmp1=rsa.rsa_crt_dmp1(d, p),
            dmq1=rsa.rsa_crt_dmq1(d, q),
            iqmp=rsa.rsa_crt_iqmp(p, q),
            public_numbers=rsa.RSAPublicNumbers(int(material.e), int(material.n)),
        )
        result.append(PrivateDecryptionKey(key_id=_key_id(candidate), private_key=numbers.private_key()))
    return result


_default_loader: KeyringLoader | None = None


def default_loader() -> KeyringLoader:
    """File-backed loader sharing the process-wide public keyring cache."""
    global _default_loader
    if _default_loader is None:
        _default_loader = KeyringLoader()
    return _default_loader
