"""
Cryptographic operations for encrypt_content.

This module provides:
- Key derivation (OpenSSL, PKCS#5, PKCS#12, PBKDF2, bcrypt, scrypt, Argon2)
- Password-based and keyed cipher framing
- OpenPGP message encryption and decryption
- Keyring loading and secret handling
"""

from encrypt_content.crypto.ciphers import is_method_supported, is_pgp_cipher_supported
from encrypt_content.crypto.kdf import DerivedKey, derive_key
from encrypt_content.crypto.keyed import KeyedEncryptor
from encrypt_content.crypto.keyring import (
    FileKeyringSource,
    InMemoryKeyringSource,
    KeyringLoader,
    PrivateKeyring,
    PublicEncryptionKey,
)
from encrypt_content.crypto.openpgp import OpenPGPEncryptor, read_session_key_algorithm
from encrypt_content.crypto.password_based import PasswordBasedEncryptor
from encrypt_content.crypto.protocol import ContentEncryptor, KeyringSource
from encrypt_content.crypto.secret import SecretValue

__all__ = [
    "SecretValue",
    "ContentEncryptor",
    "KeyringSource",
    "DerivedKey",
    "derive_key",
    "is_method_supported",
    "is_pgp_cipher_supported",
    "PasswordBasedEncryptor",
    "KeyedEncryptor",
    "OpenPGPEncryptor",
    "read_session_key_algorithm",
    "KeyringLoader",
    "FileKeyringSource",
    "InMemoryKeyringSource",
    "PublicEncryptionKey",
    "PrivateKeyring",
]
