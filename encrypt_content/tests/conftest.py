from collections.abc import Callable
from pathlib import Path

import pgpy
import pytest
from pgpy.constants import (
    CompressionAlgorithm,
    HashAlgorithm,
    KeyFlags,
    PubKeyAlgorithm,
    SymmetricKeyAlgorithm,
)

from encrypt_content.config import EncryptContentSettings
from encrypt_content.tests.constants import KEYRING_PASSPHRASE, RESOURCES


def _create_test_key(
    passphrase: str, name: str = "Test User", comment: str = "test", email: str = "test@test.com"
) -> pgpy.PGPKey:
    key = pgpy.PGPKey.new(PubKeyAlgorithm.RSAEncryptOrSign, 2048)
    uid = pgpy.PGPUID.new(name, comment=comment, email=email)
    key.add_uid(
        uid,
        usage={KeyFlags.Sign, KeyFlags.EncryptCommunications, KeyFlags.EncryptStorage},
        hashes=[HashAlgorithm.SHA256],
        ciphers=[SymmetricKeyAlgorithm.AES256],
        compression=[CompressionAlgorithm.Uncompressed],
    )
    key.protect(passphrase, SymmetricKeyAlgorithm.AES256, HashAlgorithm.SHA256)
    return key


@pytest.fixture(scope="session")
def pgp_key() -> pgpy.PGPKey:
    return _create_test_key(KEYRING_PASSPHRASE)


@pytest.fixture(scope="session")
def other_pgp_key() -> pgpy.PGPKey:
    return _create_test_key("anotherPassphrase", name="Other User", comment="", email="other@test.com")


@pytest.fixture
def resource() -> Callable[[str], Path]:
    def _resource(name: str) -> Path:
        return RESOURCES / name

    return _resource


@pytest.fixture
def fast_settings() -> EncryptContentSettings:
    """Minimal work factors so strong KDF tests stay quick."""
    return EncryptContentSettings(
        pbkdf2_iterations=1000,
        bcrypt_work_factor=4,
        scrypt_n=1024,
        argon2_time_cost=1,
        argon2_memory_cost=1024,
        pgp_s2k_count=1024,
    )


@pytest.fixture
def public_keyring(tmp_path: Path, pgp_key: pgpy.PGPKey) -> Path:
    path = tmp_path / "pubring.gpg"
    path.write_bytes(bytes(pgp_key.pubkey))
    return path


@pytest.fixture
def private_keyring(tmp_path: Path, pgp_key: pgpy.PGPKey) -> Path:
    path = tmp_path / "secring.gpg"
    path.write_bytes(bytes(pgp_key))
    return path


@pytest.fixture
def shared_public_keyring(tmp_path: Path, pgp_key: pgpy.PGPKey, other_pgp_key: pgpy.PGPKey) -> Path:
    path = tmp_path / "shared-pubring.gpg"
    path.write_bytes(bytes(pgp_key.pubkey) + bytes(other_pgp_key.pubkey))
    return path
