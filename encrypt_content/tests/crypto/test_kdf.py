import hashlib

import pytest

from encrypt_content.config import EncryptContentSettings
from encrypt_content.crypto.kdf import (
    DerivedKey,
    derive_key,
    evp_bytes_to_key,
    generate_salt,
    pbkdf1,
    pkcs12_kdf,
    pkcs12_password,
    salt_length,
)
from encrypt_content.exceptions import UnsupportedAlgorithmError
from encrypt_content.models.methods import EncryptionMethod, KeyDerivationFunction

PASSWORD = b"ThisIsAPasswordThatIsLongerThanSixteenCharacters"
SALT = bytes(range(16))


def test_evp_bytes_to_key_without_salt_starts_with_md5_of_password() -> None:
    derived = evp_bytes_to_key(b"password", b"", "md5", 32, 16)

    first = hashlib.md5(b"password").digest()
    second = hashlib.md5(first + b"password").digest()
    assert derived.key == first + second
    assert len(derived.iv) == 16


def test_pbkdf1_splits_digest_into_key_and_iv() -> None:
    derived = pbkdf1(b"password", b"saltsalt", "md5", 1)

    digest = hashlib.md5(b"passwordsaltsalt").digest()
    assert derived.key == digest[:8]
    assert derived.iv == digest[8:]


def test_pkcs12_kdf_known_vectors() -> None:
    password = pkcs12_password(b"smeg")
    salt = bytes.fromhex("0a58cf64530d823f")

    key = pkcs12_kdf(password, salt, 1, 1, 24, "sha1")
    iv = pkcs12_kdf(password, salt, 2, 1, 8, "sha1")

    assert key.hex() == "8aaae6297b6cb04642ab5b077851284eb7128f1a2a7fbca3"
    assert iv.hex() == "79993dfe048d3b76"


def test_pkcs12_password_is_null_terminated_bmp_string() -> None:
    assert pkcs12_password(b"ab") == b"\x00a\x00b\x00\x00"
    assert pkcs12_password(b"") == b""


@pytest.mark.parametrize(
    ("kdf", "method", "expected"),
    [
        (KeyDerivationFunction.NIFI_LEGACY, EncryptionMethod.MD5_128AES, 16),
        (KeyDerivationFunction.NIFI_LEGACY, EncryptionMethod.MD5_DES, 8),
        (KeyDerivationFunction.NIFI_LEGACY, EncryptionMethod.SHA_128RC4, 8),
        (KeyDerivationFunction.OPENSSL_EVP_BYTES_TO_KEY, EncryptionMethod.MD5_128AES, 8),
        (KeyDerivationFunction.BCRYPT, EncryptionMethod.AES_GCM, 16),
        (KeyDerivationFunction.NONE, EncryptionMethod.AES_GCM, 0),
    ],
)
def test_salt_length(kdf: KeyDerivationFunction, method: EncryptionMethod, expected: int) -> None:
    assert salt_length(kdf, method) == expected
    assert len(generate_salt(kdf, method)) == expected


@pytest.mark.parametrize(
    "method",
    [
        EncryptionMethod.MD5_128AES,
        EncryptionMethod.MD5_DES,
        EncryptionMethod.SHA1_DES,
        EncryptionMethod.SHA_128AES,
        EncryptionMethod.SHA256_256AES,
        EncryptionMethod.SHA_3KEYTRIPLEDES,
        EncryptionMethod.SHA_128RC4,
    ],
    ids=lambda m: m.name,
)
def test_legacy_kdf_is_deterministic_and_sized(method: EncryptionMethod) -> None:
    salt = SALT[: method.legacy_salt_length]

    first = derive_key(PASSWORD, salt, KeyDerivationFunction.NIFI_LEGACY, method)
    second = derive_key(PASSWORD, salt, KeyDerivationFunction.NIFI_LEGACY, method)

    assert first == second
    expected_key = 8 if method.pbe_scheme.value == "pkcs5v1" else method.key_length // 8
    assert len(first.key) == expected_key
    assert len(first.iv) == method.block_size


def test_openssl_kdf_matches_evp_bytes_to_key() -> None:
    method = EncryptionMethod.MD5_256AES

    derived = derive_key(PASSWORD, SALT[:8], KeyDerivationFunction.OPENSSL_EVP_BYTES_TO_KEY, method)

    assert derived == evp_bytes_to_key(PASSWORD, SALT[:8], "md5", 32, 16)


def test_pbkdf2_matches_hashlib(fast_settings: EncryptContentSettings) -> None:
    derived = derive_key(PASSWORD, SALT, KeyDerivationFunction.PBKDF2, EncryptionMethod.AES_GCM, fast_settings)

    assert derived.key == hashlib.pbkdf2_hmac("sha512", PASSWORD, SALT, 1000, 16)
    assert derived.iv == b""


def test_scrypt_matches_hashlib(fast_settings: EncryptContentSettings) -> None:
    derived = derive_key(PASSWORD, SALT, KeyDerivationFunction.SCRYPT, EncryptionMethod.AES_GCM, fast_settings)

    assert derived.key == hashlib.scrypt(PASSWORD, salt=SALT, n=1024, r=8, p=1, dklen=16)


def test_argon2_is_deterministic(fast_settings: EncryptContentSettings) -> None:
    first = derive_key(PASSWORD, SALT, KeyDerivationFunction.ARGON2, EncryptionMethod.AES_GCM, fast_settings)
    second = derive_key(PASSWORD, SALT, KeyDerivationFunction.ARGON2, EncryptionMethod.AES_GCM, fast_settings)
    other = derive_key(PASSWORD, bytes(16), KeyDerivationFunction.ARGON2, EncryptionMethod.AES_GCM, fast_settings)

    assert first == second
    assert first != other
    assert len(first.key) == 16


def test_bcrypt_only_uses_first_72_password_bytes(fast_settings: EncryptContentSettings) -> None:
    long_password = b"p" * 72
    first = derive_key(
        long_password + b"a", SALT, KeyDerivationFunction.BCRYPT, EncryptionMethod.AES_GCM, fast_settings
    )
    second = derive_key(
        long_password + b"b", SALT, KeyDerivationFunction.BCRYPT, EncryptionMethod.AES_GCM, fast_settings
    )

    assert first == second
    assert len(first.key) == 16


def test_bcrypt_depends_on_salt(fast_settings: EncryptContentSettings) -> None:
    first = derive_key(PASSWORD, SALT, KeyDerivationFunction.BCRYPT, EncryptionMethod.AES_GCM, fast_settings)
    second = derive_key(PASSWORD, bytes(16), KeyDerivationFunction.BCRYPT, EncryptionMethod.AES_GCM, fast_settings)

    assert first != second


def test_none_does_not_derive() -> None:
    with pytest.raises(UnsupportedAlgorithmError):
        derive_key(PASSWORD, b"", KeyDerivationFunction.NONE, EncryptionMethod.AES_GCM)


def test_legacy_kdf_rejects_keyed_method() -> None:
    with pytest.raises(UnsupportedAlgorithmError):
        derive_key(PASSWORD, SALT, KeyDerivationFunction.NIFI_LEGACY, EncryptionMethod.AES_GCM)


def test_derived_key_repr_masks_material() -> None:
    assert repr(DerivedKey(b"k" * 16, b"i" * 16)) == "DerivedKey(key=<16 bytes>, iv=<16 bytes>)"
