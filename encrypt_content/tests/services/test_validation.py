from pathlib import Path

import pgpy
import pytest

from encrypt_content.config import EncryptContentSettings
from encrypt_content.core.cache import LRUCache
from encrypt_content.crypto.ciphers import is_pgp_cipher_supported
from encrypt_content.crypto.keyring import InMemoryKeyringSource, KeyringLoader
from encrypt_content.crypto.secret import SecretValue
from encrypt_content.exceptions import ValidationFailedError
from encrypt_content.models.methods import EncryptionMethod, KeyDerivationFunction
from encrypt_content.models.pgp import SymmetricAlgorithm
from encrypt_content.models.properties import EncryptionProperties, Mode, ValidationResult
from encrypt_content.services.validation import ConfigurationValidator
from encrypt_content.tests.constants import (
    KEYRING_PASSPHRASE,
    RAW_KEY_256_HEX,
    RAW_KEY_HEX,
    STRONG_PASSWORD,
    USER_EMAIL,
    USER_ID,
)

WEAK_PASSWORD = "short"


@pytest.fixture
def validator() -> ConfigurationValidator:
    return ConfigurationValidator(keyring_loader=KeyringLoader(cache=LRUCache()))


def _explanations(results: list[ValidationResult]) -> list[str]:
    return [r.explanation for r in results]


def test_default_properties_require_raw_key(validator: ConfigurationValidator) -> None:
    results = validator.validate(EncryptionProperties())

    assert len(results) == 1
    assert str(results[0]) == (
        "'raw-key-hex' is invalid because Raw Key (hexadecimal) is required when using algorithm "
        "AES/GCM/NoPadding and KDF None. See Admin Guide."
    )


def test_legacy_method_with_long_password_is_valid(validator: ConfigurationValidator) -> None:
    properties = EncryptionProperties(
        encryption_algorithm=EncryptionMethod.MD5_128AES,
        key_derivation_function=KeyDerivationFunction.NIFI_LEGACY,
        password=STRONG_PASSWORD,
    )

    assert validator.validate(properties) == []


def test_every_failure_is_reported_at_once(validator: ConfigurationValidator) -> None:
    properties = EncryptionProperties(mode="Sideways", allow_weak_crypto="maybe")

    results = validator.validate(properties)

    assert [r.subject for r in results] == ["Mode", "allow-weak-crypto", "raw-key-hex"]


@pytest.mark.parametrize(
    ("field", "value", "expected"),
    [
        ("mode", "Decrypt", Mode.DECRYPT),
        ("mode", "DECRYPT", Mode.DECRYPT),
        ("encryption_algorithm", "AES/GCM/NoPadding", EncryptionMethod.AES_GCM),
        ("encryption_algorithm", "AES_GCM", EncryptionMethod.AES_GCM),
    ],
)
def test_enum_values_accept_host_strings(
    validator: ConfigurationValidator, field: str, value: str, expected: object
) -> None:
    properties = EncryptionProperties(raw_key_hex=RAW_KEY_HEX, **{field: value})

    config = validator.resolve(properties)

    assert expected in (config.mode, config.method)


def test_kdf_accepts_display_name(validator: ConfigurationValidator) -> None:
    properties = EncryptionProperties(key_derivation_function="Bcrypt", password=STRONG_PASSWORD)

    assert validator.resolve(properties).kdf is KeyDerivationFunction.BCRYPT


def test_unknown_algorithm(validator: ConfigurationValidator) -> None:
    results = validator.validate(EncryptionProperties(encryption_algorithm="ROT13"))

    assert len(results) == 1
    assert results[0].subject == "Encryption Algorithm"
    assert results[0].explanation == "'ROT13' is not a known Encryption Algorithm"
    assert results[0].input == "ROT13"


@pytest.mark.parametrize(("value", "expected"), [(True, True), ("allowed", True), ("not-allowed", False)])
def test_allow_weak_crypto_values(validator: ConfigurationValidator, value: bool | str, expected: bool) -> None:
    properties = EncryptionProperties(raw_key_hex=RAW_KEY_HEX, allow_weak_crypto=value)

    assert validator.resolve(properties).allow_weak_crypto is expected


# Password-based methods


def test_weak_password_is_rejected(validator: ConfigurationValidator) -> None:
    properties = EncryptionProperties(
        encryption_algorithm=EncryptionMethod.MD5_128AES,
        key_derivation_function=KeyDerivationFunction.NIFI_LEGACY,
        password=WEAK_PASSWORD,
    )

    results = validator.validate(properties)

    assert len(results) == 1
    assert results[0].subject == "Password"
    assert results[0].explanation == (
        "Password length less than 16 characters is potentially unsafe. See Admin Guide."
    )


def test_weak_password_is_allowed_with_weak_crypto(validator: ConfigurationValidator) -> None:
    properties = EncryptionProperties(
        encryption_algorithm=EncryptionMethod.MD5_128AES,
        key_derivation_function=KeyDerivationFunction.NIFI_LEGACY,
        password=WEAK_PASSWORD,
        allow_weak_crypto="allowed",
    )

    assert validator.validate(properties) == []


def test_minimum_password_length_comes_from_settings() -> None:
    validator = ConfigurationValidator(EncryptContentSettings(min_password_length=4))
    properties = EncryptionProperties(
        encryption_algorithm=EncryptionMethod.MD5_128AES,
        key_derivation_function=KeyDerivationFunction.NIFI_LEGACY,
        password=WEAK_PASSWORD,
    )

    assert validator.validate(properties) == []


def test_password_based_method_requires_password(validator: ConfigurationValidator) -> None:
    properties = EncryptionProperties(
        encryption_algorithm=EncryptionMethod.SHA256_128AES,
        key_derivation_function=KeyDerivationFunction.NIFI_LEGACY,
    )

    results = validator.validate(properties)

    assert _explanations(results) == [
        "Password is required when using algorithm PBEWITHSHA256AND128BITAES-CBC-BC. See Admin Guide."
    ]


def test_password_based_method_rejects_strong_kdf(validator: ConfigurationValidator) -> None:
    properties = EncryptionProperties(
        encryption_algorithm=EncryptionMethod.MD5_128AES,
        key_derivation_function=KeyDerivationFunction.BCRYPT,
        password=STRONG_PASSWORD,
    )

    results = validator.validate(properties)

    assert len(results) == 1
    assert results[0].subject == "key-derivation-function"
    assert results[0].explanation.startswith(
        "Key Derivation Function is required to be NIFI_LEGACY, OPENSSL_EVP_BYTES_TO_KEY"
    )


@pytest.mark.parametrize(
    "method",
    [EncryptionMethod.MD5_RC2, EncryptionMethod.SHA1_RC2, EncryptionMethod.SHA_40RC2],
    ids=lambda m: m.name,
)
def test_reduced_strength_rc2_methods_are_valid(validator: ConfigurationValidator, method: EncryptionMethod) -> None:
    properties = EncryptionProperties(
        encryption_algorithm=method,
        key_derivation_function=KeyDerivationFunction.NIFI_LEGACY,
        password=STRONG_PASSWORD,
    )

    assert validator.validate(properties) == []


def test_password_based_reports_weak_password_and_strong_kdf(validator: ConfigurationValidator) -> None:
    properties = EncryptionProperties(
        encryption_algorithm=EncryptionMethod.MD5_128AES,
        key_derivation_function=KeyDerivationFunction.BCRYPT,
        password=WEAK_PASSWORD,
    )

    results = validator.validate(properties)

    assert [r.subject for r in results] == ["Password", "key-derivation-function"]


def test_policy_limits_unlimited_strength_methods() -> None:
    validator = ConfigurationValidator(EncryptContentSettings(max_allowed_key_length=128))
    properties = EncryptionProperties(
        encryption_algorithm=EncryptionMethod.MD5_256AES,
        key_derivation_function=KeyDerivationFunction.OPENSSL_EVP_BYTES_TO_KEY,
        password=STRONG_PASSWORD,
    )

    results = validator.validate(properties)

    assert len(results) == 1
    assert results[0].subject == "Encryption Algorithm"
    assert "allows at most 128 bits" in results[0].explanation


def test_unsupported_method_is_reported(validator: ConfigurationValidator) -> None:
    properties = EncryptionProperties(
        encryption_algorithm=EncryptionMethod.SHA_TWOFISH,
        key_derivation_function=KeyDerivationFunction.NIFI_LEGACY,
        password=STRONG_PASSWORD,
    )

    results = validator.validate(properties)

    assert _explanations(results) == [
        "PBEWITHSHAANDTWOFISH-CBC is not supported by the installed cryptography backend"
    ]


def test_resolve_password_based(validator: ConfigurationValidator) -> None:
    properties = EncryptionProperties(
        mode=Mode.DECRYPT,
        encryption_algorithm=EncryptionMethod.MD5_256AES,
        key_derivation_function=KeyDerivationFunction.OPENSSL_EVP_BYTES_TO_KEY,
        password=STRONG_PASSWORD,
    )

    config = validator.resolve(properties)

    assert not config.is_encrypt
    assert config.method is EncryptionMethod.MD5_256AES
    assert bytes(config.password) == STRONG_PASSWORD.encode("utf-8")
    assert config.raw_key is None


# Keyed methods


def test_keyed_method_rejects_legacy_kdf(validator: ConfigurationValidator) -> None:
    properties = EncryptionProperties(
        encryption_algorithm=EncryptionMethod.AES_CBC,
        key_derivation_function=KeyDerivationFunction.NIFI_LEGACY,
        password=STRONG_PASSWORD,
    )

    results = validator.validate(properties)

    assert _explanations(results) == [
        "Key Derivation Function is required to be BCRYPT, SCRYPT, PBKDF2, ARGON2, NONE when using "
        "algorithm AES/CBC/PKCS7Padding. See Admin Guide."
    ]


def test_keyed_method_with_strong_kdf_requires_password(validator: ConfigurationValidator) -> None:
    properties = EncryptionProperties(key_derivation_function=KeyDerivationFunction.SCRYPT)

    results = validator.validate(properties)

    assert _explanations(results) == [
        "Password is required when using algorithm AES/GCM/NoPadding and KDF Scrypt. See Admin Guide."
    ]


def test_keyed_method_with_strong_kdf_checks_password_length(validator: ConfigurationValidator) -> None:
    properties = EncryptionProperties(key_derivation_function=KeyDerivationFunction.PBKDF2, password=WEAK_PASSWORD)

    results = validator.validate(properties)

    assert [r.subject for r in results] == ["Password"]


def test_strong_kdf_ignores_raw_key(validator: ConfigurationValidator) -> None:
    properties = EncryptionProperties(
        key_derivation_function=KeyDerivationFunction.ARGON2,
        password=STRONG_PASSWORD,
        raw_key_hex="not hex",
    )

    config = validator.resolve(properties)

    assert config.raw_key is None
    assert config.password is not None


@pytest.mark.parametrize("raw_key_hex", [RAW_KEY_HEX, RAW_KEY_256_HEX, f"  {RAW_KEY_HEX.lower()}\n"])
def test_raw_key_is_resolved(validator: ConfigurationValidator, raw_key_hex: str) -> None:
    config = validator.resolve(EncryptionProperties(raw_key_hex=raw_key_hex, password=STRONG_PASSWORD))

    assert bytes(config.raw_key) == bytes.fromhex(raw_key_hex.strip())
    assert config.password is None


@pytest.mark.parametrize("raw_key_hex", ["XYZ", "ABC"])
def test_raw_key_must_be_hexadecimal(validator: ConfigurationValidator, raw_key_hex: str) -> None:
    results = validator.validate(EncryptionProperties(raw_key_hex=raw_key_hex))

    assert _explanations(results) == ["Raw Key (hexadecimal) must be a valid hexadecimal string"]


def test_raw_key_length(validator: ConfigurationValidator) -> None:
    results = validator.validate(EncryptionProperties(raw_key_hex="0011"))

    assert _explanations(results) == ["Key must be 128, 192, 256 bits, was 16 bits"]


def test_raw_key_length_is_limited_by_policy() -> None:
    validator = ConfigurationValidator(EncryptContentSettings(max_allowed_key_length=128))

    results = validator.validate(EncryptionProperties(raw_key_hex=RAW_KEY_256_HEX))

    assert _explanations(results) == ["Key length 256 exceeds the policy maximum of 128 bits"]


def test_resolve_raises_with_every_result(validator: ConfigurationValidator) -> None:
    with pytest.raises(ValidationFailedError) as exc_info:
        validator.resolve(EncryptionProperties(raw_key_hex="0011", allow_weak_crypto="sometimes"))

    assert [r.subject for r in exc_info.value.results] == ["allow-weak-crypto", "raw-key-hex"]


def test_from_mapping_uses_host_property_names(validator: ConfigurationValidator) -> None:
    properties = EncryptionProperties.from_mapping(
        {
            "Mode": "Encrypt",
            "Encryption Algorithm": "PBEWITHMD5AND128BITAES-CBC-OPENSSL",
            "key-derivation-function": "NIFI_LEGACY",
            "Password": STRONG_PASSWORD,
            "raw-key-hex": "",
        }
    )

    config = validator.resolve(properties)

    assert config.method is EncryptionMethod.MD5_128AES
    assert config.kdf is KeyDerivationFunction.NIFI_LEGACY


# PGP


def _pgp(mode: Mode = Mode.ENCRYPT, **overrides: object) -> EncryptionProperties:
    return EncryptionProperties(mode=mode, encryption_algorithm=EncryptionMethod.PGP, **overrides)


def test_pgp_password_is_symmetric_without_length_rule(validator: ConfigurationValidator) -> None:
    config = validator.resolve(_pgp(password=WEAK_PASSWORD, public_keyring="/does/not/exist.gpg"))

    assert bytes(config.password) == WEAK_PASSWORD.encode("utf-8")
    assert config.public_key is None


def test_pgp_encrypt_requires_keyring_and_user_id(validator: ConfigurationValidator) -> None:
    results = validator.validate(_pgp(public_keyring="/tmp/pubring.gpg"))

    assert len(results) == 1
    assert results[0].subject == "public-keyring-file"
    assert results[0].explanation == (
        "PGP encryption without a Password requires both Public Keyring File and Public Key User Id"
    )


def test_pgp_encrypt_missing_keyring(validator: ConfigurationValidator, tmp_path: Path) -> None:
    results = validator.validate(_pgp(public_keyring=str(tmp_path / "missing.gpg"), public_key_user_id=USER_ID))

    assert len(results) == 1
    assert "FileNotFoundError" in results[0].explanation


def test_pgp_encrypt_invalid_keyring(validator: ConfigurationValidator, tmp_path: Path) -> None:
    keyring = tmp_path / "garbage.gpg"
    keyring.write_bytes(b"This is not an OpenPGP keyring")

    results = validator.validate(_pgp(public_keyring=str(keyring), public_key_user_id=USER_ID))

    assert len(results) == 1
    assert "Invalid OpenPGP keyring format" in results[0].explanation


@pytest.mark.parametrize("user_id", [USER_ID, USER_EMAIL])
def test_pgp_encrypt_resolves_public_key(
    validator: ConfigurationValidator, public_keyring: Path, user_id: str
) -> None:
    config = validator.resolve(_pgp(public_keyring=str(public_keyring), public_key_user_id=user_id))

    assert config.public_key is not None
    assert config.password is None


def test_pgp_encrypt_unknown_user_id(validator: ConfigurationValidator, public_keyring: Path) -> None:
    results = validator.validate(_pgp(public_keyring=str(public_keyring), public_key_user_id="nobody@example.com"))

    assert len(results) == 1
    assert results[0].explanation == "PublicKeyNotFoundError: Could not find a public key with the given userId"


def test_pgp_encrypt_ambiguous_user_id(validator: ConfigurationValidator, shared_public_keyring: Path) -> None:
    results = validator.validate(_pgp(public_keyring=str(shared_public_keyring), public_key_user_id="User"))

    assert len(results) == 1
    assert "Found 2 public keys" in results[0].explanation


def test_pgp_decrypt_requires_keyring_and_passphrase(
    validator: ConfigurationValidator, private_keyring: Path
) -> None:
    results = validator.validate(_pgp(Mode.DECRYPT, private_keyring=str(private_keyring)))

    assert _explanations(results) == [
        "PGP decryption without a Password requires both Private Keyring File and Private Keyring Passphrase"
    ]


def test_pgp_decrypt_wrong_passphrase(validator: ConfigurationValidator, private_keyring: Path) -> None:
    results = validator.validate(
        _pgp(Mode.DECRYPT, private_keyring=str(private_keyring), private_keyring_passphrase="wrong")
    )

    assert len(results) == 1
    assert results[0].subject == "private-keyring-file"
    assert results[0].explanation.endswith(
        " could not be opened with the provided Private Keyring Passphrase"
    )


def test_pgp_decrypt_resolves_private_keyring(
    validator: ConfigurationValidator, private_keyring: Path
) -> None:
    config = validator.resolve(
        _pgp(
            Mode.DECRYPT,
            private_keyring=str(private_keyring),
            private_keyring_passphrase=KEYRING_PASSPHRASE,
        )
    )

    assert config.private_keyring is not None
    assert len(config.private_keyring) == 1


def test_pgp_keyrings_from_injected_source(pgp_key: pgpy.PGPKey) -> None:
    source = InMemoryKeyringSource({"keyrings/pub": bytes(pgp_key.pubkey)})
    validator = ConfigurationValidator(keyring_loader=KeyringLoader(source, cache=LRUCache()))

    config = validator.resolve(_pgp(public_keyring="keyrings/pub", public_key_user_id=USER_EMAIL))

    assert config.public_key.user_id == USER_EMAIL


@pytest.mark.parametrize("cipher", ["256", "5", "0", "aes"])
def test_pgp_cipher_must_be_allowed(validator: ConfigurationValidator, cipher: str) -> None:
    results = validator.validate(_pgp(password=STRONG_PASSWORD, pgp_symmetric_encryption_cipher=cipher))

    assert len(results) == 1
    assert results[0].subject == "pgp-symmetric-cipher"


@pytest.mark.parametrize("mode", [Mode.ENCRYPT, Mode.DECRYPT])
def test_pgp_cipher_defaults_when_unset(validator: ConfigurationValidator, mode: Mode) -> None:
    config = validator.resolve(_pgp(mode, password=STRONG_PASSWORD, pgp_symmetric_encryption_cipher=None))

    assert config.pgp_cipher is SymmetricAlgorithm.AES_128


def test_pgp_cipher_is_parsed(validator: ConfigurationValidator) -> None:
    config = validator.resolve(_pgp(password=STRONG_PASSWORD, pgp_symmetric_encryption_cipher="9"))

    assert config.pgp_cipher is SymmetricAlgorithm.AES_256


def test_pgp_cipher_idea_is_valid_when_available(validator: ConfigurationValidator) -> None:
    if not is_pgp_cipher_supported(SymmetricAlgorithm.IDEA):
        pytest.skip("IDEA is not available in this cryptography build")

    results = validator.validate(_pgp(password=STRONG_PASSWORD, pgp_symmetric_encryption_cipher="1"))

    assert results == []


# Secrets


def _capture(monkeypatch: pytest.MonkeyPatch, constructor: str) -> list[SecretValue]:
    created: list[SecretValue] = []
    original = getattr(SecretValue, constructor)

    def capture(text: str) -> SecretValue:
        secret = original(text)
        created.append(secret)
        return secret

    monkeypatch.setattr(SecretValue, constructor, capture)
    return created


def test_validate_clears_the_raw_key(validator: ConfigurationValidator, monkeypatch: pytest.MonkeyPatch) -> None:
    created = _capture(monkeypatch, "from_hex")

    assert validator.validate(EncryptionProperties(raw_key_hex=RAW_KEY_HEX)) == []
    assert len(created) == 1
    assert created[0].is_cleared


def test_validate_clears_the_password(validator: ConfigurationValidator, monkeypatch: pytest.MonkeyPatch) -> None:
    created = _capture(monkeypatch, "from_string")
    properties = EncryptionProperties(
        encryption_algorithm=EncryptionMethod.MD5_128AES,
        key_derivation_function=KeyDerivationFunction.NIFI_LEGACY,
        password=STRONG_PASSWORD,
    )

    assert validator.validate(properties) == []
    assert created
    assert all(secret.is_cleared for secret in created)


def test_failed_resolve_clears_the_raw_key(
    validator: ConfigurationValidator, monkeypatch: pytest.MonkeyPatch
) -> None:
    created = _capture(monkeypatch, "from_hex")
    properties = EncryptionProperties(raw_key_hex=RAW_KEY_HEX, allow_weak_crypto="maybe")

    with pytest.raises(ValidationFailedError):
        validator.resolve(properties)

    assert created[0].is_cleared


def test_resolve_hands_live_secrets_to_the_plan(validator: ConfigurationValidator) -> None:
    config = validator.resolve(EncryptionProperties(raw_key_hex=RAW_KEY_HEX))

    assert not config.raw_key.is_cleared
    config.clear()
    assert config.raw_key.is_cleared
