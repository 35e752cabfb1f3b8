from unittest.mock import MagicMock

import pytest

from encrypt_content.crypto.secret import SecretValue
from encrypt_content.models.methods import EncryptionMethod, KeyDerivationFunction
from encrypt_content.models.plan import EncryptionConfig
from encrypt_content.models.properties import Mode


def test_password_plan() -> None:
    config = EncryptionConfig(
        mode=Mode.ENCRYPT,
        method=EncryptionMethod.MD5_128AES,
        kdf=KeyDerivationFunction.NIFI_LEGACY,
        password=SecretValue(b"password"),
    )

    assert config.is_encrypt
    assert not config.ascii_armor


def test_armored_pgp_plan() -> None:
    config = EncryptionConfig(
        mode=Mode.ENCRYPT,
        method=EncryptionMethod.PGP_ASCII_ARMOR,
        public_key=MagicMock(),
    )

    assert config.ascii_armor


def test_clear_zeroes_secrets() -> None:
    raw_key = SecretValue(bytes(range(16)))
    config = EncryptionConfig(mode=Mode.DECRYPT, method=EncryptionMethod.AES_GCM, raw_key=raw_key)

    config.clear()

    assert raw_key.is_cleared


@pytest.mark.parametrize(
    ("kwargs", "message"),
    [
        ({"method": EncryptionMethod.AES_GCM}, "Exactly one key source"),
        (
            {
                "method": EncryptionMethod.AES_GCM,
                "raw_key": SecretValue(bytes(16)),
                "password": SecretValue(b"password"),
            },
            "Exactly one key source",
        ),
        (
            {"method": EncryptionMethod.MD5_128AES, "raw_key": SecretValue(bytes(16))},
            "requires a keyed cipher",
        ),
        (
            {
                "method": EncryptionMethod.AES_GCM,
                "kdf": KeyDerivationFunction.BCRYPT,
                "raw_key": SecretValue(bytes(16)),
            },
            "requires a keyed cipher",
        ),
        ({"method": EncryptionMethod.AES_CBC, "public_key": MagicMock()}, "only used with PGP"),
        ({"method": EncryptionMethod.PGP, "private_keyring": MagicMock()}, "only used to decrypt"),
        ({"method": EncryptionMethod.AES_CTR, "password": SecretValue(b"password")}, "requires a strong KDF"),
    ],
)
def test_inconsistent_plans_are_rejected(kwargs: dict, message: str) -> None:
    with pytest.raises(ValueError, match=message):
        EncryptionConfig(mode=Mode.ENCRYPT, **kwargs)


def test_public_key_is_only_used_to_encrypt() -> None:
    with pytest.raises(ValueError, match="only used to encrypt"):
        EncryptionConfig(mode=Mode.DECRYPT, method=EncryptionMethod.PGP, public_key=MagicMock())
