import pytest

from encrypt_content.models.methods import (
    KEYED_KDFS,
    PBE_KDFS,
    BlockMode,
    EncryptionMethod,
    KeyDerivationFunction,
    PBEScheme,
)


def test_method_str_is_algorithm_name() -> None:
    assert str(EncryptionMethod.AES_GCM) == "AES/GCM/NoPadding"
    assert str(EncryptionMethod.MD5_128AES) == "PBEWITHMD5AND128BITAES-CBC-OPENSSL"


def test_algorithm_names_are_unique() -> None:
    names = [m.algorithm for m in EncryptionMethod]

    assert len(names) == len(set(names))


@pytest.mark.parametrize(
    ("method", "block_size", "padded"),
    [
        (EncryptionMethod.MD5_128AES, 16, True),
        (EncryptionMethod.MD5_DES, 8, True),
        (EncryptionMethod.SHA_3KEYTRIPLEDES, 8, True),
        (EncryptionMethod.SHA_128RC4, 0, False),
        (EncryptionMethod.AES_CTR, 16, False),
        (EncryptionMethod.AES_CBC_NO_PADDING, 16, False),
        (EncryptionMethod.PGP, 0, True),
    ],
)
def test_block_size_and_padding(method: EncryptionMethod, block_size: int, padded: bool) -> None:
    assert method.block_size == block_size
    assert method.is_padded is padded


def test_legacy_salt_length() -> None:
    assert EncryptionMethod.MD5_256AES.legacy_salt_length == 16
    assert EncryptionMethod.SHA1_DES.legacy_salt_length == 8
    assert EncryptionMethod.SHA_40RC4.legacy_salt_length == 8


def test_method_categories_are_exclusive() -> None:
    for method in EncryptionMethod:
        categories = [method.is_pgp, method.is_keyed_cipher, method.pbe_scheme is not None]
        assert categories.count(True) == 1, method.name


def test_keyed_ciphers() -> None:
    keyed = {m for m in EncryptionMethod if m.is_keyed_cipher}

    assert keyed == {
        EncryptionMethod.AES_CBC_NO_PADDING,
        EncryptionMethod.AES_CBC,
        EncryptionMethod.AES_CTR,
        EncryptionMethod.AES_GCM,
    }
    assert EncryptionMethod.AES_GCM.block_mode is BlockMode.GCM


def test_pgp_methods() -> None:
    assert EncryptionMethod.PGP.is_pgp
    assert not EncryptionMethod.PGP.uses_ascii_armor
    assert EncryptionMethod.PGP_ASCII_ARMOR.uses_ascii_armor


def test_unlimited_strength_methods_need_long_keys() -> None:
    for method in EncryptionMethod:
        if method.is_unlimited_strength:
            assert method.key_length > 128, method.name


def test_pbe_schemes() -> None:
    assert EncryptionMethod.MD5_192AES.pbe_scheme is PBEScheme.OPENSSL
    assert EncryptionMethod.SHA1_RC2.pbe_scheme is PBEScheme.PKCS5_V1
    assert EncryptionMethod.SHA256_256AES.pbe_scheme is PBEScheme.PKCS12
    assert EncryptionMethod.SHA256_256AES.digest == "sha256"


def test_kdf_groups() -> None:
    assert set(PBE_KDFS).isdisjoint(KEYED_KDFS)
    assert set(PBE_KDFS) | set(KEYED_KDFS) == set(KeyDerivationFunction)
    assert all(k.is_strong for k in KEYED_KDFS if k is not KeyDerivationFunction.NONE)


def test_kdf_str_is_display_name() -> None:
    assert str(KeyDerivationFunction.NONE) == "None"
    assert str(KeyDerivationFunction.OPENSSL_EVP_BYTES_TO_KEY) == "OpenSSL EVP_BytesToKey"
    assert KeyDerivationFunction.BCRYPT.salt_length == 16
