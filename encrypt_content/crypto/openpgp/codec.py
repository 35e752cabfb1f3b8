"""
OpenPGP message encryption and decryption.

Encrypt produces [SKESK | PKESK][SEIPD v1 (literal data + MDC)], optionally
ASCII-armored. Decrypt accepts armored or binary messages, SKESK and PKESK
session keys, SEIPD with MDC and the legacy SED packet, and compressed data.

The symmetric cipher is configured on encrypt only. On decrypt it is always
taken from the session key packet, whatever cipher the caller configured.
"""

import hashlib
import os
import time
from typing import BinaryIO

import structlog
from cryptography.hazmat.primitives.asymmetric import padding

from encrypt_content.config import EncryptContentSettings
from encrypt_content.crypto.ciphers import pgp_cfb_cipher
from encrypt_content.crypto.keyring import PrivateKeyring, PublicEncryptionKey
from encrypt_content.crypto.openpgp.armor import armor, dearmor, is_armored
from encrypt_content.crypto.openpgp.packets import (
    decompress,
    encode_literal_data,
    encode_mpi,
    encode_packet,
    encode_pkesk,
    encode_skesk,
    parse_literal_data,
    parse_mpi,
    parse_pkesk,
    parse_skesk,
    read_packets,
)
from encrypt_content.crypto.openpgp.s2k import derive_s2k_key, new_iterated_s2k
from encrypt_content.crypto.secret import SecretValue
from encrypt_content.exceptions import (
    CryptoError,
    DecryptionError,
    IntegrityError,
    PGPFormatError,
    SessionKeyError,
)
from encrypt_content.models.pgp import (
    DEFAULT_PGP_SYMMETRIC_CIPHER,
    HashAlgorithm,
    LiteralData,
    Packet,
    PacketTag,
    PKESKPacket,
    PublicKeyAlgorithm,
    SessionKey,
    SKESKPacket,
    SymmetricAlgorithm,
)

logger = structlog.get_logger(__name__)

_MDC_PACKET_SIZE = 22  # 2-byte header + 20-byte SHA-1
_MDC_HEADER = b"\xd3\x14"
_MDC_HASH_SIZE = 20
_SEIPD_VERSION = 1
_RSA_ALGORITHMS = (PublicKeyAlgorithm.RSA_ENCRYPT_OR_SIGN, PublicKeyAlgorithm.RSA_ENCRYPT_ONLY)
_SKIPPED_TAGS = frozenset({PacketTag.MARKER, PacketTag.ONE_PASS_SIGNATURE, PacketTag.SIGNATURE})


class OpenPGPEncryptor:
    """
    Streams content through the OpenPGP codec.

    Messages are processed in memory: the whole input is read before any
    output is written.
    """

    def __init__(
        self,
        *,
        password: SecretValue | None = None,
        public_key: PublicEncryptionKey | None = None,
        private_keyring: PrivateKeyring | None = None,
        cipher: SymmetricAlgorithm = DEFAULT_PGP_SYMMETRIC_CIPHER,
        ascii_armor: bool = False,
        settings: EncryptContentSettings | None = None,
    ) -> None:
        """
        Args:
            password: Passphrase for symmetric messages; takes precedence over keys.
            public_key: Recipient key for public-key encryption.
            private_keyring: Unlocked keys for public-key decryption.
            cipher: Symmetric algorithm declared on encrypt; ignored on decrypt.
            ascii_armor: Armor the encrypted output.
            settings: S2K parameters and literal file name.
        """
        self._password = password
        self._public_key = public_key
        self._private_keyring = private_keyring
        self._cipher = cipher
        self._armor = ascii_armor
        self._settings = settings or EncryptContentSettings()

    def encrypt(self, source: BinaryIO, sink: BinaryIO) -> None:
        sink.write(
            encrypt_message(
                source.read(),
                cipher=self._cipher,
                password=self._password,
                public_key=self._public_key,
                ascii_armor=self._armor,
                settings=self._settings,
            )
        )

    def decrypt(self, source: BinaryIO, sink: BinaryIO) -> None:
        literal = decrypt_message(source.read(), password=self._password, private_keyring=self._private_keyring)
        sink.write(literal.data)


def encrypt_message(
    plaintext: bytes,
    *,
    cipher: SymmetricAlgorithm = DEFAULT_PGP_SYMMETRIC_CIPHER,
    password: SecretValue | None = None,
    public_key: PublicEncryptionKey | None = None,
    ascii_armor: bool = False,
    settings: EncryptContentSettings | None = None,
) -> bytes:
    """
    Encrypt plaintext into an OpenPGP message.

    Args:
        plaintext: Content for the literal data packet.
        cipher: Symmetric algorithm for the session key.
        password: Passphrase (SKESK); used when set.
        public_key: Recipient (PKESK); used when no password is set.
        ascii_armor: Armor the result.
        settings: S2K hash, count and literal file name.

    Raises:
        SessionKeyError: If neither a password nor a public key is given.
        UnsupportedAlgorithmError: If the cipher has no implementation.
    """
    settings = settings or EncryptContentSettings()
    session_key = SessionKey(algorithm=cipher, key_data=os.urandom(cipher.key_size))

    if password is not None:
        header = _build_skesk(session_key, password, settings)
    elif public_key is not None:
        header = _build_pkesk(session_key, public_key)
    else:
        msg = "A password or a public key is required to encrypt"
        raise SessionKeyError(msg)

    literal = encode_literal_data(
        LiteralData(
            format="b",
            filename=settings.pgp_literal_filename,
            timestamp=int(time.time()),
            data=plaintext,
        )
    )
    seipd = encode_packet(PacketTag.SEIPD, bytes([_SEIPD_VERSION]) + _encrypt_seipd(session_key, literal))
    message = header + seipd

    logger.debug(
        "Encrypted OpenPGP message",
        cipher=cipher.name,
        mode="password" if password is not None else "public-key",
        armored=ascii_armor,
    )
    return armor(message) if ascii_armor else message


def decrypt_message(
    data: bytes,
    *,
    password: SecretValue | None = None,
    private_keyring: PrivateKeyring | None = None,
) -> LiteralData:
    """
    Decrypt an OpenPGP message.

    Args:
        data: Armored or binary message.
        password: Passphrase for SKESK packets.
        private_keyring: Unlocked keys for PKESK packets.

    Returns:
        The literal data packet.

    Raises:
        ArmorError: If the armor is malformed.
        PGPFormatError: If the packet stream is malformed.
        SessionKeyError: If no session key can be recovered.
        DecryptionError: If the data does not decrypt (typically a wrong passphrase).
        IntegrityError: If the MDC does not verify.
    """
    packets = read_packets(_binary(data))

    skesks: list[SKESKPacket] = []
    pkesks: list[PKESKPacket] = []
    encrypted: Packet | None = None
    for packet in packets:
        match packet.tag:
            case PacketTag.SKESK:
                skesks.append(parse_skesk(packet.body))
            case PacketTag.PKESK:
                pkesks.append(parse_pkesk(packet.body))
            case PacketTag.SEIPD | PacketTag.SYMMETRICALLY_ENCRYPTED_DATA:
                encrypted = packet
                break
            case PacketTag.MARKER:
                continue
            case _:
                msg = f"Unexpected packet before encrypted data: tag {packet.tag}"
                raise PGPFormatError(msg)

    if encrypted is None:
        msg = "No encrypted data packet found"
        raise PGPFormatError(msg)

    candidates = _session_key_candidates(skesks, pkesks, password, private_keyring)
    plaintext = _decrypt_with_candidates(encrypted, candidates)
    return _find_literal(plaintext)


def read_session_key_algorithm(data: bytes) -> SymmetricAlgorithm:
    """
    Return the symmetric algorithm declared by a message's first SKESK packet.

    Raises:
        PGPFormatError: If the message has no SKESK packet.
    """
    for packet in read_packets(_binary(data)):
        if packet.tag == PacketTag.SKESK:
            return parse_skesk(packet.body).algorithm
        if packet.tag in (PacketTag.SEIPD, PacketTag.SYMMETRICALLY_ENCRYPTED_DATA):
            break
    msg = "Message has no symmetric-key encrypted session key packet"
    raise PGPFormatError(msg)


def _binary(data: bytes) -> bytes:
    return dearmor(data) if is_armored(data) else data


def _build_skesk(session_key: SessionKey, password: SecretValue, settings: EncryptContentSettings) -> bytes:
    algorithm = session_key.algorithm
    s2k = new_iterated_s2k(HashAlgorithm(settings.pgp_s2k_hash), settings.pgp_s2k_count)
    key_encryption_key = derive_s2k_key(s2k, bytes(password), algorithm.key_size)
    encryptor = pgp_cfb_cipher(algorithm, key_encryption_key, bytes(algorithm.block_size)).encryptor()
    esk = encryptor.update(bytes([algorithm]) + session_key.key_data) + encryptor.finalize()
    return encode_skesk(SKESKPacket(version=4, algorithm=algorithm, s2k=s2k, encrypted_session_key=esk))


def _build_pkesk(session_key: SessionKey, recipient: PublicEncryptionKey) -> bytes:
    encrypted = recipient.public_key.encrypt(session_key.to_payload(), padding.PKCS1v15())
    return encode_pkesk(
        PKESKPacket(
            version=3,
            key_id=recipient.key_id,
            algorithm=PublicKeyAlgorithm.RSA_ENCRYPT_OR_SIGN,
            encrypted_session_key=encode_mpi(int.from_bytes(encrypted, "big")),
        )
    )


def _encrypt_seipd(session_key: SessionKey, inner: bytes) -> bytes:
    block_size = session_key.block_size
    random_block = os.urandom(block_size)
    prefix = random_block + random_block[-2:]
    plaintext = prefix + inner + _MDC_HEADER
    plaintext += hashlib.sha1(plaintext).digest()

    encryptor = pgp_cfb_cipher(session_key.algorithm, session_key.key_data, bytes(block_size)).encryptor()
    return encryptor.update(plaintext) + encryptor.finalize()


def _session_key_candidates(
    skesks: list[SKESKPacket],
    pkesks: list[PKESKPacket],
    password: SecretValue | None,
    private_keyring: PrivateKeyring | None,
) -> list[SessionKey]:
    candidates: list[SessionKey] = []
    last_error: CryptoError | None = None

    if password is not None:
        for skesk in skesks:
            try:
                candidates.append(_session_key_from_skesk(skesk, password))
            except SessionKeyError as e:
                last_error = e
    elif private_keyring is not None:
        for pkesk in pkesks:
            try:
                candidates.extend(_session_keys_from_pkesk(pkesk, private_keyring))
            except SessionKeyError as e:
                last_error = e

    if candidates:
        return candidates
    if last_error is not None:
        raise last_error
    if password is not None:
        msg = "Message has no password-encrypted session key"
    elif private_keyring is not None:
        msg = "No private key in the keyring matches the message recipients"
    else:
        msg = "A password or a private keyring is required to decrypt"
    raise SessionKeyError(msg, skesk_count=len(skesks), pkesk_count=len(pkesks))


def _session_key_from_skesk(skesk: SKESKPacket, password: SecretValue) -> SessionKey:
    algorithm = skesk.algorithm
    key = derive_s2k_key(skesk.s2k, bytes(password), algorithm.key_size)
    if not skesk.encrypted_session_key:
        return SessionKey(algorithm=algorithm, key_data=key)

    decryptor = pgp_cfb_cipher(algorithm, key, bytes(algorithm.block_size)).decryptor()
    decrypted = decryptor.update(skesk.encrypted_session_key) + decryptor.finalize()
    try:
        inner_algorithm = SymmetricAlgorithm(decrypted[0])
    except ValueError:
        msg = "Session key algorithm is invalid, the passphrase is probably wrong"
        raise SessionKeyError(msg) from None
    key_data = decrypted[1:]
    if len(key_data) != inner_algorithm.key_size:
        msg = "Session key length is invalid, the passphrase is probably wrong"
        raise SessionKeyError(msg, algorithm=inner_algorithm.name)
    return SessionKey(algorithm=inner_algorithm, key_data=key_data)


def _session_keys_from_pkesk(pkesk: PKESKPacket, keyring: PrivateKeyring) -> list[SessionKey]:
    if pkesk.algorithm not in _RSA_ALGORITHMS:
        logger.debug("Skipping non-RSA session key packet", algorithm=pkesk.algorithm.name)
        return []

    encrypted, _ = parse_mpi(pkesk.encrypted_session_key)
    result = []
    for key in keyring.find(pkesk.key_id):
        size = (key.private_key.key_size + 7) // 8
        try:
            payload = key.private_key.decrypt(encrypted.rjust(size, b"\x00"), padding.PKCS1v15())
            result.append(_parse_session_key_payload(payload))
        except (ValueError, SessionKeyError):
            logger.debug("Private key does not open session key", key_id=key.key_id.hex())
    return result


def _parse_session_key_payload(payload: bytes) -> SessionKey:
    """Parse a decrypted session key payload: [algo(1)] + [key(N)] + [checksum(2)]."""
    if len(payload) < 3:
        msg = f"Session key payload too short: {len(payload)} bytes"
        raise SessionKeyError(msg)
    try:
        algorithm = SymmetricAlgorithm(payload[0])
    except ValueError:
        msg = f"Unknown symmetric algorithm: {payload[0]}"
        raise SessionKeyError(msg) from None

    key_data = payload[1:-2]
    if len(key_data) != algorithm.key_size:
        msg = f"Session key size {len(key_data)} does not match {algorithm.name}"
        raise SessionKeyError(msg)
    session_key = SessionKey(algorithm=algorithm, key_data=key_data)
    if session_key.checksum != int.from_bytes(payload[-2:], "big"):
        msg = "Session key checksum mismatch"
        raise SessionKeyError(msg)
    return session_key


def _decrypt_with_candidates(encrypted: Packet, candidates: list[SessionKey]) -> bytes:
    last_error: CryptoError | None = None
    for session_key in candidates:
        try:
            if encrypted.tag == PacketTag.SEIPD:
                return _decrypt_seipd(encrypted.body, session_key)
            return _decrypt_sed(encrypted.body, session_key)
        except DecryptionError as e:
            last_error = e
    msg = "No session key decrypted the message"
    raise last_error or DecryptionError(msg)


def _decrypt_seipd(body: bytes, session_key: SessionKey) -> bytes:
    if not body:
        msg = "SEIPD packet is empty"
        raise PGPFormatError(msg)
    if body[0] != _SEIPD_VERSION:
        msg = f"Unsupported SEIPD version: {body[0]}"
        raise PGPFormatError(msg)

    block_size = session_key.block_size
    ciphertext = body[1:]
    min_size = block_size + 2 + _MDC_PACKET_SIZE
    if len(ciphertext) < min_size:
        msg = f"Encrypted data too short: {len(ciphertext)} < {min_size}"
        raise PGPFormatError(msg)

    decryptor = pgp_cfb_cipher(session_key.algorithm, session_key.key_data, bytes(block_size)).decryptor()
    plaintext = decryptor.update(ciphertext) + decryptor.finalize()
    _verify_prefix(plaintext, block_size)
    _verify_mdc(plaintext)
    logger.debug("Decrypted OpenPGP message", cipher=session_key.algorithm.name, integrity_protected=True)
    return plaintext[block_size + 2 : -_MDC_PACKET_SIZE]


def _decrypt_sed(ciphertext: bytes, session_key: SessionKey) -> bytes:
    """Legacy packet without MDC, encrypted with OpenPGP's resynchronising CFB."""
    block_size = session_key.block_size
    prefix_size = block_size + 2
    if len(ciphertext) < prefix_size:
        msg = f"Encrypted data too short: {len(ciphertext)} < {prefix_size}"
        raise PGPFormatError(msg)

    prefix_ciphertext = ciphertext[:prefix_size]
    decryptor = pgp_cfb_cipher(session_key.algorithm, session_key.key_data, bytes(block_size)).decryptor()
    prefix_plaintext = decryptor.update(prefix_ciphertext) + decryptor.finalize()
    _verify_prefix(prefix_plaintext, block_size)

    # Resync: the IV for the rest is the last block_size bytes of the prefix ciphertext.
    resync_iv = prefix_ciphertext[2:prefix_size]
    decryptor = pgp_cfb_cipher(session_key.algorithm, session_key.key_data, resync_iv).decryptor()
    plaintext = decryptor.update(ciphertext[prefix_size:]) + decryptor.finalize()
    logger.warning("Decrypted OpenPGP message without integrity protection", cipher=session_key.algorithm.name)
    return plaintext


def _verify_prefix(plaintext: bytes, block_size: int) -> None:
    # The last two random octets are repeated right after the random block.
    if plaintext[block_size - 2 : block_size] != plaintext[block_size : block_size + 2]:
        msg = "CFB prefix verification failed, the key or passphrase is probably wrong"
        raise DecryptionError(msg)


def _verify_mdc(plaintext: bytes) -> None:
    mdc_packet = plaintext[-_MDC_PACKET_SIZE:]
    if mdc_packet[:2] != _MDC_HEADER:
        msg = f"Invalid MDC header: {mdc_packet[:2].hex()}"
        raise IntegrityError(msg)

    computed_hash = hashlib.sha1(plaintext[:-_MDC_HASH_SIZE]).digest()
    if computed_hash != mdc_packet[2:]:
        msg = "MDC verification failed, data may be corrupted or tampered"
        raise IntegrityError(msg)


def _find_literal(data: bytes) -> LiteralData:
    for packet in read_packets(data):
        match packet.tag:
            case PacketTag.LITERAL_DATA:
                return parse_literal_data(packet.body)
            case PacketTag.COMPRESSED_DATA:
                return _find_literal(decompress(packet.body))
            case tag if tag in _SKIPPED_TAGS:
                continue
            case _:
                msg = f"Unexpected packet in decrypted data: tag {packet.tag}"
                raise PGPFormatError(msg)
    msg = "Decrypted data has no literal data packet"
    raise PGPFormatError(msg)
