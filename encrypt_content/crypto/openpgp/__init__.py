"""
OpenPGP message codec (RFC 4880): packets, ASCII armor and string-to-key.
"""

from encrypt_content.crypto.openpgp.armor import armor, dearmor, is_armored
from encrypt_content.crypto.openpgp.codec import (
    OpenPGPEncryptor,
    decrypt_message,
    encrypt_message,
    read_session_key_algorithm,
)

__all__ = [
    "OpenPGPEncryptor",
    "encrypt_message",
    "decrypt_message",
    "read_session_key_algorithm",
    "armor",
    "dearmor",
    "is_armored",
]
