"""
ASCII armor (RFC 4880 section 6) through pgpy's Armorable.
"""

import warnings

from pgpy.errors import PGPError
from pgpy.types import Armorable

from encrypt_content.exceptions import ArmorError


class ArmoredMessage(Armorable):
    """
    A binary OpenPGP message rendered by pgpy's armor writer.

    The packets are written as given. Re-parsing them with pgpy.PGPMessage
    would reject cipher ids pgpy does not know, such as single DES.
    """

    def __init__(self, message: bytes = b"") -> None:
        super().__init__()
        self._message = bytes(message)

    @property
    def magic(self) -> str:
        return "MESSAGE"

    def __bytes__(self) -> bytes:
        return self._message


def is_armored(data: bytes) -> bool:
    """Whether data holds a complete armored block."""
    return Armorable.is_armor(data)


def armor(message: bytes) -> bytes:
    """Wrap a binary OpenPGP message in MESSAGE armor."""
    return str(ArmoredMessage(message)).encode("ascii")


def dearmor(data: bytes) -> bytes:
    """
    Decode the first armored block in data.

    Raises:
        ArmorError: If the armor is malformed or the checksum does not match.
    """
    # pgpy only warns on a CRC mismatch; the comparison below raises instead.
    with warnings.catch_warnings():
        warnings.simplefilter("ignore")
        try:
            unarmored = Armorable.ascii_unarmor(data)
        except (PGPError, ValueError) as e:
            msg = f"Invalid ASCII armor: {e}"
            raise ArmorError(msg) from e

    body = bytes(unarmored["body"])
    expected = unarmored["crc"]
    if expected is not None:
        computed = Armorable.crc24(body)
        if computed != expected:
            msg = "Armor checksum mismatch"
            raise ArmorError(msg, expected=f"{expected:06x}", computed=f"{computed:06x}")
    return body
