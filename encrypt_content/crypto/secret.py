"""
Key material held for the duration of one invocation.

Passwords, keyring passphrases and raw keys are copied into a bytearray that
is zeroed by clear(). Anything derived from them with bytes() or decode() is an
ordinary object the caller is responsible for.
"""

import binascii
import hmac
from typing import Self


class SecretValue:
    """
    A password, passphrase or raw key.

    Example:
        with SecretValue.from_string(passphrase) as secret:
            keyring = loader.load_private_keyring(location, secret)
    """

    __slots__ = ("_buffer", "_cleared")

    def __init__(self, data: bytes | bytearray) -> None:
        self._buffer = bytearray(data)
        self._cleared = False

    @classmethod
    def from_string(cls, text: str, encoding: str = "utf-8") -> Self:
        encoded = bytearray(text, encoding)
        try:
            return cls(encoded)
        finally:
            encoded[:] = bytes(len(encoded))

    @classmethod
    def from_hex(cls, text: str) -> Self:
        """
        Decode a hexadecimal key, ignoring surrounding whitespace.

        Raises:
            ValueError: If the text is not valid hexadecimal.
        """
        try:
            decoded = bytearray(binascii.unhexlify(text.strip()))
        except binascii.Error as e:
            msg = f"Invalid hexadecimal key: {e}"
            raise ValueError(msg) from e
        try:
            return cls(decoded)
        finally:
            decoded[:] = bytes(len(decoded))

    @property
    def is_cleared(self) -> bool:
        return self._cleared

    @property
    def bit_length(self) -> int:
        return len(self._buffer) * 8

    def clear(self) -> None:
        """Overwrite the buffer with zeros; calling it again does nothing."""
        if self._cleared:
            return
        self._buffer[:] = bytes(len(self._buffer))
        self._cleared = True

    def decode(self, encoding: str = "utf-8") -> str:
        return self._contents().decode(encoding)

    def _contents(self) -> bytearray:
        if self._cleared:
            msg = "SecretValue has been cleared"
            raise RuntimeError(msg)
        return self._buffer

    def __enter__(self) -> Self:
        return self

    def __exit__(self, *_: object) -> None:
        self.clear()

    def __bytes__(self) -> bytes:
        return bytes(self._contents())

    def __len__(self) -> int:
        return len(self._buffer)

    def __bool__(self) -> bool:
        return not self._cleared and bool(self._buffer)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, SecretValue):
            other_buffer = None if other._cleared else other._buffer
        elif isinstance(other, (bytes, bytearray)):
            other_buffer = other
        else:
            return NotImplemented
        if self._cleared or other_buffer is None:
            return False
        return hmac.compare_digest(self._buffer, other_buffer)

    def __hash__(self) -> int:
        msg = "SecretValue is not hashable"
        raise TypeError(msg)

    def __repr__(self) -> str:
        state = "cleared" if self._cleared else f"{len(self._buffer)} bytes"
        return f"SecretValue(<{state}>)"
