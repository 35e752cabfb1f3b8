"""
Interfaces between the orchestrator and the crypto paths.

Each encryption path (password-based, keyed, OpenPGP) implements
ContentEncryptor, so the orchestrator can dispatch on the method without
knowing how the frame is laid out.
"""

from os import PathLike
from typing import BinaryIO, Protocol, runtime_checkable


@runtime_checkable
class ContentEncryptor(Protocol):
    """Streams content from source to sink in one direction."""

    def encrypt(self, source: BinaryIO, sink: BinaryIO) -> None:
        """
        Encrypt everything readable from source and write the framed result to sink.

        Raises:
            CryptoError: If the cipher cannot be initialized.
        """
        ...

    def decrypt(self, source: BinaryIO, sink: BinaryIO) -> None:
        """
        Decrypt a framed ciphertext from source and write the plaintext to sink.

        Raises:
            FormatError: If the frame or packet layout is malformed.
            CryptoError: If decryption or an integrity check fails.
        """
        ...


@runtime_checkable
class KeyringSource(Protocol):
    """
    Loads keyring bytes from a location.

    The default implementation reads files; tests substitute in-memory sources.
    """

    def read(self, location: str | PathLike[str]) -> bytes:
        """
        Args:
            location: Keyring location, typically a file path.

        Returns:
            Raw keyring bytes (binary or ASCII-armored).

        Raises:
            KeyringNotFoundError: If nothing exists at the location.
        """
        ...
