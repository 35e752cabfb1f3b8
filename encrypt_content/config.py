"""
Engine settings.

These are process-level tuning knobs, separate from the per-invocation
EncryptionProperties supplied by the host.
"""

from dataclasses import dataclass

_OPENPGP_HASH_IDS = frozenset({1, 2, 8, 9, 10, 11})


@dataclass(frozen=True, kw_only=True)
class EncryptContentSettings:
    """
    Attributes:
        min_password_length: Minimum UTF-8 byte length of a password before it is
            considered weak (only enforced when weak crypto is not allowed).
        max_allowed_key_length: Maximum symmetric key length in bits permitted by the
            runtime policy. None means unrestricted.
        buffer_size: Chunk size used when streaming through a cipher.
        legacy_iteration_count: Iteration count of the NiFi legacy KDF.
        pbkdf2_iterations: PBKDF2-HMAC-SHA512 iteration count.
        bcrypt_work_factor: Bcrypt cost (log2 rounds).
        scrypt_n: Scrypt CPU/memory cost (power of two).
        scrypt_r: Scrypt block size.
        scrypt_p: Scrypt parallelization.
        argon2_time_cost: Argon2id iterations.
        argon2_memory_cost: Argon2id memory in KiB.
        argon2_parallelism: Argon2id lanes.
        pgp_s2k_count: Byte count for the OpenPGP iterated+salted S2K on encrypt.
        pgp_s2k_hash: OpenPGP hash algorithm id for S2K on encrypt.
        pgp_literal_filename: File name written into OpenPGP literal data packets.
    """

    min_password_length: int = 16
    max_allowed_key_length: int | None = None
    buffer_size: int = 65536
    legacy_iteration_count: int = 1000
    pbkdf2_iterations: int = 160_000
    bcrypt_work_factor: int = 12
    scrypt_n: int = 16384
    scrypt_r: int = 8
    scrypt_p: int = 1
    argon2_time_cost: int = 3
    argon2_memory_cost: int = 65536
    argon2_parallelism: int = 1
    pgp_s2k_count: int = 65536
    pgp_s2k_hash: int = 8
    pgp_literal_filename: str = ""

    def __post_init__(self) -> None:
        if self.min_password_length < 0:
            msg = "min_password_length must be non-negative"
            raise ValueError(msg)
        if self.max_allowed_key_length is not None and self.max_allowed_key_length <= 0:
            msg = "max_allowed_key_length must be positive"
            raise ValueError(msg)
        if self.buffer_size <= 0:
            msg = "buffer_size must be positive"
            raise ValueError(msg)
        if self.legacy_iteration_count <= 0:
            msg = "legacy_iteration_count must be positive"
            raise ValueError(msg)
        if self.pbkdf2_iterations <= 0:
            msg = "pbkdf2_iterations must be positive"
            raise ValueError(msg)
        if not 4 <= self.bcrypt_work_factor <= 31:
            msg = "bcrypt_work_factor must be between 4 and 31"
            raise ValueError(msg)
        if self.scrypt_n < 2 or self.scrypt_n & (self.scrypt_n - 1):
            msg = "scrypt_n must be a power of two greater than 1"
            raise ValueError(msg)
        if self.scrypt_r <= 0 or self.scrypt_p <= 0:
            msg = "scrypt_r and scrypt_p must be positive"
            raise ValueError(msg)
        if self.argon2_time_cost <= 0 or self.argon2_parallelism <= 0:
            msg = "argon2_time_cost and argon2_parallelism must be positive"
            raise ValueError(msg)
        if self.argon2_memory_cost < 8 * self.argon2_parallelism:
            msg = "argon2_memory_cost must be at least 8 KiB per lane"
            raise ValueError(msg)
        if not 1024 <= self.pgp_s2k_count <= 65011712:
            msg = "pgp_s2k_count must be between 1024 and 65011712"
            raise ValueError(msg)
        if self.pgp_s2k_hash not in _OPENPGP_HASH_IDS:
            msg = f"pgp_s2k_hash must be one of {sorted(_OPENPGP_HASH_IDS)}"
            raise ValueError(msg)
        if len(self.pgp_literal_filename.encode("utf-8")) > 255:
            msg = "pgp_literal_filename must be at most 255 bytes"
            raise ValueError(msg)
