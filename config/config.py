"""
Configuration settings for Concord.
Defaults are the interoperable parameters shared with the other implementations.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from crypto.ecies import CIPHER_SUITES
from crypto.errors import ConfigurationError


@dataclass
class ShamirConfig:
    """Shamir secret sharing parameters."""
    # Marked secret is zero-padded to a multiple of this many bits
    pad_length: int = 128
    # Largest secret accepted by share()
    max_secret_bits: int = 65536


@dataclass
class EciesConfig:
    """ECIES envelope parameters."""
    # Cipher suite byte stamped into produced envelopes (1 = secp256k1 / AES-256-GCM / SHA-256)
    cipher_suite: int = 1


@dataclass
class PaillierConfig:
    """Paillier key generation parameters."""
    prime_test_iterations: int = 64
    max_keygen_attempts: int = 64


@dataclass
class VectorConfig:
    """Test-vector production parameters."""
    schemes: List[str] = field(default_factory=lambda: ['ecies', 'shamir', 'paillier'])
    ecies_plaintext_sizes: List[int] = field(default_factory=lambda: [
        0, 1, 2, 4, 8, 16, 32, 64, 128, 256, 512, 1024
    ])
    shamir_bits: List[int] = field(default_factory=lambda: [3, 4, 8, 12, 16, 20])
    # None entries are replaced by a random 16 byte secret at production time
    shamir_secrets: List[Optional[str]] = field(default_factory=lambda: [
        'deadbeef',
        '00000000',
        'ffffffffffffffff',
        '0123456789abcdef',
        None
    ])
    # (share count, threshold)
    share_combinations: List[Tuple[int, int]] = field(default_factory=lambda: [
        (2, 2), (3, 2), (5, 3), (7, 4), (10, 5)
    ])
    paillier_key_size: int = 1024
    paillier_plaintexts: List[int] = field(default_factory=lambda: [0, 1, 42, 1000, 65535])
    # Byte field encoding: 'hex' or 'base64'
    encoding: str = 'hex'


@dataclass
class CompatConfig:
    """Complete Concord configuration."""
    shamir: ShamirConfig = field(default_factory=ShamirConfig)
    ecies: EciesConfig = field(default_factory=EciesConfig)
    paillier: PaillierConfig = field(default_factory=PaillierConfig)
    vectors: VectorConfig = field(default_factory=VectorConfig)

    log_level: str = 'INFO'
    log_dir: Optional[str] = None
    output_dir: str = './outputs'

    def __post_init__(self):
        if self.shamir.pad_length < 0 or self.shamir.pad_length > 1024:
            raise ConfigurationError(
                f"Pad length must be between 0 and 1024, got {self.shamir.pad_length}"
            )
        if self.ecies.cipher_suite not in CIPHER_SUITES:
            raise ConfigurationError(f"Unsupported ECIES cipher suite: {self.ecies.cipher_suite}")
        bad_bits = [b for b in self.vectors.shamir_bits if b < 3 or b > 20]
        if bad_bits:
            raise ConfigurationError(f"Shamir bits must be between 3 and 20, got {bad_bits}")
        unknown = set(self.vectors.schemes) - {'ecies', 'shamir', 'paillier'}
        if unknown:
            raise ConfigurationError(f"Unknown schemes: {sorted(unknown)}")
        if self.vectors.encoding not in ('hex', 'base64'):
            raise ConfigurationError(f"Unknown byte encoding: {self.vectors.encoding!r}")
        if not isinstance(logging.getLevelName(self.log_level.upper()), int):
            raise ConfigurationError(f"Unknown log level: {self.log_level!r}")


# Default configuration instance
DEFAULT_CONFIG = CompatConfig()


def get_config(
    schemes: Optional[List[str]] = None,
    paillier_bits: Optional[int] = None,
    encoding: str = 'hex',
    log_level: str = 'INFO',
    output_dir: str = './outputs'
) -> CompatConfig:
    """
    Get configuration for a vector production run.

    Args:
        schemes: Schemes to produce vectors for (all when None)
        paillier_bits: Paillier modulus size for the vector key pair
        encoding: Byte field encoding ('hex' or 'base64')
        log_level: Logging level name
        output_dir: Directory for produced files

    Returns:
        Configured CompatConfig instance
    """
    vectors = VectorConfig(encoding=encoding)
    if paillier_bits is not None:
        vectors.paillier_key_size = paillier_bits
    if schemes is not None:
        vectors.schemes = list(schemes)

    return CompatConfig(
        vectors=vectors,
        log_level=log_level,
        output_dir=output_dir
    )
