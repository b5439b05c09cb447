"""
Cryptographic primitives for Concord.

Provides implementations of:
- GF(2^bits) arithmetic and Shamir secret sharing (secrets.js share format)
- ECIES envelopes over secp256k1 / AES-256-GCM
- Paillier encryption for homomorphic vote tallying
"""

from .errors import (
    CompatError,
    ConfigurationError,
    FormatError,
    AuthenticationError,
    RangeError,
    InvalidFieldSize,
    InvalidThreshold,
    InvalidShareCount,
    InsufficientShares,
    InvalidPadLength,
    MalformedShare,
    MalformedSecret,
    FieldMismatch,
    DuplicateShareId,
    TruncatedEnvelope,
    UnsupportedVersion,
    UnsupportedCipherSuite,
    UnsupportedEncryptionType,
    EncryptionTypeMismatch,
    InvalidKey,
    MalformedVector,
    VectorMismatch,
    AuthenticationFailed,
    SecretTooLarge,
    PlaintextOutOfRange,
    CiphertextOutOfRange,
    InvalidCiphertext,
    FieldElementOutOfRange,
    DivisionByZero,
    KeyGenerationFailed
)

from .galois import GaloisField, get_field

from .shamir import (
    Share,
    ShamirSecretSharing,
    share,
    combine,
    new_share
)

from .ecies import (
    EciesEncryptionType,
    CipherSuite,
    CIPHER_SUITES,
    EciesHeader,
    EcKeyPair,
    derive_shared_secret,
    derive_symmetric_key,
    encrypt,
    encrypt_basic,
    encrypt_with_length,
    parse_header,
    decrypt_with_components,
    decrypt,
    iter_framed
)

from .drbg import HmacDrbg

from .paillier import (
    PaillierPublicKey,
    PaillierPrivateKey,
    PaillierKeyPair,
    generate_keypair,
    generate_keys,
    derive_voting_keys_from_ecdh
)

__all__ = [
    # Errors
    'CompatError',
    'ConfigurationError',
    'FormatError',
    'AuthenticationError',
    'RangeError',
    'InvalidFieldSize',
    'InvalidThreshold',
    'InvalidShareCount',
    'InsufficientShares',
    'InvalidPadLength',
    'MalformedShare',
    'MalformedSecret',
    'FieldMismatch',
    'DuplicateShareId',
    'TruncatedEnvelope',
    'UnsupportedVersion',
    'UnsupportedCipherSuite',
    'UnsupportedEncryptionType',
    'EncryptionTypeMismatch',
    'InvalidKey',
    'MalformedVector',
    'VectorMismatch',
    'AuthenticationFailed',
    'SecretTooLarge',
    'PlaintextOutOfRange',
    'CiphertextOutOfRange',
    'InvalidCiphertext',
    'FieldElementOutOfRange',
    'DivisionByZero',
    'KeyGenerationFailed',
    # Galois field / Shamir
    'GaloisField',
    'get_field',
    'Share',
    'ShamirSecretSharing',
    'share',
    'combine',
    'new_share',
    # ECIES
    'EciesEncryptionType',
    'CipherSuite',
    'CIPHER_SUITES',
    'EciesHeader',
    'EcKeyPair',
    'derive_shared_secret',
    'derive_symmetric_key',
    'encrypt',
    'encrypt_basic',
    'encrypt_with_length',
    'parse_header',
    'decrypt_with_components',
    'decrypt',
    'iter_framed',
    # Paillier
    'HmacDrbg',
    'PaillierPublicKey',
    'PaillierPrivateKey',
    'PaillierKeyPair',
    'generate_keypair',
    'generate_keys',
    'derive_voting_keys_from_ecdh'
]
