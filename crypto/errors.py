"""
Error taxonomy for the Concord primitives.

Every failure surfaces as a distinct exception class so callers (and the
test-vector verifier) can tell configuration mistakes, malformed input,
authentication failures and out-of-range values apart:

- ConfigurationError: bad field size, threshold or share count
- FormatError: truncated or malformed envelopes, shares and vectors
- AuthenticationError: AEAD tag mismatch
- RangeError: values outside the valid field or modulus
"""


class CompatError(Exception):
    """Base class for all Concord errors."""


# Configuration

class ConfigurationError(CompatError, ValueError):
    """Parameters rejected before any computation takes place."""


class InvalidFieldSize(ConfigurationError):
    pass


class InvalidThreshold(ConfigurationError):
    pass


class InvalidShareCount(ConfigurationError):
    pass


class InsufficientShares(ConfigurationError):
    pass


class InvalidPadLength(ConfigurationError):
    pass


# Format

class FormatError(CompatError, ValueError):
    """Input rejected while parsing; no partial output is produced."""


class MalformedShare(FormatError):
    pass


class MalformedSecret(FormatError):
    pass


class FieldMismatch(FormatError):
    pass


class DuplicateShareId(FormatError):
    pass


class TruncatedEnvelope(FormatError):
    pass


class UnsupportedVersion(FormatError):
    pass


class UnsupportedCipherSuite(FormatError):
    pass


class UnsupportedEncryptionType(FormatError):
    pass


class EncryptionTypeMismatch(FormatError):
    pass


class InvalidKey(FormatError):
    pass


class MalformedVector(FormatError):
    pass


class VectorMismatch(CompatError):
    """A recomputed value differs from the one recorded in a test vector."""


# Authentication

class AuthenticationError(CompatError):
    """AEAD verification failed. The message never says why."""


class AuthenticationFailed(AuthenticationError):

    def __init__(self, message: str = 'Authentication failed'):
        super().__init__(message)


# Range

class RangeError(CompatError, ValueError):
    """Value outside the valid field or modulus."""


class SecretTooLarge(RangeError):
    pass


class PlaintextOutOfRange(RangeError):
    pass


class CiphertextOutOfRange(RangeError):
    pass


class InvalidCiphertext(RangeError):
    pass


class FieldElementOutOfRange(RangeError):
    pass


# Arithmetic / key generation

class DivisionByZero(CompatError, ZeroDivisionError):
    pass


class KeyGenerationFailed(CompatError, RuntimeError):
    pass
