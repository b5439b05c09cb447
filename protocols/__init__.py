"""
Test-vector exchange protocol for Concord.

Implements both sides of the exchange:
1. Producing vector files with fresh keys and randomness
2. Verifying vector files written by any implementation
"""

from .test_vectors import (
    SCHEMES,
    TestVector,
    VectorFile,
    VectorProducer,
    ecies_plaintext
)

from .verification import (
    SchemeReport,
    VerificationReport,
    VectorVerifier
)

__all__ = [
    # Vector files
    'SCHEMES',
    'TestVector',
    'VectorFile',
    'VectorProducer',
    'ecies_plaintext',
    # Verification
    'SchemeReport',
    'VerificationReport',
    'VectorVerifier'
]
