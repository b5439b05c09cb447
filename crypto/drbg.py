"""
HMAC-DRBG (NIST SP 800-90A) over HMAC-SHA512.

Used to derive Paillier voting keys deterministically from an ECDH seed:
the same seed always yields the same byte stream, and therefore the same
primes.
"""

import hashlib
import hmac


class HmacDrbg:
    """
    Deterministic random bit generator seeded once from entropy.

    Reseeding and prediction resistance are not supported; callers create a
    new instance per derivation.
    """

    OUTLEN = 64

    def __init__(self, seed: bytes, personalization: bytes = b''):
        self._key = b'\x00' * self.OUTLEN
        self._value = b'\x01' * self.OUTLEN
        self._update(bytes(seed) + bytes(personalization))

    def _hmac(self, data: bytes) -> bytes:
        return hmac.new(self._key, data, hashlib.sha512).digest()

    def _update(self, data: bytes = b''):
        self._key = self._hmac(self._value + b'\x00' + data)
        self._value = self._hmac(self._value)
        if data:
            self._key = self._hmac(self._value + b'\x01' + data)
            self._value = self._hmac(self._value)

    def generate(self, num_bytes: int) -> bytes:
        """Return the next num_bytes of output."""
        if num_bytes < 0:
            raise ValueError(f"num_bytes must be non-negative, got {num_bytes}")

        out = bytearray()
        while len(out) < num_bytes:
            self._value = self._hmac(self._value)
            out.extend(self._value)

        self._update()
        return bytes(out[:num_bytes])

    def randbits(self, bits: int) -> int:
        """Next `bits` bits of output as an integer."""
        value = int.from_bytes(self.generate((bits + 7) // 8), 'big')
        return value >> (-bits % 8)

    def randbelow(self, upper: int) -> int:
        """Uniform integer in [0, upper) by rejection sampling."""
        if upper <= 0:
            raise ValueError(f"upper must be positive, got {upper}")
        bits = upper.bit_length()
        while True:
            value = self.randbits(bits)
            if value < upper:
                return value
