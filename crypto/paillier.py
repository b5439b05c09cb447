"""
Paillier Cryptosystem Implementation.

Implements the Paillier public-key cryptosystem supporting:
- Homomorphic addition of ciphertexts (votes are tallied this way)
- Addition of plaintext constants and multiplication by constants
- Deterministic voting keys derived from a member's ECDH key pair

Generated keys always use g = n + 1, so mu = lambda^-1 mod n.
"""

import logging
import math
import secrets
from functools import reduce
from typing import Dict, Optional, Tuple

from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.kdf.hkdf import HKDF

from .drbg import HmacDrbg
from .ecies import SECP256K1_ORDER, load_private_key, load_public_key
from .errors import (
    CiphertextOutOfRange,
    ConfigurationError,
    InvalidCiphertext,
    InvalidKey,
    KeyGenerationFailed,
    PlaintextOutOfRange
)


logger = logging.getLogger('concord.paillier')

VOTING_KEY_INFO = b'PaillierPrimeGen'

_SMALL_PRIMES = (3, 5, 7, 11, 13, 17, 19, 23, 29, 31, 37, 41, 43, 47, 53, 59, 61, 67, 71, 73, 79, 83, 89, 97)


def _is_prime(n: int, k: int = 64, source=secrets) -> bool:
    """
    Miller-Rabin primality test.

    Args:
        n: Number to test for primality
        k: Number of rounds (higher = more accurate)
        source: Provider of randbelow() for the witnesses

    Returns:
        True if probably prime, False if composite
    """
    if n < 2:
        return False
    if n in (2, 3):
        return True
    if n % 2 == 0:
        return False
    for p in _SMALL_PRIMES:
        if n == p:
            return True
        if n % p == 0:
            return False

    # Write n-1 as 2^r * d
    r, d = 0, n - 1
    while d % 2 == 0:
        r += 1
        d //= 2

    # Witness loop
    for _ in range(k):
        a = 2 + source.randbelow(n - 3)
        x = pow(a, d, n)

        if x == 1 or x == n - 1:
            continue

        for _ in range(r - 1):
            x = pow(x, 2, n)
            if x == n - 1:
                break
        else:
            return False
    return True


def _generate_prime(bits: int, k: int = 64, source=secrets) -> int:
    """
    Generate a prime of exactly `bits` bits.

    The top two bits are set so the product of two such primes has exactly
    2 * bits bits.
    """
    while True:
        candidate = source.randbits(bits)
        candidate |= (3 << (bits - 2)) | 1
        if _is_prime(candidate, k, source):
            return candidate


def _lcm(a: int, b: int) -> int:
    """Compute least common multiple of a and b."""
    return abs(a * b) // math.gcd(a, b)


def _L(x: int, n: int) -> int:
    """L function: L(x) = (x - 1) / n."""
    return (x - 1) // n


def _hex(value: int) -> str:
    return format(value, 'x')


def _parse_hex(data: Dict, field: str) -> int:
    try:
        return int(data[field], 16)
    except (KeyError, TypeError, ValueError):
        raise InvalidKey(f"Key field {field!r} is missing or not hex") from None


class PaillierPublicKey:
    """Paillier public key for encryption and homomorphic operations."""

    def __init__(self, n: int, g: Optional[int] = None):
        """
        Initialize public key.

        Args:
            n: Modulus n = p * q
            g: Generator g in Z*_{n^2}, n + 1 when omitted
        """
        self.n = n
        self.g = n + 1 if g is None else g
        self.n_sq = n * n

    def __eq__(self, other) -> bool:
        if not isinstance(other, PaillierPublicKey):
            return NotImplemented
        return self.n == other.n and self.g == other.g

    def __hash__(self) -> int:
        return hash((self.n, self.g))

    def __repr__(self) -> str:
        return f'PaillierPublicKey(bits={self.n.bit_length()})'

    @property
    def bits(self) -> int:
        return self.n.bit_length()

    def _g_pow(self, m: int) -> int:
        if self.g == self.n + 1:
            # (1 + n)^m = 1 + m*n mod n^2
            return (1 + m * self.n) % self.n_sq
        return pow(self.g, m, self.n_sq)

    def _check_ciphertext(self, c: int):
        if not isinstance(c, int) or c < 1 or c >= self.n_sq:
            raise CiphertextOutOfRange("Ciphertext must be in [1, n^2)")

    def random_factor(self) -> int:
        """Fresh r from Z*_n."""
        while True:
            r = 1 + secrets.randbelow(self.n - 1)
            if math.gcd(r, self.n) == 1:
                return r

    def encrypt(self, plaintext: int, r: Optional[int] = None) -> int:
        """
        Encrypt a plaintext message.

        Args:
            plaintext: Message to encrypt, 0 <= m < n
            r: Random value for encryption (fresh one if not provided)

        Returns:
            Ciphertext c = g^m * r^n mod n^2
        """
        if not isinstance(plaintext, int) or plaintext < 0 or plaintext >= self.n:
            raise PlaintextOutOfRange("Plaintext must be in [0, n)")

        if r is None:
            r = self.random_factor()
        elif r < 1 or r >= self.n or math.gcd(r, self.n) != 1:
            raise ValueError("Random factor must be in Z*_n")

        return (self._g_pow(plaintext) * pow(r, self.n, self.n_sq)) % self.n_sq

    def addition(self, *ciphertexts: int) -> int:
        """
        Homomorphic addition: Dec(c1 * c2 * ...) = m1 + m2 + ... mod n.

        Returns:
            Encrypted sum
        """
        if not ciphertexts:
            raise ValueError("addition() needs at least one ciphertext")
        for c in ciphertexts:
            self._check_ciphertext(c)
        return reduce(lambda a, b: (a * b) % self.n_sq, ciphertexts)

    def add(self, c1: int, c2: int) -> int:
        """Homomorphic addition of two ciphertexts."""
        return self.addition(c1, c2)

    def plaintext_addition(self, c: int, *plaintexts: int) -> int:
        """Add plaintext constants to an encrypted value: Dec = m + k1 + ... mod n."""
        self._check_ciphertext(c)
        return (c * self._g_pow(sum(plaintexts) % self.n)) % self.n_sq

    def multiply(self, c: int, scalar: int) -> int:
        """
        Scalar multiplication: Dec(c^scalar) = scalar * m mod n.

        Negative scalars are reduced mod n.
        """
        self._check_ciphertext(c)
        return pow(c, scalar % self.n, self.n_sq)

    def to_dict(self) -> Dict[str, str]:
        return {'n': _hex(self.n), 'g': _hex(self.g)}

    @classmethod
    def from_dict(cls, data: Dict) -> 'PaillierPublicKey':
        return cls(_parse_hex(data, 'n'), _parse_hex(data, 'g'))


class PaillierPrivateKey:
    """Paillier private key for decryption."""

    def __init__(
        self,
        lam: int,
        mu: int,
        public_key: PaillierPublicKey,
        p: Optional[int] = None,
        q: Optional[int] = None
    ):
        """
        Initialize private key.

        Args:
            lam: Lambda = lcm(p-1, q-1)
            mu: Mu = L(g^lambda mod n^2)^{-1} mod n
            public_key: Matching public key
            p, q: Prime factors of n, when known
        """
        self.lam = lam
        self.mu = mu
        self.public_key = public_key
        self.p = p
        self.q = q

    def __eq__(self, other) -> bool:
        if not isinstance(other, PaillierPrivateKey):
            return NotImplemented
        return (self.lam, self.mu, self.public_key) == (other.lam, other.mu, other.public_key)

    def __hash__(self) -> int:
        return hash((self.lam, self.mu))

    def __repr__(self) -> str:
        return f'PaillierPrivateKey(bits={self.public_key.bits})'

    @property
    def n(self) -> int:
        return self.public_key.n

    def decrypt(self, ciphertext: int) -> int:
        """
        Decrypt a ciphertext.

        Args:
            ciphertext: Encrypted message in [1, n^2)

        Returns:
            Decrypted plaintext in [0, n)

        Raises:
            InvalidCiphertext: If gcd(c, n^2) != 1, including c = 0
            CiphertextOutOfRange: If c lies outside [0, n^2)
        """
        pk = self.public_key
        if isinstance(ciphertext, int) and 0 <= ciphertext < pk.n_sq:
            if math.gcd(ciphertext, pk.n_sq) != 1:
                raise InvalidCiphertext("Ciphertext is not a unit mod n^2")
        pk._check_ciphertext(ciphertext)

        # m = L(c^lambda mod n^2) * mu mod n
        return (_L(pow(ciphertext, self.lam, pk.n_sq), pk.n) * self.mu) % pk.n

    def get_random_factor(self, ciphertext: int) -> int:
        """
        Recover the random factor r used to produce a ciphertext.

        Raises:
            InvalidKey: If the prime factors are unknown
        """
        if self.p is None or self.q is None:
            raise InvalidKey("Recovering r requires the prime factors of n")

        pk = self.public_key
        m = self.decrypt(ciphertext)
        r_n = (ciphertext * pow(pk._g_pow(m), -1, pk.n_sq)) % pk.n_sq
        phi = (self.p - 1) * (self.q - 1)
        return pow(r_n % pk.n, pow(pk.n, -1, phi), pk.n)

    def to_dict(self) -> Dict[str, str]:
        return {'lambda': _hex(self.lam), 'mu': _hex(self.mu)}

    @classmethod
    def from_dict(cls, data: Dict, public_key: PaillierPublicKey) -> 'PaillierPrivateKey':
        return cls(_parse_hex(data, 'lambda'), _parse_hex(data, 'mu'), public_key)


class PaillierKeyPair:
    """Container for Paillier key pair."""

    def __init__(self, public_key: PaillierPublicKey, private_key: PaillierPrivateKey):
        self.public = public_key
        self.private = private_key

    def __iter__(self):
        return iter((self.public, self.private))

    def to_dict(self) -> Dict[str, Dict[str, str]]:
        return {'publicKey': self.public.to_dict(), 'privateKey': self.private.to_dict()}

    @classmethod
    def from_dict(cls, data: Dict) -> 'PaillierKeyPair':
        public = PaillierPublicKey.from_dict(data.get('publicKey', {}))
        return cls(public, PaillierPrivateKey.from_dict(data.get('privateKey', {}), public))


def _keypair_from_primes(p: int, q: int) -> Optional[PaillierKeyPair]:
    """Assemble a key pair with g = n + 1, or None if p and q are unusable."""
    if p == q:
        return None
    n = p * q
    if math.gcd(n, (p - 1) * (q - 1)) != 1:
        return None

    lam = _lcm(p - 1, q - 1)
    public_key = PaillierPublicKey(n, n + 1)
    try:
        mu = pow(_L(pow(public_key.g, lam, public_key.n_sq), n), -1, n)
    except ValueError:
        return None

    return PaillierKeyPair(public_key, PaillierPrivateKey(lam, mu, public_key, p, q))


def _check_key_size(key_size: int):
    if key_size < 16 or key_size % 2:
        raise ConfigurationError(f"Key size must be an even number of bits >= 16, got {key_size}")


def generate_keypair(
    key_size: int = 2048,
    max_attempts: int = 64,
    prime_test_iterations: int = 64
) -> PaillierKeyPair:
    """
    Generate a new Paillier key pair.

    Args:
        key_size: Bit length of n (modulus)
        max_attempts: Prime pairs to try before giving up
        prime_test_iterations: Miller-Rabin rounds per candidate

    Returns:
        PaillierKeyPair containing public and private keys
    """
    _check_key_size(key_size)

    for attempt in range(1, max_attempts + 1):
        p = _generate_prime(key_size // 2, prime_test_iterations)
        q = _generate_prime(key_size // 2, prime_test_iterations)
        keypair = _keypair_from_primes(p, q)
        if keypair is not None:
            logger.debug(f"Generated {key_size}-bit Paillier key pair (attempt {attempt})")
            return keypair

    raise KeyGenerationFailed(f"No usable {key_size}-bit key pair after {max_attempts} attempts")


def generate_keys(key_size: int = 2048, **kwargs) -> Tuple[PaillierPublicKey, PaillierPrivateKey]:
    """Generate a key pair and return it as (public, private)."""
    keypair = generate_keypair(key_size, **kwargs)
    return keypair.public, keypair.private


def _shared_point(private_key, public_key) -> bytes:
    """
    Uncompressed ECDH point of a member's own key pair.

    cryptography only exposes the x-coordinate of an exchange, so the point
    d * (d * G) is computed as the public key of the scalar d^2 mod order.
    """
    priv = load_private_key(private_key)
    pub = load_public_key(public_key)
    fmt = serialization.PublicFormat.UncompressedPoint
    own = priv.public_key().public_bytes(serialization.Encoding.X962, fmt)
    if pub.public_bytes(serialization.Encoding.X962, fmt) != own:
        raise InvalidKey("Voting keys derive from the member's own key pair; public key does not match")

    d = priv.private_numbers().private_value
    point = ec.derive_private_key((d * d) % SECP256K1_ORDER, ec.SECP256K1()).public_key()
    return point.public_bytes(serialization.Encoding.X962, fmt)


def derive_voting_keys_from_ecdh(
    private_key,
    public_key,
    key_size: int = 3072,
    prime_test_iterations: int = 256,
    max_attempts: int = 64
) -> PaillierKeyPair:
    """
    Deterministically derive Paillier voting keys from an ECDH key pair.

    The shared point is stretched with HKDF-SHA512 into a seed for an
    HMAC-DRBG, which then drives the whole prime search. The same key pair
    always produces the same Paillier keys.

    Args:
        private_key: Member's secp256k1 private key
        public_key: Member's own public key
        key_size: Bit length of n
        prime_test_iterations: Miller-Rabin rounds per candidate

    Returns:
        PaillierKeyPair with g = n + 1
    """
    _check_key_size(key_size)

    seed = HKDF(
        algorithm=hashes.SHA512(),
        length=64,
        salt=None,
        info=VOTING_KEY_INFO,
    ).derive(_shared_point(private_key, public_key))
    drbg = HmacDrbg(seed)

    p = _generate_prime(key_size // 2, prime_test_iterations, drbg)
    for _ in range(max_attempts):
        q = _generate_prime(key_size // 2, prime_test_iterations, drbg)
        keypair = _keypair_from_primes(p, q)
        if keypair is not None:
            logger.debug(f"Derived {key_size}-bit Paillier voting key pair")
            return keypair

    raise KeyGenerationFailed("Could not derive voting keys from this key pair")
