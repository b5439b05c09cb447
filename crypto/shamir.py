"""
Shamir Secret Sharing over GF(2^bits).

Implements (T, N)-threshold secret sharing where:
- A hex secret is split into N shares
- Any T or more shares reconstruct the secret
- Fewer than T shares reveal nothing about the secret

The share string format and the secret padding rules are shared with the
@digitaldefiance/secrets (secrets.js) family of implementations, so shares
produced by any of them combine here and vice versa:

    <bits: 1 base36 char><id: hex, fixed width><data: hex>

Before splitting, a marker bit '1' is prepended to the binary secret and
the result is left-padded with zeros to a multiple of `pad_length` bits.
The marker lets combine() strip the padding again without knowing the
original secret length.
"""

import logging
import re
import secrets
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple, Union

import numpy as np

from .galois import GaloisField, get_field, MIN_BITS, MAX_BITS
from .errors import (
    InvalidThreshold,
    InvalidShareCount,
    InsufficientShares,
    InvalidPadLength,
    MalformedShare,
    MalformedSecret,
    FieldMismatch,
    DuplicateShareId,
    SecretTooLarge
)


logger = logging.getLogger('concord.shamir')

DEFAULT_PAD_LENGTH = 128
MAX_PAD_LENGTH = 1024
DEFAULT_MAX_SECRET_BITS = 65536

_HEX = re.compile(r'[0-9a-fA-F]*')


def _ceil_div(a: int, b: int) -> int:
    return -(-a // b)


def _id_length(bits: int) -> int:
    """Number of hex digits used for share ids in a 2^bits field."""
    return len(format((1 << bits) - 1, 'x'))


def hex_to_int(value: str) -> Tuple[int, int]:
    """
    Parse a hex string.

    Returns:
        (integer value, number of bits the string spans)
    """
    if not isinstance(value, str) or not _HEX.fullmatch(value):
        raise MalformedSecret(f"Not a hex string: {value!r}")
    return (int(value, 16) if value else 0), 4 * len(value)


def int_to_hex(value: int, num_bits: int) -> str:
    """Hex-encode `num_bits` bits of value, left-padded to whole hex digits."""
    width = _ceil_div(num_bits, 4)
    if width == 0:
        return ''
    return format(value, f'0{width}x')


def split_number(value: int, num_bits: int, bits: int) -> List[int]:
    """
    Split a num_bits wide number into bits-wide chunks.

    Chunks are taken from the least significant end; the last chunk holds
    whatever remains at the top.
    """
    mask = (1 << bits) - 1
    return [(value >> (bits * j)) & mask for j in range(_ceil_div(num_bits, bits))]


def join_number(parts: Sequence[int], bits: int) -> int:
    """Inverse of split_number."""
    value = 0
    for part in reversed(parts):
        value = (value << bits) | int(part)
    return value


@dataclass(frozen=True)
class Share:
    """A parsed share string."""
    id: int
    bits: int
    data: str  # hex encoded share values

    @classmethod
    def parse(cls, text: str) -> 'Share':
        """
        Parse a share string.

        Raises:
            MalformedShare: If any component cannot be decoded
        """
        if not isinstance(text, str) or len(text) < 3:
            raise MalformedShare(f"Invalid share format: too short: {text!r}")

        try:
            bits = int(text[0], 36)
        except ValueError:
            raise MalformedShare(f"Invalid bits character: {text[0]!r}") from None
        if bits < MIN_BITS or bits > MAX_BITS:
            raise MalformedShare(f"Share bits must be between {MIN_BITS} and {MAX_BITS}, got {bits}")

        id_len = _id_length(bits)
        id_str = text[1:1 + id_len]
        data = text[1 + id_len:]
        if len(id_str) < id_len or not data:
            raise MalformedShare("Invalid share format: too short for id and data")
        if not _HEX.fullmatch(id_str):
            raise MalformedShare(f"Invalid share id: {id_str!r}")
        if not _HEX.fullmatch(data):
            raise MalformedShare("Share data is not hex")

        share_id = int(id_str, 16)
        if share_id < 1 or share_id >= (1 << bits):
            raise MalformedShare(f"Share id must be between 1 and {(1 << bits) - 1}, got {share_id}")

        return cls(share_id, bits, data.lower())

    def __str__(self) -> str:
        bits_char = format(self.bits, 'x').upper() if self.bits < 16 else chr(ord('A') + self.bits - 10)
        return f'{bits_char}{self.id:0{_id_length(self.bits)}x}{self.data}'

    @property
    def values(self) -> List[int]:
        """Field elements carried by this share, least significant chunk first."""
        value, num_bits = hex_to_int(self.data)
        return split_number(value, num_bits, self.bits)


def _random_elements(field: GaloisField, shape: Tuple[int, int]) -> np.ndarray:
    """Uniform field elements from the OS CSPRNG."""
    count = shape[0] * shape[1]
    raw = np.frombuffer(secrets.token_bytes(4 * count), dtype='<u4').astype(np.int64)
    return (raw & field.max_value).reshape(shape)


def _encode_share(share_id: int, values: Sequence[int], bits: int) -> str:
    data = int_to_hex(join_number(values, bits), len(values) * bits)
    return str(Share(share_id, bits, data))


def _collect(shares, field: Optional[GaloisField]):
    """Parse and cross-check shares, returning (field, ids, y matrix)."""
    parsed = [s if isinstance(s, Share) else Share.parse(s) for s in shares]
    if len(parsed) < 2:
        raise InsufficientShares(f"Need at least 2 shares, got {len(parsed)}")

    bits = {s.bits for s in parsed}
    if len(bits) != 1:
        raise FieldMismatch(f"Shares use different field sizes: {sorted(bits)}")
    bits = bits.pop()
    if field is not None and field.bits != bits:
        raise FieldMismatch(f"Shares use a {bits}-bit field, expected {field.bits} bits")

    ids = [s.id for s in parsed]
    if len(set(ids)) != len(ids):
        duplicates = sorted({i for i in ids if ids.count(i) > 1})
        raise DuplicateShareId(f"Duplicate share ids: {duplicates}")

    if len({len(s.data) for s in parsed}) != 1:
        raise MalformedShare("Shares carry data of different lengths")

    field = field if field is not None else GaloisField(bits)
    ys = np.array([s.values for s in parsed], dtype=np.int64).T
    return field, ids, ys


def share(
    secret: Union[str, bytes],
    num_shares: int,
    threshold: int,
    field: Union[GaloisField, int] = 8,
    pad_length: int = DEFAULT_PAD_LENGTH,
    max_secret_bits: Optional[int] = DEFAULT_MAX_SECRET_BITS
) -> List[str]:
    """
    Split a secret into share strings.

    Args:
        secret: Secret as a hex string (or raw bytes)
        num_shares: N - total number of shares
        threshold: T - minimum shares for reconstruction
        field: GaloisField or its bit width
        pad_length: Pad the marked secret to a multiple of this many bits
        max_secret_bits: Largest accepted secret, None for no limit

    Returns:
        List of N share strings with ids 1..N
    """
    field = get_field(field)

    if num_shares < 2 or num_shares > field.max_shares:
        raise InvalidShareCount(
            f"Number of shares must be between 2 and {field.max_shares}, got {num_shares}"
        )
    if threshold < 2 or threshold > num_shares:
        raise InvalidThreshold(
            f"Threshold must be between 2 and {num_shares}, got {threshold}"
        )
    if pad_length < 0 or pad_length > MAX_PAD_LENGTH:
        raise InvalidPadLength(
            f"Pad length must be between 0 and {MAX_PAD_LENGTH}, got {pad_length}"
        )

    if isinstance(secret, (bytes, bytearray)):
        secret = bytes(secret).hex()
    value, secret_bits = hex_to_int(secret)
    if max_secret_bits is not None and secret_bits > max_secret_bits:
        raise SecretTooLarge(
            f"Secret is {secret_bits} bits, limit is {max_secret_bits} bits"
        )

    # Marker bit, then zero padding up to the pad granularity
    value |= 1 << secret_bits
    total_bits = secret_bits + 1
    if pad_length > 1:
        total_bits = _ceil_div(total_bits, pad_length) * pad_length

    parts = split_number(value, total_bits, field.bits)
    coeffs = np.empty((len(parts), threshold), dtype=np.int64)
    coeffs[:, 0] = parts
    coeffs[:, 1:] = _random_elements(field, (len(parts), threshold - 1))

    result = []
    for share_id in range(1, num_shares + 1):
        values = field.evaluate(coeffs, share_id)
        result.append(_encode_share(share_id, values.tolist(), field.bits))

    logger.debug(
        f"Split {secret_bits}-bit secret into {num_shares} shares "
        f"(threshold {threshold}, {field.bits}-bit field, {len(parts)} chunks)"
    )
    return result


def combine(shares: Sequence[Union[str, Share]], field: Optional[GaloisField] = None) -> str:
    """
    Reconstruct a secret with Lagrange interpolation at x = 0.

    The field is detected from the shares. Supplying fewer shares than the
    threshold used when splitting yields an unrelated value, not an error.

    Args:
        shares: Share strings (or parsed Share objects)
        field: Optional field the shares must belong to

    Returns:
        The secret as a lower-case hex string
    """
    field, ids, ys = _collect(shares, field)

    parts = field.interpolate(0, ids, ys)
    value = join_number(parts.tolist(), field.bits)

    # Strip the zero padding and the marker bit
    if value == 0:
        return int_to_hex(0, len(parts) * field.bits)
    marker = value.bit_length() - 1
    return int_to_hex(value ^ (1 << marker), marker)


def new_share(
    share_id: int,
    shares: Sequence[Union[str, Share]],
    field: Optional[GaloisField] = None
) -> str:
    """
    Create an additional share for `share_id` from at least T existing shares.

    The new share lies on the same polynomials, so it combines with the
    original shares exactly like the ones produced by share().
    """
    field, ids, ys = _collect(shares, field)
    if share_id < 1 or share_id > field.max_shares:
        raise InvalidShareCount(
            f"Share id must be between 1 and {field.max_shares}, got {share_id}"
        )

    values = field.interpolate(share_id, ids, ys)
    return _encode_share(share_id, values.tolist(), field.bits)


class ShamirSecretSharing:
    """
    Shamir (T, N)-threshold secret sharing bound to one Galois field.

    Attributes:
        field: The GF(2^bits) all shares live in
        pad_length: Secret padding granularity in bits
        max_secret_bits: Largest accepted secret
    """

    def __init__(
        self,
        field: Union[GaloisField, int] = 8,
        pad_length: int = DEFAULT_PAD_LENGTH,
        max_secret_bits: Optional[int] = DEFAULT_MAX_SECRET_BITS
    ):
        self.field = get_field(field)
        self.pad_length = pad_length
        self.max_secret_bits = max_secret_bits

    @property
    def bits(self) -> int:
        return self.field.bits

    def share(self, secret: Union[str, bytes], num_shares: int, threshold: int) -> List[str]:
        """Split a secret into num_shares shares."""
        return share(
            secret, num_shares, threshold, self.field,
            pad_length=self.pad_length,
            max_secret_bits=self.max_secret_bits
        )

    def combine(self, shares: Sequence[Union[str, Share]]) -> str:
        """Reconstruct a secret; shares from another field are rejected."""
        return combine(shares, self.field)

    def new_share(self, share_id: int, shares: Sequence[Union[str, Share]]) -> str:
        return new_share(share_id, shares, self.field)
