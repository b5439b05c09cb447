"""
Galois Field GF(2^bits) Arithmetic.

Implements the field used by the Shamir secret sharing engine:
- Log/exp tables built from one primitive polynomial per bit width
- Addition (XOR), multiplication and division through the tables
- Vectorised Horner evaluation and Lagrange interpolation over numpy rows

The primitive polynomial table and the table-building loop must match the
other implementations bit for bit; shares produced elsewhere are only
combinable here if both sides build identical tables.
"""

import logging
from typing import Sequence

import numpy as np

from .errors import (
    InvalidFieldSize,
    DivisionByZero,
    FieldElementOutOfRange
)


logger = logging.getLogger('concord.galois')

MIN_BITS = 3
MAX_BITS = 20

# Low-order terms of the primitive polynomial for each bit width (index = bits)
PRIMITIVE_POLYNOMIALS = (
    0, 0, 1, 3, 3, 5, 3, 3, 29, 17, 9, 5, 83, 27, 43, 3, 45, 9, 39, 39, 9
)


def _build_tables(bits: int, primitive: int):
    """Build the log and exp tables for GF(2^bits)."""
    size = 1 << bits
    max_value = size - 1
    logs = [0] * size
    exps = [0] * size

    x = 1
    for i in range(size):
        exps[i] = x
        logs[x] = i
        x <<= 1
        if x >= size:
            x ^= primitive
            x &= max_value

    return np.array(logs, dtype=np.int64), np.array(exps, dtype=np.int64)


class GaloisField:
    """
    The finite field GF(2^bits).

    Attributes:
        bits: Bit width of one field element (3..20)
        primitive: Primitive polynomial (low-order terms)
        size: Number of field elements, 2^bits
        max_value: Largest element, also the order of the multiplicative group
        logs: Discrete log table
        exps: Exponent table
    """

    def __init__(self, bits: int):
        """
        Initialize the field and build its tables.

        Args:
            bits: Bit width, between 3 and 20 inclusive

        Raises:
            InvalidFieldSize: If bits is outside [3, 20]
        """
        if isinstance(bits, bool) or not isinstance(bits, int):
            raise InvalidFieldSize(f"Field bits must be an integer, got {bits!r}")
        if bits < MIN_BITS or bits > MAX_BITS:
            raise InvalidFieldSize(
                f"Field bits must be between {MIN_BITS} and {MAX_BITS}, got {bits}"
            )

        self.bits = bits
        self.primitive = PRIMITIVE_POLYNOMIALS[bits]
        self.size = 1 << bits
        self.max_value = self.size - 1
        self.logs, self.exps = _build_tables(bits, self.primitive)

        logger.debug(f"Built GF(2^{bits}) tables with polynomial {self.primitive}")

    def __repr__(self) -> str:
        return f'GaloisField(bits={self.bits})'

    def __eq__(self, other) -> bool:
        if not isinstance(other, GaloisField):
            return NotImplemented
        return self.bits == other.bits

    def __hash__(self) -> int:
        return hash(('GaloisField', self.bits))

    @property
    def max_shares(self) -> int:
        """Largest usable share id (ids are non-zero field elements)."""
        return self.max_value

    def _check(self, *elements: int):
        for a in elements:
            if a < 0 or a >= self.size:
                raise FieldElementOutOfRange(
                    f"{a} is not an element of GF(2^{self.bits})"
                )

    def add(self, a: int, b: int) -> int:
        """Field addition (XOR)."""
        self._check(a, b)
        return a ^ b

    # Subtraction and addition coincide in characteristic 2
    sub = add

    def mul(self, a: int, b: int) -> int:
        """Field multiplication through the log/exp tables."""
        self._check(a, b)
        if a == 0 or b == 0:
            return 0
        return int(self.exps[(self.logs[a] + self.logs[b]) % self.max_value])

    def div(self, a: int, b: int) -> int:
        """
        Field division a / b.

        Raises:
            DivisionByZero: If b is zero
        """
        self._check(a, b)
        if b == 0:
            raise DivisionByZero(f"Division by zero in GF(2^{self.bits})")
        if a == 0:
            return 0
        return int(self.exps[(self.logs[a] - self.logs[b]) % self.max_value])

    def inverse(self, a: int) -> int:
        """Multiplicative inverse of a."""
        return self.div(1, a)

    def evaluate(self, coefficients: np.ndarray, x: int) -> np.ndarray:
        """
        Evaluate a batch of polynomials at x with Horner's method.

        Args:
            coefficients: Matrix of shape (num_polynomials, degree + 1),
                column 0 holds the constant terms
            x: Evaluation point

        Returns:
            Array with one value per polynomial
        """
        coeffs = np.asarray(coefficients, dtype=np.int64)
        if x == 0:
            return coeffs[:, 0].copy()

        log_x = self.logs[x]
        fx = np.zeros(coeffs.shape[0], dtype=np.int64)

        for i in range(coeffs.shape[1] - 1, -1, -1):
            nonzero = fx != 0
            nxt = coeffs[:, i].copy()
            nxt[nonzero] = (
                self.exps[(log_x + self.logs[fx[nonzero]]) % self.max_value]
                ^ coeffs[nonzero, i]
            )
            fx = nxt

        return fx

    def interpolate(self, at: int, xs: Sequence[int], ys: np.ndarray) -> np.ndarray:
        """
        Lagrange interpolation at `at` for a batch of point sets.

        Args:
            at: Point to interpolate at (0 recovers the constant terms)
            xs: Distinct x coordinates, one per column of ys
            ys: Matrix of shape (num_polynomials, len(xs))

        Returns:
            Array with the interpolated value of every row
        """
        ys = np.asarray(ys, dtype=np.int64)
        result = np.zeros(ys.shape[0], dtype=np.int64)

        for i, xi in enumerate(xs):
            log_coeff = 0
            for j, xj in enumerate(xs):
                if i == j:
                    continue
                if at == xj:
                    break
                log_coeff += int(self.logs[at ^ xj]) - int(self.logs[xi ^ xj])
            else:
                column = ys[:, i]
                nonzero = column != 0
                result[nonzero] ^= self.exps[
                    (self.logs[column[nonzero]] + log_coeff) % self.max_value
                ]

        return result


def get_field(field) -> GaloisField:
    """Accept a GaloisField or a bit width and return a field."""
    if isinstance(field, GaloisField):
        return field
    return GaloisField(field)
