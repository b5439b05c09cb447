"""
Test-Vector Exchange Protocol: the verifier.

Every vector is checked independently. Failures are collected per scheme
and reported together; a broken vector never stops the run.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from crypto import ecies, shamir
from crypto.errors import CompatError, MalformedVector, VectorMismatch
from crypto.galois import GaloisField
from crypto.paillier import PaillierPublicKey, PaillierPrivateKey
from utils.helpers import decode_bytes, hex_to_int
from .test_vectors import SCHEMES, TestVector, VectorFile


logger = logging.getLogger('concord.verification')


@dataclass
class SchemeReport:
    """Outcome of all vectors of one scheme."""
    scheme: str
    passed: int = 0
    failed: int = 0
    failures: List[str] = field(default_factory=list)

    @property
    def total(self) -> int:
        return self.passed + self.failed


@dataclass
class VerificationReport:
    """Outcome of a whole vector file."""
    schemes: Dict[str, SchemeReport] = field(default_factory=dict)

    def scheme(self, name: str) -> SchemeReport:
        if name not in self.schemes:
            self.schemes[name] = SchemeReport(name)
        return self.schemes[name]

    @property
    def passed(self) -> int:
        return sum(r.passed for r in self.schemes.values())

    @property
    def failed(self) -> int:
        return sum(r.failed for r in self.schemes.values())

    @property
    def total(self) -> int:
        return self.passed + self.failed

    @property
    def exit_code(self) -> int:
        """1 if any vector failed or no vector was found, else 0."""
        return 1 if self.failed or not self.total else 0

    def summary(self) -> List[str]:
        lines = []
        for name in sorted(self.schemes):
            r = self.schemes[name]
            lines.append(f'{name}: {r.passed}/{r.total} passed')
        lines.append(f'total: {self.passed}/{self.total} passed')
        return lines

    def to_dict(self) -> Dict:
        return {
            name: {'passed': r.passed, 'failed': r.failed, 'failures': list(r.failures)}
            for name, r in self.schemes.items()
        }


def _expect(condition: bool, message: str):
    if not condition:
        raise VectorMismatch(message)


class VectorVerifier:
    """
    Checks test vectors against this implementation.

    Args:
        encoding: Default byte encoding when a vector file does not say
    """

    def __init__(self, encoding: str = 'hex'):
        self.encoding = encoding

    def _bytes(self, value, encoding: Optional[str] = None) -> bytes:
        return decode_bytes(value, encoding or self.encoding)

    def verify_ecies(self, vector: TestVector, encoding: Optional[str] = None):
        """Decrypt, then re-encrypt with the recorded ephemeral key and IV."""
        inputs, outputs = vector.inputs, vector.outputs
        mode = ecies.EciesEncryptionType.from_name(inputs['mode'])
        private_key = self._bytes(inputs['recipientPrivateKey'], encoding)
        plaintext = self._bytes(inputs['plaintext'], encoding)
        encrypted = self._bytes(outputs['encrypted'], encoding)

        header = ecies.parse_header(mode, encrypted)
        if 'headerSize' in outputs:
            _expect(header.header_size == outputs['headerSize'],
                    f"Header is {header.header_size} bytes, vector says {outputs['headerSize']}")

        decrypted = ecies.decrypt(private_key, encrypted, mode)
        _expect(decrypted == plaintext, "Decrypted plaintext differs")

        if 'ephemeralPrivateKey' in inputs and 'iv' in inputs:
            if 'recipientPublicKey' in inputs:
                public_key = self._bytes(inputs['recipientPublicKey'], encoding)
            else:
                public_key = ecies.EcKeyPair.from_private_key(private_key).public_key
            again = ecies.encrypt(
                mode, public_key, plaintext,
                ephemeral_key=self._bytes(inputs['ephemeralPrivateKey'], encoding),
                iv=self._bytes(inputs['iv'], encoding),
                suite=header.cipher_suite
            )
            _expect(again == encrypted, "Re-encryption with the recorded ephemeral key and IV differs")

    def verify_shamir(self, vector: TestVector, encoding: Optional[str] = None):
        """Combine the first and the last `threshold` shares."""
        inputs = vector.inputs
        gf = GaloisField(int(inputs['bits']))
        threshold = int(inputs['threshold'])
        secret = str(inputs['secret']).lower()
        shares = vector.outputs['shares']

        if len(shares) < threshold:
            raise MalformedVector(f"Vector has {len(shares)} shares, threshold is {threshold}")

        for label, subset in (('first', shares[:threshold]), ('last', shares[-threshold:])):
            combined = shamir.combine(subset, gf)
            _expect(combined.lower() == secret,
                    f"Combining the {label} {threshold} shares does not give the secret")

    def verify_paillier(self, vector: TestVector, encoding: Optional[str] = None):
        """Re-encrypt with recorded random factors, decrypt, and check the sum."""
        inputs, outputs = vector.inputs, vector.outputs
        pk = PaillierPublicKey.from_dict(inputs['publicKey'])
        sk = PaillierPrivateKey.from_dict(inputs['privateKey'], pk)
        ciphertexts = [hex_to_int(c) for c in outputs['ciphertexts']]
        plaintexts = inputs.get('plaintexts')

        if plaintexts is not None:
            _expect(len(plaintexts) == len(ciphertexts), "Plaintext and ciphertext counts differ")
            factors = inputs.get('randomFactors')
            if factors is not None:
                for i, (m, r) in enumerate(zip(plaintexts, factors)):
                    _expect(pk.encrypt(int(m), hex_to_int(r)) == ciphertexts[i],
                            f"Re-encryption of plaintext #{i} differs")
            for i, (m, c) in enumerate(zip(plaintexts, ciphertexts)):
                _expect(sk.decrypt(c) == int(m) % pk.n, f"Ciphertext #{i} does not decrypt to its plaintext")

        total = pk.addition(*ciphertexts)
        if 'sum' in outputs:
            _expect(total == hex_to_int(outputs['sum']), "Homomorphic sum differs")
        if 'expectedSum' in outputs:
            _expect(sk.decrypt(total) == int(outputs['expectedSum']) % pk.n,
                    "Homomorphic sum does not decrypt to the expected value")

    def verify(self, vector_file: VectorFile) -> VerificationReport:
        """Verify every vector of a file."""
        encoding = vector_file.encoding or self.encoding
        handlers = {
            'ecies': self.verify_ecies,
            'shamir': self.verify_shamir,
            'paillier': self.verify_paillier,
        }

        report = VerificationReport()
        for index, vector in enumerate(vector_file.vectors):
            result = report.scheme(vector.scheme)
            try:
                handlers[vector.scheme](vector, encoding)
            except (CompatError, KeyError, TypeError, ValueError) as e:
                result.failed += 1
                message = f'#{index} {vector.description}: {type(e).__name__}: {e}'
                result.failures.append(message)
                logger.error(f"{vector.scheme} vector {message}")
            else:
                result.passed += 1

        for name in SCHEMES:
            if name in report.schemes:
                r = report.schemes[name]
                logger.info(f"{name}: {r.passed}/{r.total} vectors passed")
        if not report.total:
            logger.warning("No vectors found")

        return report

    def verify_file(self, path: str) -> VerificationReport:
        return self.verify(VectorFile.load(path))
