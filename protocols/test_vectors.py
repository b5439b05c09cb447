"""
Test-Vector Exchange Protocol: vector files and the producer.

A vector file records inputs and outputs of every primitive so another
implementation can reproduce them:

    {
      "description": ..., "timestamp": ..., "encoding": "hex" | "base64",
      "vectors": [{"scheme", "description", "inputs", "outputs"}, ...]
    }

Files keyed by scheme ({"ecies": [...], "shamir": [...], "paillier": [...]})
are read as well. Their entries are either full vectors or the flat ECIES
and Shamir records of older producers. The single-key-pair Paillier layout
(votingPublicKey, testVotes, homomorphicSum) is also accepted.
"""

import json
import logging
import os
import secrets
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from config.config import VectorConfig, ShamirConfig, EciesConfig, PaillierConfig
from crypto import ecies, shamir
from crypto.errors import MalformedVector
from crypto.galois import GaloisField
from crypto.paillier import generate_keypair
from utils.helpers import encode_bytes, int_to_hex


logger = logging.getLogger('concord.vectors')

SCHEMES = ('ecies', 'shamir', 'paillier')


def ecies_plaintext(size: int) -> bytes:
    """Deterministic plaintext pattern used for ECIES vectors."""
    return bytes((i * 37) % 256 for i in range(size))


@dataclass
class TestVector:
    """One recorded input/output pair for a scheme."""
    __test__ = False

    scheme: str
    description: str
    inputs: Dict[str, Any] = field(default_factory=dict)
    outputs: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'scheme': self.scheme,
            'description': self.description,
            'inputs': self.inputs,
            'outputs': self.outputs
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'TestVector':
        if not isinstance(data, dict):
            raise MalformedVector(f"Vector must be an object, got {type(data).__name__}")
        scheme = data.get('scheme')
        if scheme not in SCHEMES:
            raise MalformedVector(f"Unknown scheme: {scheme!r}")
        inputs = data.get('inputs', {})
        outputs = data.get('outputs', {})
        if not isinstance(inputs, dict) or not isinstance(outputs, dict):
            raise MalformedVector("Vector inputs and outputs must be objects")
        return cls(scheme, data.get('description', ''), inputs, outputs)


def _legacy_ecies(record: Dict[str, Any]) -> TestVector:
    inputs = {
        'mode': record['mode'],
        'recipientPrivateKey': record['privateKey'],
        'plaintext': record['plaintext']
    }
    if record.get('publicKey') is not None:
        inputs['recipientPublicKey'] = record['publicKey']
    return TestVector('ecies', f"legacy {record['mode']}", inputs,
                      {'encrypted': record['encrypted']})


def _legacy_shamir(record: Dict[str, Any]) -> TestVector:
    inputs = {
        'bits': record['bits'],
        'secret': record['secret'],
        'threshold': record['threshold'],
        'shareCount': len(record['shares'])
    }
    return TestVector('shamir', f"legacy {record['bits']}-bit", inputs,
                      {'shares': record['shares']})


def _legacy_paillier(data: Dict[str, Any]) -> List[TestVector]:
    """Vectors from the single voting key pair layout."""
    keys = {'publicKey': data['votingPublicKey'], 'privateKey': data['votingPrivateKey']}
    vectors = []

    votes = data.get('testVotes') or []
    if votes:
        plaintexts = [int(v['plaintext']) for v in votes]
        vectors.append(TestVector(
            'paillier', 'legacy test votes',
            dict(keys, plaintexts=plaintexts),
            {'ciphertexts': [v['ciphertext'] for v in votes], 'expectedSum': sum(plaintexts)}
        ))

    hsum = data.get('homomorphicSum')
    if hsum:
        vectors.append(TestVector(
            'paillier', 'legacy homomorphic sum', dict(keys),
            {
                'ciphertexts': hsum['ciphertexts'],
                'sum': hsum['sum'],
                'expectedSum': int(hsum['expectedPlaintext'])
            }
        ))
    return vectors


_LEGACY = {
    'ecies': _legacy_ecies,
    'shamir': _legacy_shamir,
}


@dataclass
class VectorFile:
    """A collection of test vectors plus the file metadata."""
    description: str = ''
    timestamp: str = ''
    # None when the file does not declare its byte encoding
    encoding: Optional[str] = 'hex'
    vectors: List[TestVector] = field(default_factory=list)

    def by_scheme(self, scheme: str) -> List[TestVector]:
        return [v for v in self.vectors if v.scheme == scheme]

    def to_dict(self) -> Dict[str, Any]:
        data = {
            'description': self.description,
            'timestamp': self.timestamp,
            'vectors': [v.to_dict() for v in self.vectors]
        }
        if self.encoding is not None:
            data['encoding'] = self.encoding
        return data

    def save(self, path: str):
        """Write the file as JSON with sorted keys and 2-space indentation."""
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        with open(path, 'w') as f:
            json.dump(self.to_dict(), f, indent=2, sort_keys=True)
            f.write('\n')

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'VectorFile':
        """
        Build a vector file from parsed JSON in either layout.

        Raises:
            MalformedVector: If the structure is not recognised
        """
        if not isinstance(data, dict):
            raise MalformedVector("Vector file must contain a JSON object")

        encoding = data.get('encoding')
        if encoding is not None and encoding not in ('hex', 'base64'):
            raise MalformedVector(f"Unknown byte encoding: {encoding!r}")

        if 'vectors' in data:
            if not isinstance(data['vectors'], list):
                raise MalformedVector("'vectors' must be a list")
            return cls(
                description=data.get('description', ''),
                timestamp=data.get('timestamp', ''),
                encoding=encoding,
                vectors=[TestVector.from_dict(v) for v in data['vectors']]
            )

        vectors = []
        for scheme in SCHEMES:
            records = data.get(scheme)
            if records is None:
                continue
            if not isinstance(records, list):
                raise MalformedVector(f"'{scheme}' must be a list")
            for record in records:
                vectors.append(cls._scheme_record(scheme, record))
        if 'votingPublicKey' in data:
            try:
                vectors.extend(_legacy_paillier(data))
            except (KeyError, TypeError, ValueError) as e:
                raise MalformedVector(f"Invalid legacy Paillier layout: {e}") from e

        return cls(
            description=data.get('description', 'legacy vectors'),
            timestamp=data.get('timestamp', ''),
            encoding=encoding,
            vectors=vectors
        )

    @staticmethod
    def _scheme_record(scheme: str, record: Any) -> TestVector:
        """One entry of a {scheme: [...]} file: a full vector or a flat record."""
        if isinstance(record, dict) and ('inputs' in record or 'outputs' in record):
            vector = TestVector.from_dict(dict(record, scheme=record.get('scheme', scheme)))
            if vector.scheme != scheme:
                raise MalformedVector(f"{vector.scheme} vector listed under '{scheme}'")
            return vector

        convert = _LEGACY.get(scheme)
        if convert is None:
            raise MalformedVector(f"'{scheme}' entries must be full test vectors")
        try:
            return convert(record)
        except (KeyError, TypeError, ValueError) as e:
            raise MalformedVector(f"Invalid legacy {scheme} record: {e}") from e

    @classmethod
    def load(cls, path: str) -> 'VectorFile':
        with open(path, 'r') as f:
            try:
                data = json.load(f)
            except json.JSONDecodeError as e:
                raise MalformedVector(f"{path} is not valid JSON: {e}") from e
        return cls.from_dict(data)


class VectorProducer:
    """
    Produces test vectors with fresh keys and randomness.

    Attributes:
        config: What to produce
        shamir_config: Padding and size limits for Shamir sharing
        ecies_config: Cipher suite stamped into ECIES envelopes
        paillier_config: Primality rounds and retry limits for key generation
    """

    def __init__(
        self,
        config: Optional[VectorConfig] = None,
        shamir_config: Optional[ShamirConfig] = None,
        ecies_config: Optional[EciesConfig] = None,
        paillier_config: Optional[PaillierConfig] = None
    ):
        self.config = config if config is not None else VectorConfig()
        self.shamir_config = shamir_config if shamir_config is not None else ShamirConfig()
        self.ecies_config = ecies_config if ecies_config is not None else EciesConfig()
        self.paillier_config = paillier_config if paillier_config is not None else PaillierConfig()

    def _enc(self, data: bytes) -> str:
        return encode_bytes(data, self.config.encoding)

    def produce_ecies(self) -> List[TestVector]:
        """One vector per mode and plaintext size, with injected ephemeral key and IV."""
        suite = ecies.CIPHER_SUITES[self.ecies_config.cipher_suite]
        vectors = []
        for mode in (ecies.EciesEncryptionType.BASIC, ecies.EciesEncryptionType.WITH_LENGTH):
            for size in self.config.ecies_plaintext_sizes:
                recipient = ecies.EcKeyPair.generate()
                ephemeral = ecies.EcKeyPair.generate()
                iv = os.urandom(suite.iv_size)
                plaintext = ecies_plaintext(size)

                encrypted = ecies.encrypt(
                    mode, recipient.public_key, plaintext,
                    ephemeral_key=ephemeral.private_key, iv=iv, suite=suite
                )

                vectors.append(TestVector(
                    'ecies',
                    f'{mode.label} mode, {size} byte plaintext',
                    {
                        'mode': mode.label,
                        'recipientPrivateKey': self._enc(recipient.private_key),
                        'recipientPublicKey': self._enc(recipient.public_key),
                        'ephemeralPrivateKey': self._enc(ephemeral.private_key),
                        'ephemeralPublicKey': self._enc(ephemeral.public_key),
                        'iv': self._enc(iv),
                        'plaintext': self._enc(plaintext)
                    },
                    {
                        'encrypted': self._enc(encrypted),
                        'headerSize': suite.header_size(mode),
                        'ciphertextLength': size
                    }
                ))

        logger.info(f"Produced {len(vectors)} ECIES vectors")
        return vectors

    def produce_shamir(self) -> List[TestVector]:
        """One vector per field size, secret and (shares, threshold) combination."""
        vectors = []
        pad_length = self.shamir_config.pad_length

        for bits in self.config.shamir_bits:
            gf = GaloisField(bits)
            for secret in self.config.shamir_secrets:
                if secret is None:
                    secret = secrets.token_hex(16)
                for num_shares, threshold in self.config.share_combinations:
                    if num_shares > gf.max_shares:
                        logger.debug(f"Skipping {num_shares} shares in a {bits}-bit field")
                        continue

                    shares = shamir.share(
                        secret, num_shares, threshold, gf,
                        pad_length=pad_length,
                        max_secret_bits=self.shamir_config.max_secret_bits
                    )
                    vectors.append(TestVector(
                        'shamir',
                        f'{bits}-bit field, {threshold} of {num_shares}',
                        {
                            'bits': bits,
                            'secret': secret,
                            'shareCount': num_shares,
                            'threshold': threshold,
                            'padLength': pad_length
                        },
                        {'shares': shares}
                    ))

        logger.info(f"Produced {len(vectors)} Shamir vectors")
        return vectors

    def produce_paillier(self) -> List[TestVector]:
        """A single vector: one key pair, its plaintexts and their homomorphic sum."""
        plaintexts = list(self.config.paillier_plaintexts)
        if not plaintexts:
            return []

        keypair = generate_keypair(
            self.config.paillier_key_size,
            max_attempts=self.paillier_config.max_keygen_attempts,
            prime_test_iterations=self.paillier_config.prime_test_iterations
        )
        pk = keypair.public

        factors = [pk.random_factor() for _ in plaintexts]
        ciphertexts = [pk.encrypt(m, r) for m, r in zip(plaintexts, factors)]
        total = pk.addition(*ciphertexts)

        vector = TestVector(
            'paillier',
            f'{self.config.paillier_key_size}-bit key, {len(plaintexts)} plaintexts',
            {
                'publicKey': pk.to_dict(),
                'privateKey': keypair.private.to_dict(),
                'plaintexts': plaintexts,
                'randomFactors': [int_to_hex(r) for r in factors]
            },
            {
                'ciphertexts': [int_to_hex(c) for c in ciphertexts],
                'sum': int_to_hex(total),
                'expectedSum': sum(plaintexts)
            }
        )

        logger.info("Produced 1 Paillier vector")
        return [vector]

    def produce(self, description: str = 'Concord cross-implementation test vectors') -> VectorFile:
        """Produce vectors for every configured scheme."""
        producers = {
            'ecies': self.produce_ecies,
            'shamir': self.produce_shamir,
            'paillier': self.produce_paillier,
        }

        vectors = []
        for scheme in SCHEMES:
            if scheme in self.config.schemes:
                vectors.extend(producers[scheme]())

        return VectorFile(
            description=description,
            timestamp=datetime.now(timezone.utc).isoformat(),
            encoding=self.config.encoding,
            vectors=vectors
        )
