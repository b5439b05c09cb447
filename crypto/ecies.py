"""
ECIES over secp256k1 with AES-256-GCM.

Envelope layout (all integers big-endian):

    version (1) | cipher suite (1) | type (1) | ephemeral public key (33)
    | IV (12) | auth tag (16) | [ciphertext length (8)] | ciphertext

- Basic (type 33): 64 byte header, ciphertext runs to the end of the data
- WithLength (type 66): 72 byte header, the length field makes envelopes
  self-delimiting so several can be concatenated in one stream

The first 36 bytes (version through ephemeral key) are bound to the
ciphertext as AES-GCM associated data. The symmetric key is derived from
the x-coordinate of the ECDH shared point with HKDF-SHA256.
"""

import logging
import os
from dataclasses import dataclass
from enum import IntEnum
from typing import Iterator, Optional, Union

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.hkdf import HKDF

from .errors import (
    AuthenticationFailed,
    EncryptionTypeMismatch,
    FormatError,
    InvalidKey,
    TruncatedEnvelope,
    UnsupportedCipherSuite,
    UnsupportedEncryptionType,
    UnsupportedVersion
)


logger = logging.getLogger('concord.ecies')

VERSION = 0x01

# Order of the secp256k1 group
SECP256K1_ORDER = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141


class EciesEncryptionType(IntEnum):
    BASIC = 33
    WITH_LENGTH = 66

    @classmethod
    def from_name(cls, name: Union[str, int, 'EciesEncryptionType']) -> 'EciesEncryptionType':
        """Accept 'basic', 'withLength', 'with_length' or the numeric value."""
        if isinstance(name, int):
            try:
                return cls(name)
            except ValueError:
                raise UnsupportedEncryptionType(f"Unsupported encryption type: {name}") from None
        key = str(name).replace('_', '').replace('-', '').lower()
        if key == 'basic':
            return cls.BASIC
        if key == 'withlength':
            return cls.WITH_LENGTH
        raise UnsupportedEncryptionType(f"Unsupported encryption type: {name!r}")

    @property
    def label(self) -> str:
        return 'basic' if self is EciesEncryptionType.BASIC else 'withLength'


@dataclass(frozen=True)
class CipherSuite:
    """Sizes and primitives selected by the cipher suite byte."""
    suite_id: int
    name: str
    curve: str = 'secp256k1'
    iv_size: int = 12
    tag_size: int = 16
    key_size: int = 32
    public_key_size: int = 33
    length_size: int = 8
    length_byteorder: str = 'big'
    hkdf_info: bytes = b'ecies-v2-key-derivation'

    @property
    def prefix_size(self) -> int:
        """Version, suite and type bytes plus the ephemeral key (the AAD)."""
        return 3 + self.public_key_size

    def header_size(self, encryption_type: EciesEncryptionType) -> int:
        size = self.prefix_size + self.iv_size + self.tag_size
        if encryption_type == EciesEncryptionType.WITH_LENGTH:
            size += self.length_size
        return size


SECP256K1_AES256GCM_SHA256 = CipherSuite(0x01, 'Secp256k1_Aes256Gcm_Sha256')

CIPHER_SUITES = {
    SECP256K1_AES256GCM_SHA256.suite_id: SECP256K1_AES256GCM_SHA256,
}

DEFAULT_CIPHER_SUITE = SECP256K1_AES256GCM_SHA256


@dataclass(frozen=True)
class EciesHeader:
    """Parsed envelope header."""
    version: int
    cipher_suite: CipherSuite
    encryption_type: EciesEncryptionType
    ephemeral_public_key: bytes
    iv: bytes
    auth_tag: bytes
    ciphertext_length: Optional[int]
    header_size: int
    envelope_size: int

    @property
    def aad(self) -> bytes:
        return (bytes([self.version, self.cipher_suite.suite_id, int(self.encryption_type)])
                + self.ephemeral_public_key)


def _public_bytes(public_key: ec.EllipticCurvePublicKey, compressed: bool = True) -> bytes:
    fmt = (serialization.PublicFormat.CompressedPoint if compressed
           else serialization.PublicFormat.UncompressedPoint)
    return public_key.public_bytes(serialization.Encoding.X962, fmt)


class EcKeyPair:
    """A secp256k1 key pair exposing raw SEC1 bytes."""

    def __init__(self, key: ec.EllipticCurvePrivateKey):
        self._key = key

    @classmethod
    def generate(cls) -> 'EcKeyPair':
        return cls(ec.generate_private_key(ec.SECP256K1()))

    @classmethod
    def from_private_key(cls, data: bytes) -> 'EcKeyPair':
        return cls(load_private_key(data))

    @classmethod
    def from_private_key_hex(cls, text: str) -> 'EcKeyPair':
        try:
            data = bytes.fromhex(text)
        except (TypeError, ValueError):
            raise InvalidKey("Private key is not hex") from None
        return cls.from_private_key(data)

    @property
    def key(self) -> ec.EllipticCurvePrivateKey:
        return self._key

    @property
    def private_key(self) -> bytes:
        return self._key.private_numbers().private_value.to_bytes(32, 'big')

    @property
    def public_key(self) -> bytes:
        return _public_bytes(self._key.public_key())

    @property
    def public_key_uncompressed(self) -> bytes:
        return _public_bytes(self._key.public_key(), compressed=False)

    def get_private_key_bytes(self) -> bytes:
        return self.private_key

    def get_public_key_bytes(self) -> bytes:
        return self.public_key


def load_private_key(key) -> ec.EllipticCurvePrivateKey:
    """
    Accept a private key as 32 raw bytes, a key object or a cryptography key.

    Raises:
        InvalidKey: If the scalar is not in [1, n)
    """
    if isinstance(key, ec.EllipticCurvePrivateKey):
        return key
    if hasattr(key, 'get_private_key_bytes'):
        key = key.get_private_key_bytes()
    if not isinstance(key, (bytes, bytearray)) or len(key) != 32:
        raise InvalidKey("Private key must be 32 bytes")
    value = int.from_bytes(key, 'big')
    if value == 0 or value >= SECP256K1_ORDER:
        raise InvalidKey("Private key is not a valid secp256k1 scalar")
    return ec.derive_private_key(value, ec.SECP256K1())


def load_public_key(key) -> ec.EllipticCurvePublicKey:
    """
    Accept a public key as SEC1 bytes, a key object or a cryptography key.

    64 byte keys are taken as an uncompressed point without its 0x04 prefix.

    Raises:
        InvalidKey: If the bytes do not decode to a curve point
    """
    if isinstance(key, ec.EllipticCurvePublicKey):
        return key
    if hasattr(key, 'get_public_key_bytes'):
        key = key.get_public_key_bytes()
    if not isinstance(key, (bytes, bytearray)):
        raise InvalidKey(f"Unsupported public key type: {type(key).__name__}")
    key = bytes(key)
    if len(key) == 64:
        key = b'\x04' + key
    if len(key) not in (33, 65):
        raise InvalidKey(f"Public key must be 33, 64 or 65 bytes, got {len(key)}")
    try:
        return ec.EllipticCurvePublicKey.from_encoded_point(ec.SECP256K1(), key)
    except ValueError as e:
        raise InvalidKey(f"Public key is not on secp256k1: {e}") from e


def derive_shared_secret(private_key, peer_public_key) -> bytes:
    """ECDH on secp256k1, returning the 32 byte x-coordinate of the shared point."""
    return load_private_key(private_key).exchange(ec.ECDH(), load_public_key(peer_public_key))


def derive_symmetric_key(shared_secret: bytes, suite: CipherSuite = DEFAULT_CIPHER_SUITE) -> bytes:
    """HKDF-SHA256 with no salt over the shared secret."""
    return HKDF(
        algorithm=hashes.SHA256(),
        length=suite.key_size,
        salt=None,
        info=suite.hkdf_info,
    ).derive(shared_secret)


def encrypt(
    mode,
    recipient_public_key,
    plaintext: bytes,
    *,
    ephemeral_key=None,
    iv: Optional[bytes] = None,
    suite: CipherSuite = DEFAULT_CIPHER_SUITE
) -> bytes:
    """
    Encrypt plaintext for the holder of recipient_public_key.

    Args:
        mode: EciesEncryptionType or its name ('basic', 'withLength')
        recipient_public_key: Recipient public key
        plaintext: Data to encrypt, may be empty
        ephemeral_key: Fixed ephemeral private key, random when omitted
        iv: Fixed IV, random when omitted
        suite: Cipher suite to stamp into the header

    Returns:
        The complete envelope
    """
    mode = EciesEncryptionType.from_name(mode)
    recipient = load_public_key(recipient_public_key)

    if ephemeral_key is None:
        ephemeral = ec.generate_private_key(ec.SECP256K1())
    else:
        ephemeral = load_private_key(ephemeral_key)
    if iv is None:
        iv = os.urandom(suite.iv_size)
    elif len(iv) != suite.iv_size:
        raise FormatError(f"IV must be {suite.iv_size} bytes, got {len(iv)}")

    aad = bytes([VERSION, suite.suite_id, int(mode)]) + _public_bytes(ephemeral.public_key())
    key = derive_symmetric_key(ephemeral.exchange(ec.ECDH(), recipient), suite)

    # AESGCM appends the tag to the ciphertext
    sealed = AESGCM(key).encrypt(bytes(iv), bytes(plaintext), aad)
    ciphertext, tag = sealed[:-suite.tag_size], sealed[-suite.tag_size:]

    parts = [aad, bytes(iv), tag]
    if mode == EciesEncryptionType.WITH_LENGTH:
        parts.append(len(ciphertext).to_bytes(suite.length_size, suite.length_byteorder))
    parts.append(ciphertext)
    return b''.join(parts)


def encrypt_basic(recipient_public_key, plaintext: bytes, **kwargs) -> bytes:
    return encrypt(EciesEncryptionType.BASIC, recipient_public_key, plaintext, **kwargs)


def encrypt_with_length(recipient_public_key, plaintext: bytes, **kwargs) -> bytes:
    return encrypt(EciesEncryptionType.WITH_LENGTH, recipient_public_key, plaintext, **kwargs)


def parse_header(mode, buffer: bytes) -> EciesHeader:
    """
    Parse and validate an envelope header.

    Args:
        mode: Expected encryption type, or None to accept either
        buffer: Envelope, or a stream starting with one

    Raises:
        TruncatedEnvelope: If the buffer ends before the header does, or
            before the declared WithLength ciphertext does
        UnsupportedVersion, UnsupportedCipherSuite, UnsupportedEncryptionType:
            If a header byte is not recognised
        EncryptionTypeMismatch: If byte 2 disagrees with mode
    """
    buffer = bytes(buffer)
    if len(buffer) < 3:
        raise TruncatedEnvelope(f"Envelope is {len(buffer)} bytes, too short for a header")

    version, suite_id, type_id = buffer[0], buffer[1], buffer[2]
    if version != VERSION:
        raise UnsupportedVersion(f"Unsupported ECIES version: {version}")
    suite = CIPHER_SUITES.get(suite_id)
    if suite is None:
        raise UnsupportedCipherSuite(f"Unsupported cipher suite: {suite_id}")
    try:
        encryption_type = EciesEncryptionType(type_id)
    except ValueError:
        raise UnsupportedEncryptionType(f"Unsupported encryption type: {type_id}") from None
    if mode is not None:
        expected = EciesEncryptionType.from_name(mode)
        if encryption_type != expected:
            raise EncryptionTypeMismatch(
                f"Expected {expected.label} envelope, got {encryption_type.label}"
            )

    header_size = suite.header_size(encryption_type)
    if len(buffer) < header_size:
        raise TruncatedEnvelope(
            f"Envelope is {len(buffer)} bytes, {encryption_type.label} header needs {header_size}"
        )

    pos = suite.prefix_size
    ephemeral_public_key = buffer[3:pos]
    iv = buffer[pos:pos + suite.iv_size]
    pos += suite.iv_size
    auth_tag = buffer[pos:pos + suite.tag_size]
    pos += suite.tag_size

    if encryption_type == EciesEncryptionType.WITH_LENGTH:
        ciphertext_length = int.from_bytes(buffer[pos:pos + suite.length_size],
                                           suite.length_byteorder)
        envelope_size = header_size + ciphertext_length
        if len(buffer) < envelope_size:
            raise TruncatedEnvelope(
                f"Envelope declares {ciphertext_length} ciphertext bytes, "
                f"only {len(buffer) - header_size} present"
            )
    else:
        ciphertext_length = None
        envelope_size = len(buffer)

    return EciesHeader(
        version=version,
        cipher_suite=suite,
        encryption_type=encryption_type,
        ephemeral_public_key=ephemeral_public_key,
        iv=iv,
        auth_tag=auth_tag,
        ciphertext_length=ciphertext_length,
        header_size=header_size,
        envelope_size=envelope_size
    )


def decrypt_with_components(
    private_key,
    ephemeral_public_key: bytes,
    iv: bytes,
    auth_tag: bytes,
    ciphertext: bytes,
    aad: bytes = b'',
    suite: CipherSuite = DEFAULT_CIPHER_SUITE
) -> bytes:
    """
    Decrypt an already split envelope.

    Raises:
        InvalidKey: If the ephemeral key is not a curve point
        AuthenticationFailed: If the tag does not verify
    """
    key = derive_symmetric_key(derive_shared_secret(private_key, ephemeral_public_key), suite)
    try:
        return AESGCM(key).decrypt(bytes(iv), bytes(ciphertext) + bytes(auth_tag), bytes(aad))
    except InvalidTag:
        raise AuthenticationFailed() from None


def decrypt(private_key, envelope: bytes, mode=None) -> bytes:
    """
    Decrypt a single envelope.

    Args:
        private_key: Recipient private key
        envelope: Complete envelope. For WithLength envelopes only the
            declared ciphertext length is read; anything after it is ignored.
        mode: Expected encryption type, or None to accept either

    Returns:
        The plaintext
    """
    envelope = bytes(envelope)
    header = parse_header(mode, envelope)
    if header.envelope_size != len(envelope):
        logger.debug(f"Ignoring {len(envelope) - header.envelope_size} bytes after the envelope")

    plaintext = decrypt_with_components(
        private_key,
        header.ephemeral_public_key,
        header.iv,
        header.auth_tag,
        envelope[header.header_size:header.envelope_size],
        header.aad,
        header.cipher_suite
    )
    logger.debug(f"Decrypted {header.encryption_type.label} envelope ({len(plaintext)} bytes)")
    return plaintext


def iter_framed(buffer: bytes) -> Iterator[bytes]:
    """
    Split a stream of concatenated WithLength envelopes.

    Yields:
        Each complete envelope in order

    Raises:
        EncryptionTypeMismatch: If an envelope in the stream is not WithLength
        TruncatedEnvelope: If the stream ends inside an envelope
    """
    buffer = bytes(buffer)
    pos = 0
    while pos < len(buffer):
        header = parse_header(EciesEncryptionType.WITH_LENGTH, buffer[pos:])
        yield buffer[pos:pos + header.envelope_size]
        pos += header.envelope_size
