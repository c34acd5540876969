"""
Certificate and key material models for mutual-TLS contexts.
"""
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Optional, Tuple, Union

from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec, rsa
from OpenSSL import crypto

from ..errors import ConfigurationError, UnsupportedAlgorithmError

logger = logging.getLogger(__name__)


class KeyAlgorithm(str, Enum):
    """Private key algorithm families accepted by the PEM decoder."""
    RSA = "RSA"
    EC = "EC"

    @classmethod
    def parse(cls, name: Union[str, "KeyAlgorithm"]) -> "KeyAlgorithm":
        """Resolve an algorithm name, case-insensitively."""
        if isinstance(name, cls):
            return name
        try:
            return cls(str(name).upper())
        except ValueError:
            raise UnsupportedAlgorithmError(f"Unsupported key algorithm: {name}") from None

    @property
    def key_type(self):
        """The cryptography private key class for this family."""
        return _KEY_TYPES[self]


_KEY_TYPES = {
    KeyAlgorithm.RSA: rsa.RSAPrivateKey,
    KeyAlgorithm.EC: ec.EllipticCurvePrivateKey,
}


@dataclass(frozen=True)
class Certificate:
    """A parsed X.509 certificate."""
    x509: x509.Certificate

    @property
    def der(self) -> bytes:
        return self.x509.public_bytes(serialization.Encoding.DER)

    @property
    def pem(self) -> str:
        return self.x509.public_bytes(serialization.Encoding.PEM).decode("ascii")

    @property
    def subject(self) -> str:
        return self.x509.subject.rfc4514_string()

    @property
    def fingerprint(self) -> str:
        """SHA-256 fingerprint as lowercase hex."""
        return self.x509.fingerprint(hashes.SHA256()).hex()

    def to_openssl(self) -> crypto.X509:
        return crypto.X509.from_cryptography(self.x509)

    def __repr__(self):
        return f"Certificate(subject={self.subject!r}, fingerprint={self.fingerprint[:16]})"


@dataclass(frozen=True, eq=False)
class PrivateKey:
    """A parsed, unencrypted private key tagged with its algorithm family."""
    algorithm: KeyAlgorithm
    key: Union[rsa.RSAPrivateKey, ec.EllipticCurvePrivateKey] = field(repr=False)

    def __post_init__(self):
        expected = self.algorithm.key_type
        if not isinstance(self.key, expected):
            raise TypeError(f"{self.algorithm.value} private key expected, got {type(self.key).__name__}")

    @property
    def pkcs8(self) -> bytes:
        """Unencrypted PKCS#8 DER encoding."""
        return self.key.private_bytes(
            encoding=serialization.Encoding.DER,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption()
        )

    def public_key_matches(self, certificate: Certificate) -> bool:
        """Check whether the certificate carries this key's public half."""
        spki = (serialization.Encoding.DER, serialization.PublicFormat.SubjectPublicKeyInfo)
        return (
            self.key.public_key().public_bytes(*spki)
            == certificate.x509.public_key().public_bytes(*spki)
        )

    def __eq__(self, other):
        if not isinstance(other, PrivateKey):
            return NotImplemented
        return self.algorithm == other.algorithm and self.pkcs8 == other.pkcs8

    def __hash__(self):
        return hash((self.algorithm, self.pkcs8))


CertificateChain = Tuple[Certificate, ...]
TrustAnchorSet = Tuple[Certificate, ...]


@dataclass(frozen=True)
class MutualTLSConfig:
    """
    Identity and trust material captured once and shared read-only.

    The certificate chain starts with the leaf certificate, followed by any
    intermediates a peer needs to reach one of its trust anchors. A private
    key requires a non-empty chain whose leaf carries the key's public half.
    """
    certificate_chain: CertificateChain = ()
    private_key: Optional[PrivateKey] = None
    trusted_certificates: TrustAnchorSet = ()

    def __post_init__(self):
        object.__setattr__(self, 'certificate_chain', _as_certificates(self.certificate_chain, 'certificate_chain'))
        object.__setattr__(self, 'trusted_certificates', _as_certificates(self.trusted_certificates, 'trusted_certificates'))
        self._validate_identity()

    def _validate_identity(self):
        if self.private_key is None:
            if self.certificate_chain:
                logger.warning("Certificate chain supplied without a private key; no identity will be presented")
            return

        if not isinstance(self.private_key, PrivateKey):
            raise TypeError(f"private_key must be a PrivateKey, got {type(self.private_key).__name__}")

        if not self.certificate_chain:
            raise ConfigurationError("A private key requires a non-empty certificate chain")

        if not self.private_key.public_key_matches(self.certificate_chain[0]):
            raise ConfigurationError(
                f"Private key does not match the leaf certificate {self.certificate_chain[0].subject}"
            )

    @property
    def has_identity(self) -> bool:
        return self.private_key is not None


def _as_certificates(values: Optional[Iterable[Certificate]], name: str) -> Tuple[Certificate, ...]:
    certificates = tuple(values) if values is not None else ()
    for index, value in enumerate(certificates):
        if not isinstance(value, Certificate):
            raise TypeError(f"{name}[{index}] must be a Certificate, got {type(value).__name__}")
    return certificates
