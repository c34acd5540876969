"""
Trust material: turns trust-anchor certificates into trust managers.
"""
import logging
from dataclasses import dataclass
from typing import Iterable, Tuple

from OpenSSL import SSL, crypto

from ..errors import InvariantViolation, KeyStoreError
from ..models.material import Certificate
from .keystore import EphemeralKeyStore

logger = logging.getLogger(__name__)

TRUST_ALIAS_PREFIX = "trust-anchor"

MUTUAL_VERIFY_MODE = SSL.VERIFY_PEER | SSL.VERIFY_FAIL_IF_NO_PEER_CERT


def _unique(certificates: Iterable[Certificate]) -> Tuple[Certificate, ...]:
    seen = set()
    unique = []
    for certificate in certificates:
        if certificate.der not in seen:
            seen.add(certificate.der)
            unique.append(certificate)
    return tuple(unique)


@dataclass(frozen=True)
class TrustManager:
    """
    Supplies trust decisions to a TLS context.

    Peers must present a certificate that chains to one of the anchors. With
    no anchors every peer is rejected.
    """
    anchors: Tuple[Certificate, ...] = ()

    def accepted_issuers(self) -> Tuple[Certificate, ...]:
        return self.anchors

    def _x509_store(self) -> crypto.X509Store:
        store = crypto.X509Store()
        for anchor in _unique(self.anchors):
            store.add_cert(anchor.to_openssl())
        return store

    def is_trusted(self, certificate: Certificate) -> bool:
        """Check whether the certificate is an anchor or chains to one."""
        context = crypto.X509StoreContext(self._x509_store(), certificate.to_openssl())
        try:
            context.verify_certificate()
        except crypto.X509StoreContextError as e:
            logger.debug(f"Certificate {certificate.subject} not trusted: {e}")
            return False
        return True

    def configure(self, ssl_context: SSL.Context):
        """Install the anchors and require a verified peer certificate."""
        anchors = _unique(self.anchors)
        cert_store = ssl_context.get_cert_store()
        for anchor in anchors:
            cert_store.add_cert(anchor.to_openssl())
            ssl_context.add_client_ca(anchor.x509)
        ssl_context.set_verify(MUTUAL_VERIFY_MODE)


def build_trust_managers(trusted_certificates: Iterable[Certificate]) -> Tuple[TrustManager, ...]:
    """
    Build trust managers from an ephemeral, in-memory trust store.

    Each anchor is stored under "trust-anchor-<index>" in input order. The
    order only keeps aliases unique; it has no effect on trust decisions.
    """
    store = EphemeralKeyStore()
    for index, certificate in enumerate(trusted_certificates):
        alias = f"{TRUST_ALIAS_PREFIX}-{index}"
        try:
            store.set_certificate_entry(alias, certificate)
        except KeyStoreError as e:
            raise InvariantViolation(f"Could not populate a fresh trust store: {e}") from e

    anchors = tuple(
        store.get_certificate(alias)
        for alias in store.aliases()
        if store.is_certificate_entry(alias)
    )
    if not anchors:
        logger.debug("No trust anchors configured; every peer certificate will be rejected")

    return (TrustManager(anchors),)
