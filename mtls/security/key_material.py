"""
Identity material: turns a certificate chain and private key into key managers.
"""
import logging
import secrets
from dataclasses import dataclass, field
from typing import Optional, Sequence, Tuple

from OpenSSL import SSL

from ..errors import ConfigurationError, InvariantViolation, KeyStoreError
from ..models.material import Certificate, PrivateKey
from .keystore import EphemeralKeyStore

logger = logging.getLogger(__name__)

KEY_ALIAS = "identity"


@dataclass(frozen=True)
class KeyManager:
    """Supplies one identity (key + chain) to a TLS context."""
    alias: str
    private_key: PrivateKey = field(repr=False)
    certificate_chain: Tuple[Certificate, ...]

    @property
    def certificate(self) -> Certificate:
        return self.certificate_chain[0]

    def configure(self, ssl_context: SSL.Context):
        """Install the leaf certificate, intermediates and private key."""
        try:
            ssl_context.use_certificate(self.certificate.x509)
            for intermediate in self.certificate_chain[1:]:
                ssl_context.add_extra_chain_cert(intermediate.x509)
            ssl_context.use_privatekey(self.private_key.key)
        except SSL.Error as e:
            raise ConfigurationError(f"TLS implementation rejected identity {self.certificate.subject}: {e}") from e

        try:
            ssl_context.check_privatekey()
        except SSL.Error as e:
            # MutualTLSConfig already checked that the key matches the leaf
            raise InvariantViolation(f"Installed key does not match installed certificate: {e}") from e


def _placeholder_passphrase() -> str:
    # Required by the store API only; the store never leaves this process.
    return secrets.token_urlsafe(16)


def build_key_managers(certificate_chain: Sequence[Certificate],
                       private_key: Optional[PrivateKey]) -> Tuple[KeyManager, ...]:
    """
    Build key managers from an ephemeral, in-memory key store.

    A missing private key yields no key managers: the context then presents
    no identity to its peers.
    """
    store = EphemeralKeyStore()
    passphrase = _placeholder_passphrase()

    if private_key is not None:
        try:
            store.set_key_entry(KEY_ALIAS, private_key, passphrase, certificate_chain)
        except KeyStoreError as e:
            raise InvariantViolation(f"Could not populate a fresh key store: {e}") from e

    key_managers = []
    for alias in store.aliases():
        if not store.is_key_entry(alias):
            continue
        try:
            key = store.get_key(alias, passphrase)
        except KeyStoreError as e:
            raise InvariantViolation(f"Could not read back key entry {alias}: {e}") from e
        key_managers.append(KeyManager(alias, key, store.get_certificate_chain(alias)))

    logger.debug(f"Built {len(key_managers)} key manager(s)")
    return tuple(key_managers)
